from __future__ import annotations

from dataclasses import dataclass
from typing import ClassVar

import numpy as np
from numpy.typing import NDArray

from .errors import ConfigurationIncompatible, NumericalSingularity

FloatArray = NDArray[np.float64]


def stretching(J: FloatArray, gamma: FloatArray, transposed: bool) -> FloatArray:
    """Vortex stretching S = (Γ·∇)U, i.e. J Γ, or Jᵀ Γ for the transposed scheme.

    J has shape (..., 3, 3) with J[..., i, j] = ∂U_i/∂x_j; gamma has shape (..., 3).
    """
    if transposed:
        return np.einsum("...ji,...j->...i", J, gamma)
    return np.einsum("...ij,...j->...i", J, gamma)


@dataclass(frozen=True, slots=True)
class ClassicVPM:
    """Classic VPM: circulation evolves by stretching alone, core size is fixed."""

    evolves_core: ClassVar[bool] = False

    def rates(
        self, S: FloatArray, gamma: FloatArray, sgs: FloatArray, sigma: FloatArray
    ) -> tuple[FloatArray, FloatArray | None]:
        return S + sgs, None


@dataclass(frozen=True, slots=True)
class ReformulatedVPM:
    """Reformulated VPM (vortex tube): stretching is split between circulation
    and core-size change, weighted by the constants f and g.

        Z     = [ (f+g)/(1+3f) S·Γ + f/(1+3f) SGS·Γ ] / |Γ|²
        dΓ/dt = S - 3 Z Γ + SGS
        dσ/dt = -σ Z
    """
    f: float = 0.0
    g: float = 1.0 / 5.0
    evolves_core: ClassVar[bool] = True

    def __post_init__(self) -> None:
        if not (np.isfinite(self.f) and np.isfinite(self.g)):
            raise ConfigurationIncompatible("f and g must be finite.")
        if 1.0 + 3.0 * self.f == 0.0:
            raise ConfigurationIncompatible("f = -1/3 makes the reformulation singular.")

    def Z(self, S: FloatArray, gamma: FloatArray, sgs: FloatArray) -> FloatArray:
        gamma2 = np.sum(gamma * gamma, axis=-1)
        if np.any(gamma2 == 0.0):
            bad = np.flatnonzero(np.atleast_1d(gamma2 == 0.0))
            raise NumericalSingularity(
                f"zero circulation in reformulated stretching at particles {bad.tolist()}",
                indices=bad,
            )
        c1 = (self.f + self.g) / (1.0 + 3.0 * self.f)
        c2 = self.f / (1.0 + 3.0 * self.f)
        SdG = np.sum(S * gamma, axis=-1)
        MdG = np.sum(sgs * gamma, axis=-1)
        return (c1 * SdG + c2 * MdG) / gamma2

    def rates(
        self, S: FloatArray, gamma: FloatArray, sgs: FloatArray, sigma: FloatArray
    ) -> tuple[FloatArray, FloatArray | None]:
        Z = self.Z(S, gamma, sgs)
        dgamma = S - 3.0 * np.asarray(Z)[..., None] * gamma + sgs
        dsigma = -sigma * Z
        return dgamma, dsigma


Formulation = ClassicVPM | ReformulatedVPM

formulation_classic = ClassicVPM()
formulation_tube_classic = ReformulatedVPM(0.0, 0.0)
formulation_tube_continuity = ReformulatedVPM(1.0 / 2.0, 0.0)
formulation_tube_momentum = ReformulatedVPM(1.0 / 4.0, 1.0 / 4.0)
formulation_sphere_momentum = ReformulatedVPM(0.0, 1.0 / 5.0)
