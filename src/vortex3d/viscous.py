from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, ClassVar

import math
import numpy as np

from .formulations import ClassicVPM, ReformulatedVPM

if TYPE_CHECKING:
    from .particles import ParticleField

_ALL_KERNELS = frozenset({"singular", "gaussian", "gaussianerf", "winckelmans"})


# ---------------------------
# Viscous schemes
# ---------------------------
# Called as scheme(field, dt, aux1=a, aux2=b) once per Euler step (a=0, b=1) or
# once per low-storage Runge-Kutta stage with that stage's coefficients.

@dataclass(slots=True)
class Inviscid:
    nu: float = 0.0

    compatible_kernels: ClassVar[frozenset[str]] = _ALL_KERNELS
    compatible_formulations: ClassVar[tuple[type, ...]] = (ClassicVPM, ReformulatedVPM)

    @property
    def inviscid(self) -> bool:
        return True

    def __call__(self, field: ParticleField, dt: float, aux1: float = 0.0, aux2: float = 1.0) -> None:
        return None


@dataclass(slots=True)
class CoreSpreading:
    """Core spreading: every core grows as σ² = σ₀² + 2νt, i.e. dσ/dt = ν/σ.

    Integrated with the caller's low-storage coefficients through the
    particle's ``diffusion_sigma_accum``.
    """
    nu: float

    compatible_kernels: ClassVar[frozenset[str]] = frozenset({"gaussianerf"})
    compatible_formulations: ClassVar[tuple[type, ...]] = (ClassicVPM, ReformulatedVPM)

    def __post_init__(self) -> None:
        if not (np.isfinite(self.nu) and self.nu >= 0.0):
            raise ValueError("nu must be finite and non-negative.")

    @property
    def inviscid(self) -> bool:
        return self.nu == 0.0

    def __call__(self, field: ParticleField, dt: float, aux1: float = 0.0, aux2: float = 1.0) -> None:
        sigma = field.sigma
        q = field.diffusion_sigma_accum
        q *= aux1
        q += dt * self.nu / sigma
        sigma += aux2 * q


@dataclass(slots=True)
class ParticleStrengthExchange:
    """Particle Strength Exchange (PSE) of vectorial circulation.

    dΓ_i/dt = 2ν/ε² Σ_j v_ij η_ε(x_i - x_j) (Γ_j - Γ_i)

    with a Gaussian η_ε of width ``eps`` and the symmetric particle volume
    v_ij = (σ_i³ + σ_j³)/2, so the exchange conserves total circulation.
    """
    nu: float
    eps: float = 0.03

    compatible_kernels: ClassVar[frozenset[str]] = frozenset({"gaussian", "gaussianerf", "winckelmans"})
    compatible_formulations: ClassVar[tuple[type, ...]] = (ClassicVPM,)

    def __post_init__(self) -> None:
        if not (np.isfinite(self.nu) and self.nu >= 0.0):
            raise ValueError("nu must be finite and non-negative.")
        if not (np.isfinite(self.eps) and self.eps > 0.0):
            raise ValueError("eps must be positive.")

    @property
    def inviscid(self) -> bool:
        return self.nu == 0.0

    def rates(self, x: np.ndarray, gamma: np.ndarray, sigma: np.ndarray) -> np.ndarray:
        eps2 = self.eps * self.eps
        r = x[:, None, :] - x[None, :, :]
        r2 = np.sum(r * r, axis=2)
        eta = np.exp(-r2 / (2.0 * eps2)) / ((2.0 * math.pi) ** 1.5 * self.eps ** 3)
        np.fill_diagonal(eta, 0.0)
        vol = sigma ** 3
        W = eta * 0.5 * (vol[:, None] + vol[None, :])
        return (2.0 * self.nu / eps2) * (W @ gamma - W.sum(axis=1)[:, None] * gamma)

    def __call__(self, field: ParticleField, dt: float, aux1: float = 0.0, aux2: float = 1.0) -> None:
        if len(field) == 0:
            return
        q = field.diffusion_gamma_accum
        q *= aux1
        q += dt * self.rates(field.X, field.Gamma, field.sigma)
        field.Gamma[...] += aux2 * q


ViscousScheme = Inviscid | CoreSpreading | ParticleStrengthExchange
