from __future__ import annotations

from dataclasses import dataclass

import numpy as np
from numpy.typing import NDArray

from .errors import NumericalSingularity

FloatArray = NDArray[np.float64]


def vorticity_from_jacobian(J: FloatArray) -> FloatArray:
    """ω = ∇×U from the antisymmetric part of J[..., i, j] = ∂U_i/∂x_j."""
    return np.stack(
        (
            J[..., 2, 1] - J[..., 1, 2],
            J[..., 0, 2] - J[..., 2, 0],
            J[..., 1, 0] - J[..., 0, 1],
        ),
        axis=-1,
    )


def _norms(gamma: FloatArray, omega: FloatArray) -> tuple[FloatArray, FloatArray]:
    nrmw = np.sqrt(np.sum(omega * omega, axis=-1))
    nrmG = np.sqrt(np.sum(gamma * gamma, axis=-1))
    for nrm, what in ((nrmw, "vorticity"), (nrmG, "circulation")):
        zero = np.atleast_1d(nrm == 0.0)
        if zero.any():
            bad = np.flatnonzero(zero)
            raise NumericalSingularity(
                f"zero {what} norm during relaxation at particles {bad.tolist()}",
                indices=bad,
            )
    return nrmw, nrmG


@dataclass(slots=True)
class Pedrizzetti:
    """Pedrizzetti relaxation: blend Γ towards |Γ| ω/|ω|.

    The blended vector is shorter than Γ unless both are aligned, so repeated
    application slowly drains the particle strength.
    """

    def __call__(self, rlxf: float, gamma: FloatArray, J: FloatArray) -> None:
        omega = vorticity_from_jacobian(J)
        nrmw, nrmG = _norms(gamma, omega)
        gamma[...] = (1.0 - rlxf) * gamma + rlxf * np.asarray(nrmG / nrmw)[..., None] * omega


@dataclass(slots=True)
class CorrectedPedrizzetti:
    """Pedrizzetti relaxation rescaled so that |Γ| is unchanged.

        b² = 1 - 2 (1 - r) r (1 - Γ·ω / (|Γ| |ω|))
        Γ  ← [(1 - r) Γ + r |Γ| ω/|ω|] / √b²
    """

    def __call__(self, rlxf: float, gamma: FloatArray, J: FloatArray) -> None:
        omega = vorticity_from_jacobian(J)
        nrmw, nrmG = _norms(gamma, omega)
        cos = np.sum(gamma * omega, axis=-1) / (nrmG * nrmw)
        b2 = 1.0 - 2.0 * (1.0 - rlxf) * rlxf * (1.0 - cos)
        if np.any(b2 <= 0.0):
            # Γ antiparallel to ω with rlxf = 1/2 blends to the zero vector
            bad = np.flatnonzero(np.atleast_1d(b2 <= 0.0))
            raise NumericalSingularity(
                f"relaxation collapsed circulation at particles {bad.tolist()}", indices=bad
            )
        blend = (1.0 - rlxf) * gamma + rlxf * np.asarray(nrmG / nrmw)[..., None] * omega
        gamma[...] = blend / np.sqrt(np.asarray(b2))[..., None]


@dataclass(slots=True)
class NoRelaxation:
    def __call__(self, rlxf: float, gamma: FloatArray, J: FloatArray) -> None:
        return None


RelaxationScheme = Pedrizzetti | CorrectedPedrizzetti | NoRelaxation

relaxation_pedrizzetti = Pedrizzetti()
relaxation_correctedpedrizzetti = CorrectedPedrizzetti()
relaxation_none = NoRelaxation()
