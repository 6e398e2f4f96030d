from __future__ import annotations

from dataclasses import dataclass
from collections.abc import Callable

import math
import numpy as np
from numpy.typing import NDArray
from scipy.special import erf

FloatArray = NDArray[np.float64]

_CONST1 = 1.0 / (2.0 * math.pi) ** 1.5
_CONST2 = math.sqrt(2.0 / math.pi)
_CONST3 = 3.0 / (4.0 * math.pi)


# ---------------------------
# Kernel functions of rho = r/sigma
# ---------------------------
def zeta_sing(r: FloatArray) -> FloatArray:
    return np.where(np.asarray(r) == 0.0, 1.0, 0.0)

def g_sing(r: FloatArray) -> FloatArray:
    return np.ones_like(np.asarray(r, dtype=np.float64))

def dgdr_sing(r: FloatArray) -> FloatArray:
    return np.zeros_like(np.asarray(r, dtype=np.float64))


def zeta_gaus(r: FloatArray) -> FloatArray:
    return _CONST3 * np.exp(-np.asarray(r) ** 3)

def g_gaus(r: FloatArray) -> FloatArray:
    return 1.0 - np.exp(-np.asarray(r) ** 3)

def dgdr_gaus(r: FloatArray) -> FloatArray:
    r = np.asarray(r)
    return 3.0 * r * r * np.exp(-r ** 3)


def zeta_gauserf(r: FloatArray) -> FloatArray:
    return _CONST1 * np.exp(-np.asarray(r) ** 2 / 2.0)

def g_gauserf(r: FloatArray) -> FloatArray:
    r = np.asarray(r)
    return erf(r / math.sqrt(2.0)) - _CONST2 * r * np.exp(-r * r / 2.0)

def dgdr_gauserf(r: FloatArray) -> FloatArray:
    r = np.asarray(r)
    return _CONST2 * r * r * np.exp(-r * r / 2.0)


def zeta_wnklmns(r: FloatArray) -> FloatArray:
    return 15.0 / (8.0 * math.pi) / (np.asarray(r) ** 2 + 1.0) ** 3.5

def g_wnklmns(r: FloatArray) -> FloatArray:
    r = np.asarray(r)
    return r ** 3 * (r * r + 2.5) / (r * r + 1.0) ** 2.5

def dgdr_wnklmns(r: FloatArray) -> FloatArray:
    r = np.asarray(r)
    return 7.5 * r * r / (r * r + 1.0) ** 3.5


@dataclass(frozen=True, slots=True)
class Kernel:
    """Regularization kernel of the Biot-Savart law.

    name:  identifier, also selects the compiled branch of the direct sum
    zeta:  normalized vorticity distribution ζ(ρ)
    g:     regularizing function g(ρ), g → 1 as ρ → ∞
    dgdr:  derivative dg/dρ
    """
    name: str
    zeta: Callable[[FloatArray], FloatArray]
    g: Callable[[FloatArray], FloatArray]
    dgdr: Callable[[FloatArray], FloatArray]
    code: int = 0

    def g_dgdr(self, r: FloatArray) -> tuple[FloatArray, FloatArray]:
        return self.g(r), self.dgdr(r)

    @property
    def regularized(self) -> bool:
        return self.name != "singular"


kernel_singular = Kernel("singular", zeta_sing, g_sing, dgdr_sing, code=0)
kernel_gaussian = Kernel("gaussian", zeta_gaus, g_gaus, dgdr_gaus, code=1)
kernel_gaussianerf = Kernel("gaussianerf", zeta_gauserf, g_gauserf, dgdr_gauserf, code=2)
kernel_winckelmans = Kernel("winckelmans", zeta_wnklmns, g_wnklmns, dgdr_wnklmns, code=3)

KERNELS: dict[str, Kernel] = {
    k.name: k for k in (kernel_singular, kernel_gaussian, kernel_gaussianerf, kernel_winckelmans)
}


def get_kernel(kernel: Kernel | str) -> Kernel:
    """Resolve a kernel by name; kernels pass through unchanged."""
    if isinstance(kernel, Kernel):
        return kernel
    try:
        return KERNELS[kernel]
    except KeyError:
        raise ValueError(f"Unknown kernel: {kernel!r}") from None
