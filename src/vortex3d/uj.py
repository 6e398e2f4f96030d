from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

import math
import numpy as np
from numba import njit
from numpy.typing import NDArray

from .kernels import Kernel

if TYPE_CHECKING:
    from .particles import ParticleField

FloatArray = NDArray[np.float64]

_CONST4 = 1.0 / (4.0 * math.pi)


# ---------------------------
# Numba (JIT) direct sum
# ---------------------------
@njit(cache=True, fastmath=False, nogil=True)
def _g_dgdr_jit(rho: float, code: int) -> tuple[float, float]:
    if code == 0:
        return 1.0, 0.0
    if code == 1:
        e = math.exp(-rho * rho * rho)
        return 1.0 - e, 3.0 * rho * rho * e
    if code == 2:
        e = math.exp(-rho * rho / 2.0)
        c = math.sqrt(2.0 / math.pi)
        return math.erf(rho / math.sqrt(2.0)) - c * rho * e, c * rho * rho * e
    a = rho * rho + 1.0
    return rho ** 3 * (rho * rho + 2.5) / a ** 2.5, 7.5 * rho * rho / a ** 3.5


@njit(cache=True, fastmath=False, nogil=True)
def _uj_direct_jit(
    xt: np.ndarray, xs: np.ndarray, gs: np.ndarray, ss: np.ndarray, code: int
) -> tuple[np.ndarray, np.ndarray]:
    M = xt.shape[0]
    N = xs.shape[0]
    U = np.zeros((M, 3), dtype=np.float64)
    J = np.zeros((M, 3, 3), dtype=np.float64)
    for i in range(M):
        for j in range(N):
            dx0 = xt[i, 0] - xs[j, 0]
            dx1 = xt[i, 1] - xs[j, 1]
            dx2 = xt[i, 2] - xs[j, 2]
            r2 = dx0 * dx0 + dx1 * dx1 + dx2 * dx2
            if r2 == 0.0:
                continue
            r = math.sqrt(r2)
            gsgm, dgsgm = _g_dgdr_jit(r / ss[j], code)
            k = -_CONST4 / (r2 * r)
            # K(Δx) × Γ
            c0 = k * (dx1 * gs[j, 2] - dx2 * gs[j, 1])
            c1 = k * (dx2 * gs[j, 0] - dx0 * gs[j, 2])
            c2 = k * (dx0 * gs[j, 1] - dx1 * gs[j, 0])
            U[i, 0] += gsgm * c0
            U[i, 1] += gsgm * c1
            U[i, 2] += gsgm * c2
            aux = dgsgm / (ss[j] * r) - 3.0 * gsgm / r2
            J[i, 0, 0] += aux * c0 * dx0
            J[i, 1, 0] += aux * c1 * dx0
            J[i, 2, 0] += aux * c2 * dx0
            J[i, 0, 1] += aux * c0 * dx1
            J[i, 1, 1] += aux * c1 * dx1
            J[i, 2, 1] += aux * c2 * dx1
            J[i, 0, 2] += aux * c0 * dx2
            J[i, 1, 2] += aux * c1 * dx2
            J[i, 2, 2] += aux * c2 * dx2
            # Kronecker delta term
            aux = k * gsgm
            J[i, 1, 0] -= aux * gs[j, 2]
            J[i, 2, 0] += aux * gs[j, 1]
            J[i, 0, 1] += aux * gs[j, 2]
            J[i, 2, 1] -= aux * gs[j, 0]
            J[i, 0, 2] -= aux * gs[j, 1]
            J[i, 1, 2] += aux * gs[j, 0]
    return U, J


# ---------------------------
# NumPy direct sum
# ---------------------------
def _uj_direct_numpy(
    xt: FloatArray, xs: FloatArray, gs: FloatArray, ss: FloatArray, kernel: Kernel
) -> tuple[FloatArray, FloatArray]:
    dX = xt[:, None, :] - xs[None, :, :]                  # (m,n,3)
    r2 = np.sum(dX * dX, axis=2)                          # (m,n)
    self_hit = r2 == 0.0
    r = np.sqrt(np.where(self_hit, 1.0, r2))
    gsgm, dgsgm = kernel.g_dgdr(r / ss[None, :])
    k = np.where(self_hit, 0.0, -_CONST4 / (r * r * r))
    crss = k[..., None] * np.cross(dX, gs[None, :, :])    # (m,n,3)
    U = np.sum(gsgm[..., None] * crss, axis=1)

    aux = dgsgm / (ss[None, :] * r) - 3.0 * gsgm / (r * r)
    J = np.einsum("mn,mni,mnj->mij", aux, crss, dX)
    # Kronecker delta term: ∂(Δx × Γ)/∂x_j = e_j × Γ
    kg = k * gsgm
    J[:, 1, 0] -= kg @ gs[:, 2]
    J[:, 2, 0] += kg @ gs[:, 1]
    J[:, 0, 1] += kg @ gs[:, 2]
    J[:, 2, 1] -= kg @ gs[:, 0]
    J[:, 0, 2] -= kg @ gs[:, 1]
    J[:, 1, 2] += kg @ gs[:, 0]
    return U, J


@dataclass(slots=True)
class NumbaConfig:
    """Toggle Numba JIT for the direct sum."""
    enabled: bool = False


@dataclass(slots=True)
class ChunkConfig:
    """Chunking of targets to cap the (m,n,3) temporaries of the NumPy path.

    query_batch: number of target points per chunk (None -> no chunking).
    """
    query_batch: int | None = 2000

    def __post_init__(self) -> None:
        if self.query_batch is not None and self.query_batch <= 0:
            raise ValueError("query_batch must be positive or None.")


def induced_UJ(
    targets: FloatArray,
    sources: FloatArray,
    gamma: FloatArray,
    sigma: FloatArray,
    kernel: Kernel,
    *,
    numba_cfg: NumbaConfig | None = None,
    chunking: ChunkConfig | None = None,
) -> tuple[FloatArray, FloatArray]:
    """Regularized Biot-Savart velocity U (m,3) and Jacobian J (m,3,3) at targets.

    J[:, i, j] = ∂U_i/∂x_j. Coincident source/target pairs are skipped.
    """
    numba_cfg = numba_cfg or NumbaConfig()
    chunking = chunking or ChunkConfig()
    xt = np.ascontiguousarray(targets, dtype=np.float64)
    xs = np.ascontiguousarray(sources, dtype=np.float64)
    gs = np.ascontiguousarray(gamma, dtype=np.float64)
    ss = np.ascontiguousarray(sigma, dtype=np.float64)
    M = xt.shape[0]
    if M == 0 or xs.shape[0] == 0:
        return np.zeros((M, 3), dtype=np.float64), np.zeros((M, 3, 3), dtype=np.float64)

    if numba_cfg.enabled:
        return _uj_direct_jit(xt, xs, gs, ss, kernel.code)

    qb = chunking.query_batch
    if qb is None or qb >= M:
        return _uj_direct_numpy(xt, xs, gs, ss, kernel)
    U = np.zeros((M, 3), dtype=np.float64)
    J = np.zeros((M, 3, 3), dtype=np.float64)
    k = 0
    while k < M:
        ks = slice(k, min(k + qb, M))
        U[ks], J[ks] = _uj_direct_numpy(xt[ks], xs, gs, ss, kernel)
        k = ks.stop
    return U, J


@dataclass(slots=True)
class UJDirect:
    """Direct O(N²) evaluation of U and J over the whole field.

    Adds the induced velocity and Jacobian onto the particles' U and J, which
    the integrators zero beforehand with ``field.reset()``.
    """
    numba: NumbaConfig = field(default_factory=NumbaConfig)
    chunking: ChunkConfig = field(default_factory=ChunkConfig)

    def __call__(self, pfield: ParticleField) -> None:
        X = pfield.X
        U, J = induced_UJ(
            X, X, pfield.Gamma, pfield.sigma, pfield.kernel,
            numba_cfg=self.numba, chunking=self.chunking,
        )
        pfield.U[...] += U
        pfield.J[...] += J


UJ_direct = UJDirect()
