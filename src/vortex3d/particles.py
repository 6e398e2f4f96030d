from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any
from collections.abc import Callable, Iterator, Sequence

import logging
import numpy as np
from numpy.typing import NDArray

from .errors import CapacityExceeded, ConfigurationIncompatible
from .formulations import ClassicVPM, Formulation, ReformulatedVPM, formulation_classic
from .kernels import Kernel, get_kernel, kernel_gaussianerf
from .relaxation import RelaxationScheme, relaxation_correctedpedrizzetti
from .sgs import NoSGS
from .uj import UJDirect
from .viscous import Inviscid, ViscousScheme

logger = logging.getLogger(__name__)

FloatArray = NDArray[np.float64]
ArrayLike3D = np.ndarray | Sequence[Sequence[float]]


# ---------------------------
# Utility
# ---------------------------
def _as_float_array3(x: ArrayLike3D, name: str) -> FloatArray:
    """Convert to contiguous float64 (N,3)."""
    arr = np.asarray(x, dtype=np.float64)
    if arr.ndim == 1:
        arr = arr[None, :]
    if arr.ndim != 2 or arr.shape[1] != 3:
        raise ValueError(f"{name} must have shape (N,3).")
    if not np.isfinite(arr).all():
        raise ValueError(f"{name} contains non-finite values.")
    return np.ascontiguousarray(arr)

def _as_float_array1(x: np.ndarray | Sequence[float] | float, name: str) -> FloatArray:
    arr = np.atleast_1d(np.asarray(x, dtype=np.float64))
    if arr.ndim != 1:
        raise ValueError(f"{name} must be 1-D.")
    if not np.isfinite(arr).all():
        raise ValueError(f"{name} contains non-finite values.")
    return np.ascontiguousarray(arr)


# ---------------------------
# Freestream
# ---------------------------
def Uinf_zero(t: float) -> FloatArray:
    return np.zeros(3, dtype=np.float64)

def constant_freestream(Uinf: Sequence[float]) -> Callable[[float], FloatArray]:
    """Freestream that does not change in time."""
    U = np.asarray(Uinf, dtype=np.float64).copy()
    if U.shape != (3,):
        raise ValueError("Uinf must be a 3-vector.")

    def _Uinf(t: float) -> FloatArray:
        return U.copy()

    return _Uinf


# ---------------------------
# Configuration
# ---------------------------
@dataclass(frozen=True, slots=True)
class FieldConfig:
    """Numerical setup of a particle field, checked for coherence on creation.
    Instances are immutable; build a new one to change the setup.

    formulation: ClassicVPM or ReformulatedVPM(f, g)
    kernel:      regularization kernel (or its name)
    viscous:     viscous scheme, called as viscous(field, dt, aux1, aux2)
    sgsmodel:    subgrid-scale model, called as sgsmodel(field)
    relaxation:  relaxation scheme, called as relaxation(rlxf, Gamma, J)
    rlxf:        relaxation factor in [0, 1]
    transposed:  use the transposed stretching scheme (Γ·∇ᵀ)U
    UJ:          velocity and Jacobian evaluator, called as UJ(field)
    Uinf:        freestream velocity as a function of time
    """
    formulation: Formulation = field(default_factory=lambda: formulation_classic)
    kernel: Kernel | str = field(default_factory=lambda: kernel_gaussianerf)
    viscous: ViscousScheme = field(default_factory=Inviscid)
    sgsmodel: Callable[[Any], None] = field(default_factory=NoSGS)
    relaxation: RelaxationScheme = field(default_factory=lambda: relaxation_correctedpedrizzetti)
    rlxf: float = 0.3
    transposed: bool = True
    UJ: Callable[[Any], None] = field(default_factory=UJDirect)
    Uinf: Callable[[float], FloatArray] = Uinf_zero

    def __post_init__(self) -> None:
        if not isinstance(self.formulation, (ClassicVPM, ReformulatedVPM)):
            raise ConfigurationIncompatible(f"Unknown formulation: {self.formulation!r}")
        try:
            object.__setattr__(self, "kernel", get_kernel(self.kernel))
        except ValueError as e:
            raise ConfigurationIncompatible(str(e)) from None
        if not (np.isfinite(self.rlxf) and 0.0 <= self.rlxf <= 1.0):
            raise ConfigurationIncompatible(f"rlxf must be in [0, 1], got {self.rlxf}.")

        kernels = getattr(self.viscous, "compatible_kernels", None)
        if kernels is not None and self.kernel.name not in kernels:
            raise ConfigurationIncompatible(
                f"{type(self.viscous).__name__} is not compatible with the "
                f"{self.kernel.name} kernel; use one of {sorted(kernels)}."
            )
        for role, scheme in (("viscous", self.viscous), ("relaxation", self.relaxation)):
            forms = getattr(scheme, "compatible_formulations", None)
            if forms is not None and not isinstance(self.formulation, forms):
                raise ConfigurationIncompatible(
                    f"{role} scheme {type(scheme).__name__} does not support "
                    f"{type(self.formulation).__name__}."
                )
        for name in ("viscous", "sgsmodel", "relaxation", "UJ", "Uinf"):
            if not callable(getattr(self, name)):
                raise ConfigurationIncompatible(f"{name} must be callable.")


# ---------------------------
# Particles
# ---------------------------
class Particle:
    """View of one particle of a ParticleField.

    Vector attributes are writable NumPy views into the field's storage, so
    ``p.X += dt * p.U`` updates the field in place.
    """
    __slots__ = ("_field", "index")

    def __init__(self, pfield: ParticleField, index: int) -> None:
        self._field = pfield
        self.index = index

    @property
    def X(self) -> FloatArray: return self._field._X[self.index]

    @property
    def Gamma(self) -> FloatArray: return self._field._Gamma[self.index]

    @property
    def sigma(self) -> FloatArray: return self._field._sigma[self.index:self.index + 1]

    @property
    def U(self) -> FloatArray: return self._field._U[self.index]

    @property
    def J(self) -> FloatArray: return self._field._J[self.index]

    @property
    def SGS(self) -> FloatArray: return self._field._SGS[self.index]

    @property
    def velocity_accum(self) -> FloatArray: return self._field._velocity_accum[self.index]

    @property
    def stretch_accum(self) -> FloatArray: return self._field._stretch_accum[self.index]

    @property
    def core_size_accum(self) -> FloatArray:
        return self._field._core_size_accum[self.index:self.index + 1]

    def __repr__(self) -> str:
        return (f"Particle(index={self.index}, X={self.X.tolist()}, "
                f"Gamma={self.Gamma.tolist()}, sigma={float(self.sigma[0])})")


class ParticleField:
    """Fixed-capacity, ordered collection of vortex particles.

    State is kept as structure-of-arrays buffers of length ``maxparticles``;
    the public array properties are views over the active particles.
    """

    def __init__(self, maxparticles: int, config: FieldConfig | None = None) -> None:
        if int(maxparticles) <= 0:
            raise ConfigurationIncompatible("maxparticles must be positive.")
        self.config = config or FieldConfig()
        self.maxparticles = int(maxparticles)
        self.t: float = 0.0
        self.nt: int = 0
        self._np = 0

        n = self.maxparticles
        self._X: FloatArray = np.zeros((n, 3), dtype=np.float64)
        self._Gamma: FloatArray = np.zeros((n, 3), dtype=np.float64)
        self._sigma: FloatArray = np.zeros(n, dtype=np.float64)
        self._U: FloatArray = np.zeros((n, 3), dtype=np.float64)
        self._J: FloatArray = np.zeros((n, 3, 3), dtype=np.float64)
        self._SGS: FloatArray = np.zeros((n, 3), dtype=np.float64)
        self._velocity_accum: FloatArray = np.zeros((n, 3), dtype=np.float64)
        self._stretch_accum: FloatArray = np.zeros((n, 3), dtype=np.float64)
        self._core_size_accum: FloatArray = np.zeros(n, dtype=np.float64)
        self._diffusion_gamma_accum: FloatArray = np.zeros((n, 3), dtype=np.float64)
        self._diffusion_sigma_accum: FloatArray = np.zeros(n, dtype=np.float64)

    # -------- configuration --------
    @property
    def formulation(self) -> Formulation: return self.config.formulation

    @property
    def kernel(self) -> Kernel: return self.config.kernel  # type: ignore[return-value]

    @property
    def viscous(self) -> ViscousScheme: return self.config.viscous

    @property
    def sgsmodel(self) -> Callable[[Any], None]: return self.config.sgsmodel

    @property
    def relaxation(self) -> RelaxationScheme: return self.config.relaxation

    @property
    def rlxf(self) -> float: return self.config.rlxf

    @property
    def transposed(self) -> bool: return self.config.transposed

    @property
    def UJ(self) -> Callable[[Any], None]: return self.config.UJ

    @property
    def Uinf(self) -> Callable[[float], FloatArray]: return self.config.Uinf

    # -------- active views --------
    @property
    def n_particles(self) -> int: return self._np

    def __len__(self) -> int: return self._np

    @property
    def X(self) -> FloatArray: return self._X[:self._np]

    @property
    def Gamma(self) -> FloatArray: return self._Gamma[:self._np]

    @property
    def sigma(self) -> FloatArray: return self._sigma[:self._np]

    @property
    def U(self) -> FloatArray: return self._U[:self._np]

    @property
    def J(self) -> FloatArray: return self._J[:self._np]

    @property
    def SGS(self) -> FloatArray: return self._SGS[:self._np]

    @property
    def velocity_accum(self) -> FloatArray: return self._velocity_accum[:self._np]

    @property
    def stretch_accum(self) -> FloatArray: return self._stretch_accum[:self._np]

    @property
    def core_size_accum(self) -> FloatArray: return self._core_size_accum[:self._np]

    @property
    def diffusion_gamma_accum(self) -> FloatArray: return self._diffusion_gamma_accum[:self._np]

    @property
    def diffusion_sigma_accum(self) -> FloatArray: return self._diffusion_sigma_accum[:self._np]

    # -------- particles --------
    def add_particles(
        self,
        X: ArrayLike3D,
        Gamma: ArrayLike3D,
        sigma: np.ndarray | Sequence[float] | float,
    ) -> None:
        """Append particles at the end of the field.

        Raises CapacityExceeded, leaving the field untouched, when they do not fit.
        """
        x = _as_float_array3(X, "X")
        g = _as_float_array3(Gamma, "Gamma")
        s = _as_float_array1(sigma, "sigma")
        if g.shape[0] != x.shape[0]:
            raise ValueError("Gamma must match X length.")
        if s.shape[0] == 1 and x.shape[0] != 1:
            s = np.full(x.shape[0], s[0])
        if s.shape[0] != x.shape[0]:
            raise ValueError("sigma must match X length.")
        if not (s > 0.0).all():
            raise ValueError("sigma must be positive.")

        n0, n1 = self._np, self._np + x.shape[0]
        if n1 > self.maxparticles:
            raise CapacityExceeded(
                f"cannot add {x.shape[0]} particle(s): {self._np} of {self.maxparticles} slots in use."
            )
        self._X[n0:n1] = x
        self._Gamma[n0:n1] = g
        self._sigma[n0:n1] = s
        for buf in (self._U, self._J, self._SGS, self._velocity_accum, self._stretch_accum,
                    self._core_size_accum, self._diffusion_gamma_accum, self._diffusion_sigma_accum):
            buf[n0:n1] = 0.0
        self._np = n1

    def add_particle(self, X: Sequence[float], Gamma: Sequence[float], sigma: float) -> Particle:
        self.add_particles(X, Gamma, sigma)
        return Particle(self, self._np - 1)

    def get_particle(self, i: int) -> Particle:
        if i < 0:
            i += self._np
        if not 0 <= i < self._np:
            raise IndexError(f"particle index {i} out of range for {self._np} particles.")
        return Particle(self, i)

    def remove_particle(self, i: int) -> None:
        """Remove particle i by moving the last particle into its slot."""
        i = self.get_particle(i).index
        last = self._np - 1
        for buf in (self._X, self._Gamma, self._sigma, self._U, self._J, self._SGS,
                    self._velocity_accum, self._stretch_accum, self._core_size_accum,
                    self._diffusion_gamma_accum, self._diffusion_sigma_accum):
            buf[i] = buf[last]
        self._np = last

    def __iter__(self) -> Iterator[Particle]:
        for i in range(self._np):
            yield Particle(self, i)

    def for_each(self, visitor: Callable[[Particle], Any]) -> None:
        """Apply visitor to every active particle in insertion order."""
        for p in self:
            visitor(p)

    # -------- resets --------
    def reset(self) -> None:
        """Zero U and J of every particle."""
        self.U[...] = 0.0
        self.J[...] = 0.0

    def reset_sgs(self) -> None:
        self.SGS[...] = 0.0

    def reset_accumulators(self) -> None:
        self.velocity_accum[...] = 0.0
        self.stretch_accum[...] = 0.0
        self.core_size_accum[...] = 0.0

    # -------- diagnostics --------
    @property
    def total_circulation(self) -> FloatArray:
        return np.asarray(self.Gamma.sum(axis=0), dtype=np.float64)

    def freestream(self) -> FloatArray:
        Uinf = np.asarray(self.Uinf(self.t), dtype=np.float64)
        if Uinf.shape != (3,):
            raise ValueError("Uinf(t) must return a 3-vector.")
        return Uinf

    def diagnostics(self) -> dict[str, Any]:
        speed = np.linalg.norm(self.U, axis=1)
        return {
            "time": self.t,
            "nt": self.nt,
            "n_particles": self._np,
            "total_circulation": self.total_circulation.copy(),
            "sigma_min": float(self.sigma.min(initial=np.inf)),
            "sigma_max": float(self.sigma.max(initial=0.0)),
            "max_speed_at_particles": float(speed.max(initial=0.0)),
        }

    def __repr__(self) -> str:
        return (f"ParticleField(n_particles={self._np}, maxparticles={self.maxparticles}, t={self.t}, "
                f"formulation={self.formulation!r}, kernel={self.kernel.name})")
