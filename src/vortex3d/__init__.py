from .errors import (
    VPMError, CapacityExceeded, NumericalSingularity, ConfigurationIncompatible,
)
from .formulations import (
    ClassicVPM,
    ReformulatedVPM,
    stretching,
    formulation_classic,
    formulation_tube_classic,
    formulation_tube_continuity,
    formulation_tube_momentum,
    formulation_sphere_momentum,
)
from .kernels import (
    Kernel, get_kernel,
    kernel_singular, kernel_gaussian, kernel_gaussianerf, kernel_winckelmans,
)
from .relaxation import (
    Pedrizzetti,
    CorrectedPedrizzetti,
    NoRelaxation,
    vorticity_from_jacobian,
    relaxation_pedrizzetti,
    relaxation_correctedpedrizzetti,
    relaxation_none,
)
from .viscous import Inviscid, CoreSpreading, ParticleStrengthExchange
from .sgs import NoSGS, sgs_none
from .uj import UJDirect, UJ_direct, NumbaConfig, ChunkConfig, induced_UJ
from .particles import (
    Particle, ParticleField, FieldConfig, Uinf_zero, constant_freestream,
)
from .timeintegration import euler, rungekutta3, get_integrator, RK3_COEFFICIENTS
from .api import SimulationConfig, run_simulation
from .logging_config import setup_logging

__all__ = [
    "VPMError", "CapacityExceeded", "NumericalSingularity", "ConfigurationIncompatible",
    "ClassicVPM", "ReformulatedVPM", "stretching",
    "formulation_classic", "formulation_tube_classic", "formulation_tube_continuity",
    "formulation_tube_momentum", "formulation_sphere_momentum",
    "Kernel", "get_kernel",
    "kernel_singular", "kernel_gaussian", "kernel_gaussianerf", "kernel_winckelmans",
    "Pedrizzetti", "CorrectedPedrizzetti", "NoRelaxation", "vorticity_from_jacobian",
    "relaxation_pedrizzetti", "relaxation_correctedpedrizzetti", "relaxation_none",
    "Inviscid", "CoreSpreading", "ParticleStrengthExchange",
    "NoSGS", "sgs_none",
    "UJDirect", "UJ_direct", "NumbaConfig", "ChunkConfig", "induced_UJ",
    "Particle", "ParticleField", "FieldConfig", "Uinf_zero", "constant_freestream",
    "euler", "rungekutta3", "get_integrator", "RK3_COEFFICIENTS",
    "SimulationConfig", "run_simulation",
    "setup_logging",
]
