from __future__ import annotations


class VPMError(Exception):
    """Base class for errors raised by the particle field and its integrators."""


class CapacityExceeded(VPMError, IndexError):
    """Adding particles would exceed the field's fixed capacity."""


class NumericalSingularity(VPMError, ArithmeticError):
    """A degenerate local state (zero vorticity, zero circulation, collapsed core).

    ``indices`` holds the particle indices where the singularity was found.
    When raised from an integrator step, the positions, strengths and core
    sizes are left as they were before the step.
    """

    def __init__(self, message: str, indices: object = None) -> None:
        super().__init__(message)
        self.indices = indices


class ConfigurationIncompatible(VPMError, ValueError):
    """Formulation, relaxation, viscous scheme and kernel do not fit together."""
