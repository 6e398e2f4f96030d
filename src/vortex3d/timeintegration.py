from __future__ import annotations

from typing import Literal
from collections.abc import Callable, Iterator
from contextlib import contextmanager

import logging
import numpy as np

from .errors import NumericalSingularity
from .formulations import stretching
from .particles import ParticleField

logger = logging.getLogger(__name__)

# Williamson's low-storage third-order Runge-Kutta coefficients (a_k, b_k)
RK3_COEFFICIENTS: tuple[tuple[float, float], ...] = (
    (0.0, 1.0 / 3.0),
    (-5.0 / 9.0, 15.0 / 16.0),
    (-153.0 / 128.0, 8.0 / 15.0),
)


def _evaluate(pfield: ParticleField) -> None:
    """Global phase: U, J and SGS of every particle at the current state."""
    pfield.reset()
    pfield.UJ(pfield)
    pfield.reset_sgs()
    pfield.sgsmodel(pfield)


def _check_cores(pfield: ParticleField) -> None:
    sigma = pfield.sigma
    bad = ~(np.isfinite(sigma) & (sigma > 0.0))
    if bad.any():
        idx = np.flatnonzero(bad)
        raise NumericalSingularity(
            f"core size collapsed at particles {idx.tolist()} (t={pfield.t}); "
            "the reformulated scheme broke down, reduce dt.",
            indices=idx,
        )


def _relax(pfield: ParticleField) -> None:
    pfield.relaxation(pfield.rlxf, pfield.Gamma, pfield.J)


@contextmanager
def _rollback_on_singularity(pfield: ParticleField) -> Iterator[None]:
    """Restore X, Γ and σ if the step raises NumericalSingularity."""
    saved = (pfield.X.copy(), pfield.Gamma.copy(), pfield.sigma.copy())
    try:
        yield
    except NumericalSingularity:
        pfield.X[...], pfield.Gamma[...], pfield.sigma[...] = saved
        raise


def euler(pfield: ParticleField, dt: float, *, relax: bool = False) -> None:
    """Advance the particle state by dt with a first-order Euler step.

    Time is not advanced; that is up to the caller.
    """
    _evaluate(pfield)
    Uinf = pfield.freestream()

    X, Gamma, sigma = pfield.X, pfield.Gamma, pfield.sigma
    S = stretching(pfield.J, Gamma, pfield.transposed)
    dgamma, dsigma = pfield.formulation.rates(S, Gamma, pfield.SGS, sigma)

    with _rollback_on_singularity(pfield):
        X += dt * (pfield.U + Uinf)
        Gamma += dt * dgamma
        if dsigma is not None:
            sigma += dt * dsigma
            _check_cores(pfield)

        # Reuses the J evaluated before the update
        if relax:
            _relax(pfield)

    pfield.viscous(pfield, dt, aux1=0.0, aux2=1.0)
    logger.debug("euler step dt=%g t=%g np=%d relax=%s", dt, pfield.t, len(pfield), relax)


def rungekutta3(pfield: ParticleField, dt: float, *, relax: bool = False) -> None:
    """Advance the particle state by dt with the low-storage third-order
    Runge-Kutta scheme, one accumulator per evolving quantity:

        q ← a_k q + dt f(state),   state ← state + b_k q

    The freestream is sampled once at the start of the step. Relaxation, if
    requested, uses U and J re-evaluated at the final positions.
    """
    Uinf = pfield.freestream()
    pfield.reset_accumulators()
    evolves_core = pfield.formulation.evolves_core

    with _rollback_on_singularity(pfield):
        for a, b in RK3_COEFFICIENTS:
            _evaluate(pfield)

            X, Gamma, sigma = pfield.X, pfield.Gamma, pfield.sigma
            qU, qG, qs = pfield.velocity_accum, pfield.stretch_accum, pfield.core_size_accum

            # Rates from the stage's initial state
            S = stretching(pfield.J, Gamma, pfield.transposed)
            dgamma, dsigma = pfield.formulation.rates(S, Gamma, pfield.SGS, sigma)

            qU *= a
            qU += dt * (pfield.U + Uinf)
            X += b * qU

            qG *= a
            qG += dt * dgamma
            Gamma += b * qG

            if evolves_core:
                qs *= a
                qs += dt * dsigma
                sigma += b * qs
                _check_cores(pfield)

            pfield.viscous(pfield, dt, aux1=a, aux2=b)

        if relax:
            pfield.reset()
            pfield.UJ(pfield)
            _relax(pfield)

    logger.debug("rk3 step dt=%g t=%g np=%d relax=%s", dt, pfield.t, len(pfield), relax)


Integrator = Callable[..., None]

INTEGRATORS: dict[str, Integrator] = {
    "euler": euler,
    "rk3": rungekutta3,
}


def get_integrator(name: Literal["euler", "rk3"] | Integrator) -> Integrator:
    if callable(name):
        return name
    try:
        return INTEGRATORS[name]
    except KeyError:
        raise ValueError(f"Unknown integrator: {name!r}") from None
