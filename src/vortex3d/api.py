from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Literal
from collections.abc import Callable, Sequence

import logging

from .errors import NumericalSingularity
from .particles import ParticleField
from .timeintegration import get_integrator

logger = logging.getLogger(__name__)

Monitor = Callable[[ParticleField, int], bool | None]


# ----------------------
# Run configuration
# ----------------------

@dataclass(slots=True)
class SimulationConfig:
    """High-level run controls.

    relax:        enable relaxation
    nsteps_relax: relax every this many steps (when relax is enabled)
    log_every:    log progress every this many steps (0 -> start/end only)
    """
    integrator: Literal["euler", "rk3"] = "rk3"
    dt: float = 1e-3
    steps: int = 100
    relax: bool = True
    nsteps_relax: int = 1
    log_every: int = 0

    def __post_init__(self) -> None:
        if self.integrator not in {"euler", "rk3"}:
            raise ValueError(f"Unknown integrator: {self.integrator}")
        if not self.dt > 0.0:
            raise ValueError("dt must be positive.")
        if self.steps < 0:
            raise ValueError("steps must be non-negative.")
        if self.nsteps_relax < 1:
            raise ValueError("nsteps_relax must be at least 1.")
        if self.log_every < 0:
            raise ValueError("log_every must be non-negative.")


def run_simulation(
    pfield: ParticleField,
    config: SimulationConfig | None = None,
    *,
    monitors: Sequence[Monitor] = (),
) -> dict[str, Any]:
    """Step the field config.steps times, advancing pfield.t by dt each step.

    Every monitor is called as monitor(pfield, step) after each step; a monitor
    returning True stops the run after that step. Returns the final diagnostics.
    """
    cfg = config or SimulationConfig()
    step = get_integrator(cfg.integrator)
    logger.info(
        "Running %d %s steps, dt=%g, np=%d, formulation=%s, viscous=%s",
        cfg.steps, cfg.integrator, cfg.dt, len(pfield),
        type(pfield.formulation).__name__, type(pfield.viscous).__name__,
    )

    for i in range(cfg.steps):
        relax = cfg.relax and (pfield.nt % cfg.nsteps_relax == 0)
        try:
            step(pfield, cfg.dt, relax=relax)
        except NumericalSingularity as e:
            logger.error("Step %d (t=%g) failed: %s", pfield.nt, pfield.t, e)
            raise
        pfield.t += cfg.dt
        pfield.nt += 1

        if cfg.log_every and pfield.nt % cfg.log_every == 0:
            logger.info("step %d t=%g np=%d", pfield.nt, pfield.t, len(pfield))

        stop = False
        for monitor in monitors:
            stop = bool(monitor(pfield, i)) or stop
        if stop:
            logger.info("Run stopped by monitor at step %d (t=%g).", pfield.nt, pfield.t)
            break

    diag = pfield.diagnostics()
    logger.info("Finished at t=%g after %d steps.", pfield.t, pfield.nt)
    return diag
