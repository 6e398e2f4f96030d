from __future__ import annotations

import logging

import numpy as np
import pytest

from vortex3d import (
    FieldConfig,
    NumericalSingularity,
    ParticleField,
    SimulationConfig,
    euler,
    run_simulation,
    rungekutta3,
    setup_logging,
)


class RotationalJacobian:
    """Duck-typed UJ evaluator: zero velocity, solid-body rotation gradient."""
    def __call__(self, pfield: ParticleField) -> None:
        pfield.J[:, 1, 0] += 1.0
        pfield.J[:, 0, 1] -= 1.0


class CountingRelaxation:
    def __init__(self) -> None:
        self.calls = 0

    def __call__(self, rlxf: float, gamma: np.ndarray, J: np.ndarray) -> None:
        self.calls += 1


def make_field(relaxation=None) -> ParticleField:
    kwargs = {} if relaxation is None else {"relaxation": relaxation}
    pf = ParticleField(4, FieldConfig(UJ=RotationalJacobian(), **kwargs))
    pf.add_particles(np.eye(3), [[0.0, 0.0, 1.0]] * 3, 0.1)
    return pf


@pytest.mark.parametrize("integrator", ["euler", "rk3"])
def test_run_advances_time(integrator: str) -> None:
    pf = make_field()
    diag = run_simulation(pf, SimulationConfig(integrator=integrator, dt=0.01, steps=25))
    assert pf.nt == 25
    assert pf.t == pytest.approx(0.25)
    assert diag["time"] == pytest.approx(0.25)
    # Γ is parallel to ω = 2ẑ, so relaxation keeps it there
    np.testing.assert_allclose(pf.Gamma, [[0.0, 0.0, 1.0]] * 3, atol=1e-12)


@pytest.mark.parametrize("integrator", ["euler", "rk3"])
def test_relaxation_cadence(integrator: str) -> None:
    relax = CountingRelaxation()
    pf = make_field(relax)
    run_simulation(pf, SimulationConfig(integrator=integrator, dt=0.01, steps=7, nsteps_relax=3))
    assert relax.calls == 3    # steps 0, 3 and 6

    relax = CountingRelaxation()
    pf = make_field(relax)
    run_simulation(pf, SimulationConfig(integrator=integrator, dt=0.01, steps=7, relax=False))
    assert relax.calls == 0


class CountingUJ(RotationalJacobian):
    def __init__(self) -> None:
        self.calls = 0

    def __call__(self, pfield: ParticleField) -> None:
        self.calls += 1
        super().__call__(pfield)


class CountingSGS:
    def __init__(self) -> None:
        self.calls = 0

    def __call__(self, pfield: ParticleField) -> None:
        self.calls += 1


@pytest.mark.parametrize(
    "integrator, relax, uj_calls, sgs_calls",
    [
        (rungekutta3, True, 4, 3),     # one extra UJ pass at the final positions
        (rungekutta3, False, 3, 3),
        (euler, True, 1, 1),           # relaxes with the J of the step
        (euler, False, 1, 1),
    ],
)
def test_evaluations_per_step(integrator, relax, uj_calls, sgs_calls) -> None:
    uj, sgs = CountingUJ(), CountingSGS()
    pf = ParticleField(4, FieldConfig(UJ=uj, sgsmodel=sgs))
    pf.add_particles(np.eye(3), [[0.0, 0.0, 1.0]] * 3, 0.1)
    integrator(pf, 0.01, relax=relax)
    assert uj.calls == uj_calls
    assert sgs.calls == sgs_calls


def test_monitor_stops_run() -> None:
    pf = make_field()
    seen: list[int] = []

    def monitor(pfield: ParticleField, step: int) -> bool:
        seen.append(step)
        return step == 2

    run_simulation(pf, SimulationConfig(dt=0.01, steps=10), monitors=[monitor])
    assert seen == [0, 1, 2]
    assert pf.nt == 3


def test_singularity_is_logged_and_raised(caplog) -> None:
    pf = ParticleField(1, FieldConfig(UJ=lambda pfield: None))
    pf.add_particle([0.0, 0.0, 0.0], [0.0, 0.0, 1.0], 0.1)
    with caplog.at_level(logging.ERROR, logger="vortex3d"):
        with pytest.raises(NumericalSingularity):
            run_simulation(pf, SimulationConfig(integrator="euler", dt=0.01, steps=2, relax=True))
    assert "failed" in caplog.text
    assert pf.nt == 0


@pytest.mark.parametrize(
    "kwargs",
    [dict(integrator="rk4"), dict(dt=0.0), dict(steps=-1), dict(nsteps_relax=0), dict(log_every=-1)],
)
def test_simulation_config_validation(kwargs) -> None:
    with pytest.raises(ValueError):
        SimulationConfig(**kwargs)


def test_setup_logging(tmp_path) -> None:
    log_file = tmp_path / "run.log"
    logger = setup_logging(logging.INFO, str(log_file))
    try:
        pf = make_field()
        run_simulation(pf, SimulationConfig(dt=0.01, steps=4, log_every=2))
        for h in logger.handlers:
            h.flush()
        text = log_file.read_text(encoding="utf-8")
        assert "step 4" in text
        assert "Finished" in text
    finally:
        for h in list(logger.handlers):
            h.close()
            logger.removeHandler(h)
        logger.setLevel(logging.NOTSET)


def test_setup_logging_replaces_previous_handlers(tmp_path) -> None:
    setup_logging(logging.INFO, str(tmp_path / "first.log"))
    logger = setup_logging(logging.WARNING)
    try:
        assert len(logger.handlers) == 1
        assert logger.level == logging.WARNING
    finally:
        for h in list(logger.handlers):
            h.close()
            logger.removeHandler(h)
        logger.setLevel(logging.NOTSET)
