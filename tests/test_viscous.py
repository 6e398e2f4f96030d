from __future__ import annotations

import numpy as np
import pytest

from vortex3d import (
    CoreSpreading,
    FieldConfig,
    Inviscid,
    ParticleField,
    ParticleStrengthExchange,
    euler,
    formulation_sphere_momentum,
    rungekutta3,
)


class NoInduction:
    """Duck-typed UJ evaluator that leaves U and J at zero."""
    def __call__(self, pfield: ParticleField) -> None:
        return None


@pytest.mark.parametrize("integrator,rtol", [(euler, 5e-3), (rungekutta3, 1e-6)])
@pytest.mark.parametrize("formulation", [None, formulation_sphere_momentum])
def test_core_spreading_growth(integrator, rtol: float, formulation) -> None:
    nu, dt, n = 1e-3, 1e-2, 100
    kwargs = {} if formulation is None else {"formulation": formulation}
    cfg = FieldConfig(kernel="gaussianerf", viscous=CoreSpreading(nu=nu), UJ=NoInduction(), **kwargs)
    pf = ParticleField(3, cfg)
    sigma0 = np.array([0.05, 0.1, 0.2])
    pf.add_particles(np.eye(3), np.eye(3), sigma0)
    for _ in range(n):
        integrator(pf, dt)
        pf.t += dt
    np.testing.assert_allclose(pf.sigma ** 2, sigma0 ** 2 + 2.0 * nu * n * dt, rtol=rtol)


def test_core_spreading_validation() -> None:
    with pytest.raises(ValueError):
        CoreSpreading(nu=-1.0)
    assert CoreSpreading(nu=0.0).inviscid
    assert Inviscid().inviscid


@pytest.mark.parametrize("integrator", [euler, rungekutta3])
def test_pse_conserves_circulation_and_smooths(integrator) -> None:
    rng = np.random.default_rng(11)
    cfg = FieldConfig(kernel="gaussian", viscous=ParticleStrengthExchange(nu=1e-2, eps=0.3),
                      UJ=NoInduction())
    pf = ParticleField(20, cfg)
    pf.add_particles(rng.uniform(-0.3, 0.3, size=(20, 3)), rng.normal(size=(20, 3)), 0.1)
    total0 = pf.total_circulation.copy()
    spread0 = float(np.sum((pf.Gamma - pf.Gamma.mean(axis=0)) ** 2))

    for _ in range(10):
        integrator(pf, 0.1)

    np.testing.assert_allclose(pf.total_circulation, total0, atol=1e-12)
    assert float(np.sum((pf.Gamma - pf.Gamma.mean(axis=0)) ** 2)) < spread0


def test_pse_without_viscosity_is_identity() -> None:
    rng = np.random.default_rng(12)
    cfg = FieldConfig(kernel="gaussian", viscous=ParticleStrengthExchange(nu=0.0), UJ=NoInduction())
    pf = ParticleField(5, cfg)
    pf.add_particles(rng.normal(size=(5, 3)), rng.normal(size=(5, 3)), 0.1)
    G0 = pf.Gamma.copy()
    rungekutta3(pf, 0.1)
    np.testing.assert_array_equal(pf.Gamma, G0)
