from __future__ import annotations

import math
import numpy as np
import pytest
from scipy.integrate import solve_ivp
from scipy.linalg import expm

from vortex3d import (
    FieldConfig,
    ParticleField,
    constant_freestream,
    euler,
    formulation_classic,
    formulation_sphere_momentum,
    formulation_tube_momentum,
    kernel_gaussianerf,
    relaxation_none,
    rungekutta3,
)


class ConstantJacobian:
    """Duck-typed UJ evaluator: zero induced velocity, fixed velocity gradient."""
    def __init__(self, J: np.ndarray) -> None:
        self.J = np.asarray(J, dtype=float)

    def __call__(self, pfield: ParticleField) -> None:
        pfield.J[...] += self.J


J0 = np.array([
    [0.3, -1.0, 0.2],
    [0.8, -0.1, 0.4],
    [-0.5, 0.6, 0.2],
])
GAMMA0 = np.array([0.4, -0.3, 1.0])


@pytest.mark.parametrize("transposed", [False, True])
@pytest.mark.parametrize("integrator,order", [(euler, 1.0), (rungekutta3, 3.0)])
def test_temporal_order_stretching(integrator, order: float, transposed: bool) -> None:
    T = 0.5
    A = J0.T if transposed else J0
    gamma_exact = expm(A * T) @ GAMMA0

    def run(dt: float) -> float:
        cfg = FieldConfig(formulation=formulation_classic, UJ=ConstantJacobian(J0),
                          relaxation=relaxation_none, transposed=transposed)
        pf = ParticleField(1, cfg)
        pf.add_particle([0.0, 0.0, 0.0], GAMMA0, 0.1)
        n = int(round(T / dt))
        for _ in range(n):
            integrator(pf, dt)
            pf.t += dt
        np.testing.assert_array_equal(pf.X[0], [0.0, 0.0, 0.0])
        return float(np.linalg.norm(pf.Gamma[0] - gamma_exact) / np.linalg.norm(gamma_exact))

    e1 = run(0.1)
    e2 = run(0.05)
    observed_order = math.log(e1 / max(e2, 1e-15), 2)
    assert observed_order > order - 0.6, (integrator.__name__, observed_order)


@pytest.mark.parametrize("transposed", [False, True])
@pytest.mark.parametrize("integrator,order", [(euler, 1.0), (rungekutta3, 3.0)])
def test_temporal_order_reformulated(integrator, order: float, transposed: bool) -> None:
    # Z != 0 here, so σ evolves along with Γ
    T, sigma0 = 0.5, 0.1
    form = formulation_tube_momentum
    A = J0.T if transposed else J0
    c = (form.f + form.g) / (1.0 + 3.0 * form.f)

    def rhs(t: float, y: np.ndarray) -> np.ndarray:
        gamma, sigma = y[:3], y[3]
        S = A @ gamma
        Z = c * (S @ gamma) / (gamma @ gamma)
        return np.concatenate((S - 3.0 * Z * gamma, [-sigma * Z]))

    ref = solve_ivp(rhs, (0.0, T), np.concatenate((GAMMA0, [sigma0])),
                    method="DOP853", rtol=1e-12, atol=1e-14)
    gamma_exact, sigma_exact = ref.y[:3, -1], ref.y[3, -1]

    def run(dt: float) -> tuple[float, float]:
        cfg = FieldConfig(formulation=form, UJ=ConstantJacobian(J0),
                          relaxation=relaxation_none, transposed=transposed)
        pf = ParticleField(1, cfg)
        pf.add_particle([0.0, 0.0, 0.0], GAMMA0, sigma0)
        for _ in range(int(round(T / dt))):
            integrator(pf, dt)
            pf.t += dt
        eG = np.linalg.norm(pf.Gamma[0] - gamma_exact) / np.linalg.norm(gamma_exact)
        es = abs(pf.sigma[0] - sigma_exact) / sigma_exact
        return float(eG), float(es)

    (eG1, es1), (eG2, es2) = run(0.1), run(0.05)
    assert abs(sigma_exact - sigma0) > 1e-4  # the core size actually changed
    for e1, e2 in ((eG1, eG2), (es1, es2)):
        observed_order = math.log(e1 / max(e2, 1e-15), 2)
        assert observed_order > order - 0.6, (integrator.__name__, observed_order)


@pytest.mark.parametrize("integrator", [euler, rungekutta3])
@pytest.mark.parametrize("formulation", [formulation_classic, formulation_sphere_momentum])
def test_zero_dt_leaves_state_unchanged(integrator, formulation) -> None:
    rng = np.random.default_rng(7)
    cfg = FieldConfig(formulation=formulation, kernel=kernel_gaussianerf,
                      Uinf=constant_freestream([1.0, 0.0, 0.0]))
    pf = ParticleField(8, cfg)
    pf.add_particles(rng.normal(size=(8, 3)), rng.normal(size=(8, 3)), rng.uniform(0.2, 0.4, 8))
    X0, G0, s0 = pf.X.copy(), pf.Gamma.copy(), pf.sigma.copy()

    integrator(pf, 0.0)

    np.testing.assert_array_equal(pf.X, X0)
    np.testing.assert_array_equal(pf.Gamma, G0)
    np.testing.assert_array_equal(pf.sigma, s0)
    assert pf.U.any()  # the evaluator still ran


@pytest.mark.parametrize("integrator", [euler, rungekutta3])
def test_freestream_translation(integrator) -> None:
    cfg = FieldConfig(UJ=ConstantJacobian(np.zeros((3, 3))),
                      Uinf=constant_freestream([1.0, -2.0, 0.5]))
    pf = ParticleField(2, cfg)
    pf.add_particles([[0.0, 0.0, 0.0], [1.0, 1.0, 1.0]], [[0.0, 0.0, 1.0], [1.0, 0.0, 0.0]], 0.1)
    integrator(pf, 0.1)
    np.testing.assert_allclose(pf.X, [[0.1, -0.2, 0.05], [1.1, 0.8, 1.05]], rtol=1e-14)
    # time is advanced by the caller
    assert pf.t == 0.0
