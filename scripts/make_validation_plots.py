
from __future__ import annotations

import math
import os

import numpy as np
import matplotlib.pyplot as plt
from scipy.linalg import expm

from vortex3d import (
    CorrectedPedrizzetti,
    FieldConfig,
    ParticleField,
    Pedrizzetti,
    euler,
    relaxation_none,
    rungekutta3,
)


ART = os.environ.get("ARTIFACTS_DIR", "artifacts")
os.makedirs(ART, exist_ok=True)

J0 = np.array([[0.3, -1.0, 0.2], [0.8, -0.1, 0.4], [-0.5, 0.6, 0.2]])
GAMMA0 = np.array([0.4, -0.3, 1.0])


class ConstantJacobian:
    def __init__(self, J: np.ndarray) -> None:
        self.J = J

    def __call__(self, pfield: ParticleField) -> None:
        pfield.J[...] += self.J


def stretching_convergence_plot() -> None:
    T = 1.0
    exact = expm(J0.T * T) @ GAMMA0
    dts = np.array([0.2, 0.1, 0.05, 0.025, 0.0125])

    plt.figure()
    for integrator in (euler, rungekutta3):
        errs = []
        for dt in dts:
            pf = ParticleField(1, FieldConfig(UJ=ConstantJacobian(J0), relaxation=relaxation_none))
            pf.add_particle([0.0, 0.0, 0.0], GAMMA0, 0.1)
            for _ in range(int(round(T / dt))):
                integrator(pf, dt)
                pf.t += dt
            errs.append(float(np.linalg.norm(pf.Gamma[0] - exact) / np.linalg.norm(exact)))
        order = math.log(errs[-2] / errs[-1], 2)
        plt.loglog(dts, errs, marker="o", label=f"{integrator.__name__} (order {order:.2f})")
    plt.xlabel("dt [s]")
    plt.ylabel("relative error in Γ")
    plt.title("Stretching under constant ∇U: error vs dt")
    plt.legend()
    plt.grid(True, which="both", alpha=0.3)
    plt.tight_layout()
    plt.savefig(os.path.join(ART, "stretching_convergence.png"), dpi=150)


def relaxation_strength_plot() -> None:
    rng = np.random.default_rng(0)
    n = 200
    gamma0 = rng.normal(size=(n, 3))
    nsteps = 100

    plt.figure()
    for scheme in (Pedrizzetti(), CorrectedPedrizzetti()):
        gamma = gamma0.copy()
        ratio = []
        for _ in range(nsteps):
            # a fresh, random local vorticity direction every step
            J = rng.normal(size=(n, 3, 3))
            scheme(0.3, gamma, J)
            ratio.append(float(np.linalg.norm(gamma, axis=1).sum() / np.linalg.norm(gamma0, axis=1).sum()))
        plt.semilogy(np.arange(1, nsteps + 1), ratio, label=type(scheme).__name__)
    plt.xlabel("relaxation steps")
    plt.ylabel("Σ|Γ| / Σ|Γ₀|")
    plt.title("Strength under repeated relaxation (rlxf = 0.3)")
    plt.legend()
    plt.grid(True, alpha=0.3)
    plt.tight_layout()
    plt.savefig(os.path.join(ART, "relaxation_strength.png"), dpi=150)


if __name__ == "__main__":
    stretching_convergence_plot()
    relaxation_strength_plot()
