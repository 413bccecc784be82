"""
Example: solving MILPs and QPs through miqps

Shows the three calling conventions, backend selection, price recovery for
a small unit-commitment style MILP and the reference portfolio QP. Runs with
SciPy alone; the QP example needs CPLEX, Gurobi or MOSEK and is skipped
otherwise.
"""

import numpy as np

from miqps import (
    Backend,
    ImportProbe,
    NoSolverAvailableError,
    Options,
    miqps,
)


def example_unit_commitment():
    """Example: two generators, one with a commitment decision."""
    print("=" * 60)
    print("Example 1: MILP - Unit Commitment with Prices")
    print("=" * 60)

    # x = [u, p1, p2]: u commits the cheap unit, p1 <= 2 u, p1 + p2 >= 3
    c = np.array([0.5, 1.0, 3.0])
    A = np.array([[0.0, 1.0, 1.0], [-2.0, 1.0, 0.0]])
    l = np.array([3.0, -np.inf])
    u = np.array([np.inf, 0.0])
    xmin = np.zeros(3)
    xmax = np.array([1.0, np.inf, 5.0])

    x, f, exitflag, output, lam = miqps(None, c, A, l, u, xmin, xmax, vtype="BCC")
    print(f"Backend: {output.alg}, exitflag: {exitflag}")
    if exitflag == 1:
        print(f"Commitment: u = {x[0]:.0f}, dispatch = {x[1:]}")
        print(f"Cost: {f}")
        print(f"Demand price (mu_l[0]): {lam.mu_l[0]:.4f}")
        print(f"Capacity price (mu_u[1]): {lam.mu_u[1]:.4f}")
        if output.price_stage is not None:
            print(f"Prices recovered with: {output.price_stage.alg}")
    for warning in output.warnings:
        print(f"Warning: {warning}")
    print()


def example_descriptor_and_options():
    """Example: one problem mapping, legacy options and skipped prices."""
    print("=" * 60)
    print("Example 2: Problem Mapping and Legacy Options")
    print("=" * 60)

    problem = {
        "c": np.array([-1.0, -2.0]),
        "A": np.array([[1.0, 1.0], [1.0, -1.0]]),
        "u": np.array([4.5, 1.0]),
        "xmin": np.zeros(2),
        "vtype": "I",
        "opt": {"alg": 300, "skip_prices": True, "intlinprog_opt": {"time_limit": 10.0}},
    }
    result = miqps(problem)
    print(f"Backend: {result.output.alg}, success: {result.success}")
    print(f"x = {result.x}, f = {result.f}")
    print(f"Multipliers all zero: {result.lam.is_zero()}")
    print()


def example_reference_qp():
    """Example: small portfolio QP on the best available QP backend."""
    print("=" * 60)
    print("Example 3: QP - Reference Portfolio")
    print("=" * 60)

    H = np.array(
        [
            [1003.1, 4.3, 6.3, 5.9],
            [4.3, 2.2, 2.1, 3.9],
            [6.3, 2.1, 3.5, 4.8],
            [5.9, 3.9, 4.8, 10.0],
        ]
    )
    A = np.array([[1.0, 1.0, 1.0, 1.0], [0.17, 0.11, 0.10, 0.18]])
    try:
        result = miqps(
            H=H,
            c=np.zeros(4),
            A=A,
            l=np.array([1.0, 0.10]),
            u=np.array([1.0, np.inf]),
            xmin=np.zeros(4),
            x0=np.array([1.0, 0.0, 0.0, 1.0]),
            opt=Options(verbose=0),
        )
    except NoSolverAvailableError as exc:
        print(f"Skipped: {exc}")
        print()
        return
    print(f"Backend: {result.output.alg}, exitflag: {result.exitflag}")
    print(f"x = {result.x}")
    print(f"f = {result.f}")
    print()


if __name__ == "__main__":
    print("\n" + "=" * 60)
    print("miqps - Solver Dispatch Examples")
    print("=" * 60 + "\n")

    probe = ImportProbe()
    print("Available backends:", [b.value for b in Backend if probe.is_available(b.value)])
    print()

    example_unit_commitment()
    example_descriptor_and_options()
    example_reference_qp()

    print("=" * 60)
    print("All examples completed successfully!")
    print("=" * 60)
