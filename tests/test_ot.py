import numpy as np
import pytest

optimize = pytest.importorskip("scipy.optimize")
if not hasattr(optimize, "milp"):  # pragma: no cover - depends on SciPy version
    pytest.skip("scipy.optimize.milp requires SciPy >= 1.9", allow_module_level=True)

from miqps.backends import OTAdapter  # noqa: E402
from miqps.core import Options  # noqa: E402
from miqps.dispatch import miqps  # noqa: E402
from miqps.normalize import normalize_problem  # noqa: E402
from miqps.probe import StaticProbe  # noqa: E402


def _kkt_residual(problem, x, lam):
    grad = problem.c.copy()
    if problem.H is not None:
        grad += problem.H @ x
    return grad - problem.A.T @ (lam.mu_l - lam.mu_u) - lam.lower + lam.upper


def test_milp_solution(milp_problem):
    result = OTAdapter().solve(milp_problem, Options())
    assert result.exitflag == 1
    assert np.allclose(result.x, [1.0, 2.0, 1.0], atol=1e-6)
    assert pytest.approx(5.5, rel=1e-8) == result.f
    assert result.lam.is_zero()
    assert result.output.details["entry_point"] == "milp"


def test_lp_marginals_follow_sign_convention(lp_problem):
    result = OTAdapter().solve(lp_problem, Options())
    assert result.exitflag == 1
    assert np.allclose(result.x, [2.0, 1.0], atol=1e-8)
    assert pytest.approx(5.0, rel=1e-8) == result.f
    assert np.allclose(result.lam.mu_l, [3.0, 0.0], atol=1e-8)
    assert np.allclose(result.lam.mu_u, [0.0, 2.0], atol=1e-8)
    assert np.allclose(_kkt_residual(lp_problem, result.x, result.lam), 0.0, atol=1e-8)


def test_lp_equality_row_and_bound_multipliers():
    problem, _ = normalize_problem(None, [1.0, 1.0], [[1.0, 2.0]], [4.0], [4.0], [0.0, 0.0])
    result = OTAdapter().solve(problem, Options())
    assert result.exitflag == 1
    assert np.allclose(result.x, [0.0, 2.0], atol=1e-8)
    assert np.allclose(result.lam.mu_l, [0.5], atol=1e-8)
    assert np.allclose(result.lam.mu_u, [0.0], atol=1e-8)
    assert np.allclose(result.lam.lower, [0.5, 0.0], atol=1e-8)
    assert np.allclose(_kkt_residual(problem, result.x, result.lam), 0.0, atol=1e-8)


def test_lp_upper_bound_multiplier():
    problem, _ = normalize_problem(None, [-1.0], np.zeros((0, 1)), None, None, None, [3.0])
    result = OTAdapter().solve(problem, Options())
    assert result.exitflag == 1
    assert pytest.approx(-3.0, rel=1e-10) == result.f
    assert np.allclose(result.lam.upper, [1.0], atol=1e-8)
    assert np.allclose(result.lam.lower, [0.0], atol=1e-8)


def test_binary_bounds_are_clipped():
    problem, _ = normalize_problem(None, [-1.0, 0.0], [[0.0, 1.0]], [0.0], [1.0], vtype="BC")
    result = OTAdapter().solve(problem, Options())
    assert result.exitflag == 1
    assert pytest.approx(1.0) == result.x[0]


def test_infeasible_lp():
    problem, _ = normalize_problem(None, [1.0], [[1.0]], [1.0], None, None, [0.0])
    result = OTAdapter().solve(problem, Options())
    assert result.exitflag == -1
    assert result.lam.is_zero()


def test_infeasible_milp():
    problem, _ = normalize_problem(None, [1.0, 1.0], [[2.0, 2.0]], [1.0], [1.0], [0.0, 0.0], [5.0, 5.0], vtype="I")
    result = OTAdapter().solve(problem, Options())
    assert result.exitflag == -1


def test_milp_options_passthrough(milp_problem):
    opt = Options.from_mapping({"intlinprog_opt": {"time_limit": 30.0}})
    result = OTAdapter().solve(milp_problem, opt)
    assert result.exitflag == 1


def test_end_to_end_prices_recovered(milp_problem):
    result = miqps(milp_problem, probe=StaticProbe(["OT"]))
    x, f, exitflag, output, lam = result
    assert exitflag == 1
    assert output.alg == "OT"
    assert np.allclose(x, [1.0, 2.0, 1.0], atol=1e-6)
    assert np.allclose(lam.mu_l, [3.0, 0.0], atol=1e-6)
    assert np.allclose(lam.mu_u, [0.0, 2.0], atol=1e-6)
    assert output.price_stage is not None
    assert output.price_stage.details["entry_point"] == "linprog"
    assert output.warnings == []


def test_end_to_end_skip_prices(milp_problem):
    result = miqps(milp_problem, opt={"skip_prices": True}, probe=StaticProbe(["OT"]))
    assert result.exitflag == 1
    assert result.lam.is_zero()
    assert result.output.price_stage is None


def test_legacy_code_300_runs_ot(lp_problem):
    result = miqps(lp_problem, opt={"alg": 300}, probe=StaticProbe(["OT", "CPLEX"]))
    assert result.output.alg == "OT"
    assert result.success
