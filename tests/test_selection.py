import pytest

from miqps.core import Backend
from miqps.errors import (
    InvalidAlgorithmError,
    NoSolverAvailableError,
    SelectionError,
    SolverUnavailableError,
)
from miqps.probe import StaticProbe
from miqps.selection import LINEAR_ORDER, parse_alg, resolve_backend

ALL = StaticProbe(["CPLEX", "GLPK", "GUROBI", "MOSEK", "OT"])


@pytest.mark.parametrize(
    "alg, expected",
    [
        (None, None),
        ("DEFAULT", None),
        (0, None),
        (300, Backend.OT),
        (500, Backend.CPLEX),
        (600, Backend.MOSEK),
        (700, Backend.GUROBI),
        ("GLPK", Backend.GLPK),
        (Backend.GUROBI, Backend.GUROBI),
    ],
)
def test_parse_alg(alg, expected):
    assert parse_alg(alg) is expected


@pytest.mark.parametrize("alg", [400, 200, "FOO", "cplex", True, 3.5])
def test_parse_alg_rejects_unknown(alg):
    with pytest.raises(InvalidAlgorithmError) as excinfo:
        parse_alg(alg)
    assert excinfo.value.value == alg


def test_invalid_algorithm_is_value_error():
    with pytest.raises(ValueError, match="400"):
        parse_alg(400)


@pytest.mark.parametrize(
    "available, quadratic, expected",
    [
        (["CPLEX", "GUROBI", "MOSEK", "OT", "GLPK"], True, Backend.CPLEX),
        (["GUROBI", "MOSEK"], True, Backend.GUROBI),
        (["MOSEK", "OT", "GLPK"], True, Backend.MOSEK),
        (["MOSEK", "OT", "GLPK"], False, Backend.MOSEK),
        (["OT", "GLPK"], False, Backend.OT),
        (["GLPK"], False, Backend.GLPK),
    ],
)
def test_automatic_order(available, quadratic, expected):
    assert resolve_backend("DEFAULT", StaticProbe(available), quadratic) is expected


def test_quadratic_with_only_lp_backends_fails():
    with pytest.raises(NoSolverAvailableError) as excinfo:
        resolve_backend("DEFAULT", StaticProbe(["GLPK", "OT"]), quadratic=True)
    assert excinfo.value.quadratic
    assert excinfo.value.candidates == tuple(b.value for b in LINEAR_ORDER)
    assert "quadratic" in str(excinfo.value)


def test_linear_with_nothing_installed_fails():
    with pytest.raises(NoSolverAvailableError):
        resolve_backend(0, StaticProbe(), quadratic=False)


@pytest.mark.parametrize("alg", ["MOSEK", 600, Backend.MOSEK])
def test_explicit_unavailable_backend_never_falls_back(alg):
    probe = StaticProbe(["CPLEX", "GLPK", "GUROBI", "OT"])
    with pytest.raises(SolverUnavailableError) as excinfo:
        resolve_backend(alg, probe, quadratic=False)
    assert excinfo.value.backend == "MOSEK"
    assert isinstance(excinfo.value, SelectionError)


def test_explicit_backend_ignores_problem_class():
    # the adapter, not the selector, rejects a quadratic objective on GLPK
    assert resolve_backend("GLPK", ALL, quadratic=True) is Backend.GLPK


def test_legacy_code_resolves_to_backend_name():
    backend = resolve_backend(500, ALL, quadratic=False)
    assert backend is Backend.CPLEX
    assert backend.value == "CPLEX"
