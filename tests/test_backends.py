"""Translation tests for the backend adapters.

Each adapter is subclassed with a canned ``_invoke`` so the exit tables and
multiplier conventions are exercised without the solver libraries.
"""

import numpy as np
import pytest
import scipy.sparse as sp

from miqps.backends import (
    CplexAdapter,
    GlpkAdapter,
    GurobiAdapter,
    MosekAdapter,
    NATIVE_ERROR,
    NativeSolution,
    OTAdapter,
    default_adapters,
)
from miqps.core import Backend, Options
from miqps.errors import StructuralError, UnsupportedFeatureError, UnsupportedVariableTypeError
from miqps.normalize import normalize_problem


def _problem(vtype="C", H=None):
    problem, _ = normalize_problem(H, [1.0, 1.0], [[1.0, 1.0], [1.0, -1.0]], [1.0, -np.inf], [np.inf, 2.0], vtype=vtype)
    return problem


def _mixed_rows_problem():
    # eq, <=, >= and ranged rows
    problem, _ = normalize_problem(
        None,
        [1.0, 2.0],
        np.ones((4, 2)),
        [1.0, -np.inf, 0.0, 0.0],
        [1.0, 2.0, np.inf, 5.0],
    )
    return problem


@pytest.mark.parametrize(
    "adapter_cls, code, expected",
    [
        (CplexAdapter, 1, 1),
        (CplexAdapter, 101, 1),
        (CplexAdapter, 107, 0),
        (CplexAdapter, 3, -1),
        (CplexAdapter, 103, -1),
        (CplexAdapter, 118, -2),
        (CplexAdapter, 119, -3),
        (CplexAdapter, 6, -4),
        (GurobiAdapter, 2, 1),
        (GurobiAdapter, 9, 0),
        (GurobiAdapter, 3, -1),
        (GurobiAdapter, 5, -2),
        (GurobiAdapter, 4, -3),
        (GurobiAdapter, 12, -4),
        (MosekAdapter, "solsta.optimal", 1),
        (MosekAdapter, "solsta.integer_optimal", 1),
        (MosekAdapter, "solsta.prim_feas", 0),
        (MosekAdapter, "prosta.prim_infeas", -1),
        (MosekAdapter, "solsta.dual_infeas_cer", -2),
        (MosekAdapter, "prosta.prim_infeas_or_unbounded", -3),
        (MosekAdapter, "no_solution", -4),
        (GlpkAdapter, "GLP_OPT", 1),
        (GlpkAdapter, "GLP_ETMLIM", 0),
        (GlpkAdapter, "GLP_NOFEAS", -1),
        (GlpkAdapter, "GLP_ENOPFS", -1),
        (GlpkAdapter, "GLP_UNBND", -2),
        (GlpkAdapter, "GLP_EFAIL", -4),
        (OTAdapter, 0, 1),
        (OTAdapter, 1, 0),
        (OTAdapter, 2, -1),
        (OTAdapter, 3, -2),
        (OTAdapter, 4, -4),
    ],
)
def test_exit_tables(canned, adapter_cls, code, expected):
    adapter = canned(adapter_cls, NativeSolution(x=None, f=None, code=code, message="status"))
    result = adapter.solve(_problem(), Options())
    assert result.exitflag == expected
    assert result.output.status == code
    assert result.output.alg == adapter.name


@pytest.mark.parametrize("adapter_cls", [CplexAdapter, GurobiAdapter, MosekAdapter, GlpkAdapter, OTAdapter])
def test_unknown_native_code_maps_to_limit(canned, adapter_cls):
    adapter = canned(adapter_cls, NativeSolution(x=None, f=None, code="never-seen"))
    assert adapter.solve(_problem(), Options()).exitflag == 0


def test_cplex_signed_duals_are_split(canned):
    native = NativeSolution(
        x=[1.0, 0.0],
        f=1.0,
        code=1,
        multipliers={
            "dual": np.array([2.0, -1.5]),
            "reduced_cost": np.array([0.5, -0.25]),
        },
    )
    lam = canned(CplexAdapter, native).solve(_problem(), Options()).lam
    assert np.allclose(lam.mu_l, [2.0, 0.0])
    assert np.allclose(lam.mu_u, [0.0, 1.5])
    assert np.allclose(lam.lower, [0.5, 0.0])
    assert np.allclose(lam.upper, [0.0, 0.25])


def test_cplex_vtype_is_letter_list():
    assert CplexAdapter().native_vtype(_problem("CN").vtype) == ["C", "N"]


def test_gurobi_duals_fold_back_per_row(canned):
    native = NativeSolution(
        x=[1.0, 0.0],
        f=1.0,
        code=2,
        multipliers={
            "pi_eq": np.array([-1.0]),
            "pi_upper": np.array([-2.0, -0.5]),
            "pi_lower": np.array([3.0, 0.0]),
            "rc": np.array([1.0, -4.0]),
        },
    )
    lam = canned(GurobiAdapter, native).solve(_mixed_rows_problem(), Options()).lam
    assert np.allclose(lam.mu_l, [0.0, 0.0, 3.0, 0.0])
    assert np.allclose(lam.mu_u, [1.0, 2.0, 0.0, 0.5])
    assert np.allclose(lam.lower, [1.0, 0.0])
    assert np.allclose(lam.upper, [0.0, 4.0])


def test_mosek_multipliers_map_directly(canned):
    native = NativeSolution(
        x=[1.0, 0.0],
        f=1.0,
        code="solsta.optimal",
        multipliers={
            "slc": np.array([1.0, 0.0]),
            "suc": np.array([0.0, 2.0]),
            "slx": np.array([0.0, 3.0]),
            "sux": np.array([0.0, 0.0]),
        },
    )
    lam = canned(MosekAdapter, native).solve(_problem(), Options()).lam
    assert np.allclose(lam.mu_l, [1.0, 0.0])
    assert np.allclose(lam.mu_u, [0.0, 2.0])
    assert np.allclose(lam.lower, [0.0, 3.0])
    assert np.allclose(lam.upper, 0.0)


def test_glpk_duals_are_split(canned):
    native = NativeSolution(
        x=[1.0, 0.0],
        f=1.0,
        code="GLP_OPT",
        multipliers={"row_dual": np.array([1.0, -2.0]), "col_dual": np.array([0.0, 0.5])},
    )
    lam = canned(GlpkAdapter, native).solve(_problem(), Options()).lam
    assert np.allclose(lam.mu_l, [1.0, 0.0])
    assert np.allclose(lam.mu_u, [0.0, 2.0])
    assert np.allclose(lam.lower, [0.0, 0.5])


def test_missing_multipliers_are_zero_filled(canned):
    native = NativeSolution(x=[0.0, 1.0], f=1.0, code=101)
    result = canned(CplexAdapter, native).solve(_problem("BI"), Options())
    assert result.lam.is_zero()
    assert result.lam.mu_l.shape == (2,)
    assert result.lam.lower.shape == (2,)


@pytest.mark.parametrize(
    "adapter_cls, vtype, rejected",
    [
        (MosekAdapter, "SC", ("S",)),
        (GlpkAdapter, "NS", ("N", "S")),
        (OTAdapter, "CN", ("N",)),
    ],
)
def test_unsupported_variable_types_are_rejected(canned, adapter_cls, vtype, rejected):
    adapter = canned(adapter_cls, NativeSolution(x=None, f=None, code=0))
    with pytest.raises(UnsupportedVariableTypeError) as excinfo:
        adapter.solve(_problem(vtype), Options())
    assert excinfo.value.backend == adapter.name
    assert excinfo.value.vtypes == rejected
    assert adapter.seen is None


@pytest.mark.parametrize("adapter_cls", [CplexAdapter, GurobiAdapter])
def test_semi_continuous_types_pass_through(canned, adapter_cls):
    adapter = canned(adapter_cls, NativeSolution(x=None, f=None, code=0))
    adapter.solve(_problem("SN"), Options())
    assert list(adapter.seen[0]) == ["S", "N"]


@pytest.mark.parametrize("adapter_cls", [GlpkAdapter, OTAdapter])
def test_lp_backends_reject_quadratic_objective(canned, adapter_cls):
    adapter = canned(adapter_cls, NativeSolution(x=None, f=None, code=0))
    with pytest.raises(UnsupportedFeatureError, match="linear objectives"):
        adapter.solve(_problem(H=np.eye(2)), Options())


def test_lp_backends_accept_all_zero_hessian(canned):
    adapter = canned(GlpkAdapter, NativeSolution(x=[1.0, 0.0], f=1.0, code="GLP_OPT"))
    result = adapter.solve(_problem(H=sp.csr_matrix((2, 2))), Options())
    assert result.exitflag == 1


def test_backend_options_and_verbosity_forwarded(canned):
    adapter = canned(GurobiAdapter, NativeSolution(x=[1.0, 0.0], f=1.0, code=2))
    opt = Options(
        verbose=2,
        backend_options={"gurobi": {"MIPGap": 0.0}, "CPLEX": {"timelimit": 1}},
    )
    adapter.solve(_problem(), opt)
    vtype, backend_options, verbose = adapter.seen
    assert backend_options == {"MIPGap": 0.0}
    assert verbose == 2


def test_solution_fields_are_normalized(canned):
    native = NativeSolution(
        x=[[1.0], [0.0]],
        f=np.float32(1.5),
        code=2,
        message="OPTIMAL",
        nit=7,
        runtime=0.25,
        diagnostics={"bar_iterations": 0},
    )
    result = canned(GurobiAdapter, native).solve(_problem(), Options())
    assert result.x.shape == (2,)
    assert isinstance(result.f, float)
    assert result.output.message == "OPTIMAL"
    assert result.output.nit == 7
    assert result.output.runtime == 0.25
    assert result.output.details == {"bar_iterations": 0}


def test_default_adapters_cover_every_backend():
    adapters = default_adapters()
    assert set(adapters) == set(Backend)
    for backend, adapter in adapters.items():
        assert adapter.backend is backend


def _raising(adapter_cls, exc):
    class Raising(adapter_cls):
        def _invoke(self, problem, vtype, backend_options, verbose):
            raise exc

    return Raising()


@pytest.mark.parametrize(
    "adapter_cls, exc",
    [
        (OTAdapter, ValueError("bounds are inconsistent")),
        (GlpkAdapter, RuntimeError("glp_simplex: invalid basis")),
        (CplexAdapter, ImportError("cplex is required for the CPLEX backend")),
        (MosekAdapter, ImportError("mosek is required for the MOSEK backend")),
    ],
)
def test_library_exceptions_become_error_exitflag(adapter_cls, exc):
    result = _raising(adapter_cls, exc).solve(_problem(), Options())
    assert result.exitflag == -4
    assert result.x is None and result.f is None
    assert result.output.status == NATIVE_ERROR
    assert str(exc) in result.output.message
    assert result.output.details == {"exception": type(exc).__name__}
    assert result.lam.is_zero()
    assert result.lam.mu_l.shape == (2,)


def test_package_errors_from_invoke_still_propagate():
    # StructuralError is a ValueError, which OT otherwise treats as a SciPy failure
    adapter = _raising(OTAdapter, StructuralError("unknown option"))
    with pytest.raises(StructuralError, match="unknown option"):
        adapter.solve(_problem(), Options())


def test_undeclared_exceptions_propagate():
    with pytest.raises(KeyError):
        _raising(GlpkAdapter, KeyError("row_dual")).solve(_problem(), Options())


@pytest.mark.parametrize(
    "module, attr, adapter_cls",
    [
        ("cplex.exceptions", "CplexError", CplexAdapter),
        ("gurobipy", "GurobiError", GurobiAdapter),
        ("mosek", "Error", MosekAdapter),
    ],
)
def test_commercial_adapters_declare_library_errors(module, attr, adapter_cls):
    lib = pytest.importorskip(module)
    assert getattr(lib, attr) in adapter_cls.native_errors
