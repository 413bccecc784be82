"""
GLPK adapter, built on the ``swiglpk`` bindings of the GLPK C API.

LP/MILP only: a problem with a nonzero ``H`` is rejected. Continuous,
binary and integer variables are supported; binaries are declared integer
with bounds intersected with ``[0, 1]`` so fixed binaries stay fixed.
Continuous problems run the simplex method and return row and column duals;
mixed-integer problems run ``glp_intopt`` with the presolver enabled.
Backend options are attribute names of ``glp_smcp`` / ``glp_iocp``, e.g.
``{"tm_lim": 10000, "mip_gap": 1e-6}``; each is set on every control
structure that has it.

Exit table (return code when nonzero, else solution status -> exitflag):

    GLP_OPT                                                 ->  1
    GLP_FEAS, GLP_UNDEF, GLP_ETMLIM, GLP_EITLIM, GLP_EMIPGAP,
    GLP_ESTOP, GLP_EOBJLL, GLP_EOBJUL                       ->  0
    GLP_INFEAS, GLP_NOFEAS, GLP_ENOPFS                      -> -1
    GLP_UNBND, GLP_ENODFS                                   -> -2
    GLP_EFAIL, GLP_EBADB, GLP_ESING, GLP_ECOND, GLP_EBOUND,
    GLP_EROOT                                               -> -4
    RuntimeError raised by the bindings                     -> -4
"""

from __future__ import annotations

from typing import Any, Dict, Mapping

import numpy as np

from ..core import (
    EXIT_ERROR,
    EXIT_INFEASIBLE,
    EXIT_LIMIT,
    EXIT_OPTIMAL,
    EXIT_UNBOUNDED,
    Backend,
    Lambda,
    Problem,
    VType,
)
from ..errors import StructuralError
from ..utils import binary_bounds, bound_key, split_signed
from .base import BASIC_VTYPES, BackendAdapter, NativeSolution

try:
    import swiglpk as glpk

    GLPK_AVAILABLE = True
except ImportError:  # pragma: no cover - optional backend
    glpk = None
    GLPK_AVAILABLE = False


GLPK_EXIT_CODES = {
    "GLP_OPT": EXIT_OPTIMAL,
    "GLP_FEAS": EXIT_LIMIT,
    "GLP_UNDEF": EXIT_LIMIT,
    "GLP_ETMLIM": EXIT_LIMIT,
    "GLP_EITLIM": EXIT_LIMIT,
    "GLP_EMIPGAP": EXIT_LIMIT,
    "GLP_ESTOP": EXIT_LIMIT,
    "GLP_EOBJLL": EXIT_LIMIT,
    "GLP_EOBJUL": EXIT_LIMIT,
    "GLP_INFEAS": EXIT_INFEASIBLE,
    "GLP_NOFEAS": EXIT_INFEASIBLE,
    "GLP_ENOPFS": EXIT_INFEASIBLE,
    "GLP_UNBND": EXIT_UNBOUNDED,
    "GLP_ENODFS": EXIT_UNBOUNDED,
    "GLP_EFAIL": EXIT_ERROR,
    "GLP_EBADB": EXIT_ERROR,
    "GLP_ESING": EXIT_ERROR,
    "GLP_ECOND": EXIT_ERROR,
    "GLP_EBOUND": EXIT_ERROR,
    "GLP_EROOT": EXIT_ERROR,
}

_STATUS_NAMES = ("GLP_UNDEF", "GLP_FEAS", "GLP_INFEAS", "GLP_NOFEAS", "GLP_OPT", "GLP_UNBND")
_RETURN_NAMES = tuple(name for name in GLPK_EXIT_CODES if name.startswith("GLP_E"))


def _code_name(value: int, names) -> str:
    for name in names:
        if getattr(glpk, name, None) == value:
            return name
    return str(value)


def _set_bounds(setter, prob, k: int, lo: float, hi: float) -> None:
    kind = {
        "fr": glpk.GLP_FR,
        "lo": glpk.GLP_LO,
        "up": glpk.GLP_UP,
        "ra": glpk.GLP_DB,
        "fx": glpk.GLP_FX,
    }[bound_key(lo, hi)]
    setter(
        prob,
        k,
        kind,
        float(lo) if np.isfinite(lo) else 0.0,
        float(hi) if np.isfinite(hi) else 0.0,
    )


class GlpkAdapter(BackendAdapter):
    backend = Backend.GLPK
    exit_codes = GLPK_EXIT_CODES
    native_errors = (RuntimeError,)
    supported_vtypes = BASIC_VTYPES
    supports_quadratic = False

    def _invoke(
        self,
        problem: Problem,
        vtype: Any,
        backend_options: Mapping[str, Any],
        verbose: int,
    ) -> NativeSolution:
        if not GLPK_AVAILABLE:
            raise ImportError("swiglpk is required for the GLPK backend")

        n, m = problem.n, problem.m
        mixed_integer = problem.is_mixed_integer
        binary = np.array([t == VType.BINARY.value for t in vtype], dtype=bool)
        xmin, xmax = binary_bounds(problem.xmin, problem.xmax, binary)

        smcp = glpk.glp_smcp()
        glpk.glp_init_smcp(smcp)
        iocp = glpk.glp_iocp()
        glpk.glp_init_iocp(iocp)
        msg_lev = {0: glpk.GLP_MSG_OFF, 1: glpk.GLP_MSG_ERR, 2: glpk.GLP_MSG_ALL}[verbose]
        smcp.msg_lev = msg_lev
        iocp.msg_lev = msg_lev
        iocp.presolve = glpk.GLP_ON
        for key, value in backend_options.items():
            targets = [parm for parm in (smcp, iocp) if hasattr(parm, key)]
            if not targets:
                raise StructuralError(f"unknown GLPK option '{key}'")
            for parm in targets:
                setattr(parm, key, value)

        prob = glpk.glp_create_prob()
        try:
            glpk.glp_set_obj_dir(prob, glpk.GLP_MIN)
            glpk.glp_add_cols(prob, n)
            for j in range(n):
                _set_bounds(glpk.glp_set_col_bnds, prob, j + 1, xmin[j], xmax[j])
                glpk.glp_set_obj_coef(prob, j + 1, float(problem.c[j]))
                if vtype[j] != VType.CONTINUOUS.value:
                    glpk.glp_set_col_kind(prob, j + 1, glpk.GLP_IV)
            if m:
                glpk.glp_add_rows(prob, m)
                for i in range(m):
                    _set_bounds(glpk.glp_set_row_bnds, prob, i + 1, problem.l[i], problem.u[i])
                coo = problem.A.tocoo()
                nnz = coo.nnz
                ia = glpk.intArray(nnz + 1)
                ja = glpk.intArray(nnz + 1)
                ar = glpk.doubleArray(nnz + 1)
                for k in range(nnz):
                    ia[k + 1] = int(coo.row[k]) + 1
                    ja[k + 1] = int(coo.col[k]) + 1
                    ar[k + 1] = float(coo.data[k])
                glpk.glp_load_matrix(prob, nnz, ia, ja, ar)

            multipliers: Dict[str, np.ndarray] = {}
            if mixed_integer:
                ret = glpk.glp_intopt(prob, iocp)
                status = glpk.glp_mip_status(prob)
                x = np.array([glpk.glp_mip_col_val(prob, j + 1) for j in range(n)])
                f = glpk.glp_mip_obj_val(prob)
            else:
                ret = glpk.glp_simplex(prob, smcp)
                status = glpk.glp_get_status(prob)
                x = np.array([glpk.glp_get_col_prim(prob, j + 1) for j in range(n)])
                f = glpk.glp_get_obj_val(prob)
                if ret == 0 and status == glpk.GLP_OPT:
                    multipliers["row_dual"] = np.array(
                        [glpk.glp_get_row_dual(prob, i + 1) for i in range(m)], dtype=float
                    )
                    multipliers["col_dual"] = np.array(
                        [glpk.glp_get_col_dual(prob, j + 1) for j in range(n)], dtype=float
                    )
        finally:
            glpk.glp_delete_prob(prob)

        status_name = _code_name(status, _STATUS_NAMES)
        code = _code_name(ret, _RETURN_NAMES) if ret != 0 else status_name
        return NativeSolution(
            x=x,
            f=f,
            code=code,
            message=code,
            diagnostics={"return_code": ret, "status": status_name},
            multipliers=multipliers,
        )

    def _multipliers(self, problem: Problem, native: NativeSolution) -> Lambda:
        mu_l, mu_u = split_signed(native.multipliers.get("row_dual", np.zeros(problem.m)))
        lower, upper = split_signed(native.multipliers.get("col_dual", np.zeros(problem.n)))
        return Lambda(mu_l=mu_l, mu_u=mu_u, lower=lower, upper=upper)


__all__ = ["GlpkAdapter", "GLPK_EXIT_CODES", "GLPK_AVAILABLE"]
