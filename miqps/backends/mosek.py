"""
MOSEK adapter, built on the ``mosek`` Optimizer API (Task interface).

MOSEK understands ranged rows and reports separate nonnegative multipliers
for both sides of every row and bound (``slc``, ``suc``, ``slx``, ``sux``),
which map directly onto ``mu_l``, ``mu_u``, ``lower`` and ``upper``. Only
continuous, binary and integer variables are representable; binaries become
integers bounded to ``[0, 1]``. Backend options are MOSEK parameter names,
e.g. ``{"MSK_DPAR_MIO_TOL_REL_GAP": 1e-6}``.

Exit table (solution status, or problem status when no solution status is
conclusive -> exitflag):

    solsta.optimal, solsta.integer_optimal                     ->  1
    solsta.prim_feas, dual_feas, prim_and_dual_feas, unknown   ->  0
    solsta.prim_infeas_cer, prosta.prim_infeas                 -> -1
    solsta.dual_infeas_cer, prosta.dual_infeas                 -> -2
    prosta.prim_and_dual_infeas, prosta.prim_infeas_or_unbounded -> -3
    no solution of the requested type                          -> -4
    mosek.Error raised by the library                          -> -4
"""

from __future__ import annotations

import sys
from typing import Any, Dict, Mapping

import numpy as np
import scipy.sparse as sp

from ..core import (
    EXIT_ERROR,
    EXIT_INF_OR_UNBD,
    EXIT_INFEASIBLE,
    EXIT_LIMIT,
    EXIT_OPTIMAL,
    EXIT_UNBOUNDED,
    Backend,
    Lambda,
    Problem,
    VType,
)
from ..utils import binary_bounds, bound_key
from .base import BASIC_VTYPES, BackendAdapter, NativeSolution

try:
    import mosek

    MOSEK_AVAILABLE = True
except ImportError:  # pragma: no cover - commercial solver is optional
    mosek = None
    MOSEK_AVAILABLE = False


NO_SOLUTION = "no_solution"

MOSEK_EXIT_CODES = {
    "solsta.optimal": EXIT_OPTIMAL,
    "solsta.integer_optimal": EXIT_OPTIMAL,
    "solsta.prim_feas": EXIT_LIMIT,
    "solsta.dual_feas": EXIT_LIMIT,
    "solsta.prim_and_dual_feas": EXIT_LIMIT,
    "solsta.unknown": EXIT_LIMIT,
    "solsta.prim_infeas_cer": EXIT_INFEASIBLE,
    "prosta.prim_infeas": EXIT_INFEASIBLE,
    "solsta.dual_infeas_cer": EXIT_UNBOUNDED,
    "prosta.dual_infeas": EXIT_UNBOUNDED,
    "prosta.prim_and_dual_infeas": EXIT_INF_OR_UNBD,
    "prosta.prim_infeas_or_unbounded": EXIT_INF_OR_UNBD,
    NO_SOLUTION: EXIT_ERROR,
}


def _bounds(lo: np.ndarray, hi: np.ndarray):
    keys = [getattr(mosek.boundkey, bound_key(a, b)) for a, b in zip(lo, hi)]
    return keys, np.where(np.isfinite(lo), lo, 0.0).tolist(), np.where(np.isfinite(hi), hi, 0.0).tolist()


class MosekAdapter(BackendAdapter):
    backend = Backend.MOSEK
    exit_codes = MOSEK_EXIT_CODES
    native_errors = (mosek.Error,) if MOSEK_AVAILABLE else ()
    supported_vtypes = BASIC_VTYPES

    def _invoke(
        self,
        problem: Problem,
        vtype: Any,
        backend_options: Mapping[str, Any],
        verbose: int,
    ) -> NativeSolution:
        if not MOSEK_AVAILABLE:
            raise ImportError("mosek is required for the MOSEK backend")

        n, m = problem.n, problem.m
        mixed_integer = problem.is_mixed_integer
        binary = np.array([t == VType.BINARY.value for t in vtype], dtype=bool)
        xmin, xmax = binary_bounds(problem.xmin, problem.xmax, binary)

        with mosek.Env() as env:
            with env.Task(0, 0) as task:
                if verbose >= 2:
                    task.set_Stream(mosek.streamtype.log, sys.stdout.write)
                for key, value in backend_options.items():
                    task.putparam(key, str(value))

                task.appendvars(n)
                task.appendcons(m)
                task.putobjsense(mosek.objsense.minimize)
                task.putcslice(0, n, problem.c.tolist())
                task.putvarboundslice(0, n, *_bounds(xmin, xmax))
                if m:
                    coo = problem.A.tocoo()
                    task.putaijlist(coo.row.tolist(), coo.col.tolist(), coo.data.tolist())
                    task.putconboundslice(0, m, *_bounds(problem.l, problem.u))
                if problem.is_quadratic:
                    # lower triangle only; MOSEK models 1/2 x'Qx
                    tril = sp.tril(problem.H).tocoo()
                    task.putqobj(tril.row.tolist(), tril.col.tolist(), tril.data.tolist())
                if mixed_integer:
                    idx = np.flatnonzero(problem.integer_mask).tolist()
                    task.putvartypelist(idx, [mosek.variabletype.type_int] * len(idx))

                trm = task.optimize()
                if verbose >= 1:
                    task.solutionsummary(mosek.streamtype.msg)

                if mixed_integer:
                    soltype = mosek.soltype.itg
                elif task.solutiondef(mosek.soltype.bas):
                    soltype = mosek.soltype.bas
                else:
                    soltype = mosek.soltype.itr

                diagnostics: Dict[str, Any] = {
                    "termination": str(trm),
                    "soltype": str(soltype),
                }
                x = f = None
                multipliers: Dict[str, np.ndarray] = {}
                if not task.solutiondef(soltype):
                    code = NO_SOLUTION
                else:
                    code = str(task.getsolsta(soltype))
                    prosta = str(task.getprosta(soltype))
                    diagnostics["prosta"] = prosta
                    if code == "solsta.unknown" and prosta in MOSEK_EXIT_CODES:
                        code = prosta
                    x = np.array(task.getxx(soltype), dtype=float)
                    f = task.getprimalobj(soltype)
                    if mixed_integer:
                        diagnostics["mip_gap"] = task.getdouinf(mosek.dinfitem.mio_obj_rel_gap)
                        diagnostics["nodes"] = task.getintinf(mosek.iinfitem.mio_num_branch)
                    elif MOSEK_EXIT_CODES.get(code) == EXIT_OPTIMAL:
                        multipliers = {
                            "slc": np.array(task.getslc(soltype), dtype=float),
                            "suc": np.array(task.getsuc(soltype), dtype=float),
                            "slx": np.array(task.getslx(soltype), dtype=float),
                            "sux": np.array(task.getsux(soltype), dtype=float),
                        }

                return NativeSolution(
                    x=x,
                    f=f,
                    code=code,
                    message=code,
                    nit=task.getintinf(mosek.iinfitem.intpnt_iter)
                    + task.getintinf(mosek.iinfitem.sim_primal_iter)
                    + task.getintinf(mosek.iinfitem.sim_dual_iter),
                    runtime=task.getdouinf(mosek.dinfitem.optimizer_time),
                    diagnostics=diagnostics,
                    multipliers=multipliers,
                )

    def _multipliers(self, problem: Problem, native: NativeSolution) -> Lambda:
        mult = native.multipliers
        return Lambda(
            mu_l=mult.get("slc", np.zeros(problem.m)).copy(),
            mu_u=mult.get("suc", np.zeros(problem.m)).copy(),
            lower=mult.get("slx", np.zeros(problem.n)).copy(),
            upper=mult.get("sux", np.zeros(problem.n)).copy(),
        )


__all__ = ["MosekAdapter", "MOSEK_EXIT_CODES", "MOSEK_AVAILABLE"]
