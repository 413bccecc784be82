"""
SciPy adapter ("OT"), wrapping ``scipy.optimize.milp`` and ``linprog``.

Both entry points drive the HiGHS solvers bundled with SciPy. Problems with
integer or binary variables go through ``milp``; purely continuous ones go
through ``linprog(method="highs")``, which also reports marginals. Quadratic
objectives are not supported.

Backend options are nested per entry point::

    {"OT": {"milp": {"time_limit": 60}, "linprog": {"presolve": False}}}

Any other key is passed to both. The legacy ``intlinprog_opt`` and
``linprog_opt`` records land in the ``milp`` and ``linprog`` entries.

Exit table (``OptimizeResult.status`` -> exitflag):

    0 optimal                           ->  1
    1 iteration or time limit           ->  0
    2 infeasible                        -> -1
    3 unbounded                         -> -2
    4 numerical difficulties / other    -> -4
    ValueError raised by SciPy          -> -4
"""

from __future__ import annotations

import time
from typing import Any, Dict, Mapping

import numpy as np
import scipy.sparse as sp

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
from ..utils import binary_bounds, partition_rows, split_signed
from .base import BASIC_VTYPES, BackendAdapter, NativeSolution

try:
    from scipy.optimize import Bounds, LinearConstraint, linprog, milp

    SCIPY_AVAILABLE = True
except ImportError:  # pragma: no cover - milp needs SciPy >= 1.9
    Bounds = LinearConstraint = linprog = milp = None
    SCIPY_AVAILABLE = False


OT_EXIT_CODES = {
    0: EXIT_OPTIMAL,
    1: EXIT_LIMIT,
    2: EXIT_INFEASIBLE,
    3: EXIT_UNBOUNDED,
    4: EXIT_ERROR,
}

_ENTRY_POINTS = ("milp", "linprog")


def _entry_options(backend_options: Mapping[str, Any], entry: str, verbose: int) -> Dict[str, Any]:
    options: Dict[str, Any] = {"disp": verbose >= 2}
    options.update({k: v for k, v in backend_options.items() if k not in _ENTRY_POINTS})
    options.update(backend_options.get(entry) or {})
    return options


class OTAdapter(BackendAdapter):
    backend = Backend.OT
    exit_codes = OT_EXIT_CODES
    native_errors = (ValueError,)
    supported_vtypes = BASIC_VTYPES
    supports_quadratic = False

    def _invoke(
        self,
        problem: Problem,
        vtype: Any,
        backend_options: Mapping[str, Any],
        verbose: int,
    ) -> NativeSolution:
        if not SCIPY_AVAILABLE:
            raise ImportError("scipy>=1.9 is required for the OT backend")
        if problem.is_mixed_integer:
            return self._milp(problem, vtype, _entry_options(backend_options, "milp", verbose))
        return self._linprog(problem, _entry_options(backend_options, "linprog", verbose))

    def _milp(self, problem: Problem, vtype: Any, options: Dict[str, Any]) -> NativeSolution:
        binary = np.array([t == VType.BINARY.value for t in vtype], dtype=bool)
        xmin, xmax = binary_bounds(problem.xmin, problem.xmax, binary)
        constraints = LinearConstraint(problem.A, problem.l, problem.u) if problem.m else None

        start = time.perf_counter()
        res = milp(
            problem.c,
            integrality=problem.integer_mask.astype(int),
            bounds=Bounds(xmin, xmax),
            constraints=constraints,
            options=options,
        )
        runtime = time.perf_counter() - start

        diagnostics = {
            "entry_point": "milp",
            "mip_gap": getattr(res, "mip_gap", None),
            "mip_node_count": getattr(res, "mip_node_count", None),
            "mip_dual_bound": getattr(res, "mip_dual_bound", None),
        }
        return NativeSolution(
            x=res.x,
            f=res.fun if res.x is not None else None,
            code=res.status,
            message=res.message,
            runtime=runtime,
            diagnostics=diagnostics,
        )

    def _linprog(self, problem: Problem, options: Dict[str, Any]) -> NativeSolution:
        rows = partition_rows(problem.l, problem.u)
        A = problem.A
        a_ub = b_ub = a_eq = b_eq = None
        if rows.upper.size or rows.lower.size:
            # l <= a x becomes -a x <= -l
            a_ub = sp.vstack([A[rows.upper], -A[rows.lower]], format="csr")
            b_ub = np.concatenate([problem.u[rows.upper], -problem.l[rows.lower]])
        if rows.eq.size:
            a_eq = A[rows.eq]
            b_eq = problem.u[rows.eq]

        start = time.perf_counter()
        res = linprog(
            problem.c,
            A_ub=a_ub,
            b_ub=b_ub,
            A_eq=a_eq,
            b_eq=b_eq,
            bounds=list(zip(problem.xmin, problem.xmax)),
            method="highs",
            options=options,
        )
        runtime = time.perf_counter() - start

        multipliers: Dict[str, np.ndarray] = {}
        if res.status == 0:
            if a_ub is not None:
                multipliers["ineqlin"] = np.asarray(res.ineqlin.marginals, dtype=float)
            if a_eq is not None:
                multipliers["eqlin"] = np.asarray(res.eqlin.marginals, dtype=float)
            multipliers["lower"] = np.asarray(res.lower.marginals, dtype=float)
            multipliers["upper"] = np.asarray(res.upper.marginals, dtype=float)

        return NativeSolution(
            x=res.x,
            f=res.fun if res.x is not None else None,
            code=res.status,
            message=res.message,
            nit=getattr(res, "nit", None),
            runtime=runtime,
            diagnostics={"entry_point": "linprog"},
            multipliers=multipliers,
        )

    def _multipliers(self, problem: Problem, native: NativeSolution) -> Lambda:
        rows = partition_rows(problem.l, problem.u)
        lam = Lambda.zeros(problem.n, problem.m)
        mult = native.multipliers
        if "ineqlin" in mult:
            k = rows.upper.size
            lam.mu_u[rows.upper] = np.maximum(-mult["ineqlin"][:k], 0.0)
            lam.mu_l[rows.lower] = np.maximum(-mult["ineqlin"][k:], 0.0)
        if "eqlin" in mult:
            lam.mu_l[rows.eq], lam.mu_u[rows.eq] = split_signed(mult["eqlin"])
        # a fixed column may report its reduced cost on either side
        lam.lower, lam.upper = split_signed(
            mult.get("lower", np.zeros(problem.n)) + mult.get("upper", np.zeros(problem.n))
        )
        return lam


__all__ = ["OTAdapter", "OT_EXIT_CODES", "SCIPY_AVAILABLE"]
