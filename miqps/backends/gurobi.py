"""
Gurobi adapter, built on the ``gurobipy`` matrix API.

Gurobi has no ranged rows in the matrix API, so rows are split into
equality, ``<=`` and ``>=`` blocks (a ranged row contributes one row to each
inequality block) and their ``Pi`` values are folded back per original row.
Variable types are passed through unchanged; Gurobi shares the 'C', 'B',
'I', 'S', 'N' letters. Backend options are Gurobi parameter names, e.g.
``{"MIPGap": 1e-6, "TimeLimit": 60}``.

Exit table (``Model.Status`` -> exitflag):

    2 OPTIMAL                                                   ->  1
    6 CUTOFF, 7-11 limits / interrupted, 13 SUBOPTIMAL, 14-17   ->  0
    3 INFEASIBLE                                                -> -1
    5 UNBOUNDED                                                 -> -2
    4 INF_OR_UNBD                                               -> -3
    1 LOADED, 12 NUMERIC                                        -> -4
    GurobiError raised by the library                           -> -4
"""

from __future__ import annotations

from typing import Any, Dict, Mapping

import numpy as np

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
)
from ..utils import partition_rows, split_signed
from .base import ALL_VTYPES, BackendAdapter, NativeSolution

try:
    import gurobipy as gp
    from gurobipy import GRB

    GUROBI_AVAILABLE = True
except ImportError:  # pragma: no cover - commercial solver is optional
    gp = None
    GRB = None
    GUROBI_AVAILABLE = False


GUROBI_STATUS_NAMES = {
    1: "LOADED",
    2: "OPTIMAL",
    3: "INFEASIBLE",
    4: "INF_OR_UNBD",
    5: "UNBOUNDED",
    6: "CUTOFF",
    7: "ITERATION_LIMIT",
    8: "NODE_LIMIT",
    9: "TIME_LIMIT",
    10: "SOLUTION_LIMIT",
    11: "INTERRUPTED",
    12: "NUMERIC",
    13: "SUBOPTIMAL",
    14: "INPROGRESS",
    15: "USER_OBJ_LIMIT",
    16: "WORK_LIMIT",
    17: "MEM_LIMIT",
}

GUROBI_EXIT_CODES = {
    2: EXIT_OPTIMAL,
    6: EXIT_LIMIT,
    7: EXIT_LIMIT,
    8: EXIT_LIMIT,
    9: EXIT_LIMIT,
    10: EXIT_LIMIT,
    11: EXIT_LIMIT,
    13: EXIT_LIMIT,
    14: EXIT_LIMIT,
    15: EXIT_LIMIT,
    16: EXIT_LIMIT,
    17: EXIT_LIMIT,
    3: EXIT_INFEASIBLE,
    5: EXIT_UNBOUNDED,
    4: EXIT_INF_OR_UNBD,
    1: EXIT_ERROR,
    12: EXIT_ERROR,
}


class GurobiAdapter(BackendAdapter):
    backend = Backend.GUROBI
    exit_codes = GUROBI_EXIT_CODES
    native_errors = (gp.GurobiError,) if GUROBI_AVAILABLE else ()
    supported_vtypes = ALL_VTYPES

    def _invoke(
        self,
        problem: Problem,
        vtype: Any,
        backend_options: Mapping[str, Any],
        verbose: int,
    ) -> NativeSolution:
        if not GUROBI_AVAILABLE:
            raise ImportError("gurobipy is required for the GUROBI backend")

        mixed_integer = problem.is_mixed_integer
        rows = partition_rows(problem.l, problem.u)

        with gp.Env(empty=True) as env:
            env.setParam("OutputFlag", 1 if verbose >= 2 else 0)
            env.start()
            with gp.Model(env=env) as model:
                for key, value in backend_options.items():
                    model.setParam(key, value)

                x = model.addMVar(
                    problem.n, lb=problem.xmin, ub=problem.xmax, vtype=np.array(list(vtype))
                )
                objective = problem.c @ x
                if problem.is_quadratic:
                    objective = x @ (0.5 * problem.H) @ x + objective
                model.setObjective(objective, GRB.MINIMIZE)

                constrs = {}
                if rows.eq.size:
                    constrs["eq"] = model.addConstr(
                        problem.A[rows.eq] @ x == problem.u[rows.eq]
                    )
                if rows.upper.size:
                    constrs["upper"] = model.addConstr(
                        problem.A[rows.upper] @ x <= problem.u[rows.upper]
                    )
                if rows.lower.size:
                    constrs["lower"] = model.addConstr(
                        problem.A[rows.lower] @ x >= problem.l[rows.lower]
                    )
                if mixed_integer:
                    x.Start = problem.x0

                model.optimize()

                code = model.Status
                diagnostics: Dict[str, Any] = {"bar_iterations": int(model.BarIterCount)}
                x_val = f = None
                multipliers: Dict[str, np.ndarray] = {}
                if model.SolCount > 0:
                    x_val = np.array(x.X, dtype=float)
                    f = model.ObjVal
                    if mixed_integer:
                        diagnostics["mip_gap"] = model.MIPGap
                        diagnostics["nodes"] = int(model.NodeCount)
                if not mixed_integer and code == GRB.OPTIMAL:
                    multipliers["rc"] = np.array(x.RC, dtype=float)
                    for key, constr in constrs.items():
                        multipliers[f"pi_{key}"] = np.array(constr.Pi, dtype=float)

                return NativeSolution(
                    x=x_val,
                    f=f,
                    code=code,
                    message=GUROBI_STATUS_NAMES.get(code, str(code)),
                    nit=int(model.IterCount),
                    runtime=model.Runtime,
                    diagnostics=diagnostics,
                    multipliers=multipliers,
                )

    def _multipliers(self, problem: Problem, native: NativeSolution) -> Lambda:
        rows = partition_rows(problem.l, problem.u)
        lam = Lambda.zeros(problem.n, problem.m)
        if "pi_eq" in native.multipliers:
            lam.mu_l[rows.eq], lam.mu_u[rows.eq] = split_signed(native.multipliers["pi_eq"])
        if "pi_upper" in native.multipliers:
            lam.mu_u[rows.upper] = np.maximum(-native.multipliers["pi_upper"], 0.0)
        if "pi_lower" in native.multipliers:
            lam.mu_l[rows.lower] = np.maximum(native.multipliers["pi_lower"], 0.0)
        if "rc" in native.multipliers:
            lam.lower, lam.upper = split_signed(native.multipliers["rc"])
        return lam


__all__ = ["GurobiAdapter", "GUROBI_EXIT_CODES", "GUROBI_STATUS_NAMES", "GUROBI_AVAILABLE"]
