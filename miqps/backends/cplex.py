"""
CPLEX adapter, built on the ``cplex`` Python API.

Rows are passed as CPLEX ranged rows, so every row keeps its own dual.
All five variable types map one-to-one onto CPLEX types ('C', 'B', 'I',
'S', 'N'). Backend options are dotted parameter paths, e.g.
``{"mip.tolerances.mipgap": 1e-6, "timelimit": 60}``.

Exit table (CPLEX solution status -> exitflag):

    1 optimal, 101 integer optimal, 102 optimal within tolerance     ->  1
    5 optimal with infeasibilities, 10-13 / 104-108 / 113-115 limits ->  0
    3 infeasible, 103 integer infeasible                             -> -1
    2 unbounded, 20 optimal face unbounded, 118 integer unbounded    -> -2
    4 / 119 infeasible or unbounded                                  -> -3
    6 numerical best                                                 -> -4
    CplexError raised by the library                                 -> -4

Duals are only requested for continuous problems; CPLEX reports none for a MIP.
"""

from __future__ import annotations

from typing import Any, List, Mapping, Sequence, Tuple

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
    VType,
)
from ..utils import split_signed
from .base import ALL_VTYPES, BackendAdapter, NativeSolution

try:
    import cplex
    from cplex.exceptions import CplexError

    CPLEX_AVAILABLE = True
except ImportError:  # pragma: no cover - commercial solver is optional
    cplex = CplexError = None
    CPLEX_AVAILABLE = False


CPLEX_EXIT_CODES = {
    1: EXIT_OPTIMAL,
    101: EXIT_OPTIMAL,
    102: EXIT_OPTIMAL,
    5: EXIT_LIMIT,
    10: EXIT_LIMIT,
    11: EXIT_LIMIT,
    12: EXIT_LIMIT,
    13: EXIT_LIMIT,
    104: EXIT_LIMIT,
    105: EXIT_LIMIT,
    106: EXIT_LIMIT,
    107: EXIT_LIMIT,
    108: EXIT_LIMIT,
    113: EXIT_LIMIT,
    114: EXIT_LIMIT,
    115: EXIT_LIMIT,
    3: EXIT_INFEASIBLE,
    103: EXIT_INFEASIBLE,
    2: EXIT_UNBOUNDED,
    20: EXIT_UNBOUNDED,
    118: EXIT_UNBOUNDED,
    4: EXIT_INF_OR_UNBD,
    119: EXIT_INF_OR_UNBD,
    6: EXIT_ERROR,
}


def _clip_inf(values: np.ndarray) -> List[float]:
    return np.clip(values, -cplex.infinity, cplex.infinity).tolist()


def _row_senses(l: np.ndarray, u: np.ndarray) -> Tuple[str, List[float], List[float]]:
    """Encode ``l <= a x <= u`` rows as CPLEX senses, right-hand sides and ranges."""

    senses = []
    rhs = []
    ranges = []
    for lo, hi in zip(l, u):
        if np.isfinite(lo) and np.isfinite(hi):
            if lo == hi:
                senses.append("E")
                rhs.append(float(lo))
                ranges.append(0.0)
            else:
                senses.append("R")
                rhs.append(float(lo))
                ranges.append(float(hi - lo))
        elif np.isfinite(lo):
            senses.append("G")
            rhs.append(float(lo))
            ranges.append(0.0)
        elif np.isfinite(hi):
            senses.append("L")
            rhs.append(float(hi))
            ranges.append(0.0)
        else:
            senses.append("L")
            rhs.append(cplex.infinity)
            ranges.append(0.0)
    return "".join(senses), rhs, ranges


def _sparse_pairs(mat) -> list:
    return [
        cplex.SparsePair(
            ind=mat.indices[mat.indptr[k] : mat.indptr[k + 1]].tolist(),
            val=mat.data[mat.indptr[k] : mat.indptr[k + 1]].tolist(),
        )
        for k in range(mat.shape[0])
    ]


class CplexAdapter(BackendAdapter):
    backend = Backend.CPLEX
    exit_codes = CPLEX_EXIT_CODES
    native_errors = (CplexError,) if CPLEX_AVAILABLE else ()
    supported_vtypes = ALL_VTYPES

    def native_vtype(self, vtype: Sequence[VType]) -> List[str]:
        return [t.value for t in vtype]

    def _invoke(
        self,
        problem: Problem,
        vtype: Any,
        backend_options: Mapping[str, Any],
        verbose: int,
    ) -> NativeSolution:
        if not CPLEX_AVAILABLE:
            raise ImportError("cplex is required for the CPLEX backend")

        mixed_integer = problem.is_mixed_integer
        cpx = cplex.Cplex()
        try:
            if verbose < 2:
                cpx.set_log_stream(None)
                cpx.set_results_stream(None)
                cpx.set_warning_stream(None)
            if verbose == 0:
                cpx.set_error_stream(None)
            for key, value in backend_options.items():
                param = cpx.parameters
                for part in key.split("."):
                    param = getattr(param, part)
                param.set(value)

            cpx.objective.set_sense(cpx.objective.sense.minimize)
            columns = dict(
                obj=problem.c.tolist(),
                lb=_clip_inf(problem.xmin),
                ub=_clip_inf(problem.xmax),
            )
            if mixed_integer:
                columns["types"] = vtype
            cpx.variables.add(**columns)

            if problem.is_quadratic:
                # set_quadratic takes columns of H and models 1/2 x'Hx
                cpx.objective.set_quadratic(_sparse_pairs(problem.H.T.tocsr()))
            if problem.m:
                senses, rhs, ranges = _row_senses(problem.l, problem.u)
                cpx.linear_constraints.add(
                    lin_expr=_sparse_pairs(problem.A),
                    senses=senses,
                    rhs=rhs,
                    range_values=ranges,
                )
            if mixed_integer and np.any(problem.x0 != 0.0):
                cpx.MIP_starts.add(
                    cplex.SparsePair(ind=list(range(problem.n)), val=problem.x0.tolist()),
                    cpx.MIP_starts.effort_level.auto,
                )

            start = cpx.get_time()
            cpx.solve()
            runtime = cpx.get_time() - start

            solution = cpx.solution
            code = solution.get_status()
            diagnostics = {
                "method": solution.get_method(),
                "barrier_iterations": solution.progress.get_num_barrier_iterations(),
            }
            x = f = None
            multipliers = {}
            if solution.is_primal_feasible():
                x = np.array(solution.get_values(), dtype=float)
                f = solution.get_objective_value()
                if mixed_integer:
                    diagnostics["mip_gap"] = solution.MIP.get_mip_relative_gap()
                    diagnostics["nodes"] = solution.progress.get_num_nodes_processed()
                elif solution.is_dual_feasible():
                    multipliers["reduced_cost"] = np.array(solution.get_reduced_costs(), dtype=float)
                    multipliers["dual"] = (
                        np.array(solution.get_dual_values(), dtype=float)
                        if problem.m
                        else np.zeros(0)
                    )
            return NativeSolution(
                x=x,
                f=f,
                code=code,
                message=solution.get_status_string(),
                nit=solution.progress.get_num_iterations(),
                runtime=runtime,
                diagnostics=diagnostics,
                multipliers=multipliers,
            )
        finally:
            cpx.end()

    def _multipliers(self, problem: Problem, native: NativeSolution) -> Lambda:
        mu_l, mu_u = split_signed(native.multipliers.get("dual", np.zeros(problem.m)))
        lower, upper = split_signed(native.multipliers.get("reduced_cost", np.zeros(problem.n)))
        return Lambda(mu_l=mu_l, mu_u=mu_u, lower=lower, upper=upper)


__all__ = ["CplexAdapter", "CPLEX_EXIT_CODES", "CPLEX_AVAILABLE"]
