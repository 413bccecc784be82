"""
Price recovery for mixed-integer solves.

Branch-and-bound solvers return no meaningful duals. To price the
constraints anyway, the integer-typed variables are pinned at their solved
values and the remaining continuous problem is solved again; only the
multipliers of that second solve are kept.
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from typing import Callable, List, Optional

import numpy as np

from .core import EXIT_OPTIMAL, Lambda, MIQPResult, Options, Problem, SolverOutput, VType
from .logging import get_logger
from .selection import DEFAULT
from .utils import relative_gap

logger = get_logger(__name__)

# relative tolerance when comparing the pinned solve with the original one
PRICE_TOL = 1e-7

_ROUNDED = (VType.BINARY, VType.INTEGER, VType.SEMI_INTEGER)

SolveFn = Callable[[Problem, Options], MIQPResult]


@dataclass
class PriceRecovery:
    """
    Outcome of a price-recovery attempt.

    ``output`` is the secondary solve's output, ``None`` when no backend
    could be run. ``failed`` is set whenever ``lam`` is the zero placeholder
    because of an error rather than a successful solve.
    """

    lam: Lambda
    output: Optional[SolverOutput] = None
    warnings: List[str] = field(default_factory=list)
    failed: bool = False


def pin_integers(problem: Problem, x: np.ndarray) -> Problem:
    """
    Return a continuous copy of ``problem`` with its integer variables fixed.

    Binary, integer and semi-integer variables are fixed at ``round(x_i)``;
    semi-continuous ones at ``x_i``. ``x`` becomes the starting point.
    """

    x = np.asarray(x, dtype=float).reshape(-1)
    xmin = problem.xmin.copy()
    xmax = problem.xmax.copy()
    for k, t in enumerate(problem.vtype):
        if t in _ROUNDED:
            xmin[k] = xmax[k] = np.round(x[k])
        elif t is VType.SEMI_CONTINUOUS:
            xmin[k] = xmax[k] = x[k]
    return dataclasses.replace(
        problem,
        xmin=xmin,
        xmax=xmax,
        x0=x.copy(),
        vtype=(VType.CONTINUOUS,) * problem.n,
    )


def recover_prices(
    problem: Problem,
    primary: MIQPResult,
    options: Options,
    solve: SolveFn,
) -> PriceRecovery:
    """
    Re-solve ``problem`` with its integer variables pinned to get multipliers.

    The pinned problem goes back through automatic backend selection with
    ``skip_prices`` set, keeping the caller's verbosity and backend options.
    Failures are reported as warnings, never raised, whether the secondary
    solve returns a bad exitflag or raises.

    Args:
        problem: The mixed-integer problem that was solved.
        primary: Its successful result.
        options: Options of the primary solve.
        solve: Callable running one solve, normally ``MIQPSolver.solve``.

    Returns:
        The recovered multipliers (zero-filled on failure), the secondary
        solve's output when it ran, and any warnings.
    """

    zeros = Lambda.zeros(problem.n, problem.m)
    pinned = pin_integers(problem, primary.x)
    try:
        secondary = solve(pinned, options.replace(alg=DEFAULT, skip_prices=True))
    except Exception as exc:
        message = f"price recovery could not run: {type(exc).__name__}: {exc}"
        logger.warning(message)
        return PriceRecovery(lam=zeros, warnings=[message], failed=True)

    if secondary.exitflag != EXIT_OPTIMAL:
        message = (
            f"price recovery with {secondary.output.alg} failed "
            f"(exitflag {secondary.exitflag}: {secondary.output.message})"
        )
        logger.warning(message)
        return PriceRecovery(
            lam=zeros, output=secondary.output, warnings=[message], failed=True
        )

    warnings = []
    if None not in (primary.f, secondary.f) and relative_gap(primary.f, secondary.f) > PRICE_TOL:
        warnings.append(
            f"price recovery objective {secondary.f:.10g} differs from {primary.f:.10g}"
        )
    if secondary.x is not None:
        dx = np.max(np.abs(secondary.x - primary.x), initial=0.0)
        if dx > PRICE_TOL * max(np.max(np.abs(primary.x), initial=0.0), 1.0):
            warnings.append(f"price recovery solution moved by up to {dx:.3g}")
    for message in warnings:
        logger.warning(message)
    return PriceRecovery(lam=secondary.lam, output=secondary.output, warnings=warnings)


__all__ = ["PRICE_TOL", "PriceRecovery", "pin_integers", "recover_prices"]
