"""
Solver dispatch: normalize, select a backend, solve, recover prices, assemble.

Example:
    >>> import numpy as np
    >>> from miqps import miqps
    >>> x, f, exitflag, output, lam = miqps(
    ...     None,
    ...     c=np.array([0.5, 1.0, 3.0]),
    ...     A=np.array([[0.0, 1.0, 1.0], [-2.0, 1.0, 0.0]]),
    ...     l=np.array([3.0, -np.inf]),
    ...     u=np.array([np.inf, 0.0]),
    ...     xmin=np.zeros(3),
    ...     xmax=np.array([1.0, np.inf, 5.0]),
    ...     vtype="BCC",
    ... )
    >>> output.alg in ("CPLEX", "GUROBI", "MOSEK", "OT", "GLPK")
    True
"""

from __future__ import annotations

import functools
from typing import Any, Iterable, Mapping, Optional, Union

from .backends import BackendAdapter, default_adapters
from .core import (
    EXIT_OPTIMAL,
    Backend,
    Lambda,
    MIQPResult,
    Options,
    Problem,
    SolverOutput,
)
from .logging import get_logger, verbosity_level
from .normalize import normalize_problem
from .prices import recover_prices
from .probe import CapabilityProbe, ImportProbe
from .selection import resolve_backend

logger = get_logger(__name__)


@functools.lru_cache(maxsize=None)
def _default_probe() -> ImportProbe:
    # shared so availability is probed once per process
    return ImportProbe()


def assemble_result(
    backend: Backend,
    result: MIQPResult,
    lam: Optional[Lambda] = None,
    price_output: Optional[SolverOutput] = None,
    warnings: Iterable[str] = (),
) -> MIQPResult:
    """
    Merge the primary solve with the price-recovery outcome.

    ``output.alg`` is always set to ``backend``'s name, whatever the adapter
    reported or the caller spelled.
    """

    output = result.output
    output.alg = backend.value
    output.warnings.extend(warnings)
    output.price_stage = price_output
    return MIQPResult(
        x=result.x,
        f=result.f,
        exitflag=result.exitflag,
        output=output,
        lam=result.lam if lam is None else lam,
    )


class MIQPSolver:
    """
    Run canonical problems on the best available backend.

    Args:
        probe: Availability oracle. Defaults to a process-wide
            :class:`~miqps.probe.ImportProbe` whose answers are cached for the
            life of the process; pass a fresh ``ImportProbe()``, or call
            ``refresh()`` on ``solver.probe``, to pick up solvers or licenses
            that changed since.
        adapters: Adapters overriding the defaults, keyed by backend name or
            :class:`~miqps.core.Backend`.
    """

    def __init__(
        self,
        probe: Optional[CapabilityProbe] = None,
        adapters: Optional[Mapping[Union[str, Backend], BackendAdapter]] = None,
    ) -> None:
        self.probe = probe if probe is not None else _default_probe()
        self.adapters = default_adapters()
        for key, adapter in (adapters or {}).items():
            backend = key if isinstance(key, Backend) else Backend(str(key).upper())
            self.adapters[backend] = adapter

    def solve(
        self,
        problem: Problem,
        options: Optional[Union[Options, Mapping[str, Any]]] = None,
    ) -> MIQPResult:
        """
        Solve ``problem`` and return the assembled result.

        Raises:
            SelectionError: No backend could be chosen.
            UnsupportedFeatureError: The chosen backend cannot represent the
                problem.
        """

        options = Options.from_mapping(options)
        level = verbosity_level(options.verbose)
        backend = resolve_backend(options.alg, self.probe, problem.is_quadratic)
        logger.log(
            level,
            "solving %s problem (n=%d, m=%d) with %s",
            _problem_class(problem),
            problem.n,
            problem.m,
            backend.value,
        )

        result = self.adapters[backend].solve(problem, options)
        logger.log(level, "%s returned exitflag %d, f=%s", backend.value, result.exitflag, result.f)

        if not problem.is_mixed_integer:
            return assemble_result(backend, result)

        # branch-and-bound duals are meaningless; only recovered prices count
        lam = Lambda.zeros(problem.n, problem.m)
        if options.skip_prices or result.exitflag != EXIT_OPTIMAL:
            return assemble_result(backend, result, lam=lam)

        recovery = recover_prices(problem, result, options, self.solve)
        if not recovery.failed:
            logger.log(level, "prices recovered with %s", recovery.output.alg)
        return assemble_result(
            backend,
            result,
            lam=recovery.lam,
            price_output=recovery.output,
            warnings=recovery.warnings,
        )


def _problem_class(problem: Problem) -> str:
    kind = "QP" if problem.is_quadratic else "LP"
    return f"MI{kind}" if problem.is_mixed_integer else kind


def miqps(
    *args: Any,
    probe: Optional[CapabilityProbe] = None,
    adapters: Optional[Mapping[Union[str, Backend], BackendAdapter]] = None,
    **fields: Any,
) -> MIQPResult:
    """
    Solve a mixed-integer quadratic program with the best available backend.

    Accepts ``(H, c, A, l, u, xmin, xmax, x0, vtype, opt)`` positionally
    (trailing arguments may be omitted), a single problem mapping or object,
    or the same names as keyword arguments.

    Returns:
        An :class:`~miqps.core.MIQPResult`, which unpacks as
        ``x, f, exitflag, output, lam``.
    """

    problem, options = normalize_problem(*args, **fields)
    return MIQPSolver(probe=probe, adapters=adapters).solve(problem, options)


__all__ = ["MIQPSolver", "assemble_result", "miqps"]
