"""
Algorithm selection: resolve ``opt.alg`` to exactly one concrete backend.

Legacy numeric codes are translated here and nowhere else::

    0   -> DEFAULT (automatic)
    300 -> OT
    500 -> CPLEX
    600 -> MOSEK
    700 -> GUROBI

Automatic selection takes the first available backend in the order CPLEX,
GUROBI, MOSEK and, for problems without a quadratic term only, OT then GLPK.
An explicitly requested backend is never replaced by another one.
"""

from __future__ import annotations

from numbers import Integral
from typing import Optional, Tuple

from .core import AlgSpec, Backend
from .errors import InvalidAlgorithmError, NoSolverAvailableError, SolverUnavailableError
from .logging import get_logger
from .probe import CapabilityProbe

logger = get_logger(__name__)

DEFAULT = "DEFAULT"

LEGACY_ALG_CODES = {
    0: DEFAULT,
    300: Backend.OT,
    500: Backend.CPLEX,
    600: Backend.MOSEK,
    700: Backend.GUROBI,
}

QUADRATIC_ORDER: Tuple[Backend, ...] = (Backend.CPLEX, Backend.GUROBI, Backend.MOSEK)
LINEAR_ORDER: Tuple[Backend, ...] = QUADRATIC_ORDER + (Backend.OT, Backend.GLPK)


def parse_alg(alg: Optional[AlgSpec]) -> Optional[Backend]:
    """
    Translate an ``alg`` value into a :class:`Backend`, or ``None`` for automatic.

    Raises:
        InvalidAlgorithmError: For unknown names and codes.
    """

    if alg is None:
        return None
    if isinstance(alg, Backend):
        return alg
    if isinstance(alg, str):
        if alg == DEFAULT:
            return None
        try:
            return Backend(alg)
        except ValueError:
            raise InvalidAlgorithmError(alg) from None
    if isinstance(alg, Integral) and not isinstance(alg, bool):
        code = LEGACY_ALG_CODES.get(int(alg))
        if code is None:
            raise InvalidAlgorithmError(int(alg))
        return None if code == DEFAULT else code
    raise InvalidAlgorithmError(alg)


def select_automatic(probe: CapabilityProbe, quadratic: bool) -> Backend:
    """Pick the first available backend able to handle the problem class."""

    order = QUADRATIC_ORDER if quadratic else LINEAR_ORDER
    for backend in order:
        if probe.is_available(backend.value):
            return backend
    raise NoSolverAvailableError([b.value for b in LINEAR_ORDER], quadratic=quadratic)


def resolve_backend(alg: Optional[AlgSpec], probe: CapabilityProbe, quadratic: bool) -> Backend:
    """
    Resolve ``alg`` against the probe.

    Args:
        alg: Name, :class:`Backend`, legacy code or ``None``/``"DEFAULT"``.
        probe: Availability oracle.
        quadratic: Whether the problem has a nonzero quadratic term.

    Returns:
        The backend to run.

    Raises:
        InvalidAlgorithmError: ``alg`` is not recognized.
        SolverUnavailableError: ``alg`` names a backend the probe rejects.
        NoSolverAvailableError: Automatic selection found nothing suitable.
    """

    requested = parse_alg(alg)
    if requested is None:
        backend = select_automatic(probe, quadratic)
        logger.debug("automatic selection chose %s (quadratic=%s)", backend.value, quadratic)
        return backend
    if not probe.is_available(requested.value):
        raise SolverUnavailableError(requested.value)
    logger.debug("using requested backend %s", requested.value)
    return requested


__all__ = [
    "DEFAULT",
    "LEGACY_ALG_CODES",
    "QUADRATIC_ORDER",
    "LINEAR_ORDER",
    "parse_alg",
    "select_automatic",
    "resolve_backend",
]
