"""
Backend capability probes.

A probe answers one question, ``is_available(name)``, for the backend names
of :class:`miqps.core.Backend`. The dispatcher never imports a solver library
just to find out whether it exists; it asks the probe.
"""

from __future__ import annotations

import contextlib
import importlib
from typing import Callable, Dict, Iterable, Protocol, Union, runtime_checkable

from .core import Backend
from .logging import get_logger

logger = get_logger(__name__)


@runtime_checkable
class CapabilityProbe(Protocol):
    """Reports whether a backend is installed and usable."""

    def is_available(self, backend: str) -> bool:
        ...


def _has_module(name: str) -> bool:
    with contextlib.suppress(ImportError):
        importlib.import_module(name)
        return True
    return False


def _has_scipy_milp() -> bool:
    with contextlib.suppress(ImportError):
        from scipy.optimize import milp  # noqa: F401

        return True
    return False


def _has_mosek() -> bool:
    # importing succeeds without a license; creating an environment does not
    with contextlib.suppress(ImportError):
        import mosek

        with contextlib.suppress(mosek.Error):
            with mosek.Env() as env:
                with env.Task(0, 0) as task:
                    task.optimize()
            return True
    return False


_CHECKS: Dict[Backend, Callable[[], bool]] = {
    Backend.CPLEX: lambda: _has_module("cplex"),
    Backend.GLPK: lambda: _has_module("swiglpk"),
    Backend.GUROBI: lambda: _has_module("gurobipy"),
    Backend.MOSEK: _has_mosek,
    Backend.OT: _has_scipy_milp,
}


class ImportProbe:
    """
    Default probe: a backend is available when its Python API imports.

    Answers are cached per instance, so the import cost is paid once. Call
    :meth:`refresh` after installing a solver or changing its license.
    """

    def __init__(self) -> None:
        self._cache: Dict[Backend, bool] = {}

    def is_available(self, backend: Union[str, Backend]) -> bool:
        try:
            key = Backend(backend)
        except ValueError:
            return False
        if key not in self._cache:
            self._cache[key] = bool(_CHECKS[key]())
            logger.debug("backend %s available: %s", key.value, self._cache[key])
        return self._cache[key]

    def refresh(self) -> None:
        """Forget cached answers so the next query checks again."""
        self._cache.clear()


class StaticProbe:
    """Probe with a fixed answer set, for tests and pinned deployments."""

    def __init__(self, available: Iterable[Union[str, Backend]] = ()) -> None:
        self.available = frozenset(Backend(name).value for name in available)

    def is_available(self, backend: Union[str, Backend]) -> bool:
        name = backend.value if isinstance(backend, Backend) else str(backend)
        return name in self.available


__all__ = ["CapabilityProbe", "ImportProbe", "StaticProbe"]
