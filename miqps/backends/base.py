"""
Backend adapter base class.

An adapter owns the round trip between the canonical problem and one solver
library: it checks the problem is representable, translates variable types,
calls the library, maps the native status onto the shared exit scale and
converts native duals into a :class:`~miqps.core.Lambda`.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, ClassVar, Dict, FrozenSet, Mapping, Optional, Sequence, Tuple, Type

import numpy as np

from ..core import (
    EXIT_ERROR,
    EXIT_LIMIT,
    Backend,
    Lambda,
    MIQPResult,
    Options,
    Problem,
    SolverOutput,
    VType,
)
from ..errors import MIQPSError, UnsupportedFeatureError, UnsupportedVariableTypeError
from ..logging import get_logger

logger = get_logger(__name__)

ALL_VTYPES: FrozenSet[VType] = frozenset(VType)
BASIC_VTYPES: FrozenSet[VType] = frozenset({VType.CONTINUOUS, VType.BINARY, VType.INTEGER})

# status code of a solve that ended in a library exception
NATIVE_ERROR = "native_error"


@dataclass
class NativeSolution:
    """
    What a solver library handed back, before any translation.

    Attributes:
        x: Primal point, or ``None`` if the library produced none.
        f: Objective value, or ``None``.
        code: Native status code, looked up in the adapter's exit table.
        message: Native status text.
        nit: Iteration count, when available.
        runtime: Solve time in seconds, when available.
        diagnostics: Other native fields worth surfacing in ``output.details``.
        multipliers: Native duals keyed by the adapter's own names; empty when
            the solve was mixed-integer or failed.
    """

    x: Optional[np.ndarray]
    f: Optional[float]
    code: Any
    message: str = ""
    nit: Optional[int] = None
    runtime: Optional[float] = None
    diagnostics: Dict[str, Any] = field(default_factory=dict)
    multipliers: Dict[str, np.ndarray] = field(default_factory=dict)


class BackendAdapter(ABC):
    """
    Translate canonical problems to one backend and its answers back.

    Subclasses set :attr:`backend`, :attr:`exit_codes`, :attr:`native_errors`
    and, where the library is more limited, :attr:`supported_vtypes` and
    :attr:`supports_quadratic`.
    They implement :meth:`_invoke` and :meth:`_multipliers`.
    """

    backend: ClassVar[Backend]
    exit_codes: ClassVar[Mapping[Any, int]] = {}
    supported_vtypes: ClassVar[FrozenSet[VType]] = ALL_VTYPES
    supports_quadratic: ClassVar[bool] = True
    native_errors: ClassVar[Tuple[Type[Exception], ...]] = ()

    @property
    def name(self) -> str:
        return self.backend.value

    def check(self, problem: Problem) -> None:
        """
        Reject problems this backend cannot represent.

        Raises:
            UnsupportedFeatureError: A quadratic objective on an LP/MILP backend.
            UnsupportedVariableTypeError: A variable type with no native kind.
        """

        if problem.is_quadratic and not self.supports_quadratic:
            raise UnsupportedFeatureError(
                f"{self.name} handles linear objectives only; H must be empty or all zero"
            )
        unsupported = {t.value for t in problem.vtype if t not in self.supported_vtypes}
        if unsupported:
            raise UnsupportedVariableTypeError(self.name, unsupported)

    def native_vtype(self, vtype: Sequence[VType]) -> Any:
        """Backend representation of the variable types; tag letters by default."""
        return "".join(t.value for t in vtype)

    def solve(self, problem: Problem, options: Options) -> MIQPResult:
        """
        Run the backend on ``problem`` and return a partial result.

        Exceptions listed in :attr:`native_errors`, and ``ImportError`` for a
        library that cannot be loaded, come back as an ``EXIT_ERROR`` result
        whose message carries the exception text. Errors of this package
        raised while building the model still propagate.
        """

        self.check(problem)
        try:
            native = self._invoke(
                problem,
                self.native_vtype(problem.vtype),
                options.backend_options_for(self.backend),
                options.verbose,
            )
        except MIQPSError:
            raise
        except (ImportError,) + tuple(self.native_errors) as exc:
            logger.warning("%s raised %s: %s", self.name, type(exc).__name__, exc)
            native = NativeSolution(
                x=None,
                f=None,
                code=NATIVE_ERROR,
                message=f"{type(exc).__name__}: {exc}",
                diagnostics={"exception": type(exc).__name__},
            )
        exitflag = self._exitflag(native.code)
        lam = self._multipliers(problem, native) if native.multipliers else None
        if lam is None:
            lam = Lambda.zeros(problem.n, problem.m)

        output = SolverOutput(
            alg=self.name,
            status=native.code,
            message=native.message,
            nit=native.nit,
            runtime=native.runtime,
            details=dict(native.diagnostics),
        )
        x = None if native.x is None else np.asarray(native.x, dtype=float).reshape(-1)
        f = None if native.f is None else float(native.f)
        logger.debug("%s finished: status=%r exitflag=%d", self.name, native.code, exitflag)
        return MIQPResult(x=x, f=f, exitflag=exitflag, output=output, lam=lam)

    def _exitflag(self, code: Any) -> int:
        if code == NATIVE_ERROR:
            return EXIT_ERROR
        return self.exit_codes.get(code, EXIT_LIMIT)

    @abstractmethod
    def _invoke(
        self,
        problem: Problem,
        vtype: Any,
        backend_options: Mapping[str, Any],
        verbose: int,
    ) -> NativeSolution:
        """Call the solver library."""

    @abstractmethod
    def _multipliers(self, problem: Problem, native: NativeSolution) -> Lambda:
        """Convert ``native.multipliers`` to the canonical sign convention."""


__all__ = ["NativeSolution", "BackendAdapter", "ALL_VTYPES", "BASIC_VTYPES", "NATIVE_ERROR"]
