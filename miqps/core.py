"""
Core problem, options and result records for the solver dispatch layer.

Every backend works from the same canonical mixed-integer quadratic program

```
    minimize    1/2 x^T H x + c^T x
    subject to  l <= A x <= u
                xmin <= x <= xmax
                x_i of type vtype_i
```

where ``H`` may be absent (LP/MILP) and ``-inf``/``inf`` mark missing sides
of a constraint or bound. Results come back in one shape regardless of the
backend: ``(x, f, exitflag, output, lam)``.

Multipliers are nonnegative and follow the sign convention

```
    H x + c - A^T (mu_l - mu_u) - lower + upper = 0
```

so ``mu_l`` prices the ``l`` side of a row, ``mu_u`` the ``u`` side, and
``lower``/``upper`` the variable bounds.
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterator, List, Mapping, Optional, Tuple, Union

import numpy as np
import scipy.sparse as sp

from .errors import StructuralError

# Shared exit scale onto which every backend's native status is mapped.
EXIT_OPTIMAL = 1
EXIT_LIMIT = 0
EXIT_INFEASIBLE = -1
EXIT_UNBOUNDED = -2
EXIT_INF_OR_UNBD = -3
EXIT_ERROR = -4


class VType(str, Enum):
    """Variable type tags, using the single-letter codes of the MPS world."""

    CONTINUOUS = "C"
    BINARY = "B"
    INTEGER = "I"
    SEMI_CONTINUOUS = "S"
    SEMI_INTEGER = "N"


class Backend(str, Enum):
    """Concrete solver backends known to the dispatcher."""

    CPLEX = "CPLEX"
    GLPK = "GLPK"
    GUROBI = "GUROBI"
    MOSEK = "MOSEK"
    OT = "OT"


AlgSpec = Union[str, int, Backend]


@dataclass(frozen=True)
class Problem:
    """
    Canonical, field-complete problem record produced by the normalizer.

    ``A`` is always a CSR matrix (possibly with zero rows) and ``H`` is either
    a CSR matrix or ``None`` for a linear objective. All vectors are float
    arrays of the lengths implied by ``c`` and ``A``.
    """

    H: Optional[sp.csr_matrix]
    c: np.ndarray
    A: sp.csr_matrix
    l: np.ndarray
    u: np.ndarray
    xmin: np.ndarray
    xmax: np.ndarray
    x0: np.ndarray
    vtype: Tuple[VType, ...]

    @property
    def n(self) -> int:
        return int(self.c.shape[0])

    @property
    def m(self) -> int:
        return int(self.A.shape[0])

    @property
    def is_quadratic(self) -> bool:
        """True when ``H`` has at least one structurally nonzero entry."""
        return self.H is not None and self.H.count_nonzero() > 0

    @property
    def integer_mask(self) -> np.ndarray:
        return np.array([t is not VType.CONTINUOUS for t in self.vtype], dtype=bool)

    @property
    def is_mixed_integer(self) -> bool:
        return bool(self.integer_mask.any())

    def objective(self, x: np.ndarray) -> float:
        """Evaluate ``1/2 x^T H x + c^T x``."""
        x = np.asarray(x, dtype=float).reshape(-1)
        value = float(self.c @ x)
        if self.H is not None:
            value += 0.5 * float(x @ (self.H @ x))
        return value


@dataclass(frozen=True)
class Options:
    """
    Solver selection and passthrough configuration.

    Attributes:
        alg: Backend name (``"DEFAULT"``, ``"CPLEX"``, ``"GLPK"``,
            ``"GUROBI"``, ``"MOSEK"``, ``"OT"``), a :class:`Backend` member or
            a legacy numeric code (0, 300, 500, 600, 700).
        verbose: 0 = silent, 1 = summary, 2 = detailed backend output.
        skip_prices: Skip the price-recovery stage for mixed-integer problems.
        backend_options: Mapping from backend name to that backend's own
            option mapping. Only the matching adapter reads its entry.
    """

    alg: AlgSpec = "DEFAULT"
    verbose: int = 0
    skip_prices: bool = False
    backend_options: Mapping[str, Mapping[str, Any]] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if self.verbose not in (0, 1, 2):
            raise StructuralError(f"verbose must be 0, 1 or 2, got {self.verbose!r}")

    # legacy option sub-record names -> (backend, nested key or None)
    _LEGACY_KEYS = {
        "cplex_opt": (Backend.CPLEX, None),
        "glpk_opt": (Backend.GLPK, None),
        "grb_opt": (Backend.GUROBI, None),
        "mosek_opt": (Backend.MOSEK, None),
        "intlinprog_opt": (Backend.OT, "milp"),
        "linprog_opt": (Backend.OT, "linprog"),
    }

    @classmethod
    def from_mapping(cls, opt: Optional[Mapping[str, Any]]) -> "Options":
        """
        Build options from a flat mapping such as ``{"alg": 500, "verbose": 1}``.

        Backend sub-records may be given either under ``backend_options`` or
        with their legacy names (``cplex_opt``, ``grb_opt``, ``mosek_opt``,
        ``glpk_opt``, ``intlinprog_opt``, ``linprog_opt``).
        """

        if opt is None:
            return cls()
        if isinstance(opt, Options):
            return opt

        backend_options: Dict[str, Dict[str, Any]] = {}
        for key, value in dict(opt.get("backend_options") or {}).items():
            backend_options[_backend_key(key)] = dict(value)
        for key, (backend, nested) in cls._LEGACY_KEYS.items():
            if opt.get(key) is None:
                continue
            entry = backend_options.setdefault(backend.value, {})
            if nested is None:
                entry.update(opt[key])
            else:
                entry[nested] = dict(opt[key])

        alg = opt.get("alg")
        return cls(
            alg="DEFAULT" if alg is None or (isinstance(alg, str) and not alg) else alg,
            verbose=int(opt.get("verbose") or 0),
            skip_prices=bool(opt.get("skip_prices") or False),
            backend_options=backend_options,
        )

    def backend_options_for(self, backend: Backend) -> Mapping[str, Any]:
        for key, value in self.backend_options.items():
            if _backend_key(key) == backend.value:
                return value or {}
        return {}

    def replace(self, **changes: Any) -> "Options":
        return dataclasses.replace(self, **changes)


def _backend_key(key: Union[str, Backend]) -> str:
    return key.value if isinstance(key, Backend) else str(key).upper()


@dataclass
class Lambda:
    """Lagrange and Kuhn-Tucker multipliers on constraints and bounds."""

    mu_l: np.ndarray
    mu_u: np.ndarray
    lower: np.ndarray
    upper: np.ndarray

    @classmethod
    def zeros(cls, n: int, m: int) -> "Lambda":
        return cls(mu_l=np.zeros(m), mu_u=np.zeros(m), lower=np.zeros(n), upper=np.zeros(n))

    def is_zero(self) -> bool:
        return not any(np.any(v != 0.0) for v in (self.mu_l, self.mu_u, self.lower, self.upper))


@dataclass
class SolverOutput:
    """
    Diagnostics for one solve.

    Attributes:
        alg: Name of the backend that actually ran.
        status: Native exit code or status object reported by the backend.
        message: Human-readable status text from the backend.
        nit: Iteration count, when the backend reports one.
        runtime: Wall-clock solve time in seconds, when reported.
        details: Backend-specific extras (MIP gap, node count, ...).
        warnings: Recoverable problems noted while assembling the result.
        price_stage: Output of the price-recovery solve, if one ran.
    """

    alg: str = ""
    status: Any = None
    message: str = ""
    nit: Optional[int] = None
    runtime: Optional[float] = None
    details: Dict[str, Any] = field(default_factory=dict)
    warnings: List[str] = field(default_factory=list)
    price_stage: Optional["SolverOutput"] = None


@dataclass
class MIQPResult:
    """
    Uniform result returned by every backend.

    Iterating yields ``(x, f, exitflag, output, lam)``, so a result unpacks
    like the classic five-output call.
    """

    x: Optional[np.ndarray]
    f: Optional[float]
    exitflag: int
    output: SolverOutput
    lam: Lambda

    @property
    def success(self) -> bool:
        return self.exitflag == EXIT_OPTIMAL

    def __iter__(self) -> Iterator[Any]:
        return iter((self.x, self.f, self.exitflag, self.output, self.lam))


__all__ = [
    "EXIT_OPTIMAL",
    "EXIT_LIMIT",
    "EXIT_INFEASIBLE",
    "EXIT_UNBOUNDED",
    "EXIT_INF_OR_UNBD",
    "EXIT_ERROR",
    "VType",
    "Backend",
    "AlgSpec",
    "Problem",
    "Options",
    "Lambda",
    "SolverOutput",
    "MIQPResult",
]
