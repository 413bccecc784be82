"""miqps - one calling convention for MIQP/MILP/QP/LP solvers."""

__version__ = "0.1.0"

# Core records
from .core import (
    EXIT_ERROR,
    EXIT_INF_OR_UNBD,
    EXIT_INFEASIBLE,
    EXIT_LIMIT,
    EXIT_OPTIMAL,
    EXIT_UNBOUNDED,
    Backend,
    Lambda,
    MIQPResult,
    Options,
    Problem,
    SolverOutput,
    VType,
)

# Dispatch
from .dispatch import MIQPSolver, assemble_result, miqps

# Errors
from .errors import (
    InvalidAlgorithmError,
    MIQPSError,
    NoSolverAvailableError,
    SelectionError,
    SolverUnavailableError,
    StructuralError,
    UnsupportedFeatureError,
    UnsupportedVariableTypeError,
)

# Logging
from .logging import configure_logging, get_logger, set_log_level
from .normalize import normalize_problem
from .prices import pin_integers, recover_prices
from .probe import CapabilityProbe, ImportProbe, StaticProbe
from .selection import resolve_backend

__all__ = [
    "__version__",
    # Core
    "EXIT_OPTIMAL",
    "EXIT_LIMIT",
    "EXIT_INFEASIBLE",
    "EXIT_UNBOUNDED",
    "EXIT_INF_OR_UNBD",
    "EXIT_ERROR",
    "VType",
    "Backend",
    "Problem",
    "Options",
    "Lambda",
    "SolverOutput",
    "MIQPResult",
    # Pipeline
    "normalize_problem",
    "resolve_backend",
    "recover_prices",
    "pin_integers",
    "assemble_result",
    "MIQPSolver",
    "miqps",
    # Probes
    "CapabilityProbe",
    "ImportProbe",
    "StaticProbe",
    # Errors
    "MIQPSError",
    "StructuralError",
    "SelectionError",
    "InvalidAlgorithmError",
    "SolverUnavailableError",
    "NoSolverAvailableError",
    "UnsupportedFeatureError",
    "UnsupportedVariableTypeError",
    # Logging
    "get_logger",
    "set_log_level",
    "configure_logging",
]
