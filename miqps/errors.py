"""
Exception hierarchy for the solver dispatch layer.

Only problems the caller can fix are raised: malformed input, an algorithm
that cannot be selected, or a feature the chosen backend cannot represent.
A backend that runs and fails reports through ``exitflag`` instead.
"""

from __future__ import annotations

from typing import Iterable, Optional


class MIQPSError(Exception):
    """Base exception for all miqps errors."""


class StructuralError(MIQPSError, ValueError):
    """Missing required problem fields or inconsistent dimensions."""


class SelectionError(MIQPSError):
    """Base class for failures to resolve ``opt.alg`` to a usable backend."""


class InvalidAlgorithmError(SelectionError, ValueError):
    """Raised for an unrecognized algorithm name or legacy numeric code."""

    def __init__(self, value: object):
        self.value = value
        if isinstance(value, str):
            message = f"'{value}' is not a valid algorithm name"
        else:
            message = f"{value!r} is not a valid algorithm code"
        super().__init__(message)


class SolverUnavailableError(SelectionError, RuntimeError):
    """Raised when an explicitly requested backend is not installed."""

    def __init__(self, backend: str):
        self.backend = backend
        super().__init__(
            f"requested solver '{backend}' is not available; "
            f"install it or choose another value for opt.alg"
        )


class NoSolverAvailableError(SelectionError, RuntimeError):
    """Raised when automatic selection finds no eligible backend."""

    def __init__(self, candidates: Iterable[str], quadratic: bool):
        self.candidates = tuple(candidates)
        self.quadratic = quadratic
        kind = "quadratic" if quadratic else "linear"
        super().__init__(
            f"no solvers available for {kind} problem - requires "
            + ", ".join(self.candidates)
        )


class UnsupportedFeatureError(MIQPSError, ValueError):
    """The chosen backend cannot represent part of the problem."""


class UnsupportedVariableTypeError(UnsupportedFeatureError):
    """Raised when a backend has no native counterpart for a variable type."""

    def __init__(self, backend: str, vtypes: Iterable[str], message: Optional[str] = None):
        self.backend = backend
        self.vtypes = tuple(sorted(set(vtypes)))
        super().__init__(
            message
            or f"{backend} does not support variable types {', '.join(self.vtypes)}"
        )


__all__ = [
    "MIQPSError",
    "StructuralError",
    "SelectionError",
    "InvalidAlgorithmError",
    "SolverUnavailableError",
    "NoSolverAvailableError",
    "UnsupportedFeatureError",
    "UnsupportedVariableTypeError",
]
