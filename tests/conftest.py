"""Pytest configuration and shared fixtures for miqps tests.

This module provides:
- Deterministic RNG fixtures for numpy
- Canned and fake backend adapters, so dispatch and translation logic can be
  tested without any commercial solver installed
- A few reference problems
"""

import os
from typing import Callable, List, Union

import numpy as np
import pytest

from miqps.backends import BackendAdapter, NativeSolution
from miqps.core import EXIT_ERROR, EXIT_INFEASIBLE, EXIT_OPTIMAL, Backend, Lambda, Problem
from miqps.normalize import normalize_problem


@pytest.fixture(scope="function")
def rng() -> np.random.Generator:
    """Provide a deterministic numpy RNG for tests.

    Uses seed from TEST_RNG_SEED environment variable (default: 0).

    Returns:
        A seeded numpy.random.Generator instance.
    """
    seed = int(os.environ.get("TEST_RNG_SEED", "0"))
    return np.random.default_rng(seed)


@pytest.fixture(scope="function", autouse=True)
def set_random_seeds() -> None:
    """Auto-use fixture to set the numpy global seed for reproducibility."""
    np.random.seed(int(os.environ.get("TEST_RNG_SEED", "0")))


class FakeSolverError(RuntimeError):
    """Stands in for a solver library's own exception class."""


Response = Union[NativeSolution, Exception]


class FakeAdapter(BackendAdapter):
    """Adapter replaying prepared native solutions and recording each call.

    ``native.multipliers`` uses the canonical names (``mu_l``, ``mu_u``,
    ``lower``, ``upper``); missing entries are zero-filled. A response that
    is an exception is raised from ``_invoke``; :class:`FakeSolverError` is
    treated as the library's own error.
    """

    exit_codes = {"ok": EXIT_OPTIMAL, "infeasible": EXIT_INFEASIBLE, "error": EXIT_ERROR}
    native_errors = (FakeSolverError,)

    def __init__(self, backend: Backend, responses: List[Response], quadratic: bool = True):
        self.backend = backend
        self.supports_quadratic = quadratic
        self.responses = list(responses)
        self.calls: List[Problem] = []
        self.options: List[dict] = []

    def _invoke(self, problem, vtype, backend_options, verbose):
        self.calls.append(problem)
        self.options.append(dict(backend_options))
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response

    def _multipliers(self, problem, native):
        zeros = Lambda.zeros(problem.n, problem.m)
        return Lambda(
            mu_l=np.asarray(native.multipliers.get("mu_l", zeros.mu_l), dtype=float),
            mu_u=np.asarray(native.multipliers.get("mu_u", zeros.mu_u), dtype=float),
            lower=np.asarray(native.multipliers.get("lower", zeros.lower), dtype=float),
            upper=np.asarray(native.multipliers.get("upper", zeros.upper), dtype=float),
        )


@pytest.fixture
def solver_error() -> type:
    """Exception class :class:`FakeAdapter` reports as a library failure."""
    return FakeSolverError


@pytest.fixture
def fake_adapter() -> Callable[..., FakeAdapter]:
    """Factory for :class:`FakeAdapter` instances."""

    def make(backend, *responses, quadratic=True):
        return FakeAdapter(Backend(backend), list(responses), quadratic=quadratic)

    return make


@pytest.fixture
def canned() -> Callable[..., BackendAdapter]:
    """Subclass a real adapter so ``_invoke`` returns ``native`` without a solver.

    The returned adapter records ``(vtype, backend_options, verbose)`` of its
    last call in ``seen`` (``None`` until called).
    """

    def make(adapter_cls, native: NativeSolution) -> BackendAdapter:
        class Canned(adapter_cls):
            seen = None

            def _invoke(self, problem, vtype, backend_options, verbose):
                self.seen = (vtype, dict(backend_options), verbose)
                return native

        return Canned()

    return make


@pytest.fixture
def milp_problem() -> Problem:
    """min 0.5 y + x1 + 3 x2, x1 + x2 >= 3, x1 <= 2 y, y binary, 0 <= x2 <= 5.

    Optimum: y = 1, x = (2, 1), f = 5.5. With y pinned the multipliers are
    mu_l[0] = 3 and mu_u[1] = 2.
    """
    problem, _ = normalize_problem(
        None,
        [0.5, 1.0, 3.0],
        [[0.0, 1.0, 1.0], [-2.0, 1.0, 0.0]],
        [3.0, -np.inf],
        [np.inf, 0.0],
        [0.0, 0.0, 0.0],
        [1.0, np.inf, 5.0],
        vtype="BCC",
    )
    return problem


@pytest.fixture
def lp_problem() -> Problem:
    """min x1 + 3 x2, x1 + x2 >= 3, x1 <= 2, x >= 0; optimum (2, 1), f = 5."""
    problem, _ = normalize_problem(
        None,
        [1.0, 3.0],
        [[1.0, 1.0], [1.0, 0.0]],
        [3.0, -np.inf],
        [np.inf, 2.0],
        [0.0, 0.0],
    )
    return problem


@pytest.fixture
def reference_qp() -> dict:
    """Four-variable portfolio-style QP with one equality and one lower-bounded row."""
    return {
        "H": np.array(
            [
                [1003.1, 4.3, 6.3, 5.9],
                [4.3, 2.2, 2.1, 3.9],
                [6.3, 2.1, 3.5, 4.8],
                [5.9, 3.9, 4.8, 10.0],
            ]
        ),
        "c": np.zeros(4),
        "A": np.array([[1.0, 1.0, 1.0, 1.0], [0.17, 0.11, 0.10, 0.18]]),
        "l": np.array([1.0, 0.10]),
        "u": np.array([1.0, np.inf]),
        "xmin": np.zeros(4),
        "x0": np.array([1.0, 0.0, 0.0, 1.0]),
    }
