"""
Numerical helper routines shared by the normalizer and the backend adapters.

Backends disagree on how a two-sided row ``l <= a^T x <= u`` is written down
and on the sign of the dual that comes back. The helpers here turn ranged
rows into equality/upper/lower groups and fold signed duals back into the
nonnegative ``mu_l``/``mu_u`` pair used by :class:`miqps.core.Lambda`.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple

import numpy as np
import scipy.sparse as sp

from .errors import StructuralError


def is_absent(value: object) -> bool:
    """Return True for ``None`` and for empty array-likes."""

    if value is None:
        return True
    if sp.issparse(value):
        return value.shape[0] * value.shape[1] == 0
    if isinstance(value, str):
        return len(value) == 0
    try:
        return np.size(value) == 0
    except (TypeError, ValueError):
        return False


def as_float_array(value: object, name: str) -> np.ndarray:
    """Convert ``value`` with ``np.asarray``; non-numeric input is a StructuralError."""

    try:
        return np.asarray(value, dtype=float)
    except (TypeError, ValueError) as exc:
        raise StructuralError(f"{name} must be numeric: {exc}") from exc


def coerce_vector(
    vec: object,
    n: int,
    name: str,
    default: Optional[float] = None,
) -> np.ndarray:
    """
    Return ``vec`` as a fresh float vector of length ``n``.

    Scalars broadcast to all ``n`` entries. An absent value is replaced by
    ``default`` when one is given.

    Raises:
        StructuralError: If the vector is missing without a default, is not
            numeric, or its length is not ``n``.
    """

    if is_absent(vec):
        if default is None:
            raise StructuralError(f"{name} is required")
        return np.full(n, float(default))
    arr = as_float_array(vec, name)
    if arr.ndim == 0:
        arr = np.full(n, float(arr))
    arr = arr.reshape(-1)
    if arr.shape[0] != n:
        raise StructuralError(f"{name} has length {arr.shape[0]}, expected {n}")
    return arr.copy()


def coerce_matrix(mat: object, name: str, cols: Optional[int] = None) -> sp.csr_matrix:
    """
    Return ``mat`` as a CSR float matrix, checking the column count.

    One-dimensional input is read as a single row; an empty input becomes a
    ``(0, cols)`` matrix.
    """

    if is_absent(mat):
        return sp.csr_matrix((0, cols or 0))
    if sp.issparse(mat):
        arr = sp.csr_matrix(mat, dtype=float)
    else:
        dense = as_float_array(mat, name)
        if dense.ndim == 1:
            dense = dense.reshape(1, -1)
        if dense.ndim != 2:
            raise StructuralError(f"{name} must be two-dimensional")
        arr = sp.csr_matrix(dense)
    if cols is not None and arr.shape[1] != cols:
        raise StructuralError(f"{name} has {arr.shape[1]} columns, expected {cols}")
    return arr


@dataclass(frozen=True)
class RowPartition:
    """
    Indices of the rows of ``l <= A x <= u`` grouped by finite sides.

    ``eq`` holds rows with ``l == u``. ``upper`` and ``lower`` hold the
    remaining rows with a finite ``u`` or ``l`` respectively, so a ranged row
    appears in both. Rows free on both sides appear in neither.
    """

    eq: np.ndarray
    upper: np.ndarray
    lower: np.ndarray


def partition_rows(l: np.ndarray, u: np.ndarray) -> RowPartition:
    eq = np.isfinite(l) & np.isfinite(u) & (l == u)
    upper = np.isfinite(u) & ~eq
    lower = np.isfinite(l) & ~eq
    return RowPartition(
        eq=np.flatnonzero(eq),
        upper=np.flatnonzero(upper),
        lower=np.flatnonzero(lower),
    )


def split_signed(values: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    """
    Split a signed dual vector into its (positive, negative) magnitudes.

    For a minimization, a positive dual on a row or column means its lower
    side is binding; a negative one means the upper side is.
    """

    values = np.asarray(values, dtype=float).reshape(-1)
    return np.maximum(values, 0.0), np.maximum(-values, 0.0)


def bound_key(lo: float, hi: float) -> str:
    """
    Classify a pair of bounds as ``"fr"``, ``"lo"``, ``"up"``, ``"ra"`` or ``"fx"``.
    """

    lo_finite = np.isfinite(lo)
    hi_finite = np.isfinite(hi)
    if lo_finite and hi_finite:
        return "fx" if lo == hi else "ra"
    if lo_finite:
        return "lo"
    if hi_finite:
        return "up"
    return "fr"


def binary_bounds(
    xmin: np.ndarray, xmax: np.ndarray, mask: np.ndarray
) -> Tuple[np.ndarray, np.ndarray]:
    """Intersect the bounds of the ``mask`` variables with ``[0, 1]``."""

    lo = xmin.copy()
    hi = xmax.copy()
    lo[mask] = np.maximum(lo[mask], 0.0)
    hi[mask] = np.minimum(hi[mask], 1.0)
    return lo, hi


def relative_gap(a: float, b: float) -> float:
    return abs(a - b) / max(abs(a), 1.0)


__all__ = [
    "is_absent",
    "as_float_array",
    "coerce_vector",
    "coerce_matrix",
    "RowPartition",
    "partition_rows",
    "split_signed",
    "bound_key",
    "binary_bounds",
    "relative_gap",
]
