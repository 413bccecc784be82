"""
Problem normalizer: turn any supported calling convention into a
field-complete :class:`~miqps.core.Problem` plus :class:`~miqps.core.Options`.

Two conventions are accepted:

* the positional list ``(H, c, A, l, u, xmin, xmax, x0, vtype, opt)`` whose
  trailing entries may be omitted (keyword fields of the same names are also
  accepted), and
* a single descriptor, either a mapping or an object with attributes named
  after those fields, optionally followed by an ``opt`` keyword.

``None`` and empty values count as absent. Only ``c`` (or ``H``, from which a
zero ``c`` is inferred), ``A`` and one of ``l``/``u`` are required.
"""

from __future__ import annotations

from typing import Any, Dict, Mapping, Tuple

import numpy as np

from .core import Options, Problem, VType
from .errors import StructuralError
from .utils import as_float_array, coerce_matrix, coerce_vector, is_absent

FIELDS = ("H", "c", "A", "l", "u", "xmin", "xmax", "x0", "vtype", "opt")


def _is_descriptor(value: Any) -> bool:
    if isinstance(value, Mapping):
        return True
    if isinstance(value, (np.ndarray, list, tuple)):
        return False
    return any(hasattr(value, name) for name in ("c", "A"))


def _from_descriptor(descriptor: Any) -> Dict[str, Any]:
    if isinstance(descriptor, Mapping):
        unknown = set(descriptor) - set(FIELDS)
        if unknown:
            raise StructuralError(f"unknown problem fields: {', '.join(sorted(unknown))}")
        return {name: descriptor.get(name) for name in FIELDS}
    return {name: getattr(descriptor, name, None) for name in FIELDS}


def _gather(args: Tuple[Any, ...], fields: Dict[str, Any]) -> Dict[str, Any]:
    if len(args) == 1 and set(fields) <= {"opt"} and _is_descriptor(args[0]):
        values = _from_descriptor(args[0])
        if "opt" in fields:
            if not is_absent(values["opt"]):
                raise StructuralError("opt given both in the problem and by keyword")
            values["opt"] = fields["opt"]
        return values
    if len(args) > len(FIELDS):
        raise StructuralError(
            f"expected at most {len(FIELDS)} positional arguments, got {len(args)}"
        )
    unknown = set(fields) - set(FIELDS)
    if unknown:
        raise StructuralError(f"unknown problem fields: {', '.join(sorted(unknown))}")
    values: Dict[str, Any] = dict.fromkeys(FIELDS)
    for name, value in zip(FIELDS, args):
        values[name] = value
    for name, value in fields.items():
        if name in FIELDS[: len(args)]:
            raise StructuralError(f"{name} given both positionally and by keyword")
        values[name] = value
    return values


def parse_vtype(vtype: Any, n: int) -> Tuple[VType, ...]:
    """
    Expand a vtype specification into one :class:`VType` per variable.

    Accepts a string of tag letters (``"CCBI"``), a single tag that applies to
    every variable, or a sequence of letters / :class:`VType` members.
    """

    if is_absent(vtype):
        return (VType.CONTINUOUS,) * n
    if isinstance(vtype, str):
        tags = list(vtype)
    elif isinstance(vtype, VType):
        tags = [vtype]
    else:
        tags = list(np.asarray(vtype, dtype=object).reshape(-1))
    try:
        parsed = tuple(VType(t.upper()) if isinstance(t, str) else VType(t) for t in tags)
    except ValueError as exc:
        raise StructuralError(
            f"invalid variable type in {vtype!r}; allowed values are C, B, I, S, N"
        ) from exc
    if len(parsed) == 1:
        return parsed * n
    if len(parsed) != n:
        raise StructuralError(f"vtype has length {len(parsed)}, expected 1 or {n}")
    return parsed


def build_problem(values: Mapping[str, Any]) -> Problem:
    """Validate raw field values and copy them into a :class:`Problem`."""

    h_in = values.get("H")
    c_in = values.get("c")

    if is_absent(c_in):
        if is_absent(h_in):
            raise StructuralError("c is required (or H, to infer the problem size)")
        n = coerce_matrix(h_in, "H").shape[0]
        c = np.zeros(n)
    else:
        c = as_float_array(c_in, "c").reshape(-1).copy()
        n = c.shape[0]

    H = None
    if not is_absent(h_in):
        H = coerce_matrix(h_in, "H", cols=n)
        if H.shape[0] != n:
            raise StructuralError(f"H must be {n} x {n}, got {H.shape[0]} x {H.shape[1]}")

    if values.get("A") is None:
        raise StructuralError("A is required")
    A = coerce_matrix(values["A"], "A", cols=n)
    m = A.shape[0]

    l_in, u_in = values.get("l"), values.get("u")
    if m > 0 and is_absent(l_in) and is_absent(u_in):
        raise StructuralError("at least one of l or u is required")

    return Problem(
        H=H,
        c=c,
        A=A,
        l=coerce_vector(l_in, m, "l", default=-np.inf),
        u=coerce_vector(u_in, m, "u", default=np.inf),
        xmin=coerce_vector(values.get("xmin"), n, "xmin", default=-np.inf),
        xmax=coerce_vector(values.get("xmax"), n, "xmax", default=np.inf),
        x0=coerce_vector(values.get("x0"), n, "x0", default=0.0),
        vtype=parse_vtype(values.get("vtype"), n),
    )


def normalize_problem(*args: Any, **fields: Any) -> Tuple[Problem, Options]:
    """
    Normalize positional, keyword or descriptor input.

    Returns:
        The canonical problem and the resolved options record.

    Raises:
        StructuralError: If a required field is missing, a dimension is
            inconsistent or a variable type tag is unknown.

    Example:
        >>> problem, opt = normalize_problem(None, [1.0, 2.0], [[1.0, 1.0]], [1.0], [1.0])
        >>> problem.n, problem.m
        (2, 1)
    """

    if len(args) == 1 and isinstance(args[0], Problem):
        unknown = set(fields) - {"opt"}
        if unknown:
            raise StructuralError(f"unexpected fields with a Problem: {', '.join(sorted(unknown))}")
        opt = fields.get("opt")
        return args[0], Options.from_mapping(None if is_absent(opt) else opt)

    values = _gather(args, fields)
    opt = values.get("opt")
    return build_problem(values), Options.from_mapping(None if is_absent(opt) else opt)


__all__ = ["FIELDS", "normalize_problem", "build_problem", "parse_vtype"]
