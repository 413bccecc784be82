"""
Backend adapters, one per supported solver library.

Each adapter guards the import of its library, so the package imports
fine with none of them installed; availability is decided by the
capability probe, not here.
"""

from typing import Dict

from ..core import Backend
from .base import ALL_VTYPES, BASIC_VTYPES, NATIVE_ERROR, BackendAdapter, NativeSolution
from .cplex import CplexAdapter
from .glpk import GlpkAdapter
from .gurobi import GurobiAdapter
from .mosek import MosekAdapter
from .ot import OTAdapter

ADAPTER_CLASSES = {
    Backend.CPLEX: CplexAdapter,
    Backend.GLPK: GlpkAdapter,
    Backend.GUROBI: GurobiAdapter,
    Backend.MOSEK: MosekAdapter,
    Backend.OT: OTAdapter,
}


def default_adapters() -> Dict[Backend, BackendAdapter]:
    """Return a fresh registry with one adapter instance per backend."""
    return {backend: cls() for backend, cls in ADAPTER_CLASSES.items()}


__all__ = [
    "ALL_VTYPES",
    "BASIC_VTYPES",
    "NATIVE_ERROR",
    "BackendAdapter",
    "NativeSolution",
    "CplexAdapter",
    "GlpkAdapter",
    "GurobiAdapter",
    "MosekAdapter",
    "OTAdapter",
    "ADAPTER_CLASSES",
    "default_adapters",
]
