"""HDF5 persistence helpers."""

from .manifold import load_manifold, save_manifold

__all__ = ["save_manifold", "load_manifold"]
