"""User-facing containers of computed manifolds."""

from .manifold import InvariantManifold

__all__ = ["InvariantManifold"]
