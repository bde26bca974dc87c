"""Growth of invariant manifolds of smooth and hybrid maps."""

from .base import ManifoldGrowth, grow_manifold
from .config import ManifoldConfig
from .interpolation import Interpolant
from .saddle import locate_saddle
from .seeding import ring_preimage, seed_1d, seed_2d
from .types import (Curve, GapRecord, Generation, ManifoldResult, Saddle,
                    _ManifoldProblem)

__all__ = [
    "ManifoldGrowth",
    "grow_manifold",
    "ManifoldConfig",
    "Interpolant",
    "locate_saddle",
    "seed_1d",
    "seed_2d",
    "ring_preimage",
    "Curve",
    "GapRecord",
    "Generation",
    "ManifoldResult",
    "Saddle",
    "_ManifoldProblem",
]
