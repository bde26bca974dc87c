"""hymani: invariant manifolds of smooth and hybrid maps.

The package grows stable and unstable manifolds of saddles by iterating a
map on an adaptively resampled frontier. Maps can be plain functions,
time-T maps of vector fields, or time-T maps of hybrid systems with
switching surfaces and resets.
"""

from hymani.algorithms.manifold import (Curve, GapRecord, Generation,
                                        Interpolant, ManifoldConfig,
                                        ManifoldGrowth, ManifoldResult, Saddle,
                                        grow_manifold, locate_saddle, seed_1d,
                                        seed_2d)
from hymani.algorithms.maps import (FlowMap, HybridEvent, HybridMap,
                                    HybridSystem, HybridTrace, Region,
                                    ResetMap, SmoothMap, SwitchingSurface)
from hymani.algorithms.utils.exceptions import (BackendError,
                                                ConvergenceFailure,
                                                EngineError, HybridMapFailure,
                                                HymaniError,
                                                IntegrationFailure,
                                                LocalRefinementStall,
                                                UndefinedTransition)
from hymani.system.manifold import InvariantManifold

__all__ = [
    "SmoothMap",
    "FlowMap",
    "HybridMap",
    "HybridSystem",
    "HybridEvent",
    "HybridTrace",
    "Region",
    "ResetMap",
    "SwitchingSurface",
    "ManifoldConfig",
    "ManifoldGrowth",
    "ManifoldResult",
    "grow_manifold",
    "locate_saddle",
    "seed_1d",
    "seed_2d",
    "Saddle",
    "Curve",
    "Generation",
    "GapRecord",
    "Interpolant",
    "InvariantManifold",
    "HymaniError",
    "IntegrationFailure",
    "ConvergenceFailure",
    "HybridMapFailure",
    "UndefinedTransition",
    "LocalRefinementStall",
    "BackendError",
    "EngineError",
]
