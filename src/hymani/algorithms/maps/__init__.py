"""Map evaluators: smooth maps, flow maps and hybrid-system flow maps."""

from .base import _MapEvaluator
from .hybrid import HybridMap
from .smooth import FlowMap, SmoothMap
from .types import (HybridEvent, HybridSystem, HybridTrace, Region, ResetMap,
                    SwitchingSurface)

__all__ = [
    "_MapEvaluator",
    "SmoothMap",
    "FlowMap",
    "HybridMap",
    "HybridSystem",
    "HybridEvent",
    "HybridTrace",
    "Region",
    "ResetMap",
    "SwitchingSurface",
]
