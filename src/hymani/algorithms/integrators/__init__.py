"""Adaptive integrators and switching-function event location."""

from .base import _Integrator
from .configs import _EventConfig
from .events import check_and_refine_event, locate_first_event
from .rk import AdaptiveRK
from .types import EventResult, _Solution

__all__ = [
    "_Integrator",
    "_EventConfig",
    "AdaptiveRK",
    "EventResult",
    "_Solution",
    "check_and_refine_event",
    "locate_first_event",
]
