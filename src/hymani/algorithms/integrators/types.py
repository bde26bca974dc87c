"""Result containers returned by the integrators and the event locator."""

from dataclasses import dataclass
from typing import Callable, NamedTuple, Optional

import numpy as np


class EventResult(NamedTuple):
    """Outcome of an event refinement.

    Attributes
    ----------
    hit : bool
        Whether a crossing was confirmed inside the bracket.
    time : float or None
        Located crossing time (post-crossing side of the bracket).
    state : numpy.ndarray or None
        State at ``time``.
    value : float or None
        Event function value at ``(time, state)``.
    """

    hit: bool
    time: Optional[float]
    state: Optional[np.ndarray]
    value: Optional[float]


@dataclass
class _Solution:
    """Store a discrete solution returned by an integrator.

    Parameters
    ----------
    times : numpy.ndarray, shape (n,)
        Requested output times.
    states : numpy.ndarray, shape (n, d)
        States at ``times``.
    nodes : numpy.ndarray or None
        Accepted step boundaries of the adaptive solver, including both
        end points.
    node_states : numpy.ndarray or None
        States at ``nodes``.
    dense : callable or None
        Continuous extension ``dense(t) -> state`` valid on the
        integration span, available when dense output was requested.
    """

    times: np.ndarray
    states: np.ndarray
    nodes: Optional[np.ndarray] = None
    node_states: Optional[np.ndarray] = None
    dense: Optional[Callable[[float], np.ndarray]] = None

    def __post_init__(self):
        if self.times.ndim != 1:
            raise ValueError("times must be one-dimensional")
        if self.states.shape[0] != self.times.shape[0]:
            raise ValueError(
                f"states has {self.states.shape[0]} rows but times has {self.times.shape[0]} entries"
            )

    @property
    def final_state(self) -> np.ndarray:
        return self.states[-1]
