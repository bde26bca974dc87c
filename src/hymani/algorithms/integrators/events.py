"""Event detection and refinement on top of the adaptive integrators.

Notes
-----
Detection is a cheap sign test of the switching function at the accepted
step nodes of a solution. Refinement only runs once a sign change is found
and bisects the switching function composed with the dense output of the
step. The located time always lies on the post-crossing side of the root,
so the state handed to a reset map has actually crossed the surface.

Starting exactly on a surface is not a crossing: a step whose first value
is zero is skipped, while a step ending exactly on zero is reported.
"""
from typing import Callable, Optional, Tuple

import numpy as np
from numba import njit

from hymani.algorithms.integrators.configs import _EventConfig
from hymani.algorithms.integrators.types import EventResult
from hymani.algorithms.utils.config import FASTMATH


@njit(cache=False, fastmath=FASTMATH)
def _direction_allows(g0: float, g1: float, direction: int) -> bool:
    """Whether the move from g0 to g1 is a crossing in the wanted direction.

    A direction of 0 accepts both senses, +1 only rising and -1 only falling.
    A zero at the left endpoint is never a crossing; a zero at the right
    endpoint is.
    """
    if g0 == 0.0:
        return False
    if g0 * g1 > 0.0:
        return False
    if direction == 0:
        return True
    if direction > 0:
        return g0 < 0.0
    return g0 > 0.0


@njit(cache=False, fastmath=FASTMATH)
def _first_crossing_index(values: np.ndarray, direction: int) -> int:
    """Return the index of the first step whose end values bracket a crossing.

    ``values[i]`` is the switching function at node ``i``; step ``i`` spans
    nodes ``i`` and ``i + 1``. Returns -1 when no step qualifies.
    """
    for i in range(values.shape[0] - 1):
        if _direction_allows(values[i], values[i + 1], direction):
            return i
    return -1


def _refine_bisection(
    g: Callable[[float, np.ndarray], float],
    dense: Callable[[float], np.ndarray],
    ta: float,
    ga: float,
    tb: float,
    gb: float,
    tol: float,
    max_iter: int,
) -> Tuple[bool, float, np.ndarray, float]:
    """Shrink the bracket [ta, tb] around a switching time by bisection.

    The left end keeps the pre-crossing sign of ``ga``; the right end is
    on or past the surface. Iteration stops once the bracket is shorter
    than *tol* and the right end is returned.
    """
    if ga == 0.0 or ga * gb > 0.0:
        return False, 0.0, dense(ta), ga

    sign0 = 1.0 if ga > 0.0 else -1.0
    a_t, b_t = ta, tb
    b_g = gb

    for _ in range(max_iter):
        if abs(b_t - a_t) <= tol:
            break
        mid_t = 0.5 * (a_t + b_t)
        g_mid = float(g(mid_t, dense(mid_t)))
        if sign0 * g_mid > 0.0:
            a_t = mid_t
        else:
            b_t = mid_t
            b_g = g_mid

    return True, b_t, dense(b_t), b_g


def check_and_refine_event(
    g: Callable[[float, np.ndarray], float],
    dense: Callable[[float], np.ndarray],
    t0: float,
    y0: np.ndarray,
    t1: float,
    y1: np.ndarray,
    cfg: _EventConfig,
    *,
    propagate: Optional[Callable[[float], np.ndarray]] = None,
) -> EventResult:
    """Detect a sign change between (t0, y0) and (t1, y1) and refine it.

    Parameters
    ----------
    g : callable
        Switching function ``g(t, y) -> float``.
    dense : callable
        Continuous extension of the flow over ``[t0, t1]``.
    t0, y0, t1, y1
        Step end points.
    cfg : :class:`~hymani.algorithms.integrators.configs._EventConfig`
        Direction filter and bisection tolerance.
    propagate : callable, optional
        ``propagate(t) -> state`` re-integrating from the start of the
        step. When given, it replaces the dense state at the located time
        provided the result is still on the post-crossing side.

    Returns
    -------
    :class:`~hymani.algorithms.integrators.types.EventResult`
    """
    g0 = float(g(t0, y0))
    g1 = float(g(t1, y1))
    if not _direction_allows(g0, g1, int(cfg.direction)):
        return EventResult(False, None, None, None)

    ok, te, ye, ge = _refine_bisection(
        g, dense, float(t0), g0, float(t1), g1, float(cfg.tol), int(cfg.max_iter)
    )
    if not ok:
        return EventResult(False, None, None, None)

    if propagate is not None:
        y_ref = np.asarray(propagate(te), dtype=np.float64)
        g_ref = float(g(te, y_ref))
        if g0 * g_ref <= 0.0:
            ye, ge = y_ref, g_ref
    return EventResult(True, float(te), np.asarray(ye, dtype=np.float64), float(ge))


def locate_first_event(
    g: Callable[[float, np.ndarray], float],
    nodes: np.ndarray,
    node_states: np.ndarray,
    dense: Callable[[float], np.ndarray],
    cfg: _EventConfig,
    *,
    propagate: Optional[Callable[[float, float, np.ndarray], np.ndarray]] = None,
) -> EventResult:
    """Return the earliest crossing of *g* along an adaptive solution.

    Parameters
    ----------
    g : callable
        Switching function ``g(t, y) -> float``.
    nodes, node_states : numpy.ndarray
        Accepted step grid of the solution and the states on it.
    dense : callable
        Continuous extension valid over the whole grid.
    cfg : :class:`~hymani.algorithms.integrators.configs._EventConfig`
        Direction filter and tolerance.
    propagate : callable, optional
        ``propagate(t_start, y_start, t) -> state`` used to re-integrate
        the located state from the start of the bracketing step.
    """
    values = np.array([g(t, y) for t, y in zip(nodes, node_states)], dtype=np.float64)
    idx = _first_crossing_index(values, int(cfg.direction))
    if idx < 0:
        return EventResult(False, None, None, None)

    t0 = float(nodes[idx])
    y0 = node_states[idx]
    step_propagate = None
    if propagate is not None:
        def step_propagate(t: float) -> np.ndarray:
            return propagate(t0, y0, t)

    return check_and_refine_event(
        g, dense, t0, y0, float(nodes[idx + 1]), node_states[idx + 1], cfg,
        propagate=step_propagate,
    )
