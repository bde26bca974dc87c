import numpy as np
import pytest

from hymani.algorithms.dynamics.base import create_rhs_system
from hymani.algorithms.integrators import AdaptiveRK
from hymani.algorithms.integrators.configs import _EventConfig
from hymani.algorithms.integrators.events import (_direction_allows,
                                                  _first_crossing_index,
                                                  check_and_refine_event,
                                                  locate_first_event)


def _unit_slope_solution(y0, tf, slope=1.0, max_step=np.inf):
    def rhs(t, y):
        return np.array([slope])

    sys = create_rhs_system(rhs, dim=1, name="slope")
    rk = AdaptiveRK(order=8, max_step=max_step)
    return rk.integrate(sys, np.array([y0]), np.array([0.0, tf]), dense_output=True)


def _plane(t, y):
    return float(y[0] - 1.0)


def test_direction_filter():
    assert _direction_allows(-1.0, 1.0, 0)
    assert _direction_allows(-1.0, 1.0, 1)
    assert not _direction_allows(-1.0, 1.0, -1)
    assert _direction_allows(1.0, -1.0, -1)
    # Right endpoint on the surface counts, left endpoint does not
    assert _direction_allows(-1.0, 0.0, 1)
    assert not _direction_allows(0.0, 1.0, 1)
    assert not _direction_allows(0.5, 1.0, 0)


def test_first_crossing_index():
    vals = np.array([-2.0, -1.0, 0.5, -0.5])
    assert _first_crossing_index(vals, 0) == 1
    assert _first_crossing_index(vals, -1) == 2
    assert _first_crossing_index(np.array([1.0, 2.0]), 0) == -1


def test_positive_crossing_is_post_side():
    # y(t) = t, event at y = 1
    sol = _unit_slope_solution(0.0, 2.0, max_step=0.1)
    cfg = _EventConfig(direction=+1, tol=1e-12)
    ev = locate_first_event(_plane, sol.nodes, sol.node_states, sol.dense, cfg)

    assert ev.hit
    assert abs(ev.time - 1.0) < 1e-10
    assert ev.time >= 1.0 - 1e-14
    assert ev.value >= 0.0


def test_negative_crossing():
    sol = _unit_slope_solution(1.5, 2.0, slope=-1.0)
    cfg = _EventConfig(direction=-1, tol=1e-12)
    ev = locate_first_event(_plane, sol.nodes, sol.node_states, sol.dense, cfg)

    assert ev.hit
    assert abs(ev.time - 0.5) < 1e-10
    assert ev.value <= 0.0


def test_strict_direction_no_hit():
    sol = _unit_slope_solution(0.0, 1.5)
    cfg = _EventConfig(direction=-1)
    ev = locate_first_event(_plane, sol.nodes, sol.node_states, sol.dense, cfg)
    assert not ev.hit
    assert ev.time is None


def test_start_on_plane_is_not_a_crossing():
    sol = _unit_slope_solution(1.0, 0.5)
    cfg = _EventConfig(direction=0)
    ev = locate_first_event(_plane, sol.nodes, sol.node_states, sol.dense, cfg)
    assert not ev.hit


def test_check_and_refine_with_propagation():
    # Linear interpolant whose state is slightly off; propagation corrects it
    def dense(t):
        return np.array([t - 1e-6])

    def propagate(t):
        return np.array([t])

    cfg = _EventConfig(direction=0, tol=1e-12)
    ev = check_and_refine_event(
        _plane, dense, 0.0, np.array([0.0]), 2.0, np.array([2.0]), cfg, propagate=propagate
    )
    assert ev.hit
    assert ev.state[0] == ev.time


@pytest.mark.parametrize("tol", [1e-4, 1e-8, 1e-12])
def test_time_error_within_tolerance(tol):
    sol = _unit_slope_solution(0.0, 3.0)
    cfg = _EventConfig(direction=0, tol=tol)
    ev = locate_first_event(_plane, sol.nodes, sol.node_states, sol.dense, cfg)
    assert ev.hit
    assert 1.0 - 1e-12 <= ev.time <= 1.0 + tol + 1e-12
