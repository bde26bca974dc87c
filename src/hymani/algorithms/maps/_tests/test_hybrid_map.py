import numpy as np
import pytest

from hymani.algorithms.manifold.config import ManifoldConfig
from hymani.algorithms.maps import (HybridMap, HybridSystem, Region, ResetMap,
                                    SwitchingSurface)
from hymani.algorithms.utils.exceptions import (HybridMapFailure,
                                                UndefinedTransition)


def _free_flight(t, s, p):
    n = s.shape[0] // 2
    return np.concatenate([s[n:], np.zeros(n)])


def _flip(index):
    def reset(t, s, p):
        out = s.copy()
        out[index] = -out[index]
        return out
    return ResetMap(reset, name=f"flip{index}")


def _billiard(xi=1.0):
    right = SwitchingSurface("right", lambda t, s: s[0] - xi, direction=+1, reset=_flip(1))
    left = SwitchingSurface("left", lambda t, s: s[0] + xi, direction=-1, reset=_flip(1))
    table = Region("table", _free_flight, lambda t, s: abs(s[0]) <= xi, ("right", "left"))
    return HybridSystem([table], [right, left], dim=2)


CFG = ManifoldConfig(epsilon=1e-12, retry_budget=0)


def test_billiard_bounces_in_sequence():
    hmap = HybridMap(_billiard(), 3.5, config=CFG)
    trace = hmap.trace(np.array([0.0, 1.0]))

    assert [e.surface for e in trace.events] == ["right", "left"]
    assert abs(trace.events[0].time - 1.0) < 1e-9
    assert abs(trace.events[1].time - 3.0) < 1e-9
    # velocity flips at each bounce
    assert trace.events[0].state_before[1] == 1.0
    assert trace.events[0].state_after[1] == -1.0
    assert trace.events[1].state_after[1] == 1.0
    assert np.allclose(trace.state, [-0.5, 1.0], atol=1e-8)
    assert trace.region == "table"


def test_billiard_event_state_is_past_the_wall():
    trace = HybridMap(_billiard(), 1.5, config=CFG).trace(np.array([0.0, 1.0]))
    assert trace.events[0].state_before[0] >= 1.0


def test_start_on_wall_is_not_a_crossing():
    trace = HybridMap(_billiard(), 1.0, config=CFG).trace(np.array([1.0, -1.0]))
    assert trace.n_crossings == 0
    assert np.allclose(trace.state, [0.0, -1.0], atol=1e-10)


def test_corner_resets_follow_declaration_order():
    wall_x = SwitchingSurface("wall_x", lambda t, s: s[0] - 1.0, direction=+1, reset=_flip(2))
    wall_y = SwitchingSurface("wall_y", lambda t, s: s[1] - 1.0, direction=+1, reset=_flip(3))
    box = Region(
        "box", _free_flight,
        lambda t, s: s[0] <= 1.0 + 1e-9 and s[1] <= 1.0 + 1e-9,
        ("wall_x", "wall_y"),
    )
    sys = HybridSystem([box], [wall_y, wall_x], dim=4)
    trace = HybridMap(sys, 1.5, config=CFG).trace(np.array([0.0, 0.0, 1.0, 1.0]))

    assert [e.surface for e in trace.events] == ["wall_y", "wall_x"]
    assert trace.events[0].time == trace.events[1].time
    # the second reset sees the output of the first
    assert trace.events[1].state_before[3] == -1.0
    assert np.allclose(trace.state, [0.5, 0.5, -1.0, -1.0], atol=1e-8)


def test_piecewise_regions_switch_vector_field():
    def slow(t, s, p):
        return np.array([1.0])

    def fast(t, s, p):
        return np.array([2.0])

    boundary = SwitchingSurface("boundary", lambda t, s: s[0])
    sys = HybridSystem(
        [
            Region("slow", slow, lambda t, s: s[0] < 0.0, ("boundary",)),
            Region("fast", fast, lambda t, s: s[0] >= 0.0, ("boundary",)),
        ],
        [boundary],
        dim=1,
    )
    trace = HybridMap(sys, 2.0, config=CFG).trace(np.array([-1.0]))

    assert len(trace.events) == 1
    ev = trace.events[0]
    assert (ev.region_before, ev.region_after) == ("slow", "fast")
    assert np.array_equal(ev.state_before, ev.state_after)
    assert abs(trace.state[0] - 2.0) < 1e-8
    assert trace.region == "fast"


def test_crossing_budget_exceeded():
    cfg = ManifoldConfig(max_crossings=3, retry_budget=1)
    hmap = HybridMap(_billiard(xi=0.1), 5.0, config=cfg)
    with pytest.raises(HybridMapFailure) as info:
        hmap(np.array([0.0, 1.0]))
    assert info.value.crossings > 3


def test_leaving_all_regions_is_undefined():
    inside = Region("inside", _free_flight, lambda t, s: abs(s[0]) <= 1.0)
    sys = HybridSystem([inside], [], dim=2)
    with pytest.raises(UndefinedTransition) as info:
        HybridMap(sys, 2.0, config=CFG)(np.array([0.0, 1.0]))
    assert np.isfinite(info.value.time)


def test_initial_state_outside_regions_is_undefined():
    with pytest.raises(UndefinedTransition):
        HybridMap(_billiard(), 1.0, config=CFG)(np.array([5.0, 0.0]))


def test_hybrid_map_is_deterministic():
    hmap = HybridMap(_billiard(), 7.3, config=CFG)
    x = np.array([0.123, 0.77])
    first = hmap.trace(x)
    second = hmap.trace(x)
    assert np.array_equal(first.state, second.state)
    assert [e.time for e in first.events] == [e.time for e in second.events]


def test_system_table_validation():
    table = Region("table", _free_flight, lambda t, s: True, ("missing",))
    with pytest.raises(ValueError):
        HybridSystem([table], [], dim=2)

    a = Region("a", _free_flight, lambda t, s: True)
    with pytest.raises(ValueError):
        HybridSystem([a, a], [], dim=2)
    with pytest.raises(ValueError):
        SwitchingSurface("s", lambda t, s: 0.0, direction=2)


def test_reset_shape_is_checked():
    bad = ResetMap(lambda t, s, p: np.zeros(3))
    with pytest.raises(ValueError):
        bad.apply(0.0, np.zeros(2))
