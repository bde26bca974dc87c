import numpy as np
import pytest

from hymani.algorithms.manifold.backend import _GrowthBackend
from hymani.algorithms.manifold.config import ManifoldConfig
from hymani.algorithms.manifold.geometry import _turning_angles
from hymani.algorithms.manifold.refine import _AdaptiveRefiner
from hymani.algorithms.manifold.types import Curve
from hymani.algorithms.maps import SmoothMap
from hymani.algorithms.utils.exceptions import IntegrationFailure


def _line(n, spacing):
    x = np.arange(n) * spacing
    return Curve.from_points(np.column_stack([x, np.zeros(n)]))


def _mapper_for(fn):
    smap = SmoothMap(fn)

    def mapper(points):
        return _GrowthBackend.map_points(smap, points, n_workers=1)

    return mapper


def _refine(cfg, pre, fn, **kwargs):
    mapper = _mapper_for(fn)
    images, failed = mapper(pre.points)
    return _AdaptiveRefiner(cfg).refine_curve(pre, images, failed, mapper, generation=1, **kwargs)


def test_compliant_curve_is_left_untouched():
    cfg = ManifoldConfig(d=0.05)
    pre = _line(11, 0.01)
    ref = _refine(cfg, pre, lambda x, p: x.copy())

    assert ref.inserted == 0
    assert ref.removed == 0
    assert not ref.stalls and not ref.gaps
    assert np.array_equal(ref.curve.points, pre.points)
    assert np.array_equal(ref.source_params, pre.params)


def test_stretched_line_is_resampled_below_d():
    cfg = ManifoldConfig(d=0.05)
    pre = _line(6, 0.04)
    ref = _refine(cfg, pre, lambda x, p: 3.0 * x)

    assert ref.inserted > 0
    assert ref.curve.chords.max() <= cfg.d
    assert ref.curve.points[-1, 0] == pytest.approx(0.6)
    # midpoints are taken in pre-image parameter space
    assert np.all(np.diff(ref.source_params) > 0.0)


@pytest.mark.parametrize("seed", [0, 1, 2, 3])
def test_bounds_hold_on_smooth_maps(seed):
    rng = np.random.default_rng(seed)
    amp = rng.uniform(0.2, 0.8)
    freq = rng.uniform(1.0, 3.0)
    cfg = ManifoldConfig(d=0.05, amax=0.3)

    def fn(x, p):
        return np.array([2.0 * x[0], x[1] + amp * np.sin(freq * x[0])])

    ref = _refine(cfg, _line(41, 0.025), fn)

    assert not ref.stalls
    pts = ref.curve.points
    assert ref.curve.chords.max() <= cfg.d
    assert ref.curve.chords.min() >= cfg.dsmin
    assert _turning_angles(np.ascontiguousarray(pts), False).max() <= cfg.amax


def test_kink_records_stall():
    cfg = ManifoldConfig(d=0.05, dsmin=1e-6, amax=0.3)

    def fn(x, p):
        return np.array([x[0], abs(x[0] - 0.5)])

    ref = _refine(cfg, _line(101, 0.01), fn)

    assert ref.stalls
    assert all(s.generation == 1 for s in ref.stalls)
    assert ref.curve.chords.max() <= cfg.d
    assert ref.curve.chords.min() >= cfg.dsmin


def test_failing_midpoint_becomes_gap():
    cfg = ManifoldConfig(d=0.05)

    def fn(x, p):
        if abs(x[0] - 0.02) < 0.005:
            raise IntegrationFailure("blow-up")
        return 3.0 * x

    ref = _refine(cfg, _line(6, 0.04), fn)

    assert len(ref.gaps) == 1
    gap = ref.gaps[0]
    assert gap.error == "IntegrationFailure"
    assert gap.param == pytest.approx(0.1)
    assert gap.point[0] == pytest.approx(0.02)
    # the unresolved segment stays, everything else is refined
    chords = ref.curve.chords
    assert chords[0] == pytest.approx(0.12)
    assert chords[1:].max() <= cfg.d


def test_failed_frontier_points_are_dropped():
    cfg = ManifoldConfig(d=0.05)
    pre = _line(11, 0.01)
    images = pre.points.copy()
    failed = {4: IntegrationFailure("lost")}
    ref = _AdaptiveRefiner(cfg).refine_curve(
        pre, images, failed, _mapper_for(lambda x, p: x.copy()), generation=2, ring=0,
    )

    assert len(ref.gaps) == 1
    assert ref.gaps[0].generation == 2
    assert ref.gaps[0].param == pytest.approx(pre.params[4])
    assert len(ref.curve) == 10


def test_short_chord_is_merged():
    cfg = ManifoldConfig(d=0.05, dsmin=1e-6)
    pts = np.array([[0.0, 0.0], [0.01, 0.0], [0.01 + 1e-8, 0.0], [0.02, 0.0], [0.03, 0.0]])
    pre = Curve.from_points(pts)
    ref = _refine(cfg, pre, lambda x, p: x.copy())

    assert ref.removed == 1
    assert len(ref.curve) == 4
    assert ref.curve.chords.min() >= cfg.dsmin


def test_collapsed_curve_returns_none():
    cfg = ManifoldConfig(d=0.05)
    pre = _line(3, 0.01)
    failed = {0: IntegrationFailure("a"), 1: IntegrationFailure("b")}
    ref = _AdaptiveRefiner(cfg).refine_curve(
        pre, pre.points, failed, _mapper_for(lambda x, p: x.copy()), generation=1,
    )
    assert ref.curve is None
    assert len(ref.gaps) == 2


def test_ring_refinement_wraps_around():
    cfg = ManifoldConfig(d=0.05, amax=0.3)
    theta = np.linspace(0.0, 2.0 * np.pi, 24, endpoint=False)
    ring = Curve.from_points(0.1 * np.column_stack([np.cos(theta), np.sin(theta)]), closed=True)
    ref = _refine(cfg, ring, lambda x, p: 2.0 * x)

    assert ref.curve.closed
    assert len(ref.curve) == 48
    assert ref.curve.chords.max() <= cfg.d
    radii = np.linalg.norm(ref.curve.points, axis=1)
    assert np.allclose(radii, 0.2, rtol=1e-3)
    assert np.all((ref.source_params >= 0.0) & (ref.source_params < 1.0))
