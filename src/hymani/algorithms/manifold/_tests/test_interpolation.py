import numpy as np
import pytest

from hymani.algorithms.manifold.interpolation import Interpolant
from hymani.algorithms.manifold.types import Curve


def _parabola(n):
    s = np.linspace(0.0, 1.0, n)
    return np.column_stack([s, s**2]), s


@pytest.mark.parametrize("scheme", ["linear", "cubic", "pchip"])
def test_interpolant_passes_through_samples(scheme):
    pts, s = _parabola(7)
    interp = Interpolant(pts, s, scheme=scheme)
    assert np.allclose(interp(s), pts)


def test_cubic_reproduces_polynomial():
    pts, s = _parabola(6)
    interp = Interpolant(pts, s, scheme="cubic")
    u = np.linspace(0.0, 1.0, 37)
    assert np.allclose(interp(u), np.column_stack([u, u**2]), atol=1e-12)


def test_linear_is_piecewise_linear():
    pts = np.array([[0.0, 0.0], [1.0, 2.0], [3.0, 2.0]])
    interp = Interpolant(pts, [0.0, 0.5, 1.0], scheme="linear")
    assert np.allclose(interp(0.25), [0.5, 1.0])
    assert np.allclose(interp(0.75), [2.0, 2.0])


def test_scalar_returns_single_point():
    pts, s = _parabola(5)
    out = Interpolant(pts, s)(0.3)
    assert out.shape == (2,)


def test_open_curve_rejects_outside_domain():
    pts, s = _parabola(5)
    interp = Interpolant(pts, s)
    with pytest.raises(ValueError):
        interp(1.01)
    with pytest.raises(ValueError):
        interp(-0.5)
    # endpoints are inside
    assert np.allclose(interp(1.0), [1.0, 1.0])


def test_ring_is_periodic():
    theta = np.linspace(0.0, 2.0 * np.pi, 16, endpoint=False)
    ring = Curve.from_points(np.column_stack([np.cos(theta), np.sin(theta)]), closed=True)
    interp = ring.interpolant("cubic")

    assert interp.closed
    assert np.allclose(interp(0.3), interp(1.3))
    assert np.allclose(interp(-0.2), interp(0.8))
    # closing segment ends back on the first sample
    assert np.allclose(interp(1.0), ring.points[0])
    u = np.linspace(0.0, 1.0, 50)
    assert np.allclose(np.linalg.norm(interp(u), axis=1), 1.0, atol=1e-3)


def test_few_samples_fall_back_to_linear():
    pts = np.array([[0.0, 0.0], [1.0, 1.0]])
    interp = Interpolant(pts, [0.0, 1.0], scheme="cubic")
    assert np.allclose(interp(0.5), [0.5, 0.5])


def test_invalid_input():
    pts, s = _parabola(5)
    with pytest.raises(ValueError):
        Interpolant(pts, s, scheme="quintic")
    with pytest.raises(ValueError):
        Interpolant(pts, s[::-1])
    with pytest.raises(ValueError):
        Interpolant(pts[:1], s[:1])
    with pytest.raises(ValueError):
        Interpolant(pts, s, closed=True)
