import numpy as np
import pytest

from hymani.algorithms.manifold.saddle import locate_saddle
from hymani.algorithms.maps import SmoothMap
from hymani.algorithms.utils.exceptions import ConvergenceFailure

HENON_A = 1.4
HENON_B = 0.3


def _henon(x, p):
    a, b = p
    return np.array([1.0 - a * x[0] ** 2 + x[1], b * x[0]])


def _henon_jacobian(x):
    return np.array([[-2.0 * HENON_A * x[0], 1.0], [HENON_B, 0.0]])


def test_linear_saddle():
    A = np.diag([2.0, 0.5])
    smap = SmoothMap(lambda x, p: A @ x)

    unstable = locate_saddle(smap, [0.1, -0.2])
    assert np.allclose(unstable.position, 0.0, atol=1e-10)
    assert unstable.kind == "unstable"
    assert unstable.rates == pytest.approx((2.0,))
    assert abs(unstable.directions[0][0]) == pytest.approx(1.0)

    stable = locate_saddle(smap, [0.1, -0.2], kind="stable")
    assert stable.rates == pytest.approx((0.5,))
    assert abs(stable.directions[0][1]) == pytest.approx(1.0)


@pytest.mark.parametrize("use_jacobian", [False, True])
def test_henon_fixed_point(use_jacobian):
    smap = SmoothMap(_henon, params=(HENON_A, HENON_B))
    jac = _henon_jacobian if use_jacobian else None
    saddle = locate_saddle(smap, [0.6, 0.2], jacobian=jac)

    a, b = HENON_A, HENON_B
    x_star = (-(1.0 - b) + np.sqrt((1.0 - b) ** 2 + 4.0 * a)) / (2.0 * a)
    assert np.allclose(saddle.position, [x_star, b * x_star], atol=1e-10)

    lam = -a * x_star - np.sqrt((a * x_star) ** 2 + b)
    assert saddle.rates[0] == pytest.approx(lam, rel=1e-6)
    v = saddle.directions[0]
    J = _henon_jacobian(saddle.position)
    assert np.allclose(J @ v, lam * v, atol=1e-6)
    assert np.linalg.norm(v) == pytest.approx(1.0)


def test_no_fixed_point_raises():
    smap = SmoothMap(lambda x, p: x + 1.0)
    with pytest.raises(ConvergenceFailure):
        locate_saddle(smap, [0.0, 0.0])


def test_no_unstable_direction_raises():
    smap = SmoothMap(lambda x, p: 0.5 * x)
    with pytest.raises(ConvergenceFailure):
        locate_saddle(smap, [0.1, 0.1])


def test_complex_eigenvalues_are_not_directions():
    c, s = np.cos(0.7), np.sin(0.7)
    R = 2.0 * np.array([[c, -s], [s, c]])
    smap = SmoothMap(lambda x, p: R @ x)
    with pytest.raises(ConvergenceFailure):
        locate_saddle(smap, [0.1, 0.1])


def test_invalid_kind():
    with pytest.raises(ValueError):
        locate_saddle(SmoothMap(lambda x, p: 2.0 * x), [0.0], kind="neutral")
