import numpy as np
import pytest

from hymani.algorithms.dynamics.base import create_rhs_system
from hymani.algorithms.integrators import AdaptiveRK
from hymani.algorithms.utils.exceptions import IntegrationFailure


def _harmonic():
    def rhs(t, y):
        return np.array([y[1], -y[0]])

    return create_rhs_system(rhs, dim=2, name="harmonic")


@pytest.mark.parametrize("order", [5, 8])
def test_harmonic_oscillator_accuracy(order):
    rk = AdaptiveRK(order=order, rtol=1e-10, atol=1e-12)
    t_vals = np.linspace(0.0, 2.0 * np.pi, 5)
    sol = rk.integrate(_harmonic(), np.array([1.0, 0.0]), t_vals)

    assert sol.states.shape == (5, 2)
    assert np.allclose(sol.final_state, [1.0, 0.0], atol=1e-7)
    assert sol.nodes[0] == 0.0
    assert sol.nodes[-1] == pytest.approx(2.0 * np.pi)


def test_backward_integration():
    rk = AdaptiveRK(order=8)
    sol = rk.integrate(_harmonic(), np.array([1.0, 0.0]), np.array([0.0, -np.pi / 2]))
    # x(t) = cos t, v(t) = -sin t
    assert np.allclose(sol.final_state, [0.0, 1.0], atol=1e-8)


def test_max_step_bounds_node_spacing():
    rk = AdaptiveRK(order=8)
    sol = rk.integrate(_harmonic(), np.array([1.0, 0.0]), np.array([0.0, 1.0]), max_step=0.05)
    assert np.max(np.diff(sol.nodes)) <= 0.05 + 1e-14


def test_zero_span_returns_constant_solution():
    rk = AdaptiveRK(order=5)
    y0 = np.array([0.3, -0.2])
    sol = rk.integrate(_harmonic(), y0, np.array([1.0, 1.0]))
    assert np.array_equal(sol.final_state, y0)
    assert np.array_equal(sol.dense(1.0), y0)


def test_dense_output_matches_states():
    rk = AdaptiveRK(order=8)
    sol = rk.integrate(_harmonic(), np.array([1.0, 0.0]), np.array([0.0, 1.0]), dense_output=True)
    assert np.allclose(sol.dense(1.0), sol.final_state)
    assert np.allclose(sol.dense(0.5), [np.cos(0.5), -np.sin(0.5)], atol=1e-7)


def test_non_finite_state_raises():
    def rhs(t, y):
        return np.array([np.nan])

    sys = create_rhs_system(rhs, dim=1, name="nan")
    with pytest.raises(IntegrationFailure):
        AdaptiveRK(order=8).integrate(sys, np.array([0.0]), np.array([0.0, 1.0]))


def test_invalid_inputs():
    rk = AdaptiveRK(order=8)
    with pytest.raises(ValueError):
        rk.integrate(_harmonic(), np.array([1.0]), np.array([0.0, 1.0]))
    with pytest.raises(ValueError):
        AdaptiveRK(order=4)
    with pytest.raises(ValueError):
        AdaptiveRK(order=5, rtol=0.0)
