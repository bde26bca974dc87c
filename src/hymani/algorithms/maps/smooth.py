"""Smooth maps: direct function application and time-T flow maps."""

from typing import Any, Callable, Optional

import numpy as np

from hymani.algorithms.dynamics.base import create_rhs_system
from hymani.algorithms.integrators.rk import AdaptiveRK
from hymani.algorithms.manifold.config import ManifoldConfig
from hymani.algorithms.maps.base import _MapEvaluator
from hymani.algorithms.utils.exceptions import IntegrationFailure


class SmoothMap(_MapEvaluator):
    """Wrap a pure function ``fn(x, params) -> x'``.

    Parameters
    ----------
    fn : callable
        Map to apply.
    params : Any, optional
        Second argument of *fn*.
    name : str, default "smooth"
        Label used in logs.

    Raises
    ------
    IntegrationFailure
        From :meth:`evaluate` when *fn* returns a non-finite image.
    """

    def __init__(self, fn: Callable[[np.ndarray, Any], np.ndarray], params: Any = None, name: str = "smooth"):
        if not callable(fn):
            raise TypeError("fn must be callable")
        super().__init__(params=params, name=name)
        self._fn = fn

    def evaluate(self, x: np.ndarray) -> np.ndarray:
        x = np.asarray(x, dtype=np.float64)
        out = np.asarray(self._fn(x, self._params), dtype=np.float64)
        if out.shape != x.shape:
            raise ValueError(f"{self._name}: image shape {out.shape} differs from {x.shape}")
        if not np.all(np.isfinite(out)):
            raise IntegrationFailure(f"{self._name}: non-finite image")
        return out


class FlowMap(_MapEvaluator):
    """Time-``horizon`` map of a smooth vector field.

    Parameters
    ----------
    vector_field : callable
        ``vector_field(t, x, params) -> dx/dt``.
    horizon : float
        Integration time. A negative value gives the backward map.
    params : Any, optional
        Forwarded to *vector_field*.
    config : :class:`~hymani.algorithms.manifold.config.ManifoldConfig`, optional
        Supplies the integrator order, tolerances and step bound.
    t0 : float, default 0.0
        Initial time of every evaluation.
    """

    def __init__(
        self,
        vector_field: Callable[[float, np.ndarray, Any], np.ndarray],
        horizon: float,
        params: Any = None,
        config: Optional[ManifoldConfig] = None,
        *,
        t0: float = 0.0,
        name: str = "flow",
    ):
        if not callable(vector_field):
            raise TypeError("vector_field must be callable")
        if not np.isfinite(horizon) or horizon == 0.0:
            raise ValueError(f"horizon must be finite and non-zero, got {horizon}")
        super().__init__(params=params, name=name)
        self._vector_field = vector_field
        self._horizon = float(horizon)
        self._t0 = float(t0)
        self._config = config if config is not None else ManifoldConfig()
        self._integrator = AdaptiveRK(
            order=self._config.integrator_order,
            rtol=self._config.rtol,
            atol=self._config.atol,
            max_step=self._config.max_step,
        )

    @property
    def horizon(self) -> float:
        return self._horizon

    @property
    def config(self) -> ManifoldConfig:
        return self._config

    def evaluate(self, x: np.ndarray) -> np.ndarray:
        x = np.asarray(x, dtype=np.float64)
        params = self._params
        vf = self._vector_field
        system = create_rhs_system(lambda t, y: vf(t, y, params), dim=x.shape[0], name=self._name)
        sol = self._integrator.integrate(
            system, x, np.array([self._t0, self._t0 + self._horizon])
        )
        return sol.final_state.copy()
