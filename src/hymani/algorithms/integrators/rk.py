"""Provide the adaptive Runge-Kutta integrators used by the flow maps.

The Dormand-Prince pairs are driven through :func:`scipy.integrate.solve_ivp`
so arbitrary Python vector fields (region fields of hybrid systems, user
closures over parameters) can be integrated without compilation. The
accepted step grid is exposed on the returned solution because the hybrid
evaluator scans it for switching-function sign changes.

References
----------
Hairer, E.; Norsett, S.; Wanner, G. (1993). "Solving Ordinary Differential
Equations I".

Dormand, J. R.; Prince, P. J. (1980). "A family of embedded Runge-Kutta
formulas".
"""

from typing import Optional

import numpy as np
from scipy.integrate import solve_ivp

from hymani.algorithms.dynamics.base import _DynamicalSystemProtocol
from hymani.algorithms.integrators.base import _Integrator
from hymani.algorithms.integrators.types import _Solution
from hymani.algorithms.utils.config import TOL
from hymani.algorithms.utils.exceptions import IntegrationFailure


class _AdaptiveStepRK(_Integrator):
    """Embedded Runge-Kutta pair with error-controlled steps.

    Parameters
    ----------
    name : str, default "AdaptiveRK"
        Label of the instance.
    rtol, atol : float, optional
        Local error tolerances, both :data:`~hymani.algorithms.utils.config.TOL`
        unless given.
    max_step : float, optional
        Step cap applied to every call; unbounded by default.
    """

    _method: str = ""
    _p: int = 0

    def __init__(self,
                 name: str = "AdaptiveRK",
                 rtol: float = TOL,
                 atol: float = TOL,
                 max_step: float = np.inf,
                 **options):
        super().__init__(name, **options)
        if rtol <= 0.0 or atol <= 0.0:
            raise ValueError("rtol and atol must be positive")
        if max_step <= 0.0:
            raise ValueError("max_step must be positive")
        self._rtol = float(rtol)
        self._atol = float(atol)
        self._max_step = float(max_step)

    @property
    def order(self) -> int:
        """Return the formal order of accuracy of the method."""
        return self._p

    @property
    def rtol(self) -> float:
        return self._rtol

    @property
    def atol(self) -> float:
        return self._atol

    @property
    def max_step(self) -> float:
        return self._max_step

    def integrate(
        self,
        system: _DynamicalSystemProtocol,
        y0: np.ndarray,
        t_vals: np.ndarray,
        *,
        dense_output: bool = False,
        max_step: Optional[float] = None,
    ) -> _Solution:
        """Integrate *system* from ``t_vals[0]`` to ``t_vals[-1]``.

        The solution is reported at every entry of *t_vals*; the accepted
        step grid is stored in ``nodes`` / ``node_states``.
        """
        y0 = np.asarray(y0, dtype=np.float64)
        t_vals = np.asarray(t_vals, dtype=np.float64)
        self.validate_inputs(system, y0, t_vals)

        const = self._maybe_constant_solution(y0, t_vals)
        if const is not None:
            return const

        step_cap = self._max_step if max_step is None else min(self._max_step, float(max_step))
        t0 = float(t_vals[0])
        tf = float(t_vals[-1])
        try:
            sol = solve_ivp(
                system.rhs,
                (t0, tf),
                y0,
                method=self._method,
                rtol=self._rtol,
                atol=self._atol,
                max_step=step_cap,
                dense_output=True,
            )
        except (ValueError, ArithmeticError) as exc:
            raise IntegrationFailure(f"{self.name}: solver raised {exc!r}") from exc

        if sol.status < 0:
            raise IntegrationFailure(f"{self.name}: {sol.message}")

        nodes = np.asarray(sol.t, dtype=np.float64)
        node_states = np.asarray(sol.y.T, dtype=np.float64)
        if not np.all(np.isfinite(node_states)):
            raise IntegrationFailure(f"{self.name}: non-finite state encountered")

        if t_vals.size == 2:
            states = node_states[[0, -1]].copy()
        else:
            states = np.asarray(sol.sol(t_vals).T, dtype=np.float64)
            states[0] = node_states[0]
            states[-1] = node_states[-1]

        dense = None
        if dense_output:
            interp = sol.sol

            def dense(t: float) -> np.ndarray:
                return np.asarray(interp(t), dtype=np.float64)

        return _Solution(
            times=t_vals.copy(),
            states=states,
            nodes=nodes,
            node_states=node_states,
            dense=dense,
        )


class _RK45(_AdaptiveStepRK):
    """Dormand-Prince 5(4), the cheaper pair for short horizons."""
    _method = "RK45"
    _p = 5

    def __init__(self, **opts):
        super().__init__("_RK45", **opts)


class _DOP853(_AdaptiveStepRK):
    """Dormand-Prince 8(5,3), the default for flow maps.

    Long return-map horizons amplify local error through the unstable
    direction, so the high-order pair is preferred whenever the field is
    smooth enough to benefit from it.
    """
    _method = "DOP853"
    _p = 8

    def __init__(self, **opts):
        super().__init__("_DOP853", **opts)


class AdaptiveRK:
    """Build a Dormand-Prince integrator by order.

    Examples
    --------
    >>> AdaptiveRK(order=5, rtol=1e-10).order
    5
    """
    _map = {5: _RK45, 8: _DOP853}

    def __new__(cls, order=8, **opts):
        """Return the pair of the requested *order* (5 or 8).

        Raises
        ------
        ValueError
            For any other order.
        """
        try:
            pair = cls._map[order]
        except KeyError:
            raise ValueError(f"no adaptive Runge-Kutta pair of order {order!r}") from None
        return pair(**opts)
