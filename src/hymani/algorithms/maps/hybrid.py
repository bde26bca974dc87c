"""Time-T maps of hybrid systems.

The evaluator integrates the vector field of the active region, scans the
accepted steps for sign changes of the surfaces that region monitors, and
refines the earliest crossing with
:func:`~hymani.algorithms.integrators.events.locate_first_event`. Resets
of coincident crossings are applied in declaration order, the new region
is resolved from the post-reset state, and integration resumes with the
remaining time budget. Resets consume no time, so the final state is
always reported at exactly ``t0 + horizon``.
"""

from typing import Any, Dict, List, Optional, Tuple

import numpy as np

from hymani.algorithms.dynamics.base import _DynamicalSystem, create_rhs_system
from hymani.algorithms.integrators.configs import _EventConfig
from hymani.algorithms.integrators.events import locate_first_event
from hymani.algorithms.integrators.rk import AdaptiveRK
from hymani.algorithms.manifold.config import ManifoldConfig
from hymani.algorithms.maps.base import _MapEvaluator
from hymani.algorithms.maps.types import (HybridEvent, HybridSystem,
                                          HybridTrace, SwitchingSurface)
from hymani.algorithms.utils.exceptions import (HybridMapFailure,
                                                IntegrationFailure,
                                                UndefinedTransition)
from hymani.utils.log_config import logger


class HybridMap(_MapEvaluator):
    """Time-``horizon`` map of a :class:`~hymani.algorithms.maps.types.HybridSystem`.

    Parameters
    ----------
    system : :class:`~hymani.algorithms.maps.types.HybridSystem`
        Region and surface table.
    horizon : float
        Total flow time of one map application.
    params : Any, optional
        Forwarded to region vector fields and reset maps.
    config : :class:`~hymani.algorithms.manifold.config.ManifoldConfig`, optional
        Supplies ``epsilon``, ``max_crossings``, ``retry_budget``,
        ``probe_time`` and the integrator settings.
    t0 : float, default 0.0
        Initial time of every evaluation.

    Notes
    -----
    A surface whose reset sends the trajectory back the way it came (an
    impact) must declare a crossing direction, otherwise the post-reset
    state, which sits just past the surface, is detected crossing it again.
    """

    def __init__(
        self,
        system: HybridSystem,
        horizon: float,
        params: Any = None,
        config: Optional[ManifoldConfig] = None,
        *,
        t0: float = 0.0,
        name: str = "hybrid",
    ):
        if not isinstance(system, HybridSystem):
            raise TypeError("system must be a HybridSystem")
        if not np.isfinite(horizon) or horizon == 0.0:
            raise ValueError(f"horizon must be finite and non-zero, got {horizon}")
        super().__init__(params=params, name=name)
        self._system = system
        self._horizon = float(horizon)
        self._t0 = float(t0)
        self._config = config if config is not None else ManifoldConfig()
        self._integrator = AdaptiveRK(
            order=self._config.integrator_order,
            rtol=self._config.rtol,
            atol=self._config.atol,
            max_step=self._config.max_step,
        )
        self._event_cfgs: Dict[str, _EventConfig] = {
            s.name: _EventConfig(direction=s.direction, tol=self._config.epsilon)
            for s in system.surfaces
        }
        self._region_systems: Dict[str, _DynamicalSystem] = {
            r.name: self._wrap_region(r.name) for r in system.regions
        }

    @property
    def system(self) -> HybridSystem:
        return self._system

    @property
    def horizon(self) -> float:
        return self._horizon

    @property
    def config(self) -> ManifoldConfig:
        return self._config

    def evaluate(self, x: np.ndarray) -> np.ndarray:
        return self.trace(x).state

    def trace(self, x: np.ndarray) -> HybridTrace:
        """Evaluate the map and return the final state with its event log.

        Failed attempts are retried ``retry_budget`` times, each retry
        halving the maximum integration step.

        Raises
        ------
        HybridMapFailure
            If the crossing budget is exceeded on every attempt.
        UndefinedTransition
            If a state cannot be assigned to exactly one region.
        IntegrationFailure
            If a region flow cannot be integrated to tolerance.
        """
        x = np.asarray(x, dtype=np.float64)
        if x.shape != (self._system.dim,):
            raise ValueError(f"state must have shape ({self._system.dim},), got {x.shape}")

        cfg = self._config
        step_cap = cfg.max_step
        base_cap = min(cfg.max_step, abs(self._horizon))
        for attempt in range(cfg.retry_budget + 1):
            try:
                return self._trace_once(x, step_cap)
            except HybridMapFailure as exc:
                if attempt == cfg.retry_budget:
                    raise
                step_cap = base_cap * 0.5 ** (attempt + 1)
                logger.debug(
                    "%s: retry %d/%d with max_step=%.3e after: %s",
                    self._name, attempt + 1, cfg.retry_budget, step_cap, exc,
                )
        raise AssertionError("unreachable")

    def _wrap_region(self, name: str) -> _DynamicalSystem:
        region = self._system.region(name)
        vf = region.vector_field
        params = self._params
        return create_rhs_system(lambda t, y: vf(t, y, params), dim=self._system.dim, name=name)

    def _integrate(self, region: str, x: np.ndarray, t_start: float, t_stop: float, step_cap: float, dense: bool = False):
        return self._integrator.integrate(
            self._region_systems[region], x, np.array([t_start, t_stop]),
            dense_output=dense, max_step=step_cap,
        )

    def _trace_once(self, x: np.ndarray, step_cap: float) -> HybridTrace:
        sys = self._system
        eps = self._config.epsilon
        sign = 1.0 if self._horizon > 0.0 else -1.0
        t = self._t0
        t_end = self._t0 + self._horizon
        state = x.copy()
        region = self._resolve_region(t, state, sign, step_cap, crossings=0)
        events: List[HybridEvent] = []

        while sign * (t_end - t) > 0.0:
            sol = self._integrate(region, state, t, t_end, step_cap, dense=True)

            def _propagate(ts: float, ys: np.ndarray, te: float, _region: str = region) -> np.ndarray:
                return self._integrate(_region, ys, ts, te, step_cap).final_state

            hits: List[Tuple[float, int, SwitchingSurface, np.ndarray]] = []
            for order, surf in enumerate(sys.monitored(region)):
                ev = locate_first_event(
                    surf, sol.nodes, sol.node_states, sol.dense, self._event_cfgs[surf.name],
                    propagate=_propagate,
                )
                if ev.hit:
                    hits.append((ev.time, order, surf, ev.state))

            if not hits:
                state = sol.final_state.copy()
                t = t_end
                break

            t_first = min(sign * h[0] for h in hits) * sign
            coincident = [h for h in hits if abs(h[0] - t_first) <= eps]
            coincident.sort(key=lambda h: h[1])
            # latest member of the group is past every coincident surface
            latest = max(coincident, key=lambda h: sign * h[0])
            t = latest[0]
            state = np.asarray(latest[3], dtype=np.float64).copy()

            if len(events) + len(coincident) > self._config.max_crossings:
                raise HybridMapFailure(
                    f"{self._name}: more than {self._config.max_crossings} crossings before t={t_end}",
                    crossings=len(events) + len(coincident),
                )

            applied = []
            for _, _, surf, _ in coincident:
                before = state
                if surf.reset is not None:
                    state = surf.reset.apply(t, state, self._params)
                if not np.all(np.isfinite(state)):
                    raise HybridMapFailure(
                        f"{self._name}: reset '{surf.name}' produced a non-finite state",
                        crossings=len(events) + len(applied),
                    )
                applied.append((surf.name, before, state))

            region_after = self._resolve_region(t, state, sign, step_cap, crossings=len(events) + len(applied))
            for surf_name, before, after in applied:
                events.append(HybridEvent(float(t), surf_name, region, region_after, before, after))
            region = region_after

        region = self._resolve_region(t, state, sign, step_cap, crossings=len(events))
        return HybridTrace(state=state, events=tuple(events), region=region)

    def _resolve_region(self, t: float, x: np.ndarray, sign: float, step_cap: float, crossings: int) -> str:
        """Return the unique region *x* belongs to, probing along each field on boundaries."""
        sys = self._system
        cands = sys.candidates(t, x)
        if len(cands) == 1:
            return cands[0]

        pool = cands if cands else tuple(r.name for r in sys.regions)
        t_probe = t + sign * self._config.probe_time
        winners = []
        for name in pool:
            try:
                y = self._integrate(name, x, t, t_probe, step_cap).final_state
            except IntegrationFailure:
                continue
            if sys.candidates(t_probe, y) == (name,):
                winners.append(name)

        if len(winners) == 1:
            return winners[0]
        where = "outside every region" if not cands else f"on the boundary of {list(cands)}"
        raise UndefinedTransition(
            f"{self._name}: state at t={t:.6g} lies {where}",
            time=t, state=x.copy(), crossings=crossings,
        )
