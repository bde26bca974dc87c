"""Abstract integrator used by the flow-based maps.

Flow maps only need three things from an integrator: a state at the end
of the horizon, the accepted step grid (scanned for switching-function
sign changes) and optionally a continuous extension for root refinement.

References
----------
Hairer, E., Norsett, S. P., & Wanner, G. (1993). "Solving Ordinary
Differential Equations I: Non-stiff Problems".
"""

from abc import ABC, abstractmethod
from typing import Optional

import numpy as np

from hymani.algorithms.dynamics.base import _DynamicalSystemProtocol
from hymani.algorithms.integrators.types import _Solution


class _Integrator(ABC):
    """Base class of the time steppers.

    Parameters
    ----------
    name : str
        Label used in error messages and ``str()``.
    **options
        Stored verbatim on ``self.options``.
    """

    def __init__(self, name: str, **options):
        self.name = name
        self.options = options

    @property
    @abstractmethod
    def order(self) -> Optional[int]:
        """Formal order of the method (None when it has no single order)."""

    @abstractmethod
    def integrate(
        self,
        system: _DynamicalSystemProtocol,
        y0: np.ndarray,
        t_vals: np.ndarray,
        *,
        dense_output: bool = False,
        max_step: Optional[float] = None,
    ) -> _Solution:
        """Advance *y0* across the span covered by *t_vals*.

        Parameters
        ----------
        system : _DynamicalSystemProtocol
            Vector field to follow.
        y0 : numpy.ndarray
            Starting state, shape ``(system.dim,)``.
        t_vals : numpy.ndarray
            Output times. The first and last entries bound the span, which
            may run backwards.
        dense_output : bool, default False
            Attach an interpolant covering the span.
        max_step : float or None
            Tighter step cap for this call only.

        Raises
        ------
        :class:`~hymani.algorithms.utils.exceptions.IntegrationFailure`
            When the stepper gives up or produces non-finite states.
        """

    def validate_inputs(
        self,
        system: _DynamicalSystemProtocol,
        y0: np.ndarray,
        t_vals: np.ndarray
    ) -> None:
        """Reject malformed requests before any stepping happens."""
        if not callable(getattr(system, 'rhs', None)):
            raise ValueError(f"{self.name} needs a system with a callable 'rhs'")

        if len(y0) != system.dim:
            raise ValueError(f"state has {len(y0)} components, system expects {system.dim}")

        if len(t_vals) < 2:
            raise ValueError("t_vals needs at least two entries")

        steps = np.diff(t_vals)
        # a degenerate span is answered with a constant solution
        if not np.any(steps):
            return
        if not (np.all(steps > 0) or np.all(steps < 0)):
            raise ValueError("t_vals must increase or decrease strictly")

    def __str__(self):
        return f"HYMANI-{self.name}"

    def __repr__(self):
        return f"{self.__class__.__name__}(name='{self.name}', options={self.options})"

    def _maybe_constant_solution(
        self,
        y0: np.ndarray,
        t_vals: np.ndarray,
    ) -> "_Solution | None":
        """Solution that stays at *y0* when the span has zero length, else None."""
        if t_vals.size < 2 or t_vals[0] != t_vals[-1]:
            return None
        frozen = np.array(y0, dtype=np.float64, copy=True)
        states = np.tile(frozen, (t_vals.size, 1))
        return _Solution(
            times=t_vals.copy(),
            states=states,
            nodes=t_vals[[0, -1]].copy(),
            node_states=states[[0, -1]].copy(),
            dense=lambda t: frozen.copy(),
        )
