"""Configuration of a manifold growth run.

One :class:`~hymani.algorithms.manifold.config.ManifoldConfig` instance is
shared by the map evaluators, the seed generator, the refiner and the
growth backend. It is frozen and validated on construction.
"""

from dataclasses import dataclass
from typing import Literal, Optional

import numpy as np

from hymani.algorithms.utils.config import EPS_TIME
from hymani.algorithms.utils.core import _HymaniBaseConfig

_INTERPOLATION_SCHEMES = ("linear", "cubic", "pchip")


@dataclass(frozen=True)
class ManifoldConfig(_HymaniBaseConfig):
    """Resolution, solver and budget settings for manifold growth.

    Parameters
    ----------
    d : float, default 0.05
        Maximum chord length between consecutive points of a curve.
    dsmin : float, default 1e-6
        Minimum chord length. Refinement never splits a segment into
        chords shorter than this, and shorter chords are merged.
    amax : float, default 0.3
        Maximum turning angle (radians) at any interior point.
    epsilon : float, default 1e-10
        Time tolerance of hybrid event location. Crossings closer than
        ``epsilon`` are coincident.
    interpolation : {'linear', 'cubic', 'pchip'}, default 'cubic'
        Scheme of the generation interpolants used for refinement.
    radial_threshold : float or None, default None
        Maximum distance between corresponding points of adjacent rings
        of a 2-D manifold. ``None`` means ``d``.
    max_crossings : int, default 100
        Switching-surface crossings allowed in one hybrid map evaluation.
    retry_budget : int, default 2
        Retries of a failed hybrid evaluation, each with half the previous
        maximum integration step.
    max_refine_depth : int, default 30
        Maximum number of refinement passes per curve and of radial
        ring insertions per ring pair.
    max_rings : int, default 200
        Upper bound on the ring count of a 2-D generation.
    n_workers : int or None, default None
        Worker threads used to map frontier points. ``None`` uses
        ``os.cpu_count()``.
    rtol, atol : float
        Tolerances of the adaptive Runge-Kutta integrator.
    max_step : float, default inf
        Maximum integration step.
    integrator_order : {5, 8}, default 8
        Order of the Dormand-Prince pair.
    probe_time : float, default 1e-6
        Length of the short probe steps used to decide which region a
        boundary state enters.
    raise_on_undefined : bool, default False
        Re-raise :class:`~hymani.algorithms.utils.exceptions.UndefinedTransition`
        out of a growth run instead of recording a gap.
    """

    d: float = 0.05
    dsmin: float = 1e-6
    amax: float = 0.3
    epsilon: float = EPS_TIME
    interpolation: Literal["linear", "cubic", "pchip"] = "cubic"
    radial_threshold: Optional[float] = None
    max_crossings: int = 100
    retry_budget: int = 2
    max_refine_depth: int = 30
    max_rings: int = 200
    n_workers: Optional[int] = None
    rtol: float = 1e-10
    atol: float = 1e-12
    max_step: float = np.inf
    integrator_order: int = 8
    probe_time: float = 1e-6
    raise_on_undefined: bool = False

    def _validate(self) -> None:
        """Validate the configuration."""
        if not self.d > 0.0:
            raise ValueError(f"d must be positive, got {self.d}")
        if not 0.0 < self.dsmin < self.d:
            raise ValueError(f"dsmin must satisfy 0 < dsmin < d, got {self.dsmin}")
        if not 0.0 < self.amax <= np.pi:
            raise ValueError(f"amax must lie in (0, pi], got {self.amax}")
        if not self.epsilon > 0.0:
            raise ValueError("epsilon must be positive")
        if self.interpolation not in _INTERPOLATION_SCHEMES:
            raise ValueError(
                f"Invalid interpolation: {self.interpolation}. "
                f"Must be one of {_INTERPOLATION_SCHEMES}."
            )
        if self.radial_threshold is not None and not self.radial_threshold > 0.0:
            raise ValueError("radial_threshold must be positive")
        if self.max_crossings < 1:
            raise ValueError("max_crossings must be >= 1")
        if self.retry_budget < 0:
            raise ValueError("retry_budget must be >= 0")
        if self.max_refine_depth < 0:
            raise ValueError("max_refine_depth must be >= 0")
        if self.max_rings < 1:
            raise ValueError("max_rings must be >= 1")
        if self.n_workers is not None and self.n_workers < 1:
            raise ValueError("n_workers must be >= 1")
        if self.rtol <= 0.0 or self.atol <= 0.0:
            raise ValueError("rtol and atol must be positive")
        if not self.max_step > 0.0:
            raise ValueError("max_step must be positive")
        if self.integrator_order not in (5, 8):
            raise ValueError("integrator_order must be 5 or 8")
        if not self.probe_time > 0.0:
            raise ValueError("probe_time must be positive")

    @property
    def radial_tol(self) -> float:
        """Effective ring-to-ring distance threshold."""
        return self.d if self.radial_threshold is None else float(self.radial_threshold)
