"""Building blocks of hybrid (piecewise-smooth, impacting) systems.

A :class:`~hymani.algorithms.maps.types.HybridSystem` is an explicit
lookup table: regions and switching surfaces keyed by name. Each region
carries its own vector field and lists the surfaces it monitors; each
surface may carry a reset map applied at its crossings.
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, NamedTuple, Optional, Sequence, Tuple

import numpy as np


@dataclass(frozen=True)
class ResetMap:
    """Instantaneous state transformation ``r(t, x, p)`` applied at a crossing.

    Parameters
    ----------
    function : callable
        ``function(t, x, params) -> array_like`` returning the post-reset state.
    name : str, default "reset"
        Label stored in event logs.
    """

    function: Callable[[float, np.ndarray, Any], np.ndarray]
    name: str = "reset"

    def apply(self, t: float, x: np.ndarray, params: Any = None) -> np.ndarray:
        out = np.asarray(self.function(t, x, params), dtype=np.float64)
        if out.shape != np.shape(x):
            raise ValueError(
                f"Reset '{self.name}' returned shape {out.shape}, expected {np.shape(x)}"
            )
        return out


@dataclass(frozen=True)
class SwitchingSurface:
    """Zero set of a scalar switching function ``g(t, x)``.

    Parameters
    ----------
    name : str
        Identifier, unique within a system.
    function : callable
        ``function(t, x) -> float``.
    direction : int, default 0
        Crossing direction filter: 0 any, +1 increasing only, -1
        decreasing only.
    reset : :class:`~hymani.algorithms.maps.types.ResetMap` or None
        Reset applied once per detected crossing. ``None`` leaves the
        state unchanged (a pure region boundary).
    """

    name: str
    function: Callable[[float, np.ndarray], float]
    direction: int = 0
    reset: Optional[ResetMap] = None

    def __post_init__(self):
        if self.direction not in (-1, 0, 1):
            raise ValueError(f"direction must be -1, 0 or 1, got {self.direction}")

    def __call__(self, t: float, x: np.ndarray) -> float:
        return float(self.function(t, x))


@dataclass(frozen=True)
class Region:
    """One piece of a piecewise-defined system.

    Parameters
    ----------
    name : str
        Identifier, unique within a system.
    vector_field : callable
        ``vector_field(t, x, params) -> array_like``.
    contains : callable
        Membership predicate ``contains(t, x) -> bool``.
    surfaces : sequence of str
        Names of the switching surfaces monitored while in this region.
    """

    name: str
    vector_field: Callable[[float, np.ndarray, Any], np.ndarray]
    contains: Callable[[float, np.ndarray], bool]
    surfaces: Tuple[str, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, "surfaces", tuple(self.surfaces))


class HybridSystem:
    """Lookup table of regions and switching surfaces.

    Parameters
    ----------
    regions : sequence of :class:`~hymani.algorithms.maps.types.Region`
        Regions in declaration order. Together they must cover the part of
        phase space the manifold visits.
    surfaces : sequence of :class:`~hymani.algorithms.maps.types.SwitchingSurface`
        Surfaces in declaration order. The order decides which reset runs
        first when crossings coincide.
    dim : int
        Phase-space dimension.

    Raises
    ------
    ValueError
        If names are duplicated, a region monitors an unknown surface, or
        the table is empty.
    """

    def __init__(self, regions: Sequence[Region], surfaces: Sequence[SwitchingSurface], dim: int):
        if dim <= 0:
            raise ValueError(f"dim must be positive, got {dim}")
        if len(regions) == 0:
            raise ValueError("A hybrid system needs at least one region")

        self._dim = int(dim)
        self._regions: Dict[str, Region] = {}
        self._surfaces: Dict[str, SwitchingSurface] = {}

        for s in surfaces:
            if s.name in self._surfaces:
                raise ValueError(f"Duplicate surface name '{s.name}'")
            self._surfaces[s.name] = s
        for r in regions:
            if r.name in self._regions:
                raise ValueError(f"Duplicate region name '{r.name}'")
            unknown = [name for name in r.surfaces if name not in self._surfaces]
            if unknown:
                raise ValueError(f"Region '{r.name}' monitors unknown surfaces {unknown}")
            self._regions[r.name] = r

        self._surface_order = {name: i for i, name in enumerate(self._surfaces)}

    @property
    def dim(self) -> int:
        return self._dim

    @property
    def regions(self) -> Tuple[Region, ...]:
        return tuple(self._regions.values())

    @property
    def surfaces(self) -> Tuple[SwitchingSurface, ...]:
        return tuple(self._surfaces.values())

    def region(self, name: str) -> Region:
        try:
            return self._regions[name]
        except KeyError:
            raise KeyError(f"Unknown region '{name}'") from None

    def surface(self, name: str) -> SwitchingSurface:
        try:
            return self._surfaces[name]
        except KeyError:
            raise KeyError(f"Unknown surface '{name}'") from None

    def monitored(self, region: str) -> Tuple[SwitchingSurface, ...]:
        """Surfaces watched in *region*, in system declaration order."""
        names = sorted(self.region(region).surfaces, key=self._surface_order.__getitem__)
        return tuple(self._surfaces[n] for n in names)

    def candidates(self, t: float, x: np.ndarray) -> Tuple[str, ...]:
        """Names of the regions whose predicate holds at ``(t, x)``."""
        return tuple(name for name, r in self._regions.items() if bool(r.contains(t, x)))

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}(regions={list(self._regions)}, "
            f"surfaces={list(self._surfaces)}, dim={self._dim})"
        )


class HybridEvent(NamedTuple):
    """One processed switching-surface crossing."""

    time: float
    surface: str
    region_before: str
    region_after: str
    state_before: np.ndarray
    state_after: np.ndarray


@dataclass(frozen=True)
class HybridTrace:
    """Final state of a hybrid map evaluation plus its ordered event log."""

    state: np.ndarray
    events: Tuple[HybridEvent, ...] = field(default_factory=tuple)
    region: str = ""

    @property
    def n_crossings(self) -> int:
        return len(self.events)
