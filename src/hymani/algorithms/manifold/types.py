"""Data types of the manifold growth machinery.

Every array stored on a :class:`~hymani.algorithms.manifold.types.Curve`
or :class:`~hymani.algorithms.manifold.types.Saddle` is copied and flagged
read-only, so generations can be shared freely once they are built.
"""

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Literal, Optional, Tuple

import numpy as np

from hymani.algorithms.manifold.geometry import _chord_params, _segment_chords
from hymani.algorithms.utils.core import _HymaniBaseProblem
from hymani.algorithms.utils.exceptions import LocalRefinementStall

if TYPE_CHECKING:
    from hymani.algorithms.manifold.config import ManifoldConfig
    from hymani.algorithms.manifold.interpolation import Interpolant
    from hymani.algorithms.maps.base import _MapEvaluator


def _frozen(arr, ndim: int, name: str) -> np.ndarray:
    out = np.array(arr, dtype=np.float64, copy=True)
    if out.ndim != ndim:
        raise ValueError(f"{name} must be {ndim}-dimensional, got shape {out.shape}")
    out.setflags(write=False)
    return out


@dataclass(frozen=True)
class Saddle:
    """Saddle point together with its local invariant subspace.

    Parameters
    ----------
    position : array_like, shape (n,)
        Location of the fixed point.
    directions : sequence of array_like
        Basis of the local unstable (or stable) subspace. Normalised on
        construction.
    rates : sequence of float
        Growth-rate labels (eigenvalues) parallel to *directions*. Only
        their magnitudes are used, to scale seed sizes.
    kind : {'unstable', 'stable'}, default 'unstable'
        Which manifold the subspace belongs to.
    """

    position: np.ndarray
    directions: Tuple[np.ndarray, ...]
    rates: Tuple[float, ...]
    kind: Literal["unstable", "stable"] = "unstable"

    def __post_init__(self):
        pos = _frozen(self.position, 1, "position")
        dirs = []
        for v in self.directions:
            v = np.asarray(v, dtype=np.float64)
            if v.shape != pos.shape:
                raise ValueError(f"direction shape {v.shape} differs from position shape {pos.shape}")
            norm = np.linalg.norm(v)
            if not norm > 0.0:
                raise ValueError("directions must be non-zero")
            dirs.append(_frozen(v / norm, 1, "direction"))
        if not dirs:
            raise ValueError("at least one direction is required")
        if len(self.rates) != len(dirs):
            raise ValueError(f"{len(self.rates)} rates given for {len(dirs)} directions")
        if self.kind not in ("unstable", "stable"):
            raise ValueError(f"kind must be 'unstable' or 'stable', got {self.kind!r}")
        object.__setattr__(self, "position", pos)
        object.__setattr__(self, "directions", tuple(dirs))
        object.__setattr__(self, "rates", tuple(float(r) for r in self.rates))

    @property
    def dim(self) -> int:
        return int(self.position.shape[0])

    @property
    def n_directions(self) -> int:
        return len(self.directions)


@dataclass(frozen=True)
class GapRecord:
    """A frontier point or refinement midpoint that could not be mapped.

    Attributes
    ----------
    generation : int
        Index of the generation being built.
    ring : int
        Ring index of the source curve (0 for 1-D manifolds).
    param : float
        Parameter of the source point on its pre-image curve.
    point : numpy.ndarray
        The pre-image point.
    error : str
        Exception class name.
    reason : str
        Exception message.
    """

    generation: int
    ring: int
    param: float
    point: np.ndarray
    error: str
    reason: str

    @classmethod
    def from_exception(cls, exc: Exception, *, generation: int, ring: int, param: float, point) -> "GapRecord":
        return cls(
            generation=int(generation),
            ring=int(ring),
            param=float(param),
            point=_frozen(point, 1, "point"),
            error=type(exc).__name__,
            reason=str(exc),
        )


@dataclass(frozen=True, eq=False)
class Curve:
    """Ordered point sequence of a generation.

    Parameters
    ----------
    points : array_like, shape (n, dim)
        Samples in curve order.
    params : array_like, shape (n,)
        Strictly increasing parameters in ``[0, 1]``. Closed rings use
        ``[0, 1)``, the closing segment ending at 1.
    closed : bool, default False
        Whether the curve is a ring.
    """

    points: np.ndarray
    params: np.ndarray
    closed: bool = False

    def __post_init__(self):
        pts = _frozen(self.points, 2, "points")
        prm = _frozen(self.params, 1, "params")
        if prm.shape[0] != pts.shape[0]:
            raise ValueError(f"{prm.shape[0]} params given for {pts.shape[0]} points")
        if pts.shape[0] > 1 and not np.all(np.diff(prm) > 0.0):
            raise ValueError("params must be strictly increasing")
        object.__setattr__(self, "points", pts)
        object.__setattr__(self, "params", prm)
        object.__setattr__(self, "closed", bool(self.closed))

    @classmethod
    def from_points(cls, points, closed: bool = False) -> "Curve":
        """Build a curve parametrised by normalised cumulative chord length."""
        pts = np.ascontiguousarray(points, dtype=np.float64)
        return cls(points=pts, params=_chord_params(pts, closed), closed=closed)

    def __len__(self) -> int:
        return int(self.points.shape[0])

    @property
    def dim(self) -> int:
        return int(self.points.shape[1])

    @property
    def chords(self) -> np.ndarray:
        return _segment_chords(np.ascontiguousarray(self.points), self.closed)

    @property
    def arc_length(self) -> float:
        """Polygonal length, including the closing segment of a ring."""
        if len(self) < 2:
            return 0.0
        return float(np.sum(self.chords))

    def interpolant(self, scheme: str = "cubic") -> "Interpolant":
        from hymani.algorithms.manifold.interpolation import Interpolant

        return Interpolant(self.points, self.params, closed=self.closed, scheme=scheme)

    def __repr__(self) -> str:
        kind = "ring" if self.closed else "arc"
        return f"Curve({kind}, n={len(self)}, dim={self.points.shape[1]})"


@dataclass(frozen=True, eq=False)
class Generation:
    """One growth step of a manifold.

    Parameters
    ----------
    index : int
        Growth index, 0 for the seed.
    curves : tuple of :class:`~hymani.algorithms.manifold.types.Curve`
        One open curve for a 1-D manifold, nested rings (innermost first)
        for a 2-D manifold.
    gaps : tuple of :class:`~hymani.algorithms.manifold.types.GapRecord`
        Points dropped while building this generation.
    stalls : tuple of :class:`~hymani.algorithms.utils.exceptions.LocalRefinementStall`
        Segments accepted without meeting the resolution bounds.
    """

    index: int
    curves: Tuple[Curve, ...]
    gaps: Tuple[GapRecord, ...] = ()
    stalls: Tuple[LocalRefinementStall, ...] = ()

    def __post_init__(self):
        if self.index < 0:
            raise ValueError("generation index must be non-negative")
        object.__setattr__(self, "curves", tuple(self.curves))
        object.__setattr__(self, "gaps", tuple(self.gaps))
        object.__setattr__(self, "stalls", tuple(self.stalls))
        if not self.curves:
            raise ValueError("a generation needs at least one curve")

    @property
    def is_surface(self) -> bool:
        return self.curves[0].closed

    @property
    def n_rings(self) -> int:
        return len(self.curves)

    @property
    def n_points(self) -> int:
        return sum(len(c) for c in self.curves)

    @property
    def dim(self) -> int:
        return self.curves[0].dim

    def __repr__(self) -> str:
        return (
            f"Generation(index={self.index}, curves={len(self.curves)}, "
            f"points={self.n_points}, gaps={len(self.gaps)})"
        )


@dataclass(frozen=True)
class _ManifoldProblem(_HymaniBaseProblem):
    """Immutable inputs of one growth run.

    Attributes
    ----------
    evaluator : :class:`~hymani.algorithms.maps.base._MapEvaluator`
        Map applied to the frontier.
    seed : :class:`~hymani.algorithms.manifold.types.Generation`
        Generation 0.
    steps : int
        Number of growth steps.
    config : :class:`~hymani.algorithms.manifold.config.ManifoldConfig`
        Shared configuration.
    n_workers : int
        Resolved worker count.
    saddle : :class:`~hymani.algorithms.manifold.types.Saddle` or None
        Saddle the seed was built from.
    outer_preimage : :class:`~hymani.algorithms.manifold.types.Curve` or None
        Pre-image of the outer seed ring, needed to grow a surface.
    show_progress : bool
        Display a tqdm progress bar.
    """

    evaluator: "_MapEvaluator"
    seed: Generation
    steps: int
    config: "ManifoldConfig"
    n_workers: int
    saddle: Optional[Saddle] = None
    outer_preimage: Optional[Curve] = None
    show_progress: bool = False


@dataclass(frozen=True)
class ManifoldResult:
    """Raw outcome of a growth run before it is wrapped in a manifold object."""

    generations: Tuple[Generation, ...]
    saddle: Optional[Saddle] = None
    config: Optional[Any] = None
    terminated_early: bool = False
    gaps: Tuple[GapRecord, ...] = field(default=())
    stalls: Tuple[LocalRefinementStall, ...] = field(default=())
