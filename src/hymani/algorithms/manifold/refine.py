"""Adaptive refinement of mapped curves.

Mapping a well-resolved curve stretches some segments and bends others.
The refiner restores the resolution bounds of a generation by inserting
images of pre-image midpoints where a chord is longer than ``d`` or a
turning angle exceeds ``amax``, and by merging chords shorter than
``dsmin``. For 2-D manifolds a radial pass then inserts intermediate
rings where adjacent rings drift further apart than ``radial_threshold``.

Work is organised as an explicit worklist: every pass collects all
offending segments, maps their midpoints as one batch and re-tests the
resulting sub-segments on the next pass.

References
----------
Krauskopf, B.; Osinga, H. M. (1998). "Growing 1D and quasi-2D unstable
manifolds of maps". Journal of Computational Physics 146, 404-419.
"""

from dataclasses import dataclass, field
from typing import Callable, Dict, List, Mapping, Optional, Sequence, Set, Tuple

import numpy as np

from hymani.algorithms.manifold.config import ManifoldConfig
from hymani.algorithms.manifold.geometry import (_angle, _distance,
                                                 _max_pair_distance,
                                                 _segment_chords,
                                                 _turning_angles)
from hymani.algorithms.manifold.interpolation import Interpolant
from hymani.algorithms.manifold.types import Curve, GapRecord
from hymani.algorithms.utils.exceptions import LocalRefinementStall
from hymani.utils.log_config import logger

# smallest pre-image parameter interval that is still split
_MIN_PARAM_GAP = 1e-13

Mapper = Callable[[np.ndarray], Tuple[np.ndarray, Dict[int, Exception]]]


@dataclass
class _CurveRefinement:
    """Outcome of refining one mapped curve.

    ``curve`` is None when fewer points survived than a curve needs.
    """

    curve: Optional[Curve]
    source_params: np.ndarray
    gaps: List[GapRecord] = field(default_factory=list)
    stalls: List[LocalRefinementStall] = field(default_factory=list)
    inserted: int = 0
    removed: int = 0


@dataclass
class _Layer:
    """A ring of the new generation together with its pre-image ring."""

    pre: Curve
    pre_interp: Interpolant
    image: Curve


class _AdaptiveRefiner:
    """Enforce chord, angle and ring-distance bounds on a new generation.

    Parameters
    ----------
    config : :class:`~hymani.algorithms.manifold.config.ManifoldConfig`
        Supplies ``d``, ``dsmin``, ``amax``, ``radial_threshold``,
        ``max_refine_depth``, ``max_rings`` and ``interpolation``.
    """

    def __init__(self, config: ManifoldConfig):
        self._config = config

    @property
    def config(self) -> ManifoldConfig:
        return self._config

    def refine_curve(
        self,
        pre: Curve,
        images: np.ndarray,
        failed: Mapping[int, Exception],
        mapper: Mapper,
        *,
        generation: int,
        ring: int = 0,
        pre_interp: Optional[Interpolant] = None,
    ) -> _CurveRefinement:
        """Refine the image of *pre*.

        Parameters
        ----------
        pre : :class:`~hymani.algorithms.manifold.types.Curve`
            Pre-image curve.
        images : numpy.ndarray, shape (len(pre), dim)
            Images of the points of *pre*. Rows listed in *failed* are ignored.
        failed : mapping of int to Exception
            Points of *pre* whose image could not be computed.
        mapper : callable
            ``mapper(points) -> (images, failures)`` used for midpoints.
        generation, ring : int
            Labels attached to gap and stall records.
        pre_interp : :class:`~hymani.algorithms.manifold.interpolation.Interpolant`, optional
            Interpolant of *pre*; built from the configured scheme if omitted.
        """
        cfg = self._config
        closed = pre.closed
        interp = pre_interp if pre_interp is not None else pre.interpolant(cfg.interpolation)

        gaps = [
            GapRecord.from_exception(exc, generation=generation, ring=ring,
                                     param=pre.params[i], point=pre.points[i])
            for i, exc in sorted(failed.items())
        ]
        keep = [i for i in range(len(pre)) if i not in failed]
        s: List[float] = [float(pre.params[i]) for i in keep]
        q: List[np.ndarray] = [np.asarray(images[i], dtype=np.float64) for i in keep]

        min_points = 3 if closed else 2
        if len(q) < min_points:
            return _CurveRefinement(curve=None, source_params=np.asarray(s), gaps=gaps)

        stalled: Set[Tuple[float, float]] = set()
        stalls: List[LocalRefinementStall] = []
        inserted = 0

        for _ in range(cfg.max_refine_depth):
            flagged = self._flag_segments(s, q, closed, stalled, stalls, generation, ring)
            if not flagged:
                break

            n = len(s)
            bounds = [(s[i], s[i + 1] if i + 1 < n else s[0] + 1.0) for i in flagged]
            mids = np.array([0.5 * (a + b) for a, b in bounds])
            pre_pts = interp(mids)
            mapped, failures = mapper(np.atleast_2d(pre_pts))

            for k in reversed(range(len(flagged))):
                i = flagged[k]
                key = bounds[k]
                if k in failures:
                    gaps.append(GapRecord.from_exception(
                        failures[k], generation=generation, ring=ring,
                        param=float(np.mod(mids[k], 1.0)) if closed else float(mids[k]),
                        point=pre_pts[k],
                    ))
                    stalled.add(key)
                    continue
                new = np.asarray(mapped[k], dtype=np.float64)
                a = q[i]
                b = q[(i + 1) % n]
                shortest = min(_distance(a, new), _distance(new, b))
                if shortest < cfg.dsmin:
                    stalled.add(key)
                    stalls.append(self._stall(
                        "split would produce a chord shorter than dsmin",
                        generation, ring, key, _distance(a, b),
                    ))
                    continue
                s.insert(i + 1, float(mids[k]))
                q.insert(i + 1, new)
                inserted += 1
        else:
            pts = np.ascontiguousarray(np.asarray(q))
            chords = _segment_chords(pts, closed)
            for i in self._flag_segments(s, q, closed, stalled, stalls, generation, ring):
                key = (s[i], s[i + 1] if i + 1 < len(s) else s[0] + 1.0)
                stalls.append(self._stall(
                    "max_refine_depth reached", generation, ring, key, chords[i],
                ))

        removed = self._merge_short(s, q, closed, stalls, generation, ring)

        if stalls:
            logger.debug(
                "Generation %d ring %d: %d segment(s) accepted unresolved",
                generation, ring, len(stalls),
            )

        curve = Curve.from_points(np.asarray(q), closed=closed) if len(q) >= min_points else None
        src = np.asarray(s, dtype=np.float64)
        if closed:
            src = np.mod(src, 1.0)
        return _CurveRefinement(curve, src, gaps, stalls, inserted, removed)

    def refine_rings(
        self,
        layers: Sequence[_Layer],
        mapper: Mapper,
        *,
        generation: int,
        ring_offset: int = 0,
    ) -> Tuple[List[Curve], List[GapRecord], List[LocalRefinementStall]]:
        """Insert intermediate rings until adjacent rings are close enough.

        Each offending pair gets a new ring whose pre-image is the average
        of the two pre-image rings at common parameters; the two new pairs
        are re-tested from an explicit stack.

        *ring_offset* counts the frozen rings inside the first layer. It
        shifts the ring labels of gaps and stalls and takes part in the
        ``max_rings`` cap.
        """
        cfg = self._config
        tol = cfg.radial_tol
        layers = list(layers)
        gaps: List[GapRecord] = []
        stalls: List[LocalRefinementStall] = []

        stack: List[Tuple[_Layer, _Layer, int]] = [
            (layers[k], layers[k + 1], 0) for k in reversed(range(len(layers) - 1))
        ]
        while stack:
            lo, hi, depth = stack.pop()
            sep = self._ring_separation(lo.image, hi.image)
            if sep <= tol:
                continue

            ring = ring_offset + next(i for i, layer in enumerate(layers) if layer is lo)
            if depth >= cfg.max_refine_depth or ring_offset + len(layers) >= cfg.max_rings:
                stalls.append(self._stall(
                    "ring separation above radial_threshold", generation, ring, (0.0, 1.0), sep,
                ))
                continue

            mid_pre = self._average_ring(lo, hi)
            mid_interp = mid_pre.interpolant(cfg.interpolation)
            images, failures = mapper(mid_pre.points)
            ref = self.refine_curve(
                mid_pre, images, failures, mapper,
                generation=generation, ring=ring + 1, pre_interp=mid_interp,
            )
            gaps.extend(ref.gaps)
            stalls.extend(ref.stalls)
            if ref.curve is None:
                stalls.append(self._stall(
                    "intermediate ring collapsed", generation, ring, (0.0, 1.0), sep,
                ))
                continue

            layer = _Layer(mid_pre, mid_interp, ref.curve)
            layers.insert(ring - ring_offset + 1, layer)
            stack.append((layer, hi, depth + 1))
            stack.append((lo, layer, depth + 1))

        return [layer.image for layer in layers], gaps, stalls

    def _flag_segments(
        self,
        s: List[float],
        q: List[np.ndarray],
        closed: bool,
        stalled: Set[Tuple[float, float]],
        stalls: List[LocalRefinementStall],
        generation: int,
        ring: int,
    ) -> List[int]:
        cfg = self._config
        pts = np.ascontiguousarray(np.asarray(q))
        chords = _segment_chords(pts, closed)
        angles = _turning_angles(pts, closed)
        n = len(s)
        flagged = []
        for i in range(chords.shape[0]):
            j = (i + 1) % n
            key = (s[i], s[i + 1] if i + 1 < n else s[0] + 1.0)
            if key in stalled:
                continue
            if not (chords[i] > cfg.d or angles[i] > cfg.amax or angles[j] > cfg.amax):
                continue
            if chords[i] < 2.0 * cfg.dsmin or key[1] - key[0] <= _MIN_PARAM_GAP:
                stalled.add(key)
                stalls.append(self._stall(
                    "segment too short to split", generation, ring, key, chords[i],
                ))
                continue
            flagged.append(i)
        return flagged

    def _merge_short(
        self,
        s: List[float],
        q: List[np.ndarray],
        closed: bool,
        stalls: List[LocalRefinementStall],
        generation: int,
        ring: int,
    ) -> int:
        """Merge chords shorter than ``dsmin`` where the bounds allow it.

        The far end of a short chord is removed, except for the last point
        of an open curve, where the near end goes instead.
        """
        cfg = self._config
        min_points = 4 if closed else 3
        removed = 0
        i = 0
        while len(q) >= min_points:
            n = len(q)
            if i >= (n if closed else n - 1):
                break
            nxt = (i + 1) % n
            chord = _distance(q[i], q[nxt])
            if chord >= cfg.dsmin:
                i += 1
                continue
            cand = nxt if (closed or nxt < n - 1) else i
            if chord == 0.0 or self._can_remove(q, cand, closed):
                del s[cand]
                del q[cand]
                removed += 1
                if cand <= i:
                    i = max(i - 1, 0)
                continue
            stalls.append(self._stall(
                "chord below dsmin kept", generation, ring,
                (s[i], s[nxt] if nxt > i else s[nxt] + 1.0), chord,
            ))
            i += 1
        return removed

    def _can_remove(self, q: List[np.ndarray], j: int, closed: bool) -> bool:
        cfg = self._config
        n = len(q)
        prev, nxt = (j - 1) % n, (j + 1) % n
        if _distance(q[prev], q[nxt]) > cfg.d:
            return False
        # angles at the neighbours once q[j] is gone
        if closed or prev > 0:
            if _angle(q[(prev - 1) % n], q[prev], q[nxt]) > cfg.amax:
                return False
        if closed or nxt < n - 1:
            if _angle(q[prev], q[nxt], q[(nxt + 1) % n]) > cfg.amax:
                return False
        return True

    def _ring_separation(self, a: Curve, b: Curve) -> float:
        m = max(len(a), len(b))
        u = np.arange(m, dtype=np.float64) / m
        pa = a.interpolant("linear")(u)
        pb = b.interpolant("linear")(u)
        return float(_max_pair_distance(np.ascontiguousarray(pa), np.ascontiguousarray(pb)))

    def _average_ring(self, lo: _Layer, hi: _Layer) -> Curve:
        m = max(len(lo.pre), len(hi.pre))
        u = np.arange(m, dtype=np.float64) / m
        pts = 0.5 * (lo.pre_interp(u) + hi.pre_interp(u))
        return Curve.from_points(pts, closed=True)

    @staticmethod
    def _stall(reason: str, generation: int, ring: int, interval, chord: float) -> LocalRefinementStall:
        return LocalRefinementStall(
            reason, generation=generation, ring=ring,
            interval=(float(interval[0]), float(interval[1])), chord=float(chord),
        )
