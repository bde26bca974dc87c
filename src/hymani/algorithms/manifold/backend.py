"""Numerical growth loop for invariant manifolds.

One growth step maps the frontier, refines its image and returns the next
generation. The frontier of a curve is the whole curve; the frontier of a
surface is its outer ring, the inner rings being carried over unchanged.

Mapping is spread over a bounded thread pool in index-ordered chunks; each
task writes its image into its own slot of a preallocated buffer, so
results do not depend on scheduling.
"""

from concurrent.futures import ThreadPoolExecutor
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np
from tqdm import tqdm

from hymani.algorithms.manifold.config import ManifoldConfig
from hymani.algorithms.manifold.refine import _AdaptiveRefiner, _Layer
from hymani.algorithms.manifold.types import Curve, Generation
from hymani.algorithms.maps.base import _MapEvaluator
from hymani.algorithms.utils.core import _HymaniBaseBackend
from hymani.algorithms.utils.exceptions import (BackendError,
                                                HybridMapFailure,
                                                IntegrationFailure,
                                                UndefinedTransition)
from hymani.utils.log_config import logger


class _GrowthBackend(_HymaniBaseBackend):
    """Run the step-bounded growth loop.

    Notes
    -----
    Point failures (:class:`~hymani.algorithms.utils.exceptions.IntegrationFailure`,
    :class:`~hymani.algorithms.utils.exceptions.HybridMapFailure`) drop the
    point and are recorded as gaps. An
    :class:`~hymani.algorithms.utils.exceptions.UndefinedTransition` escaping
    a run with ``raise_on_undefined`` propagates as is; any other exception
    is re-raised as :class:`~hymani.algorithms.utils.exceptions.BackendError`.
    """

    def run(
        self,
        *,
        evaluator: _MapEvaluator,
        seed: Generation,
        steps: int,
        config: ManifoldConfig,
        outer_preimage: Optional[Curve] = None,
        n_workers: int = 1,
        show_progress: bool = False,
    ) -> Tuple[List[Generation], bool]:
        """Grow *seed* for *steps* generations.

        *outer_preimage* is the pre-image of the outer seed ring; it is
        required when *seed* is a surface.

        Returns
        -------
        generations : list of :class:`~hymani.algorithms.manifold.types.Generation`
            Seed followed by one generation per completed step.
        terminated_early : bool
            True when the frontier collapsed before *steps* was reached.
        """
        if seed.is_surface and outer_preimage is None:
            raise ValueError("growing a surface needs the pre-image of its outer seed ring")
        refiner = _AdaptiveRefiner(config)

        def mapper(points: np.ndarray):
            return self.map_points(
                evaluator, points, n_workers=n_workers,
                raise_on_undefined=config.raise_on_undefined,
            )

        generations = [seed]
        frontier = seed
        outer_pre = outer_preimage
        indices = range(1, steps + 1)
        iterator = tqdm(indices, desc="Growing manifold", unit="step") if show_progress else indices
        for k in iterator:
            try:
                if frontier.is_surface:
                    gen = self._surface_step(frontier, outer_pre, k, refiner, mapper)
                else:
                    gen = self._step(frontier, k, refiner, mapper)
            except UndefinedTransition:
                raise
            except Exception as exc:
                raise BackendError(f"generation {k}: {exc}") from exc
            if gen is None:
                logger.warning(
                    "Frontier collapsed at generation %d; stopping after %d of %d step(s)",
                    k, k - 1, steps,
                )
                return generations, True
            if gen.gaps:
                logger.warning("Generation %d: dropped %d point(s)", k, len(gen.gaps))
            generations.append(gen)
            if frontier.is_surface:
                outer_pre = frontier.curves[-1]
            frontier = gen
        return generations, False

    @staticmethod
    def map_points(
        evaluator: _MapEvaluator,
        points: np.ndarray,
        *,
        n_workers: int = 1,
        raise_on_undefined: bool = False,
    ) -> Tuple[np.ndarray, Dict[int, Exception]]:
        """Map every row of *points*.

        Returns the images (rows of failed points are NaN) and a mapping
        from failed row index to the exception raised for it.
        """
        points = np.atleast_2d(np.asarray(points, dtype=np.float64))
        m = points.shape[0]
        out = np.full(points.shape, np.nan, dtype=np.float64)

        def _worker(idx_arr: Sequence[int]) -> Dict[int, Exception]:
            failures: Dict[int, Exception] = {}
            for i in idx_arr:
                try:
                    out[i] = evaluator.evaluate(points[i])
                except UndefinedTransition as exc:
                    if raise_on_undefined:
                        raise
                    failures[int(i)] = exc
                except (IntegrationFailure, HybridMapFailure) as exc:
                    failures[int(i)] = exc
            return failures

        if n_workers <= 1 or m <= 1:
            return out, _worker(range(m))

        chunks = np.array_split(np.arange(m), min(n_workers, m))
        failures: Dict[int, Exception] = {}
        with ThreadPoolExecutor(max_workers=n_workers) as ex:
            futs = [ex.submit(_worker, idxs) for idxs in chunks if len(idxs)]
            for fut in futs:
                failures.update(fut.result())
        return out, dict(sorted(failures.items()))

    def _step(self, frontier: Generation, k: int, refiner: _AdaptiveRefiner, mapper) -> Optional[Generation]:
        cfg = refiner.config
        curve = frontier.curves[0]
        images, failures = mapper(curve.points)
        ref = refiner.refine_curve(
            curve, images, failures, mapper,
            generation=k, pre_interp=curve.interpolant(cfg.interpolation),
        )
        if ref.curve is None:
            return None
        return Generation(index=k, curves=(ref.curve,), gaps=tuple(ref.gaps), stalls=tuple(ref.stalls))

    def _surface_step(
        self,
        frontier: Generation,
        outer_pre: Curve,
        k: int,
        refiner: _AdaptiveRefiner,
        mapper,
    ) -> Optional[Generation]:
        """Grow the outer ring of *frontier* into a new annulus.

        The inner rings are carried over untouched. The new rings lie
        between the old outer ring and its refined image; intermediate
        rings are images of rings interpolated between *outer_pre* (the
        pre-image of the old outer ring) and the old outer ring.
        """
        cfg = refiner.config
        outer = frontier.curves[-1]
        n_inner = len(frontier.curves) - 1
        interp = outer.interpolant(cfg.interpolation)
        images, failures = mapper(outer.points)
        ref = refiner.refine_curve(
            outer, images, failures, mapper,
            generation=k, ring=n_inner + 1, pre_interp=interp,
        )
        if ref.curve is None:
            logger.warning("Generation %d: outer ring collapsed", k)
            return None

        layers = [
            _Layer(outer_pre, outer_pre.interpolant(cfg.interpolation), outer),
            _Layer(outer, interp, ref.curve),
        ]
        rings, ring_gaps, ring_stalls = refiner.refine_rings(
            layers, mapper, generation=k, ring_offset=n_inner,
        )
        return Generation(
            index=k,
            curves=frontier.curves[:-1] + tuple(rings),
            gaps=tuple(ref.gaps) + tuple(ring_gaps),
            stalls=tuple(ref.stalls) + tuple(ring_stalls),
        )
