"""User-facing entry points of manifold growth.

:class:`~hymani.algorithms.manifold.base.ManifoldGrowth` wires the growth
engine, backend and interface around one configuration;
:func:`~hymani.algorithms.manifold.base.grow_manifold` builds the seed
from a saddle and runs it in one call.
"""

import math
from typing import TYPE_CHECKING, Optional

from hymani.algorithms.manifold.backend import _GrowthBackend
from hymani.algorithms.manifold.config import ManifoldConfig
from hymani.algorithms.manifold.engine import _GrowthEngine
from hymani.algorithms.manifold.interfaces import _ManifoldInterface
from hymani.algorithms.manifold.seeding import seed_1d, seed_2d
from hymani.algorithms.manifold.types import (Generation, ManifoldResult,
                                              Saddle, _ManifoldProblem)
from hymani.algorithms.maps.base import _MapEvaluator
from hymani.algorithms.utils.core import _HymaniBaseFacade

if TYPE_CHECKING:
    from hymani.system.manifold import InvariantManifold


class ManifoldGrowth(_HymaniBaseFacade[ManifoldConfig, _ManifoldProblem, ManifoldResult]):
    """Grow invariant manifolds from a seed generation.

    Parameters
    ----------
    config : :class:`~hymani.algorithms.manifold.config.ManifoldConfig`
        Configuration shared by every component of the run.
    interface : :class:`~hymani.algorithms.manifold.interfaces._ManifoldInterface`
        Problem builder.
    engine : :class:`~hymani.algorithms.manifold.engine._GrowthEngine`
        Engine running the backend.

    Examples
    --------
    >>> growth = ManifoldGrowth.with_default_engine(config=ManifoldConfig(d=0.02))
    >>> manifold = growth.grow(SmoothMap(f), seed, steps=10)
    """

    def __init__(self, config: ManifoldConfig, interface: _ManifoldInterface, engine: _GrowthEngine) -> None:
        super().__init__(config, interface, engine)

    @classmethod
    def with_default_engine(cls, *, config: Optional[ManifoldConfig] = None) -> "ManifoldGrowth":
        config = config if config is not None else ManifoldConfig()
        interface = _ManifoldInterface()
        engine = _GrowthEngine(backend=_GrowthBackend(), interface=interface)
        return cls(config, interface, engine)

    def solve(
        self,
        evaluator: _MapEvaluator,
        seed: Generation,
        steps: int,
        *,
        saddle: Optional[Saddle] = None,
        show_progress: bool = False,
    ) -> ManifoldResult:
        """Run the growth loop and return the raw result."""
        return self._solve(
            evaluator=evaluator, seed=seed, steps=steps,
            saddle=saddle, show_progress=show_progress,
        )

    def grow(
        self,
        evaluator: _MapEvaluator,
        seed: Generation,
        steps: int,
        *,
        saddle: Optional[Saddle] = None,
        show_progress: bool = False,
    ) -> "InvariantManifold":
        """Run the growth loop and return an :class:`~hymani.system.manifold.InvariantManifold`.

        Raises
        ------
        EngineError
            If the backend fails for a reason other than a single point.
        UndefinedTransition
            If ``config.raise_on_undefined`` is set and a point leaves
            every declared region.
        """
        from hymani.system.manifold import InvariantManifold

        result = self.solve(evaluator, seed, steps, saddle=saddle, show_progress=show_progress)
        return InvariantManifold.from_result(result)


def grow_manifold(
    evaluator: _MapEvaluator,
    saddle: Saddle,
    steps: int,
    *,
    config: Optional[ManifoldConfig] = None,
    seed: Optional[Generation] = None,
    dimension: Optional[int] = None,
    seed_size: Optional[float] = None,
    two_sided: bool = False,
    show_progress: bool = False,
) -> "InvariantManifold":
    """Grow the manifold of *saddle* under *evaluator* for *steps* steps.

    Parameters
    ----------
    evaluator : :class:`~hymani.algorithms.maps.base._MapEvaluator`
        Map whose iterates grow the manifold (the inverse map for a
        stable manifold).
    saddle : :class:`~hymani.algorithms.manifold.types.Saddle`
        Saddle and local subspace.
    steps : int
        Number of growth steps.
    config : :class:`~hymani.algorithms.manifold.config.ManifoldConfig`, optional
        Defaults to ``ManifoldConfig()``.
    seed : :class:`~hymani.algorithms.manifold.types.Generation`, optional
        Explicit generation 0. Built from *saddle* when omitted.
    dimension : {1, 2}, optional
        Manifold dimension. Defaults to 2 when the saddle carries two or
        more directions, 1 otherwise.
    seed_size : float, optional
        Seed arc length (1-D) or outer ring radius (2-D). Defaults to
        ``4 * config.d``.
    two_sided : bool, default False
        Grow both branches of a 1-D manifold.
    show_progress : bool, default False
        Display a tqdm progress bar.
    """
    config = config if config is not None else ManifoldConfig()
    if seed is None:
        dim = dimension if dimension is not None else min(saddle.n_directions, 2)
        size = seed_size if seed_size is not None else 4.0 * config.d
        if dim == 1:
            n_points = max(2, int(math.ceil(size / (0.5 * config.d))) + 1)
            seed = seed_1d(saddle, size / (n_points - 1), n_points, two_sided=two_sided)
        elif dim == 2:
            seed = seed_2d(saddle, size, config)
        else:
            raise ValueError(f"dimension must be 1 or 2, got {dim}")
    growth = ManifoldGrowth.with_default_engine(config=config)
    return growth.grow(evaluator, seed, steps, saddle=saddle, show_progress=show_progress)
