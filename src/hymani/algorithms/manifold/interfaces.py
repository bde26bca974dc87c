"""Interface between user inputs and the manifold growth backend."""

import os
from typing import Optional

import numpy as np

from hymani.algorithms.manifold.config import ManifoldConfig
from hymani.algorithms.manifold.seeding import ring_preimage
from hymani.algorithms.manifold.types import (Generation, ManifoldResult,
                                              Saddle, _ManifoldProblem)
from hymani.algorithms.utils.core import BackendCall, _HymaniBaseInterface
from hymani.utils.log_config import logger

# relative slack on the seed chord bound
_SEED_SLACK = 1e-9


class _ManifoldInterface(
    _HymaniBaseInterface[ManifoldConfig, _ManifoldProblem, ManifoldResult, tuple]
):
    """Compose growth problems and package backend outputs."""

    def create_problem(
        self,
        *,
        config: ManifoldConfig,
        evaluator,
        seed: Generation,
        steps: int,
        saddle: Optional[Saddle] = None,
        show_progress: bool = False,
    ) -> _ManifoldProblem:
        """Validate the inputs of a growth run and freeze them.

        Raises
        ------
        TypeError
            If *evaluator* has no ``evaluate`` method or *seed* is not a
            :class:`~hymani.algorithms.manifold.types.Generation`.
        ValueError
            If *steps* is negative, the seed is not generation 0 or one of
            its chords is longer than ``config.d``, or a surface seed comes
            without the saddle it was built from.
        """
        if not callable(getattr(evaluator, "evaluate", None)):
            raise TypeError("evaluator must expose an evaluate(x) method")
        if not isinstance(seed, Generation):
            raise TypeError("seed must be a Generation")
        if seed.index != 0:
            raise ValueError(f"seed must be generation 0, got {seed.index}")
        if int(steps) != steps or steps < 0:
            raise ValueError(f"steps must be a non-negative integer, got {steps}")
        for r, curve in enumerate(seed.curves):
            if len(curve) > 1 and np.max(curve.chords) > config.d * (1.0 + _SEED_SLACK):
                raise ValueError(
                    f"seed curve {r} has a chord of {np.max(curve.chords):.3e} > d={config.d}"
                )

        outer_preimage = None
        if seed.is_surface:
            if saddle is None:
                raise ValueError("growing a surface needs the saddle of its seed")
            outer_preimage = ring_preimage(saddle, seed.curves[-1])

        n_workers = config.n_workers if config.n_workers is not None else (os.cpu_count() or 1)
        return _ManifoldProblem(
            evaluator=evaluator,
            seed=seed,
            steps=int(steps),
            config=config,
            n_workers=int(n_workers),
            saddle=saddle,
            outer_preimage=outer_preimage,
            show_progress=bool(show_progress),
        )

    def to_backend_inputs(self, problem: _ManifoldProblem) -> BackendCall:
        return BackendCall(kwargs={
            "evaluator": problem.evaluator,
            "seed": problem.seed,
            "outer_preimage": problem.outer_preimage,
            "steps": problem.steps,
            "config": problem.config,
            "n_workers": problem.n_workers,
            "show_progress": problem.show_progress,
        })

    def on_start(self, problem: _ManifoldProblem) -> None:
        logger.info(
            "Growing %s manifold for %d step(s) from %d seed point(s) on %d worker(s)",
            "2-D" if problem.seed.is_surface else "1-D",
            problem.steps, problem.seed.n_points, problem.n_workers,
        )

    def on_failure(self, exc: Exception, *, problem: _ManifoldProblem) -> None:
        logger.error("Manifold growth failed: %s", exc)

    def to_results(self, outputs: tuple, *, problem: _ManifoldProblem) -> ManifoldResult:
        generations, terminated_early = outputs
        gaps = tuple(g for gen in generations for g in gen.gaps)
        stalls = tuple(s for gen in generations for s in gen.stalls)
        logger.info(
            "Manifold growth finished: %d generation(s), %d point(s) in the last, %d gap(s), %d stall(s)",
            len(generations) - 1, generations[-1].n_points, len(gaps), len(stalls),
        )
        return ManifoldResult(
            generations=tuple(generations),
            saddle=problem.saddle,
            config=problem.config,
            terminated_early=bool(terminated_early),
            gaps=gaps,
            stalls=stalls,
        )
