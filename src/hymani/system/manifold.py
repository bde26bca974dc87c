"""Grown invariant manifolds.

:class:`~hymani.system.manifold.InvariantManifold` is the ordered,
append-only record of a growth run: generation 0 is the seed and
generation ``k`` the manifold after ``k`` applications of the map. Each
generation can be read as raw points or through an interpolant, exported
as a long-format :class:`pandas.DataFrame` and persisted to HDF5.
"""

import threading
from pathlib import Path
from typing import Dict, Iterator, Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from hymani.algorithms.manifold.config import ManifoldConfig
from hymani.algorithms.manifold.interpolation import Interpolant
from hymani.algorithms.manifold.types import (Curve, GapRecord, Generation,
                                              ManifoldResult, Saddle)
from hymani.algorithms.utils.core import _HymaniBase
from hymani.algorithms.utils.exceptions import LocalRefinementStall
from hymani.utils.io.manifold import load_manifold, save_manifold


class InvariantManifold(_HymaniBase):
    """Ordered sequence of manifold generations.

    Parameters
    ----------
    generations : sequence of :class:`~hymani.algorithms.manifold.types.Generation`, optional
        Initial generations, indexed ``0, 1, ...``.
    saddle : :class:`~hymani.algorithms.manifold.types.Saddle`, optional
        Saddle the manifold emanates from.
    config : :class:`~hymani.algorithms.manifold.config.ManifoldConfig`, optional
        Configuration of the run; its interpolation scheme is the default
        for :meth:`interpolant`.
    terminated_early : bool, default False
        Whether the run stopped before its step count because the frontier
        collapsed.
    """

    def __init__(
        self,
        generations: Sequence[Generation] = (),
        *,
        saddle: Optional[Saddle] = None,
        config: Optional[ManifoldConfig] = None,
        terminated_early: bool = False,
    ):
        self._generations: list[Generation] = []
        self._saddle = saddle
        self._config = config
        self._terminated_early = bool(terminated_early)
        self._interp_cache: Dict[Tuple[int, int, str], Interpolant] = {}
        self._lock = threading.Lock()
        for gen in generations:
            self.append(gen)

    @classmethod
    def from_result(cls, result: ManifoldResult) -> "InvariantManifold":
        """Wrap the raw result of a growth run."""
        return cls(
            result.generations,
            saddle=result.saddle,
            config=result.config,
            terminated_early=result.terminated_early,
        )

    def append(self, generation: Generation) -> None:
        """Append the next generation.

        Raises
        ------
        TypeError
            If *generation* is not a :class:`~hymani.algorithms.manifold.types.Generation`.
        ValueError
            If its index is not ``len(self)`` or its geometry (dimension,
            arc versus rings) differs from the existing generations.
        """
        if not isinstance(generation, Generation):
            raise TypeError("can only append Generation objects")
        if generation.index != len(self._generations):
            raise ValueError(
                f"expected generation {len(self._generations)}, got {generation.index}"
            )
        if self._generations:
            first = self._generations[0]
            if generation.dim != first.dim:
                raise ValueError(f"generation dimension {generation.dim} differs from {first.dim}")
            if generation.is_surface != first.is_surface:
                raise ValueError("cannot mix 1-D and 2-D generations")
        self._generations.append(generation)

    def __len__(self) -> int:
        return len(self._generations)

    def __getitem__(self, k: int) -> Generation:
        return self._generations[k]

    def __iter__(self) -> Iterator[Generation]:
        return iter(tuple(self._generations))

    @property
    def generations(self) -> Tuple[Generation, ...]:
        return tuple(self._generations)

    @property
    def saddle(self) -> Optional[Saddle]:
        return self._saddle

    @property
    def config(self) -> Optional[ManifoldConfig]:
        return self._config

    @property
    def terminated_early(self) -> bool:
        return self._terminated_early

    @property
    def is_surface(self) -> bool:
        """True for a 2-D manifold made of nested rings."""
        return bool(self._generations) and self._generations[0].is_surface

    @property
    def dim(self) -> int:
        """Phase-space dimension, 0 for an empty manifold."""
        return self._generations[0].dim if self._generations else 0

    @property
    def gaps(self) -> Tuple[GapRecord, ...]:
        """Every gap record, in generation order."""
        return tuple(g for gen in self._generations for g in gen.gaps)

    @property
    def stalls(self) -> Tuple[LocalRefinementStall, ...]:
        """Every refinement stall, in generation order."""
        return tuple(s for gen in self._generations for s in gen.stalls)

    def curve(self, k: int, ring: int = 0) -> Curve:
        return self._generations[k].curves[ring]

    def points(self, k: int, ring: int = 0) -> np.ndarray:
        """Read-only ``(n, dim)`` samples of curve *ring* of generation *k*."""
        return self.curve(k, ring).points

    def rings(self, k: int) -> Tuple[np.ndarray, ...]:
        """Samples of every curve of generation *k*, innermost ring first."""
        return tuple(c.points for c in self._generations[k].curves)

    def interpolant(self, k: int, ring: int = 0, scheme: Optional[str] = None) -> Interpolant:
        """Interpolant of curve *ring* of generation *k*.

        The scheme defaults to the configured one (cubic without a config).
        Interpolants are built once and cached.
        """
        if scheme is None:
            scheme = self._config.interpolation if self._config is not None else "cubic"
        k = range(len(self._generations))[k]
        ring = range(len(self._generations[k].curves))[ring]
        key = (k, ring, scheme)
        with self._lock:
            interp = self._interp_cache.get(key)
            if interp is None:
                interp = self.curve(k, ring).interpolant(scheme)
                self._interp_cache[key] = interp
        return interp

    def arc_length(self, k: int, ring: int = -1) -> float:
        """Polygonal length of curve *ring* of generation *k*.

        The default ``ring=-1`` selects the only curve of a 1-D manifold
        and the outermost ring of a 2-D one.
        """
        return self.curve(k, ring).arc_length

    def __str__(self) -> str:
        kind = "2-D" if self.is_surface else "1-D"
        return f"InvariantManifold({kind}, generations={len(self)}, gaps={len(self.gaps)})"

    def __repr__(self) -> str:
        return (
            f"InvariantManifold(generations={len(self)}, dim={self.dim}, "
            f"surface={self.is_surface}, terminated_early={self._terminated_early})"
        )

    def to_df(self) -> pd.DataFrame:
        """Long-format table with one row per sample.

        Columns are ``generation``, ``ring``, ``index``, ``param`` and the
        coordinates ``x0 .. x{dim-1}``.
        """
        coord_cols = [f"x{i}" for i in range(self.dim)]
        frames = []
        for gen in self._generations:
            for r, curve in enumerate(gen.curves):
                n = len(curve)
                frame = pd.DataFrame(curve.points, columns=coord_cols)
                frame.insert(0, "param", curve.params)
                frame.insert(0, "index", np.arange(n))
                frame.insert(0, "ring", np.full(n, r))
                frame.insert(0, "generation", np.full(n, gen.index))
                frames.append(frame)
        if not frames:
            return pd.DataFrame(columns=["generation", "ring", "index", "param"] + coord_cols)
        return pd.concat(frames, ignore_index=True)

    def save(self, file_path: str | Path, **kwargs) -> None:
        """Save the manifold to an HDF5 file.

        Keyword arguments are forwarded to
        :func:`~hymani.utils.io.manifold.save_manifold`.
        """
        save_manifold(self, Path(file_path), **kwargs)

    @classmethod
    def load(cls, file_path: str | Path) -> "InvariantManifold":
        """Load a manifold saved with :meth:`save`."""
        return load_manifold(file_path)
