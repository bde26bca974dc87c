"""Input/output utilities for invariant manifolds.

Layout of a manifold file::

    /                       attrs: format_version, class, n_generations,
                                   terminated_early
    /config                 attrs: one per ManifoldConfig field
    /saddle                 position, directions, rates; attrs: kind
    /generations/<k>        attrs: index
        /curves/<r>         points, params; attrs: closed
        /gaps               ring, param, points, error, reason
        /stalls             ring, interval, chord, generation, reason

Notes
-----
Optional config fields stored as ``None`` are written as NaN (floats) or
-1 (integers) and restored on load.
"""

from dataclasses import fields
from pathlib import Path
from typing import TYPE_CHECKING

import h5py
import numpy as np

from hymani.algorithms.manifold.config import ManifoldConfig
from hymani.algorithms.manifold.types import (Curve, GapRecord, Generation,
                                              ManifoldResult, Saddle)
from hymani.algorithms.utils.exceptions import LocalRefinementStall
from hymani.utils.io.common import (_ensure_dir, _read_strings,
                                    _write_dataset, _write_strings)

if TYPE_CHECKING:
    from hymani.system.manifold import InvariantManifold


HDF5_VERSION = "1.0"
"""HDF5 format version for manifold data."""

_OPTIONAL_INT_FIELDS = ("n_workers",)
_OPTIONAL_FLOAT_FIELDS = ("radial_threshold",)


def _write_config(group: h5py.Group, config: ManifoldConfig) -> None:
    for f in fields(config):
        value = getattr(config, f.name)
        if value is None:
            value = -1 if f.name in _OPTIONAL_INT_FIELDS else np.nan
        group.attrs[f.name] = value


def _read_config(group: h5py.Group) -> ManifoldConfig:
    kwargs = {}
    for f in fields(ManifoldConfig):
        if f.name not in group.attrs:
            continue
        value = group.attrs[f.name]
        if isinstance(value, bytes):
            value = value.decode()
        elif isinstance(value, np.generic):
            value = value.item()
        if f.name in _OPTIONAL_INT_FIELDS and int(value) < 0:
            value = None
        elif f.name in _OPTIONAL_FLOAT_FIELDS and np.isnan(value):
            value = None
        kwargs[f.name] = value
    return ManifoldConfig(**kwargs)


def _write_generation(group: h5py.Group, gen: Generation, *, compression: str, level: int) -> None:
    group.attrs["index"] = int(gen.index)
    cgrp = group.create_group("curves")
    for r, curve in enumerate(gen.curves):
        sub = cgrp.create_group(str(r))
        sub.attrs["closed"] = bool(curve.closed)
        _write_dataset(sub, "points", curve.points, compression=compression, level=level)
        _write_dataset(sub, "params", curve.params, compression=compression, level=level)

    if gen.gaps:
        ggrp = group.create_group("gaps")
        _write_dataset(ggrp, "ring", np.array([g.ring for g in gen.gaps], dtype=np.int64))
        _write_dataset(ggrp, "param", np.array([g.param for g in gen.gaps], dtype=np.float64))
        _write_dataset(ggrp, "points", np.vstack([g.point for g in gen.gaps]))
        _write_strings(ggrp, "error", [g.error for g in gen.gaps])
        _write_strings(ggrp, "reason", [g.reason for g in gen.gaps])

    if gen.stalls:
        sgrp = group.create_group("stalls")
        _write_dataset(sgrp, "ring", np.array([s.ring for s in gen.stalls], dtype=np.int64))
        _write_dataset(sgrp, "interval", np.array([s.interval for s in gen.stalls], dtype=np.float64))
        _write_dataset(sgrp, "chord", np.array([s.chord for s in gen.stalls], dtype=np.float64))
        _write_dataset(sgrp, "generation", np.array([s.generation for s in gen.stalls], dtype=np.int64))
        _write_strings(sgrp, "reason", [str(s) for s in gen.stalls])


def _read_generation(group: h5py.Group) -> Generation:
    index = int(group.attrs["index"])
    cgrp = group["curves"]
    curves = []
    for r in sorted(cgrp.keys(), key=int):
        sub = cgrp[r]
        curves.append(Curve(points=sub["points"][()], params=sub["params"][()], closed=bool(sub.attrs["closed"])))

    gaps = []
    if "gaps" in group:
        ggrp = group["gaps"]
        for ring, param, point, error, reason in zip(
            ggrp["ring"][()], ggrp["param"][()], ggrp["points"][()],
            _read_strings(ggrp["error"]), _read_strings(ggrp["reason"]),
        ):
            gaps.append(GapRecord(
                generation=index, ring=int(ring), param=float(param),
                point=np.asarray(point), error=error, reason=reason,
            ))

    stalls = []
    if "stalls" in group:
        sgrp = group["stalls"]
        for ring, interval, chord, gen_idx, reason in zip(
            sgrp["ring"][()], sgrp["interval"][()], sgrp["chord"][()],
            sgrp["generation"][()], _read_strings(sgrp["reason"]),
        ):
            stalls.append(LocalRefinementStall(
                reason, generation=int(gen_idx), ring=int(ring),
                interval=(float(interval[0]), float(interval[1])), chord=float(chord),
            ))

    return Generation(index=index, curves=tuple(curves), gaps=tuple(gaps), stalls=tuple(stalls))


def save_manifold(
    manifold: "InvariantManifold",
    path: str | Path,
    *,
    compression: str = "gzip",
    level: int = 4,
) -> None:
    """Serialize *manifold* to an HDF5 file.

    Parameters
    ----------
    manifold : :class:`~hymani.system.manifold.InvariantManifold`
        The manifold to serialize.
    path : str or pathlib.Path
        Destination file. Parent directories are created.
    compression : str, default "gzip"
        Compression filter of the array datasets.
    level : int, default 4
        Compression level (0-9).
    """
    path = Path(path)
    _ensure_dir(path.parent)

    with h5py.File(path, "w") as f:
        f.attrs["format_version"] = HDF5_VERSION
        f.attrs["class"] = manifold.__class__.__name__
        f.attrs["n_generations"] = len(manifold)
        f.attrs["terminated_early"] = bool(manifold.terminated_early)

        if manifold.config is not None:
            _write_config(f.create_group("config"), manifold.config)

        saddle = manifold.saddle
        if saddle is not None:
            sgrp = f.create_group("saddle")
            sgrp.attrs["kind"] = saddle.kind
            _write_dataset(sgrp, "position", saddle.position)
            _write_dataset(sgrp, "directions", np.vstack(saddle.directions))
            _write_dataset(sgrp, "rates", np.asarray(saddle.rates, dtype=np.float64))

        ggrp = f.create_group("generations")
        for gen in manifold:
            _write_generation(ggrp.create_group(str(gen.index)), gen, compression=compression, level=level)


def load_manifold(path: str | Path) -> "InvariantManifold":
    """Load a manifold written by :func:`~hymani.utils.io.manifold.save_manifold`.

    Raises
    ------
    FileNotFoundError
        If *path* does not exist.
    ValueError
        If the file was written with an unsupported format version.
    """
    from hymani.system.manifold import InvariantManifold

    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(path)

    with h5py.File(path, "r") as f:
        version = f.attrs.get("format_version", "")
        if isinstance(version, bytes):
            version = version.decode()
        if version != HDF5_VERSION:
            raise ValueError(f"Unsupported manifold format version {version!r}")

        config = _read_config(f["config"]) if "config" in f else None

        saddle = None
        if "saddle" in f:
            sgrp = f["saddle"]
            kind = sgrp.attrs["kind"]
            saddle = Saddle(
                position=sgrp["position"][()],
                directions=tuple(sgrp["directions"][()]),
                rates=tuple(float(r) for r in sgrp["rates"][()]),
                kind=kind.decode() if isinstance(kind, bytes) else str(kind),
            )

        ggrp = f["generations"]
        generations = tuple(_read_generation(ggrp[k]) for k in sorted(ggrp.keys(), key=int))
        terminated_early = bool(f.attrs.get("terminated_early", False))

    result = ManifoldResult(
        generations=generations,
        saddle=saddle,
        config=config,
        terminated_early=terminated_early,
    )
    return InvariantManifold.from_result(result)
