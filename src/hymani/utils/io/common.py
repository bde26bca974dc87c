"""Shared helpers of the HDF5 writers."""

from pathlib import Path

import h5py
import numpy as np


def _ensure_dir(path: str | Path) -> None:
    """Create *path* (and parents) if it does not exist."""
    Path(path).mkdir(parents=True, exist_ok=True)


def _write_dataset(
    group: h5py.Group,
    name: str,
    data,
    *,
    compression: str | None = "gzip",
    level: int = 4,
) -> h5py.Dataset:
    """Write *data* under *name*, compressing non-scalar numeric arrays."""
    arr = np.asarray(data)
    if arr.ndim == 0 or arr.size == 0 or compression is None:
        return group.create_dataset(name, data=arr)
    return group.create_dataset(name, data=arr, compression=compression, compression_opts=level)


def _write_strings(group: h5py.Group, name: str, values) -> h5py.Dataset:
    """Write a list of Python strings as a variable-length UTF-8 dataset."""
    return group.create_dataset(name, data=list(values), dtype=h5py.string_dtype(encoding="utf-8"))


def _read_strings(dataset: h5py.Dataset) -> list[str]:
    return [s for s in dataset.asstr()[()]]
