"""Minimal dynamical-system wrappers consumed by the integrators.

A system is anything exposing ``dim`` and a ``rhs(t, y)`` callable. Region
vector fields of hybrid systems and smooth vector fields of flow maps are
both wrapped with :func:`~hymani.algorithms.dynamics.base.create_rhs_system`
before being handed to an integrator.
"""

from typing import Callable, Protocol, runtime_checkable

import numpy as np


@runtime_checkable
class _DynamicalSystemProtocol(Protocol):
    """Structural type accepted by the integrators."""

    @property
    def dim(self) -> int: ...

    def rhs(self, t: float, y: np.ndarray) -> np.ndarray: ...


class _DynamicalSystem:
    """Wrap a right-hand side ``f(t, y)`` of fixed state dimension.

    Parameters
    ----------
    rhs : callable
        Right-hand side with signature ``rhs(t, y) -> array_like``.
    dim : int
        State dimension.
    name : str, default "rhs"
        Human-readable label used in error messages.
    """

    def __init__(self, rhs: Callable[[float, np.ndarray], np.ndarray], dim: int, name: str = "rhs"):
        if dim <= 0:
            raise ValueError(f"dim must be positive, got {dim}")
        self._rhs = rhs
        self._dim = int(dim)
        self._name = name

    @property
    def dim(self) -> int:
        return self._dim

    @property
    def name(self) -> str:
        return self._name

    def rhs(self, t: float, y: np.ndarray) -> np.ndarray:
        return np.asarray(self._rhs(t, y), dtype=np.float64)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(name='{self._name}', dim={self._dim})"


def create_rhs_system(rhs: Callable[[float, np.ndarray], np.ndarray], dim: int, name: str = "rhs") -> _DynamicalSystem:
    """Return a :class:`~hymani.algorithms.dynamics.base._DynamicalSystem` around *rhs*."""
    return _DynamicalSystem(rhs, dim=dim, name=name)
