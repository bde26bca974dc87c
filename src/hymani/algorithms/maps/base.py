"""Abstract interface of the point-to-point maps consumed by the growth engine."""

from abc import ABC, abstractmethod
from typing import Any

import numpy as np


class _MapEvaluator(ABC):
    """Evaluate a forward (or backward) map at a single point.

    Evaluators hold no mutable state across calls, so one instance can be
    shared by the worker threads of a growth run.

    Parameters
    ----------
    params : Any, optional
        Parameters forwarded unchanged to the user callables.
    name : str
        Human-readable label.
    """

    def __init__(self, params: Any = None, name: str = "map"):
        self._params = params
        self._name = name

    @property
    def params(self) -> Any:
        return self._params

    @property
    def name(self) -> str:
        return self._name

    @abstractmethod
    def evaluate(self, x: np.ndarray) -> np.ndarray:
        """Return the image of *x*.

        Raises
        ------
        :class:`~hymani.algorithms.utils.exceptions.IntegrationFailure`
            If the image cannot be computed to tolerance.
        :class:`~hymani.algorithms.utils.exceptions.HybridMapFailure`
            For hybrid maps whose event processing fails.
        """

    def __call__(self, x: np.ndarray) -> np.ndarray:
        return self.evaluate(x)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(name='{self._name}')"
