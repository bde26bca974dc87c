"""Engine orchestrating manifold growth through the backend and interface."""

from hymani.algorithms.manifold.backend import _GrowthBackend
from hymani.algorithms.manifold.interfaces import _ManifoldInterface
from hymani.algorithms.manifold.types import ManifoldResult, _ManifoldProblem
from hymani.algorithms.utils.core import BackendCall, _HymaniBaseEngine
from hymani.algorithms.utils.exceptions import (BackendError, EngineError,
                                                UndefinedTransition)


class _GrowthEngine(_HymaniBaseEngine[_ManifoldProblem, ManifoldResult, tuple]):
    """Run a growth problem and wrap unexpected backend failures.

    An :class:`~hymani.algorithms.utils.exceptions.UndefinedTransition`
    reaching the engine was re-raised on purpose by a run configured with
    ``raise_on_undefined`` and is passed through unchanged.
    """

    def __init__(self, *, backend: _GrowthBackend, interface: _ManifoldInterface | None = None) -> None:
        super().__init__(backend=backend, interface=interface)

    def _handle_backend_failure(self, exc: Exception, *, problem: _ManifoldProblem, call: BackendCall) -> None:
        if isinstance(exc, UndefinedTransition):
            raise exc
        if isinstance(exc, BackendError):
            raise EngineError(f"Manifold growth failed at {exc}") from exc
        raise EngineError(f"Unexpected error during manifold growth: {exc}") from exc
