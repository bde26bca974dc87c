"""Abstract base classes shared by the hymani algorithms.

The growth machinery is split into an interface (domain objects to an
immutable problem), a backend (the numerical loop) and an engine (the
orchestration around both). Public objects persisted to disk derive from
:class:`~hymani.algorithms.utils.core._HymaniBase`.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Generic, TypeVar

import pandas as pd

from hymani.algorithms.utils.exceptions import EngineError


class _HymaniBase(ABC):
    """Public result object that can be persisted and tabulated."""

    def __str__(self) -> str:
        return f"{self.__class__.__name__}()"

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}()"

    @abstractmethod
    def save(self, file_path: str | Path, **kwargs) -> None:
        """Write the object to *file_path*."""

    @classmethod
    @abstractmethod
    def load(cls, file_path: str | Path, **kwargs) -> "_HymaniBase":
        """Rebuild an object previously written by :meth:`save`."""

    @abstractmethod
    def to_df(self, **kwargs) -> pd.DataFrame:
        """Flatten the object into a long-format table."""

    def to_csv(self, file_path: str | Path, **kwargs) -> None:
        """Write :meth:`to_df` to *file_path*, creating parent directories.

        Extra keyword arguments go to :meth:`pandas.DataFrame.to_csv`.
        """
        path = Path(file_path)
        path.parent.mkdir(parents=True, exist_ok=True)
        self.to_df().to_csv(path, index=False, **kwargs)


ProblemT = TypeVar("ProblemT", bound="_HymaniBaseProblem")
ResultT = TypeVar("ResultT")
OutputsT = TypeVar("OutputsT")
ConfigT = TypeVar("ConfigT", bound="_HymaniBaseConfig")


@dataclass(frozen=True)
class BackendCall:
    """Arguments an engine forwards to ``backend.run``."""

    args: tuple[Any, ...] = ()
    kwargs: dict[str, Any] = field(default_factory=dict)


class _HymaniBaseProblem(ABC):
    """Marker for immutable problem payloads."""

    __slots__ = ()


class _HymaniBaseConfig(ABC):
    """Frozen configuration checked once at construction.

    Subclasses override :meth:`_validate`; it runs from ``__post_init__``.
    """

    __slots__ = ()

    def __post_init__(self) -> None:
        self._validate()

    def _validate(self) -> None:
        return None


class _HymaniBaseBackend(ABC):
    """Owner of a numerical loop."""

    @abstractmethod
    def run(self, *args, **kwargs) -> Any:
        """Run the loop on already-translated inputs."""


class _HymaniBaseInterface(Generic[ConfigT, ProblemT, ResultT, OutputsT], ABC):
    """Translator between user objects, problems and backend calls."""

    @abstractmethod
    def create_problem(self, *, config: ConfigT, **kwargs) -> ProblemT:
        """Validate user inputs and freeze them into a problem."""

    @abstractmethod
    def to_backend_inputs(self, problem: ProblemT) -> BackendCall:
        """Unpack *problem* into the arguments of ``backend.run``."""

    @abstractmethod
    def to_results(self, outputs: OutputsT, *, problem: ProblemT) -> ResultT:
        """Wrap raw backend outputs into a result object."""

    def on_start(self, problem: ProblemT) -> None:
        return None

    def on_failure(self, exc: Exception, *, problem: ProblemT) -> None:
        return None


class _HymaniBaseEngine(Generic[ProblemT, ResultT, OutputsT], ABC):
    """Runs a problem: translate, call the backend, package the outputs.

    Subclasses customise error handling through
    :meth:`_handle_backend_failure`, which may raise a translated exception;
    otherwise the original one propagates.
    """

    def __init__(
        self,
        *,
        backend: _HymaniBaseBackend,
        interface: _HymaniBaseInterface[Any, ProblemT, ResultT, OutputsT] | None = None,
    ) -> None:
        self._backend = backend
        self._interface = interface

    @property
    def backend(self) -> _HymaniBaseBackend:
        return self._backend

    @property
    def interface(self) -> _HymaniBaseInterface[Any, ProblemT, ResultT, OutputsT] | None:
        return self._interface

    def set_interface(
        self,
        interface: _HymaniBaseInterface[Any, ProblemT, ResultT, OutputsT],
    ) -> None:
        self._interface = interface

    def solve(self, problem: ProblemT) -> ResultT:
        if self._interface is None:
            raise EngineError(f"{self.__class__.__name__} has no interface attached")
        interface = self._interface
        call = interface.to_backend_inputs(problem)
        interface.on_start(problem)

        try:
            outputs = self._backend.run(*call.args, **call.kwargs)
        except Exception as exc:
            interface.on_failure(exc, problem=problem)
            self._handle_backend_failure(exc, problem=problem, call=call)
            raise

        return interface.to_results(outputs, problem=problem)

    def _handle_backend_failure(self, exc: Exception, *, problem: ProblemT, call: BackendCall) -> None:
        return None


class _HymaniBaseFacade(Generic[ConfigT, ProblemT, ResultT], ABC):
    """User-facing entry point holding a config, an interface and an engine.

    Concrete facades provide ``with_default_engine`` to wire the standard
    backend.
    """

    def __init__(self, config: ConfigT, interface: _HymaniBaseInterface, engine: _HymaniBaseEngine) -> None:
        self._config = config
        self._interface = interface
        self._engine = engine
        if engine.interface is None:
            engine.set_interface(interface)

    @property
    def config(self) -> ConfigT:
        return self._config

    @property
    def engine(self) -> _HymaniBaseEngine:
        return self._engine

    @classmethod
    @abstractmethod
    def with_default_engine(cls, *, config: ConfigT) -> "_HymaniBaseFacade[ConfigT, ProblemT, ResultT]":
        """Facade wired with the default backend and interface."""

    def _solve(self, **kwargs) -> ResultT:
        problem = self._interface.create_problem(config=self._config, **kwargs)
        return self._engine.solve(problem)
