"""Exception hierarchy of hymani.

Everything raised on purpose by the package derives from
:class:`HymaniError`, so callers can catch the whole family at once.
"""


class HymaniError(Exception):
    """Root of the package's exceptions."""


class ConvergenceFailure(HymaniError):
    """The saddle search did not settle on a hyperbolic fixed point."""


class IntegrationFailure(HymaniError):
    """A flow solve stopped short of its horizon or went non-finite."""


class HybridMapFailure(HymaniError):
    """A hybrid map evaluation was abandoned.

    Covers an exceeded crossing budget and failed region resolution.

    Parameters
    ----------
    message : str
        Description of the failure.
    crossings : int, default 0
        Switching-surface crossings applied before giving up.
    """

    def __init__(self, message: str, crossings: int = 0):
        self.crossings = int(crossings)
        super().__init__(message)


class UndefinedTransition(HybridMapFailure):
    """A state fell outside every declared region.

    ``time`` and ``state`` locate the point where resolution failed.
    """

    def __init__(self, message: str, time: float = float("nan"), state=None, crossings: int = 0):
        self.time = float(time)
        self.state = state
        super().__init__(message, crossings=crossings)


class LocalRefinementStall(HymaniError):
    """A segment the refiner had to accept unresolved.

    Instances are collected on the manifold rather than raised.

    Parameters
    ----------
    message : str
        Why the segment could not be subdivided further.
    generation : int
        Generation being built.
    ring : int
        Ring index (always 0 for 1-D manifolds).
    interval : tuple of float
        Pre-image parameters bounding the segment.
    chord : float
        Chord length of the accepted segment.
    """

    def __init__(self, message: str, generation: int = -1, ring: int = 0, interval=(float("nan"), float("nan")), chord: float = float("nan")):
        self.generation = int(generation)
        self.ring = int(ring)
        self.interval = (float(interval[0]), float(interval[1]))
        self.chord = float(chord)
        super().__init__(message)


class BackendError(HymaniError):
    """A backend failed while computing a generation."""


class EngineError(HymaniError):
    """The growth engine could not finish; wraps the underlying cause."""
