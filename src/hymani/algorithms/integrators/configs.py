from dataclasses import dataclass

from hymani.algorithms.utils.config import EPS_TIME


@dataclass(frozen=True)
class _EventConfig:
    """Configuration for a scalar event function g(t, y).

    Parameters
    ----------
    direction : int, default 0
        Crossing direction to detect:
        - 0: any sign change
        - +1: only increasing crossings (g0 < 0 and g1 >= 0)
        - -1: only decreasing crossings (g0 > 0 and g1 <= 0)
    tol : float, default 1e-10
        Absolute time tolerance of the bisection refinement. The located
        time lies on the post-crossing side, within ``tol`` of the root.
    max_iter : int, default 200
        Maximum iterations of the bracketing refinement.
    """

    direction: int = 0
    tol: float = EPS_TIME
    max_iter: int = 200

    def __post_init__(self):
        if self.direction not in (-1, 0, 1):
            raise ValueError(f"direction must be -1, 0 or 1, got {self.direction}")
        if self.tol <= 0.0:
            raise ValueError("tol must be positive")
        if self.max_iter < 1:
            raise ValueError("max_iter must be >= 1")
