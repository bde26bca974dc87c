"""Numba kernels for the resolution metrics of sampled curves.

Chord lengths, turning angles and chord-length parameters are evaluated
on every refinement pass, so they are compiled. All kernels take a
C-contiguous ``(n, dim)`` float64 array and a ``closed`` flag; a closed
curve has the extra segment from the last point back to the first.
"""

import numpy as np
from numba import njit

from hymani.algorithms.utils.config import FASTMATH


@njit(cache=False, fastmath=FASTMATH)
def _distance(a: np.ndarray, b: np.ndarray) -> float:
    acc = 0.0
    for k in range(a.shape[0]):
        diff = b[k] - a[k]
        acc += diff * diff
    return np.sqrt(acc)


@njit(cache=False, fastmath=FASTMATH)
def _angle(a: np.ndarray, b: np.ndarray, c: np.ndarray) -> float:
    """Turning angle at *b* between segments a->b and b->c.

    Degenerate (zero-length) segments have no direction and give 0.
    """
    dot = 0.0
    n1 = 0.0
    n2 = 0.0
    for k in range(a.shape[0]):
        u = b[k] - a[k]
        v = c[k] - b[k]
        dot += u * v
        n1 += u * u
        n2 += v * v
    if n1 == 0.0 or n2 == 0.0:
        return 0.0
    cosang = dot / np.sqrt(n1 * n2)
    if cosang > 1.0:
        cosang = 1.0
    elif cosang < -1.0:
        cosang = -1.0
    return np.arccos(cosang)


@njit(cache=False, fastmath=FASTMATH)
def _segment_chords(points: np.ndarray, closed: bool) -> np.ndarray:
    """Chord lengths; ``n - 1`` entries for open curves, ``n`` for rings."""
    n = points.shape[0]
    m = n if (closed and n > 1) else max(n - 1, 0)
    out = np.empty(m, dtype=np.float64)
    for i in range(m):
        out[i] = _distance(points[i], points[(i + 1) % n])
    return out


@njit(cache=False, fastmath=FASTMATH)
def _turning_angles(points: np.ndarray, closed: bool) -> np.ndarray:
    """Turning angle at every point; end points of open curves get 0."""
    n = points.shape[0]
    out = np.zeros(n, dtype=np.float64)
    if n < 3:
        return out
    for i in range(n):
        if not closed and (i == 0 or i == n - 1):
            continue
        out[i] = _angle(points[(i - 1) % n], points[i], points[(i + 1) % n])
    return out


@njit(cache=False, fastmath=FASTMATH)
def _chord_params(points: np.ndarray, closed: bool) -> np.ndarray:
    """Normalised cumulative chord length.

    Open curves map onto ``[0, 1]``; rings onto ``[0, 1)`` with the
    closing chord completing the unit interval.
    """
    n = points.shape[0]
    out = np.zeros(n, dtype=np.float64)
    if n < 2:
        return out
    for i in range(1, n):
        out[i] = out[i - 1] + _distance(points[i - 1], points[i])
    total = out[n - 1]
    if closed:
        total += _distance(points[n - 1], points[0])
    if total == 0.0:
        for i in range(n):
            out[i] = i / (n if closed else n - 1)
        return out
    for i in range(n):
        out[i] /= total
    return out


@njit(cache=False, fastmath=FASTMATH)
def _max_pair_distance(a: np.ndarray, b: np.ndarray) -> float:
    """Largest distance between corresponding rows of two equal-shape arrays."""
    best = 0.0
    for i in range(a.shape[0]):
        d = _distance(a[i], b[i])
        if d > best:
            best = d
    return best
