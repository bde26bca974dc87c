"""Local seeds: the linear approximation of a manifold near its saddle.

The seed is generation 0 of a growth run. A 1-D seed is a short straight
segment along one eigen-direction; a 2-D seed is a family of concentric
ellipses in the plane of two eigen-directions, the axes scaled by the
relative growth rates.
"""

import math
from typing import Optional

import numpy as np

from hymani.algorithms.manifold.config import ManifoldConfig
from hymani.algorithms.manifold.geometry import (_segment_chords,
                                                 _turning_angles)
from hymani.algorithms.manifold.types import Curve, Generation, Saddle
from hymani.utils.log_config import logger

_MIN_RING_POINTS = 8
_MAX_RING_POINTS = 1_000_000


def seed_1d(
    saddle: Saddle,
    step: float,
    n_points: int,
    direction_index: int = 0,
    two_sided: bool = False,
) -> Generation:
    """Return a straight seed arc ``x0 + i * step * v``.

    Parameters
    ----------
    saddle : :class:`~hymani.algorithms.manifold.types.Saddle`
        Saddle providing ``x0`` and the direction ``v``.
    step : float
        Spacing between consecutive seed points.
    n_points : int
        Points on each side of the saddle, the saddle included.
    direction_index : int, default 0
        Which of the saddle directions to follow.
    two_sided : bool, default False
        Extend the arc to ``i = -(n - 1)..(n - 1)`` so both branches grow.

    Returns
    -------
    :class:`~hymani.algorithms.manifold.types.Generation`
        Generation 0 with a single open curve.
    """
    if not step > 0.0:
        raise ValueError(f"step must be positive, got {step}")
    if n_points < 2:
        raise ValueError("n_points must be >= 2")
    if not 0 <= direction_index < saddle.n_directions:
        raise ValueError(f"direction_index {direction_index} out of range")

    v = saddle.directions[direction_index]
    lo = -(n_points - 1) if two_sided else 0
    idx = np.arange(lo, n_points, dtype=np.float64)
    pts = saddle.position[None, :] + (idx * step)[:, None] * v[None, :]
    return Generation(index=0, curves=(Curve.from_points(pts, closed=False),))


def _ring(x0: np.ndarray, e1: np.ndarray, e2: np.ndarray, a1: float, a2: float, rho: float, n: int) -> np.ndarray:
    theta = np.linspace(0.0, 2.0 * np.pi, n, endpoint=False)
    return (
        x0[None, :]
        + rho * a1 * np.cos(theta)[:, None] * e1[None, :]
        + rho * a2 * np.sin(theta)[:, None] * e2[None, :]
    )


def _resolve_ring(x0, e1, e2, a1, a2, rho, config: ManifoldConfig) -> np.ndarray:
    """Smallest uniform-angle sampling whose chords and angles are in bounds."""
    perimeter = 2.0 * np.pi * rho * max(a1, a2)
    n = max(_MIN_RING_POINTS, int(math.ceil(perimeter / config.d)), int(math.ceil(2.0 * np.pi / config.amax)) + 1)
    while n <= _MAX_RING_POINTS:
        pts = _ring(x0, e1, e2, a1, a2, rho, n)
        chords = _segment_chords(pts, True)
        if chords.min() < config.dsmin:
            raise ValueError(
                f"ring of radius {rho:.3e} cannot be sampled with chords >= dsmin={config.dsmin}"
            )
        if chords.max() <= config.d and _turning_angles(pts, True).max() <= config.amax:
            return pts
        n = int(math.ceil(n * 1.5))
    raise ValueError(f"ring of radius {rho:.3e} needs more than {_MAX_RING_POINTS} points")


def seed_2d(
    saddle: Saddle,
    radius: float,
    config: ManifoldConfig,
    n_rings: Optional[int] = None,
) -> Generation:
    """Return nested seed rings around a saddle with a 2-D invariant subspace.

    Ring ``j`` (``j = 1..J``) is
    ``x0 + rho_j (a1 cos(theta) e1 + a2 sin(theta) e2)`` with
    ``rho_j = radius * j / J`` and ``a_i = |rate_i| / max|rate|``.

    Parameters
    ----------
    saddle : :class:`~hymani.algorithms.manifold.types.Saddle`
        Saddle with at least two directions; the first two are used.
    radius : float
        Radius of the outermost ring along the dominant direction.
    config : :class:`~hymani.algorithms.manifold.config.ManifoldConfig`
        Supplies ``d``, ``dsmin``, ``amax``, ``radial_threshold`` and
        ``max_rings``.
    n_rings : int, optional
        Ring count. By default the smallest count keeping adjacent rings
        within ``radial_threshold``.

    Returns
    -------
    :class:`~hymani.algorithms.manifold.types.Generation`
        Generation 0 with rings ordered innermost first.
    """
    if saddle.n_directions < 2:
        raise ValueError("a 2-D seed needs a saddle with two directions")
    if not radius > 0.0:
        raise ValueError(f"radius must be positive, got {radius}")

    rates = np.abs(np.asarray(saddle.rates[:2], dtype=np.float64))
    if not rates.max() > 0.0:
        raise ValueError("growth-rate labels must not all be zero")
    a1, a2 = rates / rates.max()
    if min(a1, a2) == 0.0:
        raise ValueError("growth-rate labels must be non-zero")

    if n_rings is None:
        n_rings = max(1, int(math.ceil(radius / config.radial_tol)))
        if n_rings > config.max_rings:
            logger.warning(
                "Seed needs %d rings for radial_threshold=%.3e; capped at max_rings=%d",
                n_rings, config.radial_tol, config.max_rings,
            )
            n_rings = config.max_rings
    elif n_rings < 1:
        raise ValueError("n_rings must be >= 1")

    x0 = saddle.position
    e1, e2 = saddle.directions[0], saddle.directions[1]
    rings = []
    for j in range(1, n_rings + 1):
        rho = radius * j / n_rings
        pts = _resolve_ring(x0, e1, e2, a1, a2, rho, config)
        rings.append(Curve.from_points(pts, closed=True))
    return Generation(index=0, curves=tuple(rings))


def ring_preimage(saddle: Saddle, ring: Curve) -> Curve:
    """Pull *ring* back one step through the linearised map at *saddle*.

    Each point is written as ``x0 + c1 e1 + c2 e2`` (least squares in the
    plane of the first two directions) and replaced by
    ``x0 + (c1 / rate1) e1 + (c2 / rate2) e2``. Point order is kept, so the
    result corresponds to *ring* parameter by parameter.

    Parameters
    ----------
    saddle : :class:`~hymani.algorithms.manifold.types.Saddle`
        Saddle with at least two directions and non-zero rates.
    ring : :class:`~hymani.algorithms.manifold.types.Curve`
        Closed ring close to the saddle, typically the outer seed ring.
    """
    if saddle.n_directions < 2:
        raise ValueError("pulling back a ring needs a saddle with two directions")
    rates = np.asarray(saddle.rates[:2], dtype=np.float64)
    if np.any(rates == 0.0):
        raise ValueError("growth-rate labels must be non-zero")

    basis = np.column_stack([saddle.directions[0], saddle.directions[1]])
    offsets = ring.points - saddle.position[None, :]
    coeffs, *_ = np.linalg.lstsq(basis, offsets.T, rcond=None)
    pts = saddle.position[None, :] + (basis @ (coeffs / rates[:, None])).T
    return Curve.from_points(pts, closed=ring.closed)
