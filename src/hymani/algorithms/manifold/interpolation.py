"""Parametric interpolants through the samples of a curve.

Open curves are defined on ``[0, 1]`` and reject parameters outside it.
Rings are periodic: parameters are reduced modulo 1 and the closing
segment joins the last sample back to the first at parameter 1.
"""

import numpy as np
from scipy.interpolate import CubicSpline, PchipInterpolator, make_interp_spline

_SCHEMES = ("linear", "cubic", "pchip")

# relative slack allowed on the [0, 1] domain of open curves
_DOMAIN_SLACK = 1e-12


class Interpolant:
    """Piecewise interpolant ``s -> x(s)`` of a sampled curve.

    Parameters
    ----------
    points : array_like, shape (n, dim)
        Samples.
    params : array_like, shape (n,)
        Strictly increasing parameters in ``[0, 1]`` (``[0, 1)`` for rings).
    closed : bool, default False
        Treat the samples as a ring.
    scheme : {'linear', 'cubic', 'pchip'}, default 'cubic'
        Interpolation scheme. Cubic rings use a periodic spline. Cubic
        and pchip fall back to linear when there are too few samples.

    Raises
    ------
    ValueError
        If the samples are inconsistent or the scheme is unknown.
    """

    def __init__(self, points, params, *, closed: bool = False, scheme: str = "cubic"):
        if scheme not in _SCHEMES:
            raise ValueError(f"Unknown interpolation scheme {scheme!r}; expected one of {_SCHEMES}")
        pts = np.asarray(points, dtype=np.float64)
        prm = np.asarray(params, dtype=np.float64)
        if pts.ndim != 2 or prm.ndim != 1 or pts.shape[0] != prm.shape[0]:
            raise ValueError("points must be (n, dim) and params (n,)")
        if pts.shape[0] < 2:
            raise ValueError("an interpolant needs at least two samples")
        if not np.all(np.diff(prm) > 0.0):
            raise ValueError("params must be strictly increasing")
        if closed and not (prm[0] >= 0.0 and prm[-1] < 1.0):
            raise ValueError("ring params must lie in [0, 1)")

        self._closed = bool(closed)
        self._scheme = scheme
        self._points = pts.copy()
        self._params = prm.copy()

        if self._closed:
            knots = np.concatenate([prm, [prm[0] + 1.0]])
            values = np.vstack([pts, pts[:1]])
        else:
            knots, values = prm, pts
        self._lo = float(knots[0])
        self._hi = float(knots[-1])

        n_knots = knots.shape[0]
        if scheme == "cubic" and n_knots >= 4:
            bc = "periodic" if self._closed else "not-a-knot"
            self._spline = CubicSpline(knots, values, axis=0, bc_type=bc)
        elif scheme == "pchip" and n_knots >= 3:
            self._spline = PchipInterpolator(knots, values, axis=0)
        else:
            self._spline = make_interp_spline(knots, values, k=1, axis=0)

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def scheme(self) -> str:
        return self._scheme

    @property
    def params(self) -> np.ndarray:
        return self._params.copy()

    @property
    def points(self) -> np.ndarray:
        return self._points.copy()

    def _map_params(self, s: np.ndarray) -> np.ndarray:
        if self._closed:
            # knots span [p0, p0 + 1)
            return self._lo + np.mod(s - self._lo, 1.0)
        slack = _DOMAIN_SLACK * max(1.0, self._hi - self._lo)
        if np.any(s < self._lo - slack) or np.any(s > self._hi + slack) or np.any(~np.isfinite(s)):
            raise ValueError(
                f"parameter outside the curve domain [{self._lo}, {self._hi}]"
            )
        return np.clip(s, self._lo, self._hi)

    def __call__(self, s):
        """Evaluate the curve at parameter(s) *s*.

        Returns an array of shape ``(dim,)`` for a scalar and ``(m, dim)``
        for a 1-D array of parameters.
        """
        arr = np.asarray(s, dtype=np.float64)
        out = np.asarray(self._spline(self._map_params(arr.reshape(-1))), dtype=np.float64)
        if arr.ndim == 0:
            return out[0]
        return out.reshape(arr.shape + (self._points.shape[1],))

    def __repr__(self) -> str:
        kind = "ring" if self._closed else "arc"
        return f"Interpolant({kind}, scheme='{self._scheme}', n={self._points.shape[0]})"
