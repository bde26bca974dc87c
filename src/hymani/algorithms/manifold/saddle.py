"""Locate a saddle fixed point of a map and its invariant eigen-directions."""

from typing import Callable, Literal, Optional

import numpy as np
from scipy.optimize import root

from hymani.algorithms.manifold.types import Saddle
from hymani.algorithms.maps.base import _MapEvaluator
from hymani.algorithms.utils.exceptions import (ConvergenceFailure,
                                                HybridMapFailure,
                                                IntegrationFailure)
from hymani.utils.log_config import logger

# relative size of the imaginary part below which an eigenvalue is real
_REAL_TOL = 1e-10


def _fd_jacobian(evaluator: _MapEvaluator, x: np.ndarray, h: float) -> np.ndarray:
    """Central-difference Jacobian of *evaluator* at *x*."""
    n = x.shape[0]
    jac = np.empty((n, n), dtype=np.float64)
    for j in range(n):
        step = h * max(1.0, abs(x[j]))
        e = np.zeros(n)
        e[j] = step
        jac[:, j] = (evaluator.evaluate(x + e) - evaluator.evaluate(x - e)) / (2.0 * step)
    return jac


def locate_saddle(
    evaluator: _MapEvaluator,
    guess,
    *,
    kind: Literal["unstable", "stable"] = "unstable",
    jacobian: Optional[Callable[[np.ndarray], np.ndarray]] = None,
    tol: float = 1e-12,
    fd_step: float = 1e-6,
) -> Saddle:
    """Solve ``F(x) = x`` near *guess* and return the saddle with its subspace.

    Parameters
    ----------
    evaluator : :class:`~hymani.algorithms.maps.base._MapEvaluator`
        The map ``F``.
    guess : array_like
        Initial guess of the fixed point.
    kind : {'unstable', 'stable'}, default 'unstable'
        Select eigenvalues with modulus above 1 (sorted by decreasing
        modulus) or below 1 (sorted by increasing modulus).
    jacobian : callable, optional
        Analytic Jacobian ``jacobian(x) -> (n, n)``. Central differences
        with step *fd_step* are used otherwise.
    tol : float, default 1e-12
        Tolerance of :func:`scipy.optimize.root`.
    fd_step : float, default 1e-6
        Relative finite-difference step.

    Returns
    -------
    :class:`~hymani.algorithms.manifold.types.Saddle`

    Raises
    ------
    ConvergenceFailure
        If the root solve fails, the map cannot be evaluated near the
        guess, or no real eigen-direction of the requested kind exists.
    """
    if kind not in ("unstable", "stable"):
        raise ValueError(f"kind must be 'unstable' or 'stable', got {kind!r}")
    x0 = np.asarray(guess, dtype=np.float64)
    if x0.ndim != 1:
        raise ValueError("guess must be a 1-D array")

    def residual(x: np.ndarray) -> np.ndarray:
        return evaluator.evaluate(x) - x

    try:
        sol = root(residual, x0, method="hybr", tol=tol)
        x_star = np.asarray(sol.x, dtype=np.float64)
        res = float(np.linalg.norm(residual(x_star)))
    except (IntegrationFailure, HybridMapFailure) as exc:
        raise ConvergenceFailure(f"map evaluation failed during saddle search: {exc}") from exc

    if not sol.success or not res <= max(1e3 * tol, 1e-9) * max(1.0, np.linalg.norm(x_star)):
        raise ConvergenceFailure(
            f"fixed-point solve did not converge (residual {res:.3e}): {sol.message}"
        )

    try:
        jac = np.asarray(jacobian(x_star), dtype=np.float64) if jacobian is not None else _fd_jacobian(evaluator, x_star, fd_step)
    except (IntegrationFailure, HybridMapFailure) as exc:
        raise ConvergenceFailure(f"Jacobian evaluation failed: {exc}") from exc
    if jac.shape != (x0.shape[0], x0.shape[0]):
        raise ValueError(f"jacobian has shape {jac.shape}, expected {(x0.shape[0],) * 2}")

    eigvals, eigvecs = np.linalg.eig(jac)
    mods = np.abs(eigvals)
    real = np.abs(eigvals.imag) <= _REAL_TOL * np.maximum(mods, 1.0)
    wanted = real & ((mods > 1.0) if kind == "unstable" else (mods < 1.0))
    idx = np.flatnonzero(wanted)
    if idx.size == 0:
        raise ConvergenceFailure(f"no real {kind} eigen-directions at the fixed point")

    order = np.argsort(-mods[idx] if kind == "unstable" else mods[idx], kind="stable")
    idx = idx[order]
    directions = tuple(np.real(eigvecs[:, i]) for i in idx)
    rates = tuple(float(np.real(eigvals[i])) for i in idx)

    logger.info(
        "Saddle at %s with %d %s direction(s), rates %s",
        np.array2string(x_star, precision=6), len(idx), kind, rates,
    )
    return Saddle(position=x_star, directions=directions, rates=rates, kind=kind)
