"""Provide regression utilities used by the scatter-plot and outcome demos.

This module supports:
- closed-form ordinary least-squares lines with explicit degenerate fallbacks,
- goodness-of-fit diagnostics for a given line,
- single-predictor logistic regression fitted by Newton-Raphson (IRLS),
- regression-discontinuity effects built from two local OLS fits, and
- pooled and per-group lines for nested (multilevel) data.
"""

from __future__ import annotations

import logging
import math
import warnings
from typing import Dict, Sequence

import numpy as np
import pandas as pd
from scipy.special import expit

from ..schema import LogisticFit, RegressionLine
from .linalg import _finite_pairs

logger = logging.getLogger(__name__)

DEFAULT_LOGISTIC_MAX_ITER = 100
DEFAULT_LOGISTIC_TOL = 1e-8
DEFAULT_COEFFICIENT_BOUND = 1e3
_PROBABILITY_CLIP = 1e-6


def linear_regression(x: np.ndarray, y: np.ndarray) -> RegressionLine:
    """Fit an ordinary least-squares straight line to finite data pairs.

    Args:
        x (numpy.ndarray): Independent variable values.
        y (numpy.ndarray): Dependent variable values, same length as ``x``.

    Returns:
        RegressionLine: Slope and intercept computed from the sums of ``x``,
        ``y``, ``x**2`` and ``x*y``.

    Note:
        The line is always defined. With no points the result is ``(0, 0)``;
        with one point it is horizontal through that point; when ``x`` has
        zero variance the slope is ``0`` and the intercept is ``mean(y)``.

    References:
        Ordinary least squares linear regression.
    """
    x_arr, y_arr = _finite_pairs(x, y)
    n = int(x_arr.size)
    if n == 0:
        return RegressionLine(slope=0.0, intercept=0.0)
    if n == 1:
        return RegressionLine(slope=0.0, intercept=float(y_arr[0]))

    sum_x = float(np.sum(x_arr))
    sum_y = float(np.sum(y_arr))
    sum_xy = float(np.sum(x_arr * y_arr))
    sum_x2 = float(np.sum(x_arr * x_arr))

    denominator = n * sum_x2 - sum_x * sum_x
    # Relative test so large-magnitude constant x is still caught.
    if abs(denominator) <= 1e-12 * max(1.0, n * sum_x2):
        return RegressionLine(slope=0.0, intercept=sum_y / n)

    slope = (n * sum_xy - sum_x * sum_y) / denominator
    intercept = (sum_y - slope * sum_x) / n
    return RegressionLine(slope=float(slope), intercept=float(intercept))


def residuals(x: np.ndarray, y: np.ndarray, line: RegressionLine) -> np.ndarray:
    """Return ``y - yhat`` for each finite pair."""
    x_arr, y_arr = _finite_pairs(x, y)
    return y_arr - line.predict(x_arr)


def sum_squared_residuals(x: np.ndarray, y: np.ndarray, line: RegressionLine) -> float:
    return float(np.sum(residuals(x, y, line) ** 2))


def r_squared(x: np.ndarray, y: np.ndarray, line: RegressionLine) -> float:
    """Coefficient of determination of ``line`` on the data.

    Returns ``1.0`` for fewer than two points or zero total variance in ``y``,
    matching the convention that a perfect description is available.
    """
    x_arr, y_arr = _finite_pairs(x, y)
    if x_arr.size < 2:
        return 1.0
    ss_res = float(np.sum((y_arr - line.predict(x_arr)) ** 2))
    ss_tot = float(np.sum((y_arr - y_arr.mean()) ** 2))
    if ss_tot == 0.0:
        return 1.0
    return 1.0 - ss_res / ss_tot


def standard_error(x: np.ndarray, y: np.ndarray, line: RegressionLine) -> float:
    """Standard error of the estimate, ``sqrt(SS_res / (n - 2))``; ``0`` for ``n <= 2``."""
    x_arr, y_arr = _finite_pairs(x, y)
    n = x_arr.size
    if n <= 2:
        return 0.0
    ss_res = float(np.sum((y_arr - line.predict(x_arr)) ** 2))
    return math.sqrt(ss_res / (n - 2))


def _log_likelihood(x: np.ndarray, y: np.ndarray, beta: np.ndarray) -> float:
    z = beta[0] + beta[1] * x
    return float(np.sum(y * z - np.logaddexp(0.0, z)))


def _is_separated(x: np.ndarray, y: np.ndarray) -> bool:
    x0 = x[y == 0]
    x1 = x[y == 1]
    return bool(x0.max() < x1.min() or x1.max() < x0.min())


def logistic_regression(
    x: np.ndarray,
    outcome: np.ndarray,
    max_iter: int = DEFAULT_LOGISTIC_MAX_ITER,
    tol: float = DEFAULT_LOGISTIC_TOL,
    coefficient_bound: float = DEFAULT_COEFFICIENT_BOUND,
) -> LogisticFit:
    """Fit a single-predictor logistic regression by Newton-Raphson.

    Args:
        x (numpy.ndarray): Predictor values (for example study hours).
        outcome (numpy.ndarray): Binary outcomes (``0`` fail, ``1`` pass).
        max_iter (int, optional): Iteration cap. Defaults to ``100``.
        tol (float, optional): Stop once the log-likelihood improves by less
            than this amount. Defaults to ``1e-8``.
        coefficient_bound (float, optional): Coefficients are clamped to
            ``[-bound, bound]``. Defaults to ``1e3``.

    Returns:
        LogisticFit: ``beta0``, ``beta1``, final log-likelihood, iterations
        used and whether a finite maximum was reached.

    Raises:
        ValueError: If ``outcome`` contains values other than 0 and 1.

    Note:
        On perfectly separable data the maximum-likelihood coefficients are
        infinite. The coefficients grow until the likelihood flattens below
        ``tol`` or hits the bound, a ``UserWarning`` is emitted and the fit
        reports ``converged=False``. A single-class outcome gives ``beta1 = 0``
        and ``beta0 = logit(mean)`` with the mean clipped away from 0 and 1.

    References:
        Iteratively reweighted least squares for the binomial GLM.
    """
    x_arr, y_arr = _finite_pairs(x, outcome)
    if not np.all((y_arr == 0) | (y_arr == 1)):
        raise ValueError("Logistic outcomes must be 0 or 1.")
    n = int(x_arr.size)
    if n == 0:
        return LogisticFit(beta0=0.0, beta1=0.0, log_likelihood=0.0, n_iter=0, converged=True)

    p_bar = float(np.clip(y_arr.mean(), _PROBABILITY_CLIP, 1.0 - _PROBABILITY_CLIP))
    if np.all(y_arr == y_arr[0]):
        beta = np.array([math.log(p_bar / (1.0 - p_bar)), 0.0])
        return LogisticFit(
            beta0=float(beta[0]),
            beta1=0.0,
            log_likelihood=_log_likelihood(x_arr, y_arr, beta),
            n_iter=0,
            converged=True,
        )

    separated = _is_separated(x_arr, y_arr)
    if separated:
        warnings.warn(
            "Outcomes are perfectly separated by x; the likelihood has no finite "
            "maximum and the returned coefficients are not a converged estimate.",
            UserWarning,
            stacklevel=2,
        )

    design = np.column_stack([np.ones(n), x_arr])
    beta = np.array([math.log(p_bar / (1.0 - p_bar)), 0.0])
    ll = _log_likelihood(x_arr, y_arr, beta)
    converged = False
    n_iter = 0

    for n_iter in range(1, max_iter + 1):
        p = expit(design @ beta)
        gradient = design.T @ (y_arr - p)
        weights = p * (1.0 - p)
        hessian = design.T @ (design * weights[:, None])
        # lstsq gives the minimum-norm step when x has zero variance.
        step, *_ = np.linalg.lstsq(hessian, gradient, rcond=None)
        candidate = np.clip(beta + step, -coefficient_bound, coefficient_bound)
        new_ll = _log_likelihood(x_arr, y_arr, candidate)

        # Step halving keeps the ascent monotone.
        halvings = 0
        while new_ll < ll and halvings < 30:
            step = step / 2.0
            candidate = np.clip(beta + step, -coefficient_bound, coefficient_bound)
            new_ll = _log_likelihood(x_arr, y_arr, candidate)
            halvings += 1
        if new_ll < ll:
            converged = True
            break

        improvement = new_ll - ll
        beta = candidate
        ll = new_ll
        if np.any(np.abs(beta) >= coefficient_bound):
            break
        if abs(improvement) < tol:
            converged = True
            break

    converged = converged and not separated

    logger.debug(
        "Logistic regression finished after %d iterations (ll=%.6f, converged=%s)",
        n_iter,
        ll,
        converged,
    )
    return LogisticFit(
        beta0=float(beta[0]),
        beta1=float(beta[1]),
        log_likelihood=float(ll),
        n_iter=int(n_iter),
        converged=converged,
    )


def predict_logistic_probability(x, fit: LogisticFit):
    """Evaluate ``P(y=1 | x)`` for a scalar or array ``x``."""
    z = fit.beta0 + fit.beta1 * np.asarray(x, dtype=float)
    p = expit(z)
    return float(p) if np.ndim(p) == 0 else p


def rdd_effect(
    x: np.ndarray, y: np.ndarray, cutoff: float, bandwidth: float
) -> Dict[str, object]:
    """Estimate a sharp regression-discontinuity effect at ``cutoff``.

    Units with ``x < cutoff`` are treated. Separate OLS lines are fitted to
    ``[cutoff - bandwidth, cutoff)`` and ``[cutoff, cutoff + bandwidth]``.

    Args:
        x (numpy.ndarray): Running variable (for example a pre-test score).
        y (numpy.ndarray): Outcome (for example a post-test score).
        cutoff (float): Assignment threshold.
        bandwidth (float): Half-width of the local window, must be positive.

    Returns:
        dict[str, object]: ``effect`` (treated minus control prediction at the
        cutoff), ``treatment_line``, ``control_line``, ``n_treatment`` and
        ``n_control``.

    Raises:
        ValueError: If ``bandwidth`` is not positive.
    """
    if not bandwidth > 0:
        raise ValueError("bandwidth must be positive.")
    x_arr, y_arr = _finite_pairs(x, y)
    treated = (x_arr < cutoff) & (x_arr >= cutoff - bandwidth)
    control = (x_arr >= cutoff) & (x_arr <= cutoff + bandwidth)

    treatment_line = linear_regression(x_arr[treated], y_arr[treated])
    control_line = linear_regression(x_arr[control], y_arr[control])
    effect = treatment_line.predict(cutoff) - control_line.predict(cutoff)
    return {
        "effect": float(effect),
        "treatment_line": treatment_line,
        "control_line": control_line,
        "n_treatment": int(np.sum(treated)),
        "n_control": int(np.sum(control)),
    }


def group_regressions(x: np.ndarray, y: np.ndarray, groups: Sequence) -> Dict[str, object]:
    """Fit one pooled OLS line and one OLS line per group.

    The gap between the pooled line and the group lines is what a multilevel
    model separates into fixed and random effects.

    Args:
        x (numpy.ndarray): Predictor values.
        y (numpy.ndarray): Outcomes, same length as ``x``.
        groups: Group label per observation, same length as ``x``.

    Returns:
        dict[str, object]: ``overall`` (pooled :class:`RegressionLine`),
        ``groups`` (label -> line, labels sorted), ``slope_variance`` and
        ``intercept_variance`` (population variance across group lines; ``0.0``
        with fewer than two groups).

    Raises:
        ValueError: If the inputs differ in length.
    """
    x_arr = np.asarray(x, dtype=float).ravel()
    y_arr = np.asarray(y, dtype=float).ravel()
    labels = list(groups)
    if not x_arr.size == y_arr.size == len(labels):
        raise ValueError("x, y and groups must have the same length.")
    frame = pd.DataFrame({"x": x_arr, "y": y_arr, "group": labels})

    overall = linear_regression(frame["x"], frame["y"])
    lines = {
        label: linear_regression(part["x"], part["y"])
        for label, part in sorted(frame.groupby("group", sort=False), key=lambda item: str(item[0]))
    }
    slopes = np.array([line.slope for line in lines.values()])
    intercepts = np.array([line.intercept for line in lines.values()])
    return {
        "overall": overall,
        "groups": lines,
        "slope_variance": float(slopes.var()) if slopes.size > 1 else 0.0,
        "intercept_variance": float(intercepts.var()) if intercepts.size > 1 else 0.0,
    }
