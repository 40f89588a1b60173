"""Provide the small linear-algebra kernel used by every estimator.

This module supports:
- descriptive moments over paired samples (mean, variance, covariance,
  Pearson correlation),
- shape-checked matrix transpose and multiplication,
- symmetric eigendecomposition with deterministic eigenvector signs, and
- regularized two-dimensional Gaussian densities.

Non-finite inputs never propagate: moments drop non-finite pairs and
densities fall back to a zero sentinel.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence, Tuple, Union

import numpy as np
import pandas as pd
from scipy.stats import multivariate_normal

from ..schema import NumericFailure, Point

DEFAULT_DENSITY_EPSILON = 1e-6


@dataclass(frozen=True)
class EigenDecomposition:
    """Eigenpairs sorted by descending eigenvalue.

    Attributes:
        values: Eigenvalues, shape ``(d,)``.
        vectors: Unit eigenvectors stored as columns, shape ``(d, d)``.
    """

    values: np.ndarray
    vectors: np.ndarray


def finite_or(value: float, fallback: float = 0.0) -> float:
    """Return ``value`` as a float, or ``fallback`` when it is NaN/Inf."""
    value = float(value)
    return value if np.isfinite(value) else float(fallback)


def _finite_1d(values) -> np.ndarray:
    arr = np.asarray(values, dtype=float).ravel()
    return arr[np.isfinite(arr)]


def _finite_pairs(x, y) -> Tuple[np.ndarray, np.ndarray]:
    x_arr = np.asarray(x, dtype=float).ravel()
    y_arr = np.asarray(y, dtype=float).ravel()
    if x_arr.shape != y_arr.shape:
        raise ValueError("x and y must have the same length.")
    mask = np.isfinite(x_arr) & np.isfinite(y_arr)
    return x_arr[mask], y_arr[mask]


def as_xy_array(points) -> np.ndarray:
    """Convert ``Point`` records or an array-like into an ``(n, 2)`` array.

    Args:
        points: Sequence of :class:`edustats.schema.Point`, an ``(n, 2)``
            array-like, or a DataFrame with ``x``/``y`` columns.

    Returns:
        numpy.ndarray: Float array with shape ``(n, 2)``.

    Raises:
        ValueError: If the input cannot be read as two columns.
    """
    if isinstance(points, pd.DataFrame):
        if {"x", "y"} <= set(points.columns):
            return points[["x", "y"]].to_numpy(dtype=float)
        return points.to_numpy(dtype=float)
    if isinstance(points, np.ndarray):
        arr = points.astype(float)
    else:
        items = list(points)
        if not items:
            return np.empty((0, 2), dtype=float)
        if isinstance(items[0], Point):
            arr = np.array([[p.x, p.y] for p in items], dtype=float)
        else:
            arr = np.asarray(items, dtype=float)
    if arr.size == 0:
        return np.empty((0, 2), dtype=float)
    if arr.ndim != 2 or arr.shape[1] != 2:
        raise ValueError(f"Expected an (n, 2) array of points, got shape {arr.shape}.")
    return arr


def mean(values) -> float:
    """Arithmetic mean of the finite entries; ``0.0`` when there are none."""
    arr = _finite_1d(values)
    if arr.size == 0:
        return 0.0
    return float(arr.mean())


def variance(values, ddof: int = 1) -> float:
    """Variance of the finite entries; ``0.0`` when ``n <= ddof``."""
    arr = _finite_1d(values)
    if arr.size <= ddof:
        return 0.0
    return float(arr.var(ddof=ddof))


def covariance(x, y, ddof: int = 1) -> float:
    """Covariance over finite ``(x, y)`` pairs; ``0.0`` when ``n <= ddof``."""
    x_arr, y_arr = _finite_pairs(x, y)
    n = x_arr.size
    if n <= ddof:
        return 0.0
    dx = x_arr - x_arr.mean()
    dy = y_arr - y_arr.mean()
    return float(np.sum(dx * dy) / (n - ddof))


def correlation(x, y) -> float:
    """Pearson correlation over finite pairs.

    Returns:
        float: Correlation in ``[-1, 1]``; ``0.0`` when fewer than two pairs
        are available or either variable has zero variance.
    """
    x_arr, y_arr = _finite_pairs(x, y)
    if x_arr.size < 2:
        return 0.0
    dx = x_arr - x_arr.mean()
    dy = y_arr - y_arr.mean()
    denom = float(np.sqrt(np.sum(dx * dx) * np.sum(dy * dy)))
    if denom == 0.0:
        return 0.0
    return float(np.clip(np.sum(dx * dy) / denom, -1.0, 1.0))


def covariance_matrix(data, ddof: int = 1) -> np.ndarray:
    """Column covariance matrix of an ``(n, d)`` array.

    Rows containing non-finite values are dropped. Returns a ``(d, d)`` zero
    matrix when fewer than ``ddof + 1`` rows remain.
    """
    arr = np.asarray(data, dtype=float)
    if arr.ndim != 2:
        raise ValueError("covariance_matrix expects a 2-D array.")
    arr = arr[np.all(np.isfinite(arr), axis=1)]
    d = arr.shape[1]
    if arr.shape[0] <= ddof:
        return np.zeros((d, d))
    centered = arr - arr.mean(axis=0)
    return centered.T @ centered / (arr.shape[0] - ddof)


def correlation_matrix(data) -> Tuple[np.ndarray, np.ndarray]:
    """Correlation matrix over the non-zero-variance columns.

    Args:
        data: ``(n, d)`` array-like.

    Returns:
        tuple[numpy.ndarray, numpy.ndarray]: The ``(m, m)`` correlation matrix
        of the kept columns and the integer indices of those columns.
        Zero-variance columns are excluded instead of dividing by zero.
    """
    cov = covariance_matrix(data)
    sd = np.sqrt(np.clip(np.diag(cov), 0.0, None))
    kept = np.flatnonzero(sd > 0)
    if kept.size == 0:
        return np.zeros((0, 0)), kept
    sub = cov[np.ix_(kept, kept)]
    corr = sub / np.outer(sd[kept], sd[kept])
    corr = np.clip(corr, -1.0, 1.0)
    np.fill_diagonal(corr, 1.0)
    return corr, kept


def transpose(matrix) -> np.ndarray:
    arr = np.asarray(matrix, dtype=float)
    if arr.ndim != 2:
        raise ValueError("transpose expects a 2-D matrix.")
    return arr.T.copy()


def matmul(a, b) -> np.ndarray:
    """Multiply two 2-D matrices after checking their inner dimensions."""
    a_arr = np.asarray(a, dtype=float)
    b_arr = np.asarray(b, dtype=float)
    if a_arr.ndim != 2 or b_arr.ndim != 2:
        raise ValueError("matmul expects 2-D matrices.")
    if a_arr.shape[1] != b_arr.shape[0]:
        raise ValueError(
            f"Incompatible shapes for multiplication: {a_arr.shape} x {b_arr.shape}."
        )
    return a_arr @ b_arr


def symmetric_eigen(matrix) -> Union[EigenDecomposition, NumericFailure]:
    """Eigendecompose a real symmetric matrix.

    Args:
        matrix: Square symmetric array-like (at most a few dozen rows).

    Returns:
        EigenDecomposition | NumericFailure: Eigenpairs sorted by descending
        eigenvalue, each eigenvector's largest-magnitude component made
        positive so repeated calls give identical signs. A tagged failure is
        returned for non-finite input or when LAPACK does not converge.

    Raises:
        ValueError: If ``matrix`` is not square.
    """
    arr = np.asarray(matrix, dtype=float)
    if arr.ndim != 2 or arr.shape[0] != arr.shape[1]:
        raise ValueError("symmetric_eigen expects a square matrix.")
    if arr.size == 0:
        return EigenDecomposition(values=np.zeros(0), vectors=np.zeros((0, 0)))
    if not np.all(np.isfinite(arr)):
        return NumericFailure("symmetric_eigen", "matrix contains non-finite values")
    sym = 0.5 * (arr + arr.T)
    try:
        values, vectors = np.linalg.eigh(sym)
    except np.linalg.LinAlgError as exc:
        return NumericFailure("symmetric_eigen", f"eigendecomposition did not converge: {exc}")

    order = np.argsort(values)[::-1]
    values = values[order]
    vectors = vectors[:, order]
    pivots = np.argmax(np.abs(vectors), axis=0)
    signs = np.sign(vectors[pivots, np.arange(vectors.shape[1])])
    signs[signs == 0] = 1.0
    return EigenDecomposition(values=values, vectors=vectors * signs)


def regularize_covariance(covariance, epsilon: float = DEFAULT_DENSITY_EPSILON) -> np.ndarray:
    """Return a symmetric copy of ``covariance`` with ``epsilon`` added to the diagonal."""
    cov = np.asarray(covariance, dtype=float)
    cov = 0.5 * (cov + cov.T)
    return cov + float(epsilon) * np.eye(cov.shape[0])


def gaussian_logpdf_2d(
    point: Sequence[float],
    mean_vec: Sequence[float],
    cov,
    epsilon: float = DEFAULT_DENSITY_EPSILON,
) -> np.ndarray:
    """Log-density of a bivariate normal at one or many points.

    Args:
        point: ``(2,)`` point or ``(n, 2)`` array of points.
        mean_vec: ``(2,)`` mean.
        cov: 2x2 covariance. Regularized by ``epsilon * I`` before inversion.
        epsilon: Diagonal regularization.

    Returns:
        numpy.ndarray | float: Log-densities; ``-inf`` where the density is not
        finite, which corresponds to the zero density sentinel.
    """
    cov_reg = regularize_covariance(cov, epsilon)
    pts = np.asarray(point, dtype=float)
    if not (np.all(np.isfinite(cov_reg)) and np.all(np.isfinite(mean_vec))):
        return np.full(pts.shape[:-1], -np.inf) if pts.ndim > 1 else -np.inf
    dist = multivariate_normal(mean=np.asarray(mean_vec, dtype=float), cov=cov_reg, allow_singular=True)
    out = np.asarray(dist.logpdf(pts), dtype=float)
    out = np.where(np.isfinite(out), out, -np.inf)
    if pts.ndim == 1:
        return float(out)
    return out.reshape(pts.shape[0])


def gaussian_pdf_2d(
    point: Sequence[float],
    mean_vec: Sequence[float],
    cov,
    epsilon: float = DEFAULT_DENSITY_EPSILON,
) -> float:
    """Density of a bivariate normal at ``point``; ``0.0`` when not finite."""
    if not np.all(np.isfinite(np.asarray(point, dtype=float))):
        return 0.0
    return finite_or(np.exp(gaussian_logpdf_2d(point, mean_vec, cov, epsilon)), 0.0)
