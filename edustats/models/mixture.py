"""Gaussian-mixture EM for latent profile analysis on two-dimensional data.

The E-step and M-step are exposed separately so that an animated view can
show every intermediate state; :func:`fit_profiles` alternates them until the
profile means stop moving or an explicit iteration cap is hit.

Numerics:
    Responsibilities are normalized in log space, so points far from every
    profile still receive a valid distribution instead of ``0/0``. Every
    covariance receives ``min_variance`` on its diagonal in the M-step so a
    profile that collapses onto a single point stays invertible.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

import numpy as np
from scipy.special import logsumexp

from ..schema import Profile
from ..stats.linalg import as_xy_array, covariance_matrix, gaussian_logpdf_2d
from .kmeans import kmeans

logger = logging.getLogger(__name__)

DEFAULT_MAX_ITER = 200
DEFAULT_TOL = 1e-6
DEFAULT_MIN_VARIANCE = 1e-6
DEFAULT_INITIAL_VARIANCE = 50.0


@dataclass(frozen=True)
class MixtureResult:
    """Outcome of a full EM run.

    Attributes:
        profiles: Fitted profiles (weights sum to one).
        responsibilities: ``(n, k)`` posterior membership probabilities.
        labels: ``(n,)`` most probable profile per point.
        log_likelihood_history: Mixture log-likelihood after every M-step.
        n_iter: EM iterations performed.
        converged: ``True`` when the summed squared mean displacement fell
            below the tolerance before the cap.
    """

    profiles: Tuple[Profile, ...]
    responsibilities: np.ndarray
    labels: np.ndarray
    log_likelihood_history: Tuple[float, ...]
    n_iter: int
    converged: bool


def _make_profile(idx: int, mean_vec, cov, weight: float) -> Profile:
    cov = np.asarray(cov, dtype=float)
    return Profile(
        id=idx,
        mean=(float(mean_vec[0]), float(mean_vec[1])),
        covariance=((float(cov[0, 0]), float(cov[0, 1])), (float(cov[1, 0]), float(cov[1, 1]))),
        weight=float(weight),
    )


def initialize_profiles(points, k: int, seed=None) -> Tuple[Profile, ...]:
    """Initialize ``k`` profiles from a K-Means pass.

    Each profile takes its cluster's centroid as mean and the cluster's
    covariance (or a default isotropic covariance for clusters with fewer
    than two points) and an equal weight ``1/k``.

    Raises:
        ValueError: If ``k`` is less than 1.
    """
    if k < 1:
        raise ValueError("k must be at least 1.")
    pts = as_xy_array(points)
    clusters = kmeans(pts, k=k, seed=seed)
    profiles = []
    for j, centroid in enumerate(clusters.centroids):
        members = pts[clusters.labels == j] if pts.shape[0] else pts
        if members.shape[0] >= 2:
            cov = covariance_matrix(members, ddof=0) + DEFAULT_MIN_VARIANCE * np.eye(2)
        else:
            cov = DEFAULT_INITIAL_VARIANCE * np.eye(2)
        profiles.append(_make_profile(j, (centroid.x, centroid.y), cov, 1.0 / k))
    return tuple(profiles)


def _weighted_log_densities(pts: np.ndarray, profiles: Sequence[Profile]) -> np.ndarray:
    cols = []
    for profile in profiles:
        log_w = np.log(profile.weight) if profile.weight > 0 else -np.inf
        cols.append(log_w + gaussian_logpdf_2d(pts, profile.mean, profile.covariance))
    return np.column_stack(cols)


def expectation_step(points, profiles: Sequence[Profile]) -> np.ndarray:
    """Compute responsibilities ``r[i, j] ∝ weight_j * N(x_i; mean_j, cov_j)``.

    Returns:
        numpy.ndarray: ``(n, k)`` array whose rows sum to one. A point with
        zero density under every profile receives a uniform row.
    """
    pts = as_xy_array(points)
    k = len(profiles)
    if k == 0:
        raise ValueError("At least one profile is required.")
    if pts.shape[0] == 0:
        return np.zeros((0, k))
    log_num = _weighted_log_densities(pts, profiles)
    with np.errstate(divide="ignore"):
        log_norm = logsumexp(log_num, axis=1, keepdims=True)
    resp = np.full_like(log_num, 1.0 / k)
    ok = np.isfinite(log_norm[:, 0])
    resp[ok] = np.exp(log_num[ok] - log_norm[ok])
    return resp


def maximization_step(
    points,
    responsibilities: np.ndarray,
    previous: Optional[Sequence[Profile]] = None,
    min_variance: float = DEFAULT_MIN_VARIANCE,
) -> Tuple[Profile, ...]:
    """Re-estimate profile weights, means and covariances.

    Args:
        points: ``Point`` records or ``(n, 2)`` array.
        responsibilities: ``(n, k)`` output of :func:`expectation_step`.
        previous: Profiles from the last iteration; a profile whose total
            responsibility is zero keeps its previous mean and covariance.
        min_variance (float, optional): Added to every covariance diagonal.

    Returns:
        tuple[Profile, ...]: Weights equal the mean responsibility and sum to
        one; means and covariances are responsibility-weighted.
    """
    pts = as_xy_array(points)
    resp = np.asarray(responsibilities, dtype=float)
    n = pts.shape[0]
    k = resp.shape[1] if resp.ndim == 2 else len(previous or ())
    if resp.shape[0] != n:
        raise ValueError("responsibilities must have one row per point.")

    if n == 0:
        if previous is None:
            raise ValueError("Previous profiles are required when there are no points.")
        return tuple(_make_profile(j, p.mean, p.covariance, 1.0 / k) for j, p in enumerate(previous))

    mass = resp.sum(axis=0)
    weights = mass / mass.sum()
    profiles = []
    for j in range(k):
        if mass[j] <= 0.0:
            if previous is not None:
                mean_vec = np.asarray(previous[j].mean, dtype=float)
                cov = np.asarray(previous[j].covariance, dtype=float)
            else:
                mean_vec = pts.mean(axis=0)
                cov = DEFAULT_INITIAL_VARIANCE * np.eye(2)
            profiles.append(_make_profile(j, mean_vec, cov, 0.0))
            continue
        r = resp[:, j]
        mean_vec = (r[:, None] * pts).sum(axis=0) / mass[j]
        diff = pts - mean_vec
        cov = (r[:, None] * diff).T @ diff / mass[j]
        cov = 0.5 * (cov + cov.T) + min_variance * np.eye(2)
        profiles.append(_make_profile(j, mean_vec, cov, weights[j]))
    return tuple(profiles)


def log_likelihood(points, profiles: Sequence[Profile]) -> float:
    """Mixture log-likelihood ``sum_i log sum_j weight_j N(x_i; ...)``."""
    pts = as_xy_array(points)
    if pts.shape[0] == 0:
        return 0.0
    with np.errstate(divide="ignore"):
        per_point = logsumexp(_weighted_log_densities(pts, profiles), axis=1)
    per_point = per_point[np.isfinite(per_point)]
    return float(per_point.sum())


def mean_displacement(before: Sequence[Profile], after: Sequence[Profile]) -> float:
    """Sum over profiles of the squared distance their means moved."""
    a = np.array([p.mean for p in before], dtype=float)
    b = np.array([p.mean for p in after], dtype=float)
    return float(np.sum((a - b) ** 2))


def fit_profiles(
    points,
    k: int = 2,
    max_iter: int = DEFAULT_MAX_ITER,
    tol: float = DEFAULT_TOL,
    seed=None,
    initial_profiles: Optional[Sequence[Profile]] = None,
    min_variance: float = DEFAULT_MIN_VARIANCE,
) -> MixtureResult:
    """Run EM until the profile means settle or ``max_iter`` is reached.

    Args:
        points: ``Point`` records or ``(n, 2)`` array.
        k (int, optional): Number of profiles when ``initial_profiles`` is not
            given. Defaults to ``2``.
        max_iter (int, optional): Hard iteration cap. Defaults to ``200``.
        tol (float, optional): Convergence threshold on the summed squared
            displacement of profile means. Defaults to ``1e-6``.
        seed: Seed for the K-Means initialization.
        initial_profiles: Optional starting profiles.
        min_variance (float, optional): Covariance diagonal regularization.

    Returns:
        MixtureResult: Final profiles, responsibilities and diagnostics.
    """
    pts = as_xy_array(points)
    profiles = tuple(initial_profiles) if initial_profiles is not None else initialize_profiles(pts, k, seed=seed)
    history = []
    converged = False
    n_iter = 0
    for n_iter in range(1, max_iter + 1):
        resp = expectation_step(pts, profiles)
        updated = maximization_step(pts, resp, previous=profiles, min_variance=min_variance)
        shift = mean_displacement(profiles, updated)
        profiles = updated
        history.append(log_likelihood(pts, profiles))
        if shift < tol:
            converged = True
            break

    if not converged:
        logger.warning("EM reached the iteration cap (%d) before the profile means settled", max_iter)
    logger.debug("EM finished after %d iterations", n_iter)

    resp = expectation_step(pts, profiles)
    labels = np.argmax(resp, axis=1) if resp.shape[0] else np.zeros(0, dtype=int)
    return MixtureResult(
        profiles=profiles,
        responsibilities=resp,
        labels=labels,
        log_likelihood_history=tuple(history),
        n_iter=n_iter,
        converged=converged,
    )
