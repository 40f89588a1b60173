"""K-Means clustering by Lloyd's algorithm.

The single-step helpers (:func:`assign_clusters`, :func:`update_centroids`,
:func:`kmeans_step`) let an animated view drive the iteration from its own
loop; :func:`kmeans` runs the same steps to convergence under an iteration
cap.

Edge cases:
    A centroid that receives no points stays exactly where it was. It is
    never deleted or reseeded, so the number of centroids always equals ``k``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Tuple

import numpy as np

from ..schema import Centroid
from ..stats.linalg import as_xy_array

logger = logging.getLogger(__name__)

DEFAULT_MAX_ITER = 100


@dataclass(frozen=True)
class KMeansStep:
    labels: np.ndarray
    centroids: Tuple[Centroid, ...]
    inertia: float
    changed: bool


@dataclass(frozen=True)
class KMeansResult:
    """Outcome of a full K-Means run.

    Attributes:
        centroids: Final centroids, ``id`` equal to the cluster index.
        labels: ``(n,)`` cluster index per point.
        inertia: Final within-cluster sum of squared distances.
        inertia_history: Inertia after every update step (non-increasing).
        n_iter: Number of update steps performed.
        converged: ``True`` when an iteration left every assignment unchanged.
    """

    centroids: Tuple[Centroid, ...]
    labels: np.ndarray
    inertia: float
    inertia_history: Tuple[float, ...]
    n_iter: int
    converged: bool


def _centroid_array(centroids) -> np.ndarray:
    items = list(centroids)
    if items and isinstance(items[0], Centroid):
        return np.array([[c.x, c.y] for c in items], dtype=float)
    arr = np.asarray(items, dtype=float)
    if arr.size == 0:
        return np.empty((0, 2))
    if arr.ndim != 2 or arr.shape[1] != 2:
        raise ValueError(f"Expected (k, 2) centroids, got shape {arr.shape}.")
    return arr


def _as_centroids(arr: np.ndarray) -> Tuple[Centroid, ...]:
    return tuple(Centroid(id=i, x=float(row[0]), y=float(row[1])) for i, row in enumerate(arr))


def initialize_centroids(points, k: int, seed=None) -> Tuple[Centroid, ...]:
    """Pick ``k`` starting centroids from the data.

    Args:
        points: ``Point`` records or ``(n, 2)`` array.
        k (int): Number of clusters, at least 1.
        seed: Seed or :class:`numpy.random.Generator`.

    Returns:
        tuple[Centroid, ...]: Centroids placed on randomly chosen data points
        (without replacement while distinct points remain). With no data the
        centroids are drawn uniformly from ``[0, 100]^2``.

    Raises:
        ValueError: If ``k`` is less than 1.
    """
    if k < 1:
        raise ValueError("k must be at least 1.")
    rng = np.random.default_rng(seed)
    pts = as_xy_array(points)
    if pts.shape[0] == 0:
        return _as_centroids(rng.uniform(0.0, 100.0, size=(k, 2)))
    distinct = np.unique(pts, axis=0)
    replace = k > distinct.shape[0]
    idx = rng.choice(distinct.shape[0], size=k, replace=replace)
    return _as_centroids(distinct[idx])


def assign_clusters(points, centroids) -> np.ndarray:
    """Index of the nearest centroid for every point.

    Distances are Euclidean; ties go to the lowest centroid index.
    """
    pts = as_xy_array(points)
    cents = _centroid_array(centroids)
    if cents.shape[0] == 0:
        raise ValueError("At least one centroid is required.")
    if pts.shape[0] == 0:
        return np.zeros(0, dtype=int)
    d2 = np.sum((pts[:, None, :] - cents[None, :, :]) ** 2, axis=2)
    return np.argmin(d2, axis=1).astype(int)


def update_centroids(points, labels: np.ndarray, centroids) -> Tuple[Centroid, ...]:
    """Move each centroid to the mean of its assigned points.

    A centroid with no assigned points is returned unchanged.
    """
    pts = as_xy_array(points)
    labels = np.asarray(labels, dtype=int)
    cents = _centroid_array(centroids).copy()
    for j in range(cents.shape[0]):
        members = pts[labels == j]
        if members.shape[0] > 0:
            cents[j] = members.mean(axis=0)
    return _as_centroids(cents)


def inertia(points, labels: np.ndarray, centroids) -> float:
    """Total within-cluster squared Euclidean distance."""
    pts = as_xy_array(points)
    if pts.shape[0] == 0:
        return 0.0
    cents = _centroid_array(centroids)
    labels = np.asarray(labels, dtype=int)
    return float(np.sum((pts - cents[labels]) ** 2))


def kmeans_step(points, centroids, previous_labels: Optional[np.ndarray] = None) -> KMeansStep:
    """Run one assignment plus one update.

    Returns:
        KMeansStep: Labels used for the update, the moved centroids, the
        inertia of those labels against the moved centroids, and whether any
        label differs from ``previous_labels``.
    """
    labels = assign_clusters(points, centroids)
    new_centroids = update_centroids(points, labels, centroids)
    changed = previous_labels is None or not np.array_equal(labels, previous_labels)
    return KMeansStep(
        labels=labels,
        centroids=new_centroids,
        inertia=inertia(points, labels, new_centroids),
        changed=bool(changed),
    )


def kmeans(
    points,
    k: Optional[int] = None,
    initial_centroids=None,
    max_iter: int = DEFAULT_MAX_ITER,
    seed=None,
) -> KMeansResult:
    """Cluster points with Lloyd's algorithm.

    Args:
        points: ``Point`` records or ``(n, 2)`` array.
        k (int, optional): Number of clusters. Required unless
            ``initial_centroids`` is given.
        initial_centroids: User-supplied starting centroids; overrides ``k``.
        max_iter (int, optional): Cap on update steps. Defaults to ``100``.
        seed: Seed for random initialization.

    Returns:
        KMeansResult: Final centroids, labels and inertia history.

    Raises:
        ValueError: If neither ``k`` nor ``initial_centroids`` is provided.

    Note:
        Iteration stops once an assignment pass changes no label. With
        ``k = 1`` this happens after exactly one update, at the global mean.
    """
    if initial_centroids is not None:
        centroids = _as_centroids(_centroid_array(initial_centroids))
    elif k is not None:
        centroids = initialize_centroids(points, k, seed=seed)
    else:
        raise ValueError("Provide k or initial_centroids.")
    if not centroids:
        raise ValueError("At least one centroid is required.")

    pts = as_xy_array(points)
    labels: Optional[np.ndarray] = None
    history = []
    converged = False
    n_iter = 0
    for _ in range(max_iter):
        step = kmeans_step(pts, centroids, previous_labels=labels)
        if not step.changed:
            converged = True
            break
        labels = step.labels
        centroids = step.centroids
        history.append(step.inertia)
        n_iter += 1

    if labels is None:
        labels = assign_clusters(pts, centroids)
    if not converged:
        logger.warning("K-Means stopped after %d iterations without converging", n_iter)
    logger.debug("K-Means finished: k=%d, iterations=%d", len(centroids), n_iter)

    return KMeansResult(
        centroids=centroids,
        labels=labels,
        inertia=inertia(pts, labels, centroids),
        inertia_history=tuple(history),
        n_iter=n_iter,
        converged=converged,
    )
