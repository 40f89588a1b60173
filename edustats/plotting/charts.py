"""Render model results as static figures.

Every function takes a precomputed result record, draws one figure, saves it
under ``output_dir`` and returns the PNG path. No estimation happens here.
"""

from __future__ import annotations

import os
from typing import Optional, Sequence

import matplotlib.pyplot as plt
import numpy as np

from ..models.kmeans import KMeansResult
from ..models.sequence import LagSequentialResult
from ..models.survival import confidence_band
from ..schema import PredictionResult, RegressionLine
from ..stats.linalg import as_xy_array
from .style import (
    LINE_COLOR,
    NEGATIVE_COLOR,
    POSITIVE_COLOR,
    STYLE,
    color_for_index,
    sanitize_filename,
    save_figure,
    set_axis_labels,
    set_global_style,
)


def plot_regression(points, line: RegressionLine, output_dir: str = "output", title: str = "Linear regression") -> str:
    """Scatter of ``points`` with the fitted OLS line.

    Args:
        points: ``Point`` records or ``(n, 2)`` array.
        line (RegressionLine): Fitted line.
        output_dir (str, optional): Destination directory.
        title (str, optional): Axes title, also used for the file name.

    Returns:
        str: Path to the saved PNG file.
    """
    set_global_style()
    pts = as_xy_array(points)
    fig, ax = plt.subplots(figsize=STYLE.FIGSIZE_SINGLE)
    ax.scatter(pts[:, 0], pts[:, 1], color=color_for_index(0), alpha=STYLE.ALPHA_POINTS, label="Observations")
    if pts.shape[0]:
        xs = np.linspace(pts[:, 0].min(), pts[:, 0].max(), 100)
        ax.plot(xs, line.predict(xs), color=LINE_COLOR, label=f"y = {line.slope:.3f}x + {line.intercept:.2f}")
    set_axis_labels(ax, "x", "y", title)
    ax.legend(loc="best")
    return save_figure(fig, os.path.join(output_dir, sanitize_filename(title)))


def plot_clusters(points, result: KMeansResult, output_dir: str = "output", title: str = "K-Means clusters") -> str:
    """Points colored by cluster with centroids marked."""
    set_global_style()
    pts = as_xy_array(points)
    fig, ax = plt.subplots(figsize=STYLE.FIGSIZE_SQUARE)
    for centroid in result.centroids:
        members = pts[result.labels == centroid.id]
        color = color_for_index(centroid.id)
        ax.scatter(members[:, 0], members[:, 1], color=color, alpha=STYLE.ALPHA_POINTS, s=18)
        ax.scatter([centroid.x], [centroid.y], color=color, marker="X", s=140, edgecolor="black", label=f"Cluster {centroid.id + 1}")
    set_axis_labels(ax, "x", "y", title)
    ax.legend(loc="best")
    return save_figure(fig, os.path.join(output_dir, sanitize_filename(title)))


def plot_survival_curve(
    curves,
    output_dir: str = "output",
    title: str = "Kaplan-Meier survival",
    level: Optional[float] = 0.95,
) -> str:
    """Step plot of one curve or a ``{group: curve}`` mapping.

    Args:
        curves: Sequence of :class:`SurvivalCurvePoint` or a dict of them.
        output_dir (str, optional): Destination directory.
        title (str, optional): Axes title and file stem.
        level (float, optional): Confidence level of the shaded Greenwood
            band; ``None`` disables the band.

    Returns:
        str: Path to the saved PNG file.
    """
    set_global_style()
    if not isinstance(curves, dict):
        curves = {"All": curves}
    fig, ax = plt.subplots(figsize=STYLE.FIGSIZE_SINGLE)
    for i, (name, curve) in enumerate(curves.items()):
        color = color_for_index(i)
        times = [p.time for p in curve]
        probs = [p.survival_probability for p in curve]
        ax.step(times, probs, where="post", color=color, label=str(name))
        if level is not None and len(curve) > 1:
            band = confidence_band(curve, level)
            ax.fill_between(band["time"], band["lower"], band["upper"], step="post", color=color, alpha=STYLE.ALPHA_BAND)
    ax.set_ylim(-0.02, 1.05)
    set_axis_labels(ax, "Time", "Survival probability", title)
    ax.legend(loc="best")
    return save_figure(fig, os.path.join(output_dir, sanitize_filename(title)))


def plot_scree(explained_variance_ratio: Sequence[float], output_dir: str = "output", title: str = "Scree plot") -> str:
    """Bar chart of explained-variance ratios with the cumulative line."""
    set_global_style()
    ratios = np.asarray(explained_variance_ratio, dtype=float)
    idx = np.arange(1, ratios.size + 1)
    fig, ax = plt.subplots(figsize=STYLE.FIGSIZE_SINGLE)
    ax.bar(idx, ratios, color=color_for_index(0), alpha=STYLE.ALPHA_POINTS, label="Component")
    ax.plot(idx, np.cumsum(ratios), color=LINE_COLOR, marker="o", label="Cumulative")
    ax.set_xticks(idx)
    ax.set_ylim(0.0, 1.05)
    set_axis_labels(ax, "Component", "Explained variance ratio", title)
    ax.legend(loc="best")
    return save_figure(fig, os.path.join(output_dir, sanitize_filename(title)))


def plot_transition_heatmap(
    result: LagSequentialResult, output_dir: str = "output", title: str = "Lag-sequential z-scores"
) -> str:
    """Heatmap of adjusted residuals; significant cells are annotated."""
    set_global_style()
    z = result.z_scores
    limit = max(float(np.abs(z.to_numpy()).max()), 1.96)
    fig, ax = plt.subplots(figsize=STYLE.FIGSIZE_SQUARE)
    image = ax.imshow(z.to_numpy(), cmap="RdBu_r", vmin=-limit, vmax=limit)
    ax.set_xticks(range(len(z.columns)))
    ax.set_xticklabels(z.columns)
    ax.set_yticks(range(len(z.index)))
    ax.set_yticklabels(z.index)
    for t in result.significant:
        ax.text(z.columns.get_loc(t.to_action), z.index.get_loc(t.from_action), f"{t.z_score:.1f}", ha="center", va="center", fontsize=8)
    fig.colorbar(image, ax=ax, label="z")
    set_axis_labels(ax, "Following action", "Preceding action", title)
    return save_figure(fig, os.path.join(output_dir, sanitize_filename(title)))


def plot_contributions(result: PredictionResult, output_dir: str = "output", title: str = "Feature contributions") -> str:
    """Horizontal bars of signed feature contributions."""
    set_global_style()
    names = [c.feature for c in result.contributions]
    values = np.array([c.value for c in result.contributions], dtype=float)
    fig, ax = plt.subplots(figsize=STYLE.FIGSIZE_SINGLE)
    colors = [POSITIVE_COLOR if v >= 0 else NEGATIVE_COLOR for v in values]
    ax.barh(names, values, color=colors)
    ax.axvline(0.0, color="0.3", linewidth=STYLE.LINEWIDTH_THIN)
    subtitle = f"{title} (base {result.base_value:.1f}, prediction {result.prediction:.1f})"
    set_axis_labels(ax, "Contribution to score", None, subtitle)
    return save_figure(fig, os.path.join(output_dir, sanitize_filename(title)))
