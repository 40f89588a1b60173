"""
Static figures for model results.

All plotting functions accept precomputed results and do not perform any
estimation. Each saves one PNG under the requested output directory and
returns its path.

Modules:
    style:
        Shared rcParams, palette and save helper.

    charts:
        Regression scatter, cluster map, survival steps, scree plot,
        transition heatmap and contribution bars.

Design Principle:
    Plotting code never changes a result; it only renders it.
"""

from .charts import (
    plot_clusters,
    plot_contributions,
    plot_regression,
    plot_scree,
    plot_survival_curve,
    plot_transition_heatmap,
)
from .style import apply_global_style, save_figure

__all__ = [
    "apply_global_style",
    "save_figure",
    "plot_regression",
    "plot_clusters",
    "plot_survival_curve",
    "plot_scree",
    "plot_transition_heatmap",
    "plot_contributions",
]
