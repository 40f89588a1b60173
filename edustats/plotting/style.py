"""Centralized plotting style and save helpers."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Sequence

import matplotlib.pyplot as plt
from matplotlib.axes import Axes
from matplotlib.figure import Figure

OUTPUT_FORMATS: tuple[str, ...] = ("png",)
FIGURE_DPI = 200
_STYLE_STATE = {"initialized": False}


@dataclass(frozen=True)
class StyleConfig:
    BASE_FONTSIZE: float = 11.0
    TITLE_FONTSIZE: float = 13.0
    LABEL_FONTSIZE: float = 11.0
    TICK_FONTSIZE: float = 10.0
    LEGEND_FONTSIZE: float = 10.0
    LINEWIDTH: float = 2.0
    LINEWIDTH_THIN: float = 1.0
    MARKERSIZE: float = 5.0
    ALPHA_POINTS: float = 0.75
    ALPHA_BAND: float = 0.15
    GRID_ALPHA: float = 0.20
    FIGSIZE_SINGLE: tuple[float, float] = (6.4, 4.2)
    FIGSIZE_SQUARE: tuple[float, float] = (5.6, 5.0)


STYLE = StyleConfig()

# Colorblind-safe qualitative palette for clusters, profiles and groups.
PALETTE: tuple[str, ...] = ("#0072B2", "#D55E00", "#009E73", "#CC79A7", "#E69F00", "#56B4E9")
POSITIVE_COLOR = "#009E73"
NEGATIVE_COLOR = "#D55E00"
LINE_COLOR = "#a50f15"


def apply_global_style(font_scale: float = 1.0) -> None:
    """Apply global Matplotlib rcParams scaled by ``font_scale``."""
    scale = float(font_scale)
    plt.rcParams.update(
        {
            "font.size": STYLE.BASE_FONTSIZE * scale,
            "axes.titlesize": STYLE.TITLE_FONTSIZE * scale,
            "axes.labelsize": STYLE.LABEL_FONTSIZE * scale,
            "xtick.labelsize": STYLE.TICK_FONTSIZE * scale,
            "ytick.labelsize": STYLE.TICK_FONTSIZE * scale,
            "legend.fontsize": STYLE.LEGEND_FONTSIZE * scale,
            "axes.linewidth": STYLE.LINEWIDTH_THIN,
            "axes.spines.top": False,
            "axes.spines.right": False,
            "grid.alpha": STYLE.GRID_ALPHA,
            "grid.linestyle": ":",
            "legend.frameon": False,
            "lines.linewidth": STYLE.LINEWIDTH,
            "lines.markersize": STYLE.MARKERSIZE,
            "figure.dpi": 100,
            "savefig.dpi": FIGURE_DPI,
            "savefig.bbox": "tight",
        }
    )


def set_global_style() -> None:
    """Apply global plotting style once per process."""
    if not _STYLE_STATE["initialized"]:
        apply_global_style()
        _STYLE_STATE["initialized"] = True


def color_for_index(index: int) -> str:
    """Return a stable palette color for a cluster or group index."""
    return PALETTE[int(index) % len(PALETTE)]


def set_axis_labels(ax: Axes, x: str | None = None, y: str | None = None, title: str | None = None) -> None:
    if x is not None:
        ax.set_xlabel(x)
    if y is not None:
        ax.set_ylabel(y)
    if title is not None:
        ax.set_title(title)


def sanitize_filename(name: str) -> str:
    """Lowercase, underscore-separated file stem."""
    keep = [c.lower() if c.isalnum() else "_" for c in name.strip()]
    return "_".join(part for part in "".join(keep).split("_") if part) or "figure"


def save_figure(
    fig: Figure,
    savepath_base: str | Path,
    formats: Sequence[str] = OUTPUT_FORMATS,
    dpi: int = FIGURE_DPI,
) -> str:
    """Save a figure under one extensionless base path and close it.

    Returns:
        str: Path of the first format written.
    """
    base = Path(savepath_base)
    base.parent.mkdir(parents=True, exist_ok=True)
    written = []
    for ext in formats:
        target = base.with_suffix(f".{ext}")
        fig.savefig(str(target), dpi=dpi if ext == "png" else None)
        written.append(target)
    plt.close(fig)
    return str(written[0])
