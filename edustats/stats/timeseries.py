"""Trailing moving averages for the time-series smoothing demo."""

from __future__ import annotations

import numpy as np
import pandas as pd


def moving_average(values, window: int) -> np.ndarray:
    """Trailing mean over the last ``window`` observations.

    The first ``window - 1`` outputs average over the shorter prefix that is
    available, so the result has the same length as ``values``. Non-finite
    entries are skipped inside each window; a window with no finite value
    yields ``nan``.

    Args:
        values: One-dimensional array-like of observations in time order.
        window (int): Window length, at least 1.

    Returns:
        numpy.ndarray: Smoothed series.

    Raises:
        ValueError: If ``window`` is less than 1.
    """
    if window < 1:
        raise ValueError("window must be at least 1.")
    series = pd.Series(np.asarray(values, dtype=float).ravel())
    series = series.where(np.isfinite(series))
    return series.rolling(window=int(window), min_periods=1).mean().to_numpy()
