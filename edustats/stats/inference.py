"""Classical hypothesis tests and interval estimates for the inference demos.

All p-values come from :mod:`scipy.stats` distributions. Degenerate inputs
(empty samples, zero variance, empty tables) produce a statistic of ``0.0``
and a p-value of ``1.0`` rather than NaN.
"""

from __future__ import annotations

import math
from typing import Dict, Sequence

import numpy as np
from scipy import stats


def confidence_interval(values: np.ndarray, level: float = 0.95) -> Dict[str, float]:
    """Student-t confidence interval for a sample mean.

    Args:
        values (numpy.ndarray): Sample values; non-finite entries are ignored.
        level (float, optional): Confidence level in ``(0, 1)``. Defaults to
            ``0.95``.

    Returns:
        dict[str, float]: ``sample_mean``, ``lower_bound``, ``upper_bound``
        and ``margin``. With fewer than two values the interval collapses to
        the mean.

    Raises:
        ValueError: If ``level`` is outside ``(0, 1)``.
    """
    if not 0.0 < level < 1.0:
        raise ValueError("level must lie strictly between 0 and 1.")
    arr = np.asarray(values, dtype=float)
    arr = arr[np.isfinite(arr)]
    n = arr.size
    if n == 0:
        return {"sample_mean": 0.0, "lower_bound": 0.0, "upper_bound": 0.0, "margin": 0.0}
    sample_mean = float(arr.mean())
    if n < 2:
        margin = 0.0
    else:
        sem = float(arr.std(ddof=1)) / math.sqrt(n)
        margin = float(stats.t.ppf(0.5 + level / 2.0, n - 1)) * sem
    return {
        "sample_mean": sample_mean,
        "lower_bound": sample_mean - margin,
        "upper_bound": sample_mean + margin,
        "margin": margin,
    }


def z_test(
    mean1: float, sd1: float, n1: int, mean2: float, sd2: float, n2: int
) -> Dict[str, float]:
    """Two-sample z-test from summary statistics (two-sided)."""
    if n1 <= 0 or n2 <= 0:
        return {"z_score": 0.0, "p_value": 1.0}
    se = math.sqrt(sd1**2 / n1 + sd2**2 / n2)
    if se == 0.0:
        return {"z_score": 0.0, "p_value": 1.0}
    z = (mean2 - mean1) / se
    return {"z_score": float(z), "p_value": float(2.0 * stats.norm.sf(abs(z)))}


def one_way_anova(groups: Sequence[np.ndarray]) -> Dict[str, float]:
    """One-way ANOVA F-test across groups of raw observations.

    Returns:
        dict[str, float]: ``f_statistic``, ``p_value``, ``df_between`` and
        ``df_within``.
    """
    arrays = [np.asarray(g, dtype=float) for g in groups]
    arrays = [a[np.isfinite(a)] for a in arrays]
    arrays = [a for a in arrays if a.size > 0]
    k = len(arrays)
    n_total = int(sum(a.size for a in arrays))
    df_between = k - 1
    df_within = n_total - k
    if k < 2 or df_within <= 0 or all(np.ptp(a) == 0.0 for a in arrays):
        return {"f_statistic": 0.0, "p_value": 1.0, "df_between": df_between, "df_within": df_within}

    result = stats.f_oneway(*arrays)
    return {
        "f_statistic": float(result.statistic),
        "p_value": float(result.pvalue),
        "df_between": df_between,
        "df_within": df_within,
    }


def chi_square_test(observed) -> Dict[str, object]:
    """Pearson chi-square test of independence for a contingency table.

    Args:
        observed: 2-D array-like of non-negative counts.

    Returns:
        dict[str, object]: ``chi2``, ``p_value``, ``degrees_of_freedom`` and
        the ``expected`` count table. Cells with zero expected count do not
        contribute to the statistic.

    Raises:
        ValueError: If the table is not 2-D or contains negative counts.
    """
    table = np.asarray(observed, dtype=float)
    if table.ndim != 2:
        raise ValueError("Contingency table must be 2-D.")
    if np.any(table < 0):
        raise ValueError("Contingency table counts must be non-negative.")
    rows, cols = table.shape
    dof = max(rows - 1, 0) * max(cols - 1, 0)
    total = float(table.sum())
    if total == 0.0:
        return {"chi2": 0.0, "p_value": 1.0, "degrees_of_freedom": dof, "expected": np.zeros_like(table)}

    # Empty rows and columns have zero expected counts and add nothing to chi2.
    keep_rows = table.sum(axis=1) > 0
    keep_cols = table.sum(axis=0) > 0
    statistic, _, _, expected_cells = stats.chi2_contingency(table[np.ix_(keep_rows, keep_cols)], correction=False)
    expected = np.zeros_like(table)
    expected[np.ix_(keep_rows, keep_cols)] = expected_cells
    chi2 = float(statistic)
    p_value = float(stats.chi2.sf(chi2, dof)) if dof > 0 else 1.0
    return {"chi2": chi2, "p_value": p_value, "degrees_of_freedom": dof, "expected": expected}
