"""Principal component analysis and principal-axis factor analysis.

Both estimators eigendecompose a symmetric second-moment matrix with
:func:`edustats.stats.linalg.symmetric_eigen` and report explained variance
as a fraction of the total, so their scree plots are directly comparable.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Sequence, Tuple, Union

import numpy as np
import pandas as pd

from ..schema import NumericFailure
from ..stats.linalg import correlation_matrix, covariance_matrix, symmetric_eigen

DEFAULT_N_COMPONENTS = 2
DEFAULT_N_FACTORS = 2


@dataclass(frozen=True)
class PCAResult:
    """Projection of centered data onto its leading principal axes.

    Attributes:
        projected: ``(n, k)`` scores.
        components: ``(k, d)`` unit principal axes, one per row.
        explained_variance: ``(k,)`` leading eigenvalues.
        explained_variance_ratio: ``(k,)`` eigenvalue over the sum of all
            eigenvalues.
        mean: ``(d,)`` column means removed before projection.
    """

    projected: np.ndarray
    components: np.ndarray
    explained_variance: np.ndarray
    explained_variance_ratio: np.ndarray
    mean: np.ndarray


@dataclass(frozen=True)
class FactorAnalysisResult:
    """Principal-axis factor solution.

    Attributes:
        loadings: Items x factors DataFrame (columns ``factor1`` ...).
        correlation_matrix: Item correlation DataFrame over the items used.
        explained_variance: Per-factor eigenvalue divided by the number of
            items used.
        communalities: Sum of squared loadings per item.
        excluded_items: Items dropped because their variance is zero.
    """

    loadings: pd.DataFrame
    correlation_matrix: pd.DataFrame
    explained_variance: np.ndarray
    communalities: pd.Series
    excluded_items: Tuple[str, ...]


def pca(data, n_components: int = DEFAULT_N_COMPONENTS) -> Union[PCAResult, NumericFailure]:
    """Project data onto its top ``n_components`` principal axes.

    Args:
        data: ``(n, d)`` array-like or DataFrame of numeric columns.
        n_components (int, optional): Number of components to keep; clamped
            to ``d``. Defaults to ``2``.

    Returns:
        PCAResult | NumericFailure: Scores, axes and explained variance, or a
        tagged failure when the eigendecomposition fails.

    Raises:
        ValueError: If ``n_components`` is less than 1 or data is not 2-D.

    Note:
        With fewer than two rows, or zero total variance, every score is zero
        and every ratio is zero.
    """
    if n_components < 1:
        raise ValueError("n_components must be at least 1.")
    arr = data.to_numpy(dtype=float) if isinstance(data, pd.DataFrame) else np.asarray(data, dtype=float)
    if arr.ndim != 2:
        raise ValueError("pca expects a 2-D array of observations.")
    arr = arr[np.all(np.isfinite(arr), axis=1)]
    n, d = arr.shape
    k = min(int(n_components), d)

    col_mean = arr.mean(axis=0) if n > 0 else np.zeros(d)
    centered = arr - col_mean
    eig = symmetric_eigen(covariance_matrix(arr))
    if isinstance(eig, NumericFailure):
        return NumericFailure("pca", eig.reason)

    values = np.clip(eig.values, 0.0, None)
    total = float(values.sum())
    components = eig.vectors[:, :k].T
    ratios = values[:k] / total if total > 0 else np.zeros(k)
    return PCAResult(
        projected=centered @ components.T,
        components=components,
        explained_variance=values[:k],
        explained_variance_ratio=ratios,
        mean=col_mean,
    )


def _as_item_frame(data, item_ids: Optional[Sequence[str]]) -> pd.DataFrame:
    frame = data if isinstance(data, pd.DataFrame) else pd.DataFrame(list(data))
    if item_ids is None:
        item_ids = list(frame.columns)
    missing = [item for item in item_ids if item not in frame.columns]
    if missing:
        raise KeyError(f"Items missing from data: {missing}")
    return frame[list(item_ids)].apply(pd.to_numeric, errors="coerce")


def factor_analysis(
    data,
    item_ids: Optional[Sequence[str]] = None,
    n_factors: int = DEFAULT_N_FACTORS,
) -> Union[FactorAnalysisResult, NumericFailure]:
    """Extract factors from the item correlation matrix.

    Args:
        data: DataFrame or list of ``{item_id: response}`` records.
        item_ids: Items to analyze, in display order. Defaults to all columns.
        n_factors (int, optional): Number of factors to keep; clamped to the
            number of usable items. Defaults to ``2``.

    Returns:
        FactorAnalysisResult | NumericFailure: Loadings ``v * sqrt(lambda)``
        for the leading eigenpairs of the correlation matrix.

    Raises:
        ValueError: If ``n_factors`` is less than 1.
        KeyError: If an item id is not present in ``data``.

    Note:
        This is the principal-axis approximation without communality
        iteration. Zero-variance items are excluded from the correlation step
        and reported with zero loadings.
    """
    if n_factors < 1:
        raise ValueError("n_factors must be at least 1.")
    frame = _as_item_frame(data, item_ids).dropna()
    items = list(frame.columns)

    corr, kept = correlation_matrix(frame.to_numpy(dtype=float))
    used = [items[i] for i in kept]
    excluded = tuple(item for item in items if item not in used)
    k = max(1, min(int(n_factors), len(used))) if used else int(n_factors)
    factor_names = [f"factor{i + 1}" for i in range(k)]

    loadings = pd.DataFrame(0.0, index=items, columns=factor_names)
    explained = np.zeros(k)
    if used:
        eig = symmetric_eigen(corr)
        if isinstance(eig, NumericFailure):
            return NumericFailure("factor_analysis", eig.reason)
        values = np.clip(eig.values[:k], 0.0, None)
        loadings.loc[used, :] = eig.vectors[:, :k] * np.sqrt(values)
        explained = values / len(used)

    return FactorAnalysisResult(
        loadings=loadings,
        correlation_matrix=pd.DataFrame(corr, index=used, columns=used),
        explained_variance=explained,
        communalities=(loadings**2).sum(axis=1),
        excluded_items=excluded,
    )
