"""Beta-Binomial updating for the coin-flip Bayesian demo.

A ``Beta(alpha, beta)`` prior on a success probability, combined with
``successes`` and ``failures`` from Bernoulli trials, gives the posterior
``Beta(alpha + successes, beta + failures)``. ``alpha`` and ``beta`` act as
prior pseudo-counts of successes and failures.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple

import numpy as np
from scipy import stats

DEFAULT_PRIOR_ALPHA = 2.0
DEFAULT_PRIOR_BETA = 2.0


@dataclass(frozen=True)
class BetaDistribution:
    """Shape parameters of a Beta distribution on ``[0, 1]``."""

    alpha: float
    beta: float

    @property
    def mean(self) -> float:
        return self.alpha / (self.alpha + self.beta)

    @property
    def mode(self) -> float:
        """Most probable value; defined as the mean when either shape is <= 1."""
        if self.alpha > 1.0 and self.beta > 1.0:
            return (self.alpha - 1.0) / (self.alpha + self.beta - 2.0)
        return self.mean

    def pdf(self, x):
        return beta_pdf(x, self.alpha, self.beta)

    def credible_interval(self, level: float = 0.95) -> Tuple[float, float]:
        """Equal-tailed credible interval.

        Raises:
            ValueError: If ``level`` is outside ``(0, 1)``.
        """
        if not 0.0 < level < 1.0:
            raise ValueError("level must lie strictly between 0 and 1.")
        tail = (1.0 - level) / 2.0
        lower, upper = stats.beta.ppf([tail, 1.0 - tail], self.alpha, self.beta)
        return float(lower), float(upper)


def _check_shapes(alpha: float, beta: float) -> None:
    if not (alpha > 0 and beta > 0):
        raise ValueError("Beta shape parameters must be positive.")


def beta_pdf(x, alpha: float, beta: float):
    """Normalized Beta density, ``0`` outside the open interval ``(0, 1)``.

    Args:
        x: Scalar or array of evaluation points.
        alpha (float): First shape parameter, positive.
        beta (float): Second shape parameter, positive.

    Returns:
        float | numpy.ndarray: Density values with the shape of ``x``.

    Raises:
        ValueError: If a shape parameter is not positive.
    """
    _check_shapes(alpha, beta)
    arr = np.asarray(x, dtype=float)
    inside = (arr > 0.0) & (arr < 1.0)
    with np.errstate(divide="ignore", invalid="ignore"):
        density = np.where(inside, stats.beta.pdf(np.where(inside, arr, 0.5), alpha, beta), 0.0)
    return float(density) if density.ndim == 0 else density


def update_beta(
    successes: int = 0,
    failures: int = 0,
    prior_alpha: float = DEFAULT_PRIOR_ALPHA,
    prior_beta: float = DEFAULT_PRIOR_BETA,
) -> BetaDistribution:
    """Conjugate posterior after observing Bernoulli outcomes.

    Raises:
        ValueError: If a count is negative or a prior shape is not positive.
    """
    _check_shapes(prior_alpha, prior_beta)
    if successes < 0 or failures < 0:
        raise ValueError("successes and failures must be non-negative.")
    return BetaDistribution(alpha=float(prior_alpha + successes), beta=float(prior_beta + failures))
