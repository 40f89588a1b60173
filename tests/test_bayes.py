import numpy as np
import pytest
from scipy import integrate

from edustats.stats.bayes import BetaDistribution, beta_pdf, update_beta
from edustats.stats.timeseries import moving_average


def test_posterior_adds_counts_to_prior():
    posterior = update_beta(successes=7, failures=3)
    assert posterior == BetaDistribution(alpha=9.0, beta=5.0)
    assert posterior.mean == pytest.approx(9.0 / 14.0)
    assert posterior.mode == pytest.approx(8.0 / 12.0)
    assert update_beta() == BetaDistribution(2.0, 2.0)


def test_beta_pdf_is_normalized_and_zero_outside():
    area, _ = integrate.quad(lambda x: beta_pdf(x, 3.0, 5.0), 0.0, 1.0)
    assert area == pytest.approx(1.0)
    assert beta_pdf(0.5, 2.0, 2.0) == pytest.approx(1.5)
    assert update_beta(7, 3).pdf(0.5) == pytest.approx(beta_pdf(0.5, 9.0, 5.0))
    values = beta_pdf(np.array([-0.5, 0.0, 0.5, 1.0, 1.5]), 0.5, 0.5)
    assert values[0] == values[1] == values[3] == values[4] == 0.0
    assert np.isfinite(values).all()


def test_credible_interval_narrows_with_data():
    wide = update_beta(2, 2).credible_interval(0.95)
    narrow = update_beta(200, 200).credible_interval(0.95)
    assert wide[0] < narrow[0] < 0.5 < narrow[1] < wide[1]
    with pytest.raises(ValueError):
        update_beta(1, 1).credible_interval(1.0)


def test_invalid_beta_arguments_raise():
    with pytest.raises(ValueError):
        update_beta(successes=-1)
    with pytest.raises(ValueError):
        beta_pdf(0.5, 0.0, 1.0)


def test_moving_average_uses_partial_leading_windows():
    smoothed = moving_average([2.0, 4.0, 6.0, 8.0], window=3)
    assert smoothed == pytest.approx([2.0, 3.0, 4.0, 6.0])
    assert moving_average([1.0, 5.0], window=1) == pytest.approx([1.0, 5.0])
    assert moving_average([], window=2).size == 0


def test_moving_average_skips_missing_values():
    smoothed = moving_average([1.0, np.nan, 3.0], window=2)
    assert smoothed == pytest.approx([1.0, 1.0, 3.0])
    with pytest.raises(ValueError):
        moving_average([1.0], window=0)
