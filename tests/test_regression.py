import numpy as np
import pytest
from scipy.special import expit

from edustats import datasets
from edustats.schema import RegressionLine
from edustats.stats.regression import (
    group_regressions,
    linear_regression,
    logistic_regression,
    predict_logistic_probability,
    r_squared,
    rdd_effect,
    standard_error,
    sum_squared_residuals,
)


def test_ols_identity_line():
    line = linear_regression([1.0, 2.0, 3.0], [1.0, 2.0, 3.0])
    assert line.slope == pytest.approx(1.0)
    assert line.intercept == pytest.approx(0.0, abs=1e-12)
    assert r_squared([1, 2, 3], [1, 2, 3], line) == pytest.approx(1.0)


def test_ols_is_no_worse_than_small_perturbations():
    points = datasets.correlated_points(80, correlation=0.5, seed=3)
    x = np.array([p.x for p in points])
    y = np.array([p.y for p in points])
    line = linear_regression(x, y)
    best = sum_squared_residuals(x, y, line)
    for ds in (-0.01, 0.0, 0.01):
        for di in (-0.01, 0.0, 0.01):
            other = RegressionLine(line.slope * (1 + ds), line.intercept * (1 + di))
            assert sum_squared_residuals(x, y, other) >= best - 1e-9


def test_ols_degenerate_fallbacks():
    assert linear_regression([], []) == RegressionLine(0.0, 0.0)
    assert linear_regression([4.0], [7.0]) == RegressionLine(0.0, 7.0)
    flat = linear_regression([2.0, 2.0, 2.0], [1.0, 2.0, 6.0])
    assert flat.slope == 0.0
    assert flat.intercept == pytest.approx(3.0)
    assert standard_error([1, 2], [1, 3], flat) == 0.0


def test_ols_rejects_mismatched_lengths():
    with pytest.raises(ValueError):
        linear_regression([1, 2, 3], [1, 2])


def test_logistic_regression_solves_score_equations():
    x = np.arange(1.0, 11.0)
    y = np.array([0, 0, 1, 0, 0, 1, 1, 0, 1, 1])
    fit = logistic_regression(x, y)
    assert fit.converged
    assert fit.beta1 > 0
    p = expit(fit.beta0 + fit.beta1 * x)
    assert np.sum(y - p) == pytest.approx(0.0, abs=1e-4)
    assert np.sum((y - p) * x) == pytest.approx(0.0, abs=1e-3)
    assert predict_logistic_probability(fit.decision_boundary, fit) == pytest.approx(0.5)


def test_logistic_regression_warns_on_separation():
    x = [1.0, 2.0, 3.0, 4.0, 5.0, 6.0]
    y = [0, 0, 0, 1, 1, 1]
    with pytest.warns(UserWarning, match="separated"):
        fit = logistic_regression(x, y)
    assert fit.beta1 > 0
    assert abs(fit.beta0) <= 1e3 and abs(fit.beta1) <= 1e3
    assert not fit.converged


def test_separated_fit_is_never_reported_as_converged():
    with pytest.warns(UserWarning):
        fit = logistic_regression([1.0, 2.0, 3.0, 4.0], [0, 0, 1, 1])
    assert fit.converged is False
    assert fit.beta1 > 1.0
    assert predict_logistic_probability(1.0, fit) < 0.01
    assert predict_logistic_probability(4.0, fit) > 0.99


def test_logistic_regression_single_class_and_empty():
    fit = logistic_regression([1.0, 2.0, 3.0], [1, 1, 1])
    assert fit.beta1 == 0.0
    assert fit.beta0 > 10.0
    empty = logistic_regression([], [])
    assert (empty.beta0, empty.beta1) == (0.0, 0.0)


def test_logistic_regression_rejects_non_binary_outcomes():
    with pytest.raises(ValueError):
        logistic_regression([1.0, 2.0], [0, 2])


def test_rdd_effect_recovers_jump():
    x = np.arange(30.0, 71.0)
    y = x + np.where(x < 50.0, 10.0, 0.0)
    result = rdd_effect(x, y, cutoff=50.0, bandwidth=10.0)
    assert result["effect"] == pytest.approx(10.0)
    assert result["n_treatment"] == 10
    assert result["n_control"] == 11


def test_rdd_effect_requires_positive_bandwidth():
    with pytest.raises(ValueError):
        rdd_effect([1.0, 2.0], [1.0, 2.0], cutoff=1.5, bandwidth=0.0)


def test_group_regressions_recover_each_group_line():
    x = np.array([0.0, 1.0, 2.0, 0.0, 1.0, 2.0])
    y = np.array([1.0, 3.0, 5.0, 10.0, 9.0, 8.0])
    result = group_regressions(x, y, ["b", "b", "b", "a", "a", "a"])
    assert list(result["groups"]) == ["a", "b"]
    assert result["groups"]["a"].slope == pytest.approx(-1.0)
    assert result["groups"]["b"].intercept == pytest.approx(1.0)
    assert result["slope_variance"] == pytest.approx(2.25)
    assert result["intercept_variance"] == pytest.approx(20.25)
    assert result["overall"].slope == pytest.approx(linear_regression(x, y).slope)


def test_group_regressions_on_multilevel_data():
    points = datasets.multilevel_points(n_groups=4, points_per_group=30, seed=5)
    x = [p.coords[0] for p in points]
    y = [p.coords[1] for p in points]
    result = group_regressions(x, y, [p.group for p in points])
    assert len(result["groups"]) == 4
    assert result["intercept_variance"] > 0.0
    single = group_regressions(x[:30], y[:30], ["Group 1"] * 30)
    assert single["slope_variance"] == 0.0 and single["intercept_variance"] == 0.0
    with pytest.raises(ValueError):
        group_regressions([1.0, 2.0], [1.0], ["a", "a"])
