import numpy as np
import pytest
from scipy import stats

from edustats.stats.inference import chi_square_test, confidence_interval, one_way_anova, z_test


def test_confidence_interval_matches_student_t():
    values = np.array([1.0, 2.0, 3.0, 4.0, 5.0])
    ci = confidence_interval(values, level=0.95)
    margin = stats.t.ppf(0.975, 4) * values.std(ddof=1) / np.sqrt(5)
    assert ci["sample_mean"] == pytest.approx(3.0)
    assert ci["margin"] == pytest.approx(margin)
    assert ci["lower_bound"] == pytest.approx(3.0 - margin)


def test_confidence_interval_degenerate_and_invalid_level():
    assert confidence_interval([4.0])["margin"] == 0.0
    assert confidence_interval([])["sample_mean"] == 0.0
    with pytest.raises(ValueError):
        confidence_interval([1.0, 2.0], level=1.0)


def test_z_test_direction_and_degenerate():
    result = z_test(50.0, 10.0, 100, 55.0, 10.0, 100)
    assert result["z_score"] == pytest.approx(5.0 / np.sqrt(2.0))
    assert 0.0 < result["p_value"] < 0.001
    assert z_test(1.0, 0.0, 10, 2.0, 0.0, 10) == {"z_score": 0.0, "p_value": 1.0}


def test_one_way_anova_matches_scipy():
    groups = [[1.0, 2.0, 3.0], [2.0, 4.0, 6.0], [5.0, 6.0, 9.0]]
    result = one_way_anova(groups)
    expected = stats.f_oneway(*groups)
    assert result["f_statistic"] == pytest.approx(expected.statistic)
    assert result["p_value"] == pytest.approx(expected.pvalue)
    assert (result["df_between"], result["df_within"]) == (2, 6)


def test_chi_square_test_matches_scipy_and_handles_empty_table():
    table = [[10, 20], [30, 15]]
    result = chi_square_test(table)
    chi2, p, dof, _ = stats.chi2_contingency(table, correction=False)
    assert result["chi2"] == pytest.approx(chi2)
    assert result["p_value"] == pytest.approx(p)
    assert result["degrees_of_freedom"] == dof
    empty = chi_square_test([[0, 0], [0, 0]])
    assert empty["p_value"] == 1.0
    assert empty["chi2"] == 0.0


def test_chi_square_test_ignores_empty_rows_and_columns():
    table = [[10, 0, 20], [0, 0, 0], [30, 0, 15]]
    result = chi_square_test(table)
    reference = chi_square_test([[10, 20], [30, 15]])
    assert result["chi2"] == pytest.approx(reference["chi2"])
    assert result["degrees_of_freedom"] == 4
    assert result["expected"].shape == (3, 3)
    assert result["expected"][1].sum() == 0.0
    assert result["expected"].sum() == pytest.approx(75.0)


def test_one_way_anova_degenerate_groups():
    constant = one_way_anova([[2.0, 2.0], [5.0, 5.0]])
    assert constant["f_statistic"] == 0.0 and constant["p_value"] == 1.0
    single = one_way_anova([[1.0, 2.0, 3.0]])
    assert single["p_value"] == 1.0
    assert single["df_between"] == 0
