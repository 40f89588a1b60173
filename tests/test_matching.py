import pytest

from edustats import datasets
from edustats.models.matching import CONTROL, TREATMENT, MatchUnit, balance_table, nearest_neighbor_match


def _units():
    return (
        MatchUnit(0, TREATMENT, 60.0),
        MatchUnit(1, TREATMENT, 80.0),
        MatchUnit(2, CONTROL, 58.0),
        MatchUnit(3, CONTROL, 61.0),
        MatchUnit(4, CONTROL, 40.0),
    )


def test_greedy_match_takes_closest_control_within_caliper():
    matched = nearest_neighbor_match(_units())
    assert matched[0].matched_with_id == 3
    assert matched[3].matched_with_id == 0
    assert not matched[1].is_matched
    assert not matched[2].is_matched and not matched[4].is_matched


def test_controls_are_used_once():
    units = (MatchUnit(0, TREATMENT, 50.0), MatchUnit(1, TREATMENT, 50.5), MatchUnit(2, CONTROL, 50.2))
    matched = nearest_neighbor_match(units)
    assert matched[0].matched_with_id == 2
    assert matched[1].matched_with_id is None


def test_caliper_is_exclusive_and_input_is_unchanged():
    units = (MatchUnit(0, TREATMENT, 50.0), MatchUnit(1, CONTROL, 55.0))
    assert not nearest_neighbor_match(units)[0].is_matched
    assert nearest_neighbor_match(units, caliper=5.5)[0].matched_with_id == 1
    assert units[0].matched_with_id is None


def test_invalid_input_raises():
    with pytest.raises(ValueError):
        nearest_neighbor_match([MatchUnit(0, "Placebo", 1.0)])
    with pytest.raises(ValueError):
        nearest_neighbor_match([MatchUnit(0, TREATMENT, 1.0), MatchUnit(0, CONTROL, 1.0)])
    with pytest.raises(ValueError):
        nearest_neighbor_match(_units(), caliper=0.0)


def test_matching_reduces_imbalance():
    units = datasets.matching_data(300, selection_bias=5.0, seed=8)
    matched = nearest_neighbor_match(units, seed=0)
    table = balance_table(matched)
    assert list(table.index) == ["all", "matched"]
    assert table.loc["matched", "n_treatment"] == table.loc["matched", "n_control"]
    assert abs(table.loc["matched", "difference"]) < abs(table.loc["all", "difference"])


def test_balance_table_with_one_group():
    table = balance_table([MatchUnit(0, TREATMENT, 70.0)])
    assert table.loc["all", "treatment_mean"] == 70.0
    assert table.loc["all", "difference"] == 0.0
    assert table.loc["matched", "n_treatment"] == 0
