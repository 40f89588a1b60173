import numpy as np
import pytest

from edustats import datasets
from edustats.models.survival import (
    confidence_band,
    kaplan_meier,
    kaplan_meier_by_group,
    median_survival_time,
)


def test_worked_example_with_censoring():
    curve = kaplan_meier([2, 3, 5], [1, 0, 1])
    assert [p.time for p in curve] == [0.0, 2.0, 3.0, 5.0]
    probs = [p.survival_probability for p in curve]
    assert probs == pytest.approx([1.0, 2.0 / 3.0, 2.0 / 3.0, 0.0])
    assert [p.at_risk for p in curve[1:]] == [3, 2, 1]
    assert (curve[2].events, curve[2].censored) == (0, 1)
    assert median_survival_time(curve) == 5.0


def test_curve_starts_at_one_and_never_increases():
    data = datasets.survival_data(200, seed=5)
    curve = kaplan_meier(data["time"], data["status"])
    probs = np.array([p.survival_probability for p in curve])
    assert curve[0].time == 0.0 and probs[0] == 1.0
    assert np.all(np.diff(probs) <= 0.0)
    assert np.all((probs >= 0.0) & (probs <= 1.0))


def test_greenwood_standard_error():
    curve = kaplan_meier([1, 2, 3, 4], [1, 1, 1, 1])
    assert curve[1].survival_probability == pytest.approx(0.75)
    assert curve[1].std_error == pytest.approx(0.75 * np.sqrt(1.0 / 12.0))
    band = confidence_band(curve)
    assert (band["lower"] <= band["survival"]).all()
    assert (band["upper"] >= band["survival"]).all()
    assert band["lower"].min() >= 0.0 and band["upper"].max() <= 1.0


def test_time_zero_subjects_do_not_lower_the_origin():
    curve = kaplan_meier([0, 2], [1, 1])
    assert curve[0].survival_probability == 1.0
    assert curve[-1].time == 2.0
    assert curve[-1].survival_probability == 0.0


def test_horizon_and_empty_input():
    curve = kaplan_meier([1.0], [0], horizon=10.0)
    assert curve[-1].time == 10.0
    assert curve[-1].survival_probability == 1.0
    assert median_survival_time(curve) is None
    assert len(kaplan_meier([], [])) == 1


def test_invalid_input_raises():
    with pytest.raises(ValueError):
        kaplan_meier([-1.0, 2.0], [1, 1])
    with pytest.raises(ValueError):
        kaplan_meier([1.0, 2.0], [1, 2])
    with pytest.raises(ValueError):
        kaplan_meier([1.0, 2.0], [1])


def test_curves_by_group_show_intervention_benefit():
    data = datasets.survival_data(400, intervention_effect=0.6, seed=9)
    curves = kaplan_meier_by_group(data["time"], data["status"], data["group"])
    assert list(curves) == ["Group A", "Group B"]
    assert curves["Group A"][-1].survival_probability > curves["Group B"][-1].survival_probability
