import numpy as np
import pytest

from edustats import datasets
from edustats.models.sequence import ACTIONS
from edustats.schema import LabeledPoint, Point


def test_generators_are_reproducible_with_a_seed():
    assert datasets.correlated_points(20, seed=3) == datasets.correlated_points(20, seed=3)
    assert datasets.sequence_data(10, seed=3) == datasets.sequence_data(10, seed=3)
    assert datasets.factor_data(30, seed=3).equals(datasets.factor_data(30, seed=3))


def test_correlated_points_stay_in_plot_area():
    points = datasets.correlated_points(200, correlation=0.9, seed=0)
    xs = np.array([p.x for p in points])
    ys = np.array([p.y for p in points])
    assert xs.min() >= 5.0 and xs.max() <= 95.0
    assert np.corrcoef(xs, ys)[0, 1] > 0.7
    with pytest.raises(ValueError):
        datasets.correlated_points(correlation=1.5)


def test_survival_data_shape_and_censoring():
    data = datasets.survival_data(120, horizon=12, seed=1)
    assert list(data.columns) == ["time", "status", "group"]
    assert data["time"].min() >= 1
    assert data["time"].max() <= 12
    assert set(data["group"]) == {"Group A", "Group B"}
    assert (data.loc[data["status"] == 0, "time"] == 12).all()


def test_sequences_use_the_action_alphabet():
    sequences = datasets.sequence_data(40, seed=2)
    assert {s.group for s in sequences} == {"Group A", "Group B"}
    assert all(5 <= len(s.actions) < 15 for s in sequences)
    assert all(set(s.actions) <= set(ACTIONS) for s in sequences)


def test_factor_data_and_sem_covariance():
    frame = datasets.factor_data(50, seed=0)
    assert list(frame.columns) == [item for item, _ in datasets.SURVEY_ITEMS]
    assert frame.abs().to_numpy().max() <= 1.0
    cov = datasets.sem_sample_covariance(300, seed=0)
    assert cov.shape == (7, 7)
    assert np.allclose(cov.to_numpy(), cov.to_numpy().T)


def test_move_point_returns_a_new_tuple():
    points = (Point(0, 10.0, 20.0), Point(1, 30.0, 40.0))
    moved = datasets.move_point(points, 1, 35.0, 45.0)
    assert moved[1] == Point(1, 35.0, 45.0)
    assert points[1] == Point(1, 30.0, 40.0)
    labeled = (LabeledPoint(0, (1.0,), label=1),)
    assert datasets.move_point(labeled, 0, 2.0)[0].coords == (2.0,)
    with pytest.raises(KeyError):
        datasets.move_point(points, 9, 0.0, 0.0)


def test_toggle_outcome_flips_one_label():
    points = datasets.logistic_points(10, seed=0)
    flipped = datasets.toggle_outcome(points, 4)
    assert flipped[4].label == 1 - points[4].label
    assert [p.label for i, p in enumerate(flipped) if i != 4] == [p.label for i, p in enumerate(points) if i != 4]
    with pytest.raises(KeyError):
        datasets.toggle_outcome(points, 99)


def test_multilevel_points_are_grouped_and_bounded():
    points = datasets.multilevel_points(n_groups=3, points_per_group=10, seed=2)
    assert len(points) == 30
    assert {p.group for p in points} == {"Group 1", "Group 2", "Group 3"}
    assert all(0.0 <= p.coords[1] <= 100.0 for p in points)
    assert [p.id for p in points] == list(range(30))
    with pytest.raises(ValueError):
        datasets.multilevel_points(slope_variance=-1.0)


def test_matching_and_time_series_data():
    units = datasets.matching_data(200, seed=4)
    assert {u.group for u in units} == {"Treatment", "Control"}
    assert all(30.0 <= u.score <= 70.0 for u in units)
    series = datasets.time_series_data(50, seed=4)
    assert list(series.columns) == ["time", "value"]
    assert series["value"].between(10.0, 90.0).all()
    with pytest.raises(ValueError):
        datasets.interaction_data(n_students=1)
