import math

import pytest

from edustats.models.attribution import (
    StudentFeatures,
    explain_prediction,
    explain_student,
    feature_label,
)


def _total(result):
    return result.base_value + sum(c.value for c in result.contributions)


@pytest.mark.parametrize(
    "student",
    [
        StudentFeatures(),
        StudentFeatures(assignment_completion=95, quiz_scores=40, absences=12),
        StudentFeatures(100, 100, 100, 0, 0),
        StudentFeatures(0, 0, 0, 60, 100),
    ],
)
def test_contributions_add_up_to_prediction(student):
    result = explain_student(student)
    assert abs(_total(result) - result.prediction) < 1e-9
    assert 0.0 <= result.prediction <= 100.0


def test_reference_student_scores_the_base_value():
    result = explain_student(StudentFeatures())
    assert result.prediction == 50.0
    assert all(c.value == 0.0 for c in result.contributions)
    assert [c.feature for c in result.contributions] == [
        "Assignment Completion",
        "Quiz Scores",
        "Forum Participation",
        "Absences",
        "Procrastination",
    ]


def test_contribution_is_weight_times_deviation():
    result = explain_student(StudentFeatures(assignment_completion=80))
    assert result.contributions[0].value == pytest.approx(4.0)
    assert result.prediction == pytest.approx(54.0)


def test_clamped_score_scales_contributions():
    result = explain_student(StudentFeatures(absences=200))
    assert result.prediction == 0.0
    assert result.contributions[3].value == pytest.approx(-50.0)
    unclamped = explain_student(StudentFeatures(absences=200), bounds=None)
    assert unclamped.prediction == pytest.approx(-47.5)


def test_base_value_outside_bounds_is_rejected():
    with pytest.raises(ValueError):
        explain_prediction({"quizScores": 75.0}, base_value=150.0)
    result = explain_prediction({"quizScores": 75.0}, base_value=150.0, bounds=None)
    assert result.prediction == 150.0
    assert abs(_total(result) - result.prediction) < 1e-9


def test_base_value_on_a_bound_keeps_the_identity():
    result = explain_prediction({"absences": 25.0}, base_value=0.0)
    assert result.prediction == 0.0
    assert abs(_total(result) - result.prediction) < 1e-9


def test_non_finite_feature_contributes_nothing():
    result = explain_prediction({"absences": math.nan, "quizScores": 85.0})
    assert result.contributions[0].value == 0.0
    assert result.prediction == pytest.approx(53.0)


def test_unknown_feature_raises():
    with pytest.raises(KeyError):
        explain_prediction({"shoeSize": 42.0})


def test_feature_label():
    assert feature_label("forumParticipation") == "Forum Participation"
    assert feature_label("absences") == "Absences"
