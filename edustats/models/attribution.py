"""Additive attribution of a linear student-outcome score.

The score is ``base_value + sum_i weight_i * (x_i - reference_i)`` clamped to
``bounds``. Each term is the feature's contribution, so the explanation is
exact for the linear model: ``prediction == base_value + sum(contributions)``.

Note:
    When clamping changes the score, every contribution is multiplied by the
    same factor ``(prediction - base_value) / (raw - base_value)``. Signs and
    relative sizes are preserved and the additive identity still holds.
"""

from __future__ import annotations

import re
from dataclasses import asdict, dataclass
from typing import Dict, Mapping, Optional, Tuple

import numpy as np

from ..schema import FeatureContribution, PredictionResult

DEFAULT_BASE_VALUE = 50.0
DEFAULT_BOUNDS: Tuple[float, float] = (0.0, 100.0)

DEFAULT_WEIGHTS: Dict[str, float] = {
    "assignmentCompletion": 0.4,
    "quizScores": 0.3,
    "forumParticipation": 0.1,
    "absences": -0.5,
    "procrastination": -0.3,
}

DEFAULT_REFERENCE: Dict[str, float] = {
    "assignmentCompletion": 70.0,
    "quizScores": 75.0,
    "forumParticipation": 30.0,
    "absences": 5.0,
    "procrastination": 40.0,
}


@dataclass(frozen=True)
class StudentFeatures:
    assignment_completion: float = 70.0
    quiz_scores: float = 75.0
    forum_participation: float = 30.0
    absences: float = 5.0
    procrastination: float = 40.0

    def as_features(self) -> Dict[str, float]:
        """Feature mapping keyed like :data:`DEFAULT_WEIGHTS`."""
        return {_camel(name): value for name, value in asdict(self).items()}


def _camel(snake: str) -> str:
    head, *rest = snake.split("_")
    return head + "".join(part.title() for part in rest)


def feature_label(key: str) -> str:
    """``"assignmentCompletion"`` -> ``"Assignment Completion"``."""
    words = re.sub(r"([A-Z])", r" \1", key).replace("_", " ").split()
    return " ".join(w[:1].upper() + w[1:] for w in words)


def explain_prediction(
    features: Mapping[str, float],
    weights: Mapping[str, float] = DEFAULT_WEIGHTS,
    reference: Mapping[str, float] = DEFAULT_REFERENCE,
    base_value: float = DEFAULT_BASE_VALUE,
    bounds: Optional[Tuple[float, float]] = DEFAULT_BOUNDS,
) -> PredictionResult:
    """Score ``features`` and split the score into per-feature contributions.

    Args:
        features: Feature values keyed by name.
        weights: Per-feature weight; every feature needs one.
        reference: Neutral value per feature; missing keys default to zero.
        base_value (float, optional): Score at the reference values.
        bounds (tuple, optional): Clamp range; ``None`` disables clamping.

    Returns:
        PredictionResult: Prediction, base value and one contribution per
        feature in input order. A non-finite feature value contributes zero.

    Raises:
        KeyError: If a feature has no weight.
        ValueError: If ``base_value`` lies outside ``bounds``.
    """
    if bounds is not None and not bounds[0] <= base_value <= bounds[1]:
        raise ValueError(f"base_value {base_value} lies outside bounds {tuple(bounds)}.")
    raw = []
    for key, value in features.items():
        if key not in weights:
            raise KeyError(f"No weight for feature {key!r}")
        value = float(value)
        term = weights[key] * (value - reference.get(key, 0.0)) if np.isfinite(value) else 0.0
        raw.append((key, float(term)))

    total = sum(term for _, term in raw)
    score = base_value + total
    if bounds is not None:
        score = float(np.clip(score, bounds[0], bounds[1]))
    scale = (score - base_value) / total if total != 0 and score != base_value + total else 1.0

    contributions = tuple(FeatureContribution(feature=feature_label(k), value=v * scale) for k, v in raw)
    return PredictionResult(prediction=score, base_value=float(base_value), contributions=contributions)


def explain_student(student: StudentFeatures, **kwargs) -> PredictionResult:
    """:func:`explain_prediction` with the default student model."""
    return explain_prediction(student.as_features(), **kwargs)
