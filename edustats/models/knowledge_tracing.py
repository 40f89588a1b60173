"""Bayesian knowledge tracing and item response curves.

Knowledge tracing keeps one probability per skill: that the learner has
mastered it. Each answer updates the probability in two steps:

1. Condition on the evidence. A correct answer comes from mastery without a
   slip or from a guess; an incorrect answer from a slip or from no mastery
   without a guess.
2. Apply the chance of learning during the practice opportunity::

       P(L_next) = P(L | evidence) + (1 - P(L | evidence)) * learn

References:
    Corbett, A. T., & Anderson, J. R. (1994). Knowledge tracing: Modeling the
    acquisition of procedural knowledge. User Modeling and User-Adapted
    Interaction, 4(4), 253-278.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Tuple

import numpy as np
from scipy.special import expit

DEFAULT_LEARN = 0.1
DEFAULT_GUESS = 0.2
DEFAULT_SLIP = 0.1
DEFAULT_INITIAL_MASTERY = 0.25


def _check_probability(name: str, value: float) -> None:
    if not 0.0 <= value <= 1.0:
        raise ValueError(f"{name} must lie in [0, 1], got {value}.")


@dataclass(frozen=True)
class BKTParams:
    """Knowledge tracing parameters.

    Attributes:
        learn: Probability of acquiring the skill at one opportunity.
        guess: Probability of a correct answer without mastery.
        slip: Probability of an incorrect answer despite mastery.

    Raises:
        ValueError: If any parameter is outside ``[0, 1]``.
    """

    learn: float = DEFAULT_LEARN
    guess: float = DEFAULT_GUESS
    slip: float = DEFAULT_SLIP

    def __post_init__(self):
        for name in ("learn", "guess", "slip"):
            _check_probability(name, getattr(self, name))


def update_mastery(mastery: float, is_correct: bool, params: BKTParams = BKTParams()) -> float:
    """Mastery probability after one observed answer.

    Args:
        mastery (float): Current mastery probability.
        is_correct (bool): Whether the answer was correct.
        params (BKTParams, optional): Learn, guess and slip probabilities.

    Returns:
        float: Updated mastery in ``[0, 1]``.

    Raises:
        ValueError: If ``mastery`` is outside ``[0, 1]``.

    Note:
        Evidence the model considers impossible (for example a correct answer
        with ``mastery = 0`` and ``guess = 0``) leaves the conditioned
        probability at ``mastery``; only the learning step applies.
    """
    _check_probability("mastery", mastery)
    if is_correct:
        known = mastery * (1.0 - params.slip)
        unknown = (1.0 - mastery) * params.guess
    else:
        known = mastery * params.slip
        unknown = (1.0 - mastery) * (1.0 - params.guess)
    evidence = known + unknown
    posterior = known / evidence if evidence > 0 else mastery
    updated = posterior + (1.0 - posterior) * params.learn
    return float(min(max(updated, 0.0), 1.0))


def trace_mastery(
    responses: Iterable[bool],
    params: BKTParams = BKTParams(),
    initial_mastery: float = DEFAULT_INITIAL_MASTERY,
) -> Tuple[float, ...]:
    """Mastery history over a sequence of answers.

    Returns:
        tuple[float, ...]: ``initial_mastery`` followed by the mastery after
        each answer, so the length is ``len(responses) + 1``.
    """
    _check_probability("initial_mastery", initial_mastery)
    history = [float(initial_mastery)]
    for correct in responses:
        history.append(update_mastery(history[-1], bool(correct), params))
    return tuple(history)


def irt_probability(theta, discrimination: float = 1.0, difficulty: float = 0.0):
    """Two-parameter logistic item response curve.

    ``P(correct | theta) = 1 / (1 + exp(-a * (theta - b)))`` with
    discrimination ``a`` and difficulty ``b``.

    Args:
        theta: Ability, scalar or array.
        discrimination (float, optional): Slope at the difficulty point.
        difficulty (float, optional): Ability with a 50% success chance.

    Returns:
        float | numpy.ndarray: Success probabilities with the shape of
        ``theta``.
    """
    p = expit(discrimination * (np.asarray(theta, dtype=float) - difficulty))
    return float(p) if np.ndim(p) == 0 else p
