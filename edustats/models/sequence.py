"""Markov sequence simulation and lag-sequential analysis of learner actions.

Action alphabet:
    ``V`` video, ``Q`` quiz, ``A`` assignment, ``F`` forum, ``P`` pass and
    ``E`` fail/error. Symbols outside this alphabet are accepted and appended
    in order of first appearance.

Adjusted residuals:
    For ``N`` lag-``k`` transitions with row marginal ``p_from`` and column
    marginal ``p_to``::

        expected = N * p_from * p_to
        z = (observed - expected) / sqrt(expected * (1 - p_from) * (1 - p_to))

    Cells with ``|z| > 1.96`` are significant at the 5% level.

References:
    Bakeman, R., & Quera, V. (2011). Sequential Analysis and Observational
    Methods for the Behavioral Sciences. Cambridge University Press.
"""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from ..schema import TransitionMatrix

logger = logging.getLogger(__name__)

ACTIONS: Tuple[str, ...] = ("V", "Q", "A", "F", "P", "E")
ACTION_NAMES: Dict[str, str] = {
    "V": "Video",
    "Q": "Quiz",
    "A": "Assignment",
    "F": "Forum",
    "P": "Pass",
    "E": "Fail/Error",
}
DEFAULT_CRITICAL_Z = 1.96

HIDDEN_STATES: Tuple[str, str] = ("Sunny", "Rainy")
OBSERVATIONS: Tuple[str, ...] = ("Walk", "Read", "Clean")
EMISSION_PROBABILITIES: Dict[str, Dict[str, float]] = {
    "Sunny": {"Walk": 0.6, "Read": 0.1, "Clean": 0.3},
    "Rainy": {"Walk": 0.1, "Read": 0.5, "Clean": 0.4},
}


@dataclass(frozen=True)
class StudentSequence:
    id: int
    actions: Tuple[str, ...]
    group: Optional[str] = None


@dataclass(frozen=True)
class MarkovStep:
    step: int
    state: str
    observation: str


@dataclass(frozen=True)
class SignificantTransition:
    from_action: str
    to_action: str
    observed: int
    expected: float
    z_score: float


@dataclass(frozen=True)
class LagSequentialResult:
    """Lag-``k`` transition table with independence expectations.

    Attributes:
        lag: Distance between the paired actions.
        observed: Alphabet x alphabet count DataFrame (rows: from, cols: to).
        expected: Expected counts under independence.
        z_scores: Adjusted residuals; zero where undefined.
        significant: Cells with ``|z|`` above the critical value, strongest
            first.
    """

    lag: int
    observed: pd.DataFrame
    expected: pd.DataFrame
    z_scores: pd.DataFrame
    significant: Tuple[SignificantTransition, ...]


@dataclass(frozen=True)
class FrequentPattern:
    pattern: Tuple[str, ...]
    support: float


def _validate_stay(stay_probabilities) -> Tuple[float, float]:
    if isinstance(stay_probabilities, dict):
        stay = (stay_probabilities[HIDDEN_STATES[0]], stay_probabilities[HIDDEN_STATES[1]])
    else:
        stay = tuple(stay_probabilities)
    if len(stay) != 2:
        raise ValueError("Exactly two self-transition probabilities are required.")
    p, q = float(stay[0]), float(stay[1])
    if not (0.0 <= p <= 1.0 and 0.0 <= q <= 1.0):
        raise ValueError("Self-transition probabilities must lie in [0, 1].")
    return p, q


def transition_matrix(stay_probabilities) -> TransitionMatrix:
    """Two-state transition matrix with ``P(leave) = 1 - P(stay)``."""
    p, q = _validate_stay(stay_probabilities)
    sunny, rainy = HIDDEN_STATES
    return {
        sunny: {sunny: p, rainy: 1.0 - p},
        rainy: {sunny: 1.0 - q, rainy: q},
    }


def stationary_distribution(stay_probabilities) -> Dict[str, float]:
    """Long-run state probabilities of the two-state chain.

    ``P(Sunny) = (1 - q) / ((1 - p) + (1 - q))``; when neither state can be
    left the chain has no unique stationary law and the uniform distribution
    is returned.
    """
    p, q = _validate_stay(stay_probabilities)
    sunny, rainy = HIDDEN_STATES
    leave = (1.0 - p) + (1.0 - q)
    if leave <= 0.0:
        return {sunny: 0.5, rainy: 0.5}
    pi_sunny = (1.0 - q) / leave
    return {sunny: pi_sunny, rainy: 1.0 - pi_sunny}


def simulate_markov_sequence(
    stay_probabilities,
    length: int,
    seed=None,
    initial: str = "stationary",
) -> Tuple[MarkovStep, ...]:
    """Generate hidden states and emitted observations.

    Args:
        stay_probabilities: ``(p_sunny, p_rainy)`` or a mapping keyed by state.
        length (int): Number of steps; ``0`` yields an empty sequence.
        seed: Seed or :class:`numpy.random.Generator`.
        initial (str, optional): ``"stationary"`` or ``"uniform"`` law for the
            first state.

    Returns:
        tuple[MarkovStep, ...]: One record per step.

    Raises:
        ValueError: On probabilities outside ``[0, 1]``, negative length or an
            unknown ``initial`` mode.
    """
    if length < 0:
        raise ValueError("length must be non-negative.")
    if initial not in ("stationary", "uniform"):
        raise ValueError("initial must be 'stationary' or 'uniform'.")
    rng = np.random.default_rng(seed)
    matrix = transition_matrix(stay_probabilities)
    if initial == "stationary":
        start = stationary_distribution(stay_probabilities)
    else:
        start = {s: 1.0 / len(HIDDEN_STATES) for s in HIDDEN_STATES}

    steps = []
    state = HIDDEN_STATES[rng.choice(len(HIDDEN_STATES), p=[start[s] for s in HIDDEN_STATES])]
    for i in range(length):
        if i > 0:
            row = matrix[state]
            state = HIDDEN_STATES[rng.choice(len(HIDDEN_STATES), p=[row[s] for s in HIDDEN_STATES])]
        emission = EMISSION_PROBABILITIES[state]
        observation = OBSERVATIONS[rng.choice(len(OBSERVATIONS), p=[emission[o] for o in OBSERVATIONS])]
        steps.append(MarkovStep(step=i, state=state, observation=observation))
    return tuple(steps)


def _actions(sequences: Iterable) -> List[Tuple[str, ...]]:
    return [tuple(s.actions) if hasattr(s, "actions") else tuple(s) for s in sequences]


def _alphabet(seqs: List[Tuple[str, ...]], alphabet: Optional[Sequence[str]]) -> List[str]:
    symbols = list(alphabet) if alphabet is not None else list(ACTIONS)
    for seq in seqs:
        for action in seq:
            if action not in symbols:
                symbols.append(action)
    return symbols


def lag_sequential_analysis(
    sequences,
    lag: int = 1,
    alphabet: Optional[Sequence[str]] = None,
    critical_z: float = DEFAULT_CRITICAL_Z,
) -> LagSequentialResult:
    """Count lag-``k`` transitions and score them against independence.

    Args:
        sequences: Iterable of action sequences or :class:`StudentSequence`.
        lag (int, optional): Positions between the paired actions.
            Defaults to ``1``.
        alphabet: Row/column order. Defaults to :data:`ACTIONS`.
        critical_z (float, optional): Significance threshold on ``|z|``.

    Returns:
        LagSequentialResult: Square tables over the alphabet (missing cells
        are zero) plus the significant transitions.

    Raises:
        ValueError: If ``lag`` is less than 1.
    """
    if lag < 1:
        raise ValueError("lag must be at least 1.")
    seqs = _actions(sequences)
    symbols = _alphabet(seqs, alphabet)

    froms, tos = [], []
    for seq in seqs:
        froms.extend(seq[:-lag] if len(seq) > lag else ())
        tos.extend(seq[lag:] if len(seq) > lag else ())

    if froms:
        observed = pd.crosstab(pd.Series(froms, name="from"), pd.Series(tos, name="to"))
        observed = observed.reindex(index=symbols, columns=symbols, fill_value=0)
    else:
        observed = pd.DataFrame(0, index=symbols, columns=symbols)
    observed.index.name, observed.columns.name = "from", "to"

    counts = observed.to_numpy(dtype=float)
    total = counts.sum()
    if total > 0:
        p_from = counts.sum(axis=1) / total
        p_to = counts.sum(axis=0) / total
    else:
        p_from = np.zeros(len(symbols))
        p_to = np.zeros(len(symbols))
    expected = total * np.outer(p_from, p_to)
    variance = expected * np.outer(1.0 - p_from, 1.0 - p_to)
    z = np.zeros_like(expected)
    ok = variance > 0
    z[ok] = (counts[ok] - expected[ok]) / np.sqrt(variance[ok])

    significant = [
        SignificantTransition(
            from_action=symbols[i],
            to_action=symbols[j],
            observed=int(counts[i, j]),
            expected=float(expected[i, j]),
            z_score=float(z[i, j]),
        )
        for i, j in zip(*np.nonzero(np.abs(z) > critical_z))
    ]
    significant.sort(key=lambda t: -abs(t.z_score))
    logger.debug("Lag-%d analysis: %d transitions, %d significant", lag, int(total), len(significant))

    return LagSequentialResult(
        lag=lag,
        observed=observed.astype(int),
        expected=pd.DataFrame(expected, index=observed.index, columns=observed.columns),
        z_scores=pd.DataFrame(z, index=observed.index, columns=observed.columns),
        significant=tuple(significant),
    )


def to_transition_matrix(table: pd.DataFrame) -> TransitionMatrix:
    """Nested ``{from: {to: value}}`` mapping of a square table."""
    return {str(r): {str(c): float(v) for c, v in row.items()} for r, row in table.iterrows()}


def find_frequent_patterns(sequences, min_support: float = 0.2, length: int = 3) -> Tuple[FrequentPattern, ...]:
    """Contiguous action patterns present in at least ``min_support`` of sequences.

    Support counts each sequence at most once per pattern. Patterns are
    returned by decreasing support, ties in lexicographic order.

    Raises:
        ValueError: If ``length`` is less than 1.
    """
    if length < 1:
        raise ValueError("length must be at least 1.")
    seqs = _actions(sequences)
    if not seqs:
        return ()
    counts: Counter = Counter()
    for seq in seqs:
        counts.update({seq[i:i + length] for i in range(len(seq) - length + 1)})
    patterns = [
        FrequentPattern(pattern=pattern, support=count / len(seqs))
        for pattern, count in counts.items()
        if count / len(seqs) >= min_support
    ]
    patterns.sort(key=lambda p: (-p.support, p.pattern))
    return tuple(patterns)
