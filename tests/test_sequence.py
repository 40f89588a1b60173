import numpy as np
import pytest

from edustats.models.sequence import (
    ACTIONS,
    HIDDEN_STATES,
    OBSERVATIONS,
    StudentSequence,
    find_frequent_patterns,
    lag_sequential_analysis,
    simulate_markov_sequence,
    stationary_distribution,
    to_transition_matrix,
    transition_matrix,
)


def test_adjusted_residuals_on_alternating_sequences():
    result = lag_sequential_analysis([["A", "B", "A", "B"], ["B", "A"]], lag=1, alphabet=["A", "B"])
    assert result.observed.loc["A", "B"] == 2
    assert result.observed.loc["A", "A"] == 0
    assert result.expected.loc["A", "B"] == pytest.approx(1.0)
    assert result.z_scores.loc["A", "B"] == pytest.approx(2.0)
    assert result.z_scores.loc["A", "A"] == pytest.approx(-2.0)
    assert len(result.significant) == 4


def test_z_scores_follow_the_adjusted_residual_formula(lab_sequences):
    result = lag_sequential_analysis(lab_sequences, lag=2)
    observed = result.observed.to_numpy(dtype=float)
    total = observed.sum()
    p_from = observed.sum(axis=1) / total
    p_to = observed.sum(axis=0) / total
    expected = total * np.outer(p_from, p_to)
    z = (observed - expected) / np.sqrt(expected * np.outer(1 - p_from, 1 - p_to))
    assert np.allclose(result.expected.to_numpy(), expected)
    assert np.allclose(result.z_scores.to_numpy(), z)


def test_significant_transitions_are_sorted_and_above_threshold(lab_sequences):
    result = lag_sequential_analysis(lab_sequences)
    magnitudes = [abs(t.z_score) for t in result.significant]
    assert magnitudes == sorted(magnitudes, reverse=True)
    assert all(m > 1.96 for m in magnitudes)
    # Group A's habit of passing after a quiz dominates the pooled table.
    assert any(t.from_action == "Q" and t.to_action == "P" for t in result.significant)


def test_tables_cover_full_alphabet_and_unseen_symbols():
    result = lag_sequential_analysis([["V", "Q", "X"]])
    assert list(result.observed.index) == list(ACTIONS) + ["X"]
    assert result.observed.loc["A", "F"] == 0
    matrix = to_transition_matrix(result.observed)
    assert matrix["V"]["Q"] == 1.0
    assert set(matrix) == set(ACTIONS) | {"X"}


def test_no_transitions_yields_zero_tables():
    result = lag_sequential_analysis([["V"], []], lag=1)
    assert result.observed.to_numpy().sum() == 0
    assert np.all(result.z_scores.to_numpy() == 0.0)
    assert result.significant == ()
    with pytest.raises(ValueError):
        lag_sequential_analysis([["V", "Q"]], lag=0)


def test_frequent_patterns_count_each_sequence_once():
    sequences = [
        StudentSequence(0, ("V", "Q", "P")),
        StudentSequence(1, ("V", "Q", "P", "V", "Q", "P")),
        StudentSequence(2, ("A", "F", "E")),
    ]
    patterns = find_frequent_patterns(sequences, min_support=0.5, length=3)
    assert len(patterns) == 1
    assert patterns[0].pattern == ("V", "Q", "P")
    assert patterns[0].support == pytest.approx(2.0 / 3.0)
    assert find_frequent_patterns([], 0.1, 2) == ()


def test_two_state_chain_helpers():
    matrix = transition_matrix((0.8, 0.6))
    assert matrix["Sunny"]["Rainy"] == pytest.approx(0.2)
    assert matrix["Rainy"]["Sunny"] == pytest.approx(0.4)
    pi = stationary_distribution((0.8, 0.6))
    assert pi["Sunny"] == pytest.approx(2.0 / 3.0)
    assert stationary_distribution((1.0, 1.0)) == {"Sunny": 0.5, "Rainy": 0.5}
    with pytest.raises(ValueError):
        transition_matrix((1.2, 0.5))


def test_markov_simulation_is_seeded_and_valid():
    first = simulate_markov_sequence((0.8, 0.6), 50, seed=0)
    second = simulate_markov_sequence({"Sunny": 0.8, "Rainy": 0.6}, 50, seed=0)
    assert first == second
    assert len(first) == 50
    assert all(step.state in HIDDEN_STATES and step.observation in OBSERVATIONS for step in first)
    sticky = simulate_markov_sequence((1.0, 1.0), 30, seed=1, initial="uniform")
    assert len({step.state for step in sticky}) == 1
    assert simulate_markov_sequence((0.5, 0.5), 0, seed=0) == ()
