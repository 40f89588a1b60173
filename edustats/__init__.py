"""
A Python package of statistical models for learning-analytics teaching demos.

Regression, clustering, dimensionality reduction, decision trees, survival
curves, structural equation models, sequence analysis, topic models,
feature attribution, knowledge tracing, interaction networks and matching,
each returning immutable result records.

Modules:
    - schema: Frozen result records shared by all estimators.
    - stats: Linear-algebra kernel, regression, inference tests, Beta
      posteriors and moving averages.
    - models: Clustering, decomposition, trees, survival, SEM, sequences,
      topics, attribution, knowledge tracing, networks and matching.
    - datasets: Seeded synthetic data and record update helpers.
    - plotting: Static figures for model results.
"""

__version__ = "1.0.0"

from .datasets import move_point, toggle_outcome
from .models import (
    assign_topics,
    build_decision_tree,
    evaluate_fit,
    explain_prediction,
    explain_student,
    factor_analysis,
    find_frequent_patterns,
    fit_model,
    fit_profiles,
    kaplan_meier,
    kmeans,
    lag_sequential_analysis,
    nearest_neighbor_match,
    pca,
    simulate_markov_sequence,
    summarize_interactions,
    toggle_path,
    update_mastery,
)
from .schema import NumericFailure
from .stats import linear_regression, logistic_regression, rdd_effect

__all__ = [
    # Records
    "NumericFailure",
    # Regression
    "linear_regression",
    "logistic_regression",
    "rdd_effect",
    # Models
    "pca",
    "factor_analysis",
    "kmeans",
    "fit_profiles",
    "build_decision_tree",
    "kaplan_meier",
    "fit_model",
    "evaluate_fit",
    "toggle_path",
    "simulate_markov_sequence",
    "lag_sequential_analysis",
    "find_frequent_patterns",
    "assign_topics",
    "explain_prediction",
    "explain_student",
    "update_mastery",
    "summarize_interactions",
    "nearest_neighbor_match",
    # Data helpers
    "move_point",
    "toggle_outcome",
]
