"""
Statistical and machine-learning models for the learning-analytics demos.

Every estimator takes plain arrays, records or DataFrames and returns a new
frozen result record. Iterative estimators are capped by iteration counts and
expose single-step functions for callers that animate intermediate states.

Modules:
    decomposition:
        Principal component analysis and principal-axis factor analysis.

    kmeans:
        Lloyd's algorithm with step-wise assignment and update helpers.

    mixture:
        Gaussian-mixture EM (latent profile analysis) in two dimensions.

    tree:
        CART classification trees with Gini splits.

    survival:
        Kaplan-Meier curves with Greenwood standard errors.

    sem:
        Structural equation models: path toggling, ML fit, CFI and RMSEA.

    sequence:
        Two-state Markov simulation, lag-sequential analysis and frequent
        pattern mining over learner action sequences.

    topics:
        Latent Dirichlet allocation by collapsed Gibbs sampling.

    attribution:
        Additive feature attribution for a linear student-outcome score.

    knowledge_tracing:
        Bayesian knowledge tracing updates and two-parameter IRT curves.

    network:
        Degree summaries of learner interaction networks.

    matching:
        Greedy caliper matching of treated and control units with balance
        tables.

Design Principle:
    Degenerate data never raises. Each routine defines an explicit fallback,
    and internal numeric failures are returned as ``NumericFailure`` records.
"""

from .attribution import StudentFeatures, explain_prediction, explain_student
from .decomposition import FactorAnalysisResult, PCAResult, factor_analysis, pca
from .kmeans import (
    KMeansResult,
    assign_clusters,
    initialize_centroids,
    kmeans,
    kmeans_step,
    update_centroids,
)
from .knowledge_tracing import BKTParams, irt_probability, trace_mastery, update_mastery
from .matching import MatchUnit, balance_table, nearest_neighbor_match
from .mixture import (
    MixtureResult,
    expectation_step,
    fit_profiles,
    initialize_profiles,
    maximization_step,
)
from .network import Interaction, NetworkSummary, most_connected, summarize_interactions
from .sem import SemFit, SemModel, SemPath, SemVariable, demo_model, evaluate_fit, fit_model, toggle_path
from .sequence import (
    LagSequentialResult,
    StudentSequence,
    find_frequent_patterns,
    lag_sequential_analysis,
    simulate_markov_sequence,
)
from .survival import confidence_band, kaplan_meier, kaplan_meier_by_group, median_survival_time
from .topics import TopicModel, assign_topics, relevant_documents
from .tree import build_decision_tree, predict, route

__all__ = [
    # Decomposition
    "PCAResult",
    "FactorAnalysisResult",
    "pca",
    "factor_analysis",
    # Clustering
    "KMeansResult",
    "initialize_centroids",
    "assign_clusters",
    "update_centroids",
    "kmeans_step",
    "kmeans",
    "MixtureResult",
    "initialize_profiles",
    "expectation_step",
    "maximization_step",
    "fit_profiles",
    # Trees
    "build_decision_tree",
    "predict",
    "route",
    # Survival
    "kaplan_meier",
    "kaplan_meier_by_group",
    "confidence_band",
    "median_survival_time",
    # Structural models
    "SemVariable",
    "SemPath",
    "SemModel",
    "SemFit",
    "toggle_path",
    "fit_model",
    "evaluate_fit",
    "demo_model",
    # Sequences
    "StudentSequence",
    "LagSequentialResult",
    "simulate_markov_sequence",
    "lag_sequential_analysis",
    "find_frequent_patterns",
    # Topics and attribution
    "TopicModel",
    "assign_topics",
    "relevant_documents",
    "StudentFeatures",
    "explain_prediction",
    "explain_student",
    # Knowledge tracing
    "BKTParams",
    "update_mastery",
    "trace_mastery",
    "irt_probability",
    # Networks
    "Interaction",
    "NetworkSummary",
    "summarize_interactions",
    "most_connected",
    # Matching
    "MatchUnit",
    "nearest_neighbor_match",
    "balance_table",
]
