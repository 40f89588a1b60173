#!/usr/bin/env python3
"""
Main script for running the learning-analytics model demos.
"""

# Pipeline overview (README-style):
# 1) Generate seeded synthetic datasets for every demo.
# 2) Fit regression, clustering, decomposition, tree, survival, SEM, sequence,
#    topic and attribution models on them.
# 3) Log a one-line summary per model and export tables as CSV.
# 4) Render one figure per model unless --no-plots is given.

import argparse
import logging
import os
import sys
import time

import numpy as np
import pandas as pd

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(levelname)s - %(message)s",
    handlers=[
        logging.StreamHandler(sys.stdout),
        logging.FileHandler("edustats_demo.log", mode="w"),
    ],
)

sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from edustats import datasets
from edustats.models import (
    StudentFeatures,
    assign_topics,
    build_decision_tree,
    explain_student,
    factor_analysis,
    find_frequent_patterns,
    fit_model,
    fit_profiles,
    kaplan_meier,
    kaplan_meier_by_group,
    balance_table,
    kmeans,
    lag_sequential_analysis,
    median_survival_time,
    most_connected,
    nearest_neighbor_match,
    pca,
    simulate_markov_sequence,
    summarize_interactions,
    trace_mastery,
)
from edustats.models.sem import DEMO_STRUCTURAL_PATHS, demo_model
from edustats.models.tree import count_leaves, tree_depth
from edustats.plotting import (
    plot_clusters,
    plot_contributions,
    plot_regression,
    plot_scree,
    plot_survival_curve,
    plot_transition_heatmap,
)
from edustats.stats import (
    group_regressions,
    linear_regression,
    logistic_regression,
    moving_average,
    r_squared,
    update_beta,
)


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Run the edustats model demos.")
    parser.add_argument("--output-dir", default="output", help="Directory for CSV and figure outputs.")
    parser.add_argument("--seed", type=int, default=42, help="Seed for every synthetic dataset.")
    parser.add_argument("--no-plots", action="store_true", help="Skip figure generation.")
    return parser.parse_args(argv)


def main(argv=None):
    """Main execution function with per-model summary logging."""
    args = parse_args(argv)
    start_time = time.time()
    output_dir = args.output_dir
    os.makedirs(output_dir, exist_ok=True)
    rng = np.random.default_rng(args.seed)
    figures = []
    logging.info("Initializing edustats demo pipeline (seed=%d)", args.seed)

    # Regression
    points = datasets.correlated_points(60, correlation=0.7, seed=rng)
    x = np.array([p.x for p in points])
    y = np.array([p.y for p in points])
    line = linear_regression(x, y)
    logging.info(
        "OLS: slope=%.3f intercept=%.2f R^2=%.3f", line.slope, line.intercept, r_squared(x, y, line)
    )
    labeled = datasets.logistic_points(80, seed=rng)
    logit = logistic_regression([p.coords[0] for p in labeled], [p.label for p in labeled])
    logging.info(
        "Logistic: beta0=%.3f beta1=%.4f boundary=%s", logit.beta0, logit.beta1, logit.decision_boundary
    )

    # Clustering
    blobs = datasets.cluster_points(40, seed=rng)
    clusters = kmeans(blobs, k=3, seed=rng)
    logging.info("K-Means: %d iterations, inertia=%.1f", clusters.n_iter, clusters.inertia)
    mixture = fit_profiles(blobs, k=3, seed=rng)
    logging.info(
        "Mixture: %d iterations, weights=%s",
        mixture.n_iter,
        ", ".join(f"{p.weight:.2f}" for p in mixture.profiles),
    )

    # Decomposition
    survey = datasets.factor_data(200, seed=rng)
    components = pca(survey, n_components=3)
    if components:
        logging.info("PCA explained variance ratio: %s", np.round(components.explained_variance_ratio, 3))
    else:
        logging.warning("PCA failed: %s", components.reason)
    factors = factor_analysis(survey, n_factors=2)
    if factors:
        factors.loadings.to_csv(os.path.join(output_dir, "factor_loadings.csv"))
        logging.info("Factor loadings written for %d items", len(factors.loadings))

    # Decision tree
    students = datasets.classification_points(120, seed=rng)
    tree = build_decision_tree(students, max_depth=3)
    logging.info("Decision tree: depth=%d leaves=%d", tree_depth(tree), count_leaves(tree))

    # Survival
    dropout = datasets.survival_data(120, seed=rng)
    overall = kaplan_meier(dropout["time"], dropout["status"])
    by_group = kaplan_meier_by_group(dropout["time"], dropout["status"], dropout["group"])
    for name, curve in by_group.items():
        logging.info("Kaplan-Meier %s: median survival=%s weeks", name, median_survival_time(curve))
    pd.DataFrame([vars(p) for p in overall]).to_csv(os.path.join(output_dir, "survival_curve.csv"), index=False)

    # Structural model
    sample_cov = datasets.sem_sample_covariance(500, seed=rng)
    for label, model in (("measurement only", demo_model()), ("full", demo_model(DEMO_STRUCTURAL_PATHS))):
        fit = fit_model(model, sample_cov, n_obs=500)
        if not fit:
            logging.warning("SEM (%s) failed: %s", label, fit.reason)
            continue
        logging.info(
            "SEM (%s): chi2=%.2f df=%d p=%.3f CFI=%.3f RMSEA=%.3f",
            label,
            fit.fit.chi_square,
            fit.fit.degrees_of_freedom,
            fit.fit.p_value,
            fit.fit.cfi,
            fit.fit.rmsea,
        )

    # Sequences
    weather = simulate_markov_sequence((0.8, 0.6), 20, seed=rng)
    logging.info("Markov sequence: %s", " ".join(step.observation for step in weather))
    sequences = datasets.sequence_data(100, seed=rng)
    lag = lag_sequential_analysis(sequences, lag=1)
    lag.z_scores.to_csv(os.path.join(output_dir, "lag_z_scores.csv"))
    for t in lag.significant[:5]:
        logging.info("Transition %s -> %s: z=%.2f", t.from_action, t.to_action, t.z_score)
    patterns = find_frequent_patterns(sequences, min_support=0.2, length=3)
    logging.info("Frequent patterns (support >= 0.2): %d", len(patterns))

    # Topics and attribution
    topics = assign_topics(n_topics=3)
    for topic in topics.topics:
        logging.info("Topic %d: %s", topic.id, topic.name)
    explanation = explain_student(StudentFeatures(assignment_completion=85, quiz_scores=60, absences=9))
    logging.info("Attribution: base=%.1f prediction=%.1f", explanation.base_value, explanation.prediction)

    # Learning analytics extras
    mastery = trace_mastery([True, False, True, True, True])
    logging.info("Knowledge tracing: %s", " -> ".join(f"{m:.2f}" for m in mastery))
    network = summarize_interactions(datasets.interaction_data(20, 60, seed=rng))
    for node in most_connected(network, 3):
        logging.info("Learner %d: degree=%d", node.id, node.degree)
    matched = nearest_neighbor_match(datasets.matching_data(150, seed=rng), seed=rng)
    balance_table(matched).to_csv(os.path.join(output_dir, "matching_balance.csv"))
    posterior = update_beta(successes=7, failures=3)
    low, high = posterior.credible_interval()
    logging.info("Beta posterior: mean=%.3f 95%% interval=[%.3f, %.3f]", posterior.mean, low, high)
    series = datasets.time_series_data(100, seed=rng)
    series["smoothed"] = moving_average(series["value"], window=5)
    series.to_csv(os.path.join(output_dir, "time_series.csv"), index=False)
    nested = datasets.multilevel_points(seed=rng)
    levels = group_regressions(
        [p.coords[0] for p in nested], [p.coords[1] for p in nested], [p.group for p in nested]
    )
    logging.info(
        "Multilevel: pooled slope=%.3f, slope variance=%.3f, intercept variance=%.1f",
        levels["overall"].slope,
        levels["slope_variance"],
        levels["intercept_variance"],
    )

    if not args.no_plots:
        figures.append(plot_regression(points, line, output_dir))
        figures.append(plot_clusters(blobs, clusters, output_dir))
        if components:
            figures.append(plot_scree(components.explained_variance_ratio, output_dir))
        figures.append(plot_survival_curve(by_group, output_dir))
        figures.append(plot_transition_heatmap(lag, output_dir))
        figures.append(plot_contributions(explanation, output_dir))

    total_duration = time.time() - start_time
    logging.info("Total execution time: %.2f seconds", total_duration)
    logging.info("Demo pipeline completed successfully")
    for path in figures:
        logging.info("  - Figure: %s", path)
    return 0


if __name__ == "__main__":
    sys.exit(main())
