"""Seeded synthetic datasets for the demos and tests.

Every generator takes an explicit ``seed`` (an int or a
:class:`numpy.random.Generator`) so that demo output is reproducible. The
update helpers return new records and never modify their input.
"""

from __future__ import annotations

from dataclasses import replace
from typing import List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from .models.matching import CONTROL, TREATMENT, MatchUnit
from .models.network import Interaction
from .models.sem import demo_population_covariance
from .models.sequence import ACTIONS, StudentSequence
from .schema import LabeledPoint, Point

PLOT_MIN = 5.0
PLOT_MAX = 95.0

SURVEY_ITEMS = (
    ("ext1", "I am the life of the party"),
    ("ext2", "I talk to a lot of different people"),
    ("ext3", "I start conversations"),
    ("neu1", "I get stressed out easily"),
    ("neu2", "I worry about things"),
    ("neu3", "I am easily disturbed"),
)

GROUP_A = "Group A"
GROUP_B = "Group B"


def correlated_points(n: int = 50, correlation: float = 0.6, spread: float = 15.0, seed=None) -> Tuple[Point, ...]:
    """Bivariate normal points centered at (50, 50) and clipped to the plot area.

    Raises:
        ValueError: If ``correlation`` is outside ``[-1, 1]``.
    """
    if not -1.0 <= correlation <= 1.0:
        raise ValueError("correlation must lie in [-1, 1].")
    rng = np.random.default_rng(seed)
    z1 = rng.standard_normal(n)
    z2 = rng.standard_normal(n)
    x = 50.0 + spread * z1
    y = 50.0 + spread * (correlation * z1 + np.sqrt(1.0 - correlation**2) * z2)
    x = np.clip(x, PLOT_MIN, PLOT_MAX)
    y = np.clip(y, PLOT_MIN, PLOT_MAX)
    return tuple(Point(id=i, x=float(a), y=float(b)) for i, (a, b) in enumerate(zip(x, y)))


def logistic_points(
    n: int = 60, beta0: float = -5.0, beta1: float = 0.1, seed=None
) -> Tuple[LabeledPoint, ...]:
    """Study-hours style data with ``P(pass) = expit(beta0 + beta1 * x)``."""
    rng = np.random.default_rng(seed)
    x = rng.uniform(0.0, 100.0, size=n)
    p = 1.0 / (1.0 + np.exp(-(beta0 + beta1 * x)))
    outcome = (rng.uniform(size=n) < p).astype(int)
    return tuple(
        LabeledPoint(id=i, coords=(float(xi),), label=int(yi)) for i, (xi, yi) in enumerate(zip(x, outcome))
    )


def cluster_points(
    n_per_cluster: int = 30,
    centers: Sequence[Tuple[float, float]] = ((25.0, 30.0), (70.0, 70.0), (70.0, 25.0)),
    spread: float = 7.0,
    seed=None,
) -> Tuple[Point, ...]:
    """Isotropic Gaussian blobs around ``centers``."""
    rng = np.random.default_rng(seed)
    blocks = [rng.normal(loc=c, scale=spread, size=(n_per_cluster, 2)) for c in centers]
    pts = np.clip(np.vstack(blocks), 0.0, 100.0) if blocks else np.empty((0, 2))
    return tuple(Point(id=i, x=float(a), y=float(b)) for i, (a, b) in enumerate(pts))


def classification_points(n: int = 80, seed=None) -> Tuple[LabeledPoint, ...]:
    """Two-feature pass/fail data for decision trees.

    A student passes when both study hours and attendance are high, with a
    little label noise.
    """
    rng = np.random.default_rng(seed)
    coords = rng.uniform(0.0, 100.0, size=(n, 2))
    label = ((coords[:, 0] > 45.0) & (coords[:, 1] > 35.0)).astype(int)
    flip = rng.uniform(size=n) < 0.05
    label = np.where(flip, 1 - label, label)
    return tuple(
        LabeledPoint(id=i, coords=(float(c[0]), float(c[1])), label=int(lab))
        for i, (c, lab) in enumerate(zip(coords, label))
    )


def factor_data(n: int = 200, seed=None) -> pd.DataFrame:
    """Survey responses in ``[-1, 1]`` driven by extraversion and neuroticism."""
    rng = np.random.default_rng(seed)
    extraversion = rng.uniform(-1.0, 1.0, size=n)
    neuroticism = rng.uniform(-1.0, 1.0, size=n)
    columns = {}
    for item_id, _ in SURVEY_ITEMS:
        latent = extraversion if item_id.startswith("ext") else neuroticism
        noise = rng.uniform(-0.4, 0.4, size=n)
        columns[item_id] = np.clip(0.7 * latent + noise, -1.0, 1.0)
    return pd.DataFrame(columns)


def survival_data(
    n: int = 100, intervention_effect: float = 0.4, horizon: int = 20, baseline_hazard: float = 0.05, seed=None
) -> pd.DataFrame:
    """Weekly dropout times for two groups.

    ``Group A`` receives an intervention that scales the weekly hazard by
    ``1 - intervention_effect``. Learners still enrolled at ``horizon`` are
    censored.

    Returns:
        pandas.DataFrame: Columns ``time`` (weeks, at least 1), ``status``
        (1 = dropout, 0 = censored) and ``group``.
    """
    rng = np.random.default_rng(seed)
    groups = np.where(np.arange(n) < n / 2, GROUP_A, GROUP_B)
    hazard = np.where(groups == GROUP_A, baseline_hazard * (1.0 - intervention_effect), baseline_hazard)
    hazard = np.clip(hazard, 1e-9, 1.0)
    time = rng.geometric(hazard)
    status = (time < horizon).astype(int)
    return pd.DataFrame({"time": np.minimum(time, horizon), "status": status, "group": groups})


def sequence_data(n: int = 100, seed=None) -> Tuple[StudentSequence, ...]:
    """Learner action sequences with group-specific habits.

    ``Group A`` tends to follow a video with a quiz and a quiz with a pass;
    ``Group B`` tends to fail after quizzes and then visit the forum.
    """
    rng = np.random.default_rng(seed)
    habits = {
        GROUP_A: {"V": ("Q", 0.7), "Q": ("P", 0.8)},
        GROUP_B: {"Q": ("E", 0.6), "E": ("F", 0.7)},
    }
    sequences = []
    for i in range(n):
        group = GROUP_A if i < n / 2 else GROUP_B
        actions: List[str] = []
        for _ in range(int(rng.integers(5, 15))):
            habit = habits[group].get(actions[-1]) if actions else None
            if habit is not None and rng.uniform() < habit[1]:
                actions.append(habit[0])
            else:
                actions.append(ACTIONS[int(rng.integers(len(ACTIONS)))])
        sequences.append(StudentSequence(id=i, actions=tuple(actions), group=group))
    return tuple(sequences)


def rdd_points(cutoff: float = 50.0, effect: float = 10.0, n: int = 200, seed=None) -> Tuple[Point, ...]:
    """Scores with a jump of ``effect`` for units below ``cutoff``."""
    rng = np.random.default_rng(seed)
    x = rng.uniform(0.0, 100.0, size=n)
    y = 0.5 * x + 20.0 + rng.uniform(-7.5, 7.5, size=n) + np.where(x < cutoff, effect, 0.0)
    y = np.clip(y, 0.0, 100.0)
    return tuple(Point(id=i, x=float(a), y=float(b)) for i, (a, b) in enumerate(zip(x, y)))


def sem_sample_covariance(n: int = 500, seed=None) -> pd.DataFrame:
    """Sample covariance of ``n`` draws from the demo structural model."""
    population = demo_population_covariance()
    rng = np.random.default_rng(seed)
    draws = rng.multivariate_normal(np.zeros(len(population)), population.to_numpy(), size=n)
    return pd.DataFrame(draws, columns=population.columns).cov()


def multilevel_points(
    n_groups: int = 5,
    points_per_group: int = 20,
    fixed_intercept: float = 20.0,
    fixed_slope: float = 0.6,
    intercept_variance: float = 100.0,
    slope_variance: float = 0.2,
    seed=None,
) -> Tuple[LabeledPoint, ...]:
    """Nested data: every group draws its own intercept and slope.

    Group effects are uniform on ``+/- sqrt(variance)`` around the fixed
    values, individual noise is uniform on ``+/- 10`` and ``y`` is clipped
    to ``[0, 100]``.

    Returns:
        tuple[LabeledPoint, ...]: ``coords = (x, y)`` and ``group`` set to
        ``"Group 1"``, ``"Group 2"``, ...

    Raises:
        ValueError: If a variance is negative.
    """
    if intercept_variance < 0 or slope_variance < 0:
        raise ValueError("Variances must be non-negative.")
    rng = np.random.default_rng(seed)
    points = []
    for g in range(n_groups):
        intercept = fixed_intercept + rng.uniform(-1.0, 1.0) * np.sqrt(intercept_variance)
        slope = fixed_slope + rng.uniform(-1.0, 1.0) * np.sqrt(slope_variance)
        x = rng.uniform(0.0, 100.0, size=points_per_group)
        y = np.clip(intercept + slope * x + rng.uniform(-10.0, 10.0, size=points_per_group), 0.0, 100.0)
        for xi, yi in zip(x, y):
            points.append(LabeledPoint(id=len(points), coords=(float(xi), float(yi)), group=f"Group {g + 1}"))
    return tuple(points)


def interaction_data(n_students: int = 20, n_interactions: int = 60, seed=None) -> Tuple[Interaction, ...]:
    """Forum interactions with preferential attachment.

    After the first ten interactions, seven in ten replies go to the learner
    who has received the most so far (lowest id on ties) unless that learner
    is the sender.

    Raises:
        ValueError: If ``n_students`` is less than 2.
    """
    if n_students < 2:
        raise ValueError("n_students must be at least 2.")
    rng = np.random.default_rng(seed)
    received = np.zeros(n_students, dtype=int)
    interactions = []
    for i in range(n_interactions):
        source = int(rng.integers(n_students))
        target = int(rng.integers(n_students - 1))
        target += target >= source
        if i > 10 and rng.uniform() > 0.3:
            popular = int(np.argmax(received))
            if popular != source:
                target = popular
        received[target] += 1
        interactions.append(Interaction(source=source, target=target, time=i))
    return tuple(interactions)


def matching_data(n: int = 150, selection_bias: float = 5.0, seed=None) -> Tuple[MatchUnit, ...]:
    """Prior scores with self-selection into treatment.

    Prior scores are uniform on ``[30, 70]``. The chance of treatment is
    ``expit((score - 50) / 20 + selection_bias / 10)``, so stronger students
    opt in more often.
    """
    rng = np.random.default_rng(seed)
    scores = np.clip(50.0 + rng.uniform(-20.0, 20.0, size=n), 0.0, 100.0)
    p_treat = 1.0 / (1.0 + np.exp(-((scores - 50.0) / 20.0 + selection_bias / 10.0)))
    treated = rng.uniform(size=n) < p_treat
    return tuple(
        MatchUnit(id=i, group=TREATMENT if t else CONTROL, score=float(s))
        for i, (s, t) in enumerate(zip(scores, treated))
    )


def time_series_data(n: int = 100, seed=None) -> pd.DataFrame:
    """Random walk with a seasonal swing, kept inside ``[10, 90]``.

    Returns:
        pandas.DataFrame: Columns ``time`` (``0 .. n-1``) and ``value``.
    """
    rng = np.random.default_rng(seed)
    values = np.empty(n)
    value = 50.0
    for i in range(n):
        value += rng.uniform(-5.0, 5.0) + 5.0 * np.sin(i / 5.0)
        value = min(max(value, 10.0), 90.0)
        values[i] = value
    return pd.DataFrame({"time": np.arange(n), "value": values})


def move_point(points: Sequence, point_id: int, x: float, y: Optional[float] = None) -> tuple:
    """Return a copy of ``points`` with one record moved.

    Works for :class:`Point` (``x``, ``y``) and :class:`LabeledPoint`
    (``coords`` replaced by ``(x, y)`` or ``(x,)``).

    Raises:
        KeyError: If no record has ``point_id``.
    """
    moved = []
    found = False
    for p in points:
        if p.id == point_id:
            found = True
            if isinstance(p, LabeledPoint):
                p = replace(p, coords=(float(x),) if y is None else (float(x), float(y)))
            else:
                p = replace(p, x=float(x), y=p.y if y is None else float(y))
        moved.append(p)
    if not found:
        raise KeyError(f"Unknown point id: {point_id}")
    return tuple(moved)


def toggle_outcome(points: Sequence[LabeledPoint], point_id: int) -> Tuple[LabeledPoint, ...]:
    """Return a copy of ``points`` with one binary label flipped.

    Raises:
        KeyError: If no record has ``point_id``.
    """
    if not any(p.id == point_id for p in points):
        raise KeyError(f"Unknown point id: {point_id}")
    return tuple(replace(p, label=1 - int(p.label or 0)) if p.id == point_id else p for p in points)
