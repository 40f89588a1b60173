"""Define the immutable result records shared by every estimator.

All records are frozen dataclasses. Routines build new records on every call
and never keep references to them, so callers may cache or discard results
freely.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Optional, Tuple, Union


@dataclass(frozen=True)
class Point:
    """A two-dimensional observation with a stable identifier."""

    id: int
    x: float
    y: float


@dataclass(frozen=True)
class LabeledPoint:
    """An observation with one or more coordinates and optional tags.

    Attributes:
        id: Stable identifier used by update calls such as
            ``edustats.datasets.move_point``.
        coords: Numeric coordinates. Decision trees expect two, logistic
            regression uses the first.
        label: Optional class label (``0``/``1`` for binary outcomes).
        group: Optional group tag, for example ``"Group A"``.
    """

    id: int
    coords: Tuple[float, ...]
    label: Optional[int] = None
    group: Optional[str] = None


@dataclass(frozen=True)
class RegressionLine:
    slope: float
    intercept: float

    def predict(self, x):
        return self.slope * x + self.intercept


@dataclass(frozen=True)
class LogisticFit:
    """Coefficients of ``P(y=1) = 1 / (1 + exp(-(beta0 + beta1 * x)))``."""

    beta0: float
    beta1: float
    log_likelihood: float = 0.0
    n_iter: int = 0
    converged: bool = True

    @property
    def decision_boundary(self) -> Optional[float]:
        """Return the ``x`` where ``P(y=1) = 0.5``, or ``None`` when flat."""
        if self.beta1 == 0:
            return None
        return -self.beta0 / self.beta1


@dataclass(frozen=True)
class Centroid:
    id: int
    x: float
    y: float


@dataclass(frozen=True)
class Profile:
    """One component of a two-dimensional Gaussian mixture.

    Attributes:
        id: Component index.
        mean: Location ``(x, y)``.
        covariance: Symmetric 2x2 covariance as nested tuples.
        weight: Mixing proportion in ``[0, 1]``. Weights of all profiles in a
            mixture sum to one.
    """

    id: int
    mean: Tuple[float, float]
    covariance: Tuple[Tuple[float, float], Tuple[float, float]]
    weight: float


@dataclass(frozen=True)
class LeafNode:
    value: int
    samples: int
    gini: float

    is_leaf = True


@dataclass(frozen=True)
class SplitNode:
    """Internal decision-tree node.

    Points with ``coords[feature_index] <= threshold`` are routed left.
    """

    feature_index: int
    threshold: float
    left: "TreeNode"
    right: "TreeNode"
    gini: float
    samples: int

    is_leaf = False


TreeNode = Union[SplitNode, LeafNode]


@dataclass(frozen=True)
class FitIndices:
    chi_square: float
    degrees_of_freedom: int
    p_value: float
    cfi: float
    rmsea: float


@dataclass(frozen=True)
class SurvivalCurvePoint:
    """One step of a Kaplan-Meier curve.

    Attributes:
        time: Distinct observed time (``0`` for the origin point).
        survival_probability: Running product-limit estimate.
        at_risk: Subjects still at risk just before ``time``.
        events: Observed events at ``time``.
        censored: Censorings at ``time``.
        std_error: Greenwood standard error of ``survival_probability``.
    """

    time: float
    survival_probability: float
    at_risk: int = 0
    events: int = 0
    censored: int = 0
    std_error: float = 0.0


TransitionMatrix = Dict[str, Dict[str, float]]


@dataclass(frozen=True)
class Keyword:
    text: str
    weight: float


@dataclass(frozen=True)
class Topic:
    id: int
    keywords: Tuple[Keyword, ...]
    name: Optional[str] = None


@dataclass(frozen=True)
class DocumentTopic:
    topic_id: int
    weight: float


@dataclass(frozen=True)
class LdaDocument:
    id: int
    content: str
    topic_distribution: Tuple[DocumentTopic, ...]


@dataclass(frozen=True)
class FeatureContribution:
    feature: str
    value: float


@dataclass(frozen=True)
class PredictionResult:
    """Additive explanation of a single prediction.

    ``prediction == base_value + sum(c.value for c in contributions)`` holds
    within floating-point tolerance.
    """

    prediction: float
    base_value: float
    contributions: Tuple[FeatureContribution, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class NumericFailure:
    """Tagged failure returned instead of a result corrupted by NaN values.

    Instances are falsy so callers can write ``if not result:`` to render an
    explicit "not enough data" state.
    """

    routine: str
    reason: str

    def __bool__(self) -> bool:
        return False
