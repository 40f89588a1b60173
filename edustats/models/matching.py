"""Greedy nearest-neighbour matching on a single balancing score.

Treated units are visited one at a time. Each takes the closest control not
yet used, provided the score gap is strictly below the caliper; otherwise it
stays unmatched. Matching is one-to-one and without replacement, so the
result depends on the visiting order.

References:
    Rosenbaum, P. R., & Rubin, D. B. (1985). Constructing a control group
    using multivariate matched sampling methods that incorporate the
    propensity score. The American Statistician, 39(1), 33-38.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Optional, Sequence, Tuple

import numpy as np
import pandas as pd

logger = logging.getLogger(__name__)

TREATMENT = "Treatment"
CONTROL = "Control"
DEFAULT_CALIPER = 5.0


@dataclass(frozen=True)
class MatchUnit:
    """One participant in a matching study.

    Attributes:
        id: Unique identifier.
        group: ``"Treatment"`` or ``"Control"``.
        score: Balancing score (for example a prior test score or a
            propensity score).
        matched_with_id: Partner id, or ``None`` when unmatched.
    """

    id: int
    group: str
    score: float
    matched_with_id: Optional[int] = None

    @property
    def is_matched(self) -> bool:
        return self.matched_with_id is not None


def nearest_neighbor_match(
    units: Sequence[MatchUnit], caliper: float = DEFAULT_CALIPER, seed=None
) -> Tuple[MatchUnit, ...]:
    """Pair treated units with controls by greedy nearest-neighbour search.

    Args:
        units: Treatment and control units. Existing matches are discarded.
        caliper (float, optional): Largest admissible score gap (exclusive).
            Defaults to ``5.0``.
        seed: When given, treated units are visited in a random order drawn
            from this seed or :class:`numpy.random.Generator`; otherwise in
            input order.

    Returns:
        tuple[MatchUnit, ...]: Units in input order with ``matched_with_id``
        set on both partners of every pair.

    Raises:
        ValueError: If ids repeat, a group label is unknown, or ``caliper``
            is not positive.

    Note:
        Among equally close controls the one listed first wins.
    """
    if not caliper > 0:
        raise ValueError("caliper must be positive.")
    ids = [u.id for u in units]
    if len(set(ids)) != len(ids):
        raise ValueError("Unit ids must be unique.")
    unknown = {u.group for u in units} - {TREATMENT, CONTROL}
    if unknown:
        raise ValueError(f"Unknown groups: {sorted(unknown)}")

    treated = [u for u in units if u.group == TREATMENT]
    controls = [u for u in units if u.group == CONTROL]
    if seed is not None:
        order = np.random.default_rng(seed).permutation(len(treated))
        treated = [treated[i] for i in order]

    control_scores = np.array([c.score for c in controls], dtype=float)
    available = np.ones(len(controls), dtype=bool)
    partner = {}
    for unit in treated:
        gaps = np.where(available, np.abs(control_scores - unit.score), np.inf)
        if gaps.size == 0:
            break
        best = int(np.argmin(gaps))
        if gaps[best] < caliper:
            available[best] = False
            partner[unit.id] = controls[best].id
            partner[controls[best].id] = unit.id

    logger.debug("Matched %d of %d treated units", len(partner) // 2, len(treated))
    return tuple(replace(u, matched_with_id=partner.get(u.id)) for u in units)


def balance_table(units: Sequence[MatchUnit]) -> pd.DataFrame:
    """Mean score by group before and after matching.

    Returns:
        pandas.DataFrame: Rows ``"all"`` and ``"matched"``; columns
        ``n_treatment``, ``n_control``, ``treatment_mean``, ``control_mean``
        and ``difference`` (treatment minus control). A group with no units
        has mean ``0.0`` and the difference is then ``0.0``.
    """
    frame = pd.DataFrame(
        {
            "group": [u.group for u in units],
            "score": [float(u.score) for u in units],
            "matched": [u.is_matched for u in units],
        },
        columns=["group", "score", "matched"],
    )
    rows = {}
    for label, subset in (("all", frame), ("matched", frame[frame["matched"].astype(bool)])):
        treatment = subset.loc[subset["group"] == TREATMENT, "score"]
        control = subset.loc[subset["group"] == CONTROL, "score"]
        t_mean = float(treatment.mean()) if len(treatment) else 0.0
        c_mean = float(control.mean()) if len(control) else 0.0
        rows[label] = {
            "n_treatment": len(treatment),
            "n_control": len(control),
            "treatment_mean": t_mean,
            "control_mean": c_mean,
            "difference": t_mean - c_mean if len(treatment) and len(control) else 0.0,
        }
    return pd.DataFrame.from_dict(rows, orient="index")
