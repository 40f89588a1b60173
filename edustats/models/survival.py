"""Kaplan-Meier survival curves with Greenwood standard errors.

Experimental Context:
    In the dropout demo, ``time`` is the week a learner left (``status = 1``)
    or the last week they were observed while still enrolled (``status = 0``,
    censored). Censored learners leave the risk set without lowering the
    survival estimate.

Estimator:
    At each distinct time ``t`` with ``d`` events among ``n`` learners still
    at risk just before ``t``::

        S(t) = S(t-) * (1 - d / n)

    Greenwood's formula gives ``Var[S(t)] = S(t)**2 * sum d / (n (n - d))``.
"""

from __future__ import annotations

from typing import Dict, Optional, Sequence, Tuple

import numpy as np
import pandas as pd
from scipy.stats import norm

from ..schema import SurvivalCurvePoint


def kaplan_meier(
    times: Sequence[float],
    statuses: Sequence[int],
    horizon: Optional[float] = None,
) -> Tuple[SurvivalCurvePoint, ...]:
    """Build the Kaplan-Meier product-limit curve.

    Args:
        times: Non-negative time to event or censoring for each subject.
        statuses: ``1`` for an observed event, ``0`` for censoring.
        horizon (float, optional): When later than the last observed time, a
            final point carrying the last probability forward is appended.

    Returns:
        tuple[SurvivalCurvePoint, ...]: Origin ``(0, 1.0)`` followed by one
        point per distinct positive time, non-increasing in probability.
        Censored-only times repeat the previous probability.

    Raises:
        ValueError: If lengths differ, a status is not 0/1, or a time is
            negative.

    Note:
        Subjects with time ``0`` are at risk at the origin but leave before
        follow-up starts; they reduce the risk set without a survival factor,
        so the curve equals one at time zero.
    """
    t = np.asarray(times, dtype=float)
    s = np.asarray(statuses, dtype=int)
    if t.shape != s.shape:
        raise ValueError("times and statuses must have the same length.")
    if not np.all((s == 0) | (s == 1)):
        raise ValueError("statuses must be 0 (censored) or 1 (event).")
    mask = np.isfinite(t)
    t, s = t[mask], s[mask]
    if np.any(t < 0):
        raise ValueError("times must be non-negative.")

    frame = pd.DataFrame({"time": t, "event": s, "censored": 1 - s})
    table = frame.groupby("time", sort=True)[["event", "censored"]].sum()

    at_risk = int(t.size)
    prob = 1.0
    greenwood = 0.0
    points = [SurvivalCurvePoint(time=0.0, survival_probability=1.0, at_risk=at_risk)]
    for time, row in table.iterrows():
        d = int(row["event"])
        c = int(row["censored"])
        if time == 0.0:
            at_risk -= d + c
            continue
        n = at_risk
        if n > 0 and d > 0:
            prob *= 1.0 - d / n
            if n > d:
                greenwood += d / (n * (n - d))
        std_error = prob * np.sqrt(greenwood) if prob > 0 else 0.0
        points.append(
            SurvivalCurvePoint(
                time=float(time),
                survival_probability=float(prob),
                at_risk=n,
                events=d,
                censored=c,
                std_error=float(std_error),
            )
        )
        at_risk -= d + c

    if horizon is not None and horizon > points[-1].time:
        last = points[-1]
        points.append(
            SurvivalCurvePoint(
                time=float(horizon),
                survival_probability=last.survival_probability,
                at_risk=at_risk,
                std_error=last.std_error,
            )
        )
    return tuple(points)


def confidence_band(
    curve: Sequence[SurvivalCurvePoint], level: float = 0.95
) -> pd.DataFrame:
    """Pointwise normal-approximation band clipped to ``[0, 1]``.

    Returns:
        pandas.DataFrame: Columns ``time``, ``survival``, ``lower`` and
        ``upper``.
    """
    if not 0.0 < level < 1.0:
        raise ValueError("level must lie strictly between 0 and 1.")
    z = float(norm.ppf(0.5 + level / 2.0))
    frame = pd.DataFrame(
        {
            "time": [p.time for p in curve],
            "survival": [p.survival_probability for p in curve],
            "std_error": [p.std_error for p in curve],
        }
    )
    frame["lower"] = (frame["survival"] - z * frame["std_error"]).clip(0.0, 1.0)
    frame["upper"] = (frame["survival"] + z * frame["std_error"]).clip(0.0, 1.0)
    return frame[["time", "survival", "lower", "upper"]]


def median_survival_time(curve: Sequence[SurvivalCurvePoint]) -> Optional[float]:
    """First time at which survival drops to 0.5 or below; ``None`` if never."""
    for point in curve:
        if point.survival_probability <= 0.5:
            return point.time
    return None


def kaplan_meier_by_group(
    times: Sequence[float],
    statuses: Sequence[int],
    groups: Sequence[str],
    horizon: Optional[float] = None,
) -> Dict[str, Tuple[SurvivalCurvePoint, ...]]:
    """Separate Kaplan-Meier curves per group tag, keyed in sorted order."""
    frame = pd.DataFrame({"time": times, "status": statuses, "group": groups})
    return {
        str(name): kaplan_meier(sub["time"].to_numpy(), sub["status"].to_numpy(), horizon=horizon)
        for name, sub in frame.groupby("group", sort=True)
    }
