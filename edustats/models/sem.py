"""Structural equation models: path specification, ML fit and fit indices.

A model is a set of latent and observed variables joined by paths. Loadings
tie each latent to its indicators and are always part of the model; the
structural paths (regressions and covariances between variables) are switched
on and off by the caller with :func:`toggle_path`.

Estimation:
    The model-implied covariance uses the RAM formulation::

        Sigma = F (I - A)^-1 S (I - A)^-T F^T

    where ``A`` holds loadings and regression coefficients, ``S`` holds
    variances and covariances, and ``F`` selects the observed variables. The
    maximum-likelihood discrepancy::

        F_ML = log|Sigma| + tr(S_target Sigma^-1) - log|S_target| - p

    is minimized with :func:`scipy.optimize.minimize` (L-BFGS-B). The first
    loading of every latent is fixed to one to set its scale.

Fit indices:
    chi2 = (n - 1) * F_ML with ``df = p (p + 1) / 2 - q``. CFI compares the
    model with the independence (diagonal) baseline; RMSEA rescales the excess
    chi-square by ``df (n - 1)``.

References:
    McArdle, J. J., & McDonald, R. P. (1984). Some algebraic properties of the
    Reticular Action Model for moment structures.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Dict, List, Optional, Sequence, Tuple, Union

import numpy as np
import pandas as pd
from scipy.optimize import minimize
from scipy.stats import chi2 as chi2_dist

from ..schema import FitIndices, NumericFailure

logger = logging.getLogger(__name__)

DEFAULT_MAX_ITER = 2000
DEFAULT_MIN_VARIANCE = 1e-6
DEFAULT_N_OBS = 500
_PENALTY = 1e10

LATENT = "latent"
OBSERVED = "observed"
LOADING = "loading"
REGRESSION = "regression"
COVARIANCE = "covariance"


@dataclass(frozen=True)
class SemVariable:
    id: str
    kind: str
    label: str = ""


@dataclass(frozen=True)
class SemPath:
    """Directed loading/regression or undirected covariance between two variables.

    Attributes:
        id: Stable identifier, e.g. ``"mot-sh"``.
        source: Predictor (loading: the latent) variable id.
        target: Outcome (loading: the indicator) variable id.
        kind: ``"loading"``, ``"regression"`` or ``"covariance"``.
        specified: Whether the path is part of the current model.
        structural: Whether the caller may toggle the path.
    """

    id: str
    source: str
    target: str
    kind: str
    specified: bool = True
    structural: bool = False


@dataclass(frozen=True)
class SemModel:
    variables: Tuple[SemVariable, ...]
    paths: Tuple[SemPath, ...]

    @property
    def observed(self) -> Tuple[str, ...]:
        return tuple(v.id for v in self.variables if v.kind == OBSERVED)

    @property
    def latent(self) -> Tuple[str, ...]:
        return tuple(v.id for v in self.variables if v.kind == LATENT)

    def path(self, path_id: str) -> SemPath:
        for p in self.paths:
            if p.id == path_id:
                return p
        raise KeyError(f"Unknown path id: {path_id!r}")


@dataclass(frozen=True)
class SemFit:
    """Maximum-likelihood solution of a structural model.

    Attributes:
        parameters: Estimates keyed ``"f=~x"`` (loading), ``"y~x"``
            (regression), ``"a~~b"`` (covariance or variance).
        implied_covariance: Model-implied covariance over observed variables.
        fit: Chi-square, degrees of freedom, p-value, CFI and RMSEA.
        discrepancy: Minimized ``F_ML``.
        n_free: Number of free parameters ``q``.
        converged: Optimizer success flag.
    """

    parameters: Dict[str, float]
    implied_covariance: pd.DataFrame
    fit: FitIndices
    discrepancy: float
    n_free: int
    converged: bool


@dataclass(frozen=True)
class _Entry:
    name: str
    matrix: str
    row: int
    col: int
    free: bool
    start: float


def _parameter_name(path: SemPath) -> str:
    if path.kind == LOADING:
        return f"{path.source}=~{path.target}"
    if path.kind == REGRESSION:
        return f"{path.target}~{path.source}"
    return f"{path.source}~~{path.target}"


def toggle_path(model: SemModel, path_id: str) -> SemModel:
    """Switch a structural path on or off, returning a new model.

    Enabling a regression disables any covariance between the same two
    variables, and enabling a covariance disables any regression between
    them, since specifying both over-parameterizes the pair.

    Raises:
        KeyError: If ``path_id`` is unknown.
        ValueError: If the path is not structural (loadings are fixed).
    """
    target = model.path(path_id)
    if not target.structural:
        raise ValueError(f"Path {path_id!r} is not structural and cannot be toggled.")
    enable = not target.specified
    pair = frozenset((target.source, target.target))
    rival = COVARIANCE if target.kind == REGRESSION else REGRESSION

    paths = []
    for p in model.paths:
        if p.id == path_id:
            p = replace(p, specified=enable)
        elif enable and p.kind == rival and frozenset((p.source, p.target)) == pair:
            p = replace(p, specified=False)
        paths.append(p)
    return replace(model, paths=tuple(paths))


def _layout(model: SemModel, target_diag: Optional[np.ndarray] = None) -> Tuple[List[_Entry], Dict[str, int]]:
    index = {v.id: i for i, v in enumerate(model.variables)}
    if len(index) != len(model.variables):
        raise ValueError("Variable ids must be unique.")
    observed = model.observed
    entries: List[_Entry] = []
    marked = set()
    for p in model.paths:
        if p.source not in index or p.target not in index:
            raise KeyError(f"Path {p.id!r} references an unknown variable.")
        if not p.specified:
            continue
        name = _parameter_name(p)
        row, col = index[p.target], index[p.source]
        if p.kind == LOADING:
            first = p.source not in marked
            marked.add(p.source)
            entries.append(_Entry(name, "A", row, col, free=not first, start=1.0))
        elif p.kind == REGRESSION:
            entries.append(_Entry(name, "A", row, col, free=True, start=0.0))
        elif p.kind == COVARIANCE:
            entries.append(_Entry(name, "S", index[p.source], index[p.target], free=True, start=0.0))
        else:
            raise ValueError(f"Unknown path kind {p.kind!r}.")

    for v in model.variables:
        i = index[v.id]
        start = 1.0
        if v.kind == OBSERVED and target_diag is not None:
            start = 0.5 * float(target_diag[observed.index(v.id)])
        entries.append(_Entry(f"{v.id}~~{v.id}", "S", i, i, free=True, start=max(start, 0.1)))
    return entries, index


def free_parameters(model: SemModel) -> Tuple[str, ...]:
    """Names of the free parameters in estimation order."""
    entries, _ = _layout(model)
    return tuple(e.name for e in entries if e.free)


def _ram_covariance(model, entries, index, values: Dict[str, float]) -> np.ndarray:
    m = len(index)
    a = np.zeros((m, m))
    s = np.zeros((m, m))
    for e in entries:
        value = values.get(e.name, e.start) if e.free else e.start
        if e.matrix == "A":
            a[e.row, e.col] = value
        else:
            s[e.row, e.col] = value
            s[e.col, e.row] = value
    f = np.zeros((len(model.observed), m))
    for r, vid in enumerate(model.observed):
        f[r, index[vid]] = 1.0
    inv = np.linalg.solve(np.eye(m) - a, np.eye(m))
    return f @ inv @ s @ inv.T @ f.T


def implied_covariance(model: SemModel, parameters: Dict[str, float]) -> pd.DataFrame:
    """Model-implied covariance of the observed variables.

    Args:
        model: The model; only specified paths contribute.
        parameters: Values keyed by parameter name (see :class:`SemFit`).
            Missing free parameters fall back to their starting values.

    Returns:
        pandas.DataFrame: ``p x p`` covariance labeled by observed ids.
    """
    entries, index = _layout(model)
    sigma = _ram_covariance(model, entries, index, parameters)
    return pd.DataFrame(sigma, index=model.observed, columns=model.observed)


def _as_target(model: SemModel, target) -> np.ndarray:
    observed = list(model.observed)
    if isinstance(target, pd.DataFrame):
        missing = [v for v in observed if v not in target.columns]
        if missing:
            raise KeyError(f"Target covariance is missing variables: {missing}")
        return target.loc[observed, observed].to_numpy(dtype=float)
    arr = np.asarray(target, dtype=float)
    if arr.shape != (len(observed), len(observed)):
        raise ValueError(f"Target covariance must be {len(observed)}x{len(observed)}, got {arr.shape}.")
    return arr


def _discrepancy(sigma: np.ndarray, sample: np.ndarray, logdet_sample: float) -> float:
    sign, logdet = np.linalg.slogdet(sigma)
    if sign <= 0 or not np.isfinite(logdet):
        return _PENALTY
    try:
        trace = float(np.trace(sample @ np.linalg.inv(sigma)))
    except np.linalg.LinAlgError:
        return _PENALTY
    return float(logdet + trace - logdet_sample - sample.shape[0])


def _fit_indices(discrepancy: float, df: int, null_discrepancy: float, p: int, n_obs: int) -> FitIndices:
    chi_square = max((n_obs - 1) * discrepancy, 0.0)
    p_value = float(chi2_dist.sf(chi_square, df)) if df > 0 else 1.0

    null_chi = max((n_obs - 1) * null_discrepancy, 0.0)
    null_df = p * (p - 1) // 2
    excess = max(chi_square - df, 0.0)
    denom = max(null_chi - null_df, excess, 0.0)
    cfi = 1.0 - excess / denom if denom > 0 else 1.0
    rmsea = float(np.sqrt(excess / (df * (n_obs - 1)))) if df > 0 else 0.0
    return FitIndices(
        chi_square=float(chi_square),
        degrees_of_freedom=int(df),
        p_value=p_value,
        cfi=float(cfi),
        rmsea=rmsea,
    )


def fit_model(
    model: SemModel,
    target_covariance,
    n_obs: int = DEFAULT_N_OBS,
    max_iter: int = DEFAULT_MAX_ITER,
) -> Union[SemFit, NumericFailure]:
    """Estimate a model by maximum likelihood and compute its fit indices.

    Args:
        model: Model whose specified paths define the free parameters.
        target_covariance: Sample covariance of the observed variables, as a
            labeled DataFrame or a ``p x p`` array in ``model.observed`` order.
        n_obs (int, optional): Sample size behind the covariance.
        max_iter (int, optional): Optimizer iteration cap.

    Returns:
        SemFit | NumericFailure: The solution, or a tagged failure when the
        model is under-identified (``df < 0``), a latent has no indicators,
        the target is not positive definite, or the optimizer produces no
        admissible solution.

    Raises:
        ValueError: If ``n_obs`` is less than 2 or the target has the wrong
            shape.
        KeyError: If a path or the target references unknown variables.
    """
    if n_obs < 2:
        raise ValueError("n_obs must be at least 2.")
    sample = _as_target(model, target_covariance)
    p = sample.shape[0]

    indicated = {path.source for path in model.paths if path.kind == LOADING and path.specified}
    orphans = [v for v in model.latent if v not in indicated]
    if orphans:
        return NumericFailure("sem", f"latent variables without indicators: {orphans}")

    sign, logdet_sample = np.linalg.slogdet(sample)
    if sign <= 0:
        return NumericFailure("sem", "target covariance is not positive definite")

    entries, index = _layout(model, np.diag(sample))
    free = [e for e in entries if e.free]
    df = p * (p + 1) // 2 - len(free)
    if df < 0:
        return NumericFailure("sem", f"model is under-identified (df = {df})")

    names = [e.name for e in free]
    bounds = [
        (DEFAULT_MIN_VARIANCE, None) if e.matrix == "S" and e.row == e.col else (None, None)
        for e in free
    ]

    def objective(theta: np.ndarray) -> float:
        try:
            sigma = _ram_covariance(model, entries, index, dict(zip(names, theta)))
        except np.linalg.LinAlgError:
            return _PENALTY
        return _discrepancy(sigma, sample, logdet_sample)

    start = np.array([e.start for e in free], dtype=float)
    result = minimize(objective, start, method="L-BFGS-B", bounds=bounds, options={"maxiter": max_iter})
    discrepancy = float(result.fun)
    if not np.all(np.isfinite(result.x)) or not np.isfinite(discrepancy) or discrepancy >= _PENALTY:
        return NumericFailure("sem", f"optimizer found no admissible solution: {result.message}")
    if not result.success:
        logger.warning("SEM optimizer stopped early: %s", result.message)
    logger.debug("SEM fit: F_ML=%.6g after %d iterations", discrepancy, result.nit)

    values = dict(zip(names, (float(v) for v in result.x)))
    parameters = {e.name: values.get(e.name, e.start) for e in entries}
    sigma = _ram_covariance(model, entries, index, values)

    null_discrepancy = float(np.sum(np.log(np.diag(sample))) - logdet_sample)
    return SemFit(
        parameters=parameters,
        implied_covariance=pd.DataFrame(sigma, index=model.observed, columns=model.observed),
        fit=_fit_indices(max(discrepancy, 0.0), df, null_discrepancy, p, n_obs),
        discrepancy=discrepancy,
        n_free=len(free),
        converged=bool(result.success),
    )


def evaluate_fit(model: SemModel, target_covariance, n_obs: int = DEFAULT_N_OBS) -> Union[FitIndices, NumericFailure]:
    """Fit indices of ``model`` against ``target_covariance``."""
    fit = fit_model(model, target_covariance, n_obs=n_obs)
    if isinstance(fit, NumericFailure):
        return fit
    return fit.fit


DEMO_PARAMETERS: Dict[str, float] = {
    "mot=~m1": 1.0,
    "mot=~m2": 0.8,
    "mot=~m3": 0.9,
    "sh=~sh1": 1.0,
    "sh=~sh2": 0.8,
    "sh=~sh3": 0.9,
    "sh~mot": 0.5,
    "gra~sh": 0.4,
    "gra~mot": 0.3,
    "mot~~mot": 1.0,
    "sh~~sh": 0.75,
    "m1~~m1": 0.3,
    "m2~~m2": 0.3,
    "m3~~m3": 0.3,
    "sh1~~sh1": 0.3,
    "sh2~~sh2": 0.3,
    "sh3~~sh3": 0.3,
    "gra~~gra": 0.5,
}

DEMO_STRUCTURAL_PATHS = ("mot-sh", "sh-gra", "mot-gra")


def demo_model(enabled: Sequence[str] = ()) -> SemModel:
    """Motivation / study-habits / grades model.

    Args:
        enabled: Structural path ids to switch on, any of ``"mot-sh"``,
            ``"sh-gra"``, ``"mot-gra"`` and ``"mot-sh-cov"``. All structural
            paths start off.
    """
    variables = (
        SemVariable("mot", LATENT, "Motivation"),
        SemVariable("sh", LATENT, "Study Habits"),
        SemVariable("m1", OBSERVED, "m1"),
        SemVariable("m2", OBSERVED, "m2"),
        SemVariable("m3", OBSERVED, "m3"),
        SemVariable("sh1", OBSERVED, "sh1"),
        SemVariable("sh2", OBSERVED, "sh2"),
        SemVariable("sh3", OBSERVED, "sh3"),
        SemVariable("gra", OBSERVED, "Grades"),
    )
    loadings = tuple(
        SemPath(f"{latent}-{item}", latent, item, LOADING)
        for latent, items in (("mot", ("m1", "m2", "m3")), ("sh", ("sh1", "sh2", "sh3")))
        for item in items
    )
    structural = (
        SemPath("mot-sh", "mot", "sh", REGRESSION, specified=False, structural=True),
        SemPath("sh-gra", "sh", "gra", REGRESSION, specified=False, structural=True),
        SemPath("mot-gra", "mot", "gra", REGRESSION, specified=False, structural=True),
        SemPath("mot-sh-cov", "mot", "sh", COVARIANCE, specified=False, structural=True),
    )
    model = SemModel(variables=variables, paths=loadings + structural)
    for path_id in enabled:
        if not model.path(path_id).specified:
            model = toggle_path(model, path_id)
    return model


def demo_population_covariance() -> pd.DataFrame:
    """Covariance generated by :data:`DEMO_PARAMETERS` under the full model."""
    return implied_covariance(demo_model(DEMO_STRUCTURAL_PATHS), DEMO_PARAMETERS)
