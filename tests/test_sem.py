import numpy as np
import pytest
from scipy.stats import chi2

from edustats import datasets
from edustats.models.sem import (
    COVARIANCE,
    DEMO_PARAMETERS,
    DEMO_STRUCTURAL_PATHS,
    LATENT,
    LOADING,
    OBSERVED,
    SemModel,
    SemPath,
    SemVariable,
    _fit_indices,
    demo_model,
    demo_population_covariance,
    evaluate_fit,
    fit_model,
    free_parameters,
    implied_covariance,
    toggle_path,
)
from edustats.schema import FitIndices, NumericFailure


def test_implied_covariance_of_demo_parameters():
    sigma = demo_population_covariance()
    assert list(sigma.columns) == ["m1", "m2", "m3", "sh1", "sh2", "sh3", "gra"]
    assert sigma.loc["m1", "m1"] == pytest.approx(1.3)
    assert sigma.loc["m2", "m2"] == pytest.approx(0.94)
    assert sigma.loc["m1", "sh1"] == pytest.approx(0.5)
    assert sigma.loc["sh1", "sh1"] == pytest.approx(1.3)
    assert np.allclose(sigma.to_numpy(), sigma.to_numpy().T)


def test_true_model_fits_its_own_covariance():
    model = demo_model(DEMO_STRUCTURAL_PATHS)
    fit = fit_model(model, demo_population_covariance(), n_obs=500)
    assert not isinstance(fit, NumericFailure)
    assert fit.n_free == 16
    assert fit.fit.degrees_of_freedom == 12
    assert fit.fit.cfi > 0.99
    assert fit.fit.rmsea < 0.05
    assert fit.fit.chi_square < 1.0
    assert fit.parameters["mot=~m1"] == 1.0
    assert fit.parameters["mot=~m2"] == pytest.approx(DEMO_PARAMETERS["mot=~m2"], abs=0.05)
    assert fit.parameters["sh~mot"] == pytest.approx(DEMO_PARAMETERS["sh~mot"], abs=0.05)


def test_dropping_a_true_path_worsens_fit():
    target = demo_population_covariance()
    good = evaluate_fit(demo_model(DEMO_STRUCTURAL_PATHS), target, n_obs=500)
    bad = evaluate_fit(demo_model(), target, n_obs=500)
    assert isinstance(good, FitIndices) and isinstance(bad, FitIndices)
    assert bad.degrees_of_freedom == 15
    assert bad.chi_square > good.chi_square + 50.0
    assert bad.cfi < good.cfi
    assert bad.rmsea > good.rmsea
    assert bad.p_value < 0.001


def test_fit_on_sample_covariance():
    fit = fit_model(demo_model(DEMO_STRUCTURAL_PATHS), datasets.sem_sample_covariance(1000, seed=3), n_obs=1000)
    assert fit
    assert 0.0 <= fit.fit.p_value <= 1.0
    assert fit.fit.cfi > 0.95


def test_regression_and_covariance_are_mutually_exclusive():
    model = toggle_path(demo_model(), "mot-sh")
    assert model.path("mot-sh").specified
    model = toggle_path(model, "mot-sh-cov")
    assert model.path("mot-sh-cov").specified
    assert not model.path("mot-sh").specified
    model = toggle_path(model, "mot-sh")
    assert not model.path("mot-sh-cov").specified
    off = toggle_path(model, "mot-sh")
    assert not off.path("mot-sh").specified
    assert not off.path("mot-sh-cov").specified


def test_loadings_cannot_be_toggled_and_unknown_ids_raise():
    with pytest.raises(ValueError):
        toggle_path(demo_model(), "mot-m1")
    with pytest.raises(KeyError):
        toggle_path(demo_model(), "nope")


def test_free_parameter_names():
    names = free_parameters(demo_model(["mot-sh-cov"]))
    assert "mot=~m1" not in names
    assert "mot=~m2" in names
    assert "mot~~sh" in names
    assert "gra~~gra" in names


def test_under_identified_model_is_tagged_failure():
    model = SemModel(
        variables=(SemVariable("f", LATENT), SemVariable("x1", OBSERVED), SemVariable("x2", OBSERVED)),
        paths=(SemPath("f-x1", "f", "x1", LOADING), SemPath("f-x2", "f", "x2", LOADING)),
    )
    result = fit_model(model, np.array([[1.0, 0.5], [0.5, 1.0]]), n_obs=100)
    assert isinstance(result, NumericFailure)
    assert "under-identified" in result.reason
    assert not result


def test_latent_without_indicators_is_tagged_failure():
    model = SemModel(
        variables=(SemVariable("f", LATENT), SemVariable("x1", OBSERVED), SemVariable("x2", OBSERVED)),
        paths=(SemPath("x1-x2", "x1", "x2", COVARIANCE),),
    )
    result = fit_model(model, np.eye(2), n_obs=100)
    assert isinstance(result, NumericFailure)


def test_target_shape_and_sample_size_are_validated():
    with pytest.raises(ValueError):
        fit_model(demo_model(), np.eye(3), n_obs=100)
    with pytest.raises(ValueError):
        fit_model(demo_model(), demo_population_covariance(), n_obs=1)


def test_implied_covariance_uses_fixed_marker_loading():
    model = demo_model()
    sigma = implied_covariance(model, {"mot~~mot": 2.0, "m1~~m1": 0.0})
    assert sigma.loc["m1", "m1"] == pytest.approx(2.0)


def _one_factor_model(n_indicators=3):
    indicators = [f"x{i}" for i in range(1, n_indicators + 1)]
    return SemModel(
        variables=(SemVariable("f", LATENT),) + tuple(SemVariable(v, OBSERVED) for v in indicators),
        paths=tuple(SemPath(f"f-{v}", "f", v, LOADING) for v in indicators),
    )


def test_fit_index_formulas():
    # chi2 = 30 on 10 df, null chi2 = 200 on 21 df, n = 101.
    fit = _fit_indices(30.0 / 100.0, 10, 200.0 / 100.0, 7, 101)
    assert fit.chi_square == pytest.approx(30.0)
    assert fit.degrees_of_freedom == 10
    assert fit.p_value == pytest.approx(chi2.sf(30.0, 10))
    assert fit.cfi == pytest.approx(1.0 - 20.0 / 179.0)
    assert fit.rmsea == pytest.approx(np.sqrt(20.0 / 1000.0))


def test_fit_indices_when_chi_square_is_below_df():
    fit = _fit_indices(5.0 / 100.0, 10, 200.0 / 100.0, 7, 101)
    assert fit.cfi == 1.0
    assert fit.rmsea == 0.0


def test_just_identified_model_fits_perfectly():
    target = np.array([[1.0, 0.5, 0.4], [0.5, 1.0, 0.3], [0.4, 0.3, 1.0]])
    fit = fit_model(_one_factor_model(3), target, n_obs=200)
    assert fit
    assert fit.fit.degrees_of_freedom == 0
    assert fit.fit.p_value == 1.0
    assert fit.fit.rmsea == 0.0
    assert fit.fit.cfi > 0.999


def test_indefinite_target_is_tagged_failure():
    target = np.array([[1.0, 2.0, 0.0], [2.0, 1.0, 0.0], [0.0, 0.0, 1.0]])
    result = fit_model(_one_factor_model(3), target, n_obs=100)
    assert isinstance(result, NumericFailure)
    assert "positive definite" in result.reason
