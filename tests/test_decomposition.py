import numpy as np
import pandas as pd
import pytest

from edustats import datasets
from edustats.models.decomposition import factor_analysis, pca
from edustats.schema import NumericFailure


def test_pca_on_collinear_data_keeps_all_variance_in_first_axis():
    t = np.linspace(-3.0, 3.0, 25)
    data = np.column_stack([t, 2.0 * t])
    result = pca(data, n_components=2)
    assert result.projected.shape == (25, 2)
    assert result.explained_variance_ratio[0] == pytest.approx(1.0)
    assert result.explained_variance_ratio[1] == pytest.approx(0.0, abs=1e-12)
    assert np.allclose(np.abs(result.components[0]), np.array([1.0, 2.0]) / np.sqrt(5.0))


def test_pca_clamps_components_and_handles_constant_data():
    result = pca(np.ones((5, 2)), n_components=5)
    assert result.components.shape == (2, 2)
    assert np.all(result.explained_variance_ratio == 0.0)
    assert np.allclose(result.projected, 0.0)


def test_pca_accepts_dataframe_and_validates_components():
    frame = datasets.factor_data(50, seed=2)
    assert pca(frame, n_components=3).projected.shape == (50, 3)
    with pytest.raises(ValueError):
        pca(frame, n_components=0)


def test_pca_non_finite_covariance_is_tagged_failure():
    data = np.array([[1e308, -1e308], [-1e308, 1e308], [0.0, 0.0]])
    result = pca(data)
    assert isinstance(result, NumericFailure)
    assert not result


def test_factor_analysis_recovers_two_item_blocks():
    frame = datasets.factor_data(400, seed=1)
    result = factor_analysis(frame, n_factors=2)
    assert list(result.loadings.columns) == ["factor1", "factor2"]
    assert (result.communalities > 0.5).all()
    assert result.explained_variance.sum() < 1.0
    assert result.excluded_items == ()


def test_factor_analysis_excludes_constant_items_and_rejects_unknown_ids():
    frame = datasets.factor_data(100, seed=4)
    frame["const"] = 1.0
    result = factor_analysis(frame, n_factors=2)
    assert result.excluded_items == ("const",)
    assert (result.loadings.loc["const"] == 0.0).all()
    with pytest.raises(KeyError):
        factor_analysis(frame, item_ids=["ext1", "missing"])


def test_factor_analysis_accepts_records():
    records = pd.DataFrame({"a": [1, 2, 3, 4], "b": [2, 4, 5, 8]}).to_dict("records")
    result = factor_analysis(records, n_factors=1)
    assert result.loadings.shape == (2, 1)
