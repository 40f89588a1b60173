"""
Numerical building blocks shared by the model packages.

This subpackage provides the linear-algebra kernel, regression estimators and
classical inference tests. All functions operate on arrays and primitive
types; no demo-specific logic is included.

Modules:
    linalg:
        Moments, correlation, matrix helpers, symmetric eigendecomposition
        and regularized bivariate Gaussian densities.

    regression:
        Ordinary least squares with degenerate fallbacks, fit diagnostics,
        logistic regression (Newton-Raphson), regression discontinuity and
        pooled versus per-group lines.

    inference:
        Confidence intervals, z-tests, one-way ANOVA and chi-square tests.

    bayes:
        Beta-Binomial posterior updating and normalized Beta densities.

    timeseries:
        Trailing moving averages.

Design Principle:
    This subpackage has no dependencies on models/ or plotting/ modules.
    It provides pure numerical utilities that can be independently tested.
"""

from .bayes import BetaDistribution, beta_pdf, update_beta
from .inference import chi_square_test, confidence_interval, one_way_anova, z_test
from .linalg import (
    EigenDecomposition,
    as_xy_array,
    correlation,
    correlation_matrix,
    covariance,
    covariance_matrix,
    finite_or,
    gaussian_logpdf_2d,
    gaussian_pdf_2d,
    matmul,
    mean,
    symmetric_eigen,
    transpose,
    variance,
)
from .regression import (
    group_regressions,
    linear_regression,
    logistic_regression,
    predict_logistic_probability,
    r_squared,
    rdd_effect,
    residuals,
    standard_error,
    sum_squared_residuals,
)
from .timeseries import moving_average

__all__ = [
    "EigenDecomposition",
    "as_xy_array",
    "correlation",
    "correlation_matrix",
    "covariance",
    "covariance_matrix",
    "finite_or",
    "gaussian_logpdf_2d",
    "gaussian_pdf_2d",
    "matmul",
    "mean",
    "symmetric_eigen",
    "transpose",
    "variance",
    "group_regressions",
    "linear_regression",
    "logistic_regression",
    "predict_logistic_probability",
    "r_squared",
    "rdd_effect",
    "residuals",
    "standard_error",
    "sum_squared_residuals",
    "chi_square_test",
    "confidence_interval",
    "one_way_anova",
    "z_test",
    "BetaDistribution",
    "beta_pdf",
    "update_beta",
    "moving_average",
]
