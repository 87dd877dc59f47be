"""Tests for the maximum-likelihood fits."""

import logging

import numpy as np
import pytest
from scipy import stats
from scipy.special import expit

from glmmcompare.config import LogisticConfig
from glmmcompare.data import simulate_covariate_survival
from glmmcompare.inference import frequentist
from glmmcompare.inference.frequentist import (
    conditional_modes,
    fit_binomial_glm,
    fit_lmm,
    fit_poisson_glmm,
    laplace_log_likelihood,
)


class TestBinomialGLM:

    def test_intercept_only_matches_closed_form(self, survival_data):
        fit = fit_binomial_glm(survival_data)
        p = 19 / 57
        assert fit.names == ("intercept",)
        assert fit.extra["survival"] == pytest.approx(p, rel=1e-6)
        assert fit.extra["survival_se"] == pytest.approx(np.sqrt(p * (1 - p) / 57), rel=1e-4)
        assert expit(fit["intercept"]) == pytest.approx(p, rel=1e-6)

    def test_aic(self, survival_data):
        fit = fit_binomial_glm(survival_data)
        assert fit.log_likelihood < 0
        assert fit.aic == pytest.approx(2.0 - 2.0 * fit.log_likelihood)

    def test_covariate_sign(self):
        data = simulate_covariate_survival(LogisticConfig(n_years=40, released=100, slope=-0.8))
        fit = fit_binomial_glm(data)
        assert fit.names == ("intercept", "slope")
        assert fit["slope"] < 0
        assert abs(fit["slope"] - (-0.8)) < 4 * fit.std_error("slope")
        assert "survival" not in fit.extra

    def test_table(self, survival_data):
        table = fit_binomial_glm(survival_data).table()
        assert list(table.columns) == ["estimate", "std_error", "z", "lower", "upper"]
        row = table.loc["intercept"]
        assert row["lower"] < row["estimate"] < row["upper"]


class TestLMM:

    def test_recovers_fixed_effects(self, grouped_gaussian):
        fit = fit_lmm(grouped_gaussian)
        assert fit.converged
        assert fit["slope"] == pytest.approx(4.0, abs=1.0)
        assert fit["intercept"] == pytest.approx(50.0, abs=4 * fit.std_error("intercept"))

    def test_variance_components(self, grouped_gaussian):
        fit = fit_lmm(grouped_gaussian)
        assert fit.extra["sigma"] == pytest.approx(3.0, rel=0.25)
        assert fit.extra["sigma_group"] > 2.0
        assert fit.extra["reml"] is True

    def test_ml_variant(self, grouped_gaussian):
        reml = fit_lmm(grouped_gaussian, reml=True)
        ml = fit_lmm(grouped_gaussian, reml=False)
        assert ml.extra["sigma_group"] <= reml.extra["sigma_group"] + 1e-6


class TestLaplace:

    def test_modes_solve_score_equation(self, rng):
        groups = np.repeat(np.arange(4), 10)
        fixed = rng.normal(1.0, 0.3, size=40)
        y = rng.poisson(np.exp(fixed + 0.5 * (groups - 1.5))).astype(float)
        b, hess = conditional_modes(fixed, y, groups, 4, variance=0.25)
        mu = np.exp(fixed + b[groups])
        score = np.bincount(groups, weights=y - mu) - b / 0.25
        np.testing.assert_allclose(score, 0.0, atol=1e-6)
        assert (hess < 0).all()

    def test_tiny_variance_reduces_to_poisson_glm(self, rng):
        groups = np.repeat(np.arange(3), 15)
        x = rng.normal(size=45)
        X = np.column_stack([np.ones(45), x])
        beta = np.array([1.0, 0.4])
        y = rng.poisson(np.exp(X @ beta)).astype(float)
        value, b = laplace_log_likelihood(np.array([1.0, 0.4, -10.0]), y, X, groups, 3)
        expected = stats.poisson.logpmf(y, np.exp(X @ beta)).sum()
        assert value == pytest.approx(expected, abs=1e-3)
        np.testing.assert_allclose(b, 0.0, atol=1e-5)


class TestPoissonGLMM:

    def test_transects(self, transects):
        fit = fit_poisson_glmm(
            transects.response_count, transects.covariate_std, transects.transect_id - 1
        )
        assert fit.names == ("intercept", "slope", "slope_sq")
        assert fit["slope_sq"] < 0
        assert fit["slope_sq"] + 3 * fit.std_error("slope_sq") < 0
        assert np.all(np.isfinite(fit.std_errors))
        assert 0.05 < fit.extra["sigma_group"] < 2.0
        assert fit.extra["group_effects"].shape == (10,)
        assert fit.n_params == 4

    def test_modes_track_true_effects(self, transects):
        fit = fit_poisson_glmm(
            transects.response_count, transects.covariate_std, transects.transect_id - 1
        )
        r = np.corrcoef(fit.extra["group_effects"], transects.latents["random_effect"])[0, 1]
        assert r > 0.8

    def test_linear_only(self, transects):
        quad = fit_poisson_glmm(
            transects.response_count, transects.covariate_std, transects.transect_id - 1
        )
        lin = fit_poisson_glmm(
            transects.response_count, transects.covariate_std, transects.transect_id - 1,
            quadratic=False,
        )
        assert lin.names == ("intercept", "slope")
        assert quad.log_likelihood > lin.log_likelihood
        assert quad.aic < lin.aic

    def test_indefinite_hessian_warns(self, transects, monkeypatch, caplog):
        monkeypatch.setattr(
            frequentist, "approx_hess3", lambda theta, f: np.diag([1.0, -1.0, 1.0, 1.0])
        )
        with caplog.at_level(logging.WARNING, logger="glmmcompare.inference.frequentist"):
            fit_poisson_glmm(
                transects.response_count, transects.covariate_std, transects.transect_id - 1
            )
        assert "not positive definite" in caplog.text

    def test_shape_mismatch(self):
        with pytest.raises(ValueError):
            fit_poisson_glmm([1, 2, 3], [0.1, 0.2], [0, 0, 1])
