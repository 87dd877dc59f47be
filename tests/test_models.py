"""Tests for the Pyro models and the pointwise log-likelihood."""

import functools

import numpy as np
import pyro
import pytest
import torch
from pyro import poutine
from pyro.poutine.util import site_is_subsample
from scipy import stats

from glmmcompare.config import LMMConfig, LogisticConfig, SurvivalConfig, TransectConfig
from glmmcompare.data import simulate_covariate_survival
from glmmcompare.models import (
    beta_binomial_model,
    logistic_model,
    poisson_glmm_model,
    pointwise_log_likelihood,
    random_intercept_model,
)


def _latent_sites(model, batch):
    trace = poutine.trace(model).get_trace(batch)
    return {
        name for name, node in trace.nodes.items()
        if node["type"] == "sample"
        and not node["is_observed"]
        and not site_is_subsample(node)
    }


def test_site_names(survival_data, transects, grouped_gaussian):
    pyro.set_rng_seed(0)
    assert _latent_sites(
        functools.partial(beta_binomial_model, config=SurvivalConfig()), survival_data.to_batch()
    ) == {"theta"}
    assert _latent_sites(
        functools.partial(logistic_model, config=LogisticConfig()),
        simulate_covariate_survival(LogisticConfig()).to_batch(),
    ) == {"intercept", "slope"}
    assert _latent_sites(
        functools.partial(random_intercept_model, config=LMMConfig()), grouped_gaussian.to_batch()
    ) == {"intercept", "slope", "sigma_group", "sigma", "group_effect"}
    assert _latent_sites(
        functools.partial(poisson_glmm_model, config=TransectConfig()), transects.to_batch()
    ) == {"intercept", "slope", "slope_sq", "sigma_group", "group_effect"}
    assert "slope_sq" not in _latent_sites(
        functools.partial(poisson_glmm_model, config=TransectConfig(), quadratic=False),
        transects.to_batch(),
    )


def test_beta_binomial_log_likelihood(survival_data):
    model = functools.partial(beta_binomial_model, config=SurvivalConfig())
    samples = {"theta": torch.tensor([0.2, 1.0 / 3.0, 0.5])}
    log_lik = pointwise_log_likelihood(model, samples, survival_data.to_batch())
    assert log_lik.shape == (3, 1)
    expected = stats.binom.logpmf(19, 57, [0.2, 1.0 / 3.0, 0.5])
    np.testing.assert_allclose(log_lik[:, 0].numpy(), expected, rtol=1e-4)


def test_poisson_log_likelihood(transects):
    model = functools.partial(poisson_glmm_model, config=TransectConfig())
    batch = transects.to_batch()
    effects = torch.linspace(-0.5, 0.5, 10)
    samples = {
        "intercept": torch.tensor([3.5, 3.6]),
        "slope": torch.tensor([0.1, 0.0]),
        "slope_sq": torch.tensor([-0.2, -0.1]),
        "sigma_group": torch.tensor([0.5, 0.5]),
        "group_effect": torch.stack([effects, effects]),
    }
    log_lik = pointwise_log_likelihood(model, samples, batch)
    assert log_lik.shape == (2, 200)

    x = transects.covariate_std
    rate = np.exp(3.5 + 0.1 * x - 0.2 * x ** 2 + effects.numpy()[transects.transect_id - 1])
    expected = stats.poisson.logpmf(transects.response_count, rate)
    np.testing.assert_allclose(log_lik[0].numpy(), expected, rtol=1e-3, atol=1e-3)


def test_empty_samples_raise(survival_data):
    model = functools.partial(beta_binomial_model, config=SurvivalConfig())
    with pytest.raises(ValueError):
        pointwise_log_likelihood(model, {}, survival_data.to_batch())


def test_batch_to_device(transects):
    batch = transects.to_batch().to("cpu")
    assert batch.n_groups == 10
    assert batch.trials is None
    assert batch.group_ids.dtype == torch.long
