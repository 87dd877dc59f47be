from __future__ import annotations

import torch
from pyro import plate, sample
from pyro.distributions import Beta, Binomial, Normal, Poisson, Uniform

from glmmcompare.config import LMMConfig, LogisticConfig, SurvivalConfig, TransectConfig
from glmmcompare.data import ModelBatch


def _scalar(value: float, like: torch.Tensor) -> torch.Tensor:
    return torch.tensor(value, dtype=like.dtype, device=like.device)


def beta_binomial_model(batch: ModelBatch, config: SurvivalConfig) -> None:
    """Binomial survivors with a conjugate Beta prior on survival."""
    theta = sample(
        "theta",
        Beta(_scalar(config.prior_alpha, batch.response), _scalar(config.prior_beta, batch.response)),
    )
    with plate("observations", batch.n_obs):
        sample("y", Binomial(total_count=batch.trials, probs=theta), obs=batch.response)


def logistic_model(batch: ModelBatch, config: LogisticConfig) -> None:
    """Binomial survivors with logit survival linear in the standardized covariate."""
    zero = _scalar(0.0, batch.response)
    scale = _scalar(config.coef_scale, batch.response)
    intercept = sample("intercept", Normal(zero, scale))
    slope = sample("slope", Normal(zero, scale))
    logits = intercept + slope * batch.covariate
    with plate("observations", batch.n_obs):
        sample("y", Binomial(total_count=batch.trials, logits=logits), obs=batch.response)


def random_intercept_model(batch: ModelBatch, config: LMMConfig) -> None:
    """
    Gaussian response with a random intercept per group (partial pooling).
    """
    zero = _scalar(0.0, batch.response)
    scale = _scalar(config.coef_scale, batch.response)
    upper = _scalar(config.sd_upper, batch.response)

    intercept = sample("intercept", Normal(zero, scale))
    slope = sample("slope", Normal(zero, scale))
    sigma_group = sample("sigma_group", Uniform(zero, upper))
    sigma = sample("sigma", Uniform(zero, upper))

    with plate("groups", batch.n_groups):
        group_effect = sample("group_effect", Normal(zero, sigma_group))

    mean = intercept + slope * batch.covariate + group_effect[..., batch.group_ids]
    with plate("observations", batch.n_obs):
        sample("y", Normal(mean, sigma), obs=batch.response)


def poisson_glmm_model(batch: ModelBatch, config: TransectConfig, quadratic: bool = True) -> None:
    """
    Poisson counts, log link, random intercept per transect.

    With ``quadratic`` the linear predictor carries a squared covariate term, which is
    the structure the synthetic transects are generated from.
    """
    zero = _scalar(0.0, batch.response)
    scale = _scalar(config.coef_scale, batch.response)
    upper = _scalar(config.sd_upper, batch.response)

    intercept = sample("intercept", Normal(zero, scale))
    slope = sample("slope", Normal(zero, scale))
    log_rate = intercept + slope * batch.covariate
    if quadratic:
        slope_sq = sample("slope_sq", Normal(zero, scale))
        log_rate = log_rate + slope_sq * batch.covariate ** 2
    sigma_group = sample("sigma_group", Uniform(zero, upper))

    with plate("groups", batch.n_groups):
        group_effect = sample("group_effect", Normal(zero, sigma_group))

    log_rate = log_rate + group_effect[..., batch.group_ids]
    with plate("observations", batch.n_obs):
        sample("y", Poisson(torch.exp(log_rate)), obs=batch.response)
