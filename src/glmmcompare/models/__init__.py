"""Pyro model definitions."""

from .hierarchical import (
    beta_binomial_model,
    logistic_model,
    poisson_glmm_model,
    random_intercept_model,
)
from .utils import pointwise_log_likelihood

__all__ = [
    "beta_binomial_model",
    "logistic_model",
    "poisson_glmm_model",
    "random_intercept_model",
    "pointwise_log_likelihood",
]
