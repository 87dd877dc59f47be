"""Maximum-likelihood, Pyro MCMC and Bambi formula fits."""

from .formula import FormulaFit, build_priors, fit_formula
from .frequentist import MLEFit, fit_binomial_glm, fit_lmm, fit_poisson_glmm
from .mcmc import PosteriorDraws, build_kernel, run_mcmc

__all__ = [
    "FormulaFit",
    "MLEFit",
    "PosteriorDraws",
    "build_kernel",
    "build_priors",
    "fit_binomial_glm",
    "fit_formula",
    "fit_lmm",
    "fit_poisson_glmm",
    "run_mcmc",
]
