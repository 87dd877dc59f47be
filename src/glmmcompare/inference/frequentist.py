"""
Maximum-likelihood fits: point estimates and Wald standard errors.

The binomial GLMs and the Gaussian mixed model go through statsmodels. The Poisson
random-intercept model uses a Laplace approximation of the marginal likelihood,
the same approximation lme4's ``glmer`` uses by default:

    log L(beta, sigma) ~= sum_j [ h_j(b_j*) + 0.5 log(2 pi) - 0.5 log(-h_j''(b_j*)) ]

where h_j(b) = sum_{i in j} log Poisson(y_i | exp(x_i beta + b)) + log N(b | 0, sigma^2)
and b_j* is the conditional mode of group j.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Sequence, Tuple

import numpy as np
import pandas as pd
import statsmodels.api as sm
from scipy import optimize, stats
from scipy.special import expit, gammaln
from statsmodels.tools.numdiff import approx_hess3

from glmmcompare.data import BinomialData, GroupedData

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MLEFit:
    """Fixed-effect estimates with standard errors plus derived quantities.

    Attributes:
        names: Coefficient names, in the order of ``estimates``.
        estimates: Maximum-likelihood estimates.
        std_errors: Wald standard errors.
        log_likelihood: Maximized (or Laplace-approximated) log-likelihood.
        n_obs: Number of observations.
        n_params: Number of estimated parameters, variance components included.
        converged: Whether the optimizer reported convergence.
        extra: Derived quantities such as variance components.
    """
    names: Tuple[str, ...]
    estimates: np.ndarray
    std_errors: np.ndarray
    log_likelihood: float
    n_obs: int
    n_params: int
    converged: bool = True
    extra: Dict[str, Any] = field(default_factory=dict)

    def __getitem__(self, name: str) -> float:
        return float(self.estimates[self.names.index(name)])

    def std_error(self, name: str) -> float:
        return float(self.std_errors[self.names.index(name)])

    @property
    def aic(self) -> float:
        return 2.0 * self.n_params - 2.0 * self.log_likelihood

    def table(self, level: float = 0.95) -> pd.DataFrame:
        """Estimate, standard error, z statistic and Wald interval per coefficient."""
        q = stats.norm.ppf(0.5 + level / 2.0)
        est = np.asarray(self.estimates, dtype=float)
        se = np.asarray(self.std_errors, dtype=float)
        return pd.DataFrame(
            {
                "estimate": est,
                "std_error": se,
                "z": est / se,
                "lower": est - q * se,
                "upper": est + q * se,
            },
            index=list(self.names),
        )


def fit_binomial_glm(data: BinomialData) -> MLEFit:
    """
    Logistic regression of survivors on the standardized covariate, or intercept-only.

    Args:
        data: Survivors and released counts.

    Returns:
        MLEFit on the logit scale. For the intercept-only model ``extra['survival']``
        holds the back-transformed estimate and its delta-method standard error.
    """
    endog = np.column_stack([data.survived, data.released - data.survived]).astype(float)
    ones = np.ones((len(data), 1))
    if data.has_covariate:
        exog = np.column_stack([ones, data.covariate_std])
        names: Tuple[str, ...] = ("intercept", "slope")
    else:
        exog = ones
        names = ("intercept",)

    result = sm.GLM(endog, exog, family=sm.families.Binomial()).fit()
    estimates = np.asarray(result.params, dtype=float)
    std_errors = np.asarray(result.bse, dtype=float)

    extra: Dict[str, Any] = {}
    if not data.has_covariate:
        p = float(expit(estimates[0]))
        extra["survival"] = p
        extra["survival_se"] = p * (1.0 - p) * float(std_errors[0])
    return MLEFit(
        names=names,
        estimates=estimates,
        std_errors=std_errors,
        log_likelihood=float(result.llf),
        n_obs=len(data),
        n_params=len(names),
        converged=bool(getattr(result, "converged", True)),
        extra=extra,
    )


def fit_lmm(data: GroupedData, reml: bool = True) -> MLEFit:
    """Random-intercept linear mixed model with statsmodels' MixedLM."""
    exog = np.column_stack([np.ones(len(data)), data.covariate_std])
    model = sm.MixedLM(data.response, exog, groups=data.group_ids)
    result = model.fit(reml=reml)
    if not result.converged:
        logger.warning("MixedLM did not converge")

    var_group = float(np.asarray(result.cov_re)[0, 0])
    return MLEFit(
        names=("intercept", "slope"),
        estimates=np.asarray(result.fe_params, dtype=float),
        std_errors=np.asarray(result.bse_fe, dtype=float),
        log_likelihood=float(result.llf),
        n_obs=len(data),
        n_params=4,
        converged=bool(result.converged),
        extra={
            "sigma_group": float(np.sqrt(var_group)),
            "sigma": float(np.sqrt(result.scale)),
            "reml": reml,
        },
    )


def _design(covariate: np.ndarray, quadratic: bool) -> Tuple[np.ndarray, Tuple[str, ...]]:
    columns = [np.ones_like(covariate), covariate]
    names: Tuple[str, ...] = ("intercept", "slope")
    if quadratic:
        columns.append(covariate ** 2)
        names = names + ("slope_sq",)
    return np.column_stack(columns), names


def conditional_modes(
    fixed: np.ndarray,
    y: np.ndarray,
    groups: np.ndarray,
    n_groups: int,
    variance: float,
    tol: float = 1e-10,
    max_iter: int = 200,
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Newton solve for the mode of each group's random intercept.

    Steps are capped at one unit on the log scale so that a poor start cannot
    overflow the exponential.

    Returns:
        Modes (G,) and the second derivative of h_j at the modes (G,).
    """
    y_sum = np.bincount(groups, weights=y, minlength=n_groups)
    b = np.zeros(n_groups)
    for _ in range(max_iter):
        mu_sum = np.bincount(groups, weights=np.exp(fixed + b[groups]), minlength=n_groups)
        grad = y_sum - mu_sum - b / variance
        hess = -mu_sum - 1.0 / variance
        step = np.clip(grad / hess, -1.0, 1.0)
        b = b - step
        if np.max(np.abs(step)) < tol:
            break
    mu_sum = np.bincount(groups, weights=np.exp(fixed + b[groups]), minlength=n_groups)
    return b, -mu_sum - 1.0 / variance


def laplace_log_likelihood(
    theta: np.ndarray,
    y: np.ndarray,
    X: np.ndarray,
    groups: np.ndarray,
    n_groups: int,
) -> Tuple[float, np.ndarray]:
    """Laplace-approximated marginal log-likelihood at ``theta = (beta, log sigma)``."""
    beta, log_sigma = theta[:-1], theta[-1]
    variance = np.exp(2.0 * log_sigma)
    fixed = X @ beta
    b, hess = conditional_modes(fixed, y, groups, n_groups, variance)
    eta = fixed + b[groups]
    conditional = np.bincount(
        groups, weights=y * eta - np.exp(eta) - gammaln(y + 1.0), minlength=n_groups
    )
    log_prior = -0.5 * b ** 2 / variance - 0.5 * np.log(2.0 * np.pi * variance)
    per_group = conditional + log_prior + 0.5 * np.log(2.0 * np.pi) - 0.5 * np.log(-hess)
    return float(per_group.sum()), b


def fit_poisson_glmm(
    response: Sequence[float],
    covariate: Sequence[float],
    group_ids: Sequence[int],
    quadratic: bool = True,
) -> MLEFit:
    """
    Poisson random-intercept GLMM by maximizing the Laplace approximation.

    Args:
        response: Counts (N,).
        covariate: Standardized covariate (N,).
        group_ids: Group codes 0..G-1 (N,).
        quadratic: Whether to include the squared covariate.

    Returns:
        MLEFit with ``extra['sigma_group']`` (delta-method SE in ``sigma_group_se``)
        and the conditional modes in ``extra['group_effects']``.
    """
    y = np.asarray(response, dtype=np.float64)
    x = np.asarray(covariate, dtype=np.float64)
    groups = np.asarray(group_ids, dtype=np.int64)
    if not (y.shape == x.shape == groups.shape):
        raise ValueError("response, covariate and group_ids must have the same shape")
    if groups.min() < 0:
        raise ValueError("group_ids must be non-negative codes")
    n_groups = int(groups.max()) + 1
    X, names = _design(x, quadratic)

    start_glm = sm.GLM(y, X, family=sm.families.Poisson()).fit()
    theta0 = np.append(np.asarray(start_glm.params, dtype=float), 0.0)

    def objective(theta: np.ndarray) -> float:
        with np.errstate(over="ignore", invalid="ignore"):
            value, _ = laplace_log_likelihood(theta, y, X, groups, n_groups)
        return -value if np.isfinite(value) else np.inf

    result = optimize.minimize(objective, theta0, method="L-BFGS-B")
    if not result.success:
        logger.warning("Laplace optimization did not converge: %s", result.message)

    theta_hat = result.x
    hessian = approx_hess3(theta_hat, objective)
    if not np.all(np.linalg.eigvalsh(hessian) > 0):
        logger.warning("Hessian of the Laplace objective is not positive definite; standard errors are unreliable")
    covariance = np.linalg.inv(hessian)
    std_errors = np.sqrt(np.diag(covariance))
    log_lik, modes = laplace_log_likelihood(theta_hat, y, X, groups, n_groups)
    sigma = float(np.exp(theta_hat[-1]))

    return MLEFit(
        names=names,
        estimates=theta_hat[:-1],
        std_errors=std_errors[:-1],
        log_likelihood=log_lik,
        n_obs=int(y.shape[0]),
        n_params=len(names) + 1,
        converged=bool(result.success),
        extra={
            "sigma_group": sigma,
            "sigma_group_se": sigma * float(std_errors[-1]),
            "group_effects": modes,
        },
    )
