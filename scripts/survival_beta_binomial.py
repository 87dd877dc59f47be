"""Survival as a single binomial proportion: ML, Pyro NUTS and Bambi."""
# %% Import necessary libraries
import functools
import logging

import numpy as np
from scipy import stats

from glmmcompare.config import load_config, save_config
from glmmcompare.data import survival_counts
from glmmcompare.inference import fit_binomial_glm, fit_formula, run_mcmc
from glmmcompare.models import beta_binomial_model
from glmmcompare.reporting import comparison_table, posterior_summary
from glmmcompare.reporting.plots import plot_trace, save_figure

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(name)s %(message)s")

# %% Load configuration and data
config = load_config("configs/experiment.yaml")
save_config(config)
out_dir = config.run_dir / "survival_beta_binomial"
data = survival_counts(config.survival)
print(f"{data.survived[0]} survivors out of {data.released[0]} released")

# %% Maximum likelihood
mle = fit_binomial_glm(data)
print(mle.table())
print(f"ML survival: {mle.extra['survival']:.3f} (se {mle.extra['survival_se']:.3f})")

# %% Conjugate posterior, for reference
posterior = stats.beta(
    config.survival.prior_alpha + data.survived[0],
    config.survival.prior_beta + data.released[0] - data.survived[0],
)
print(f"Exact Beta posterior: mean {posterior.mean():.3f}, sd {posterior.std():.3f}")

# %% Pyro model sampled with NUTS
model_fn = functools.partial(beta_binomial_model, config=config.survival)
draws = run_mcmc(model_fn, data.to_batch(), config.sampler)
pyro_idata = draws.to_inference_data()
print(posterior_summary(pyro_idata, var_names=["theta"]))
save_figure(plot_trace(pyro_idata, var_names=["theta"]), out_dir, "pyro_trace")

# %% Bambi formula interface
bambi_fit = fit_formula(
    "survived ~ 1",
    data.to_bernoulli_frame(),
    family="bernoulli",
    sampler=config.sampler,
    priors=config.survival.formula_priors,
)
print(bambi_fit.summary())
bambi_theta = 1.0 / (1.0 + np.exp(-bambi_fit.draws("Intercept")))

# %% Side by side
table = comparison_table(
    {
        "ML": {"survival": (mle.extra["survival"], mle.extra["survival_se"])},
        "exact": {"survival": (posterior.mean(), posterior.std())},
        "pyro": {"survival": (draws.mean("theta").item(), draws.flat("theta").std(ddof=1))},
        "bambi": {"survival": (bambi_theta.mean(), bambi_theta.std(ddof=1))},
    }
)
print(table)
out_dir.mkdir(parents=True, exist_ok=True)
table.to_csv(out_dir / "estimates.csv")
