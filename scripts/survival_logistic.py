"""Logistic regression of yearly survival on a standardized covariate."""
# %% Import necessary libraries
import functools
import logging

from glmmcompare.config import load_config, save_config
from glmmcompare.data import simulate_covariate_survival
from glmmcompare.inference import fit_binomial_glm, fit_formula, run_mcmc
from glmmcompare.models import logistic_model
from glmmcompare.reporting import (
    comparison_table,
    estimates_from_idata,
    estimates_from_mle,
    hypothesis,
    posterior_summary,
)
from glmmcompare.reporting.plots import plot_posterior_vs_mle, save_figure

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(name)s %(message)s")

# %% Load configuration and simulate the data
config = load_config("configs/experiment.yaml")
save_config(config)
out_dir = config.run_dir / "survival_logistic"
data = simulate_covariate_survival(config.logistic)
print(data.to_frame().head())

# %% Maximum likelihood
mle = fit_binomial_glm(data)
print(mle.table())

# %% Pyro model sampled with NUTS
model_fn = functools.partial(logistic_model, config=config.logistic)
draws = run_mcmc(model_fn, data.to_batch(), config.sampler)
pyro_idata = draws.to_inference_data()
print(posterior_summary(pyro_idata))
print(hypothesis(pyro_idata, "slope", "<", 0.0))
save_figure(plot_posterior_vs_mle(pyro_idata, mle, ["intercept", "slope"]), out_dir, "pyro_vs_ml")

# %% Bambi formula interface
bambi_fit = fit_formula(
    "p(survived, released) ~ covariate_std",
    data.to_frame(),
    family="binomial",
    sampler=config.sampler,
    priors=config.logistic.formula_priors,
)
print(bambi_fit.summary())
print(hypothesis(bambi_fit.idata, "covariate_std", "<", 0.0))

# %% Side by side, with the values the data were simulated from
table = comparison_table(
    {
        "truth": {name: (value, float("nan")) for name, value in data.truth.items()},
        "ML": estimates_from_mle(mle),
        "pyro": estimates_from_idata(pyro_idata, ["intercept", "slope"]),
        "bambi": estimates_from_idata(
            bambi_fit.idata,
            ["Intercept", "covariate_std"],
            rename={"Intercept": "intercept", "covariate_std": "slope"},
        ),
    }
)
print(table)
out_dir.mkdir(parents=True, exist_ok=True)
table.to_csv(out_dir / "estimates.csv")
