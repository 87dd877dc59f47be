"""Linear mixed model with partial pooling across mountain ranges."""
# %% Import necessary libraries
import functools
import logging

from glmmcompare.config import load_config, save_config
from glmmcompare.data import load_dragons
from glmmcompare.inference import fit_formula, fit_lmm, run_mcmc
from glmmcompare.models import random_intercept_model
from glmmcompare.reporting import (
    comparison_table,
    estimates_from_idata,
    estimates_from_mle,
    posterior_summary,
)
from glmmcompare.reporting.plots import plot_trace, save_figure

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(name)s %(message)s")

# %% Load configuration and data
config = load_config("configs/experiment.yaml")
save_config(config)
out_dir = config.run_dir / "dragons_lmm"
data = load_dragons(config.lmm)
frame = data.to_frame()
print(f"{len(data)} observations in {data.n_groups} groups")

# %% Maximum likelihood (REML by default)
mle = fit_lmm(data, reml=config.lmm.reml)
print(mle.table())
print(f"sigma_group={mle.extra['sigma_group']:.2f} sigma={mle.extra['sigma']:.2f}")

# %% Pyro model sampled with NUTS
model_fn = functools.partial(random_intercept_model, config=config.lmm)
draws = run_mcmc(model_fn, data.to_batch(), config.sampler)
scalars = ["intercept", "slope", "sigma_group", "sigma"]
pyro_idata = draws.to_inference_data()
print(posterior_summary(pyro_idata, var_names=scalars))
save_figure(plot_trace(pyro_idata, var_names=scalars), out_dir, "pyro_trace")

# %% Bambi formula interface
covariate_std = f"{config.lmm.covariate}_std"
bambi_fit = fit_formula(
    f"{config.lmm.response} ~ {covariate_std} + (1|{config.lmm.group})",
    frame,
    family="gaussian",
    sampler=config.sampler,
    priors=config.lmm.formula_priors,
)
print(bambi_fit.summary(var_names=["Intercept", covariate_std, f"1|{config.lmm.group}_sigma", "sigma"]))

# %% Side by side
ml_estimates = estimates_from_mle(mle)
ml_estimates["sigma_group"] = (mle.extra["sigma_group"], float("nan"))
ml_estimates["sigma"] = (mle.extra["sigma"], float("nan"))
table = comparison_table(
    {
        "ML": ml_estimates,
        "pyro": estimates_from_idata(pyro_idata, scalars),
        "bambi": estimates_from_idata(
            bambi_fit.idata,
            ["Intercept", covariate_std, f"1|{config.lmm.group}_sigma", "sigma"],
            rename={
                "Intercept": "intercept",
                covariate_std: "slope",
                f"1|{config.lmm.group}_sigma": "sigma_group",
            },
        ),
    }
)
print(table)
out_dir.mkdir(parents=True, exist_ok=True)
table.to_csv(out_dir / "estimates.csv")
