"""Poisson GLMM on simulated transect counts, with WAIC/LOO model comparison."""
# %% Import necessary libraries
import functools
import logging
import os

import numpy as np

from glmmcompare.config import load_config, save_config
from glmmcompare.data import TransectDataset, TransectGenerator
from glmmcompare.inference import fit_formula, fit_poisson_glmm, run_mcmc
from glmmcompare.models import poisson_glmm_model
from glmmcompare.reporting import (
    compare_models,
    comparison_table,
    estimates_from_idata,
    estimates_from_mle,
    hypothesis,
    posterior_summary,
)
from glmmcompare.reporting.plots import plot_posterior_vs_mle, plot_transects, save_figure

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(name)s %(message)s")

# %% Load configuration and generate (or reload) the transects
config = load_config("configs/experiment.yaml")
save_config(config)
out_dir = config.run_dir / "transect_glmm"
data_path = f"./data/transects_{config.run_name}"

if not os.path.exists(data_path):
    print(f"Generating data and saving to {data_path}")
    raw = TransectGenerator(config.transects).generate()
    raw.save("./data", name=os.path.basename(data_path))
else:
    print(f"Loading data from {data_path}")
    raw = TransectDataset.load(data_path)

dataset = raw.standardized()
frame = dataset.to_frame()
batch = dataset.to_batch()
print(frame.head())
save_figure(plot_transects(dataset), out_dir, "transects")

# %% Maximum likelihood via the Laplace approximation
mle = fit_poisson_glmm(dataset.response_count, dataset.covariate_std, dataset.transect_id - 1)
print(mle.table())
print(f"sigma_group={mle.extra['sigma_group']:.3f} (se {mle.extra['sigma_group_se']:.3f})")
recovery = np.corrcoef(mle.extra["group_effects"], dataset.latents["random_effect"])[0, 1]
print(f"correlation of conditional modes with the true transect effects: {recovery:.2f}")

# %% Pyro models: quadratic and linear-only
scalars = ["intercept", "slope", "slope_sq", "sigma_group"]
quadratic_fn = functools.partial(poisson_glmm_model, config=config.transects, quadratic=True)
linear_fn = functools.partial(poisson_glmm_model, config=config.transects, quadratic=False)
quadratic_draws = run_mcmc(quadratic_fn, batch, config.sampler)
linear_draws = run_mcmc(linear_fn, batch, config.sampler)
quadratic_idata = quadratic_draws.to_inference_data()
linear_idata = linear_draws.to_inference_data()
print(posterior_summary(quadratic_idata, var_names=scalars))
print(hypothesis(quadratic_idata, "slope_sq", "<", 0.0))
save_figure(
    plot_posterior_vs_mle(quadratic_idata, mle, ["intercept", "slope", "slope_sq"]),
    out_dir,
    "pyro_vs_ml",
)

# %% Model comparison on expected log predictive density
print(compare_models({"quadratic": quadratic_idata, "linear": linear_idata}, ic="waic"))
print(compare_models({"quadratic": quadratic_idata, "linear": linear_idata}, ic="loo"))

# %% Bambi formula interface
bambi_fit = fit_formula(
    "count ~ temp_std + temp_std_sq + (1|transect)",
    frame.assign(transect=frame["transect"].astype(str)),
    family="poisson",
    sampler=config.sampler,
    priors=config.transects.formula_priors,
)
bambi_names = ["Intercept", "temp_std", "temp_std_sq", "1|transect_sigma"]
print(bambi_fit.summary(var_names=bambi_names))

# %% Side by side
ml_estimates = estimates_from_mle(mle)
ml_estimates["sigma_group"] = (mle.extra["sigma_group"], mle.extra["sigma_group_se"])
table = comparison_table(
    {
        "ML": ml_estimates,
        "pyro": estimates_from_idata(quadratic_idata, scalars),
        "bambi": estimates_from_idata(
            bambi_fit.idata,
            bambi_names,
            rename=dict(zip(bambi_names, scalars)),
        ),
    }
)
print(table)
out_dir.mkdir(parents=True, exist_ok=True)
table.to_csv(out_dir / "estimates.csv")
