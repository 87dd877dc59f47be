"""Bayesian fits through Bambi's formula interface (PyMC backend)."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional, Sequence

import arviz as az
import bambi as bmb
import pandas as pd

from glmmcompare.config import SamplerConfig

logger = logging.getLogger(__name__)


def build_priors(spec: Optional[Mapping[str, Mapping[str, Any]]]) -> Dict[str, bmb.Prior]:
    """
    Turn ``{term: {"dist": name, **params}}`` into Bambi priors.

    Args:
        spec: Mapping from model term (e.g. "Intercept", "temp_std") to a distribution
            name understood by PyMC and its parameters.
    """
    priors: Dict[str, bmb.Prior] = {}
    for term, params in (spec or {}).items():
        params = dict(params)
        dist = params.pop("dist", None)
        if dist is None:
            raise ValueError(f"Prior for {term!r} is missing 'dist'")
        priors[term] = bmb.Prior(dist, **params)
    return priors


@dataclass
class FormulaFit:
    """A fitted Bambi model with its (thinned) InferenceData."""

    model: bmb.Model
    idata: az.InferenceData

    def summary(self, var_names: Optional[Sequence[str]] = None, hdi_prob: float = 0.95) -> pd.DataFrame:
        return az.summary(self.idata, var_names=var_names, hdi_prob=hdi_prob)

    def draws(self, name: str):
        """Posterior draws of ``name`` with chains stacked."""
        return self.idata.posterior[name].stack(sample=("chain", "draw")).values


def fit_formula(
    formula: str,
    frame: pd.DataFrame,
    family: str,
    sampler: SamplerConfig,
    priors: Optional[Mapping[str, Mapping[str, Any]]] = None,
    link: Optional[str] = None,
) -> FormulaFit:
    """
    Fit ``formula`` to ``frame`` with the shared sampler controls.

    Args:
        formula: Model formula, e.g. ``"count ~ temp_std + temp_std_sq + (1|transect)"``.
        frame: Long-format data table.
        family: Bambi family name ("binomial", "gaussian", "poisson", ...).
        sampler: Chains, iterations (warm-up included), warm-up, thinning and seed.
        priors: Optional prior specification, see ``build_priors``.
        link: Optional link function name; the family default otherwise.

    Returns:
        FormulaFit with pointwise log-likelihood stored for WAIC/LOO.
    """
    model = bmb.Model(formula, frame, family=family, link=link, priors=build_priors(priors))
    logger.info(
        "fitting %r (%s) with %d chain(s) x %d iterations (%d warm-up, thin=%d)",
        formula, family, sampler.chains, sampler.iterations, sampler.warmup, sampler.thin,
    )
    idata = model.fit(
        draws=sampler.num_samples,
        tune=sampler.warmup,
        chains=sampler.chains,
        cores=1,
        random_seed=sampler.seed,
        target_accept=sampler.target_accept,
        progressbar=False,
        idata_kwargs={"log_likelihood": True},
    )
    if sampler.thin > 1:
        idata = idata.sel(draw=slice(None, None, sampler.thin))
    return FormulaFit(model=model, idata=idata)
