"""Posterior summaries, hypothesis probabilities and model comparison."""
from __future__ import annotations

from typing import Dict, Mapping, Optional, Sequence, Tuple

import arviz as az
import numpy as np
import pandas as pd

from glmmcompare.inference.frequentist import MLEFit

Estimates = Dict[str, Tuple[float, float]]


def posterior_summary(
    idata: az.InferenceData,
    var_names: Optional[Sequence[str]] = None,
    hdi_prob: float = 0.95,
) -> pd.DataFrame:
    """Mean, sd, HDI, ESS and R-hat per parameter."""
    return az.summary(idata, var_names=var_names, hdi_prob=hdi_prob)


def _scalar_draws(idata: az.InferenceData, var_name: str) -> np.ndarray:
    values = idata.posterior[var_name].values
    if values.ndim != 2:
        raise ValueError(f"{var_name!r} is not a scalar parameter (shape {values.shape[2:]})")
    return values.reshape(-1)


def hypothesis(
    idata: az.InferenceData,
    var_name: str,
    comparison: str = "<",
    value: float = 0.0,
    interval: float = 0.9,
) -> pd.Series:
    """
    Posterior evidence for ``var_name <comparison> value``.

    Args:
        idata: Posterior draws.
        var_name: Scalar parameter to test.
        comparison: "<" or ">".
        value: Threshold.
        interval: Mass of the equal-tailed interval reported for ``var_name - value``.

    Returns:
        Series with estimate, est_error, lower, upper, evidence_ratio and post_prob.
    """
    if comparison not in ("<", ">"):
        raise ValueError(f"comparison must be '<' or '>', got {comparison!r}")
    diff = _scalar_draws(idata, var_name) - value
    hits = diff < 0 if comparison == "<" else diff > 0
    post_prob = float(hits.mean())
    evidence_ratio = np.inf if post_prob == 1.0 else post_prob / (1.0 - post_prob)
    lower, upper = np.quantile(diff, [(1.0 - interval) / 2.0, (1.0 + interval) / 2.0])
    return pd.Series(
        {
            "estimate": float(diff.mean()),
            "est_error": float(diff.std(ddof=1)),
            "lower": float(lower),
            "upper": float(upper),
            "evidence_ratio": float(evidence_ratio),
            "post_prob": post_prob,
        },
        name=f"{var_name} {comparison} {value:g}",
    )


def information_criterion(idata: az.InferenceData, ic: str = "waic"):
    """ELPD estimate of one fitted model ("waic" or "loo")."""
    ic = ic.lower()
    if ic == "waic":
        return az.waic(idata)
    if ic == "loo":
        return az.loo(idata)
    raise ValueError(f"Unknown information criterion: {ic}")


def compare_models(fits: Mapping[str, az.InferenceData], ic: str = "waic") -> pd.DataFrame:
    """Rank models by expected log predictive density."""
    if len(fits) < 2:
        raise ValueError("compare_models needs at least two models")
    return az.compare(dict(fits), ic=ic.lower())


def estimates_from_mle(fit: MLEFit, rename: Optional[Mapping[str, str]] = None) -> Estimates:
    rename = rename or {}
    return {
        rename.get(name, name): (float(est), float(se))
        for name, est, se in zip(fit.names, fit.estimates, fit.std_errors)
    }


def estimates_from_idata(
    idata: az.InferenceData,
    var_names: Sequence[str],
    rename: Optional[Mapping[str, str]] = None,
) -> Estimates:
    """Posterior mean and sd of scalar parameters."""
    rename = rename or {}
    out: Estimates = {}
    for name in var_names:
        draws = _scalar_draws(idata, name)
        out[rename.get(name, name)] = (float(draws.mean()), float(draws.std(ddof=1)))
    return out


def comparison_table(rows: Mapping[str, Estimates]) -> pd.DataFrame:
    """
    Side-by-side estimates.

    Args:
        rows: approach name -> {parameter: (estimate, error)}. Errors are standard errors
            for maximum likelihood and posterior standard deviations otherwise.

    Returns:
        Table indexed by parameter with (approach, "estimate" | "error") columns.
    """
    records = [
        {"approach": approach, "parameter": parameter, "estimate": est, "error": err}
        for approach, estimates in rows.items()
        for parameter, (est, err) in estimates.items()
    ]
    if not records:
        raise ValueError("no estimates to compare")
    long = pd.DataFrame.from_records(records)
    wide = long.pivot(index="parameter", columns="approach", values=["estimate", "error"])
    wide = wide.swaplevel(axis=1)
    approaches = list(rows)
    wide = wide.reindex(columns=pd.MultiIndex.from_product([approaches, ["estimate", "error"]]))
    order = list(dict.fromkeys(long["parameter"]))
    return wide.loc[order]
