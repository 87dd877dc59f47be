from __future__ import annotations

from pathlib import Path
from typing import Optional, Sequence

import arviz as az
import matplotlib.pyplot as plt
import numpy as np
import seaborn as sns
from scipy import stats

from glmmcompare.data import TransectDataset
from glmmcompare.inference.frequentist import MLEFit


def save_figure(fig: plt.Figure, out_dir: str | Path, stem: str) -> None:
    """Write ``stem``.png and ``stem``.svg into ``out_dir``."""
    out_dir = Path(out_dir)
    out_dir.mkdir(parents=True, exist_ok=True)
    fig.savefig(out_dir / f"{stem}.png", bbox_inches="tight")
    fig.savefig(out_dir / f"{stem}.svg", bbox_inches="tight")
    plt.close(fig)


def plot_transects(dataset: TransectDataset, ax: Optional[plt.Axes] = None) -> plt.Figure:
    """Counts against raw temperature, one colour per transect."""
    if ax is None:
        fig, ax = plt.subplots(figsize=(7, 4))
    else:
        fig = ax.figure
    frame = dataset.to_frame()
    sns.scatterplot(data=frame, x="temp", y="count", hue="transect", palette="viridis", ax=ax)
    ax.set_xlabel("Temperature")
    ax.set_ylabel("Count")
    ax.legend(title="Transect", bbox_to_anchor=(1.02, 1), loc="upper left", fontsize="small")
    return fig


def plot_posterior_vs_mle(
    idata: az.InferenceData,
    mle: MLEFit,
    var_names: Sequence[str],
    labels: Optional[Sequence[str]] = None,
) -> plt.Figure:
    """
    Posterior density of each parameter with the ML sampling distribution overlaid.

    Args:
        idata: Posterior draws.
        mle: Maximum-likelihood fit; ``labels`` name its coefficients.
        var_names: Posterior variable per panel.
        labels: Coefficient names in ``mle`` matching ``var_names``; defaults to ``var_names``.
    """
    labels = list(labels) if labels is not None else list(var_names)
    fig, axes = plt.subplots(1, len(var_names), figsize=(4 * len(var_names), 3), squeeze=False)
    for ax, var_name, label in zip(axes[0], var_names, labels):
        draws = idata.posterior[var_name].values.reshape(-1)
        sns.kdeplot(draws, ax=ax, fill=True, label="posterior")
        est, se = mle[label], mle.std_error(label)
        grid = np.linspace(est - 4 * se, est + 4 * se, 200)
        ax.plot(grid, stats.norm.pdf(grid, est, se), color="black", linestyle="--", label="ML")
        ax.set_title(var_name)
    axes[0][0].legend()
    fig.tight_layout()
    return fig


def plot_trace(idata: az.InferenceData, var_names: Optional[Sequence[str]] = None) -> plt.Figure:
    axes = az.plot_trace(idata, var_names=var_names)
    fig = np.asarray(axes).ravel()[0].figure
    fig.tight_layout()
    return fig
