"""Bayesian fits of an explicitly declared Pyro model with an MCMC kernel."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Dict, Optional, Sequence

import arviz as az
import numpy as np
import pyro
from pyro.infer import HMC, MCMC, NUTS
from pyro.infer.mcmc.mcmc_kernel import MCMCKernel

from glmmcompare.config import SamplerConfig
from glmmcompare.data import ModelBatch
from glmmcompare.models.utils import pointwise_log_likelihood

logger = logging.getLogger(__name__)


def build_kernel(model: Callable, strategy: str, target_accept: float = 0.8) -> MCMCKernel:
    """
    Return an MCMC kernel for the chosen strategy.

    Args:
        model: The model to sample from.
        strategy: "nuts" or "hmc".
        target_accept: Target acceptance probability used during step size adaptation.

    Returns:
        An MCMC kernel over the model's latent sites.
    """

    strategy = strategy.lower()
    if strategy == "nuts":
        return NUTS(model, target_accept_prob=target_accept)
    if strategy == "hmc":
        return HMC(model, target_accept_prob=target_accept, num_steps=10)
    raise ValueError(f"Unknown kernel strategy: {strategy}")


@dataclass
class PosteriorDraws:
    """Thinned posterior draws of one MCMC run."""

    samples: Dict[str, np.ndarray]  # site -> (chain, draw, ...)
    log_likelihood: np.ndarray  # (chain, draw, N)
    observed: np.ndarray  # (N,)

    @property
    def num_chains(self) -> int:
        return int(self.log_likelihood.shape[0])

    @property
    def num_draws(self) -> int:
        return int(self.log_likelihood.shape[1])

    def flat(self, name: str) -> np.ndarray:
        """Draws of ``name`` with chains stacked: (chain * draw, ...)."""
        value = self.samples[name]
        return value.reshape((-1,) + value.shape[2:])

    def mean(self, name: str) -> np.ndarray:
        return self.flat(name).mean(axis=0)

    def to_inference_data(self, var_names: Optional[Sequence[str]] = None) -> az.InferenceData:
        names = list(var_names) if var_names is not None else list(self.samples)
        return az.from_dict(
            posterior={name: self.samples[name] for name in names},
            log_likelihood={"y": self.log_likelihood},
            observed_data={"y": self.observed},
        )


def run_mcmc(
    model_fn: Callable,
    batch: ModelBatch,
    sampler: SamplerConfig,
    progress: bool = False,
) -> PosteriorDraws:
    """
    Sample the posterior of ``model_fn`` given ``batch``.

    Args:
        model_fn: Pyro model taking a ModelBatch (configs bound with functools.partial).
        batch: Observations.
        sampler: Chains, iterations (warm-up included), warm-up, thinning, seed, kernel.
        progress: Whether to show Pyro's progress bar.

    Returns:
        PosteriorDraws with every latent site and the pointwise log-likelihood.
    """
    pyro.clear_param_store()
    pyro.set_rng_seed(sampler.seed)

    kernel = build_kernel(model_fn, sampler.kernel, sampler.target_accept)
    mcmc = MCMC(
        kernel,
        num_samples=sampler.num_samples,
        warmup_steps=sampler.warmup,
        num_chains=sampler.chains,
        disable_progbar=not progress,
    )
    logger.info(
        "running %s: %d chain(s) x %d iterations (%d warm-up, thin=%d)",
        sampler.kernel, sampler.chains, sampler.iterations, sampler.warmup, sampler.thin,
    )
    mcmc.run(batch)

    grouped = {
        name: value[:, :: sampler.thin].detach()
        for name, value in mcmc.get_samples(group_by_chain=True).items()
    }
    num_chains, num_draws = next(iter(grouped.values())).shape[:2]
    flat = {name: value.reshape((-1,) + value.shape[2:]) for name, value in grouped.items()}
    log_lik = pointwise_log_likelihood(model_fn, flat, batch)

    return PosteriorDraws(
        samples={name: value.cpu().numpy() for name, value in grouped.items()},
        log_likelihood=log_lik.reshape(num_chains, num_draws, -1).cpu().numpy(),
        observed=batch.response.detach().cpu().numpy(),
    )

