"""Simulated transect counts with a random intercept per transect."""
from __future__ import annotations

import logging
from typing import List, Optional

import numpy as np

from glmmcompare.config import TransectConfig
from glmmcompare.data.types import TransectDataset

logger = logging.getLogger(__name__)

# Generative constants of the teaching example; fixed on purpose.
RANDOM_EFFECT_SD = 0.5
BASELINE_TEMPERATURE = (18.0, 22.0)
SLOPE_RANGE = (-0.2, 0.2)
LOG_MEAN_COEFFICIENTS = (-14.0, 1.8, -0.045)  # intercept, linear, quadratic


def expected_count(temperature: np.ndarray, random_effect: float) -> np.ndarray:
    """Hump-shaped mean count on the response scale. Not clipped."""
    b0, b1, b2 = LOG_MEAN_COEFFICIENTS
    return np.exp(random_effect + b0 + b1 * temperature + b2 * temperature ** 2)


class TransectGenerator:
    """Data generator for the synthetic Poisson GLMM example."""

    def __init__(self, config: TransectConfig) -> None:
        """
        Initialize the TransectGenerator.

        Args:
            config: The TransectConfig to use for the simulation.
        """
        self.config = config

    def generate(self, rng: Optional[np.random.Generator] = None) -> TransectDataset:
        """
        Generate transects 1..T in order from one advancing random stream.

        Args:
            rng: Generator to draw from. Defaults to ``default_rng(config.seed)``.

        Returns:
            A TransectDataset with the raw covariate and counts; the true per-transect
            draws are kept in ``latents``.
        """

        T = self.config.transect_count
        S = self.config.segments_per_transect
        if T < 1 or S < 1:
            raise ValueError(f"transect_count and segments_per_transect must be >= 1, got {T}, {S}")
        if rng is None:
            rng = np.random.default_rng(self.config.seed)

        segment_index = np.arange(1, S + 1, dtype=np.float64)
        random_effects = np.empty(T)
        baselines = np.empty(T)
        slopes = np.empty(T)
        covariates: List[np.ndarray] = []
        counts: List[np.ndarray] = []
        for k in range(T):
            random_effects[k] = rng.normal(loc=0.0, scale=RANDOM_EFFECT_SD)
            baselines[k] = rng.uniform(*BASELINE_TEMPERATURE)
            slopes[k] = rng.uniform(*SLOPE_RANGE)
            temperature = baselines[k] + slopes[k] * segment_index
            mu = expected_count(temperature, random_effects[k])
            covariates.append(temperature)
            counts.append(rng.poisson(mu).astype(np.int64))

        logger.debug("generated %d transects x %d segments (seed=%s)", T, S, self.config.seed)
        return TransectDataset(
            transect_id=np.repeat(np.arange(1, T + 1, dtype=np.int64), S),
            covariate_raw=np.concatenate(covariates),
            response_count=np.concatenate(counts),
            segments_per_transect=S,
            seed=self.config.seed,
            latents={
                "random_effect": random_effects,
                "baseline_temperature": baselines,
                "slope": slopes,
            },
        )


def generate(transect_count: int, segments_per_transect: int, seed: int) -> TransectDataset:
    """Simulate ``transect_count * segments_per_transect`` segment counts."""
    config = TransectConfig(
        transect_count=transect_count,
        segments_per_transect=segments_per_transect,
        seed=seed,
    )
    return TransectGenerator(config).generate()
