"""
Shared fixtures: small sampler settings and datasets with known structure.
"""

import matplotlib

matplotlib.use("Agg")

import numpy as np  # noqa: E402
import pytest  # noqa: E402

from glmmcompare.config import SamplerConfig, SurvivalConfig  # noqa: E402
from glmmcompare.data import GroupedData, generate, survival_counts  # noqa: E402


@pytest.fixture
def rng():
    """Seeded random number generator for reproducible tests."""
    return np.random.default_rng(2024)


@pytest.fixture
def quick_sampler():
    """One short chain; enough for shape checks and rough posterior means."""
    return SamplerConfig(chains=1, iterations=300, warmup=150, thin=1, seed=0)


@pytest.fixture
def survival_data():
    return survival_counts(SurvivalConfig())


@pytest.fixture
def transects():
    """The illustrative dataset: 10 transects x 20 segments, seed 666, standardized."""
    return generate(10, 20, 666).standardized()


@pytest.fixture
def grouped_gaussian(rng):
    """Random-intercept Gaussian data.

    8 groups x 25 observations. Intercept 50, slope 4 on the standardized
    covariate, group SD 6, residual SD 3.
    """
    n_groups, per_group = 8, 25
    group_ids = np.repeat(np.arange(n_groups), per_group)
    covariate = rng.normal(10.0, 2.0, size=n_groups * per_group)
    covariate_std = (covariate - covariate.mean()) / covariate.std(ddof=1)
    effects = rng.normal(0.0, 6.0, size=n_groups)
    response = 50.0 + 4.0 * covariate_std + effects[group_ids] + rng.normal(0.0, 3.0, size=group_ids.size)
    return GroupedData(
        response=response,
        covariate_raw=covariate,
        covariate_std=covariate_std,
        group_ids=group_ids,
        group_labels=np.array([f"range{g}" for g in range(n_groups)]),
        names={"response": "score", "covariate": "length", "group": "range"},
    )
