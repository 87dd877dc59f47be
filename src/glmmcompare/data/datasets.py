"""The survival, logistic and dragons datasets used by the example scripts."""
from __future__ import annotations

import logging
import os
from pathlib import Path
from urllib.parse import urlparse
from urllib.request import urlopen

import numpy as np
import pandas as pd
import pyreadr
from scipy.special import expit

from glmmcompare.config import LMMConfig, LogisticConfig, SurvivalConfig
from glmmcompare.data.types import BinomialData, GroupedData
from glmmcompare.data.utils import factorize_groups, standardize

logger = logging.getLogger(__name__)

_R_SUFFIXES = (".rdata", ".rda", ".rds")


def survival_counts(config: SurvivalConfig) -> BinomialData:
    """Single binomial observation: ``survived`` out of ``released``."""
    return BinomialData(survived=np.array([config.survived]), released=np.array([config.released]))


def simulate_covariate_survival(config: LogisticConfig) -> BinomialData:
    """
    Yearly survivors whose logit survival is linear in a standardized covariate.

    Args:
        config: The LogisticConfig holding sizes, true coefficients and the seed.

    Returns:
        BinomialData with one row per year and the true coefficients in ``truth``.
    """
    if config.n_years < 2:
        raise ValueError(f"n_years must be >= 2, got {config.n_years}")
    if config.released < 1:
        raise ValueError(f"released must be >= 1, got {config.released}")

    rng = np.random.default_rng(config.seed)
    covariate = rng.normal(config.covariate_mean, config.covariate_sd, size=config.n_years)
    covariate_std = standardize(covariate)
    released = np.full(config.n_years, config.released, dtype=np.int64)
    prob = expit(config.intercept + config.slope * covariate_std)
    survived = rng.binomial(released, prob)
    return BinomialData(
        survived=survived,
        released=released,
        covariate_raw=covariate,
        covariate_std=covariate_std,
        truth={"intercept": config.intercept, "slope": config.slope},
    )


def download_table(url: str, filename: str | Path) -> None:
    """download the file behind url and save it to filename

    The body goes to a ``.part`` file first and is moved into place only once
    the read completes, so a failed download never leaves a cached file behind.
    """
    logger.info("downloading %s", url)
    filename = Path(filename)
    partial = filename.with_suffix(filename.suffix + ".part")
    try:
        with urlopen(url) as response, open(partial, "wb") as f:
            f.write(response.read())
    except BaseException:
        partial.unlink(missing_ok=True)
        raise
    os.replace(partial, filename)


def load_remote_table(url: str, cache_dir: str | Path = "./data") -> pd.DataFrame:
    """
    Fetch a table once into ``cache_dir`` and read it.

    CSV files are read with pandas, R data files with pyreadr (the first object
    stored in the file is returned).
    """
    name = os.path.basename(urlparse(url).path)
    suffix = Path(name).suffix.lower()
    if suffix != ".csv" and suffix not in _R_SUFFIXES:
        raise ValueError(f"Unsupported table format: {name!r}")

    cache_dir = Path(cache_dir)
    cache_dir.mkdir(parents=True, exist_ok=True)
    filename = cache_dir / name
    if not filename.exists():
        download_table(url, filename)

    if suffix == ".csv":
        return pd.read_csv(filename)
    objects = pyreadr.read_r(str(filename))
    if not objects:
        raise ValueError(f"No data frame found in {filename}")
    return next(iter(objects.values()))


def grouped_from_frame(frame: pd.DataFrame, response: str, covariate: str, group: str) -> GroupedData:
    """Keep three columns of ``frame`` and standardize the covariate."""
    missing = [c for c in (response, covariate, group) if c not in frame.columns]
    if missing:
        raise ValueError(f"Columns not found in table: {missing}")
    frame = frame[[response, covariate, group]].dropna()
    group_ids, group_labels = factorize_groups(frame[group].astype(str))
    covariate_raw = frame[covariate].to_numpy(dtype=np.float64)
    return GroupedData(
        response=frame[response].to_numpy(dtype=np.float64),
        covariate_raw=covariate_raw,
        covariate_std=standardize(covariate_raw),
        group_ids=group_ids,
        group_labels=group_labels,
        names={"response": response, "covariate": covariate, "group": group},
    )


def load_dragons(config: LMMConfig) -> GroupedData:
    """Test score, body length and mountain range of the dragons table."""
    frame = load_remote_table(config.url, config.cache_dir)
    return grouped_from_frame(frame, config.response, config.covariate, config.group)
