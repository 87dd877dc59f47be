from typing import Tuple

import numpy as np
import pandas as pd


def standardize(values: np.ndarray) -> np.ndarray:
    """
    Center on the pooled mean and divide by the pooled sample standard deviation.

    Args:
        values: 1-D array of raw covariate values.

    Returns:
        Standardized copy of ``values`` as float64.
    """
    values = np.asarray(values, dtype=np.float64)
    if values.ndim != 1:
        raise ValueError(f"standardize expects a 1-D array, got shape {values.shape}")
    if values.size < 2:
        raise ValueError("standardize needs at least two values")
    sd = values.std(ddof=1)
    if not np.isfinite(sd) or sd == 0.0:
        raise ValueError("cannot standardize a constant column")
    return (values - values.mean()) / sd


def factorize_groups(labels) -> Tuple[np.ndarray, np.ndarray]:
    """Map group labels to codes 0..G-1 in order of first appearance."""
    codes, uniques = pd.factorize(pd.Series(labels), sort=False)
    if (codes < 0).any():
        raise ValueError("group labels contain missing values")
    return codes.astype(np.int64), np.asarray(uniques)
