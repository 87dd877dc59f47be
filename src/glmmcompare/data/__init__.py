"""Data utilities for glmmcompare."""

from .datasets import (
    load_dragons,
    load_remote_table,
    simulate_covariate_survival,
    survival_counts,
)
from .synthetic import TransectGenerator, generate
from .types import BinomialData, GroupedData, ModelBatch, Transect, TransectDataset
from .utils import factorize_groups, standardize

__all__ = [
    "BinomialData",
    "GroupedData",
    "ModelBatch",
    "Transect",
    "TransectDataset",
    "TransectGenerator",
    "factorize_groups",
    "generate",
    "load_dragons",
    "load_remote_table",
    "simulate_covariate_survival",
    "standardize",
    "survival_counts",
]
