"""Tables, hypothesis probabilities, model comparison and figures."""

from .summary import (
    compare_models,
    comparison_table,
    estimates_from_idata,
    estimates_from_mle,
    hypothesis,
    information_criterion,
    posterior_summary,
)

__all__ = [
    "compare_models",
    "comparison_table",
    "estimates_from_idata",
    "estimates_from_mle",
    "hypothesis",
    "information_criterion",
    "posterior_summary",
]
