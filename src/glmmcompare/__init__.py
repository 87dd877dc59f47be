"""Frequentist and Bayesian fits of generalized linear (mixed) models, side by side."""

from importlib.metadata import PackageNotFoundError, version

try:  # pragma: no cover
    __version__ = version("glmmcompare")
except PackageNotFoundError:  # pragma: no cover
    __version__ = "0.0.0"

__all__ = ["__version__"]
