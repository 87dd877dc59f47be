"""Configuration dataclasses for the four worked examples and the samplers."""
from __future__ import annotations

import yaml
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional


@dataclass
class SamplerConfig:
    """Controls shared by the Pyro MCMC run and the Bambi fit."""
    chains: int = 2
    iterations: int = 2000  # per chain, warm-up included
    warmup: int = 1000
    thin: int = 1
    seed: int = 666
    kernel: str = "nuts"  # "nuts" or "hmc"
    target_accept: float = 0.8

    def __post_init__(self) -> None:
        if self.chains < 1:
            raise ValueError(f"chains must be >= 1, got {self.chains}")
        if self.warmup < 0:
            raise ValueError(f"warmup must be >= 0, got {self.warmup}")
        if self.iterations <= self.warmup:
            raise ValueError(
                f"iterations ({self.iterations}) must exceed warmup ({self.warmup})"
            )
        if self.thin < 1:
            raise ValueError(f"thin must be >= 1, got {self.thin}")
        if not 0.0 < self.target_accept < 1.0:
            raise ValueError(f"target_accept must be in (0, 1), got {self.target_accept}")

    @property
    def num_samples(self) -> int:
        """Post warm-up draws per chain before thinning."""
        return self.iterations - self.warmup


@dataclass
class SurvivalConfig:
    """Beta-binomial survival example: survivors out of released animals."""
    survived: int = 19
    released: int = 57
    prior_alpha: float = 1.0  # Beta(alpha, beta) prior on survival
    prior_beta: float = 1.0
    # Logistic(0, 1) on the logit scale is the image of a uniform Beta(1, 1).
    formula_priors: Dict[str, Dict[str, Any]] = field(
        default_factory=lambda: {"Intercept": {"dist": "Logistic", "mu": 0.0, "s": 1.0}}
    )


@dataclass
class LogisticConfig:
    """Simulated yearly survival with one environmental covariate."""
    n_years: int = 20
    released: int = 50
    intercept: float = 0.3  # true logit-scale intercept
    slope: float = -0.8  # true effect of the standardized covariate
    covariate_mean: float = 0.0
    covariate_sd: float = 1.0
    seed: int = 666
    coef_scale: float = 1.5  # Normal(0, coef_scale) on both coefficients
    formula_priors: Dict[str, Dict[str, Any]] = field(default_factory=dict)


@dataclass
class LMMConfig:
    """Linear mixed model on the remote dragons table."""
    url: str = "https://github.com/ourcodingclub/CC-Linear-mixed-models/raw/master/dragons.RData"
    cache_dir: str = "./data"
    response: str = "testScore"
    covariate: str = "bodyLength"
    group: str = "mountainRange"
    reml: bool = True
    coef_scale: float = 100.0
    sd_upper: float = 100.0  # Uniform(0, sd_upper) on both standard deviations
    formula_priors: Dict[str, Dict[str, Any]] = field(default_factory=dict)


@dataclass
class TransectConfig:
    """Synthetic Poisson GLMM example."""
    transect_count: int = 10
    segments_per_transect: int = 20
    seed: int = 666
    coef_scale: float = 10.0
    sd_upper: float = 10.0
    formula_priors: Dict[str, Dict[str, Any]] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if self.transect_count < 1:
            raise ValueError(f"transect_count must be >= 1, got {self.transect_count}")
        if self.segments_per_transect < 1:
            raise ValueError(
                f"segments_per_transect must be >= 1, got {self.segments_per_transect}"
            )


@dataclass
class ExperimentConfig:
    """Everything one run of the example scripts needs."""
    run_name: str = "default"
    results_dir: str = "./results"
    sampler: SamplerConfig = field(default_factory=SamplerConfig)
    survival: SurvivalConfig = field(default_factory=SurvivalConfig)
    logistic: LogisticConfig = field(default_factory=LogisticConfig)
    lmm: LMMConfig = field(default_factory=LMMConfig)
    transects: TransectConfig = field(default_factory=TransectConfig)

    @property
    def run_dir(self) -> Path:
        return Path(self.results_dir) / self.run_name


def _dict_to_config(obj: Optional[Dict[str, Any]]) -> ExperimentConfig:
    obj = obj or {}
    return ExperimentConfig(
        run_name=obj.get("run_name", "default"),
        results_dir=obj.get("results_dir", "./results"),
        sampler=SamplerConfig(**(obj.get("sampler") or {})),
        survival=SurvivalConfig(**(obj.get("survival") or {})),
        logistic=LogisticConfig(**(obj.get("logistic") or {})),
        lmm=LMMConfig(**(obj.get("lmm") or {})),
        transects=TransectConfig(**(obj.get("transects") or {})),
    )


def load_config(path: str | Path) -> ExperimentConfig:
    """Load a YAML config into the strongly-typed dataclasses."""

    with Path(path).open("r", encoding="utf-8") as handle:
        raw = yaml.safe_load(handle)
    return _dict_to_config(raw)


def save_config(config: ExperimentConfig, path: str | Path | None = None) -> Path:
    """Write ``config`` as YAML, by default to ``<run_dir>/config.yaml``."""
    path = Path(path) if path is not None else config.run_dir / "config.yaml"
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as handle:
        yaml.dump(asdict(config), handle, sort_keys=False)
    return path
