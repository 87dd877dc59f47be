from __future__ import annotations

import json
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Dict, Iterator, Optional

import numpy as np
import pandas as pd
import torch

from glmmcompare.data.utils import standardize


@dataclass
class ModelBatch:
    """Tensors consumed by the Pyro models."""

    response: torch.Tensor  # shape (N,)
    covariate: Optional[torch.Tensor] = None  # shape (N,)
    trials: Optional[torch.Tensor] = None  # shape (N,), binomial models only
    group_ids: Optional[torch.Tensor] = None  # shape (N,), codes 0..G-1
    n_groups: int = 0

    @property
    def n_obs(self) -> int:
        return int(self.response.shape[0])

    def to(self, device: torch.device | str) -> "ModelBatch":
        """Move all tensors to a specific device.

        Args:
            device: Device to move tensors to.

        Returns:
            A ModelBatch object.
        """

        device = torch.device(device)

        def move(t: Optional[torch.Tensor]) -> Optional[torch.Tensor]:
            return None if t is None else t.to(device)

        return ModelBatch(
            response=self.response.to(device),
            covariate=move(self.covariate),
            trials=move(self.trials),
            group_ids=move(self.group_ids),
            n_groups=self.n_groups,
        )


def _as_float(values: Optional[np.ndarray], device: torch.device) -> Optional[torch.Tensor]:
    if values is None:
        return None
    return torch.as_tensor(np.asarray(values), dtype=torch.get_default_dtype(), device=device)


@dataclass
class BinomialData:
    """Survivors out of released animals, optionally with one covariate per row."""

    survived: np.ndarray  # (N,)
    released: np.ndarray  # (N,)
    covariate_raw: Optional[np.ndarray] = None  # (N,)
    covariate_std: Optional[np.ndarray] = None  # (N,)
    truth: Dict[str, float] = field(default_factory=dict)

    def __post_init__(self) -> None:
        self.survived = np.asarray(self.survived, dtype=np.int64)
        self.released = np.asarray(self.released, dtype=np.int64)
        if self.survived.shape != self.released.shape:
            raise ValueError("survived and released must have the same shape")
        if (self.released < 1).any():
            raise ValueError("released must be >= 1 in every row")
        if ((self.survived < 0) | (self.survived > self.released)).any():
            raise ValueError("survived must lie in [0, released]")

    def __len__(self) -> int:
        return int(self.survived.shape[0])

    @property
    def has_covariate(self) -> bool:
        return self.covariate_std is not None

    def to_frame(self) -> pd.DataFrame:
        frame = pd.DataFrame({"survived": self.survived, "released": self.released})
        if self.covariate_raw is not None:
            frame["covariate"] = self.covariate_raw
        if self.covariate_std is not None:
            frame["covariate_std"] = self.covariate_std
        return frame

    def to_bernoulli_frame(self) -> pd.DataFrame:
        """One row per released animal with a 0/1 ``survived`` column.

        Same likelihood as the binomial rows; usable by formula interfaces that
        cannot take a single aggregated row.
        """
        rows = np.repeat(np.arange(len(self)), self.released)
        survived = np.concatenate(
            [np.arange(n) < k for k, n in zip(self.survived, self.released)]
        ).astype(np.int64)
        frame = pd.DataFrame({"survived": survived})
        if self.covariate_raw is not None:
            frame["covariate"] = self.covariate_raw[rows]
        if self.covariate_std is not None:
            frame["covariate_std"] = self.covariate_std[rows]
        return frame

    def to_batch(self, device: torch.device | str = "cpu") -> ModelBatch:
        device = torch.device(device)
        return ModelBatch(
            response=_as_float(self.survived, device),
            trials=_as_float(self.released, device),
            covariate=_as_float(self.covariate_std, device),
        )


@dataclass
class GroupedData:
    """Gaussian response with one covariate and a single grouping factor."""

    response: np.ndarray  # (N,)
    covariate_raw: np.ndarray  # (N,)
    covariate_std: np.ndarray  # (N,)
    group_ids: np.ndarray  # (N,), codes 0..G-1
    group_labels: np.ndarray  # (G,)
    names: Dict[str, str] = field(
        default_factory=lambda: {"response": "response", "covariate": "covariate", "group": "group"}
    )

    def __len__(self) -> int:
        return int(self.response.shape[0])

    @property
    def n_groups(self) -> int:
        return int(self.group_labels.shape[0])

    def to_frame(self) -> pd.DataFrame:
        """Long-format table; the standardized covariate gets a ``_std`` suffix."""
        return pd.DataFrame(
            {
                self.names["response"]: self.response,
                self.names["covariate"]: self.covariate_raw,
                f"{self.names['covariate']}_std": self.covariate_std,
                self.names["group"]: self.group_labels[self.group_ids],
            }
        )

    def to_batch(self, device: torch.device | str = "cpu") -> ModelBatch:
        device = torch.device(device)
        return ModelBatch(
            response=_as_float(self.response, device),
            covariate=_as_float(self.covariate_std, device),
            group_ids=torch.as_tensor(self.group_ids, dtype=torch.long, device=device),
            n_groups=self.n_groups,
        )


@dataclass
class Transect:
    """One transect and the segments it owns."""

    transect_id: int
    random_effect: float
    covariate_raw: np.ndarray  # (S,)
    response_count: np.ndarray  # (S,)


@dataclass
class TransectDataset:
    """Flat table of segment observations, grouped contiguously by transect."""

    transect_id: np.ndarray  # (T * S,), values 1..T
    covariate_raw: np.ndarray  # (T * S,)
    response_count: np.ndarray  # (T * S,)
    segments_per_transect: int
    seed: Optional[int] = None
    covariate_std: Optional[np.ndarray] = None
    latents: Dict[str, np.ndarray] = field(default_factory=dict)

    def __len__(self) -> int:
        return int(self.transect_id.shape[0])

    @property
    def transect_count(self) -> int:
        return len(self) // self.segments_per_transect

    def standardized(self) -> "TransectDataset":
        """Return a copy carrying the covariate standardized over all transects."""
        return replace(self, covariate_std=standardize(self.covariate_raw))

    def transects(self) -> Iterator[Transect]:
        """Two-level view: one Transect per id, in generation order."""
        S = self.segments_per_transect
        random_effects = self.latents.get("random_effect")
        for k in range(self.transect_count):
            block = slice(k * S, (k + 1) * S)
            yield Transect(
                transect_id=int(self.transect_id[block][0]),
                random_effect=float(random_effects[k]) if random_effects is not None else float("nan"),
                covariate_raw=self.covariate_raw[block],
                response_count=self.response_count[block],
            )

    def to_frame(self) -> pd.DataFrame:
        frame = pd.DataFrame(
            {
                "transect": self.transect_id,
                "temp": self.covariate_raw,
                "count": self.response_count,
            }
        )
        if self.covariate_std is not None:
            frame["temp_std"] = self.covariate_std
            frame["temp_std_sq"] = self.covariate_std ** 2
        return frame

    def to_batch(self, device: torch.device | str = "cpu") -> ModelBatch:
        """Tensors for the Pyro models; transect ids become codes 0..T-1."""
        if self.covariate_std is None:
            raise ValueError("call standardized() before building a ModelBatch")
        device = torch.device(device)
        return ModelBatch(
            response=_as_float(self.response_count, device),
            covariate=_as_float(self.covariate_std, device),
            group_ids=torch.as_tensor(self.transect_id - 1, dtype=torch.long, device=device),
            n_groups=self.transect_count,
        )

    def save(self, out_dir: str | Path, name: str | None = None) -> Path:
        """Persist arrays and metadata using plain .npy and .json."""

        stem = name or "transects"
        target = Path(out_dir) / stem
        target.mkdir(parents=True, exist_ok=True)
        np.save(target / f"{stem}_transect_id.npy", self.transect_id)
        np.save(target / f"{stem}_covariate_raw.npy", self.covariate_raw)
        np.save(target / f"{stem}_response_count.npy", self.response_count)
        for key, value in self.latents.items():
            np.save(target / f"{stem}_latent_{key}.npy", value)

        meta: Dict[str, Any] = {
            "segments_per_transect": self.segments_per_transect,
            "seed": self.seed,
            "latents": sorted(self.latents),
        }
        (target / f"{stem}_meta.json").write_text(json.dumps(meta, indent=2))
        return target

    @staticmethod
    def load(path_stem: str | Path) -> "TransectDataset":
        """
        Rehydrate a TransectDataset written by ``save``.

        Args:
            path_stem: Directory produced by ``save`` (e.g., './data/transects').
        """

        stem = Path(path_stem)
        meta = json.loads((stem / f"{stem.name}_meta.json").read_text())
        latents = {
            key: np.load(stem / f"{stem.name}_latent_{key}.npy") for key in meta["latents"]
        }
        return TransectDataset(
            transect_id=np.load(stem / f"{stem.name}_transect_id.npy"),
            covariate_raw=np.load(stem / f"{stem.name}_covariate_raw.npy"),
            response_count=np.load(stem / f"{stem.name}_response_count.npy"),
            segments_per_transect=int(meta["segments_per_transect"]),
            seed=meta["seed"],
            latents=latents,
        )
