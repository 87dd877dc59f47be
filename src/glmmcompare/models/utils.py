from __future__ import annotations

from typing import Callable, Dict

import torch
from pyro import poutine

from glmmcompare.data import ModelBatch


def pointwise_log_likelihood(
    model: Callable,
    samples: Dict[str, torch.Tensor],
    batch: ModelBatch,
    site: str = "y",
) -> torch.Tensor:
    """
    Log density of every observation under every posterior draw.

    Args:
        model: Pyro model callable taking ``batch``.
        samples: Latent site values with a leading draw dimension (S, ...).
        batch: Observations the model was conditioned on.
        site: Name of the observed sample site.

    Returns:
        Tensor of shape (S, N).
    """
    if not samples:
        raise ValueError("samples is empty")
    num_draws = next(iter(samples.values())).shape[0]

    rows = []
    with torch.no_grad():
        for s in range(num_draws):
            draw = {name: value[s] for name, value in samples.items()}
            trace = poutine.trace(poutine.condition(model, data=draw)).get_trace(batch)
            node = trace.nodes[site]
            rows.append(node["fn"].log_prob(node["value"]).reshape(-1))
    return torch.stack(rows)
