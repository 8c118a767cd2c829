"""Optimizer factory.

Each optimizer is built with fixed library defaults; no learning-rate or
momentum knobs are exposed through the training config.
"""

from __future__ import annotations

from collections.abc import Iterable

import torch

from convnet_trainer.errors import ConfigurationError

DEFAULT_LEARNING_RATE = 1e-3


def build_optimizer(
    name: str, params: Iterable[torch.nn.Parameter]
) -> torch.optim.Optimizer:
    """Build an optimizer over ``params``.

    ``rmsprop`` scales each gradient by a running root-mean-square of past
    gradients (decay 0.9, eps 1e-7).
    """
    if name == "rmsprop":
        return torch.optim.RMSprop(
            params, lr=DEFAULT_LEARNING_RATE, alpha=0.9, eps=1e-7
        )
    if name == "adam":
        return torch.optim.Adam(params, lr=DEFAULT_LEARNING_RATE)
    if name == "sgd":
        return torch.optim.SGD(params, lr=0.01)
    msg = f"Unknown optimizer: {name!r}. Use 'rmsprop', 'adam' or 'sgd'."
    raise ConfigurationError(msg)
