"""Loss functions for classification training."""

from __future__ import annotations

import torch
import torch.nn as nn

from convnet_trainer.errors import ConfigurationError


class CategoricalCrossEntropy(nn.Module):
    """Cross-entropy between softmax probabilities and one-hot targets.

    The model's last layer already applies softmax, so this works on
    probabilities rather than logits. Probabilities are clipped to
    ``[eps, 1 - eps]`` before the log so a confident wrong answer yields a
    large but finite loss.

    Parameters
    ----------
    eps:
        Clipping bound for probabilities.
    """

    def __init__(self, eps: float = 1e-7) -> None:
        super().__init__()
        self.eps = eps

    def forward(self, probs: torch.Tensor, targets: torch.Tensor) -> torch.Tensor:
        """Compute the mean negative log-probability of the true class.

        Parameters
        ----------
        probs:
            Model output of shape ``(B, K)``; rows sum to 1.
        targets:
            One-hot labels of shape ``(B, K)``.
        """
        clipped = probs.clamp(self.eps, 1.0 - self.eps)
        return -(targets * clipped.log()).sum(dim=1).mean()


def build_loss_fn(name: str) -> nn.Module:
    """Factory for loss functions.

    Parameters
    ----------
    name:
        Loss function name. Only ``"categorical_crossentropy"`` is supported.

    Returns
    -------
    nn.Module
        The configured loss function.
    """
    if name == "categorical_crossentropy":
        return CategoricalCrossEntropy()
    msg = f"Unknown loss function: {name!r}. Use 'categorical_crossentropy'."
    raise ConfigurationError(msg)
