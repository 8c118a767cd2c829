"""Type aliases and containers for convnet_trainer inter-module contracts."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, TypedDict

import torch

from convnet_trainer.errors import ConfigurationError

# onIteration hook: (event_type, batch_or_epoch_index, logs)
IterationCallback = Callable[[str, int, dict[str, float]], Any]


class ClassificationBatch(TypedDict):
    """A single batch from a classification DataLoader.

    images: Float tensor of shape (B, H, W, C), channels last.
    labels: Float tensor of shape (B, K), one-hot rows.
    """

    images: torch.Tensor
    labels: torch.Tensor


@dataclass(frozen=True)
class Dataset:
    """In-memory features and one-hot labels for one split.

    features: Float tensor of shape (N, H, W, C).
    labels: Float tensor of shape (N, K); every row is one-hot.

    Shapes and the one-hot encoding are checked on construction; a
    violation raises :class:`ConfigurationError`.
    """

    features: torch.Tensor
    labels: torch.Tensor

    def __post_init__(self) -> None:
        if self.features.ndim != 4:
            raise ConfigurationError(
                f"features must have shape (N, H, W, C), got {tuple(self.features.shape)}"
            )
        if self.labels.ndim != 2:
            raise ConfigurationError(
                f"labels must have shape (N, K), got {tuple(self.labels.shape)}"
            )
        if self.features.shape[0] != self.labels.shape[0]:
            raise ConfigurationError(
                f"features has {self.features.shape[0]} examples but labels has "
                f"{self.labels.shape[0]}"
            )
        if self.labels.numel() > 0:
            binary = ((self.labels == 0) | (self.labels == 1)).all()
            single_hot = (self.labels.sum(dim=1) == 1).all()
            if not (binary and single_hot):
                raise ConfigurationError("labels must be one-hot encoded rows")

    def __len__(self) -> int:
        return self.num_examples

    @property
    def num_examples(self) -> int:
        return int(self.features.shape[0])

    @property
    def image_shape(self) -> tuple[int, int, int]:
        """(H, W, C) of a single example."""
        height, width, channels = self.features.shape[1:]
        return int(height), int(width), int(channels)

    @property
    def num_classes(self) -> int:
        return int(self.labels.shape[1])

    def slice(self, start: int, stop: int) -> Dataset:
        """Contiguous examples ``[start, stop)`` in their original order."""
        return Dataset(self.features[start:stop], self.labels[start:stop])

    def head(self, n: int) -> Dataset:
        """The first ``n`` examples."""
        return self.slice(0, n)

    def class_indices(self) -> torch.Tensor:
        """Arg-max of the one-hot labels, shape (N,)."""
        return self.labels.argmax(dim=1)
