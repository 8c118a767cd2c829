"""Data pipeline for convnet_trainer."""

from convnet_trainer.data.datamodule import SplitDataModule, batches_per_epoch, split_sizes
from convnet_trainer.data.provider import (
    DatasetProvider,
    InMemoryDataProvider,
    MnistDataProvider,
)

__all__ = [
    "DatasetProvider",
    "InMemoryDataProvider",
    "MnistDataProvider",
    "SplitDataModule",
    "batches_per_epoch",
    "split_sizes",
]
