"""LightningDataModule that carves a validation tail off an in-memory dataset."""

from __future__ import annotations

import math

import lightning as L
from loguru import logger
from torch.utils.data import DataLoader
from torch.utils.data import Dataset as TorchDataset

from convnet_trainer.config import TrainingConfig
from convnet_trainer.types import ClassificationBatch, Dataset


def split_sizes(num_examples: int, validation_split: float) -> tuple[int, int]:
    """(train, validation) sizes.

    Training keeps the first ``floor(N * (1 - validation_split))`` examples and
    the rest are validation, so a fractional boundary always gives the extra
    example to validation.
    """
    train_size = math.floor(num_examples * (1 - validation_split))
    return train_size, num_examples - train_size


def batches_per_epoch(train_size: int, batch_size: int) -> int:
    return math.ceil(train_size / batch_size)


class _TensorDictDataset(TorchDataset[ClassificationBatch]):
    """Index into a :class:`Dataset`, yielding ClassificationBatch-style dicts."""

    def __init__(self, data: Dataset) -> None:
        self.data = data

    def __len__(self) -> int:
        return self.data.num_examples

    def __getitem__(self, idx: int) -> ClassificationBatch:
        return {"images": self.data.features[idx], "labels": self.data.labels[idx]}


class SplitDataModule(L.LightningDataModule):
    """Train on the prefix of a dataset, validate on its last fraction.

    The split keeps the dataset's existing order: everything after the first
    ``floor(N * (1 - validation_split))`` examples is held out and never used for
    gradient updates. ``config.shuffle`` only reorders examples inside the
    training prefix each epoch.

    Args:
        dataset: Training examples, already in memory.
        config: TrainingConfig providing batch size, split and shuffle flag.
    """

    def __init__(self, dataset: Dataset, config: TrainingConfig) -> None:
        super().__init__()
        self._dataset = dataset
        self._batch_size = config.batch_size
        self._shuffle = config.shuffle
        self.train_size, self.val_size = split_sizes(
            dataset.num_examples, config.validation_split
        )
        self.train_data: Dataset | None = None
        self.val_data: Dataset | None = None

    def setup(self, stage: str | None = None) -> None:
        self.train_data = self._dataset.slice(0, self.train_size)
        self.val_data = self._dataset.slice(self.train_size, self._dataset.num_examples)
        logger.info(
            f"Setup fit: train={self.train_size}, val={self.val_size} examples"
        )

    def train_dataloader(self) -> DataLoader[ClassificationBatch]:
        if self.train_data is None:
            raise RuntimeError("Call setup('fit') before train_dataloader()")
        return DataLoader(
            _TensorDictDataset(self.train_data),
            batch_size=self._batch_size,
            shuffle=self._shuffle,
        )

    def val_dataloader(self) -> DataLoader[ClassificationBatch]:
        if self.val_data is None:
            raise RuntimeError("Call setup('fit') before val_dataloader()")
        return DataLoader(
            _TensorDictDataset(self.val_data),
            batch_size=self._batch_size,
            shuffle=False,
        )
