"""Dataset providers: the source of in-memory train/test splits."""

from __future__ import annotations

from pathlib import Path
from typing import Protocol, runtime_checkable

import torch
import torch.nn.functional as F
from loguru import logger
from torchvision import datasets

from convnet_trainer.config import MnistDataConfig
from convnet_trainer.types import Dataset
from convnet_trainer.utils.hydra import register

MNIST_IMAGE_SHAPE = (28, 28, 1)
MNIST_NUM_CLASSES = 10


@runtime_checkable
class DatasetProvider(Protocol):
    """Supplies fixed-shape train and test splits."""

    def load(self) -> None: ...

    def get_train_data(self) -> Dataset: ...

    def get_test_data(self, n: int | None = None) -> Dataset: ...


class InMemoryDataProvider:
    """Provider over splits that are already in memory.

    ``load()`` is a no-op besides logging; the splits are fixed at
    construction and returned as-is.
    """

    def __init__(self, train: Dataset | None = None, test: Dataset | None = None) -> None:
        self._train = train
        self._test = test

    @property
    def is_loaded(self) -> bool:
        return self._train is not None and self._test is not None

    def load(self) -> None:
        if not self.is_loaded:
            raise RuntimeError(f"{type(self).__name__} was created without data")
        logger.info(f"Data ready: train={len(self._train)}, test={len(self._test)} examples")  # type: ignore[arg-type]

    def get_train_data(self) -> Dataset:
        if self._train is None:
            raise RuntimeError("Call load() before get_train_data()")
        return self._train

    def get_test_data(self, n: int | None = None) -> Dataset:
        """Full test split, or its first ``n`` examples."""
        if self._test is None:
            raise RuntimeError("Call load() before get_test_data()")
        if n is None:
            return self._test
        return self._test.head(n)


@register(group="data", name="mnist")
class MnistDataProvider(InMemoryDataProvider):
    """MNIST digits as ``(N, 28, 28, 1)`` floats in [0, 1] with one-hot labels.

    Downloads through torchvision on first ``load()``; later calls reuse the
    tensors already in memory.

    Args:
        config: MnistDataConfig frozen model. If provided, flat kwargs are ignored.
        data_root: Download/cache directory (used when config is None, e.g. Hydra).
        train_size: Keep only the first N training examples.
        test_size: Keep only the first N test examples.
        download: Fetch the archive when it is not cached.
        **kwargs: Absorbs extra Hydra-injected keys.
    """

    def __init__(
        self,
        config: MnistDataConfig | None = None,
        *,
        data_root: str = "data/mnist",
        train_size: int | None = None,
        test_size: int | None = None,
        download: bool = True,
        **kwargs: object,
    ) -> None:
        super().__init__()
        if config is not None:
            self._config = config
        else:
            self._config = MnistDataConfig(
                data_root=data_root,
                train_size=train_size,
                test_size=test_size,
                download=download,
            )

    def load(self) -> None:
        if self.is_loaded:
            logger.debug("MNIST already loaded; skipping")
            return
        root = Path(self._config.data_root).expanduser()
        self._train = self._load_split(root, train=True, limit=self._config.train_size)
        self._test = self._load_split(root, train=False, limit=self._config.test_size)
        super().load()

    def _load_split(self, root: Path, *, train: bool, limit: int | None) -> Dataset:
        split = datasets.MNIST(root=str(root), train=train, download=self._config.download)
        images: torch.Tensor = split.data[:limit]
        targets: torch.Tensor = split.targets[:limit]
        features = images.to(torch.float32).div(255.0).unsqueeze(-1)
        labels = F.one_hot(targets.long(), num_classes=MNIST_NUM_CLASSES).to(torch.float32)
        logger.info(
            f"Loaded MNIST {'train' if train else 'test'} split: {features.shape[0]} examples"
        )
        return Dataset(features, labels)
