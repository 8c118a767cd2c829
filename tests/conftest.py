"""Shared pytest fixtures for convnet_trainer tests."""

from collections.abc import Callable

import pytest
import torch
import torch.nn.functional as F

from convnet_trainer.models.convnet import ConvClassificationModel
from convnet_trainer.types import Dataset

# Smallest square image the default architecture accepts:
# 16 -> conv5 -> 12 -> pool -> 6 -> conv5 -> 2 -> pool -> 1
IMAGE_SIZE = 16
NUM_CLASSES = 3


def make_dataset(
    num_examples: int,
    num_classes: int = NUM_CLASSES,
    image_size: int = IMAGE_SIZE,
    channels: int = 1,
) -> Dataset:
    """Random images with labels cycling 0, 1, ..., K-1 in order."""
    features = torch.rand(num_examples, image_size, image_size, channels)
    targets = torch.arange(num_examples) % num_classes
    labels = F.one_hot(targets, num_classes=num_classes).to(torch.float32)
    return Dataset(features, labels)


@pytest.fixture()
def dataset_factory() -> Callable[..., Dataset]:
    """Factory for synthetic datasets of any size."""
    return make_dataset


@pytest.fixture()
def small_dataset() -> Dataset:
    """40 examples, 16x16x1 images, 3 classes."""
    torch.manual_seed(0)
    return make_dataset(40)


@pytest.fixture()
def tiny_model() -> ConvClassificationModel:
    """Default architecture sized for 16x16x1 inputs and 3 classes."""
    torch.manual_seed(0)
    return ConvClassificationModel(
        num_classes=NUM_CLASSES,
        image_height=IMAGE_SIZE,
        image_width=IMAGE_SIZE,
        image_channels=1,
    )
