"""Convolutional classifier LightningModule."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import Any

import lightning as L
import torch
from loguru import logger
from torchmetrics import MeanMetric
from torchmetrics.classification import MulticlassAccuracy

from convnet_trainer.config import TrainingConfig
from convnet_trainer.errors import ConfigurationError
from convnet_trainer.losses import build_loss_fn
from convnet_trainer.models.layers import (
    LayerSpec,
    LayerSummary,
    build_layers,
    conv_architecture,
    parse_layer_specs,
    summarize_layers,
)
from convnet_trainer.optimizers import build_optimizer
from convnet_trainer.types import ClassificationBatch
from convnet_trainer.utils.hydra import register


@register(group="model", name="convnet")
class ConvClassificationModel(L.LightningModule):
    """Sequential convnet over channels-last images, softmax output.

    The layer stack defaults to :func:`conv_architecture`; pass ``layers``
    (list of layer-spec dicts) to override it. Inputs are ``(B, H, W, C)``
    and outputs are class probabilities of shape ``(B, num_classes)``.

    Optimizer and loss are bound with :meth:`configure_training` before training,
    mirroring a compile-then-fit workflow. Running loss and accuracy over the
    current epoch are returned from every ``training_step`` so callbacks can
    report them per batch.
    """

    def __init__(
        self,
        num_classes: int = 10,
        image_height: int = 28,
        image_width: int = 28,
        image_channels: int = 1,
        optimizer: str = "rmsprop",
        loss: str = "categorical_crossentropy",
        layers: Sequence[Mapping[str, Any]] | None = None,
    ) -> None:
        super().__init__()
        if num_classes < 2:
            raise ConfigurationError(f"num_classes must be >= 2, got {num_classes}")
        self.save_hyperparameters(ignore=["layers"])

        self.image_shape = (image_height, image_width, image_channels)
        self.layer_specs: list[LayerSpec] = (
            parse_layer_specs(layers) if layers is not None else conv_architecture(num_classes)
        )
        self.net, output_shape = build_layers(self.layer_specs, self.image_shape)
        if output_shape != (num_classes,):
            raise ConfigurationError(
                f"Last layer produces {output_shape}, expected ({num_classes},)"
            )

        self._optimizer_name = optimizer
        self.loss_fn = build_loss_fn(loss)

        self.train_loss = MeanMetric()
        self.train_acc = MulticlassAccuracy(num_classes=num_classes, top_k=1, average="micro")
        self.val_loss = MeanMetric()
        self.val_acc = MulticlassAccuracy(num_classes=num_classes, top_k=1, average="micro")

        # Set by the trainer for the duration of a fit; one run per model at a time.
        self.fit_in_progress = False

    @property
    def num_classes(self) -> int:
        return int(self.hparams["num_classes"])

    def configure_training(self, config: TrainingConfig) -> None:
        """Bind optimizer and loss from ``config`` for the next fit."""
        self._optimizer_name = config.optimizer
        self.loss_fn = build_loss_fn(config.loss)
        self.hparams["optimizer"] = config.optimizer
        self.hparams["loss"] = config.loss

    def forward(self, images: torch.Tensor) -> torch.Tensor:
        """Map ``(B, H, W, C)`` images to ``(B, K)`` class probabilities."""
        return self.net(images.permute(0, 3, 1, 2))  # type: ignore[no-any-return]

    def summary(self) -> list[LayerSummary]:
        return summarize_layers(self.layer_specs, self.image_shape)

    # ------------------------------------------------------------------
    # Lightning hooks
    # ------------------------------------------------------------------

    def on_train_epoch_start(self) -> None:
        self.train_loss.reset()
        self.train_acc.reset()

    def training_step(
        self, batch: ClassificationBatch, batch_idx: int
    ) -> dict[str, torch.Tensor]:
        images, labels = batch["images"], batch["labels"]
        probs = self(images)
        loss: torch.Tensor = self.loss_fn(probs, labels)

        self.train_loss.update(loss.detach(), weight=images.shape[0])
        self.train_acc.update(probs.detach(), labels.argmax(dim=1))
        return {
            "loss": loss,
            "running_loss": self.train_loss.compute(),
            "running_acc": self.train_acc.compute(),
        }

    def validation_step(self, batch: ClassificationBatch, batch_idx: int) -> None:
        images, labels = batch["images"], batch["labels"]
        probs = self(images)
        loss = self.loss_fn(probs, labels)
        self.val_loss.update(loss, weight=images.shape[0])
        self.val_acc.update(probs, labels.argmax(dim=1))

    def on_validation_epoch_end(self) -> None:
        self.log("val/loss", self.val_loss.compute())
        self.log("val/acc", self.val_acc.compute())
        self.val_loss.reset()
        self.val_acc.reset()

    def configure_optimizers(self) -> torch.optim.Optimizer:
        return build_optimizer(self._optimizer_name, self.parameters())

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def save(self, destination: str | Path) -> Path:
        """Write architecture (hyperparameters + layer specs) and weights."""
        path = Path(destination)
        path.parent.mkdir(parents=True, exist_ok=True)
        payload = {
            "hyper_parameters": dict(self.hparams),
            "layers": [spec.model_dump() for spec in self.layer_specs],
            "state_dict": self.state_dict(),
        }
        torch.save(payload, path)
        logger.info(f"Model saved to {path}")
        return path

    @classmethod
    def load(cls, source: str | Path) -> ConvClassificationModel:
        """Rebuild a model written by :meth:`save`."""
        payload = torch.load(source, map_location="cpu", weights_only=True)
        model = cls(**payload["hyper_parameters"], layers=payload["layers"])
        model.load_state_dict(payload["state_dict"])
        logger.info(f"Model loaded from {source}")
        return model


def create_conv_model(
    image_shape: tuple[int, int, int] = (28, 28, 1), num_classes: int = 10
) -> ConvClassificationModel:
    """Build the default convnet for ``(H, W, C)`` images and ``num_classes``."""
    height, width, channels = image_shape
    return ConvClassificationModel(
        num_classes=num_classes,
        image_height=height,
        image_width=width,
        image_channels=channels,
    )
