"""Training orchestration: compile, split, fit, report."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

import lightning as L
from loguru import logger

from convnet_trainer.callbacks.progress import ProgressCallback, stride_predicate
from convnet_trainer.config import TrainingConfig
from convnet_trainer.data.datamodule import SplitDataModule, batches_per_epoch, split_sizes
from convnet_trainer.errors import ConfigurationError
from convnet_trainer.models.convnet import ConvClassificationModel
from convnet_trainer.presentation.base import PresentationAdapter
from convnet_trainer.types import Dataset, IterationCallback


def total_expected_batches(train_size: int, batch_size: int, epochs: int) -> int:
    """``ceil(train_size / batch_size) * epochs``."""
    return batches_per_epoch(train_size, batch_size) * epochs


def check_run(
    model: ConvClassificationModel, config: TrainingConfig, dataset: Dataset
) -> tuple[int, int]:
    """Validate a run before it starts; return (train, validation) sizes.

    Raises:
        ConfigurationError: The model is already training, the dataset does
            not match the model's input/output shape, or the training prefix
            cannot fill one batch.
    """
    if model.fit_in_progress:
        raise ConfigurationError("Model is already being trained by another run")
    if dataset.num_examples == 0:
        raise ConfigurationError("Training dataset is empty")
    if dataset.image_shape != model.image_shape:
        raise ConfigurationError(
            f"Dataset images are {dataset.image_shape} (H, W, C) but the model "
            f"expects {model.image_shape}"
        )
    if dataset.num_classes != model.num_classes:
        raise ConfigurationError(
            f"Dataset has {dataset.num_classes} classes but the model outputs "
            f"{model.num_classes}"
        )

    train_size, val_size = split_sizes(dataset.num_examples, config.validation_split)
    if train_size == 0:
        raise ConfigurationError(
            f"validation_split={config.validation_split} leaves no training examples"
        )
    if config.batch_size > train_size:
        raise ConfigurationError(
            f"batch_size={config.batch_size} exceeds the {train_size} training "
            "examples left after the validation split"
        )
    return train_size, val_size


def train(
    model: ConvClassificationModel,
    config: TrainingConfig,
    dataset: Dataset,
    on_iteration: IterationCallback | None = None,
    presenter: PresentationAdapter | None = None,
    callbacks: Sequence[L.Callback] = (),
    **trainer_kwargs: Any,
) -> float | None:
    """Compile and train ``model`` on ``dataset``.

    Everything after the first ``floor(N * (1 - validation_split))``
    examples is held out for validation at the end of every epoch; the prefix
    is trained on in batches of ``batch_size`` for ``epochs`` passes.
    ``on_iteration`` is called with ``"onBatchEnd"`` every ``callback_stride``
    batches and with ``"onEpochEnd"`` after every epoch.

    Extra keyword arguments are forwarded to ``lightning.Trainer`` (e.g.
    ``accelerator="cpu"``).

    Returns:
        Validation accuracy of the final epoch, or ``None`` when
        ``validation_split`` is 0.
    """
    train_size, val_size = check_run(model, config, dataset)
    total_batches = total_expected_batches(train_size, config.batch_size, config.epochs)
    logger.info(
        f"Training {config.epochs} epochs: train={train_size}, val={val_size}, "
        f"batch_size={config.batch_size}, total_batches={total_batches}"
    )
    if presenter is not None:
        presenter.log_status("Training model...")

    model.configure_training(config)
    datamodule = SplitDataModule(dataset, config)
    progress = ProgressCallback(
        total_batches=total_batches,
        should_fire=stride_predicate(config.callback_stride),
        on_iteration=on_iteration,
        presenter=presenter,
        validate=val_size > 0,
    )

    options: dict[str, Any] = {
        "accelerator": "auto",
        "logger": False,
        "enable_checkpointing": False,
        "enable_progress_bar": False,
        "enable_model_summary": False,
    }
    options.update(trainer_kwargs)
    trainer = L.Trainer(
        **options,
        max_epochs=config.epochs,
        num_sanity_val_steps=0,
        limit_val_batches=1.0 if val_size > 0 else 0,
        callbacks=[progress, *callbacks],
    )

    model.fit_in_progress = True
    try:
        trainer.fit(model, datamodule=datamodule)
    finally:
        model.fit_in_progress = False

    logger.info(f"Training finished: final val_acc={progress.last_val_accuracy}")
    return progress.last_val_accuracy
