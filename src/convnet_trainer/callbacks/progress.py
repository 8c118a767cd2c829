"""Progress callback: turns Lightning hooks into ordered ProgressEvents."""

from __future__ import annotations

import math
from collections.abc import Callable
from typing import Any

import lightning as L
import torch
from loguru import logger

from convnet_trainer.errors import NumericInstabilityError
from convnet_trainer.presentation.base import PresentationAdapter
from convnet_trainer.schemas.events import ProgressEvent, ProgressPhase
from convnet_trainer.types import IterationCallback


def stride_predicate(stride: int) -> Callable[[int], bool]:
    """True for batch indices ``0, stride, 2 * stride, ...``."""
    if stride <= 0:
        raise ValueError(f"stride must be positive, got {stride}")
    return lambda batch_idx: batch_idx % stride == 0


def _to_float(value: Any) -> float:
    if isinstance(value, torch.Tensor):
        return float(value.detach().cpu().item())
    return float(value)


class ProgressCallback(L.Callback):
    """Emit a ``BATCH_END`` event after every batch and an ``EPOCH_END`` event
    after every epoch, in order, on the training thread.

    For each checkpoint the callback, in this order: records the event,
    forwards status text and chart points to the presenter, invokes the
    ``on_iteration`` hook (``"onBatchEnd"`` on batch indices accepted by
    ``should_fire``; ``"onEpochEnd"`` always), then calls
    ``presenter.next_frame()`` to let the host render before the next batch.

    A non-finite running loss raises :class:`NumericInstabilityError`, which
    aborts the fit.

    Args:
        total_batches: Expected number of batches over the whole run.
        should_fire: Predicate on the within-epoch batch index.
        on_iteration: Optional ``(event_type, index, logs)`` hook.
        presenter: Optional presentation adapter.
        validate: Whether validation metrics are produced each epoch.
    """

    def __init__(
        self,
        total_batches: int,
        should_fire: Callable[[int], bool] | None = None,
        on_iteration: IterationCallback | None = None,
        presenter: PresentationAdapter | None = None,
        validate: bool = True,
    ) -> None:
        super().__init__()
        self.total_batches = total_batches
        self.should_fire = should_fire or stride_predicate(10)
        self.on_iteration = on_iteration
        self.presenter = presenter
        self.validate = validate

        self.events: list[ProgressEvent] = []
        self.batch_count = 0
        self.last_val_accuracy: float | None = None
        self._last_loss = math.nan
        self._last_acc = math.nan

    def on_train_batch_end(
        self,
        trainer: L.Trainer,
        pl_module: L.LightningModule,
        outputs: Any,
        batch: Any,
        batch_idx: int,
    ) -> None:
        """Report running loss/accuracy and fire the strided iteration hook."""
        self.batch_count += 1
        batch_loss = _to_float(outputs["loss"])
        loss = _to_float(outputs["running_loss"])
        acc = _to_float(outputs["running_acc"])
        if not (math.isfinite(batch_loss) and math.isfinite(loss)):
            raise NumericInstabilityError(
                f"Training loss became {batch_loss} at batch {batch_idx} "
                f"of epoch {trainer.current_epoch}"
            )
        self._last_loss, self._last_acc = loss, acc

        event = ProgressEvent(
            phase=ProgressPhase.BATCH_END,
            index=batch_idx,
            step=self.batch_count,
            fraction_complete=min(self.batch_count / self.total_batches, 1.0),
            loss=loss,
            accuracy=acc,
        )
        self.events.append(event)

        if self.presenter is not None:
            self.presenter.log_status(
                f"Training... ({event.fraction_complete * 100:.1f}% complete)."
            )
            self.presenter.plot_loss(event.step, loss, "train")
            self.presenter.plot_accuracy(event.step, acc, "train")
        if self.on_iteration is not None and self.should_fire(batch_idx):
            self.on_iteration("onBatchEnd", batch_idx, event.logs())
        if self.presenter is not None:
            self.presenter.next_frame()

    def on_train_epoch_end(
        self, trainer: L.Trainer, pl_module: L.LightningModule
    ) -> None:
        """Report validation metrics; runs after the epoch's validation pass."""
        epoch = trainer.current_epoch
        val_loss: float | None = None
        val_acc: float | None = None
        if self.validate:
            metrics = trainer.callback_metrics
            if "val/loss" in metrics and "val/acc" in metrics:
                val_loss = _to_float(metrics["val/loss"])
                val_acc = _to_float(metrics["val/acc"])
            else:
                logger.warning(f"No validation metrics found for epoch {epoch}")
        self.last_val_accuracy = val_acc

        event = ProgressEvent(
            phase=ProgressPhase.EPOCH_END,
            index=epoch,
            step=self.batch_count,
            fraction_complete=min(self.batch_count / self.total_batches, 1.0),
            loss=self._last_loss,
            accuracy=self._last_acc,
            val_loss=val_loss,
            val_accuracy=val_acc,
        )
        self.events.append(event)
        logger.info(
            f"Epoch {epoch}: loss={event.loss:.4f} acc={event.accuracy:.4f} "
            f"val_loss={val_loss} val_acc={val_acc}"
        )

        if self.presenter is not None and val_loss is not None and val_acc is not None:
            self.presenter.plot_loss(self.batch_count, val_loss, "validation")
            self.presenter.plot_accuracy(self.batch_count, val_acc, "validation")
        if self.on_iteration is not None:
            self.on_iteration("onEpochEnd", epoch, event.logs())
        if self.presenter is not None:
            self.presenter.next_frame()
