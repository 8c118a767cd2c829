"""Progress events and evaluation results.

Both are frozen value objects: produced once, consumed by the presentation
layer, never mutated.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field


class ProgressPhase(str, Enum):
    BATCH_END = "batch_end"
    EPOCH_END = "epoch_end"


class ProgressEvent(BaseModel, frozen=True):
    """One training checkpoint.

    ``index`` is the batch index within the epoch for ``BATCH_END`` and the
    epoch index for ``EPOCH_END``. ``step`` is the cumulative number of
    batches completed so far in the run. ``loss``/``accuracy`` are running
    means over the current epoch.
    """

    phase: ProgressPhase
    index: int = Field(ge=0)
    step: int = Field(ge=0)
    fraction_complete: float = Field(ge=0.0, le=1.0)
    loss: float
    accuracy: float
    val_loss: float | None = None
    val_accuracy: float | None = None

    def logs(self) -> dict[str, float]:
        """Metric dict handed to iteration hooks (``loss``, ``acc``, ``val_*``)."""
        logs = {"loss": self.loss, "acc": self.accuracy}
        if self.val_loss is not None:
            logs["val_loss"] = self.val_loss
        if self.val_accuracy is not None:
            logs["val_acc"] = self.val_accuracy
        return logs


class EvaluationResult(BaseModel, frozen=True):
    """Accuracy plus per-example class indices from one evaluation pass."""

    test_accuracy: float = Field(ge=0.0, le=1.0)
    predicted_labels: list[int]
    true_labels: list[int]

    @property
    def num_examples(self) -> int:
        return len(self.true_labels)
