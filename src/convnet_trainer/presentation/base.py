"""Presentation adapter protocol: the sink for status text, charts and results."""

from __future__ import annotations

from collections.abc import Callable, Sequence
from typing import Any, Protocol, runtime_checkable

from convnet_trainer.types import Dataset


@runtime_checkable
class PresentationAdapter(Protocol):
    """Receives training events and renders them. Nothing is returned to the core
    apart from ``get_train_epochs``.

    ``next_frame`` is the cooperative yield point: the trainer calls it after
    every batch and epoch checkpoint, before starting the next batch.
    """

    def log_status(self, text: str) -> None: ...

    def plot_loss(self, step: int, value: float, series: str) -> None: ...

    def plot_accuracy(self, step: int, value: float, series: str) -> None: ...

    def show_test_results(
        self,
        examples: Dataset,
        predicted_labels: Sequence[int],
        true_labels: Sequence[int],
    ) -> None: ...

    def get_train_epochs(self) -> int: ...

    def set_train_button_callback(self, callback: Callable[[], Any]) -> None: ...

    def click_train(self) -> Any:
        """Press the train button and return what the registered callback returns."""
        ...

    def next_frame(self) -> None: ...

    def close(self) -> None:
        """Flush pending output; called once when the application exits."""
        ...
