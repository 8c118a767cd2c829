"""Console presentation: loguru status lines, rich tables, matplotlib PNG charts."""

from __future__ import annotations

from collections.abc import Callable, Sequence
from pathlib import Path
from typing import Any

import matplotlib
import matplotlib.pyplot as plt
from loguru import logger
from rich import box
from rich.console import Console
from rich.table import Table

from convnet_trainer.types import Dataset
from convnet_trainer.utils.hydra import register


@register(group="presentation", name="console")
class ConsolePresentation:
    """Render training progress to the terminal and to PNG files.

    Loss/accuracy points are buffered per series and the two charts
    (``loss_history.png`` and ``accuracy_history.png`` under
    ``output_dir/training_history``) are redrawn from ``next_frame`` at most
    once every ``redraw_every`` steps, plus once when :meth:`close` is called.

    Args:
        output_dir: Root directory for saved charts and prediction grids.
        train_epochs: Value reported by :meth:`get_train_epochs`.
        redraw_every: Minimum number of steps between chart redraws.
        max_grid_examples: Cap on images drawn in the test-results grid.
    """

    def __init__(
        self,
        output_dir: str = "outputs",
        train_epochs: int = 3,
        redraw_every: int = 10,
        max_grid_examples: int = 16,
    ) -> None:
        self.output_dir = Path(output_dir)
        self._train_epochs = train_epochs
        self._redraw_every = redraw_every
        self._max_grid_examples = max_grid_examples
        self.status = ""
        self.history: dict[str, dict[str, list[tuple[int, float]]]] = {
            "loss": {},
            "accuracy": {},
        }
        self._last_step = 0
        self._last_drawn_step: int | None = None
        self._dirty = False
        self._train_callback: Callable[[], Any] | None = None
        self._console = Console()

    # ------------------------------------------------------------------
    # Status and charts
    # ------------------------------------------------------------------

    def log_status(self, text: str) -> None:
        self.status = text
        logger.info(text)

    def plot_loss(self, step: int, value: float, series: str) -> None:
        self._record("loss", step, value, series)

    def plot_accuracy(self, step: int, value: float, series: str) -> None:
        self._record("accuracy", step, value, series)

    def _record(self, metric: str, step: int, value: float, series: str) -> None:
        self.history[metric].setdefault(series, []).append((step, value))
        self._last_step = max(self._last_step, step)
        self._dirty = True

    def next_frame(self) -> None:
        """Redraw charts when enough new steps have accumulated."""
        if not self._dirty:
            return
        if (
            self._last_drawn_step is not None
            and self._last_step - self._last_drawn_step < self._redraw_every
        ):
            return
        self._draw_history()

    def close(self) -> None:
        """Flush any pending chart updates."""
        if self._dirty:
            self._draw_history()

    def _draw_history(self) -> None:
        try:
            self._plot_metrics()
        except Exception as e:
            logger.error(f"Failed to plot training history: {e}")
        self._last_drawn_step = self._last_step
        self._dirty = False

    def _plot_metrics(self) -> None:
        """Draw and save loss + accuracy plots."""
        matplotlib.use("Agg")
        save_dir = self.output_dir / "training_history"
        save_dir.mkdir(parents=True, exist_ok=True)

        for metric, title in [("loss", "Loss"), ("accuracy", "Accuracy")]:
            fig, ax = plt.subplots(figsize=(10, 6))
            for series, points in self.history[metric].items():
                steps = [step for step, _ in points]
                values = [value for _, value in points]
                marker = "s" if series == "validation" else None
                ax.plot(steps, values, label=series, marker=marker)
            ax.set_title(title)
            ax.set_xlabel("Batch")
            ax.set_ylabel(title)
            ax.legend()
            ax.grid(True, linestyle="--", alpha=0.7)
            fig.tight_layout()
            fig.savefig(save_dir / f"{metric}_history.png", dpi=100)
            plt.close(fig)

        logger.debug(f"Training history plots updated in {save_dir}")

    # ------------------------------------------------------------------
    # Test results
    # ------------------------------------------------------------------

    def show_test_results(
        self,
        examples: Dataset,
        predicted_labels: Sequence[int],
        true_labels: Sequence[int],
    ) -> None:
        """Print a prediction table and save a color-coded image grid."""
        correct = sum(p == t for p, t in zip(predicted_labels, true_labels))
        total = len(true_labels)

        table = Table(
            title=f"Test Predictions ({correct}/{total} correct)",
            header_style="bold magenta",
            box=box.SQUARE,
        )
        table.add_column("Example", justify="right")
        table.add_column("Predicted", justify="right", style="cyan")
        table.add_column("True", justify="right", style="green")
        for i, (pred, true) in enumerate(zip(predicted_labels, true_labels)):
            if pred != true:
                table.add_row(str(i), str(pred), str(true), style="red")
        if table.row_count:
            self._console.print(table)
        logger.info(f"Test predictions: {correct}/{total} correct")

        try:
            self._plot_grid(examples, predicted_labels, true_labels)
        except Exception as e:
            logger.error(f"Failed to save test prediction grid: {e}")

    def _plot_grid(
        self,
        examples: Dataset,
        predicted_labels: Sequence[int],
        true_labels: Sequence[int],
    ) -> None:
        """Render image grid with true/predicted labels."""
        matplotlib.use("Agg")

        n = min(self._max_grid_examples, examples.num_examples)
        if n == 0:
            return
        cols = min(4, n)
        rows = (n + cols - 1) // cols

        fig, axes = plt.subplots(rows, cols, figsize=(2 * cols, 2 * rows), squeeze=False)
        for i in range(rows * cols):
            row, col = divmod(i, cols)
            ax = axes[row][col]
            if i < n:
                image = examples.features[i].detach().cpu().clamp(0, 1).numpy()
                if image.shape[-1] == 1:
                    ax.imshow(image[..., 0], cmap="gray")
                else:
                    ax.imshow(image)
                color = "green" if predicted_labels[i] == true_labels[i] else "red"
                ax.set_title(
                    f"True: {true_labels[i]}\nPred: {predicted_labels[i]}",
                    fontsize=8,
                    color=color,
                )
            else:
                ax.set_visible(False)
            ax.set_xticks([])
            ax.set_yticks([])

        fig.tight_layout()
        self.output_dir.mkdir(parents=True, exist_ok=True)
        save_path = self.output_dir / "test_predictions.png"
        fig.savefig(save_path, dpi=100)
        plt.close(fig)
        logger.debug(f"Test predictions saved to {save_path}")

    # ------------------------------------------------------------------
    # Controls
    # ------------------------------------------------------------------

    def get_train_epochs(self) -> int:
        return self._train_epochs

    def set_train_button_callback(self, callback: Callable[[], Any]) -> None:
        self._train_callback = callback

    def click_train(self) -> Any:
        """Invoke the registered train callback, as pressing the button would."""
        if self._train_callback is None:
            raise RuntimeError("No train callback registered")
        return self._train_callback()
