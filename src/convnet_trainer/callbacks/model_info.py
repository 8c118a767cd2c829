"""Model info callback: prints a per-layer summary at training start."""

from __future__ import annotations

import lightning as L
from loguru import logger
from rich import box
from rich.console import Console
from rich.table import Table

from convnet_trainer.models.convnet import ConvClassificationModel


class ModelInfoCallback(L.Callback):
    """Compute and display model statistics at training start.

    For a :class:`ConvClassificationModel` the table lists every layer with
    its output shape and parameter count. Totals (parameters, trainable
    parameters, size in MB) are reported for any module.
    """

    def on_fit_start(
        self, trainer: L.Trainer, pl_module: L.LightningModule
    ) -> None:
        """Compute model stats and print the summary table."""
        total_params = sum(p.numel() for p in pl_module.parameters())
        trainable_params = sum(
            p.numel() for p in pl_module.parameters() if p.requires_grad
        )
        param_size = sum(
            p.numel() * p.element_size() for p in pl_module.parameters()
        )
        model_size_mb = param_size / (1024 * 1024)

        console = Console()
        table = Table(
            title=f"Model Summary: {type(pl_module).__name__}",
            header_style="bold magenta",
            box=box.SQUARE,
            show_lines=True,
        )
        table.add_column("Layer", style="cyan")
        table.add_column("Output Shape", justify="right")
        table.add_column("Params", justify="right", style="green")

        if isinstance(pl_module, ConvClassificationModel):
            for row in pl_module.summary():
                table.add_row(row.name, str(row.output_shape), f"{row.num_params:,}")
        table.add_row("Total", "", f"{total_params:,}")

        console.print(table)

        logger.info(
            f"Model: {type(pl_module).__name__} | "
            f"Params: {total_params:,} ({trainable_params:,} trainable) | "
            f"Size: {model_size_mb:.2f} MB"
        )
