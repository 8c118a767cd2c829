"""Tests for ModelInfoCallback."""

from __future__ import annotations

from collections.abc import Iterator
from unittest.mock import MagicMock

import pytest
import torch.nn as nn
from loguru import logger

from convnet_trainer.callbacks import ModelInfoCallback
from convnet_trainer.models.convnet import ConvClassificationModel


@pytest.fixture()
def log_messages() -> Iterator[list[str]]:
    messages: list[str] = []
    handler_id = logger.add(lambda m: messages.append(str(m)), level="INFO")
    yield messages
    logger.remove(handler_id)


class TestModelInfoCallback:
    def test_reports_parameter_totals(
        self, tiny_model: ConvClassificationModel, log_messages: list[str]
    ) -> None:
        ModelInfoCallback().on_fit_start(MagicMock(), tiny_model)

        total = sum(p.numel() for p in tiny_model.parameters())
        summary = [m for m in log_messages if "Params:" in m]
        assert len(summary) == 1
        assert f"{total:,}" in summary[0]
        assert "ConvClassificationModel" in summary[0]

    def test_layer_rows_printed(
        self,
        tiny_model: ConvClassificationModel,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        ModelInfoCallback().on_fit_start(MagicMock(), tiny_model)
        out = capsys.readouterr().out
        assert "conv2d_0" in out
        assert "Total" in out

    def test_plain_module_gets_totals_only(self, log_messages: list[str]) -> None:
        module = MagicMock()
        module.parameters.side_effect = lambda: nn.Linear(4, 2).parameters()
        ModelInfoCallback().on_fit_start(MagicMock(), module)
        assert any("Params: 10 (10 trainable)" in m for m in log_messages)
