"""Tests for the loss and optimizer factories."""

from __future__ import annotations

import math

import pytest
import torch

from convnet_trainer.errors import ConfigurationError
from convnet_trainer.losses import CategoricalCrossEntropy, build_loss_fn
from convnet_trainer.optimizers import build_optimizer


class TestCategoricalCrossEntropy:
    def test_negative_log_probability_of_true_class(self) -> None:
        probs = torch.tensor([[0.7, 0.2, 0.1], [0.1, 0.1, 0.8]])
        targets = torch.tensor([[1.0, 0.0, 0.0], [0.0, 0.0, 1.0]])
        loss = CategoricalCrossEntropy()(probs, targets)
        expected = -(math.log(0.7) + math.log(0.8)) / 2
        assert loss.item() == pytest.approx(expected, rel=1e-5)

    def test_zero_probability_is_clipped(self) -> None:
        probs = torch.tensor([[1.0, 0.0]])
        targets = torch.tensor([[0.0, 1.0]])
        loss = CategoricalCrossEntropy(eps=1e-7)(probs, targets)
        assert torch.isfinite(loss)
        assert loss.item() == pytest.approx(-math.log(1e-7), rel=1e-3)

    def test_gradient_flows(self) -> None:
        logits = torch.randn(4, 3, requires_grad=True)
        targets = torch.eye(3)[[0, 1, 2, 0]]
        loss = CategoricalCrossEntropy()(logits.softmax(dim=1), targets)
        loss.backward()
        assert logits.grad is not None
        assert torch.isfinite(logits.grad).all()


class TestFactories:
    def test_build_loss_fn(self) -> None:
        assert isinstance(build_loss_fn("categorical_crossentropy"), CategoricalCrossEntropy)

    def test_unknown_loss_raises(self) -> None:
        with pytest.raises(ConfigurationError, match="Unknown loss"):
            build_loss_fn("hinge")

    @pytest.mark.parametrize(
        ("name", "cls"),
        [
            ("rmsprop", torch.optim.RMSprop),
            ("adam", torch.optim.Adam),
            ("sgd", torch.optim.SGD),
        ],
    )
    def test_build_optimizer(self, name: str, cls: type) -> None:
        params = [torch.nn.Parameter(torch.zeros(2))]
        assert isinstance(build_optimizer(name, params), cls)

    def test_unknown_optimizer_raises(self) -> None:
        with pytest.raises(ConfigurationError, match="Unknown optimizer"):
            build_optimizer("lbfgs", [torch.nn.Parameter(torch.zeros(1))])
