"""Evaluation: one gradient-free pass producing accuracy and per-example labels."""

from __future__ import annotations

import torch
from loguru import logger

from convnet_trainer.data.provider import DatasetProvider
from convnet_trainer.errors import ConfigurationError
from convnet_trainer.models.convnet import ConvClassificationModel
from convnet_trainer.presentation.base import PresentationAdapter
from convnet_trainer.schemas.events import EvaluationResult
from convnet_trainer.types import Dataset


def evaluate(
    model: ConvClassificationModel,
    test_data: Dataset,
    batch_size: int | None = None,
) -> EvaluationResult:
    """Predict every example of ``test_data`` and compare with its label.

    Runs in eval mode (dropout disabled) under ``torch.no_grad``; the
    model's previous train/eval mode is restored afterwards. Predictions
    are read back to Python lists inside the no-grad scope so no tensors
    outlive the call.

    Args:
        model: Trained model.
        test_data: Examples to classify; must be non-empty.
        batch_size: Forward in chunks of this size; ``None`` means one pass.
    """
    if test_data.num_examples == 0:
        raise ConfigurationError("Cannot evaluate on an empty dataset")

    was_training = model.training
    model.eval()
    try:
        with torch.no_grad():
            features = test_data.features.to(model.device)
            chunk = batch_size or test_data.num_examples
            predicted: list[int] = []
            for start in range(0, test_data.num_examples, chunk):
                probs = model(features[start : start + chunk])
                predicted.extend(probs.argmax(dim=1).cpu().tolist())
            true: list[int] = test_data.class_indices().tolist()
    finally:
        model.train(was_training)

    correct = sum(p == t for p, t in zip(predicted, true))
    accuracy = correct / len(true)
    logger.debug(f"Evaluated {len(true)} examples: accuracy={accuracy:.4f}")
    return EvaluationResult(
        test_accuracy=accuracy, predicted_labels=predicted, true_labels=true
    )


def show_predictions(
    model: ConvClassificationModel,
    provider: DatasetProvider,
    presenter: PresentationAdapter,
    num_examples: int = 100,
) -> EvaluationResult:
    """Classify the first ``num_examples`` test examples and display them."""
    examples = provider.get_test_data(num_examples)
    result = evaluate(model, examples)
    presenter.show_test_results(examples, result.predicted_labels, result.true_labels)
    return result
