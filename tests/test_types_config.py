"""Unit tests for convnet_trainer.types, convnet_trainer.config and schemas."""

import pytest
import torch
from pydantic import ValidationError

from convnet_trainer.config import MnistDataConfig, TrainingConfig
from convnet_trainer.errors import ConfigurationError
from convnet_trainer.schemas import EvaluationResult, ProgressEvent, ProgressPhase
from convnet_trainer.types import Dataset


class TestTrainingConfig:
    def test_defaults(self) -> None:
        cfg = TrainingConfig()
        assert cfg.optimizer == "rmsprop"
        assert cfg.loss == "categorical_crossentropy"
        assert cfg.metrics == frozenset({"accuracy"})
        assert cfg.batch_size == 320
        assert cfg.validation_split == pytest.approx(0.15)
        assert cfg.epochs == 3
        assert cfg.callback_stride == 10
        assert cfg.shuffle is True

    def test_frozen_raises_on_mutation(self) -> None:
        cfg = TrainingConfig()
        with pytest.raises(ValidationError):
            cfg.batch_size = 64  # type: ignore[misc]

    def test_metrics_accepts_list(self) -> None:
        cfg = TrainingConfig(metrics=["accuracy"])  # type: ignore[arg-type]
        assert cfg.metrics == frozenset({"accuracy"})

    @pytest.mark.parametrize(
        "overrides",
        [
            {"batch_size": 0},
            {"epochs": 0},
            {"validation_split": 1.0},
            {"validation_split": -0.1},
            {"callback_stride": 0},
            {"optimizer": "adagrad"},
            {"loss": "mse"},
            {"metrics": []},
        ],
    )
    def test_invalid_values_rejected(self, overrides: dict[str, object]) -> None:
        with pytest.raises(ConfigurationError):
            TrainingConfig(**overrides)  # type: ignore[arg-type]

    def test_error_names_offending_field(self) -> None:
        with pytest.raises(ConfigurationError, match="batch_size") as exc_info:
            TrainingConfig(batch_size=0)
        assert isinstance(exc_info.value.__cause__, ValidationError)

    def test_missing_accuracy_metric_message(self) -> None:
        with pytest.raises(ConfigurationError, match="accuracy"):
            TrainingConfig(metrics=frozenset())

    def test_zero_validation_split_allowed(self) -> None:
        assert TrainingConfig(validation_split=0.0).validation_split == 0.0


class TestMnistDataConfig:
    def test_defaults(self) -> None:
        cfg = MnistDataConfig(data_root="/data/mnist")
        assert cfg.train_size is None
        assert cfg.test_size is None
        assert cfg.download is True

    def test_rejects_non_positive_sizes(self) -> None:
        with pytest.raises(ConfigurationError):
            MnistDataConfig(data_root="/data/mnist", train_size=0)


class TestDataset:
    def test_shape_properties(self) -> None:
        ds = Dataset(torch.zeros(5, 8, 6, 1), torch.eye(4)[[0, 1, 2, 3, 0]])
        assert ds.num_examples == 5
        assert len(ds) == 5
        assert ds.image_shape == (8, 6, 1)
        assert ds.num_classes == 4

    def test_mismatched_lengths_rejected(self) -> None:
        with pytest.raises(ConfigurationError, match="examples"):
            Dataset(torch.zeros(5, 8, 8, 1), torch.eye(3)[[0, 1, 2, 0]])

    def test_features_must_be_4d(self) -> None:
        with pytest.raises(ConfigurationError):
            Dataset(torch.zeros(5, 8, 8), torch.eye(3)[[0, 1, 2, 0, 1]])

    def test_labels_must_be_one_hot(self) -> None:
        labels = torch.tensor([[0.5, 0.5], [1.0, 0.0]])
        with pytest.raises(ConfigurationError, match="one-hot"):
            Dataset(torch.zeros(2, 4, 4, 1), labels)

    def test_labels_must_have_single_hot_entry(self) -> None:
        labels = torch.tensor([[1.0, 1.0], [1.0, 0.0]])
        with pytest.raises(ConfigurationError):
            Dataset(torch.zeros(2, 4, 4, 1), labels)

    def test_slice_and_head_keep_order(self) -> None:
        features = torch.arange(6, dtype=torch.float32).view(6, 1, 1, 1)
        ds = Dataset(features, torch.eye(2)[[0, 1, 0, 1, 0, 1]])
        assert ds.slice(2, 5).features.flatten().tolist() == [2.0, 3.0, 4.0]
        assert ds.head(2).features.flatten().tolist() == [0.0, 1.0]

    def test_class_indices(self) -> None:
        ds = Dataset(torch.zeros(3, 2, 2, 1), torch.eye(3)[[2, 0, 1]])
        assert ds.class_indices().tolist() == [2, 0, 1]

    def test_frozen(self) -> None:
        ds = Dataset(torch.zeros(1, 2, 2, 1), torch.eye(2)[[0]])
        with pytest.raises(AttributeError):
            ds.features = torch.zeros(1, 2, 2, 1)  # type: ignore[misc]


class TestProgressEvent:
    def test_batch_logs_have_no_validation_keys(self) -> None:
        event = ProgressEvent(
            phase=ProgressPhase.BATCH_END,
            index=0,
            step=1,
            fraction_complete=0.0625,
            loss=2.3,
            accuracy=0.1,
        )
        assert event.logs() == {"loss": 2.3, "acc": 0.1}

    def test_epoch_logs_include_validation(self) -> None:
        event = ProgressEvent(
            phase=ProgressPhase.EPOCH_END,
            index=1,
            step=16,
            fraction_complete=1.0,
            loss=0.5,
            accuracy=0.8,
            val_loss=0.6,
            val_accuracy=0.75,
        )
        assert event.logs()["val_loss"] == pytest.approx(0.6)
        assert event.logs()["val_acc"] == pytest.approx(0.75)

    def test_fraction_bounded(self) -> None:
        with pytest.raises(ValidationError):
            ProgressEvent(
                phase=ProgressPhase.BATCH_END,
                index=0,
                step=1,
                fraction_complete=1.5,
                loss=0.0,
                accuracy=0.0,
            )


class TestEvaluationResult:
    def test_num_examples(self) -> None:
        result = EvaluationResult(
            test_accuracy=0.5, predicted_labels=[0, 1], true_labels=[0, 0]
        )
        assert result.num_examples == 2
