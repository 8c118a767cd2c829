"""Pydantic frozen configuration models for convnet_trainer."""

from typing import Any, Literal

from pydantic import BaseModel, Field, ValidationError, model_validator

from convnet_trainer.errors import ConfigurationError

OptimizerKind = Literal["rmsprop", "adam", "sgd"]
LossKind = Literal["categorical_crossentropy"]
MetricKind = Literal["accuracy"]


class _FrozenConfig(BaseModel, frozen=True):
    """Frozen model whose construction errors surface as ConfigurationError."""

    def __init__(self, **data: Any) -> None:
        try:
            super().__init__(**data)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid {type(self).__name__}: {e}") from e


class TrainingConfig(_FrozenConfig):
    """Hyperparameters for one training run.

    All fields are validated at construction time and any violation raises
    :class:`ConfigurationError`. Frozen: no mutation after creation.

    ``validation_split`` holds out the *last* fraction of the training examples
    (in dataset order). ``callback_stride`` controls how often the
    ``onBatchEnd`` iteration hook fires within an epoch.
    """

    optimizer: OptimizerKind = "rmsprop"
    loss: LossKind = "categorical_crossentropy"
    metrics: frozenset[MetricKind] = frozenset({"accuracy"})
    batch_size: int = Field(default=320, gt=0)
    validation_split: float = Field(default=0.15, ge=0.0, lt=1.0)
    epochs: int = Field(default=3, gt=0)
    callback_stride: int = Field(default=10, gt=0)
    shuffle: bool = True

    @model_validator(mode="after")
    def _accuracy_is_tracked(self) -> "TrainingConfig":
        """Progress events always report accuracy, so the metric is mandatory."""
        if "accuracy" not in self.metrics:
            raise ConfigurationError("metrics must include 'accuracy'")
        return self


class MnistDataConfig(_FrozenConfig):
    """Configuration for MnistDataProvider.

    ``train_size`` / ``test_size`` truncate the splits to their first N
    examples; ``None`` keeps the whole split.
    """

    data_root: str
    train_size: int | None = Field(default=None, gt=0)
    test_size: int | None = Field(default=None, gt=0)
    download: bool = True
