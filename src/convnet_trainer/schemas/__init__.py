"""Value objects exchanged between the trainer, evaluator and presentation."""

from convnet_trainer.schemas.events import (
    EvaluationResult,
    ProgressEvent,
    ProgressPhase,
)

__all__ = [
    "EvaluationResult",
    "ProgressEvent",
    "ProgressPhase",
]
