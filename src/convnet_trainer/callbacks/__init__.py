"""Training callbacks for convnet_trainer."""

from convnet_trainer.callbacks.model_info import ModelInfoCallback
from convnet_trainer.callbacks.progress import ProgressCallback, stride_predicate

__all__ = [
    "ModelInfoCallback",
    "ProgressCallback",
    "stride_predicate",
]
