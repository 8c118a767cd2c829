"""Presentation adapters."""

from convnet_trainer.presentation.base import PresentationAdapter
from convnet_trainer.presentation.console import ConsolePresentation

__all__ = [
    "ConsolePresentation",
    "PresentationAdapter",
]
