"""Convolutional image classifier training with live progress reporting."""

__version__ = "0.0.1"
