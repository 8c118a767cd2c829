"""Classification model implementations."""

from convnet_trainer.models.convnet import ConvClassificationModel, create_conv_model
from convnet_trainer.models.layers import (
    Conv2DSpec,
    DenseSpec,
    DropoutSpec,
    FlattenSpec,
    LayerSpec,
    LayerSummary,
    MaxPool2DSpec,
    build_layers,
    conv_architecture,
    parse_layer_specs,
    summarize_layers,
)

__all__ = [
    "Conv2DSpec",
    "ConvClassificationModel",
    "DenseSpec",
    "DropoutSpec",
    "FlattenSpec",
    "LayerSpec",
    "LayerSummary",
    "MaxPool2DSpec",
    "build_layers",
    "conv_architecture",
    "create_conv_model",
    "parse_layer_specs",
    "summarize_layers",
]
