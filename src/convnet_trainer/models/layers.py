"""Layer specifications and the builder that turns them into torch modules.

Each layer kind is a frozen pydantic model tagged by ``kind``; a model
architecture is an ordered list of them. :func:`build_layers` walks the list
while tracking the feature-map shape, so every layer's input size (channel
count, flattened width) is inferred from the layer before it rather than
declared.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping, Sequence
from typing import Annotated, Literal, NamedTuple, Union

import torch.nn as nn
from pydantic import BaseModel, Field, TypeAdapter

from convnet_trainer.errors import ConfigurationError

Activation = Literal["relu", "softmax", "linear"]


class Conv2DSpec(BaseModel, frozen=True):
    kind: Literal["conv2d"] = "conv2d"
    filters: int = Field(gt=0)
    kernel_size: int = Field(gt=0)
    strides: int = Field(default=1, gt=0)
    activation: Activation = "relu"


class MaxPool2DSpec(BaseModel, frozen=True):
    kind: Literal["max_pool2d"] = "max_pool2d"
    pool_size: int = Field(default=2, gt=0)
    strides: int = Field(default=2, gt=0)


class FlattenSpec(BaseModel, frozen=True):
    kind: Literal["flatten"] = "flatten"


class DenseSpec(BaseModel, frozen=True):
    kind: Literal["dense"] = "dense"
    units: int = Field(gt=0)
    activation: Activation = "linear"


class DropoutSpec(BaseModel, frozen=True):
    """Zeroes a ``rate`` fraction of activations in training mode only."""

    kind: Literal["dropout"] = "dropout"
    rate: float = Field(ge=0.0, lt=1.0)


LayerSpec = Annotated[
    Union[Conv2DSpec, MaxPool2DSpec, FlattenSpec, DenseSpec, DropoutSpec],
    Field(discriminator="kind"),
]

_LAYER_LIST = TypeAdapter(list[LayerSpec])


class LayerSummary(NamedTuple):
    """One row of a model summary."""

    name: str
    output_shape: tuple[int, ...]
    num_params: int


def conv_architecture(num_classes: int) -> list[LayerSpec]:
    """The fixed two-block convnet used for digit classification."""
    return [
        Conv2DSpec(filters=32, kernel_size=5, activation="relu"),
        MaxPool2DSpec(pool_size=2, strides=2),
        Conv2DSpec(filters=64, kernel_size=5, activation="relu"),
        MaxPool2DSpec(pool_size=2, strides=2),
        FlattenSpec(),
        DenseSpec(units=128, activation="relu"),
        DropoutSpec(rate=0.1),
        DenseSpec(units=num_classes, activation="softmax"),
    ]


def parse_layer_specs(raw: Sequence[Mapping[str, object]]) -> list[LayerSpec]:
    """Validate plain dicts (e.g. from YAML) into layer specs."""
    return _LAYER_LIST.validate_python([dict(item) for item in raw])


def _activation(name: Activation) -> list[nn.Module]:
    if name == "relu":
        return [nn.ReLU()]
    if name == "softmax":
        return [nn.Softmax(dim=1)]
    return []


def _window_output(size: int, window: int, stride: int) -> int:
    # "valid" padding
    return (size - window) // stride + 1


def _build_layer(
    spec: LayerSpec, shape: tuple[int, ...], position: int
) -> tuple[list[nn.Module], tuple[int, ...]]:
    """Return the modules for one spec and the shape they produce."""
    if isinstance(spec, (Conv2DSpec, MaxPool2DSpec)):
        if len(shape) != 3:
            raise ConfigurationError(
                f"Layer {position} ({spec.kind}) needs a (C, H, W) input, got {shape}"
            )
        channels, height, width = shape
        window = spec.kernel_size if isinstance(spec, Conv2DSpec) else spec.pool_size
        out_h = _window_output(height, window, spec.strides)
        out_w = _window_output(width, window, spec.strides)
        if out_h < 1 or out_w < 1:
            raise ConfigurationError(
                f"Layer {position} ({spec.kind}) window {window} does not fit "
                f"a {height}x{width} feature map"
            )
        if isinstance(spec, Conv2DSpec):
            modules: list[nn.Module] = [
                nn.Conv2d(channels, spec.filters, spec.kernel_size, stride=spec.strides)
            ]
            return modules + _activation(spec.activation), (spec.filters, out_h, out_w)
        return [nn.MaxPool2d(spec.pool_size, stride=spec.strides)], (channels, out_h, out_w)

    if isinstance(spec, FlattenSpec):
        width = 1
        for dim in shape:
            width *= dim
        return [nn.Flatten()], (width,)

    if isinstance(spec, DenseSpec):
        if len(shape) != 1:
            raise ConfigurationError(
                f"Layer {position} (dense) needs a flattened input, got {shape}; "
                "add a flatten layer first"
            )
        return [nn.Linear(shape[0], spec.units)] + _activation(spec.activation), (
            spec.units,
        )

    return [nn.Dropout(spec.rate)], shape


def _iter_layers(
    specs: Sequence[LayerSpec], image_shape: tuple[int, int, int]
) -> Iterator[tuple[LayerSpec, list[nn.Module], tuple[int, ...]]]:
    height, width, channels = image_shape
    shape: tuple[int, ...] = (channels, height, width)
    for position, spec in enumerate(specs):
        modules, shape = _build_layer(spec, shape, position)
        yield spec, modules, shape


def build_layers(
    specs: Sequence[LayerSpec], image_shape: tuple[int, int, int]
) -> tuple[nn.Sequential, tuple[int, ...]]:
    """Build a channels-first ``nn.Sequential`` for ``(H, W, C)`` inputs.

    Returns the network and its per-example output shape. Raises
    :class:`ConfigurationError` when a layer cannot accept its input.
    """
    if not specs:
        raise ConfigurationError("A model needs at least one layer")
    modules: list[nn.Module] = []
    shape: tuple[int, ...] = ()
    for _, layer_modules, shape in _iter_layers(specs, image_shape):
        modules.extend(layer_modules)
    return nn.Sequential(*modules), shape


def summarize_layers(
    specs: Sequence[LayerSpec], image_shape: tuple[int, int, int]
) -> list[LayerSummary]:
    """Per-layer output shape and parameter count."""
    rows: list[LayerSummary] = []
    for position, (spec, modules, shape) in enumerate(_iter_layers(specs, image_shape)):
        num_params = sum(p.numel() for m in modules for p in m.parameters())
        rows.append(LayerSummary(f"{spec.kind}_{position}", shape, num_params))
    return rows
