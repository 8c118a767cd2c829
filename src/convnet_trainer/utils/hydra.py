"""Expose classes as Hydra config-group options.

A class decorated with ``@register(group="model", name="convnet")`` becomes
selectable from a defaults list (``- model: convnet``); the YAML then only
supplies constructor arguments and ``hydra.utils.instantiate`` builds it.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any, TypeVar

from hydra.core.config_store import ConfigStore
from loguru import logger

from convnet_trainer.errors import ConfigurationError

T = TypeVar("T", bound=type)


def registered(group: str) -> dict[str, str]:
    """Option name -> ``_target_`` path for every class stored under ``group``."""
    entries = ConfigStore.instance().repo.get(group, {})
    return {
        filename.removesuffix(".yaml"): entry.node["_target_"]
        for filename, entry in entries.items()
        if "_target_" in entry.node
    }


def register(*, group: str, name: str, **defaults: Any) -> Callable[[T], T]:
    """Store ``{"_target_": "<module>.<Class>", **defaults}`` as ``group/name``.

    Re-registering the same class is a no-op; claiming a name already bound
    to a different class raises :class:`ConfigurationError`.
    """

    def _store(target_cls: T) -> T:
        target = f"{target_cls.__module__}.{target_cls.__qualname__}"
        existing = registered(group).get(name)
        if existing is not None and existing != target:
            raise ConfigurationError(
                f"Config option '{group}/{name}' already points to {existing}"
            )
        ConfigStore.instance().store(
            group=group, name=name, node={"_target_": target, **defaults}
        )
        logger.debug(f"Registered {target} as {group}/{name}")
        return target_cls

    return _store
