from __future__ import annotations

import copy
from collections.abc import Mapping
from types import MappingProxyType
from typing import Any, Iterator

from ..errors import ConfigurationError

# Reserved key holding options shared by every label / relationship type.
DEFAULT_CONFIG = "default"

OptionBag = Mapping[str, Any]


def _copy_bag(bag: Any, *, where: str) -> dict[str, Any]:
    if not isinstance(bag, Mapping):
        raise ConfigurationError(f"{where}: option bag must be a mapping, got {type(bag).__name__}")
    return copy.deepcopy(dict(bag))


class EffectiveConfig(Mapping[str, OptionBag]):
    """Merged per-type options, read-only once built.

    Iteration yields only concrete type names; the default bucket is reachable
    through `default` and through `for_type` for types that were never declared.
    """

    __slots__ = ("_default", "_by_type")

    def __init__(self, default: dict[str, Any], by_type: dict[str, dict[str, Any]]):
        self._default = MappingProxyType(default)
        self._by_type = {name: MappingProxyType(bag) for name, bag in by_type.items()}

    @property
    def default(self) -> OptionBag:
        return self._default

    def for_type(self, name: str | None) -> OptionBag:
        if name is not None and name in self._by_type:
            return self._by_type[name]
        # Late merge: an undeclared type gets exactly the default bucket.
        return self._default

    def declares(self, name: str) -> bool:
        return name in self._by_type

    def __getitem__(self, name: str) -> OptionBag:
        return self._by_type[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._by_type)

    def __len__(self) -> int:
        return len(self._by_type)

    def __repr__(self) -> str:
        return f"EffectiveConfig(default={dict(self._default)!r}, types={sorted(self._by_type)!r})"


def merge_entity_config(config: Mapping[str, Any] | None, *, section: str = "labels") -> EffectiveConfig:
    """Merge every concrete entry of `config` over its DEFAULT_CONFIG entry.

    The caller's mapping and everything nested in it is left untouched: each
    resulting bag is a deep copy of `{**default, **specific}`.
    """
    if config is None:
        return EffectiveConfig({}, {})
    if not isinstance(config, Mapping):
        raise ConfigurationError(f"{section}: expected a mapping of type name to options")

    default = _copy_bag(config.get(DEFAULT_CONFIG, {}), where=f"{section}.{DEFAULT_CONFIG}")
    merged: dict[str, dict[str, Any]] = {}
    for name, bag in config.items():
        if name == DEFAULT_CONFIG:
            continue
        specific = _copy_bag(bag, where=f"{section}.{name}")
        merged[str(name)] = {**copy.deepcopy(default), **specific}
    return EffectiveConfig(default, merged)
