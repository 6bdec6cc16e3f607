"""Inventory source registry and factory."""

from __future__ import annotations

from typing import Any, Callable

from netpath.controller.base import BaseInventorySource

_SOURCE_REGISTRY: dict[str, type[BaseInventorySource]] = {}


def register_source(name: str) -> Callable[[type[BaseInventorySource]], type[BaseInventorySource]]:
    """Decorator to register an inventory source class.

    Usage::

        @register_source("unifi")
        class UniFiRESTTransport(BaseInventorySource):
            ...
    """

    def decorator(cls: type[BaseInventorySource]) -> type[BaseInventorySource]:
        _SOURCE_REGISTRY[name.lower()] = cls
        return cls

    return decorator


def create_source(kind: str, **kwargs: Any) -> BaseInventorySource:
    """Create an inventory source of the given kind.

    Args:
        kind: Source name (e.g. "unifi", "json").
        **kwargs: Source-specific keyword arguments.

    Raises:
        ValueError: If the source kind is not registered.
    """
    kind_lower = kind.lower()
    if kind_lower not in _SOURCE_REGISTRY:
        available = ", ".join(sorted(_SOURCE_REGISTRY.keys()))
        raise ValueError(f"Unknown inventory source '{kind}'. Available: {available}")

    cls = _SOURCE_REGISTRY[kind_lower]
    return cls(**kwargs)


def list_sources() -> list[str]:
    """Return a sorted list of registered source names."""
    return sorted(_SOURCE_REGISTRY.keys())
