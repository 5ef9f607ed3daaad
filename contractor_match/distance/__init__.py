"""Distance provider registry with lazy loading.

Usage:
    from contractor_match.distance import get_provider

    provider = get_provider("haversine")
    miles = provider.distance_miles(origin, destination)

Long-lived callers use get_shared_provider(config) so a routing provider's
cache and HTTP session are reused across requests.
"""

from __future__ import annotations

import importlib
import logging

from contractor_match.core.config import DistanceConfig
from contractor_match.distance.base import DistanceProvider, haversine_miles

__all__ = [
    "DistanceProvider",
    "available_providers",
    "close_shared_providers",
    "get_provider",
    "get_shared_provider",
    "haversine_miles",
]

logger = logging.getLogger(__name__)

# Lazy registry: maps provider name -> (module_path, class_name)
_REGISTRY: dict[str, tuple[str, str]] = {
    "haversine": ("contractor_match.distance.haversine", "HaversineProvider"),
    "openrouteservice": ("contractor_match.distance.openroute", "OpenRouteServiceProvider"),
}

# One instance per distinct DistanceConfig, keyed by its JSON dump.
_SHARED: dict[str, DistanceProvider] = {}


def get_provider(name: str, config: DistanceConfig | None = None) -> DistanceProvider:
    """Instantiate and return a distance provider by name.

    Args:
        name: Provider identifier (haversine, openrouteservice).
        config: Distance settings; only used by providers that call out.

    Returns:
        A new DistanceProvider instance.

    Raises:
        ValueError: If the provider name is unknown.
    """
    if name not in _REGISTRY:
        valid = ", ".join(sorted(_REGISTRY))
        msg = f"Unknown distance provider '{name}'. Available: {valid}"
        raise ValueError(msg)

    module_path, class_name = _REGISTRY[name]
    module = importlib.import_module(module_path)
    cls = getattr(module, class_name)
    if name == "openrouteservice":
        return cls(config)  # type: ignore[no-any-return]
    return cls()  # type: ignore[no-any-return]


def get_shared_provider(config: DistanceConfig) -> DistanceProvider:
    """Return the process-wide provider for these settings, building it on first use."""
    key = config.model_dump_json()
    provider = _SHARED.get(key)
    if provider is None:
        provider = get_provider(config.provider, config)
        _SHARED[key] = provider
        logger.debug("Created shared %s distance provider", provider.provider_id)
    return provider


def close_shared_providers() -> None:
    """Close and forget every shared provider."""
    while _SHARED:
        _, provider = _SHARED.popitem()
        provider.close()


def available_providers() -> list[str]:
    """Return sorted list of registered provider names."""
    return sorted(_REGISTRY)
