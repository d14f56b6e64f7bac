"""Dispatchr package exports.

Keep package import lightweight by lazily importing modules.
"""

from typing import TYPE_CHECKING, Any

__version__ = "0.3.0"

if TYPE_CHECKING:
    from .core.settings import Settings
    from .routing.orchestrator import FallbackOrchestrator

__all__ = [
    "CallableProvider",
    "Capabilities",
    "Feature",
    "FallbackOrchestrator",
    "ProviderResult",
    "RequestDescriptor",
    "Settings",
    "Strategy",
    "build_dispatcher",
    "get_settings",
]

_EXPORTS = {
    "CallableProvider": "dispatchr.providers.callable_provider",
    "Capabilities": "dispatchr.providers.base",
    "Feature": "dispatchr.providers.base",
    "ProviderResult": "dispatchr.providers.base",
    "FallbackOrchestrator": "dispatchr.routing.orchestrator",
    "build_dispatcher": "dispatchr.routing.orchestrator",
    "RequestDescriptor": "dispatchr.routing.models",
    "Strategy": "dispatchr.routing.models",
    "Settings": "dispatchr.core.settings",
    "get_settings": "dispatchr.core.settings",
}


def __getattr__(name: str) -> Any:
    """Lazily resolve top-level exports."""
    module_name = _EXPORTS.get(name)
    if module_name is None:
        raise AttributeError(f"module {__name__!r} has no attribute {name!r}")

    import importlib

    return getattr(importlib.import_module(module_name), name)
