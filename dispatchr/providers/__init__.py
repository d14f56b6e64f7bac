"""Provider abstraction, concrete callable variant and registry."""

from dispatchr.providers.base import (
    Capabilities,
    Feature,
    HealthStatus,
    Provider,
    ProviderError,
    ProviderResult,
    feature_set,
)
from dispatchr.providers.callable_provider import CallableProvider
from dispatchr.providers.registry import ProviderRegistry, load_provider_catalog

__all__ = [
    "CallableProvider",
    "Capabilities",
    "Feature",
    "HealthStatus",
    "Provider",
    "ProviderError",
    "ProviderRegistry",
    "ProviderResult",
    "feature_set",
    "load_provider_catalog",
]
