"""Provider registry and catalog loading.

The registry is a small read-only collection of providers, fixed after
construction. Lookups are linear scans; registries hold single digits to
low tens of providers.

A catalog file describes providers declaratively:

    providers:
      - name: fast-llm
        cost_per_unit: 0.00001
        cost_per_request: 0.0
        max_units_per_request: 16000
        average_response_time: 0.8
        features: [function_calling, long_context]
        available: true
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, Iterable, Iterator, List, Optional, Union

import yaml

from dispatchr.core.errors import InvalidConfigError, InvalidInputError
from dispatchr.providers.base import Capabilities, Provider
from dispatchr.providers.callable_provider import CallableProvider

logger = logging.getLogger(__name__)


class ProviderRegistry:
    """Read-only collection of providers, queryable by name."""

    def __init__(self, providers: Iterable[Provider] = ()):
        self._providers: List[Provider] = []
        seen = set()
        for provider in providers:
            key = provider.name.lower()
            if key in seen:
                raise InvalidInputError("providers", f"duplicate provider name '{provider.name}'")
            seen.add(key)
            self._providers.append(provider)

    def __len__(self) -> int:
        return len(self._providers)

    def __iter__(self) -> Iterator[Provider]:
        return iter(self._providers)

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and self.get(name) is not None

    @property
    def names(self) -> List[str]:
        return [p.name for p in self._providers]

    def all(self) -> List[Provider]:
        """All registered providers in registration order."""
        return list(self._providers)

    def get(self, name: str) -> Optional[Provider]:
        """Find a provider by exact name, falling back to a case-insensitive match."""
        for provider in self._providers:
            if provider.name == name:
                return provider
        lowered = name.lower()
        for provider in self._providers:
            if provider.name.lower() == lowered:
                return provider
        return None

    def available(self) -> List[Provider]:
        """Providers whose availability check passes.

        A provider whose availability check raises is logged and treated
        as unavailable.
        """
        result = []
        for provider in self._providers:
            try:
                if provider.is_available:
                    result.append(provider)
            except Exception as e:
                logger.warning("Availability check failed for %s: %s", provider.name, e)
        return result


def _provider_from_entry(entry: Dict[str, Any], index: int, source: str) -> CallableProvider:
    if not isinstance(entry, dict):
        raise InvalidConfigError(f"providers[{index}]", entry, f"must be a mapping in {source}")

    name = entry.get("name")
    if not name or not isinstance(name, str):
        raise InvalidConfigError(f"providers[{index}].name", name, "must be a non-empty string")

    try:
        capabilities = Capabilities(
            cost_per_unit=float(entry.get("cost_per_unit", 0.0)),
            cost_per_request=float(entry.get("cost_per_request", 0.0)),
            max_units_per_request=int(entry.get("max_units_per_request", 4096)),
            average_response_time=float(entry.get("average_response_time", 1.0)),
            features=entry.get("features") or (),
        )
    except (TypeError, ValueError) as e:
        raise InvalidConfigError(f"providers[{index}]", name, str(e))

    for key in ("cost_per_unit", "cost_per_request", "max_units_per_request", "average_response_time"):
        if getattr(capabilities, key) < 0:
            raise InvalidConfigError(f"providers[{index}].{key}", getattr(capabilities, key), "must be non-negative")

    return CallableProvider(name, capabilities, available=bool(entry.get("available", True)))


def load_provider_catalog(path: Union[str, Path]) -> List[CallableProvider]:
    """Load provider descriptions from a YAML or JSON catalog.

    Catalog providers carry capabilities only; attach an executor with
    CallableProvider.attach_executor() before dispatching to them.

    Args:
        path: Catalog file (.yaml, .yml or .json)

    Returns:
        Providers in catalog order

    Raises:
        InvalidConfigError: If the file is missing, unparseable or malformed
    """
    path = Path(path)
    if not path.exists():
        raise InvalidConfigError("provider_catalog", str(path), "file does not exist")

    try:
        with open(path, encoding="utf-8") as f:
            if path.suffix in (".yaml", ".yml"):
                data = yaml.safe_load(f) or {}
            else:
                data = json.load(f)
    except (OSError, ValueError, yaml.YAMLError) as e:
        raise InvalidConfigError("provider_catalog", str(path), f"could not be parsed: {e}")

    entries = data.get("providers") if isinstance(data, dict) else data
    if not isinstance(entries, list):
        raise InvalidConfigError("provider_catalog", str(path), "expected a 'providers' list")

    providers = [_provider_from_entry(entry, i, str(path)) for i, entry in enumerate(entries)]
    logger.info("Loaded %d providers from %s", len(providers), path)
    return providers
