"""Consolidated settings management for Dispatchr.

This module provides a single source of truth for dispatcher configuration
through the Settings class. It consolidates:
- Environment variables (DISPATCHR_*, including values from a local .env)
- Config files (~/.dispatchr/config.yaml, .dispatchr/config.yaml)
- CLI flags (passed at runtime)
- Defaults (from dispatchr.core.constants)

Configuration hierarchy (lowest to highest priority):
1. Defaults (hardcoded)
2. Config file (YAML/JSON)
3. Environment variables
4. CLI flags

Usage:
    from dispatchr.core.settings import get_settings, Settings

    # Get singleton instance (recommended)
    settings = get_settings()

    # Or load with CLI overrides
    settings = Settings.load(cli_overrides={"routing.strategy": "cost_optimized"})

    print(settings.routing.confidence_threshold)
    print(settings.health.cache_ttl_seconds)
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, ClassVar, Optional

import yaml
from dotenv import load_dotenv

from dispatchr.core import constants

logger = logging.getLogger(__name__)

VALID_STRATEGIES = (
    "cost_optimized",
    "performance_optimized",
    "reliability_optimized",
    "capability_optimized",
    "quality_optimized",
    "balanced",
    "load_balanced",
)


# =============================================================================
# Sub-configuration dataclasses
# =============================================================================


@dataclass
class RoutingSettings:
    """Provider selection and fallback settings."""

    strategy: str = constants.DEFAULT_STRATEGY
    confidence_threshold: float = constants.CONFIDENCE_THRESHOLD
    max_fallback_attempts: int = constants.MAX_FALLBACK_ATTEMPTS
    enable_fallback: bool = True
    default_timeout: float = constants.DEFAULT_TIMEOUT_SECONDS
    preferred_provider: Optional[str] = None
    max_batch_size: int = constants.MAX_BATCH_SIZE

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "strategy": self.strategy,
            "confidence_threshold": self.confidence_threshold,
            "max_fallback_attempts": self.max_fallback_attempts,
            "enable_fallback": self.enable_fallback,
            "default_timeout": self.default_timeout,
            "preferred_provider": self.preferred_provider,
            "max_batch_size": self.max_batch_size,
        }


@dataclass
class HealthSettings:
    """Health cache settings."""

    enable_health_checks: bool = False
    cache_ttl_seconds: float = float(constants.HEALTH_CACHE_TTL_SECONDS)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "enable_health_checks": self.enable_health_checks,
            "cache_ttl_seconds": self.cache_ttl_seconds,
        }


@dataclass
class CostSettings:
    """Cost tracking settings."""

    enable_cost_tracking: bool = True

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {"enable_cost_tracking": self.enable_cost_tracking}


@dataclass
class EnrichmentSettings:
    """Result enrichment settings."""

    enrich_confidence: bool = True
    enrich_language: bool = True

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "enrich_confidence": self.enrich_confidence,
            "enrich_language": self.enrich_language,
        }


# =============================================================================
# Main Settings class
# =============================================================================


@dataclass
class Settings:
    """Consolidated settings for Dispatchr.

    Attributes:
        log_level: Logging level
        provider_catalog: Optional path to a YAML/JSON provider catalog
        routing: Selection and fallback settings
        health: Health cache settings
        costs: Cost tracking settings
        enrichment: Result enrichment settings
    """

    log_level: str = "INFO"
    provider_catalog: Optional[str] = None

    routing: RoutingSettings = field(default_factory=RoutingSettings)
    health: HealthSettings = field(default_factory=HealthSettings)
    costs: CostSettings = field(default_factory=CostSettings)
    enrichment: EnrichmentSettings = field(default_factory=EnrichmentSettings)

    # Metadata (not persisted)
    _source: str = field(default="defaults", repr=False)
    _overrides: dict[str, str] = field(default_factory=dict, repr=False)
    _config_path: Optional[Path] = field(default=None, repr=False)

    _instance: ClassVar[Optional[Settings]] = None

    # Shorthand properties used by the orchestrator
    @property
    def enable_health_checks(self) -> bool:
        return self.health.enable_health_checks

    @property
    def enable_cost_tracking(self) -> bool:
        return self.costs.enable_cost_tracking

    @property
    def enrich_confidence(self) -> bool:
        return self.enrichment.enrich_confidence

    @property
    def enrich_language(self) -> bool:
        return self.enrichment.enrich_language

    @property
    def max_batch_size(self) -> int:
        return self.routing.max_batch_size

    @property
    def preferred_provider(self) -> Optional[str]:
        return self.routing.preferred_provider

    # ==========================================================================
    # Loading methods
    # ==========================================================================

    @classmethod
    def load(
        cls,
        config_path: Optional[Path] = None,
        cli_overrides: Optional[dict[str, Any]] = None,
        reset_singleton: bool = False,
    ) -> Settings:
        """Load settings from all sources.

        Args:
            config_path: Explicit path to config file
            cli_overrides: CLI flag overrides keyed by dotted path (highest priority)
            reset_singleton: Force reload even if cached

        Returns:
            Settings instance
        """
        if cls._instance is not None and not reset_singleton and not cli_overrides and config_path is None:
            return cls._instance

        load_dotenv()
        settings = cls()

        # 1. Apply config file
        settings._apply_config_file(Path(config_path) if config_path else None)

        # 2. Apply environment variables
        settings._apply_environment()

        # 3. Apply CLI overrides
        if cli_overrides:
            settings._apply_cli_overrides(cli_overrides)

        cls._instance = settings
        return settings

    @classmethod
    def reset(cls) -> None:
        """Reset the singleton instance (useful for testing)."""
        cls._instance = None

    def _apply_config_file(self, config_path: Optional[Path] = None) -> None:
        """Apply settings from config file."""
        if config_path is None:
            config_path = self._find_config_file()

        if config_path is None or not config_path.exists():
            return

        try:
            with open(config_path, encoding="utf-8") as f:
                if config_path.suffix in (".yaml", ".yml"):
                    data = yaml.safe_load(f) or {}
                else:
                    data = json.load(f)
        except (OSError, ValueError, yaml.YAMLError) as e:
            logger.warning("Failed to load config from %s: %s", config_path, e)
            return

        self._apply_dict(data, source=f"file:{config_path}")
        self._config_path = config_path
        self._source = str(config_path)

    def _apply_environment(self) -> None:
        """Apply environment variable overrides."""
        self._apply_env("DISPATCHR_LOG_LEVEL", "log_level")
        self._apply_env("DISPATCHR_PROVIDER_CATALOG", "provider_catalog")

        # Routing settings
        self._apply_env("DISPATCHR_DEFAULT_STRATEGY", "routing.strategy")
        self._apply_env("DISPATCHR_CONFIDENCE_THRESHOLD", "routing.confidence_threshold", type_=float)
        self._apply_env("DISPATCHR_MAX_FALLBACK_ATTEMPTS", "routing.max_fallback_attempts", type_=int)
        self._apply_env("DISPATCHR_ENABLE_FALLBACK", "routing.enable_fallback", type_=bool)
        self._apply_env("DISPATCHR_DEFAULT_TIMEOUT", "routing.default_timeout", type_=float)
        self._apply_env("DISPATCHR_PREFERRED_PROVIDER", "routing.preferred_provider")
        self._apply_env("DISPATCHR_MAX_BATCH_SIZE", "routing.max_batch_size", type_=int)

        # Health settings
        self._apply_env("DISPATCHR_ENABLE_HEALTH_CHECKS", "health.enable_health_checks", type_=bool)
        self._apply_env("DISPATCHR_HEALTH_CACHE_TTL", "health.cache_ttl_seconds", type_=float)

        # Cost settings
        self._apply_env("DISPATCHR_ENABLE_COST_TRACKING", "costs.enable_cost_tracking", type_=bool)

        # Enrichment settings
        self._apply_env("DISPATCHR_ENRICH_CONFIDENCE", "enrichment.enrich_confidence", type_=bool)
        self._apply_env("DISPATCHR_ENRICH_LANGUAGE", "enrichment.enrich_language", type_=bool)

    def _apply_cli_overrides(self, overrides: dict[str, Any]) -> None:
        """Apply CLI flag overrides."""
        for key, value in overrides.items():
            if value is not None:
                self._set_nested(key, value)
                self._overrides[key] = "cli"

    def _apply_dict(self, data: dict[str, Any], source: str = "dict") -> None:
        """Apply dictionary configuration."""
        for key in ["log_level", "provider_catalog"]:
            if key in data:
                setattr(self, key, data[key])
                self._overrides[key] = source

        sections = {
            "routing": self.routing,
            "health": self.health,
            "costs": self.costs,
            "enrichment": self.enrichment,
        }
        for name, container in sections.items():
            section = data.get(name)
            if not isinstance(section, dict):
                continue
            for key, value in section.items():
                if hasattr(container, key):
                    setattr(container, key, value)
                    self._overrides[f"{name}.{key}"] = source
                else:
                    logger.warning("Ignoring unknown setting %s.%s from %s", name, key, source)

    def _apply_env(self, env_var: str, setting_path: str, type_: type = str) -> None:
        """Apply single environment variable."""
        value = os.getenv(env_var)
        if value is not None:
            if type_ is bool:
                value = _parse_bool(value)
            elif type_ is int:
                value = int(value)
            elif type_ is float:
                value = float(value)
            self._set_nested(setting_path, value)
            self._overrides[setting_path] = "env"

    def _set_nested(self, path: str, value: Any) -> None:
        """Set a nested configuration value using dot notation."""
        parts = path.split(".")
        if len(parts) == 1:
            if hasattr(self, path):
                setattr(self, path, value)
        elif len(parts) == 2:
            container = getattr(self, parts[0], None)
            if container is not None and hasattr(container, parts[1]):
                setattr(container, parts[1], value)

    def _find_config_file(self) -> Optional[Path]:
        """Find configuration file in standard locations."""
        locations = [
            Path(".dispatchr/config.yaml"),
            Path(".dispatchr/config.yml"),
            Path(".dispatchr/config.json"),
            Path.home() / ".dispatchr" / "config.yaml",
            Path.home() / ".dispatchr" / "config.yml",
            Path.home() / ".dispatchr" / "config.json",
        ]
        for path in locations:
            if path.exists():
                return path
        return None

    # ==========================================================================
    # Accessor methods
    # ==========================================================================

    def get(self, key: str, default: Any = None) -> Any:
        """Get configuration value by dot-separated key.

        Args:
            key: Dot-separated key path (e.g., "routing.confidence_threshold")
            default: Default value if not found

        Returns:
            Configuration value
        """
        current: Any = self
        for part in key.split("."):
            if isinstance(current, dict):
                current = current.get(part)
            elif hasattr(current, part):
                current = getattr(current, part)
            else:
                return default

            if current is None:
                return default

        return current

    # ==========================================================================
    # Validation
    # ==========================================================================

    def validate(self) -> list[str]:
        """Validate configuration.

        Returns:
            List of validation errors (empty if valid)
        """
        # Imported here: dispatchr.routing imports this module
        from dispatchr.core.errors import InvalidInputError
        from dispatchr.routing.models import Strategy

        errors = []
        routing = self.routing

        try:
            Strategy.parse(routing.strategy)
        except InvalidInputError:
            errors.append(f"Unknown strategy '{routing.strategy}' (expected one of: {', '.join(VALID_STRATEGIES)})")
        if not 0.0 <= routing.confidence_threshold <= 1.0:
            errors.append("Confidence threshold must be between 0.0 and 1.0")
        if routing.max_fallback_attempts < 0:
            errors.append("Max fallback attempts must be non-negative")
        if routing.default_timeout <= 0:
            errors.append("Default timeout must be positive")
        if routing.max_batch_size < 1:
            errors.append("Max batch size must be at least 1")
        if self.health.cache_ttl_seconds < 0:
            errors.append("Health cache TTL must be non-negative")
        if self.provider_catalog and not Path(self.provider_catalog).exists():
            errors.append(f"Provider catalog '{self.provider_catalog}' does not exist")

        return errors

    # ==========================================================================
    # Serialization
    # ==========================================================================

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "log_level": self.log_level,
            "provider_catalog": self.provider_catalog,
            "routing": self.routing.to_dict(),
            "health": self.health.to_dict(),
            "costs": self.costs.to_dict(),
            "enrichment": self.enrichment.to_dict(),
            "_source": self._source,
            "_overrides": self._overrides,
        }

    def show(self) -> str:
        """Generate human-readable configuration display."""
        routing = self.routing
        lines = [
            "Dispatchr Configuration",
            "=" * 50,
            f"Source: {self._source}",
            "",
            "Core Settings:",
            f"  Log Level: {self.log_level}",
            f"  Provider Catalog: {self.provider_catalog or '(not set)'}",
            "",
            "Routing:",
            f"  Strategy: {routing.strategy}",
            f"  Confidence Threshold: {routing.confidence_threshold:.2f}",
            f"  Max Fallback Attempts: {routing.max_fallback_attempts}",
            f"  Fallback Enabled: {routing.enable_fallback}",
            f"  Timeout: {routing.default_timeout:g}s",
            f"  Preferred Provider: {routing.preferred_provider or '(none)'}",
            f"  Max Batch Size: {routing.max_batch_size}",
            "",
            "Health:",
            f"  Health Checks: {self.health.enable_health_checks}",
            f"  Cache TTL: {self.health.cache_ttl_seconds:g}s",
            "",
            "Costs:",
            f"  Cost Tracking: {self.costs.enable_cost_tracking}",
            "",
            "Enrichment:",
            f"  Confidence: {self.enrichment.enrich_confidence}",
            f"  Language: {self.enrichment.enrich_language}",
        ]

        if self._overrides:
            lines.extend(["", "Overrides:"])
            for key, source in sorted(self._overrides.items()):
                lines.append(f"  {key}: from {source}")

        return "\n".join(lines)


# =============================================================================
# Helper functions
# =============================================================================


def _parse_bool(value: str) -> bool:
    """Parse boolean from string."""
    return value.lower() in ("true", "1", "yes", "on")


def get_settings(cli_overrides: Optional[dict[str, Any]] = None, reset: bool = False) -> Settings:
    """Get the global Settings instance.

    Returns a cached singleton that is loaded once and reused.

    Args:
        cli_overrides: CLI flag overrides (forces reload if provided)
        reset: Force reload of settings

    Returns:
        Settings instance
    """
    return Settings.load(cli_overrides=cli_overrides, reset_singleton=reset)
