"""Central configuration constants for Dispatchr.

This module defines the configurable thresholds and defaults used by the
selector, the health cache and the fallback orchestrator. Constants can be
overridden via environment variables using the DISPATCHR_* prefix convention.

Usage:
    from dispatchr.core import constants

    constants.load_config()

    if confidence >= constants.CONFIDENCE_THRESHOLD:
        ...

Environment Variables:
    DISPATCHR_CONFIDENCE_THRESHOLD - Minimum confidence to accept (default: 0.7)
    DISPATCHR_HEALTH_CACHE_TTL - Seconds a health snapshot is trusted (default: 300)
    DISPATCHR_MAX_FALLBACK_ATTEMPTS - Fallback providers tried after primary (default: 3)
    DISPATCHR_DEFAULT_TIMEOUT - Seconds allowed per dispatch (default: 300)
    DISPATCHR_MAX_BATCH_SIZE - Requests per batch dispatch (default: 10)
    DISPATCHR_DEFAULT_STRATEGY - Selection strategy name (default: balanced)
"""

import os

from dispatchr.core.errors import InvalidConfigError

# =============================================================================
# Fallback Settings
# =============================================================================

# Confidence threshold for accepting results (0.0 to 1.0)
CONFIDENCE_THRESHOLD: float = 0.7

# Fallback providers tried after the primary one
MAX_FALLBACK_ATTEMPTS: int = 3

# Seconds allowed for a whole dispatch, fallbacks included
DEFAULT_TIMEOUT_SECONDS: float = 300.0

# Maximum requests accepted by a batch dispatch
MAX_BATCH_SIZE: int = 10

# =============================================================================
# Health Cache Settings
# =============================================================================

# Seconds a cached health snapshot is trusted without re-probing
HEALTH_CACHE_TTL_SECONDS: int = 300

# =============================================================================
# Scoring Settings
# =============================================================================

# Default selection strategy
DEFAULT_STRATEGY: str = "balanced"

# MaxUnitsPerRequest above which reliability scoring counts a large context
LARGE_CONTEXT_THRESHOLD: int = 4000

# MaxUnitsPerRequest above which quality scoring counts a large context
QUALITY_CONTEXT_THRESHOLD: int = 8000

# Response times (seconds) considered fast by reliability and quality scoring
RELIABILITY_FAST_RESPONSE_SECONDS: float = 3.0
QUALITY_FAST_RESPONSE_SECONDS: float = 2.0

# Rough characters-per-unit ratio for text size estimates
CHARS_PER_UNIT: int = 4

# =============================================================================
# Enrichment Settings
# =============================================================================

# Bounds for confidence synthesized from response shape
SYNTHETIC_CONFIDENCE_FLOOR: float = 0.1
SYNTHETIC_CONFIDENCE_CEILING: float = 0.9

# Language assumed when the heuristic finds nothing better
DEFAULT_LANGUAGE: str = "en"


# =============================================================================
# Helper Functions for Environment Variable Loading
# =============================================================================

def _get_env_int(key: str, default: int) -> int:
    """Get integer from environment variable with validation.

    Raises:
        InvalidConfigError: If value is not a valid non-negative integer
    """
    value = os.getenv(key)
    if value is None:
        return default

    try:
        result = int(value)
    except ValueError:
        raise InvalidConfigError(key, value, "must be an integer")
    if result < 0:
        raise InvalidConfigError(key, value, "must be non-negative")
    return result


def _get_env_float(key: str, default: float) -> float:
    """Get float from environment variable with validation.

    Raises:
        InvalidConfigError: If value is not a valid non-negative number
    """
    value = os.getenv(key)
    if value is None:
        return default

    try:
        result = float(value)
    except ValueError:
        raise InvalidConfigError(key, value, "must be a number")
    if result < 0:
        raise InvalidConfigError(key, value, "must be non-negative")
    return result


def _get_env_str(key: str, default: str) -> str:
    """Get string from environment variable."""
    return os.getenv(key, default)


def load_config() -> None:
    """Load configuration with environment variable overrides.

    Raises:
        InvalidConfigError: If any environment variable has an invalid value

    Example:
        >>> import os
        >>> os.environ["DISPATCHR_CONFIDENCE_THRESHOLD"] = "0.9"
        >>> load_config()
        >>> CONFIDENCE_THRESHOLD
        0.9
    """
    global CONFIDENCE_THRESHOLD, MAX_FALLBACK_ATTEMPTS, DEFAULT_TIMEOUT_SECONDS
    global MAX_BATCH_SIZE, HEALTH_CACHE_TTL_SECONDS, DEFAULT_STRATEGY

    CONFIDENCE_THRESHOLD = _get_env_float("DISPATCHR_CONFIDENCE_THRESHOLD", 0.7)
    if CONFIDENCE_THRESHOLD > 1.0:
        raise InvalidConfigError("DISPATCHR_CONFIDENCE_THRESHOLD", CONFIDENCE_THRESHOLD, "must be at most 1.0")

    MAX_FALLBACK_ATTEMPTS = _get_env_int("DISPATCHR_MAX_FALLBACK_ATTEMPTS", 3)
    DEFAULT_TIMEOUT_SECONDS = _get_env_float("DISPATCHR_DEFAULT_TIMEOUT", 300.0)
    MAX_BATCH_SIZE = _get_env_int("DISPATCHR_MAX_BATCH_SIZE", 10)
    HEALTH_CACHE_TTL_SECONDS = _get_env_int("DISPATCHR_HEALTH_CACHE_TTL", 300)
    DEFAULT_STRATEGY = _get_env_str("DISPATCHR_DEFAULT_STRATEGY", "balanced")
