"""Result enrichment heuristics.

Pure functions taking a ProviderResult and returning an enriched copy.
They fill in what a provider could not report natively (a confidence
score, a detected language) and never change ``success``.
"""

import re
from typing import Any, List

from dispatchr.core import constants
from dispatchr.providers.base import ProviderResult

_WORD_RE = re.compile(r"[^\W\d_]+", re.UNICODE)

ENGLISH_WORDS = frozenset(
    ["the", "and", "or", "but", "in", "on", "at", "to", "for", "of", "with", "by"]
)
SPANISH_WORDS = frozenset(
    [
        "el", "la", "de", "que", "y", "en", "un", "es", "se", "no", "lo", "le",
        "su", "por", "son", "con", "para", "al", "del", "los", "las", "una",
        "uno", "sobre", "entre", "hasta", "desde", "durante", "mediante",
        "según", "sin", "bajo", "ante", "tras", "contra", "hacia",
    ]
)
FRENCH_WORDS = frozenset(
    [
        "le", "la", "de", "que", "et", "à", "en", "un", "est", "se", "ne",
        "par", "son", "pour", "les", "une", "sur", "entre", "depuis",
        "pendant", "selon", "sans", "sous", "avant", "après", "contre", "vers",
    ]
)


def _text_blocks(payload: Any) -> List[str]:
    """Split a payload into non-empty text blocks."""
    if payload is None:
        return []
    if isinstance(payload, (list, tuple)):
        items = [str(item).strip() for item in payload if item is not None]
    elif isinstance(payload, bytes):
        items = payload.decode("utf-8", errors="replace").splitlines()
    else:
        items = str(payload).splitlines()
    return [block.strip() for block in items if block and block.strip()]


def payload_text(payload: Any) -> str:
    """Flatten a payload to plain text for heuristics."""
    return "\n".join(_text_blocks(payload))


def estimate_confidence(payload: Any) -> float:
    """Estimate confidence from response shape.

    Longer text blocks are more likely to be accurate: the estimate is
    the average block length divided by 10, bounded to [0.1, 0.9]. An
    empty payload scores 0.0.
    """
    blocks = _text_blocks(payload)
    if not blocks:
        return 0.0
    average_length = sum(len(block) for block in blocks) / len(blocks)
    estimate = min(constants.SYNTHETIC_CONFIDENCE_CEILING, average_length / 10.0)
    return max(constants.SYNTHETIC_CONFIDENCE_FLOOR, estimate)


def detect_language(text: str) -> str:
    """Guess a language code by counting common English, Spanish and French words.

    Returns "es" or "fr" only when that language strictly outscores both
    others; anything else (including empty text) is "en".
    """
    if not text or not text.strip():
        return constants.DEFAULT_LANGUAGE

    words = _WORD_RE.findall(text.lower())
    english = sum(1 for w in words if w in ENGLISH_WORDS)
    spanish = sum(1 for w in words if w in SPANISH_WORDS)
    french = sum(1 for w in words if w in FRENCH_WORDS)

    if spanish > english and spanish > french:
        return "es"
    if french > english and french > spanish:
        return "fr"
    return constants.DEFAULT_LANGUAGE


def synthesize_confidence(result: ProviderResult) -> ProviderResult:
    """Fill in a confidence for a successful result that reported none."""
    if not result.success or result.confidence is not None:
        return result
    metadata = dict(result.metadata)
    metadata["confidence_source"] = "estimated"
    return result.with_updates(confidence=estimate_confidence(result.payload), metadata=metadata)


def enrich_language(result: ProviderResult) -> ProviderResult:
    """Fill in a detected language for a result that reported none."""
    if result.language:
        return result
    metadata = dict(result.metadata)
    metadata["language_source"] = "heuristic"
    return result.with_updates(language=detect_language(payload_text(result.payload)), metadata=metadata)
