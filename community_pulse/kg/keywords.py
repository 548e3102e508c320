"""Vocabulary scanning for discussion topics."""
from __future__ import annotations

from typing import Optional, Sequence, Tuple

VOCABULARY: Tuple[str, ...] = (
    "Optimization",
    "Deployment",
    "Budget",
    "API",
    "Latency",
    "Model",
    "GPU",
    "Dataset",
    "Stakeholder",
    "Timeline",
    "Blocker",
    "Security",
)


def extract_keywords(text: Optional[str], vocabulary: Sequence[str] = VOCABULARY) -> Tuple[str, ...]:
    """Return the vocabulary terms mentioned in ``text``.

    Matching is case-insensitive substring containment. Each term appears at
    most once and the result follows vocabulary order, not message order.
    """

    if not text:
        return ()
    lowered = text.lower()
    return tuple(term for term in vocabulary if term.lower() in lowered)


def normalise_keyword(raw: Optional[str]) -> Optional[str]:
    if raw is None:
        return None
    cleaned = str(raw).strip()
    return cleaned or None


__all__ = ["VOCABULARY", "extract_keywords", "normalise_keyword"]
