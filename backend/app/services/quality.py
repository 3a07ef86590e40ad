"""Quality metrics and display hints for transcribed utterances.

Confidence buckets and speaker colours mirror what the mobile client renders,
so list/detail responses can carry them precomputed.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, List, Optional, Sequence


DEFAULT_CONFIDENCE = 0.9
HIGH_CONFIDENCE = 0.9
MEDIUM_CONFIDENCE = 0.7

SPEAKER_COLORS: List[str] = [
    "#2563EB",
    "#DC2626",
    "#059669",
    "#7C3AED",
    "#EA580C",
]


def confidence_level(confidence: Optional[float]) -> str:
    # Missing (or zero) confidence renders as fully trusted, like the client
    if not confidence or confidence >= HIGH_CONFIDENCE:
        return "high"
    if confidence >= MEDIUM_CONFIDENCE:
        return "medium"
    return "low"


def confidence_opacity(confidence: Optional[float]) -> float:
    return {"high": 1.0, "medium": 0.8, "low": 0.5}[confidence_level(confidence)]


def speaker_color(label: str) -> str:
    if not label:
        return SPEAKER_COLORS[0]
    index = ord(label[0].upper()) - 65
    return SPEAKER_COLORS[index % len(SPEAKER_COLORS)]


@dataclass
class SessionMetrics:
    avg_confidence: float
    speaker_count: int
    total_word_count: int
    low_confidence_word_count: int


def _count_low_confidence_words(words: Optional[Sequence[Any]]) -> int:
    if not words:
        return 0
    count = 0
    for w in words:
        if not isinstance(w, dict):
            continue
        conf = w.get("confidence")
        if isinstance(conf, (int, float)) and conf < MEDIUM_CONFIDENCE:
            count += 1
    return count


def compute_session_metrics(
    speakers: Sequence[str],
    confidences: Sequence[float],
    translated_texts: Sequence[str],
    word_lists: Iterable[Optional[Sequence[Any]]] = (),
) -> SessionMetrics:
    """Derive session aggregates from the utterances being persisted."""
    if confidences:
        avg = sum(confidences) / len(confidences)
    else:
        avg = DEFAULT_CONFIDENCE
    speaker_count = len(set(speakers)) if speakers else 1
    total_words = sum(len(t.split()) for t in translated_texts)
    low_words = sum(_count_low_confidence_words(ws) for ws in word_lists)
    return SessionMetrics(
        avg_confidence=avg,
        speaker_count=speaker_count,
        total_word_count=total_words,
        low_confidence_word_count=low_words,
    )
