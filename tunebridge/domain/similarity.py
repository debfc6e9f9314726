from __future__ import annotations

import unicodedata
from typing import Iterable, Optional

from rapidfuzz.distance import Levenshtein

from .entities import ForeignTrack, MatchConfidence, TargetTrack


TITLE_WEIGHT = 0.5
ARTIST_WEIGHT = 0.3
DURATION_WEIGHT = 0.2

# Relative tolerance beyond which a duration difference scores 0
DURATION_TOLERANCE = 0.3
NEUTRAL_DURATION_SCORE = 0.5
CONTAINMENT_SIMILARITY = 0.9

HIGH_THRESHOLD = 0.85
MEDIUM_THRESHOLD = 0.70
LOW_THRESHOLD = 0.50


def normalize(value: Optional[str]) -> str:
    """Lowercase and NFC-normalize a string before comparison."""
    return unicodedata.normalize("NFC", (value or "").lower())


def similarity(a: Optional[str], b: Optional[str]) -> float:
    """Return a similarity in [0, 1] between two strings.

    Equal strings score 1.0, containment of one in the other 0.9, anything
    else is scored by Levenshtein distance relative to the longer string.
    """
    s1 = normalize(a)
    s2 = normalize(b)
    if s1 == s2:
        return 1.0
    if s1 in s2 or s2 in s1:
        return CONTAINMENT_SIMILARITY
    longest = max(len(s1), len(s2))
    if longest == 0:
        return 1.0
    distance = Levenshtein.distance(s1, s2)
    return (longest - distance) / longest


def _clean_names(names: Iterable[str]) -> list[str]:
    cleaned = []
    for name in names or []:
        n = normalize(name).strip()
        if n:
            cleaned.append(n)
    return cleaned


def artists_overlap(foreign_artists: Iterable[str], target_artist_names: Iterable[str]) -> bool:
    """True if any foreign artist contains, or is contained in, any target artist."""
    foreign = _clean_names(foreign_artists)
    target = _clean_names(target_artist_names)
    return any(
        f in t or t in f
        for f in foreign
        for t in target
    )


def duration_score(original: Optional[int], candidate: Optional[int]) -> float:
    if not original or not candidate:
        return NEUTRAL_DURATION_SCORE
    diff = abs(original - candidate)
    if diff == 0:
        return 1.0
    max_diff = max(original, candidate) * DURATION_TOLERANCE
    if diff <= max_diff:
        return 1.0 - diff / max_diff
    return 0.0


def score(foreign: ForeignTrack, candidate: TargetTrack) -> float:
    """Weighted title/artist/duration score of a candidate for a foreign track."""
    title_part = similarity(foreign.name(), candidate.title) * TITLE_WEIGHT
    artist_part = (1.0 if artists_overlap(foreign.artists(), candidate.artist_names()) else 0.0) * ARTIST_WEIGHT
    duration_part = duration_score(foreign.duration(), candidate.duration_seconds or 0) * DURATION_WEIGHT
    return title_part + artist_part + duration_part


def classify(value: float) -> MatchConfidence:
    if value >= HIGH_THRESHOLD:
        return MatchConfidence.HIGH
    if value >= MEDIUM_THRESHOLD:
        return MatchConfidence.MEDIUM
    if value >= LOW_THRESHOLD:
        return MatchConfidence.LOW
    return MatchConfidence.NONE
