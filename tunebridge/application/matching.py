import logging
import threading
from typing import Dict, List, Optional, Sequence, Tuple

from tunebridge.domain import similarity
from tunebridge.domain.entities import ForeignTrack, MatchConfidence, MatchResult, TargetTrack
from tunebridge.domain.ports import TargetCatalog


logger = logging.getLogger(__name__)

SONG_RESULT_TYPE = "song"


def build_query(track: ForeignTrack) -> str:
    """Search query for a foreign track: up to two artists followed by the title."""
    artists = ", ".join(track.artists()[:2])
    return f"{artists} {track.name()}".strip()


def build_track_key(track: ForeignTrack) -> str:
    artists = track.artists()
    first_artist = artists[0] if artists else ""
    return f"{first_artist}-{track.name()}-{track.duration()}"


class TrackMatcher:
    """Resolves foreign tracks to tracks in the target catalog.

    For each track the matcher searches the target catalog, scores every song
    candidate with :mod:`tunebridge.domain.similarity` and keeps the best one.
    Search responses are cached per query and results per track key for the
    lifetime of the matcher (see :meth:`clear_cache`).

    Failures never escape :meth:`find_match`; they are reported through
    ``MatchResult.error``.
    """

    def __init__(self, catalog: TargetCatalog, search_limit: int = 10):
        """Initialize the matcher.

        Args:
            catalog: Target catalog client used for searching
            search_limit: Maximum number of search results requested per query
        """
        self.catalog = catalog
        self.search_limit = search_limit
        self._search_cache: Dict[str, List[TargetTrack]] = {}
        self._match_cache: Dict[str, MatchResult] = {}
        self._lock = threading.Lock()

    def search_candidates(self, track: ForeignTrack) -> List[TargetTrack]:
        """Search the target catalog for candidates. Raises on catalog errors."""
        query = build_query(track)
        cache_key = f"track:{query}"

        with self._lock:
            cached = self._search_cache.get(cache_key)
        if cached is not None:
            logger.debug(f"Using cached search results for query '{query}'")
            return cached

        logger.debug(f"Searching target catalog: {query} (limit={self.search_limit})")
        response = self.catalog.search(query, type="songs", limit=self.search_limit)
        results = [r.data for r in response if r.type == SONG_RESULT_TYPE]

        with self._lock:
            self._search_cache.setdefault(cache_key, results)
        return results

    def select_best(self, track: ForeignTrack,
                    candidates: Sequence[TargetTrack]) -> Tuple[Optional[TargetTrack], float]:
        """Return the highest scoring candidate and its score.

        Ties keep the earliest candidate in result order.
        """
        best: Optional[TargetTrack] = None
        best_score = 0.0
        for candidate in candidates:
            candidate_score = similarity.score(track, candidate)
            if best is None or candidate_score > best_score:
                best = candidate
                best_score = candidate_score
        return best, best_score

    def find_match(self, track: ForeignTrack) -> MatchResult:
        """Find the best target-catalog match for a foreign track."""
        track_key = build_track_key(track)
        with self._lock:
            cached = self._match_cache.get(track_key)
        if cached is not None:
            logger.debug(f"Using cached match for '{track.name()}'")
            return cached

        try:
            candidates = self.search_candidates(track)
        except Exception as e:
            logger.error(f"Match finding failed for '{track.name()}': {e}")
            return MatchResult(
                original_track=track,
                matched_track=None,
                confidence=MatchConfidence.NONE,
                error=str(e) or type(e).__name__,
            )

        best, best_score = self.select_best(track, candidates)
        confidence = similarity.classify(best_score) if best is not None else MatchConfidence.NONE

        if best is None or confidence is MatchConfidence.NONE:
            result = MatchResult(
                original_track=track,
                matched_track=None,
                confidence=MatchConfidence.NONE,
                score=best_score,
            )
        else:
            logger.debug(f"Track matched: '{track.name()}' -> '{best.title}' "
                         f"(confidence={confidence.value}, score={best_score:.3f})")
            result = MatchResult(
                original_track=track,
                matched_track=best,
                confidence=confidence,
                score=best_score,
            )

        with self._lock:
            result = self._match_cache.setdefault(track_key, result)
        return result

    def clear_cache(self) -> None:
        with self._lock:
            self._search_cache.clear()
            self._match_cache.clear()
        logger.debug("Matcher caches cleared")

    def cache_stats(self) -> Dict[str, int]:
        with self._lock:
            return {
                "search_cache": len(self._search_cache),
                "match_cache": len(self._match_cache),
            }

    def get_match_statistics(self, results: List[MatchResult]) -> dict:
        """Get statistics about match results.

        Args:
            results: List of match results

        Returns:
            Dictionary with totals, match rate and counts per confidence tier
        """
        total = len(results)
        by_confidence = {c.value: 0 for c in MatchConfidence}
        for result in results:
            by_confidence[result.confidence.value] += 1
        matched = sum(1 for r in results if r.is_match)
        errors = sum(1 for r in results if r.error)

        return {
            "total": total,
            "matched": matched,
            "not_found": total - matched - errors,
            "errors": errors,
            "match_rate": matched / total if total else 0.0,
            "by_confidence": by_confidence,
        }
