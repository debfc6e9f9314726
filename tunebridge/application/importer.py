import logging
import threading
import time
from typing import Any, Callable, Dict, List, Mapping, Optional, Union

from tunebridge.application.cancellation import CancellationToken
from tunebridge.application.matching import TrackMatcher
from tunebridge.application.progress import ProgressBus, ProgressCallback
from tunebridge.crosscutting.logging import (
    CorrelationContext, log_error, log_import_complete, log_import_start, stage_var,
)
from tunebridge.domain.entities import (
    ForeignPlaylist, ForeignTrack, ImportProgress, ImportResult, ImportRun,
    ImportSource, ImportStatus, MatchConfidence, MatchResult, TargetTrack,
)
from tunebridge.domain.errors import ImportCancelled, ImportFailed, ImportInProgress, PersistenceError
from tunebridge.domain.ports import PlaylistSource, PlaylistStore


logger = logging.getLogger(__name__)

_FETCH_FAILURE_MESSAGES = {
    ImportSource.SPOTIFY: "Failed to fetch Spotify playlist. It may be private or invalid.",
    ImportSource.YOUTUBE: "Failed to fetch YouTube playlist. Please check the URL/ID.",
}
_EMPTY_PLAYLIST_MESSAGES = {
    ImportSource.SPOTIFY: "No tracks found. The playlist may be private or require authentication.",
    ImportSource.YOUTUBE: "No tracks found. The YouTube playlist is empty or unavailable.",
}


class ImportOrchestrator:
    """Runs the fetch -> match -> persist pipeline for one playlist at a time.

    Progress is published on a :class:`ProgressBus`; cancellation is
    cooperative through a :class:`CancellationToken` checked before the fetch
    and before every track lookup.
    """

    def __init__(self,
                 sources: Mapping[ImportSource, PlaylistSource],
                 matcher: TrackMatcher,
                 store: PlaylistStore,
                 progress_bus: Optional[ProgressBus] = None,
                 progress_every: int = 5,
                 min_confidence: MatchConfidence = MatchConfidence.LOW,
                 clock: Callable[[], float] = time.monotonic):
        """Initialize the orchestrator.

        Args:
            sources: Source adapter per import source
            matcher: Track matcher resolving foreign tracks in the target catalog
            store: Store receiving the imported playlist
            progress_bus: Bus progress events are published on
            progress_every: Publish matching progress every N tracks (and on the last one)
            min_confidence: Weakest confidence tier accepted as a match
            clock: Monotonic clock in seconds, injectable for tests
        """
        if min_confidence is MatchConfidence.NONE:
            raise ValueError("min_confidence must be low, medium or high")
        self.sources = dict(sources)
        self.matcher = matcher
        self.store = store
        self.progress_bus = progress_bus or ProgressBus()
        self.progress_every = max(1, progress_every)
        self.min_confidence = min_confidence
        self._clock = clock
        self._lock = threading.Lock()
        self._current: Optional[ImportRun] = None
        self._token: Optional[CancellationToken] = None

    def on_progress(self, callback: ProgressCallback) -> Callable[[], None]:
        """Subscribe to progress updates. Returns an unsubscribe function."""
        return self.progress_bus.subscribe(callback)

    def _emit(self, status: ImportStatus, current: int, total: int, message: str,
              track_name: Optional[str] = None) -> None:
        stage_var.set(status.value)
        self.progress_bus.publish(ImportProgress(
            status=status,
            current=current,
            total=total,
            message=message,
            current_track_name=track_name,
        ))

    def _check_cancelled(self, token: CancellationToken, current: int, total: int,
                         track_name: Optional[str] = None) -> None:
        if token.cancelled:
            self._emit(ImportStatus.CANCELLED, current, total, "Import cancelled", track_name)
            raise ImportCancelled()

    def import_playlist(self,
                        source: Union[ImportSource, str],
                        id_or_url: str,
                        custom_name: Optional[str] = None,
                        token: Optional[CancellationToken] = None) -> ImportResult:
        """Import a playlist into the playlist store.

        Args:
            source: Catalog the playlist comes from
            id_or_url: Playlist id or URL in that catalog
            custom_name: Name for the new playlist, defaults to the fetched name
            token: Cancellation token; one is created when omitted

        Returns:
            ImportResult with per-track outcome counts

        Raises:
            ImportInProgress: If another import is running
            ImportCancelled: If the run was cancelled
            ImportFailed: If the playlist could not be fetched or has no tracks
            PersistenceError: If the playlist could not be saved
        """
        source = ImportSource(source)
        token = token or CancellationToken()

        with self._lock:
            if self._current is not None:
                raise ImportInProgress(
                    f"An import from {self._current.source.value} is already running"
                )
            self._current = ImportRun(source=source, identifier=id_or_url, started_at=self._clock())
            self._token = token

        try:
            with CorrelationContext(import_source=source.value, stage=ImportStatus.FETCHING.value):
                return self._run(source, id_or_url, custom_name, token)
        finally:
            with self._lock:
                self._current = None
                self._token = None

    def _run(self, source: ImportSource, id_or_url: str, custom_name: Optional[str],
             token: CancellationToken) -> ImportResult:
        start_time = self._clock()
        log_import_start(logger, source.value, id_or_url, custom_name=custom_name)
        total = 0

        try:
            self._emit(ImportStatus.FETCHING, 0, 0, f"Fetching {source.value} playlist...")
            self._check_cancelled(token, 0, 0)

            playlist = self._fetch(source, id_or_url)
            tracks = list(playlist.tracks)
            total = len(tracks)
            playlist_name = custom_name or playlist.name or f"Imported {source.value} playlist"

            self._check_cancelled(token, 0, total)

            self._emit(ImportStatus.MATCHING, 0, total, "Matching tracks...")
            matches, matched_tracks, errors = self._match_all(tracks, token)
            matched = len(matched_tracks)
            failed = total - matched

            self._emit(ImportStatus.CREATING, total, total, "Creating playlist...")
            playlist_id = self._persist(playlist_name, matched_tracks)

            self._emit(ImportStatus.COMPLETED, total, total,
                       f"Import completed: {matched} tracks matched")

            result = ImportResult(
                playlist_id=playlist_id,
                playlist_name=playlist_name,
                source=source,
                total=total,
                matched=matched,
                failed=failed,
                errors=errors,
                duration_ms=int((self._clock() - start_time) * 1000),
                matches=matches,
            )
            log_import_complete(logger, source.value, playlist_id, matched, failed,
                                playlist_name=playlist_name, total=total,
                                duration_ms=result.duration_ms,
                                statistics=self.matcher.get_match_statistics(matches))
            return result

        except ImportCancelled:
            logger.info(f"Import cancelled: {source.value} {id_or_url}")
            raise
        except Exception as e:
            log_error(logger, "Import failed", e, source=source.value, identifier=id_or_url)
            self._emit(ImportStatus.FAILED, 0, total, f"Import failed: {e}")
            raise

    def _fetch(self, source: ImportSource, id_or_url: str) -> ForeignPlaylist:
        adapter = self.sources.get(source)
        if adapter is None:
            raise ImportFailed(f"Unsupported import source: {source.value}")

        try:
            playlist = adapter.fetch_playlist(id_or_url)
        except Exception as e:
            raise ImportFailed(f"{_FETCH_FAILURE_MESSAGES[source]} ({e})") from e

        if playlist is None:
            raise ImportFailed(_FETCH_FAILURE_MESSAGES[source])
        if not playlist.is_fully_accessible:
            raise ImportFailed(
                f'Playlist "{playlist.name}" requires authentication; '
                f'only its metadata is publicly accessible.'
            )
        if not playlist.tracks:
            raise ImportFailed(_EMPTY_PLAYLIST_MESSAGES[source])

        logger.info(f"Fetched playlist '{playlist.name}' with {len(playlist.tracks)} tracks")
        return playlist

    def _match_all(self, tracks: List[ForeignTrack], token: CancellationToken):
        total = len(tracks)
        matches: List[MatchResult] = []
        matched_tracks: List[TargetTrack] = []
        errors: List[str] = []

        for i, track in enumerate(tracks):
            track_name = track.name()
            self._check_cancelled(token, i, total, track_name)

            match = self.matcher.find_match(track)
            # Results arriving after cancellation are discarded
            self._check_cancelled(token, i, total, track_name)
            matches.append(match)

            if match.is_match and match.confidence.rank >= self.min_confidence.rank:
                matched_tracks.append(match.matched_track)
            elif match.is_match:
                errors.append(
                    f'Low-confidence match for "{track_name}" skipped '
                    f'({match.confidence.value}, below {self.min_confidence.value})'
                )
            elif match.error:
                errors.append(f"{track_name}: {match.error}")
            else:
                errors.append(f'No match found for "{track_name}"')

            if i % self.progress_every == 0 or i == total - 1:
                self._emit(ImportStatus.MATCHING, i + 1, total,
                           f"Matched {len(matched_tracks)}/{total} tracks", track_name)

        return matches, matched_tracks, errors

    def _persist(self, name: str, tracks: List[TargetTrack]) -> str:
        try:
            playlist_id = self.store.append_playlist(name, tracks)
        except Exception as e:
            raise PersistenceError(name, str(e)) from e
        logger.info(f"Saved playlist '{name}' ({playlist_id}) with {len(tracks)} tracks")
        return playlist_id

    def validate_playlist(self, source: Union[ImportSource, str], id_or_url: str) -> bool:
        """Check that a playlist can be imported. Never raises."""
        try:
            adapter = self.sources.get(ImportSource(source))
            if adapter is None:
                return False
            return adapter.validate_playlist(id_or_url)
        except Exception as e:
            logger.warning(f"Playlist validation failed for {source} {id_or_url}: {e}")
            return False

    def cancel_import(self) -> bool:
        """Request cancellation of the running import.

        Returns:
            True if an import was running
        """
        with self._lock:
            token = self._token
            current = self._current
        if token is None or current is None:
            logger.debug("Cancel requested with no import running")
            return False
        logger.info(f"Cancelling import from {current.source.value}: {current.identifier}")
        token.cancel()
        return True

    def get_current_import(self) -> Optional[Dict[str, Any]]:
        with self._lock:
            current = self._current
        if current is None:
            return None
        return {
            "source": current.source,
            "identifier": current.identifier,
            "elapsed_ms": int((self._clock() - current.started_at) * 1000),
        }
