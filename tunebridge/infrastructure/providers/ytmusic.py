import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

from ytmusicapi import YTMusic
from ytmusicapi.exceptions import YTMusicError, YTMusicUserError

from tunebridge.domain.entities import SearchResult, TargetArtist, TargetPlaylist, TargetTrack
from tunebridge.domain.errors import AuthenticationRequired, NotFound, TemporaryFailure


logger = logging.getLogger(__name__)

_TRACK_RESULT_TYPES = ('song', 'video')
_SIGN_IN_MARKERS = ('Sign in', 'signInEndpoint')


def parse_duration(value: Any) -> Optional[int]:
    """Parse ``"m:ss"`` / ``"h:mm:ss"`` durations into seconds."""
    if value is None or value == '':
        return None
    if isinstance(value, (int, float)):
        return int(value)
    try:
        seconds = 0
        for part in str(value).split(':'):
            seconds = seconds * 60 + int(part)
        return seconds
    except ValueError:
        return None


def to_target_track(data: Dict[str, Any]) -> Optional[TargetTrack]:
    """Map a ytmusicapi song/track dictionary to a TargetTrack. None without a videoId."""
    video_id = data.get('videoId')
    if not video_id:
        return None
    artists = tuple(
        TargetArtist(name=a['name'], id=a.get('id'))
        for a in data.get('artists') or []
        if a and a.get('name')
    )
    album = data.get('album')
    album_name = album.get('name') if isinstance(album, dict) else None
    duration = data.get('duration_seconds')
    if duration is None:
        duration = parse_duration(data.get('duration'))
    return TargetTrack(
        id=video_id,
        title=data.get('title') or '',
        artists=artists,
        album=album_name,
        duration_seconds=duration,
    )


class YTMusicCatalog:
    """YouTube Music catalog client built on ytmusicapi."""

    def __init__(self, ytmusic: Optional[YTMusic] = None, auth_file: Optional[Path] = None):
        if ytmusic is not None:
            self._ytm = ytmusic
        elif auth_file:
            logger.info("Using authenticated ytmusicapi session")
            self._ytm = YTMusic(str(auth_file))
        else:
            self._ytm = YTMusic()

    def search(self, query: str, type: str = "songs", limit: int = 10) -> List[SearchResult]:
        try:
            raw = self._ytm.search(query, filter=type, limit=limit)
        except YTMusicError as e:
            raise TemporaryFailure(f"Search failed for '{query}': {e}") from e

        results: List[SearchResult] = []
        for item in raw or []:
            result_type = item.get('resultType')
            if result_type not in _TRACK_RESULT_TYPES:
                continue
            track = to_target_track(item)
            if track:
                results.append(SearchResult(type=result_type, data=track))
        return results[:limit]

    def get_playlist(self, playlist_id: str) -> TargetPlaylist:
        if not playlist_id or not playlist_id.strip():
            raise ValueError("playlist_id cannot be empty")

        logger.debug(f"Fetching playlist: {playlist_id}")
        try:
            data = self._ytm.get_playlist(playlist_id, limit=None)
        except YTMusicUserError as e:
            raise NotFound(f"Playlist {playlist_id} not found: {e}") from e
        except YTMusicError as e:
            raise TemporaryFailure(f"Failed to fetch playlist {playlist_id}: {e}") from e
        except KeyError as e:
            # ytmusicapi raises KeyError when YouTube serves a sign-in page or a private playlist
            if any(marker in str(e) for marker in _SIGN_IN_MARKERS):
                raise AuthenticationRequired(
                    f"YouTube Music asked to sign in for playlist {playlist_id}"
                ) from e
            raise NotFound(f"Playlist not found or malformed: {playlist_id}") from e

        if not data:
            raise NotFound(f"Playlist not found: {playlist_id}")

        tracks = []
        for item in data.get('tracks') or []:
            if not item or item.get('isAvailable') is False:
                continue
            track = to_target_track(item)
            if track:
                tracks.append(track)

        return TargetPlaylist(
            id=data.get('id') or playlist_id,
            name=data.get('title') or 'Untitled playlist',
            tracks=tuple(tracks),
        )
