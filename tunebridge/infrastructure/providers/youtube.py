import logging
import re
from typing import Optional

from tunebridge.domain.entities import ForeignPlaylist, YouTubeTrack
from tunebridge.domain.ports import TargetCatalog


logger = logging.getLogger(__name__)

PLAYLIST_URL = 'https://www.youtube.com/playlist?list={playlist_id}'

_BARE_ID_PATTERN = re.compile(r'^[-_A-Za-z0-9]{10,}$')
# Covers both watch?v=...&list=ID and playlist?list=ID
_LIST_PARAM_PATTERN = re.compile(r'[?&]list=([-_A-Za-z0-9]+)')


class YouTubePlaylistSource:
    """Reads YouTube / YouTube Music playlists through the target catalog client."""

    def __init__(self, catalog: TargetCatalog):
        self.catalog = catalog

    def extract_id(self, value: str) -> Optional[str]:
        value = (value or '').strip()
        if _BARE_ID_PATTERN.match(value):
            return value

        match = _LIST_PARAM_PATTERN.search(value)
        if match:
            return match.group(1)

        return None

    def fetch_playlist(self, id_or_url: str) -> Optional[ForeignPlaylist]:
        playlist_id = self.extract_id(id_or_url)
        if not playlist_id:
            logger.warning(f"Invalid YouTube playlist URL or ID: {id_or_url}")
            return None

        try:
            logger.info(f"Fetching YouTube playlist {playlist_id}")
            playlist = self.catalog.get_playlist(playlist_id)
        except Exception as e:
            logger.error(f"Failed to fetch YouTube playlist {playlist_id}: {e}")
            return None

        tracks = tuple(
            YouTubeTrack(
                id=track.id,
                title=track.title,
                artist_names=tuple(track.artist_names()),
                album=track.album,
                duration_seconds=track.duration_seconds or 0,
            )
            for track in playlist.tracks
        )
        canonical_id = playlist.id or playlist_id
        logger.info(f"Fetched YouTube playlist {canonical_id} with {len(tracks)} tracks")

        return ForeignPlaylist(
            id=canonical_id,
            name=playlist.name,
            tracks=tracks,
            is_fully_accessible=True,
            canonical_url=PLAYLIST_URL.format(playlist_id=canonical_id),
        )

    def validate_playlist(self, id_or_url: str) -> bool:
        playlist = self.fetch_playlist(id_or_url)
        return playlist is not None and len(playlist.tracks) > 0
