import logging
import re
from typing import Any, Dict, List, Optional

import requests
import spotipy
from spotipy.exceptions import SpotifyException

from tunebridge.domain.entities import ForeignPlaylist, SpotifyTrack


logger = logging.getLogger(__name__)

OEMBED_URL = 'https://open.spotify.com/oembed'
PLAYLIST_URL = 'https://open.spotify.com/playlist/{playlist_id}'

_BARE_ID_PATTERN = re.compile(r'^[A-Za-z0-9]{22}$')
_URI_PATTERN = re.compile(r'spotify:playlist:([A-Za-z0-9]+)')
_URL_PATTERN = re.compile(r'open\.spotify\.com/(?:[\w-]+/)?playlist/([A-Za-z0-9]+)')

_AUTH_REQUIRED_STATUSES = (401, 403)
_PAGE_SIZE = 100


class SpotifyPlaylistSource:
    """Reads public Spotify playlists.

    Playlist metadata comes from the public oEmbed endpoint and track lists
    from the Web API. Without an access token the Web API usually answers
    401; the playlist is then returned as partial (metadata only) instead of
    failing, so callers can report that authentication is required.
    """

    def __init__(self,
                 access_token: Optional[str] = None,
                 session: Optional[requests.Session] = None,
                 client: Optional[spotipy.Spotify] = None,
                 timeout: int = 10):
        """Initialize the source.

        Args:
            access_token: Optional Spotify Web API bearer token
            session: HTTP session used for oEmbed requests
            client: Preconfigured spotipy client (tests inject a mock here)
            timeout: Request timeout in seconds
        """
        self.timeout = timeout
        self._session = session or requests.Session()
        self._client = client or spotipy.Spotify(
            auth=access_token,
            requests_timeout=timeout,
            retries=0,
        )

    def extract_id(self, value: str) -> Optional[str]:
        """Extract a playlist id from a bare id, spotify: URI or open.spotify.com URL."""
        value = (value or '').strip()
        if _BARE_ID_PATTERN.match(value):
            return value

        uri_match = _URI_PATTERN.search(value)
        if uri_match:
            return uri_match.group(1)

        url_match = _URL_PATTERN.search(value)
        if url_match:
            return url_match.group(1)

        return None

    @staticmethod
    def build_playlist_url(playlist_id: str) -> str:
        return PLAYLIST_URL.format(playlist_id=playlist_id)

    def fetch_playlist_metadata(self, id_or_url: str) -> Optional[Dict[str, str]]:
        """Fetch title and canonical URL through oEmbed. Works without authentication."""
        playlist_id = self.extract_id(id_or_url)
        if not playlist_id:
            return None

        playlist_url = self.build_playlist_url(playlist_id)
        try:
            logger.debug(f"Fetching oEmbed metadata for playlist {playlist_id}")
            response = self._session.get(OEMBED_URL, params={'url': playlist_url}, timeout=self.timeout)
            if not response.ok:
                logger.warning(f"oEmbed request failed for playlist {playlist_id}: HTTP {response.status_code}")
                return None
            data = response.json()
        except (requests.RequestException, ValueError) as e:
            logger.error(f"oEmbed fetch failed for playlist {playlist_id}: {e}")
            return None

        return {
            'title': data.get('title') or 'Unknown Playlist',
            'url': playlist_url,
        }

    def _item_to_track(self, item: Dict[str, Any]) -> Optional[SpotifyTrack]:
        track = item.get('track') if item else None
        if not track:
            return None
        artists = [a.get('name') or 'Unknown Artist' for a in track.get('artists') or []]
        album = track.get('album') or {}
        return SpotifyTrack(
            id=track.get('id') or '',
            title=track.get('name') or 'Unknown Track',
            artist_names=tuple(artists),
            album=album.get('name'),
            duration_seconds=int(round((track.get('duration_ms') or 0) / 1000)),
        )

    def _list_tracks(self, playlist_id: str) -> List[SpotifyTrack]:
        tracks: List[SpotifyTrack] = []
        offset = 0

        while True:
            page = self._client.playlist_items(
                playlist_id,
                limit=_PAGE_SIZE,
                offset=offset,
                additional_types=('track',),
            )
            if not page or 'items' not in page:
                break

            for item in page['items']:
                track = self._item_to_track(item)
                if track:
                    tracks.append(track)

            if len(page['items']) < _PAGE_SIZE or not page.get('next'):
                break
            offset += _PAGE_SIZE

        return tracks

    def _partial_playlist(self, playlist_id: str, metadata: Dict[str, str]) -> ForeignPlaylist:
        logger.info(f"Creating partial playlist for {playlist_id} (authentication required)")
        return ForeignPlaylist(
            id=playlist_id,
            name=metadata['title'],
            tracks=(),
            is_fully_accessible=False,
            canonical_url=metadata['url'],
        )

    def fetch_playlist(self, id_or_url: str) -> Optional[ForeignPlaylist]:
        """Fetch a playlist with graceful degradation.

        Returns None when the input is not a Spotify playlist or the playlist
        cannot be fetched, and a partial playlist when access is denied.
        """
        playlist_id = self.extract_id(id_or_url)
        if not playlist_id:
            logger.warning(f"Invalid Spotify playlist URL or ID: {id_or_url}")
            return None

        logger.info(f"Fetching Spotify playlist {playlist_id}")
        metadata = self.fetch_playlist_metadata(playlist_id)
        if not metadata:
            return None

        try:
            tracks = self._list_tracks(playlist_id)
        except SpotifyException as e:
            if e.http_status in _AUTH_REQUIRED_STATUSES:
                logger.warning(f"Playlist {playlist_id} requires authentication (HTTP {e.http_status})")
                return self._partial_playlist(playlist_id, metadata)
            logger.error(f"Failed to fetch playlist {playlist_id}: {e}")
            return None
        except (requests.RequestException, ValueError) as e:
            logger.error(f"Failed to fetch playlist {playlist_id}: {e}")
            return None

        return ForeignPlaylist(
            id=playlist_id,
            name=metadata['title'],
            tracks=tuple(tracks),
            is_fully_accessible=True,
            canonical_url=metadata['url'],
        )

    def validate_playlist(self, id_or_url: str) -> bool:
        """True if the playlist resolves; fully accessible playlists must have tracks."""
        playlist = self.fetch_playlist(id_or_url)
        if playlist is None:
            return False
        return bool(playlist.tracks) or not playlist.is_fully_accessible
