from __future__ import annotations

from typing import List, Optional, Protocol, Sequence

from .entities import ForeignPlaylist, SearchResult, TargetPlaylist, TargetTrack


class TargetCatalog(Protocol):
    """Port for the catalog tracks are matched into.

    Implementations may raise on network failures; callers are responsible
    for converting those into structured results.
    """

    def search(self, query: str, type: str = "songs", limit: int = 10) -> List[SearchResult]:
        """Return search hits for a free-text query, best first."""

    def get_playlist(self, playlist_id: str) -> TargetPlaylist:
        """Fetch a playlist with its tracks."""


class PlaylistStore(Protocol):
    """Port for the store that receives imported playlists."""

    def append_playlist(self, name: str, tracks: Sequence[TargetTrack]) -> str:
        """Persist a new playlist and return its generated identifier."""


class PlaylistSource(Protocol):
    """Port for catalogs playlists are imported from."""

    def extract_id(self, value: str) -> Optional[str]:
        """Return the canonical playlist id for a bare id or URL, None if unrecognized."""

    def fetch_playlist(self, id_or_url: str) -> Optional[ForeignPlaylist]:
        """Fetch playlist metadata and tracks. Never raises; None when unresolvable."""

    def validate_playlist(self, id_or_url: str) -> bool:
        """True when the playlist can be fetched."""
