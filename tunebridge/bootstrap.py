import logging
from typing import Optional

from tunebridge.application.importer import ImportOrchestrator
from tunebridge.application.matching import TrackMatcher
from tunebridge.application.progress import ProgressBus
from tunebridge.crosscutting.config import Settings, load_settings
from tunebridge.crosscutting.logging import setup_logging
from tunebridge.domain.entities import ImportSource
from tunebridge.domain.ports import PlaylistStore, TargetCatalog
from tunebridge.infrastructure.playlist_store import JsonPlaylistStore
from tunebridge.infrastructure.providers.spotify import SpotifyPlaylistSource
from tunebridge.infrastructure.providers.youtube import YouTubePlaylistSource
from tunebridge.infrastructure.providers.ytmusic import YTMusicCatalog


logger = logging.getLogger(__name__)


def build_importer(settings: Optional[Settings] = None,
                   catalog: Optional[TargetCatalog] = None,
                   store: Optional[PlaylistStore] = None,
                   configure_logging: bool = False) -> ImportOrchestrator:
    """Wire concrete collaborators into an ImportOrchestrator."""
    settings = settings or load_settings()
    if configure_logging:
        setup_logging(settings.log_level)

    if catalog is None:
        catalog = YTMusicCatalog(auth_file=settings.ytmusic_auth_file)
    if store is None:
        store = JsonPlaylistStore(settings.playlists_file)

    sources = {
        ImportSource.SPOTIFY: SpotifyPlaylistSource(
            access_token=settings.spotify_access_token,
            timeout=settings.http_timeout,
        ),
        ImportSource.YOUTUBE: YouTubePlaylistSource(catalog),
    }
    matcher = TrackMatcher(catalog, search_limit=settings.search_limit)

    logger.debug(f"Importer configured: {settings.summary()}")
    return ImportOrchestrator(
        sources=sources,
        matcher=matcher,
        store=store,
        progress_bus=ProgressBus(),
        progress_every=settings.progress_every,
        min_confidence=settings.min_confidence,
    )
