from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Tuple, Union


class ImportSource(str, Enum):
    """Catalogs a playlist can be imported from."""

    SPOTIFY = "spotify"
    YOUTUBE = "youtube"


class ImportStatus(str, Enum):
    IDLE = "idle"
    FETCHING = "fetching"
    MATCHING = "matching"
    CREATING = "creating"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


class MatchConfidence(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
    NONE = "none"

    @property
    def rank(self) -> int:
        return _CONFIDENCE_RANK[self]


_CONFIDENCE_RANK = {
    MatchConfidence.NONE: 0,
    MatchConfidence.LOW: 1,
    MatchConfidence.MEDIUM: 2,
    MatchConfidence.HIGH: 3,
}


@dataclass(frozen=True)
class SpotifyTrack:
    """Track read from a Spotify playlist."""

    id: str
    title: str
    artist_names: Tuple[str, ...] = ()
    album: Optional[str] = None
    duration_seconds: int = 0
    kind: str = field(default="spotify", init=False)

    def __post_init__(self):
        object.__setattr__(self, 'artist_names', tuple(self.artist_names or ()))

    def name(self) -> str:
        return self.title

    def artists(self) -> List[str]:
        return list(self.artist_names)

    def duration(self) -> int:
        return self.duration_seconds


@dataclass(frozen=True)
class YouTubeTrack:
    """Track read from a YouTube playlist. ``id`` is the video id."""

    id: str
    title: str
    artist_names: Tuple[str, ...] = ()
    album: Optional[str] = None
    duration_seconds: int = 0
    kind: str = field(default="youtube", init=False)

    def __post_init__(self):
        object.__setattr__(self, 'artist_names', tuple(self.artist_names or ()))

    def name(self) -> str:
        return self.title

    def artists(self) -> List[str]:
        return list(self.artist_names)

    def duration(self) -> int:
        return self.duration_seconds


ForeignTrack = Union[SpotifyTrack, YouTubeTrack]


@dataclass(frozen=True)
class ForeignPlaylist:
    """Playlist fetched from the catalog being imported from.

    ``is_fully_accessible`` is False when the catalog only exposed metadata
    (authentication required); ``tracks`` is empty in that case.
    """

    id: str
    name: str
    tracks: Tuple[ForeignTrack, ...] = ()
    is_fully_accessible: bool = True
    canonical_url: Optional[str] = None

    def __post_init__(self):
        object.__setattr__(self, 'tracks', tuple(self.tracks or ()))


@dataclass(frozen=True)
class TargetArtist:
    name: str
    id: Optional[str] = None


@dataclass(frozen=True)
class TargetTrack:
    """Track in the target catalog (YouTube Music)."""

    id: str
    title: str
    artists: Tuple[TargetArtist, ...] = ()
    album: Optional[str] = None
    duration_seconds: Optional[int] = None

    def __post_init__(self):
        object.__setattr__(self, 'artists', tuple(self.artists or ()))

    def artist_names(self) -> List[str]:
        return [a.name for a in self.artists]


@dataclass(frozen=True)
class TargetPlaylist:
    id: str
    name: str
    tracks: Tuple[TargetTrack, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, 'tracks', tuple(self.tracks or ()))


@dataclass(frozen=True)
class SearchResult:
    """Single search hit from the target catalog. ``type`` is e.g. "song" or "video"."""

    type: str
    data: TargetTrack


@dataclass(frozen=True)
class MatchResult:
    """Outcome of matching one foreign track against the target catalog."""

    original_track: ForeignTrack
    matched_track: Optional[TargetTrack]
    confidence: MatchConfidence
    score: float = 0.0
    error: Optional[str] = None

    @property
    def is_match(self) -> bool:
        return self.matched_track is not None


@dataclass(frozen=True)
class ImportProgress:
    status: ImportStatus
    current: int
    total: int
    message: str
    current_track_name: Optional[str] = None


@dataclass(frozen=True)
class ImportResult:
    """Summary of one completed import run."""

    playlist_id: str
    playlist_name: str
    source: ImportSource
    total: int
    matched: int
    failed: int
    errors: List[str]
    duration_ms: int
    matches: List[MatchResult] = field(default_factory=list)


@dataclass(frozen=True)
class ImportRun:
    """Marker for the single in-flight import."""

    source: ImportSource
    identifier: str
    started_at: float
