from unittest.mock import Mock

import pytest

from tunebridge.application.matching import TrackMatcher, build_query, build_track_key
from tunebridge.domain.entities import (
    MatchConfidence, SearchResult, SpotifyTrack, TargetArtist, TargetTrack, YouTubeTrack,
)
from tunebridge.domain.errors import TemporaryFailure


def _song(video_id, title, artists, duration=None, result_type="song"):
    return SearchResult(
        type=result_type,
        data=TargetTrack(
            id=video_id,
            title=title,
            artists=tuple(TargetArtist(name=a) for a in artists),
            duration_seconds=duration,
        ),
    )


class TestBuildQuery:

    def test_uses_first_two_artists_and_name(self):
        track = SpotifyTrack(id="s1", title="Under Pressure",
                             artist_names=("Queen", "David Bowie", "Extra"), duration_seconds=248)
        assert build_query(track) == "Queen, David Bowie Under Pressure"

    def test_without_artists_is_just_the_name(self):
        track = YouTubeTrack(id="v1", title="Untitled", artist_names=())
        assert build_query(track) == "Untitled"

    def test_track_key_combines_first_artist_name_duration(self):
        track = SpotifyTrack(id="s1", title="Song", artist_names=("A", "B"), duration_seconds=99)
        assert build_track_key(track) == "A-Song-99"


class TestTrackMatcher:
    """Tests for catalog-backed track matching."""

    def setup_method(self):
        self.catalog = Mock()
        self.matcher = TrackMatcher(self.catalog, search_limit=10)
        self.bohemian = SpotifyTrack(
            id="s1", title="Bohemian Rhapsody", artist_names=("Queen",), duration_seconds=355,
        )

    def test_selects_studio_version_with_high_confidence(self):
        self.catalog.search.return_value = [
            _song("v1", "Bohemian Rhapsody", ["Queen"], 354),
            _song("v2", "Bohemian Rhapsody (Live)", ["Queen"], 400),
        ]

        result = self.matcher.find_match(self.bohemian)

        assert result.matched_track.id == "v1"
        assert result.confidence is MatchConfidence.HIGH
        assert result.error is None
        self.catalog.search.assert_called_once_with("Queen Bohemian Rhapsody", type="songs", limit=10)

    def test_empty_candidates_returns_no_match(self):
        self.catalog.search.return_value = []

        result = self.matcher.find_match(self.bohemian)

        assert result.matched_track is None
        assert result.confidence is MatchConfidence.NONE
        assert result.error is None

    def test_non_song_results_are_ignored(self):
        self.catalog.search.return_value = [
            _song("v9", "Bohemian Rhapsody", ["Queen"], 355, result_type="video"),
        ]

        result = self.matcher.find_match(self.bohemian)

        assert result.matched_track is None

    def test_low_score_is_reported_as_no_match(self):
        self.catalog.search.return_value = [_song("v1", "Completely Unrelated", ["Someone"], 60)]

        result = self.matcher.find_match(self.bohemian)

        assert result.matched_track is None
        assert result.confidence is MatchConfidence.NONE
        assert 0.0 <= result.score < 0.5

    def test_ties_keep_first_result(self):
        self.catalog.search.return_value = [
            _song("first", "Bohemian Rhapsody", ["Queen"], 355),
            _song("second", "Bohemian Rhapsody", ["Queen"], 355),
        ]

        result = self.matcher.find_match(self.bohemian)

        assert result.matched_track.id == "first"

    def test_catalog_error_is_captured_in_result(self):
        self.catalog.search.side_effect = TemporaryFailure("network down")

        result = self.matcher.find_match(self.bohemian)

        assert result.matched_track is None
        assert result.confidence is MatchConfidence.NONE
        assert result.error == "network down"

    def test_errors_are_not_cached(self):
        self.catalog.search.side_effect = [
            TemporaryFailure("timeout"),
            [_song("v1", "Bohemian Rhapsody", ["Queen"], 354)],
        ]

        first = self.matcher.find_match(self.bohemian)
        second = self.matcher.find_match(self.bohemian)

        assert first.error == "timeout"
        assert second.matched_track.id == "v1"
        assert self.catalog.search.call_count == 2

    def test_match_cache_avoids_repeat_search(self):
        self.catalog.search.return_value = [_song("v1", "Bohemian Rhapsody", ["Queen"], 354)]

        first = self.matcher.find_match(self.bohemian)
        second = self.matcher.find_match(self.bohemian)

        assert first is second
        self.catalog.search.assert_called_once()
        assert self.matcher.cache_stats() == {"search_cache": 1, "match_cache": 1}

    def test_search_cache_shared_between_tracks_with_same_query(self):
        self.catalog.search.return_value = [_song("v1", "Bohemian Rhapsody", ["Queen"], 354)]
        remaster = SpotifyTrack(
            id="s2", title="Bohemian Rhapsody", artist_names=("Queen",), duration_seconds=358,
        )

        self.matcher.find_match(self.bohemian)
        self.matcher.find_match(remaster)

        self.catalog.search.assert_called_once()
        assert self.matcher.cache_stats() == {"search_cache": 1, "match_cache": 2}

    def test_clear_cache(self):
        self.catalog.search.return_value = []
        self.matcher.find_match(self.bohemian)

        self.matcher.clear_cache()

        assert self.matcher.cache_stats() == {"search_cache": 0, "match_cache": 0}
        self.matcher.find_match(self.bohemian)
        assert self.catalog.search.call_count == 2

    def test_get_match_statistics(self):
        self.catalog.search.side_effect = [
            [_song("v1", "Bohemian Rhapsody", ["Queen"], 354)],
            [],
            TemporaryFailure("boom"),
        ]
        tracks = [
            self.bohemian,
            SpotifyTrack(id="s2", title="Missing", artist_names=("Nobody",)),
            SpotifyTrack(id="s3", title="Broken", artist_names=("Err",)),
        ]
        results = [self.matcher.find_match(t) for t in tracks]

        stats = self.matcher.get_match_statistics(results)

        assert stats["total"] == 3
        assert stats["matched"] == 1
        assert stats["not_found"] == 1
        assert stats["errors"] == 1
        assert stats["match_rate"] == pytest.approx(1 / 3)
        assert stats["by_confidence"]["high"] == 1
        assert stats["by_confidence"]["none"] == 2

    def test_get_match_statistics_empty(self):
        stats = self.matcher.get_match_statistics([])
        assert stats["total"] == 0
        assert stats["match_rate"] == 0.0
