from unittest.mock import Mock

import pytest
import requests
from spotipy.exceptions import SpotifyException

from tunebridge.infrastructure.providers.spotify import SpotifyPlaylistSource


PLAYLIST_ID = "37i9dQZF1DXcBWIGoYBM5M"


def _oembed_response(title="Today's Top Hits", ok=True, status_code=200):
    response = Mock(ok=ok, status_code=status_code)
    response.json.return_value = {"title": title, "thumbnail_url": "https://i.scdn.co/x"}
    return response


def _item(track_id, name, artists, duration_ms, album="Album"):
    return {"track": {
        "id": track_id,
        "name": name,
        "artists": [{"name": a, "id": f"id-{a}"} for a in artists],
        "album": {"name": album},
        "duration_ms": duration_ms,
    }}


class TestSpotifyPlaylistSource:
    """Contract tests for the Spotify playlist source."""

    def setup_method(self):
        self.session = Mock()
        self.session.get.return_value = _oembed_response()
        self.client = Mock()
        self.source = SpotifyPlaylistSource(session=self.session, client=self.client)

    @pytest.mark.parametrize("value", [
        PLAYLIST_ID,
        f"spotify:playlist:{PLAYLIST_ID}",
        f"https://open.spotify.com/playlist/{PLAYLIST_ID}",
        f"https://open.spotify.com/playlist/{PLAYLIST_ID}?si=abc123",
        f"https://open.spotify.com/intl-de/playlist/{PLAYLIST_ID}",
    ])
    def test_extract_id_recognizes_known_shapes(self, value):
        assert self.source.extract_id(value) == PLAYLIST_ID

    @pytest.mark.parametrize("value", [
        "",
        "not a playlist",
        "https://open.spotify.com/album/4aawyAB9vmqN3uQ7FjRGTy",
        "https://www.youtube.com/playlist?list=PL123",
        "short123",
    ])
    def test_extract_id_rejects_unknown_input(self, value):
        assert self.source.extract_id(value) is None

    def test_fetch_playlist_maps_tracks(self):
        self.client.playlist_items.return_value = {
            "items": [
                _item("t1", "Song One", ["Artist A", "Artist B"], 181500),
                {"track": None},
                _item("t2", "Song Two", ["Artist C"], 200000, album=None),
            ],
            "next": None,
        }

        playlist = self.source.fetch_playlist(f"spotify:playlist:{PLAYLIST_ID}")

        assert playlist.id == PLAYLIST_ID
        assert playlist.name == "Today's Top Hits"
        assert playlist.is_fully_accessible is True
        assert playlist.canonical_url == f"https://open.spotify.com/playlist/{PLAYLIST_ID}"
        assert len(playlist.tracks) == 2
        first = playlist.tracks[0]
        assert first.kind == "spotify"
        assert first.name() == "Song One"
        assert first.artists() == ["Artist A", "Artist B"]
        assert first.duration() == 182
        assert first.album == "Album"

    def test_fetch_playlist_paginates(self):
        page_one = {"items": [_item(f"t{i}", f"Song {i}", ["A"], 1000) for i in range(100)],
                    "next": "https://api.spotify.com/v1/playlists/x/tracks?offset=100"}
        page_two = {"items": [_item("t100", "Song 100", ["A"], 1000)], "next": None}
        self.client.playlist_items.side_effect = [page_one, page_two]

        playlist = self.source.fetch_playlist(PLAYLIST_ID)

        assert len(playlist.tracks) == 101
        offsets = [c.kwargs["offset"] for c in self.client.playlist_items.call_args_list]
        assert offsets == [0, 100]

    @pytest.mark.parametrize("status", [401, 403])
    def test_access_denied_returns_partial_playlist(self, status):
        self.client.playlist_items.side_effect = SpotifyException(status, -1, "denied")

        playlist = self.source.fetch_playlist(PLAYLIST_ID)

        assert playlist is not None
        assert playlist.is_fully_accessible is False
        assert playlist.tracks == ()
        assert playlist.name == "Today's Top Hits"

    def test_other_api_error_returns_none(self):
        self.client.playlist_items.side_effect = SpotifyException(404, -1, "not found")

        assert self.source.fetch_playlist(PLAYLIST_ID) is None

    def test_network_error_returns_none(self):
        self.client.playlist_items.side_effect = requests.ConnectionError("reset")

        assert self.source.fetch_playlist(PLAYLIST_ID) is None

    def test_oembed_failure_returns_none(self):
        self.session.get.return_value = _oembed_response(ok=False, status_code=404)

        assert self.source.fetch_playlist(PLAYLIST_ID) is None
        self.client.playlist_items.assert_not_called()

    def test_oembed_network_error_returns_none(self):
        self.session.get.side_effect = requests.Timeout("slow")

        assert self.source.fetch_playlist_metadata(PLAYLIST_ID) is None

    def test_oembed_missing_title_uses_placeholder(self):
        self.session.get.return_value = _oembed_response(title="")

        metadata = self.source.fetch_playlist_metadata(PLAYLIST_ID)

        assert metadata == {
            "title": "Unknown Playlist",
            "url": f"https://open.spotify.com/playlist/{PLAYLIST_ID}",
        }
        params = self.session.get.call_args.kwargs["params"]
        assert params == {"url": f"https://open.spotify.com/playlist/{PLAYLIST_ID}"}

    def test_invalid_input_returns_none_without_requests(self):
        assert self.source.fetch_playlist("nope") is None
        self.session.get.assert_not_called()

    def test_validate_playlist(self):
        self.client.playlist_items.return_value = {"items": [_item("t1", "S", ["A"], 1000)], "next": None}
        assert self.source.validate_playlist(PLAYLIST_ID) is True

        self.client.playlist_items.return_value = {"items": [], "next": None}
        assert self.source.validate_playlist(PLAYLIST_ID) is False

        self.client.playlist_items.side_effect = SpotifyException(401, -1, "denied")
        assert self.source.validate_playlist(PLAYLIST_ID) is True

        assert self.source.validate_playlist("nope") is False
