import json
import logging
import os
import random
import string
import tempfile
import threading
import time
from dataclasses import asdict
from pathlib import Path
from typing import Any, Dict, List, Sequence, Union

from tunebridge.domain.entities import TargetTrack
from tunebridge.domain.errors import TemporaryFailure


logger = logging.getLogger(__name__)

_ID_ALPHABET = string.ascii_lowercase + string.digits


def generate_playlist_id() -> str:
    """Identifier for an imported playlist, e.g. ``import_1712345678901_k3j9x0a``."""
    suffix = ''.join(random.choices(_ID_ALPHABET, k=7))
    return f"import_{int(time.time() * 1000)}_{suffix}"


class JsonPlaylistStore:
    """Stores imported playlists in a JSON file."""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)
        self._lock = threading.Lock()

    def list_playlists(self) -> List[Dict[str, Any]]:
        if not self.path.exists():
            return []
        try:
            with open(self.path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except (json.JSONDecodeError, IOError) as e:
            raise TemporaryFailure(f"Failed to load playlists from {self.path}: {e}")
        return data.get('playlists', [])

    def append_playlist(self, name: str, tracks: Sequence[TargetTrack]) -> str:
        with self._lock:
            playlists = self.list_playlists()
            playlist = {
                'playlistId': generate_playlist_id(),
                'name': name,
                'tracks': [asdict(t) for t in tracks],
            }
            playlists.append(playlist)
            self._write({'playlists': playlists})

        logger.info(f"Playlist {playlist['playlistId']} saved with {len(tracks)} tracks")
        return playlist['playlistId']

    def _write(self, data: Dict[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=self.path.parent, prefix='.playlists-', suffix='.json')
        try:
            with os.fdopen(fd, 'w', encoding='utf-8') as f:
                json.dump(data, f, indent=2, ensure_ascii=False)
            os.replace(tmp_path, self.path)
        except Exception:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise
