import os
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

from dotenv import dotenv_values

from tunebridge.domain.entities import MatchConfidence


class ConfigError(Exception):
    """Configuration error."""
    pass


_LOG_LEVELS = ('DEBUG', 'INFO', 'WARNING', 'ERROR')


class Settings:
    """Runtime settings for the importer.

    Values come from a ``.env`` file (if any) overlaid by the process
    environment. Use :func:`load_settings` rather than building this directly.
    """

    def __init__(self, values: Optional[Mapping[str, Optional[str]]] = None):
        values = dict(values or {})
        config_dir = values.get('TUNEBRIDGE_CONFIG_DIR')
        self.config_dir = Path(config_dir).expanduser() if config_dir else Path.home() / '.tunebridge'
        self.playlists_file = self.config_dir / 'playlists.json'

        self.log_level = (values.get('TUNEBRIDGE_LOG_LEVEL') or 'INFO').upper()
        if self.log_level not in _LOG_LEVELS:
            raise ConfigError(f"Invalid TUNEBRIDGE_LOG_LEVEL: {self.log_level}")

        self.search_limit = self._positive_int(values, 'TUNEBRIDGE_SEARCH_LIMIT', 10)
        self.progress_every = self._positive_int(values, 'TUNEBRIDGE_PROGRESS_EVERY', 5)
        self.http_timeout = self._positive_int(values, 'TUNEBRIDGE_HTTP_TIMEOUT', 10)

        min_conf = (values.get('TUNEBRIDGE_MIN_CONFIDENCE') or 'low').lower()
        try:
            self.min_confidence = MatchConfidence(min_conf)
        except ValueError:
            raise ConfigError(f"Invalid TUNEBRIDGE_MIN_CONFIDENCE: {min_conf}")
        if self.min_confidence is MatchConfidence.NONE:
            raise ConfigError("TUNEBRIDGE_MIN_CONFIDENCE must be low, medium or high")

        self.spotify_access_token = values.get('SPOTIFY_ACCESS_TOKEN') or None
        auth_file = values.get('YTMUSIC_AUTH_FILE')
        self.ytmusic_auth_file = Path(auth_file).expanduser() if auth_file else None

    @staticmethod
    def _positive_int(values: Mapping[str, Optional[str]], key: str, default: int) -> int:
        raw = values.get(key)
        if raw is None or raw == '':
            return default
        try:
            parsed = int(raw)
        except ValueError:
            raise ConfigError(f"{key} must be an integer, got {raw!r}")
        if parsed <= 0:
            raise ConfigError(f"{key} must be positive, got {parsed}")
        return parsed

    def summary(self) -> Dict[str, Any]:
        """Get configuration summary (without sensitive data)."""
        return {
            'config_dir': str(self.config_dir),
            'playlists_file': str(self.playlists_file),
            'log_level': self.log_level,
            'search_limit': self.search_limit,
            'progress_every': self.progress_every,
            'http_timeout': self.http_timeout,
            'min_confidence': self.min_confidence.value,
            'has_spotify_token': bool(self.spotify_access_token),
            'ytmusic_auth_file': str(self.ytmusic_auth_file) if self.ytmusic_auth_file else None,
        }


def load_settings(env_file: Optional[str] = None,
                  environ: Optional[Mapping[str, str]] = None) -> Settings:
    """Load settings from an optional .env file and the environment."""
    values: Dict[str, Optional[str]] = {}
    if env_file:
        if not Path(env_file).exists():
            raise ConfigError(f"Env file not found: {env_file}")
        values.update(dotenv_values(env_file))
    values.update(os.environ if environ is None else environ)
    return Settings(values)
