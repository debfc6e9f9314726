class TunebridgeError(Exception):
    """Base class for errors raised by tunebridge."""


class ImportFailed(TunebridgeError):
    """Fatal failure of an import run. The message is user-facing."""


class ImportCancelled(TunebridgeError):
    """Import was cancelled. Not a failure."""

    def __init__(self, message: str = "Import cancelled") -> None:
        super().__init__(message)


class ImportInProgress(TunebridgeError):
    """Another import run is already active."""


class PersistenceError(TunebridgeError):
    """Matched tracks could not be saved as a playlist."""

    def __init__(self, playlist_name: str, message: str) -> None:
        super().__init__(f"Failed to save playlist '{playlist_name}': {message}")
        self.playlist_name = playlist_name


class TemporaryFailure(TunebridgeError):
    """Transient catalog or network failure."""


class NotFound(TunebridgeError):
    """Requested resource was not found."""


class AuthenticationRequired(TunebridgeError):
    """Catalog refused access without credentials."""
