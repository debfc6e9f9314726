import threading


class CancellationToken:
    """Cooperative cancellation flag shared between a run and its controller."""

    def __init__(self):
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()
