import logging
import threading
from typing import Callable, List

from tunebridge.domain.entities import ImportProgress


logger = logging.getLogger(__name__)

ProgressCallback = Callable[[ImportProgress], None]


class ProgressBus:
    """Publish/subscribe fan-out of import progress events.

    Subscribers are invoked synchronously in subscription order. Each publish
    iterates a snapshot of the subscriber list, so subscribing or
    unsubscribing from inside a callback affects only later publishes.
    """

    def __init__(self):
        self._subscribers: List[ProgressCallback] = []
        self._lock = threading.Lock()

    def subscribe(self, callback: ProgressCallback) -> Callable[[], None]:
        """Register a callback and return a function that removes it."""
        # Wrap so the same callable may be subscribed twice and removed independently
        entry = _Subscription(callback)
        with self._lock:
            self._subscribers.append(entry)

        def unsubscribe() -> None:
            with self._lock:
                if entry in self._subscribers:
                    self._subscribers.remove(entry)

        return unsubscribe

    def publish(self, progress: ImportProgress) -> None:
        with self._lock:
            snapshot = list(self._subscribers)
        for subscriber in snapshot:
            try:
                subscriber(progress)
            except Exception as e:
                logger.warning(f"Progress subscriber {subscriber!r} raised: {e}", exc_info=True)

    def __len__(self) -> int:
        with self._lock:
            return len(self._subscribers)


class _Subscription:
    __slots__ = ('callback',)

    def __init__(self, callback: ProgressCallback):
        self.callback = callback

    def __call__(self, progress: ImportProgress) -> None:
        self.callback(progress)

    def __eq__(self, other):
        return self is other

    def __hash__(self):
        return id(self)

    def __repr__(self):
        return f"<subscription {self.callback!r}>"
