"""Observer registry with per-subscriber failure isolation."""

import itertools
import logging
import threading
from typing import Callable, Dict, Generic, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ObserverRegistry(Generic[T]):
    """Holds callbacks and delivers payloads to each of them.

    Every subscription gets its own token, so subscribing the same
    callable twice yields two deliveries and two independent
    unsubscribe functions. A callback that raises is logged and skipped;
    the remaining callbacks still receive the payload.
    """

    def __init__(self, name: str = "observers"):
        self.name = name
        self._callbacks: Dict[int, Callable[[T], None]] = {}
        self._tokens = itertools.count()
        self._lock = threading.Lock()

    def subscribe(self, callback: Callable[[T], None]) -> Callable[[], None]:
        """Register ``callback``.

        Returns:
            Function removing this subscription. Calling it more than once
            is a no-op.
        """
        with self._lock:
            token = next(self._tokens)
            self._callbacks[token] = callback

        def unsubscribe() -> None:
            with self._lock:
                self._callbacks.pop(token, None)

        return unsubscribe

    def notify(self, payload: T) -> int:
        """Deliver ``payload`` to every current subscriber.

        Returns:
            Number of callbacks that completed without raising.
        """
        with self._lock:
            callbacks = list(self._callbacks.values())

        delivered = 0
        for callback in callbacks:
            try:
                callback(payload)
            except Exception:  # noqa: BLE001
                logger.exception("Error notifying %s subscriber", self.name)
                continue
            delivered += 1
        return delivered

    def clear(self) -> None:
        with self._lock:
            self._callbacks.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._callbacks)
