"""
Listener lists for asynchronous transport notifications.
"""

import logging
import threading
from collections.abc import Callable
from typing import Any

logger = logging.getLogger(__name__)


class EventHandler:
    """Callbacks registered from any thread and fired from transport threads.

    Listeners run on the thread that fires the event, in registration order.
    """

    def __init__(self, name: str = "event"):
        self._name = name
        self._lock = threading.Lock()
        self._listeners: tuple[Callable, ...] = ()

    @property
    def name(self) -> str:
        return self._name

    def add_listener(self, callback: Callable) -> Callable[[], None]:
        """Register ``callback``. Returns a function that unregisters it."""
        with self._lock:
            self._listeners = (*self._listeners, callback)
        return lambda: self.remove_listener(callback)

    def remove_listener(self, callback: Callable) -> None:
        with self._lock:
            if callback in self._listeners:
                listeners = list(self._listeners)
                listeners.remove(callback)
                self._listeners = tuple(listeners)

    def invoke(self, *args: Any, **kwargs: Any) -> None:
        """Call every listener; a failing one is logged and the rest still run."""
        with self._lock:
            listeners = self._listeners
        for callback in listeners:
            try:
                callback(*args, **kwargs)
            except Exception:
                logger.exception(f"Listener for {self._name} event failed")

    def clear(self) -> None:
        with self._lock:
            self._listeners = ()

    def __len__(self) -> int:
        return len(self._listeners)
