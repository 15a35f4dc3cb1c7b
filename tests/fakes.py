"""In-memory stand-ins for the WebSocket connection used by transport tests."""

from __future__ import annotations

import queue
import threading
import time
from collections.abc import Callable


class FakeSocket:
    """Records sent frames; incoming frames are fed through ``incoming``."""

    def __init__(
        self, fail_after: int | None = None, send_delays: dict[str, float] | None = None
    ) -> None:
        self.sent: list[str] = []
        self.closed = threading.Event()
        self.incoming: queue.Queue[str | None] = queue.Queue()
        self._fail_after = fail_after
        self._send_delays = send_delays or {}

    def send(self, message: str) -> None:
        # A slow frame is still being written when the socket closes
        time.sleep(self._send_delays.get(message, 0))
        if self.closed.is_set():
            raise OSError("socket is closed")
        if self._fail_after is not None and len(self.sent) >= self._fail_after:
            raise OSError("broken pipe")
        self.sent.append(message)

    def close(self) -> None:
        if not self.closed.is_set():
            self.closed.set()
            self.incoming.put(None)

    def __iter__(self):
        while True:
            message = self.incoming.get()
            if message is None:
                return
            yield message


class FakeConnector:
    """Connection factory that hands out FakeSockets.

    Args:
        gate: When given, each connect blocks until the event is set, keeping
            the dispatcher in the connecting state.
        error: Exception raised instead of connecting.
        fail_after: Successful sends allowed per socket before OSError.
        send_delays: Seconds each listed payload takes to send.
    """

    def __init__(
        self,
        gate: threading.Event | None = None,
        error: BaseException | None = None,
        fail_after: int | None = None,
        send_delays: dict[str, float] | None = None,
    ) -> None:
        self.gate = gate
        self.error = error
        self.fail_after = fail_after
        self.send_delays = send_delays
        self.urls: list[str] = []
        self.sockets: list[FakeSocket] = []

    def __call__(self, url: str, open_timeout: float) -> FakeSocket:
        self.urls.append(url)
        if self.gate is not None:
            self.gate.wait(5)
        if self.error is not None:
            raise self.error
        ws = FakeSocket(self.fail_after, self.send_delays)
        self.sockets.append(ws)
        return ws


def wait_until(predicate: Callable[[], bool], timeout: float = 2.0) -> bool:
    """Poll ``predicate`` until it holds or ``timeout`` elapses."""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return predicate()
