"""
Snapshot dispatch over a per-room WebSocket.

Two dispatch models share one connection lifecycle
(``ABSENT -> CONNECTING -> OPEN -> CLOSED``, and ``CLOSED -> CONNECTING`` on
the next send):

* :class:`SnapshotDispatcher` (direct binding, the default) ties each send to
  socket readiness: an open socket gets the payload immediately, a connecting
  socket queues it per :class:`PendingPolicy`, an absent or closed socket is
  (re)opened and the payload follows the room-name join frame.
* :class:`IntervalQueueDispatcher` appends every send to an unbounded FIFO that
  a background worker drains one message per fixed interval, connecting on
  demand. Latency is bounded below by the interval; ordering is strict FIFO.

Neither model blocks the caller on network I/O, retries, or acknowledges
delivery. Transport failures are logged and published on ``on_error``; the next
send opens a fresh connection. After every successful send an idle timer is
(re)started, and when it expires on a still-open, drained socket the socket is
closed.

All connection state is touched from the caller thread, the connection threads
and the idle timer, so it is guarded by one re-entrant lock.
"""

from __future__ import annotations

import logging
import threading
from abc import ABC, abstractmethod
from collections import deque
from collections.abc import Callable, Iterator
from enum import Enum
from queue import Empty, Queue
from typing import Any, Protocol

from websockets.exceptions import WebSocketException
from websockets.sync.client import connect as ws_connect

from .events import EventHandler

logger = logging.getLogger(__name__)

DEFAULT_SERVER_URL = "wss://render-nodejs-server.onrender.com"
DEFAULT_IDLE_CLOSE_DELAY = 2.0
DEFAULT_OPEN_TIMEOUT = 10.0
DEFAULT_QUEUE_INTERVAL = 0.5

TRANSPORT_ERRORS: tuple[type[BaseException], ...] = (
    OSError,
    TimeoutError,
    WebSocketException,
)


class ConnectionState(str, Enum):
    ABSENT = "absent"
    CONNECTING = "connecting"
    OPEN = "open"
    CLOSED = "closed"


class PendingPolicy(str, Enum):
    """What happens to snapshots sent while the socket is still connecting.

    ``COALESCE`` keeps only the most recent one; every snapshot carries the
    full cumulative scene, so the latest supersedes the rest. ``CHAIN`` sends
    all of them in call order once the socket opens.
    """

    COALESCE = "coalesce"
    CHAIN = "chain"


class DispatchMode(str, Enum):
    DIRECT = "direct"
    INTERVAL = "interval"


class SocketLike(Protocol):
    """The subset of a websockets sync connection the dispatchers use."""

    def send(self, message: str) -> None: ...

    def close(self) -> None: ...

    def __iter__(self) -> Iterator[str | bytes]: ...


ConnectFn = Callable[[str, float], SocketLike]


def default_connect(url: str, open_timeout: float) -> SocketLike:
    """Open a WebSocket with the ``websockets`` sync client."""
    return ws_connect(url, open_timeout=open_timeout)


class _RoomSocket(ABC):
    """Connection lifecycle shared by both dispatch models.

    Listeners are never called with the lock held: state changes are queued
    under the lock and delivered by ``_fire_state_events`` once it is released.
    """

    def __init__(
        self,
        room_name: str,
        server_url: str = DEFAULT_SERVER_URL,
        *,
        idle_close_delay: float = DEFAULT_IDLE_CLOSE_DELAY,
        open_timeout: float = DEFAULT_OPEN_TIMEOUT,
        connect: ConnectFn | None = None,
    ):
        """
        Args:
            room_name: Room joined by the first frame of every connection.
            server_url: WebSocket URL of the relay in front of the renderer.
            idle_close_delay: Seconds of quiet after a send before closing.
            open_timeout: Seconds allowed for the opening handshake.
            connect: Connection factory ``(url, open_timeout) -> socket``;
                defaults to the websockets sync client.
        """
        self._room_name = room_name
        self._server_url = server_url
        self._idle_close_delay = idle_close_delay
        self._open_timeout = open_timeout
        self._connect = connect or default_connect

        self._lock = threading.RLock()
        self._cond = threading.Condition(self._lock)
        self._state = ConnectionState.ABSENT
        self._socket: SocketLike | None = None
        self._generation = 0
        self._idle_timer: threading.Timer | None = None
        self._in_flight = False
        self._state_events: deque[ConnectionState] = deque()
        self._event_lock = threading.RLock()

        # Event handlers
        self.on_state_changed = EventHandler("state_changed")
        self.on_error = EventHandler("error")
        self.on_message = EventHandler("message")
        self.on_sent = EventHandler("sent")

        # Statistics
        self._stats = {
            "snapshots_sent": 0,
            "snapshots_dropped": 0,
            "connections_opened": 0,
            "messages_received": 0,
            "errors": 0,
        }

    # Properties
    @property
    def room_name(self) -> str:
        return self._room_name

    @property
    def server_url(self) -> str:
        return self._server_url

    @property
    def state(self) -> ConnectionState:
        with self._lock:
            return self._state

    def get_stats(self) -> dict[str, int]:
        with self._lock:
            return dict(self._stats)

    def wait_for_state(self, state: ConnectionState, timeout: float | None = None) -> bool:
        """Block until the connection reaches ``state``; False on timeout."""
        with self._cond:
            return self._cond.wait_for(lambda: self._state is state, timeout)

    @abstractmethod
    def send_snapshot(self, payload: str) -> None:
        """Hand one serialized snapshot to the connection without blocking."""

    @property
    @abstractmethod
    def pending_count(self) -> int:
        """Snapshots accepted but not yet written to a socket."""

    def close(self) -> None:
        """Close the socket now and discard anything still queued."""
        with self._lock:
            self._generation += 1
            ws = self._socket
            self._socket = None
            self._in_flight = False
            self._cancel_idle_timer()
            self._discard_pending()
            if self._state in (ConnectionState.CONNECTING, ConnectionState.OPEN):
                self._set_state(ConnectionState.CLOSED)
        self._fire_state_events()
        if ws is not None:
            self._close_quietly(ws)

    # Hooks
    def _discard_pending(self) -> None:
        """Drop payloads that can no longer be delivered (lock held)."""

    def _has_pending(self) -> bool:
        return False

    # Lifecycle internals (call with the lock held unless noted)
    def _set_state(self, state: ConnectionState) -> None:
        if state is self._state:
            return
        previous, self._state = self._state, state
        logger.debug(f"Room {self._room_name}: {previous.value} -> {state.value}")
        self._cond.notify_all()
        self._state_events.append(state)

    def _fire_state_events(self) -> None:
        """Deliver queued state changes in order (lock NOT held)."""
        with self._event_lock:
            while True:
                with self._lock:
                    if not self._state_events:
                        return
                    state = self._state_events.popleft()
                self.on_state_changed.invoke(state)

    def _begin_connect(self) -> int:
        self._generation += 1
        self._set_state(ConnectionState.CONNECTING)
        return self._generation

    def _is_current(self, gen: int, ws: SocketLike) -> bool:
        return (
            gen == self._generation
            and self._socket is ws
            and self._state is ConnectionState.OPEN
        )

    def _report_error(self, exc: BaseException) -> None:
        with self._lock:
            self._stats["errors"] += 1
        self.on_error.invoke(exc)

    def _open_socket(self, gen: int) -> SocketLike | None:
        """Connect and join the room (lock NOT held).

        Returns the open socket, or None when the attempt failed or was
        superseded by ``close`` or a newer connection.
        """
        ws: SocketLike | None = None
        try:
            ws = self._connect(self._server_url, self._open_timeout)
            ws.send(self._room_name)
        except TRANSPORT_ERRORS as e:
            logger.error(
                f"Failed to open connection to {self._server_url} "
                f"(room {self._room_name}): {e}"
            )
            if ws is not None:
                self._close_quietly(ws)
            with self._lock:
                if gen == self._generation:
                    self._in_flight = False
                    self._discard_pending()
                    self._set_state(ConnectionState.CLOSED)
            self._fire_state_events()
            self._report_error(e)
            return None

        with self._lock:
            current = (
                gen == self._generation and self._state is ConnectionState.CONNECTING
            )
            if current:
                self._socket = ws
                self._stats["connections_opened"] += 1
                self._set_state(ConnectionState.OPEN)
        self._fire_state_events()
        if not current:
            self._close_quietly(ws)
            return None

        logger.info(f"Joined room {self._room_name} on {self._server_url}")
        threading.Thread(
            target=self._read_loop,
            args=(gen, ws),
            name=f"voxelamming-read-{self._room_name}",
            daemon=True,
        ).start()
        return ws

    def _read_loop(self, gen: int, ws: SocketLike) -> None:
        """Consume incoming frames until the socket closes (lock NOT held)."""
        try:
            for message in ws:
                with self._lock:
                    self._stats["messages_received"] += 1
                logger.debug(f"Received from room {self._room_name}: {message!r}")
                self.on_message.invoke(message)
        except TRANSPORT_ERRORS as e:
            if self._is_current_locked(gen, ws):
                logger.warning(f"Connection for room {self._room_name} lost: {e}")
                self._report_error(e)
        finally:
            self._connection_lost(gen, ws)

    def _is_current_locked(self, gen: int, ws: SocketLike) -> bool:
        with self._lock:
            return self._is_current(gen, ws)

    def _connection_lost(self, gen: int, ws: SocketLike) -> None:
        with self._lock:
            if gen != self._generation or self._socket is not ws:
                return
            self._socket = None
            self._in_flight = False
            self._cancel_idle_timer()
            self._discard_pending()
            self._set_state(ConnectionState.CLOSED)
        self._fire_state_events()
        logger.info(f"Connection for room {self._room_name} closed")

    def _abandon(self, gen: int, ws: SocketLike, exc: BaseException) -> None:
        """Give up on a socket after a failed send (lock NOT held)."""
        logger.error(f"Failed to send to room {self._room_name}: {exc}")
        self._report_error(exc)
        with self._lock:
            if gen == self._generation:
                self._in_flight = False
            if self._is_current(gen, ws):
                self._socket = None
                self._cancel_idle_timer()
                self._discard_pending()
                self._set_state(ConnectionState.CLOSED)
        self._fire_state_events()
        self._close_quietly(ws)

    def _after_send(self, gen: int, payload: str) -> None:
        with self._lock:
            self._stats["snapshots_sent"] += 1
            if gen == self._generation:
                self._in_flight = False
                if self._state is ConnectionState.OPEN:
                    self._restart_idle_timer(gen)
        logger.debug(f"Sent snapshot to room {self._room_name} ({len(payload)} bytes)")
        self.on_sent.invoke(payload)

    def _restart_idle_timer(self, gen: int) -> None:
        self._cancel_idle_timer()
        timer = threading.Timer(self._idle_close_delay, self._on_idle, args=(gen,))
        timer.daemon = True
        self._idle_timer = timer
        timer.start()

    def _cancel_idle_timer(self) -> None:
        if self._idle_timer is not None:
            self._idle_timer.cancel()
            self._idle_timer = None

    def _on_idle(self, gen: int) -> None:
        with self._lock:
            if gen != self._generation or self._state is not ConnectionState.OPEN:
                return
            # A send in progress or queued restarts the timer when it completes
            if self._in_flight or self._has_pending():
                return
            ws = self._socket
            self._socket = None
            self._idle_timer = None
            self._set_state(ConnectionState.CLOSED)
        self._fire_state_events()
        logger.info(
            f"Closing idle connection for room {self._room_name} "
            f"after {self._idle_close_delay}s"
        )
        if ws is not None:
            self._close_quietly(ws)

    def _close_quietly(self, ws: SocketLike) -> None:
        try:
            ws.close()
        except TRANSPORT_ERRORS as e:
            logger.debug(f"Error while closing socket for room {self._room_name}: {e}")


class SnapshotDispatcher(_RoomSocket):
    """Direct-binding dispatcher: sends follow socket readiness."""

    def __init__(
        self,
        room_name: str,
        server_url: str = DEFAULT_SERVER_URL,
        *,
        idle_close_delay: float = DEFAULT_IDLE_CLOSE_DELAY,
        open_timeout: float = DEFAULT_OPEN_TIMEOUT,
        pending_policy: PendingPolicy = PendingPolicy.COALESCE,
        connect: ConnectFn | None = None,
    ):
        super().__init__(
            room_name,
            server_url,
            idle_close_delay=idle_close_delay,
            open_timeout=open_timeout,
            connect=connect,
        )
        self._pending_policy = PendingPolicy(pending_policy)
        self._pending: deque[str] = deque()

    @property
    def pending_policy(self) -> PendingPolicy:
        return self._pending_policy

    @property
    def pending_count(self) -> int:
        with self._lock:
            return len(self._pending)

    def send_snapshot(self, payload: str) -> None:
        """Send now if open, queue if connecting, otherwise open a connection."""
        with self._lock:
            state = self._state
            if state is ConnectionState.OPEN:
                self._cancel_idle_timer()
                self._pending.append(payload)
                self._cond.notify_all()
            elif state is ConnectionState.CONNECTING:
                self._queue_while_connecting(payload)
            else:
                self._pending.clear()
                self._pending.append(payload)
                gen = self._begin_connect()
                threading.Thread(
                    target=self._run_connection,
                    args=(gen,),
                    name=f"voxelamming-conn-{self._room_name}",
                    daemon=True,
                ).start()
        self._fire_state_events()

    def _queue_while_connecting(self, payload: str) -> None:
        if self._pending_policy is PendingPolicy.COALESCE and self._pending:
            self._stats["snapshots_dropped"] += len(self._pending)
            logger.debug(
                f"Room {self._room_name} still connecting; "
                f"replacing {len(self._pending)} queued snapshot(s)"
            )
            self._pending.clear()
        self._pending.append(payload)

    def _discard_pending(self) -> None:
        if self._pending:
            self._stats["snapshots_dropped"] += len(self._pending)
            self._pending.clear()

    def _has_pending(self) -> bool:
        return bool(self._pending)

    def _run_connection(self, gen: int) -> None:
        ws = self._open_socket(gen)
        if ws is None:
            return

        # This thread is the only writer for the socket, so frames leave in
        # the order they were queued.
        while True:
            with self._cond:
                self._cond.wait_for(
                    lambda: self._pending or not self._is_current(gen, ws)
                )
                if not self._is_current(gen, ws):
                    return
                payload = self._pending.popleft()
                self._in_flight = True
            try:
                ws.send(payload)
            except TRANSPORT_ERRORS as e:
                self._abandon(gen, ws, e)
                return
            self._after_send(gen, payload)


class IntervalQueueDispatcher(_RoomSocket):
    """FIFO dispatcher drained one message per ``queue_interval`` seconds."""

    def __init__(
        self,
        room_name: str,
        server_url: str = DEFAULT_SERVER_URL,
        *,
        idle_close_delay: float = DEFAULT_IDLE_CLOSE_DELAY,
        open_timeout: float = DEFAULT_OPEN_TIMEOUT,
        queue_interval: float = DEFAULT_QUEUE_INTERVAL,
        connect: ConnectFn | None = None,
    ):
        super().__init__(
            room_name,
            server_url,
            idle_close_delay=idle_close_delay,
            open_timeout=open_timeout,
            connect=connect,
        )
        self._queue_interval = queue_interval
        self._queue: Queue[str] = Queue()
        self._worker: threading.Thread | None = None
        self._stopping = threading.Event()

    @property
    def pending_count(self) -> int:
        return self._queue.qsize()

    def send_snapshot(self, payload: str) -> None:
        """Append to the FIFO; the drain worker delivers it on a later tick."""
        self._queue.put(payload)
        with self._lock:
            if self._worker is None or not self._worker.is_alive():
                self._stopping = threading.Event()
                self._worker = threading.Thread(
                    target=self._drain_loop,
                    args=(self._stopping,),
                    name=f"voxelamming-drain-{self._room_name}",
                    daemon=True,
                )
                self._worker.start()

    def close(self) -> None:
        with self._lock:
            self._stopping.set()
            self._worker = None
        super().close()

    def _discard_pending(self) -> None:
        # Only an explicit close empties the FIFO; a failed connection loses
        # just the message being delivered.
        if self._stopping.is_set():
            self._drain_queue()

    def _drain_queue(self) -> None:
        while True:
            try:
                self._queue.get_nowait()
            except Empty:
                return
            self._stats["snapshots_dropped"] += 1

    def _has_pending(self) -> bool:
        return not self._queue.empty()

    def _drain_loop(self, stopping: threading.Event) -> None:
        while not stopping.wait(self._queue_interval):
            try:
                payload = self._queue.get_nowait()
            except Empty:
                if self._retire_if_idle():
                    return
                continue
            self._deliver(payload)

    def _retire_if_idle(self) -> bool:
        """End the worker once the FIFO is empty and no socket is in use.

        The next ``send_snapshot`` starts a fresh worker.
        """
        with self._lock:
            if not self._queue.empty() or self._state in (
                ConnectionState.CONNECTING,
                ConnectionState.OPEN,
            ):
                return False
            if self._worker is threading.current_thread():
                self._worker = None
        logger.debug(f"Drain worker for room {self._room_name} finished")
        return True

    def _deliver(self, payload: str) -> None:
        with self._lock:
            if self._state is ConnectionState.OPEN and self._socket is not None:
                ws: SocketLike | None = self._socket
                gen = self._generation
            else:
                ws = None
                gen = self._begin_connect()
            self._in_flight = True
        self._fire_state_events()
        if ws is None:
            ws = self._open_socket(gen)
            if ws is None:
                with self._lock:
                    self._stats["snapshots_dropped"] += 1
                return
        try:
            ws.send(payload)
        except TRANSPORT_ERRORS as e:
            self._abandon(gen, ws, e)
            return
        self._after_send(gen, payload)


def create_dispatcher(
    mode: DispatchMode | str,
    room_name: str,
    server_url: str = DEFAULT_SERVER_URL,
    *,
    idle_close_delay: float = DEFAULT_IDLE_CLOSE_DELAY,
    open_timeout: float = DEFAULT_OPEN_TIMEOUT,
    pending_policy: PendingPolicy | str = PendingPolicy.COALESCE,
    queue_interval: float = DEFAULT_QUEUE_INTERVAL,
    connect: ConnectFn | None = None,
) -> SnapshotDispatcher | IntervalQueueDispatcher:
    """Build the dispatcher for ``mode`` (``direct`` or ``interval``)."""
    common: dict[str, Any] = {
        "idle_close_delay": idle_close_delay,
        "open_timeout": open_timeout,
        "connect": connect,
    }
    if DispatchMode(mode) is DispatchMode.INTERVAL:
        return IntervalQueueDispatcher(
            room_name, server_url, queue_interval=queue_interval, **common
        )
    return SnapshotDispatcher(
        room_name, server_url, pending_policy=PendingPolicy(pending_policy), **common
    )
