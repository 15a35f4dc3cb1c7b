"""
Voxelamming client facade.

``VoxelammingClient`` owns a :class:`~voxelamming.scene.SceneBuilder`, the
current room name and one dispatcher per room. ``send_data`` serializes the
accumulated scene and hands it to the room's dispatcher without blocking; the
scene is not cleared by a send.
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable, Iterable
from datetime import datetime, timedelta, timezone
from typing import Any

from .adapters import snapshot_to_json
from .commands import Command, SendData, SetRoomName, apply_command
from .config import ClientConfig
from .events import EventHandler
from .scene import DEFAULT_MODEL_NAMES, DEFAULT_TEXTURE_NAMES, SceneBuilder, SceneState
from .transport import (
    DEFAULT_IDLE_CLOSE_DELAY,
    DEFAULT_OPEN_TIMEOUT,
    DEFAULT_QUEUE_INTERVAL,
    DEFAULT_SERVER_URL,
    ConnectFn,
    ConnectionState,
    DispatchMode,
    IntervalQueueDispatcher,
    PendingPolicy,
    SnapshotDispatcher,
    create_dispatcher,
)

logger = logging.getLogger(__name__)

DEFAULT_ROOM_NAME = "1000"

Dispatcher = SnapshotDispatcher | IntervalQueueDispatcher


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class VoxelammingClient:
    """
    Scene builder plus per-room snapshot dispatch.

    Design: commands mutate the scene synchronously on the caller's thread;
    network work happens on dispatcher threads, and its failures surface on
    ``on_error`` rather than as exceptions.
    """

    def __init__(
        self,
        room_name: str = DEFAULT_ROOM_NAME,
        server_url: str = DEFAULT_SERVER_URL,
        *,
        dispatch_mode: DispatchMode | str = DispatchMode.DIRECT,
        pending_policy: PendingPolicy | str = PendingPolicy.COALESCE,
        idle_close_delay: float = DEFAULT_IDLE_CLOSE_DELAY,
        open_timeout: float = DEFAULT_OPEN_TIMEOUT,
        queue_interval: float = DEFAULT_QUEUE_INTERVAL,
        texture_names: Iterable[str] = DEFAULT_TEXTURE_NAMES,
        model_names: Iterable[str] = DEFAULT_MODEL_NAMES,
        connect: ConnectFn | None = None,
        clock: Callable[[], datetime] = _utc_now,
    ):
        """
        Args:
            room_name: Room the next snapshot is sent to.
            server_url: WebSocket URL of the relay.
            dispatch_mode: ``direct`` (readiness-bound) or ``interval`` (timed FIFO).
            pending_policy: Snapshots sent while connecting (direct mode only).
            idle_close_delay: Seconds of quiet after a send before the socket closes.
            open_timeout: Seconds allowed for the opening handshake.
            queue_interval: Drain period of the interval mode, in seconds.
            texture_names: Textures accepted by ``create_textured_box``.
            model_names: Models accepted by ``create_model``.
            connect: Connection factory, mainly for tests.
            clock: Source of the current UTC time for snapshot timestamps.
        """
        self._room_name = room_name
        self._server_url = server_url
        self._dispatch_mode = DispatchMode(dispatch_mode)
        self._pending_policy = PendingPolicy(pending_policy)
        self._idle_close_delay = idle_close_delay
        self._open_timeout = open_timeout
        self._queue_interval = queue_interval
        self._connect = connect
        self._clock = clock

        self._builder = SceneBuilder(texture_names, model_names)
        self._dispatchers: dict[str, Dispatcher] = {}
        self._lock = threading.RLock()
        self._last_timestamp: datetime | None = None

        # Event handlers, relayed from every room's dispatcher
        self.on_error = EventHandler("error")
        self.on_message = EventHandler("message")
        self.on_state_changed = EventHandler("state_changed")

    @classmethod
    def from_config(
        cls, config: ClientConfig, *, connect: ConnectFn | None = None
    ) -> VoxelammingClient:
        return cls(
            config.room_name,
            config.server_url,
            dispatch_mode=config.dispatch_mode,
            pending_policy=config.pending_policy,
            idle_close_delay=config.idle_close_delay,
            open_timeout=config.open_timeout,
            queue_interval=config.queue_interval,
            texture_names=config.texture_names,
            model_names=config.model_names,
            connect=connect,
        )

    # Properties
    @property
    def room_name(self) -> str:
        return self._room_name

    @property
    def server_url(self) -> str:
        return self._server_url

    @property
    def builder(self) -> SceneBuilder:
        return self._builder

    @property
    def state(self) -> SceneState:
        return self._builder.state

    @property
    def dispatcher(self) -> Dispatcher | None:
        """Dispatcher of the current room, if a snapshot was ever sent to it."""
        with self._lock:
            return self._dispatchers.get(self._room_name)

    # Commands
    def set_room_name(self, room_name: str) -> None:
        """Switch rooms; the next send goes to ``room_name``."""
        with self._lock:
            self._room_name = room_name
        logger.info(f"Room set to {room_name}")

    def apply(self, command: Command) -> None:
        """Apply a scene command, or handle a room change / send request."""
        if isinstance(command, SetRoomName):
            self.set_room_name(command.room_name)
        elif isinstance(command, SendData):
            self.send_data(command.name)
        else:
            apply_command(self._builder, command)

    def clear(self) -> None:
        self._builder.clear()

    # Sending
    def next_timestamp(self) -> str:
        """ISO-8601 UTC timestamp with millisecond precision, strictly increasing."""
        with self._lock:
            now = self._clock().astimezone(timezone.utc)
            now = now.replace(microsecond=now.microsecond // 1000 * 1000)
            if self._last_timestamp is not None and now <= self._last_timestamp:
                now = self._last_timestamp + timedelta(milliseconds=1)
            self._last_timestamp = now
        return now.isoformat(timespec="milliseconds").replace("+00:00", "Z")

    def build_snapshot(self, name: str = "") -> str:
        """Serialize the current scene as the JSON text of one send."""
        return snapshot_to_json(self._builder.state, name, self.next_timestamp())

    def send_data(self, name: str = "") -> str:
        """Send the accumulated scene to the current room.

        Returns immediately; delivery happens on a dispatcher thread.

        Returns:
            The JSON payload handed to the dispatcher.
        """
        payload = self.build_snapshot(name)
        dispatcher = self._dispatcher_for(self._room_name)
        dispatcher.send_snapshot(payload)
        logger.debug(
            f"Queued snapshot {name!r} for room {dispatcher.room_name} "
            f"({dispatcher.state.value})"
        )
        return payload

    def _dispatcher_for(self, room_name: str) -> Dispatcher:
        with self._lock:
            dispatcher = self._dispatchers.get(room_name)
            if dispatcher is None:
                dispatcher = create_dispatcher(
                    self._dispatch_mode,
                    room_name,
                    self._server_url,
                    idle_close_delay=self._idle_close_delay,
                    open_timeout=self._open_timeout,
                    pending_policy=self._pending_policy,
                    queue_interval=self._queue_interval,
                    connect=self._connect,
                )
                dispatcher.on_error.add_listener(self.on_error.invoke)
                dispatcher.on_message.add_listener(self.on_message.invoke)
                dispatcher.on_state_changed.add_listener(
                    lambda state, room=room_name: self.on_state_changed.invoke(room, state)
                )
                self._dispatchers[room_name] = dispatcher
            return dispatcher

    # Lifecycle
    def _is_busy(self, dispatcher: Dispatcher) -> bool:
        state = dispatcher.state
        return (
            state in (ConnectionState.CONNECTING, ConnectionState.OPEN)
            or dispatcher.pending_count > 0
        )

    def wait_closed(self, timeout: float | None = None, poll_interval: float = 0.05) -> bool:
        """Wait until every room's connection has drained and closed.

        Returns:
            True if all dispatchers went quiet before ``timeout``.
        """
        deadline = None if timeout is None else time.monotonic() + timeout
        while True:
            with self._lock:
                dispatchers = list(self._dispatchers.values())
            if not any(self._is_busy(d) for d in dispatchers):
                return True
            if deadline is not None and time.monotonic() >= deadline:
                return False
            time.sleep(poll_interval)

    def close(self) -> None:
        """Close every room's socket, discarding queued snapshots."""
        with self._lock:
            dispatchers = list(self._dispatchers.values())
        for dispatcher in dispatchers:
            dispatcher.close()

    def __enter__(self) -> VoxelammingClient:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    # Diagnostics
    def get_stats(self) -> dict[str, dict[str, int]]:
        """Per-room dispatcher statistics."""
        # Dispatcher locks are never taken while holding the client lock
        with self._lock:
            dispatchers = list(self._dispatchers.items())
        return {room: d.get_stats() for room, d in dispatchers}
