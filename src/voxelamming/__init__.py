"""
Voxelamming client package

Builds voxel scenes from imperative commands (boxes, transforms, lights, text,
models, sprites) and ships each accumulated scene as one JSON snapshot to a
remote renderer over a per-room WebSocket.

Main Classes:
    VoxelammingClient: Scene builder plus non-blocking per-room dispatch
    SceneBuilder: The scene accumulator on its own, without networking

Examples:
    # Replay a command script (after installation)
    voxelamming-send house.json --room 1234

    # Use the client programmatically
    from voxelamming import VoxelammingClient
    with VoxelammingClient(room_name="1234") as client:
        client.builder.create_box(0, 0, 0, r=1, g=0, b=0)
        client.send_data("house")
        client.wait_closed(timeout=10)
"""

from .client import VoxelammingClient
from .commands import apply_command, command_from_dict
from .errors import (
    CommandDecodeError,
    InvalidArgumentError,
    MalformedMeshError,
    SceneError,
    StackUnderflow,
    UnknownNameError,
    VoxelammingError,
)
from .scene import SceneBuilder, SceneState
from .transport import (
    ConnectionState,
    IntervalQueueDispatcher,
    PendingPolicy,
    SnapshotDispatcher,
)

# Export public API
__all__ = [
    # Client API
    "VoxelammingClient",
    "SceneBuilder",
    "SceneState",
    "apply_command",
    "command_from_dict",
    # Transport
    "SnapshotDispatcher",
    "IntervalQueueDispatcher",
    "ConnectionState",
    "PendingPolicy",
    # Errors
    "VoxelammingError",
    "SceneError",
    "StackUnderflow",
    "UnknownNameError",
    "InvalidArgumentError",
    "MalformedMeshError",
    "CommandDecodeError",
]

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("voxelamming-client")
except PackageNotFoundError:
    __version__ = "unknown"
