"""Exception hierarchy for the Voxelamming client.

Scene-building errors are raised synchronously from the accumulator so that a
host can report them; the offending command leaves the scene untouched.
Transport errors never use these types across the async boundary - they are
published on the dispatcher's ``on_error`` event instead.
"""

from __future__ import annotations


class VoxelammingError(Exception):
    """Base class for all errors raised by this package."""


class SceneError(VoxelammingError):
    """Raised when a scene-building command cannot be applied."""


class StackUnderflow(SceneError):
    """Raised when ``pop_matrix`` is called with no saved matrix."""

    def __init__(self) -> None:
        super().__init__("pop_matrix called on an empty transform stack")


class UnknownNameError(SceneError):
    """Raised for a texture, model or sprite name that is not known.

    Attributes:
        kind: What was being looked up ("texture", "model", "sprite").
        name: The name that was not found.
    """

    def __init__(self, kind: str, name: str) -> None:
        self.kind = kind
        self.name = name
        super().__init__(f"Unknown {kind} name: {name!r}")


class InvalidArgumentError(SceneError):
    """Raised when a command argument is outside its allowed set."""


class MalformedMeshError(SceneError):
    """Raised when a mesh blob cannot be turned into voxel boxes.

    Attributes:
        line_no: 1-based line number of the offending line, if known.
    """

    def __init__(self, message: str, line_no: int | None = None) -> None:
        self.line_no = line_no
        if line_no is not None:
            message = f"line {line_no}: {message}"
        super().__init__(message)


class CommandDecodeError(VoxelammingError):
    """Raised when a script entry cannot be decoded into a command."""
