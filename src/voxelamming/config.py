"""Layered client configuration.

Values come from three layers, later ones winning:

1. ``default.toml`` shipped inside the package
2. an optional user TOML file (``--config``)
3. explicit command-line flags

The file format is a flat table whose keys are the ``ClientConfig`` field names.
"""

from __future__ import annotations

import argparse
import importlib.resources
import sys
import tomllib
from dataclasses import dataclass, fields
from dataclasses import replace as dataclass_replace
from pathlib import Path
from typing import Any, NamedTuple

from .errors import VoxelammingError
from .transport import DispatchMode, PendingPolicy


class ConfigurationError(VoxelammingError):
    """The merged configuration has invalid values.

    Attributes:
        errors: One message per invalid value.
    """

    def __init__(self, errors: list[str]) -> None:
        self.errors = errors
        super().__init__("Invalid configuration: " + "; ".join(errors))


class DefaultConfigError(VoxelammingError):
    """The packaged default.toml is missing, unreadable or incomplete."""

    def __init__(self, message: str) -> None:
        super().__init__(f"Packaged default configuration is unusable: {message}")


class ConfigOverride(NamedTuple):
    """A user-file value that replaces a packaged default."""

    key: str
    default_value: Any
    new_value: Any


@dataclass
class ClientConfig:
    """Settings of a client and the voxelamming-send command.

    Every field must be present in default.toml.
    """

    # Relay connection and dispatch
    server_url: str
    room_name: str
    dispatch_mode: str
    pending_policy: str
    idle_close_delay: float
    open_timeout: float
    queue_interval: float

    # Names accepted by create_textured_box / create_model
    texture_names: list[str]
    model_names: list[str]

    # Logging ("" in TOML means unset)
    log_dir: str | None
    log_level_console: str
    log_json_console: bool
    log_rotation: str | None
    log_retention: str | None


_VALID_KEYS: set[str] = {f.name for f in fields(ClientConfig)}
_OPTIONAL_STRING_KEYS = frozenset({"log_dir", "log_rotation", "log_retention"})
_TIMING_KEYS = ("idle_close_delay", "open_timeout", "queue_interval")
_NAME_LIST_KEYS = ("texture_names", "model_names")
_CLI_STRING_KEYS = (
    "server_url",
    "room_name",
    "dispatch_mode",
    "pending_policy",
    "log_level_console",
    "log_rotation",
    "log_retention",
)
_VALID_LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


def load_default_toml_data() -> dict[str, Any]:
    """Parse the default.toml bundled with the package.

    Raises:
        DefaultConfigError: If the resource is missing or not valid TOML.
    """
    resource = importlib.resources.files(__package__).joinpath("default.toml")
    try:
        return tomllib.loads(resource.read_text(encoding="utf-8"))
    except FileNotFoundError as e:
        raise DefaultConfigError(f"default.toml is not installed ({e})") from e
    except tomllib.TOMLDecodeError as e:
        raise DefaultConfigError(f"default.toml is not valid TOML ({e})") from e
    except (OSError, UnicodeDecodeError) as e:
        raise DefaultConfigError(f"default.toml cannot be read ({e})") from e


def load_config_from_toml(path: Path) -> dict[str, Any]:
    """Parse a user configuration file.

    Raises:
        FileNotFoundError: If ``path`` does not exist.
        tomllib.TOMLDecodeError: If the file is not valid TOML.
    """
    with open(path, "rb") as f:
        return tomllib.load(f)


def process_toml_config(toml_data: dict[str, Any]) -> dict[str, Any]:
    """Drop unknown keys; an empty string for an optional setting becomes None."""
    return {
        key: None if key in _OPTIONAL_STRING_KEYS and value == "" else value
        for key, value in toml_data.items()
        if key in _VALID_KEYS
    }


def get_unknown_keys(toml_data: dict[str, Any]) -> list[str]:
    return [key for key in toml_data if key not in _VALID_KEYS]


def _is_positive_number(value: Any) -> bool:
    return not isinstance(value, bool) and isinstance(value, (int, float)) and value > 0


def validate_config(config: ClientConfig) -> list[str]:
    """Check every setting and collect one message per problem.

    An empty list means the configuration is usable.
    """
    errors: list[str] = []

    if not config.server_url.startswith(("ws://", "wss://")):
        errors.append(f"server_url must start with ws:// or wss://, got {config.server_url}")
    if not config.room_name:
        errors.append("room_name must not be empty")

    modes = [m.value for m in DispatchMode]
    if config.dispatch_mode not in modes:
        errors.append(f"dispatch_mode must be one of {modes}, got {config.dispatch_mode}")
    policies = [p.value for p in PendingPolicy]
    if config.pending_policy not in policies:
        errors.append(f"pending_policy must be one of {policies}, got {config.pending_policy}")

    for key in _TIMING_KEYS:
        value = getattr(config, key)
        if not _is_positive_number(value):
            errors.append(f"{key} must be positive, got {value}")

    for key in _NAME_LIST_KEYS:
        names = getattr(config, key)
        if not isinstance(names, list) or any(not isinstance(n, str) for n in names):
            errors.append(f"{key} must be a list of strings")

    if config.log_level_console.upper() not in _VALID_LOG_LEVELS:
        errors.append(
            f"log_level_console must be one of {_VALID_LOG_LEVELS}, "
            f"got {config.log_level_console}"
        )
    return errors


def load_default_config() -> ClientConfig:
    """The packaged defaults as a ClientConfig.

    Raises:
        DefaultConfigError: If default.toml is unusable or lacks a field.
    """
    values = process_toml_config(load_default_toml_data())
    absent = sorted(_VALID_KEYS.difference(values))
    if absent:
        raise DefaultConfigError(f"default.toml lacks {', '.join(absent)}")
    return ClientConfig(**values)


def merge_cli_args(config: ClientConfig, args: argparse.Namespace) -> ClientConfig:
    """Return ``config`` with the flags that were actually given applied."""
    given = {
        key: getattr(args, key)
        for key in _CLI_STRING_KEYS
        if getattr(args, key, None) is not None
    }
    if getattr(args, "log_dir", None) is not None:
        given["log_dir"] = str(args.log_dir)
    if getattr(args, "log_json_console", False):
        given["log_json_console"] = True
    return dataclass_replace(config, **given) if given else config


def _warn_unknown_keys(path: Path, keys: list[str]) -> None:
    # Runs before logging is configured
    print(f"WARNING: {path} has unknown keys: {', '.join(keys)}", file=sys.stderr)


def create_config_from_args(
    args: argparse.Namespace,
) -> tuple[ClientConfig, list[ConfigOverride]]:
    """Build the effective configuration for a command run.

    Args:
        args: Parsed flags; ``args.config`` optionally names a user TOML file.

    Returns:
        The validated configuration, and the user-file values that differ
        from the packaged defaults.

    Raises:
        DefaultConfigError: If default.toml is unusable.
        FileNotFoundError: If the user file does not exist.
        tomllib.TOMLDecodeError: If the user file is not valid TOML.
        ConfigurationError: If any merged value is invalid.
    """
    config = load_default_config()
    overrides: list[ConfigOverride] = []

    user_path = getattr(args, "config", None)
    if user_path is not None:
        user_path = Path(user_path)
        raw = load_config_from_toml(user_path)
        unknown = get_unknown_keys(raw)
        if unknown:
            _warn_unknown_keys(user_path, unknown)

        user_values = process_toml_config(raw)
        overrides = [
            ConfigOverride(key, getattr(config, key), value)
            for key, value in user_values.items()
            if getattr(config, key) != value
        ]
        config = dataclass_replace(config, **user_values)

    config = merge_cli_args(config, args)
    errors = validate_config(config)
    if errors:
        raise ConfigurationError(errors)
    return config, overrides
