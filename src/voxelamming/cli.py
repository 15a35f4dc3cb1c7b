"""
Command-line interface for the Voxelamming client.

``voxelamming-send`` replays a JSON command script into a scene and ships the
result to the renderer::

    voxelamming-send house.json --room 1234
    voxelamming-send house.json --dry-run > snapshot.json

A script is a JSON array of ``{"op": ..., **arguments}`` objects (or an object
with such an array under ``"commands"``). Entries that fail to decode or apply
are logged and skipped. ``send_data`` entries send a snapshot at that point; a
script without one gets a single snapshot at the end.
"""

import argparse
import json
import logging
import sys
import tomllib
from pathlib import Path
from typing import Any

from . import logging_utils
from .client import VoxelammingClient
from .commands import SendData, command_from_dict
from .config import (
    ClientConfig,
    ConfigOverride,
    ConfigurationError,
    DefaultConfigError,
    create_config_from_args,
)
from .errors import CommandDecodeError, SceneError
from .logging_utils import configure_logging

logger = logging.getLogger(__name__)

DISTRIBUTION_NAME = "voxelamming-client"
DEFAULT_WAIT_SECONDS = 30.0


def get_version() -> str:
    """
    Return the package version.
    Priority:
      1) importlib.metadata for 'voxelamming-client' (when installed)
      2) parse nearest pyproject.toml (when running from source)
      3) 'unknown'
    """
    import importlib.metadata as im

    try:
        return im.version(DISTRIBUTION_NAME)
    except im.PackageNotFoundError:
        pass

    for parent in Path(__file__).resolve().parents:
        toml_path = parent / "pyproject.toml"
        if toml_path.exists():
            data = tomllib.loads(toml_path.read_text(encoding="utf-8"))
            v = (data.get("project") or {}).get("version")
            if v:
                return v
            break

    return "unknown"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="voxelamming-send",
        description="Replay a Voxelamming command script and send the scene",
    )
    parser.add_argument("script", help="JSON command script ('-' reads stdin)")
    parser.add_argument("--config", type=Path, help="User TOML configuration file")
    parser.add_argument("--room", dest="room_name", help="Room name to join")
    parser.add_argument("--server-url", dest="server_url", help="WebSocket server URL")
    parser.add_argument(
        "--name", default="", help="Record name of the final snapshot (default: empty)"
    )
    parser.add_argument(
        "--dispatch-mode",
        choices=["direct", "interval"],
        help="Dispatch model (default from config: direct)",
    )
    parser.add_argument(
        "--pending-policy",
        choices=["coalesce", "chain"],
        help="Snapshots sent while connecting: keep latest or keep all",
    )
    parser.add_argument(
        "--wait",
        type=float,
        default=DEFAULT_WAIT_SECONDS,
        help=f"Seconds to wait for the idle close (default: {DEFAULT_WAIT_SECONDS})",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Print snapshots to stdout instead of sending them",
    )
    parser.add_argument("--log-dir", type=Path, help="Directory for voxelamming.log")
    parser.add_argument(
        "--log-level-console",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Console log level",
    )
    parser.add_argument(
        "--log-json-console", action="store_true", help="Emit console logs as JSON"
    )
    parser.add_argument("--log-rotation", help="loguru rotation rule, e.g. '10 MB'")
    parser.add_argument("--log-retention", help="loguru retention rule, e.g. '1 week'")
    parser.add_argument(
        "-V",
        "--version",
        action="version",
        version=f"%(prog)s {get_version()}",
        help="Show version and exit",
    )
    return parser


def load_script(source: str) -> list[Any]:
    """Read the command entries of a script file ('-' for stdin).

    Raises:
        OSError: If the file cannot be read.
        ValueError: If the content is not JSON or not a list of entries.
    """
    text = sys.stdin.read() if source == "-" else Path(source).read_text(encoding="utf-8")
    data = json.loads(text)
    if isinstance(data, dict):
        data = data.get("commands")
    if not isinstance(data, list):
        raise ValueError("script must be a JSON array or an object with a 'commands' array")
    return data


def run_script(
    client: VoxelammingClient, entries: list[Any], *, dry_run: bool = False
) -> tuple[int, int, int]:
    """Apply script entries to ``client``.

    Returns:
        (applied, failed, sent) counts.
    """
    applied = failed = sent = 0
    for index, entry in enumerate(entries):
        try:
            command = command_from_dict(entry)
            if isinstance(command, SendData):
                if dry_run:
                    print(client.build_snapshot(command.name))
                else:
                    client.send_data(command.name)
                sent += 1
            else:
                client.apply(command)
        except (CommandDecodeError, SceneError) as e:
            failed += 1
            logger.warning(f"Skipping entry {index}: {e}")
            continue
        applied += 1
    return applied, failed, sent


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        config, overrides = create_config_from_args(args)
    except ConfigurationError as e:
        print("ERROR: Invalid configuration:", file=sys.stderr)
        for error in e.errors:
            print(f"  - {error}", file=sys.stderr)
        return 2
    except (DefaultConfigError, FileNotFoundError, tomllib.TOMLDecodeError) as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 2

    configure_logging(
        log_dir=Path(config.log_dir) if config.log_dir else None,
        console_level=config.log_level_console,
        console_json=config.log_json_console,
        rotation=config.log_rotation,
        retention=config.log_retention,
    )
    try:
        return _run(args, config, overrides)
    finally:
        logging_utils.shutdown_logging()


def _run(
    args: argparse.Namespace, config: ClientConfig, overrides: list[ConfigOverride]
) -> int:
    for override in overrides:
        logger.info(
            f"Config override: {override.key} = {override.new_value!r} "
            f"(default {override.default_value!r})"
        )

    try:
        entries = load_script(args.script)
    except (OSError, ValueError) as e:
        logger.error(f"Cannot read script {args.script}: {e}")
        return 1

    transport_errors: list[BaseException] = []
    client = VoxelammingClient.from_config(config)
    client.on_error.add_listener(transport_errors.append)

    logger.info(
        f"Replaying {len(entries)} command(s) for room {config.room_name} "
        f"on {config.server_url}"
    )
    applied, failed, sent = run_script(client, entries, dry_run=args.dry_run)
    if sent == 0:
        if args.dry_run:
            print(client.build_snapshot(args.name))
        else:
            client.send_data(args.name)
        sent = 1
    logger.info(f"Applied {applied} command(s), skipped {failed}, snapshots {sent}")

    if not args.dry_run:
        if not client.wait_closed(timeout=args.wait):
            logger.warning(f"Connection still busy after {args.wait}s; closing")
        client.close()
        for room, stats in client.get_stats().items():
            logger.info(f"Room {room}: {stats}")

    if transport_errors:
        logger.error(f"{len(transport_errors)} transport error(s) occurred")
        return 1
    return 1 if failed else 0


def cli_main() -> None:
    """
    Entry point for the voxelamming-send console script.

    Referenced in pyproject.toml; delegates to main() and turns its result into
    the process exit status.
    """
    try:
        sys.exit(main())
    except KeyboardInterrupt:
        print("\nInterrupted by user", file=sys.stderr)
        sys.exit(130)


if __name__ == "__main__":
    cli_main()
