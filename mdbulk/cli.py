"""Command line interface for mdbulk package."""
from __future__ import annotations

import argparse
import asyncio
import logging
import os
import sys
from pathlib import Path
from typing import Optional, Sequence, Tuple

import httpx
from rich.logging import RichHandler
from rich.markup import escape

from . import __version__
from .cli_progress import (
    DownloadProgressDisplay,
    echo,
    render_configuration_summary,
    render_drive_item,
    render_error,
    render_profile,
    render_verify_table,
)
from .commands import editor as editor_commands
from .commands import onedrive as onedrive_commands
from .editor.fields import DEFAULT_FIELDS, FieldDescriptor
from .errors import MdBulkError
from .models import BulkConfig
from .services.onedrive import get_authenticated_client
from .services.state import JsonStateStore
from .utils.events import EventEmitter

EDITOR_COMMANDS = {"extract", "update", "verify"}


class CLIError(MdBulkError):
    """Raised when CLI validation/execution fails."""


def _setup_logging(debug: bool, silent: bool, log_level: Optional[str]) -> str:
    """
    Configure logging.

    Default behavior is silent unless --debug or --log-level is provided.
    Returns a string describing effective mode.
    """
    root_logger = logging.getLogger()
    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)

    logging.disable(logging.NOTSET)

    if silent or (not debug and not log_level):
        logging.disable(logging.CRITICAL)
        root_logger.setLevel(logging.CRITICAL + 1)
        return "silent"

    if debug:
        level = logging.DEBUG
    else:
        env_level = os.getenv("LOG_LEVEL")
        level = getattr(logging, (log_level or env_level or "INFO").upper(), logging.INFO)

    handler = RichHandler(
        rich_tracebacks=True,
        markup=False,
        show_time=False,
        show_path=False,
    )
    handler.setFormatter(logging.Formatter("%(message)s"))
    root_logger.addHandler(handler)
    root_logger.setLevel(level)
    # keep transport chatter out of --debug output
    logging.getLogger("httpcore").setLevel(max(level, logging.INFO))
    return logging.getLevelName(level)


def _strip_optional_quotes(value: str) -> str:
    if len(value) >= 2 and value[0] == value[-1] and value[0] in {"'", '"'}:
        return value[1:-1]
    return value


def _load_env_file(path: Path, override: bool = False) -> None:
    if not path.exists():
        raise CLIError(f"env file not found: {path}")
    if not path.is_file():
        raise CLIError(f"env path is not a file: {path}")

    try:
        content = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise CLIError(f"could not read env file {path}: {exc}") from exc

    for raw_line in content.splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        if line.startswith("export "):
            line = line[len("export ") :].strip()
        if "=" not in line:
            continue

        key, value = line.split("=", 1)
        key = key.strip()
        if not key:
            continue

        value = _strip_optional_quotes(value.strip())
        if override or key not in os.environ:
            os.environ[key] = value


def _resolve_default_env_file() -> Optional[Path]:
    default_env = Path(".env")
    return default_env if default_env.exists() and default_env.is_file() else None


def _parse_fields(values: Optional[Sequence[str]]) -> Tuple[FieldDescriptor, ...]:
    if not values:
        return DEFAULT_FIELDS
    try:
        return tuple(FieldDescriptor.parse(value) for value in values)
    except ValueError as exc:
        raise CLIError(str(exc)) from exc


def _build_config(args: argparse.Namespace) -> BulkConfig:
    try:
        config = BulkConfig.from_env(
            state_file=args.state_file,
            tokens_file=args.tokens_file,
            max_concurrent=getattr(args, "concurrency", None),
        )
    except ValueError as exc:
        raise CLIError(f"invalid configuration: {exc}") from exc
    if config.max_concurrent < 1:
        raise CLIError(f"concurrency must be at least 1, got {config.max_concurrent}")
    return config


async def _run_onedrive(args: argparse.Namespace, config: BulkConfig) -> int:
    store = JsonStateStore(config.state_file)
    client = get_authenticated_client(config)

    async with client:
        if args.command == "me":
            render_profile(await onedrive_commands.me(client))
            return 0

        if args.command == "resolve":
            item, state = await onedrive_commands.resolve(client, store, args.link)
            render_drive_item(item, state.root)
            return 0

        if args.command == "ls":
            entries = await onedrive_commands.list_remote(client, store.load(), args.path)
            for entry in entries:
                sys.stdout.write(f"{entry}\n")
            return 0

        state = store.load()
        render_configuration_summary(
            {
                "Remote Root": state.root or "(not resolved)",
                "Remote Path": args.path,
                "Local": args.local or ".",
                "Recursive": "yes" if args.recursive else "no",
                "Concurrency": config.max_concurrent,
                "State File": config.state_file,
            }
        )
        display = DownloadProgressDisplay()
        events = display.attach(EventEmitter())
        outcome = await onedrive_commands.download(
            client,
            state,
            args.path,
            local=args.local,
            recursive=args.recursive,
            max_concurrent=config.max_concurrent,
            events=events,
        )
        display.on_finish(outcome)
        return 0


def _run_editor(args: argparse.Namespace) -> int:
    fields = _parse_fields(args.field)

    if args.command == "extract":
        rows = editor_commands.extract(args.path, output=args.output, as_json=args.json, fields=fields)
        if args.output != "-":
            echo(f"Wrote {len(rows)} row(s) to {escape(args.output)}")
        return 0

    if args.command == "update":
        for target in editor_commands.update(args.input, fields=fields, in_place=args.in_place):
            echo(f"updated [yellow]{escape(str(target))}[/yellow]")
        return 0

    rows = editor_commands.verify(args.input, fields=fields)
    render_verify_table(rows, [cfg.field for cfg in fields])
    return 0


def _add_field_option(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "-f",
        "--field",
        action="append",
        default=None,
        metavar="NAME=Label",
        help="Field to process (repeatable, default: topics=Topics, products=Products)",
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="mdbulk",
        description="Bulk Markdown metadata editing and OneDrive download for Word to Markdown workflows.",
    )
    parser.add_argument(
        "--env-file",
        type=Path,
        default=None,
        help="Load environment variables from this .env file",
    )
    parser.add_argument(
        "--state-file",
        default=None,
        help="Session state file (default from MDBULK_STATE_FILE or .hlx-blk.json)",
    )
    parser.add_argument(
        "--tokens-file",
        default=None,
        help="OneDrive tokens file (default from MDBULK_TOKENS_FILE or tokens.json)",
    )
    parser.add_argument("--debug", action="store_true", help="Enable debug logs")
    parser.add_argument("--silent", action="store_true", help="Only print errors")
    parser.add_argument(
        "--log-level",
        default=None,
        help="Explicit log level (DEBUG/INFO/WARNING/ERROR)",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"mdbulk {__version__}",
    )

    sub = parser.add_subparsers(dest="command", metavar="COMMAND")

    sub.add_parser("me", help="Show the signed-in OneDrive user")

    resolve = sub.add_parser("resolve", help="Resolve a share link and use it as root")
    resolve.add_argument("link", help="OneDrive or SharePoint sharing URL")

    ls = sub.add_parser("ls", help="List a remote folder below the root")
    ls.add_argument("path", nargs="?", default=None, help="Path relative to the working directory")

    get = sub.add_parser("get", help="Download a remote file or folder")
    get.add_argument("path", help="Remote path relative to the working directory")
    get.add_argument("-l", "--local", default=None, help="Local target file or directory")
    get.add_argument("-r", "--recursive", action="store_true", help="Download a folder tree")
    get.add_argument(
        "-j",
        "--concurrency",
        type=int,
        default=None,
        help="Maximum parallel downloads (default from MDBULK_MAX_CONCURRENT or 8)",
    )

    extract = sub.add_parser("extract", help="Extract fields from Markdown documents")
    extract.add_argument("path", help="Markdown file or directory")
    extract.add_argument("-o", "--output", default="-", help="Output file (default: stdout)")
    extract.add_argument("--json", action="store_true", help="Write JSON instead of a tab-delimited table")
    _add_field_option(extract)

    update = sub.add_parser("update", help="Update document fields from a table")
    update.add_argument("input", help="JSON, tab-delimited or CSV table with a path column")
    update.add_argument("--in-place", action="store_true", help="Overwrite documents instead of writing <path>-new.md")
    _add_field_option(update)

    verify = sub.add_parser("verify", help="Compare a CSV table with the current documents")
    verify.add_argument("input", help="CSV table with a path column")
    _add_field_option(verify)

    return parser


def run_cli(argv: Optional[Sequence[str]] = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    used_env_file = args.env_file or _resolve_default_env_file()
    if used_env_file is not None:
        try:
            _load_env_file(Path(used_env_file))
        except CLIError as exc:
            render_error(str(exc))
            return 1

    _setup_logging(
        debug=args.debug,
        silent=args.silent,
        log_level=args.log_level,
    )

    if args.command is None:
        parser.print_help()
        return 0

    try:
        if args.command in EDITOR_COMMANDS:
            return _run_editor(args)
        config = _build_config(args)
        return asyncio.run(_run_onedrive(args, config))
    except (MdBulkError, httpx.HTTPError, OSError) as exc:
        render_error(str(exc) or type(exc).__name__)
        return 1
    except KeyboardInterrupt:
        render_error("Cancelled.")
        return 130


def main() -> None:
    raise SystemExit(run_cli())


if __name__ == "__main__":
    main()
