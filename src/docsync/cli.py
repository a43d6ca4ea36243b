"""Command line entry point: ``docsync push|pull|settings``."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import os
import sys
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv

from . import __version__
from .config import load_config
from .config_loader import load_hierarchical_config
from .config_schema import UnifiedConfig, build_config, server_fallbacks
from .document.context import make_context, read_settings
from .document.validator import apply_fixes, validate_path_settings
from .exceptions import DocsyncError, SettingsNotFoundError
from .logger import NodeLogger, setup_logging
from .sync.harness import SyncSession, pull, push, select_transport
from .sync.reporter import format_issues, issues_to_json

logger = logging.getLogger("docsync")

# A fix can create a sub-node settings.json that has issues of its own
MAX_FIX_PASSES = 3


def _stderr_print(msg: str) -> None:
    print(msg, file=sys.stderr, flush=True)


def _print_data(data: Any, as_json: bool) -> None:
    if as_json:
        print(json.dumps(data, indent=2))
    elif isinstance(data, str):
        print(data)
    else:
        for key, value in data.items():
            print(f"{key}: {value}")


def confirm_on_stdin(message: str) -> bool:
    """Ask a yes/no question on the terminal; Enter means yes."""
    try:
        answer = input(f"{message} [Y/n] ")
    except EOFError:
        return False
    return answer.strip().lower() in ("", "y", "yes")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="docsync",
        description="Synchronize folder-based documents with a document server",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Push the document in the current directory (transport auto-detected)
  docsync push

  # Push as a tarball even inside a git clone
  docsync push --no-git

  # Clone /notes into ./notes
  docsync pull /notes

  # Pull from another server into ./work, committing tar pulls locally
  docsync pull https://docs.example.com/notes work --via tar --git

  # Check settings.json files and repair what can be repaired
  docsync settings --fix

Connection settings come from --url/--username/--password, the
DOCSYNC_URL/DOCSYNC_USERNAME/DOCSYNC_PASSWORD environment variables (a .env
file is read), or the server section of .docsync/config.yml.
        """,
    )

    parser.add_argument("--url", help="Document server URL (overrides DOCSYNC_URL)")
    parser.add_argument("--username", help="Username (overrides DOCSYNC_USERNAME)")
    parser.add_argument(
        "--password",
        help="Password (overrides DOCSYNC_PASSWORD; visible in the process list)",
    )
    parser.add_argument(
        "--insecure",
        action="store_true",
        help="Skip SSL certificate verification (use only for development)",
    )
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")
    parser.add_argument("--log-file", help="Also write logs to this file")
    parser.add_argument(
        "--version", action="version", version=f"docsync version {__version__}"
    )

    commands = parser.add_subparsers(dest="command", required=True)

    push_parser = commands.add_parser("push", help="Publish the current document")
    push_parser.add_argument("source", nargs="?", help="Document path or URL")
    push_parser.add_argument("--via", choices=["git", "tar"], help="Transport")
    push_parser.add_argument(
        "--no-git", action="store_true", help="Push as a tarball (same as --via tar)"
    )
    push_parser.add_argument("--prompt", action="store_true", help="Confirm before changes")
    push_parser.add_argument("--json", action="store_true", help="Print JSON output")

    pull_parser = commands.add_parser("pull", help="Clone or update a document")
    pull_parser.add_argument("source", nargs="?", help="Document path or URL")
    pull_parser.add_argument("destination", nargs="?", help="Target directory")
    pull_parser.add_argument("--via", choices=["git", "tar"], help="Transport")
    pull_parser.add_argument(
        "--git",
        action="store_true",
        help="Commit tar pulls into a local git repository",
    )
    pull_parser.add_argument("--prompt", action="store_true", help="Confirm before changes")
    pull_parser.add_argument("--json", action="store_true", help="Print JSON output")

    settings_parser = commands.add_parser(
        "settings", help="Validate settings.json files"
    )
    settings_parser.add_argument(
        "--fix", action="store_true", help="Apply automatic fixes"
    )
    settings_parser.add_argument("--json", action="store_true", help="Print JSON output")

    return parser


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


def settings_command(args: argparse.Namespace, cwd: Path) -> int:
    settings = read_settings(cwd)
    if settings is None:
        message = "No settings.json found in the current directory"
        if args.json:
            _print_data({"error": "not_found", "message": message}, True)
            return 1
        raise SettingsNotFoundError(message)

    def validate() -> list:
        current = read_settings(cwd) or settings
        return validate_path_settings(make_context(current, "", "", cwd))

    issues = validate()
    if not issues:
        _print_data({"valid": True}, args.json)
        return 0

    if not args.fix:
        _print_data(
            issues_to_json(issues) if args.json else format_issues(issues), args.json
        )
        return 1

    total = len(issues)
    fixed, unfixed = apply_fixes(issues)
    for _ in range(MAX_FIX_PASSES - 1):
        remaining = validate()
        if not any(i.fixable for i in remaining):
            unfixed = remaining
            break
        more, unfixed = apply_fixes(remaining)
        fixed += more
        total += more

    if args.json:
        _print_data(issues_to_json(unfixed, fixed, total), True)
    else:
        print(f"Fixed {fixed}/{total} issue(s)")
        if unfixed:
            print(format_issues(unfixed))
    return 1 if unfixed else 0


async def _run_sync_command(
    args: argparse.Namespace, unified: UnifiedConfig, cwd: Path
) -> int:
    config = load_config(
        url=args.url,
        username=args.username,
        password=args.password,
        insecure=args.insecure,
        debug=args.debug,
        yaml_fallbacks=server_fallbacks(unified),
    )
    via = args.via or unified.sync.transport
    prompt = args.prompt or unified.sync.prompt

    with SyncSession.create(
        config,
        logger=NodeLogger(logger),
        prompt=prompt,
        confirm=confirm_on_stdin,
        json_output=args.json,
        cwd=cwd,
    ) as session:
        if args.command == "push":
            transport = select_transport(via, args.no_git, cwd)
            url = await push(session, transport, args.source)
        else:
            transport = select_transport(via) if via else None
            url = await pull(
                session,
                transport,
                args.source,
                args.destination,
                track_with_git=args.git or unified.sync.track_with_git,
            )

    if url and args.json:
        _print_data({"url": url}, True)
    return 0


def main(argv: list[str] | None = None) -> int:
    """Parse *argv*, run the command and return the exit status."""
    parser = build_parser()
    args = parser.parse_args(argv)

    load_dotenv()
    try:
        unified = build_config(load_hierarchical_config())
    except (OSError, ValueError, yaml.YAMLError) as e:
        _stderr_print(f"Error: invalid configuration: {e}")
        return 1

    # LOG_LEVEL from the environment beats the config file
    os.environ.setdefault("LOG_LEVEL", unified.logging.level)
    setup_logging(
        debug=args.debug or unified.server.debug,
        log_file=args.log_file or unified.logging.file,
        debug_format=unified.logging.format,
    )

    cwd = Path.cwd()
    try:
        if args.command == "settings":
            return settings_command(args, cwd)
        return asyncio.run(_run_sync_command(args, unified, cwd))
    except DocsyncError as e:
        logger.debug("Command failed", exc_info=True)
        _stderr_print(f"Error: {e}")
        return 1
    except ValueError as e:
        # Configuration problems reported by load_config()
        _stderr_print(f"Error: {e}")
        return 1


def run() -> None:
    """Console script entry point."""
    try:
        sys.exit(main())
    except KeyboardInterrupt:
        _stderr_print("\nInterrupted.")
        sys.exit(130)


if __name__ == "__main__":
    run()
