"""Command line interface for the bunkr uploader."""
from __future__ import annotations

import argparse
import asyncio
import logging
import os
import sys
from pathlib import Path
from typing import List, Optional, Sequence

from rich.logging import RichHandler
from rich.prompt import Confirm, IntPrompt, Prompt

from . import __version__
from .cli_progress import (
    RunProgressDisplay,
    console,
    render_configuration_summary,
    render_file_list,
    render_missing_path,
)
from .exceptions import APIError, AuthenticationError, BunkrUploaderError
from .models import UploadConfig
from .orchestrator import FileCollector, UploadOrchestrator
from .services.api_client import DEFAULT_API_URL, BunkrAPIClient
from .services.ledger import MATCH_LINE, MATCH_SUBSTRING
from .services.token_store import DEFAULT_TOKEN_FILE, TokenStore
from .utils import events

logger = logging.getLogger(__name__)

DEFAULT_RESOURCES_DIR = Path.home() / ".local" / "share" / "bunkr-uploader"


class CLIError(RuntimeError):
    """Raised when CLI validation/execution fails."""


def _setup_logging(debug: bool, silent: bool, log_level: Optional[str]) -> str:
    """Silent unless --debug, --log-level or LOG_LEVEL asks for logs."""
    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    logging.disable(logging.NOTSET)

    level_name = "DEBUG" if debug else (log_level or os.getenv("LOG_LEVEL"))
    if silent or not level_name:
        logging.disable(logging.CRITICAL)
        root_logger.setLevel(logging.CRITICAL + 1)
        return "silent"

    level = getattr(logging, level_name.upper(), logging.INFO)
    handler = RichHandler(console=console, markup=False, show_time=False, show_path=False)
    handler.setFormatter(logging.Formatter("%(message)s"))
    root_logger.addHandler(handler)
    root_logger.setLevel(level)
    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(max(level, logging.WARNING))
    return logging.getLevelName(level)


def _load_env_file(path: Path) -> None:
    """Export KEY=value lines from a .env file; existing variables win."""
    try:
        content = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise CLIError(f"could not read env file {path}: {exc}") from exc

    for raw_line in content.splitlines():
        line = raw_line.strip()
        if line.startswith("export "):
            line = line[len("export "):]
        key, sep, value = line.partition("=")
        key, value = key.strip(), value.strip()
        if not sep or not key or key.startswith("#"):
            continue
        if len(value) >= 2 and value[0] == value[-1] and value[0] in "'\"":
            value = value[1:-1]
        os.environ.setdefault(key, value)


def _resolve_default_env_file() -> Optional[Path]:
    default_env = Path(".env")
    return default_env if default_env.exists() and default_env.is_file() else None


def _resolve_resources_dir(value: Optional[Path]) -> Path:
    if value is not None:
        return Path(value).expanduser()
    env_home = os.getenv("BUNKR_UPLOADER_HOME")
    if env_home:
        return Path(env_home).expanduser()
    return DEFAULT_RESOURCES_DIR


def _build_config(args: argparse.Namespace) -> UploadConfig:
    ledger_match = args.ledger_match or os.getenv("BUNKR_LEDGER_MATCH") or MATCH_SUBSTRING
    if ledger_match not in (MATCH_SUBSTRING, MATCH_LINE):
        raise CLIError(f"invalid ledger match mode: {ledger_match}")
    return UploadConfig(
        force=args.force,
        mime_type=args.mime_type,
        ledger_match=ledger_match,
        timeout=args.timeout,
    )


async def _resolve_token(
    explicit: Optional[str],
    store: TokenStore,
    api_url: str,
) -> str:
    """Token from flag, environment, token file, or an interactive prompt."""
    token = explicit or os.getenv("BUNKR_TOKEN") or store.load()
    if token:
        return token.strip()

    token = Prompt.ask("Enter your bunkr token", password=True).strip()
    if not token:
        raise CLIError("no token given")

    async with BunkrAPIClient(token, api_url=api_url) as client:
        await client.verify_token()
    store.save(token)
    return token


async def _resolve_album(client: BunkrAPIClient, album: Optional[str], no_album: bool) -> Optional[str]:
    """Album id from --album, or interactively from the dashboard."""
    if album:
        return album
    if no_album:
        return None

    if not Confirm.ask("Add to album?", default=True):
        return None

    if Confirm.ask("Create a new album?", default=True):
        name = Prompt.ask("Album name").strip()
        if not name:
            raise CLIError("album name cannot be empty")
        return await client.create_album(name)

    try:
        albums = await client.list_albums()
    except APIError as exc:
        logger.error("Error getting albums: %s", exc)
        print(f"Error getting albums: {exc}", file=sys.stderr)
        return None

    if not albums:
        console.print("[yellow]No albums found, uploading without album.[/yellow]")
        return None

    for index, item in enumerate(albums, start=1):
        console.print(f"{index}. {item.name} (id: {item.id})", highlight=False)
    choice = IntPrompt.ask(
        "Select an Album",
        default=1,
        choices=[str(i) for i in range(1, len(albums) + 1)],
        show_choices=False,
    )
    return albums[choice - 1].id


def _attach_display(orchestrator: UploadOrchestrator, config: UploadConfig) -> RunProgressDisplay:
    display = RunProgressDisplay(chunk_threshold=config.chunk_threshold)
    orchestrator.on(events.FILE_START, display.on_file_start)
    orchestrator.on(events.FILE_PROGRESS, display.on_file_progress)
    orchestrator.on(events.CHUNK_FAIL, display.on_chunk_fail)
    orchestrator.on(events.FILE_COMPLETE, display.on_file_complete)
    orchestrator.on(events.FILE_FAIL, display.on_file_fail)
    orchestrator.on(events.FILE_SKIP, display.on_file_skip)
    orchestrator.on(events.RATE_LIMITED, display.on_rate_limited)
    orchestrator.on(events.LEDGER_WARNING, display.on_ledger_warning)
    orchestrator.on(events.FINISH, display.on_finish)
    return display


async def _run_upload(
    files: List[Path],
    config: UploadConfig,
    resources_dir: Path,
    api_url: str,
    token: Optional[str],
    upload_url: Optional[str],
    album: Optional[str],
    no_album: bool,
) -> int:
    store = TokenStore(resources_dir / DEFAULT_TOKEN_FILE)
    token = await _resolve_token(token, store, api_url)

    async with BunkrAPIClient(token, api_url=api_url, timeout=config.timeout) as client:
        if not upload_url:
            upload_url = await client.get_upload_url()
        album_id = await _resolve_album(client, album, no_album)

        async with UploadOrchestrator(
            token,
            resources_dir,
            config=config,
            album_id=album_id,
            upload_url=upload_url,
            api_url=api_url,
            client=client,
        ) as orchestrator:
            _attach_display(orchestrator, config)
            result = await orchestrator.run(files)

    return 0 if result.all_success else 1


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="bunkr-up",
        description="Upload files to bunkr, chunking large files and skipping files already uploaded.",
    )
    parser.add_argument("paths", nargs="*", type=Path, help="path to files or directory")
    parser.add_argument(
        "-f",
        "--force",
        action="store_true",
        help="force upload without skipping (for special case)",
    )
    parser.add_argument(
        "-t",
        "--type",
        dest="mime_type",
        default=None,
        help="override MIME type (e.g., video/mp4, text/plain)",
    )
    parser.add_argument("--album", default=None, help="Upload into this album id without prompting")
    parser.add_argument("--no-album", action="store_true", help="Do not ask for an album")
    parser.add_argument("--token", default=None, help="Dashboard token (default from BUNKR_TOKEN or token file)")
    parser.add_argument(
        "--api-url",
        default=None,
        help=f"Dashboard URL (default from BUNKR_API_URL or {DEFAULT_API_URL})",
    )
    parser.add_argument(
        "--upload-url",
        default=None,
        help="Upload node URL (default from BUNKR_UPLOAD_URL or asked from the dashboard)",
    )
    parser.add_argument(
        "--resources-dir",
        type=Path,
        default=None,
        help="Ledger, token and chunk directory (default from BUNKR_UPLOADER_HOME)",
    )
    parser.add_argument(
        "--ledger-match",
        choices=[MATCH_SUBSTRING, MATCH_LINE],
        default=None,
        help="How the ledger is searched for already uploaded paths (default: substring)",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=None,
        help="HTTP timeout in seconds (default: wait indefinitely)",
    )
    parser.add_argument(
        "--env-file",
        type=Path,
        default=None,
        help="Load environment variables from this .env file",
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
        version=f"bunkr-up {__version__}",
    )
    return parser


def run_cli(argv: Optional[Sequence[str]] = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    used_env_file = args.env_file or _resolve_default_env_file()
    if used_env_file is not None:
        try:
            _load_env_file(Path(used_env_file))
        except CLIError as exc:
            print(f"ERROR: {exc}", file=sys.stderr)
            return 1

    effective_log_mode = _setup_logging(
        debug=args.debug,
        silent=args.silent,
        log_level=args.log_level,
    )

    files = FileCollector.collect_files(args.paths, on_missing=render_missing_path)
    if not files:
        print("No paths given!")
        return 1

    try:
        config = _build_config(args)
    except CLIError as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return 1

    resources_dir = _resolve_resources_dir(args.resources_dir)
    api_url = args.api_url or os.getenv("BUNKR_API_URL") or DEFAULT_API_URL
    upload_url = args.upload_url or os.getenv("BUNKR_UPLOAD_URL")

    render_file_list(files)
    render_configuration_summary(
        {
            "Dashboard": api_url,
            "Upload Node": upload_url or "(from dashboard)",
            "Resources": str(resources_dir),
            "Force": "yes" if config.force else "no",
            "MIME Override": config.mime_type or "-",
            "Ledger Match": config.ledger_match,
            "Env File": str(used_env_file) if used_env_file else "-",
            "Logging": effective_log_mode,
        }
    )

    try:
        return asyncio.run(
            _run_upload(
                files=files,
                config=config,
                resources_dir=resources_dir,
                api_url=api_url,
                token=args.token,
                upload_url=upload_url,
                album=args.album,
                no_album=args.no_album,
            )
        )
    except AuthenticationError as exc:
        print(f"ERROR: invalid token: {exc}", file=sys.stderr)
        return 1
    except (CLIError, BunkrUploaderError) as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        print("Cancelled.", file=sys.stderr)
        return 130


def main() -> None:
    raise SystemExit(run_cli())


if __name__ == "__main__":
    main()
