"""Command line interface for fastdrop."""
from __future__ import annotations

import argparse
import asyncio
import logging
import os
import re
import sys
from pathlib import Path
from typing import Dict, List, Optional, Sequence

from rich.logging import RichHandler

from . import __version__
from .cli_progress import UploadProgressDisplay, console, render_configuration_summary
from .models import EngineConfig, ProviderKind
from .orchestrator import UploadEngine
from .services.settings import SettingsStore, default_settings_dir
from .utils.events import ENTRY_ADDED, ENTRY_UPDATED


class CLIError(RuntimeError):
    """Raised when CLI validation/execution fails."""


ENV_LINE = re.compile(r"^(?:export\s+)?(?P<key>[A-Za-z_][A-Za-z0-9_]*)\s*=\s*(?P<value>.*)$")


def _requested_level(debug: bool, log_level: Optional[str]) -> Optional[int]:
    """Level asked for by --debug, --log-level or LOG_LEVEL; None means stay quiet."""
    if debug:
        return logging.DEBUG
    name = log_level or os.getenv("LOG_LEVEL")
    if not name:
        return None
    level = logging.getLevelName(name.upper())
    return level if isinstance(level, int) else logging.INFO


def _setup_logging(debug: bool, silent: bool, log_level: Optional[str]) -> str:
    """
    Route log records through a RichHandler on the shared console.

    --silent disables logging outright and wins over the other flags. With
    none of --debug, --log-level or LOG_LEVEL nothing is logged either.
    Returns the effective level name, or "silent".
    """
    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    logging.disable(logging.NOTSET)

    level = None if silent else _requested_level(debug, log_level)
    if level is None:
        logging.disable(logging.CRITICAL)
        root_logger.setLevel(logging.CRITICAL + 1)
        return "silent"

    handler = RichHandler(console=console, markup=False, rich_tracebacks=True, show_path=False, show_time=debug)
    handler.setFormatter(logging.Formatter("%(name)s: %(message)s"))
    root_logger.addHandler(handler)
    root_logger.setLevel(level)
    return logging.getLevelName(level)


def _parse_env(text: str) -> Dict[str, str]:
    """KEY=value pairs from .env text. Comments, blank and malformed lines are ignored."""
    values: Dict[str, str] = {}
    for line in text.splitlines():
        match = ENV_LINE.match(line.strip())
        if match is None:
            continue
        value = match.group("value").strip()
        if len(value) >= 2 and value[0] in ("'", '"') and value[-1] == value[0]:
            value = value[1:-1]
        values[match.group("key")] = value
    return values


def _load_env_file(path: Path, override: bool = False) -> List[str]:
    """Export a .env file into os.environ. Returns the keys that were applied."""
    if not path.is_file():
        reason = "env path is not a file" if path.exists() else "env file not found"
        raise CLIError(f"{reason}: {path}")
    try:
        values = _parse_env(path.read_text(encoding="utf-8"))
    except OSError as exc:
        raise CLIError(f"could not read env file {path}: {exc}") from exc

    applied = [key for key in values if override or key not in os.environ]
    for key in applied:
        os.environ[key] = values[key]
    return applied


def _default_env_file(config_dir: Optional[Path]) -> Optional[Path]:
    """.env in the working directory, else one next to the settings file."""
    for candidate in (Path(".env"), (config_dir or default_settings_dir()) / ".env"):
        if candidate.is_file():
            return candidate
    return None


def _parse_switch(value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in {"on", "true", "yes", "1"}:
        return True
    if lowered in {"off", "false", "no", "0"}:
        return False
    raise CLIError(f"expected on/off, got {value!r}")


def _mask(secret: str) -> str:
    if len(secret) <= 4:
        return "*" * len(secret)
    return secret[:2] + "*" * (len(secret) - 4) + secret[-2:]


def _collect_sources(paths: Sequence[Path]) -> List[Path]:
    sources = []
    for path in paths:
        source = Path(path).expanduser()
        if not source.exists():
            raise CLIError(f"source does not exist: {source}")
        if not source.is_file():
            raise CLIError(f"source is not a file: {source}")
        sources.append(source)
    return sources


async def _run_upload(
    sources: Sequence[Path],
    provider: Optional[ProviderKind],
    settings: SettingsStore,
    config: EngineConfig,
    show_bars: bool,
) -> int:
    async with UploadEngine(config=config, settings=settings) as engine:
        kind = provider or await engine.get_provider()
        render_configuration_summary(
            {
                "Files": len(sources),
                "Provider": kind.value,
                "Auto Copy": "yes" if await engine.get_auto_copy() else "no",
                "Settings": str(settings.path),
            }
        )

        with UploadProgressDisplay(show_bars=show_bars) as display:
            engine.on(ENTRY_ADDED, display.on_entry_added)
            engine.on(ENTRY_UPDATED, display.on_entry_updated)

            entry_ids = list(dict.fromkeys(engine.submit_path(source).entry_id for source in sources))
            outcomes = await asyncio.gather(
                *(engine.begin_upload(entry_id, kind) for entry_id in entry_ids)
            )

    failed = sum(1 for outcome in outcomes if not outcome.success)
    if failed:
        print(f"{failed}/{len(outcomes)} uploads failed", file=sys.stderr)
        return 1
    return 0


async def _run_credentials(args: argparse.Namespace, settings: SettingsStore) -> int:
    engine = UploadEngine(settings=settings)
    if args.action == "set":
        await engine.save_credentials(args.client_id, args.client_secret, args.refresh_token)
        console.print(f"Credentials saved to {settings.path}")
        return 0

    credentials = await engine.get_credentials()
    if credentials is None:
        console.print("No credentials saved")
        return 1
    console.print(f"client id:     {credentials.client_id}")
    console.print(f"client secret: {_mask(credentials.client_secret)}")
    console.print(f"refresh token: {'set' if credentials.refresh_token else '-'}")
    return 0


async def _run_auto_copy(value: Optional[str], settings: SettingsStore) -> int:
    engine = UploadEngine(settings=settings)
    if value is not None:
        if not await engine.set_auto_copy(_parse_switch(value)):
            raise CLIError(f"could not write {settings.path}")
    console.print(f"auto-copy: {'on' if await engine.get_auto_copy() else 'off'}")
    return 0


async def _run_provider(value: Optional[str], settings: SettingsStore) -> int:
    engine = UploadEngine(settings=settings)
    if value is not None:
        await engine.set_provider(ProviderKind.parse(value))
    console.print(f"provider: {(await engine.get_provider()).value}")
    return 0


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="fastdrop",
        description="Upload files to 0x0.st or Google Drive and get a shareable link.",
    )
    parser.add_argument(
        "--config-dir",
        type=Path,
        default=None,
        help="Settings directory (default from FASTDROP_HOME or ~/.fastdrop)",
    )
    parser.add_argument(
        "--env-file",
        type=Path,
        default=None,
        help="Load environment variables from this .env file",
    )
    parser.add_argument("--debug", action="store_true", help="Enable debug logs")
    parser.add_argument("--silent", action="store_true", help="Disable all log output")
    parser.add_argument(
        "--log-level",
        default=None,
        help="Explicit log level (DEBUG/INFO/WARNING/ERROR)",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"fastdrop {__version__}",
    )

    commands = parser.add_subparsers(dest="command")

    upload = commands.add_parser("upload", help="Upload one or more files")
    upload.add_argument("files", nargs="+", type=Path, help="Files to upload")
    upload.add_argument(
        "-p",
        "--provider",
        choices=[kind.value for kind in ProviderKind],
        default=None,
        help="Backend to use (default: saved selection)",
    )
    upload.add_argument("--folder-id", default=None, help="Google Drive parent folder id")
    upload.add_argument("--no-progress", action="store_true", help="Do not draw progress bars")

    credentials = commands.add_parser("credentials", help="Manage Google Drive credentials")
    credential_actions = credentials.add_subparsers(dest="action", required=True)
    set_credentials = credential_actions.add_parser("set", help="Save OAuth client credentials")
    set_credentials.add_argument("client_id")
    set_credentials.add_argument("client_secret")
    set_credentials.add_argument("--refresh-token", default=None)
    credential_actions.add_parser("show", help="Show saved credentials")

    auto_copy = commands.add_parser("auto-copy", help="Show or set copy-link-on-success")
    auto_copy.add_argument("value", nargs="?", default=None, help="on/off")

    provider = commands.add_parser("provider", help="Show or set the default backend")
    provider.add_argument("value", nargs="?", choices=[kind.value for kind in ProviderKind], default=None)

    return parser


def run_cli(argv: Optional[Sequence[str]] = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    used_env_file = args.env_file or _default_env_file(args.config_dir)
    if used_env_file is not None:
        try:
            _load_env_file(Path(used_env_file))
        except CLIError as exc:
            print(f"ERROR: {exc}", file=sys.stderr)
            return 1

    _setup_logging(
        debug=args.debug,
        silent=args.silent,
        log_level=args.log_level,
    )

    if args.command is None:
        parser.print_help()
        return 0

    settings = SettingsStore(args.config_dir)

    try:
        if args.command == "upload":
            sources = _collect_sources(args.files)
            config = EngineConfig(drive_folder_id=args.folder_id)
            provider = ProviderKind.parse(args.provider) if args.provider else None
            return asyncio.run(
                _run_upload(sources, provider, settings, config, show_bars=not args.no_progress)
            )
        if args.command == "credentials":
            return asyncio.run(_run_credentials(args, settings))
        if args.command == "auto-copy":
            return asyncio.run(_run_auto_copy(args.value, settings))
        if args.command == "provider":
            return asyncio.run(_run_provider(args.value, settings))
        raise CLIError(f"unknown command: {args.command}")
    except CLIError as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        print("Cancelled.", file=sys.stderr)
        return 130


def main() -> None:
    raise SystemExit(run_cli())


if __name__ == "__main__":
    main()
