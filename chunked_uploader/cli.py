"""Command line interface for chunked_uploader package."""
from __future__ import annotations

import argparse
import asyncio
import logging
import os
import sys
from dataclasses import replace
from pathlib import Path
from typing import Dict, List, Optional, Sequence

from rich.logging import RichHandler

from .cli_progress import BatchUploadProgressDisplay, render_configuration_summary, render_results
from .errors import InvalidArgumentError, UploaderError
from .models import CONFIG_ENV_VARS, ENV_PREFIX, MB, FileDescriptor, UploadConfig
from .orchestrator import UploadOrchestrator
from .services import HTTPUploadUrlProvider


ENV_FILE_VAR = "UPLOADER_ENV_FILE"
KNOWN_ENV_VARS = frozenset(CONFIG_ENV_VARS + ("UPLOAD_API_URL", "LOG_LEVEL", ENV_FILE_VAR))


class CLIError(RuntimeError):
    """Raised when CLI validation/execution fails."""


def _setup_logging(debug: bool, silent: bool, log_level: Optional[str]) -> str:
    """
    Configure logging.

    Default behavior is silent unless --debug, --log-level or LOG_LEVEL is provided.
    Returns a string describing effective mode.
    """
    root_logger = logging.getLogger()
    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)

    logging.disable(logging.NOTSET)

    env_level = os.getenv("LOG_LEVEL")
    if silent or (not debug and not log_level and not env_level):
        logging.disable(logging.CRITICAL)
        root_logger.setLevel(logging.CRITICAL + 1)
        return "silent"

    if debug:
        level = logging.DEBUG
    else:
        level = getattr(logging, (log_level or env_level).upper(), logging.INFO)

    handler = RichHandler(
        rich_tracebacks=True,
        markup=False,
        show_time=False,
        show_path=False,
    )
    handler.setFormatter(logging.Formatter("%(message)s"))
    root_logger.addHandler(handler)
    root_logger.setLevel(level)
    logging.getLogger("httpx").setLevel(max(level, logging.WARNING))
    return logging.getLevelName(level)


def _parse_env_value(value: str) -> str:
    """Unquote a value; unquoted values lose a trailing ' # comment'."""
    value = value.strip()
    if len(value) >= 2 and value[0] == value[-1] and value[0] in {"'", '"'}:
        return value[1:-1]
    return value.split(" #", 1)[0].rstrip()


def _parse_env_file(content: str) -> Dict[str, str]:
    settings = {}
    for raw_line in content.splitlines():
        line = raw_line.strip()
        if line.startswith("export "):
            line = line[len("export ") :].strip()
        key, sep, value = line.partition("=")
        key = key.strip()
        if line.startswith("#") or not sep or not key:
            continue
        settings[key] = _parse_env_value(value)
    return settings


def _load_env_file(path: Path, override: bool = False) -> List[str]:
    """
    Export settings from a .env file and return the names applied.

    Variables already in the environment win unless override is set.
    Unknown UPLOADER_* names are skipped with a warning on stderr.
    """
    if not path.exists():
        raise CLIError(f"env file not found: {path}")
    if not path.is_file():
        raise CLIError(f"env path is not a file: {path}")

    try:
        content = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise CLIError(f"could not read env file {path}: {exc}") from exc

    applied = []
    for key, value in _parse_env_file(content).items():
        if key.startswith(ENV_PREFIX) and key not in KNOWN_ENV_VARS:
            print(f"WARNING: unknown setting {key} in {path}", file=sys.stderr)
            continue
        if override or key not in os.environ:
            os.environ[key] = value
            applied.append(key)
    return applied


def _resolve_default_env_file() -> Optional[Path]:
    """UPLOADER_ENV_FILE when set, otherwise ./.env if it exists."""
    configured = os.getenv(ENV_FILE_VAR)
    if configured:
        return Path(configured).expanduser()
    default_env = Path(".env")
    return default_env if default_env.is_file() else None


def _build_config(args: argparse.Namespace) -> UploadConfig:
    """Environment defaults overridden by explicit flags."""
    config = UploadConfig.from_env()
    overrides = {}
    if args.chunk_size_mb is not None:
        overrides["chunk_size"] = int(args.chunk_size_mb * MB)
    if args.threshold_mb is not None:
        overrides["chunk_threshold_bytes"] = int(args.threshold_mb * MB)
    if args.file_concurrency is not None:
        overrides["concurrent_file_upload_limit"] = args.file_concurrency
    if args.chunk_concurrency is not None:
        overrides["concurrent_chunk_upload_limit"] = args.chunk_concurrency
    if args.max_file_size_mb is not None:
        overrides["max_file_size_mb"] = args.max_file_size_mb
    if args.no_thumbnails:
        overrides["upload_thumbnails"] = False
    return replace(config, **overrides) if overrides else config


def _collect_files(sources: Sequence[Path]) -> List[FileDescriptor]:
    files = []
    for source in sources:
        path = Path(source).expanduser()
        if not path.exists():
            raise CLIError(f"source does not exist: {path}")
        if not path.is_file():
            raise CLIError(f"source is not a file: {path}")
        files.append(FileDescriptor.from_path(len(files), path))
    return files


async def _run_upload(api_url: str, files: List[FileDescriptor], config: UploadConfig) -> int:
    async with HTTPUploadUrlProvider(api_url, timeout=config.request_timeout) as provider:
        with BatchUploadProgressDisplay(files) as display:
            async with UploadOrchestrator(
                provider.get_upload_url,
                provider.mark_upload_complete,
                config=config,
                on_progress=display.on_progress,
                on_overall_progress=display.on_overall_progress,
            ) as orchestrator:
                results = await orchestrator.upload_files(files)

    render_results(files, results, display.overall)
    return 0 if all(result.success for result in results) else 1


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="chunk-up",
        description="Upload files through pre-signed URLs, chunking large ones.",
    )
    parser.add_argument("files", nargs="*", type=Path, help="Files to upload")
    parser.add_argument(
        "-u",
        "--api-url",
        default=None,
        help="Upload API base URL (default from UPLOAD_API_URL)",
    )
    parser.add_argument("--chunk-size-mb", type=float, default=None, help="Part size in MB")
    parser.add_argument(
        "--threshold-mb",
        type=float,
        default=None,
        help="Files at or above this size use chunked upload",
    )
    parser.add_argument("--file-concurrency", type=int, default=None, help="Files uploaded at once")
    parser.add_argument(
        "--chunk-concurrency", type=int, default=None, help="Parts uploaded at once per file"
    )
    parser.add_argument("--max-file-size-mb", type=int, default=None, help="Reject larger files")
    parser.add_argument(
        "--no-thumbnails",
        action="store_true",
        help="Do not upload video thumbnails",
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
        version="chunk-up (from chunked_uploader)",
    )
    return parser


def run_cli(argv: Optional[Sequence[str]] = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    used_env_file = args.env_file or _resolve_default_env_file()
    applied_env = []
    if used_env_file is not None:
        try:
            applied_env = _load_env_file(Path(used_env_file))
        except CLIError as exc:
            print(f"ERROR: {exc}", file=sys.stderr)
            return 1

    effective_log_mode = _setup_logging(
        debug=args.debug,
        silent=args.silent,
        log_level=args.log_level,
    )

    if not args.files:
        parser.print_help()
        return 0

    api_url = args.api_url or os.getenv("UPLOAD_API_URL")
    try:
        if not api_url:
            raise CLIError("--api-url not given and UPLOAD_API_URL is not set")
        config = _build_config(args)
        files = _collect_files(args.files)
    except (CLIError, InvalidArgumentError) as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return 1

    render_configuration_summary(
        {
            "Files": len(files),
            "Total Size": f"{sum(file.size for file in files) / MB:.2f} MB",
            "Upload API": api_url,
            "Chunk Size": f"{config.chunk_size / MB:g} MB",
            "Chunk Threshold": f"{config.chunk_threshold_bytes / MB:g} MB",
            "File Concurrency": config.concurrent_file_upload_limit or "unbounded",
            "Chunk Concurrency": config.concurrent_chunk_upload_limit or "unbounded",
            "Max File Size": f"{config.max_file_size_mb} MB",
            "Thumbnails": "yes" if config.upload_thumbnails else "no",
            "Env File": f"{used_env_file} ({len(applied_env)} set)" if used_env_file else "-",
            "Logging": effective_log_mode,
        }
    )

    try:
        return asyncio.run(_run_upload(api_url, files, config))
    except UploaderError as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        print("Cancelled.", file=sys.stderr)
        return 130


def main() -> None:
    raise SystemExit(run_cli())


if __name__ == "__main__":
    main()
