"""Tests for chunk-up CLI helpers."""
import logging
import os
from pathlib import Path

import pytest

from chunked_uploader.cli import (
    CLIError,
    _build_config,
    _build_parser,
    _collect_files,
    _load_env_file,
    _resolve_default_env_file,
    _setup_logging,
    run_cli,
)
from chunked_uploader.models import MB, MediaKind


@pytest.fixture(autouse=True)
def restore_logging():
    root_logger = logging.getLogger()
    handlers = list(root_logger.handlers)
    level = root_logger.level
    yield
    logging.disable(logging.NOTSET)
    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)
    for handler in handlers:
        root_logger.addHandler(handler)
    root_logger.setLevel(level)


@pytest.fixture
def clean_env(monkeypatch):
    for name in (
        "LOG_LEVEL",
        "UPLOAD_API_URL",
        "UPLOADER_CHUNK_SIZE_MB",
        "UPLOADER_CHUNK_THRESHOLD_MB",
        "UPLOADER_FILE_CONCURRENCY",
        "UPLOADER_CHUNK_CONCURRENCY",
        "UPLOADER_MAX_FILE_SIZE_MB",
        "UPLOADER_REQUEST_TIMEOUT",
        "UPLOADER_UPLOAD_THUMBNAILS",
        "UPLOADER_ENV_FILE",
    ):
        # recorded so values loaded from env files are undone after the test
        monkeypatch.setenv(name, "")
        monkeypatch.delenv(name)


def test_load_env_file(clean_env, tmp_path, monkeypatch):
    env_path = tmp_path / ".env"
    env_path.write_text(
        "\n".join(
            [
                "# upload backend",
                "UPLOAD_API_URL=http://localhost:3000",
                "UPLOADER_CHUNK_SIZE_MB='8'",
                "export UPLOADER_FILE_CONCURRENCY=2",
                "not a pair",
            ]
        ),
        encoding="utf-8",
    )
    monkeypatch.setenv("UPLOADER_FILE_CONCURRENCY", "5")

    applied = _load_env_file(env_path)

    assert applied == ["UPLOAD_API_URL", "UPLOADER_CHUNK_SIZE_MB"]
    assert os.environ["UPLOAD_API_URL"] == "http://localhost:3000"
    assert os.environ["UPLOADER_CHUNK_SIZE_MB"] == "8"
    # existing variables win unless override is requested
    assert os.environ["UPLOADER_FILE_CONCURRENCY"] == "5"

    assert _load_env_file(env_path, override=True) == [
        "UPLOAD_API_URL",
        "UPLOADER_CHUNK_SIZE_MB",
        "UPLOADER_FILE_CONCURRENCY",
    ]
    assert os.environ["UPLOADER_FILE_CONCURRENCY"] == "2"


def test_load_env_file_skips_unknown_uploader_settings(clean_env, tmp_path, capsys):
    env_path = tmp_path / ".env"
    env_path.write_text(
        "UPLOADER_CHUNK_SIZE=8\nUPLOADER_CHUNK_SIZE_MB=4  # parts\nOTHER_TOOL_TOKEN=\"a #b\"\n",
        encoding="utf-8",
    )

    applied = _load_env_file(env_path)

    assert applied == ["UPLOADER_CHUNK_SIZE_MB", "OTHER_TOOL_TOKEN"]
    assert "UPLOADER_CHUNK_SIZE" not in os.environ
    assert os.environ["UPLOADER_CHUNK_SIZE_MB"] == "4"
    assert os.environ.pop("OTHER_TOOL_TOKEN") == "a #b"
    assert "unknown setting UPLOADER_CHUNK_SIZE in" in capsys.readouterr().err


def test_default_env_file_resolution(clean_env, tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    assert _resolve_default_env_file() is None

    (tmp_path / ".env").write_text("LOG_LEVEL=info\n")
    assert _resolve_default_env_file() == Path(".env")

    monkeypatch.setenv("UPLOADER_ENV_FILE", str(tmp_path / "upload.env"))
    assert _resolve_default_env_file() == tmp_path / "upload.env"


def test_load_env_file_missing(tmp_path):
    with pytest.raises(CLIError, match="not found"):
        _load_env_file(tmp_path / "missing.env")


def test_setup_logging_modes(monkeypatch):
    monkeypatch.delenv("LOG_LEVEL", raising=False)

    assert _setup_logging(debug=False, silent=False, log_level=None) == "silent"
    assert _setup_logging(debug=True, silent=False, log_level=None) == "DEBUG"
    assert logging.getLogger().level == logging.DEBUG
    assert logging.getLogger("httpx").level == logging.WARNING
    assert _setup_logging(debug=False, silent=False, log_level="warning") == "WARNING"
    assert _setup_logging(debug=True, silent=True, log_level=None) == "silent"

    monkeypatch.setenv("LOG_LEVEL", "info")
    assert _setup_logging(debug=False, silent=False, log_level=None) == "INFO"


def test_build_config_flags_override_env(clean_env, monkeypatch):
    monkeypatch.setenv("UPLOADER_CHUNK_SIZE_MB", "8")
    monkeypatch.setenv("UPLOADER_FILE_CONCURRENCY", "4")
    args = _build_parser().parse_args(
        ["a.mp4", "--chunk-size-mb", "16", "--threshold-mb", "32", "--no-thumbnails"]
    )

    config = _build_config(args)

    assert config.chunk_size == 16 * MB
    assert config.chunk_threshold_bytes == 32 * MB
    assert config.concurrent_file_upload_limit == 4
    assert config.upload_thumbnails is False


def test_collect_files(tmp_path):
    video = tmp_path / "clip.mp4"
    video.write_bytes(b"v" * 5)
    photo = tmp_path / "pic.jpg"
    photo.write_bytes(b"p" * 3)

    files = _collect_files([video, photo])

    assert [f.index for f in files] == [0, 1]
    assert [f.media_kind for f in files] == [MediaKind.VIDEO, MediaKind.PHOTO]
    assert [f.size for f in files] == [5, 3]

    with pytest.raises(CLIError, match="does not exist"):
        _collect_files([tmp_path / "nope.mp4"])
    with pytest.raises(CLIError, match="not a file"):
        _collect_files([tmp_path])


def test_run_cli_without_files_prints_help(clean_env, tmp_path, monkeypatch, capsys):
    monkeypatch.chdir(tmp_path)
    assert run_cli([]) == 0
    assert "chunk-up" in capsys.readouterr().out


def test_run_cli_requires_api_url(clean_env, tmp_path, monkeypatch, capsys):
    monkeypatch.chdir(tmp_path)
    video = tmp_path / "clip.mp4"
    video.write_bytes(b"v")

    assert run_cli([str(video)]) == 1
    assert "UPLOAD_API_URL" in capsys.readouterr().err


def test_run_cli_rejects_bad_limits(clean_env, tmp_path, monkeypatch, capsys):
    monkeypatch.chdir(tmp_path)
    video = tmp_path / "clip.mp4"
    video.write_bytes(b"v")

    assert run_cli([str(video), "-u", "http://api.test", "--chunk-concurrency", "0"]) == 1
    assert "concurrent_chunk_upload_limit" in capsys.readouterr().err


def test_run_cli_uploads_with_env_file(clean_env, tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    video = tmp_path / "clip.mp4"
    video.write_bytes(b"v" * 10)
    env_path = tmp_path / "upload.env"
    env_path.write_text("UPLOAD_API_URL=http://api.test\nUPLOADER_MAX_FILE_SIZE_MB=50\n")
    calls = []

    async def fake_run_upload(api_url, files, config):
        calls.append((api_url, files, config))
        return 0

    monkeypatch.setattr("chunked_uploader.cli._run_upload", fake_run_upload)

    assert run_cli([str(video), "--env-file", str(env_path)]) == 0

    [(api_url, files, config)] = calls
    assert api_url == "http://api.test"
    assert files[0].path == Path(video)
    assert config.max_file_size_mb == 50
