"""Tests for bunkr-up CLI helpers."""
import logging
import os
from pathlib import Path
from unittest.mock import AsyncMock

import httpx
import pytest

from bunkr_uploader import cli
from bunkr_uploader.cli import (
    CLIError,
    _build_config,
    _build_parser,
    _load_env_file,
    _resolve_album,
    _resolve_resources_dir,
    _resolve_token,
    _setup_logging,
    run_cli,
)
from bunkr_uploader.orchestrator import FileCollector
from bunkr_uploader.services.api_client import BunkrAPIClient
from bunkr_uploader.services.ledger import Ledger
from bunkr_uploader.services.token_store import TokenStore
from conftest import TOKEN, UPLOAD_URL, make_file


@pytest.fixture(autouse=True)
def _restore_logging():
    root = logging.getLogger()
    level, handlers = root.level, list(root.handlers)
    httpx_level = logging.getLogger("httpx").level
    yield
    logging.disable(logging.NOTSET)
    root.setLevel(level)
    root.handlers[:] = handlers
    logging.getLogger("httpx").setLevel(httpx_level)


def test_load_env_file(tmp_path, monkeypatch):
    env_path = tmp_path / ".env"
    env_path.write_text(
        "\n".join(
            [
                "# comment",
                "not a pair",
                "=orphan",
                "BUNKR_TOKEN=abc123",
                "BUNKR_API_URL='https://dash.example'",
                "export BUNKR_UPLOADER_HOME=/tmp/bunkr",
            ]
        ),
        encoding="utf-8",
    )

    monkeypatch.delenv("BUNKR_TOKEN", raising=False)
    monkeypatch.delenv("BUNKR_API_URL", raising=False)
    monkeypatch.delenv("BUNKR_UPLOADER_HOME", raising=False)

    _load_env_file(env_path)

    assert os.environ["BUNKR_TOKEN"] == "abc123"
    assert os.environ["BUNKR_API_URL"] == "https://dash.example"
    assert os.environ["BUNKR_UPLOADER_HOME"] == "/tmp/bunkr"


def test_load_env_file_keeps_existing(tmp_path, monkeypatch):
    env_path = tmp_path / ".env"
    env_path.write_text("BUNKR_TOKEN=from-file\n", encoding="utf-8")
    monkeypatch.setenv("BUNKR_TOKEN", "from-shell")

    _load_env_file(env_path)

    assert os.environ["BUNKR_TOKEN"] == "from-shell"


def test_load_env_file_missing(tmp_path):
    with pytest.raises(CLIError):
        _load_env_file(tmp_path / "nope.env")


def test_setup_logging_defaults_to_silent(monkeypatch):
    monkeypatch.delenv("LOG_LEVEL", raising=False)
    mode = _setup_logging(debug=False, silent=False, log_level=None)
    assert mode == "silent"
    assert logging.getLogger().isEnabledFor(logging.ERROR) is False


def test_setup_logging_debug_mode():
    mode = _setup_logging(debug=True, silent=False, log_level=None)
    assert mode == "DEBUG"
    assert logging.getLogger().isEnabledFor(logging.DEBUG) is True
    assert logging.getLogger("httpx").level == logging.WARNING


def test_setup_logging_from_env(monkeypatch):
    monkeypatch.setenv("LOG_LEVEL", "warning")
    assert _setup_logging(debug=False, silent=False, log_level=None) == "WARNING"


def test_resolve_resources_dir(tmp_path, monkeypatch):
    monkeypatch.delenv("BUNKR_UPLOADER_HOME", raising=False)
    assert _resolve_resources_dir(None) == cli.DEFAULT_RESOURCES_DIR
    monkeypatch.setenv("BUNKR_UPLOADER_HOME", str(tmp_path / "home"))
    assert _resolve_resources_dir(None) == tmp_path / "home"
    assert _resolve_resources_dir(tmp_path / "flag") == tmp_path / "flag"


def test_parser_flags():
    args = _build_parser().parse_args(["a.mp4", "dir", "-f", "-t", "video/mp4", "--no-album"])
    assert args.paths == [Path("a.mp4"), Path("dir")]
    assert args.force is True
    assert args.mime_type == "video/mp4"
    assert args.no_album is True
    assert args.timeout is None


def test_build_config(monkeypatch):
    monkeypatch.delenv("BUNKR_LEDGER_MATCH", raising=False)
    config = _build_config(_build_parser().parse_args(["x", "--force", "--timeout", "30"]))
    assert config.force is True
    assert config.timeout == 30.0
    assert config.ledger_match == "substring"
    assert config.chunk_retries == 0


def test_build_config_rejects_unknown_ledger_mode(monkeypatch):
    monkeypatch.setenv("BUNKR_LEDGER_MATCH", "fuzzy")
    with pytest.raises(CLIError):
        _build_config(_build_parser().parse_args(["x"]))


def test_no_paths(tmp_path, monkeypatch, capsys):
    monkeypatch.chdir(tmp_path)
    assert run_cli([str(tmp_path / "missing.bin")]) == 1
    assert "No paths given!" in capsys.readouterr().out


class TestFileCollector:
    def test_files_and_directories(self, tmp_path):
        single = make_file(tmp_path / "single.bin", 1)
        folder = tmp_path / "folder"
        (folder / "nested").mkdir(parents=True)
        b = make_file(folder / "b.bin", 1)
        a = make_file(folder / "nested" / "a.bin", 1)

        files = FileCollector.collect_files([single, folder])

        assert files == [single, b, a]

    def test_missing_and_duplicates(self, tmp_path):
        one = make_file(tmp_path / "one.bin", 1)
        missing = []
        files = FileCollector.collect_files([one, tmp_path / "ghost.bin", one], on_missing=missing.append)
        assert files == [one]
        assert missing == [tmp_path / "ghost.bin"]


class TestResolveToken:
    @pytest.mark.asyncio
    async def test_flag_wins(self, tmp_path, monkeypatch):
        monkeypatch.setenv("BUNKR_TOKEN", "env-token")
        store = TokenStore(tmp_path / "token.txt")
        assert await _resolve_token("flag-token", store, "https://dash.test") == "flag-token"

    @pytest.mark.asyncio
    async def test_env_then_file(self, tmp_path, monkeypatch):
        store = TokenStore(tmp_path / "token.txt")
        store.save("file-token")
        monkeypatch.setenv("BUNKR_TOKEN", "env-token")
        assert await _resolve_token(None, store, "https://dash.test") == "env-token"
        monkeypatch.delenv("BUNKR_TOKEN")
        assert await _resolve_token(None, store, "https://dash.test") == "file-token"


class TestResolveAlbum:
    @pytest.mark.asyncio
    async def test_explicit_album(self):
        client = AsyncMock()
        assert await _resolve_album(client, "7", no_album=False) == "7"
        client.list_albums.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_no_album(self):
        client = AsyncMock()
        assert await _resolve_album(client, None, no_album=True) is None
        client.create_album.assert_not_awaited()


def test_token_store_roundtrip(tmp_path):
    store = TokenStore(tmp_path / "res" / "token.txt")
    assert store.load() is None
    store.save("  secret \n")
    assert store.load() == "secret"
    assert (store.path.stat().st_mode & 0o777) == 0o600


def test_run_cli_end_to_end(tmp_path, monkeypatch, fake_bunkr, capsys):
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("BUNKR_LEDGER_MATCH", raising=False)
    transport = httpx.MockTransport(fake_bunkr.handler)

    def _client(token, api_url, timeout=None):
        return BunkrAPIClient(token, api_url=api_url, timeout=timeout, transport=transport)

    monkeypatch.setattr(cli, "BunkrAPIClient", _client)
    source = make_file(tmp_path / "photo.jpg", 64)
    argv = [
        str(source),
        "--token", TOKEN,
        "--no-album",
        "--upload-url", UPLOAD_URL,
        "--resources-dir", str(tmp_path / "res"),
    ]

    assert run_cli(argv) == 0
    out = capsys.readouterr().out
    assert "https://cdn.test/file.bin" in out
    assert "Success: 1" in out

    # second run finds the ledger entry
    assert run_cli(argv) == 0
    assert "Skipped: 1" in capsys.readouterr().out
    assert len(fake_bunkr.simple_requests) == 1


def test_run_cli_reports_ledger_and_path_problems(tmp_path, monkeypatch, fake_bunkr, capsys):
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("BUNKR_LEDGER_MATCH", raising=False)
    transport = httpx.MockTransport(fake_bunkr.handler)

    def _client(token, api_url, timeout=None):
        return BunkrAPIClient(token, api_url=api_url, timeout=timeout, transport=transport)

    def _denied(self, *args):
        raise PermissionError(13, "Permission denied", str(self.path))

    monkeypatch.setattr(cli, "BunkrAPIClient", _client)
    monkeypatch.setattr(Ledger, "_read_text", _denied)
    monkeypatch.setattr(Ledger, "_append_sync", _denied)
    source = make_file(tmp_path / "a.jpg", 16)

    code = run_cli([
        str(source),
        str(tmp_path / "ghost.jpg"),
        "--token", TOKEN,
        "--no-album",
        "--upload-url", UPLOAD_URL,
        "--resources-dir", str(tmp_path / "res"),
    ])

    captured = capsys.readouterr()
    assert code == 0
    assert "Success: 1" in captured.out
    assert "Path does not exist" in captured.err
    assert "Failed to read from logs file" in captured.err
    assert "Failed to write to logs file" in captured.err
