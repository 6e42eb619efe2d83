"""Tests for the reauth CLI entry point (__main__.py)."""

from __future__ import annotations

import json
import logging
import sys
from pathlib import Path
from unittest.mock import AsyncMock, patch

import pytest

from reauth.__main__ import main
from reauth.config import CONFIG_ENV_VAR

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

CONFIG = {
    "backends": [{"type": "simple", "credentials": {"bob": "secret"}}],
    "failure": {"mode": "httpbasic", "realm": "example"},
}


def _run_main(*args: str) -> None:
    """Invoke main() with the given CLI arguments."""
    with patch.object(sys, "argv", ["reauth", *args]):
        main()


@pytest.fixture(autouse=True)
def _no_env_config(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv(CONFIG_ENV_VAR, raising=False)


@pytest.fixture
def config_file(tmp_path: Path) -> Path:
    path = tmp_path / "reauth.json"
    path.write_text(json.dumps(CONFIG))
    return path


@pytest.fixture
def serve():
    with patch("reauth.__main__.ForwardAuthServer.serve", new_callable=AsyncMock) as mock_serve:
        yield mock_serve


# ===========================================================================
# Serving
# ===========================================================================


class TestServe:
    def test_defaults(self, config_file, serve):
        _run_main("--config", str(config_file))
        serve.assert_awaited_once_with(host="127.0.0.1", port=8000)

    def test_host_and_port(self, config_file, serve):
        _run_main("--config", str(config_file), "--host", "0.0.0.0", "--port", "9091")
        serve.assert_awaited_once_with(host="0.0.0.0", port=9091)

    def test_config_from_environment(self, config_file, serve, monkeypatch):
        monkeypatch.setenv(CONFIG_ENV_VAR, str(config_file))
        _run_main()
        serve.assert_awaited_once()

    def test_server_failure_exits_2(self, config_file, serve):
        serve.side_effect = OSError("address already in use")
        with pytest.raises(SystemExit) as exc_info:
            _run_main("--config", str(config_file))
        assert exc_info.value.code == 2


# ===========================================================================
# --check
# ===========================================================================


class TestCheck:
    def test_valid_config(self, config_file, serve, caplog):
        with caplog.at_level(logging.INFO, logger="reauth.__main__"):
            _run_main("--config", str(config_file), "--check")
        serve.assert_not_called()
        assert any("Configuration OK: 1 backend(s), failure mode httpbasic" in r.message for r in caplog.records)

    def test_invalid_backend(self, tmp_path, serve, capsys):
        path = tmp_path / "bad.json"
        path.write_text(json.dumps({"backends": [{"type": "kerberos"}]}))
        with pytest.raises(SystemExit) as exc_info:
            _run_main("--config", str(path), "--check")
        assert exc_info.value.code == 1
        assert "unknown backend 'kerberos'" in capsys.readouterr().err
        serve.assert_not_called()


# ===========================================================================
# Configuration errors
# ===========================================================================


class TestConfigErrors:
    def test_no_config_exits_1(self, serve, capsys):
        with pytest.raises(SystemExit) as exc_info:
            _run_main()
        assert exc_info.value.code == 1
        assert CONFIG_ENV_VAR in capsys.readouterr().err

    def test_missing_file_exits_1(self, tmp_path, serve, capsys):
        with pytest.raises(SystemExit) as exc_info:
            _run_main("--config", str(tmp_path / "absent.json"))
        assert exc_info.value.code == 1
        assert "cannot read configuration file" in capsys.readouterr().err

    def test_invalid_json_exits_1(self, tmp_path, serve):
        path = tmp_path / "broken.json"
        path.write_text("{not json")
        with pytest.raises(SystemExit) as exc_info:
            _run_main("--config", str(path))
        assert exc_info.value.code == 1

    def test_failed_validation_exits_1(self, tmp_path, serve, capsys):
        path = tmp_path / "status.json"
        path.write_text(json.dumps({"backends": [], "failure": {"mode": "status", "code": 42}}))
        with pytest.raises(SystemExit) as exc_info:
            _run_main("--config", str(path))
        assert exc_info.value.code == 1
        assert "invalid reauth:status configuration" in capsys.readouterr().err


# ===========================================================================
# Argument validation
# ===========================================================================


class TestArguments:
    @pytest.mark.parametrize("port", ["0", "65536"])
    def test_port_out_of_range(self, config_file, port):
        with pytest.raises(SystemExit) as exc_info:
            _run_main("--config", str(config_file), "--port", port)
        assert exc_info.value.code == 2

    def test_bad_log_level(self, config_file):
        with pytest.raises(SystemExit) as exc_info:
            _run_main("--config", str(config_file), "--log-level", "TRACE")
        assert exc_info.value.code == 2
