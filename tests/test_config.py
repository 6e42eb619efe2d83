"""Tests for configuration document loading."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from reauth import build_chain
from reauth.config import CONFIG_ENV_VAR, ReauthConfig, load_config
from reauth.errors import ConfigurationError, UnknownProviderKind

DOCUMENT = {
    "backends": [
        {"type": "simple", "credentials": {"bob": "secret"}},
        {"type": "gitlabci", "url": "https://gitlab.example.com/"},
    ],
    "failure": {"mode": "redirect", "url": "https://login.example/?next={uri}"},
}


def _write(tmp_path: Path, content: str) -> Path:
    path = tmp_path / "reauth.json"
    path.write_text(content)
    return path


class TestReauthConfig:
    def test_shape(self):
        config = ReauthConfig.from_document(DOCUMENT)
        assert [blob["type"] for blob in config.backends] == ["simple", "gitlabci"]
        assert config.failure == DOCUMENT["failure"]

    def test_empty_document(self):
        config = ReauthConfig.from_document({})
        assert config.backends == []
        assert config.failure is None

    @pytest.mark.parametrize(
        "document",
        [
            {"backends": {"type": "simple"}},
            {"backends": ["simple"]},
            {"failure": "status"},
            {"backend": []},
        ],
    )
    def test_bad_shape(self, document):
        with pytest.raises(ConfigurationError, match="invalid reauth configuration document"):
            ReauthConfig.from_document(document)


class TestLoadConfig:
    def test_from_path(self, tmp_path):
        config = load_config(_write(tmp_path, json.dumps(DOCUMENT)))
        assert len(config.backends) == 2

    def test_from_string_path(self, tmp_path):
        config = load_config(str(_write(tmp_path, json.dumps(DOCUMENT))))
        assert config.failure["mode"] == "redirect"

    def test_from_environment(self, tmp_path, monkeypatch):
        monkeypatch.setenv(CONFIG_ENV_VAR, str(_write(tmp_path, json.dumps(DOCUMENT))))
        assert len(load_config().backends) == 2

    def test_no_path_no_environment(self, monkeypatch):
        monkeypatch.delenv(CONFIG_ENV_VAR, raising=False)
        with pytest.raises(ConfigurationError, match=CONFIG_ENV_VAR):
            load_config()

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigurationError, match="cannot read"):
            load_config(tmp_path / "absent.json")

    def test_invalid_json(self, tmp_path):
        with pytest.raises(ConfigurationError, match="not valid JSON"):
            load_config(_write(tmp_path, "{backends: []}"))

    def test_not_an_object(self, tmp_path):
        with pytest.raises(ConfigurationError, match="must contain a JSON object"):
            load_config(_write(tmp_path, "[]"))


class TestBuildChain:
    def test_from_path(self, tmp_path):
        chain = build_chain(_write(tmp_path, json.dumps(DOCUMENT)))
        assert [b.tag for b in chain.backends] == ["simple", "gitlabci"]
        assert chain.failure.tag == "redirect"

    def test_from_mapping(self):
        chain = build_chain({"backends": [{"type": "simple"}]})
        assert chain.failure.tag == "status"

    def test_unknown_tag(self):
        with pytest.raises(UnknownProviderKind):
            build_chain({"backends": [{"type": "kerberos"}]})
