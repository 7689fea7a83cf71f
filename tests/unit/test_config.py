"""Unit tests for configuration loading."""

from __future__ import annotations

import json
import os
from pathlib import Path

import pytest

from config import Config, load_config, load_env_files


def test_defaults(tmp_path: Path) -> None:
    config = load_config(tmp_path / "missing.json", environ={})
    assert config.port == 3000
    assert config.server_url == "http://localhost:3000"
    assert config.mcp_path == "/mcp"
    assert config.enable_oauth is True
    assert config.access_token_ttl == 3600
    assert config.auth_code_ttl == 600
    assert config.strict_redirect_uris is False
    assert config.protected_resource_metadata_url == "http://localhost:3000/.well-known/oauth-protected-resource"


def test_environment_overrides_file(tmp_path: Path) -> None:
    path = tmp_path / "config.json"
    path.write_text(json.dumps({"port": 4000, "realm": "from-file", "log_level": "debug"}))

    config = load_config(path, environ={"MCP_PORT": "5000", "ENABLE_OAUTH": "false", "MCP_PATH": "rpc"})

    assert config.port == 5000
    assert config.realm == "from-file"
    assert config.enable_oauth is False
    assert config.mcp_path == "/rpc"
    assert config.log_level == "DEBUG"


def test_empty_environment_values_are_ignored(tmp_path: Path) -> None:
    config = load_config(tmp_path / "none.json", environ={"MCP_PORT": ""})
    assert config.port == 3000


def test_server_url_trailing_slash_is_stripped() -> None:
    assert Config({"server_url": "https://mcp.example.com/"}).server_url == "https://mcp.example.com"


@pytest.mark.parametrize(
    "data",
    [
        {"port": "abc"},
        {"access_token_ttl": 0},
        {"session_close_timeout": -1},
        {"log_format": "xml"},
    ],
)
def test_invalid_values_raise(data) -> None:
    with pytest.raises(ValueError):
        Config(data)


@pytest.mark.parametrize("content", ["{not json", "[1, 2, 3]"])
def test_unusable_config_file_is_ignored(tmp_path: Path, content: str) -> None:
    path = tmp_path / "config.json"
    path.write_text(content)
    assert load_config(path, environ={}).port == 3000


def test_as_dict_includes_derived_values() -> None:
    settings = Config({"port": 8080}).as_dict()
    assert settings["server_url"] == "http://localhost:8080"
    assert settings["mcp_path"] == "/mcp"
    assert settings["port"] == 8080


def test_load_env_files_falls_back_to_bundled_defaults(tmp_path: Path, monkeypatch) -> None:
    (tmp_path / ".env.public").write_text("MCP_GATEWAY_TEST_VALUE=bundled\n")
    workdir = tmp_path / "work"
    workdir.mkdir()
    monkeypatch.chdir(workdir)
    monkeypatch.delenv("MCP_GATEWAY_TEST_VALUE", raising=False)

    load_env_files(package_dir=tmp_path)

    assert os.environ["MCP_GATEWAY_TEST_VALUE"] == "bundled"
    monkeypatch.delenv("MCP_GATEWAY_TEST_VALUE")


def test_local_env_file_takes_precedence(tmp_path: Path, monkeypatch) -> None:
    bundle = tmp_path / "bundle"
    bundle.mkdir()
    (bundle / ".env.public").write_text("MCP_GATEWAY_TEST_VALUE=bundled\n")
    (tmp_path / ".env").write_text("MCP_GATEWAY_TEST_VALUE=local\n")
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("MCP_GATEWAY_TEST_VALUE", raising=False)

    load_env_files(package_dir=bundle)

    assert os.environ["MCP_GATEWAY_TEST_VALUE"] == "local"
    monkeypatch.delenv("MCP_GATEWAY_TEST_VALUE")
