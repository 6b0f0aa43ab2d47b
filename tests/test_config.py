"""Tests for configuration loading and mode selection."""

import pytest

from sysinfo_server.config import Mode, Settings, load_settings
from sysinfo_server.errors import ConfigError

ENV_VARS = [
    "SERVER_HOST",
    "SERVER_PORT",
    "MCP_PORT",
    "AUTH_USERNAME",
    "AUTH_PASSWORD",
    "RATE_LIMIT",
    "MCP_MODE",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    # Keep any developer .env out of the way
    monkeypatch.chdir(tmp_path)


def test_defaults():
    settings = load_settings()

    assert settings.server_host == "0.0.0.0"
    assert settings.server_port == 8080
    assert settings.mcp_port == 8081
    assert settings.rate_limit == 100
    assert settings.mode is Mode.BOTH
    assert settings.expected_credentials == "admin:password123"


def test_reads_environment(monkeypatch):
    monkeypatch.setenv("SERVER_HOST", "127.0.0.1")
    monkeypatch.setenv("SERVER_PORT", "9000")
    monkeypatch.setenv("MCP_PORT", "9001")
    monkeypatch.setenv("AUTH_USERNAME", "ops")
    monkeypatch.setenv("AUTH_PASSWORD", "hunter2")
    monkeypatch.setenv("RATE_LIMIT", "600")
    monkeypatch.setenv("MCP_MODE", "HTTP")

    settings = load_settings()

    assert settings.server_port == 9000
    assert settings.mcp_port == 9001
    assert settings.rate_limit == 600
    assert settings.mode is Mode.HTTP
    assert settings.expected_credentials == "ops:hunter2"


def test_env_file(tmp_path):
    (tmp_path / ".env").write_text("MCP_MODE=stdio\nSERVER_PORT=7000\n")

    settings = load_settings()

    assert settings.mode is Mode.STDIO
    assert settings.server_port == 7000


@pytest.mark.parametrize(
    "raw,expected",
    [
        ("stdio", Mode.STDIO),
        ("http", Mode.HTTP),
        ("both", Mode.BOTH),
        ("rest-only", Mode.REST_ONLY),
        ("rest_only", Mode.REST_ONLY),
        ("REST-ONLY", Mode.REST_ONLY),
        ("Stdio", Mode.STDIO),
        ("bogus", Mode.BOTH),
        ("", Mode.BOTH),
        (None, Mode.BOTH),
    ],
)
def test_mode_parse(raw, expected):
    assert Mode.parse(raw) is expected


@pytest.mark.parametrize("raw", ["abc", "", "-5", "0"])
def test_bad_rate_limit_falls_back(monkeypatch, raw):
    monkeypatch.setenv("RATE_LIMIT", raw)

    assert load_settings().rate_limit == 100


@pytest.mark.parametrize(
    "name,value",
    [
        ("SERVER_PORT", "http"),
        ("SERVER_PORT", "70000"),
        ("MCP_PORT", "-1"),
        ("SERVER_HOST", "not-an-ip"),
    ],
)
def test_invalid_startup_values_are_fatal(monkeypatch, name, value):
    monkeypatch.setenv(name, value)

    with pytest.raises(ConfigError, match=name):
        load_settings()


def test_overrides_win():
    settings = load_settings(mcp_mode="rest-only", _env_file=None)

    assert isinstance(settings, Settings)
    assert settings.mode is Mode.REST_ONLY
