import pytest

from rowcursor.config import envName, loadSettings


def _write_config(tmp_path):
    cfg = tmp_path / "config.yml"
    cfg.write_text(
        "\n".join([
            'host: "1.1.1.1"',
            "port: 1111",
            'api_username: "cfg_user"',
            "page_size: 10",
            "default_limit: 5",
        ]),
        encoding="utf-8",
    )
    return cfg


def test_priority_cli_over_env_over_config(tmp_path, monkeypatch):
    cfg = _write_config(tmp_path)

    # ENV overrides config
    monkeypatch.setenv("ROWCURSOR_HOST", "2.2.2.2")
    monkeypatch.setenv("ROWCURSOR_PORT", "2222")
    monkeypatch.setenv("ROWCURSOR_API_USERNAME", "env_user")

    # CLI overrides env
    loaded = loadSettings(str(cfg), {"host": "3.3.3.3", "port": None, "api_username": None})

    assert loaded.settings.host == "3.3.3.3"
    assert loaded.settings.port == 2222
    assert loaded.settings.api_username == "env_user"
    assert loaded.settings.page_size == 10
    assert loaded.settings.default_limit == 5
    assert loaded.sources_used == ["config", "env", "cli"]


def test_defaults_without_any_source(tmp_path):
    loaded = loadSettings(str(tmp_path / "absent.yml"), {"host": None})
    assert loaded.sources_used == []
    assert loaded.settings.default_offset == 0
    assert loaded.settings.default_limit is None
    assert loaded.settings.csv_has_header is True


def test_env_values_are_parsed(monkeypatch):
    monkeypatch.setenv(envName("tls_skip_verify"), "yes")
    monkeypatch.setenv(envName("retry_backoff_seconds"), "0.25")
    monkeypatch.setenv(envName("csv_has_header"), "false")
    loaded = loadSettings(None, {})
    assert loaded.settings.tls_skip_verify is True
    assert loaded.settings.retry_backoff_seconds == 0.25
    assert loaded.settings.csv_has_header is False


@pytest.mark.parametrize(
    "overrides",
    [
        {"log_level": "TRACE"},
        {"default_offset": -1},
        {"default_limit": -3},
        {"page_size": 0},
    ],
)
def test_invalid_settings_are_rejected(overrides):
    with pytest.raises(ValueError):
        loadSettings(None, overrides)


def test_invalid_env_bool_is_rejected(monkeypatch):
    monkeypatch.setenv("ROWCURSOR_TLS_SKIP_VERIFY", "maybe")
    with pytest.raises(ValueError):
        loadSettings(None, {})


def test_quoted_yaml_values_are_parsed(tmp_path):
    cfg = tmp_path / "config.yml"
    cfg.write_text(
        "\n".join([
            'default_offset: "2"',
            'page_size: "50"',
            'tls_skip_verify: "false"',
            'csv_has_header: "no"',
            'timeout_seconds: "7.5"',
        ]),
        encoding="utf-8",
    )
    settings = loadSettings(str(cfg), {}).settings
    assert settings.default_offset == 2
    assert settings.page_size == 50
    assert settings.tls_skip_verify is False
    assert settings.csv_has_header is False
    assert settings.timeout_seconds == 7.5


@pytest.mark.parametrize(
    "line",
    [
        'default_offset: "two"',
        "default_offset: 2.5",
        "default_limit: true",
        'tls_skip_verify: "sometimes"',
        "tls_skip_verify: 1",
    ],
)
def test_malformed_yaml_values_are_rejected(tmp_path, line):
    cfg = tmp_path / "config.yml"
    cfg.write_text(line + "\n", encoding="utf-8")
    with pytest.raises(ValueError):
        loadSettings(str(cfg), {})
