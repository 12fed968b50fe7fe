import pytest

from offlinebuilder.config import (
    ConfigAccessor,
    FetchSettings,
    load_compression,
    load_fetch_settings,
)


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "offlinebuilder.cfg"
    path.write_text(
        "[fetch]\nconcurrency = 8\ntimeout = 12.5\nretries = 1\nbackoff = 0\n"
        "[build]\ncompression = lzma\n"
    )
    return path


@pytest.mark.short
def test_load_fetch_settings_from_file(config_file):
    assert load_fetch_settings(config_file) == FetchSettings(
        concurrency=8, timeout=12.5, retries=1, backoff=0.0
    )


@pytest.mark.short
def test_load_fetch_settings_defaults(tmp_path):
    assert load_fetch_settings(tmp_path / "missing.cfg") == FetchSettings()


@pytest.mark.short
def test_invalid_values_fall_back(tmp_path, capture_logs):
    path = tmp_path / "offlinebuilder.cfg"
    path.write_text("[fetch]\nconcurrency = lots\nretries = -3\n")

    settings = load_fetch_settings(path)

    assert settings.concurrency == FetchSettings().concurrency
    assert settings.retries == 0
    assert "Invalid value 'lots'" in capture_logs.getvalue()


@pytest.mark.short
def test_load_compression(config_file, tmp_path):
    assert load_compression(config_file) == "lzma"
    assert load_compression(tmp_path / "missing.cfg") == "deflated"


@pytest.mark.short
def test_config_accessor_lookups(config_file, tmp_path):
    config = ConfigAccessor(config_file)

    assert config.get("build", "compression") == "lzma"
    assert config.get("build", "missing", "fallback") == "fallback"
    assert config.get("nosection", "key") is None
    assert config.getint("fetch", "concurrency", 1) == 8
    assert config.getfloat("fetch", "timeout", 30.0) == 12.5

    assert ConfigAccessor(tmp_path / "missing.cfg").getint("fetch", "retries", 3) == 3


@pytest.mark.short
def test_non_positive_timeout_falls_back(tmp_path):
    path = tmp_path / "offlinebuilder.cfg"
    path.write_text("[fetch]\ntimeout = 0\n")

    assert load_fetch_settings(path).timeout == FetchSettings().timeout
