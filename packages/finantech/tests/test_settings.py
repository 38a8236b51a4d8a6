"""Tests for configuration settings."""

from pathlib import Path


def test_settings_loads_from_env():
    """Test that settings loads from environment variables."""
    # Import after env vars are set in conftest
    from finantech.config.settings import get_settings

    # Clear the cache to force reload
    get_settings.cache_clear()

    settings = get_settings()

    assert settings.google_api_key.get_secret_value() == "test-key"
    assert settings.has_api_key is True


def test_settings_has_defaults():
    """Test that settings has sensible defaults."""
    from finantech.config.settings import get_settings

    get_settings.cache_clear()
    settings = get_settings()

    assert settings.gemini_model == "gemini-2.5-flash"
    assert settings.api_port == 8000
    assert settings.proxy_url == "http://localhost:8000"
    assert settings.proxy_timeout == 60.0
    assert settings.ws_port == 8765
    assert settings.data_dir == Path(".finantech")


def test_missing_api_key(monkeypatch):
    """Test that an empty API key is reported as missing."""
    from finantech.config.settings import get_settings

    monkeypatch.setenv("API_KEY", "")
    get_settings.cache_clear()

    try:
        assert get_settings().has_api_key is False
    finally:
        monkeypatch.undo()
        get_settings.cache_clear()


def test_settings_are_cached():
    """Test that get_settings returns cached instance."""
    from finantech.config.settings import get_settings

    get_settings.cache_clear()

    settings1 = get_settings()
    settings2 = get_settings()

    assert settings1 is settings2
