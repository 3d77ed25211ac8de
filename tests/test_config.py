from __future__ import annotations

import pytest

from caorag.config import Settings, get_settings
from caorag.errors import ConfigurationError


def test_defaults_model_and_store():
    settings = Settings(gemini_api_key=None)
    assert settings.model == "gemini-2.5-flash"
    assert settings.default_store == "cao-documents"
    assert settings.default_joint_committee == 3180200


def test_api_key_read_from_gemini_env(monkeypatch):
    monkeypatch.setenv("GEMINI_API_KEY", "from-env")
    assert Settings().require_api_key() == "from-env"


def test_missing_api_key_is_configuration_error(monkeypatch):
    monkeypatch.delenv("GEMINI_API_KEY", raising=False)
    monkeypatch.delenv("CAORAG_GEMINI_API_KEY", raising=False)
    with pytest.raises(ConfigurationError):
        Settings().require_api_key()


def test_override_does_not_touch_cache():
    settings = get_settings({"model": "gemini-2.5-pro", "environment": "test"})
    assert settings.model == "gemini-2.5-pro"
    assert settings.is_test
