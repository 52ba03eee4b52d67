from __future__ import annotations

import pytest

from flareio.config import API_URL, RetryPolicy, load_api_key, load_base_url, load_tenant_id
from flareio.exceptions import ConfigError


class TestRetryPolicy:
    def test_defaults(self):
        policy = RetryPolicy()

        assert policy.max_attempts == 5
        assert policy.max_retries == 4
        assert policy.backoff_min == 2.0
        assert policy.backoff_max == 15.0

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"max_attempts": 0},
            {"backoff_min": -1.0},
            {"backoff_min": 10.0, "backoff_max": 5.0},
        ],
    )
    def test_invalid_bounds(self, kwargs):
        with pytest.raises(ConfigError):
            RetryPolicy(**kwargs)


class TestLoadApiKey:
    def test_load_from_environment(self, clean_env, monkeypatch):
        monkeypatch.setenv("FLARE_API_KEY", "test_key_123")
        assert load_api_key(dotenv=False) == "test_key_123"

    def test_load_from_dotenv_file(self, clean_env, tmp_path):
        (tmp_path / ".env").write_text("FLARE_API_KEY=dotenv_key_456\n")
        assert load_api_key() == "dotenv_key_456"

    def test_environment_wins_over_dotenv(self, clean_env, tmp_path, monkeypatch):
        (tmp_path / ".env").write_text("FLARE_API_KEY=dotenv_key\n")
        monkeypatch.setenv("FLARE_API_KEY", "env_key")
        assert load_api_key() == "env_key"

    def test_missing_key_raises_error(self, clean_env):
        with pytest.raises(ConfigError, match="Missing API key"):
            load_api_key()

    def test_empty_key_raises_error(self, clean_env, monkeypatch):
        monkeypatch.setenv("FLARE_API_KEY", "")
        with pytest.raises(ConfigError):
            load_api_key(dotenv=False)


class TestLoadTenantId:
    def test_unset_is_zero(self, clean_env):
        assert load_tenant_id() == 0

    def test_parses_integer(self, clean_env, monkeypatch):
        monkeypatch.setenv("FLARE_TENANT_ID", " 42 ")
        assert load_tenant_id() == 42

    def test_rejects_non_integer(self, clean_env, monkeypatch):
        monkeypatch.setenv("FLARE_TENANT_ID", "acme")
        with pytest.raises(ConfigError, match="must be an integer"):
            load_tenant_id()


class TestLoadBaseUrl:
    def test_default(self, clean_env):
        assert load_base_url() == API_URL

    def test_override(self, clean_env, monkeypatch):
        monkeypatch.setenv("FLARE_BASE_URL", "http://localhost:8000/")
        assert load_base_url() == "http://localhost:8000/"
