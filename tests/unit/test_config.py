import pytest
from pydantic import ValidationError

from sql_agent.config import AgentConfig, LLMConfig, Settings, get_settings
from sql_agent.config_constants import DEFAULT_CURRENCY_HINTS, LogLevel


## test for import and loading settings
def test_get_settings():
    settings = get_settings()
    assert settings is not None
    assert settings.database.database_url
    assert settings.database.query_timeout_seconds > 0
    assert settings.llm.temperature >= 0.0
    assert settings.app.log_level in LogLevel


## test for singleton
def test_get_settings_singleton():
    settings1 = get_settings()
    settings2 = get_settings()
    assert settings1 is settings2


def test_agent_defaults():
    config = AgentConfig()
    assert config.display_sample_size == 10
    assert config.stats_sample_size == 100
    assert config.fallback_sample_size == 3
    assert config.schema_names == []
    assert config.currency_hints == list(DEFAULT_CURRENCY_HINTS)


def test_nested_environment_variables(monkeypatch):
    monkeypatch.setenv("DATABASE__DATABASE_URL", "postgresql://u:p@db:5432/shop")
    monkeypatch.setenv("AGENT__STATS_SAMPLE_SIZE", "25")
    monkeypatch.setenv("LLM__API_KEY", "sk-env")

    settings = Settings()  # type: ignore[call-arg]

    assert settings.database.database_url == "postgresql://u:p@db:5432/shop"
    assert settings.agent.stats_sample_size == 25
    assert settings.llm.is_configured


def test_database_url_required(monkeypatch):
    monkeypatch.delenv("DATABASE__DATABASE_URL", raising=False)
    with pytest.raises(ValidationError):
        Settings(_env_file=None)  # type: ignore[call-arg]


@pytest.mark.parametrize("api_key, configured", [(None, False), ("", False), ("   ", False), ("sk-x", True)])
def test_llm_is_configured(api_key, configured):
    assert LLMConfig(api_key=api_key).is_configured is configured
