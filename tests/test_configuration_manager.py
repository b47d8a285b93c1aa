"""Tests for configuration loading."""

import pytest

from assessment_engine.services.configuration_manager import ConfigurationManager
from assessment_engine.utils.exceptions import ConfigurationError


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    monkeypatch.setenv("ENVIRONMENT", "development")
    # setenv first so teardown also removes values loaded from .env files
    monkeypatch.setenv("DEEPSEEK_API_KEY", "")
    monkeypatch.delenv("DEEPSEEK_API_KEY")


def write_config(directory, config_yaml="", providers_yaml=None, env_yaml=None):
    directory.mkdir(exist_ok=True)
    (directory / "config.yaml").write_text(config_yaml, encoding="utf-8")
    if providers_yaml is not None:
        (directory / "providers.yaml").write_text(providers_yaml, encoding="utf-8")
    if env_yaml is not None:
        (directory / "config.development.yaml").write_text(env_yaml, encoding="utf-8")
    return directory


def load(tmp_path, **kwargs) -> ConfigurationManager:
    config_dir = write_config(tmp_path / "config", **kwargs)
    manager = ConfigurationManager(str(config_dir), env_file=str(tmp_path / ".env"))
    manager.initialize()
    return manager


def test_defaults_without_files(tmp_path):
    manager = ConfigurationManager(str(tmp_path / "absent"), env_file=str(tmp_path / ".env"))
    manager.initialize()

    engine = manager.get_engine_config()
    assert engine.ai_question_cap == 8
    assert engine.ai_timeout_seconds == 20
    assert engine.default_question_count == 10
    assert engine.max_question_count == 50
    assert engine.idle_timeout_minutes == 60
    assert manager.is_feature_enabled("ai_evaluation")
    assert manager.get_enabled_llm_providers() == []


def test_sections_are_merged(tmp_path):
    manager = load(tmp_path, config_yaml="""
app:
  name: Practice Engine
logging:
  level: DEBUG
  format: json
  file: logs/engine.log
  max_size_mb: 2
storage:
  backend: memory
engine:
  ai_question_cap: 4
  analytics_backend: none
features:
  hints: false
""")

    config = manager.get_config()
    assert config.app_name == "Practice Engine"
    assert config.storage.backend == "memory"
    assert config.engine.ai_question_cap == 4
    assert config.engine.default_question_count == 10
    assert not manager.is_feature_enabled("hints")
    assert manager.get_setting("engine.analytics_backend") == "none"
    assert manager.get_setting("engine.unknown", "fallback") == "fallback"

    logging_kwargs = manager.get_logging_config()
    assert logging_kwargs["level"] == "DEBUG"
    assert logging_kwargs["structured"] is True
    assert logging_kwargs["enable_file"] is True
    assert logging_kwargs["max_file_size"] == 2 * 1024 * 1024


def test_environment_file_overrides(tmp_path):
    manager = load(
        tmp_path,
        config_yaml="engine:\n  idle_timeout_minutes: 30\n",
        env_yaml="engine:\n  idle_timeout_minutes: 5\n",
    )

    assert manager.get_engine_config().idle_timeout_minutes == 5


def test_provider_key_substitution(tmp_path, monkeypatch):
    monkeypatch.setenv("DEEPSEEK_API_KEY", "sk-test")
    manager = load(tmp_path, providers_yaml="""
providers:
  deepseek:
    enabled: true
    api_key: "${DEEPSEEK_API_KEY}"
    model: deepseek-chat
    timeout: 15
  other:
    enabled: false
    api_key: "abc"
    model: other-model
""")

    providers = manager.get_llm_provider_configs()
    assert list(providers) == ["deepseek"]
    assert providers["deepseek"]["api_key"] == "sk-test"
    assert providers["deepseek"]["timeout"] == 15


def test_provider_without_key_is_skipped(tmp_path):
    manager = load(tmp_path, providers_yaml="""
providers:
  deepseek:
    enabled: true
    api_key: "${DEEPSEEK_API_KEY}"
""")

    assert manager.get_enabled_llm_providers() == []


def test_invalid_provider_settings(tmp_path):
    with pytest.raises(ConfigurationError):
        load(tmp_path, providers_yaml="""
providers:
  deepseek:
    enabled: true
    api_key: "key"
    temperature: 5
""")


@pytest.mark.parametrize("config_yaml", [
    "engine:\n  default_question_count: 80\n",
    "engine:\n  ai_question_cap: 0\n",
    "engine:\n  analytics_backend: kafka\n",
    "storage:\n  backend: s3\n",
    "engine: [not, a, mapping\n",
])
def test_invalid_configuration(tmp_path, config_yaml):
    with pytest.raises(ConfigurationError):
        load(tmp_path, config_yaml=config_yaml)


def test_dotenv_is_loaded(tmp_path, monkeypatch):
    (tmp_path / ".env").write_text("DEEPSEEK_API_KEY=from-dotenv\n", encoding="utf-8")
    manager = load(tmp_path, providers_yaml="""
providers:
  deepseek:
    enabled: true
    api_key: "${DEEPSEEK_API_KEY}"
""")

    assert manager.get_llm_provider_config("DeepSeek").api_key == "from-dotenv"
