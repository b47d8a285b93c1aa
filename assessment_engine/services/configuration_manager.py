"""Configuration Manager for handling engine configuration and settings."""

import os
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..utils.exceptions import ConfigurationError
from ..utils.logging import get_logger


_ENV_PATTERN = re.compile(r"\$\{([^}]+)\}")


@dataclass
class LoggingConfig:
    """Logging configuration settings."""

    level: str = "INFO"
    format: str = "human"
    file_path: Optional[str] = None
    max_file_size: int = 10 * 1024 * 1024  # 10MB
    backup_count: int = 5
    console_output: bool = True
    file_output: bool = False

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LoggingConfig":
        """Create LoggingConfig from dictionary."""
        return cls(**{k: v for k, v in data.items() if k in cls.__dataclass_fields__})


@dataclass
class StorageConfig:
    """Storage configuration settings."""

    backend: str = "file"
    base_path: str = "data"

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "StorageConfig":
        """Create StorageConfig from dictionary."""
        return cls(**{k: v for k, v in data.items() if k in cls.__dataclass_fields__})


@dataclass
class EngineConfig:
    """Session engine settings."""

    ai_question_cap: int = 8
    ai_timeout_seconds: float = 20
    default_question_count: int = 10
    max_question_count: int = 50
    idle_timeout_minutes: int = 60
    question_bank_path: str = "config/questions.yaml"
    analytics_backend: str = "logging"
    analytics_path: str = "data/analytics/events.jsonl"

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "EngineConfig":
        """Create EngineConfig from dictionary."""
        return cls(**{k: v for k, v in data.items() if k in cls.__dataclass_fields__})


class LLMProviderConfig(BaseModel):
    """LLM Provider configuration model."""

    name: str = Field(..., description="Provider name")
    enabled: bool = Field(default=True, description="Whether provider is enabled")
    api_key: str = Field(..., description="API key for the provider")
    base_url: Optional[str] = Field(default=None, description="Base URL for API calls")
    model: str = Field(..., description="Model name to use")
    timeout: int = Field(default=30, description="Request timeout in seconds")
    max_tokens: int = Field(default=2000, description="Maximum tokens for responses")
    temperature: float = Field(default=0.7, description="Temperature for generation")
    retries: int = Field(default=2, description="Number of retry attempts")

    @field_validator("temperature")
    @classmethod
    def validate_temperature(cls, v):
        if not 0.0 <= v <= 2.0:
            raise ValueError("Temperature must be between 0.0 and 2.0")
        return v

    @field_validator("timeout")
    @classmethod
    def validate_timeout(cls, v):
        if v < 1:
            raise ValueError("Timeout must be at least 1 second")
        return v

    @field_validator("retries")
    @classmethod
    def validate_retries(cls, v):
        if v < 0:
            raise ValueError("Retries cannot be negative")
        return v


class AppConfig(BaseModel):
    """Main application configuration model."""

    model_config = ConfigDict(validate_assignment=True)

    app_name: str = Field(default="Assessment Session Engine", description="Application name")
    version: str = Field(default="1.0.0", description="Application version")
    debug: bool = Field(default=False, description="Debug mode")
    environment: str = Field(default="development", description="Environment")

    logging: LoggingConfig = Field(default_factory=LoggingConfig, description="Logging settings")
    storage: StorageConfig = Field(default_factory=StorageConfig, description="Storage settings")
    engine: EngineConfig = Field(default_factory=EngineConfig, description="Session engine settings")

    llm_providers: List[LLMProviderConfig] = Field(default_factory=list, description="LLM provider configurations")

    features: Dict[str, bool] = Field(default_factory=dict, description="Feature flags")


class ConfigurationManager:
    """Manages engine configuration and settings."""

    def __init__(self, config_path: str = "config", env_file: str = ".env"):
        """Initialize the configuration manager.

        Args:
            config_path: Path to configuration directory.
            env_file: Path to environment file.
        """
        self.config_path = Path(config_path)
        self.env_file = Path(env_file)
        self.config: Optional[AppConfig] = None
        self.logger = get_logger("configuration_manager")

        self._default_config = self._create_default_config()

    def _create_default_config(self) -> AppConfig:
        """Create default configuration."""
        return AppConfig(
            logging=LoggingConfig(),
            storage=StorageConfig(),
            engine=EngineConfig(),
            llm_providers=[],
            features={
                "ai_questions": True,
                "ai_evaluation": True,
                "hints": True,
            },
        )

    def initialize(self) -> None:
        """Initialize the configuration manager.

        Raises:
            ConfigurationError: If a configuration file is invalid.
        """
        self._load_environment_variables()
        self._load_configuration_files()
        self._validate_configuration()
        self.logger.info("ConfigurationManager initialized successfully")

    def _load_environment_variables(self) -> None:
        """Load environment variables from .env file."""
        if self.env_file.exists():
            load_dotenv(self.env_file)
            self.logger.info(f"Loaded environment variables from {self.env_file}")

        os.environ.setdefault("ENVIRONMENT", "development")

    def _load_configuration_files(self) -> None:
        """Load configuration from YAML files."""
        config_data = self._default_config.model_dump()

        main_config_file = self.config_path / "config.yaml"
        if main_config_file.exists():
            config_data = self._merge_config(self._load_yaml_file(main_config_file), config_data)
            self.logger.info(f"Loaded main configuration from {main_config_file}")

        environment = os.getenv("ENVIRONMENT", "development")
        env_config_file = self.config_path / f"config.{environment}.yaml"
        if env_config_file.exists():
            config_data = self._merge_config(self._load_yaml_file(env_config_file), config_data)
            self.logger.info(f"Loaded environment configuration from {env_config_file}")

        providers_file = self.config_path / "providers.yaml"
        if providers_file.exists():
            providers_config = self._load_yaml_file(providers_file)
            config_data["llm_providers"] = self._load_providers(providers_config.get("providers") or {})
            self.logger.info(f"Loaded {len(config_data['llm_providers'])} enabled LLM providers from {providers_file}")
        else:
            self.logger.warning(f"Providers configuration file not found: {providers_file}")

        try:
            self.config = AppConfig.model_validate(config_data)
        except ValueError as e:
            raise ConfigurationError(f"Invalid configuration: {str(e)}") from e

    def _load_providers(self, providers: Dict[str, Any]) -> List[LLMProviderConfig]:
        """Build provider configurations, skipping disabled ones and those without keys."""
        llm_providers = []
        for name, provider_data in providers.items():
            if not provider_data.get("enabled", False):
                continue

            api_key = self._substitute_env(provider_data.get("api_key", ""))
            if not api_key:
                self.logger.warning(f"No API key available for provider {name}, skipping")
                continue

            try:
                llm_providers.append(LLMProviderConfig(
                    name=name,
                    enabled=True,
                    api_key=api_key,
                    base_url=provider_data.get("base_url"),
                    model=provider_data.get("model", "deepseek-chat"),
                    timeout=provider_data.get("timeout", 30),
                    max_tokens=provider_data.get("max_tokens", 2000),
                    temperature=provider_data.get("temperature", 0.7),
                    retries=provider_data.get("retries", 2),
                ))
            except ValueError as e:
                raise ConfigurationError(
                    f"Invalid configuration for provider {name}: {str(e)}",
                    config_key=f"providers.{name}",
                ) from e

        return llm_providers

    @staticmethod
    def _substitute_env(value: Any) -> Any:
        """Replace ``${VAR}`` references with environment values."""
        if not isinstance(value, str):
            return value
        return _ENV_PATTERN.sub(lambda match: os.getenv(match.group(1), ""), value)

    def _merge_config(self, file_config: Dict[str, Any], nested_config: Dict[str, Any]) -> Dict[str, Any]:
        """Merge a configuration file into the nested configuration structure.

        Args:
            file_config: Configuration read from a YAML file
            nested_config: Nested configuration structure

        Returns:
            Updated nested configuration
        """
        if "app" in file_config:
            app = file_config["app"] or {}
            nested_config["app_name"] = app.get("name", nested_config["app_name"])
            nested_config["version"] = app.get("version", nested_config["version"])
            nested_config["debug"] = app.get("debug", nested_config["debug"])
            nested_config["environment"] = app.get("environment", nested_config["environment"])

        if "logging" in file_config:
            logging_section = file_config["logging"] or {}
            target = nested_config["logging"]
            target["level"] = logging_section.get("level", target["level"])
            target["format"] = logging_section.get("format", target["format"])
            target["file_path"] = logging_section.get("file", target["file_path"])
            if "max_size_mb" in logging_section:
                target["max_file_size"] = logging_section["max_size_mb"] * 1024 * 1024
            target["backup_count"] = logging_section.get("backup_count", target["backup_count"])
            target["console_output"] = logging_section.get("console", target["console_output"])
            target["file_output"] = target["file_path"] is not None

        for section in ("storage", "engine"):
            if section in file_config:
                values = file_config[section] or {}
                nested_config[section].update(
                    {k: self._substitute_env(v) for k, v in values.items() if k in nested_config[section]}
                )

        if "features" in file_config:
            nested_config["features"].update(file_config["features"] or {})

        return nested_config

    def _load_yaml_file(self, file_path: Path) -> Dict[str, Any]:
        """Load YAML file content.

        Args:
            file_path: Path to YAML file.

        Returns:
            Dictionary containing file content.

        Raises:
            ConfigurationError: If the file is not valid YAML.
        """
        try:
            with open(file_path, "r", encoding="utf-8") as f:
                return yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(
                f"Failed to parse YAML file {file_path}: {str(e)}",
                config_key=str(file_path),
            ) from e

    def _validate_configuration(self) -> None:
        """Validate the loaded configuration."""
        if not self.config:
            raise ConfigurationError("Configuration not loaded")

        engine = self.config.engine
        if engine.max_question_count < 1:
            raise ConfigurationError("max_question_count must be at least 1", config_key="engine.max_question_count")
        if not 1 <= engine.default_question_count <= engine.max_question_count:
            raise ConfigurationError(
                "default_question_count must be between 1 and max_question_count",
                config_key="engine.default_question_count",
            )
        if engine.ai_question_cap < 1:
            raise ConfigurationError("ai_question_cap must be at least 1", config_key="engine.ai_question_cap")
        if engine.ai_timeout_seconds <= 0:
            raise ConfigurationError("ai_timeout_seconds must be positive", config_key="engine.ai_timeout_seconds")
        if engine.analytics_backend not in ("logging", "jsonl", "none"):
            raise ConfigurationError(
                f"Unknown analytics backend: {engine.analytics_backend}",
                config_key="engine.analytics_backend",
            )
        if self.config.storage.backend not in ("file", "memory"):
            raise ConfigurationError(
                f"Unknown storage backend: {self.config.storage.backend}",
                config_key="storage.backend",
            )

        if not self.config.llm_providers:
            self.logger.warning("No LLM providers configured, AI features will use fallbacks")

    def get_config(self) -> AppConfig:
        """Get the current configuration.

        Raises:
            ConfigurationError: If configuration is not loaded.
        """
        if not self.config:
            raise ConfigurationError("Configuration not loaded")
        return self.config

    def get_setting(self, key: str, default: Any = None) -> Any:
        """Get a specific configuration setting.

        Args:
            key: Configuration key (dot notation supported).
            default: Default value if key not found.

        Returns:
            Configuration value.
        """
        if not self.config:
            return default

        value: Any = self.config
        for k in key.split("."):
            if isinstance(value, dict):
                if k not in value:
                    return default
                value = value[k]
            elif hasattr(value, k):
                value = getattr(value, k)
            else:
                return default

        return value

    def get_llm_provider_config(self, provider_name: str) -> Optional[LLMProviderConfig]:
        """Get configuration for a specific LLM provider."""
        if not self.config:
            return None

        for provider in self.config.llm_providers:
            if provider.name.lower() == provider_name.lower():
                return provider

        return None

    def get_enabled_llm_providers(self) -> List[LLMProviderConfig]:
        """Get list of enabled LLM providers."""
        if not self.config:
            return []

        return [p for p in self.config.llm_providers if p.enabled]

    def is_feature_enabled(self, feature_name: str) -> bool:
        """Check if a feature is enabled."""
        if not self.config:
            return False

        return self.config.features.get(feature_name, False)

    def get_engine_config(self) -> EngineConfig:
        """Get the session engine settings."""
        return self.get_config().engine

    def get_logging_config(self) -> Dict[str, Any]:
        """Get logging configuration as ``setup_logging`` keyword arguments."""
        logging_config = self.config.logging if self.config else LoggingConfig()
        return {
            "level": logging_config.level,
            "log_file": logging_config.file_path,
            "enable_console": logging_config.console_output,
            "enable_file": logging_config.file_output,
            "structured": logging_config.format == "json",
            "max_file_size": logging_config.max_file_size,
            "backup_count": logging_config.backup_count,
        }

    def get_llm_provider_configs(self) -> Dict[str, Dict[str, Any]]:
        """Get LLM provider configurations.

        Returns:
            Dictionary mapping provider names to their configurations.
        """
        provider_configs = {}
        for provider in self.get_enabled_llm_providers():
            provider_configs[provider.name.lower()] = {
                "name": provider.name,
                "is_enabled": provider.enabled,
                "api_key": provider.api_key,
                "base_url": provider.base_url,
                "model": provider.model,
                "timeout": provider.timeout,
                "max_tokens": provider.max_tokens,
                "temperature": provider.temperature,
                "retries": provider.retries,
            }
        return provider_configs

    def get_configuration_summary(self) -> Dict[str, Any]:
        """Get a summary of the current configuration."""
        if not self.config:
            return {"error": "Configuration not loaded"}

        return {
            "app_name": self.config.app_name,
            "version": self.config.version,
            "environment": self.config.environment,
            "debug": self.config.debug,
            "storage_backend": self.config.storage.backend,
            "analytics_backend": self.config.engine.analytics_backend,
            "llm_providers": {
                p.name: {"enabled": p.enabled, "model": p.model, "timeout": p.timeout}
                for p in self.config.llm_providers
            },
            "features": self.config.features,
        }
