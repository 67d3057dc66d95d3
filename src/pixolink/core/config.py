"""
Configuration management for PixoLink.

This module provides the configuration system shared by the orchestrator,
the predictive layer and the tuner. It supports:
1. Multiple configuration sources (YAML files, environment variables, defaults)
2. Type validation through pydantic models
3. Environment-specific settings
4. Credential loading from ``.env`` files
"""

# Standard library imports
import os
import threading
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

# Third-party imports
import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field

# Load environment variables from .env file
load_dotenv()

# Constants
DEFAULT_CONFIG_PATH = Path("config/default.yaml")
ENV_CONFIG_PREFIX = "PIXOLINK_"


class Environment(Enum):
    """Available environment types."""
    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"
    TESTING = "testing"


class LoggingConfig(BaseModel):
    """Logging configuration."""
    level: str = Field(default="INFO", description="Default log level")
    format: str = Field(
        default="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        description="Log format string"
    )
    file_path: Optional[str] = Field(default=None, description="Log file path")
    max_size: int = Field(default=10_485_760, description="Max log file size in bytes")
    backup_count: int = Field(default=5, description="Number of backup log files")


class BusConfig(BaseModel):
    """Event bus configuration."""
    history_size: int = Field(default=1000, description="Number of events kept in the history ring buffer")
    wait_timeout: float = Field(default=30.0, description="Default timeout in seconds for wait_for")


class PipelineConfig(BaseModel):
    """Generation pipeline configuration."""
    quality_threshold: int = Field(default=70, description="Score below which an image is reported as low quality")
    enhancement_terms: List[str] = Field(
        default_factory=lambda: ["highly detailed", "sharp focus", "balanced lighting"],
        description="Quality descriptors appended when no learned suggestions exist"
    )
    sync_interval: float = Field(default=60.0, description="Auto-sync interval in seconds")
    chain_cache_size: int = Field(default=256, description="Maximum number of per-user cognitive chains kept")


class TunerConfig(BaseModel):
    """Adaptive tuner configuration."""
    cache_dir: Optional[str] = Field(default=None, description="Directory for persisted module configs")
    size_limit: int = Field(default=10_485_760, description="Maximum size of the tuner cache in bytes")


class IntelligenceConfig(BaseModel):
    """Language model configuration for prompt insight and advisories."""
    provider: str = Field(default="none", description="LLM provider ('none' or 'openai')")
    api_key: Optional[str] = Field(default=None, description="LLM provider API key")
    model: str = Field(default="gpt-4o-mini", description="Model to use")
    temperature: float = Field(default=0.2, description="Sampling temperature")
    max_tokens: int = Field(default=700, description="Maximum tokens per request")


class GenerationConfig(BaseModel):
    """Image generation backend configuration."""
    base_url: Optional[str] = Field(default=None, description="Image generation endpoint")
    api_key: Optional[str] = Field(default=None, description="Image generation API key")
    timeout: float = Field(default=60.0, description="Request timeout in seconds")


class Config(BaseModel):
    """Main configuration class."""
    model_config = ConfigDict(use_enum_values=True)

    environment: Environment = Field(
        default=Environment.DEVELOPMENT,
        description="Current environment"
    )
    debug: bool = Field(default=False, description="Debug mode flag")

    logging: LoggingConfig = Field(default_factory=LoggingConfig, description="Logging settings")
    bus: BusConfig = Field(default_factory=BusConfig, description="Event bus settings")
    pipeline: PipelineConfig = Field(default_factory=PipelineConfig, description="Pipeline settings")
    tuner: TunerConfig = Field(default_factory=TunerConfig, description="Tuner settings")
    intelligence: IntelligenceConfig = Field(default_factory=IntelligenceConfig, description="LLM settings")
    generation: GenerationConfig = Field(default_factory=GenerationConfig, description="Image backend settings")

    @classmethod
    def load_from_file(cls, path: Union[str, Path]) -> "Config":
        """Load configuration from a YAML file."""
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")

        with open(path) as f:
            config_data = yaml.safe_load(f) or {}
            return cls(**config_data)

    @classmethod
    def load_from_env(cls) -> "Config":
        """
        Load configuration from environment variables.

        Environment variables are prefixed with PIXOLINK_ and the first
        underscore separates the section from the key. For example:
        PIXOLINK_INTELLIGENCE_API_KEY=your-api-key
        PIXOLINK_BUS_HISTORY_SIZE=500
        """
        config_data: Dict[str, Any] = {
            'logging': {},
            'bus': {},
            'pipeline': {},
            'tuner': {},
            'intelligence': {},
            'generation': {},
        }

        def convert_value(value: str) -> Any:
            """Convert string value to appropriate type."""
            if value.lower() in ('none', 'null'):
                return None
            if value.lower() in ('true', 'false'):
                return value.lower() == 'true'
            if value.isdigit():
                return int(value)
            if value.replace(".", "", 1).isdigit():
                return float(value)
            return value

        for key, value in os.environ.items():
            if not key.startswith(ENV_CONFIG_PREFIX):
                continue
            config_key = key[len(ENV_CONFIG_PREFIX):].lower()
            section, _, nested_key = config_key.partition('_')

            if section in config_data and nested_key:
                config_data[section][nested_key] = convert_value(value)
            elif section in cls.model_fields and section not in config_data:
                config_data[config_key] = convert_value(value)

        return cls(**config_data)

    def save_to_file(self, path: Union[str, Path]) -> None:
        """Save configuration to a YAML file."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)

        with open(path, "w") as f:
            yaml.safe_dump(self.model_dump(mode="json"), f, default_flow_style=False)

    def update(self, **kwargs) -> None:
        """Update top-level configuration values."""
        for key, value in kwargs.items():
            if hasattr(self, key):
                setattr(self, key, value)


class ConfigManager:
    """Configuration manager holding the process-wide PixoLink configuration."""

    def __init__(self):
        self._initialized = False
        self._config: Optional[Config] = None
        self._config_file_path: Optional[Path] = None
        self._logger = None
        self._initialization_lock = threading.Lock()
        self._is_initializing = False

    def initialize(
        self,
        config_file: Optional[Union[str, Path]] = None,
        env_file: Optional[Union[str, Path]] = None,
        environment: Optional[Environment] = None
    ) -> None:
        """Initialize configuration from files and environment."""
        if self._initialized or self._is_initializing:
            return

        if not self._initialization_lock.acquire(blocking=False):
            return

        self._is_initializing = True
        try:
            if env_file and Path(env_file).exists():
                load_dotenv(env_file, override=True)

            if environment:
                os.environ[f"{ENV_CONFIG_PREFIX}ENVIRONMENT"] = environment.value

            if config_file:
                self._config_file_path = Path(config_file)
                if self._config_file_path.exists():
                    self._config = Config.load_from_file(self._config_file_path)
                else:
                    self._config = Config.load_from_env()
                    self._config.save_to_file(self._config_file_path)
                    self.logger.info(f"Created default configuration file at {self._config_file_path}")
            elif DEFAULT_CONFIG_PATH.exists():
                self._config_file_path = DEFAULT_CONFIG_PATH
                self._config = Config.load_from_file(DEFAULT_CONFIG_PATH)
            else:
                self._config = Config.load_from_env()

            self._initialized = True
            self.logger.debug(f"Configuration initialized from {self._config_file_path or 'environment'}")

        except Exception as e:
            self.logger.error(f"Error initializing configuration: {str(e)}")
            raise
        finally:
            self._is_initializing = False
            self._initialization_lock.release()

    def reset(self) -> None:
        """Drop the loaded configuration so the next access reloads it."""
        self._initialized = False
        self._config = None
        self._config_file_path = None

    @property
    def config(self) -> Optional[Config]:
        """Get the current configuration with lazy initialization."""
        if not self._initialized and not self._is_initializing:
            self.initialize()
        return self._config

    def get_config(self) -> Optional[Config]:
        """Get the current configuration, or None if it cannot be loaded."""
        try:
            return self.config
        except Exception as e:
            self.logger.warning(f"Error getting config, returning None: {str(e)}")
            return None

    @property
    def logger(self):
        """Plain stdlib logger; get_logger itself depends on this manager."""
        if self._logger is None:
            import logging
            self._logger = logging.getLogger("pixolink.core.config")
        return self._logger

    def update_config(self, **kwargs) -> None:
        """Update configuration values and persist them when file-backed."""
        self.config.update(**kwargs)
        if self._config_file_path:
            self.config.save_to_file(self._config_file_path)

    def get_logging_config(self) -> LoggingConfig:
        """Get logging configuration, falling back to defaults."""
        try:
            if self.config and self.config.logging:
                return self.config.logging
        except Exception as e:
            self.logger.warning(f"Error getting logging config, using defaults: {str(e)}")
        return LoggingConfig()

    def get_bus_config(self) -> BusConfig:
        """Get event bus configuration."""
        config = self.get_config()
        return config.bus if config else BusConfig()

    def get_pipeline_config(self) -> PipelineConfig:
        """Get pipeline configuration."""
        config = self.get_config()
        return config.pipeline if config else PipelineConfig()

    def get_tuner_config(self) -> TunerConfig:
        """Get tuner configuration."""
        config = self.get_config()
        return config.tuner if config else TunerConfig()

    def get_intelligence_config(self) -> IntelligenceConfig:
        """Get LLM configuration."""
        config = self.get_config()
        return config.intelligence if config else IntelligenceConfig()

    def get_generation_config(self) -> GenerationConfig:
        """Get image backend configuration."""
        config = self.get_config()
        return config.generation if config else GenerationConfig()

    def _environment_value(self) -> str:
        environment = self.config.environment
        return environment.value if isinstance(environment, Environment) else environment

    def is_development(self) -> bool:
        """Check if running in development environment."""
        return self._environment_value() == Environment.DEVELOPMENT.value

    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self._environment_value() == Environment.PRODUCTION.value

    def is_testing(self) -> bool:
        """Check if running in testing environment."""
        return self._environment_value() == Environment.TESTING.value


# Global instance
config_manager = ConfigManager()
