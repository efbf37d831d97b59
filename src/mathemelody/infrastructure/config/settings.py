"""
Configuration management for Mathemelody.

Handles loading and validation of configuration from multiple sources:
- YAML configuration files
- Environment variables
"""

import os
from dataclasses import dataclass, field, fields, is_dataclass
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml

from ...core.exceptions import ConfigurationError

WAVE_TYPES = ("sine", "square", "sawtooth", "triangle")


@dataclass
class LoggingConfig:
    """Logging configuration."""

    level: str = "INFO"
    format: str = "console"
    file: Optional[str] = None


@dataclass
class APIConfig:
    """API server configuration."""

    host: str = "0.0.0.0"
    port: int = 3000
    reload: bool = False
    cors_origins: list = field(default_factory=lambda: ["*"])


@dataclass
class DatabaseConfig:
    """Database configuration."""

    url: str = "sqlite:///./mathemelody.db"


@dataclass
class AuthConfig:
    """Token and password hashing settings."""

    jwt_secret: str = "your-secret-key-change-in-production"
    jwt_algorithm: str = "HS256"
    token_expiration_days: int = 7
    bcrypt_rounds: int = 10


@dataclass
class PlaybackConfig:
    """Defaults for the step sequencer."""

    default_tempo: int = 120
    default_wave_type: str = "sine"
    default_grid_size: int = 16
    sample_rate: int = 44100
    error_display_seconds: float = 5.0


@dataclass
class AppConfig:
    """Main application configuration."""

    environment: str = "development"
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    api: APIConfig = field(default_factory=APIConfig)
    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    auth: AuthConfig = field(default_factory=AuthConfig)
    playback: PlaybackConfig = field(default_factory=PlaybackConfig)

    def __post_init__(self):
        """Validate configuration."""
        if self.playback.default_tempo <= 0:
            raise ConfigurationError(
                f"default_tempo must be positive, got {self.playback.default_tempo}"
            )
        if self.playback.default_wave_type not in WAVE_TYPES:
            raise ConfigurationError(
                f"default_wave_type must be one of {', '.join(WAVE_TYPES)}",
                details={"wave_type": self.playback.default_wave_type},
            )
        if not 1 <= self.playback.default_grid_size <= 32:
            raise ConfigurationError(
                f"default_grid_size must be between 1 and 32, got {self.playback.default_grid_size}"
            )
        if self.auth.token_expiration_days <= 0:
            raise ConfigurationError("token_expiration_days must be positive")


def load_config_from_yaml(config_path: Union[str, Path]) -> Dict[str, Any]:
    """Load configuration from YAML file."""
    config_path = Path(config_path)
    if not config_path.exists():
        raise ConfigurationError(f"Configuration file not found: {config_path}")

    with open(config_path, "r") as f:
        return yaml.safe_load(f) or {}


def load_config_from_env() -> Dict[str, Any]:
    """Load configuration from environment variables."""
    config = {}

    if env_val := os.getenv("MATHEMELODY_ENV"):
        config["environment"] = env_val

    api_config = {}
    if host := os.getenv("MATHEMELODY_API_HOST"):
        api_config["host"] = host
    if port := os.getenv("PORT"):
        api_config["port"] = int(port)
    if api_config:
        config["api"] = api_config

    if database_url := os.getenv("DATABASE_URL"):
        config["database"] = {"url": database_url}

    auth_config = {}
    if secret := os.getenv("JWT_SECRET"):
        auth_config["jwt_secret"] = secret
    if days := os.getenv("JWT_EXPIRATION_DAYS"):
        auth_config["token_expiration_days"] = int(days)
    if auth_config:
        config["auth"] = auth_config

    logging_config = {}
    if level := os.getenv("MATHEMELODY_LOG_LEVEL"):
        logging_config["level"] = level
    if log_format := os.getenv("MATHEMELODY_LOG_FORMAT"):
        logging_config["format"] = log_format
    if logging_config:
        config["logging"] = logging_config

    playback_config = {}
    if tempo := os.getenv("MATHEMELODY_DEFAULT_TEMPO"):
        playback_config["default_tempo"] = int(tempo)
    if sample_rate := os.getenv("MATHEMELODY_SAMPLE_RATE"):
        playback_config["sample_rate"] = int(sample_rate)
    if playback_config:
        config["playback"] = playback_config

    return config


def merge_configs(*configs: Dict[str, Any]) -> Dict[str, Any]:
    """Merge multiple configuration dictionaries, later ones winning."""
    merged = {}
    for config in configs:
        for key, value in config.items():
            if key in merged and isinstance(merged[key], dict) and isinstance(value, dict):
                merged[key] = merge_configs(merged[key], value)
            else:
                merged[key] = value
    return merged


def dict_to_dataclass(data: Dict[str, Any], cls) -> Any:
    """Build a (possibly nested) config dataclass from a plain dict.

    Raises:
        ConfigurationError: for keys the dataclass does not define
    """
    if not is_dataclass(cls):
        return data
    if not isinstance(data, dict):
        raise ConfigurationError(f"Expected a mapping for {cls.__name__}, got {type(data).__name__}")

    known = {f.name: f for f in fields(cls)}
    unknown = sorted(set(data) - set(known))
    if unknown:
        raise ConfigurationError(
            f"Unknown {cls.__name__} setting(s): {', '.join(unknown)}", details={"keys": unknown}
        )

    return cls(**{name: dict_to_dataclass(value, known[name].type) for name, value in data.items()})


def load_config(
    config_file: Optional[Union[str, Path]] = None, environment: Optional[str] = None
) -> AppConfig:
    """
    Load application configuration from multiple sources.

    Precedence, lowest first: defaults, YAML file, environment variables.

    Args:
        config_file: Path to YAML configuration file
        environment: Environment name (development, production, testing)

    Returns:
        AppConfig instance
    """
    env_config = load_config_from_env()

    if not environment:
        environment = env_config.get("environment", "development")

    config_file = config_file or os.getenv("MATHEMELODY_CONFIG")
    yaml_config: Dict[str, Any] = {}
    if config_file:
        yaml_config = load_config_from_yaml(config_file)
    else:
        config_path = Path.cwd() / "configs" / f"{environment}.yaml"
        if config_path.exists():
            yaml_config = load_config_from_yaml(config_path)

    merged_config = merge_configs({"environment": environment}, yaml_config, env_config)
    return dict_to_dataclass(merged_config, AppConfig)


# Global configuration instance
_config: Optional[AppConfig] = None


def get_config() -> AppConfig:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        _config = load_config()
    return _config


def set_config(config: Optional[AppConfig]) -> None:
    """Set (or with None, reset) the global configuration instance."""
    global _config
    _config = config
