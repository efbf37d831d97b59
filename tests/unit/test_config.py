"""
Unit tests for configuration management.
"""

import pytest

from mathemelody.core.exceptions import ConfigurationError
from mathemelody.infrastructure.config.settings import (
    AppConfig,
    PlaybackConfig,
    get_config,
    load_config,
    merge_configs,
    set_config,
)

ENV_VARS = [
    "MATHEMELODY_ENV",
    "MATHEMELODY_CONFIG",
    "DATABASE_URL",
    "JWT_SECRET",
    "JWT_EXPIRATION_DAYS",
    "PORT",
    "MATHEMELODY_API_HOST",
    "MATHEMELODY_LOG_LEVEL",
    "MATHEMELODY_LOG_FORMAT",
    "MATHEMELODY_DEFAULT_TEMPO",
    "MATHEMELODY_SAMPLE_RATE",
]


@pytest.fixture
def clean_env(monkeypatch, tmp_path):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    # no configs/ directory here
    monkeypatch.chdir(tmp_path)
    return monkeypatch


@pytest.mark.unit
class TestAppConfig:
    """Defaults and validation."""

    def test_defaults(self):
        config = AppConfig()

        assert config.environment == "development"
        assert config.api.port == 3000
        assert config.database.url.startswith("sqlite")
        assert config.auth.jwt_algorithm == "HS256"
        assert config.auth.token_expiration_days == 7
        assert config.playback.default_tempo == 120
        assert config.playback.default_wave_type == "sine"
        assert config.playback.default_grid_size == 16

    @pytest.mark.parametrize(
        "playback",
        [
            PlaybackConfig(default_tempo=0),
            PlaybackConfig(default_wave_type="noise"),
            PlaybackConfig(default_grid_size=33),
        ],
    )
    def test_invalid_playback_defaults(self, playback):
        with pytest.raises(ConfigurationError):
            AppConfig(playback=playback)


@pytest.mark.unit
class TestLoadConfig:
    """Loading from YAML and environment."""

    def test_load_without_sources(self, clean_env):
        config = load_config()
        assert config == AppConfig()

    def test_yaml_file(self, clean_env, tmp_path):
        path = tmp_path / "custom.yaml"
        path.write_text(
            "environment: staging\n"
            "api:\n  port: 8080\n"
            "playback:\n  default_tempo: 90\n  default_wave_type: triangle\n"
        )

        config = load_config(path)

        assert config.environment == "staging"
        assert config.api.port == 8080
        assert config.api.host == "0.0.0.0"
        assert config.playback.default_tempo == 90
        assert config.playback.default_wave_type == "triangle"

    def test_environment_yaml_is_picked_up(self, clean_env, tmp_path):
        (tmp_path / "configs").mkdir()
        (tmp_path / "configs" / "testing.yaml").write_text("logging:\n  level: ERROR\n")

        config = load_config(environment="testing")

        assert config.environment == "testing"
        assert config.logging.level == "ERROR"

    def test_environment_variables_win(self, clean_env, tmp_path):
        path = tmp_path / "custom.yaml"
        path.write_text("api:\n  port: 8080\n")
        clean_env.setenv("MATHEMELODY_CONFIG", str(path))
        clean_env.setenv("PORT", "9000")
        clean_env.setenv("DATABASE_URL", "sqlite:///./other.db")
        clean_env.setenv("JWT_SECRET", "s3cret")
        clean_env.setenv("JWT_EXPIRATION_DAYS", "1")
        clean_env.setenv("MATHEMELODY_DEFAULT_TEMPO", "150")
        clean_env.setenv("MATHEMELODY_LOG_FORMAT", "json")

        config = load_config()

        assert config.api.port == 9000
        assert config.database.url == "sqlite:///./other.db"
        assert config.auth.jwt_secret == "s3cret"
        assert config.auth.token_expiration_days == 1
        assert config.playback.default_tempo == 150
        assert config.logging.format == "json"

    def test_missing_file(self, clean_env, tmp_path):
        with pytest.raises(ConfigurationError):
            load_config(tmp_path / "missing.yaml")

    def test_unknown_key_is_rejected(self, clean_env, tmp_path):
        path = tmp_path / "typo.yaml"
        path.write_text("playback:\n  default_temp: 90\n")

        with pytest.raises(ConfigurationError) as exc_info:
            load_config(path)

        assert exc_info.value.details == {"keys": ["default_temp"]}


@pytest.mark.unit
def test_merge_configs_is_deep():
    merged = merge_configs({"api": {"host": "a", "port": 1}}, {"api": {"port": 2}}, {"x": 1})
    assert merged == {"api": {"host": "a", "port": 2}, "x": 1}


@pytest.mark.unit
def test_global_config(clean_env):
    config = AppConfig(environment="testing")
    set_config(config)
    assert get_config() is config

    set_config(None)
    assert get_config() is not config
