"""
Tests for the configuration system.
"""
from pathlib import Path

import pytest

from job_engine.config import (
    EngineConfig,
    LoggingConfig,
    Settings,
    StorageConfig,
    configure,
    load_env,
)
from job_engine.errors import InvalidConfigError


class TestEngineConfig:
    """Test engine configuration."""

    def test_defaults(self):
        config = EngineConfig()

        assert config.queue_size == 10
        assert config.max_attempts == 3
        assert config.base_delay == 2.0
        assert config.attempt_timeout == 300.0
        assert config.artifacts_dir == Path("artifacts")

    def test_validation(self):
        with pytest.raises(ValueError, match="queue_size must be at least 1"):
            EngineConfig(queue_size=0)

        with pytest.raises(ValueError, match="max_attempts must be at least 1"):
            EngineConfig(max_attempts=0)

        with pytest.raises(ValueError, match="base_delay cannot be negative"):
            EngineConfig(base_delay=-1)

        with pytest.raises(ValueError, match="attempt_timeout must be positive"):
            EngineConfig(attempt_timeout=0)

    def test_artifacts_dir_coerced(self):
        assert EngineConfig(artifacts_dir="/tmp/evidence").artifacts_dir == Path("/tmp/evidence")


class TestSectionConfigs:
    """Test logging and storage sections."""

    def test_logging_validation(self):
        with pytest.raises(ValueError, match="Invalid log level"):
            LoggingConfig(level="LOUD")
        with pytest.raises(ValueError, match="Invalid log format"):
            LoggingConfig(format="xml")

    def test_storage_defaults(self):
        config = StorageConfig()

        assert config.backend == "memory"
        assert config.jobs_table == "jobs"

    def test_postgres_requires_dsn(self):
        with pytest.raises(ValueError, match="dsn is required"):
            StorageConfig(backend="postgres")

    def test_pool_sizes(self):
        with pytest.raises(ValueError, match="pool_max_size"):
            StorageConfig(pool_min_size=5, pool_max_size=2)


class TestSettingsFromEnv:
    """Test environment loading."""

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("JOB_ENGINE_QUEUE_SIZE", "4")
        monkeypatch.setenv("JOB_ENGINE_MAX_ATTEMPTS", "5")
        monkeypatch.setenv("JOB_ENGINE_BASE_DELAY", "0.5")
        monkeypatch.setenv("JOB_ENGINE_ATTEMPT_TIMEOUT", "none")
        monkeypatch.setenv("JOB_ENGINE_LOG_LEVEL", "debug")
        monkeypatch.setenv("JOB_ENGINE_STORAGE_BACKEND", "postgres")
        monkeypatch.setenv("JOB_ENGINE_DATABASE_URL", "postgresql://localhost/jobs")

        settings = Settings.from_env()

        assert settings.engine.queue_size == 4
        assert settings.engine.max_attempts == 5
        assert settings.engine.base_delay == 0.5
        assert settings.engine.attempt_timeout is None
        assert settings.logging.level == "DEBUG"
        assert settings.storage.backend == "postgres"
        assert settings.storage.dsn == "postgresql://localhost/jobs"

    def test_from_env_custom_prefix(self, monkeypatch):
        monkeypatch.setenv("AUTOMATION_QUEUE_SIZE", "7")

        assert Settings.from_env(prefix="AUTOMATION_").engine.queue_size == 7

    def test_from_env_invalid(self, monkeypatch):
        monkeypatch.setenv("JOB_ENGINE_QUEUE_SIZE", "lots")

        with pytest.raises(InvalidConfigError):
            Settings.from_env()

    def test_load_env(self, tmp_path, monkeypatch):
        env_file = tmp_path / ".env"
        env_file.write_text("JOB_ENGINE_MAX_ATTEMPTS=9\n")
        monkeypatch.setenv("JOB_ENGINE_MAX_ATTEMPTS", "1")

        assert load_env(str(env_file), override=True) is True
        assert Settings.from_env().engine.max_attempts == 9


class TestSettingsFromFile:
    """Test file loading."""

    def test_yaml(self, tmp_path):
        path = tmp_path / "engine.yaml"
        path.write_text(
            "engine:\n"
            "  queue_size: 3\n"
            "  attempt_timeout: null\n"
            "logging:\n"
            "  format: json\n"
        )

        settings = Settings.from_file(path)

        assert settings.engine.queue_size == 3
        assert settings.engine.attempt_timeout is None
        assert settings.logging.format == "json"

    def test_toml(self, tmp_path):
        path = tmp_path / "engine.toml"
        path.write_text(
            "[engine]\n"
            "max_attempts = 1\n"
            'artifacts_dir = "/var/evidence"\n'
            "[storage]\n"
            'backend = "postgres"\n'
            'dsn = "postgresql://db/jobs"\n'
        )

        settings = Settings.from_file(path)

        assert settings.engine.max_attempts == 1
        assert settings.engine.artifacts_dir == Path("/var/evidence")
        assert settings.storage.dsn == "postgresql://db/jobs"

    def test_schema_violation(self, tmp_path):
        path = tmp_path / "engine.yaml"
        path.write_text("engine:\n  queue_size: 0\n")

        with pytest.raises(InvalidConfigError, match="Configuration validation failed"):
            Settings.from_file(path)

    def test_unknown_engine_key(self, tmp_path):
        path = tmp_path / "engine.yaml"
        path.write_text("engine:\n  workers: 4\n")

        with pytest.raises(InvalidConfigError):
            Settings.from_file(path)

    def test_postgres_without_dsn(self, tmp_path):
        path = tmp_path / "engine.yaml"
        path.write_text("storage:\n  backend: postgres\n")

        with pytest.raises(InvalidConfigError):
            Settings.from_file(path)

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            Settings.from_file(tmp_path / "nope.yaml")

    def test_unsupported_format(self, tmp_path):
        path = tmp_path / "engine.ini"
        path.write_text("[engine]\n")

        with pytest.raises(ValueError, match="Unsupported config file format"):
            Settings.from_file(path)


class TestSettings:
    """Test settings helpers."""

    def test_to_dict(self):
        d = Settings().to_dict()

        assert d["engine"]["queue_size"] == 10
        assert d["engine"]["artifacts_dir"] == "artifacts"
        assert d["storage"]["backend"] == "memory"

    def test_configure(self, monkeypatch):
        monkeypatch.setattr("job_engine.config.settings._global_settings", None)
        settings = Settings(engine=EngineConfig(queue_size=2))

        configured = configure(settings, logging=LoggingConfig(level="ERROR"))

        assert configured is settings
        assert configured.logging.level == "ERROR"

    def test_configure_unknown_section(self, monkeypatch):
        monkeypatch.setattr("job_engine.config.settings._global_settings", Settings())

        with pytest.raises(ValueError, match="Unknown settings section: cache"):
            configure(cache=object())

    def test_from_dict(self):
        settings = Settings.from_dict({"engine": {"queue_size": 1}, "storage": {"backend": "memory"}})

        assert settings.engine.queue_size == 1
        assert settings.logging.level == "INFO"
