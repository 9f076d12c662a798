"""
Unit tests for schemaguard configuration.
"""

import logging
import logging.handlers

import pytest
import yaml
from pydantic import ValidationError

from schemaguard.config import (
    LoggingConfig,
    PreviewConfig,
    SchemaGuardConfig,
    configure_logging,
)
from schemaguard.exceptions import ConfigurationError


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep SCHEMAGUARD_* variables from the host out of the tests."""
    for name in ("SCHEMAGUARD_DATABASE_URL", "SCHEMAGUARD_TABLE_PREFIX", "SCHEMAGUARD_OPERATION_MODE"):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def config_file(tmp_path):
    def write(content: str):
        path = tmp_path / "schemaguard.yaml"
        path.write_text(content)
        return path
    return write


class TestSchemaGuardConfig:
    """Test main configuration."""

    def test_defaults(self):
        config = SchemaGuardConfig()
        assert config.table_prefix == "wp_"
        assert config.settings_store.backend == "file"
        assert config.preview.default_limit == 100
        assert config.preview.max_limit == 1000
        assert config.operation_mode == "execute"
        assert len(config.get_core_tables()) == 12

    def test_multisite_core_tables(self):
        config = SchemaGuardConfig(table_prefix="site_", multisite=True)
        tables = config.get_core_tables()
        assert "site_sitemeta" in tables
        assert len(tables) == 18

    def test_explicit_core_tables(self):
        config = SchemaGuardConfig(core_tables=["accounts"])
        assert config.get_core_tables() == ["accounts"]

    def test_invalid_prefix(self):
        with pytest.raises(ValidationError):
            SchemaGuardConfig(table_prefix="wp-")

    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("SCHEMAGUARD_TABLE_PREFIX", "app_")
        monkeypatch.setenv("SCHEMAGUARD_SETTINGS_STORE__BACKEND", "database")
        config = SchemaGuardConfig()
        assert config.table_prefix == "app_"
        assert config.settings_store.backend == "database"

    def test_connection_from_url(self):
        config = SchemaGuardConfig(database_url="mysql://admin:secret@db:3306/app")
        connection = config.get_connection_config()
        assert connection.host == "db"
        assert connection.database == "app"

    def test_connection_required(self):
        with pytest.raises(ConfigurationError):
            SchemaGuardConfig().get_connection_config()

    def test_invalid_url(self):
        with pytest.raises(ConfigurationError):
            SchemaGuardConfig(database_url="postgresql://localhost/app").get_connection_config()

    def test_validate_config(self):
        SchemaGuardConfig(database_url="mysql://root@localhost/app").validate_config()


class TestPreviewConfig:
    """Test preview limits."""

    def test_default_above_max(self):
        with pytest.raises(ValidationError):
            PreviewConfig(default_limit=500, max_limit=100)

    def test_non_positive_max(self):
        with pytest.raises(ValidationError):
            PreviewConfig(default_limit=1, max_limit=0)


class TestConfigFile:
    """Test loading and saving YAML configuration."""

    def test_from_yaml_expands_env_vars(self, config_file, monkeypatch):
        monkeypatch.setenv("TEST_DB_PASSWORD", "s3cret")
        path = config_file(
            """
database:
  host: db.internal
  database: app
  user: admin
  password: ${TEST_DB_PASSWORD}
settings_store:
  backend: database
  table: guard_options
table_prefix: app_
preview:
  default_limit: 50
  max_limit: 200
"""
        )
        config = SchemaGuardConfig.from_yaml(path)

        assert config.database.password == "s3cret"
        assert config.get_connection_config().host == "db.internal"
        assert config.settings_store.table == "guard_options"
        assert config.preview.default_limit == 50
        assert "app_options" in config.get_core_tables()

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigurationError):
            SchemaGuardConfig.from_yaml(tmp_path / "missing.yaml")

    def test_invalid_yaml(self, config_file):
        with pytest.raises(ConfigurationError):
            SchemaGuardConfig.from_yaml(config_file("table_prefix: [unclosed\n"))

    def test_invalid_values(self, config_file):
        with pytest.raises(ConfigurationError):
            SchemaGuardConfig.from_yaml(config_file("operation_mode: sometimes\n"))

    def test_empty_file(self, config_file):
        assert SchemaGuardConfig.from_yaml(config_file("")).table_prefix == "wp_"

    def test_to_yaml(self, tmp_path):
        path = tmp_path / "out.yaml"
        SchemaGuardConfig(database_url="mysql://root@localhost/app", operation_mode="dry_run").to_yaml(path)

        data = yaml.safe_load(path.read_text())
        assert data["database_url"] == "mysql://root@localhost/app"
        assert data["operation_mode"] == "dry_run"
        assert "database" not in data

        assert SchemaGuardConfig.from_yaml(path).operation_mode == "dry_run"


class TestConfigureLogging:
    """Test logging setup."""

    @pytest.fixture(autouse=True)
    def restore_handlers(self):
        package_logger = logging.getLogger("schemaguard")
        saved = (list(package_logger.handlers), package_logger.level)
        yield
        for handler in list(package_logger.handlers):
            package_logger.removeHandler(handler)
            handler.close()
        for handler in saved[0]:
            package_logger.addHandler(handler)
        package_logger.setLevel(saved[1])

    def test_stream_handler(self):
        configure_logging(LoggingConfig(level="DEBUG"))
        package_logger = logging.getLogger("schemaguard")
        assert package_logger.level == logging.DEBUG
        assert len(package_logger.handlers) == 1

    def test_rotating_file(self, tmp_path):
        configure_logging(LoggingConfig(file=str(tmp_path / "logs" / "schemaguard.log")))
        handlers = logging.getLogger("schemaguard").handlers
        assert any(isinstance(h, logging.handlers.RotatingFileHandler) for h in handlers)
        assert (tmp_path / "logs").is_dir()

    def test_reconfigure_replaces_handlers(self):
        configure_logging(LoggingConfig())
        configure_logging(LoggingConfig())
        assert len(logging.getLogger("schemaguard").handlers) == 1
