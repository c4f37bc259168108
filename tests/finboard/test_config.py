# ruff: noqa: S101,S106
"""Tests for the settings layer."""

import os
from decimal import Decimal
from pathlib import Path
from zoneinfo import ZoneInfo

import pytest
from pydantic import ValidationError

from finboard.config import (
    DatabaseConfig,
    FinboardSettings,
    PlaidConfig,
    RollupConfig,
    get_settings,
    reload_settings,
)


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> Path:
    """Run in an empty directory with no Finboard or Plaid variables set."""
    for name in list(os.environ):
        if name.startswith(("FINBOARD_", "PLAID_")):
            monkeypatch.delenv(name)
    monkeypatch.chdir(tmp_path)
    return tmp_path


class TestDefaults:
    @pytest.mark.unit
    def test_default_sections(self) -> None:
        settings = FinboardSettings()

        assert settings.database.path == Path("data/duckdb/finboard.duckdb")
        assert settings.plaid.environment == "sandbox"
        assert settings.plaid.request_timeout == 30.0
        assert settings.email.is_configured is False
        assert settings.rollup.change_threshold == Decimal("0.01")
        assert settings.rollup.tzinfo == ZoneInfo("UTC")
        assert settings.port == 8000

    @pytest.mark.unit
    def test_settings_are_frozen(self) -> None:
        settings = FinboardSettings()
        with pytest.raises(ValidationError):
            settings.port = 9000  # type: ignore[misc]


class TestEnvironmentVariables:
    @pytest.mark.unit
    def test_nested_variables(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("FINBOARD_EMAIL__HOST", "smtp.example.com")
        monkeypatch.setenv("FINBOARD_EMAIL__SENDER", "me@example.com")
        monkeypatch.setenv("FINBOARD_EMAIL__RECIPIENT", "me@example.com")
        monkeypatch.setenv("FINBOARD_ROLLUP__TIMEZONE", "America/Chicago")
        monkeypatch.setenv("FINBOARD_ROLLUP__CHANGE_THRESHOLD", "0.50")
        monkeypatch.setenv("FINBOARD_PORT", "9001")

        settings = FinboardSettings()

        assert settings.email.is_configured is True
        assert settings.rollup.timezone == "America/Chicago"
        assert settings.rollup.change_threshold == Decimal("0.50")
        assert settings.port == 9001

    @pytest.mark.unit
    def test_legacy_plaid_variables(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("PLAID_CLIENT_ID", "legacy-id")
        monkeypatch.setenv("PLAID_SECRET", "legacy-secret")
        monkeypatch.setenv("PLAID_ENV", "production")

        settings = FinboardSettings()

        assert settings.plaid.client_id == "legacy-id"
        assert settings.plaid.secret == "legacy-secret"
        assert settings.plaid.environment == "production"
        settings.validate_required_credentials()

    @pytest.mark.unit
    def test_dotenv_file(self, isolated_env: Path) -> None:
        (isolated_env / ".env").write_text("FINBOARD_PORT=9100\n")
        assert FinboardSettings().port == 9100

    @pytest.mark.unit
    def test_unrelated_variables_are_ignored(
        self, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("DEBUG", "1")
        monkeypatch.setenv("FINBOARD_ENVIRONMENT", "production")

        settings = FinboardSettings()

        assert not hasattr(settings, "environment")
        assert not hasattr(settings, "debug")


class TestValidation:
    @pytest.mark.unit
    def test_missing_plaid_credentials(self) -> None:
        with pytest.raises(ValueError, match="PLAID_CLIENT_ID is required"):
            FinboardSettings().validate_required_credentials()

    @pytest.mark.unit
    def test_unknown_timezone(self) -> None:
        with pytest.raises(ValidationError, match="Unknown timezone"):
            RollupConfig(timezone="Mars/Olympus_Mons")

    @pytest.mark.unit
    def test_negative_threshold(self) -> None:
        with pytest.raises(ValidationError):
            RollupConfig(change_threshold=Decimal("-1"))

    @pytest.mark.unit
    @pytest.mark.parametrize("path", ["data/finboard.duckdb", "x.db", ":memory:"])
    def test_database_paths(self, path: str) -> None:
        assert str(DatabaseConfig(path=Path(path)).path) == path

    @pytest.mark.unit
    def test_database_path_extension(self) -> None:
        with pytest.raises(ValidationError, match=".db or .duckdb"):
            DatabaseConfig(path=Path("data/finboard.sqlite"))

    @pytest.mark.unit
    def test_plaid_timeout_must_be_positive(self) -> None:
        with pytest.raises(ValidationError):
            PlaidConfig(client_id="id", secret="s", request_timeout=0)


class TestGetSettings:
    @pytest.mark.unit
    def test_cached_and_creates_directories(
        self, monkeypatch: pytest.MonkeyPatch, isolated_env: Path
    ) -> None:
        monkeypatch.setenv(
            "FINBOARD_DATABASE__PATH", str(isolated_env / "db" / "finboard.duckdb")
        )

        settings = get_settings()

        assert get_settings() is settings
        assert (isolated_env / "db").is_dir()
        assert not (isolated_env / "logs").exists()

    @pytest.mark.unit
    def test_log_directory_created_only_for_file_logging(
        self, monkeypatch: pytest.MonkeyPatch, isolated_env: Path
    ) -> None:
        monkeypatch.setenv("FINBOARD_LOGGING__LOG_TO_FILE", "true")
        monkeypatch.setenv(
            "FINBOARD_LOGGING__LOG_FILE_PATH", str(isolated_env / "var" / "fb.log")
        )

        get_settings()

        assert (isolated_env / "var").is_dir()

    @pytest.mark.unit
    def test_reload_reads_environment_again(
        self, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        first = get_settings()
        monkeypatch.setenv("FINBOARD_PORT", "8123")

        second = reload_settings()

        assert second is not first
        assert second.port == 8123

    @pytest.mark.unit
    def test_invalid_configuration_is_a_value_error(
        self, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("FINBOARD_ROLLUP__TIMEZONE", "Nowhere/Special")
        with pytest.raises(ValueError, match="Configuration error"):
            get_settings()
