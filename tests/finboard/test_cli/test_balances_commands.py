# ruff: noqa: S101,S106
"""Tests for the balances command group."""

from datetime import date
from decimal import Decimal
from pathlib import Path
from typing import Any
from unittest.mock import MagicMock

import polars as pl
import pytest
from typer.testing import CliRunner

from finboard.cli.commands.balances import history_frame
from finboard.cli.main import app
from finboard.connectors.plaid_schemas import AccountSchema
from finboard.models import DatedRollup
from finboard.storage.store import BalanceStore


@pytest.fixture
def mock_provider(mocker: Any) -> MagicMock:
    """Replace the Plaid client built by the refresh command."""
    provider = MagicMock()
    provider.get_accounts.return_value = [
        AccountSchema.model_validate(
            {
                "account_id": "plaid-checking",
                "name": "Checking",
                "type": "depository",
                "balances": {"current": "1200.00"},
            }
        )
    ]
    mocker.patch(
        "finboard.cli.commands.balances.build_plaid_client", return_value=provider
    )
    return provider


class TestRefreshCommand:
    @pytest.mark.unit
    def test_refresh_records_changes(
        self, runner: CliRunner, seeded_db: Path, mock_provider: MagicMock
    ) -> None:
        result = runner.invoke(app, ["balances", "refresh"])

        assert result.exit_code == 0, result.output
        assert "Checking (First Platypus Bank): $1,000.00 -> $1,200.00" in result.stdout
        assert "Found 1 changes totaling $200.00." in result.stdout

        with BalanceStore(seeded_db) as store:
            assert store.get_table_counts()["balance_snapshots"] == 3

    @pytest.mark.unit
    def test_no_email_skips_notifier(
        self,
        runner: CliRunner,
        seeded_db: Path,
        mock_provider: MagicMock,
        mocker: Any,
    ) -> None:
        build_notifier = mocker.patch("finboard.cli.commands.balances.build_notifier")

        result = runner.invoke(app, ["balances", "refresh", "--no-email"])

        assert result.exit_code == 0, result.output
        build_notifier.assert_not_called()

    @pytest.mark.unit
    def test_refresh_requires_plaid_credentials(
        self,
        runner: CliRunner,
        db_path: Path,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        monkeypatch.delenv("PLAID_CLIENT_ID")
        monkeypatch.delenv("PLAID_SECRET")

        result = runner.invoke(app, ["balances", "refresh"])

        assert result.exit_code == 1


class TestAccountsCommand:
    @pytest.mark.unit
    def test_lists_accounts_and_totals(
        self, runner: CliRunner, seeded_db: Path
    ) -> None:
        result = runner.invoke(app, ["balances", "accounts"])

        assert result.exit_code == 0, result.output
        assert (
            "First Platypus Bank | Checking ****0000 | depository | $1,000.00"
            in result.stdout
        )
        assert "Visa | credit | -$200.00" in result.stdout
        assert (
            "Assets $1,000.00 | Liabilities $200.00 | Net worth $800.00"
            in result.stdout
        )

    @pytest.mark.unit
    def test_empty_database(self, runner: CliRunner, db_path: Path) -> None:
        result = runner.invoke(app, ["balances", "accounts"])

        assert result.exit_code == 0, result.output
        assert "Net worth" not in result.stdout


class TestHistoryCommand:
    @pytest.mark.unit
    def test_prints_daily_totals(self, runner: CliRunner, seeded_db: Path) -> None:
        result = runner.invoke(app, ["balances", "history"])

        assert result.exit_code == 0, result.output
        assert "net worth $800.00" in result.stdout

    @pytest.mark.unit
    @pytest.mark.parametrize("suffix", [".csv", ".parquet"])
    def test_exports_file(
        self, runner: CliRunner, seeded_db: Path, tmp_path: Path, suffix: str
    ) -> None:
        output = tmp_path / f"history{suffix}"

        result = runner.invoke(app, ["balances", "history", "--output", str(output)])

        assert result.exit_code == 0, result.output
        df = pl.read_csv(output) if suffix == ".csv" else pl.read_parquet(output)
        assert df.columns == ["date", "total_assets", "total_liabilities", "net_worth"]
        assert df.height == 1
        assert df["net_worth"][0] == 800.0

    @pytest.mark.unit
    def test_rejects_unknown_format(
        self, runner: CliRunner, seeded_db: Path, tmp_path: Path
    ) -> None:
        output = tmp_path / "history.xlsx"

        result = runner.invoke(app, ["balances", "history", "-o", str(output)])

        assert result.exit_code == 1
        assert not output.exists()


class TestHistoryFrame:
    @pytest.mark.unit
    def test_schema(self) -> None:
        df = history_frame(
            [
                DatedRollup(
                    date=date(2025, 6, 1),
                    total_assets=Decimal("10.5"),
                    total_liabilities=Decimal("2"),
                    net_worth=Decimal("8.5"),
                )
            ]
        )
        assert df.schema["date"] == pl.Date
        assert df.row(0) == (date(2025, 6, 1), 10.5, 2.0, 8.5)

    @pytest.mark.unit
    def test_empty(self) -> None:
        assert history_frame([]).height == 0
