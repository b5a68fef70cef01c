"""
Tests for the CLI interface.
"""
import os
from unittest.mock import patch

import pytest
import yaml
from typer.testing import CliRunner

from fitsee_dashboard.cli.main import app, EXIT_CODE_OK, EXIT_CODE_FAIL
from fitsee_dashboard.demo.seed_demo_data import seed_demo_data
from fitsee_dashboard.storage.repository import DashboardRepository

runner = CliRunner()


@pytest.fixture
def demo_db(tmp_path):
    """Seeded demo database."""
    db_path = str(tmp_path / "demo.db")
    seed_demo_data(db_path)
    return db_path


@pytest.fixture
def mock_repository(demo_db):
    """Point the CLI at the demo database instead of the shared repository."""
    with patch('fitsee_dashboard.cli.main.get_repository') as mock_repo:
        mock_repo.return_value = DashboardRepository(demo_db)
        yield mock_repo


class TestCLI:
    """Test CLI commands."""

    def test_no_command_prints_hint(self):
        result = runner.invoke(app, [])
        assert result.exit_code == EXIT_CODE_OK
        assert "Fitsee Dashboard" in result.output

    def test_summary_shows_totals(self, mock_repository):
        result = runner.invoke(app, ["summary"])

        assert result.exit_code == EXIT_CODE_OK
        assert "Total shops: 4" in result.output
        assert "Active shops: 3" in result.output
        assert "Shops with plans: 3" in result.output
        assert "Total revenue: $" in result.output

    def test_summary_with_date_filter(self, mock_repository):
        result = runner.invoke(app, ["summary", "--date-filter", "7days"])

        assert result.exit_code == EXIT_CODE_OK
        assert "(7days)" in result.output
        assert "Total shops: 2" in result.output

    def test_summary_reads_config(self, demo_db, tmp_path):
        config_path = tmp_path / "config.yaml"
        config_path.write_text(yaml.dump({"database": {"path": demo_db}}))

        with patch('fitsee_dashboard.cli.main.get_repository') as mock_repo:
            mock_repo.return_value = DashboardRepository(demo_db)
            result = runner.invoke(app, ["summary", "--config", str(config_path)])

        assert result.exit_code == EXIT_CODE_OK
        mock_repo.assert_called_once_with(demo_db)

    def test_summary_without_tables_fails(self, tmp_path):
        with patch('fitsee_dashboard.cli.main.get_repository') as mock_repo:
            mock_repo.return_value = DashboardRepository(str(tmp_path / "empty.db"))
            result = runner.invoke(app, ["summary"])

        assert result.exit_code == EXIT_CODE_FAIL
        assert "init-demo" in result.output

    def test_summary_missing_config_fails(self, tmp_path):
        result = runner.invoke(app, ["summary", "--config", str(tmp_path / "missing.yaml")])
        assert result.exit_code == EXIT_CODE_FAIL
        assert "not found" in result.output

    def test_init_demo_creates_database(self, tmp_path):
        db_path = str(tmp_path / "fresh.db")
        result = runner.invoke(app, ["init-demo", "--db", db_path])

        assert result.exit_code == EXIT_CODE_OK
        assert os.path.exists(db_path)
        assert DashboardRepository(db_path).count_shops() == 4

    def test_init_demo_twice_keeps_existing_shops(self, tmp_path):
        db_path = str(tmp_path / "fresh.db")
        runner.invoke(app, ["init-demo", "--db", db_path])
        result = runner.invoke(app, ["init-demo", "--db", db_path])

        assert result.exit_code == EXIT_CODE_OK
        assert "already has shops" in result.output
        assert DashboardRepository(db_path).count_shops() == 4

    def test_serve_runs_uvicorn(self):
        with patch('fitsee_dashboard.cli.main.uvicorn.run') as mock_run:
            result = runner.invoke(app, ["serve", "--host", "0.0.0.0", "--port", "9100"])

        assert result.exit_code == EXIT_CODE_OK
        mock_run.assert_called_once()
        _, kwargs = mock_run.call_args
        assert kwargs["host"] == "0.0.0.0"
        assert kwargs["port"] == 9100
        assert kwargs["log_level"] == "info"
