"""Tests for the admin CLI."""

import pytest
from click.testing import CliRunner

from bookingpro import cli as cli_module
from bookingpro.services import company_service


@pytest.fixture
def runner(monkeypatch, session_factory):
    monkeypatch.setattr(cli_module, "SessionLocal", session_factory)
    return CliRunner()


class TestCreateCompany:

    def test_creates_company(self, runner, db):
        result = runner.invoke(
            cli_module.cli,
            ["create-company", "--name", "Top Roofing", "--days", "1,2,3,4,5,6",
             "--start", "08:00", "--end", "12:00", "--slot-minutes", "60"],
        )
        assert result.exit_code == 0, result.output
        assert "✓ Created company: Top Roofing" in result.output
        assert "Slots per day: 4" in result.output

        company = company_service.get_company_by_name(db, "Top Roofing")
        assert company.available_days == [1, 2, 3, 4, 5, 6]

    def test_duplicate_name(self, runner, company):
        result = runner.invoke(cli_module.cli, ["create-company", "--name", "Acme Roofing"])
        assert result.exit_code == 1
        assert "already exists" in result.output

    def test_invalid_schedule(self, runner):
        result = runner.invoke(
            cli_module.cli,
            ["create-company", "--name", "Night Owl", "--start", "18:00", "--end", "09:00"],
        )
        assert result.exit_code == 1
        assert "❌" in result.output


class TestReports:

    def test_cleanup_leads(self, runner):
        result = runner.invoke(cli_module.cli, ["cleanup-leads"])
        assert result.exit_code == 0
        assert "Deleted 0 expired leads" in result.output

    def test_conversion_stats(self, runner):
        result = runner.invoke(cli_module.cli, ["conversion-stats", "--days", "7"])
        assert result.exit_code == 0
        assert "Conversion rate: 0" in result.output
