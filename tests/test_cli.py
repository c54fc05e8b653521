"""
Tests for the command line interface.
"""

import pytest
from typer.testing import CliRunner

from bookingslots import __version__
from bookingslots.cli.app import app

runner = CliRunner()


@pytest.fixture(autouse=True)
def isolated_cwd(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("SUPABASE_URL", raising=False)
    monkeypatch.delenv("SUPABASE_SERVICE_ROLE_KEY", raising=False)


def test_version():
    result = runner.invoke(app, ["version"])

    assert result.exit_code == 0
    assert __version__ in result.output


def test_hours_from_mock_data():
    result = runner.invoke(app, ["hours", "b-luna-salon", "--mock"])

    assert result.exit_code == 0
    assert "Luna Hair Studio" in result.output
    assert "Monday: 9:00 AM – 7:00 PM" in result.output
    assert "Sunday: Closed" in result.output


def test_unknown_business_exits_with_error():
    result = runner.invoke(app, ["hours", "nope", "--mock"])

    assert result.exit_code == 1
    assert "Business not found" in result.output


def test_check_past_slot():
    result = runner.invoke(app, ["check", "b-luna-salon", "s-cut", "2024-11-25 10:00", "--mock"])

    assert result.exit_code == 1
    assert "Slot is in the past" in result.output


def test_missing_supabase_settings_is_setup_problem():
    result = runner.invoke(app, ["hours", "b-luna-salon"])

    assert result.exit_code == 1
    assert "Setup problem" in result.output


def test_businesses_from_config(tmp_path):
    config = tmp_path / "aliases.yaml"
    config.write_text("businesses:\n  - name: salon\n    id: b-luna-salon\n", encoding="utf-8")

    result = runner.invoke(app, ["businesses", "--config", str(config)])

    assert result.exit_code == 0
    assert "salon" in result.output
    assert "b-luna-salon" in result.output
