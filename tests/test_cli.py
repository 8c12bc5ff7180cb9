"""
Tests for the command line interface against a local JSON store.
"""

import pendulum
import pytest
from rich.console import Console
from typer.testing import CliRunner

from slotbook.adapters.demo_data import DEMO_VENUE_ID
from slotbook.adapters.json_store import JsonBookingStore
from slotbook.cli.app import app

runner = CliRunner()


@pytest.fixture(autouse=True)
def wide_console(monkeypatch):
    monkeypatch.setattr("slotbook.cli.app.console", Console(width=200))


@pytest.fixture
def data_path(tmp_path):
    return tmp_path / "bookings.json"


@pytest.fixture
def config_file(tmp_path, data_path, monkeypatch):
    monkeypatch.delenv("SLOTBOOK_ADMIN_TOKEN", raising=False)
    path = tmp_path / "config.yaml"
    path.write_text(
        "log_level: WARNING\n"
        "storage:\n"
        "  backend: json\n"
        f"  json_path: {data_path.as_posix()}\n"
        "  seed_demo: true\n",
        encoding="utf-8",
    )
    return str(path)


@pytest.fixture
def monday():
    """A Monday far enough ahead that none of its windows has started."""
    return pendulum.now("America/New_York").next(pendulum.MONDAY).add(weeks=1).to_date_string()


def test_version():
    result = runner.invoke(app, ["version"])

    assert result.exit_code == 0
    assert "slotbook" in result.stdout


def test_init_db(config_file, data_path):
    result = runner.invoke(app, ["init-db", "--config", config_file])

    assert result.exit_code == 0
    assert "Store ready (json)" in result.stdout
    assert "Demo venue added" in result.stdout
    assert data_path.exists()


def test_venues(config_file):
    result = runner.invoke(app, ["venues", "--config", config_file])

    assert result.exit_code == 0
    assert "America/New_York" in result.stdout


def test_slots(config_file, monday):
    result = runner.invoke(app, ["slots", DEMO_VENUE_ID, "--date", monday, "--config", config_file])

    assert result.exit_code == 0
    assert "9 of 9 slot(s) available" in result.stdout
    assert "| 09:00 – 10:00" in result.stdout


def test_book_then_slots(config_file, monday):
    result = runner.invoke(
        app,
        [
            "book", DEMO_VENUE_ID,
            "--start", f"{monday} 10:00",
            "--name", "Jane Doe",
            "--email", "jane@example.com",
            "--config", config_file,
        ],
    )
    assert result.exit_code == 0
    assert "Booking received" in result.stdout

    result = runner.invoke(app, ["slots", DEMO_VENUE_ID, "--date", monday, "--config", config_file])
    assert "8 of 9 slot(s) available" in result.stdout


def test_set_status_and_stats(config_file, data_path, monday):
    runner.invoke(
        app,
        [
            "book", DEMO_VENUE_ID,
            "--start", f"{monday} 10:00",
            "--name", "Jane Doe",
            "--email", "jane@example.com",
            "--config", config_file,
        ],
    )
    with JsonBookingStore(data_path) as store:
        booking_id = store.list_bookings(DEMO_VENUE_ID)[0].id

    result = runner.invoke(
        app, ["set-status", DEMO_VENUE_ID, booking_id, "confirmed", "--config", config_file]
    )
    assert result.exit_code == 0
    assert "confirmed" in result.stdout

    result = runner.invoke(app, ["stats", DEMO_VENUE_ID, "--config", config_file])
    assert result.exit_code == 0
    assert "Total: 1" in result.stdout
    assert "Confirmed: 1" in result.stdout


def test_bookings_empty(config_file):
    result = runner.invoke(app, ["bookings", DEMO_VENUE_ID, "--config", config_file])

    assert result.exit_code == 0
    assert "No bookings found" in result.stdout


def test_unknown_venue_fails(config_file):
    result = runner.invoke(app, ["slots", "missing", "--config", config_file])

    assert result.exit_code == 1
    assert "Venue not found" in result.stdout


def test_invalid_date_fails(config_file):
    result = runner.invoke(app, ["slots", DEMO_VENUE_ID, "--date", "soon", "--config", config_file])

    assert result.exit_code == 1
    assert "Invalid date" in result.stdout


def test_missing_config_file_fails(tmp_path):
    result = runner.invoke(app, ["venues", "--config", str(tmp_path / "missing.yaml")])

    assert result.exit_code == 1
    assert "Config file not found" in result.stdout
