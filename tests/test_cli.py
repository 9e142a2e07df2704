from __future__ import annotations

# pylint: disable=redefined-outer-name

import json
from collections.abc import Callable
from pathlib import Path

import pytest
from openpyxl import load_workbook

from evledger.cli import main

Run = Callable[..., tuple[int, str, str]]


@pytest.fixture
def run(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> Run:
    def _run(*argv: str) -> tuple[int, str, str]:
        code = main(["--data-dir", str(tmp_path / "data"), *argv])
        captured = capsys.readouterr()
        return code, captured.out, captured.err

    return _run


@pytest.fixture
def logged_in(run: Run) -> Run:
    assert run("login", "--email", "me@example.com", "--password", "pw")[0] == 0
    return run


@pytest.fixture
def vehicle_id(logged_in: Run) -> str:
    code, out, _ = logged_in(
        "vehicle", "add",
        "--make", "Tesla", "--model", "Model 3", "--year", "2023",
        "--battery-kwh", "60", "--purchase-date", "2023-05-01",
    )
    assert code == 0
    return out.strip()


def _snapshot(tmp_path: Path) -> dict:
    return json.loads((tmp_path / "data" / "evCompanionState.json").read_text(encoding="utf-8"))


def test_commands_require_login(run: Run) -> None:
    code, _, err = run("stats")
    assert code == 1
    assert "Not logged in" in err


def test_login_with_blank_password_fails(run: Run) -> None:
    code, _, err = run("login", "--email", "me@example.com", "--password", " ")
    assert code == 1
    assert "required" in err


def test_logout_locks_again(logged_in: Run) -> None:
    assert logged_in("logout")[0] == 0
    assert logged_in("vehicle", "list")[0] == 1


def test_vehicle_add_and_list(logged_in: Run, vehicle_id: str, tmp_path: Path) -> None:
    code, out, _ = logged_in("vehicle", "list")

    assert code == 0
    assert vehicle_id in out
    assert "2023 Tesla Model 3" in out
    assert _snapshot(tmp_path)["evs"][0]["id"] == vehicle_id


def test_vehicle_add_rejects_invalid_input(logged_in: Run) -> None:
    code, _, err = logged_in(
        "vehicle", "add", "--make", "Kia", "--model", "EV6", "--year", "2022", "--battery-kwh", "-1"
    )
    assert code == 1
    assert "invalid input" in err


def test_vehicle_update(logged_in: Run, vehicle_id: str, tmp_path: Path) -> None:
    assert logged_in("vehicle", "update", vehicle_id, "--variant", "Long Range")[0] == 0
    assert _snapshot(tmp_path)["evs"][0]["variant"] == "Long Range"
    assert _snapshot(tmp_path)["evs"][0]["make"] == "Tesla"


def test_log_and_stats(logged_in: Run, vehicle_id: str, tmp_path: Path) -> None:
    code, _, _ = logged_in(
        "log", "charging", vehicle_id,
        "--start", "2024-03-01T08:00:00Z", "--end", "2024-03-01T10:00:00Z",
        "--start-soc", "20", "--end-soc", "80", "--cost", "10.50",
    )
    assert code == 0
    code, _, _ = logged_in(
        "log", "trip", vehicle_id, "--start", "2024-03-02T08:00:00Z",
        "--start-odometer", "100", "--end-odometer", "142",
    )
    assert code == 0

    code, out, _ = logged_in("stats")
    assert code == 0
    assert "Total spent ($):       10.50" in out
    assert "Charging sessions:     1" in out
    assert "Total distance (mi):   42" in out
    assert [log["type"] for log in _snapshot(tmp_path)["logs"]] == ["Charging", "Trip"]


def test_log_for_unknown_vehicle_fails(logged_in: Run) -> None:
    code, _, err = logged_in("log", "satisfaction", "ghost", "--rating", "5")
    assert code == 1
    assert "ghost" in err


def test_reversed_trip_refused(logged_in: Run, vehicle_id: str, tmp_path: Path) -> None:
    code, _, _ = logged_in("log", "trip", vehicle_id, "--start-odometer", "200", "--end-odometer", "150")
    assert code == 1
    assert _snapshot(tmp_path)["logs"] == []


def test_logbook_newest_first(logged_in: Run, vehicle_id: str) -> None:
    logged_in("log", "service", vehicle_id, "--date", "2024-01-01", "--odometer", "5000", "--description", "Tyres")
    logged_in("log", "fault", vehicle_id, "--date", "2024-02-01", "--odometer", "6000", "--description", "TPMS")

    code, out, _ = logged_in("logbook", vehicle_id)

    assert code == 0
    lines = out.splitlines()
    assert lines[0] == "Logbook for 2023 Tesla Model 3"
    assert "Fault" in lines[1]
    assert "Service" in lines[2]


def test_charts_gate(logged_in: Run, vehicle_id: str) -> None:
    logged_in("log", "satisfaction", vehicle_id, "--rating", "4")
    code, out, _ = logged_in("charts")
    assert code == 0
    assert "Not enough data" in out


def test_recommend_with_too_few_events(logged_in: Run, vehicle_id: str) -> None:
    code, _, err = logged_in("recommend")
    assert code == 1
    assert "at least 3" in err


def test_delete_vehicle_needs_confirmation(logged_in: Run, vehicle_id: str, tmp_path: Path) -> None:
    logged_in("log", "satisfaction", vehicle_id, "--rating", "4")

    assert logged_in("vehicle", "delete", vehicle_id)[0] == 1
    assert logged_in("vehicle", "delete", vehicle_id, "--yes")[0] == 0
    assert _snapshot(tmp_path) == {"version": 1, "evs": [], "logs": []}


def test_media_links(logged_in: Run, vehicle_id: str, tmp_path: Path) -> None:
    assert logged_in("vehicle", "media", "add-video", vehicle_id, "https://youtu.be/dQw4w9WgXcQ")[0] == 0
    videos = _snapshot(tmp_path)["evs"][0]["videos"]
    assert videos[0]["url"] == "https://youtu.be/dQw4w9WgXcQ"

    assert logged_in("vehicle", "media", "remove", vehicle_id, videos[0]["id"])[0] == 0
    assert "videos" not in _snapshot(tmp_path)["evs"][0] or _snapshot(tmp_path)["evs"][0]["videos"] == []


def test_export(logged_in: Run, vehicle_id: str, tmp_path: Path) -> None:
    target = tmp_path / "export.xlsx"

    code, out, _ = logged_in("export", str(target))

    assert code == 0
    assert str(target) in out
    assert load_workbook(target).sheetnames == ["My EV Details", "Logbook", "Analytics Summary"]


def test_reset(logged_in: Run, vehicle_id: str, tmp_path: Path) -> None:
    assert logged_in("reset")[0] == 1
    assert logged_in("reset", "--yes")[0] == 0
    assert _snapshot(tmp_path)["evs"] == []


def test_undecodable_snapshot_does_not_break_startup(logged_in: Run, tmp_path: Path) -> None:
    (tmp_path / "data" / "evCompanionState.json").write_bytes(b'{"evs": [\xff\xfe], "logs": []}')

    code, out, _ = logged_in("stats")

    assert code == 0
    assert "Vehicles:              0" in out
    assert (tmp_path / "data" / "evCompanionState.corrupt.json").exists()
