"""Tests for the run_simulation command-line script."""

import importlib.util
import json
import sys
from pathlib import Path

import pytest
import requests

SCRIPT_PATH = Path(__file__).parent.parent.parent / "scripts" / "run_simulation.py"


def _load_script():
    spec = importlib.util.spec_from_file_location("run_simulation", SCRIPT_PATH)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


class FakeResponse:
    def __init__(self, payload, status_code=200):
        self._payload = payload
        self.status_code = status_code

    def json(self):
        return self._payload

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.exceptions.HTTPError(f"{self.status_code} error")


SUMMARY = {"route_type": "URBAN", "data_points_collected": 60, "potential_reward": 0.66}


@pytest.fixture
def script(monkeypatch):
    module = _load_script()
    monkeypatch.setattr(module.time, "sleep", lambda s: None)
    return module


def _fake_api(monkeypatch, module, start_payload=None, statuses=None):
    calls = []
    statuses = list(statuses or [{"is_active": False}])

    def fake_post(url, json=None):
        calls.append(("POST", url, json))
        return FakeResponse(start_payload or {"success": True, "message": "Started a Urban City Drive simulation for 1 minutes"})

    def fake_get(url):
        calls.append(("GET", url, None))
        if url.endswith("/simulations/status"):
            return FakeResponse(statuses.pop(0))
        if url.endswith("/simulations"):
            return FakeResponse({"simulations": [{"simulation_id": "abc"}]})
        if url.endswith("/simulations/abc"):
            return FakeResponse({"simulation_id": "abc", "summary": SUMMARY})
        return FakeResponse({}, status_code=404)

    monkeypatch.setattr(module.requests, "post", fake_post)
    monkeypatch.setattr(module.requests, "get", fake_get)
    return calls


def test_prints_summary(script, monkeypatch, capsys):
    running = {"is_active": True, "data_points": 30, "progress": 2, "average_speed": 31.5}
    calls = _fake_api(monkeypatch, script, statuses=[running, {"is_active": False}])
    monkeypatch.setattr(sys, "argv", ["run_simulation.py", "--route", "URBAN", "--minutes", "1"])

    script.main()

    out = capsys.readouterr().out
    assert "Started a Urban City Drive simulation" in out
    assert "30 points, 2%" in out
    assert json.loads(out[out.index("{"):]) == SUMMARY
    assert calls[0] == ("POST", "http://localhost:8000/simulations",
                        {"route_type": "URBAN", "duration_minutes": 1.0})


def test_writes_summary_file(script, monkeypatch, tmp_path, capsys):
    _fake_api(monkeypatch, script)
    out_file = tmp_path / "summary.json"
    monkeypatch.setattr(sys, "argv", ["run_simulation.py", "--out", str(out_file),
                                      "--base-url", "http://api.test/"])

    script.main()

    assert json.loads(out_file.read_text(encoding="utf-8")) == SUMMARY
    assert "Summary saved to" in capsys.readouterr().out


def test_start_failure_exits(script, monkeypatch, capsys):
    _fake_api(monkeypatch, script, start_payload={"success": False, "message": "A simulation is already running."})
    monkeypatch.setattr(sys, "argv", ["run_simulation.py"])

    with pytest.raises(SystemExit) as excinfo:
        script.main()

    assert excinfo.value.code == 1
    assert "already running" in capsys.readouterr().err


def test_connection_error_exits(script, monkeypatch, capsys):
    def refuse(url, json=None):
        raise requests.exceptions.ConnectionError("connection refused")

    monkeypatch.setattr(script.requests, "post", refuse)
    monkeypatch.setattr(sys, "argv", ["run_simulation.py"])

    with pytest.raises(SystemExit):
        script.main()

    assert "Error making API request" in capsys.readouterr().err
