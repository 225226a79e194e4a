from __future__ import annotations

from pathlib import Path
from typing import Any, Dict

import pytest
from typer.testing import CliRunner

from cli.app import app


class StubClient:
    def __init__(self, config) -> None:
        self.config = config
        self.readings_payload: Dict[str, Any] = {
            "telegrams_processed": 3,
            "readings": [
                {"name": "energy-consumed", "discriminator": "1", "value": 123.456},
                {"name": "active-tariff", "discriminator": None, "value": 2.0},
            ],
        }
        self.status_payload: Dict[str, Any] = {
            "source": "/dev/ttyUSB0",
            "policy": "log",
            "running": True,
            "telegrams": 3,
            "routed": 24,
            "skipped": 33,
            "parse_errors": 1,
            "unrecognized": 0,
            "discontinuities": 0,
            "failure": None,
        }
        self.closed = False

    def get_readings(self) -> Dict[str, Any]:
        return self.readings_payload

    def get_status(self) -> Dict[str, Any]:
        return self.status_payload

    def close(self) -> None:
        self.closed = True


@pytest.fixture()
def runner(monkeypatch) -> CliRunner:
    monkeypatch.setattr("cli.app.configure_logging", lambda *args, **kwargs: None)
    return CliRunner()


def _install_stub(monkeypatch, stub: StubClient) -> None:
    def factory(config):
        stub.config = config
        return stub

    monkeypatch.setattr("cli.app.ApiClient", factory)


def test_decode_prints_readings(runner: CliRunner, telegram_file: Path) -> None:
    result = runner.invoke(app, ["decode", str(telegram_file)])

    assert result.exit_code == 0, result.output
    assert "telegrams_processed: 1" in result.stdout
    assert "energy-consumed[1]: 123456.789" in result.stdout
    assert "gas-consumed: 12785.123" in result.stdout
    assert "skipped: 11" in result.stdout


def test_decode_fatal_unrecognized_exits_non_zero(runner: CliRunner, tmp_path: Path) -> None:
    path = tmp_path / "unknown.txt"
    path.write_text("/ISK5\n9-9:9.9.9(1)\n!\n")

    lenient = runner.invoke(app, ["decode", str(path)])
    strict = runner.invoke(app, ["decode", str(path), "--fatal-unrecognized"])

    assert lenient.exit_code == 0
    assert "unrecognized: 1" in lenient.stdout
    assert strict.exit_code == 1


def test_readings_command(monkeypatch, runner: CliRunner) -> None:
    stub = StubClient(config=None)
    _install_stub(monkeypatch, stub)

    result = runner.invoke(app, ["--base-url", "http://meter:2112/", "readings"])

    assert result.exit_code == 0
    assert "energy-consumed[1]: 123.456" in result.stdout
    assert "active-tariff: 2.0" in result.stdout
    assert stub.config.base_url == "http://meter:2112"
    assert stub.closed is True


def test_status_command(monkeypatch, runner: CliRunner) -> None:
    stub = StubClient(config=None)
    stub.status_payload["failure"] = "Serial device /dev/ttyUSB0 closed the stream."
    _install_stub(monkeypatch, stub)

    result = runner.invoke(app, ["status"])

    assert result.exit_code == 0
    assert "parse_errors: 1" in result.stdout
    assert "failure: Serial device /dev/ttyUSB0 closed the stream." in result.stdout
    assert stub.closed is True


def test_serve_runs_uvicorn_with_configured_listener(monkeypatch, runner: CliRunner) -> None:
    calls: list[tuple[str, dict]] = []
    monkeypatch.setattr("cli.app.uvicorn.run", lambda target, **kwargs: calls.append((target, kwargs)))

    result = runner.invoke(app, ["serve", "--port", "9100"])

    assert result.exit_code == 0, result.output
    [(target, kwargs)] = calls
    assert target == "app.main:app"
    assert kwargs["port"] == 9100
    assert kwargs["host"] == "0.0.0.0"
    assert kwargs["log_config"]["version"] == 1
