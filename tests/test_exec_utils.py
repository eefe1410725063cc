"""!
@brief Exec utils behaviour tests.
@details Validates environment sanitisation, dry-run flows, timeouts, and
subprocess logging behaviour for :mod:`office_autoinstall.exec_utils`.
"""

from __future__ import annotations

import subprocess
import sys
from pathlib import Path
from types import SimpleNamespace
from typing import Dict, List

import pytest

PROJECT_ROOT = Path(__file__).resolve().parents[1]
SRC_PATH = PROJECT_ROOT / "src"
if str(SRC_PATH) not in sys.path:
    sys.path.insert(0, str(SRC_PATH))

from office_autoinstall import exec_utils  # noqa: E402


class _StubLogger:
    """!
    @brief Lightweight logger capturing structured log calls.
    """

    def __init__(self) -> None:
        self.records: List[tuple[str, str, Dict[str, object]]] = []

    def _record(self, level: str, message: str, args: tuple[object, ...], kwargs: Dict[str, object]) -> None:
        text = message % args if args else message
        self.records.append((level, text, dict(kwargs)))

    def info(self, message: str, *args: object, **kwargs: object) -> None:  # noqa: D401 - logging compatibility
        self._record("info", message, args, kwargs)

    def warning(self, message: str, *args: object, **kwargs: object) -> None:  # noqa: D401 - logging compatibility
        self._record("warning", message, args, kwargs)

    def error(self, message: str, *args: object, **kwargs: object) -> None:  # noqa: D401 - logging compatibility
        self._record("error", message, args, kwargs)

    def events(self) -> List[str]:
        return [kwargs["extra"]["event"] for _, _, kwargs in self.records if "extra" in kwargs]


@pytest.fixture
def loggers(monkeypatch) -> tuple[_StubLogger, _StubLogger]:
    human = _StubLogger()
    machine = _StubLogger()
    monkeypatch.setattr(exec_utils.logging_ext, "get_human_logger", lambda: human)
    monkeypatch.setattr(exec_utils.logging_ext, "get_machine_logger", lambda: machine)
    yield human, machine
    exec_utils.set_global_timeout(None)


def test_sanitize_environment_strips_blocklist() -> None:
    """!
    @brief Ensure sanitisation removes Python-specific variables without touching the source.
    """

    base_env = {"PYTHONPATH": "should_remove", "KEEP": "1", "LANG": "C", "VIRTUAL_ENV": "venv"}

    sanitized = exec_utils.sanitize_environment(base_env)

    assert sanitized == {"KEEP": "1", "LANG": "C"}
    assert base_env["PYTHONPATH"] == "should_remove"


def test_dry_run_does_not_spawn(monkeypatch, loggers) -> None:
    human, machine = loggers
    monkeypatch.setattr(
        exec_utils.subprocess, "run", lambda *a, **k: pytest.fail("subprocess.run must not be called")
    )

    result = exec_utils.run_command(["setup.exe", "/configure", "cfg.xml"], event="odt_configure", dry_run=True)

    assert result.skipped is True
    assert result.returncode == 0
    assert machine.events() == ["odt_configure_plan", "odt_configure_dry_run"]
    assert any("[dry-run] would execute" in text for _, text, _ in human.records)


def test_successful_command_records_result(monkeypatch, loggers) -> None:
    _, machine = loggers
    captured = {}

    def fake_run(command, **kwargs):
        captured.update(kwargs)
        captured["command"] = command
        return SimpleNamespace(returncode=0, stdout="ok", stderr="")

    monkeypatch.setattr(exec_utils.subprocess, "run", fake_run)

    result = exec_utils.run_command(["tool.exe", "/quiet"], event="odt_extract", timeout=30)

    assert result.ok
    assert result.stdout == "ok"
    assert captured["command"] == ["tool.exe", "/quiet"]
    assert captured["timeout"] == 30
    assert captured["check"] is False
    assert "PYTHONPATH" not in captured["env"]
    assert machine.events() == ["odt_extract_plan", "odt_extract_result"]
    result_extra = machine.records[-1][2]["extra"]
    assert result_extra["return_code"] == 0


def test_nonzero_exit_is_reported_not_raised(monkeypatch, loggers) -> None:
    human, _ = loggers
    monkeypatch.setattr(
        exec_utils.subprocess,
        "run",
        lambda command, **kwargs: SimpleNamespace(returncode=30088, stdout="", stderr="boom"),
    )

    result = exec_utils.run_command(["setup.exe"], event="odt_configure")

    assert result.returncode == 30088
    assert not result.ok
    assert any(level == "warning" for level, _, _ in human.records)


def test_missing_executable_returns_127(monkeypatch, loggers) -> None:
    _, machine = loggers

    def fake_run(command, **kwargs):
        raise FileNotFoundError(command[0])

    monkeypatch.setattr(exec_utils.subprocess, "run", fake_run)

    result = exec_utils.run_command(["missing.exe"], event="odt_extract")

    assert result.returncode == 127
    assert result.error
    assert machine.events()[-1] == "odt_extract_missing"


def test_timeout_marks_result(monkeypatch, loggers) -> None:
    _, machine = loggers

    def fake_run(command, **kwargs):
        raise subprocess.TimeoutExpired(command, kwargs["timeout"])

    monkeypatch.setattr(exec_utils.subprocess, "run", fake_run)

    result = exec_utils.run_command(["setup.exe"], event="odt_configure", timeout=5)

    assert result.timed_out is True
    assert not result.ok
    assert machine.events()[-1] == "odt_configure_timeout"


def test_global_timeout_caps_requested(monkeypatch, loggers) -> None:
    """!
    @brief ``--timeout`` lowers, but never raises, per-call timeouts.
    """

    seen: list[object] = []

    def fake_run(command, **kwargs):
        seen.append(kwargs["timeout"])
        return SimpleNamespace(returncode=0, stdout="", stderr="")

    monkeypatch.setattr(exec_utils.subprocess, "run", fake_run)
    exec_utils.set_global_timeout(10)

    exec_utils.run_command(["a"], event="x", timeout=300)
    exec_utils.run_command(["a"], event="x", timeout=3)
    exec_utils.run_command(["a"], event="x")

    assert seen == [10.0, 3, 10.0]


def test_hidden_flag_applies_window_options(monkeypatch, loggers) -> None:
    captured = {}

    def fake_run(command, **kwargs):
        captured.update(kwargs)
        return SimpleNamespace(returncode=0, stdout="", stderr="")

    monkeypatch.setattr(exec_utils, "_hidden_window_options", lambda: {"creationflags": 0x08000000})
    monkeypatch.setattr(exec_utils.subprocess, "run", fake_run)

    exec_utils.run_command(["setup.exe"], event="odt_configure", hidden=True)

    assert captured["creationflags"] == 0x08000000
