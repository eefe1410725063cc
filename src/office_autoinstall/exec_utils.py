"""!
@brief Subprocess execution helpers with sanitised environments.
@details Every external program the installer starts (the ODT extractor,
``setup.exe``, PowerShell) goes through :func:`run_command` so telemetry,
dry-run handling, timeouts, and window visibility stay uniform. The child
environment is stripped of virtualenv/PyInstaller variables that otherwise
leak into vendor tools when the installer runs as a frozen bundle.
"""
from __future__ import annotations

import os
import subprocess
import time
from collections.abc import Mapping, MutableMapping, Sequence
from dataclasses import dataclass
from typing import Any

from . import logging_ext

_SANITIZE_BLOCKLIST = {
    "PYTHONPATH",
    "PYTHONHOME",
    "PYTHONWARNINGS",
    "VIRTUAL_ENV",
    "PIP_REQUIRE_VIRTUALENV",
    "CONDA_PREFIX",
    "CONDA_DEFAULT_ENV",
    "PYENV_VERSION",
    "POETRY_ACTIVE",
    "__PYVENV_LAUNCHER__",
}

_STARTF_USESHOWWINDOW = 0x00000001
_SW_HIDE = 0
_CREATE_NO_WINDOW = 0x08000000


@dataclass
class CommandResult:
    """!
    @brief Outcome information from :func:`run_command`.
    @details ``skipped`` is ``True`` for dry-run invocations, ``timed_out`` when
    the timeout elapsed, and ``error`` carries the OS error text when the
    process could not be started at all.
    """

    command: Sequence[str]
    returncode: int
    stdout: str
    stderr: str
    duration: float
    skipped: bool = False
    timed_out: bool = False
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.returncode == 0 and not self.timed_out and self.error is None


_GLOBAL_TIMEOUT: float | None = None


def set_global_timeout(timeout_seconds: float | int | None) -> None:
    """!
    @brief Apply a global timeout cap for all subprocess calls.
    @details Backs the CLI ``--timeout`` flag; non-positive or unparsable
    values clear the cap.
    """

    global _GLOBAL_TIMEOUT
    if timeout_seconds is None:
        _GLOBAL_TIMEOUT = None
        return
    try:
        parsed = float(timeout_seconds)
    except (TypeError, ValueError):
        _GLOBAL_TIMEOUT = None
    else:
        _GLOBAL_TIMEOUT = parsed if parsed > 0 else None


def _resolve_timeout(requested: float | int | None) -> float | int | None:
    if _GLOBAL_TIMEOUT is None:
        return requested
    if requested is None:
        return _GLOBAL_TIMEOUT
    return min(_GLOBAL_TIMEOUT, requested)


def sanitize_environment(base_env: Mapping[str, str] | None = None) -> MutableMapping[str, str]:
    """!
    @brief Produce a subprocess environment stripped of virtualenv artefacts.
    @param base_env Source mapping copied prior to sanitisation; defaults to
    :data:`os.environ`.
    """

    source = os.environ if base_env is None else base_env
    environment: MutableMapping[str, str] = {
        str(k): str(v) for k, v in source.items() if v is not None
    }
    for key in _SANITIZE_BLOCKLIST:
        environment.pop(key, None)
    return environment


def _hidden_window_options() -> dict[str, Any]:
    """!
    @brief ``subprocess`` keyword arguments that keep a child window hidden.
    """

    startupinfo_cls = getattr(subprocess, "STARTUPINFO", None)
    if os.name != "nt" or startupinfo_cls is None:
        return {}
    startupinfo = startupinfo_cls()
    startupinfo.dwFlags |= getattr(subprocess, "STARTF_USESHOWWINDOW", _STARTF_USESHOWWINDOW)
    startupinfo.wShowWindow = getattr(subprocess, "SW_HIDE", _SW_HIDE)
    return {
        "startupinfo": startupinfo,
        "creationflags": getattr(subprocess, "CREATE_NO_WINDOW", _CREATE_NO_WINDOW),
    }


def _emit(
    level: str,
    event: str,
    command_list: Sequence[str],
    extra: Mapping[str, object] | None,
    **fields: object,
) -> None:
    payload: MutableMapping[str, object] = {"event": event, "command": list(command_list)}
    payload.update(fields)
    if extra:
        for key, value in extra.items():
            if key != "event":
                payload[key] = value
    getattr(logging_ext.get_machine_logger(), level)(event, extra=dict(payload))


def run_command(
    command: Sequence[str] | str,
    *,
    event: str,
    timeout: int | float | None = None,
    dry_run: bool = False,
    hidden: bool = False,
    human_message: str | None = None,
    extra: Mapping[str, object] | None = None,
) -> CommandResult:
    """!
    @brief Execute ``command`` synchronously with consistent logging.
    @details Emits ``<event>_plan`` before launching and one of
    ``<event>_result``, ``<event>_missing``, ``<event>_timeout`` or
    ``<event>_error`` afterwards. Dry-run mode logs ``<event>_dry_run`` and
    returns a ``skipped`` result without spawning anything.
    @param hidden Start the child without a visible window on Windows.
    @returns :class:`CommandResult` describing the observed outcome.
    """

    human_logger = logging_ext.get_human_logger()

    command_list = [command] if isinstance(command, str) else [str(part) for part in command]
    effective_timeout: Any = _resolve_timeout(timeout)

    _emit("info", f"{event}_plan", command_list, extra, timeout=effective_timeout)

    if dry_run:
        human_logger.info("[dry-run] would execute: %s", subprocess.list2cmdline(command_list))
        _emit("info", f"{event}_dry_run", command_list, extra)
        return CommandResult(
            command=command_list,
            returncode=0,
            stdout="",
            stderr="",
            duration=0.0,
            skipped=True,
        )

    if human_message:
        human_logger.info(human_message)

    run_options: dict[str, Any] = {
        "capture_output": True,
        "text": True,
        "timeout": effective_timeout,
        "check": False,
        "env": sanitize_environment(),
    }
    if hidden:
        run_options.update(_hidden_window_options())

    start = time.monotonic()
    try:
        completed = subprocess.run(command_list, **run_options)  # noqa: S603 - intentional command execution
    except FileNotFoundError as exc:
        duration = time.monotonic() - start
        human_logger.error("Command not found: %s", command_list[0])
        _emit("error", f"{event}_missing", command_list, extra, duration=duration, error=str(exc))
        return CommandResult(command_list, 127, "", "", duration, error=str(exc))
    except subprocess.TimeoutExpired as exc:
        duration = time.monotonic() - start
        human_logger.error("Command timed out after %.1fs: %s", duration, command_list[0])
        _emit("error", f"{event}_timeout", command_list, extra, duration=duration)
        return CommandResult(
            command_list,
            1,
            str(exc.stdout or ""),
            str(exc.stderr or ""),
            duration,
            timed_out=True,
            error="timeout",
        )
    except OSError as exc:
        duration = time.monotonic() - start
        human_logger.error("Failed to execute %s: %s", command_list[0], exc)
        _emit("error", f"{event}_error", command_list, extra, duration=duration, error=str(exc))
        return CommandResult(command_list, 1, "", "", duration, error=str(exc))

    duration = time.monotonic() - start
    _emit(
        "info",
        f"{event}_result",
        command_list,
        extra,
        return_code=completed.returncode,
        stdout=completed.stdout,
        stderr=completed.stderr,
        duration=duration,
    )

    if completed.returncode != 0:
        human_logger.warning("Command %s exited with %s", command_list[0], completed.returncode)

    return CommandResult(
        command=command_list,
        returncode=completed.returncode,
        stdout=completed.stdout or "",
        stderr=completed.stderr or "",
        duration=duration,
    )


__all__ = ["CommandResult", "run_command", "sanitize_environment", "set_global_timeout"]
