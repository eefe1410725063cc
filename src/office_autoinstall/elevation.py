"""!
@brief Privilege guard: detect missing administrator rights and relaunch.
@details The ODT refuses to install without an elevated token, so the entry
point checks :func:`requires_elevation` first and, when needed, asks the shell
to start an elevated copy of itself with the same arguments through
``ShellExecuteW``'s ``runas`` verb. The non-elevated process then exits with
status ``0``.
"""
from __future__ import annotations

import ctypes
import os
import subprocess
import sys
from pathlib import Path
from typing import Sequence

from . import logging_ext
from .errors import ElevationError

PACKAGE_MODULE = "office_autoinstall"

_SHELL_EXECUTE_MIN_SUCCESS = 32

_SCRIPT_SUFFIXES = (".py", ".pyw")


def _is_windows() -> bool:
    return os.name == "nt"


def _shell32():
    try:
        return ctypes.windll.shell32  # type: ignore[attr-defined]
    except (AttributeError, OSError):
        return None


def is_frozen() -> bool:
    """!
    @brief Report whether the process runs from a PyInstaller bundle.
    """

    return bool(getattr(sys, "frozen", False))


def is_admin() -> bool:
    """!
    @brief Determine whether the current process token has administrative rights.
    """

    shell32 = _shell32()
    if shell32 is None:
        return False
    try:
        return bool(shell32.IsUserAnAdmin())
    except (AttributeError, OSError):
        return False


def requires_elevation() -> bool:
    """!
    @brief Return ``True`` when the process must relaunch itself elevated.
    @details Only Windows hosts can elevate; elsewhere the check reports
    ``False`` and later Windows-only stages fail on their own terms.
    """

    if not _is_windows():
        return False
    return not is_admin()


def resolve_invocation(argv: Sequence[str] | None = None) -> tuple[str, list[str]]:
    """!
    @brief Build the executable and argument list for an equivalent relaunch.
    @details A frozen bundle relaunches its own executable. A checkout started
    through a script such as ``oai_entry.py`` relaunches the interpreter on
    that script's absolute path, since the child does not inherit this
    process's ``sys.path``. Package runs (``python -m office_autoinstall`` or
    the console script) relaunch with ``-m office_autoinstall``.
    @param argv Original arguments without the program name; defaults to
    ``sys.argv[1:]``.
    @throws ElevationError When the running executable cannot be resolved.
    """

    arguments = [str(arg) for arg in (argv if argv is not None else sys.argv[1:])]
    if not sys.executable:
        raise ElevationError("Unable to resolve the path of the running executable")
    try:
        executable = Path(sys.executable).resolve(strict=True)
    except OSError as exc:
        raise ElevationError(f"Unable to resolve executable path {sys.executable!r}: {exc}") from exc

    if is_frozen():
        return str(executable), arguments

    script = _entry_script()
    if script is not None:
        return str(executable), [str(script), *arguments]
    return str(executable), ["-m", PACKAGE_MODULE, *arguments]


def _entry_script() -> Path | None:
    """!
    @brief Return the absolute path of the ``.py`` script this process started from.
    @details ``None`` for ``-m`` runs, whose ``argv[0]`` is the package's
    ``__main__.py``, and for console-script launchers.
    """

    if not sys.argv or not sys.argv[0]:
        return None
    candidate = Path(sys.argv[0])
    if candidate.suffix.lower() not in _SCRIPT_SUFFIXES or candidate.name == "__main__.py":
        return None
    if not candidate.is_file():
        return None
    return candidate.resolve()


def relaunch_elevated(argv: Sequence[str] | None = None) -> None:
    """!
    @brief Ask the shell to start an elevated copy of this program.
    @throws ElevationError When the request is refused, cancelled, or the
    shell API is unavailable.
    """

    human_logger = logging_ext.get_human_logger()
    machine_logger = logging_ext.get_machine_logger()

    executable, arguments = resolve_invocation(argv)
    shell32 = _shell32()
    if shell32 is None:
        raise ElevationError("The Windows shell API is unavailable; cannot request elevation")

    params = subprocess.list2cmdline(arguments)
    directory = os.getcwd()
    machine_logger.info(
        "elevation_request",
        extra=logging_ext.event_extra(
            "elevation_request",
            executable=executable,
            params=params,
            directory=directory,
        ),
    )
    human_logger.info("Requesting administrator rights to continue")

    try:
        # Elevated children start in System32 unless a directory is given.
        result = int(shell32.ShellExecuteW(None, "runas", executable, params, directory, 1))
    except OSError as exc:
        raise ElevationError(f"Elevation request failed: {exc}") from exc

    if result <= _SHELL_EXECUTE_MIN_SUCCESS:
        machine_logger.error(
            "elevation_refused",
            extra=logging_ext.event_extra("elevation_refused", code=result),
        )
        raise ElevationError(f"Elevation request was denied or cancelled (ShellExecuteW returned {result})")


def ensure_elevated(argv: Sequence[str] | None = None) -> bool:
    """!
    @brief Relaunch elevated when required.
    @returns ``True`` when the current process may continue, ``False`` when an
    elevated copy was started and the caller should exit with status ``0``.
    """

    if not requires_elevation():
        return True
    relaunch_elevated(argv)
    return False


__all__ = [
    "ensure_elevated",
    "is_admin",
    "is_frozen",
    "relaunch_elevated",
    "requires_elevation",
    "resolve_invocation",
]
