"""!
@brief Filesystem locations and post-install cleanup.
@details Resolves the temp work directory, the download target, the bundle
directory shipped next to the program, and the log directory. Cleanup removes
the work directory and, when it was fetched during this run, the downloaded
deployment tool. Removal problems are logged at debug level and otherwise
ignored so a locked file never turns a finished install into a failure.
"""
from __future__ import annotations

import os
import shutil
import sys
import tempfile
from pathlib import Path

from . import constants, logging_ext


def temp_directory() -> Path:
    return Path(os.environ.get("TEMP") or tempfile.gettempdir())


def default_work_directory() -> Path:
    """!
    @brief ``%TEMP%\\OfficeInstall``: extracted tool and generated configuration.
    """

    return temp_directory() / constants.WORK_DIRECTORY_NAME


def default_download_path() -> Path:
    """!
    @brief Download target for the deployment tool.
    @details Kept outside the work directory so a copy left by an earlier run
    is reused and survives cleanup of the work directory.
    """

    return temp_directory() / constants.ODT_EXECUTABLE_NAME


def application_directory() -> Path:
    """!
    @brief Directory the program ships from.
    @details The executable's folder for a PyInstaller bundle, the repository
    root for a source checkout.
    """

    if getattr(sys, "frozen", False):
        return Path(sys.executable).resolve().parent
    return Path(__file__).resolve().parent.parent.parent


def default_bundle_directory() -> Path:
    return application_directory() / constants.BUNDLE_DIRECTORY_NAME


def default_log_directory() -> Path:
    """!
    @brief ``%ProgramData%\\OfficeAutoInstall\\logs`` with a temp-dir fallback.
    """

    program_data = os.environ.get("ProgramData")
    base = Path(program_data) if program_data else temp_directory()
    return base / constants.LOG_DIRECTORY_NAME / "logs"


def _remove_quietly(target: Path) -> bool:
    human_logger = logging_ext.get_human_logger()
    try:
        if target.is_dir():
            shutil.rmtree(target)
        elif target.exists():
            target.unlink()
        else:
            return False
    except OSError as exc:
        human_logger.debug("Ignoring failure to remove %s: %s", target, exc)
        return False
    human_logger.info("Removed %s", target)
    return True


def cleanup_artifacts(
    work_dir: Path,
    tool: Path | None,
    *,
    downloaded: bool,
    dry_run: bool = False,
) -> list[Path]:
    """!
    @brief Remove temporary artefacts left by the install.
    @param work_dir Work directory, always removed.
    @param tool Deployment tool executable, removed only when ``downloaded``.
    @returns Paths that were actually removed.
    """

    human_logger = logging_ext.get_human_logger()
    machine_logger = logging_ext.get_machine_logger()

    targets = [work_dir]
    if tool is not None and downloaded:
        targets.append(tool)
    elif tool is not None:
        human_logger.info("Keeping pre-existing deployment tool %s", tool)

    removed: list[Path] = []
    for target in targets:
        if dry_run:
            human_logger.info("[dry-run] would remove %s", target)
            continue
        if _remove_quietly(target):
            removed.append(target)

    machine_logger.info(
        "cleanup_result",
        extra=logging_ext.event_extra(
            "cleanup_result",
            planned=[str(path) for path in targets],
            removed=[str(path) for path in removed],
            dry_run=dry_run,
        ),
    )
    return removed


__all__ = [
    "application_directory",
    "cleanup_artifacts",
    "default_bundle_directory",
    "default_download_path",
    "default_log_directory",
    "default_work_directory",
    "temp_directory",
]
