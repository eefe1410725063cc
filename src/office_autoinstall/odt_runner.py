"""!
@brief Run the Office Deployment Tool.
@details The downloaded ``officedeploymenttool.exe`` is a self-extracting
archive. :func:`extract_tool` unpacks it into the work directory, then
:func:`run_setup` starts the extracted ``setup.exe /configure <xml>`` with no
visible window. Both calls block until the child exits.
"""
from __future__ import annotations

from pathlib import Path

from . import constants, exec_utils, logging_ext
from .errors import InstallerError


def extract_tool(
    tool: Path,
    work_dir: Path,
    *,
    dry_run: bool = False,
    timeout: float | None = None,
) -> Path:
    """!
    @brief Extract the ODT into ``work_dir`` and return the ``setup.exe`` path.
    @throws InstallerError When extraction fails or produces no ``setup.exe``.
    """

    setup_exe = work_dir / constants.ODT_SETUP_NAME
    if not dry_run:
        try:
            work_dir.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise InstallerError(
                f"Unable to create work directory {work_dir}: {exc}",
                stage="extract",
            ) from exc

    result = exec_utils.run_command(
        [str(tool), f"/extract:{work_dir}", "/quiet"],
        event="odt_extract",
        timeout=timeout,
        dry_run=dry_run,
        human_message=f"Extracting deployment tool into {work_dir}",
    )
    if result.skipped:
        return setup_exe
    if result.error is not None:
        raise InstallerError(
            f"Failed to extract {tool}: {result.error}",
            stage="extract",
            returncode=result.returncode,
        )
    if result.returncode != 0:
        raise InstallerError(
            f"Deployment tool extraction exited with code {result.returncode}",
            stage="extract",
            returncode=result.returncode,
        )
    if not setup_exe.is_file():
        raise InstallerError(
            f"Extraction finished but {setup_exe} was not created",
            stage="extract",
        )
    return setup_exe


def run_setup(
    setup_exe: Path,
    config_path: Path,
    *,
    dry_run: bool = False,
    timeout: float | None = None,
) -> exec_utils.CommandResult:
    """!
    @brief Run ``setup.exe /configure`` hidden and wait for it.
    @throws InstallerError On a non-zero exit code, timeout, or launch failure.
    """

    machine_logger = logging_ext.get_machine_logger()

    result = exec_utils.run_command(
        [str(setup_exe), "/configure", str(config_path)],
        event="odt_configure",
        timeout=timeout,
        dry_run=dry_run,
        hidden=True,
        human_message="Installing Office; this can take a while",
        extra={"config": str(config_path)},
    )
    if result.skipped:
        return result
    if result.error is not None:
        raise InstallerError(
            f"Office setup could not run: {result.error}",
            returncode=result.returncode,
        )
    if result.returncode != 0:
        raise InstallerError(
            f"Office setup exited with code {result.returncode}",
            returncode=result.returncode,
        )

    machine_logger.info(
        "odt_configure_complete",
        extra=logging_ext.event_extra("odt_configure_complete", duration=result.duration),
    )
    return result


__all__ = ["extract_tool", "run_setup"]
