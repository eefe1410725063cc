"""!
@file appx_uninstall.py
@brief Removal of the pre-provisioned Office store app.
@details Windows images ship the Office hub store package provisioned for
every profile. After the desktop suite is installed it is redundant, so both
the provisioned registration (future profiles) and the per-user package
instances (existing profiles) are removed through PowerShell AppX cmdlets.
Every failure here is logged and reported in the returned results; nothing is
raised.
"""

from __future__ import annotations

import json
from typing import Any

from . import constants, exec_utils, logging_ext

__all__ = [
    "find_installed_packages",
    "find_provisioned_packages",
    "remove_store_package",
]


def _quote(value: str) -> str:
    return "'" + value.replace("'", "''") + "'"


def _run_powershell(command: str, *, event: str) -> exec_utils.CommandResult:
    """!
    @brief Execute a PowerShell command without profile or prompts.
    """
    return exec_utils.run_command(
        ["powershell", "-NoProfile", "-NonInteractive", "-Command", command],
        event=event,
        timeout=constants.POWERSHELL_TIMEOUT,
        hidden=True,
    )


def _parse_json_rows(stdout: str) -> list[dict[str, Any]]:
    """!
    @brief Normalise ``ConvertTo-Json`` output to a list of objects.
    @details PowerShell emits a bare object for a single match and an array
    otherwise.
    """
    text = stdout.strip()
    if not text:
        return []
    try:
        data = json.loads(text)
    except json.JSONDecodeError:
        logging_ext.get_human_logger().debug("Unparseable AppX query output: %s", text)
        return []
    if isinstance(data, dict):
        return [data]
    if isinstance(data, list):
        return [row for row in data if isinstance(row, dict)]
    return []


def find_provisioned_packages(name: str) -> list[str]:
    """!
    @brief Return provisioned ``PackageName`` values whose display name equals ``name``.
    """
    command = (
        "Get-AppxProvisionedPackage -Online | "
        f"Where-Object {{ $_.DisplayName -eq {_quote(name)} }} | "
        "Select-Object DisplayName, PackageName | ConvertTo-Json -Compress"
    )
    result = _run_powershell(command, event="appx_provisioned_query")
    if not result.ok:
        logging_ext.get_human_logger().warning(
            "Could not query provisioned packages for %s: %s",
            name,
            result.error or result.stderr.strip() or f"exit code {result.returncode}",
        )
        return []
    return [
        str(row["PackageName"])
        for row in _parse_json_rows(result.stdout)
        if row.get("PackageName")
    ]


def find_installed_packages(name: str) -> list[str]:
    """!
    @brief Return ``PackageFullName`` values of ``name`` installed for any user.
    """
    command = (
        f"Get-AppxPackage -AllUsers -Name {_quote(name)} | "
        "Select-Object Name, PackageFullName | ConvertTo-Json -Compress"
    )
    result = _run_powershell(command, event="appx_installed_query")
    if not result.ok:
        logging_ext.get_human_logger().warning(
            "Could not query installed packages for %s: %s",
            name,
            result.error or result.stderr.strip() or f"exit code {result.returncode}",
        )
        return []
    return [
        str(row["PackageFullName"])
        for row in _parse_json_rows(result.stdout)
        if row.get("PackageFullName")
    ]


def _remove(kind: str, package: str, command: str) -> dict[str, object]:
    human_logger = logging_ext.get_human_logger()
    outcome: dict[str, object] = {
        "package": package,
        "kind": kind,
        "success": False,
        "dry_run": False,
        "error": None,
    }
    human_logger.info("Removing %s package: %s", kind, package)
    result = _run_powershell(command, event=f"appx_remove_{kind}")
    if result.ok:
        outcome["success"] = True
        human_logger.info("Removed %s package: %s", kind, package)
    else:
        outcome["error"] = result.error or result.stderr.strip() or f"exit code {result.returncode}"
        human_logger.warning("Failed to remove %s package %s: %s", kind, package, outcome["error"])
    return outcome


def remove_store_package(
    name: str = constants.STORE_PACKAGE_NAME,
    *,
    dry_run: bool = False,
) -> list[dict[str, object]]:
    """!
    @brief Remove ``name`` as a provisioned package and for every user.
    @param name Exact package name, e.g. ``Microsoft.MicrosoftOfficeHub``.
    @param dry_run Log the intended removal without querying or changing anything.
    @returns One result mapping per removal attempted.
    """
    human_logger = logging_ext.get_human_logger()

    if dry_run:
        human_logger.info("[dry-run] would remove store package %s for all users", name)
        return [
            {
                "package": name,
                "kind": "all",
                "success": True,
                "dry_run": True,
                "error": None,
            }
        ]

    results: list[dict[str, object]] = []
    for package in find_provisioned_packages(name):
        results.append(
            _remove(
                "provisioned",
                package,
                f"Remove-AppxProvisionedPackage -Online -AllUsers -PackageName {_quote(package)}",
            )
        )
    for package in find_installed_packages(name):
        results.append(
            _remove(
                "installed",
                package,
                f"Remove-AppxPackage -AllUsers -Package {_quote(package)}",
            )
        )

    if not results:
        human_logger.info("Store package %s is not present", name)
    logging_ext.get_machine_logger().info(
        "appx_remove_summary",
        extra=logging_ext.event_extra("appx_remove_summary", package=name, results=results),
    )
    return results
