"""!
@brief Static data for Office Auto-Install.
@details Centralises vendor URLs, file names, registry roots, and the product
and package identifiers used by the pipeline so stage modules share a single
source of truth.
"""
from __future__ import annotations

import re
from typing import Tuple

try:  # pragma: no cover - Windows registry handles are optional on test hosts.
    import winreg
except ImportError:  # pragma: no cover - test scaffolding supplies substitutes.
    winreg = None  # type: ignore[assignment]


if winreg is not None:  # pragma: no branch - deterministic assignments.
    HKLM = winreg.HKEY_LOCAL_MACHINE
else:  # pragma: no cover - exercised implicitly in non-Windows CI.
    HKLM = 0x80000002


ODT_CONFIRMATION_URL = "https://www.microsoft.com/en-us/download/confirmation.aspx?id=49117"
"""!
@brief Vendor page that links the current Office Deployment Tool build.
"""

ODT_DOWNLOAD_PATTERN = re.compile(
    r"https://download\.microsoft\.com/download/[^\"'<>\s]+?/officedeploymenttool_[^\"'<>\s/]+?\.exe",
    re.IGNORECASE,
)
"""!
@brief Pattern matching the ODT executable link on the confirmation page.
"""

HTTP_USER_AGENT = "Mozilla/5.0 (Windows NT 10.0; Win64; x64) OfficeAutoInstall/1.0"

HTTP_TIMEOUT = 60

DOWNLOAD_CHUNK_SIZE = 1 << 16

ODT_EXECUTABLE_NAME = "officedeploymenttool.exe"
"""!
@brief File name used for both the bundled and the downloaded ODT executable.
"""

ODT_SETUP_NAME = "setup.exe"

CONFIG_FILE_NAME = "configuration.xml"

WORK_DIRECTORY_NAME = "OfficeInstall"

BUNDLE_DIRECTORY_NAME = "oem"

LOG_DIRECTORY_NAME = "OfficeAutoInstall"

UNINSTALL_ROOTS: Tuple[Tuple[int, str], ...] = (
    (HKLM, r"SOFTWARE\Microsoft\Windows\CurrentVersion\Uninstall"),
    (HKLM, r"SOFTWARE\WOW6432Node\Microsoft\Windows\CurrentVersion\Uninstall"),
)
"""!
@brief Registry roots scanned for the installed product's ``DisplayName``.
"""

PRODUCT_DISPLAY_SUBSTRING = "Microsoft 365"
"""!
@brief Substring expected in the ``DisplayName`` of the installed suite.
"""

STORE_PACKAGE_NAME = "Microsoft.MicrosoftOfficeHub"
"""!
@brief Pre-provisioned store app removed after a successful install.
"""

POWERSHELL_TIMEOUT = 300


__all__ = [
    "BUNDLE_DIRECTORY_NAME",
    "CONFIG_FILE_NAME",
    "DOWNLOAD_CHUNK_SIZE",
    "HKLM",
    "HTTP_TIMEOUT",
    "HTTP_USER_AGENT",
    "LOG_DIRECTORY_NAME",
    "ODT_CONFIRMATION_URL",
    "ODT_DOWNLOAD_PATTERN",
    "ODT_EXECUTABLE_NAME",
    "ODT_SETUP_NAME",
    "POWERSHELL_TIMEOUT",
    "PRODUCT_DISPLAY_SUBSTRING",
    "STORE_PACKAGE_NAME",
    "UNINSTALL_ROOTS",
    "WORK_DIRECTORY_NAME",
]
