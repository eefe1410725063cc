"""!
@brief Configuration resolver for the Office Deployment Tool.
@details Chooses the configuration document handed to ``setup.exe
/configure``. A caller-supplied path wins and must exist; otherwise a
``configuration.xml`` bundled next to the program is used; otherwise the
embedded default document is written into the temporary work directory.

The default document removes every existing Office installation before
installing (``<Remove All="TRUE" />`` plus ``<RemoveMSI />``). Supply
``--config`` with your own document to keep existing installs.

@see https://learn.microsoft.com/deployoffice/office-deployment-tool-configuration-options
"""
from __future__ import annotations

import xml.etree.ElementTree as ET
from dataclasses import dataclass
from pathlib import Path

from . import constants, logging_ext
from .errors import ConfigPathError

DEFAULT_PRODUCT_ID = "O365ProPlusRetail"

DEFAULT_EXCLUDED_APPS = ("Groove", "Lync", "OneDrive", "Teams")

DEFAULT_CONFIGURATION_XML = """<?xml version="1.0" encoding="UTF-8"?>
<Configuration>
  <Remove All="TRUE" />
  <Add OfficeClientEdition="64" Channel="Current">
    <Product ID="O365ProPlusRetail">
      <Language ID="MatchOS" />
      <ExcludeApp ID="Groove" />
      <ExcludeApp ID="Lync" />
      <ExcludeApp ID="OneDrive" />
      <ExcludeApp ID="Teams" />
    </Product>
  </Add>
  <Property Name="SharedComputerLicensing" Value="0" />
  <Property Name="FORCEAPPSHUTDOWN" Value="TRUE" />
  <Property Name="DeviceBasedLicensing" Value="0" />
  <Property Name="SCLCacheOverride" Value="0" />
  <Property Name="AUTOACTIVATE" Value="1" />
  <Updates Enabled="TRUE" />
  <RemoveMSI />
  <AppSettings>
    <User Key="software\\microsoft\\office\\16.0\\excel\\options" Name="defaultformat" Value="51" Type="REG_DWORD" App="excel16" Id="L_SaveExcelfilesas" />
    <User Key="software\\microsoft\\office\\16.0\\powerpoint\\options" Name="defaultformat" Value="27" Type="REG_DWORD" App="ppt16" Id="L_SavePowerPointfilesas" />
    <User Key="software\\microsoft\\office\\16.0\\word\\options" Name="defaultformat" Value="" Type="REG_SZ" App="word16" Id="L_SaveWordfilesas" />
  </AppSettings>
  <Display Level="None" AcceptEULA="TRUE" />
</Configuration>
"""
"""!
@brief Embedded default ODT configuration.
@details Installs Microsoft 365 Apps for enterprise (64-bit, Current channel,
OS language) without Groove, Skype for Business, OneDrive, and Teams, and
sets the default save format for Excel, PowerPoint, and Word to the Office
Open XML formats. Existing Office installs are removed first.
"""


@dataclass(frozen=True)
class ResolvedConfig:
    """!
    @brief Configuration document chosen for this run.
    @details ``source`` is one of ``"explicit"``, ``"bundled"``, or
    ``"generated"``.
    """

    path: Path
    source: str


def write_default_config(path: Path | str) -> Path:
    """!
    @brief Write :data:`DEFAULT_CONFIGURATION_XML` to ``path``.
    @details Parent directories are created as needed; an existing file is
    overwritten.
    """

    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(DEFAULT_CONFIGURATION_XML, encoding="utf-8")
    return target


def parse_config(path: Path | str) -> ET.Element:
    """!
    @brief Parse a configuration document and return its root element.
    @throws ConfigPathError When the file is missing or not well-formed XML.
    """

    try:
        return ET.parse(str(path)).getroot()
    except FileNotFoundError as exc:
        raise ConfigPathError(f"Configuration file not found: {path}") from exc
    except (ET.ParseError, OSError) as exc:
        raise ConfigPathError(f"Configuration file {path} is not readable XML: {exc}") from exc


def product_ids(path: Path | str) -> list[str]:
    """!
    @brief List the ``Product`` IDs a configuration document installs.
    @details Best-effort: unreadable documents yield an empty list because the
    document is only logged here, never interpreted.
    """

    try:
        root = parse_config(path)
    except ConfigPathError:
        return []
    return [
        product.get("ID", "")
        for product in root.iterfind("./Add/Product")
        if product.get("ID")
    ]


def resolve_config(
    explicit: Path | str | None,
    *,
    bundle_dir: Path,
    work_dir: Path,
    dry_run: bool = False,
) -> ResolvedConfig:
    """!
    @brief Select the configuration document for this run.
    @param explicit Caller-supplied path; returned exactly as given when it exists.
    @param bundle_dir Directory checked for a bundled ``configuration.xml``.
    @param work_dir Temporary directory receiving the generated default.
    @param dry_run Report the generated path without writing it.
    @throws ConfigPathError When ``explicit`` does not point to a file or the
    default document cannot be written.
    """

    human_logger = logging_ext.get_human_logger()
    machine_logger = logging_ext.get_machine_logger()

    if explicit is not None:
        candidate = Path(explicit)
        if not candidate.is_file():
            raise ConfigPathError(f"Configuration file not found: {explicit}")
        resolved = ResolvedConfig(path=candidate, source="explicit")
    else:
        bundled = bundle_dir / constants.CONFIG_FILE_NAME
        if bundled.is_file():
            resolved = ResolvedConfig(path=bundled, source="bundled")
        else:
            generated = work_dir / constants.CONFIG_FILE_NAME
            if dry_run:
                human_logger.info("[dry-run] would write default configuration to %s", generated)
            else:
                try:
                    write_default_config(generated)
                except OSError as exc:
                    raise ConfigPathError(
                        f"Unable to write the default configuration to {generated}: {exc}"
                    ) from exc
                human_logger.warning(
                    "Using the built-in configuration, which removes ALL existing Office installations first"
                )
            resolved = ResolvedConfig(path=generated, source="generated")

    human_logger.info("Using %s configuration: %s", resolved.source, resolved.path)
    machine_logger.info(
        "config_resolved",
        extra=logging_ext.event_extra(
            "config_resolved",
            path=str(resolved.path),
            source=resolved.source,
        ),
    )
    return resolved


__all__ = [
    "DEFAULT_CONFIGURATION_XML",
    "DEFAULT_EXCLUDED_APPS",
    "DEFAULT_PRODUCT_ID",
    "ResolvedConfig",
    "parse_config",
    "product_ids",
    "resolve_config",
    "write_default_config",
]
