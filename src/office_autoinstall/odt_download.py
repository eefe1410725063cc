"""!
@brief Locate or download the Office Deployment Tool executable.
@details A bundled ``officedeploymenttool.exe`` or a copy left in the temp
directory by an earlier run is reused without touching the network. Otherwise
the vendor confirmation page is fetched, the current ODT link is scraped from
it, and the executable is streamed to the temp directory.
"""
from __future__ import annotations

import shutil
import urllib.error
import urllib.request
from dataclasses import dataclass
from pathlib import Path

from . import constants, logging_ext
from .errors import AcquisitionError


@dataclass(frozen=True)
class AcquiredTool:
    """!
    @brief The ODT executable chosen for this run.
    @details ``downloaded`` is ``True`` only when this run fetched the file,
    which makes it eligible for removal during cleanup.
    """

    path: Path
    downloaded: bool
    url: str | None = None


def _request(url: str) -> urllib.request.Request:
    return urllib.request.Request(
        url,
        headers={
            "User-Agent": constants.HTTP_USER_AGENT,
            "Accept-Language": "en-US,en;q=0.9",
        },
    )


def find_local_tool(bundle_dir: Path, download_path: Path) -> Path | None:
    """!
    @brief Return a usable local ODT executable, bundled copy first.
    """

    for candidate in (bundle_dir / constants.ODT_EXECUTABLE_NAME, download_path):
        if candidate.is_file():
            logging_ext.get_human_logger().debug("Found local deployment tool at %s", candidate)
            return candidate
    return None


def extract_download_url(page: str) -> str | None:
    """!
    @brief Find the first ODT executable link in the confirmation page markup.
    """

    match = constants.ODT_DOWNLOAD_PATTERN.search(page)
    return match.group(0) if match else None


def resolve_download_url(
    page_url: str = constants.ODT_CONFIRMATION_URL,
    *,
    timeout: float = constants.HTTP_TIMEOUT,
) -> str:
    """!
    @brief Scrape the vendor confirmation page for the current ODT link.
    @throws AcquisitionError When the page cannot be fetched or holds no link.
    """

    human_logger = logging_ext.get_human_logger()
    human_logger.info("Looking up the current deployment tool link at %s", page_url)
    try:
        with urllib.request.urlopen(_request(page_url), timeout=timeout) as response:
            page = response.read().decode("utf-8", errors="ignore")
    except (urllib.error.URLError, OSError) as exc:
        raise AcquisitionError(f"Failed to fetch {page_url}: {exc}", url=page_url) from exc

    url = extract_download_url(page)
    if url is None:
        raise AcquisitionError(
            f"No Office Deployment Tool link found on {page_url}",
            url=page_url,
        )
    return url


def _discard_partial(dest: Path) -> None:
    try:
        if dest.is_file():
            dest.unlink()
    except OSError as exc:
        logging_ext.get_human_logger().debug("Could not remove partial download %s: %s", dest, exc)


def download_tool(
    url: str,
    dest: Path,
    *,
    timeout: float = constants.HTTP_TIMEOUT,
) -> Path:
    """!
    @brief Stream the executable at ``url`` into ``dest``.
    @details A partially written file is removed when the transfer fails.
    @throws AcquisitionError On HTTP or filesystem failures.
    """

    human_logger = logging_ext.get_human_logger()
    machine_logger = logging_ext.get_machine_logger()

    human_logger.info("Downloading deployment tool from %s", url)
    machine_logger.info(
        "download_start",
        extra=logging_ext.event_extra("download_start", url=url, dest=str(dest)),
    )
    try:
        dest.parent.mkdir(parents=True, exist_ok=True)
        with urllib.request.urlopen(_request(url), timeout=timeout) as response:
            with dest.open("wb") as handle:
                shutil.copyfileobj(response, handle, constants.DOWNLOAD_CHUNK_SIZE)
    except (urllib.error.URLError, OSError) as exc:
        _discard_partial(dest)
        raise AcquisitionError(f"Failed to download {url}: {exc}", url=url) from exc

    size = dest.stat().st_size
    human_logger.info("Downloaded deployment tool to %s (%d bytes)", dest, size)
    machine_logger.info(
        "download_result",
        extra=logging_ext.event_extra("download_result", url=url, dest=str(dest), bytes=size),
    )
    return dest


def acquire_tool(
    *,
    bundle_dir: Path,
    download_path: Path,
    page_url: str = constants.ODT_CONFIRMATION_URL,
    dry_run: bool = False,
) -> AcquiredTool:
    """!
    @brief Reuse a local ODT executable or download a fresh one.
    @details No network request is issued when a local copy exists. In dry-run
    mode the network is skipped as well and ``download_path`` is reported.
    """

    local = find_local_tool(bundle_dir, download_path)
    if local is not None:
        logging_ext.get_human_logger().info("Reusing deployment tool at %s", local)
        return AcquiredTool(path=local, downloaded=False)

    if dry_run:
        logging_ext.get_human_logger().info(
            "[dry-run] would download the deployment tool via %s to %s",
            page_url,
            download_path,
        )
        return AcquiredTool(path=download_path, downloaded=False)

    url = resolve_download_url(page_url)
    path = download_tool(url, download_path)
    return AcquiredTool(path=path, downloaded=True, url=url)


__all__ = [
    "AcquiredTool",
    "acquire_tool",
    "download_tool",
    "extract_download_url",
    "find_local_tool",
    "resolve_download_url",
]
