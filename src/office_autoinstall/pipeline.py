"""!
@brief Ordered install pipeline.
@details Runs the stages strictly in sequence: resolve configuration, acquire
the deployment tool, extract it, run setup, verify, remove the store app, and
optionally clean up. Fatal stages raise :class:`~office_autoinstall.errors.StageError`
which stops the pipeline before any later stage runs; verification and store
app removal only log their failures.
"""
from __future__ import annotations

import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterator

from . import (
    appx_uninstall,
    constants,
    fs_tools,
    logging_ext,
    odt_config,
    odt_download,
    odt_runner,
    verify,
)
from .errors import StageError


@dataclass
class InstallContext:
    """!
    @brief Parameters for a single run, threaded through every stage.
    """

    config_path: Path | None = None
    cleanup: bool = False
    dry_run: bool = False
    bundle_dir: Path = field(default_factory=fs_tools.default_bundle_directory)
    work_dir: Path = field(default_factory=fs_tools.default_work_directory)
    download_path: Path = field(default_factory=fs_tools.default_download_path)
    product_substring: str = constants.PRODUCT_DISPLAY_SUBSTRING
    store_package: str = constants.STORE_PACKAGE_NAME
    confirmation_url: str = constants.ODT_CONFIRMATION_URL
    timeout: float | None = None


@dataclass
class PipelineResult:
    """!
    @brief What each stage produced; unset fields belong to stages not reached.
    """

    config: odt_config.ResolvedConfig | None = None
    tool: odt_download.AcquiredTool | None = None
    setup_exe: Path | None = None
    verification: verify.VerificationResult | None = None
    store_removals: list[dict[str, object]] = field(default_factory=list)
    removed_paths: list[Path] = field(default_factory=list)


@contextmanager
def _stage(name: str) -> Iterator[None]:
    machine_logger = logging_ext.get_machine_logger()
    machine_logger.info(f"{name}_start", extra=logging_ext.event_extra(f"{name}_start", stage=name))
    start = time.monotonic()
    try:
        yield
    except StageError as exc:
        machine_logger.error(
            f"{name}_failed",
            extra=logging_ext.event_extra(
                f"{name}_failed",
                stage=exc.stage,
                error=str(exc),
                duration=time.monotonic() - start,
            ),
        )
        raise
    machine_logger.info(
        f"{name}_complete",
        extra=logging_ext.event_extra(
            f"{name}_complete",
            stage=name,
            duration=time.monotonic() - start,
        ),
    )


def run_pipeline(context: InstallContext) -> PipelineResult:
    """!
    @brief Execute every stage for ``context``.
    @throws StageError From the first fatal stage; later stages do not run.
    """

    human_logger = logging_ext.get_human_logger()
    result = PipelineResult()

    with _stage("config"):
        result.config = odt_config.resolve_config(
            context.config_path,
            bundle_dir=context.bundle_dir,
            work_dir=context.work_dir,
            dry_run=context.dry_run,
        )
        products = odt_config.product_ids(result.config.path)
        if products:
            human_logger.info("Configuration installs: %s", ", ".join(products))

    with _stage("download"):
        result.tool = odt_download.acquire_tool(
            bundle_dir=context.bundle_dir,
            download_path=context.download_path,
            page_url=context.confirmation_url,
            dry_run=context.dry_run,
        )

    with _stage("extract"):
        result.setup_exe = odt_runner.extract_tool(
            result.tool.path,
            context.work_dir,
            dry_run=context.dry_run,
            timeout=context.timeout,
        )

    with _stage("install"):
        odt_runner.run_setup(
            result.setup_exe,
            result.config.path,
            dry_run=context.dry_run,
            timeout=context.timeout,
        )

    with _stage("verify"):
        if context.dry_run:
            human_logger.info("[dry-run] skipping installation verification")
        else:
            result.verification = verify.verify_installation(context.product_substring)

    with _stage("store_app"):
        result.store_removals = appx_uninstall.remove_store_package(
            context.store_package,
            dry_run=context.dry_run,
        )

    if context.cleanup:
        with _stage("cleanup"):
            result.removed_paths = fs_tools.cleanup_artifacts(
                context.work_dir,
                result.tool.path,
                downloaded=result.tool.downloaded,
                dry_run=context.dry_run,
            )

    human_logger.info("Office installation pipeline finished")
    return result


__all__ = ["InstallContext", "PipelineResult", "run_pipeline"]
