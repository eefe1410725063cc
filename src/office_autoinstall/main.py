"""!
@brief Command-line entry point for Office Auto-Install.
@details Parses arguments, sets up the human and JSONL log channels, makes
sure the process is elevated (relaunching itself when it is not), and runs
:func:`office_autoinstall.pipeline.run_pipeline`. Any fatal stage error is
reported once here and mapped to exit status ``1``.
"""
from __future__ import annotations

import argparse
import logging
import pathlib
import sys
from typing import Iterable, Optional

from . import elevation, exec_utils, fs_tools, logging_ext, odt_config, pipeline, version
from .errors import StageError

EXIT_OK = 0
EXIT_FAILURE = 1


def build_arg_parser() -> argparse.ArgumentParser:
    """!
    @brief Create the argument parser.
    """

    parser = argparse.ArgumentParser(
        prog="office-autoinstall",
        description="Install Microsoft Office with the Office Deployment Tool.",
    )
    metadata = version.build_info()
    parser.add_argument(
        "-V",
        "--version",
        action="version",
        version=f"{metadata['version']} ({metadata['build']})",
    )
    parser.add_argument(
        "--config",
        "--configure",
        dest="config",
        metavar="PATH",
        help="Use this ODT configuration document instead of the bundled or built-in one.",
    )
    parser.add_argument(
        "--cleanup",
        action="store_true",
        help="Delete the temp work directory (and a freshly downloaded tool) after a successful run.",
    )
    parser.add_argument("--dry-run", action="store_true", help="Log every action without changing the system.")
    parser.add_argument("--bundle-dir", metavar="DIR", help="Directory holding a bundled configuration.xml and/or tool.")
    parser.add_argument("--logdir", metavar="DIR", help="Directory for human/JSONL log output.")
    parser.add_argument("--timeout", metavar="SEC", type=int, help="Upper bound in seconds for each external command.")
    parser.add_argument("--quiet", action="store_true", help="Minimal console output (errors only).")
    parser.add_argument("--json", action="store_true", help="Mirror structured events to stdout.")
    parser.add_argument(
        "--write-config",
        metavar="OUT",
        help="Write the built-in configuration document to OUT and exit.",
    )
    return parser


def _resolve_log_directory(candidate: Optional[str]) -> pathlib.Path:
    if candidate:
        return pathlib.Path(candidate).expanduser().resolve()
    return fs_tools.default_log_directory()


def _bootstrap_logging(args: argparse.Namespace) -> tuple[logging.Logger, logging.Logger]:
    """!
    @brief Initialise both log channels, falling back to the temp directory.
    """

    logdir = _resolve_log_directory(args.logdir)
    try:
        logdir.mkdir(parents=True, exist_ok=True)
    except OSError:
        logdir = fs_tools.temp_directory() / "OfficeAutoInstall-logs"
    human_logger, machine_logger = logging_ext.setup_logging(logdir, json_to_stdout=args.json)
    if args.quiet:
        human_logger.setLevel(logging.ERROR)
    return human_logger, machine_logger


def _build_context(args: argparse.Namespace) -> pipeline.InstallContext:
    context = pipeline.InstallContext(
        config_path=pathlib.Path(args.config) if args.config else None,
        cleanup=bool(args.cleanup),
        dry_run=bool(args.dry_run),
        timeout=args.timeout,
    )
    if args.bundle_dir:
        context.bundle_dir = pathlib.Path(args.bundle_dir).expanduser()
    return context


def main(argv: Optional[Iterable[str]] = None) -> int:
    """!
    @brief Entry point for the console script and ``python -m``.
    @returns Process exit code.
    """

    raw_args = list(argv) if argv is not None else sys.argv[1:]
    args = build_arg_parser().parse_args(raw_args)

    if args.write_config:
        target = odt_config.write_default_config(args.write_config)
        print(target)
        return EXIT_OK

    human_log, machine_log = _bootstrap_logging(args)
    exec_utils.set_global_timeout(args.timeout)
    machine_log.info(
        "startup",
        extra=logging_ext.event_extra(
            "startup",
            argv=raw_args,
            dry_run=bool(args.dry_run),
            cleanup=bool(args.cleanup),
        ),
    )

    if args.dry_run:
        human_log.info("[dry-run] skipping the elevation check")
    else:
        try:
            if not elevation.ensure_elevated(raw_args):
                human_log.info("Continuing in the elevated process; this window can close")
                return EXIT_OK
        except StageError as exc:
            human_log.warning("Elevation failed: %s", exc)
            machine_log.error(
                "run_failed",
                extra=logging_ext.event_extra("run_failed", stage=exc.stage, error=str(exc)),
            )
            return EXIT_FAILURE

    try:
        pipeline.run_pipeline(_build_context(args))
    except StageError as exc:
        human_log.warning("Office installation failed during %s: %s", exc.stage, exc)
        machine_log.error(
            "run_failed",
            extra=logging_ext.event_extra(
                "run_failed",
                stage=exc.stage,
                error=str(exc),
                url=getattr(exc, "url", None),
            ),
        )
        return EXIT_FAILURE

    machine_log.info("run_complete", extra=logging_ext.event_extra("run_complete"))
    return EXIT_OK


if __name__ == "__main__":  # pragma: no cover - for manual execution
    sys.exit(main())
