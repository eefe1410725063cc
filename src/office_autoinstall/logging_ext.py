"""!
@brief Structured logging helpers for Office Auto-Install.
@details Two loggers are configured per run: a human-readable channel that
writes to the console and a rotating text file, and a machine channel that
writes JSON lines so deployment tooling can collect per-stage telemetry.
Startup metadata sourced from :mod:`office_autoinstall.version` is recorded so
log bundles from different hosts can be correlated.
"""
from __future__ import annotations

import datetime as _dt
import json
import logging
import sys
import uuid
from logging import handlers
from pathlib import Path
from typing import Dict, Iterable, Mapping, Tuple

from . import version

HUMAN_LOGGER_NAME = "office_autoinstall.human"
"""!
@brief Logger name for human-readable output.
"""

MACHINE_LOGGER_NAME = "office_autoinstall.machine"
"""!
@brief Logger name for JSONL telemetry output.
"""

HUMAN_LOG_FILE = "office-autoinstall.log"

MACHINE_LOG_FILE = "office-autoinstall.jsonl"

_STANDARD_RECORD_KEYS = frozenset(
    {
        "name",
        "msg",
        "args",
        "levelname",
        "levelno",
        "pathname",
        "filename",
        "module",
        "exc_info",
        "exc_text",
        "stack_info",
        "lineno",
        "funcName",
        "created",
        "msecs",
        "relativeCreated",
        "thread",
        "threadName",
        "processName",
        "process",
        "taskName",
        "message",
        "asctime",
        "channel",
    }
)

_CURRENT_LOG_DIRECTORY: Path | None = None
_RUN_METADATA: Dict[str, object] | None = None


class _ChannelFilter(logging.Filter):
    """!
    @brief Inject a fixed ``channel`` attribute on log records.
    """

    def __init__(self, channel: str) -> None:
        super().__init__()
        self._channel = channel

    def filter(self, record: logging.LogRecord) -> bool:
        record.channel = self._channel
        return True


class _JsonLineFormatter(logging.Formatter):
    """!
    @brief Format ``LogRecord`` instances as single-line JSON objects.
    @details Standard metadata (timestamp, level, logger, message) is merged
    with any ``extra`` attributes supplied by the caller. Values that are not
    JSON serialisable fall back to their ``repr``.
    """

    def format(self, record: logging.LogRecord) -> str:  # noqa: D401 - concise override
        moment = _dt.datetime.fromtimestamp(record.created, tz=_dt.timezone.utc)
        payload: Dict[str, object] = {
            "timestamp": moment.isoformat(timespec="milliseconds").replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "channel": getattr(record, "channel", "machine"),
        }
        payload.update(_extract_extras(record))
        try:
            return json.dumps(payload, ensure_ascii=False)
        except TypeError:
            sanitized = {key: _coerce_json(value) for key, value in payload.items()}
            return json.dumps(sanitized, ensure_ascii=False)


def _extract_extras(record: logging.LogRecord) -> Dict[str, object]:
    return {
        key: value
        for key, value in record.__dict__.items()
        if key not in _STANDARD_RECORD_KEYS
    }


def _coerce_json(value: object) -> object:
    try:
        json.dumps(value)
    except TypeError:
        return repr(value)
    return value


def _configure_logger(
    logger: logging.Logger,
    formatter: logging.Formatter,
    handlers_to_add: Iterable[logging.Handler],
) -> None:
    """!
    @brief Reset a logger and attach the supplied handlers.
    """

    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    for flt in list(logger.filters):
        logger.removeFilter(flt)
    for handler in handlers_to_add:
        handler.setFormatter(formatter)
        logger.addHandler(handler)
    logger.propagate = False


def setup_logging(
    root_dir: Path,
    *,
    json_to_stdout: bool = False,
    console: bool = True,
    level: int = logging.INFO,
) -> Tuple[logging.Logger, logging.Logger]:
    """!
    @brief Set up human and machine loggers.
    @details ``root_dir`` is created when missing. Both channels rotate at
    1 MiB and keep five backups. The human channel also echoes to ``stderr``
    unless ``console`` is ``False``; the machine channel mirrors to ``stdout``
    when ``json_to_stdout`` is set.
    @returns Tuple of ``(human_logger, machine_logger)``.
    """

    global _CURRENT_LOG_DIRECTORY

    root_dir.mkdir(parents=True, exist_ok=True)
    _CURRENT_LOG_DIRECTORY = root_dir

    human_logger = logging.getLogger(HUMAN_LOGGER_NAME)
    machine_logger = logging.getLogger(MACHINE_LOGGER_NAME)
    human_logger.setLevel(level)
    machine_logger.setLevel(level)

    human_formatter = logging.Formatter(
        "%(asctime)s %(levelname)-8s [%(channel)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    machine_formatter = _JsonLineFormatter()

    human_handlers: list[logging.Handler] = [
        handlers.RotatingFileHandler(
            root_dir / HUMAN_LOG_FILE,
            maxBytes=1_048_576,
            backupCount=5,
            encoding="utf-8",
        )
    ]
    if console:
        human_handlers.append(logging.StreamHandler(stream=sys.stderr))

    machine_handlers: list[logging.Handler] = [
        handlers.RotatingFileHandler(
            root_dir / MACHINE_LOG_FILE,
            maxBytes=1_048_576,
            backupCount=5,
            encoding="utf-8",
        )
    ]
    if json_to_stdout:
        machine_handlers.append(logging.StreamHandler(stream=sys.stdout))

    _configure_logger(human_logger, human_formatter, human_handlers)
    _configure_logger(machine_logger, machine_formatter, machine_handlers)

    human_logger.addFilter(_ChannelFilter("human"))
    machine_logger.addFilter(_ChannelFilter("machine"))

    _emit_run_metadata(human_logger, machine_logger)

    return human_logger, machine_logger


def get_human_logger() -> logging.Logger:
    """!
    @brief Retrieve the configured human-readable logger.
    """

    return logging.getLogger(HUMAN_LOGGER_NAME)


def get_machine_logger() -> logging.Logger:
    """!
    @brief Retrieve the configured machine/JSON logger.
    """

    return logging.getLogger(MACHINE_LOGGER_NAME)


def get_log_directory() -> Path | None:
    return _CURRENT_LOG_DIRECTORY


def get_run_metadata() -> Mapping[str, object] | None:
    """!
    @brief Return the most recent run metadata payload.
    @details Contains ``run_id`` (UUID4 hex), an ISO-8601 UTC ``timestamp``,
    version/build identifiers, the interpreter version, and ``logdir``.
    """

    return dict(_RUN_METADATA) if _RUN_METADATA is not None else None


def event_extra(event: str, **fields: object) -> Dict[str, object]:
    """!
    @brief Build the ``extra`` mapping for a machine-channel event.
    """

    payload: Dict[str, object] = {"event": event}
    payload.update(fields)
    return payload


def _emit_run_metadata(human_logger: logging.Logger, machine_logger: logging.Logger) -> None:
    global _RUN_METADATA

    moment = _dt.datetime.now(tz=_dt.timezone.utc)
    _RUN_METADATA = {
        "run_id": uuid.uuid4().hex,
        "timestamp": moment.isoformat(timespec="milliseconds").replace("+00:00", "Z"),
        "version": version.__version__,
        "build": version.__build__,
        "python": sys.version.split()[0],
        "logdir": str(_CURRENT_LOG_DIRECTORY) if _CURRENT_LOG_DIRECTORY else None,
    }

    human_logger.info(
        "Office Auto-Install %s (%s) starting, run %s",
        version.__version__,
        version.__build__,
        _RUN_METADATA["run_id"],
    )
    if _CURRENT_LOG_DIRECTORY is not None:
        human_logger.info("Logs directory: %s", _CURRENT_LOG_DIRECTORY)

    machine_logger.info("run_start", extra=event_extra("run_start", run=dict(_RUN_METADATA)))


__all__ = [
    "HUMAN_LOGGER_NAME",
    "MACHINE_LOGGER_NAME",
    "event_extra",
    "get_human_logger",
    "get_log_directory",
    "get_machine_logger",
    "get_run_metadata",
    "setup_logging",
]
