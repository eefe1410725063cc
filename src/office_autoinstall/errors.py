"""!
@brief Exception hierarchy for fatal pipeline failures.
@details Every stage that can halt the installation raises a subclass of
:class:`StageError`. :func:`office_autoinstall.main.main` catches the base
class once, reports the stage, and exits with status ``1``.
"""
from __future__ import annotations


class StageError(RuntimeError):
    """!
    @brief Fatal failure raised by a pipeline stage.
    """

    stage = "pipeline"

    def __init__(self, message: str, *, stage: str | None = None) -> None:
        super().__init__(message)
        if stage is not None:
            self.stage = stage


class ElevationError(StageError):
    """!
    @brief The executable path could not be resolved or elevation was refused.
    """

    stage = "elevation"


class ConfigPathError(StageError):
    """!
    @brief A caller-supplied configuration document is missing or unreadable.
    """

    stage = "config"


class AcquisitionError(StageError):
    """!
    @brief The deployment tool could not be located or downloaded.
    """

    stage = "download"

    def __init__(self, message: str, *, url: str | None = None) -> None:
        super().__init__(message)
        self.url = url


class InstallerError(StageError):
    """!
    @brief Extraction or ``setup.exe /configure`` failed.
    """

    stage = "install"

    def __init__(
        self,
        message: str,
        *,
        stage: str | None = None,
        returncode: int | None = None,
    ) -> None:
        super().__init__(message, stage=stage)
        self.returncode = returncode


__all__ = [
    "AcquisitionError",
    "ConfigPathError",
    "ElevationError",
    "InstallerError",
    "StageError",
]
