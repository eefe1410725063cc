"""!
@brief Version metadata for Office Auto-Install.
@details Both the CLI ``--version`` flag and the run metadata emitted by
:mod:`office_autoinstall.logging_ext` read from this module.
"""
from __future__ import annotations

from importlib import resources
from typing import Dict

__all__ = ["__version__", "__build__", "build_info"]


def _load_version() -> str:
    """!
    @brief Read the version string from the packaged ``VERSION`` file.
    @details ``pyproject.toml`` points its dynamic version at the same file.
    """

    version_path = resources.files(__package__).joinpath("VERSION")
    try:
        return version_path.read_text(encoding="utf-8").strip()
    except FileNotFoundError:  # pragma: no cover - source tree without data files
        return "0.0.0"


__version__ = _load_version()
__build__ = "dev"


def build_info() -> Dict[str, str]:
    """!
    @brief Provide a mapping with the current version metadata.
    """

    return {"version": __version__, "build": __build__}
