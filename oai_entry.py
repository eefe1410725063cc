"""!
@brief Script entry point for Office Auto-Install.
@details Used as the PyInstaller entry script (``pyinstaller --onefile
oai_entry.py``) and for running straight from a checkout. Puts ``src/`` on
``sys.path`` when present and hands control to
:func:`office_autoinstall.main.main`. A frozen build relaunches its own
executable when elevating, so this file is never re-entered through ``-m``.
"""
from __future__ import annotations

import os
import sys

__all__ = ["main"]

_REPO_ROOT = os.path.dirname(os.path.abspath(__file__))
_SRC_PATH = os.path.join(_REPO_ROOT, "src")


def _prepend_src_to_sys_path() -> None:
    if os.path.isdir(_SRC_PATH) and _SRC_PATH not in sys.path:
        sys.path.insert(0, _SRC_PATH)


def main() -> int:
    """!
    @brief Invoke the package entry point after preparing ``sys.path``.
    @returns Exit status propagated from :func:`office_autoinstall.main.main`.
    """

    _prepend_src_to_sys_path()
    from office_autoinstall.main import main as package_main

    return package_main()


if __name__ == "__main__":  # pragma: no cover - manual invocation
    sys.exit(main())
