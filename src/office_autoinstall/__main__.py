"""!
@brief Allow ``python -m office_autoinstall``.
@details The elevated relaunch uses this form when running from source.
"""
from __future__ import annotations

import sys

from .main import main

if __name__ == "__main__":  # pragma: no cover - manual invocation
    sys.exit(main())
