"""!
@brief Read-only registry helpers.
@details Thin wrappers over :mod:`winreg` used by :mod:`verify` to walk the
uninstall roots. Handles are always closed, and hosts without ``winreg``
surface :class:`FileNotFoundError` so callers treat the registry as empty.
"""
from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Iterator

try:  # pragma: no cover - exercised through mocks on non-Windows platforms.
    import winreg
except ImportError:  # pragma: no cover - handled gracefully during tests.
    winreg = None  # type: ignore[assignment]


def _ensure_winreg() -> None:
    if winreg is None:  # pragma: no cover - simplifies non-Windows test runs.
        raise FileNotFoundError("Windows registry APIs are unavailable on this platform")


@contextmanager
def open_key(root: int, path: str, access: int | None = None) -> Iterator[Any]:
    """!
    @brief Context manager mirroring ``winreg.OpenKey`` that always closes the handle.
    """

    _ensure_winreg()
    access_mask = access if access is not None else winreg.KEY_READ  # type: ignore[union-attr]
    handle = winreg.OpenKey(root, path, 0, access_mask)  # type: ignore[union-attr]
    try:
        yield handle
    finally:
        winreg.CloseKey(handle)  # type: ignore[union-attr]


def iter_subkeys(root: int, path: str) -> Iterator[str]:
    """!
    @brief Yield subkey names for ``root``/``path``.
    """

    with open_key(root, path) as handle:
        subkey_count, _, _ = winreg.QueryInfoKey(handle)  # type: ignore[union-attr]
        for index in range(subkey_count):
            yield winreg.EnumKey(handle, index)  # type: ignore[union-attr]


def get_value(root: int, path: str, value_name: str, default: Any | None = None) -> Any | None:
    """!
    @brief Read ``value_name`` beneath ``root``/``path`` or return ``default``.
    """

    try:
        with open_key(root, path) as handle:
            value, _ = winreg.QueryValueEx(handle, value_name)  # type: ignore[union-attr]
            return value
    except OSError:
        return default


def hive_name(root: int) -> str:
    """!
    @brief Friendly identifier for a registry hive, used in log messages.
    """

    mapping = {
        getattr(winreg, "HKEY_LOCAL_MACHINE", 0x80000002): "HKLM",
        getattr(winreg, "HKEY_CURRENT_USER", 0x80000001): "HKCU",
        getattr(winreg, "HKEY_USERS", 0x80000003): "HKU",
        getattr(winreg, "HKEY_CLASSES_ROOT", 0x80000000): "HKCR",
    }
    return mapping.get(root, hex(root))


__all__ = ["get_value", "hive_name", "iter_subkeys", "open_key"]
