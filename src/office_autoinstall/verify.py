"""!
@brief Post-install verification through the uninstall registry.
@details A successful ODT run registers the suite under the machine-wide
uninstall roots. Absence is reported as a warning only: custom configuration
documents may install products whose display name does not carry the
expected substring.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Tuple

from . import constants, logging_ext, registry_tools


@dataclass(frozen=True)
class VerificationResult:
    """!
    @brief Outcome of :func:`verify_installation`.
    """

    found: bool
    display_name: str | None = None
    registry_path: str | None = None


def _iter_display_names(roots: Iterable[Tuple[int, str]]) -> Iterable[Tuple[str, str]]:
    for root, path in roots:
        try:
            subkeys = list(registry_tools.iter_subkeys(root, path))
        except OSError:
            logging_ext.get_human_logger().debug(
                "Skipping unreadable registry root %s\\%s",
                registry_tools.hive_name(root),
                path,
            )
            continue
        for subkey in subkeys:
            entry_path = f"{path}\\{subkey}"
            name = registry_tools.get_value(root, entry_path, "DisplayName")
            if name:
                yield str(name), f"{registry_tools.hive_name(root)}\\{entry_path}"


def find_installed_product(
    substring: str = constants.PRODUCT_DISPLAY_SUBSTRING,
    roots: Iterable[Tuple[int, str]] = constants.UNINSTALL_ROOTS,
) -> VerificationResult:
    """!
    @brief Return the first uninstall entry whose ``DisplayName`` contains ``substring``.
    @details Matching is case-insensitive.
    """

    needle = substring.casefold()
    for name, entry_path in _iter_display_names(roots):
        if needle in name.casefold():
            return VerificationResult(found=True, display_name=name, registry_path=entry_path)
    return VerificationResult(found=False)


def verify_installation(
    substring: str = constants.PRODUCT_DISPLAY_SUBSTRING,
    roots: Iterable[Tuple[int, str]] = constants.UNINSTALL_ROOTS,
) -> VerificationResult:
    """!
    @brief Log whether the installed product is registered; never raises.
    """

    human_logger = logging_ext.get_human_logger()
    machine_logger = logging_ext.get_machine_logger()

    result = find_installed_product(substring, roots)
    if result.found:
        human_logger.info("Installation verified: %s", result.display_name)
    else:
        human_logger.warning(
            "No installed product matching %r was found in the registry; "
            "this is expected when a custom configuration installs other products",
            substring,
        )
    machine_logger.info(
        "verify_result",
        extra=logging_ext.event_extra(
            "verify_result",
            found=result.found,
            display_name=result.display_name,
            registry_path=result.registry_path,
        ),
    )
    return result


__all__ = ["VerificationResult", "find_installed_product", "verify_installation"]
