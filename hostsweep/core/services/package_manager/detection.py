"""
Package manager detection.

Read-only probe: asks whether each manager's primary executable is on
PATH, in a fixed priority order, and returns the first hit. Never
raises: an unusable host is reported as ``ManagerKind.UNKNOWN``.
"""

from __future__ import annotations

import logging
import shutil
from collections.abc import Callable

from hostsweep.core.models.manager import ManagerKind

logger = logging.getLogger(__name__)

Which = Callable[[str], "str | None"]

# Priority order. yum sits below dnf, so a host carrying both
# (RHEL 8+, where yum is a dnf shim) always resolves to DNF.
PROBE_ORDER: tuple[tuple[ManagerKind, str], ...] = (
    (ManagerKind.APT, "apt-get"),
    (ManagerKind.DNF, "dnf"),
    (ManagerKind.YUM, "yum"),
    (ManagerKind.ZYPPER, "zypper"),
    (ManagerKind.NIX, "nix-env"),
)


def detect(which: Which | None = None) -> ManagerKind:
    """Return the highest-priority package manager present on this host.

    Args:
        which: Executable lookup (defaults to ``shutil.which``). Tests
               pass a fake to simulate a set of installed binaries.

    Returns:
        The detected ``ManagerKind``, or ``ManagerKind.UNKNOWN``.
    """
    lookup = which or shutil.which

    for kind, binary in PROBE_ORDER:
        try:
            found = lookup(binary)
        except OSError as exc:
            logger.warning("Probe for %s failed: %s", binary, exc)
            continue
        if found:
            logger.debug("Detected %s via %s", kind.value, found)
            return kind

    logger.info("No supported package manager found on PATH")
    return ManagerKind.UNKNOWN


def available_binaries(which: Which | None = None) -> dict[str, bool]:
    """Report presence of every probed binary (for ``hostsweep detect``)."""
    lookup = which or shutil.which
    report: dict[str, bool] = {}
    for _, binary in PROBE_ORDER:
        try:
            report[binary] = bool(lookup(binary))
        except OSError as exc:
            logger.warning("Probe for %s failed: %s", binary, exc)
            report[binary] = False
    return report
