"""
Error taxonomy.

Detection never raises: an unusable host is encoded as
``ManagerKind.UNKNOWN``. Errors appear when something asks the
resolver for a plan it cannot give, or when a step fails for real.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from hostsweep.core.models.plan import StepReceipt


class HostsweepError(Exception):
    """Base class for all hostsweep errors."""


class ConfigError(HostsweepError):
    """Raised when hostsweep.yml is invalid or unreadable."""


class UnsupportedOperation(HostsweepError):
    """A (manager, operation) pair has no mapping. A defect, not a runtime condition."""


class NoSupportedManager(UnsupportedOperation):
    """No known package manager binary was found on this host."""

    def __init__(self, message: str = "No supported package manager found on PATH."):
        super().__init__(message)


class CommandExecutionFailed(HostsweepError):
    """A step exited non-zero and was not marked as tolerable."""

    def __init__(self, receipt: StepReceipt, receipts: list[StepReceipt] | None = None):
        self.receipt = receipt
        self.receipts = receipts or [receipt]
        detail = receipt.error or f"exit {receipt.exit_code}"
        super().__init__(f"Command failed: {receipt.command} ({detail})")
