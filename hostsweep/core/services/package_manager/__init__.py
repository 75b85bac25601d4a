"""
Package manager resolver — detection + operation table.

    from hostsweep.core.services.package_manager import resolve

    resolution = resolve()
    plan = resolution.plan_for(Operation.UPDATE_REPOS)
"""

from __future__ import annotations

from hostsweep.core.services.package_manager.detection import (  # noqa: F401
    PROBE_ORDER,
    Which,
    available_binaries,
    detect,
)
from hostsweep.core.services.package_manager.kernels import (  # noqa: F401
    parse_kernel_listing,
    query_installed_kernels,
    select_kernels_for_removal,
)
from hostsweep.core.services.package_manager.plans import (  # noqa: F401
    PLAN_TABLE,
    ResolutionResult,
    plan_for,
)


def resolve(which: Which | None = None) -> ResolutionResult:
    """Detect the package manager once and bind it to the operation table."""
    return ResolutionResult(kind=detect(which))
