"""
Old-kernel pruning — query phase and selection phase.

The query phase reads the installed kernel packages with their build
times. The selection phase is pure: sort ascending, keep the newest N,
hand back the rest. Nothing is ever removed without a fresh query.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable

from hostsweep.core.models.manager import KernelEntry, ManagerKind
from hostsweep.core.models.plan import CommandStep, StepReceipt

logger = logging.getLogger(__name__)

# Kinds whose kernel removal is an explicit, inventory-driven plan.
RPM_KINDS = frozenset({ManagerKind.DNF, ManagerKind.YUM})

# kernel-core carries the vmlinuz on Fedora/RHEL 8+, where "kernel" is a
# meta package sharing its build time. Older releases only ship "kernel".
# Query one name at a time so a version is never counted twice.
KERNEL_PACKAGES: tuple[str, ...] = ("kernel-core", "kernel")


def kernel_query(package: str) -> CommandStep:
    """Build the read-only rpm query for one kernel package name."""
    return CommandStep(
        program="rpm",
        args=[
            "-q",
            package,
            "--queryformat",
            "%{NAME}-%{VERSION}-%{RELEASE}.%{ARCH} %{BUILDTIME}\\n",
        ],
        tolerate_nonzero_exit=True,  # rpm exits 1 when the package is absent
        needs_sudo=False,
        description=f"List installed {package} packages",
    )


def parse_kernel_listing(output: str) -> list[KernelEntry]:
    """Parse ``NAME BUILDTIME`` lines from the rpm query.

    Lines rpm emits for absent packages ("package kernel is not
    installed") and anything else malformed are skipped. Duplicate
    names keep their first occurrence.
    """
    entries: list[KernelEntry] = []
    seen: set[str] = set()

    for line in output.splitlines():
        parts = line.split()
        if len(parts) != 2 or not parts[1].isdigit():
            continue
        name, build_time = parts[0], int(parts[1])
        if name in seen:
            continue
        seen.add(name)
        entries.append(KernelEntry(name=name, build_time=build_time))

    return entries


def select_kernels_for_removal(
    candidates: Iterable[KernelEntry],
    keep: int,
) -> list[KernelEntry]:
    """Pick the kernels to remove, oldest first.

    Sort ascending by build time (name breaks ties, so the order is
    total), drop the ``keep`` most recent, return the remainder.

    Args:
        candidates: Installed kernels from the query phase.
        keep: How many of the newest kernels to retain.

    Returns:
        At most ``max(0, len(candidates) - keep)`` entries, none of which
        is among the ``keep`` newest.
    """
    ordered = sorted(candidates, key=lambda k: (k.build_time, k.name))
    keep = max(keep, 0)
    if keep >= len(ordered):
        return []
    return ordered[: len(ordered) - keep]


def query_installed_kernels(
    kind: ManagerKind,
    run: Callable[[CommandStep], StepReceipt],
) -> list[KernelEntry] | None:
    """Run the query phase for managers that need it.

    Args:
        kind: Detected manager.
        run: Step runner (usually ``hostsweep.core.engine.runner.run_step``
             bound with the run's options). Must run even in dry-run mode,
             since the query is read-only.

    Returns:
        Installed kernels, or ``None`` when ``kind`` does not use an
        inventory or the query could not be run.
    """
    if kind not in RPM_KINDS:
        return None

    kernels: list[KernelEntry] = []
    for package in KERNEL_PACKAGES:
        receipt = run(kernel_query(package))
        if receipt.failed:
            logger.warning("Kernel inventory failed: %s", receipt.error or receipt.output)
            return None
        kernels = parse_kernel_listing(receipt.output)
        if kernels:
            break

    logger.info("Found %d installed kernel package(s)", len(kernels))
    return kernels
