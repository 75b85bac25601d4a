"""
Operation table — (ManagerKind, Operation) → CommandPlan.

Pure mapping, no I/O. Every supported manager has an entry for every
operation; where an operation is folded into another one (APT and NIX
kernel removal) the entry is an explicit no-op plan with a note.

Anything that depends on live system state (installed kernels) arrives
through ``PlanParams``, already queried by the caller.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass

from hostsweep.core.errors import NoSupportedManager, UnsupportedOperation
from hostsweep.core.models.manager import ManagerKind, Operation, PlanParams
from hostsweep.core.models.plan import CommandPlan, CommandStep
from hostsweep.core.services.package_manager.kernels import select_kernels_for_removal

logger = logging.getLogger(__name__)

PlanBuilder = Callable[[PlanParams], CommandPlan]


def _step(
    program: str,
    *args: str,
    tolerate: bool = False,
    sudo: bool = True,
    env: dict[str, str] | None = None,
    desc: str = "",
) -> CommandStep:
    return CommandStep(
        program=program,
        args=list(args),
        tolerate_nonzero_exit=tolerate,
        needs_sudo=sudo,
        env=env or {},
        description=desc,
    )


# dpkg must never stop to ask about a changed conffile: keep the local
# version unless the package default is unambiguous.
_APT_ENV = {"DEBIAN_FRONTEND": "noninteractive"}
_DPKG_OPTS = ("-o", "Dpkg::Options::=--force-confdef", "-o", "Dpkg::Options::=--force-confold")


def _apt(*args: str) -> CommandStep:
    return _step("apt-get", *args, *_DPKG_OPTS, env=_APT_ENV)


def _fixed(op: Operation, *steps: CommandStep) -> PlanBuilder:
    """Builder for a plan that does not depend on params."""

    def build(params: PlanParams) -> CommandPlan:
        return CommandPlan(label=op.label, steps=list(steps))

    return build


def _noop(op: Operation, note: str) -> PlanBuilder:
    def build(params: PlanParams) -> CommandPlan:
        return CommandPlan.noop(op.label, note)

    return build


# ── Builders that read params ───────────────────────────────────


def _apt_clean(params: PlanParams) -> CommandPlan:
    steps = [_step("apt-get", "clean")]
    if params.purge_apt_lists:
        steps.append(_step(
            "find", "/var/lib/apt/lists", "-type", "f", "-delete",
            desc="Purge downloaded package lists",
        ))
    return CommandPlan(label=Operation.CLEAN_CACHE.label, steps=steps)


def _nix_orphans(params: PlanParams) -> CommandPlan:
    return CommandPlan(
        label=Operation.REMOVE_ORPHANS.label,
        steps=[_step("nix-collect-garbage", "--delete-older-than", params.nix_gc_older_than)],
    )


def _rpm_kernels(program: str) -> PlanBuilder:
    """Two-phase kernel removal for dnf/yum.

    Selection runs over ``params.installed_kernels``; the running kernel
    is filtered out of the targets as a last guard.
    """

    def build(params: PlanParams) -> CommandPlan:
        label = Operation.REMOVE_OLD_KERNELS.label
        if params.installed_kernels is None:
            return CommandPlan.noop(label, "No kernel inventory supplied; nothing removed.")

        targets = select_kernels_for_removal(params.installed_kernels, params.kernels_to_keep)
        if params.running_kernel:
            targets = [k for k in targets if params.running_kernel not in k.name]

        if not targets:
            return CommandPlan.noop(
                label,
                f"No kernels older than the newest {params.kernels_to_keep} installed.",
            )

        return CommandPlan(
            label=label,
            steps=[_step(program, "-y", "remove", *(k.name for k in targets))],
        )

    return build


# ── The table ───────────────────────────────────────────────────

_U, _G, _O, _C, _K = (
    Operation.UPDATE_REPOS,
    Operation.UPGRADE_PACKAGES,
    Operation.REMOVE_ORPHANS,
    Operation.CLEAN_CACHE,
    Operation.REMOVE_OLD_KERNELS,
)

# check-update exits 100 when updates are available.
PLAN_TABLE: dict[tuple[ManagerKind, Operation], PlanBuilder] = {
    # APT
    (ManagerKind.APT, _U): _fixed(_U, _step("apt-get", "update")),
    (ManagerKind.APT, _G): _fixed(_G, _apt("-y", "upgrade")),
    (ManagerKind.APT, _O): _fixed(_O, _apt("-y", "autoremove", "--purge")),
    (ManagerKind.APT, _C): _apt_clean,
    (ManagerKind.APT, _K): _noop(_K, "Old kernels are removed by 'apt-get autoremove --purge'."),
    # DNF
    (ManagerKind.DNF, _U): _fixed(_U, _step("dnf", "check-update", tolerate=True)),
    (ManagerKind.DNF, _G): _fixed(_G, _step("dnf", "-y", "upgrade")),
    (ManagerKind.DNF, _O): _fixed(_O, _step("dnf", "-y", "autoremove")),
    (ManagerKind.DNF, _C): _fixed(_C, _step("dnf", "clean", "packages")),
    (ManagerKind.DNF, _K): _rpm_kernels("dnf"),
    # YUM
    (ManagerKind.YUM, _U): _fixed(_U, _step("yum", "check-update", tolerate=True)),
    (ManagerKind.YUM, _G): _fixed(_G, _step("yum", "-y", "update")),
    (ManagerKind.YUM, _O): _fixed(_O, _step("yum", "-y", "autoremove")),
    (ManagerKind.YUM, _C): _fixed(_C, _step("yum", "clean", "all")),
    (ManagerKind.YUM, _K): _rpm_kernels("yum"),
    # ZYPPER
    (ManagerKind.ZYPPER, _U): _fixed(_U, _step("zypper", "--non-interactive", "refresh")),
    (ManagerKind.ZYPPER, _G): _fixed(_G, _step("zypper", "--non-interactive", "update")),
    (ManagerKind.ZYPPER, _O): _fixed(_O, _step(
        "zypper", "--non-interactive", "packages", "--unneeded",
        tolerate=True, sudo=False, desc="List packages no longer required",
    )),
    (ManagerKind.ZYPPER, _C): _fixed(_C, _step("zypper", "clean", "--all")),
    (ManagerKind.ZYPPER, _K): _fixed(_K, _step("zypper", "--non-interactive", "purge-kernels")),
    # NIX
    (ManagerKind.NIX, _U): _fixed(_U, _step("nix-channel", "--update")),
    (ManagerKind.NIX, _G): _fixed(_G, _step("nix-env", "--upgrade")),
    (ManagerKind.NIX, _O): _nix_orphans,
    (ManagerKind.NIX, _C): _fixed(_C, _step("nix-store", "--gc")),
    (ManagerKind.NIX, _K): _noop(_K, "Old generations (and their kernels) go with nix-collect-garbage."),
}


def plan_for(kind: ManagerKind, op: Operation, params: PlanParams | None = None) -> CommandPlan:
    """Look up the command plan for a logical operation.

    Args:
        kind: Detected package manager.
        op: Logical operation.
        params: Plan scalars (defaults apply when omitted).

    Returns:
        The plan. May be empty for a legitimate no-op, in which case
        ``plan.note`` explains why.

    Raises:
        NoSupportedManager: ``kind`` is ``UNKNOWN``.
        UnsupportedOperation: no mapping for ``(kind, op)``.
    """
    if kind is ManagerKind.UNKNOWN:
        raise NoSupportedManager()

    builder = PLAN_TABLE.get((kind, op))
    if builder is None:
        raise UnsupportedOperation(f"No '{op.value}' mapping for {kind.value}")

    plan = builder(params or PlanParams())
    logger.debug("Plan for %s/%s: %d step(s)", kind.value, op.value, len(plan.steps))
    return plan


@dataclass(frozen=True)
class ResolutionResult:
    """A detected manager bound to the operation table.

    Computed once per run; immutable afterwards.
    """

    kind: ManagerKind

    @property
    def supported(self) -> bool:
        return self.kind.supported

    def plan_for(self, op: Operation, params: PlanParams | None = None) -> CommandPlan:
        return plan_for(self.kind, op, params)
