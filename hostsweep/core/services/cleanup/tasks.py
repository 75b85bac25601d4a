"""
Cleanup tasks — maintenance that does not depend on the package manager.

Each task turns config scalars into a ``CommandPlan`` of the same shape
the resolver produces, so the orchestrator runs everything the same
way. A task whose tool is missing yields a no-op plan with a note.

Snap and locale pruning are two-phase: a read-only listing is parsed
first, then removal commands are built for what the listing selected.
"""

from __future__ import annotations

import logging
import shutil
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

from hostsweep.core.models.manager import PlanParams
from hostsweep.core.models.plan import CommandPlan, CommandStep, StepReceipt
from hostsweep.core.services.package_manager.detection import Which

logger = logging.getLogger(__name__)

QueryRunner = Callable[[CommandStep], StepReceipt]
TaskBuilder = Callable[[PlanParams, QueryRunner], CommandPlan]


@dataclass(frozen=True)
class CleanupTask:
    """A named, independently toggled cleanup collaborator."""

    name: str
    label: str
    binary: str
    build: TaskBuilder

    def plan(self, params: PlanParams, query: QueryRunner, which: Which | None = None) -> CommandPlan:
        lookup = which or shutil.which
        if not lookup(self.binary):
            return CommandPlan.noop(self.label, f"{self.binary} not installed; skipped.")
        return self.build(params, query)


# ── Flatpak ─────────────────────────────────────────────────────


def _flatpak(params: PlanParams, query: QueryRunner) -> CommandPlan:
    return CommandPlan(
        label="Remove unused Flatpak runtimes",
        steps=[CommandStep(program="flatpak", args=["uninstall", "--unused", "-y"], needs_sudo=False)],
    )


# ── Snap ────────────────────────────────────────────────────────

SNAP_LIST = CommandStep(program="snap", args=["list", "--all"], needs_sudo=False)


def parse_disabled_snaps(output: str) -> list[tuple[str, str]]:
    """Return ``(name, revision)`` for every disabled revision in ``snap list --all``.

    Columns: Name Version Rev Tracking Publisher Notes. The header row and
    rows without a ``disabled`` note are skipped.
    """
    disabled: list[tuple[str, str]] = []
    for line in output.splitlines()[1:]:
        parts = line.split()
        if len(parts) < 6:
            continue
        if "disabled" in parts[-1].split(","):
            disabled.append((parts[0], parts[2]))
    return disabled


def _snap(params: PlanParams, query: QueryRunner) -> CommandPlan:
    label = "Remove disabled snap revisions"
    receipt = query(SNAP_LIST)
    if receipt.failed:
        logger.warning("snap listing failed: %s", receipt.error)
        return CommandPlan.noop(label, "Could not list snaps; skipped.")

    disabled = parse_disabled_snaps(receipt.output)
    if not disabled:
        return CommandPlan.noop(label, "No disabled snap revisions.")

    return CommandPlan(
        label=label,
        steps=[
            CommandStep(program="snap", args=["remove", name, f"--revision={rev}"])
            for name, rev in disabled
        ],
    )


# ── Docker ──────────────────────────────────────────────────────


def _docker(params: PlanParams, query: QueryRunner) -> CommandPlan:
    return CommandPlan(
        label="Prune unused Docker data",
        steps=[CommandStep(program="docker", args=["system", "prune", "-f"])],
    )


# ── Journal ─────────────────────────────────────────────────────


def _journal(params: PlanParams, query: QueryRunner) -> CommandPlan:
    return CommandPlan(
        label="Vacuum systemd journal",
        steps=[CommandStep(program="journalctl", args=[f"--vacuum-time={params.journal_retention}"])],
    )


# ── Filesystem sweeps ───────────────────────────────────────────


def _age_filter(days: int) -> list[str]:
    """``find`` age predicate; 0 days means no age limit."""
    return ["-mtime", f"+{days}"] if days > 0 else []


def _tmp(params: PlanParams, query: QueryRunner) -> CommandPlan:
    age = _age_filter(params.tmp_max_age_days)
    # Files disappear under us while other processes run; find then exits 1.
    # Deleting files bumps the parent mtime, so empty dirs go regardless of age.
    return CommandPlan(
        label="Sweep /tmp",
        steps=[
            CommandStep(
                program="find",
                args=["/tmp", "-mindepth", "1", "-type", "f", *age, "-delete"],
                tolerate_nonzero_exit=True,
            ),
            CommandStep(
                program="find",
                args=["/tmp", "-mindepth", "1", "-type", "d", "-empty", "-delete"],
                tolerate_nonzero_exit=True,
            ),
        ],
    )


def _thumbnails(params: PlanParams, query: QueryRunner) -> CommandPlan:
    label = "Clear thumbnail cache"
    cache = Path.home() / ".cache" / "thumbnails"
    if not cache.is_dir():
        return CommandPlan.noop(label, f"{cache} does not exist.")
    return CommandPlan(
        label=label,
        steps=[
            CommandStep(
                program="find",
                args=[str(cache), "-mindepth", "1", "-type", "f", *_age_filter(params.cache_max_age_days), "-delete"],
                needs_sudo=False,
            ),
        ],
    )


def _rotated_logs(params: PlanParams, query: QueryRunner) -> CommandPlan:
    return CommandPlan(
        label="Delete rotated logs in /var/log",
        steps=[
            CommandStep(
                program="find",
                args=["/var/log", "-type", "f", "(", "-name", "*.gz", "-o", "-name", "*.1", ")", "-delete"],
            ),
        ],
    )


# ── Locales ─────────────────────────────────────────────────────

LOCALE_LIST = CommandStep(program="localedef", args=["--list-archive"], needs_sudo=False)


def select_locales_for_removal(names: list[str], keep: list[str]) -> list[str]:
    """Locale archive entries not covered by ``keep``.

    ``en_US`` keeps ``en_US``, ``en_US.utf8`` and ``en_US@euro``.
    """

    def kept(name: str) -> bool:
        return any(name == k or name.startswith((f"{k}.", f"{k}@")) for k in keep)

    return [n for n in names if n and not kept(n)]


def _locales(params: PlanParams, query: QueryRunner) -> CommandPlan:
    label = "Prune locale archive"
    receipt = query(LOCALE_LIST)
    if receipt.failed:
        return CommandPlan.noop(label, "Could not list the locale archive; skipped.")

    names = [line.strip() for line in receipt.output.splitlines()]
    doomed = select_locales_for_removal(names, params.keep_locales)
    if not doomed:
        return CommandPlan.noop(label, "No locales outside the keep list.")

    return CommandPlan(
        label=label,
        steps=[CommandStep(program="localedef", args=["--delete-from-archive", *doomed])],
    )


# ── Registry (execution order) ──────────────────────────────────

CLEANUP_TASKS: tuple[CleanupTask, ...] = (
    CleanupTask("flatpak", "Remove unused Flatpak runtimes", "flatpak", _flatpak),
    CleanupTask("snap", "Remove disabled snap revisions", "snap", _snap),
    CleanupTask("docker", "Prune unused Docker data", "docker", _docker),
    CleanupTask("journal", "Vacuum systemd journal", "journalctl", _journal),
    CleanupTask("tmp", "Sweep /tmp", "find", _tmp),
    CleanupTask("thumbnails", "Clear thumbnail cache", "find", _thumbnails),
    CleanupTask("rotated_logs", "Delete rotated logs in /var/log", "find", _rotated_logs),
    CleanupTask("locales", "Prune locale archive", "localedef", _locales),
)

TASK_NAMES: tuple[str, ...] = tuple(t.name for t in CLEANUP_TASKS)


def get_task(name: str) -> CleanupTask | None:
    for task in CLEANUP_TASKS:
        if task.name == name:
            return task
    return None
