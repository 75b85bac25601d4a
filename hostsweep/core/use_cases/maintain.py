"""
Maintenance use case — the orchestrator.

Flow:
    detect (once) → update → upgrade → remove-orphans → clean-cache
    → remove-old-kernels → cleanup tasks

Each stage becomes a ``StageReport``. A failed stage is recorded and
the pipeline moves on, unless stop-on-error is in effect. Cleanup tasks
do not depend on the resolver, so they still run on a host with no
supported package manager.
"""

from __future__ import annotations

import logging
import platform
from collections.abc import Callable
from dataclasses import dataclass, field
from functools import partial

from hostsweep.core.engine.runner import StepRunner, execute_plan, run_step
from hostsweep.core.errors import CommandExecutionFailed, NoSupportedManager, UnsupportedOperation
from hostsweep.core.models.config import MaintenanceConfig
from hostsweep.core.models.manager import PIPELINE, ManagerKind, Operation, PlanParams
from hostsweep.core.models.plan import CommandPlan, StepReceipt
from hostsweep.core.services.cleanup import CLEANUP_TASKS, CleanupTask
from hostsweep.core.services.package_manager import (
    ResolutionResult,
    Which,
    query_installed_kernels,
    resolve,
)

logger = logging.getLogger(__name__)

STAGE_NAMES: tuple[str, ...] = tuple(op.value for op in PIPELINE) + tuple(t.name for t in CLEANUP_TASKS)


@dataclass
class StageReport:
    """One pipeline stage: its plan and what running it produced."""

    name: str
    label: str
    group: str = "manager"          # manager | cleanup
    plan: CommandPlan | None = None
    receipts: list[StepReceipt] = field(default_factory=list)
    error: str | None = None

    @property
    def failed(self) -> bool:
        return self.error is not None

    @property
    def status(self) -> str:
        if self.error is not None:
            return "failed"
        if self.plan is None or self.plan.is_noop:
            return "noop"
        if self.receipts and all(r.status == "skipped" for r in self.receipts):
            return "skipped"
        return "ok"

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "label": self.label,
            "group": self.group,
            "status": self.status,
            "note": self.plan.note if self.plan else "",
            "error": self.error,
            "receipts": [r.model_dump(mode="json") for r in self.receipts],
        }


@dataclass
class MaintenanceReport:
    """Result of a full maintenance run."""

    manager: ManagerKind = ManagerKind.UNKNOWN
    dry_run: bool = False
    stages: list[StageReport] = field(default_factory=list)
    error: str | None = None        # run-level error (no supported manager)
    aborted: bool = False

    @property
    def failed(self) -> int:
        return sum(1 for s in self.stages if s.failed) + (1 if self.error else 0)

    @property
    def succeeded(self) -> int:
        return sum(1 for s in self.stages if not s.failed)

    @property
    def status(self) -> str:
        if self.failed == 0:
            return "ok"
        if self.succeeded > 0:
            return "partial"
        return "failed"

    def to_dict(self) -> dict:
        return {
            "manager": self.manager.value,
            "dry_run": self.dry_run,
            "status": self.status,
            "error": self.error,
            "aborted": self.aborted,
            "succeeded": self.succeeded,
            "failed": self.failed,
            "stages": [s.to_dict() for s in self.stages],
        }


@dataclass
class MaintenancePlan:
    """Everything a run would do, without doing it."""

    manager: ManagerKind = ManagerKind.UNKNOWN
    stages: list[StageReport] = field(default_factory=list)
    error: str | None = None

    def to_dict(self) -> dict:
        return {
            "manager": self.manager.value,
            "error": self.error,
            "stages": [
                {"name": s.name, "group": s.group, "error": s.error, **(s.plan.to_dict() if s.plan else {})}
                for s in self.stages
            ],
        }


# ── Stage selection ─────────────────────────────────────────────


def select_stages(
    config: MaintenanceConfig,
    only: list[str] | None = None,
    skip: list[str] | None = None,
) -> tuple[list[Operation], list[CleanupTask]]:
    """Decide which operations and cleanup tasks run, in pipeline order.

    ``only`` names stages explicitly (overriding task toggles);
    ``skip`` removes stages. Unknown names raise ``ValueError``.
    """
    unknown = [n for n in (only or []) + (skip or []) if n not in STAGE_NAMES]
    if unknown:
        raise ValueError(f"Unknown stage(s): {', '.join(unknown)}")

    skipped = set(skip or [])
    wanted = set(only) if only else None
    enabled = set(config.tasks.enabled())

    ops = [
        op for op in PIPELINE
        if (wanted is None or op.value in wanted) and op.value not in skipped
    ]
    tasks = [
        t for t in CLEANUP_TASKS
        if (t.name in wanted if wanted is not None else t.name in enabled) and t.name not in skipped
    ]
    return ops, tasks


# ── Plan building ───────────────────────────────────────────────


def _query_runner(runner: Callable[..., StepReceipt], timeout: int) -> StepRunner:
    # Query phases are read-only, so they run even in dry-run mode.
    return partial(runner, dry_run=False, timeout=timeout, output_limit=None)


def _manager_plan(
    resolution: ResolutionResult,
    op: Operation,
    params: PlanParams,
    query: StepRunner,
) -> CommandPlan:
    if op is Operation.REMOVE_OLD_KERNELS:
        params = params.model_copy(update={
            "installed_kernels": query_installed_kernels(resolution.kind, query),
            "running_kernel": platform.release(),
        })
    return resolution.plan_for(op, params)


def plan_maintenance(
    config: MaintenanceConfig,
    *,
    only: list[str] | None = None,
    skip: list[str] | None = None,
    which: Which | None = None,
    kind: ManagerKind | None = None,
    runner: Callable[..., StepReceipt] = run_step,
) -> MaintenancePlan:
    """Build every stage's plan without executing any change.

    Args:
        config: Maintenance settings.
        only: Restrict to these stage names.
        skip: Drop these stage names.
        which: Executable lookup override (tests).
        kind: Force a manager instead of detecting one.
        runner: Step runner used for read-only query phases.
    """
    resolution = ResolutionResult(kind) if kind is not None else resolve(which)
    params = config.plan_params()
    query = _query_runner(runner, config.command_timeout)
    ops, tasks = select_stages(config, only, skip)

    result = MaintenancePlan(manager=resolution.kind)
    if ops and not resolution.supported:
        result.error = str(NoSupportedManager())
    elif ops:
        for op in ops:
            stage = StageReport(name=op.value, label=op.label)
            try:
                stage.plan = _manager_plan(resolution, op, params, query)
            except UnsupportedOperation as e:
                stage.error = str(e)
            result.stages.append(stage)

    for task in tasks:
        result.stages.append(StageReport(
            name=task.name,
            label=task.label,
            group="cleanup",
            plan=task.plan(params, query, which),
        ))
    return result


# ── Execution ───────────────────────────────────────────────────


def _run_stage(stage: StageReport, build: Callable[[], CommandPlan], execute: StepRunner) -> StageReport:
    logger.info("── %s", stage.label)
    try:
        stage.plan = build()
        stage.receipts = execute_plan(stage.plan, run=execute)
    except UnsupportedOperation as e:
        logger.error("%s: %s", stage.label, e)
        stage.error = str(e)
    except CommandExecutionFailed as e:
        logger.error("%s: %s", stage.label, e)
        stage.receipts = e.receipts
        stage.error = str(e)
    return stage


def run_maintenance(
    config: MaintenanceConfig,
    *,
    dry_run: bool = False,
    only: list[str] | None = None,
    skip: list[str] | None = None,
    stop_on_error: bool | None = None,
    sudo_password: str = "",
    which: Which | None = None,
    runner: Callable[..., StepReceipt] = run_step,
    on_stage: Callable[[StageReport], None] | None = None,
) -> MaintenanceReport:
    """Run the maintenance pipeline.

    Args:
        config: Maintenance settings.
        dry_run: Plan and report, but execute nothing that changes the host.
        only: Restrict to these stage names.
        skip: Drop these stage names.
        stop_on_error: Abort on the first failed stage. Defaults to
            ``not config.continue_on_error``.
        sudo_password: Optional sudo password for privileged steps.
        which: Executable lookup override (tests).
        runner: Step runner (tests inject a fake).
        on_stage: Called with each finished stage (CLI progress).

    Returns:
        MaintenanceReport with one StageReport per stage that ran.
    """
    stop = (not config.continue_on_error) if stop_on_error is None else stop_on_error
    ops, tasks = select_stages(config, only, skip)

    resolution = resolve(which)
    report = MaintenanceReport(manager=resolution.kind, dry_run=dry_run)
    logger.info("Package manager: %s", resolution.kind.value)

    params = config.plan_params()
    timeout = config.command_timeout
    query = _query_runner(runner, timeout)
    execute: StepRunner = partial(runner, dry_run=dry_run, timeout=timeout, sudo_password=sudo_password)

    def finish(stage: StageReport) -> bool:
        report.stages.append(stage)
        if on_stage is not None:
            on_stage(stage)
        if stage.failed and stop:
            report.aborted = True
        return report.aborted

    if ops and not resolution.supported:
        report.error = str(NoSupportedManager())
        logger.error(report.error)
        if stop:
            report.aborted = True
            return report
    elif ops:
        for op in ops:
            stage = _run_stage(
                StageReport(name=op.value, label=op.label),
                partial(_manager_plan, resolution, op, params, query),
                execute,
            )
            if finish(stage):
                return report

    for task in tasks:
        stage = _run_stage(
            StageReport(name=task.name, label=task.label, group="cleanup"),
            partial(task.plan, params, query, which),
            execute,
        )
        if finish(stage):
            return report

    logger.info("Maintenance finished: %s", report.status)
    return report
