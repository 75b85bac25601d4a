"""
Step runner — the single place where ``subprocess.run`` is called.

Every external command hostsweep issues goes through ``run_step``.
Privilege elevation, timeouts, output capture and exit-status
classification all live here.

Sudo handling:
- Already root → command runs as-is
- Password given → ``sudo -S -k``, password piped via stdin only
- Otherwise → plain ``sudo`` (prompts on the controlling terminal)
The password is never logged and never appears in command args.

sudo resets the environment, so a step's ``env`` is re-applied after
the sudo prefix with ``env VAR=value``. Commands never read the
terminal: stdin is either the piped password or ``/dev/null``.
"""

from __future__ import annotations

import logging
import os
import subprocess
import time
from collections.abc import Callable

from hostsweep.core.errors import CommandExecutionFailed
from hostsweep.core.models.plan import CommandPlan, CommandStep, StepReceipt

logger = logging.getLogger(__name__)

OUTPUT_TAIL = 2000

StepRunner = Callable[[CommandStep], StepReceipt]


def _is_root() -> bool:
    return os.geteuid() == 0


def build_argv(step: CommandStep, *, sudo_password: str = "") -> list[str]:
    """Final argv for a step, with the sudo prefix applied if needed."""
    if not step.needs_sudo or _is_root():
        return step.argv
    argv = step.argv
    if step.env:
        argv = ["env", *(f"{key}={value}" for key, value in step.env.items()), *argv]
    if sudo_password:
        return ["sudo", "-S", "-k", *argv]
    return ["sudo", *argv]


def _tail(text: str | None, limit: int | None) -> str:
    if not text:
        return ""
    return text if limit is None else text[-limit:]


def run_step(
    step: CommandStep,
    *,
    dry_run: bool = False,
    timeout: int = 1800,
    sudo_password: str = "",
    output_limit: int | None = OUTPUT_TAIL,
) -> StepReceipt:
    """Run one step to completion and classify the result.

    Never raises for a bad exit status; the outcome is in the receipt:

    - exit 0 → ``ok``
    - non-zero with ``tolerate_nonzero_exit`` → ``tolerated``
    - non-zero otherwise, timeout, missing executable → ``failed``
    - ``dry_run`` → ``skipped`` (nothing executed)

    Args:
        step: Command to run.
        dry_run: Report the command line without running it.
        timeout: Seconds before the command is killed.
        sudo_password: Optional sudo password (piped to stdin).
        output_limit: Keep only the last N characters of stdout
            (``None`` keeps everything; query phases use it).
    """
    argv = build_argv(step, sudo_password=sudo_password)
    command = step.command_line

    if dry_run:
        logger.info("[dry-run] %s", " ".join(argv))
        return StepReceipt(command=command, status="skipped", output="dry run")

    logger.info("Running: %s", command)
    stdin_data = (sudo_password + "\n") if argv[:2] == ["sudo", "-S"] else None
    stdin = {"input": stdin_data} if stdin_data is not None else {"stdin": subprocess.DEVNULL}

    env = os.environ.copy()
    env.update(step.env)

    start = time.monotonic()
    try:
        result = subprocess.run(
            argv,
            capture_output=True,
            text=True,
            timeout=timeout,
            env=env,
            **stdin,
        )
    except subprocess.TimeoutExpired:
        logger.error("Timed out after %ss: %s", timeout, command)
        return StepReceipt(
            command=command,
            status="failed",
            duration_ms=int((time.monotonic() - start) * 1000),
            error=f"Command timed out ({timeout}s)",
        )
    except FileNotFoundError:
        logger.error("Executable not found: %s", argv[0])
        return StepReceipt(command=command, status="failed", error=f"Executable not found: {argv[0]}")
    except OSError as exc:
        logger.exception("Subprocess error: %s", command)
        return StepReceipt(command=command, status="failed", error=str(exc))

    elapsed_ms = int((time.monotonic() - start) * 1000)
    stdout = _tail(result.stdout, output_limit)
    stderr = _tail(result.stderr, OUTPUT_TAIL)

    if stdout:
        logger.debug("stdout of %s:\n%s", step.program, stdout)

    if result.returncode == 0:
        return StepReceipt(command=command, status="ok", exit_code=0, duration_ms=elapsed_ms, output=stdout)

    if step.tolerate_nonzero_exit:
        logger.info("%s exited %d (tolerated)", step.program, result.returncode)
        return StepReceipt(
            command=command,
            status="tolerated",
            exit_code=result.returncode,
            duration_ms=elapsed_ms,
            output=stdout,
        )

    if step.needs_sudo and ("incorrect password" in stderr.lower() or "sorry" in stderr.lower()):
        error = "sudo authentication failed"
    else:
        error = stderr.strip().splitlines()[-1] if stderr.strip() else f"exit {result.returncode}"

    logger.warning("%s failed (exit %d): %s", step.program, result.returncode, error)
    return StepReceipt(
        command=command,
        status="failed",
        exit_code=result.returncode,
        duration_ms=elapsed_ms,
        output=stdout,
        error=error,
    )


def execute_plan(
    plan: CommandPlan,
    *,
    run: StepRunner | None = None,
    dry_run: bool = False,
    timeout: int = 1800,
    sudo_password: str = "",
) -> list[StepReceipt]:
    """Run a plan's steps in order, blocking on each.

    Args:
        plan: Plan to run.
        run: Step runner to use instead of ``run_step`` (the remaining
            options are ignored when given).

    Raises:
        CommandExecutionFailed: on the first step that failed and was not
            tolerable. ``exc.receipts`` holds every receipt so far.
    """
    receipts: list[StepReceipt] = []

    if plan.is_noop:
        logger.info("%s: nothing to do (%s)", plan.label, plan.note)
        return receipts

    for step in plan.steps:
        if run is not None:
            receipt = run(step)
        else:
            receipt = run_step(step, dry_run=dry_run, timeout=timeout, sudo_password=sudo_password)
        receipts.append(receipt)
        if receipt.failed:
            raise CommandExecutionFailed(receipt, receipts)

    return receipts
