"""
Plan and Receipt models — the execution contract.

A ``CommandPlan`` is what the resolver (or a cleanup task) wants run.
A ``StepReceipt`` is what actually happened when the runner ran one
``CommandStep``. The runner never raises for a bad exit status;
failures are captured in the receipt.
"""

from __future__ import annotations

import shlex
from typing import Literal

from pydantic import BaseModel, Field


class CommandStep(BaseModel):
    """A single external command invocation.

    ``tolerate_nonzero_exit`` marks tools that report "nothing to do"
    (or "updates available") through a non-zero exit status. ``env`` is
    laid over the caller's environment for this command only.
    """

    program: str
    args: list[str] = Field(default_factory=list)
    tolerate_nonzero_exit: bool = False
    needs_sudo: bool = True
    env: dict[str, str] = Field(default_factory=dict)
    description: str = ""

    @property
    def argv(self) -> list[str]:
        return [self.program, *self.args]

    @property
    def command_line(self) -> str:
        return shlex.join(self.argv)


class CommandPlan(BaseModel):
    """An ordered list of steps for one logical intent.

    An empty plan is a legitimate no-op and always carries a ``note``
    explaining why nothing will run.
    """

    label: str
    steps: list[CommandStep] = Field(default_factory=list)
    note: str = ""

    @property
    def is_noop(self) -> bool:
        return not self.steps

    @classmethod
    def noop(cls, label: str, note: str) -> CommandPlan:
        return cls(label=label, steps=[], note=note)

    def to_dict(self) -> dict:
        return {
            "label": self.label,
            "note": self.note,
            "steps": [
                {
                    "command": s.command_line,
                    "sudo": s.needs_sudo,
                    "tolerate_nonzero_exit": s.tolerate_nonzero_exit,
                    "env": dict(s.env),
                }
                for s in self.steps
            ],
        }


StepStatus = Literal["ok", "tolerated", "failed", "skipped"]


class StepReceipt(BaseModel):
    """Outcome of running one ``CommandStep``."""

    command: str
    status: StepStatus = "ok"
    exit_code: int | None = None
    duration_ms: int = 0
    output: str = ""
    error: str | None = None

    @property
    def ok(self) -> bool:
        """Whether the step counts as a success (tolerated exits included)."""
        return self.status in ("ok", "tolerated", "skipped")

    @property
    def failed(self) -> bool:
        return self.status == "failed"
