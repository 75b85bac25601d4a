"""
Maintenance config model — loaded from hostsweep.yml.

Every field has a default, so an empty (or absent) file is a valid
configuration.
"""

from __future__ import annotations

import re

from pydantic import BaseModel, Field, field_validator

from hostsweep.core.models.manager import PlanParams

# Units journalctl --vacuum-time accepts, e.g. 2d, 12h, 2days, "30 min"
_JOURNAL_SPAN = re.compile(
    r"^\d+\s*(us|usec|ms|msec|s|sec|seconds?|m|min|minutes?|h|hr|hours?"
    r"|d|days?|w|weeks?|M|months?|y|years?)$"
)
# nix-collect-garbage --delete-older-than only takes days
_NIX_SPAN = re.compile(r"^\d+d$")


class TaskToggles(BaseModel):
    """Which independent cleanup tasks run after the manager pipeline."""

    flatpak: bool = True
    snap: bool = True
    docker: bool = True
    journal: bool = True
    tmp: bool = True
    thumbnails: bool = True
    rotated_logs: bool = True
    locales: bool = False

    def enabled(self) -> list[str]:
        return [name for name, on in self.model_dump().items() if on]


class MaintenanceConfig(BaseModel):
    """Root configuration for a maintenance run."""

    kernels_to_keep: int = Field(default=1, ge=1)
    journal_retention: str = "2d"
    tmp_max_age_days: int = Field(default=7, ge=0)
    cache_max_age_days: int = Field(default=0, ge=0)
    nix_gc_older_than: str = "14d"
    purge_apt_lists: bool = False
    keep_locales: list[str] = Field(default_factory=lambda: ["en_US", "C"])

    continue_on_error: bool = True
    command_timeout: int = Field(default=1800, gt=0)

    tasks: TaskToggles = Field(default_factory=TaskToggles)

    @field_validator("journal_retention")
    @classmethod
    def _check_journal_span(cls, value: str) -> str:
        value = value.strip()
        if not _JOURNAL_SPAN.match(value):
            raise ValueError(f"not a time span: {value!r} (expected e.g. '2d', '12h')")
        return value

    @field_validator("nix_gc_older_than")
    @classmethod
    def _check_nix_span(cls, value: str) -> str:
        value = value.strip()
        if not _NIX_SPAN.match(value):
            raise ValueError(f"not a day count: {value!r} (expected e.g. '14d')")
        return value

    def plan_params(self) -> PlanParams:
        """Project the config onto the scalars plan builders consume."""
        return PlanParams(
            kernels_to_keep=self.kernels_to_keep,
            journal_retention=self.journal_retention,
            tmp_max_age_days=self.tmp_max_age_days,
            cache_max_age_days=self.cache_max_age_days,
            nix_gc_older_than=self.nix_gc_older_than,
            purge_apt_lists=self.purge_apt_lists,
            keep_locales=list(self.keep_locales),
        )
