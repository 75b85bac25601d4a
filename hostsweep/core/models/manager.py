"""
Manager model — which package manager runs this host, and what we ask of it.

``ManagerKind`` is chosen once per process by the resolver.
``Operation`` names the five logical intents the pipeline issues.
``PlanParams`` carries the small scalars some plans need.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field


class ManagerKind(str, Enum):
    """Package manager families the resolver knows how to drive."""

    APT = "apt"
    DNF = "dnf"
    YUM = "yum"
    ZYPPER = "zypper"
    NIX = "nix"
    UNKNOWN = "unknown"

    @property
    def supported(self) -> bool:
        return self is not ManagerKind.UNKNOWN


class Operation(str, Enum):
    """Logical maintenance intents, in pipeline order."""

    UPDATE_REPOS = "update"
    UPGRADE_PACKAGES = "upgrade"
    REMOVE_ORPHANS = "remove-orphans"
    CLEAN_CACHE = "clean-cache"
    REMOVE_OLD_KERNELS = "remove-old-kernels"

    @property
    def label(self) -> str:
        return _LABELS[self]


_LABELS: dict[Operation, str] = {
    Operation.UPDATE_REPOS: "Refresh package repositories",
    Operation.UPGRADE_PACKAGES: "Upgrade installed packages",
    Operation.REMOVE_ORPHANS: "Remove orphaned packages",
    Operation.CLEAN_CACHE: "Clean package cache",
    Operation.REMOVE_OLD_KERNELS: "Remove old kernels",
}

# Fixed execution order; later steps assume earlier ones finished.
PIPELINE: tuple[Operation, ...] = (
    Operation.UPDATE_REPOS,
    Operation.UPGRADE_PACKAGES,
    Operation.REMOVE_ORPHANS,
    Operation.CLEAN_CACHE,
    Operation.REMOVE_OLD_KERNELS,
)


class KernelEntry(BaseModel):
    """An installed kernel package and its build time (epoch seconds)."""

    name: str
    build_time: int


class PlanParams(BaseModel):
    """Scalars consumed by plan builders.

    ``installed_kernels`` is the output of the kernel query phase.
    ``None`` means no inventory was taken, which is not the same as
    an empty inventory. ``running_kernel`` (a ``uname -r`` string) is
    never selected for removal.
    """

    kernels_to_keep: int = Field(default=1, ge=1)
    journal_retention: str = "2d"
    tmp_max_age_days: int = Field(default=7, ge=0)
    cache_max_age_days: int = Field(default=0, ge=0)
    nix_gc_older_than: str = "14d"
    purge_apt_lists: bool = False
    keep_locales: list[str] = Field(default_factory=lambda: ["en_US", "C"])
    installed_kernels: list[KernelEntry] | None = None
    running_kernel: str | None = None
