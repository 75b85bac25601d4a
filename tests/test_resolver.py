"""
Tests for the package manager resolver — detection priority and the
operation table.
"""

from __future__ import annotations

from itertools import combinations

import pytest

from hostsweep.core.errors import NoSupportedManager, UnsupportedOperation
from hostsweep.core.models import PIPELINE, KernelEntry, ManagerKind, Operation, PlanParams
from hostsweep.core.services.package_manager import (
    PLAN_TABLE,
    PROBE_ORDER,
    ResolutionResult,
    available_binaries,
    detect,
    plan_for,
    resolve,
)
from tests.fakes import make_which

ALL_BINARIES = [binary for _, binary in PROBE_ORDER]
SUPPORTED = [k for k in ManagerKind if k is not ManagerKind.UNKNOWN]


def _expected(present: set[str]) -> ManagerKind:
    for kind, binary in PROBE_ORDER:
        if binary in present:
            return kind
    return ManagerKind.UNKNOWN


# ── Detection ───────────────────────────────────────────────────


class TestDetect:
    @pytest.mark.parametrize(
        "present",
        [set(c) for n in range(len(ALL_BINARIES) + 1) for c in combinations(ALL_BINARIES, n)],
    )
    def test_highest_priority_wins(self, present: set[str]):
        assert detect(make_which(*present)) == _expected(present)

    def test_priority_order_is_fixed(self):
        assert [k for k, _ in PROBE_ORDER] == [
            ManagerKind.APT,
            ManagerKind.DNF,
            ManagerKind.YUM,
            ManagerKind.ZYPPER,
            ManagerKind.NIX,
        ]

    def test_dnf_only(self):
        assert detect(make_which("dnf")) == ManagerKind.DNF

    def test_nothing_installed(self):
        assert detect(make_which()) == ManagerKind.UNKNOWN

    def test_dnf_preferred_over_yum(self):
        assert detect(make_which("yum", "dnf")) == ManagerKind.DNF

    def test_yum_alone(self):
        assert detect(make_which("yum")) == ManagerKind.YUM

    def test_probe_error_is_not_fatal(self):
        def flaky(binary: str):
            if binary == "apt-get":
                raise PermissionError("denied")
            return "/usr/bin/zypper" if binary == "zypper" else None

        assert detect(flaky) == ManagerKind.ZYPPER

    def test_uses_shutil_which_by_default(self, monkeypatch):
        monkeypatch.setattr("shutil.which", make_which("nix-env"))
        assert detect() == ManagerKind.NIX

    def test_detection_is_deterministic(self):
        which = make_which("zypper", "nix-env")
        assert {detect(which) for _ in range(5)} == {ManagerKind.ZYPPER}

    def test_available_binaries(self):
        report = available_binaries(make_which("dnf", "yum"))
        assert report == {
            "apt-get": False,
            "dnf": True,
            "yum": True,
            "zypper": False,
            "nix-env": False,
        }

    def test_available_binaries_survives_probe_error(self):
        def flaky(binary: str):
            if binary == "dnf":
                raise PermissionError("denied")
            return "/usr/bin/yum" if binary == "yum" else None

        report = available_binaries(flaky)
        assert report["dnf"] is False
        assert report["yum"] is True


class TestResolve:
    def test_resolve_binds_kind(self):
        resolution = resolve(make_which("apt-get"))
        assert resolution.kind == ManagerKind.APT
        assert resolution.supported

    def test_resolution_is_immutable(self):
        resolution = resolve(make_which("apt-get"))
        with pytest.raises(AttributeError):
            resolution.kind = ManagerKind.DNF  # type: ignore[misc]

    def test_unknown_resolution_refuses_every_plan(self):
        resolution = resolve(make_which())
        assert not resolution.supported
        for op in Operation:
            with pytest.raises(NoSupportedManager):
                resolution.plan_for(op)


# ── Operation table ─────────────────────────────────────────────


class TestPlanTable:
    @pytest.mark.parametrize("kind", SUPPORTED)
    @pytest.mark.parametrize("op", list(Operation))
    def test_full_coverage(self, kind: ManagerKind, op: Operation):
        assert (kind, op) in PLAN_TABLE
        plan = plan_for(kind, op, PlanParams(installed_kernels=[]))
        assert plan.label == op.label
        if plan.is_noop:
            assert plan.note, f"empty plan without a note for {kind.value}/{op.value}"
        for step in plan.steps:
            assert step.program

    @pytest.mark.parametrize("op", list(Operation))
    def test_unknown_fails(self, op: Operation):
        with pytest.raises(NoSupportedManager):
            plan_for(ManagerKind.UNKNOWN, op)

    def test_no_supported_manager_is_unsupported_operation(self):
        with pytest.raises(UnsupportedOperation):
            plan_for(ManagerKind.UNKNOWN, Operation.UPGRADE_PACKAGES)

    def test_missing_mapping_raises(self, monkeypatch):
        monkeypatch.delitem(PLAN_TABLE, (ManagerKind.NIX, Operation.CLEAN_CACHE))
        with pytest.raises(UnsupportedOperation, match="clean-cache"):
            plan_for(ManagerKind.NIX, Operation.CLEAN_CACHE)

    def test_pipeline_order(self):
        assert PIPELINE == (
            Operation.UPDATE_REPOS,
            Operation.UPGRADE_PACKAGES,
            Operation.REMOVE_ORPHANS,
            Operation.CLEAN_CACHE,
            Operation.REMOVE_OLD_KERNELS,
        )


class TestManagerPlans:
    def test_dnf_check_update_tolerates_nonzero(self):
        plan = plan_for(ManagerKind.DNF, Operation.UPDATE_REPOS)
        assert len(plan.steps) == 1
        step = plan.steps[0]
        assert step.argv == ["dnf", "check-update"]
        assert step.tolerate_nonzero_exit is True

    def test_yum_check_update_tolerates_nonzero(self):
        step = plan_for(ManagerKind.YUM, Operation.UPDATE_REPOS).steps[0]
        assert step.argv == ["yum", "check-update"]
        assert step.tolerate_nonzero_exit

    def test_apt_update_does_not_tolerate(self):
        step = plan_for(ManagerKind.APT, Operation.UPDATE_REPOS).steps[0]
        assert step.argv == ["apt-get", "update"]
        assert not step.tolerate_nonzero_exit

    def test_apt_upgrade_non_interactive(self):
        step = plan_for(ManagerKind.APT, Operation.UPGRADE_PACKAGES).steps[0]
        assert step.argv == [
            "apt-get", "-y", "upgrade",
            "-o", "Dpkg::Options::=--force-confdef",
            "-o", "Dpkg::Options::=--force-confold",
        ]
        assert step.env == {"DEBIAN_FRONTEND": "noninteractive"}

    def test_apt_orphans_purge(self):
        step = plan_for(ManagerKind.APT, Operation.REMOVE_ORPHANS).steps[0]
        assert step.argv[:4] == ["apt-get", "-y", "autoremove", "--purge"]
        assert "Dpkg::Options::=--force-confold" in step.args
        assert step.env["DEBIAN_FRONTEND"] == "noninteractive"

    def test_env_in_plan_json(self):
        data = plan_for(ManagerKind.APT, Operation.UPGRADE_PACKAGES).to_dict()
        assert data["steps"][0]["env"] == {"DEBIAN_FRONTEND": "noninteractive"}

    def test_apt_kernels_folded_into_autoremove(self):
        plan = plan_for(ManagerKind.APT, Operation.REMOVE_OLD_KERNELS)
        assert plan.is_noop
        assert "autoremove" in plan.note

    def test_apt_clean_without_list_purge(self):
        plan = plan_for(ManagerKind.APT, Operation.CLEAN_CACHE)
        assert [s.argv for s in plan.steps] == [["apt-get", "clean"]]

    def test_apt_clean_with_list_purge(self):
        plan = plan_for(ManagerKind.APT, Operation.CLEAN_CACHE, PlanParams(purge_apt_lists=True))
        assert plan.steps[1].argv == ["find", "/var/lib/apt/lists", "-type", "f", "-delete"]

    def test_zypper_unneeded_listing_is_tolerated(self):
        step = plan_for(ManagerKind.ZYPPER, Operation.REMOVE_ORPHANS).steps[0]
        assert "--unneeded" in step.args
        assert step.tolerate_nonzero_exit
        assert not step.needs_sudo

    def test_zypper_kernels_explicit(self):
        plan = plan_for(ManagerKind.ZYPPER, Operation.REMOVE_OLD_KERNELS)
        assert plan.steps[0].argv == ["zypper", "--non-interactive", "purge-kernels"]

    def test_nix_gc_uses_configured_age(self):
        plan = plan_for(ManagerKind.NIX, Operation.REMOVE_ORPHANS, PlanParams(nix_gc_older_than="30d"))
        assert plan.steps[0].argv == ["nix-collect-garbage", "--delete-older-than", "30d"]

    def test_nix_kernels_noop(self):
        plan = plan_for(ManagerKind.NIX, Operation.REMOVE_OLD_KERNELS)
        assert plan.is_noop
        assert plan.note

    def test_privileged_by_default(self):
        for op in (Operation.UPGRADE_PACKAGES, Operation.CLEAN_CACHE):
            assert all(s.needs_sudo for s in plan_for(ManagerKind.DNF, op).steps)

    def test_params_default_when_omitted(self):
        plan = plan_for(ManagerKind.NIX, Operation.REMOVE_ORPHANS)
        assert plan.steps[0].args[-1] == "14d"


class TestKernelPlans:
    def _kernels(self, *times: int) -> list[KernelEntry]:
        return [KernelEntry(name=f"kernel-core-6.{t}.0-100.fc40.x86_64", build_time=t) for t in times]

    def test_dnf_removes_all_but_newest(self):
        params = PlanParams(installed_kernels=self._kernels(3, 1, 2), kernels_to_keep=1)
        plan = plan_for(ManagerKind.DNF, Operation.REMOVE_OLD_KERNELS, params)
        assert plan.steps[0].argv == [
            "dnf", "-y", "remove",
            "kernel-core-6.1.0-100.fc40.x86_64",
            "kernel-core-6.2.0-100.fc40.x86_64",
        ]

    def test_yum_uses_yum(self):
        params = PlanParams(installed_kernels=self._kernels(1, 2), kernels_to_keep=1)
        plan = plan_for(ManagerKind.YUM, Operation.REMOVE_OLD_KERNELS, params)
        assert plan.steps[0].program == "yum"

    def test_nothing_to_remove_is_empty_plan(self):
        params = PlanParams(installed_kernels=self._kernels(1, 2), kernels_to_keep=2)
        plan = plan_for(ManagerKind.DNF, Operation.REMOVE_OLD_KERNELS, params)
        assert plan.is_noop
        assert "newest 2" in plan.note

    def test_empty_inventory_is_empty_plan(self):
        plan = plan_for(ManagerKind.DNF, Operation.REMOVE_OLD_KERNELS, PlanParams(installed_kernels=[]))
        assert plan.is_noop

    def test_no_inventory_never_removes(self):
        plan = plan_for(ManagerKind.DNF, Operation.REMOVE_OLD_KERNELS, PlanParams())
        assert plan.is_noop
        assert "inventory" in plan.note

    def test_running_kernel_is_spared(self):
        params = PlanParams(
            installed_kernels=self._kernels(1, 2, 3),
            kernels_to_keep=1,
            running_kernel="6.1.0-100.fc40.x86_64",
        )
        plan = plan_for(ManagerKind.DNF, Operation.REMOVE_OLD_KERNELS, params)
        assert plan.steps[0].args[2:] == ["kernel-core-6.2.0-100.fc40.x86_64"]


class TestResolutionResult:
    def test_plan_for_delegates(self):
        resolution = ResolutionResult(ManagerKind.ZYPPER)
        plan = resolution.plan_for(Operation.UPDATE_REPOS)
        assert plan.steps[0].argv == ["zypper", "--non-interactive", "refresh"]
