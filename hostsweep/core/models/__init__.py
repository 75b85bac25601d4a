"""
Domain models — Pydantic types for hostsweep.

All models are re-exported here for convenient access:

    from hostsweep.core.models import ManagerKind, Operation, CommandPlan
"""

from hostsweep.core.models.config import MaintenanceConfig, TaskToggles
from hostsweep.core.models.manager import (
    PIPELINE,
    KernelEntry,
    ManagerKind,
    Operation,
    PlanParams,
)
from hostsweep.core.models.plan import CommandPlan, CommandStep, StepReceipt

__all__ = [
    # plan.py
    "CommandPlan",
    "CommandStep",
    # manager.py
    "KernelEntry",
    # config.py
    "MaintenanceConfig",
    "ManagerKind",
    "Operation",
    "PIPELINE",
    "PlanParams",
    "StepReceipt",
    "TaskToggles",
]
