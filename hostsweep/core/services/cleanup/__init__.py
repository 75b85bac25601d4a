"""
Cleanup tasks — independent of the package manager resolver.
"""

from hostsweep.core.services.cleanup.tasks import (  # noqa: F401
    CLEANUP_TASKS,
    TASK_NAMES,
    CleanupTask,
    QueryRunner,
    get_task,
    parse_disabled_snaps,
    select_locales_for_removal,
)
