"""
Config check use case — validate hostsweep.yml and report issues.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from hostsweep.core.config.loader import find_config_file, load_config
from hostsweep.core.errors import ConfigError
from hostsweep.core.models.config import MaintenanceConfig


@dataclass
class ConfigCheckResult:
    """Result of configuration validation."""

    valid: bool = False
    config: MaintenanceConfig | None = None
    config_path: Path | None = None
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "valid": self.valid,
            "config_path": str(self.config_path) if self.config_path else None,
            "errors": self.errors,
            "warnings": self.warnings,
            "config": self.config.model_dump(mode="json") if self.config else None,
        }


def check_config(config_path: Path | None = None) -> ConfigCheckResult:
    """Validate maintenance configuration and report issues.

    Args:
        config_path: Optional explicit path to hostsweep.yml.

    Returns:
        ConfigCheckResult with validation status and any issues.
    """
    result = ConfigCheckResult()
    result.config_path = config_path or find_config_file()

    try:
        config = load_config(result.config_path)
    except ConfigError as e:
        result.errors.append(str(e))
        return result

    result.config = config
    result.valid = True

    if result.config_path is None:
        result.warnings.append("No hostsweep.yml found; built-in defaults apply.")

    if config.tasks.locales and not config.keep_locales:
        result.warnings.append("Locale pruning is enabled with an empty keep list; every locale would be removed.")

    if config.tmp_max_age_days == 0 and config.tasks.tmp:
        result.warnings.append("tmp_max_age_days is 0; files in /tmp in active use may be deleted.")

    if not config.tasks.enabled():
        result.warnings.append("All cleanup tasks are disabled.")

    return result
