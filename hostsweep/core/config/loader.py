"""
Configuration loader — reads hostsweep.yml into a MaintenanceConfig.

Search order:
    --config PATH  >  $HOSTSWEEP_CONFIG  >  ~/.config/hostsweep/hostsweep.yml
    >  /etc/hostsweep.yml

No file anywhere is fine: every setting has a default. A file that
exists but does not parse or validate is a ``ConfigError``.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

import yaml
from pydantic import ValidationError

from hostsweep.core.errors import ConfigError
from hostsweep.core.models.config import MaintenanceConfig

logger = logging.getLogger(__name__)

CONFIG_FILE = "hostsweep.yml"
CONFIG_ENV = "HOSTSWEEP_CONFIG"
SYSTEM_CONFIG = Path("/etc") / CONFIG_FILE


def default_search_paths() -> list[Path]:
    """Candidate config locations, highest precedence first."""
    paths: list[Path] = []
    env_path = os.environ.get(CONFIG_ENV)
    if env_path:
        paths.append(Path(env_path).expanduser())
    xdg = os.environ.get("XDG_CONFIG_HOME") or str(Path.home() / ".config")
    paths.append(Path(xdg) / "hostsweep" / CONFIG_FILE)
    paths.append(SYSTEM_CONFIG)
    return paths


def find_config_file(search_paths: list[Path] | None = None) -> Path | None:
    """Return the first existing config file, or None."""
    for candidate in search_paths if search_paths is not None else default_search_paths():
        if candidate.is_file():
            return candidate
    return None


def load_config(path: Path | None = None) -> MaintenanceConfig:
    """Load and validate maintenance configuration.

    Args:
        path: Explicit config path. If None, searches the default locations
              and falls back to built-in defaults.

    Returns:
        Validated MaintenanceConfig.

    Raises:
        ConfigError: If an explicit file is missing, or any file is invalid.
    """
    if path is None:
        path = find_config_file()
        if path is None:
            logger.debug("No %s found; using defaults", CONFIG_FILE)
            return MaintenanceConfig()
    elif not path.is_file():
        raise ConfigError(f"Config file not found: {path}")

    logger.debug("Loading config from %s", path)

    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Cannot read {path}: {e}") from e

    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigError(f"Expected a YAML mapping in {path}, got {type(data).__name__}")

    try:
        config = MaintenanceConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration in {path}: {e}") from e

    logger.info("Loaded config from %s", path)
    return config
