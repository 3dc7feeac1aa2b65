"""
Application configuration: constants, tunables, step toggles and the JSON
config file.
"""

import json
import os
import platform
import shutil
import socket
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

from debian_maintenance import __version__
from debian_maintenance.exceptions import InvalidConfiguration
from debian_maintenance.models import StepId

DEFAULT_CONFIG_FILE = "/etc/debian-maintenance/config.json"
APT_CLEAN_MODES = ("autoclean", "clean")

# Steps that are off unless enabled explicitly
DISABLED_BY_DEFAULT = (StepId.SNAP,)


def default_steps() -> Dict[StepId, bool]:
    return {step: step not in DISABLED_BY_DEFAULT for step in StepId}


# ----------------------------------------------------------------
# Configuration & Constants
# ----------------------------------------------------------------
@dataclass
class AppConfig:
    """Maintenance run configuration."""

    # Application info
    VERSION: str = __version__
    APP_NAME: str = "Debian Maintenance"
    APP_SUBTITLE: str = "System Update & Cleanup Utility"
    HOSTNAME: str = socket.gethostname()
    PLATFORM: str = platform.system().lower()

    # Paths and files
    BACKUP_DIR: str = "/var/backups/debian-maintenance"
    LOG_DIR: str = "/var/log/debian-maintenance"
    LOCK_FILE: str = "/var/run/debian-maintenance.lock"
    MAX_LOG_SIZE: int = 10 * 1024 * 1024  # 10MB
    BACKUPS_TO_KEEP: int = 5

    # System thresholds
    LOG_DAYS: int = 7
    KERNELS_TO_KEEP: int = 3
    MIN_FREE_SPACE_GB: int = 5
    MIN_FREE_SPACE_BOOT_MB: int = 200
    APT_CLEAN_MODE: str = "autoclean"

    # Safety
    MAX_REMOVALS_ALLOWED: int = 0
    ASK_SNAPSHOT: bool = True

    # Operation settings
    COMMAND_TIMEOUT: int = 1800  # seconds
    MAX_RETRIES: int = 1

    # Run mode
    DRY_RUN: bool = False
    UNATTENDED: bool = False
    QUIET: bool = False

    STEPS: Dict[StepId, bool] = field(default_factory=default_steps)

    # Terminal dimensions
    TERM_WIDTH: int = 80
    PROGRESS_WIDTH: int = 50

    def __post_init__(self) -> None:
        try:
            self.TERM_WIDTH = shutil.get_terminal_size().columns
        except Exception:
            pass  # Keep default value
        self.PROGRESS_WIDTH = min(50, max(10, self.TERM_WIDTH - 30))
        self.validate()

    def validate(self) -> None:
        """
        Check tunables for sane values.

        Raises:
            InvalidConfiguration: If any value is out of range
        """
        if self.KERNELS_TO_KEEP < 1:
            raise InvalidConfiguration(
                f"kernels_to_keep must be at least 1 (got {self.KERNELS_TO_KEEP})"
            )
        if self.APT_CLEAN_MODE not in APT_CLEAN_MODES:
            raise InvalidConfiguration(
                f"apt_clean_mode must be one of {', '.join(APT_CLEAN_MODES)} "
                f"(got {self.APT_CLEAN_MODE!r})"
            )
        for name in (
            "LOG_DAYS",
            "MIN_FREE_SPACE_GB",
            "MIN_FREE_SPACE_BOOT_MB",
            "MAX_REMOVALS_ALLOWED",
            "BACKUPS_TO_KEEP",
        ):
            if getattr(self, name) < 0:
                raise InvalidConfiguration(f"{name.lower()} must not be negative")

    def is_enabled(self, step: StepId) -> bool:
        return self.STEPS.get(step, False)

    def set_step(self, step: StepId, enabled: bool) -> None:
        self.STEPS[step] = enabled

    def enabled_steps(self) -> List[StepId]:
        return [step for step in StepId if self.is_enabled(step)]

    @property
    def interactive(self) -> bool:
        """Prompts are shown only in attended, non-simulated runs."""
        return not self.UNATTENDED and not self.DRY_RUN


# Keys accepted in the config file, mapped to AppConfig attributes
PERSISTED_FIELDS: Dict[str, str] = {
    "backup_dir": "BACKUP_DIR",
    "log_dir": "LOG_DIR",
    "lock_file": "LOCK_FILE",
    "log_days": "LOG_DAYS",
    "kernels_to_keep": "KERNELS_TO_KEEP",
    "min_free_space_gb": "MIN_FREE_SPACE_GB",
    "min_free_space_boot_mb": "MIN_FREE_SPACE_BOOT_MB",
    "apt_clean_mode": "APT_CLEAN_MODE",
    "max_removals_allowed": "MAX_REMOVALS_ALLOWED",
    "ask_snapshot": "ASK_SNAPSHOT",
    "command_timeout": "COMMAND_TIMEOUT",
    "backups_to_keep": "BACKUPS_TO_KEEP",
}


def _expected_type(attr: str) -> type:
    return type(getattr(AppConfig, attr))


def parse_step_id(name: str) -> StepId:
    try:
        return StepId(name)
    except ValueError:
        valid = ", ".join(step.value for step in StepId)
        raise InvalidConfiguration(f"Unknown step {name!r} (valid: {valid})")


def config_from_dict(data: Dict[str, Any]) -> AppConfig:
    """
    Build an AppConfig from parsed config file contents.

    Raises:
        InvalidConfiguration: On unknown keys, wrong types or bad values
    """
    if not isinstance(data, dict):
        raise InvalidConfiguration("Config file must contain a JSON object")

    kwargs: Dict[str, Any] = {}
    for key, value in data.items():
        if key == "steps":
            continue
        attr = PERSISTED_FIELDS.get(key)
        if attr is None:
            raise InvalidConfiguration(f"Unknown config key: {key!r}")
        expected = _expected_type(attr)
        # bool is an int subclass; keep them apart
        if isinstance(value, bool) != (expected is bool) or not isinstance(
            value, expected
        ):
            raise InvalidConfiguration(
                f"Config key {key!r} must be of type {expected.__name__}"
            )
        kwargs[attr] = value

    steps = default_steps()
    raw_steps = data.get("steps", {})
    if not isinstance(raw_steps, dict):
        raise InvalidConfiguration("Config key 'steps' must be an object")
    for name, enabled in raw_steps.items():
        if not isinstance(enabled, bool):
            raise InvalidConfiguration(f"Step {name!r} must be true or false")
        steps[parse_step_id(name)] = enabled
    kwargs["STEPS"] = steps

    return AppConfig(**kwargs)


def config_to_dict(config: AppConfig) -> Dict[str, Any]:
    data: Dict[str, Any] = {
        key: getattr(config, attr) for key, attr in PERSISTED_FIELDS.items()
    }
    data["steps"] = {step.value: config.is_enabled(step) for step in StepId}
    return data


def load_config(path: Optional[str] = None) -> AppConfig:
    """
    Load configuration from a JSON file, falling back to defaults.

    Args:
        path: Config file path (defaults to DEFAULT_CONFIG_FILE)

    Returns:
        The loaded configuration

    Raises:
        InvalidConfiguration: If the file cannot be parsed or is invalid
    """
    config_path = Path(path or DEFAULT_CONFIG_FILE)
    if not config_path.is_file():
        return AppConfig()
    try:
        data = json.loads(config_path.read_text())
    except (OSError, json.JSONDecodeError) as e:
        raise InvalidConfiguration(f"Cannot read config file {config_path}: {e}")
    return config_from_dict(data)


def save_config(config: AppConfig, path: Optional[str] = None) -> Path:
    """Write the persisted part of the configuration as JSON."""
    config_path = Path(path or DEFAULT_CONFIG_FILE)
    config_path.parent.mkdir(parents=True, exist_ok=True)
    config_path.write_text(json.dumps(config_to_dict(config), indent=2) + "\n")
    os.chmod(config_path, 0o644)
    return config_path
