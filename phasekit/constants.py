"""
Constants for the phasekit toolkit.

Note: These constants serve as default fallback values.
Actual values are loaded from .phasekit/config.json at runtime via ConfigManager.
"""
from pathlib import Path
from typing import Any, Optional
import json

# =============================================================================
# Default Fallback Values
# These are used if config.json doesn't exist or doesn't specify a value.
# =============================================================================

DEFAULT_ROOT_DIR = ".phasekit"
DEFAULT_STATE_PATH = "project/state.json"
DEFAULT_LOG_LEVEL = "WARNING"

# Shared state meaning "no active project"
NO_PROJECT = "NoProject"

# Project names are derived from descriptions
PROJECT_NAME_MAX_LENGTH = 50
PROJECT_NAME_PATTERN = r"^[a-z0-9]+(-[a-z0-9]+)*$"

# Phase status values (not configurable)
PHASE_PENDING = "pending"
PHASE_IN_PROGRESS = "in_progress"
PHASE_COMPLETED = "completed"
PHASE_FAILED = "failed"
PHASE_SKIPPED = "skipped"
VALID_PHASE_STATUSES = [
    PHASE_PENDING, PHASE_IN_PROGRESS, PHASE_COMPLETED, PHASE_FAILED, PHASE_SKIPPED
]

# Task status values (not configurable)
TASK_PENDING = "pending"
TASK_IN_PROGRESS = "in_progress"
TASK_NEEDS_REVIEW = "needs_review"
TASK_COMPLETED = "completed"
TASK_ABANDONED = "abandoned"
VALID_TASK_STATUSES = [
    TASK_PENDING, TASK_IN_PROGRESS, TASK_NEEDS_REVIEW, TASK_COMPLETED, TASK_ABANDONED
]
TERMINAL_TASK_STATUSES = [TASK_COMPLETED, TASK_ABANDONED]

# Fallback shown when a blocking guard has no description
DEFAULT_GUARD_DESCRIPTION = "guard condition not met"


# =============================================================================
# Config Loader
# Load values from .phasekit/config.json at runtime.
# =============================================================================


class ConfigManager:
    """
    Manages loading configuration from a config.json file with fallback to defaults.

    Usage:
        # With default path (.phasekit/config.json)
        config = ConfigManager()
        state_path = config.get_str('state_path', DEFAULT_STATE_PATH)

        # With a custom root
        config = ConfigManager(root_dir=Path("/work/repo/.phasekit"))
    """

    def __init__(self, config_path: Optional[Path] = None, root_dir: Optional[Path] = None) -> None:
        """
        Initialize ConfigManager.

        Args:
            config_path: Direct path to config.json file. Takes precedence over root_dir.
            root_dir: Path to the .phasekit/ directory. Config path will be root_dir/config.json.
        """
        self._config: Optional[dict] = None

        if config_path is not None:
            self._config_path = config_path
        elif root_dir is not None:
            self._config_path = root_dir / "config.json"
        else:
            self._config_path = Path(DEFAULT_ROOT_DIR) / "config.json"

    def _load_config(self) -> dict:
        """Load config from config.json file."""
        if self._config is not None:
            return self._config

        if self._config_path.exists():
            try:
                with open(self._config_path, "r") as f:
                    self._config = json.load(f)
            except (json.JSONDecodeError, IOError):
                self._config = {}
        else:
            self._config = {}

        return self._config

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get a config value with fallback to default.

        Args:
            key: Configuration key name.
            default: Default value if key not found.

        Returns:
            Config value or default.
        """
        config = self._load_config()
        return config.get(key, default)

    def get_str(self, key: str, default: str) -> str:
        """Get a string config value with fallback."""
        value = self.get(key, default)
        return str(value) if value is not None else default

    def reload(self) -> dict:
        """Force reload of config from disk."""
        self._config = None
        return self._load_config()

    @property
    def config_path(self) -> Path:
        """Get the config file path."""
        return self._config_path

    @property
    def state_path(self) -> str:
        """Relative path of the project state document."""
        return self.get_str("state_path", DEFAULT_STATE_PATH)

    @property
    def log_level(self) -> str:
        """Logging level name for the command surface."""
        return self.get_str("log_level", DEFAULT_LOG_LEVEL).upper()
