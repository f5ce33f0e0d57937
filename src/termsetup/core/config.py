"""Configuration management for termsetup."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

logger = logging.getLogger(__name__)

DEFAULT_CONFIG: Dict[str, Any] = {
    "home": "~",
    "backup_root": "~/.config",
    "prefix": "terminal",
    "kind": "setup",
    "marker_file": "~/.last_terminal_backup",
    "retain_count": 5,
    "restore_removes_absent": True,
    "files": [
        ".zshrc",
        ".bashrc",
        ".bash_profile",
        ".profile",
        ".vimrc",
        ".tmux.conf",
        ".gitconfig",
        ".p10k.zsh",
        ".config/starship.toml",
        ".fzf.zsh",
    ],
    "directories": [
        ".oh-my-zsh",
        ".config/zsh-abbrev-alias",
        ".vim",
        ".tmux",
    ],
    "environment_variables": ["TERM", "EDITOR", "PAGER"],
    "shells_file": "/etc/shells",
}


class Config:
    """Configuration class for termsetup.

    Every manager receives one of these at construction instead of reading
    the environment directly. Paths starting with ``~`` are resolved against
    the configured ``home``, not the real home directory, so the whole
    layout can be redirected by changing a single key.
    """

    def __init__(self, config_file: Optional[Path] = None) -> None:
        """Initialize configuration."""
        self.config: Dict[str, Any] = {}
        self.home: Path = Path.home()
        self.backup_root: Path = self.home / ".config"
        self.prefix: str = "terminal"
        self.kind: str = "setup"
        self.marker_file: Path = self.home / ".last_terminal_backup"
        self.retain_count: int = 5
        self.restore_removes_absent: bool = True
        self.files: List[str] = []
        self.directories: List[str] = []
        self.environment_variables: List[str] = []
        self.shells_file: Path = Path("/etc/shells")
        self.load_config(config_file)

    def load_config(self, config_file: Optional[Path] = None) -> None:
        """Load configuration from file."""
        # Start with default configuration
        self._merge_config(DEFAULT_CONFIG)

        if config_file is None:
            return

        try:
            with open(config_file, "r") as f:
                user_config = yaml.safe_load(f)
        except (OSError, yaml.YAMLError) as e:
            logger.error("Error loading config file %s: %s", config_file, e)
            raise ValueError(f"Cannot load config file {config_file}: {e}") from e

        if user_config:
            self._merge_config(user_config)
        logger.debug("Loaded configuration from %s", config_file)

    def _expand(self, value: str) -> Path:
        """Resolve a configured path, mapping ``~`` onto the configured home."""
        if value == "~":
            return self.home
        if value.startswith("~/"):
            return self.home / value[2:]
        return Path(value)

    def _merge_config(self, config: Dict[str, Any]) -> None:
        """Merge configuration with current configuration."""
        if not isinstance(config, dict):
            raise ValueError("Configuration must be a dictionary")

        self.config.update(config)

        # Home first: every other path may be relative to it
        if "home" in config:
            if not isinstance(config["home"], str):
                raise ValueError("home must be a string")
            self.home = Path(config["home"]).expanduser()

        for key in ("backup_root", "marker_file", "shells_file"):
            if key in self.config:
                if not isinstance(self.config[key], str):
                    raise ValueError(f"{key} must be a string")
                setattr(self, key, self._expand(self.config[key]))

        for key in ("prefix", "kind"):
            if key in config:
                value = config[key]
                if not isinstance(value, str) or not value:
                    raise ValueError(f"{key} must be a non-empty string")
                if "/" in value:
                    raise ValueError(f"{key} must not contain '/'")
                if key == "prefix" and any(c in value for c in "*?[]"):
                    raise ValueError("prefix must not contain glob characters")
                setattr(self, key, value)

        if "retain_count" in config:
            retain_count = config["retain_count"]
            if not isinstance(retain_count, int) or isinstance(retain_count, bool):
                raise ValueError("retain_count must be an integer")
            if retain_count < 0:
                raise ValueError("retain_count must not be negative")
            self.retain_count = retain_count

        if "restore_removes_absent" in config:
            if not isinstance(config["restore_removes_absent"], bool):
                raise ValueError("restore_removes_absent must be a boolean")
            self.restore_removes_absent = config["restore_removes_absent"]

        for key in ("files", "directories", "environment_variables"):
            if key in config:
                values = config[key]
                if not isinstance(values, list):
                    raise ValueError(f"{key} must be a list")
                for value in values:
                    if not isinstance(value, str):
                        raise ValueError(f"{key} entry {value!r} must be a string")
                setattr(self, key, list(values))

    def validate(self) -> List[str]:
        """Validate configuration."""
        errors = []

        # Snapshots are flat, so two candidates must never share a basename
        seen: Dict[str, str] = {}
        for candidate in self.files + self.directories:
            name = Path(candidate).name
            if not name:
                errors.append(f"candidate path {candidate!r} has no basename")
            elif name in seen:
                errors.append(
                    f"candidate paths {seen[name]!r} and {candidate!r} share basename {name!r}"
                )
            else:
                seen[name] = candidate

        for reserved in ("restore.yaml", "shell_info.txt"):
            if reserved in seen:
                errors.append(f"candidate path {seen[reserved]!r} uses reserved name {reserved!r}")

        for candidate in self.files + self.directories:
            if Path(candidate).is_absolute():
                errors.append(f"candidate path {candidate!r} must be relative to home")

        # The backup root must not sit inside a candidate directory
        backup_root = self.backup_root.resolve()
        for directory in self.candidate_directories():
            if backup_root.is_relative_to(directory.resolve()):
                errors.append(
                    f"candidate directory {str(directory)!r} contains "
                    f"the backup root {str(self.backup_root)!r}"
                )

        if self.retain_count < 0:
            errors.append("retain_count must not be negative")

        return errors

    def candidate_files(self) -> List[Path]:
        """Return absolute paths of the candidate files."""
        return [self.home / f for f in self.files]

    def candidate_directories(self) -> List[Path]:
        """Return absolute paths of the candidate directories."""
        return [self.home / d for d in self.directories]

    def snapshot_glob(self) -> str:
        """Glob pattern matching snapshots of every kind."""
        return f"{self.prefix}-*-backup-*"

    def load_from_dict(self, config_data: Dict[str, Any]) -> None:
        """Load configuration from a dictionary.

        Args:
            config_data: Dictionary containing configuration data. Keys that
                are missing keep their current value.

        Example:
            ```python
            config = Config()
            config.load_from_dict({"home": "/tmp/home", "retain_count": 3})
            ```
        """
        self._merge_config(config_data)

    def to_dict(self) -> Dict[str, Any]:
        """Return the raw configuration values."""
        return dict(self.config)

    def get(self, key: str, default: Any = None) -> Any:
        """Get a configuration value.

        Args:
            key: The configuration key to get.
            default: The default value to return if the key is not found.

        Returns:
            The configuration value, or the default if not found.
        """
        return self.config.get(key, default)
