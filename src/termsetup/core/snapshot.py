"""Snapshot and restore plan models."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

PLAN_FILE = "restore.yaml"
INFO_FILE = "shell_info.txt"
TIMESTAMP_FORMAT = "%Y%m%d_%H%M%S"


def snapshot_name(prefix: str, kind: str, timestamp: datetime) -> str:
    """Build the directory name of a snapshot taken at ``timestamp``."""
    return f"{prefix}-{kind}-backup-{timestamp.strftime(TIMESTAMP_FORMAT)}"


def name_pattern(prefix: str) -> "re.Pattern[str]":
    """Regex matching snapshot names for ``prefix``."""
    return re.compile(
        rf"^{re.escape(prefix)}-(?P<kind>.+)-backup-"
        r"(?P<stamp>\d{8}_\d{6})(?:-(?P<seq>\d+))?$"
    )


@dataclass
class RestoreEntry:
    """One source/target pair of a restore plan."""

    source: str  # Relative to the snapshot directory
    target: str  # Absolute live path

    def to_dict(self) -> Dict[str, str]:
        return {"source": self.source, "target": self.target}


@dataclass
class RestorePlan:
    """Data description of how to put a snapshot back (written as YAML)."""

    name: str
    kind: str
    created_at: datetime
    home: str
    files: List[RestoreEntry] = field(default_factory=list)
    directories: List[RestoreEntry] = field(default_factory=list)
    absent_files: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "kind": self.kind,
            "created_at": self.created_at.isoformat(),
            "home": self.home,
            "files": [e.to_dict() for e in self.files],
            "directories": [e.to_dict() for e in self.directories],
            "absent_files": list(self.absent_files),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RestorePlan":
        """Build a plan from its YAML mapping.

        Raises:
            ValueError: If a required key is missing or malformed.
        """
        if not isinstance(data, dict):
            raise ValueError("Restore plan must be a mapping")
        try:
            created_at = data["created_at"]
            if not isinstance(created_at, datetime):
                created_at = datetime.fromisoformat(str(created_at))
            return cls(
                name=str(data["name"]),
                kind=str(data.get("kind", "")),
                created_at=created_at,
                home=str(data.get("home", "")),
                files=[
                    RestoreEntry(str(e["source"]), str(e["target"]))
                    for e in data.get("files") or []
                ],
                directories=[
                    RestoreEntry(str(e["source"]), str(e["target"]))
                    for e in data.get("directories") or []
                ],
                absent_files=[str(p) for p in data.get("absent_files") or []],
            )
        except (KeyError, TypeError) as e:
            raise ValueError(f"Malformed restore plan: {e}") from e

    def save(self, path: Path) -> None:
        with open(path, "w") as f:
            yaml.safe_dump(self.to_dict(), f, sort_keys=False)

    @classmethod
    def load(cls, path: Path) -> "RestorePlan":
        with open(path, "r") as f:
            return cls.from_dict(yaml.safe_load(f))


@dataclass
class Snapshot:
    """A snapshot directory found under the backup root."""

    path: Path
    kind: str
    created_at: datetime
    sequence: int = 0

    @property
    def name(self) -> str:
        return self.path.name

    @property
    def plan_path(self) -> Path:
        return self.path / PLAN_FILE

    @property
    def info_path(self) -> Path:
        return self.path / INFO_FILE

    @property
    def archive_path(self) -> Path:
        """Location of an exported zip archive of this snapshot."""
        return self.path.with_name(self.path.name + ".zip")

    def load_plan(self) -> RestorePlan:
        return RestorePlan.load(self.plan_path)

    def sort_key(self) -> tuple:
        return (self.created_at, self.sequence, self.name)

    @classmethod
    def from_path(cls, path: Path, prefix: str) -> Optional["Snapshot"]:
        """Describe the snapshot at ``path``, or None if it isn't one.

        Creation time comes from the restore plan when it is readable, then
        from the directory modification time. The timestamp in the name only
        has second granularity and is not used for ordering.
        """
        match = name_pattern(prefix).match(path.name)
        if not match or not path.is_dir():
            return None

        created_at: Optional[datetime] = None
        plan_path = path / PLAN_FILE
        if plan_path.is_file():
            try:
                created_at = RestorePlan.load(plan_path).created_at
            except (OSError, ValueError, yaml.YAMLError):
                created_at = None
        if created_at is None:
            created_at = datetime.fromtimestamp(path.stat().st_mtime)

        return cls(
            path=path,
            kind=match.group("kind"),
            created_at=created_at,
            sequence=int(match.group("seq") or 0),
        )
