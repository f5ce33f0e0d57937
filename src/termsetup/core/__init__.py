"""Core functionality for termsetup."""

from .backup import BackupManager, SnapshotError, StepResult
from .config import Config
from .restore import RestoreError, RestoreManager
from .snapshot import RestoreEntry, RestorePlan, Snapshot
from .wipe import WipeManager

__all__ = [
    "BackupManager",
    "Config",
    "RestoreEntry",
    "RestoreError",
    "RestoreManager",
    "RestorePlan",
    "Snapshot",
    "SnapshotError",
    "StepResult",
    "WipeManager",
]
