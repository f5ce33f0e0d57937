"""Wipe and prune functionality for termsetup."""

from __future__ import annotations

import logging
import shutil
from pathlib import Path
from typing import List, Optional, Tuple

from .backup import BackupManager
from .config import Config
from .snapshot import Snapshot

logger = logging.getLogger(__name__)


class WipeManager:
    """Wipe manager class.

    Deletes snapshots, either one at a time or by retention policy. Deletion
    is best-effort: a snapshot that cannot be removed is logged and reported,
    and the remaining deletions still run.
    """

    def __init__(self, config: Config, backup_manager: Optional[BackupManager] = None) -> None:
        """Initialize wipe manager."""
        self.config = config
        self.backup_manager = backup_manager or BackupManager(config)

    def expired_snapshots(self, retain_count: Optional[int] = None) -> List[Snapshot]:
        """Get the snapshots a prune would delete.

        Args:
            retain_count: Number of most recent snapshots to keep, defaults to
                the configured ``retain_count``.

        Returns:
            Snapshots older than the newest ``retain_count``, newest first.
        """
        if retain_count is None:
            retain_count = self.config.retain_count
        if retain_count < 0:
            raise ValueError("retain_count must not be negative")
        return self.backup_manager.list_snapshots()[retain_count:]

    def _delete(self, snapshot: Snapshot) -> None:
        shutil.rmtree(snapshot.path)
        archive = snapshot.archive_path
        if archive.exists():
            archive.unlink()

    def _clear_marker(self, removed: List[Path]) -> None:
        marked = self.backup_manager.read_marker()
        if marked is not None and marked in removed:
            logger.debug("Clearing marker file pointing at %s", marked)
            self.config.marker_file.unlink()

    def prune(self, retain_count: Optional[int] = None) -> Tuple[List[Path], List[Path]]:
        """Delete all but the most recent snapshots.

        Args:
            retain_count: Number of most recent snapshots to keep.

        Returns:
            (removed, failed) snapshot directories.
        """
        logger.info("Cleaning up old backups...")
        removed: List[Path] = []
        failed: List[Path] = []

        for snapshot in self.expired_snapshots(retain_count):
            logger.info("Removing old backup: %s", snapshot.path)
            try:
                self._delete(snapshot)
            except OSError as e:
                logger.warning("Could not remove %s: %s", snapshot.path, e)
                failed.append(snapshot.path)
                continue
            removed.append(snapshot.path)

        if removed:
            self._clear_marker(removed)

        if failed:
            logger.warning("Cleanup finished with %d failure(s)", len(failed))
        else:
            logger.info("Cleanup completed")
        return removed, failed

    def wipe(self, snapshot: Snapshot) -> None:
        """Delete a single snapshot.

        Raises:
            OSError: If the snapshot cannot be removed.
        """
        logger.info("Removing backup: %s", snapshot.path)
        self._delete(snapshot)
        self._clear_marker([snapshot.path])
