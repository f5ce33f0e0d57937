"""Restore functionality for termsetup."""

from __future__ import annotations

import filecmp
import logging
import re
import shutil
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Tuple, Union

import yaml
from rich.console import Console
from rich.table import Table

from .backup import BackupManager
from .config import Config
from .snapshot import RestorePlan, Snapshot

logger = logging.getLogger(__name__)

SnapshotSelector = Union[Snapshot, Path, str, None]
ValidationResults = Dict[str, Dict[str, List[Tuple[Path, Optional[str]]]]]


class RestoreError(RuntimeError):
    """Raised when a restore cannot start or stops part way.

    Attributes:
        applied: Targets already restored or removed before the failure.
    """

    def __init__(self, message: str, applied: Optional[Iterable[Path]] = None) -> None:
        super().__init__(message)
        self.applied: List[Path] = list(applied or [])


class RestoreManager:
    """Put a snapshot back onto the live configuration paths."""

    def __init__(
        self, config: Config, backup_manager: BackupManager, console: Optional[Console] = None
    ) -> None:
        """Initialize restore manager.

        Args:
            config: termsetup configuration.
            backup_manager: Backup manager used to locate snapshots.
            console: Rich console for the validation table.
        """
        self.config = config
        self.backup_manager = backup_manager
        self.console = console or Console()

    def find_snapshot(self, selector: SnapshotSelector = None) -> Optional[Snapshot]:
        """Find a snapshot.

        Args:
            selector: None for the most recent snapshot, a Snapshot, a
                directory path, a full snapshot name, or a date (YYYYMMDD)
                selecting the latest snapshot taken that day.

        Returns:
            The snapshot if found, None otherwise.
        """
        if selector is None:
            return self.backup_manager.latest_snapshot()
        if isinstance(selector, Snapshot):
            return selector
        if isinstance(selector, Path) or "/" in selector:
            return Snapshot.from_path(Path(selector).expanduser(), self.config.prefix)

        snapshots = self.backup_manager.list_snapshots()
        for snapshot in snapshots:
            if snapshot.name == selector:
                return snapshot

        if re.fullmatch(r"\d{8}", selector):
            matching = [s for s in snapshots if f"-backup-{selector}_" in s.name]
            if matching:
                # Already sorted newest first
                logger.debug("Found date match: %s", matching[0].path)
                return matching[0]

        logger.warning("No backup found matching '%s'", selector)
        return None

    def load_plan(self, snapshot: Snapshot) -> RestorePlan:
        """Read the restore plan of ``snapshot``.

        Raises:
            RestoreError: If the snapshot has no readable plan.
        """
        if not snapshot.path.is_dir():
            raise RestoreError(f"Backup directory {snapshot.path} does not exist")
        if not snapshot.plan_path.is_file():
            raise RestoreError(f"Backup {snapshot.path} has no restore plan")
        try:
            return snapshot.load_plan()
        except (OSError, ValueError, yaml.YAMLError) as e:
            raise RestoreError(f"Cannot read restore plan {snapshot.plan_path}: {e}") from e

    @staticmethod
    def _remove_file(target: Path) -> None:
        """Delete a file target; a missing target is fine."""
        if target.is_dir() and not target.is_symlink():
            raise IsADirectoryError(f"{target} is a directory")
        if target.exists() or target.is_symlink():
            target.unlink()

    @staticmethod
    def _remove_tree(target: Path) -> None:
        """Delete a directory target; a missing target is fine."""
        if target.is_symlink() or target.is_file():
            target.unlink()
        elif target.exists():
            shutil.rmtree(target)

    def _restore_file(self, source: Path, target: Path) -> None:
        if not source.is_file():
            raise FileNotFoundError(f"{source} is missing from the backup")
        self._remove_file(target)
        target.parent.mkdir(parents=True, exist_ok=True)
        shutil.copy2(source, target)
        logger.info("Restored: %s", target)

    def _restore_directory(self, source: Path, target: Path) -> None:
        self._remove_tree(target)
        target.parent.mkdir(parents=True, exist_ok=True)
        shutil.copytree(source, target, symlinks=True)
        logger.info("Restored directory: %s", target)

    def restore(
        self, snapshot: SnapshotSelector = None, remove_absent: Optional[bool] = None
    ) -> List[Path]:
        """Restore a snapshot onto the live paths.

        Each file target is deleted and replaced by the snapshot copy. Files
        the snapshot recorded as absent are deleted too, unless
        ``remove_absent`` is False. Each directory in the snapshot replaces
        the live directory wholesale; directories the snapshot does not hold
        are left alone. The first failure stops the restore; nothing already
        done is rolled back.

        Args:
            snapshot: Which snapshot to restore, see :meth:`find_snapshot`.
            remove_absent: Delete targets recorded as absent, defaults to the
                ``restore_removes_absent`` setting.

        Returns:
            The targets that were restored or removed, in order.

        Raises:
            RestoreError: If no snapshot is found or any step fails.
        """
        found = self.find_snapshot(snapshot)
        if found is None:
            raise RestoreError("No backups found")
        if remove_absent is None:
            remove_absent = self.config.restore_removes_absent

        plan = self.load_plan(found)
        logger.info("Restoring configurations from backup %s", found.path)

        applied: List[Path] = []
        target = found.path
        try:
            for entry in plan.files:
                target = Path(entry.target)
                self._restore_file(found.path / entry.source, target)
                applied.append(target)

            if remove_absent:
                for absent in plan.absent_files:
                    target = Path(absent)
                    if target.exists() or target.is_symlink():
                        logger.info("Removed: %s", target)
                    self._remove_file(target)
                    applied.append(target)

            for entry in plan.directories:
                source = found.path / entry.source
                if not source.is_dir():
                    logger.debug("Directory %s not in backup, leaving live copy", entry.source)
                    continue
                target = Path(entry.target)
                self._restore_directory(source, target)
                applied.append(target)
        except (OSError, shutil.Error) as e:
            logger.error("Restore stopped at %s: %s", target, e)
            raise RestoreError(f"Error restoring {target}: {e}", applied) from e

        logger.info("Restoration complete!")
        return applied

    def _compare_trees(self, comparison: filecmp.dircmp) -> List[str]:
        """Collect differences of a directory comparison, recursively."""
        problems = []
        if comparison.diff_files:
            problems.append(f"Different files: {', '.join(comparison.diff_files[:3])}")
        if comparison.left_only:
            problems.append(f"Files only in backup: {', '.join(comparison.left_only[:3])}")
        if comparison.right_only:
            problems.append(f"Files only in target: {', '.join(comparison.right_only[:3])}")
        for sub in comparison.subdirs.values():
            problems.extend(self._compare_trees(sub))
        return problems

    def validate_restore(self, snapshot: SnapshotSelector = None) -> Tuple[bool, ValidationResults]:
        """Check that the live paths match ``snapshot``.

        Returns:
            (all_valid, results) where results maps ``files``, ``directories``
            and ``absent`` to lists of successful and failed targets.
        """
        found = self.find_snapshot(snapshot)
        if found is None:
            raise RestoreError("No backups found")
        plan = self.load_plan(found)

        results: ValidationResults = {
            "files": {"success": [], "failed": []},
            "directories": {"success": [], "failed": []},
            "absent": {"success": [], "failed": []},
        }

        for entry in plan.files:
            source = found.path / entry.source
            target = Path(entry.target)
            if not target.is_file():
                results["files"]["failed"].append((target, "File does not exist in target"))
            elif filecmp.cmp(source, target, shallow=False):
                results["files"]["success"].append((target, None))
            else:
                results["files"]["failed"].append(
                    (
                        target,
                        f"Content mismatch (backup: {source.stat().st_size} bytes, "
                        f"target: {target.stat().st_size} bytes)",
                    )
                )

        for absent in plan.absent_files:
            target = Path(absent)
            if target.exists():
                results["absent"]["failed"].append((target, "File exists but was not in backup"))
            else:
                results["absent"]["success"].append((target, None))

        for entry in plan.directories:
            source = found.path / entry.source
            target = Path(entry.target)
            if not source.is_dir():
                continue
            if not target.is_dir():
                results["directories"]["failed"].append(
                    (target, "Directory does not exist in target")
                )
                continue
            problems = self._compare_trees(filecmp.dircmp(source, target, ignore=[]))
            if problems:
                results["directories"]["failed"].append((target, "; ".join(problems)))
            else:
                results["directories"]["success"].append((target, None))

        all_valid = not any(r["failed"] for r in results.values())
        if all_valid:
            logger.info("All files validated successfully")
        else:
            logger.warning("Some files failed validation")
        return all_valid, results

    def display_validation_results(self, validation_results: ValidationResults) -> None:
        """Display validation results in a table."""
        table = Table(title="Restore Validation Results")
        table.add_column("Category", style="cyan")
        table.add_column("Status", style="green")
        table.add_column("Details", style="yellow")

        for category, results in validation_results.items():
            success_count = len(results["success"])
            failed_count = len(results["failed"])
            total_count = success_count + failed_count
            if total_count == 0:
                continue

            if failed_count == 0:
                status = "[green]✓ Success[/green]"
                details = f"All {total_count} entries match the backup"
            else:
                status = "[red]✗ Failed[/red]"
                details = f"{success_count}/{total_count} entries match the backup"
                failed_details = [
                    f"{path}: {reason}" if reason else str(path)
                    for path, reason in results["failed"][:3]
                ]
                if failed_count > 3:
                    failed_details.append("...")
                details += "\n- " + "\n- ".join(failed_details)

            table.add_row(category, status, details)

        self.console.print(table)
