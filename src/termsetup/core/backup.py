"""Backup functionality for terminal configuration files.

This module snapshots the configured candidate files and directories of the
user's home into a timestamped directory under the backup root. Every
snapshot carries a ``restore.yaml`` plan describing how to put it back and a
``shell_info.txt`` record of the environment it was taken in.

The snapshot is built by an ordered pipeline of steps. Each step returns a
:class:`StepResult`; the first failed step aborts the snapshot with a
:class:`SnapshotError`. Copies made before the failure are left in place.
"""

from __future__ import annotations

import logging
import shutil
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Callable, List, Optional, Tuple

from rich.progress import Progress

from . import environment
from .config import Config
from .snapshot import INFO_FILE, PLAN_FILE, RestoreEntry, RestorePlan, Snapshot, snapshot_name
from .zip_export import ZipExporter

logger = logging.getLogger(__name__)


class SnapshotError(RuntimeError):
    """Raised when a snapshot cannot be completed."""

    def __init__(self, message: str, step: Optional[str] = None) -> None:
        super().__init__(message)
        self.step = step


@dataclass
class StepResult:
    """Outcome of one step of the snapshot pipeline."""

    step: str
    copied: List[Path] = field(default_factory=list)
    skipped: List[Path] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class BackupManager:
    """Manages snapshots of terminal configuration files.

    This class handles:
    - Creating uniquely named, timestamped snapshot directories
    - Copying the candidate files and directories that exist
    - Writing the restore plan and environment record
    - Maintaining the marker file that points at the newest snapshot
    - Listing snapshots under the backup root

    Attributes:
        config (Config): Configuration object containing backup settings
        backup_dir (Path): Root directory holding the snapshot directories
        clock (Callable[[], datetime]): Source of the snapshot timestamp
    """

    def __init__(self, config: Config, clock: Callable[[], datetime] = datetime.now) -> None:
        """Initialize the backup manager.

        Args:
            config (Config): Configuration object containing backup settings
            clock (Callable[[], datetime]): Returns the current time
        """
        self.config = config
        self.clock = clock
        self.backup_dir = config.backup_root

    def snapshot_path(self, timestamp: datetime, kind: Optional[str] = None) -> Path:
        """Get the path a snapshot taken at ``timestamp`` would use.

        Returns:
            Path: ``<backup_root>/<prefix>-<kind>-backup-<YYYYMMDD_HHMMSS>``
        """
        return self.backup_dir / snapshot_name(
            self.config.prefix, kind or self.config.kind, timestamp
        )

    def _create_snapshot_dir(self, timestamp: datetime, kind: str) -> Tuple[Path, int]:
        """Create a fresh snapshot directory.

        A directory that already exists is never reused: a numeric suffix is
        appended until the name is free.

        Raises:
            SnapshotError: If the directory cannot be created.
        """
        base = self.snapshot_path(timestamp, kind)
        try:
            self.backup_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise SnapshotError(
                f"Cannot create backup root {self.backup_dir}: {e}", step="create_directory"
            ) from e

        path = base
        sequence = 0
        while True:
            try:
                path.mkdir()
                return path, sequence
            except FileExistsError:
                sequence += 1
                path = base.with_name(f"{base.name}-{sequence}")
                logger.debug("Backup directory exists, trying %s", path)
            except OSError as e:
                raise SnapshotError(
                    f"Cannot create backup directory {path}: {e}", step="create_directory"
                ) from e

    def backup_files(self, snapshot_dir: Path) -> StepResult:
        """Copy every existing candidate file into ``snapshot_dir``.

        Files are stored flat under their basename. Symlinked dotfiles are
        copied as the content they point at. Only candidates that do not exist
        at all are reported as skipped; anything else that is not a regular
        file (a directory, a dangling symlink) is left out of the snapshot.
        """
        logger.info("Backing up configuration files...")
        result = StepResult("backup_files")
        for source in self.config.candidate_files():
            if not source.exists() and not source.is_symlink():
                logger.debug("Skipping missing file: %s", source)
                result.skipped.append(source)
                continue
            if not source.is_file():
                logger.warning("Skipping %s: not a regular file", source)
                continue
            try:
                shutil.copy2(source, snapshot_dir / source.name)
            except OSError as e:
                result.error = f"Error backing up {source}: {e}"
                return result
            result.copied.append(source)
            logger.info("Backed up: %s", source.name)
        return result

    def backup_directories(self, snapshot_dir: Path) -> StepResult:
        """Recursively copy every existing candidate directory into ``snapshot_dir``."""
        logger.info("Backing up configuration directories...")
        result = StepResult("backup_directories")
        for source in self.config.candidate_directories():
            if not source.is_dir():
                logger.debug("Skipping missing directory: %s", source)
                result.skipped.append(source)
                continue
            if self.backup_dir.resolve().is_relative_to(source.resolve()):
                result.error = f"Cannot back up {source}: it contains the backup root"
                return result
            try:
                shutil.copytree(source, snapshot_dir / source.name, symlinks=True)
            except (OSError, shutil.Error) as e:
                result.error = f"Error backing up {source}: {e}"
                return result
            result.copied.append(source)
            logger.info("Backed up: %s", source.name)
        return result

    def build_restore_plan(
        self,
        snapshot_dir: Path,
        kind: str,
        created_at: datetime,
        files: StepResult,
        directories: StepResult,
    ) -> RestorePlan:
        """Describe how to put the copied paths back where they came from."""
        return RestorePlan(
            name=snapshot_dir.name,
            kind=kind,
            created_at=created_at,
            home=str(self.config.home),
            files=[RestoreEntry(p.name, str(p)) for p in files.copied],
            directories=[RestoreEntry(p.name, str(p)) for p in directories.copied],
            absent_files=[str(p) for p in files.skipped],
        )

    def write_restore_plan(
        self,
        snapshot_dir: Path,
        kind: str,
        created_at: datetime,
        files: StepResult,
        directories: StepResult,
    ) -> StepResult:
        """Write ``restore.yaml`` into ``snapshot_dir``."""
        result = StepResult("write_restore_plan")
        plan = self.build_restore_plan(snapshot_dir, kind, created_at, files, directories)
        plan_path = snapshot_dir / PLAN_FILE
        try:
            plan.save(plan_path)
        except OSError as e:
            result.error = f"Error writing restore plan {plan_path}: {e}"
            return result
        logger.info("Created restore plan at: %s", plan_path)
        return result

    def write_environment_info(self, snapshot_dir: Path) -> StepResult:
        """Write ``shell_info.txt`` into ``snapshot_dir``."""
        result = StepResult("write_environment_info")
        info_path = snapshot_dir / INFO_FILE
        try:
            environment.write_environment_info(info_path, self.config)
        except OSError as e:
            result.error = f"Error writing environment info {info_path}: {e}"
            return result
        logger.debug("Saved shell environment to %s", info_path)
        return result

    def write_marker(self, snapshot_dir: Path) -> None:
        """Point the marker file at ``snapshot_dir``."""
        marker = self.config.marker_file
        try:
            marker.parent.mkdir(parents=True, exist_ok=True)
            marker.write_text(f"{snapshot_dir}\n")
        except OSError as e:
            raise SnapshotError(
                f"Cannot write marker file {marker}: {e}", step="write_marker"
            ) from e

    def read_marker(self) -> Optional[Path]:
        """Return the path recorded in the marker file, if any."""
        marker = self.config.marker_file
        if not marker.is_file():
            return None
        value = marker.read_text().strip()
        return Path(value) if value else None

    @staticmethod
    def _check(result: StepResult) -> None:
        if not result.ok:
            logger.error("%s failed: %s", result.step, result.error)
            raise SnapshotError(result.error or f"{result.step} failed", step=result.step)

    def create_snapshot(self, kind: Optional[str] = None) -> Snapshot:
        """Snapshot the current configuration.

        Steps run in order: files, directories, restore plan, environment
        record. The marker file is updated only after all of them succeed.

        Args:
            kind (Optional[str]): Label used in the snapshot name, defaults to
                                  the configured kind (``setup``)

        Returns:
            Snapshot: The snapshot that was created

        Raises:
            SnapshotError: If the directory cannot be created or a step fails

        Example:
            ```python
            manager = BackupManager(Config())
            snapshot = manager.create_snapshot()
            print(snapshot.path)
            ```
        """
        kind = kind or self.config.kind
        created_at = self.clock()

        logger.info("Starting backup process...")
        snapshot_dir, sequence = self._create_snapshot_dir(created_at, kind)
        logger.info("Creating backup directory: %s", snapshot_dir)

        files = self.backup_files(snapshot_dir)
        self._check(files)
        directories = self.backup_directories(snapshot_dir)
        self._check(directories)
        self._check(
            self.write_restore_plan(snapshot_dir, kind, created_at, files, directories)
        )
        self._check(self.write_environment_info(snapshot_dir))

        self.write_marker(snapshot_dir)

        logger.info("Backup completed successfully!")
        logger.info("Backup location: %s", snapshot_dir)
        return Snapshot(path=snapshot_dir, kind=kind, created_at=created_at, sequence=sequence)

    def export_archive(self, snapshot: Snapshot, progress: Optional[Progress] = None) -> Path:
        """Export ``snapshot`` as a zip archive next to its directory.

        Raises:
            OSError: If the archive cannot be written
        """
        zip_path = snapshot.archive_path
        logger.info("Creating zip archive: %s", zip_path)
        ZipExporter(str(snapshot.path), str(zip_path)).export(progress)
        return zip_path

    def list_snapshots(self) -> List[Snapshot]:
        """List snapshots of every kind, newest first."""
        if not self.backup_dir.is_dir():
            return []

        snapshots = []
        for path in self.backup_dir.glob(self.config.snapshot_glob()):
            snapshot = Snapshot.from_path(path, self.config.prefix)
            if snapshot is not None:
                snapshots.append(snapshot)

        snapshots.sort(key=lambda s: s.sort_key(), reverse=True)
        return snapshots

    def latest_snapshot(self) -> Optional[Snapshot]:
        """Return the snapshot the marker points at, or the newest one listed."""
        marked = self.read_marker()
        if marked is not None:
            snapshot = Snapshot.from_path(marked, self.config.prefix)
            if snapshot is not None:
                return snapshot
            logger.debug("Marker points at missing snapshot %s", marked)

        snapshots = self.list_snapshots()
        return snapshots[0] if snapshots else None
