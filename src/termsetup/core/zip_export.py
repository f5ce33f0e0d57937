"""
Zip archive export of snapshots.

The archive holds the snapshot directory itself as its single top-level
entry, so extracting it anywhere recreates ``<snapshot-name>/...``.
"""

import os
import zipfile
from pathlib import Path
from typing import List, Optional

from rich.progress import Progress, TaskID


class ZipExporter:
    """Writes a snapshot directory to a zip archive."""

    def __init__(self, source_dir: str, output_path: str):
        """
        Initialize the ZipExporter.

        Args:
            source_dir: Snapshot directory to archive
            output_path: Path of the zip file to create
        """
        self.source_dir = Path(source_dir)
        self.output_path = Path(output_path)

    def export(self, progress: Optional[Progress] = None) -> None:
        """
        Write the archive.

        Args:
            progress: Optional Progress instance, advanced once per entry

        Raises:
            OSError: If the archive cannot be written; the partial file is removed
            ValueError: If the snapshot directory doesn't exist
        """
        if not self.source_dir.is_dir():
            raise ValueError(f"Snapshot directory {self.source_dir} does not exist")

        entries = self._collect_entries()

        task_id: Optional[TaskID] = None
        if progress:
            task_id = progress.add_task(
                f"Archiving {self.source_dir.name}", total=len(entries)
            )

        root = self.source_dir.parent
        try:
            with zipfile.ZipFile(self.output_path, "w", zipfile.ZIP_DEFLATED) as zf:
                for entry in entries:
                    arcname = entry.relative_to(root).as_posix()
                    if entry.is_symlink():
                        # Plugin trees keep their symlinks as link entries
                        info = zipfile.ZipInfo(arcname)
                        info.external_attr = 0o120777 << 16
                        zf.writestr(info, os.readlink(entry))
                    else:
                        zf.write(entry, arcname)

                    if progress and task_id is not None:
                        progress.advance(task_id)
        except OSError as e:
            if self.output_path.exists():
                self.output_path.unlink()
            raise OSError(f"Failed to create zip archive: {e}") from e

    def _collect_entries(self) -> List[Path]:
        """
        List the snapshot's files, symlinks and empty directories.

        Returns:
            Sorted list of paths to add to the archive
        """
        entries = []
        for root, dirnames, filenames in os.walk(self.source_dir):
            root_path = Path(root)
            if not dirnames and not filenames and root_path != self.source_dir:
                entries.append(root_path)
            for dirname in dirnames:
                # os.walk does not descend into directory symlinks
                if (root_path / dirname).is_symlink():
                    entries.append(root_path / dirname)
            for filename in filenames:
                entries.append(root_path / filename)
        return sorted(entries)
