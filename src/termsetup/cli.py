"""Command line interface for termsetup."""

from pathlib import Path
from typing import Dict, List, Optional

import click
import yaml
from rich.console import Console
from rich.progress import Progress
from rich.table import Table
from rich.tree import Tree

from .core.backup import BackupManager
from .core.config import DEFAULT_CONFIG, Config
from .core.logging import setup_logging
from .core.restore import RestoreManager
from .core.snapshot import INFO_FILE, PLAN_FILE, Snapshot
from .core.wipe import WipeManager

console = Console()


@click.group()
@click.option(
    "--config",
    "config_file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="YAML configuration file overriding the defaults",
)
@click.option("--debug", is_flag=True, help="Enable debug logging")
@click.option("--log-file", help="Also write a debug log to this file")
@click.pass_context
def cli(
    ctx: click.Context, config_file: Optional[Path], debug: bool, log_file: Optional[str]
) -> None:
    """Terminal configuration backup tool.

    Snapshots shell, editor and multiplexer configuration before an
    environment setup changes it, and puts it back afterwards.

    Main commands:

      backup    Snapshot the current configuration
      restore   Restore a snapshot (the most recent by default)
      list      List snapshots
      prune     Delete all but the most recent snapshots
      wipe      Delete one snapshot
      init      Write the default configuration file

    Run 'termsetup COMMAND --help' for more information on a specific command.
    """
    setup_logging(debug=debug, log_file=log_file)
    try:
        config = Config(config_file)
    except ValueError as e:
        console.print(f"[red]Error: {e}")
        raise click.Abort()

    errors = config.validate()
    if errors:
        for error in errors:
            console.print(f"[red]Error: {error}")
        raise click.Abort()
    ctx.obj = config


@cli.command()
@click.option("--kind", "-k", help="Label used in the snapshot name (default: setup)")
@click.option(
    "--zip-export",
    is_flag=True,
    help="Export the snapshot as a zip file in addition to the snapshot directory",
)
@click.pass_obj
def backup(config: Config, kind: Optional[str], zip_export: bool) -> None:
    """Snapshot the current terminal configuration.

    Copies every configured file and directory that exists into a new
    directory named <prefix>-<kind>-backup-<YYYYMMDD_HHMMSS> under the backup
    root, together with a restore plan and a record of the shell environment.

    Examples:

      # Snapshot before running an installer
      termsetup backup

      # Snapshot before an update, and keep a zip copy
      termsetup backup --kind update --zip-export
    """
    try:
        manager = BackupManager(config)
        snapshot = manager.create_snapshot(kind)
    except Exception as e:
        console.print(f"[red]Error: {e}")
        raise click.Abort()

    console.print(f"[green]Backup created at {snapshot.path}")

    if zip_export:
        try:
            with Progress(console=console, transient=True) as progress:
                zip_path = manager.export_archive(snapshot, progress)
            console.print(f"[green]Successfully created zip archive: {zip_path}")
        except (OSError, ValueError) as e:
            console.print(f"[red]Error creating zip archive: {e}")
            console.print("[yellow]Backup was successful but zip creation failed")

    console.print(f"[yellow]To restore this configuration, run: termsetup restore {snapshot.name}")


@cli.command()
@click.argument("snapshot", required=False)
@click.option("--force", "-f", is_flag=True, help="Restore without asking for confirmation")
@click.option(
    "--keep-absent",
    is_flag=True,
    help="Do not delete files that did not exist when the snapshot was taken",
)
@click.pass_obj
def restore(config: Config, snapshot: Optional[str], force: bool, keep_absent: bool) -> None:
    """Restore a snapshot.

    SNAPSHOT is a snapshot name, a snapshot directory, or a date (YYYYMMDD)
    selecting the latest snapshot of that day. Without it the most recent
    snapshot is restored.

    Current configuration files are deleted and replaced by the snapshot's
    copies. This cannot be undone; take a new backup first if unsure.

    Examples:

      # Restore the most recent snapshot
      termsetup restore

      # Restore a specific snapshot without prompting
      termsetup restore terminal-setup-backup-20240927_143022 --force
    """
    try:
        backup_manager = BackupManager(config)
        manager = RestoreManager(config, backup_manager, console)

        found = manager.find_snapshot(snapshot)
        if found is None:
            console.print("[yellow]No backups found")
            raise click.Abort()

        console.print(f"Found backup: {found.path}")
        if not force and not click.confirm("Restore from this backup?", default=True):
            console.print("Restore cancelled.")
            return

        manager.restore(found, remove_absent=False if keep_absent else None)

        console.print("\nValidating restore...")
        is_valid, results = manager.validate_restore(found)
        manager.display_validation_results(results)
    except click.Abort:
        raise
    except Exception as e:
        console.print(f"[red]Error: {e}")
        raise click.Abort()

    if is_valid:
        console.print("[green]All files restored successfully!")
    else:
        console.print("[yellow]Warning: Some files may not have been restored correctly")
    console.print("Please restart your terminal or run 'source ~/.zshrc' or 'source ~/.bashrc'")


def _contents(snapshot: Snapshot) -> Dict[str, List[str]]:
    """Names of the files and directories held by a snapshot."""
    contents: Dict[str, List[str]] = {"files": [], "directories": []}
    try:
        for item in sorted(snapshot.path.iterdir()):
            if item.name in (PLAN_FILE, INFO_FILE):
                continue
            contents["directories" if item.is_dir() else "files"].append(item.name)
    except (PermissionError, FileNotFoundError):
        pass
    return contents


@cli.command(name="list")
@click.option(
    "--verbose", "-v", is_flag=True, help="Show the files held by each snapshot as a tree"
)
@click.pass_obj
def list_snapshots(config: Config, verbose: bool) -> None:
    """List snapshots, newest first.

    Examples:

      termsetup list

      termsetup list --verbose
    """
    manager = BackupManager(config)
    snapshots = manager.list_snapshots()

    if not snapshots:
        console.print("[yellow]No backups found.")
        return

    marked = manager.read_marker()

    table = Table(title="Available Backups")
    table.add_column("Backup", style="cyan")
    table.add_column("Kind", style="green")
    table.add_column("Created", style="yellow")
    table.add_column("Files", style="magenta")
    table.add_column("Directories", style="magenta")
    table.add_column("Latest", style="blue")

    for snapshot in snapshots:
        contents = _contents(snapshot)
        table.add_row(
            snapshot.name,
            snapshot.kind,
            snapshot.created_at.strftime("%Y-%m-%d %H:%M:%S"),
            str(len(contents["files"])),
            str(len(contents["directories"])),
            "*" if marked == snapshot.path else "",
        )

    console.print(table)

    if verbose:
        for snapshot in snapshots:
            console.print(f"\n[bold cyan]Backup:[/] {snapshot.name}")
            console.print(f"[bold yellow]Backup Path:[/] {snapshot.path}")
            tree = Tree(f"[bold magenta]{snapshot.name}[/]")
            contents = _contents(snapshot)
            for name in contents["files"]:
                tree.add(f"[green]{name}[/]")
            for name in contents["directories"]:
                directory = tree.add(f"[bold blue]{name}/[/]")
                file_count = sum(1 for p in (snapshot.path / name).rglob("*") if p.is_file())
                directory.add(f"{file_count} files")
            console.print(tree)


@cli.command()
@click.option(
    "--keep",
    "-k",
    type=click.IntRange(min=0),
    help="Number of most recent snapshots to keep (default: retain_count, 5)",
)
@click.option("--force", "-f", is_flag=True, help="Delete without confirmation prompt")
@click.pass_obj
def prune(config: Config, keep: Optional[int], force: bool) -> None:
    """Delete all but the most recent snapshots.

    Snapshots of every kind are ordered by creation time; ones beyond the
    newest KEEP are deleted together with their zip archives.

    Examples:

      termsetup prune

      termsetup prune --keep 2 --force
    """
    manager = WipeManager(config)
    expired = manager.expired_snapshots(keep)
    if not expired:
        console.print("No old backups to remove.")
        return

    if not force:
        console.print("\nThe following backups will be deleted:")
        for snapshot in expired:
            console.print(f"  - {snapshot.path}")
        if not click.confirm("\nContinue?", default=False):
            console.print("Aborted.")
            return

    removed, failed = manager.prune(keep)
    console.print(f"[green]Removed {len(removed)} old backup(s).")
    if failed:
        for path in failed:
            console.print(f"[red]Could not remove {path}")
        raise click.Abort()


@cli.command()
@click.argument("snapshot")
@click.option("--force", "-f", is_flag=True, help="Delete without confirmation prompt")
@click.pass_obj
def wipe(config: Config, snapshot: str, force: bool) -> None:
    """Delete one snapshot.

    SNAPSHOT is a snapshot name, directory or date (YYYYMMDD).

    Examples:

      termsetup wipe terminal-setup-backup-20240927_143022 --force
    """
    backup_manager = BackupManager(config)
    found = RestoreManager(config, backup_manager, console).find_snapshot(snapshot)
    if found is None:
        console.print(f"[yellow]No backup found matching '{snapshot}'")
        raise click.Abort()

    if not force and not click.confirm(f"Delete {found.path}?", default=False):
        console.print("Aborted.")
        return

    try:
        WipeManager(config, backup_manager).wipe(found)
    except OSError as e:
        console.print(f"[red]Error: {e}")
        raise click.Abort()
    console.print(f"[green]Removed {found.path}")


@cli.command()
@click.argument(
    "path",
    required=False,
    type=click.Path(dir_okay=False, path_type=Path),
    default=Path("~/.config/termsetup/config.yaml"),
)
@click.option("--force", "-f", is_flag=True, help="Overwrite an existing file")
def init(path: Path, force: bool) -> None:
    """Write the default configuration file.

    The file lists the candidate files and directories, the backup location
    and the retention count. Pass it back with 'termsetup --config PATH'.

    Example:

      termsetup init ~/.config/termsetup/config.yaml
    """
    path = path.expanduser()
    if path.exists() and not force:
        console.print(f"[yellow]{path} already exists (use --force to overwrite)")
        raise click.Abort()

    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w") as f:
        yaml.safe_dump(DEFAULT_CONFIG, f, sort_keys=False)
    console.print(f"[green]Wrote default configuration to {path}")


def main() -> None:
    """Entry point for the termsetup CLI."""
    cli()


if __name__ == "__main__":
    main()
