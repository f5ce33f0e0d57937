"""Test CLI commands."""

from pathlib import Path

import pytest
import yaml
from click.testing import CliRunner

from termsetup.cli import cli

from conftest import create_test_files


@pytest.fixture
def cli_runner() -> CliRunner:
    """Return a CLI runner."""
    return CliRunner()


@pytest.fixture
def config_file(tmp_path: Path, home_dir: Path, shells_file: Path) -> Path:
    """Write a configuration pointing at the temporary home."""
    create_test_files(home_dir)
    path = tmp_path / "config.yaml"
    with open(path, "w") as f:
        yaml.safe_dump({"home": str(home_dir), "shells_file": str(shells_file)}, f)
    return path


def snapshots(home: Path) -> list:
    return sorted((home / ".config").glob("terminal-*-backup-*[0-9]"))


def test_backup(cli_runner: CliRunner, config_file: Path, home_dir: Path) -> None:
    """Test backup command."""
    result = cli_runner.invoke(cli, ["--config", str(config_file), "backup"])
    assert result.exit_code == 0, result.output
    assert "Backup created" in result.output
    assert len(snapshots(home_dir)) == 1


def test_backup_kind_and_zip(cli_runner: CliRunner, config_file: Path, home_dir: Path) -> None:
    """Test backup command with a kind label and zip export."""
    result = cli_runner.invoke(
        cli, ["--config", str(config_file), "backup", "--kind", "update", "--zip-export"]
    )
    assert result.exit_code == 0, result.output
    created = snapshots(home_dir)
    assert len(created) == 1
    assert created[0].name.startswith("terminal-update-backup-")
    assert created[0].with_name(created[0].name + ".zip").exists()


def test_backup_invalid_config(cli_runner: CliRunner, tmp_path: Path) -> None:
    """Test that an invalid configuration aborts."""
    path = tmp_path / "config.yaml"
    path.write_text("retain_count: many\n")
    result = cli_runner.invoke(cli, ["--config", str(path), "backup"])
    assert result.exit_code == 1
    assert "Error" in result.output


def test_restore(cli_runner: CliRunner, config_file: Path, home_dir: Path) -> None:
    """Test restore command."""
    result = cli_runner.invoke(cli, ["--config", str(config_file), "backup"])
    assert result.exit_code == 0, result.output

    (home_dir / ".zshrc").write_text("alias x=changed\n")
    result = cli_runner.invoke(cli, ["--config", str(config_file), "restore", "--force"])
    assert result.exit_code == 0, result.output
    assert "All files restored successfully" in result.output
    assert (home_dir / ".zshrc").read_text() == "alias x=1\n"


def test_restore_confirmation(cli_runner: CliRunner, config_file: Path, home_dir: Path) -> None:
    """Test that declining the prompt leaves files alone."""
    cli_runner.invoke(cli, ["--config", str(config_file), "backup"])
    (home_dir / ".zshrc").write_text("alias x=changed\n")

    result = cli_runner.invoke(cli, ["--config", str(config_file), "restore"], input="n\n")
    assert result.exit_code == 0, result.output
    assert "Restore cancelled" in result.output
    assert (home_dir / ".zshrc").read_text() == "alias x=changed\n"

    result = cli_runner.invoke(cli, ["--config", str(config_file), "restore"], input="y\n")
    assert result.exit_code == 0, result.output
    assert (home_dir / ".zshrc").read_text() == "alias x=1\n"


def test_restore_keep_absent(cli_runner: CliRunner, config_file: Path, home_dir: Path) -> None:
    """Test restore command with --keep-absent."""
    cli_runner.invoke(cli, ["--config", str(config_file), "backup"])
    (home_dir / ".p10k.zsh").write_text("# p10k\n")

    result = cli_runner.invoke(
        cli, ["--config", str(config_file), "restore", "--force", "--keep-absent"]
    )
    assert result.exit_code == 0, result.output
    assert (home_dir / ".p10k.zsh").exists()


def test_restore_missing_backup(cli_runner: CliRunner, config_file: Path) -> None:
    """Test restore command without any backup."""
    result = cli_runner.invoke(cli, ["--config", str(config_file), "restore", "--force"])
    assert result.exit_code == 1
    assert "No backups found" in result.output


def test_list_command(cli_runner: CliRunner, config_file: Path) -> None:
    """Test list command."""
    result = cli_runner.invoke(cli, ["--config", str(config_file), "list"])
    assert result.exit_code == 0
    assert "No backups found" in result.output

    cli_runner.invoke(cli, ["--config", str(config_file), "backup"])
    result = cli_runner.invoke(cli, ["--config", str(config_file), "list", "--verbose"])
    assert result.exit_code == 0, result.output
    assert "Available Backups" in result.output
    assert "Kind" in result.output
    assert "Backup Path:" in result.output


def test_prune_command(cli_runner: CliRunner, config_file: Path, home_dir: Path) -> None:
    """Test prune command."""
    for kind in ("setup", "update", "setup"):
        result = cli_runner.invoke(cli, ["--config", str(config_file), "backup", "-k", kind])
        assert result.exit_code == 0, result.output

    result = cli_runner.invoke(
        cli, ["--config", str(config_file), "prune", "--keep", "1"], input="n\n"
    )
    assert result.exit_code == 0
    assert "Aborted" in result.output
    assert len(snapshots(home_dir)) == 3

    result = cli_runner.invoke(
        cli, ["--config", str(config_file), "prune", "--keep", "1", "--force"]
    )
    assert result.exit_code == 0, result.output
    assert "Removed 2 old backup(s)" in result.output
    assert len(snapshots(home_dir)) == 1

    result = cli_runner.invoke(cli, ["--config", str(config_file), "prune", "--force"])
    assert result.exit_code == 0
    assert "No old backups to remove" in result.output


def test_wipe_command(cli_runner: CliRunner, config_file: Path, home_dir: Path) -> None:
    """Test wipe command."""
    cli_runner.invoke(cli, ["--config", str(config_file), "backup"])
    name = snapshots(home_dir)[0].name

    result = cli_runner.invoke(cli, ["--config", str(config_file), "wipe", name, "--force"])
    assert result.exit_code == 0, result.output
    assert snapshots(home_dir) == []

    result = cli_runner.invoke(cli, ["--config", str(config_file), "wipe", name, "--force"])
    assert result.exit_code == 1
    assert "No backup found" in result.output


def test_init_command(cli_runner: CliRunner, tmp_path: Path) -> None:
    """Test init command."""
    path = tmp_path / "termsetup" / "config.yaml"
    result = cli_runner.invoke(cli, ["init", str(path)])
    assert result.exit_code == 0, result.output

    with open(path) as f:
        data = yaml.safe_load(f)
    assert data["retain_count"] == 5
    assert ".zshrc" in data["files"]

    result = cli_runner.invoke(cli, ["init", str(path)])
    assert result.exit_code == 1
    assert "already exists" in result.output
