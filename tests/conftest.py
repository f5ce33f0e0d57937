"""Test configuration."""

from __future__ import annotations

from datetime import datetime, timedelta
from pathlib import Path

import pytest

from termsetup.core.backup import BackupManager
from termsetup.core.config import Config
from termsetup.core.restore import RestoreManager
from termsetup.core.wipe import WipeManager


class FakeClock:
    """Clock returning a fixed sequence of times."""

    def __init__(
        self,
        start: datetime = datetime(2024, 9, 27, 14, 30, 22),
        step: timedelta = timedelta(minutes=1),
    ) -> None:
        self.current = start
        self.step = step

    def __call__(self) -> datetime:
        value = self.current
        self.current += self.step
        return value


def create_test_files(home: Path) -> None:
    """Create a typical terminal configuration under ``home``."""
    (home / ".zshrc").write_text("alias x=1\n")
    (home / ".vimrc").write_text("set number\n")
    (home / ".gitconfig").write_text("[user]\n\tname = Test User\n")
    (home / ".config").mkdir(exist_ok=True)
    (home / ".config" / "starship.toml").write_text('format = "$all"\n')

    omz = home / ".oh-my-zsh"
    (omz / "plugins" / "git").mkdir(parents=True)
    (omz / "oh-my-zsh.sh").write_text("# oh-my-zsh\n")
    (omz / "plugins" / "git" / "git.plugin.zsh").write_text("alias gst='git status'\n")

    (home / ".vim" / "colors").mkdir(parents=True)
    (home / ".vim" / "colors" / "desert.vim").write_bytes(b"hi Normal\x00\xff\n")


@pytest.fixture
def home_dir(tmp_path: Path) -> Path:
    """Create an empty home directory."""
    home = tmp_path / "home"
    home.mkdir()
    return home


@pytest.fixture
def populated_home(home_dir: Path) -> Path:
    """Create a home directory holding configuration files."""
    create_test_files(home_dir)
    return home_dir


@pytest.fixture
def shells_file(tmp_path: Path) -> Path:
    """Create a stand-in for /etc/shells."""
    path = tmp_path / "shells"
    path.write_text("/bin/bash\n/bin/zsh\n")
    return path


@pytest.fixture
def test_config(home_dir: Path, shells_file: Path) -> Config:
    """Create a configuration rooted at the temporary home."""
    config = Config()
    config.load_from_dict({"home": str(home_dir), "shells_file": str(shells_file)})
    return config


@pytest.fixture
def clock() -> FakeClock:
    """Create a clock advancing one minute per call."""
    return FakeClock()


@pytest.fixture
def backup_manager(test_config: Config, clock: FakeClock) -> BackupManager:
    """Create a backup manager for testing."""
    return BackupManager(test_config, clock=clock)


@pytest.fixture
def restore_manager(test_config: Config, backup_manager: BackupManager) -> RestoreManager:
    """Create a restore manager for testing."""
    return RestoreManager(test_config, backup_manager)


@pytest.fixture
def wipe_manager(test_config: Config, backup_manager: BackupManager) -> WipeManager:
    """Create a wipe manager for testing."""
    return WipeManager(test_config, backup_manager)
