"""Tests for the shell environment record."""

from pathlib import Path

from termsetup.core.config import Config
from termsetup.core.environment import capture_environment, write_environment_info


def test_capture_environment(test_config: Config) -> None:
    """Test the environment record contents."""
    environ = {
        "SHELL": "/bin/zsh",
        "PATH": "/usr/local/bin:/usr/bin",
        "TERM": "xterm-256color",
        "EDITOR": "vim",
    }

    info = capture_environment(test_config, environ)

    assert info.splitlines() == [
        "Current shell: /bin/zsh",
        "Available shells:",
        "/bin/bash",
        "/bin/zsh",
        "",
        "Current PATH:",
        "/usr/local/bin:/usr/bin",
        "",
        "Current environment variables (selected):",
        "TERM: xterm-256color",
        "EDITOR: vim",
        "PAGER: not set",
    ]


def test_capture_environment_without_shells_file(test_config: Config, tmp_path: Path) -> None:
    """Test that a missing shells file does not fail the capture."""
    test_config.load_from_dict({"shells_file": str(tmp_path / "missing")})
    info = capture_environment(test_config, {})
    assert "(unavailable)" in info
    assert "Current shell: not set" in info


def test_write_environment_info(test_config: Config, tmp_path: Path) -> None:
    """Test writing the record to a file."""
    path = tmp_path / "shell_info.txt"
    write_environment_info(path, test_config, {"SHELL": "/bin/bash"})
    assert path.read_text().startswith("Current shell: /bin/bash\n")
