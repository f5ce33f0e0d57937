"""Shell environment capture for troubleshooting."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Mapping, Optional

from .config import Config


def capture_environment(config: Config, environ: Optional[Mapping[str, str]] = None) -> str:
    """Describe the current shell environment as text.

    The record is advisory: restore never reads it.

    Args:
        config: Configuration naming the shells file and the variables to record.
        environ: Environment to read, defaults to ``os.environ``.

    Returns:
        The text written to ``shell_info.txt``.
    """
    env = os.environ if environ is None else environ

    try:
        shells = config.shells_file.read_text().rstrip("\n")
    except OSError:
        shells = "(unavailable)"

    lines = [
        f"Current shell: {env.get('SHELL', 'not set')}",
        "Available shells:",
        shells,
        "",
        "Current PATH:",
        env.get("PATH", ""),
        "",
        "Current environment variables (selected):",
    ]
    for name in config.environment_variables:
        lines.append(f"{name}: {env.get(name) or 'not set'}")
    return "\n".join(lines) + "\n"


def write_environment_info(
    path: Path, config: Config, environ: Optional[Mapping[str, str]] = None
) -> None:
    """Write the environment record to ``path``."""
    path.write_text(capture_environment(config, environ))
