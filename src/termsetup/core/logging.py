"""Logging configuration for termsetup.

Console output goes through rich so backup progress reads like the
``[INFO]``/``[WARNING]`` lines users expect from setup scripts; an optional
log file receives everything at debug level in a plain format.

Example:
    ```python
    from termsetup.core.logging import setup_logging

    setup_logging(debug=True, log_file="~/.cache/termsetup/termsetup.log")

    import logging
    logger = logging.getLogger(__name__)
    logger.info("Backed up: %s", ".zshrc")
    ```
"""

import logging
import sys
from pathlib import Path
from types import TracebackType
from typing import Optional, Type

from rich.console import Console
from rich.logging import RichHandler

# Log records go to stderr so command output stays clean
console = Console(stderr=True)


def setup_logging(
    debug: bool = False,
    log_file: Optional[str] = None,
    log_format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
) -> None:
    """Set up logging configuration.

    Args:
        debug: Whether to enable debug logging (default: False).
        log_file: Optional path to log file. The path is expanded to handle
                 ~ for home directory and its parent is created.
        log_format: Format string for the file handler.
    """
    root_logger = logging.getLogger()
    # Handlers filter by level; the root passes everything through
    root_logger.setLevel(logging.DEBUG)

    # Remove existing handlers
    root_logger.handlers.clear()

    console_handler = RichHandler(
        console=console,
        show_path=debug,
        enable_link_path=debug,
        markup=False,
        rich_tracebacks=True,
        tracebacks_show_locals=debug,
    )
    console_handler.setLevel(logging.DEBUG if debug else logging.INFO)
    root_logger.addHandler(console_handler)

    if log_file:
        log_path = Path(log_file).expanduser()
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(log_path)
        file_handler.setLevel(logging.DEBUG)  # Always log debug to file
        file_handler.setFormatter(logging.Formatter(log_format))
        root_logger.addHandler(file_handler)

    logger = logging.getLogger(__name__)
    logger.debug("Logging initialized (debug=%s)", debug)
    if log_file:
        logger.debug("Log file: %s", log_file)

    def handle_exception(
        exc_type: Type[BaseException],
        exc_value: BaseException,
        exc_traceback: Optional[TracebackType],
    ) -> None:
        """Log uncaught exceptions."""
        if issubclass(exc_type, KeyboardInterrupt):
            sys.__excepthook__(exc_type, exc_value, exc_traceback)
            return

        logger.critical(
            "Uncaught exception",
            exc_info=(exc_type, exc_value, exc_traceback),
        )

    sys.excepthook = handle_exception
