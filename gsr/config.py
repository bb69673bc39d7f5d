"""Runtime settings and logging setup."""

import logging
from dataclasses import dataclass
from pathlib import Path

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


@dataclass(frozen=True)
class Settings:
    """Options collected from the command line and environment."""

    timeout: float = 30.0
    commit_limit: int = 50
    log_file: Path | None = None
    verbose: bool = False


def configure_logging(settings: Settings) -> None:
    """Send log records to the log file, or nowhere.

    The TUI owns the terminal, so nothing is ever logged to stderr.
    """
    if settings.log_file is None:
        logging.basicConfig(handlers=[logging.NullHandler()], force=True)
        return
    logging.basicConfig(
        filename=settings.log_file,
        level=logging.DEBUG if settings.verbose else logging.INFO,
        format=LOG_FORMAT,
        force=True,
    )
