"""Logging setup for the CLI and the recorder hook."""

import logging
from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler

HOOK_DEBUG_LOG = Path.home() / ".claude" / "tapeback-debug.log"


def configure_logging(verbose: bool = False, console: Optional[Console] = None) -> None:
    """Route library logging through rich on stderr."""
    handler = RichHandler(
        console=console or Console(stderr=True),
        show_path=False,
        show_time=verbose,
    )
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[handler],
        force=True,
    )
    logging.getLogger("git").setLevel(logging.WARNING)


def configure_hook_logging(log_file: Path = HOOK_DEBUG_LOG) -> None:
    """Send hook logging to an append-only debug file, never the terminal."""
    log_file.parent.mkdir(parents=True, exist_ok=True)
    logging.basicConfig(
        level=logging.DEBUG,
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
        handlers=[logging.FileHandler(log_file, encoding="utf-8")],
        force=True,
    )
    logging.getLogger("git").setLevel(logging.WARNING)
