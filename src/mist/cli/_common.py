"""Shared CLI utilities: the Rich console and logging setup."""

from __future__ import annotations

import logging

from rich.console import Console

from ..models import SyncOutcome

console = Console()

OUTCOME_MESSAGES = {
    SyncOutcome.PUSHED: "[green]Pushed to remote[/]",
    SyncOutcome.PULLED: "[green]Pulled from remote[/]",
    SyncOutcome.RECONCILED: "[green]Synchronized with remote[/]",
    SyncOutcome.UP_TO_DATE: "[cyan]Already up to date[/]",
    SyncOutcome.DECLINED: "[yellow]Nothing transferred[/]",
}


def configure_logging(verbose: int) -> None:
    """Route mist's loggers to stderr.

    Args:
        verbose: Number of ``-v`` flags. 0 shows progress, 1+ adds debug
            output with logger names.
    """
    if verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(name)s: %(message)s", force=True)
    else:
        logging.basicConfig(level=logging.INFO, format="%(message)s", force=True)
    logging.getLogger("paramiko").setLevel(logging.WARNING)
