"""Operator confirmation for destructive steps."""

from __future__ import annotations

from typing import Protocol

import click


class Confirmer(Protocol):
    """Answer a yes/no question, short-circuiting when assume_yes is set."""

    def __call__(self, prompt: str, assume_yes: bool) -> bool: ...


def console_confirm(prompt: str, assume_yes: bool) -> bool:
    """Ask on the terminal. Anything but an explicit yes is a no."""
    if assume_yes:
        return True
    try:
        return click.confirm(prompt, default=False)
    except click.Abort:
        return False
