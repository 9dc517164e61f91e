"""
mist CLI -- one command, one profile, one run.

    mist PROFILE            reconcile (pull, unison, push)
    mist PROFILE --push     overwrite remote with local
    mist PROFILE --pull     overwrite local with remote

Entry point: mist.cli:main
"""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Optional

import click
from rich.markup import escape

from .. import __version__
from ..config import load_configuration
from ..errors import ConfigurationError, MistError
from ..models import SyncMode
from ..sync.crypto import GpgEnvelope
from ..sync.engine import SyncOrchestrator
from ..sync.merge import UnisonMerge
from ..sync.prompt import console_confirm
from ..sync.transport import PipedWriter, RemoteSession, SshTransport, StagedCopyWriter
from ._common import OUTCOME_MESSAGES, configure_logging, console


def select_mode(push: bool, pull: bool) -> SyncMode:
    """Map the mode flags to a SyncMode.

    Raises:
        click.UsageError: If both flags are given.
    """
    if push and pull:
        raise click.UsageError("--push and --pull cannot be used together.")
    if push:
        return SyncMode.PUSH
    if pull:
        return SyncMode.PULL
    return SyncMode.RECONCILE


@click.command()
@click.version_option(version=__version__, prog_name="mist")
@click.argument("profile")
@click.option(
    "--push", "-p", is_flag=True,
    help="Copy local to remote without syncing, overwriting remote if it exists.",
)
@click.option(
    "--pull", "-P", is_flag=True,
    help="Copy remote to local without syncing, overwriting local if it exists.",
)
@click.option(
    "--assume-yes", "-y", is_flag=True,
    help="Assume yes to all prompts and run with no interaction.",
)
@click.option(
    "--scp-write", "-s", is_flag=True,
    help="Write to the remote through a local copy and rsync, with progress.",
)
@click.option(
    "--config", "-c", "config_file", default=None,
    type=click.Path(dir_okay=False, path_type=Path),
    help="Configuration file (default: ~/.config/mist/mist.toml and friends).",
)
@click.option("--verbose", "-v", count=True, help="Show debug output.")
def main(
    profile: str,
    push: bool,
    pull: bool,
    assume_yes: bool,
    scp_write: bool,
    config_file: Optional[Path],
    verbose: int,
):
    """Keep a local folder in sync with an encrypted archive on a remote host.

    PROFILE names a table in the configuration file.

    Examples:

        mist notes

        mist notes --push -y

        mist notes --pull --scp-write
    """
    mode = select_mode(push, pull)
    configure_logging(verbose)

    try:
        config = load_configuration(profile, config_file=config_file)
    except ConfigurationError as exc:
        console.print(f"[bold red]{escape(str(exc))}[/]")
        sys.exit(1)

    writer = StagedCopyWriter() if scp_write else PipedWriter()
    try:
        with RemoteSession.connect(config.ssh_address) as session:
            engine = SyncOrchestrator(
                config,
                SshTransport(session, writer),
                GpgEnvelope.from_profile(config),
                UnisonMerge(),
                confirm=console_confirm,
                assume_yes=assume_yes,
            )
            outcome = engine.run(mode)
    except MistError as exc:
        console.print(f"[bold red]Error:[/] {escape(str(exc))}")
        sys.exit(1)

    console.print(OUTCOME_MESSAGES[outcome])
