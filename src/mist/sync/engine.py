"""
Sync engine -- decides what a run does and in which order.

    mist PROFILE --push  ->  digest -> pack -> encrypt -> write archive -> write sidecar
    mist PROFILE --pull  ->  read -> decrypt -> unpack onto the live folder
    mist PROFILE         ->  compare sidecar with local digest; if they differ:
                             pull to staging -> unison -> push -> drop staging

The engine owns no I/O of its own: remote access, crypto, merging and
confirmation are handed in, so tests can swap all four for fakes.
"""

from __future__ import annotations

import logging
import shutil
from pathlib import Path
from typing import Optional

from ..errors import ArchiveError, TransportError
from ..models import MergeOutcome, ProfileConfig, SyncMode, SyncOutcome
from . import archive
from .crypto import CryptoProvider
from .digest import decode_digest, encode_digest, hash_metadata
from .merge import MergeEngine
from .prompt import Confirmer, console_confirm
from .transport import RemoteTransport

logger = logging.getLogger("mist.sync.engine")

PROMPT_OVERWRITE_REMOTE = "Remote storage exists: overwrite?"
PROMPT_OVERWRITE_LOCAL = "Local directory exists: overwrite?"
PROMPT_MERGE_FAILED = "Unison may have produced an error. Transfer to remote anyway?"
PROMPT_MERGE_UNAVAILABLE = "Unison could not be run. Transfer local state to remote anyway?"


class SyncOrchestrator:
    """Runs one push, pull or reconcile cycle for a profile."""

    def __init__(
        self,
        config: ProfileConfig,
        transport: RemoteTransport,
        crypto: CryptoProvider,
        merge: MergeEngine,
        confirm: Confirmer = console_confirm,
        assume_yes: bool = False,
    ):
        """Initialize the orchestrator.

        Args:
            config: The active profile.
            transport: Remote file access.
            crypto: Encrypts and decrypts archive blobs.
            merge: Two-way merge between live and staging trees.
            confirm: Yes/no prompt for destructive steps.
            assume_yes: Answer yes to every prompt and run unison in batch mode.
        """
        self.config = config
        self.transport = transport
        self.crypto = crypto
        self.merge = merge
        self.confirm = confirm
        self.assume_yes = assume_yes

    def run(self, mode: SyncMode) -> SyncOutcome:
        """Execute a run in the given mode."""
        logger.debug("Running profile [%s] in %s mode", self.config.name, mode.value)
        if mode is SyncMode.PUSH:
            return self.push()
        if mode is SyncMode.PULL:
            return self.pull()
        return self.reconcile()

    def push(self) -> SyncOutcome:
        """Overwrite the remote archive with the local folder."""
        if self.transport.exists(self.config.archive_name) and not self.confirm(
            PROMPT_OVERWRITE_REMOTE, self.assume_yes
        ):
            logger.info("Push declined, remote left untouched")
            return SyncOutcome.DECLINED

        self._push_remote()
        return SyncOutcome.PUSHED

    def pull(self) -> SyncOutcome:
        """Overwrite the local folder with the remote archive."""
        if self.config.folder.is_dir() and not self.confirm(
            PROMPT_OVERWRITE_LOCAL, self.assume_yes
        ):
            logger.info("Pull declined, local folder left untouched")
            return SyncOutcome.DECLINED

        self._pull_remote(self.config.folder)
        return SyncOutcome.PULLED

    def reconcile(self) -> SyncOutcome:
        """Pull to staging, merge with unison, push the result back.

        Skips everything when the remote sidecar matches the local digest.
        The staging directory is removed whatever happens after the pull
        starts.
        """
        remote_digest = self._read_remote_digest()
        local_digest = hash_metadata(self.config.folder)

        if remote_digest is not None and local_digest is not None:
            if remote_digest == local_digest:
                logger.info("Already up to date")
                return SyncOutcome.UP_TO_DATE

        self._clear_stale_staging()
        try:
            self._pull_remote(self.config.temp_folder)

            outcome = self.merge.merge(
                self.config.folder, self.config.temp_folder, batch=self.assume_yes
            )
            if outcome is not MergeOutcome.CLEAN:
                prompt = (
                    PROMPT_MERGE_UNAVAILABLE
                    if outcome is MergeOutcome.UNAVAILABLE
                    else PROMPT_MERGE_FAILED
                )
                if not self.confirm(prompt, self.assume_yes):
                    logger.info("Push after failed merge declined")
                    return SyncOutcome.DECLINED

            self._push_remote()
        finally:
            self._remove_staging()

        return SyncOutcome.RECONCILED

    def _read_remote_digest(self) -> Optional[int]:
        try:
            blob = self.transport.read(self.config.sidecar_name)
        except TransportError as exc:
            logger.info("No remote hash available: %s", exc)
            return None
        try:
            return decode_digest(blob)
        except ValueError as exc:
            logger.warning("Ignoring malformed remote hash: %s", exc)
            return None

    def _pull_remote(self, dest: Path) -> None:
        logger.info("Pulling from remote...")
        blob = self.transport.read(self.config.archive_name)
        plain = self.crypto.decrypt(blob)
        archive.unpack(plain, dest)

    def _push_remote(self) -> None:
        logger.info("Pushing to remote...")
        digest = hash_metadata(self.config.folder)
        blob = self.crypto.encrypt(archive.pack(self.config.folder))

        if not self.transport.write(blob, self.config.archive_name):
            logger.warning(
                "Archive write not confirmed, leaving remote hash %s unchanged",
                self.config.sidecar_name,
            )
            return

        if digest is None:
            logger.error("Error hashing the sync folder, remote hash not updated")
            return

        if not self.transport.write(encode_digest(digest), self.config.sidecar_name):
            logger.warning("Remote hash %s was not updated", self.config.sidecar_name)

    def _clear_stale_staging(self) -> None:
        """Drop a staging directory left behind by an interrupted run.

        Leftovers would reach unison as if they came from the remote.

        Raises:
            ArchiveError: If the leftover directory cannot be removed.
        """
        staging = self.config.temp_folder
        if not staging.exists():
            return
        logger.warning("Removing leftover staging directory %s", staging)
        try:
            shutil.rmtree(staging)
        except OSError as exc:
            raise ArchiveError(f"Cannot clear staging directory {staging}: {exc}") from exc

    def _remove_staging(self) -> None:
        try:
            shutil.rmtree(self.config.temp_folder)
        except OSError as exc:
            logger.error("Error deleting temporary directory: %s", exc)
        else:
            logger.info("Deleted temporary directory %s", self.config.temp_folder)
