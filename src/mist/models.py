"""
Data models -- profile configuration and the small enums the sync engine speaks.
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, ConfigDict, StrictBool, field_validator

ARCHIVE_EXTENSION = ".tar.gz.gpg"
SIDECAR_EXTENSION = ".xxhash"


class SyncMode(str, Enum):
    """Operating mode of a run, chosen from the command line."""

    PUSH = "push"
    PULL = "pull"
    RECONCILE = "reconcile"


class MergeOutcome(str, Enum):
    """Result of handing the live and staging trees to the merge engine."""

    CLEAN = "clean"
    CONFLICTED = "conflicted"
    UNAVAILABLE = "unavailable"


class SyncOutcome(str, Enum):
    """What a run ended up doing."""

    PUSHED = "pushed"
    PULLED = "pulled"
    RECONCILED = "reconciled"
    UP_TO_DATE = "up-to-date"
    DECLINED = "declined"


class ProfileConfig(BaseModel):
    """One profile table from mist.toml.

    Attributes:
        name: Profile (table) name.
        folder: Local directory being synchronized.
        ssh_address: Remote endpoint, ``[user@]host[:port]``.
        gpg_id: Recipient key identity used for public-key encryption.
        temp_folder: Staging directory; its base name also names the
            remote archive and sidecar.
        gpg_program: Alternate GPG binary, if any.
        symmetric: Encrypt with a passphrase instead of ``gpg_id``.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    name: str
    folder: Path
    ssh_address: str
    gpg_id: str
    temp_folder: Path
    gpg_program: Optional[str] = None
    symmetric: StrictBool = False

    @field_validator("folder", "temp_folder", mode="after")
    @classmethod
    def _expand_user(cls, value: Path) -> Path:
        return value.expanduser()

    @property
    def archive_name(self) -> str:
        """Remote file name of the encrypted archive."""
        stem = self.temp_folder.stem if self.temp_folder.suffix else self.temp_folder.name
        return stem + ARCHIVE_EXTENSION

    @property
    def sidecar_name(self) -> str:
        """Remote file name of the 8-byte digest sidecar."""
        return self.archive_name + SIDECAR_EXTENSION
