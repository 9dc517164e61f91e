"""
Crypto envelope -- GPG around the archive before it leaves the machine.

The archive is always ASCII-armoured. Public-key mode encrypts to the
profile's ``gpg_id``; symmetric mode uses a passphrase instead. Decryption
does not care which mode produced the envelope, the OpenPGP packets say.

A profile may name an alternate GPG binary. If that binary cannot be
found we warn and fall back to plain ``gpg`` rather than failing.
"""

from __future__ import annotations

import logging
import os
import shutil
import subprocess
from typing import Optional, Protocol

from ..errors import CryptoError
from ..models import ProfileConfig

logger = logging.getLogger("mist.sync.crypto")

DEFAULT_GPG = "gpg"
PASSPHRASE_ENV_VAR = "MIST_PASSPHRASE"


class CryptoProvider(Protocol):
    """Anything that can seal and open archive blobs."""

    def encrypt(self, data: bytes) -> bytes: ...

    def decrypt(self, data: bytes) -> bytes: ...


def resolve_engine(gpg_program: Optional[str] = None) -> str:
    """Pick the GPG binary to run.

    Args:
        gpg_program: Alternate binary from the profile, if any.

    Returns:
        The override when it resolves to an executable, else ``gpg``.
    """
    if not gpg_program:
        return DEFAULT_GPG
    resolved = shutil.which(os.path.expanduser(gpg_program))
    if resolved is None:
        logger.warning(
            "Cannot use GPG program %s, falling back to %s", gpg_program, DEFAULT_GPG
        )
        return DEFAULT_GPG
    return resolved


def _passphrase_args(passphrase: Optional[str]) -> list[str]:
    if passphrase is None:
        return []
    return ["--batch", "--pinentry-mode", "loopback", "--passphrase", passphrase]


def _run_gpg(cmd: list[str], data: bytes, action: str) -> bytes:
    try:
        result = subprocess.run(cmd, input=data, capture_output=True, check=False)
    except FileNotFoundError as exc:
        raise CryptoError(f"GPG {action} failed: {cmd[0]} not found") from exc

    if result.returncode != 0:
        stderr = result.stderr.decode("utf-8", errors="replace").strip()
        raise CryptoError(f"GPG {action} failed: {stderr or f'exit status {result.returncode}'}")
    return result.stdout


def encrypt(
    data: bytes,
    recipient: str,
    gpg_program: Optional[str] = None,
    symmetric: bool = False,
    passphrase: Optional[str] = None,
) -> bytes:
    """Encrypt bytes into an armoured OpenPGP message.

    Args:
        data: Plaintext archive bytes.
        recipient: Key identity to encrypt to (ignored when symmetric).
        gpg_program: Alternate GPG binary.
        symmetric: Use passphrase-based encryption.
        passphrase: Passphrase handed to gpg in loopback mode. When None,
            gpg-agent asks for one if it needs to.

    Returns:
        The armoured ciphertext.

    Raises:
        CryptoError: If gpg is missing or exits non-zero.
    """
    cmd = [resolve_engine(gpg_program), "--armor", "--yes", "--output", "-"]
    cmd.extend(_passphrase_args(passphrase))
    if symmetric:
        cmd.extend(["--symmetric", "--cipher-algo", "AES256"])
    else:
        cmd.extend(["--encrypt", "--recipient", recipient])

    out = _run_gpg(cmd, data, "encryption")
    logger.info(
        "Encrypted %d bytes (%s)", len(data), "symmetric" if symmetric else f"to {recipient}"
    )
    return out


def decrypt(
    data: bytes,
    gpg_program: Optional[str] = None,
    passphrase: Optional[str] = None,
) -> bytes:
    """Decrypt an OpenPGP message produced by ``encrypt``.

    Raises:
        CryptoError: On a bad key, wrong passphrase or corrupted input.
    """
    cmd = [resolve_engine(gpg_program), "--yes", "--output", "-"]
    cmd.extend(_passphrase_args(passphrase))
    cmd.append("--decrypt")

    out = _run_gpg(cmd, data, "decryption")
    logger.info("Decrypted %d bytes", len(out))
    return out


class GpgEnvelope:
    """CryptoProvider bound to one profile's GPG settings."""

    def __init__(
        self,
        recipient: str,
        gpg_program: Optional[str] = None,
        symmetric: bool = False,
        passphrase: Optional[str] = None,
    ):
        self.recipient = recipient
        self.gpg_program = gpg_program
        self.symmetric = symmetric
        self.passphrase = passphrase

    @classmethod
    def from_profile(cls, config: ProfileConfig) -> GpgEnvelope:
        """Build the envelope for a profile, picking up ``$MIST_PASSPHRASE``."""
        return cls(
            recipient=config.gpg_id,
            gpg_program=config.gpg_program,
            symmetric=config.symmetric,
            passphrase=os.environ.get(PASSPHRASE_ENV_VAR),
        )

    def encrypt(self, data: bytes) -> bytes:
        return encrypt(
            data,
            self.recipient,
            gpg_program=self.gpg_program,
            symmetric=self.symmetric,
            passphrase=self.passphrase,
        )

    def decrypt(self, data: bytes) -> bytes:
        return decrypt(data, gpg_program=self.gpg_program, passphrase=self.passphrase)
