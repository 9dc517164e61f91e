"""Exception taxonomy for mist.

Everything deriving from MistError is an unrecovered failure of the run;
the CLI reports it and exits non-zero.
"""

from __future__ import annotations


class MistError(Exception):
    """Base class for fatal mist errors."""


class ConfigurationError(MistError):
    """Raised when the configuration file or a profile is unusable."""


class RemoteConnectionError(MistError):
    """Raised when the SSH session cannot be established."""


class TransportError(MistError):
    """Raised when the remote side answers in a way we cannot interpret."""


class CryptoError(MistError):
    """Raised when GPG cannot encrypt or decrypt the archive."""


class ArchiveError(MistError, OSError):
    """Raised when the tar.gz archive cannot be built or extracted."""
