"""
Sync -- digest, archive, envelope, transport, and the engine that drives them.

The folder never travels naked. Every push packs it into a tar.gz and
seals it with GPG; every pull opens the envelope before touching disk.
"""

from .engine import SyncOrchestrator
from .transport import RemoteSession, SshTransport

__all__ = ["RemoteSession", "SshTransport", "SyncOrchestrator"]
