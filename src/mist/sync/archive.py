"""
Archive codec -- the synced folder as a single in-memory tar.gz.

Symbolic links are followed: the archive holds what they point at, so it
unpacks the same way on any machine.

The folder's own name is never written into the archive: its children
sit at the archive root, so unpacking into any target path reproduces
the folder's contents there instead of a nested copy.
"""

from __future__ import annotations

import logging
import tarfile
import zlib
from io import BytesIO
from pathlib import Path

from ..errors import ArchiveError

logger = logging.getLogger("mist.sync.archive")


def pack(source: Path) -> bytes:
    """Build a gzip-compressed tar of everything under a directory.

    Args:
        source: Directory to archive.

    Returns:
        The archive bytes.

    Raises:
        ArchiveError: If the directory is missing, cannot be read or holds
            a dangling link.
    """
    source = Path(source).expanduser()
    if not source.is_dir():
        raise ArchiveError(f"Cannot archive {source}: not a directory")

    buf = BytesIO()
    try:
        with tarfile.open(fileobj=buf, mode="w:gz", dereference=True) as tar:
            for child in sorted(source.iterdir()):
                tar.add(str(child), arcname=child.name)
    except (OSError, tarfile.TarError) as exc:
        raise ArchiveError(f"Cannot archive {source}: {exc}") from exc

    data = buf.getvalue()
    logger.info("Packed %s (%d bytes compressed)", source, len(data))
    return data


def unpack(data: bytes, dest: Path) -> None:
    """Extract an archive blob into a directory.

    The destination is created if needed; existing entries with the same
    relative path are overwritten. A failure part-way leaves whatever was
    already extracted in place.

    Args:
        data: Archive bytes produced by ``pack``.
        dest: Target directory.

    Raises:
        ArchiveError: If decompression or extraction fails.
    """
    dest = Path(dest).expanduser()
    try:
        dest.mkdir(parents=True, exist_ok=True)
        with tarfile.open(fileobj=BytesIO(data), mode="r:gz") as tar:
            tar.extractall(path=dest, filter="data")
    except (OSError, EOFError, zlib.error, tarfile.TarError) as exc:
        raise ArchiveError(f"Cannot unpack archive into {dest}: {exc}") from exc

    logger.info("Unpacked archive into %s", dest)
