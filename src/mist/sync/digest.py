"""
Change detection -- a cheap 64-bit fingerprint of a directory tree.

The digest folds every regular file's name and size into an xxHash64,
walking files in lexicographic relative-path order so the value does
not depend on the order the filesystem hands entries back. Modification
times are left out on purpose: touching a file does not trigger a sync.

The digest travels next to the archive as an 8-byte big-endian sidecar.
"""

from __future__ import annotations

import logging
import os
import stat
from pathlib import Path
from typing import Optional

import xxhash

logger = logging.getLogger("mist.sync.digest")

DIGEST_SEED = 42
DIGEST_SIZE = 8
NAME_TERMINATOR = b"\xff"


def _regular_files(root: Path) -> list[tuple[str, str, int]]:
    """Collect (relative path, file name, size) for every regular file under root."""
    found: list[tuple[str, str, int]] = []

    def _on_error(exc: OSError) -> None:
        logger.debug("Skipping unreadable directory %s: %s", exc.filename, exc)

    for dirpath, _dirnames, filenames in os.walk(root, onerror=_on_error):
        for fname in filenames:
            full = os.path.join(dirpath, fname)
            try:
                st = os.lstat(full)
            except OSError as exc:
                logger.debug("Skipping unreadable entry %s: %s", full, exc)
                continue
            if not stat.S_ISREG(st.st_mode):
                continue
            rel = Path(full).relative_to(root).as_posix()
            found.append((rel, fname, st.st_size))

    found.sort(key=lambda entry: entry[0])
    return found


def hash_metadata(path: Path) -> Optional[int]:
    """Hash the names and sizes of all regular files under a directory.

    Args:
        path: Root of the tree to fingerprint.

    Returns:
        Unsigned 64-bit digest, or None when the root cannot be listed.
    """
    root = Path(path).expanduser()
    try:
        with os.scandir(root):
            pass
    except OSError as exc:
        logger.error("Cannot hash %s: %s", root, exc)
        return None

    h = xxhash.xxh64(seed=DIGEST_SEED)
    count = 0
    for _rel, fname, size in _regular_files(root):
        h.update(os.fsencode(fname))
        h.update(NAME_TERMINATOR)
        h.update(size.to_bytes(8, "little"))
        count += 1

    digest = h.intdigest()
    logger.debug("Digest of %s over %d files: %016x", root, count, digest)
    return digest


def encode_digest(digest: int) -> bytes:
    """Sidecar wire form: exactly 8 bytes, big-endian."""
    return digest.to_bytes(DIGEST_SIZE, "big")


def decode_digest(data: bytes) -> int:
    """Parse a sidecar blob.

    Raises:
        ValueError: If the blob is not exactly 8 bytes long.
    """
    if len(data) != DIGEST_SIZE:
        raise ValueError(f"Sidecar must be {DIGEST_SIZE} bytes, got {len(data)}")
    return int.from_bytes(data, "big")
