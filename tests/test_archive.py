"""Tests for the tar.gz archive codec."""

from __future__ import annotations

import tarfile
from io import BytesIO
from pathlib import Path

import pytest

from mist.errors import ArchiveError
from mist.sync.archive import pack, unpack


def _size_map(root: Path) -> dict[str, int]:
    return {
        p.relative_to(root).as_posix(): p.stat().st_size
        for p in root.rglob("*")
        if p.is_file()
    }


class TestPack:
    """Tests for building archives."""

    def test_pack_produces_gzip(self, sync_folder: Path):
        """The archive starts with the gzip magic bytes."""
        data = pack(sync_folder)
        assert data[:2] == b"\x1f\x8b"

    def test_folder_name_not_embedded(self, sync_folder: Path):
        """Members sit at the archive root, not under the folder name."""
        with tarfile.open(fileobj=BytesIO(pack(sync_folder)), mode="r:gz") as tar:
            names = tar.getnames()

        assert "todo.txt" in names
        assert "journal/2026-10-01.md" in names
        assert not any(n.startswith("notes") for n in names)

    def test_pack_missing_source(self, tmp_path: Path):
        """Packing a directory that does not exist fails cleanly."""
        with pytest.raises(ArchiveError, match="not a directory"):
            pack(tmp_path / "nope")


class TestUnpack:
    """Tests for extracting archives."""

    def test_round_trip_preserves_paths_and_sizes(self, sync_folder: Path, tmp_path: Path):
        """unpack(pack(T)) reproduces T's (path, size) pairs at a new location."""
        dest = tmp_path / "elsewhere" / "copy"
        unpack(pack(sync_folder), dest)

        assert _size_map(dest) == _size_map(sync_folder)

    def test_unpack_creates_destination(self, sync_folder: Path, tmp_path: Path):
        """A missing destination directory is created."""
        dest = tmp_path / "a" / "b" / "c"
        unpack(pack(sync_folder), dest)
        assert (dest / "todo.txt").read_text() == "buy milk\n"

    def test_unpack_overwrites_existing(self, sync_folder: Path, tmp_path: Path):
        """Existing files with the same relative path are replaced."""
        dest = tmp_path / "dest"
        dest.mkdir()
        (dest / "todo.txt").write_text("stale content that is much longer\n")
        (dest / "unrelated.txt").write_text("kept")

        unpack(pack(sync_folder), dest)

        assert (dest / "todo.txt").read_text() == "buy milk\n"
        assert (dest / "unrelated.txt").read_text() == "kept"

    def test_unpack_garbage_raises(self, tmp_path: Path):
        """Bytes that are not a gzip tar raise ArchiveError."""
        with pytest.raises(ArchiveError):
            unpack(b"definitely not an archive", tmp_path / "out")

    def test_unpack_truncated_raises(self, sync_folder: Path, tmp_path: Path):
        """A truncated archive is an error, not a silent partial restore."""
        data = pack(sync_folder)
        with pytest.raises(ArchiveError):
            unpack(data[: len(data) // 2], tmp_path / "out")

    def test_links_leaving_the_folder_round_trip(self, sync_folder: Path, tmp_path: Path):
        """Absolute and escaping symlinks come back as the files they point at."""
        shared = tmp_path / "shared.txt"
        shared.write_text("outside the folder\n")
        (sync_folder / "absolute").symlink_to(shared)
        (sync_folder / "journal" / "escaping").symlink_to(Path("..") / ".." / "shared.txt")

        dest = tmp_path / "restored"
        unpack(pack(sync_folder), dest)

        for rel in ("absolute", "journal/escaping"):
            restored = dest / rel
            assert not restored.is_symlink()
            assert restored.read_text() == "outside the folder\n"

    def test_dangling_link_fails_on_pack(self, sync_folder: Path):
        """A link to nothing is reported while packing, not on a later pull."""
        (sync_folder / "gone").symlink_to(sync_folder / "never-existed")
        with pytest.raises(ArchiveError):
            pack(sync_folder)

    def test_archive_error_is_oserror(self, tmp_path: Path):
        """ArchiveError can be handled as an I/O error."""
        with pytest.raises(OSError):
            unpack(b"", tmp_path / "out")
