"""Shared test fixtures for mist."""

from __future__ import annotations

from pathlib import Path

import pytest

from mist.models import ProfileConfig


@pytest.fixture
def sync_folder(tmp_path: Path) -> Path:
    """A small local tree to synchronize."""
    folder = tmp_path / "notes"
    (folder / "journal").mkdir(parents=True)
    (folder / "todo.txt").write_text("buy milk\n")
    (folder / "journal" / "2026-10-01.md").write_text("# Day one\n")
    (folder / "journal" / "2026-10-02.md").write_text("# Day two\nmore words\n")
    return folder


@pytest.fixture
def profile(tmp_path: Path, sync_folder: Path) -> ProfileConfig:
    """A profile pointing at the sync_folder fixture."""
    return ProfileConfig(
        name="notes",
        folder=sync_folder,
        ssh_address="me@example.org",
        gpg_id="me@example.org",
        temp_folder=tmp_path / "notes-sync",
    )
