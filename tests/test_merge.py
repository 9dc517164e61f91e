"""Tests for the unison merge step and the confirmation prompt."""

from __future__ import annotations

import subprocess
from pathlib import Path

import click
import pytest

from mist.models import MergeOutcome
from mist.sync import merge as merge_mod
from mist.sync import prompt as prompt_mod
from mist.sync.merge import UnisonMerge
from mist.sync.prompt import console_confirm


def _fake_run(returncode: int, calls: list):
    def _run(cmd, check=False):
        calls.append(cmd)
        return subprocess.CompletedProcess(cmd, returncode)
    return _run


class TestUnisonMerge:
    """Tests for UnisonMerge."""

    def test_clean_exit(self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path):
        """Status 0 is a clean merge."""
        calls: list = []
        monkeypatch.setattr(merge_mod.subprocess, "run", _fake_run(0, calls))

        outcome = UnisonMerge().merge(tmp_path / "a", tmp_path / "b", batch=False)

        assert outcome is MergeOutcome.CLEAN
        assert calls == [["unison", str(tmp_path / "a"), str(tmp_path / "b")]]

    def test_batch_flag(self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path):
        """batch=True adds -batch so unison never prompts."""
        calls: list = []
        monkeypatch.setattr(merge_mod.subprocess, "run", _fake_run(0, calls))

        UnisonMerge().merge(tmp_path / "a", tmp_path / "b", batch=True)

        assert calls[0][-1] == "-batch"

    def test_nonzero_is_conflicted(self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path, caplog):
        """Any non-zero status is reported as conflicted with a warning."""
        monkeypatch.setattr(merge_mod.subprocess, "run", _fake_run(1, []))

        with caplog.at_level("WARNING", logger="mist.sync.merge"):
            outcome = UnisonMerge().merge(tmp_path / "a", tmp_path / "b", batch=True)

        assert outcome is MergeOutcome.CONFLICTED
        assert "status 1" in caplog.text

    def test_missing_binary_is_unavailable(self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path):
        """A missing unison binary is UNAVAILABLE, not an exception."""
        def _missing(cmd, check=False):
            raise FileNotFoundError(2, "No such file", cmd[0])

        monkeypatch.setattr(merge_mod.subprocess, "run", _missing)

        outcome = UnisonMerge("unison-2.53").merge(tmp_path / "a", tmp_path / "b", batch=False)

        assert outcome is MergeOutcome.UNAVAILABLE


class TestConsoleConfirm:
    """Tests for console_confirm."""

    def test_assume_yes_skips_prompt(self, monkeypatch: pytest.MonkeyPatch):
        """assume_yes answers without touching the terminal."""
        def _never(*args, **kwargs):
            raise AssertionError("prompt shown")

        monkeypatch.setattr(prompt_mod.click, "confirm", _never)
        assert console_confirm("Overwrite?", assume_yes=True) is True

    def test_yes(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setattr(prompt_mod.click, "confirm", lambda prompt, default: True)
        assert console_confirm("Overwrite?", assume_yes=False) is True

    def test_no(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setattr(prompt_mod.click, "confirm", lambda prompt, default: False)
        assert console_confirm("Overwrite?", assume_yes=False) is False

    def test_default_is_no(self, monkeypatch: pytest.MonkeyPatch):
        """Pressing enter declines."""
        seen: dict = {}

        def _confirm(prompt, default):
            seen["default"] = default
            return default

        monkeypatch.setattr(prompt_mod.click, "confirm", _confirm)

        assert console_confirm("Overwrite?", assume_yes=False) is False
        assert seen["default"] is False

    def test_abort_is_no(self, monkeypatch: pytest.MonkeyPatch):
        """Ctrl-C or EOF at the prompt declines instead of crashing."""
        def _abort(prompt, default):
            raise click.Abort()

        monkeypatch.setattr(prompt_mod.click, "confirm", _abort)
        assert console_confirm("Overwrite?", assume_yes=False) is False
