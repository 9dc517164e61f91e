"""
Merge engine -- unison between the live folder and the staged remote copy.

mist never merges anything itself. Unison gets both trees and does the
real two-way reconciliation; we only look at how it exited.
"""

from __future__ import annotations

import logging
import subprocess
from pathlib import Path
from typing import Protocol

from ..models import MergeOutcome

logger = logging.getLogger("mist.sync.merge")

DEFAULT_MERGE_PROGRAM = "unison"


class MergeEngine(Protocol):
    """Anything that can reconcile two directory trees."""

    def merge(self, local: Path, staging: Path, batch: bool) -> MergeOutcome: ...


class UnisonMerge:
    """Run unison on the two trees.

    Exit status 0 is a clean merge, anything else means unison skipped or
    failed on something. A missing binary is reported as UNAVAILABLE.
    """

    def __init__(self, program: str = DEFAULT_MERGE_PROGRAM):
        self.program = program

    def merge(self, local: Path, staging: Path, batch: bool) -> MergeOutcome:
        cmd = [self.program, str(local), str(staging)]
        if batch:
            cmd.append("-batch")

        logger.info("Running %s", " ".join(cmd))
        try:
            result = subprocess.run(cmd, check=False)
        except FileNotFoundError:
            logger.error("%s not found in PATH", self.program)
            return MergeOutcome.UNAVAILABLE

        if result.returncode == 0:
            return MergeOutcome.CLEAN
        logger.warning("%s exited with status %d", self.program, result.returncode)
        return MergeOutcome.CONFLICTED
