#!/usr/bin/env python3
# CUI // SP-CTI
# Controlled by: Department of Defense
# CUI Category: CTI
# Distribution: D -- Authorized DoD Personnel Only
# POC: ICDEV System Administrator
"""Progress Store — durable RunState in progress.json.

Single writer (the pipeline controller), any number of readers. Each save is
a full-state write to a temp file in the same directory, fsync'd, then
os.replace()'d over the target, so readers and crash recovery only ever see
the previous or the new complete snapshot.
"""

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Optional

from fnmigrate.migration.models import RunState
from fnmigrate.resilience.errors import ProgressStoreError

logger = logging.getLogger("fnmigrate.migration.progress_store")


class ProgressStore:
    def __init__(self, path):
        self.path = Path(path)

    def exists(self) -> bool:
        return self.path.is_file()

    def save(self, state: RunState):
        """Atomically replace progress.json with the given state."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        payload = json.dumps(state.to_dict(), indent=2)

        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{self.path.name}.", suffix=".tmp", dir=str(self.path.parent)
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(payload)
                f.write("\n")
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_name, self.path)
        except BaseException:
            try:
                os.unlink(tmp_name)
            except FileNotFoundError:
                pass
            raise
        logger.debug("Progress saved to %s", self.path)

    def load(self) -> Optional[RunState]:
        """Return the stored RunState, or None if no progress file exists.

        Raises:
            ProgressStoreError: the file exists but is not a valid RunState.
        """
        if not self.exists():
            return None
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
            return RunState.from_dict(data)
        except (json.JSONDecodeError, KeyError, TypeError, ValueError) as e:
            raise ProgressStoreError(f"Corrupt progress file {self.path}: {e}",
                                     path=self.path) from e
