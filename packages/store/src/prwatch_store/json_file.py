"""JsonFileStore — poll state as one human-readable JSON document.

Data format: a single JSON object

    {"snapshots": [...], "seen_prs": [...], "last_poll_at": "...", "merge_ack_at": "..."}

Writes go to a temporary file in the same directory followed by os.replace(),
so readers never see a half-written document.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from datetime import datetime
from pathlib import Path

from prwatch_core.models import PollState, PRSnapshot, SeenPRRecord
from prwatch_store.base import BaseStore
from prwatch_store.codec import (
    dt_to_str,
    seen_from_dict,
    seen_to_dict,
    snapshot_from_dict,
    snapshot_to_dict,
    str_to_dt,
)
from prwatch_store.locking import FileLock

logger = logging.getLogger(__name__)


class JsonFileStore(BaseStore):
    """Stores poll state in a JSON file, default `.prwatch.json`."""

    def __init__(self, path: str = ".prwatch.json"):
        self._path = Path(path)

    def load_state(self) -> PollState:
        doc = self._read()
        return PollState(
            snapshots=[snapshot_from_dict(d) for d in doc.get("snapshots", [])],
            seen_prs=[seen_from_dict(d) for d in doc.get("seen_prs", [])],
            last_poll_at=str_to_dt(doc.get("last_poll_at")),
            merge_ack_at=str_to_dt(doc.get("merge_ack_at")),
        )

    def save_state(self, snapshots: list[PRSnapshot], seen_prs: list[SeenPRRecord], polled_at: datetime) -> None:
        doc = self._read()
        doc["snapshots"] = [snapshot_to_dict(s) for s in snapshots]
        doc["seen_prs"] = [seen_to_dict(r) for r in seen_prs]
        doc["last_poll_at"] = dt_to_str(polled_at)
        self._write(doc)

    def get_merge_ack_at(self) -> datetime | None:
        return str_to_dt(self._read().get("merge_ack_at"))

    def set_merge_ack_at(self, at: datetime) -> None:
        doc = self._read()
        doc["merge_ack_at"] = dt_to_str(at)
        self._write(doc)

    def lock(self) -> FileLock:
        return FileLock(self._path.with_name(self._path.name + ".lock"))

    def _read(self) -> dict:
        """Read the current document, or return {} when missing or unreadable."""
        if not self._path.exists():
            return {}
        try:
            doc = json.loads(self._path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, OSError) as e:
            logger.warning("Ignoring unreadable state file %s: %s", self._path, e)
            return {}
        return doc if isinstance(doc, dict) else {}

    def _write(self, doc: dict) -> None:
        directory = self._path.parent
        directory.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(prefix=f".{self._path.name}.", dir=directory)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(doc, f, indent=2)
            os.replace(tmp_path, self._path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise
