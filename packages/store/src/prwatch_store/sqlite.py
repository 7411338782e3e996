"""SQLiteStore — the default local poll-state store.

- Ships with Python, no extra dependencies.
- A save replaces snapshots and history in one transaction; a crash mid-save
  leaves the previous state intact.
- The merge acknowledgment is its own `meta` row, written by `prwatch ack`
  without touching poll data.

Schema:
  snapshots — one row per open PR from the last poll; the full snapshot is
              kept as JSON since it is only ever read back whole.
  seen_prs  — rolling seen-history, one row per PR identity.
  meta      — key/value timestamps (last_poll_at, merge_ack_at).
"""

from __future__ import annotations

import contextlib
import json
import logging
import sqlite3
from datetime import datetime

from prwatch_core.models import PollState, PRSnapshot, SeenPRRecord
from prwatch_store.base import BaseStore
from prwatch_store.codec import dt_to_str, snapshot_from_dict, snapshot_to_dict, str_to_dt
from prwatch_store.locking import FileLock

logger = logging.getLogger(__name__)

_SCHEMA = """
CREATE TABLE IF NOT EXISTS snapshots (
    organization    TEXT NOT NULL,
    project         TEXT NOT NULL,
    pull_request_id INTEGER NOT NULL,
    position        INTEGER NOT NULL,
    data_json       TEXT NOT NULL,
    PRIMARY KEY (organization, project, pull_request_id)
);
CREATE TABLE IF NOT EXISTS seen_prs (
    organization     TEXT NOT NULL,
    project          TEXT NOT NULL,
    pull_request_id  INTEGER NOT NULL,
    repository_name  TEXT,
    title            TEXT,
    last_known_state TEXT NOT NULL,
    last_seen_at     TEXT NOT NULL,
    PRIMARY KEY (organization, project, pull_request_id)
);
CREATE TABLE IF NOT EXISTS meta (
    key   TEXT PRIMARY KEY,
    value TEXT
);
"""

_LAST_POLL_AT = "last_poll_at"
_MERGE_ACK_AT = "merge_ack_at"


class SQLiteStore(BaseStore):
    """Stores poll state in a local SQLite database file.

    The database file path defaults to `.prwatch.db` in the current working
    directory. Configure via .prwatch.yml: `store_path: /path/to/prwatch.db`.
    """

    def __init__(self, db_path: str = ".prwatch.db"):
        self._db_path = db_path
        self._conn = sqlite3.connect(db_path)
        self._conn.row_factory = sqlite3.Row
        self._conn.executescript(_SCHEMA)
        self._conn.commit()

    def load_state(self) -> PollState:
        snapshot_rows = self._conn.execute("SELECT data_json FROM snapshots ORDER BY position").fetchall()
        seen_rows = self._conn.execute("SELECT * FROM seen_prs ORDER BY last_seen_at").fetchall()
        return PollState(
            snapshots=[snapshot_from_dict(json.loads(r["data_json"])) for r in snapshot_rows],
            seen_prs=[self._row_to_seen(r) for r in seen_rows],
            last_poll_at=self._get_meta(_LAST_POLL_AT),
            merge_ack_at=self._get_meta(_MERGE_ACK_AT),
        )

    def save_state(self, snapshots: list[PRSnapshot], seen_prs: list[SeenPRRecord], polled_at: datetime) -> None:
        with self._conn:
            self._conn.execute("DELETE FROM snapshots")
            self._conn.executemany(
                """
                INSERT OR REPLACE INTO snapshots (organization, project, pull_request_id, position, data_json)
                VALUES (?, ?, ?, ?, ?)
                """,
                [
                    (s.organization, s.project, s.pull_request_id, i, json.dumps(snapshot_to_dict(s)))
                    for i, s in enumerate(snapshots)
                ],
            )
            self._conn.execute("DELETE FROM seen_prs")
            self._conn.executemany(
                """
                INSERT OR REPLACE INTO seen_prs
                  (organization, project, pull_request_id, repository_name, title, last_known_state, last_seen_at)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                [
                    (
                        r.organization,
                        r.project,
                        r.pull_request_id,
                        r.repository_name,
                        r.title,
                        r.last_known_state,
                        dt_to_str(r.last_seen_at),
                    )
                    for r in seen_prs
                ],
            )
            self._set_meta(_LAST_POLL_AT, polled_at)
        logger.debug("Saved %d snapshot(s), %d history record(s)", len(snapshots), len(seen_prs))

    def get_merge_ack_at(self) -> datetime | None:
        return self._get_meta(_MERGE_ACK_AT)

    def set_merge_ack_at(self, at: datetime) -> None:
        with self._conn:
            self._set_meta(_MERGE_ACK_AT, at)

    def close(self) -> None:
        self._conn.close()

    def lock(self):
        if self._db_path == ":memory:":
            return contextlib.nullcontext()
        return FileLock(f"{self._db_path}.lock")

    def _get_meta(self, key: str) -> datetime | None:
        row = self._conn.execute("SELECT value FROM meta WHERE key=?", (key,)).fetchone()
        return str_to_dt(row["value"]) if row else None

    def _set_meta(self, key: str, value: datetime) -> None:
        self._conn.execute("INSERT OR REPLACE INTO meta (key, value) VALUES (?, ?)", (key, dt_to_str(value)))

    @staticmethod
    def _row_to_seen(row: sqlite3.Row) -> SeenPRRecord:
        return SeenPRRecord(
            organization=row["organization"],
            project=row["project"],
            repository_name=row["repository_name"] or "",
            pull_request_id=row["pull_request_id"],
            title=row["title"] or "",
            last_known_state=row["last_known_state"],
            last_seen_at=str_to_dt(row["last_seen_at"]),
        )
