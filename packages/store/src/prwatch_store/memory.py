"""In-memory store — state lives only as long as the process.

Useful for tests and for a one-off `prwatch poll` where nothing should be
written to disk (`store: memory` in .prwatch.yml). Every new process starts
from an empty baseline, so a single cycle never produces change events.
"""

from __future__ import annotations

import copy
from datetime import datetime

from prwatch_core.models import PollState, PRSnapshot, SeenPRRecord
from prwatch_store.base import BaseStore


class MemoryStore(BaseStore):
    def __init__(self, state: PollState | None = None):
        self._state = state or PollState()

    def load_state(self) -> PollState:
        # Copies, so callers can never mutate stored state in place.
        return copy.deepcopy(self._state)

    def save_state(self, snapshots: list[PRSnapshot], seen_prs: list[SeenPRRecord], polled_at: datetime) -> None:
        self._state = PollState(
            snapshots=copy.deepcopy(snapshots),
            seen_prs=copy.deepcopy(seen_prs),
            last_poll_at=polled_at,
            merge_ack_at=self._state.merge_ack_at,
        )

    def get_merge_ack_at(self) -> datetime | None:
        return self._state.merge_ack_at

    def set_merge_ack_at(self, at: datetime) -> None:
        self._state.merge_ack_at = at
