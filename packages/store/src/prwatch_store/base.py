"""Abstract store interface.

Every poll-state backend (SQLite, JSON file, in-memory) implements this
interface. The Poller and the CLI depend on BaseStore — not on a concrete
backend — so backends are swappable without touching either.

Poll state is local, ephemeral data: snapshots, seen-history, and timestamps.
Settings are a different durability class and live in the YAML config file,
never in a store.
"""

from __future__ import annotations

import contextlib
from abc import ABC, abstractmethod
from datetime import datetime
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from prwatch_core.models import PollState, PRSnapshot, SeenPRRecord


class BaseStore(ABC):
    """Pluggable persistence layer for poll state.

    The Poller is the only writer of snapshots and history. The merge
    acknowledgment timestamp is written separately (by `prwatch ack`) and is
    never overwritten by save_state(). Writers in different processes take
    lock() first, so an acknowledgment made while a cycle is running lands
    after that cycle's save and is not lost.
    """

    @abstractmethod
    def load_state(self) -> PollState:
        """Return the last saved state, or an empty PollState — never raises for missing data."""

    @abstractmethod
    def save_state(self, snapshots: list[PRSnapshot], seen_prs: list[SeenPRRecord], polled_at: datetime) -> None:
        """Replace the stored snapshots and history and record the poll completion time."""

    @abstractmethod
    def get_merge_ack_at(self) -> datetime | None:
        """When the user last acknowledged merges, or None if never."""

    @abstractmethod
    def set_merge_ack_at(self, at: datetime) -> None:
        """Record a merge acknowledgment."""

    def close(self) -> None:
        """Release any resources held by the store (connections, file handles).

        Optional — subclasses that need cleanup should override this.
        Default is a no-op so callers can always call close() safely.
        """

    def lock(self):
        """Exclusive lock held from load_state() to save_state() of one poll cycle.

        Returns a context manager usable with ``with`` and ``async with``.
        File-backed stores lock a file next to their data so separate processes
        serialise; the default does nothing.
        """
        return contextlib.nullcontext()
