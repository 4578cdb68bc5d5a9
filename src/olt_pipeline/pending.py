"""Time-bounded tracking of group requests awaiting confirmation."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from enum import Enum, auto
from threading import Event, Lock, Thread
from typing import Callable, Dict, List, Optional

from .model import GroupKey, NextObjective

LOG = logging.getLogger(__name__)

DEFAULT_TTL = 20.0


class EntryState(Enum):
    PENDING = auto()
    RESOLVED = auto()
    EXPIRED = auto()
    SUPERSEDED = auto()


@dataclass
class PendingGroupEntry:
    """A next objective waiting for its group to show up."""

    key: GroupKey
    objective: NextObjective
    created_at: float
    state: EntryState = EntryState.PENDING


ExpiryCallback = Callable[[PendingGroupEntry], None]


class PendingGroupTracker:
    """Correlate group keys with the next objectives that requested them.

    Every entry ends in exactly one terminal state.  Resolution, expiry and
    supersession all take the same lock, so an entry is either handed to the
    resolver or to the expiry callback, never both.  A superseded entry is
    dropped without a callback.

    Parameters
    ----------
    ttl:
        Seconds an entry may stay pending before it expires.
    on_expired:
        Called once, outside the lock, for every entry that expires.
    clock:
        Monotonic time source, overridable for tests.
    """

    def __init__(
        self,
        ttl: float = DEFAULT_TTL,
        on_expired: Optional[ExpiryCallback] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if ttl <= 0:
            raise ValueError("pending group ttl must be positive")
        self._ttl = ttl
        self._on_expired = on_expired
        self._clock = clock
        self._entries: Dict[GroupKey, PendingGroupEntry] = {}
        self._lock = Lock()

    @property
    def ttl(self) -> float:
        return self._ttl

    def put(self, key: GroupKey, objective: NextObjective) -> Optional[PendingGroupEntry]:
        """Track ``objective`` under ``key``; return the entry it superseded."""

        entry = PendingGroupEntry(key=key, objective=objective, created_at=self._clock())
        with self._lock:
            previous = self._entries.get(key)
            self._entries[key] = entry
            if previous is not None:
                previous.state = EntryState.SUPERSEDED
        if previous is not None:
            LOG.debug("pending group %r for next %s superseded", key, previous.objective.id)
        return previous

    def resolve(self, key: GroupKey) -> Optional[PendingGroupEntry]:
        """Remove and return the live entry for ``key``.

        An entry whose ttl has elapsed but which has not been swept yet is
        expired instead, and ``None`` is returned.
        """

        with self._lock:
            entry = self._entries.pop(key, None)
            if entry is None:
                return None
            if self._is_expired(entry, self._clock()):
                entry.state = EntryState.EXPIRED
            else:
                entry.state = EntryState.RESOLVED
                return entry
        self._notify([entry])
        return None

    def expire(self) -> List[PendingGroupEntry]:
        """Sweep every entry whose ttl has elapsed."""

        now = self._clock()
        with self._lock:
            expired = [e for e in self._entries.values() if self._is_expired(e, now)]
            for entry in expired:
                del self._entries[entry.key]
                entry.state = EntryState.EXPIRED
        self._notify(expired)
        return expired

    def get(self, key: GroupKey) -> Optional[PendingGroupEntry]:
        with self._lock:
            return self._entries.get(key)

    def __contains__(self, key: GroupKey) -> bool:
        with self._lock:
            return key in self._entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def _is_expired(self, entry: PendingGroupEntry, now: float) -> bool:
        return now - entry.created_at >= self._ttl

    def _notify(self, entries: List[PendingGroupEntry]) -> None:
        if self._on_expired is None:
            return
        for entry in entries:
            LOG.warning(
                "group %r for next objective %s was not confirmed within %ss",
                entry.key,
                entry.objective.id,
                self._ttl,
            )
            try:
                self._on_expired(entry)
            except Exception:
                LOG.exception("expiry callback failed for group %r", entry.key)


class PendingGroupEvictor(Thread):
    """Periodically sweep expired entries out of a tracker."""

    def __init__(
        self,
        tracker: PendingGroupTracker,
        interval: float,
        stop_event: Event,
    ) -> None:
        super().__init__(daemon=True, name="OltPendingGroupEvictor")
        self._tracker = tracker
        self._interval = interval
        self._stop_event = stop_event

    def run(self) -> None:
        while not self._stop_event.is_set():
            try:
                self._tracker.expire()
            except Exception:  # pragma: no cover - logged below
                LOG.exception("pending group eviction failed")
            self._stop_event.wait(self._interval)
