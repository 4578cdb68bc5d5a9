"""Resolve pending group requests from group lifecycle events."""

from __future__ import annotations

import logging
import time
from typing import Callable, Optional

from .dispatch import fail, succeed
from .group_keys import PipelineGroup
from .model import GroupEvent, GroupEventType, GroupKey, NextObjective, ObjectiveError
from .pending import DEFAULT_TTL, PendingGroupEntry, PendingGroupTracker
from .services import FlowObjectiveStore

LOG = logging.getLogger(__name__)

RESOLVING_EVENTS = frozenset({GroupEventType.GROUP_ADDED, GroupEventType.GROUP_UPDATED})


class GroupEventReconciler:
    """Own the pending group state machine.

    ``track`` records a request, ``event`` is registered as a group listener
    and resolves requests as their groups appear, and the tracker's expiry
    callback reports requests that never got confirmed.
    """

    def __init__(
        self,
        store: FlowObjectiveStore,
        ttl: float = DEFAULT_TTL,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._store = store
        self._pending = PendingGroupTracker(ttl=ttl, on_expired=self._on_expired, clock=clock)

    @property
    def pending(self) -> PendingGroupTracker:
        return self._pending

    def track(self, key: GroupKey, objective: NextObjective) -> Optional[PendingGroupEntry]:
        return self._pending.put(key, objective)

    def event(self, event: GroupEvent) -> None:
        if event.type not in RESOLVING_EVENTS:
            return

        key = event.subject.app_cookie
        entry = self._pending.resolve(key)
        if entry is None:
            LOG.debug("no pending request for group %r (%s)", key, event.type.name)
            return

        objective = entry.objective
        try:
            self._store.put_next_group(objective.id, PipelineGroup(key))
        except Exception:
            LOG.exception("failed to store group %r for next objective %s", key, objective.id)
            fail(objective, ObjectiveError.GROUPINSTALLATIONFAILED)
            return
        LOG.info("group %s installed for next objective %s", event.subject.id, objective.id)
        succeed(objective)

    def expire(self):
        return self._pending.expire()

    def _on_expired(self, entry: PendingGroupEntry) -> None:
        fail(entry.objective, ObjectiveError.GROUPINSTALLATIONFAILED)
