"""Abstract interfaces for the services the pipeliner talks to."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Callable, Optional, Sequence

from .model import (
    FlowRuleOperations,
    Group,
    GroupBucket,
    GroupDescription,
    GroupEvent,
    GroupKey,
    ObjectiveError,
)

GroupListener = Callable[[GroupEvent], None]


class ObjectiveContext(ABC):
    """Completion callbacks attached to an objective."""

    @abstractmethod
    def on_success(self, objective) -> None:
        """``objective`` was installed."""

    @abstractmethod
    def on_error(self, objective, error: ObjectiveError) -> None:
        """``objective`` failed with ``error``."""


class FlowRuleOperationsContext(ABC):
    """Completion callbacks attached to a flow rule batch."""

    @abstractmethod
    def on_success(self, ops: FlowRuleOperations) -> None:
        """Every operation of ``ops`` was applied."""

    @abstractmethod
    def on_error(self, ops: FlowRuleOperations) -> None:
        """At least one operation of ``ops`` failed."""


class FlowRuleService(ABC):
    @abstractmethod
    def apply(self, ops: FlowRuleOperations) -> None:
        """Apply ``ops`` and eventually call back ``ops.context`` once."""


class GroupService(ABC):
    @abstractmethod
    def add_group(self, description: GroupDescription) -> None:
        """Request creation of a group."""

    @abstractmethod
    def remove_group(self, device_id: str, key: GroupKey, app_id: str) -> None:
        """Request deletion of the group identified by ``key``."""

    @abstractmethod
    def add_buckets_to_group(
        self,
        device_id: str,
        key: GroupKey,
        buckets: Sequence[GroupBucket],
        new_key: GroupKey,
        app_id: str,
    ) -> None:
        """Append ``buckets`` to an existing group."""

    @abstractmethod
    def remove_buckets_from_group(
        self,
        device_id: str,
        key: GroupKey,
        buckets: Sequence[GroupBucket],
        new_key: GroupKey,
        app_id: str,
    ) -> None:
        """Remove ``buckets`` from an existing group."""

    @abstractmethod
    def get_group(self, device_id: str, key: GroupKey) -> Optional[Group]:
        """Return the group identified by ``key`` or ``None``."""

    @abstractmethod
    def add_listener(self, listener: GroupListener) -> None:
        """Register ``listener`` for group lifecycle events."""

    @abstractmethod
    def remove_listener(self, listener: GroupListener) -> None:
        """Unregister ``listener``."""


class NextGroup(ABC):
    """Opaque record stored against a next objective id."""

    @abstractmethod
    def data(self) -> bytes:
        """Serialized form of the record."""


class FlowObjectiveStore(ABC):
    @abstractmethod
    def get_next_group(self, next_id: int) -> Optional[NextGroup]:
        """Return the record stored for ``next_id`` or ``None``."""

    @abstractmethod
    def put_next_group(self, next_id: int, next_group: NextGroup) -> None:
        """Store ``next_group`` for ``next_id``."""
