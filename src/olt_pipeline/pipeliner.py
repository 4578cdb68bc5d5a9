"""OLT pipeliner.

This module provides the entry points the flow objective subsystem calls for
an OLT device: ``filter``, ``forward`` and ``next``.  Objectives are validated
and translated synchronously; the resulting flow rules are submitted as one
batch and group requests are parked in the pending tracker until the group
subsystem confirms them.  Every objective receives exactly one terminal
callback on its context.
"""

from __future__ import annotations

import logging
import time
from threading import Event
from typing import Callable, List, Optional

from .classifiers import is_multicast, vlan_operation
from .config import PipelineConfig
from .dispatch import OperationDispatcher, fail
from .exceptions import ObjectiveRejected
from .group_keys import GroupKeyCodec
from .model import (
    FilteringObjective,
    FlowRule,
    ForwardingObjective,
    GroupDescription,
    GroupType,
    InstructionType,
    L2SubType,
    NextObjective,
    NextType,
    ObjectiveError,
    ObjectiveOperation,
    buckets_for,
)
from .pending import PendingGroupEvictor, PendingGroupTracker
from .reconciler import GroupEventReconciler
from .services import FlowObjectiveStore, FlowRuleService, GroupService, NextGroup
from .translators import RuleTranslator

LOG = logging.getLogger(__name__)


class OltPipeliner:
    """Translate objectives for the two-table OLT pipeline of one device."""

    def __init__(
        self,
        device_id: str,
        flow_rules: FlowRuleService,
        groups: GroupService,
        store: FlowObjectiveStore,
        config: Optional[PipelineConfig] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._device_id = device_id
        self._config = config or PipelineConfig()
        self._groups = groups
        self._store = store
        self._translator = RuleTranslator(
            device_id,
            qq_table=self._config.qq_table,
            no_action_priority=self._config.no_action_priority,
        )
        self._dispatcher = OperationDispatcher(flow_rules)
        self._codec = GroupKeyCodec(self._config.group_key_namespace)
        self._reconciler = GroupEventReconciler(
            store, ttl=self._config.pending_group_ttl, clock=clock
        )
        self._listening = False
        self._listen()

        self._stop_event = Event()
        self._evictor: Optional[PendingGroupEvictor] = None
        LOG.debug("Initialized OLT pipeline for device %s", device_id)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    @property
    def device_id(self) -> str:
        return self._device_id

    @property
    def config(self) -> PipelineConfig:
        return self._config

    @property
    def pending(self) -> PendingGroupTracker:
        return self._reconciler.pending

    @property
    def codec(self) -> GroupKeyCodec:
        return self._codec

    def start(self) -> None:
        """Start sweeping expired group requests in the background."""

        self._listen()
        if self._evictor is not None:
            return
        self._stop_event.clear()
        self._evictor = PendingGroupEvictor(
            self.pending, self._config.eviction_interval, self._stop_event
        )
        self._evictor.start()
        LOG.info("OLT pipeline for device %s started", self._device_id)

    def stop(self) -> None:
        self._stop_event.set()
        if self._evictor is not None:
            self._evictor.join(timeout=5)
            self._evictor = None
        if self._listening:
            self._groups.remove_listener(self._reconciler.event)
            self._listening = False
        LOG.info("OLT pipeline for device %s stopped", self._device_id)

    def expire_pending(self):
        """Sweep expired group requests now."""

        return self._reconciler.expire()

    # ------------------------------------------------------------------
    # Objectives
    # ------------------------------------------------------------------
    def filter(self, filt: FilteringObjective) -> None:
        try:
            op_type, rules = self._translator.filter_rules(filt)
        except ObjectiveRejected as exc:
            self._reject("filtering", filt, exc)
            return
        self._dispatcher.apply(filt, rules, op_type)

    def forward(self, fwd: ForwardingObjective) -> None:
        try:
            rules = self._forward_rules(fwd)
        except ObjectiveRejected as exc:
            self._reject("forwarding", fwd, exc)
            return
        self._dispatcher.apply_for(fwd, fwd.op, rules)

    def next(self, next_objective: NextObjective) -> None:
        if next_objective.type is not NextType.BROADCAST:
            self._reject(
                "next",
                next_objective,
                ObjectiveRejected(ObjectiveError.BADPARAMS, "OLT only supports broadcast groups"),
            )
            return
        if len(next_objective.next) != 1:
            self._reject(
                "next",
                next_objective,
                ObjectiveRejected(ObjectiveError.BADPARAMS, "OLT only supports singleton broadcast groups"),
            )
            return

        try:
            key = self._codec.key_for(next_objective.id)
        except ValueError as exc:
            self._reject("next", next_objective, ObjectiveRejected(ObjectiveError.BADPARAMS, str(exc)))
            return

        buckets = buckets_for(next_objective.next)
        self._reconciler.track(key, next_objective)

        op = next_objective.op
        app_id = next_objective.app_id
        if op is ObjectiveOperation.ADD:
            self._groups.add_group(
                GroupDescription(
                    device_id=self._device_id,
                    type=GroupType.ALL,
                    buckets=buckets,
                    app_cookie=key,
                    app_id=app_id,
                )
            )
        elif op is ObjectiveOperation.REMOVE:
            self._groups.remove_group(self._device_id, key, app_id)
        elif op is ObjectiveOperation.ADD_TO_EXISTING:
            self._groups.add_buckets_to_group(self._device_id, key, buckets, key, app_id)
        elif op is ObjectiveOperation.REMOVE_FROM_EXISTING:
            self._groups.remove_buckets_from_group(self._device_id, key, buckets, key, app_id)
        else:
            LOG.warning("Unknown next objective operation: %s", op)
            return
        LOG.info("requested %s of group %r for next objective %s", op.name, key, next_objective.id)

    def get_next_mappings(self, next_group: NextGroup) -> List[str]:
        """Describe the buckets of the group behind ``next_group``."""

        key = self._codec.decode_record(next_group.data())
        group = self._groups.get_group(self._device_id, key)
        if group is None:
            return []
        return [f"0x{group.id:x} -> {bucket.treatment}" for bucket in group.buckets]

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    def _forward_rules(self, fwd: ForwardingObjective) -> List[FlowRule]:
        if is_multicast(fwd.selector):
            return self._translator.multicast_rules(fwd, self._resolve_group_id(fwd))

        vlan_op = vlan_operation(fwd.treatment)
        if vlan_op is L2SubType.VLAN_PUSH:
            return self._translator.upstream_rules(fwd)
        if vlan_op is L2SubType.VLAN_POP:
            return self._translator.downstream_rules(fwd)
        if any(i.type is InstructionType.L2MODIFICATION for i in fwd.treatment.all_instructions):
            raise ObjectiveRejected(ObjectiveError.UNSUPPORTED, "unknown OLT operation")
        return self._translator.passthrough_rules(fwd)

    def _resolve_group_id(self, fwd: ForwardingObjective) -> int:
        if fwd.next_id is None:
            raise ObjectiveRejected(ObjectiveError.BADPARAMS, "multicast objective does not have a next id")

        record = self._store.get_next_group(fwd.next_id)
        if record is None:
            raise ObjectiveRejected(ObjectiveError.GROUPMISSING, f"no group for next id {fwd.next_id}")
        try:
            key = self._codec.decode_record(record.data())
        except ValueError as exc:
            raise ObjectiveRejected(
                ObjectiveError.GROUPMISSING, f"unreadable group record for next id {fwd.next_id}: {exc}"
            ) from exc

        group = self._groups.get_group(self._device_id, key)
        if group is None:
            raise ObjectiveRejected(ObjectiveError.GROUPMISSING, f"group {key!r} is not installed")
        return group.id

    def _listen(self) -> None:
        if not self._listening:
            self._groups.add_listener(self._reconciler.event)
            self._listening = True

    def _reject(self, kind: str, objective, exc: ObjectiveRejected) -> None:
        LOG.warning("Rejected %s objective on %s: %s", kind, self._device_id, exc.reason)
        fail(objective, exc.error)
