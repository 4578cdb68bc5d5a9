"""Submit translated flow rules and relay the batch outcome."""

from __future__ import annotations

import logging
from threading import Lock
from typing import Iterable

from .model import (
    FlowRule,
    FlowRuleOperation,
    FlowRuleOperations,
    FlowRuleOpType,
    ObjectiveError,
    ObjectiveOperation,
)
from .services import FlowRuleOperationsContext, FlowRuleService

LOG = logging.getLogger(__name__)


def succeed(objective) -> None:
    if objective.context is not None:
        objective.context.on_success(objective)


def fail(objective, error: ObjectiveError) -> None:
    if objective.context is not None:
        objective.context.on_error(objective, error)


class _ObjectiveOperationsContext(FlowRuleOperationsContext):
    """Relay a batch outcome to ``objective`` at most once."""

    def __init__(self, objective) -> None:
        self._objective = objective
        self._done = False
        self._lock = Lock()

    def _claim(self) -> bool:
        with self._lock:
            if self._done:
                return False
            self._done = True
            return True

    def on_success(self, ops: FlowRuleOperations) -> None:
        if self._claim():
            succeed(self._objective)
        else:
            LOG.debug("ignoring repeated completion for batch of %d rules", len(ops))

    def on_error(self, ops: FlowRuleOperations) -> None:
        if self._claim():
            LOG.warning("flow rule batch of %d rules failed", len(ops))
            fail(self._objective, ObjectiveError.FLOWINSTALLATIONFAILED)
        else:
            LOG.debug("ignoring repeated completion for batch of %d rules", len(ops))


class OperationDispatcher:
    """Turn translated rules into one atomic add or remove batch."""

    def __init__(self, flow_rules: FlowRuleService) -> None:
        self._flow_rules = flow_rules

    def apply(self, objective, rules: Iterable[FlowRule], op_type: FlowRuleOpType) -> None:
        self.submit(objective, [FlowRuleOperation(op_type, rule) for rule in rules])

    def apply_for(self, objective, op: ObjectiveOperation, rules: Iterable[FlowRule]) -> None:
        """Apply ``rules`` following the objective operation ``op``.

        ADD and REMOVE map onto add and remove batches; the bucket-level
        operations carry no flow rules and produce an empty batch.
        """

        if op is ObjectiveOperation.ADD:
            self.apply(objective, rules, FlowRuleOpType.ADD)
        elif op is ObjectiveOperation.REMOVE:
            self.apply(objective, rules, FlowRuleOpType.REMOVE)
        else:
            LOG.debug("operation %s installs no flow rules", op.name)
            self.submit(objective, [])

    def submit(self, objective, operations) -> None:
        context = _ObjectiveOperationsContext(objective)
        ops = FlowRuleOperations(tuple(operations), context=context)
        if not ops.operations:
            context.on_success(ops)
            return
        LOG.debug("applying %d flow rule operations", len(ops))
        self._flow_rules.apply(ops)
