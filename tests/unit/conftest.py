import itertools

import pytest

from olt_pipeline.config import PipelineConfig
from olt_pipeline.model import Group, GroupEvent, GroupEventType, GroupKey, GroupType
from olt_pipeline.pipeliner import OltPipeliner
from olt_pipeline.services import (
    FlowObjectiveStore,
    FlowRuleService,
    GroupService,
    ObjectiveContext,
)

DEVICE_ID = "of:0000000000000001"


class RecordingFlowRuleService(FlowRuleService):
    """Record batches and complete them right away."""

    def __init__(self):
        self.batches = []
        self.fail = False
        self.auto_complete = True

    def apply(self, ops):
        self.batches.append(ops)
        if not self.auto_complete:
            return
        if self.fail:
            ops.context.on_error(ops)
        else:
            ops.context.on_success(ops)


class FakeGroupService(GroupService):
    """Keep groups in memory; events are only emitted on request."""

    def __init__(self):
        self.requests = []
        self.groups = {}
        self.listeners = []
        self._ids = itertools.count(0x10)

    def add_group(self, description):
        self.requests.append(("add", description))
        self.groups[description.app_cookie] = Group(
            id=next(self._ids),
            device_id=description.device_id,
            type=description.type,
            buckets=description.buckets,
            app_cookie=description.app_cookie,
        )

    def remove_group(self, device_id, key, app_id):
        self.requests.append(("remove", key))

    def add_buckets_to_group(self, device_id, key, buckets, new_key, app_id):
        self.requests.append(("add_buckets", key, tuple(buckets)))

    def remove_buckets_from_group(self, device_id, key, buckets, new_key, app_id):
        self.requests.append(("remove_buckets", key, tuple(buckets)))

    def get_group(self, device_id, key):
        return self.groups.get(key)

    def add_listener(self, listener):
        self.listeners.append(listener)

    def remove_listener(self, listener):
        self.listeners.remove(listener)

    def emit(self, event_type, key):
        group = self.groups.get(key) or Group(
            id=0, device_id=DEVICE_ID, type=GroupType.ALL, buckets=(), app_cookie=key
        )
        event = GroupEvent(event_type, group)
        for listener in list(self.listeners):
            listener(event)

    def confirm(self, key: GroupKey):
        self.emit(GroupEventType.GROUP_ADDED, key)


class InMemoryObjectiveStore(FlowObjectiveStore):
    def __init__(self):
        self.next_groups = {}

    def get_next_group(self, next_id):
        return self.next_groups.get(next_id)

    def put_next_group(self, next_id, next_group):
        self.next_groups[next_id] = next_group


class RecordingContext(ObjectiveContext):
    def __init__(self):
        self.successes = []
        self.errors = []

    def on_success(self, objective):
        self.successes.append(objective)

    def on_error(self, objective, error):
        self.errors.append((objective, error))

    @property
    def outcomes(self):
        return len(self.successes) + len(self.errors)


class ManualClock:
    def __init__(self, now=0.0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


@pytest.fixture
def flow_rules():
    return RecordingFlowRuleService()


@pytest.fixture
def groups():
    return FakeGroupService()


@pytest.fixture
def store():
    return InMemoryObjectiveStore()


@pytest.fixture
def context():
    return RecordingContext()


@pytest.fixture
def clock():
    return ManualClock()


@pytest.fixture
def pipeliner(flow_rules, groups, store, clock):
    return OltPipeliner(DEVICE_ID, flow_rules, groups, store, config=PipelineConfig(), clock=clock)
