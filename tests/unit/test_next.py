import pytest

from olt_pipeline import builders as b
from olt_pipeline.group_keys import GroupKeyCodec, PipelineGroup
from olt_pipeline.model import (
    GroupEventType,
    GroupType,
    NextObjective,
    NextType,
    ObjectiveError,
    ObjectiveOperation,
    buckets_for,
)

BUCKET = b.build_treatment(deferred=b.output(1))


def _next(context, next_id=42, type_=NextType.BROADCAST, treatments=(BUCKET,), op=ObjectiveOperation.ADD):
    return NextObjective(
        id=next_id,
        type=type_,
        next=tuple(treatments),
        app_id="org.opencord.igmp",
        op=op,
        context=context,
    )


def test_group_added_resolves_and_stores_mapping(pipeliner, groups, store, clock, context):
    objective = _next(context)

    pipeliner.next(objective)
    key = pipeliner.codec.key_for(42)
    (request,) = groups.requests
    assert request[0] == "add"
    description = request[1]
    assert description.type is GroupType.ALL
    assert description.app_cookie == key
    assert description.buckets == buckets_for([BUCKET])
    assert context.outcomes == 0

    clock.advance(0.005)
    groups.confirm(key)

    assert context.successes == [objective]
    assert GroupKeyCodec.decode_record(store.get_next_group(42).data()) == key
    assert key not in pipeliner.pending

    clock.advance(60)
    pipeliner.expire_pending()
    assert context.outcomes == 1


def test_group_updated_also_resolves(pipeliner, groups, context):
    pipeliner.next(_next(context))

    groups.emit(GroupEventType.GROUP_UPDATED, pipeliner.codec.key_for(42))

    assert len(context.successes) == 1


def test_other_events_are_ignored(pipeliner, groups, context):
    pipeliner.next(_next(context))
    key = pipeliner.codec.key_for(42)

    groups.emit(GroupEventType.GROUP_ADD_REQUESTED, key)
    groups.emit(GroupEventType.GROUP_ADD_FAILED, key)

    assert context.outcomes == 0
    assert key in pipeliner.pending


def test_duplicate_event_is_ignored(pipeliner, groups, context):
    pipeliner.next(_next(context))
    key = pipeliner.codec.key_for(42)

    groups.confirm(key)
    groups.confirm(key)

    assert context.outcomes == 1


def test_unconfirmed_group_expires_once(pipeliner, groups, store, clock, context):
    objective = _next(context)
    pipeliner.next(objective)

    clock.advance(19)
    assert pipeliner.expire_pending() == []

    clock.advance(1)
    pipeliner.expire_pending()
    pipeliner.expire_pending()

    assert context.errors == [(objective, ObjectiveError.GROUPINSTALLATIONFAILED)]
    assert store.get_next_group(42) is None

    groups.confirm(pipeliner.codec.key_for(42))
    assert context.outcomes == 1


def test_late_event_expires_instead_of_resolving(pipeliner, groups, store, clock, context):
    objective = _next(context)
    pipeliner.next(objective)

    clock.advance(30)
    groups.confirm(pipeliner.codec.key_for(42))

    assert context.errors == [(objective, ObjectiveError.GROUPINSTALLATIONFAILED)]
    assert store.get_next_group(42) is None


def test_resubmission_before_resolution_gives_one_callback(pipeliner, groups, clock, context):
    first = _next(context)
    second = _next(context, treatments=(b.build_treatment(deferred=b.output(2)),))

    pipeliner.next(first)
    clock.advance(10)
    pipeliner.next(second)
    groups.confirm(pipeliner.codec.key_for(42))
    clock.advance(60)
    pipeliner.expire_pending()

    assert context.successes == [second]
    assert context.errors == []


def test_superseding_request_restarts_ttl(pipeliner, clock, context):
    first = _next(context)
    second = _next(context, treatments=(b.build_treatment(deferred=b.output(2)),))

    pipeliner.next(first)
    clock.advance(15)
    pipeliner.next(second)
    clock.advance(15)
    assert pipeliner.expire_pending() == []

    clock.advance(5)
    pipeliner.expire_pending()

    assert context.errors == [(second, ObjectiveError.GROUPINSTALLATIONFAILED)]


@pytest.mark.parametrize("type_", [NextType.HASHED, NextType.SIMPLE, NextType.FAILOVER])
def test_only_broadcast_groups_are_supported(pipeliner, groups, context, type_):
    objective = _next(context, type_=type_)

    pipeliner.next(objective)

    assert groups.requests == []
    assert len(pipeliner.pending) == 0
    assert context.errors == [(objective, ObjectiveError.BADPARAMS)]


@pytest.mark.parametrize("treatments", [(), (BUCKET, b.build_treatment(deferred=b.output(2)))])
def test_only_singleton_groups_are_supported(pipeliner, groups, context, treatments):
    objective = _next(context, treatments=treatments)

    pipeliner.next(objective)

    assert groups.requests == []
    assert context.errors == [(objective, ObjectiveError.BADPARAMS)]


@pytest.mark.parametrize(
    "op, request_type",
    [
        (ObjectiveOperation.REMOVE, "remove"),
        (ObjectiveOperation.ADD_TO_EXISTING, "add_buckets"),
        (ObjectiveOperation.REMOVE_FROM_EXISTING, "remove_buckets"),
    ],
)
def test_operations_are_routed_to_group_service(pipeliner, groups, context, op, request_type):
    pipeliner.next(_next(context, op=op))

    (request,) = groups.requests
    assert request[0] == request_type
    assert request[1] == pipeliner.codec.key_for(42)
    assert pipeliner.codec.key_for(42) in pipeliner.pending


def test_bucket_update_resolves_on_group_updated(pipeliner, groups, context):
    objective = _next(context, op=ObjectiveOperation.ADD_TO_EXISTING)
    pipeliner.next(objective)

    groups.emit(GroupEventType.GROUP_UPDATED, pipeliner.codec.key_for(42))

    assert context.successes == [objective]


def test_get_next_mappings_lists_buckets(pipeliner, groups, store):
    pipeliner.next(_next(None))
    key = pipeliner.codec.key_for(42)
    groups.confirm(key)

    mappings = pipeliner.get_next_mappings(store.get_next_group(42))

    group = groups.groups[key]
    assert mappings == [f"0x{group.id:x} -> {BUCKET}"]


def test_get_next_mappings_without_group(pipeliner, store):
    assert pipeliner.get_next_mappings(PipelineGroup(pipeliner.codec.key_for(7))) == []


def test_stop_unregisters_listener(pipeliner, groups):
    pipeliner.start()
    pipeliner.stop()

    assert groups.listeners == []


def test_restart_keeps_group_events_flowing(pipeliner, groups, context):
    pipeliner.start()
    pipeliner.stop()
    pipeliner.start()
    try:
        objective = _next(context)
        pipeliner.next(objective)
        groups.confirm(pipeliner.codec.key_for(42))
    finally:
        pipeliner.stop()

    assert context.successes == [objective]


def test_stop_twice_is_harmless(pipeliner, groups):
    pipeliner.stop()
    pipeliner.stop()

    assert groups.listeners == []


def test_store_failure_fails_objective_once(pipeliner, groups, store, clock, context):
    def broken_put(next_id, next_group):
        raise RuntimeError("store down")

    store.put_next_group = broken_put
    objective = _next(context)
    pipeliner.next(objective)

    groups.confirm(pipeliner.codec.key_for(42))
    clock.advance(60)
    pipeliner.expire_pending()

    assert context.errors == [(objective, ObjectiveError.GROUPINSTALLATIONFAILED)]
    assert context.successes == []
    assert len(pipeliner.pending) == 0


@pytest.mark.parametrize("next_id", [2**31, -(2**31) - 1])
def test_out_of_range_id_is_bad_params(pipeliner, groups, context, next_id):
    objective = _next(context, next_id=next_id)

    pipeliner.next(objective)

    assert groups.requests == []
    assert len(pipeliner.pending) == 0
    assert context.errors == [(objective, ObjectiveError.BADPARAMS)]
