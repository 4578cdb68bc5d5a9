"""Data structures shared by the OLT pipeline translator.

These light-weight frozen dataclasses describe the objectives handed to the
pipeliner, the flow rules and groups it produces, and the events it consumes.
They mirror the shapes the hardware pipeline expects without pulling in a
controller framework, so the translation logic can be exercised in isolation.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Any, Iterable, Optional, Tuple

# VLAN values with special meaning in the pipeline.
VLAN_NONE = 0xFFFF  # untagged
VLAN_ANY = 0x1000  # wildcard

PORT_CONTROLLER = 0xFFFFFFFD

ETH_TYPE_IPV4 = 0x0800
ETH_TYPE_VLAN = 0x8100
ETH_TYPE_QINQ = 0x88A8
ETH_TYPE_EAPOL = 0x888E
ETH_TYPE_LLDP = 0x88CC

IP_PROTO_IGMP = 2
IP_PROTO_UDP = 17

DHCP_CLIENT_PORT = 68
DHCP_SERVER_PORT = 67


class CriterionType(Enum):
    IN_PORT = auto()
    METADATA = auto()
    ETH_TYPE = auto()
    VLAN_VID = auto()
    INNER_VLAN_VID = auto()
    IP_PROTO = auto()
    IPV4_DST = auto()
    UDP_SRC = auto()
    UDP_DST = auto()


@dataclass(frozen=True)
class Criterion:
    """A single match field of a selector."""

    type: CriterionType
    value: Any


class InstructionType(Enum):
    OUTPUT = auto()
    GROUP = auto()
    L2MODIFICATION = auto()
    METER = auto()
    TABLE = auto()


class L2SubType(Enum):
    VLAN_PUSH = auto()
    VLAN_POP = auto()
    VLAN_ID = auto()


@dataclass(frozen=True)
class Instruction:
    """A single action of a treatment.

    ``subtype`` is only set for L2 modifications.  ``value`` holds the port,
    group id, ether-type, VLAN id, meter id or table id depending on the type.
    """

    type: InstructionType
    subtype: Optional[L2SubType] = None
    value: Any = None

    def is_l2(self, subtype: L2SubType) -> bool:
        return self.type is InstructionType.L2MODIFICATION and self.subtype is subtype


@dataclass(frozen=True)
class TrafficSelector:
    """Unordered set of match criteria, at most one per type."""

    criteria: frozenset = frozenset()

    def get_criterion(self, type_: CriterionType) -> Optional[Criterion]:
        return next((c for c in self.criteria if c.type is type_), None)

    def __iter__(self):
        return iter(self.criteria)


@dataclass(frozen=True)
class TrafficTreatment:
    """Ordered immediate and deferred instruction partitions.

    The hardware applies ``immediate`` instructions as they are listed and
    accumulates ``deferred`` ones into the action set executed when the packet
    leaves the pipeline.
    """

    immediate: Tuple[Instruction, ...] = ()
    deferred: Tuple[Instruction, ...] = ()

    @property
    def all_instructions(self) -> Tuple[Instruction, ...]:
        return self.immediate + self.deferred

    @property
    def metered(self) -> Optional[Instruction]:
        return self._first(InstructionType.METER)

    @property
    def table_transition(self) -> Optional[Instruction]:
        return self._first(InstructionType.TABLE)

    def _first(self, type_: InstructionType) -> Optional[Instruction]:
        return next((i for i in self.all_instructions if i.type is type_), None)

    def __bool__(self) -> bool:
        return bool(self.immediate or self.deferred)


EMPTY_TREATMENT = TrafficTreatment()


@dataclass(frozen=True)
class FlowRule:
    device_id: str
    app_id: str
    table_id: int
    priority: int
    selector: TrafficSelector
    treatment: TrafficTreatment
    permanent: bool = True


class FlowRuleOpType(Enum):
    ADD = auto()
    REMOVE = auto()


@dataclass(frozen=True)
class FlowRuleOperation:
    type: FlowRuleOpType
    rule: FlowRule


@dataclass(frozen=True)
class FlowRuleOperations:
    """An atomic batch of flow rule operations with its completion context."""

    operations: Tuple[FlowRuleOperation, ...]
    context: Any = field(default=None, compare=False, repr=False)

    @property
    def rules(self) -> Tuple[FlowRule, ...]:
        return tuple(op.rule for op in self.operations)

    def __len__(self) -> int:
        return len(self.operations)


# ---------------------------------------------------------------------------
# Objectives
# ---------------------------------------------------------------------------
class ObjectiveOperation(Enum):
    ADD = auto()
    REMOVE = auto()
    ADD_TO_EXISTING = auto()
    REMOVE_FROM_EXISTING = auto()


class ObjectiveError(Enum):
    BADPARAMS = auto()
    UNSUPPORTED = auto()
    GROUPMISSING = auto()
    GROUPINSTALLATIONFAILED = auto()
    FLOWINSTALLATIONFAILED = auto()


class FilterType(Enum):
    PERMIT = auto()
    DENY = auto()


class NextType(Enum):
    HASHED = auto()
    BROADCAST = auto()
    SIMPLE = auto()
    FAILOVER = auto()


@dataclass(frozen=True)
class FilteringObjective:
    key: Criterion
    conditions: Tuple[Criterion, ...]
    type: FilterType
    priority: int
    app_id: str
    meta: Optional[TrafficTreatment] = None
    context: Any = field(default=None, compare=False, repr=False)


@dataclass(frozen=True)
class ForwardingObjective:
    selector: TrafficSelector
    treatment: TrafficTreatment
    priority: int
    app_id: str
    op: ObjectiveOperation = ObjectiveOperation.ADD
    next_id: Optional[int] = None
    context: Any = field(default=None, compare=False, repr=False)


@dataclass(frozen=True)
class NextObjective:
    id: int
    type: NextType
    next: Tuple[TrafficTreatment, ...]
    app_id: str
    op: ObjectiveOperation = ObjectiveOperation.ADD
    context: Any = field(default=None, compare=False, repr=False)


# ---------------------------------------------------------------------------
# Groups
# ---------------------------------------------------------------------------
@dataclass(frozen=True)
class GroupKey:
    """Opaque correlation key linking a hardware group to its next objective."""

    data: bytes

    def __repr__(self) -> str:
        return f"GroupKey(0x{self.data.hex()})"


class GroupType(Enum):
    ALL = auto()
    SELECT = auto()
    INDIRECT = auto()
    FAILOVER = auto()


@dataclass(frozen=True)
class GroupBucket:
    treatment: TrafficTreatment
    type: GroupType = GroupType.ALL


@dataclass(frozen=True)
class GroupDescription:
    device_id: str
    type: GroupType
    buckets: Tuple[GroupBucket, ...]
    app_cookie: GroupKey
    app_id: str
    group_id: Optional[int] = None


@dataclass(frozen=True)
class Group:
    """A group as reported back by the group subsystem."""

    id: int
    device_id: str
    type: GroupType
    buckets: Tuple[GroupBucket, ...]
    app_cookie: GroupKey


class GroupEventType(Enum):
    GROUP_ADD_REQUESTED = auto()
    GROUP_ADDED = auto()
    GROUP_UPDATED = auto()
    GROUP_REMOVED = auto()
    GROUP_ADD_FAILED = auto()
    GROUP_UPDATE_FAILED = auto()
    GROUP_REMOVE_FAILED = auto()


@dataclass(frozen=True)
class GroupEvent:
    type: GroupEventType
    subject: Group


def buckets_for(treatments: Iterable[TrafficTreatment]) -> Tuple[GroupBucket, ...]:
    """Wrap ``treatments`` into ALL-group buckets."""

    return tuple(GroupBucket(treatment=t, type=GroupType.ALL) for t in treatments)
