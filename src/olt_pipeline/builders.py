"""Selector and treatment assembly helpers."""

from __future__ import annotations

from typing import Dict, Optional, Tuple

from .model import (
    Criterion,
    CriterionType,
    ETH_TYPE_VLAN,
    Instruction,
    InstructionType,
    L2SubType,
    TrafficSelector,
    TrafficTreatment,
)

PORT_MASK = 0xFFFFFFFF
VLAN_MASK = 0xFFFF


# ------------------------------------------------------------------
# Criteria
# ------------------------------------------------------------------
def match_in_port(port: int) -> Criterion:
    return Criterion(CriterionType.IN_PORT, port)


def match_vlan_id(vlan_id: int) -> Criterion:
    return Criterion(CriterionType.VLAN_VID, vlan_id)


def match_inner_vlan_id(vlan_id: int) -> Criterion:
    return Criterion(CriterionType.INNER_VLAN_VID, vlan_id)


def match_metadata(value: int) -> Criterion:
    return Criterion(CriterionType.METADATA, value)


def match_eth_type(eth_type: int) -> Criterion:
    return Criterion(CriterionType.ETH_TYPE, eth_type)


def match_ip_proto(proto: int) -> Criterion:
    return Criterion(CriterionType.IP_PROTO, proto)


def match_ipv4_dst(prefix: str) -> Criterion:
    return Criterion(CriterionType.IPV4_DST, prefix)


def match_udp_src(port: int) -> Criterion:
    return Criterion(CriterionType.UDP_SRC, port)


def match_udp_dst(port: int) -> Criterion:
    return Criterion(CriterionType.UDP_DST, port)


# ------------------------------------------------------------------
# Instructions
# ------------------------------------------------------------------
def output(port: int) -> Instruction:
    return Instruction(InstructionType.OUTPUT, value=port)


def group(group_id: int) -> Instruction:
    return Instruction(InstructionType.GROUP, value=group_id)


def push_vlan(eth_type: int = ETH_TYPE_VLAN) -> Instruction:
    return Instruction(InstructionType.L2MODIFICATION, L2SubType.VLAN_PUSH, eth_type)


def pop_vlan() -> Instruction:
    return Instruction(InstructionType.L2MODIFICATION, L2SubType.VLAN_POP)


def set_vlan_id(vlan_id: int) -> Instruction:
    return Instruction(InstructionType.L2MODIFICATION, L2SubType.VLAN_ID, vlan_id)


def meter(meter_id: int) -> Instruction:
    return Instruction(InstructionType.METER, value=meter_id)


def transition(table_id: int) -> Instruction:
    return Instruction(InstructionType.TABLE, value=table_id)


# ------------------------------------------------------------------
# Selectors / treatments
# ------------------------------------------------------------------
def build_selector(*criteria: Optional[Criterion]) -> TrafficSelector:
    """Return a selector holding ``criteria``.

    ``None`` entries are skipped and a later criterion replaces an earlier one
    of the same type.
    """

    by_type: Dict[CriterionType, Criterion] = {}
    for criterion in criteria:
        if criterion is not None:
            by_type[criterion.type] = criterion
    return TrafficSelector(frozenset(by_type.values()))


def build_treatment(
    *instructions: Optional[Instruction],
    deferred: Optional[Instruction] = None,
) -> TrafficTreatment:
    """Return a treatment with ``instructions`` applied immediately, in order.

    ``deferred`` (typically the output) lands in the deferred partition.
    ``None`` instructions are skipped so optional meter/transition lookups can
    be passed straight through.
    """

    immediate: Tuple[Instruction, ...] = tuple(i for i in instructions if i is not None)
    deferred_part: Tuple[Instruction, ...] = (deferred,) if deferred is not None else ()
    return TrafficTreatment(immediate=immediate, deferred=deferred_part)


# ------------------------------------------------------------------
# Metadata
# ------------------------------------------------------------------
def downstream_metadata(inner_vlan_id: int, out_port: int) -> int:
    """Pack the client VLAN and the output port into one 64-bit metadata value."""

    return ((inner_vlan_id & VLAN_MASK) << 32) | (out_port & PORT_MASK)


def split_downstream_metadata(value: int) -> Tuple[int, int]:
    """Inverse of :func:`downstream_metadata`; returns ``(vlan_id, port)``."""

    return (value >> 32) & VLAN_MASK, value & PORT_MASK
