"""Pure predicates used to pick a translation branch for an objective."""

from __future__ import annotations

import ipaddress
import logging
from typing import Iterable, List, Optional, Tuple

from .model import (
    Criterion,
    CriterionType,
    Instruction,
    InstructionType,
    L2SubType,
    TrafficSelector,
    TrafficTreatment,
    VLAN_ANY,
    VLAN_NONE,
)

LOG = logging.getLogger(__name__)

VlanPair = Tuple[Instruction, Instruction]


def find_criterion(criteria: Iterable[Criterion], type_: CriterionType) -> Optional[Criterion]:
    return next((c for c in criteria if c.type is type_), None)


def is_multicast(selector: TrafficSelector) -> bool:
    """Return ``True`` when the selector matches an IPv4 multicast destination."""

    dst = selector.get_criterion(CriterionType.IPV4_DST)
    if dst is None:
        return False
    return ipaddress.ip_network(str(dst.value), strict=False).is_multicast


def vlan_operation(treatment: TrafficTreatment) -> Optional[L2SubType]:
    """Return the first VLAN push or pop subtype in ``treatment``, if any."""

    for instruction in treatment.all_instructions:
        if instruction.is_l2(L2SubType.VLAN_PUSH) or instruction.is_l2(L2SubType.VLAN_POP):
            return instruction.subtype
    return None


def find_l2_instructions(subtype: L2SubType, instructions: Iterable[Instruction]) -> List[Instruction]:
    return [i for i in instructions if i.is_l2(subtype)]


def find_vlan_ops(instructions: Iterable[Instruction], subtype: L2SubType) -> List[VlanPair]:
    """Pair the Nth ``subtype`` instruction with the Nth VLAN_ID instruction.

    Returns an empty list when the two counts differ.
    """

    instructions = list(instructions)
    ops = find_l2_instructions(subtype, instructions)
    sets = find_l2_instructions(L2SubType.VLAN_ID, instructions)
    if len(ops) != len(sets):
        LOG.debug("vlan %s count %d does not match vlan id count %d", subtype.name, len(ops), len(sets))
        return []
    return list(zip(ops, sets))


def fetch_output(treatment: TrafficTreatment) -> Optional[Instruction]:
    return next(
        (i for i in treatment.all_instructions if i.type is InstructionType.OUTPUT),
        None,
    )


def fetch_immediate_output(treatment: TrafficTreatment) -> Optional[Instruction]:
    return next((i for i in treatment.immediate if i.type is InstructionType.OUTPUT), None)


def matches_vlan(selector: TrafficSelector, vlan_id: int) -> bool:
    vlan = selector.get_criterion(CriterionType.VLAN_VID)
    return vlan is not None and vlan.value == vlan_id


def matches_untagged(selector: TrafficSelector) -> bool:
    return matches_vlan(selector, VLAN_NONE)


def matches_any_vlan(selector: TrafficSelector) -> bool:
    return matches_vlan(selector, VLAN_ANY)
