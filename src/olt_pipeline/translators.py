"""Per-branch translation of objectives into flow rules.

Each translator validates its objective and returns the complete list of
rules for one batch, or raises :class:`~olt_pipeline.exceptions.ObjectiveRejected`
before anything is built.  Nothing in here talks to a service.

Table layout of the OLT pipeline::

    table 0        classification, C-tag handling, S-tag pop downstream
    QQ table (1)   S-tag push upstream / C-tag handling downstream, then
                   the technology profile tables (64-127) via transition
"""

from __future__ import annotations

import logging
from typing import List, Optional

from . import builders as b
from .classifiers import (
    fetch_output,
    fetch_immediate_output,
    find_criterion,
    find_vlan_ops,
    matches_any_vlan,
    matches_untagged,
)
from .exceptions import ObjectiveRejected
from .model import (
    CriterionType,
    DHCP_CLIENT_PORT,
    DHCP_SERVER_PORT,
    EMPTY_TREATMENT,
    ETH_TYPE_EAPOL,
    ETH_TYPE_IPV4,
    ETH_TYPE_LLDP,
    ETH_TYPE_QINQ,
    FilteringObjective,
    FilterType,
    FlowRule,
    FlowRuleOpType,
    ForwardingObjective,
    Instruction,
    IP_PROTO_IGMP,
    IP_PROTO_UDP,
    L2SubType,
    ObjectiveError,
    PORT_CONTROLLER,
    TrafficSelector,
    TrafficTreatment,
    VLAN_ANY,
    VLAN_NONE,
)

LOG = logging.getLogger(__name__)

DEFAULT_QQ_TABLE = 1
DEFAULT_NO_ACTION_PRIORITY = 500

FILTER_OPS = {
    FilterType.PERMIT: FlowRuleOpType.ADD,
    FilterType.DENY: FlowRuleOpType.REMOVE,
}


class RuleTranslator:
    """Build the flow rules of one device for filtering and forwarding."""

    def __init__(
        self,
        device_id: str,
        *,
        qq_table: int = DEFAULT_QQ_TABLE,
        no_action_priority: int = DEFAULT_NO_ACTION_PRIORITY,
    ) -> None:
        self._device_id = device_id
        self._qq_table = qq_table
        self._no_action_priority = no_action_priority

    def _rule(
        self,
        app_id: str,
        priority: int,
        selector: TrafficSelector,
        treatment: TrafficTreatment,
        table_id: int = 0,
    ) -> FlowRule:
        return FlowRule(
            device_id=self._device_id,
            app_id=app_id,
            table_id=table_id,
            priority=priority,
            selector=selector,
            treatment=treatment,
        )

    # ------------------------------------------------------------------
    # Filtering
    # ------------------------------------------------------------------
    def filter_rules(self, filt: FilteringObjective):
        """Return ``(op_type, [rule])`` trapping the filtered traffic to the controller."""

        # only the immediate part of the meta carries the trap output
        output = fetch_immediate_output(filt.meta) if filt.meta else None
        if output is None:
            raise ObjectiveRejected(ObjectiveError.BADPARAMS, "filter has no output in its meta treatment")
        if output.value != PORT_CONTROLLER:
            raise ObjectiveRejected(ObjectiveError.UNSUPPORTED, "OLT can only filter packets to the controller")

        if filt.key is None or filt.key.type is not CriterionType.IN_PORT:
            raise ObjectiveRejected(ObjectiveError.BADPARAMS, "filter key must be an input port")

        eth_type = find_criterion(filt.conditions, CriterionType.ETH_TYPE)
        if eth_type is None:
            raise ObjectiveRejected(ObjectiveError.BADPARAMS, "filter has no ethernet type condition")

        if eth_type.value in (ETH_TYPE_EAPOL, ETH_TYPE_LLDP):
            selector = b.build_selector(filt.key, eth_type)
        elif eth_type.value == ETH_TYPE_IPV4:
            selector = self._ipv4_filter_selector(filt, eth_type)
        else:
            raise ObjectiveRejected(
                ObjectiveError.UNSUPPORTED,
                f"ethernet type 0x{eth_type.value:04x} is not supported, "
                "only EAPOL, LLDP and IPv4 (IGMP, DHCP)",
            )

        op_type = FILTER_OPS.get(filt.type)
        if op_type is None:
            raise ObjectiveRejected(ObjectiveError.UNSUPPORTED, f"unknown filter type {filt.type!r}")

        rule = self._rule(filt.app_id, filt.priority, selector, b.build_treatment(output))
        return op_type, [rule]

    def _ipv4_filter_selector(self, filt: FilteringObjective, eth_type) -> TrafficSelector:
        ip_proto = find_criterion(filt.conditions, CriterionType.IP_PROTO)
        if ip_proto is None:
            raise ObjectiveRejected(ObjectiveError.UNSUPPORTED, "OLT can only filter IGMP and DHCP")

        if ip_proto.value == IP_PROTO_IGMP:
            return b.build_selector(filt.key, eth_type, ip_proto)

        if ip_proto.value == IP_PROTO_UDP:
            udp_src = find_criterion(filt.conditions, CriterionType.UDP_SRC)
            udp_dst = find_criterion(filt.conditions, CriterionType.UDP_DST)
            if (
                udp_src is None
                or udp_dst is None
                or udp_src.value != DHCP_CLIENT_PORT
                or udp_dst.value != DHCP_SERVER_PORT
            ):
                raise ObjectiveRejected(ObjectiveError.UNSUPPORTED, "OLT can only filter DHCP, wrong UDP ports")
            return b.build_selector(filt.key, eth_type, ip_proto, udp_src, udp_dst)

        raise ObjectiveRejected(ObjectiveError.UNSUPPORTED, "OLT can only filter IGMP and DHCP")

    # ------------------------------------------------------------------
    # Forwarding
    # ------------------------------------------------------------------
    def multicast_rules(self, fwd: ForwardingObjective, group_id: int) -> List[FlowRule]:
        return [self._rule(fwd.app_id, fwd.priority, fwd.selector, b.build_treatment(b.group(group_id)))]

    def passthrough_rules(self, fwd: ForwardingObjective) -> List[FlowRule]:
        output = fetch_output(fwd.treatment)
        in_port = fwd.selector.get_criterion(CriterionType.IN_PORT)
        outer_vlan = fwd.selector.get_criterion(CriterionType.VLAN_VID)
        inner_vlan = fwd.selector.get_criterion(CriterionType.INNER_VLAN_VID)

        if None in (output, in_port, outer_vlan, inner_vlan):
            raise ObjectiveRejected(ObjectiveError.BADPARAMS, "forwarding objective is underspecified")

        selector = b.build_selector(in_port, outer_vlan, b.match_metadata(inner_vlan.value))
        return [self._rule(fwd.app_id, fwd.priority, selector, b.build_treatment(output))]

    def upstream_rules(self, fwd: ForwardingObjective) -> List[FlowRule]:
        vlan_ops = find_vlan_ops(fwd.treatment.all_instructions, L2SubType.VLAN_PUSH)
        if len(vlan_ops) != 2:
            raise ObjectiveRejected(
                ObjectiveError.BADPARAMS,
                "upstream forwarding needs an inner and an outer vlan push/set pair",
            )

        output = self._require_output(fwd, "upstream")
        in_port = fwd.selector.get_criterion(CriterionType.IN_PORT)
        if in_port is None:
            raise ObjectiveRejected(ObjectiveError.BADPARAMS, "upstream forwarding has no input port")

        inner_pair, outer_pair = vlan_ops
        if matches_any_vlan(fwd.selector):
            return self._upstream_any_vlan(fwd, output, in_port, outer_pair)
        return self._upstream_vlans(fwd, output, in_port, inner_pair, outer_pair)

    def _upstream_vlans(self, fwd, output, in_port, inner_pair, outer_pair) -> List[FlowRule]:
        inner_push, inner_set = inner_pair
        outer_push, outer_set = outer_pair

        # Untagged clients need the C-tag pushed, tagged ones only rewritten.
        if matches_untagged(fwd.selector):
            inner_treatment = b.build_treatment(inner_push, inner_set, b.transition(self._qq_table))
        else:
            inner_treatment = b.build_treatment(inner_set, b.transition(self._qq_table))

        # match: in port, vlan (none or specific)
        # action: push/set c-tag, go to QQ table
        inner = self._rule(fwd.app_id, fwd.priority, fwd.selector, inner_treatment)

        # match: in port, c-tag
        # action: deferred output, push/set s-tag, meter, technology profile
        outer = self._rule(
            fwd.app_id,
            fwd.priority,
            b.build_selector(in_port, b.match_vlan_id(inner_set.value)),
            b.build_treatment(
                outer_push,
                outer_set,
                fwd.treatment.metered,
                fwd.treatment.table_transition,
                deferred=output,
            ),
            table_id=self._qq_table,
        )
        return [inner, outer]

    def _upstream_any_vlan(self, fwd, output, in_port, outer_pair) -> List[FlowRule]:
        LOG.debug("installing upstream rules for any value vlan")
        _, outer_set = outer_pair

        inner = self._rule(
            fwd.app_id, fwd.priority, fwd.selector, b.build_treatment(b.transition(self._qq_table))
        )

        # drop untagged traffic on the port
        default_inner = self._rule(
            fwd.app_id, self._no_action_priority, b.build_selector(in_port), EMPTY_TREATMENT
        )

        outer = self._rule(
            fwd.app_id,
            fwd.priority,
            fwd.selector,
            b.build_treatment(
                b.push_vlan(ETH_TYPE_QINQ),
                outer_set,
                fwd.treatment.metered,
                fwd.treatment.table_transition,
                deferred=output,
            ),
            table_id=self._qq_table,
        )
        return [inner, default_inner, outer]

    def downstream_rules(self, fwd: ForwardingObjective) -> List[FlowRule]:
        output = self._require_output(fwd, "downstream")

        outer_vlan = fwd.selector.get_criterion(CriterionType.VLAN_VID)
        inner_vlan = fwd.selector.get_criterion(CriterionType.INNER_VLAN_VID)
        in_port = fwd.selector.get_criterion(CriterionType.IN_PORT)
        if None in (outer_vlan, inner_vlan, in_port):
            raise ObjectiveRejected(ObjectiveError.BADPARAMS, "forwarding objective is underspecified")

        metadata = b.match_metadata(b.downstream_metadata(inner_vlan.value, output.value))
        outer_selector = b.build_selector(in_port, outer_vlan, metadata)

        if inner_vlan.value == VLAN_ANY:
            return self._downstream_any_vlan(fwd, output, outer_selector, in_port)
        return self._downstream_vlans(fwd, output, outer_selector, in_port, inner_vlan.value)

    def _downstream_vlans(self, fwd, output, outer_selector, in_port, inner_vid: int) -> List[FlowRule]:
        vlan_ops = find_vlan_ops(fwd.treatment.all_instructions, L2SubType.VLAN_POP)
        if len(vlan_ops) != 1:
            raise ObjectiveRejected(
                ObjectiveError.BADPARAMS,
                "downstream forwarding needs exactly one vlan pop/set pair",
            )
        pop, rewrite = vlan_ops[0]
        if rewrite.value == VLAN_NONE:
            rewrite = None

        # match: in port (nni), s-tag, metadata
        # action: pop s-tag, go to QQ table
        outer = self._rule(
            fwd.app_id,
            fwd.priority,
            outer_selector,
            b.build_treatment(pop, b.transition(self._qq_table)),
        )

        # match: in port (nni), c-tag
        # action: deferred output, pop (and re-tag), meter, technology profile
        inner = self._rule(
            fwd.app_id,
            fwd.priority,
            b.build_selector(in_port, b.match_vlan_id(inner_vid)),
            b.build_treatment(
                pop,
                rewrite,
                fwd.treatment.metered,
                fwd.treatment.table_transition,
                deferred=output,
            ),
            table_id=self._qq_table,
        )
        return [inner, outer]

    def _downstream_any_vlan(self, fwd, output, outer_selector, in_port) -> List[FlowRule]:
        outer = self._rule(
            fwd.app_id,
            fwd.priority,
            outer_selector,
            b.build_treatment(b.transition(self._qq_table), deferred=b.pop_vlan()),
        )
        inner = self._rule(
            fwd.app_id,
            fwd.priority,
            b.build_selector(in_port, b.match_vlan_id(VLAN_ANY)),
            b.build_treatment(
                fwd.treatment.metered,
                fwd.treatment.table_transition,
                deferred=output,
            ),
            table_id=self._qq_table,
        )
        return [inner, outer]

    @staticmethod
    def _require_output(fwd: ForwardingObjective, direction: str) -> Instruction:
        output: Optional[Instruction] = fetch_output(fwd.treatment)
        if output is None:
            raise ObjectiveRejected(ObjectiveError.BADPARAMS, f"OLT {direction} rule has no output")
        return output
