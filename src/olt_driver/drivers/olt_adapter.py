"""Adapter between the OLT pipeliner and the registry contract."""

from __future__ import annotations

from typing import List, Optional

from olt_pipeline.config import AgentConfig, PipelineConfig
from olt_pipeline.model import FilteringObjective, ForwardingObjective, NextObjective
from olt_pipeline.pipeliner import OltPipeliner
from olt_pipeline.services import FlowObjectiveStore, FlowRuleService, GroupService, NextGroup

from ..registry import PipelinerRegistry
from .base import Pipeliner


class OltPipelinerAdapter(Pipeliner):
    """Wrap :class:`~olt_pipeline.pipeliner.OltPipeliner` for registry use."""

    def __init__(self, pipeliner: OltPipeliner, *, autostart: bool = True) -> None:
        self._pipeliner = pipeliner
        if autostart:
            pipeliner.start()

    @property
    def pipeliner(self) -> OltPipeliner:
        return self._pipeliner

    def filter(self, objective: FilteringObjective) -> None:
        self._pipeliner.filter(objective)

    def forward(self, objective: ForwardingObjective) -> None:
        self._pipeliner.forward(objective)

    def next(self, objective: NextObjective) -> None:
        self._pipeliner.next(objective)

    def get_next_mappings(self, next_group: NextGroup) -> List[str]:
        return self._pipeliner.get_next_mappings(next_group)

    def close(self) -> None:
        self._pipeliner.stop()


def build_olt_pipeliner(
    device_id: str,
    flow_rules: FlowRuleService,
    groups: GroupService,
    store: FlowObjectiveStore,
    config: Optional[PipelineConfig] = None,
    *,
    autostart: bool = True,
) -> OltPipelinerAdapter:
    """Helper mirroring the builder pattern used by driver loaders."""

    pipeliner = OltPipeliner(device_id, flow_rules, groups, store, config=config)
    return OltPipelinerAdapter(pipeliner, autostart=autostart)


def build_olt_registry(
    config: AgentConfig,
    flow_rules: FlowRuleService,
    groups: GroupService,
    store: FlowObjectiveStore,
    *,
    autostart: bool = True,
) -> PipelinerRegistry:
    """Register an OLT pipeliner for every device listed in ``config``."""

    registry = PipelinerRegistry()
    for device_id in config.devices:
        registry.register(
            device_id,
            build_olt_pipeliner(
                device_id, flow_rules, groups, store, config.pipeline, autostart=autostart
            ),
        )
    return registry
