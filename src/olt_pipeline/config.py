"""Per-instance pipeliner configuration and its YAML loader."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Sequence

import yaml

from .pending import DEFAULT_TTL
from .translators import DEFAULT_NO_ACTION_PRIORITY, DEFAULT_QQ_TABLE

DEFAULT_KEY_NAMESPACE = "olt-pipeline"
DEFAULT_EVICTION_INTERVAL = 1.0


@dataclass(frozen=True)
class PipelineConfig:
    """Knobs of a single pipeliner instance.

    Attributes
    ----------
    qq_table:
        Table holding the QinQ (S-tag) stage of the pipeline.
    no_action_priority:
        Priority of the drop rule installed next to "any vlan" upstream rules.
    pending_group_ttl:
        Seconds a group request may stay unconfirmed.
    eviction_interval:
        Seconds between sweeps of expired group requests.
    group_key_namespace:
        Prefix of the group correlation keys.
    """

    qq_table: int = DEFAULT_QQ_TABLE
    no_action_priority: int = DEFAULT_NO_ACTION_PRIORITY
    pending_group_ttl: float = DEFAULT_TTL
    eviction_interval: float = DEFAULT_EVICTION_INTERVAL
    group_key_namespace: str = DEFAULT_KEY_NAMESPACE

    def __post_init__(self) -> None:
        if self.qq_table < 0:
            raise ValueError("qq_table must not be negative")
        if self.no_action_priority < 0:
            raise ValueError("no_action_priority must not be negative")
        if self.pending_group_ttl <= 0:
            raise ValueError("pending_group_ttl must be positive")
        if self.eviction_interval <= 0:
            raise ValueError("eviction_interval must be positive")
        if not self.group_key_namespace:
            raise ValueError("group_key_namespace must not be empty")


@dataclass
class AgentConfig:
    pipeline: PipelineConfig
    devices: Sequence[str] = field(default_factory=list)


def _parse_pipeline(section: dict) -> PipelineConfig:
    return PipelineConfig(
        qq_table=int(section.get("qq_table", DEFAULT_QQ_TABLE)),
        no_action_priority=int(section.get("no_action_priority", DEFAULT_NO_ACTION_PRIORITY)),
        pending_group_ttl=float(section.get("pending_group_ttl", DEFAULT_TTL)),
        eviction_interval=float(section.get("eviction_interval", DEFAULT_EVICTION_INTERVAL)),
        group_key_namespace=str(section.get("group_key_namespace", DEFAULT_KEY_NAMESPACE)),
    )


def _parse_devices(entries) -> List[str]:
    if not isinstance(entries, list):
        raise ValueError("'devices' section must be a list")
    devices = [str(entry) for entry in entries]
    if len(set(devices)) != len(devices):
        raise ValueError("'devices' section lists a device more than once")
    return devices


def load_config(path: Path) -> AgentConfig:
    data = yaml.safe_load(Path(path).read_text())
    if not isinstance(data, dict):
        raise ValueError("Pipeline configuration must be a mapping")

    section = data.get("pipeline", {})
    if not isinstance(section, dict):
        raise ValueError("'pipeline' section must be a mapping")

    return AgentConfig(
        pipeline=_parse_pipeline(section),
        devices=_parse_devices(data.get("devices", [])),
    )
