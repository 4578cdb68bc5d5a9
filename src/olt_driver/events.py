"""Objective requests consumed by the pipeliner registry."""

from __future__ import annotations

from dataclasses import dataclass

from olt_pipeline.model import FilteringObjective, ForwardingObjective, NextObjective


@dataclass(frozen=True)
class FilterRequest:
    """A filtering objective addressed to ``device_id``."""

    device_id: str
    objective: FilteringObjective


@dataclass(frozen=True)
class ForwardRequest:
    """A forwarding objective addressed to ``device_id``."""

    device_id: str
    objective: ForwardingObjective


@dataclass(frozen=True)
class NextRequest:
    """A next objective addressed to ``device_id``.

    Its outcome is only known once the group subsystem confirms the group or
    the request expires.
    """

    device_id: str
    objective: NextObjective
