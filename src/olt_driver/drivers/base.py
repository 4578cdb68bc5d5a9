"""Abstract interface for device pipeliners."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import List

from olt_pipeline.model import FilteringObjective, ForwardingObjective, NextObjective
from olt_pipeline.services import NextGroup


class Pipeliner(ABC):
    """Base class for pipeliners managed by :class:`PipelinerRegistry`."""

    @abstractmethod
    def filter(self, objective: FilteringObjective) -> None:
        """Install or remove the rules of a filtering objective."""

    @abstractmethod
    def forward(self, objective: ForwardingObjective) -> None:
        """Install or remove the rules of a forwarding objective."""

    @abstractmethod
    def next(self, objective: NextObjective) -> None:
        """Create, delete or modify the group of a next objective."""

    @abstractmethod
    def get_next_mappings(self, next_group: NextGroup) -> List[str]:
        """Describe the hardware behind a stored next group."""
