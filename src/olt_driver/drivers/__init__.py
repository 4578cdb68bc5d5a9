"""Pipeliner adapters exposed to the registry."""

from .base import Pipeliner  # noqa: F401
from .olt_adapter import (  # noqa: F401
    OltPipelinerAdapter,
    build_olt_pipeliner,
    build_olt_registry,
)

__all__ = [
    "OltPipelinerAdapter",
    "Pipeliner",
    "build_olt_pipeliner",
    "build_olt_registry",
]
