"""Device-level integration helpers for the OLT pipeliner.

Controllers hand objectives to pipeliners per device.  This package provides a
small registry keyed by device id, the request events it dispatches, the
abstract pipeliner contract, and oslo.config options for hosts configured that
way.
"""

from .events import FilterRequest, ForwardRequest, NextRequest  # noqa: F401
from .registry import PipelinerRegistry  # noqa: F401

__all__ = [
    "FilterRequest",
    "ForwardRequest",
    "NextRequest",
    "PipelinerRegistry",
]
