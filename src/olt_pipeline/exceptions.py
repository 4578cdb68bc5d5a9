"""Exceptions raised while translating objectives."""

from __future__ import annotations

from .model import ObjectiveError


class PipelinerError(Exception):
    """Base class for pipeliner errors."""


class ObjectiveRejected(PipelinerError):
    """An objective failed validation and must be reported as ``error``."""

    def __init__(self, error: ObjectiveError, reason: str) -> None:
        super().__init__(f"{error.name}: {reason}")
        self.error = error
        self.reason = reason
