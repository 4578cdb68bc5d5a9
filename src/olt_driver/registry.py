"""Per-device pipeliner registry."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Dict, List, Optional, Union

from .events import FilterRequest, ForwardRequest, NextRequest

if TYPE_CHECKING:
    from .drivers import Pipeliner

LOG = logging.getLogger(__name__)

ObjectiveRequest = Union[FilterRequest, ForwardRequest, NextRequest]


class PipelinerRegistry:
    """Dispatch objective requests to the pipeliner of their device."""

    def __init__(self) -> None:
        self._pipeliners: Dict[str, Pipeliner] = {}

    def register(self, device_id: str, pipeliner: Pipeliner) -> None:
        if device_id in self._pipeliners:
            raise ValueError(f"pipeliner for device '{device_id}' already registered")
        self._pipeliners[device_id] = pipeliner

    def unregister(self, device_id: str) -> Optional[Pipeliner]:
        return self._pipeliners.pop(device_id, None)

    def get(self, device_id: str) -> Optional[Pipeliner]:
        return self._pipeliners.get(device_id)

    def devices(self) -> List[str]:
        return list(self._pipeliners)

    def handle(self, request: ObjectiveRequest) -> None:
        if isinstance(request, FilterRequest):
            self._pipeliner_for(request.device_id).filter(request.objective)
        elif isinstance(request, ForwardRequest):
            self._pipeliner_for(request.device_id).forward(request.objective)
        elif isinstance(request, NextRequest):
            self._pipeliner_for(request.device_id).next(request.objective)
        else:
            raise TypeError(f"Unsupported request type: {type(request)!r}")

    def _pipeliner_for(self, device_id: str) -> Pipeliner:
        try:
            return self._pipeliners[device_id]
        except KeyError:
            LOG.warning("no pipeliner registered for device %s", device_id)
            raise KeyError(f"no pipeliner registered for device '{device_id}'") from None
