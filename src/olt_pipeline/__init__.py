"""OLT pipeline translator.

This package turns device-independent flow objectives into the flow rules and
broadcast groups understood by the two-table pipeline of OLT access switches.
It focuses on:

* trapping EAPOL, LLDP, IGMP and DHCP traffic to the controller;
* building the upstream (C-tag/S-tag push) and downstream (pop/re-tag) rule
  pairs across table 0 and the QinQ table;
* forwarding multicast traffic into broadcast groups; and
* tracking group requests until the group subsystem confirms or they expire.

Services that actually program the hardware are injected through the
interfaces in :mod:`olt_pipeline.services`, which keeps the package pure
Python and testable without a controller.
"""

from .config import PipelineConfig  # noqa: F401
from .pipeliner import OltPipeliner  # noqa: F401

__all__ = ["OltPipeliner", "PipelineConfig"]
