"""Exception types raised by gputopo.

All errors derive from ``ValueError`` so callers that only distinguish bad
input from runtime failures keep working.
"""

from __future__ import annotations


class GpuTopoError(ValueError):
    """Base class for gputopo input errors."""


class TopologyError(GpuTopoError):
    """Topology matrix cannot be turned into a device graph."""


class TopologyDecodeError(TopologyError):
    """Topology annotation text is not a nested array of integers."""


class QuantityError(GpuTopoError):
    """Resource quantity string cannot be parsed."""


class NodeNotFoundError(GpuTopoError, KeyError):
    """Requested node is not part of the node listing."""

    def __str__(self) -> str:
        # KeyError quotes its argument; keep the plain message.
        return str(self.args[0]) if self.args else ""
