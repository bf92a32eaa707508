"""GPU topology-aware node scoring.

Builds a device graph from a node's GPU interconnect matrix, selects the
device subset with the highest aggregate NVLink bandwidth and turns the
result into a node score for multi-GPU workloads.
"""

__version__ = "0.1.0"

# Core classes and utilities
from .allocator import Allocation, allocate, score_devices
from .config import GpuTopoConfig
from .decode import decode_topology
from .errors import GpuTopoError, TopologyDecodeError, TopologyError
from .links import LinkType, link_weight
from .scoring import TopologyScorer, normalize_score
from .topology import Device, DeviceTopology, Link

__all__ = [
    "Allocation",
    "Device",
    "DeviceTopology",
    "GpuTopoConfig",
    "GpuTopoError",
    "Link",
    "LinkType",
    "TopologyDecodeError",
    "TopologyError",
    "TopologyScorer",
    "allocate",
    "decode_topology",
    "link_weight",
    "normalize_score",
    "score_devices",
]
