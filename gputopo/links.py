"""Link classes between accelerator devices and their bandwidth weights.

Codes follow the peer-to-peer link ordering used by GPU allocators: generic
PCIe/host interconnect classes first, then ``NVLINK_<N>`` for N parallel
NVLink lanes. Only NVLink classes contribute to the locality score.
"""

from __future__ import annotations

from enum import IntEnum


class LinkType(IntEnum):
    """Ordered interconnect classes between two devices."""

    UNKNOWN = 0
    CROSS_CPU = 1
    SAME_CPU = 2
    HOST_BRIDGE = 3
    MULTI_SWITCH = 4
    SINGLE_SWITCH = 5
    SAME_BOARD = 6
    NVLINK_1 = 7
    NVLINK_2 = 8
    NVLINK_3 = 9
    NVLINK_4 = 10
    NVLINK_5 = 11
    NVLINK_6 = 12
    NVLINK_7 = 13
    NVLINK_8 = 14
    NVLINK_9 = 15
    NVLINK_10 = 16
    NVLINK_11 = 17
    NVLINK_12 = 18
    NVLINK_13 = 19
    NVLINK_14 = 20
    NVLINK_15 = 21
    NVLINK_16 = 22
    NVLINK_17 = 23
    NVLINK_18 = 24

    @property
    def nvlink_count(self) -> int:
        """Number of parallel NVLink lanes (0 for non-NVLink classes)."""
        return nvlink_count(self)


# Weight contributed by a single NVLink lane.
WEIGHT_PER_NVLINK = 100


def nvlink_count(code: int) -> int:
    """Return the number of parallel NVLink lanes encoded by ``code``."""
    if code < LinkType.NVLINK_1:
        return 0
    return int(code) - int(LinkType.SAME_BOARD)


def link_weight(code: int) -> int:
    """Return the bandwidth weight for a link-type code.

    Args:
        code: Raw link-type code (a ``LinkType`` member or plain integer).

    Returns:
        ``100 * N`` for N parallel NVLinks, 0 for every other class.
    """
    return nvlink_count(code) * WEIGHT_PER_NVLINK


def max_link_weight() -> int:
    """Weight of the best link class (18 NVLinks)."""
    return link_weight(LinkType.NVLINK_18)


def to_link_type(code: int) -> LinkType | None:
    """Map a raw code to its ``LinkType`` member, or None when out of range."""
    try:
        return LinkType(code)
    except ValueError:
        return None
