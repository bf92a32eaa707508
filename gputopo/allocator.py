"""Best-effort selection of a device subset with the highest NVLink bandwidth.

Maximum-weight subset selection over an arbitrary pairwise weight matrix has
no greedy decomposition, so every ``C(n, k)`` combination is scored. Device
counts per node are small (single digits to low tens), which keeps the
exhaustive search bounded.

Soft failures (nothing requested, too few devices, incomplete topology) are
reported as an empty ``Allocation`` with score 0, the same value a node with
no NVLink benefit would produce.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from itertools import combinations
from typing import NamedTuple

from gputopo.log_config import get_logger
from gputopo.topology import Device
from gputopo.validation import is_complete, missing_links

logger = get_logger(__name__)


class Allocation(NamedTuple):
    """Selected devices ordered by index, and their aggregate pair score."""

    devices: list[Device]
    score: int

    @property
    def indices(self) -> list[int]:
        return [d.index for d in self.devices]


def _empty() -> Allocation:
    return Allocation(devices=[], score=0)


def pair_weight(a: Device, b: Device) -> int:
    """Return the weight of the unordered pair ``{a, b}``.

    The lower-indexed device's outgoing links are authoritative. When that
    device has no entry for the other one, the reverse direction is used.
    """
    low, high = (a, b) if a.index <= b.index else (b, a)
    if low.has_link(high.index):
        return low.weight_to(high.index)
    return high.weight_to(low.index)


def score_devices(devices: Iterable[Device]) -> int | None:
    """Sum pair weights over a device set.

    Args:
        devices: Candidate set.

    Returns:
        Aggregate score, or None if the set is not complete.
    """
    members = list(devices)
    if not is_complete(members):
        return None
    return sum(pair_weight(a, b) for a, b in combinations(members, 2))


def _unique(devices: Iterable[Device] | None) -> list[Device]:
    """Drop repeated device indices, keeping the first occurrence."""
    seen: set[int] = set()
    result: list[Device] = []
    for device in devices or ():
        if device.index in seen:
            continue
        seen.add(device.index)
        result.append(device)
    return result


def allocate(
    available: Sequence[Device],
    preselected: Sequence[Device] | None = None,
    count: int = 0,
    *,
    require_complete_topology: bool = True,
) -> Allocation:
    """Select ``count`` devices maximizing the aggregate NVLink weight.

    Args:
        available: Candidate devices; order breaks ties between equal scores.
        preselected: Devices that must be part of the result.
        count: Total number of devices requested, preselected included.
        require_complete_topology: When True, every device in ``available``
            and ``preselected`` must link to every other one, or nothing is
            allocated. When False, only each candidate subset is checked.

    Returns:
        ``Allocation`` with devices sorted by index. Empty with score 0 when
        no valid subset exists.
    """
    if count <= 0:
        return _empty()

    pool = _unique(available)
    required = _unique(preselected)
    required_idx = {d.index for d in required}
    candidates = [d for d in pool if d.index not in required_idx]
    universe = required + candidates

    if count < len(required):
        logger.debug(
            f"Requested {count} devices but {len(required)} are preselected"
        )
        return _empty()
    if count > len(universe):
        logger.debug(f"Requested {count} devices, only {len(universe)} available")
        return _empty()

    if require_complete_topology:
        gaps = missing_links(universe)
        if gaps:
            logger.debug(f"Incomplete device topology, missing links {gaps}")
            return _empty()

    if count == 1 and not required:
        return Allocation(devices=[pool[0]], score=0)

    best: list[Device] | None = None
    best_score = -1
    for extra in combinations(candidates, count - len(required)):
        members = required + list(extra)
        score = score_devices(members)
        if score is None:
            continue
        # Strict comparison keeps the earliest combination on ties.
        if score > best_score:
            best, best_score = members, score

    if best is None:
        logger.debug(f"No complete subset of {count} devices")
        return _empty()

    return Allocation(devices=sorted(best, key=lambda d: d.index), score=best_score)
