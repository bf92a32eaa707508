"""Device graph built from a node's GPU topology matrix.

The matrix looks like::

    +------+------+------+------+------+
    |      | GPU0 | GPU1 | GPU2 | GPU3 |
    +------+------+------+------+------+
    | GPU0 |  -1  |   8  |   8  |   7  |
    | GPU1 |   8  |  -1  |   7  |   7  |
    | GPU2 |   8  |   7  |  -1  |  10  |
    | GPU3 |   7  |   7  |  10  |  -1  |
    +------+------+------+------+------+

Cell ``[i][j]`` is the link-type code from device i to device j (see
``gputopo.links.LinkType``); the diagonal is ignored. Devices refer to each
other by index, and the owning ``DeviceTopology`` keeps them in a single
tuple alongside a ``networkx.DiGraph`` with one edge per off-diagonal cell.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

import networkx as nx
import numpy as np

from gputopo.errors import TopologyError
from gputopo.links import LinkType, link_weight, to_link_type
from gputopo.log_config import get_logger
from gputopo.validation import validate_matrix

logger = get_logger(__name__)


@dataclass(frozen=True, slots=True)
class Link:
    """Directed link toward another device.

    Attributes:
        target: Index of the device at the other end.
        code: Raw link-type code as found in the matrix.
    """

    target: int
    code: int

    @property
    def link_type(self) -> LinkType | None:
        """``LinkType`` member for ``code``, or None when out of range."""
        return to_link_type(self.code)

    @property
    def weight(self) -> int:
        return link_weight(self.code)


@dataclass(frozen=True, slots=True)
class Device:
    """One accelerator device and its outgoing links.

    Attributes:
        index: Position of the device in the topology matrix.
        links: Mapping from other device index to the links toward it.
    """

    index: int
    links: Mapping[int, tuple[Link, ...]] = field(
        default_factory=dict, compare=False, hash=False
    )

    def __post_init__(self) -> None:
        frozen = {
            int(target): tuple(entries)
            for target, entries in self.links.items()
            if int(target) != self.index
        }
        object.__setattr__(self, "links", MappingProxyType(frozen))

    def has_link(self, target: int) -> bool:
        return target in self.links

    def links_to(self, target: int) -> tuple[Link, ...]:
        """Return the links toward ``target`` (empty when unlinked)."""
        return self.links.get(target, ())

    def weight_to(self, target: int) -> int:
        """Sum of link weights toward ``target``."""
        return sum(link.weight for link in self.links_to(target))


class DeviceTopology:
    """Immutable device graph for one node.

    Args:
        matrix: Square matrix of link-type codes.

    Raises:
        TopologyError: If the matrix is empty, ragged or holds non-integers.
    """

    def __init__(self, matrix: Sequence[Sequence[Any]]) -> None:
        rows = validate_matrix(matrix)
        size = len(rows[0])

        graph = nx.DiGraph()
        graph.add_nodes_from(range(size))
        links: dict[int, dict[int, tuple[Link, ...]]] = {i: {} for i in range(size)}
        for i, row in enumerate(rows):
            # Extra rows beyond the device count have no device to attach to.
            if i >= size:
                logger.debug(f"Ignoring topology row {i}: only {size} devices")
                continue
            for j, code in enumerate(row):
                if i == j:
                    continue
                link = Link(target=j, code=code)
                links[i][j] = (link,)
                graph.add_edge(i, j, links=(link,), weight=link.weight)

        self._graph = nx.freeze(graph)
        self._devices = tuple(Device(index=i, links=links[i]) for i in range(size))
        logger.debug(
            f"Built device topology: {size} devices, {graph.number_of_edges()} links"
        )

    @property
    def devices(self) -> tuple[Device, ...]:
        return self._devices

    @property
    def graph(self) -> nx.DiGraph:
        """Frozen directed graph: nodes are device indices."""
        return self._graph

    def __len__(self) -> int:
        return len(self._devices)

    def __getitem__(self, index: int) -> Device:
        return self._devices[index]

    def __iter__(self):
        return iter(self._devices)

    def is_complete(self, indices: Iterable[int] | None = None) -> bool:
        """Return True when the induced subgraph on ``indices`` is complete.

        Args:
            indices: Device indices to check. Defaults to every device.

        Raises:
            TopologyError: If an index names no device of this topology.
        """
        nodes = set(self._graph.nodes) if indices is None else set(indices)
        unknown = sorted(n for n in nodes if not self._graph.has_node(n))
        if unknown:
            raise TopologyError(f"unknown device indices {unknown}")
        sub = self._graph.subgraph(nodes)
        n = sub.number_of_nodes()
        return sub.number_of_edges() == n * (n - 1)

    def weight_matrix(self) -> np.ndarray:
        """Return the directed weight matrix as an integer numpy array.

        Entry ``[i, j]`` is the weight of the links from i to j; the diagonal
        and missing links are 0.
        """
        size = len(self._devices)
        return nx.to_numpy_array(
            self._graph,
            nodelist=list(range(size)),
            weight="weight",
            nonedge=0.0,
            dtype=np.int64,
        )
