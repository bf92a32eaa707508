"""Node scoring for workloads that request multiple GPUs.

Scores how well each candidate node can satisfy a workload's GPU request in
terms of NVLink locality:

1. ``pre_score`` skips workloads that do not ask for the GPU resource.
2. ``score`` decodes the node's topology annotation, allocates the best
   device subset and scales its raw score against the theoretical maximum.
3. ``score_nodes`` scores a node list, clamps results to the maximum node
   score and reports nodes that could not be evaluated apart from the scores.

Workloads and nodes are plain in-memory records; no cluster API is used.
"""

from __future__ import annotations

import math
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any

from gputopo.allocator import allocate
from gputopo.config import GpuTopoConfig
from gputopo.decode import decode_topology, encode_topology
from gputopo.errors import GpuTopoError, NodeNotFoundError, QuantityError
from gputopo.log_config import get_logger
from gputopo.topology import DeviceTopology

logger = get_logger(__name__)

_BINARY_SUFFIXES = {
    "Ki": 2**10,
    "Mi": 2**20,
    "Gi": 2**30,
    "Ti": 2**40,
    "Pi": 2**50,
    "Ei": 2**60,
}
_DECIMAL_SUFFIXES = {
    "m": Decimal("0.001"),
    "": Decimal(1),
    "k": Decimal(10) ** 3,
    "M": Decimal(10) ** 6,
    "G": Decimal(10) ** 9,
    "T": Decimal(10) ** 12,
    "P": Decimal(10) ** 15,
    "E": Decimal(10) ** 18,
}


class Status(Enum):
    SUCCESS = "success"
    SKIP = "skip"


@dataclass
class Container:
    """Container with resource limits (e.g. ``{"nvidia.com/gpu": "2"}``)."""

    name: str
    limits: dict[str, Any] = field(default_factory=dict)


@dataclass
class Workload:
    """Schedulable unit made of regular and init containers."""

    name: str
    containers: list[Container] = field(default_factory=list)
    init_containers: list[Container] = field(default_factory=list)

    @classmethod
    def requesting(
        cls, count: int, resource_name: str = "nvidia.com/gpu", name: str = "workload"
    ) -> Workload:
        """Single-container workload asking for ``count`` devices."""
        return cls(name=name, containers=[Container("main", {resource_name: count})])


@dataclass
class Node:
    """Candidate node and its annotations."""

    name: str
    annotations: dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_dict(
        cls, data: Mapping[str, Any], annotation_key: str = "node.gpu.info/topology"
    ) -> Node:
        """Build a node from a mapping.

        Accepts either ``annotations`` or a ``topology`` matrix, which is
        stored under ``annotation_key`` in its annotation form.
        """
        if "name" not in data:
            raise ValueError("Each node must have a 'name'")
        annotations = dict(data.get("annotations") or {})
        if data.get("topology") is not None:
            annotations[annotation_key] = encode_topology(data["topology"])
        return cls(name=str(data["name"]), annotations=annotations)


@dataclass
class NodeScore:
    name: str
    score: int


@dataclass
class ScoringReport:
    """Outcome of scoring a node list.

    Attributes:
        scores: Scores of the nodes that could be evaluated.
        failures: Error message per node whose evaluation was aborted.
        skipped: True when the workload does not request the GPU resource.
    """

    scores: list[NodeScore] = field(default_factory=list)
    failures: dict[str, str] = field(default_factory=dict)
    skipped: bool = False


def parse_quantity(value: Any) -> int:
    """Parse a resource quantity into a whole device count.

    Accepts integers and Kubernetes quantity strings (``"2"``, ``"1k"``,
    ``"1Ki"``, ``"500m"``, ``"1e3"``). Fractions round up, as quantity values
    do.

    Raises:
        QuantityError: If the value is not a valid non-negative quantity.
    """
    if isinstance(value, bool):
        raise QuantityError(f"invalid quantity: {value!r}")
    if isinstance(value, int):
        number = Decimal(value)
    else:
        text = str(value).strip()
        number = _parse_quantity_text(text)
    if number < 0:
        raise QuantityError(f"quantity must not be negative: {value!r}")
    return math.ceil(number)


def _parse_quantity_text(text: str) -> Decimal:
    if not text:
        raise QuantityError("empty quantity")
    for suffix, factor in _BINARY_SUFFIXES.items():
        if text.endswith(suffix):
            return _to_decimal(text[: -len(suffix)], text) * factor
    suffix = text[-1] if text[-1] in _DECIMAL_SUFFIXES else ""
    base = text[: -1] if suffix else text
    return _to_decimal(base, text) * _DECIMAL_SUFFIXES[suffix]


def _to_decimal(number: str, original: str) -> Decimal:
    try:
        result = Decimal(number)
    except InvalidOperation as e:
        raise QuantityError(f"invalid quantity: {original!r}") from e
    if not result.is_finite():
        raise QuantityError(f"invalid quantity: {original!r}")
    return result


def normalize_score(
    raw_score: int, count: int, max_score_factor: int = 1800, scale: int = 100
) -> int:
    """Scale a raw allocation score against the best achievable score.

    The best score for ``count`` devices has every pair on the best link class:
    ``count * (count - 1) / 2 * max_score_factor``.

    Returns:
        ``raw_score * scale // best``, or 0 when no pair exists.
    """
    max_score = count * (count - 1) * max_score_factor // 2
    if max_score <= 0:
        return 0
    return raw_score * scale // max_score


def clamp_scores(scores: list[NodeScore], max_node_score: int = 100) -> list[NodeScore]:
    """Cap every score at ``max_node_score`` in place and return the list."""
    for node_score in scores:
        if node_score.score > max_node_score:
            node_score.score = max_node_score
    return scores


def rank(scores: Iterable[NodeScore]) -> list[NodeScore]:
    """Order node scores best first; names break ties."""
    return sorted(scores, key=lambda s: (-s.score, s.name))


class TopologyScorer:
    """Scores nodes by the NVLink locality available to a workload.

    Args:
        config: Scoring configuration. Defaults to ``GpuTopoConfig()``.
    """

    def __init__(self, config: GpuTopoConfig | None = None) -> None:
        self.config = config or GpuTopoConfig()

    @property
    def resource_name(self) -> str:
        return self.config.scoring.resource_name

    def pre_score(self, workload: Workload) -> Status:
        """Skip workloads whose containers do not limit the GPU resource.

        Init containers are ignored; GPUs are set on regular containers.
        """
        for container in workload.containers:
            if self.resource_name in container.limits:
                return Status.SUCCESS
        return Status.SKIP

    def requested_devices(self, workload: Workload) -> int:
        """Return the workload-level GPU limit.

        Regular containers run together, so their limits add up. Init
        containers run one at a time before them, so the largest one applies
        when it exceeds that sum.
        """
        total = sum(
            parse_quantity(c.limits[self.resource_name])
            for c in workload.containers
            if self.resource_name in c.limits
        )
        for container in workload.init_containers:
            if self.resource_name in container.limits:
                total = max(total, parse_quantity(container.limits[self.resource_name]))
        return total

    def topology_for(self, node: Node) -> list[list[int]] | None:
        """Decode the node's topology annotation, or None when absent."""
        text = node.annotations.get(self.config.scoring.topology_annotation)
        if not text:
            return None
        return decode_topology(text)

    def score(self, workload: Workload, node: Node) -> int:
        """Return the normalized topology score of ``node`` for ``workload``.

        Raises:
            TopologyError: If the annotation cannot be decoded or the matrix
                is not rectangular.
            QuantityError: If the workload's GPU limit is invalid.
        """
        matrix = self.topology_for(node)
        if not matrix:
            return 0

        topology = DeviceTopology(matrix)
        count = self.requested_devices(workload)
        allocation = allocate(
            list(topology.devices),
            None,
            count,
            require_complete_topology=self.config.allocator.require_complete_topology,
        )
        score = normalize_score(
            allocation.score,
            count,
            self.config.scoring.max_score_factor,
            self.config.scoring.max_node_score,
        )
        logger.debug(
            f"Node {node.name}: devices {allocation.indices}, "
            f"raw score {allocation.score}, score {score}"
        )
        return score

    def score_by_name(
        self, workload: Workload, node_name: str, nodes: Mapping[str, Node]
    ) -> int:
        """Score a node looked up by name.

        Raises:
            NodeNotFoundError: If ``node_name`` is not in ``nodes``.
        """
        node = nodes.get(node_name)
        if node is None:
            raise NodeNotFoundError(f"failed to get node {node_name!r}")
        return self.score(workload, node)

    def score_nodes(self, workload: Workload, nodes: Iterable[Node]) -> ScoringReport:
        """Score every node for ``workload``.

        A node whose topology or GPU request cannot be evaluated gets no score;
        its error message is kept under ``failures`` instead.
        """
        report = ScoringReport()
        if self.pre_score(workload) is Status.SKIP:
            logger.info(f"Workload {workload.name} requests no {self.resource_name}")
            report.skipped = True
            return report

        for node in nodes:
            try:
                report.scores.append(NodeScore(node.name, self.score(workload, node)))
            except GpuTopoError as e:
                logger.error(f"Failed to score node {node.name}: {e}")
                report.failures[node.name] = str(e)

        logger.info(
            f"Scored {len(report.scores)} nodes for workload {workload.name}"
            f" ({len(report.failures)} failed)"
        )
        clamp_scores(report.scores, self.config.scoring.max_node_score)
        return report
