"""Configuration management for GPU topology scoring."""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any

import yaml

from gputopo.log_config import get_logger

logger = get_logger(__name__)


@dataclass
class ScoringConfig:
    """Node scoring parameters.

    ``max_score_factor`` is the weight of the best possible link between two
    devices. The default assumes 4th generation NVLink with up to 18 links
    per GPU (18 * 100).
    """

    resource_name: str = "nvidia.com/gpu"
    topology_annotation: str = "node.gpu.info/topology"
    max_score_factor: int = 1800
    max_node_score: int = 100


@dataclass
class AllocatorConfig:
    """Device allocation behavior.

    With ``require_complete_topology`` set, a node whose matrix has any
    missing link allocates nothing. When cleared, only each candidate subset
    has to be complete.
    """

    require_complete_topology: bool = True


@dataclass
class GpuTopoConfig:
    """Complete gputopo configuration."""

    scoring: ScoringConfig = field(default_factory=ScoringConfig)
    allocator: AllocatorConfig = field(default_factory=AllocatorConfig)
    _source_path: Path | None = None

    @classmethod
    def from_yaml(cls, config_path: Path) -> GpuTopoConfig:
        """Load configuration from YAML file.

        Args:
            config_path: Path to YAML configuration file.

        Returns:
            Parsed configuration object.

        Raises:
            FileNotFoundError: If config file doesn't exist.
            yaml.YAMLError: If YAML is invalid.
            ValueError: If configuration is invalid.
        """
        logger.info(f"Loading configuration from: {config_path}")

        if not config_path.exists():
            raise FileNotFoundError(f"Configuration file not found: {config_path}")

        try:
            with open(config_path, "r") as f:
                raw_config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            logger.error(f"Invalid YAML in configuration: {e}")
            raise

        cfg = cls._from_dict(raw_config or {})
        cfg._source_path = Path(config_path)
        return cfg

    @classmethod
    def _from_dict(cls, config_dict: dict[str, Any]) -> GpuTopoConfig:
        """Create configuration from dictionary.

        Every section is optional; missing keys keep their defaults.
        """
        if not isinstance(config_dict, dict):
            raise ValueError("Configuration root must be a mapping")

        scoring_dict = config_dict.get("scoring", {}) or {}
        if not isinstance(scoring_dict, dict):
            raise ValueError("'scoring' configuration section must be a dictionary")
        allocator_dict = config_dict.get("allocator", {}) or {}
        if not isinstance(allocator_dict, dict):
            raise ValueError("'allocator' configuration section must be a dictionary")

        _reject_unknown("scoring", scoring_dict, ScoringConfig)
        _reject_unknown("allocator", allocator_dict, AllocatorConfig)

        scoring = ScoringConfig(**scoring_dict)
        for name in ("max_score_factor", "max_node_score"):
            value = getattr(scoring, name)
            if isinstance(value, bool) or not isinstance(value, int):
                raise ValueError(f"'scoring.{name}' must be an integer")
        for name in ("resource_name", "topology_annotation"):
            if not isinstance(getattr(scoring, name), str):
                raise ValueError(f"'scoring.{name}' must be a string")

        allocator = AllocatorConfig(**allocator_dict)
        if not isinstance(allocator.require_complete_topology, bool):
            raise ValueError("'allocator.require_complete_topology' must be a boolean")

        cfg = cls(scoring=scoring, allocator=allocator)
        cfg.validate()
        return cfg

    def validate(self) -> None:
        """Validate configuration parameters.

        Raises:
            ValueError: If configuration is invalid.
        """
        logger.debug("Validating configuration")

        if self.scoring.max_score_factor <= 0:
            raise ValueError("max_score_factor must be positive")
        if self.scoring.max_node_score <= 0:
            raise ValueError("max_node_score must be positive")
        if not self.scoring.resource_name.strip():
            raise ValueError("resource_name must not be empty")
        if not self.scoring.topology_annotation.strip():
            raise ValueError("topology_annotation must not be empty")

    def summary(self) -> str:
        """Generate configuration summary string.

        Returns:
            Human-readable configuration summary.
        """
        lines = [
            "GPU TOPOLOGY SCORING CONFIGURATION",
            "=" * 40,
            "",
            "SCORING",
            "-" * 30,
            f"   Resource Name: {self.scoring.resource_name}",
            f"   Topology Annotation: {self.scoring.topology_annotation}",
            f"   Max Score Factor: {self.scoring.max_score_factor}",
            f"   Max Node Score: {self.scoring.max_node_score}",
            "",
            "ALLOCATOR",
            "-" * 30,
            f"   Require Complete Topology: {self.allocator.require_complete_topology}",
            "",
            "=" * 40,
        ]
        return "\n".join(lines)


def _reject_unknown(section: str, values: dict[str, Any], cls: type) -> None:
    known = {f.name for f in fields(cls)}
    unknown = sorted(set(values) - known)
    if unknown:
        raise ValueError(f"Unknown keys in '{section}' configuration: {unknown}")
