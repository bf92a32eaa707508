"""Command line interface for GPU topology scoring."""

from __future__ import annotations

import argparse
import sys
import time
from contextlib import contextmanager
from pathlib import Path

import yaml

from gputopo.allocator import allocate
from gputopo.config import GpuTopoConfig
from gputopo.decode import load_matrix
from gputopo.log_config import get_logger
from gputopo.scoring import Node, TopologyScorer, Workload, rank
from gputopo.topology import DeviceTopology

logger = get_logger(__name__)


@contextmanager
def Timer(description: str):
    """Context manager for timing operations with both print and log output.

    Args:
        description: Operation description for timing messages.

    Yields:
        None: Context manager yields nothing.
    """
    logger.info(f"Starting {description}")
    start = time.time()
    try:
        yield
        elapsed = time.time() - start
        logger.info(f"Completed {description} in {elapsed:.3f}s")
    except Exception as e:
        elapsed = time.time() - start
        print(f"❌ {description} (failed after {elapsed:.3f}s)")
        logger.error(f"Failed {description} after {elapsed:.3f}s: {e}")
        raise


def _load_config(config_path: Path | None) -> GpuTopoConfig:
    """Load and validate configuration, or return defaults when no path is set.

    Raises:
        SystemExit: If configuration loading or validation fails.
    """
    if config_path is None:
        return GpuTopoConfig()
    try:
        config = GpuTopoConfig.from_yaml(config_path)
        logger.info(f"Loaded configuration from {config_path}")
        return config
    except FileNotFoundError:
        print(f"❌ Configuration file not found: {config_path}")
        logger.error(f"Configuration file not found: {config_path}")
        sys.exit(2)  # Config problem
    except Exception as e:
        logger.error(f"Failed to load config: {e}")
        print(f"❌ Configuration error: {e}")
        print(f"💡 Check YAML syntax in: {config_path}")
        sys.exit(2)  # Config problem


def _load_nodes(nodes_path: Path, annotation_key: str) -> list[Node]:
    """Read a YAML node listing (``nodes: [{name, annotations|topology}]``)."""
    with open(nodes_path, "r") as f:
        raw = yaml.safe_load(f)
    if isinstance(raw, dict):
        raw = raw.get("nodes")
    if not isinstance(raw, list):
        raise ValueError(f"{nodes_path} must contain a list of nodes")
    nodes = []
    for item in raw:
        if not isinstance(item, dict):
            raise ValueError("Each node entry must be a mapping")
        nodes.append(Node.from_dict(item, annotation_key))
    return nodes


def allocate_command(args: argparse.Namespace) -> None:
    """Pick the best device subset from a topology matrix.

    Args:
        args: Parsed arguments with matrix source, count and preselection.
    """
    config = _load_config(Path(args.config) if args.config else None)
    try:
        topology = DeviceTopology(load_matrix(args.matrix))
        preselected = []
        for index in args.preselect or []:
            if not 0 <= index < len(topology):
                raise ValueError(f"Preselected device {index} is out of range")
            preselected.append(topology[index])

        with Timer("Device allocation"):
            result = allocate(
                list(topology.devices),
                preselected,
                args.count,
                require_complete_topology=config.allocator.require_complete_topology,
            )
    except ValueError as e:
        logger.error(f"Validation error: {e}")
        print(f"❌ {e}")
        sys.exit(3)  # Validation failure

    if not result.devices:
        print(f"No allocation possible for {args.count} devices (score 0)")
        return
    print(f"Devices: {', '.join(str(i) for i in result.indices)}")
    print(f"Score: {result.score}")


def score_command(args: argparse.Namespace) -> None:
    """Score and rank nodes for a workload requesting ``--count`` GPUs.

    Args:
        args: Parsed arguments with node listing path and count.
    """
    config = _load_config(Path(args.config) if args.config else None)
    scorer = TopologyScorer(config)
    try:
        nodes = _load_nodes(Path(args.nodes), config.scoring.topology_annotation)
    except FileNotFoundError as e:
        logger.error(f"File not found: {e}")
        print(f"❌ File not found: {e}")
        sys.exit(3)
    except (yaml.YAMLError, ValueError) as e:
        logger.error(f"Validation error: {e}")
        print(f"❌ Invalid node listing: {e}")
        sys.exit(3)

    workload = Workload.requesting(args.count, config.scoring.resource_name)
    with Timer(f"Scoring {len(nodes)} nodes"):
        report = scorer.score_nodes(workload, nodes)

    if not nodes:
        print("No nodes to score")
        return
    for entry in rank(report.scores):
        print(f"{entry.name}\t{entry.score}")
    for name, error in report.failures.items():
        print(f"❌ {name}: {error}")


def info_command(args: argparse.Namespace) -> None:
    """Show configuration summary.

    Args:
        args: Parsed command line arguments containing config file path.
    """
    config = _load_config(Path(args.config) if args.config else None)
    print(config.summary())


def main() -> None:
    """Parse command line arguments and execute the appropriate subcommand.

    Configures logging, parses CLI arguments, and dispatches to the correct
    command function (allocate, score, or info).
    """
    parser = argparse.ArgumentParser(
        prog="gputopo",
        description="Score GPU nodes by NVLink locality for multi-GPU workloads.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    # Global options
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable debug logging",
    )
    parser.add_argument(
        "--quiet",
        action="store_true",
        help="Suppress console output (logs only)",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    config_help = "Configuration file path (defaults apply when omitted)"

    # Allocate command
    allocate_parser = subparsers.add_parser(
        "allocate", help="Select the best device subset from a topology matrix"
    )
    allocate_parser.add_argument(
        "matrix", help="Topology matrix as inline JSON or a JSON/YAML file path"
    )
    allocate_parser.add_argument(
        "-n", "--count", type=int, required=True, help="Number of devices requested"
    )
    allocate_parser.add_argument(
        "--preselect",
        type=int,
        nargs="*",
        default=None,
        help="Device indices that must be part of the selection",
    )
    allocate_parser.add_argument("-c", "--config", default=None, help=config_help)
    allocate_parser.set_defaults(func=allocate_command)

    # Score command
    score_parser = subparsers.add_parser(
        "score", help="Rank nodes from a YAML node listing"
    )
    score_parser.add_argument("nodes", help="YAML file with a 'nodes' list")
    score_parser.add_argument(
        "-n", "--count", type=int, required=True, help="Number of GPUs requested"
    )
    score_parser.add_argument("-c", "--config", default=None, help=config_help)
    score_parser.set_defaults(func=score_command)

    # Info command
    info_parser = subparsers.add_parser("info", help="Show configuration summary")
    info_parser.add_argument("-c", "--config", default=None, help=config_help)
    info_parser.set_defaults(func=info_command)

    # Parse arguments and dispatch
    args = parser.parse_args()

    import logging

    from gputopo.log_config import set_global_log_level

    set_global_log_level(logging.DEBUG if args.verbose else logging.INFO)

    # Suppress print output if --quiet is set
    if args.quiet:
        import builtins

        builtins.print = lambda *args, **kwargs: None

    if not hasattr(args, "func") or args.func is None:
        parser.print_help()
        sys.exit(1)

    try:
        args.func(args)
    except SystemExit:
        raise
    except Exception as e:
        logger.error(f"Command failed: {e}")
        print("💡 Use -v for detailed error information")
        sys.exit(1)  # Runtime error


if __name__ == "__main__":
    main()
