"""Pytest configuration and shared fixtures for gputopo tests."""

import pytest

from gputopo.topology import Device, Link

# Link codes between GPUs 0-3:
#   (0,1)=2 NVLinks, (0,2)=2 NVLinks, (0,3)=1 NVLink,
#   (1,2)=1 NVLink,  (1,3)=1 NVLink,  (2,3)=4 NVLinks
REFERENCE_MATRIX = [
    [-1, 8, 8, 7],
    [8, -1, 7, 7],
    [8, 7, -1, 10],
    [7, 7, 10, -1],
]
NVLINK18_MATRIX = [
    [-1, 8, 24, 4],
    [8, -1, 14, 10],
    [24, 14, -1, 10],
    [4, 10, 10, -1],
]
UNIFORM_MATRIX = [
    [-1, 8, 8, 8],
    [8, -1, 8, 8],
    [8, 8, -1, 8],
    [8, 8, 8, -1],
]


def _device(index: int, codes: dict[int, int]) -> Device:
    return Device(
        index=index,
        links={target: (Link(target, code),) for target, code in codes.items()},
    )


@pytest.fixture
def reference_matrix():
    """Four-GPU matrix with a single 4-NVLink pair (2, 3)."""
    return [row[:] for row in REFERENCE_MATRIX]


@pytest.fixture
def nvlink18_matrix():
    """Four-GPU matrix with an 18-NVLink pair (0, 2) and a PCIe-only pair (0, 3)."""
    return [row[:] for row in NVLINK18_MATRIX]


@pytest.fixture
def uniform_matrix():
    """Four GPUs all connected by 2 NVLinks."""
    return [row[:] for row in UNIFORM_MATRIX]


@pytest.fixture
def reference_devices():
    """Hand-built devices matching ``REFERENCE_MATRIX``."""
    return [
        _device(0, {1: 8, 2: 8, 3: 7}),
        _device(1, {0: 8, 2: 7, 3: 7}),
        _device(2, {0: 8, 1: 7, 3: 10}),
        _device(3, {0: 7, 1: 7, 2: 10}),
    ]


@pytest.fixture
def incomplete_devices(reference_devices):
    """Reference devices with GPU 2 replaced by one lacking a link to GPU 1."""
    device0, device1, _, device3 = reference_devices
    invalid2 = _device(2, {0: 8, 2: 7, 3: 8})
    return [device0, device1, invalid2, device3]


@pytest.fixture
def sample_config():
    """Sample configuration dictionary for testing."""
    return {
        "scoring": {
            "resource_name": "nvidia.com/gpu",
            "topology_annotation": "node.gpu.info/topology",
            "max_score_factor": 1800,
            "max_node_score": 100,
        },
        "allocator": {"require_complete_topology": True},
    }


@pytest.fixture
def temp_config_file(tmp_path, sample_config):
    """Create a temporary configuration file for testing."""
    import yaml

    config_file = tmp_path / "test_config.yml"
    with open(config_file, "w") as f:
        yaml.dump(sample_config, f, default_flow_style=False, indent=2)
    return config_file


@pytest.fixture
def invalid_config_file(tmp_path):
    """Create an invalid YAML configuration file for testing."""
    config_file = tmp_path / "invalid_config.yml"
    config_file.write_text("invalid: yaml: content: [unclosed")
    return config_file


@pytest.fixture
def nodes_file(tmp_path):
    """YAML node listing with the three reference topologies."""
    import yaml

    nodes = {
        "nodes": [
            {"name": "node-0", "topology": REFERENCE_MATRIX},
            {"name": "node-1", "topology": NVLINK18_MATRIX},
            {
                "name": "node-2",
                "annotations": {
                    "node.gpu.info/topology": "[[-1,8,8,8],[8,-1,8,8],[8,8,-1,8],[8,8,8,-1]]"
                },
            },
        ]
    }
    path = tmp_path / "nodes.yml"
    with open(path, "w") as f:
        yaml.dump(nodes, f)
    return path
