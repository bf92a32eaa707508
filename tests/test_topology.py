"""Tests for device graph construction from topology matrices."""

from __future__ import annotations

import networkx as nx
import numpy as np
import pytest

from gputopo.errors import TopologyError
from gputopo.links import LinkType
from gputopo.topology import Device, DeviceTopology, Link


class TestDeviceTopology:
    """Building devices and links from a matrix."""

    def test_device_count_and_indices(self, reference_matrix):
        topology = DeviceTopology(reference_matrix)

        assert len(topology) == 4
        assert [d.index for d in topology] == [0, 1, 2, 3]

    def test_links_follow_matrix_cells(self, reference_matrix):
        topology = DeviceTopology(reference_matrix)

        device2 = topology[2]
        assert set(device2.links) == {0, 1, 3}
        assert device2.links_to(3) == (Link(target=3, code=10),)
        assert device2.links_to(3)[0].link_type is LinkType.NVLINK_4
        assert device2.weight_to(3) == 400

    def test_diagonal_is_skipped(self, reference_matrix):
        reference_matrix[1][1] = 10
        topology = DeviceTopology(reference_matrix)

        for device in topology:
            assert not device.has_link(device.index)
        assert not topology.graph.has_edge(1, 1)

    def test_links_reference_existing_devices(self, reference_matrix):
        topology = DeviceTopology(reference_matrix)

        for device in topology:
            for target, links in device.links.items():
                assert topology[target].index == target
                assert all(link.target == target for link in links)

    def test_asymmetry_is_preserved(self):
        topology = DeviceTopology([[-1, 10], [7, -1]])

        assert topology[0].weight_to(1) == 400
        assert topology[1].weight_to(0) == 100
        assert topology.graph[0][1]["weight"] == 400
        assert topology.graph[1][0]["weight"] == 100

    def test_graph_has_one_edge_per_off_diagonal_cell(self, reference_matrix):
        topology = DeviceTopology(reference_matrix)

        assert isinstance(topology.graph, nx.DiGraph)
        assert topology.graph.number_of_nodes() == 4
        assert topology.graph.number_of_edges() == 12
        assert nx.is_frozen(topology.graph)

    def test_weight_matrix(self, reference_matrix):
        weights = DeviceTopology(reference_matrix).weight_matrix()

        expected = np.array(
            [
                [0, 200, 200, 100],
                [200, 0, 100, 100],
                [200, 100, 0, 400],
                [100, 100, 400, 0],
            ]
        )
        np.testing.assert_array_equal(weights, expected)

    def test_generic_links_still_count_as_links(self, nvlink18_matrix):
        """PCIe-only cells weigh nothing but keep the pair linked."""
        topology = DeviceTopology(nvlink18_matrix)

        assert topology[0].has_link(3)
        assert topology[0].weight_to(3) == 0
        assert topology.is_complete()

    def test_short_matrix_leaves_devices_unlinked(self):
        """One row of three cells yields three devices, only GPU 0 linked."""
        topology = DeviceTopology([[-1, 8, 8]])

        assert len(topology) == 3
        assert set(topology[0].links) == {1, 2}
        assert not topology[1].links
        assert not topology.is_complete()
        assert topology.is_complete([0])

    def test_is_complete_subsets(self, reference_matrix):
        topology = DeviceTopology(reference_matrix)

        assert topology.is_complete()
        assert topology.is_complete([1, 3])
        assert topology.is_complete([])

    def test_is_complete_rejects_unknown_indices(self):
        topology = DeviceTopology([[-1, 8], [8, -1]])

        with pytest.raises(TopologyError, match=r"unknown device indices \[99\]"):
            topology.is_complete([0, 99])
        with pytest.raises(TopologyError):
            topology.is_complete([-1])

    def test_accepts_numpy_matrix(self, reference_matrix):
        topology = DeviceTopology(np.array(reference_matrix))

        assert topology[2].weight_to(3) == 400


class TestTopologyErrors:
    """Construction-time failures."""

    def test_empty_matrix(self):
        with pytest.raises(TopologyError, match="no devices"):
            DeviceTopology([])

    def test_ragged_matrix(self):
        with pytest.raises(TopologyError, match="invalid device list"):
            DeviceTopology([[-1, 8, 8], [8, -1], [8, 8, -1]])

    def test_non_integer_cell(self):
        with pytest.raises(TopologyError, match=r"\[0\]\[1\]"):
            DeviceTopology([[-1, "8"], [8, -1]])

    def test_errors_are_value_errors(self):
        with pytest.raises(ValueError):
            DeviceTopology([])


class TestDevice:
    """Device records."""

    def test_links_are_read_only(self):
        device = Device(0, {1: (Link(1, 8),)})

        with pytest.raises(TypeError):
            device.links[2] = (Link(2, 8),)  # type: ignore[index]

    def test_self_links_are_dropped(self):
        device = Device(2, {0: (Link(0, 8),), 2: (Link(2, 7),)})

        assert set(device.links) == {0}

    def test_missing_link(self):
        device = Device(0)

        assert device.links_to(1) == ()
        assert device.weight_to(1) == 0

    def test_multiple_links_add_up(self):
        device = Device(0, {1: (Link(1, 7), Link(1, 8))})

        assert device.weight_to(1) == 300

    def test_equality_by_index(self):
        assert Device(1, {0: (Link(0, 8),)}) == Device(1)
        assert hash(Device(1)) == hash(Device(1, {0: (Link(0, 7),)}))
