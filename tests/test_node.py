"""
Tests for ClusteringNode - timers, packet dispatch and lifecycle.
"""
import random

import pytest

from gccp.core.node import ClusteringNode
from gccp.messages.messages import BeaconMessage, MessageHeader, decode
from gccp.protocol.config import NodeConfig
from gccp.protocol.errors import ConfigurationError
from gccp.protocol.states import NodeRole, TimerKind
from tests.conftest import RecordingTransport, address_of


@pytest.fixture
def node(sim_clock):
    transport = RecordingTransport()
    return ClusteringNode(5, sim_clock, transport, config=NodeConfig(num_hosts=10),
                          rng=random.Random(7))


class TestConstruction:

    def test_invalid_config_refuses_to_initialize(self, sim_clock):
        with pytest.raises(ConfigurationError):
            ClusteringNode(1, sim_clock, RecordingTransport(), config={'helloInterval': -1})

    def test_config_from_mapping(self, sim_clock):
        node = ClusteringNode(1, sim_clock, RecordingTransport(), config={'numHosts': 3})
        assert node.config.num_hosts == 3

    def test_name_registered(self, sim_clock):
        from gccp.protocol.node_registry import get_node_name
        ClusteringNode(41, sim_clock, RecordingTransport(), name="sink")
        assert get_node_name(41) == "sink"


class TestTimers:

    def test_start_arms_timers(self, node, sim_clock):
        node.start()

        assert set(node._timers) == {TimerKind.HELLO, TimerKind.MAINTENANCE, TimerKind.DATA}
        assert sim_clock.pending() == 3
        assert node.transport.callback is not None

    def test_data_timer_needs_hosts(self, sim_clock):
        node = ClusteringNode(1, sim_clock, RecordingTransport())
        node.start()
        assert TimerKind.DATA not in node._timers

    def test_zero_hello_interval_disables_beacons(self, sim_clock):
        node = ClusteringNode(1, sim_clock, RecordingTransport(), config={'helloInterval': 0})
        node.start()
        sim_clock.run_until(10.0)

        assert node.transport.broadcasts == []

    def test_beacons_are_periodic(self, node, sim_clock):
        node.start()
        sim_clock.run_until(10.0)

        # First beacon within one period, then every 1.0-1.1 s
        assert 9 <= len(node.transport.broadcasts) <= 11
        assert isinstance(decode(node.transport.broadcasts[0]), BeaconMessage)

    def test_isolated_node_becomes_cluster_head(self, node, sim_clock):
        """First maintenance tick on an empty table takes color 0."""
        node.start()
        sim_clock.run_until(1.0)
        assert node.context.role == NodeRole.UNDECIDED

        sim_clock.run_until(1.5)
        assert node.context.color == 0
        assert node.context.role == NodeRole.CLUSTER_HEAD
        assert node.context.cluster_id == 5

    def test_stop_cancels_timers(self, node, sim_clock):
        node.start()
        node.stop()

        assert sim_clock.pending() == 0
        assert node.transport.closed
        assert not node.running

    def test_unknown_timer_kind_counted(self, node):
        node.start()
        node.handle_timer("bogus")
        assert node.metrics.messages_dropped['unknown_message'] == 1


class TestPacketDispatch:

    def test_garbage_is_counted_not_raised(self, node):
        node.start()
        node.on_packet_received(b'\x01\x02\x03', address_of(2))
        assert node.metrics.messages_dropped['unknown_message'] == 1

    def test_unknown_type_counted(self, node):
        node.start()
        node.on_packet_received(MessageHeader(77, 1, 1, 2, 0).pack(), address_of(2))
        assert node.metrics.messages_dropped['unknown_message'] == 1

    def test_beacon_triggers_role_recomputation(self, node):
        """A colored node attaches as soon as it hears a cluster head."""
        node.start()
        node.context.color = 1

        beacon = BeaconMessage(sender_id=2, color=0, role=int(NodeRole.CLUSTER_HEAD), cluster_id=2)
        node.on_packet_received(beacon.encode(), address_of(2))

        assert node.context.role == NodeRole.MEMBER
        assert node.context.cluster_id == 2

    def test_data_dispatched_to_forwarding(self, node):
        from gccp.messages.messages import DataMessage
        node.start()
        message = DataMessage(source_id=2, seq_num=1, ttl=3, destination_id=5)

        node.on_packet_received(message.encode(), address_of(2))

        assert node.metrics.data_received == 1

    def test_packets_ignored_when_stopped(self, node):
        node.start()
        node.stop()

        beacon = BeaconMessage(sender_id=2, color=0, role=1, cluster_id=2)
        node.on_packet_received(beacon.encode(), address_of(2))

        assert len(node.neighbor_table) == 0
