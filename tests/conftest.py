"""
Shared pytest fixtures for GCCP protocol tests.
"""
import pytest
import sys
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from gccp.messages.messages import decode
from gccp.protocol.states import NodeRole


def address_of(node_id):
    """Transport address used for a test neighbor."""
    return (f"10.0.0.{node_id}", 5000)


def add_neighbor(context, node_id, color, role=NodeRole.UNDECIDED, cluster_id=-1):
    """Insert a neighbor into the context's table at the current time."""
    context.neighbor_table.update_neighbor(
        node_id, color=color, role=role, cluster_id=cluster_id, address=address_of(node_id)
    )


class RecordingTransport:
    """In-memory transport: records unicasts and broadcasts."""

    def __init__(self):
        self.sent = []          # (packet, address)
        self.broadcasts = []    # packet
        self.callback = None
        self.closed = False

    def send(self, packet, address):
        self.sent.append((packet, address))

    def broadcast(self, packet):
        self.broadcasts.append(packet)

    def set_receive_callback(self, callback):
        self.callback = callback

    def close(self):
        self.closed = True

    def sent_messages(self):
        return [(decode(packet), address) for packet, address in self.sent]

    def clear(self):
        self.sent.clear()
        self.broadcasts.clear()


class RecordingScheduler:
    """Collects schedule_callback() calls without running them."""

    def __init__(self):
        self.calls = []  # (delay, callback)

    def __call__(self, delay, callback):
        self.calls.append((delay, callback))
        return len(self.calls)

    def fire_all(self):
        calls, self.calls = self.calls, []
        for _, callback in calls:
            callback()
        return len(calls)


@pytest.fixture
def node_id():
    """Id of the node under test."""
    return 5


@pytest.fixture
def context(node_id):
    """Create GCCPContext for the node under test."""
    from gccp.protocol.context import GCCPContext
    from gccp.protocol.config import NodeConfig
    import random

    ctx = GCCPContext(node_id, NodeConfig(num_hosts=10), rng=random.Random(42))
    ctx.update_time(0.0)
    return ctx


@pytest.fixture
def neighbor_table(context):
    """Create NeighborTable for testing."""
    from gccp.protocol.layer_a.neighbor_table import NeighborTable
    table = NeighborTable(context)
    context.neighbor_table = table
    return table


@pytest.fixture
def transport():
    return RecordingTransport()


@pytest.fixture
def scheduler():
    return RecordingScheduler()


@pytest.fixture
def discovery(context, transport):
    """NeighborDiscoveryHandler wired to a recording transport."""
    from gccp.protocol.layer_a.handler import NeighborDiscoveryHandler
    handler = NeighborDiscoveryHandler(context)
    context.broadcast_callback = transport.broadcast
    return handler


@pytest.fixture
def coloring(context, neighbor_table):
    from gccp.protocol.layer_b.coloring import ColoringEngine
    return ColoringEngine(context)


@pytest.fixture
def role_manager(context, neighbor_table):
    from gccp.protocol.layer_b.role_manager import RoleManager
    return RoleManager(context)


@pytest.fixture
def forwarding(context, discovery, transport, scheduler):
    """ForwardingHandler with recording transport and scheduler."""
    from gccp.protocol.layer_c.handler import ForwardingHandler
    handler = ForwardingHandler(context)
    context.send_callback = transport.send
    context.schedule_callback = scheduler
    return handler


@pytest.fixture
def sim_clock():
    from gccp.simulation.clock import SimClock
    return SimClock()
