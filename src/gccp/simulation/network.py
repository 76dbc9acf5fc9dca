"""
Simulated GCCP network: nodes, medium and clock wired together.

Usage:
    net = SimulatedNetwork(topology.grid(3, 3), seed=1)
    net.run(60.0)
    assert not net.coloring_conflicts()
"""

import logging
import random
from collections import Counter
from typing import Dict, Iterable, List, Optional, Tuple

from gccp.core.node import ClusteringNode
from gccp.protocol.config import NodeConfig, ProtocolConfig
from gccp.protocol.states import NodeRole
from gccp.protocol.node_registry import get_node_name
from .clock import SimClock
from .medium import WirelessMedium

logger = logging.getLogger(__name__)


class SimulatedNetwork:
    """
    Builds one ClusteringNode per id over a WirelessMedium and SimClock.

    All randomness (timer jitter, destinations, loss) derives from seed.
    """

    def __init__(self, edges: Iterable[Tuple[int, int]], num_nodes: Optional[int] = None,
                 config: Optional[NodeConfig] = None, seed: Optional[int] = None,
                 propagation_delay: float = 0.001, loss_probability: float = 0.0):
        """
        Args:
            edges: Undirected links (a, b)
            num_nodes: Create ids 0..num_nodes-1 even if isolated
            config: Shared node configuration; num_hosts defaults to the node count
            seed: Seed for every random source in the network
            propagation_delay: Per-delivery delay in seconds
            loss_probability: Independent per-delivery loss
        """
        edges = list(edges)
        ids = {node for edge in edges for node in edge}
        if num_nodes is not None:
            ids.update(range(num_nodes))

        self.rng = random.Random(seed)
        self.clock = SimClock()
        self.medium = WirelessMedium(
            self.clock,
            propagation_delay=propagation_delay,
            loss_probability=loss_probability,
            rng=random.Random(self.rng.random()),
        )

        if config is None:
            config = NodeConfig(num_hosts=len(ids))
        self.config = config.validate()

        self.nodes: Dict[int, ClusteringNode] = {}
        for node_id in sorted(ids):
            transport = self.medium.attach(node_id, config.local_port, config.dest_port)
            self.nodes[node_id] = ClusteringNode(
                node_id, self.clock, transport,
                config=config, rng=random.Random(self.rng.random()),
            )
        for a, b in edges:
            self.medium.add_link(a, b)

        self.failed: set = set()
        self.started = False

    def start(self):
        if self.started:
            return
        self.started = True
        for node in self.nodes.values():
            node.start()

    def run(self, duration: float):
        """Start (if needed) and advance simulated time by duration seconds."""
        self.start()
        end_time = self.clock.now() + duration
        self.clock.run_until(end_time)
        logger.debug(f"Ran to t={end_time:.2f}s ({self.clock.events_processed} events)")

    def now(self) -> float:
        return self.clock.now()

    def fail_node(self, node_id: int):
        """Node disappears: stops beaconing and leaves the medium."""
        node = self.nodes[node_id]
        node.stop()
        self.medium.detach(node_id)
        self.failed.add(node_id)
        logger.info(f"[{get_node_name(node_id)}] failed at t={self.clock.now():.2f}s")

    def live_nodes(self) -> List[ClusteringNode]:
        return [node for nid, node in self.nodes.items() if nid not in self.failed]

    def reset_metrics(self):
        """Zero every node's counters, e.g. after a warm-up period."""
        for node in self.nodes.values():
            node.metrics.reset(node.context.role)
        logger.info(f"Metrics reset at t={self.clock.now():.2f}s")

    # ------------------------------------------------------------------
    # Inspection
    # ------------------------------------------------------------------

    def snapshot(self) -> Dict[int, dict]:
        """Per live node: color, role, cluster and neighbor ids."""
        return {
            node.node_id: {
                'color': node.context.color,
                'role': node.context.role,
                'cluster_id': node.context.cluster_id,
                'neighbors': sorted(node.neighbor_table.get_one_hop_set()),
            }
            for node in self.live_nodes()
        }

    def coloring_conflicts(self) -> List[Tuple[int, int]]:
        """Linked live pairs holding the same non-negative color."""
        conflicts = []
        for node in self.live_nodes():
            a = node.node_id
            for b in self.medium.neighbors_of(a):
                if b <= a or b in self.failed:
                    continue
                color = node.context.color
                if color >= 0 and color == self.nodes[b].context.color:
                    conflicts.append((a, b))
        return sorted(conflicts)

    def role_violations(self) -> List[str]:
        """Role/color/cluster consistency of every live node against its own table."""
        violations = []
        for node in self.live_nodes():
            ctx = node.context
            name = get_node_name(ctx.node_id)
            is_head_color = ctx.color == ProtocolConfig.CLUSTER_HEAD_COLOR

            if (ctx.role == NodeRole.CLUSTER_HEAD) != is_head_color:
                violations.append(f"{name}: role {ctx.role.name} with color {ctx.color}")

            if ctx.role in (NodeRole.MEMBER, NodeRole.GATEWAY):
                head = node.neighbor_table.get_neighbor(ctx.cluster_id)
                if head is None or head.color != ProtocolConfig.CLUSTER_HEAD_COLOR:
                    violations.append(f"{name}: cluster {ctx.cluster_id} is not a color-0 neighbor")

            if ctx.role == NodeRole.GATEWAY:
                foreign = any(
                    info.has_cluster() and info.cluster_id != ctx.cluster_id
                    for info in node.neighbor_table.values()
                )
                if not foreign:
                    violations.append(f"{name}: GATEWAY without a foreign cluster neighbor")

            if ctx.role == NodeRole.UNDECIDED and ctx.has_cluster():
                violations.append(f"{name}: UNDECIDED with cluster {ctx.cluster_id}")
        return violations

    def role_counts(self) -> Dict[str, int]:
        counts = Counter(node.context.role.name for node in self.live_nodes())
        return {role.name: counts.get(role.name, 0) for role in NodeRole}

    def aggregate_metrics(self) -> dict:
        """Network-wide totals over every node, failed ones included."""
        data_sent = 0
        data_received = 0
        delays: List[float] = []
        throughput: List[float] = []
        dropped: Counter = Counter()
        forwarded = 0
        color_changes = 0
        role_changes = 0

        for node in self.nodes.values():
            metrics = node.metrics
            data_sent += metrics.data_sent
            data_received += metrics.data_received
            delays.extend(metrics.delays)
            throughput.extend(metrics.throughput_samples)
            dropped.update(metrics.messages_dropped)
            forwarded += sum(metrics.messages_forwarded.values())
            color_changes += metrics.color_changes
            role_changes += sum(metrics.role_transitions.values())

        return {
            'time': self.clock.now(),
            'nodes': len(self.nodes),
            'failed': len(self.failed),
            'roles': self.role_counts(),
            'data_sent': data_sent,
            'data_received': data_received,
            'delivery_ratio': data_received / data_sent if data_sent else 0.0,
            'avg_delay': sum(delays) / len(delays) if delays else 0.0,
            'avg_throughput_bps': sum(throughput) / len(throughput) if throughput else 0.0,
            'forwarded': forwarded,
            'dropped': dict(dropped),
            'color_changes': color_changes,
            'role_changes': role_changes,
            'medium': self.medium.get_summary(),
        }
