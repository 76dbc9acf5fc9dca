"""
Protocol Metrics and Observability.

Per-node counters and samples: the observability sink of the protocol.
Role transitions are tracked both as 'OLD->NEW' counts and as per-role
enter/leave deltas so that summing deltas over all nodes gives a live
role tally.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional
from collections import defaultdict
import logging

from gccp.protocol.states import NodeRole

logger = logging.getLogger(__name__)


def _mean(values: List[float]) -> float:
    return sum(values) / len(values) if values else 0.0


@dataclass
class NodeMetrics:
    """
    Per-node protocol metrics for observability and analysis.

    All metrics are cumulative counters or raw samples.
    """

    # Message counters by kind / drop reason
    messages_sent: Dict[str, int] = field(default_factory=lambda: defaultdict(int))
    messages_received: Dict[str, int] = field(default_factory=lambda: defaultdict(int))
    messages_forwarded: Dict[str, int] = field(default_factory=lambda: defaultdict(int))
    messages_dropped: Dict[str, int] = field(default_factory=lambda: defaultdict(int))

    # Role state
    current_role: NodeRole = NodeRole.UNDECIDED
    role_transitions: Dict[str, int] = field(default_factory=lambda: defaultdict(int))
    role_deltas: Dict[str, int] = field(default_factory=lambda: defaultdict(int))
    state_updates: int = 0
    color_changes: int = 0

    # Data plane
    data_sent: int = 0
    data_received: int = 0
    delays: List[float] = field(default_factory=list)
    delivered_bits: List[int] = field(default_factory=list)
    throughput_samples: List[float] = field(default_factory=list)

    # Backbone route cache
    routes_learned: int = 0
    route_evictions: int = 0

    def increment(self, category: str, key: str, count: int = 1):
        """
        Increment a counter in a specific category.

        Args:
            category: One of 'sent', 'received', 'forwarded', 'dropped'
            key: Counter name (message kind or drop reason)
            count: Amount to increment (default 1)
        """
        if category == 'sent':
            self.messages_sent[key] += count
        elif category == 'received':
            self.messages_received[key] += count
        elif category == 'forwarded':
            self.messages_forwarded[key] += count
        elif category == 'dropped':
            self.messages_dropped[key] += count
        else:
            logger.warning(f"Unknown metrics category: {category}")

    def record_role_transition(self, old_role: NodeRole, new_role: NodeRole):
        """Role-change notification: count it and move the per-role tallies."""
        self.role_transitions[f"{old_role.name}->{new_role.name}"] += 1
        self.role_deltas[old_role.name] -= 1
        self.role_deltas[new_role.name] += 1
        self.current_role = new_role

    def record_state_update(self):
        """Cluster id changed without a role transition."""
        self.state_updates += 1

    def record_delivery(self, delay: float, payload_bytes: int):
        """
        Record one end-to-end delivery.

        Args:
            delay: now - creation_time, in seconds
            payload_bytes: delivered payload length
        """
        self.data_received += 1
        self.delays.append(delay)
        bits = payload_bytes * 8
        self.delivered_bits.append(bits)
        if delay > 0:
            self.throughput_samples.append(bits / delay)

    def get_summary(self) -> Dict:
        """
        Get a summary of all metrics for analysis.

        Returns:
            Dictionary with metric summaries
        """
        return {
            'messages': {
                'sent': dict(self.messages_sent),
                'received': dict(self.messages_received),
                'forwarded': dict(self.messages_forwarded),
                'dropped': dict(self.messages_dropped),
                'total_sent': sum(self.messages_sent.values()),
                'total_received': sum(self.messages_received.values()),
                'total_forwarded': sum(self.messages_forwarded.values()),
                'total_dropped': sum(self.messages_dropped.values()),
            },
            'roles': {
                'current': self.current_role.name,
                'transitions': dict(self.role_transitions),
                'deltas': dict(self.role_deltas),
                'state_updates': self.state_updates,
                'color_changes': self.color_changes,
            },
            'data': {
                'sent': self.data_sent,
                'received': self.data_received,
                'avg_delay': _mean(self.delays),
                'max_delay': max(self.delays) if self.delays else 0.0,
                'delivered_bits': sum(self.delivered_bits),
                'avg_throughput_bps': _mean(self.throughput_samples),
            },
            'route_cache': {
                'learned': self.routes_learned,
                'evictions': self.route_evictions,
            },
        }

    def reset(self, role: Optional[NodeRole] = None):
        """Reset all metrics to initial state, keeping the current role unless given."""
        self.messages_sent.clear()
        self.messages_received.clear()
        self.messages_forwarded.clear()
        self.messages_dropped.clear()
        self.role_transitions.clear()
        self.role_deltas.clear()
        if role is not None:
            self.current_role = role
        self.state_updates = 0
        self.color_changes = 0
        self.data_sent = 0
        self.data_received = 0
        self.delays.clear()
        self.delivered_bits.clear()
        self.throughput_samples.clear()
        self.routes_learned = 0
        self.route_evictions = 0
