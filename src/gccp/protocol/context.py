import logging
import random
from typing import Callable, List, Optional

from gccp.protocol.config import NodeConfig, ProtocolConfig
from gccp.protocol.states import NodeRole
from gccp.protocol.metrics import NodeMetrics
from gccp.protocol.node_registry import get_node_name

logger = logging.getLogger(__name__)


class GCCPContext:
    """
    Shared context for GCCP protocol handlers.
    Contains node state, protocol tables, and configuration.

    One context per node, owned by that node alone. Handlers read and
    write node state through it; nothing here is shared across nodes.
    """

    def __init__(self, node_id: int, config: Optional[NodeConfig] = None,
                 rng: Optional[random.Random] = None):
        """
        Initialize protocol context.

        Args:
            node_id: Stable integer identity assigned by the deployment
            config: Node configuration (validated); defaults if None
            rng: Random source for jitter and destinations
        """
        if node_id is None:
            raise ValueError("node_id cannot be None")
        if not isinstance(node_id, int) or isinstance(node_id, bool):
            raise TypeError(f"node_id must be int, got {type(node_id)}")

        # Identity
        self.node_id = node_id
        self.config = (config or NodeConfig()).validate()
        self.rng = rng or random.Random()

        # Clustering state
        self.color = ProtocolConfig.UNCOLORED
        self.role = NodeRole.UNDECIDED
        self.cluster_id = ProtocolConfig.NO_CLUSTER
        self.sequence_counter = 0
        self.beacon_counter = 0

        # Network Interface Callbacks
        # These functions are set by the node application from its Transport/Clock
        # send_callback(data: bytes, address), broadcast_callback(data: bytes)
        # schedule_callback(delay: float, callback) -> token
        self.send_callback: Optional[Callable] = None
        self.broadcast_callback: Optional[Callable] = None
        self.schedule_callback: Optional[Callable] = None

        # Layer A Data (Neighbor Discovery)
        self.neighbor_table = None  # Initialized in Layer A handler

        # Layer C Data (Forwarding)
        self.route_cache = None     # Initialized in Layer C handler
        self.seen_set = None        # Initialized in Layer C handler

        # Observers: listener(node_id, old_role, new_role)
        self.role_listeners: List[Callable] = []

        # Metrics (Observability)
        self.metrics = NodeMetrics()

        # Time Management (clock time only, initialized to 0.0)
        self.current_time = 0.0

    def update_time(self, timestamp: float):
        """
        Update the current time.

        Args:
            timestamp: New clock time in seconds

        Raises:
            ValueError: If timestamp goes backward (non-monotonic time)
        """
        if timestamp < self.current_time:
            raise ValueError(
                f"Time cannot go backward: current={self.current_time}, new={timestamp}"
            )
        self.current_time = timestamp

    def set_role(self, role: NodeRole, cluster_id: int) -> bool:
        """
        Apply a derived role and cluster attachment, emitting notifications.

        Returns:
            True if the role changed
        """
        old_role = self.role
        old_cluster = self.cluster_id
        self.role = role
        self.cluster_id = cluster_id

        if role != old_role:
            self.metrics.record_role_transition(old_role, role)
            logger.info(
                f"[{get_node_name(self.node_id)}] role {old_role.name} -> {role.name} "
                f"(color={self.color}, cluster={cluster_id})"
            )
            for listener in self.role_listeners:
                listener(self.node_id, old_role, role)
            return True

        if cluster_id != old_cluster:
            self.metrics.record_state_update()
            logger.debug(
                f"[{get_node_name(self.node_id)}] cluster {old_cluster} -> {cluster_id} "
                f"(role={role.name})"
            )
        return False

    def reset_color(self):
        """Drop back to uncolored (role demotion)."""
        if self.color != ProtocolConfig.UNCOLORED:
            logger.info(f"[{get_node_name(self.node_id)}] color {self.color} -> uncolored (demoted)")
            self.color = ProtocolConfig.UNCOLORED
            self.metrics.color_changes += 1

    def next_sequence(self) -> int:
        """Allocate the next data sequence number."""
        self.sequence_counter += 1
        return self.sequence_counter

    def next_beacon_sequence(self) -> int:
        self.beacon_counter = (self.beacon_counter + 1) % (ProtocolConfig.MAX_SEQUENCE_NUMBER + 1)
        return self.beacon_counter

    def add_role_listener(self, listener: Callable):
        self.role_listeners.append(listener)

    def is_cluster_head(self) -> bool:
        return self.role == NodeRole.CLUSTER_HEAD

    def is_gateway(self) -> bool:
        return self.role == NodeRole.GATEWAY

    def is_member(self) -> bool:
        return self.role == NodeRole.MEMBER

    def is_undecided(self) -> bool:
        return self.role == NodeRole.UNDECIDED

    def has_cluster(self) -> bool:
        return self.cluster_id >= 0
