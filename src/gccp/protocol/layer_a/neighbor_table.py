from dataclasses import dataclass, replace
from typing import Any, Dict, List, Optional, Set
import logging

from gccp.protocol.states import NodeRole

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NeighborInfo:
    """Last announced state of one heard peer. Replaced wholesale on each beacon."""
    neighbor_id: int
    color: int
    role: NodeRole
    cluster_id: int
    address: Any
    last_heard: float

    def has_cluster(self) -> bool:
        return self.cluster_id >= 0


class NeighborTable:
    """
    Id-keyed store of recently heard peers.

    Single-owner: mutated only by the owning node's own event processing,
    so no locking. Staleness is only evaluated when prune_stale() runs.
    """

    def __init__(self, context):
        if context is None:
            raise ValueError("context cannot be None")
        self.context = context
        self.neighbors: Dict[int, NeighborInfo] = {}

    def update_neighbor(self, node_id: int, color: int, role: NodeRole,
                        cluster_id: int, address: Any,
                        now: Optional[float] = None) -> bool:
        """
        Insert or overwrite the entry for a beacon sender.

        Args:
            node_id: Sender id (not authenticated)
            color: Announced color
            role: Announced role
            cluster_id: Announced cluster id
            address: Transport address the beacon arrived from
            now: Reception time, defaults to context.current_time

        Returns:
            True if this is a newly discovered neighbor
        """
        self._validate_inputs(node_id, color, cluster_id)

        if now is None:
            now = self.context.current_time
            if now is None:
                raise RuntimeError(
                    "context.current_time is None - time must be "
                    "initialized via context.update_time() before protocol operations"
                )

        try:
            role = NodeRole(role)
        except ValueError:
            logger.warning(f"Unknown role {role!r} announced by {node_id}, treating as UNDECIDED")
            role = NodeRole.UNDECIDED

        is_new = node_id not in self.neighbors
        self.neighbors[node_id] = NeighborInfo(
            neighbor_id=node_id,
            color=color,
            role=role,
            cluster_id=cluster_id,
            address=address,
            last_heard=now,
        )

        if is_new:
            logger.debug(f"New neighbor discovered: {node_id}")
        return is_new

    def _validate_inputs(self, node_id: int, color: int, cluster_id: int) -> None:
        """Validate input parameters for None and basic types."""
        if node_id is None:
            raise ValueError("node_id cannot be None")
        if not isinstance(node_id, int) or isinstance(node_id, bool):
            raise TypeError(f"node_id must be int, got {type(node_id)}")
        if not isinstance(color, int):
            raise TypeError(f"color must be int, got {type(color)}")
        if not isinstance(cluster_id, int):
            raise TypeError(f"cluster_id must be int, got {type(cluster_id)}")

    def prune_stale(self, now: Optional[float] = None, timeout: Optional[float] = None) -> bool:
        """
        Remove every entry not heard from within timeout.

        Args:
            now: Current time, defaults to context.current_time
            timeout: Staleness bound, defaults to the node's neighbor_timeout

        Returns:
            True if any entry was removed
        """
        if now is None:
            now = self.context.current_time
        if timeout is None:
            timeout = self.context.config.neighbor_timeout

        to_remove = [
            nid for nid, info in self.neighbors.items()
            if now - info.last_heard > timeout
        ]
        for nid in to_remove:
            del self.neighbors[nid]
            logger.debug(f"Removed stale neighbor: {nid}")

        return bool(to_remove)

    def get_neighbor(self, node_id: int) -> Optional[NeighborInfo]:
        return self.neighbors.get(node_id)

    def find_by_address(self, address: Any) -> Optional[NeighborInfo]:
        """Resolve a transport address back to the neighbor that uses it."""
        if address is None:
            return None
        for info in self.neighbors.values():
            if info.address == address:
                return info
        return None

    def neighbors_with_color(self, color: int) -> List[NeighborInfo]:
        return [info for info in self.neighbors.values() if info.color == color]

    def neighbors_with_role(self, *roles: NodeRole) -> List[NeighborInfo]:
        return [info for info in self.neighbors.values() if info.role in roles]

    def used_colors(self) -> Set[int]:
        """Non-negative colors currently announced by neighbors."""
        return {info.color for info in self.neighbors.values() if info.color >= 0}

    def get_one_hop_set(self) -> Set[int]:
        """Returns a snapshot of current neighbor IDs."""
        return set(self.neighbors.keys())

    def get_snapshot(self) -> Dict[int, NeighborInfo]:
        """Returns a copy safe to iterate while the table changes."""
        return {nid: replace(info) for nid, info in self.neighbors.items()}

    def values(self) -> List[NeighborInfo]:
        return list(self.neighbors.values())

    def get_neighbor_count(self) -> int:
        """
        Returns the number of one-hop neighbors.

        Returns:
            Number of neighbors in the table
        """
        return len(self.neighbors)

    def __contains__(self, node_id) -> bool:
        return node_id in self.neighbors

    def __len__(self) -> int:
        return len(self.neighbors)
