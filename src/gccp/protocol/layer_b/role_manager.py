"""
Role Manager: derives CH / MEMBER / GATEWAY / UNDECIDED from color.

Handles the logic for determining the node's role and cluster attachment
from its own color and its direct neighbors' announcements.
"""

import logging
from typing import Tuple, TYPE_CHECKING

from gccp.protocol.config import ProtocolConfig
from gccp.protocol.states import NodeRole
from gccp.protocol.node_registry import get_node_name

if TYPE_CHECKING:
    from gccp.protocol.context import GCCPContext

logger = logging.getLogger('gccp.roles')


class RoleManager:
    """
    Manages role assignment for a node.

    Role assignment rules:
    - CLUSTER_HEAD: color == 0, cluster is the node itself
    - MEMBER: color > 0, attached to the lowest-id color-0 neighbor,
      no neighbor announces a different cluster
    - GATEWAY: as MEMBER, but some neighbor announces a different cluster
    - UNDECIDED: uncolored, or colored with no color-0 neighbor (demoted,
      color cleared). Attachment is direct only, never through a relay.
    """

    def __init__(self, context: 'GCCPContext'):
        """
        Initialize the role manager.

        Args:
            context: GCCP protocol context
        """
        self.context = context

    def evaluate_role(self) -> Tuple[NodeRole, int]:
        """
        Evaluate the role and cluster for the current state.
        Does NOT change the context - call recompute_role() for that.

        Returns:
            (role, cluster_id); cluster_id is NO_CLUSTER for UNDECIDED
        """
        color = self.context.color

        if color < 0:
            return NodeRole.UNDECIDED, ProtocolConfig.NO_CLUSTER

        if color == ProtocolConfig.CLUSTER_HEAD_COLOR:
            return NodeRole.CLUSTER_HEAD, self.context.node_id

        heads = self.context.neighbor_table.neighbors_with_color(ProtocolConfig.CLUSTER_HEAD_COLOR)
        if not heads:
            return NodeRole.UNDECIDED, ProtocolConfig.NO_CLUSTER

        cluster_id = min(info.neighbor_id for info in heads)
        foreign = any(
            info.has_cluster() and info.cluster_id != cluster_id
            for info in self.context.neighbor_table.values()
        )
        return (NodeRole.GATEWAY if foreign else NodeRole.MEMBER), cluster_id

    def recompute_role(self) -> bool:
        """
        Derive and apply the role. Idempotent.

        A colored node that hears no color-0 neighbor is demoted and its
        color is cleared, so it never claims a cluster it cannot verify.

        Returns:
            True if the role changed
        """
        if self.context.neighbor_table is None:
            raise RuntimeError("neighbor table not initialized")

        role, cluster_id = self.evaluate_role()

        if role == NodeRole.UNDECIDED and self.context.color >= 0:
            logger.debug(
                f"[{get_node_name(self.context.node_id)}] no cluster head in range, demoting"
            )
            self.context.reset_color()

        return self.context.set_role(role, cluster_id)
