from typing import Any

from gccp.messages.messages import BeaconMessage
from gccp.protocol.node_registry import get_node_name
from .neighbor_table import NeighborTable
import logging

logger = logging.getLogger('gccp.layer_a')


class NeighborDiscoveryHandler:
    def __init__(self, context):
        self.context = context
        self.neighbor_table = NeighborTable(context)
        self.context.neighbor_table = self.neighbor_table  # Link back to context

    def handle_beacon(self, message: BeaconMessage, sender_address: Any) -> bool:
        """
        Record a received beacon.

        The address is taken from delivery metadata, not from the beacon.

        Returns:
            True if the neighbor table was updated (the caller then
            recomputes the role)
        """
        sender_id = message.sender_id
        my_name = get_node_name(self.context.node_id)

        if sender_id == self.context.node_id:
            logger.debug(f"[{my_name}] ignoring own beacon")
            return False

        is_new = self.neighbor_table.update_neighbor(
            sender_id,
            color=message.color,
            role=message.role,
            cluster_id=message.cluster_id,
            address=sender_address,
        )
        self.context.metrics.increment('received', 'beacon')

        sender_name = get_node_name(sender_id)
        if is_new:
            logger.info(f"[{my_name}] new neighbor {sender_name}")
        logger.debug(
            f"[{my_name}] RX BEACON from {sender_name}: color={message.color}, "
            f"role={message.role}, cluster={message.cluster_id}"
        )
        return True

    def create_beacon(self) -> BeaconMessage:
        msg = BeaconMessage(
            sender_id=self.context.node_id,
            color=self.context.color,
            role=int(self.context.role),
            cluster_id=self.context.cluster_id,
            seq_num=self.context.next_beacon_sequence(),
        )

        my_name = get_node_name(self.context.node_id)
        logger.debug(
            f"[{my_name}] TX BEACON color={msg.color}, role={self.context.role.name}, "
            f"N1={self.neighbor_table.get_neighbor_count()}"
        )
        return msg

    def send_beacon(self) -> bool:
        """Broadcast one beacon through the context's transport callback."""
        if self.context.broadcast_callback is None:
            logger.warning(f"[{get_node_name(self.context.node_id)}] no transport, beacon dropped")
            return False
        self.context.broadcast_callback(self.create_beacon().encode())
        self.context.metrics.increment('sent', 'beacon')
        return True
