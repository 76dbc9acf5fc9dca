"""
Layer C: Hierarchical Data Forwarding

Handles the data plane of the clustering hierarchy:
- Origination of application data packets
- Member/gateway uplink to the cluster head
- Cluster head delivery: direct, via cached gateway, or flood to gateways
- Gateway bridging between clusters (outbound) and back to the CH (inbound)
- Reverse-path route learning, duplicate suppression, TTL enforcement

Floods are emitted as jittered DeferredSend actions on the clock; once
scheduled they always fire, even if the state they were built from is stale.
"""

import logging
from dataclasses import dataclass
from functools import partial
from typing import Any, Iterable, Optional, Set, Tuple, TYPE_CHECKING

from gccp.messages.messages import DataMessage
from gccp.protocol.config import ProtocolConfig
from gccp.protocol.states import NodeRole, DropReason, BACKBONE_ROLES
from gccp.protocol.node_registry import get_node_name
from .route_cache import BackboneRouteCache, SeenSet

if TYPE_CHECKING:
    from gccp.protocol.context import GCCPContext
    from gccp.protocol.layer_a.neighbor_table import NeighborInfo

logger = logging.getLogger('gccp.forwarding')


@dataclass
class DeferredSend:
    """A built data packet waiting on the clock for its jittered send."""
    message: DataMessage
    address: Any
    next_hop: int


class ForwardingHandler:
    """
    Routes data packets according to this node's role.

    Reads clustering state (role, cluster, neighbor table) but never
    changes it.
    """

    def __init__(self, context: 'GCCPContext'):
        """
        Initialize the forwarding handler.

        Args:
            context: GCCP protocol context
        """
        self.context = context
        self.route_cache = BackboneRouteCache()
        self.seen_set = SeenSet()
        self.context.route_cache = self.route_cache  # Link back
        self.context.seen_set = self.seen_set

        # Packets already bridged once after returning from our own CH
        self._returned: Set[Tuple[int, int]] = set()

    # ------------------------------------------------------------------
    # Origination
    # ------------------------------------------------------------------

    def originate(self, destination_id: Optional[int] = None) -> Optional[DataMessage]:
        """
        Generate and route one data packet.

        Args:
            destination_id: Explicit destination, or None for a random one
                from the configured id space

        Returns:
            The originated packet, or None if no destination is available
        """
        ctx = self.context
        if destination_id is None:
            destination_id = self._pick_destination()
            if destination_id is None:
                logger.debug(f"[{self._name()}] no destination available, not generating")
                return None
        elif destination_id == ctx.node_id:
            raise ValueError("destination_id must differ from this node")

        message = DataMessage(
            source_id=ctx.node_id,
            seq_num=ctx.next_sequence(),
            ttl=ctx.config.initial_ttl,
            destination_id=destination_id,
            creation_time=ctx.current_time,
            payload=bytes(ctx.config.payload_size),
        )
        self.seen_set.add(message.key)
        ctx.metrics.data_sent += 1

        logger.debug(
            f"[{self._name()}] GEN DATA #{message.seq_num} -> "
            f"{get_node_name(destination_id)} as {ctx.role.name}"
        )

        if ctx.is_cluster_head():
            self._route_from_head(message)
        elif ctx.role in (NodeRole.MEMBER, NodeRole.GATEWAY):
            self._uplink(message)
        else:
            self._drop(message, DropReason.ORPHANED, "no cluster")
        return message

    def _pick_destination(self) -> Optional[int]:
        """Uniform over [0, num_hosts) excluding self."""
        num_hosts = self.context.config.num_hosts
        node_id = self.context.node_id
        if num_hosts < 2:
            return None
        if 0 <= node_id < num_hosts:
            destination = self.context.rng.randrange(num_hosts - 1)
            return destination + 1 if destination >= node_id else destination
        return self.context.rng.randrange(num_hosts)

    # ------------------------------------------------------------------
    # Reception
    # ------------------------------------------------------------------

    def handle_data(self, message: DataMessage, sender_address: Any):
        """
        Process an inbound data packet.

        Args:
            message: Decoded data packet
            sender_address: Transport address it was delivered from
        """
        ctx = self.context
        table = ctx.neighbor_table

        previous_hop = table.find_by_address(sender_address)

        # 1. Reverse-path learning (cluster heads only)
        if (ctx.is_cluster_head() and previous_hop is not None
                and previous_hop.role == NodeRole.GATEWAY
                and message.source_id != ctx.node_id):
            if self.route_cache.learn(message.source_id, previous_hop.neighbor_id):
                ctx.metrics.routes_learned += 1

        # 2. Someone else's unicast on the shared channel
        if message.next_hop != ProtocolConfig.ANY_HOP and message.next_hop != ctx.node_id:
            self._drop(message, DropReason.NEXT_HOP_MISMATCH)
            return
        ctx.metrics.increment('received', 'data')

        # 3. Duplicate suppression
        from_own_head = (
            previous_hop is not None
            and not ctx.is_cluster_head()
            and ctx.has_cluster()
            and previous_hop.neighbor_id == ctx.cluster_id
        )
        if not self.seen_set.add(message.key):
            if self._is_gateway_return(message, from_own_head):
                self._returned.add(message.key)
                logger.debug(f"[{self._name()}] own packet #{message.seq_num} back from CH, bridging")
            else:
                self._drop(message, DropReason.DUPLICATE)
                return

        # 4. Delivery
        if message.destination_id == ctx.node_id:
            delay = ctx.current_time - message.creation_time
            ctx.metrics.record_delivery(delay, len(message.payload))
            logger.debug(
                f"[{self._name()}] DELIVERED #{message.seq_num} from "
                f"{get_node_name(message.source_id)} delay={delay:.4f}s"
            )
            return

        # 5. Only the backbone routes
        if ctx.is_member():
            self._drop(message, DropReason.MEMBER_STOP)
            return
        if ctx.is_undecided():
            self._drop(message, DropReason.NOT_BACKBONE)
            return

        # 6. Hop budget
        if message.ttl <= 0:
            self._drop(message, DropReason.TTL_EXPIRED)
            return

        # 7. Forward
        forwarded = message.copy(ttl=message.ttl - 1)
        ctx.metrics.increment('forwarded', 'data')
        if ctx.is_cluster_head():
            self._route_from_head(forwarded)
        elif from_own_head:
            self._bridge_outbound(forwarded)
        else:
            self._uplink(forwarded)

    def _is_gateway_return(self, message: DataMessage, from_own_head: bool) -> bool:
        """Our own packet handed back by our CH so that we bridge it; once per packet."""
        return (
            message.source_id == self.context.node_id
            and self.context.is_gateway()
            and from_own_head
            and message.key not in self._returned
        )

    # ------------------------------------------------------------------
    # Routing decisions
    # ------------------------------------------------------------------

    def _uplink(self, message: DataMessage):
        """Member/gateway: unicast to our own cluster head."""
        ctx = self.context
        head = None
        if ctx.has_cluster():
            head = ctx.neighbor_table.get_neighbor(ctx.cluster_id)
        if head is None:
            self._drop(message, DropReason.ORPHANED, f"cluster head {ctx.cluster_id} not in range")
            return
        self._unicast(message, head)

    def _route_from_head(self, message: DataMessage):
        """Cluster head: direct neighbor, else cached gateway, else flood to gateways."""
        ctx = self.context
        table = ctx.neighbor_table

        destination = table.get_neighbor(message.destination_id)
        if destination is not None:
            self._unicast(message, destination)
            return

        gateway_id = self.route_cache.lookup(message.destination_id)
        if gateway_id is not None:
            gateway = table.get_neighbor(gateway_id)
            if gateway is not None and gateway.role == NodeRole.GATEWAY:
                self._unicast(message, gateway)
                return
            self.route_cache.evict(message.destination_id)
            ctx.metrics.route_evictions += 1
            logger.debug(
                f"[{self._name()}] stale route to {get_node_name(message.destination_id)} "
                f"via {get_node_name(gateway_id)}, flooding"
            )

        gateways = table.neighbors_with_role(NodeRole.GATEWAY)
        if not gateways:
            self._drop(message, DropReason.NO_BACKBONE, "no gateway neighbors")
            return
        self._flood(message, gateways)

    def _bridge_outbound(self, message: DataMessage):
        """Gateway, packet from own CH: copy to backbone nodes of other clusters."""
        ctx = self.context
        targets = [
            info for info in ctx.neighbor_table.values()
            if info.role in BACKBONE_ROLES
            and info.has_cluster()
            and info.cluster_id != ctx.cluster_id
        ]
        if not targets:
            self._drop(message, DropReason.NO_BACKBONE, "no foreign backbone neighbors")
            return
        self._flood(message, targets)

    # ------------------------------------------------------------------
    # Transmission
    # ------------------------------------------------------------------

    def _unicast(self, message: DataMessage, neighbor: 'NeighborInfo'):
        self._transmit(message.copy(next_hop=neighbor.neighbor_id), neighbor.address)

    def _flood(self, message: DataMessage, targets: Iterable['NeighborInfo']):
        """One independently jittered copy per target."""
        max_jitter = self.context.config.forward_jitter
        for info in sorted(targets, key=lambda n: n.neighbor_id):
            deferred = DeferredSend(
                message=message.copy(next_hop=info.neighbor_id),
                address=info.address,
                next_hop=info.neighbor_id,
            )
            self._schedule_deferred(deferred, self.context.rng.uniform(0, max_jitter))

    def _schedule_deferred(self, deferred: DeferredSend, delay: float):
        if self.context.schedule_callback is None:
            self.fire_deferred(deferred)
            return
        self.context.schedule_callback(delay, partial(self.fire_deferred, deferred))

    def fire_deferred(self, deferred: DeferredSend):
        """Clock callback for a jittered send. Not revalidated."""
        self._transmit(deferred.message, deferred.address)

    def _transmit(self, message: DataMessage, address: Any):
        if self.context.send_callback is None:
            logger.warning(f"[{self._name()}] no transport, data #{message.seq_num} dropped")
            return
        self.context.send_callback(message.encode(), address)
        self.context.metrics.increment('sent', 'data')
        logger.debug(
            f"[{self._name()}] TX DATA {get_node_name(message.source_id)}#{message.seq_num} "
            f"-> {get_node_name(message.next_hop)} (TTL={message.ttl})"
        )

    def _drop(self, message: DataMessage, reason: DropReason, detail: str = ""):
        self.context.metrics.increment('dropped', reason.value)
        suffix = f": {detail}" if detail else ""
        logger.debug(
            f"[{self._name()}] DROP DATA {get_node_name(message.source_id)}#{message.seq_num} "
            f"({reason.value}{suffix})"
        )

    def _name(self) -> str:
        return get_node_name(self.context.node_id)
