"""
Shared wireless medium for simulated GCCP nodes.

Connectivity is an explicit undirected link set rather than a radio model.
A broadcast reaches every linked, open transport listening on the sender's
destination port; a unicast reaches the addressed transport only if it is
linked to the sender. Each delivery is an event on the SimClock after the
propagation delay, and may be lost with a fixed probability.
"""

import logging
import random
from collections import defaultdict
from functools import partial
from typing import Callable, Dict, Optional, Set, Tuple

from gccp.messages.messages import MessageType, peek_type
from gccp.protocol.config import ProtocolConfig
from gccp.protocol.node_registry import get_node_name

logger = logging.getLogger(__name__)

Address = Tuple[str, int]


def host_for(node_id: int) -> str:
    """Deterministic host string for a node id."""
    return f"10.0.{node_id // 256}.{node_id % 256}"


class SimTransport:
    """
    Transport endpoint of one node on a WirelessMedium.
    """

    def __init__(self, medium: 'WirelessMedium', node_id: int,
                 local_port: int = ProtocolConfig.LOCAL_PORT,
                 dest_port: int = ProtocolConfig.DEST_PORT):
        self.medium = medium
        self.node_id = node_id
        self.local_port = local_port
        self.dest_port = dest_port
        self.is_open = True
        self._receive_callback: Optional[Callable] = None

    @property
    def local_address(self) -> Address:
        return (host_for(self.node_id), self.local_port)

    def set_receive_callback(self, callback: Callable):
        self._receive_callback = callback

    def send(self, packet: bytes, address: Address):
        if not self.is_open:
            logger.debug(f"[{get_node_name(self.node_id)}] send on closed transport ignored")
            return
        self.medium.unicast(self, packet, address)

    def broadcast(self, packet: bytes):
        if not self.is_open:
            logger.debug(f"[{get_node_name(self.node_id)}] broadcast on closed transport ignored")
            return
        self.medium.broadcast(self, packet)

    def close(self):
        self.is_open = False

    def deliver(self, packet: bytes, sender_address: Address):
        """Called by the medium when a packet arrives."""
        if self.is_open and self._receive_callback is not None:
            self._receive_callback(packet, sender_address)


class WirelessMedium:
    """
    Link-set medium connecting SimTransports.

    Counters are kept per message type name: transmissions, deliveries,
    losses (random) and unreachable (unicast to an unlinked or unknown
    address).
    """

    def __init__(self, clock, propagation_delay: float = 0.001,
                 loss_probability: float = 0.0,
                 rng: Optional[random.Random] = None):
        if propagation_delay < 0:
            raise ValueError(f"propagation_delay must be non-negative, got {propagation_delay}")
        if not 0.0 <= loss_probability <= 1.0:
            raise ValueError(f"loss_probability must be in [0, 1], got {loss_probability}")

        self.clock = clock
        self.propagation_delay = propagation_delay
        self.loss_probability = loss_probability
        self.rng = rng or random.Random()

        self.links: Dict[int, Set[int]] = defaultdict(set)
        self.transports: Dict[int, SimTransport] = {}
        self._by_address: Dict[Address, SimTransport] = {}

        self.transmissions: Dict[str, int] = defaultdict(int)
        self.deliveries: Dict[str, int] = defaultdict(int)
        self.losses: Dict[str, int] = defaultdict(int)
        self.unreachable: Dict[str, int] = defaultdict(int)

    # ------------------------------------------------------------------
    # Membership and topology
    # ------------------------------------------------------------------

    def attach(self, node_id: int, local_port: int = ProtocolConfig.LOCAL_PORT,
               dest_port: int = ProtocolConfig.DEST_PORT) -> SimTransport:
        if node_id in self.transports:
            raise ValueError(f"node {node_id} already attached")
        transport = SimTransport(self, node_id, local_port, dest_port)
        self.transports[node_id] = transport
        self._by_address[transport.local_address] = transport
        return transport

    def detach(self, node_id: int):
        """Remove a node from the medium; in-flight packets to it are discarded."""
        transport = self.transports.pop(node_id, None)
        if transport is None:
            return
        self._by_address.pop(transport.local_address, None)
        transport.close()
        for peer in self.links.pop(node_id, set()):
            self.links[peer].discard(node_id)

    def add_link(self, a: int, b: int):
        if a == b:
            raise ValueError("self-links are not allowed")
        self.links[a].add(b)
        self.links[b].add(a)

    def remove_link(self, a: int, b: int):
        self.links[a].discard(b)
        self.links[b].discard(a)

    def are_linked(self, a: int, b: int) -> bool:
        return b in self.links.get(a, ())

    def neighbors_of(self, node_id: int) -> Set[int]:
        return set(self.links.get(node_id, ()))

    # ------------------------------------------------------------------
    # Transmission
    # ------------------------------------------------------------------

    def broadcast(self, sender: SimTransport, packet: bytes):
        kind = self._kind_name(packet)
        self.transmissions[kind] += 1
        for peer_id in sorted(self.links.get(sender.node_id, ())):
            receiver = self.transports.get(peer_id)
            if receiver is None or not receiver.is_open:
                continue
            if receiver.local_port != sender.dest_port:
                continue
            self._deliver(sender, receiver, packet, kind)

    def unicast(self, sender: SimTransport, packet: bytes, address: Address):
        kind = self._kind_name(packet)
        self.transmissions[kind] += 1
        receiver = self._by_address.get(address)
        if receiver is None or not self.are_linked(sender.node_id, receiver.node_id):
            self.unreachable[kind] += 1
            logger.debug(f"[{get_node_name(sender.node_id)}] {kind} to {address} unreachable")
            return
        self._deliver(sender, receiver, packet, kind)

    def _deliver(self, sender: SimTransport, receiver: SimTransport, packet: bytes, kind: str):
        if self.loss_probability > 0 and self.rng.random() < self.loss_probability:
            self.losses[kind] += 1
            return
        self.deliveries[kind] += 1
        self.clock.schedule_after(
            self.propagation_delay,
            partial(receiver.deliver, bytes(packet), sender.local_address),
        )

    @staticmethod
    def _kind_name(packet: bytes) -> str:
        msg_type = peek_type(packet)
        try:
            return MessageType(msg_type).name
        except ValueError:
            return 'UNKNOWN'

    def get_summary(self) -> dict:
        return {
            'transmissions': dict(self.transmissions),
            'deliveries': dict(self.deliveries),
            'losses': dict(self.losses),
            'unreachable': dict(self.unreachable),
        }
