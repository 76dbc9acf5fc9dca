"""
GCCP node application.

Binds one protocol context and its layer handlers to a Transport and a
Clock. Everything a node does happens in response to one event: a timer
firing or a packet arriving. Before each event the context time is
advanced from the clock.
"""

import logging
import random
from functools import partial
from typing import Any, Dict, Optional, Union

from gccp.messages.messages import MessageType, decode
from gccp.protocol.config import NodeConfig
from gccp.protocol.context import GCCPContext
from gccp.protocol.errors import UnknownMessageError
from gccp.protocol.layer_a.handler import NeighborDiscoveryHandler
from gccp.protocol.layer_b.coloring import ColoringEngine
from gccp.protocol.layer_b.role_manager import RoleManager
from gccp.protocol.layer_c.handler import ForwardingHandler
from gccp.protocol.node_registry import get_node_name, register_node
from gccp.protocol.states import DropReason, TimerKind

logger = logging.getLogger('gccp.node')


class ClusteringNode:
    """
    Application running the clustering protocol on one node.

    Transport must provide send(packet, address), broadcast(packet),
    set_receive_callback(cb) and close(). Clock must provide
    schedule_after(delay, cb) -> token, cancel(token) and now().
    """

    def __init__(self, node_id: int, clock, transport,
                 config: Union[NodeConfig, Dict[str, Any], None] = None,
                 rng: Optional[random.Random] = None,
                 name: Optional[str] = None):
        """
        Initialize the node application.

        Args:
            node_id: Stable integer identity
            clock: Clock providing timers and the current time
            transport: Packet transport bound to this node
            config: NodeConfig, or a mapping of options
            rng: Random source for jitter and destinations
            name: Optional human-readable name for logs

        Raises:
            ConfigurationError: invalid configuration (the node refuses to start)
        """
        if isinstance(config, dict):
            config = NodeConfig.from_dict(config)

        self.context = GCCPContext(node_id, config, rng)
        self.clock = clock
        self.transport = transport

        if name:
            register_node(node_id, name)

        # Link callbacks
        self.context.send_callback = transport.send
        self.context.broadcast_callback = transport.broadcast
        self.context.schedule_callback = clock.schedule_after

        # Layer handlers
        self.discovery = NeighborDiscoveryHandler(self.context)
        self.coloring = ColoringEngine(self.context)
        self.role_manager = RoleManager(self.context)
        self.forwarding = ForwardingHandler(self.context)

        self.running = False
        self._timers: Dict[TimerKind, Any] = {}

    @property
    def node_id(self) -> int:
        return self.context.node_id

    @property
    def config(self) -> NodeConfig:
        return self.context.config

    @property
    def metrics(self):
        return self.context.metrics

    @property
    def neighbor_table(self):
        return self.context.neighbor_table

    def start(self):
        """Register for packets and arm the periodic timers."""
        if self.running:
            return
        self.running = True
        self._sync_time()
        self.transport.set_receive_callback(self.on_packet_received)

        config = self.config
        rng = self.context.rng
        if config.hello_interval > 0:
            # First beacon spread over one period so neighbors do not collide
            self._schedule(TimerKind.HELLO, rng.uniform(0, config.hello_interval))
        self._schedule(
            TimerKind.MAINTENANCE,
            config.coloring_interval + rng.uniform(0, config.coloring_jitter),
        )
        if config.data_enabled:
            self._schedule(
                TimerKind.DATA,
                config.data_interval + rng.uniform(0, config.data_jitter),
            )

        logger.info(f"[{self._name()}] started ({', '.join(k.value for k in self._timers)})")

    def stop(self):
        """Cancel periodic timers and close the transport. Deferred sends still fire."""
        if not self.running:
            return
        for token in self._timers.values():
            self.clock.cancel(token)
        self._timers.clear()
        self.running = False
        self.transport.close()
        logger.info(f"[{self._name()}] stopped as {self.context.role.name}")

    def _schedule(self, kind: TimerKind, delay: float):
        self._timers[kind] = self.clock.schedule_after(delay, partial(self.handle_timer, kind))

    def handle_timer(self, kind):
        """
        Timer dispatch. Periodic timers re-arm themselves after firing.
        """
        self._sync_time()
        if not self.running:
            return

        config = self.config
        rng = self.context.rng

        if kind == TimerKind.HELLO:
            self.discovery.send_beacon()
            self._schedule(TimerKind.HELLO, config.hello_interval + rng.uniform(0, config.hello_jitter))

        elif kind == TimerKind.MAINTENANCE:
            self.run_maintenance()
            self._schedule(TimerKind.MAINTENANCE, config.maintenance_interval)

        elif kind == TimerKind.DATA:
            self.forwarding.originate()
            self._schedule(TimerKind.DATA, config.data_interval + rng.uniform(0, config.data_jitter))

        else:
            logger.warning(f"[{self._name()}] unknown timer {kind!r}, ignored")
            self.context.metrics.increment('dropped', DropReason.UNKNOWN_MESSAGE.value)

    def run_maintenance(self):
        """Prune stale neighbors, then one coloring step, then role derivation."""
        pruned = self.neighbor_table.prune_stale()
        if pruned:
            logger.debug(f"[{self._name()}] pruned, N1={self.neighbor_table.get_neighbor_count()}")
        self.coloring.recompute_color()
        self.role_manager.recompute_role()

    def send_data(self, destination_id: Optional[int] = None):
        """Originate one data packet now, outside the data timer."""
        self._sync_time()
        return self.forwarding.originate(destination_id)

    def on_packet_received(self, packet, sender_address):
        """
        Transport receive callback.

        Decode failures are logged and counted, never raised back into the
        transport.
        """
        self._sync_time()
        if not self.running:
            return

        try:
            message = decode(packet)
        except UnknownMessageError as e:
            logger.warning(f"[{self._name()}] {e} from {sender_address}")
            self.context.metrics.increment('dropped', DropReason.UNKNOWN_MESSAGE.value)
            return
        except ValueError as e:
            logger.warning(f"[{self._name()}] undecodable packet from {sender_address}: {e}")
            self.context.metrics.increment('dropped', DropReason.UNKNOWN_MESSAGE.value)
            return

        self.dispatch_message(message, sender_address)

    def dispatch_message(self, message, sender_address):
        """Route a decoded message to its handler by kind."""
        if message.kind == MessageType.BEACON:
            if self.discovery.handle_beacon(message, sender_address):
                self.role_manager.recompute_role()

        elif message.kind == MessageType.DATA:
            self.forwarding.handle_data(message, sender_address)

        else:
            logger.warning(f"[{self._name()}] no handler for {message.kind!r}")
            self.context.metrics.increment('dropped', DropReason.UNKNOWN_MESSAGE.value)

    def _sync_time(self):
        self.context.update_time(self.clock.now())

    def _name(self) -> str:
        return get_node_name(self.node_id)
