"""
In-process discrete-event harness: clock, shared medium, topologies.
"""

from .clock import SimClock
from .medium import SimTransport, WirelessMedium
from .network import SimulatedNetwork

__all__ = ['SimClock', 'SimTransport', 'WirelessMedium', 'SimulatedNetwork']
