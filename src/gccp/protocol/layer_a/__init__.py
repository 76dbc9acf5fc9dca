"""
Layer A: Neighbor Discovery.
"""

from .neighbor_table import NeighborInfo, NeighborTable
from .handler import NeighborDiscoveryHandler

__all__ = ['NeighborInfo', 'NeighborTable', 'NeighborDiscoveryHandler']
