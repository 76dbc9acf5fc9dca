"""
GCCP Protocol Implementation.

Layer A discovers neighbors from beacons, Layer B derives color and role,
Layer C forwards data over the cluster backbone. All layers share one
GCCPContext per node.
"""

from .context import GCCPContext
from .config import NodeConfig, ProtocolConfig
from .errors import ConfigurationError, UnknownMessageError
from .states import NodeRole, DropReason

__all__ = [
    'GCCPContext', 'NodeConfig', 'ProtocolConfig',
    'ConfigurationError', 'UnknownMessageError', 'NodeRole', 'DropReason',
]
