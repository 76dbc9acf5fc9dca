"""
Node Name Registry for GCCP Protocol Logging.

Provides human-readable node names for logging and debugging,
mapping integer node ids to names like 'sink', 'gw_east', etc.
"""

import logging
from typing import Dict

logger = logging.getLogger(__name__)


class NodeNameRegistry:
    """
    Singleton registry mapping node IDs to human-readable names.

    Usage:
        # Register a node
        NodeNameRegistry.register(7, "sink")

        # Get name (returns 'n<id>' fallback if not registered)
        name = NodeNameRegistry.get_name(7)
    """

    _instance = None
    _names: Dict[int, str] = {}

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._names = {}
        return cls._instance

    @classmethod
    def register(cls, node_id: int, name: str) -> None:
        """
        Register a human-readable name for a node ID.

        Args:
            node_id: Integer node identifier
            name: Human-readable name
        """
        cls._names[int(node_id)] = name

    @classmethod
    def get_name(cls, node_id) -> str:
        """
        Get the human-readable name for a node ID.

        Returns:
            Registered name or 'n<id>' fallback
        """
        if node_id is None:
            return "None"
        return cls._names.get(node_id, f"n{node_id}")


# Convenience functions
def register_node(node_id: int, name: str) -> None:
    """Register a node name."""
    NodeNameRegistry.register(node_id, name)


def get_node_name(node_id) -> str:
    """Get a node's human-readable name."""
    return NodeNameRegistry.get_name(node_id)
