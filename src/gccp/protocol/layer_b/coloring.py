"""
Coloring Engine: self-stabilizing greedy graph coloring.

Runs once per maintenance tick, never per beacon, so color churn is rate
limited to the maintenance period. Two neighbors can transiently hold the
same color (typically both 0); the lower id keeps it and the higher id
repairs on its next tick, giving an eventually proper coloring.
"""

import logging
from typing import Iterable, Set, TYPE_CHECKING

from gccp.protocol.config import ProtocolConfig
from gccp.protocol.node_registry import get_node_name

if TYPE_CHECKING:
    from gccp.protocol.context import GCCPContext

logger = logging.getLogger('gccp.coloring')


def smallest_free_color(used: Set[int], start: int = 0) -> int:
    """Smallest integer >= start not in used."""
    candidate = start
    while candidate in used:
        candidate += 1
    return candidate


class ColoringEngine:
    """
    Computes and updates this node's color from the neighbor table.

    Rules, in order:
      1. uncolored, or same color as a lower-id neighbor -> greedy repair
      2. no neighbor holds color 0 -> take color 0 (become cluster head)
      3. otherwise only ever move to a smaller free color >= 1
    """

    def __init__(self, context: 'GCCPContext'):
        self.context = context

    def has_conflict(self) -> bool:
        """True if a lower-id neighbor holds our color."""
        color = self.context.color
        if color < 0:
            return False
        return any(
            info.color == color and info.neighbor_id < self.context.node_id
            for info in self._neighbors()
        )

    def choose_color(self) -> int:
        """The color the next tick would pick, without applying it."""
        table = self.context.neighbor_table
        color = self.context.color
        used = table.used_colors()

        if color < 0 or self.has_conflict():
            return smallest_free_color(used)

        head_color = ProtocolConfig.CLUSTER_HEAD_COLOR
        if len(table) > 0 and head_color not in used and color != head_color:
            return head_color

        if color > head_color:
            candidate = smallest_free_color(used, start=head_color + 1)
            if candidate < color:
                return candidate

        return color

    def recompute_color(self) -> bool:
        """
        Apply one coloring step.

        Returns:
            True if the color changed (caller must recompute the role)
        """
        if self.context.neighbor_table is None:
            raise RuntimeError("neighbor table not initialized")

        old_color = self.context.color
        new_color = self.choose_color()
        if new_color == old_color:
            return False

        self.context.color = new_color
        self.context.metrics.color_changes += 1
        logger.info(
            f"[{get_node_name(self.context.node_id)}] changes color from "
            f"{old_color} to {new_color}"
        )
        return True

    def _neighbors(self) -> Iterable:
        return self.context.neighbor_table.values()
