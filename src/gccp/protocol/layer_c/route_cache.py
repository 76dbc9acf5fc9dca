from typing import Dict, Optional, Set, Tuple
import logging

logger = logging.getLogger(__name__)


class BackboneRouteCache:
    """
    Destination id -> gateway neighbor id, learned by cluster heads from the
    gateway a packet from that destination arrived through.

    Entries are hints: callers revalidate against the neighbor table before
    use and evict on failure.
    """

    def __init__(self):
        self.routes: Dict[int, int] = {}

    def learn(self, destination_id: int, gateway_id: int) -> bool:
        """
        Record (or refresh) a reverse-path hint.

        Returns:
            True if the entry is new or changed
        """
        previous = self.routes.get(destination_id)
        self.routes[destination_id] = gateway_id
        if previous != gateway_id:
            logger.debug(f"Route to {destination_id} via gateway {gateway_id}")
            return True
        return False

    def lookup(self, destination_id: int) -> Optional[int]:
        return self.routes.get(destination_id)

    def evict(self, destination_id: int) -> bool:
        if self.routes.pop(destination_id, None) is None:
            return False
        logger.debug(f"Evicted route to {destination_id}")
        return True

    def __contains__(self, destination_id) -> bool:
        return destination_id in self.routes

    def __len__(self) -> int:
        return len(self.routes)


class SeenSet:
    """(source_id, seq_num) pairs already processed. Grows monotonically."""

    def __init__(self):
        self._seen: Set[Tuple[int, int]] = set()

    def add(self, key: Tuple[int, int]) -> bool:
        """
        Mark a packet as processed.

        Returns:
            True if it had not been seen before
        """
        if key in self._seen:
            return False
        self._seen.add(key)
        return True

    def __contains__(self, key) -> bool:
        return key in self._seen

    def __len__(self) -> int:
        return len(self._seen)
