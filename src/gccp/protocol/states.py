from enum import Enum, IntEnum


class NodeRole(IntEnum):
    """Role of a node in the clustering hierarchy. Values are wire values."""
    UNDECIDED = 0     # No valid color / cluster attachment yet
    CLUSTER_HEAD = 1  # Color 0, root of a cluster
    MEMBER = 2        # Attached to one directly heard CH, hears no foreign cluster
    GATEWAY = 3       # Attached to a CH but also hears another cluster


BACKBONE_ROLES = frozenset({NodeRole.CLUSTER_HEAD, NodeRole.GATEWAY})


class DropReason(Enum):
    """Why a data packet was discarded. Never surfaced to callers."""
    ORPHANED = "orphaned"                    # No known cluster head
    TTL_EXPIRED = "ttl_expired"
    DUPLICATE = "duplicate"
    NEXT_HOP_MISMATCH = "next_hop_mismatch"
    MEMBER_STOP = "member_stop"              # Members never route
    NOT_BACKBONE = "not_backbone"            # Undecided nodes never route
    NO_BACKBONE = "no_backbone"              # Nobody to flood/bridge to
    UNKNOWN_MESSAGE = "unknown_message"


class TimerKind(Enum):
    """Periodic self-scheduled events of a node."""
    HELLO = "hello"
    MAINTENANCE = "maintenance"
    DATA = "data"
