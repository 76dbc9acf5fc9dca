import logging
import math
from dataclasses import dataclass, fields, asdict
from typing import Any, Dict

from gccp.protocol.errors import ConfigurationError

logger = logging.getLogger(__name__)


class ProtocolConfig:
    # Discovery (Layer A)
    HELLO_INTERVAL = 1.0        # seconds - beacon period
    HELLO_JITTER = 0.1          # seconds - added to each beacon period
    NEIGHBOR_TIMEOUT = 3.5      # seconds - stale entry removal

    # Maintenance (Layer B: prune + coloring + roles)
    MAINTENANCE_INTERVAL = 2.0  # seconds
    COLORING_INTERVAL = 1.0     # seconds - delay before the first coloring tick
    COLORING_JITTER = 0.5       # seconds

    # Data plane (Layer C)
    DATA_INTERVAL = 5.0         # seconds - 0 disables generation
    DATA_JITTER = 1.0           # seconds
    FORWARD_JITTER = 0.01       # seconds - max delay of a jittered copy
    INITIAL_TTL = 8             # hops
    PAYLOAD_SIZE = 64           # bytes

    # Addressing
    LOCAL_PORT = 5000
    DEST_PORT = 5000
    NUM_HOSTS = 0               # size of the id space for random destinations

    # ==========================================================================
    # Protocol Constants
    # ==========================================================================

    # Sentinels
    UNCOLORED = -1
    NO_CLUSTER = -1
    ANY_HOP = -1

    # The color reserved for cluster heads
    CLUSTER_HEAD_COLOR = 0

    # Header TTL is a single byte
    MAX_TTL = 255

    # TLV limits
    TLV_MAX_VALUE_SIZE = 255

    # Maximum sequence number (header field is 32-bit unsigned)
    MAX_SEQUENCE_NUMBER = 2**32 - 1

    MAX_PORT = 65535


# camelCase option names as they appear in scenario files
OPTION_ALIASES = {
    'helloInterval': 'hello_interval',
    'helloJitter': 'hello_jitter',
    'neighborTimeout': 'neighbor_timeout',
    'maintenanceInterval': 'maintenance_interval',
    'coloringInterval': 'coloring_interval',
    'coloringJitter': 'coloring_jitter',
    'dataInterval': 'data_interval',
    'dataJitter': 'data_jitter',
    'forwardJitter': 'forward_jitter',
    'initialTtl': 'initial_ttl',
    'payloadSize': 'payload_size',
    'localPort': 'local_port',
    'destPort': 'dest_port',
    'numHosts': 'num_hosts',
}


@dataclass
class NodeConfig:
    """
    Per-node configuration.

    Defaults come from ProtocolConfig. The node count used to pick random
    data destinations is part of each node's configuration rather than a
    shared global.
    """
    hello_interval: float = ProtocolConfig.HELLO_INTERVAL
    hello_jitter: float = ProtocolConfig.HELLO_JITTER
    neighbor_timeout: float = ProtocolConfig.NEIGHBOR_TIMEOUT
    maintenance_interval: float = ProtocolConfig.MAINTENANCE_INTERVAL
    coloring_interval: float = ProtocolConfig.COLORING_INTERVAL
    coloring_jitter: float = ProtocolConfig.COLORING_JITTER
    data_interval: float = ProtocolConfig.DATA_INTERVAL
    data_jitter: float = ProtocolConfig.DATA_JITTER
    forward_jitter: float = ProtocolConfig.FORWARD_JITTER
    initial_ttl: int = ProtocolConfig.INITIAL_TTL
    payload_size: int = ProtocolConfig.PAYLOAD_SIZE
    local_port: int = ProtocolConfig.LOCAL_PORT
    dest_port: int = ProtocolConfig.DEST_PORT
    num_hosts: int = ProtocolConfig.NUM_HOSTS

    def validate(self) -> 'NodeConfig':
        """
        Check every option.

        Returns:
            self, so construction and validation can be chained

        Raises:
            ConfigurationError: on the first invalid value
        """
        non_negative = [
            'hello_interval', 'hello_jitter', 'neighbor_timeout',
            'coloring_interval', 'coloring_jitter',
            'data_interval', 'data_jitter', 'forward_jitter',
        ]
        for name in non_negative:
            value = getattr(self, name)
            if not isinstance(value, (int, float)) or isinstance(value, bool):
                raise ConfigurationError(f"{name} must be a number, got {value!r}")
            if not math.isfinite(value) or value < 0:
                raise ConfigurationError(f"{name} must be finite and non-negative, got {value}")

        interval = self.maintenance_interval
        if not isinstance(interval, (int, float)) or isinstance(interval, bool) \
                or not math.isfinite(interval) or interval <= 0:
            raise ConfigurationError(
                f"maintenance_interval must be positive, got {self.maintenance_interval!r}"
            )

        integers = {
            'initial_ttl': (0, ProtocolConfig.MAX_TTL),
            'payload_size': (0, ProtocolConfig.TLV_MAX_VALUE_SIZE),
            'local_port': (0, ProtocolConfig.MAX_PORT),
            'dest_port': (0, ProtocolConfig.MAX_PORT),
            'num_hosts': (0, None),
        }
        for name, (min_val, max_val) in integers.items():
            value = getattr(self, name)
            if not isinstance(value, int) or isinstance(value, bool):
                raise ConfigurationError(f"{name} must be an integer, got {value!r}")
            if value < min_val:
                raise ConfigurationError(f"{name} must be >= {min_val}, got {value}")
            if max_val is not None and value > max_val:
                raise ConfigurationError(f"{name} must be <= {max_val}, got {value}")

        return self

    @property
    def data_enabled(self) -> bool:
        """Data generation needs a period and at least one other host."""
        return self.data_interval > 0 and self.num_hosts >= 2

    @classmethod
    def from_dict(cls, values: Dict[str, Any]) -> 'NodeConfig':
        """
        Build a validated config from a mapping.

        Accepts snake_case attribute names and camelCase option names.

        Raises:
            ConfigurationError: unknown option or invalid value
        """
        known = {f.name for f in fields(cls)}
        kwargs = {}
        for key, value in values.items():
            name = OPTION_ALIASES.get(key, key)
            if name not in known:
                raise ConfigurationError(f"Unknown configuration option: {key}")
            kwargs[name] = value
        return cls(**kwargs).validate()

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def validate_config():
    """Validate configuration at module load time."""
    if ProtocolConfig.CLUSTER_HEAD_COLOR < 0:
        raise ValueError("CLUSTER_HEAD_COLOR must be a valid (non-negative) color")

    sentinels = [
        ('UNCOLORED', ProtocolConfig.UNCOLORED),
        ('NO_CLUSTER', ProtocolConfig.NO_CLUSTER),
        ('ANY_HOP', ProtocolConfig.ANY_HOP),
    ]
    for name, value in sentinels:
        if value >= 0:
            raise ValueError(f"{name} must be negative, got {value}")

    if not (0 < ProtocolConfig.INITIAL_TTL <= ProtocolConfig.MAX_TTL):
        raise ValueError(f"INITIAL_TTL must be in (0, {ProtocolConfig.MAX_TTL}]")

    # Default node configuration must itself be valid
    try:
        NodeConfig().validate()
    except ConfigurationError as e:
        raise ValueError(f"Default configuration is invalid: {e}") from e


# Validate configuration on import
validate_config()
