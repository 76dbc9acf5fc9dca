"""
Tests for NodeConfig - option parsing and validation.
"""
import pytest

from gccp.protocol.config import NodeConfig, ProtocolConfig, validate_config
from gccp.protocol.errors import ConfigurationError


class TestDefaults:
    """Tests for default configuration values."""

    def test_defaults_match_protocol_constants(self):
        """NodeConfig defaults come from ProtocolConfig."""
        config = NodeConfig()

        assert config.hello_interval == ProtocolConfig.HELLO_INTERVAL
        assert config.neighbor_timeout == ProtocolConfig.NEIGHBOR_TIMEOUT
        assert config.maintenance_interval == ProtocolConfig.MAINTENANCE_INTERVAL
        assert config.initial_ttl == ProtocolConfig.INITIAL_TTL
        assert config.num_hosts == 0

    def test_default_config_is_valid(self):
        """Default configuration passes validation."""
        assert NodeConfig().validate() is not None

    def test_module_constants_validate(self):
        """Import-time validation passes for shipped constants."""
        validate_config()

    def test_data_disabled_without_hosts(self):
        """Data generation needs at least two hosts."""
        assert not NodeConfig(num_hosts=1).data_enabled
        assert NodeConfig(num_hosts=2).data_enabled

    def test_data_disabled_with_zero_interval(self):
        """A data interval of 0 disables generation."""
        assert not NodeConfig(num_hosts=10, data_interval=0).data_enabled


class TestValidation:
    """Tests for rejection of invalid values."""

    @pytest.mark.parametrize("name", [
        'hello_interval', 'hello_jitter', 'neighbor_timeout',
        'coloring_interval', 'data_interval', 'forward_jitter',
    ])
    def test_negative_interval_rejected(self, name):
        """Intervals, jitters and timeouts must be non-negative."""
        with pytest.raises(ConfigurationError):
            NodeConfig(**{name: -1.0}).validate()

    @pytest.mark.parametrize("name", [
        'hello_interval', 'hello_jitter', 'neighbor_timeout',
        'coloring_interval', 'data_interval', 'maintenance_interval',
    ])
    @pytest.mark.parametrize("value", [float('nan'), float('inf')])
    def test_non_finite_rejected(self, name, value):
        """NaN and infinity compare false against every bound."""
        with pytest.raises(ConfigurationError):
            NodeConfig(**{name: value}).validate()

    def test_zero_maintenance_interval_rejected(self):
        """The maintenance period must be strictly positive."""
        with pytest.raises(ConfigurationError):
            NodeConfig(maintenance_interval=0).validate()

    def test_ttl_out_of_range_rejected(self):
        """TTL must fit the one-byte header field."""
        with pytest.raises(ConfigurationError):
            NodeConfig(initial_ttl=256).validate()

    def test_payload_too_large_rejected(self):
        """Payload must fit a single TLV."""
        with pytest.raises(ConfigurationError):
            NodeConfig(payload_size=300).validate()

    def test_bad_port_rejected(self):
        with pytest.raises(ConfigurationError):
            NodeConfig(local_port=70000).validate()

    def test_non_integer_num_hosts_rejected(self):
        with pytest.raises(ConfigurationError):
            NodeConfig(num_hosts=2.5).validate()

    def test_configuration_error_is_value_error(self):
        """Callers may catch ConfigurationError as ValueError."""
        with pytest.raises(ValueError):
            NodeConfig(hello_interval=-1).validate()


class TestFromDict:
    """Tests for building a config from option mappings."""

    def test_camel_case_aliases(self):
        """Option names as they appear in scenario files are accepted."""
        config = NodeConfig.from_dict({'helloInterval': 0.5, 'numHosts': 12, 'initialTtl': 4})

        assert config.hello_interval == 0.5
        assert config.num_hosts == 12
        assert config.initial_ttl == 4

    def test_snake_case_names(self):
        config = NodeConfig.from_dict({'neighbor_timeout': 7.0})
        assert config.neighbor_timeout == 7.0

    def test_unknown_option_rejected(self):
        with pytest.raises(ConfigurationError, match="Unknown configuration option"):
            NodeConfig.from_dict({'broadcastRadius': 3})

    def test_from_dict_validates(self):
        with pytest.raises(ConfigurationError):
            NodeConfig.from_dict({'dataInterval': -5})

    def test_to_dict_round_trip(self):
        config = NodeConfig(num_hosts=4, payload_size=16)
        assert NodeConfig.from_dict(config.to_dict()) == config
