"""Tests for the configuration schema module."""

import re

import pytest

from dns_router.config.schema import (
    AliasConfig,
    LoggingConfig,
    RouterConfig,
    ServerConfig,
    create_default_config,
    parse_pattern,
)
from dns_router.config.validators import (
    validate_bind_address,
    validate_domain_suffix,
    validate_port,
    validate_positive_int,
)
from dns_router.core.errors import PatternError, TopologyError, UnknownSymbolError
from dns_router.core.upstream import Endpoint, Group


class TestValidationFunctions:
    """Test validation utility functions."""

    def test_validate_bind_address(self):
        """Test bind address validation."""
        assert validate_bind_address("127.0.0.1") is True
        assert validate_bind_address("::1") is True
        assert validate_bind_address("invalid") is False
        assert validate_bind_address("") is False

    def test_validate_port(self):
        """Test port number validation."""
        assert validate_port(53) is True
        assert validate_port(65535) is True
        assert validate_port(0) is False
        assert validate_port(65536) is False
        assert validate_port(True) is False

    def test_validate_positive_int(self):
        """Test positive integer validation."""
        assert validate_positive_int(1) is True
        assert validate_positive_int(0) is False
        assert validate_positive_int(-1) is False
        assert validate_positive_int("5") is False

    def test_validate_domain_suffix(self):
        """Test zone suffix validation."""
        assert validate_domain_suffix("example.com") is True
        assert validate_domain_suffix("local") is True
        assert validate_domain_suffix("example.com.") is True
        assert validate_domain_suffix("bad suffix") is False
        assert validate_domain_suffix("") is False


class TestServerConfig:
    """Test ServerConfig validation."""

    def test_defaults(self):
        config = ServerConfig()
        assert config.bind_address == "127.0.0.1"
        assert config.port == 5353
        assert config.enable_udp and config.enable_tcp

    def test_invalid_bind_address(self):
        with pytest.raises(ValueError, match="Invalid bind address"):
            ServerConfig(bind_address="invalid")

    def test_invalid_port(self):
        with pytest.raises(ValueError, match="Invalid DNS port"):
            ServerConfig(port=0)

    def test_non_boolean_flag(self):
        with pytest.raises(ValueError, match="Enable UDP must be boolean"):
            ServerConfig(enable_udp="yes")

    def test_needs_a_protocol(self):
        with pytest.raises(ValueError, match="At least one of UDP and TCP"):
            ServerConfig(enable_udp=False, enable_tcp=False)


class TestLoggingConfig:
    """Test LoggingConfig validation."""

    def test_invalid_level(self):
        with pytest.raises(ValueError, match="Invalid log level"):
            LoggingConfig(level="LOUD")

    def test_invalid_format(self):
        with pytest.raises(ValueError, match="Invalid log format"):
            LoggingConfig(format="xml")

    def test_invalid_rotation(self):
        with pytest.raises(ValueError, match="Max size MB must be positive"):
            LoggingConfig(max_size_mb=0)

        with pytest.raises(ValueError, match="Backup count must be positive"):
            LoggingConfig(backup_count=-1)


class TestAliasConfig:
    def test_valid(self):
        alias = AliasConfig(fake="local.test", real="example.com")
        assert alias.fake == "local.test"

    def test_invalid(self):
        with pytest.raises(ValueError, match="Invalid alias suffix"):
            AliasConfig(fake="not a zone", real="example.com")

        with pytest.raises(ValueError, match="Invalid alias target"):
            AliasConfig(fake="local.test", real="")


class TestParsePattern:
    def test_slashes_make_a_regex(self):
        pattern = parse_pattern("/\\.example\\.com$/")
        assert isinstance(pattern, re.Pattern)
        assert pattern.search("www.example.com")

    def test_plain_strings_and_nesting(self):
        parsed = parse_pattern({"name": ["example.com", "/^www\\./"], "type": "A"})

        assert parsed["name"][0] == "example.com"
        assert isinstance(parsed["name"][1], re.Pattern)
        assert parsed["type"] == "A"

    def test_invalid_regex(self):
        with pytest.raises(ValueError, match="Invalid regular expression"):
            parse_pattern("/(unclosed/")


class TestRouterConfig:
    """Test RouterConfig validation and compilation."""

    def test_default_config(self):
        config = create_default_config()

        assert isinstance(config.server, ServerConfig)
        assert config.timeout == 10000
        assert config.topology == Group(())
        assert config.aliases == [] and config.proxy == []

    def test_topology_is_parsed(self):
        config = RouterConfig(upstream=["1.1.1.1", ["8.8.8.8", "9.9.9.9:5353"]])

        assert config.topology.children[0] == Endpoint("1.1.1.1")
        assert list(config.topology.endpoints())[-1] == Endpoint("9.9.9.9", 5353)

    def test_single_upstream(self):
        assert RouterConfig(upstream="1.1.1.1").topology == Endpoint("1.1.1.1")

    def test_invalid_upstream(self):
        with pytest.raises(TopologyError):
            RouterConfig(upstream=["not a server"])

    def test_invalid_timeout(self):
        with pytest.raises(ValueError, match="Timeout must be a positive"):
            RouterConfig(timeout=0)

    def test_aliases_from_mappings(self):
        config = RouterConfig(aliases=[{"fake": "local.test", "real": "example.com"}])
        assert config.aliases == [AliasConfig("local.test", "example.com")]

    def test_single_proxy_route(self):
        config = RouterConfig(proxy="/\\.org$/")

        assert len(config.proxy) == 1
        assert isinstance(config.proxy[0], re.Pattern)

    def test_proxy_routes_compiled_eagerly(self):
        with pytest.raises(UnknownSymbolError):
            RouterConfig(proxy=[{"type": "NOPE"}])

        with pytest.raises(PatternError):
            RouterConfig(proxy=[42])
