"""Tests for upstream topology parsing."""

import pytest

from dns_router.core.errors import TopologyError
from dns_router.core.upstream import Endpoint, Group, parse_endpoint, parse_topology


class TestParseEndpoint:
    def test_host_only(self):
        assert parse_endpoint("8.8.8.8") == Endpoint("8.8.8.8", 53)

    def test_host_and_port(self):
        assert parse_endpoint("127.0.0.1:5353") == Endpoint("127.0.0.1", 5353)

    def test_hostname(self):
        assert parse_endpoint("dns.example.net") == Endpoint("dns.example.net", 53)

    def test_ipv6(self):
        assert parse_endpoint("2001:db8::1") == Endpoint("2001:db8::1", 53)
        assert parse_endpoint("[::1]:5353") == Endpoint("::1", 5353)
        assert parse_endpoint("[::1]") == Endpoint("::1", 53)

    @pytest.mark.parametrize(
        "text", ["bad host!", "1.2.3.4:port", "[::1", "[::1]5353", "1.2.3.4:0"]
    )
    def test_invalid(self, text):
        with pytest.raises(TopologyError):
            parse_endpoint(text)

    def test_str(self):
        assert str(Endpoint("1.1.1.1")) == "1.1.1.1:53"
        assert str(Endpoint("::1", 5353)) == "[::1]:5353"


class TestParseTopology:
    def test_string_is_single_endpoint(self):
        assert parse_topology("1.1.1.1") == Endpoint("1.1.1.1")

    def test_list_is_group(self):
        topology = parse_topology(["1.1.1.1", "8.8.8.8:5353"])
        assert topology == Group((Endpoint("1.1.1.1"), Endpoint("8.8.8.8", 5353)))

    def test_mapping(self):
        assert parse_topology({"address": "9.9.9.9", "port": "5300"}) == Endpoint(
            "9.9.9.9", 5300
        )

    def test_nested_groups(self):
        topology = parse_topology(["1.1.1.1", ["8.8.8.8", "8.8.4.4"]])

        assert isinstance(topology.children[1], Group)
        assert [e.address for e in topology.endpoints()] == [
            "1.1.1.1",
            "8.8.8.8",
            "8.8.4.4",
        ]
        assert str(topology) == "[1.1.1.1:53, [8.8.8.8:53, 8.8.4.4:53]]"

    def test_empty_list(self):
        assert parse_topology([]) == Group(())

    def test_nodes_pass_through(self):
        endpoint = Endpoint("1.1.1.1")
        assert parse_topology(endpoint) is endpoint

    @pytest.mark.parametrize("value", [42, {"port": 53}, ["1.1.1.1", None]])
    def test_invalid(self, value):
        with pytest.raises(TopologyError):
            parse_topology(value)
