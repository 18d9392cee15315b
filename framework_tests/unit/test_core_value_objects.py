"""Tests for image references, container names and port mappings."""

import pytest

from dockside.core.errors import ConfigurationError
from dockside.core.value_objects import ImageRef, PortMapping, validate_container_name


class TestImageRef:
    """Test ImageRef parsing and formatting."""

    def test_parse_with_tag(self):
        ref = ImageRef.parse("hashicorp/consul:1.16")

        assert ref.repository == "hashicorp/consul"
        assert ref.tag == "1.16"
        assert str(ref) == "hashicorp/consul:1.16"

    def test_parse_without_tag_defaults_to_latest(self):
        assert ImageRef.parse("redis") == ImageRef("redis", "latest")

    def test_registry_port_is_not_a_tag(self):
        ref = ImageRef.parse("registry.local:5000/team/app")

        assert ref.repository == "registry.local:5000/team/app"
        assert ref.tag == "latest"

    def test_registry_port_with_tag(self):
        ref = ImageRef.parse("registry.local:5000/app:2")

        assert ref.repository == "registry.local:5000/app"
        assert ref.tag == "2"

    def test_basename(self):
        assert ImageRef.parse("ghcr.io/navikt/mock-oauth2-server:0.3.5").basename == "mock-oauth2-server"

    @pytest.mark.parametrize("reference", ["", "   "])
    def test_empty_reference_rejected(self, reference):
        with pytest.raises(ConfigurationError):
            ImageRef.parse(reference)

    def test_empty_tag_rejected(self):
        with pytest.raises(ConfigurationError):
            ImageRef("redis", "")

    def test_hashable(self):
        assert len({ImageRef("redis"), ImageRef.parse("redis:latest")}) == 1


class TestPortMapping:
    """Test PortMapping validation."""

    def test_random_host_port(self):
        mapping = PortMapping(8200)

        assert mapping.host_port is None
        assert mapping.key == "8200/tcp"
        assert str(mapping) == "*->8200/tcp"

    def test_fixed_host_port(self):
        assert str(PortMapping(8200, 9200)) == "9200->8200/tcp"

    @pytest.mark.parametrize("container_port", [0, 65536, -1])
    def test_invalid_container_port(self, container_port):
        with pytest.raises(ConfigurationError, match="container port"):
            PortMapping(container_port)

    def test_invalid_host_port(self):
        with pytest.raises(ConfigurationError, match="host port"):
            PortMapping(80, 70000)

    def test_invalid_protocol(self):
        with pytest.raises(ConfigurationError, match="protocol"):
            PortMapping(53, protocol="sctp")

    def test_udp_key(self):
        assert PortMapping(53, protocol="udp").key == "53/udp"


class TestContainerName:
    @pytest.mark.parametrize("name", ["vault", "vault-1.x_Y", "0db"])
    def test_valid_names(self, name):
        assert validate_container_name(name) == name

    @pytest.mark.parametrize("name", ["", " ", "-leading", "has space", "slash/name"])
    def test_invalid_names(self, name):
        with pytest.raises(ConfigurationError):
            validate_container_name(name)
