"""Tests for declarative network configuration."""

import json

import pytest

from aws_inspection_network.config import (
    HUB_NAME,
    FirewallConfig,
    NetworkConfig,
    load_config,
)
from aws_inspection_network.errors import ConfigurationError


class TestNetworkConfig:
    def test_defaults(self, network_config):
        assert network_config.amazon_side_asn == 64512
        assert network_config.max_workers == 4
        assert network_config.firewall == FirewallConfig()
        assert network_config.firewall.spoke_to_spoke == "inspect"

    def test_host_bits_rejected(self, make_config):
        with pytest.raises(ConfigurationError, match="Invalid CIDR block"):
            make_config(inspection_vpc_cidr="10.0.0.1/16")

    def test_invalid_cidr_is_configuration_error(self, make_config):
        with pytest.raises(ConfigurationError, match="inspection_vpc_cidr"):
            make_config(inspection_vpc_cidr="10.0.0.0/33")

    def test_invalid_spoke_name(self, make_config):
        with pytest.raises(ConfigurationError, match="spokes.0.name"):
            make_config(spokes=[{"name": "Prod_1", "cidr": "10.1.0.0/16"}])

    def test_unknown_keys_rejected(self, make_config):
        with pytest.raises(ConfigurationError, match="transit_gateway"):
            make_config(transit_gateway="tgw-123")

    def test_missing_required_field(self, config_data):
        del config_data["inspection_vpc_cidr"]
        with pytest.raises(ConfigurationError, match="inspection_vpc_cidr"):
            NetworkConfig.from_dict(config_data)

    def test_invalid_spoke_to_spoke_posture(self, make_config):
        with pytest.raises(ConfigurationError):
            make_config(firewall={"spoke_to_spoke": "allow"})


class TestDeclarations:
    def test_hub_first_then_spokes_in_order(self, network_config):
        decls = network_config.declarations()
        assert [d.name for d in decls] == [HUB_NAME, "nonprod", "prod"]
        assert [d.role for d in decls] == ["hub", "spoke", "spoke"]

    def test_spokes_default_to_hub_zones(self, network_config):
        hub, nonprod, _ = network_config.declarations()
        assert nonprod.availability_zones == hub.availability_zones

    def test_spoke_zones_can_be_narrowed(self, make_config):
        config = make_config(
            spokes=[
                {
                    "name": "dev",
                    "cidr": "10.1.0.0/16",
                    "availability_zones": ["ap-southeast-2a"],
                }
            ]
        )
        assert config.declarations()[1].availability_zones == ["ap-southeast-2a"]

    def test_static_routes_carried(self, make_config):
        config = make_config(
            spokes=[
                {
                    "name": "dev",
                    "cidr": "10.1.0.0/16",
                    "static_routes": [
                        {"destination": "192.168.0.0/16", "target": "blackhole"}
                    ],
                }
            ]
        )
        route = config.declarations()[1].static_routes[0]
        assert route.destination == "192.168.0.0/16"
        assert route.target == "blackhole"

    def test_name_tag(self, network_config):
        assert network_config.name_tag("prod") == "lz-prod"


class TestLoadConfig:
    def test_load_yaml(self, config_file):
        config = load_config(config_file)
        assert config.name_prefix == "lz"
        assert [s.name for s in config.spokes] == ["nonprod", "prod"]

    def test_load_json(self, tmp_path, config_data):
        path = tmp_path / "network.json"
        path.write_text(json.dumps(config_data))
        assert load_config(path).inspection_vpc_cidr == "10.0.0.0/16"

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigurationError, match="not found"):
            load_config(tmp_path / "missing.yaml")

    def test_unparseable_yaml(self, tmp_path):
        path = tmp_path / "broken.yaml"
        path.write_text("spokes: [unterminated\n")
        with pytest.raises(ConfigurationError, match="Cannot parse"):
            load_config(path)

    def test_top_level_must_be_mapping(self, tmp_path):
        path = tmp_path / "list.yaml"
        path.write_text("- one\n- two\n")
        with pytest.raises(ConfigurationError, match="mapping"):
            load_config(path)

    def test_undecodable_bytes(self, tmp_path):
        path = tmp_path / "latin.yaml"
        path.write_bytes(b"name_prefix: \xff\xfe lz\n")
        with pytest.raises(ConfigurationError, match="Cannot read") as exc:
            load_config(path)
        assert isinstance(exc.value.__cause__, UnicodeDecodeError)

    def test_directory_instead_of_file(self, tmp_path):
        path = tmp_path / "network.yaml"
        path.mkdir()
        with pytest.raises(ConfigurationError, match="Cannot read"):
            load_config(path)
