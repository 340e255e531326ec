"""Shared pytest fixtures"""

import pytest
import yaml
from rich.console import Console
from io import StringIO

from aws_inspection_network.config import NetworkConfig
from aws_inspection_network.resolver import (
    InspectionHubBuilder,
    ResolutionPipeline,
    SpokeAttachmentResolver,
    build_topology,
    resolve,
)

AZS = ["ap-southeast-2a", "ap-southeast-2b", "ap-southeast-2c"]


@pytest.fixture
def mock_console():
    """Create a mock console that captures output"""
    output = StringIO()
    console = Console(file=output, force_terminal=True, width=160)
    console._output = output
    return console


@pytest.fixture
def config_data():
    """Landing zone with one hub and two spokes across three AZs"""
    return {
        "name_prefix": "lz",
        "region": "ap-southeast-2",
        "inspection_vpc_cidr": "10.0.0.0/16",
        "availability_zones": list(AZS),
        "spokes": [
            {"name": "nonprod", "cidr": "10.1.0.0/16"},
            {"name": "prod", "cidr": "10.2.0.0/16"},
        ],
        "log_bucket_name": "lz-firewall-logs",
        "kms_key_id": "arn:aws:kms:ap-southeast-2:123456789012:key/example",
        "sns_topic_arn": "arn:aws:sns:ap-southeast-2:123456789012:lz-alerts",
    }


@pytest.fixture
def make_config(config_data):
    """Build a NetworkConfig from the sample data with top-level overrides"""

    def _make(**overrides) -> NetworkConfig:
        return NetworkConfig.from_dict({**config_data, **overrides})

    return _make


@pytest.fixture
def network_config(make_config):
    return make_config()


@pytest.fixture
def config_file(tmp_path, config_data):
    path = tmp_path / "network.yaml"
    path.write_text(yaml.safe_dump(config_data))
    return path


@pytest.fixture
def topology(network_config):
    """Topology straight out of build_topology, nothing resolved yet"""
    return build_topology(
        network_config.declarations(),
        name_prefix=network_config.name_prefix,
        region=network_config.region,
    )


@pytest.fixture
def hub_topology(topology):
    """Topology with the inspection hub built"""
    InspectionHubBuilder(topology).build()
    return topology


@pytest.fixture
def spoke_report(hub_topology):
    """Spokes attached but not yet propagated"""
    return SpokeAttachmentResolver(hub_topology).resolve()


@pytest.fixture
def resolved(network_config):
    """Full pipeline result for the sample landing zone"""
    return resolve(network_config)


@pytest.fixture
def draft(network_config):
    """Full pipeline result left unsealed so tests can break it"""
    return ResolutionPipeline(network_config).run(seal=False)
