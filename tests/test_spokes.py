"""Tests for the spoke attachment resolver."""

import logging

import pytest

from aws_inspection_network.errors import (
    AttachmentConflictError,
    RouteBypassError,
    TopologyError,
)
from aws_inspection_network.models import DEFAULT_ROUTE
from aws_inspection_network.resolver import (
    InspectionHubBuilder,
    SpokeAttachmentResolver,
    build_topology,
)

AZS = ["ap-southeast-2a", "ap-southeast-2b", "ap-southeast-2c"]


@pytest.fixture
def attach(make_config):
    """Build hub plus spokes for the given spoke list and resolve them"""

    def _attach(spokes, max_workers=4):
        config = make_config(spokes=spokes)
        topology = build_topology(config.declarations(), name_prefix="lz")
        InspectionHubBuilder(topology).build()
        report = SpokeAttachmentResolver(topology, max_workers=max_workers).resolve()
        return topology, report

    return _attach


class TestSpokeAttachment:
    def test_both_spokes_attached(self, hub_topology, spoke_report):
        assert [r.name for r in spoke_report.resolved] == ["nonprod", "prod"]
        assert spoke_report.failures == []
        assert [v.name for v in hub_topology.spokes] == ["nonprod", "prod"]
        assert hub_topology.candidates == []

    def test_single_default_route_to_hub(self, hub_topology, spoke_report):
        hub_attachment = hub_topology.transit_gateway.inspection_attachment
        for resolution in spoke_report.resolved:
            defaults = resolution.route_table.default_routes()
            assert len(defaults) == 1
            assert defaults[0].target == hub_attachment.id
            assert resolution.route_table.kind == "spoke"

    def test_vpc_default_route_to_transit_gateway(self, hub_topology, spoke_report):
        tgw = hub_topology.transit_gateway
        table = spoke_report.resolution("prod").vpc_route_table
        assert table.route_for(DEFAULT_ROUTE).target == tgw.id
        assert table.route_for("10.2.0.0/16").target == "local"
        assert table in spoke_report.resolution("prod").vpc.route_tables

    def test_attachment_uses_private_subnet_per_az(self, spoke_report):
        resolution = spoke_report.resolution("nonprod")
        vpc = resolution.vpc
        assert resolution.attachment.subnet_ids == [
            vpc.subnets_in(az, "private")[0].id for az in AZS
        ]
        assert resolution.attachment.resource_id == vpc.id
        assert not resolution.attachment.appliance_mode

    def test_attachments_registered_on_transit_gateway(
        self, hub_topology, spoke_report
    ):
        tgw = hub_topology.transit_gateway
        for resolution in spoke_report.resolved:
            assert tgw.attachment_for(resolution.vpc.id) is resolution.attachment
            assert tgw.route_table(resolution.route_table.id) is resolution.route_table

    def test_requires_hub(self, topology):
        with pytest.raises(TopologyError, match="must be built"):
            SpokeAttachmentResolver(topology).resolve()

    def test_worker_count_does_not_change_result(self, attach):
        spokes = [{"name": f"s{i}", "cidr": f"10.{i}.0.0/16"} for i in range(1, 8)]
        _, serial = attach(spokes, max_workers=1)
        _, parallel = attach(spokes, max_workers=8)
        assert [r.attachment.id for r in serial.resolved] == [
            r.attachment.id for r in parallel.resolved
        ]


class TestSpokeConflicts:
    def test_duplicate_cidr_rejects_second_only(self, attach):
        topology, report = attach(
            [
                {"name": "nonprod", "cidr": "10.1.0.0/16"},
                {"name": "nonprod-copy", "cidr": "10.1.0.0/16"},
            ]
        )
        assert [r.name for r in report.resolved] == ["nonprod"]
        assert len(report.failures) == 1
        failure = report.failures[0]
        assert isinstance(failure, AttachmentConflictError)
        assert failure.entity_ref == "nonprod-copy"
        assert failure.cidrs == ("10.1.0.0/16", "10.1.0.0/16")
        assert [v.name for v in topology.spokes] == ["nonprod"]
        assert len(topology.transit_gateway.attachments) == 2

    def test_spoke_inside_hub_cidr(self, attach):
        _, report = attach([{"name": "inner", "cidr": "10.0.128.0/17"}])
        assert report.resolved == []
        assert isinstance(report.failures[0], AttachmentConflictError)
        assert "hub" in report.failures[0].message

    def test_all_failures_reported_in_one_pass(self, attach, caplog):
        caplog.set_level(logging.WARNING, logger="aws_inspection_network")
        _, report = attach(
            [
                {"name": "a", "cidr": "10.0.0.0/24"},
                {"name": "b", "cidr": "10.1.0.0/16"},
                {"name": "c", "cidr": "10.1.128.0/17"},
                {"name": "d", "cidr": "10.3.0.0/16"},
            ]
        )
        assert [r.name for r in report.resolved] == ["b", "d"]
        assert [f.entity_ref for f in report.failures] == ["a", "c"]
        assert "Spoke a rejected" in caplog.text
        assert "Spoke c rejected" in caplog.text


class TestStaticRoutes:
    def _spoke(self, *routes):
        return [
            {"name": "dev", "cidr": "10.1.0.0/16", "static_routes": list(routes)}
        ]

    def test_hub_and_blackhole_routes(self, attach):
        topology, report = attach(
            self._spoke(
                {"destination": "172.16.0.0/12"},
                {"destination": "192.168.0.0/16", "target": "blackhole"},
            )
        )
        table = report.resolution("dev").route_table
        hub_attachment = topology.transit_gateway.inspection_attachment
        assert table.route_for("172.16.0.0/12").target == hub_attachment.id
        blackhole = table.route_for("192.168.0.0/16")
        assert blackhole.state == "blackhole"
        assert blackhole.target is None
        assert len(table.default_routes()) == 1

    def test_redeclared_default_route(self, attach):
        _, report = attach(self._spoke({"destination": DEFAULT_ROUTE}))
        assert isinstance(report.failures[0], RouteBypassError)
        assert "default route" in report.failures[0].message

    def test_direct_target_rejected(self, attach):
        _, report = attach(
            self._spoke({"destination": "172.16.0.0/12", "target": "igw"})
        )
        failure = report.failures[0]
        assert isinstance(failure, RouteBypassError)
        assert failure.code == "ROUTE_BYPASS"
        assert report.resolved == []

    def test_destination_declared_twice(self, attach):
        _, report = attach(
            self._spoke(
                {"destination": "10.9.0.0/16"},
                {"destination": "10.9.0.0/16", "target": "blackhole"},
            )
        )
        (failure,) = report.failures
        assert type(failure) is TopologyError
        assert failure.entity_ref == "dev"
        assert "10.9.0.0/16 more than once" in failure.message
        assert report.resolved == []

    def test_duplicate_destination_rejects_only_that_spoke(self, attach):
        spokes = self._spoke(
            {"destination": "10.9.0.0/16"}, {"destination": "10.9.0.0/16"}
        )
        spokes.append({"name": "prod", "cidr": "10.2.0.0/16"})
        topology, report = attach(spokes)
        assert [r.name for r in report.resolved] == ["prod"]
        assert [f.entity_ref for f in report.failures] == ["dev"]
        assert topology.vpc_named("dev") is None


class TestSpokeZones:
    def test_zone_not_served_by_hub(self, attach):
        _, report = attach(
            [
                {
                    "name": "dev",
                    "cidr": "10.1.0.0/16",
                    "availability_zones": ["ap-southeast-2d"],
                }
            ]
        )
        failure = report.failures[0]
        assert type(failure) is TopologyError
        assert "ap-southeast-2d" in failure.message

    def test_missing_attachment_subnet(self, attach):
        _, report = attach(
            [
                {
                    "name": "dev",
                    "cidr": "10.1.0.0/16",
                    "availability_zones": AZS[:2],
                    "subnets": [
                        {
                            "availability_zone": AZS[0],
                            "tier": "private",
                            "cidr": "10.1.0.0/24",
                        }
                    ],
                }
            ]
        )
        failure = report.failures[0]
        assert type(failure) is TopologyError
        assert AZS[1] in failure.message
