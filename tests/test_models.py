"""TDD tests for Pydantic models - Binary pass/fail."""

import pytest
from pydantic import ValidationError

from aws_inspection_network.models import (
    CIDRBlock,
    Diagnostic,
    FirewallPolicyModel,
    RouteModel,
    RouteTableModel,
    StatelessRule,
    StatelessRuleGroup,
    SubnetModel,
    TGWModel,
    TGWAttachmentModel,
    TGWRouteModel,
    TGWRouteTableModel,
    VPCModel,
    cidrs_overlap,
    parse_cidr,
)


class TestCIDRBlock:
    """Binary tests for CIDR validation."""

    def test_valid_cidr(self):
        """BINARY: Valid CIDR must pass."""
        cidr = CIDRBlock(cidr="10.0.0.0/16")
        assert cidr.cidr == "10.0.0.0/16"

    def test_invalid_cidr_format(self):
        """BINARY: Invalid CIDR must raise ValidationError."""
        with pytest.raises(ValidationError):
            CIDRBlock(cidr="invalid")

    def test_host_bits_rejected(self):
        """BINARY: CIDR with host bits set must fail."""
        with pytest.raises(ValidationError):
            CIDRBlock(cidr="10.0.0.1/16")

    def test_ipv6_rejected(self):
        """BINARY: Only IPv4 is supported."""
        with pytest.raises(ValueError):
            parse_cidr("2001:db8::/32")

    def test_overlaps(self):
        """BINARY: Containment counts as overlap, neighbours do not."""
        assert CIDRBlock(cidr="10.0.0.0/16").overlaps(CIDRBlock(cidr="10.0.4.0/24"))
        assert not cidrs_overlap("10.0.0.0/16", "10.1.0.0/16")


class TestVPCModel:
    """Binary tests for VPC model."""

    def test_valid_vpc(self):
        """BINARY: Valid VPC must pass."""
        vpc = VPCModel(id="vpc-12345678", cidr="10.0.0.0/16", role="hub")
        assert vpc.role == "hub"

    def test_invalid_vpc_id_prefix(self):
        """BINARY: VPC ID without 'vpc-' prefix must fail."""
        with pytest.raises(ValidationError):
            VPCModel(id="invalid-123", cidr="10.0.0.0/16")

    def test_subnets_in_filters_by_az_and_tier(self):
        placements = [
            ("subnet-1", "10.0.0.0/24", "a", "firewall"),
            ("subnet-2", "10.0.1.0/24", "a", "public"),
            ("subnet-3", "10.0.2.0/24", "b", "firewall"),
        ]
        vpc = VPCModel(
            id="vpc-12345678",
            cidr="10.0.0.0/16",
            subnets=[
                SubnetModel(id=i, vpc_id="vpc-12345678", cidr=c, az=az, tier=tier)
                for i, c, az, tier in placements
            ],
        )
        assert [s.id for s in vpc.subnets_in("a")] == ["subnet-1", "subnet-2"]
        assert [s.id for s in vpc.subnets_in(tier="firewall")] == [
            "subnet-1",
            "subnet-3",
        ]

    def test_vpc_to_dict(self):
        """BINARY: to_dict must return valid dict."""
        vpc = VPCModel(id="vpc-12345678", cidr="10.0.0.0/16", name="test")
        d = vpc.to_dict()
        assert d["id"] == "vpc-12345678"
        assert d["cidr"] == "10.0.0.0/16"


class TestRouteTableModel:
    def _table(self):
        return RouteTableModel(
            id="rtb-123",
            vpc_id="vpc-12345678",
            routes=[RouteModel(destination="10.0.0.0/16", target="local")],
        )

    def test_route_accepts_prefix_alias(self):
        route = RouteModel(prefix="0.0.0.0/0", target="tgw-123")
        assert route.destination == "0.0.0.0/0"
        assert route.is_default

    def test_add_route_is_idempotent(self):
        table = self._table()
        route = RouteModel(destination="10.1.0.0/16", target="tgw-123")
        assert table.add_route(route) is True
        assert table.add_route(route.model_copy()) is False
        assert len(table.routes) == 2

    def test_add_route_conflict_raises(self):
        table = self._table()
        table.add_route(RouteModel(destination="10.1.0.0/16", target="tgw-123"))
        with pytest.raises(ValueError, match="already routed"):
            table.add_route(RouteModel(destination="10.1.0.0/16", target="nat-1"))


class TestTGWModel:
    """Binary tests for Transit Gateway model."""

    def test_invalid_tgw_id(self):
        """BINARY: TGW ID without 'tgw-' prefix must fail."""
        with pytest.raises(ValidationError):
            TGWModel(id="invalid-123")

    def test_invalid_route_table_id(self):
        with pytest.raises(ValidationError):
            TGWRouteTableModel(id="rtb-123", kind="hub")

    def test_invalid_attachment_id(self):
        with pytest.raises(ValidationError):
            TGWAttachmentModel(id="attach-123", resource_id="vpc-1")

    def test_lookups(self):
        hub = TGWAttachmentModel(
            id="tgw-attach-hub", resource_id="vpc-hub", is_inspection=True
        )
        spoke = TGWAttachmentModel(id="tgw-attach-spoke", resource_id="vpc-spoke")
        table = TGWRouteTableModel(id="tgw-rtb-hub", kind="hub")
        tgw = TGWModel(id="tgw-123", attachments=[spoke, hub], route_tables=[table])
        assert tgw.inspection_attachment is hub
        assert tgw.hub_route_table is table
        assert tgw.attachment_for("vpc-spoke") is spoke
        assert tgw.attachment("tgw-attach-missing") is None

    def test_blackhole_route_has_no_target(self):
        route = TGWRouteModel(prefix="192.168.0.0/16", state="blackhole")
        assert route.target is None
        assert not route.is_default


class TestFirewallPolicyModel:
    def test_default_deny_by_default_action(self):
        policy = FirewallPolicyModel(
            id="fwpolicy-1", vpc_id="vpc-1", stateless_default_actions=["aws:drop"]
        )
        assert policy.has_default_deny()

    def test_default_deny_by_catch_all_rule(self):
        policy = FirewallPolicyModel(
            id="fwpolicy-1",
            vpc_id="vpc-1",
            stateless_rule_groups=[
                StatelessRuleGroup(
                    id="fwrg-1",
                    name="deny",
                    priority=100,
                    rules=[
                        StatelessRule(
                            priority=1,
                            action="aws:drop",
                            sources=["0.0.0.0/0"],
                            destinations=["0.0.0.0/0"],
                        )
                    ],
                )
            ],
        )
        assert policy.has_default_deny()
        assert policy.stateless_group("deny") is not None

    def test_forward_only_policy_has_no_default_deny(self):
        policy = FirewallPolicyModel(id="fwpolicy-1", vpc_id="vpc-1")
        assert not policy.has_default_deny()

    def test_rule_priority_bounds(self):
        with pytest.raises(ValidationError):
            StatelessRule(priority=0, action="aws:pass")


class TestDiagnostic:
    def test_str_includes_code_and_entity(self):
        d = Diagnostic(
            severity="error", code="CIDR_OVERLAP", message="overlap", entity_ref="prod"
        )
        assert str(d) == "ERROR CIDR_OVERLAP [prod]: overlap"
        assert d.is_error

    def test_frozen(self):
        d = Diagnostic(severity="warning", code="AZ_UNUSED", message="unused")
        with pytest.raises(ValidationError):
            d.code = "OTHER"
