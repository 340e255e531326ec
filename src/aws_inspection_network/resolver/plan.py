"""Resource plan handed to the materialization layer.

Flattens a resolved topology into an ordered list of planned resources with
stable addresses. Dependencies always precede their dependents, so applying
the plan front to back creates resources in a valid order and walking it
back to front destroys them in one.
"""

from dataclasses import dataclass, field
from typing import Optional, Protocol

from ..core.logging import get_logger
from ..errors import ValidationFailure
from ..models import RouteModel, RouteTableModel, TGWRouteModel, VPCModel
from .pipeline import ResolutionResult
from .validation import errors_in, validate

logger = get_logger("plan")


def _plain(value):
    """Copy attribute values into plain lists and dicts for serializers."""
    if isinstance(value, dict):
        return {k: _plain(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_plain(v) for v in value]
    return value


@dataclass
class PlannedResource:
    address: str
    resource_type: str
    id: str
    attributes: dict = field(default_factory=dict)
    depends_on: list[str] = field(default_factory=list)
    spoke: Optional[str] = None

    def to_dict(self) -> dict:
        data = {
            "address": self.address,
            "type": self.resource_type,
            "id": self.id,
            "attributes": self.attributes,
            "depends_on": self.depends_on,
        }
        if self.spoke:
            data["spoke"] = self.spoke
        return data


@dataclass
class ResourcePlan:
    resources: list[PlannedResource] = field(default_factory=list)

    def addresses(self) -> list[str]:
        return [r.address for r in self.resources]

    def get(self, address: str) -> Optional[PlannedResource]:
        return next((r for r in self.resources if r.address == address), None)

    def resources_for_spoke(self, name: str) -> list[PlannedResource]:
        """Everything created for one spoke, including the hub return routes."""
        return [r for r in self.resources if r.spoke == name]

    def destroy_order(self) -> list[PlannedResource]:
        return list(reversed(self.resources))

    def to_dict(self) -> dict:
        return {"resources": [r.to_dict() for r in self.resources]}


class _PlanBuilder:
    def __init__(self, result: ResolutionResult):
        self.result = result
        self.plan = ResourcePlan()
        # planned id -> address, used to wire route targets to dependencies
        self.addresses: dict[str, str] = {}

    def add(
        self,
        address: str,
        resource_type: str,
        resource_id: str,
        attributes: Optional[dict] = None,
        depends_on: Optional[list[str]] = None,
        spoke: Optional[str] = None,
        index: bool = True,
    ) -> str:
        self.plan.resources.append(
            PlannedResource(
                address=address,
                resource_type=resource_type,
                id=resource_id,
                attributes=_plain(attributes or {}),
                depends_on=[d for d in (depends_on or []) if d],
                spoke=spoke,
            )
        )
        if index:
            self.addresses.setdefault(resource_id, address)
        return address

    def _vpc(self, vpc: VPCModel, group: str, key: str, spoke: Optional[str]):
        vpc_address = self.add(
            f'aws_vpc.{group}["{key}"]' if spoke else f"aws_vpc.{group}",
            "aws_vpc",
            vpc.id,
            {"cidr_block": vpc.cidr, "tags": vpc.tags},
            spoke=spoke,
        )
        for subnet in vpc.subnets:
            subnet_key = f"{key}:{subnet.name}" if spoke else subnet.name
            self.add(
                f'aws_subnet.{group}["{subnet_key}"]',
                "aws_subnet",
                subnet.id,
                {
                    "cidr_block": subnet.cidr,
                    "availability_zone": subnet.az,
                    "tier": subnet.tier,
                    "tags": subnet.tags,
                },
                [vpc_address],
                spoke=spoke,
            )
        return vpc_address

    def _route_table(
        self, table: RouteTableModel, group: str, spoke: Optional[str]
    ) -> str:
        vpc_address = self.addresses[table.vpc_id]
        address = self.add(
            f'aws_route_table.{group}["{table.name}"]',
            "aws_route_table",
            table.id,
            {"subnet_ids": table.subnets, "tags": table.tags},
            [vpc_address] + [self.addresses.get(s) for s in table.subnets],
            spoke=spoke,
        )
        for route in table.routes:
            if route.target_type != "local":
                self._route(group, table, route, address, spoke)
        return address

    def _route(
        self,
        group: str,
        table: RouteTableModel,
        route: RouteModel,
        table_address: str,
        spoke: Optional[str],
    ) -> str:
        return self.add(
            f'aws_route.{group}["{table.name}:{route.destination}"]',
            "aws_route",
            f"{table.id}:{route.destination}",
            {
                "route_table_id": table.id,
                "destination_cidr_block": route.destination,
                "target": route.target,
                "target_type": route.target_type,
            },
            [table_address, self.addresses.get(route.target)],
            spoke=spoke,
            index=False,
        )

    def _tgw_route(
        self, table_id: str, table_address: str, route: TGWRouteModel, spoke: str
    ) -> str:
        return self.add(
            f'aws_ec2_transit_gateway_route.spoke["{spoke}:{route.prefix}"]',
            "aws_ec2_transit_gateway_route",
            f"{table_id}:{route.prefix}",
            {
                "destination_cidr_block": route.prefix,
                "transit_gateway_attachment_id": route.target,
                "blackhole": route.state == "blackhole",
            },
            [table_address, self.addresses.get(route.target)],
            spoke=spoke,
            index=False,
        )

    def build(self) -> ResourcePlan:
        result = self.result
        topology = result.topology
        hub = result.hub
        tgw = topology.transit_gateway

        tgw_address = self.add(
            "aws_ec2_transit_gateway.main",
            "aws_ec2_transit_gateway",
            tgw.id,
            {
                "amazon_side_asn": tgw.asn,
                "default_route_table_association": "disable",
                "default_route_table_propagation": "disable",
                "tags": tgw.tags,
            },
        )

        vpc_address = self._vpc(hub.vpc, "inspection", hub.vpc.name, None)
        igw_address = self.add(
            "aws_internet_gateway.inspection",
            "aws_internet_gateway",
            hub.internet_gateway.id,
            {"vpc_id": hub.vpc.id},
            [vpc_address],
        )
        for nat in hub.nat_gateways:
            self.add(
                f'aws_nat_gateway.inspection["{nat.az}"]',
                "aws_nat_gateway",
                nat.id,
                {"subnet_id": nat.subnet_id, "availability_zone": nat.az},
                [self.addresses[nat.subnet_id], igw_address],
            )

        policy = hub.firewall_policy
        policy_address = self.add(
            "aws_networkfirewall_firewall_policy.main",
            "aws_networkfirewall_firewall_policy",
            policy.id,
            policy.model_dump(exclude={"id", "region", "tags"}),
        )
        firewall = hub.firewall
        firewall_address = self.add(
            "aws_networkfirewall_firewall.main",
            "aws_networkfirewall_firewall",
            firewall.id,
            {
                "firewall_policy_id": policy.id,
                "vpc_id": firewall.vpc_id,
                "subnet_ids": firewall.subnet_ids,
            },
            [policy_address] + [self.addresses[s] for s in firewall.subnet_ids],
        )
        for endpoint in firewall.endpoints:
            self.addresses[endpoint.id] = firewall_address
        if firewall.logging.log_bucket_name:
            self.add(
                "aws_networkfirewall_logging_configuration.main",
                "aws_networkfirewall_logging_configuration",
                f"{firewall.id}-logging",
                firewall.logging.model_dump(exclude_none=True),
                [firewall_address],
            )

        hub_attachment = hub.attachment
        attachment_address = self.add(
            "aws_ec2_transit_gateway_vpc_attachment.inspection",
            "aws_ec2_transit_gateway_vpc_attachment",
            hub_attachment.id,
            {
                "vpc_id": hub.vpc.id,
                "subnet_ids": hub_attachment.subnet_ids,
                "appliance_mode_support": (
                    "enable" if hub_attachment.appliance_mode else "disable"
                ),
            },
            [tgw_address] + [self.addresses[s] for s in hub_attachment.subnet_ids],
        )
        hub_table_address = self.add(
            "aws_ec2_transit_gateway_route_table.shared",
            "aws_ec2_transit_gateway_route_table",
            hub.route_table.id,
            {"tags": hub.route_table.tags},
            [tgw_address],
        )
        self.add(
            "aws_ec2_transit_gateway_route_table_association.inspection",
            "aws_ec2_transit_gateway_route_table_association",
            f"{hub.route_table.id}:{hub_attachment.id}",
            {
                "transit_gateway_attachment_id": hub_attachment.id,
                "transit_gateway_route_table_id": hub.route_table.id,
            },
            [attachment_address, hub_table_address],
            index=False,
        )

        # Egress tables first with only the routes that exist without spokes
        spoke_cidrs = {s.vpc.cidr for s in result.spokes}
        hub_tables = {}
        for table in hub.egress_route_tables:
            address = self.add(
                f'aws_route_table.inspection["{table.name}"]',
                "aws_route_table",
                table.id,
                {"subnet_ids": table.subnets, "tags": table.tags},
                [vpc_address] + [self.addresses.get(s) for s in table.subnets],
            )
            hub_tables[table.id] = address
            for route in table.routes:
                if route.target_type == "local" or route.destination in spoke_cidrs:
                    continue
                self._route("inspection", table, route, address, None)

        for spoke in result.spokes:
            self._spoke(spoke, tgw_address, hub_table_address, hub_tables)

        logger.debug("Planned %d resource(s)", len(self.plan.resources))
        return self.plan

    def _spoke(self, spoke, tgw_address, hub_table_address, hub_tables):
        name = spoke.name
        hub = self.result.hub
        self._vpc(spoke.vpc, "spoke", name, name)

        attachment = spoke.attachment
        attachment_address = self.add(
            f'aws_ec2_transit_gateway_vpc_attachment.spoke["{name}"]',
            "aws_ec2_transit_gateway_vpc_attachment",
            attachment.id,
            {"vpc_id": spoke.vpc.id, "subnet_ids": attachment.subnet_ids},
            [tgw_address] + [self.addresses[s] for s in attachment.subnet_ids],
            spoke=name,
        )
        table_address = self.add(
            f'aws_ec2_transit_gateway_route_table.spoke["{name}"]',
            "aws_ec2_transit_gateway_route_table",
            spoke.route_table.id,
            {"tags": spoke.route_table.tags},
            [tgw_address],
            spoke=name,
        )
        association_address = self.add(
            f'aws_ec2_transit_gateway_route_table_association.spoke["{name}"]',
            "aws_ec2_transit_gateway_route_table_association",
            f"{spoke.route_table.id}:{attachment.id}",
            {
                "transit_gateway_attachment_id": attachment.id,
                "transit_gateway_route_table_id": spoke.route_table.id,
            },
            [attachment_address, table_address],
            spoke=name,
            index=False,
        )
        for route in spoke.route_table.routes:
            self._tgw_route(spoke.route_table.id, table_address, route, name)

        # Propagation waits for both the spoke and the hub association
        self.add(
            f'aws_ec2_transit_gateway_route_table_propagation.shared["{name}"]',
            "aws_ec2_transit_gateway_route_table_propagation",
            f"{hub.route_table.id}:{attachment.id}",
            {
                "transit_gateway_attachment_id": attachment.id,
                "transit_gateway_route_table_id": hub.route_table.id,
            },
            [
                association_address,
                "aws_ec2_transit_gateway_route_table_association.inspection",
                hub_table_address,
            ],
            spoke=name,
            index=False,
        )

        self._route_table(spoke.vpc_route_table, "spoke", name)

        for table in hub.egress_route_tables:
            route = table.route_for(spoke.vpc.cidr)
            if route is not None:
                self._route("inspection", table, route, hub_tables[table.id], name)


def build_plan(result: ResolutionResult) -> ResourcePlan:
    """Flatten a resolution result into an ordered resource plan."""
    return _PlanBuilder(result).build()


class Materializer(Protocol):
    """Anything that turns a plan into real infrastructure."""

    def materialize(self, plan: ResourcePlan) -> None: ...


class RecordingMaterializer:
    """Materializer that only remembers the plans it was given."""

    def __init__(self):
        self.plans: list[ResourcePlan] = []

    def materialize(self, plan: ResourcePlan) -> None:
        self.plans.append(plan)


def apply(
    result: ResolutionResult, materializer: Materializer, allow_partial: bool = False
) -> ResourcePlan:
    """Validate once more, then hand the plan to a materializer.

    Nothing reaches the materializer if the topology has validation errors,
    or if a spoke was rejected and ``allow_partial`` is not set.

    Raises:
        ValidationFailure: validation errors or rejected spokes block the apply.
    """
    findings = validate(result.topology)
    errors = errors_in(findings)
    if errors:
        raise ValidationFailure(
            f"Refusing to apply: {len(errors)} validation error(s)", findings
        )
    if result.failures and not allow_partial:
        raise ValidationFailure(
            f"Refusing to apply: {len(result.failures)} spoke(s) rejected",
            result.diagnostics,
        )

    plan = build_plan(result)
    logger.info("Applying %d planned resource(s)", len(plan.resources))
    materializer.materialize(plan)
    return plan
