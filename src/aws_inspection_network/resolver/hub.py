"""Inspection hub builder.

Emits the hub-side resources of the inspection VPC. For every availability
zone the hub spans it creates, in one step, a NAT gateway in the public
subnet, a firewall endpoint in the firewall subnet and the three AZ-local
route tables that chain them:

    attachment subnet  0.0.0.0/0 -> firewall endpoint (same AZ)
    firewall subnet    0.0.0.0/0 -> NAT gateway       (same AZ)
    public subnet      0.0.0.0/0 -> internet gateway

An AZ gets its NAT gateway and firewall endpoint together or not at all.
"""

from dataclasses import dataclass
from typing import Optional

from ..config import FirewallConfig
from ..core.ids import resource_id
from ..core.logging import get_logger
from ..errors import TopologyError
from ..models import (
    DEFAULT_ROUTE,
    FirewallEndpointModel,
    FirewallLoggingModel,
    FirewallModel,
    FirewallPolicyModel,
    InternetGatewayModel,
    NatGatewayModel,
    RouteModel,
    RouteTableModel,
    StatefulRule,
    StatefulRuleGroup,
    StatelessRule,
    StatelessRuleGroup,
    TGWAttachmentModel,
    TGWRouteTableModel,
    VPCModel,
)
from ..models.firewall import ANY, SPOKE_NETS
from .topology import Topology

logger = get_logger("hub")

FORWARD_GROUP = "forward-spoke-traffic"
DEFAULT_DENY_GROUP = "default-deny"
SPOKE_NETS_VARIABLE = SPOKE_NETS.lstrip("$")


@dataclass
class HubResources:
    vpc: VPCModel
    internet_gateway: InternetGatewayModel
    nat_gateways: list[NatGatewayModel]
    firewall: FirewallModel
    firewall_policy: FirewallPolicyModel
    attachment: TGWAttachmentModel
    route_table: TGWRouteTableModel
    egress_route_tables: list[RouteTableModel]

    def egress_table(self, az: str, tier: str) -> Optional[RouteTableModel]:
        return next(
            (t for t in self.egress_route_tables if t.az == az and t.tier == tier),
            None,
        )


def _local_route(vpc: VPCModel) -> RouteModel:
    return RouteModel(destination=vpc.cidr, target="local", target_type="local")


def build_firewall_policy(
    topology: Topology, hub: VPCModel, config: FirewallConfig
) -> FirewallPolicyModel:
    """Build the hub firewall policy.

    Stateless evaluation forwards spoke traffic to the stateful engine and
    drops everything else, unless the default-deny group is explicitly
    overridden. Spoke CIDRs are admitted later, during route propagation.
    """
    prefix = topology.name_prefix
    stateless = [
        StatelessRuleGroup(
            id=resource_id("fwrg", prefix, FORWARD_GROUP),
            name=FORWARD_GROUP,
            priority=10,
            rules=[
                StatelessRule(
                    priority=10,
                    action="aws:forward_to_sfe",
                    sources=[],
                    destinations=[DEFAULT_ROUTE],
                ),
                StatelessRule(
                    priority=20,
                    action="aws:forward_to_sfe",
                    sources=[DEFAULT_ROUTE],
                    destinations=[],
                ),
            ],
        )
    ]
    if not config.default_deny_override:
        stateless.append(
            StatelessRuleGroup(
                id=resource_id("fwrg", prefix, DEFAULT_DENY_GROUP),
                name=DEFAULT_DENY_GROUP,
                priority=65000,
                rules=[
                    StatelessRule(
                        priority=1,
                        action="aws:drop",
                        sources=[DEFAULT_ROUTE],
                        destinations=[DEFAULT_ROUTE],
                    )
                ],
            )
        )
    else:
        logger.warning("Stateless default-deny explicitly overridden for %s", prefix)

    inter_spoke = "pass" if config.spoke_to_spoke == "inspect" else "drop"
    stateful = [
        StatefulRuleGroup(
            id=resource_id("fwrg", prefix, "inter-spoke"),
            name="inter-spoke",
            priority=10,
            rules=[
                StatefulRule(
                    action=inter_spoke,
                    source=SPOKE_NETS,
                    destination=SPOKE_NETS,
                    description=f"Spoke-to-spoke traffic ({config.spoke_to_spoke})",
                )
            ],
        ),
        StatefulRuleGroup(
            id=resource_id("fwrg", prefix, "spoke-egress"),
            name="spoke-egress",
            priority=20,
            rules=[
                StatefulRule(
                    action="pass",
                    source=SPOKE_NETS,
                    destination=ANY,
                    description="Spoke egress through NAT",
                )
            ],
        ),
    ]

    return FirewallPolicyModel(
        id=resource_id("fwpolicy", prefix, "inspection"),
        name=f"{prefix}-inspection-policy",
        region=topology.region,
        vpc_id=hub.id,
        stateless_rule_groups=stateless,
        stateful_rule_groups=stateful,
        stateless_default_actions=(
            ["aws:forward_to_sfe"] if config.default_deny_override else ["aws:drop"]
        ),
        stateful_default_actions=list(config.stateful_default_actions),
        rule_variables={SPOKE_NETS_VARIABLE: []},
        default_deny_override=config.default_deny_override,
    )


class InspectionHubBuilder:
    """Build the inspection VPC's NAT, firewall and transit resources."""

    def __init__(
        self,
        topology: Topology,
        firewall_config: Optional[FirewallConfig] = None,
        logging_config: Optional[FirewallLoggingModel] = None,
    ):
        self.topology = topology
        self.firewall_config = firewall_config or FirewallConfig()
        self.logging_config = logging_config or FirewallLoggingModel()

    def _id(self, kind: str, *parts: str) -> str:
        return resource_id(kind, self.topology.name_prefix, *parts)

    def _check_subnets(self, hub: VPCModel):
        """Every AZ needs one firewall subnet plus public and attachment subnets."""
        problems = []
        for az in hub.availability_zones:
            firewall = hub.subnets_in(az, "firewall")
            if not firewall:
                problems.append(f"no firewall subnet in {az}")
            elif len(firewall) > 1:
                problems.append(f"{len(firewall)} firewall subnets in {az}")
            if not hub.subnets_in(az, "public"):
                problems.append(f"no public subnet for the NAT gateway in {az}")
            if not hub.subnets_in(az, "private"):
                problems.append(f"no private subnet for the attachment in {az}")
        if problems:
            raise TopologyError(
                f"Hub VPC '{hub.name}' spans {len(hub.availability_zones)} AZ(s) "
                f"but has {len(hub.subnets_in(tier='firewall'))} firewall subnet(s): "
                + "; ".join(problems),
                entity_ref=hub.name,
            )

    def _table(
        self, hub: VPCModel, az: str, tier: str, default: RouteModel
    ) -> RouteTableModel:
        name = f"{hub.name}-{tier}-{az}"
        return RouteTableModel(
            id=self._id("rtb", hub.name, tier, az),
            name=name,
            region=self.topology.region,
            vpc_id=hub.id,
            az=az,
            tier=tier,
            subnets=[s.id for s in hub.subnets_in(az, tier)],
            routes=[_local_route(hub), default],
            tags={"Name": f"{self.topology.name_prefix}-{name}"},
        )

    def build(self) -> HubResources:
        """Emit hub-side resources into the topology.

        Raises:
            TopologyError: the hub lacks per-AZ subnets, or was already built.
        """
        topology = self.topology
        topology.ensure_mutable()
        if topology.firewall is not None:
            raise TopologyError("Inspection hub has already been built")

        hub = topology.hub
        self._check_subnets(hub)
        prefix = topology.name_prefix
        region = topology.region
        tgw = topology.transit_gateway

        igw = InternetGatewayModel(
            id=self._id("igw", hub.name),
            name=f"{hub.name}-igw",
            region=region,
            vpc_id=hub.id,
        )
        policy = build_firewall_policy(topology, hub, self.firewall_config)

        nat_gateways, endpoints, tables = [], [], []
        for az in hub.availability_zones:
            firewall_subnet = hub.subnets_in(az, "firewall")[0]
            public_subnet = hub.subnets_in(az, "public")[0]

            nat = NatGatewayModel(
                id=self._id("nat", hub.name, az),
                name=f"{hub.name}-nat-{az}",
                region=region,
                subnet_id=public_subnet.id,
                az=az,
                vpc_id=hub.id,
            )
            endpoint = FirewallEndpointModel(
                id=self._id("vpce", hub.name, "firewall", az),
                name=f"{hub.name}-firewall-{az}",
                region=region,
                az=az,
                subnet_id=firewall_subnet.id,
            )
            nat_gateways.append(nat)
            endpoints.append(endpoint)
            tables.extend(
                [
                    self._table(
                        hub,
                        az,
                        "private",
                        RouteModel(
                            destination=DEFAULT_ROUTE,
                            target=endpoint.id,
                            target_type="firewall_endpoint",
                            type="static",
                        ),
                    ),
                    self._table(
                        hub,
                        az,
                        "firewall",
                        RouteModel(
                            destination=DEFAULT_ROUTE,
                            target=nat.id,
                            target_type="nat_gateway",
                            type="static",
                        ),
                    ),
                    self._table(
                        hub,
                        az,
                        "public",
                        RouteModel(
                            destination=DEFAULT_ROUTE,
                            target=igw.id,
                            target_type="internet_gateway",
                            type="static",
                        ),
                    ),
                ]
            )
            logger.debug("AZ %s: NAT %s, firewall endpoint %s", az, nat.id, endpoint.id)

        firewall = FirewallModel(
            id=self._id("fw", hub.name),
            name=f"{prefix}-inspection-firewall",
            region=region,
            vpc_id=hub.id,
            policy_id=policy.id,
            subnet_ids=[e.subnet_id for e in endpoints],
            endpoints=endpoints,
            logging=self.logging_config,
        )
        attachment = TGWAttachmentModel(
            id=self._id("tgw-attach", hub.name),
            name=hub.name,
            region=region,
            resource_id=hub.id,
            subnet_ids=[
                hub.subnets_in(az, "private")[0].id for az in hub.availability_zones
            ],
            is_inspection=True,
            appliance_mode=True,
            tags={"Name": f"{prefix}-{hub.name}-attachment"},
        )
        route_table = TGWRouteTableModel(
            id=self._id("tgw-rtb", "hub"),
            name="hub",
            region=region,
            kind="hub",
            tags={"Name": f"{prefix}-hub-rt"},
        )

        tgw.attachments.append(attachment)
        tgw.route_tables.append(route_table)
        hub.route_tables.extend(tables)
        topology.internet_gateway = igw
        topology.nat_gateways = nat_gateways
        topology.firewall = firewall
        topology.firewall_policy = policy

        logger.info(
            "Built inspection hub %s: %d NAT gateway(s), %d firewall endpoint(s)",
            hub.name,
            len(nat_gateways),
            len(endpoints),
        )
        return HubResources(
            vpc=hub,
            internet_gateway=igw,
            nat_gateways=nat_gateways,
            firewall=firewall,
            firewall_policy=policy,
            attachment=attachment,
            route_table=route_table,
            egress_route_tables=tables,
        )
