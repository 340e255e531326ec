"""Pre-apply validation of a topology.

Every check is a pure function of the topology and returns diagnostics in a
stable order, so validating the same topology twice gives identical output.
Checks only run from the pipeline stage at which the entities they inspect
exist: there is no point asking for NAT gateways before the hub is built.
"""

from itertools import combinations
from typing import Callable, Optional

from ..core.logging import get_logger
from ..models import DEFAULT_ROUTE, Diagnostic, cidrs_overlap, parse_cidr
from .topology import Topology

logger = get_logger("validation")

STAGES = ("topology", "hub", "spokes", "propagation")

Check = Callable[[Topology, str], list[Diagnostic]]


def _error(code: str, message: str, ref: Optional[str], stage: str) -> Diagnostic:
    return Diagnostic(
        severity="error", code=code, message=message, entity_ref=ref, stage=stage
    )


def _warning(code: str, message: str, ref: Optional[str], stage: str) -> Diagnostic:
    return Diagnostic(
        severity="warning", code=code, message=message, entity_ref=ref, stage=stage
    )


def check_cidr_overlap(topology: Topology, stage: str) -> list[Diagnostic]:
    return [
        _error(
            "CIDR_OVERLAP",
            f"VPC '{a.name}' ({a.cidr}) overlaps VPC '{b.name}' ({b.cidr})",
            b.name,
            stage,
        )
        for a, b in combinations(topology.vpcs, 2)
        if cidrs_overlap(a.cidr, b.cidr)
    ]


def check_subnets(topology: Topology, stage: str) -> list[Diagnostic]:
    found = []
    for vpc in topology.vpcs:
        vpc_network = parse_cidr(vpc.cidr)
        for subnet in vpc.subnets:
            if not parse_cidr(subnet.cidr).subnet_of(vpc_network):
                found.append(
                    _error(
                        "SUBNET_OUTSIDE_VPC",
                        f"Subnet {subnet.cidr} lies outside {vpc.cidr}",
                        subnet.label,
                        stage,
                    )
                )
        for a, b in combinations(vpc.subnets, 2):
            if cidrs_overlap(a.cidr, b.cidr):
                found.append(
                    _error(
                        "SUBNET_OVERLAP",
                        f"Subnets {a.cidr} and {b.cidr} overlap in VPC '{vpc.name}'",
                        vpc.name,
                        stage,
                    )
                )
    return found


def check_firewall_subnets(topology: Topology, stage: str) -> list[Diagnostic]:
    hub = topology.hub
    found = []
    for az in hub.availability_zones:
        count = len(hub.subnets_in(az, "firewall"))
        if count != 1:
            found.append(
                _error(
                    "FIREWALL_SUBNET",
                    f"Hub needs exactly one firewall subnet in {az}, found {count}",
                    hub.name,
                    stage,
                )
            )
    return found


def check_az_symmetry(topology: Topology, stage: str) -> list[Diagnostic]:
    hub = topology.hub
    firewall = topology.firewall
    found = []
    for az in hub.availability_zones:
        nat = topology.nat_gateway_in(az)
        endpoint = firewall.endpoint_in(az) if firewall else None
        if nat is None and endpoint is None:
            found.append(
                _error(
                    "AZ_SYMMETRY",
                    f"{az} has neither a NAT gateway nor a firewall endpoint",
                    az,
                    stage,
                )
            )
        elif nat is None or endpoint is None:
            present = "NAT gateway" if nat else "firewall endpoint"
            missing = "firewall endpoint" if nat else "NAT gateway"
            found.append(
                _error(
                    "AZ_SYMMETRY",
                    f"{az} has a {present} but no {missing}",
                    az,
                    stage,
                )
            )

    # Traffic entering from the transit gateway must hit the AZ-local endpoint
    for table in hub.route_tables_for("private"):
        default = table.route_for(DEFAULT_ROUTE)
        endpoint = firewall.endpoint_in(table.az) if firewall and table.az else None
        if default is None or endpoint is None or default.target != endpoint.id:
            found.append(
                _error(
                    "AZ_SYMMETRY",
                    f"Attachment subnet table in {table.az} does not send default "
                    "traffic to the AZ-local firewall endpoint",
                    table.label,
                    stage,
                )
            )
    return found


def check_az_coverage(topology: Topology, stage: str) -> list[Diagnostic]:
    served = topology.hub.availability_zones
    found = []
    used = set()
    for spoke in topology.spokes:
        for az in spoke.availability_zones:
            used.add(az)
            if az not in served:
                found.append(
                    _error(
                        "AZ_COVERAGE",
                        f"Spoke uses {az}, which the inspection hub does not serve",
                        spoke.name,
                        stage,
                    )
                )
    if topology.spokes:
        for az in served:
            if az not in used:
                found.append(
                    _warning(
                        "AZ_UNUSED",
                        f"No spoke uses hub availability zone {az}",
                        az,
                        stage,
                    )
                )
    return found


def check_spoke_routes(topology: Topology, stage: str) -> list[Diagnostic]:
    tgw = topology.transit_gateway
    hub_attachment = tgw.inspection_attachment
    hub_id = hub_attachment.id if hub_attachment else None
    spoke_attachments = {a.id for a in tgw.attachments if not a.is_inspection}
    found = []

    for table in tgw.route_tables:
        if table.kind != "spoke":
            continue
        defaults = table.default_routes()
        if len(defaults) != 1:
            found.append(
                _error(
                    "SPOKE_DEFAULT_ROUTE",
                    f"Spoke table has {len(defaults)} default routes, expected 1",
                    table.label,
                    stage,
                )
            )
        elif defaults[0].target != hub_id:
            found.append(
                _error(
                    "SPOKE_DEFAULT_ROUTE",
                    f"Default route targets {defaults[0].target}, "
                    f"not the inspection attachment {hub_id}",
                    table.label,
                    stage,
                )
            )
        for route in table.routes:
            if route.target in spoke_attachments:
                found.append(
                    _error(
                        "SPOKE_BYPASS",
                        f"Route {route.prefix} points directly at spoke attachment "
                        f"{route.target}",
                        table.label,
                        stage,
                    )
                )

    for spoke in topology.spokes:
        for table in spoke.route_tables:
            for route in table.routes:
                direct = route.target_type in ("internet_gateway", "nat_gateway")
                stray = route.is_default and route.target != tgw.id
                if direct or stray:
                    found.append(
                        _error(
                            "SPOKE_BYPASS",
                            f"Route {route.destination} -> {route.target} bypasses "
                            "the inspection hub",
                            table.label,
                            stage,
                        )
                    )
    return found


def check_route_loops(topology: Topology, stage: str) -> list[Diagnostic]:
    tgw = topology.transit_gateway
    hub_table = tgw.hub_route_table
    hub_attachment = tgw.inspection_attachment
    if hub_table is None or hub_attachment is None:
        return []
    return [
        _error(
            "ROUTE_LOOP",
            f"Hub table sends {route.prefix} back to the inspection attachment",
            hub_table.label,
            stage,
        )
        for route in hub_table.routes
        if route.target == hub_attachment.id
    ]


def check_firewall_policy(topology: Topology, stage: str) -> list[Diagnostic]:
    policy = topology.firewall_policy
    hub = topology.hub
    if policy is None:
        return [
            _error(
                "FIREWALL_DEFAULT_DENY",
                "Inspection hub has no firewall policy",
                hub.name,
                stage,
            )
        ]
    found = []
    if policy.vpc_id != hub.id:
        found.append(
            _error(
                "FIREWALL_DEFAULT_DENY",
                f"Firewall policy belongs to {policy.vpc_id}, not the hub {hub.id}",
                policy.label,
                stage,
            )
        )
    if not policy.has_default_deny():
        if policy.default_deny_override:
            found.append(
                _warning(
                    "FIREWALL_DEFAULT_DENY",
                    "Stateless default-deny is explicitly overridden",
                    policy.label,
                    stage,
                )
            )
        else:
            found.append(
                _error(
                    "FIREWALL_DEFAULT_DENY",
                    "Firewall policy has no stateless default-deny rule",
                    policy.label,
                    stage,
                )
            )
    return found


def check_appliance_mode(topology: Topology, stage: str) -> list[Diagnostic]:
    attachment = topology.transit_gateway.inspection_attachment
    if attachment is None or attachment.appliance_mode:
        return []
    return [
        _warning(
            "APPLIANCE_MODE",
            "Inspection attachment lacks appliance mode; return traffic may "
            "cross AZs and miss the stateful flow",
            attachment.label,
            stage,
        )
    ]


def check_reachability(topology: Topology, stage: str) -> list[Diagnostic]:
    tgw = topology.transit_gateway
    hub_table = tgw.hub_route_table
    found = []
    for spoke in topology.spokes:
        attachment = tgw.attachment_for(spoke.id)
        if attachment is None:
            reason = "has no transit gateway attachment"
        elif attachment.route_table_id is None:
            reason = "has an attachment that is not associated with a route table"
        elif hub_table is None or (
            (route := hub_table.route_for(spoke.cidr)) is None
            or route.target != attachment.id
        ):
            reason = f"is not routed from the hub table ({spoke.cidr})"
        else:
            continue
        found.append(
            _error("UNREACHABLE_SPOKE", f"Spoke {reason}", spoke.name, stage)
        )
    return found


CHECKS: list[tuple[str, Check]] = [
    ("topology", check_cidr_overlap),
    ("topology", check_subnets),
    ("hub", check_firewall_subnets),
    ("hub", check_az_symmetry),
    ("hub", check_firewall_policy),
    ("hub", check_appliance_mode),
    ("hub", check_route_loops),
    ("spokes", check_az_coverage),
    ("spokes", check_spoke_routes),
    ("propagation", check_reachability),
]


class TopologyValidator:
    """Run every check applicable at a pipeline stage.

    Args:
        existing_networks: VPCs already present in the target account, as
            ``{"id", "name", "cidr"}`` dicts (see ExistingNetworkReader).
    """

    def __init__(self, existing_networks: Optional[list[dict]] = None):
        self.existing_networks = existing_networks or []

    def check_existing(self, topology: Topology, stage: str) -> list[Diagnostic]:
        found = []
        for vpc in topology.vpcs:
            name_tag = vpc.tags.get("Name")
            for existing in self.existing_networks:
                if existing.get("name") and existing.get("name") == name_tag:
                    continue
                if cidrs_overlap(vpc.cidr, existing["cidr"]):
                    found.append(
                        _warning(
                            "EXISTING_CIDR_OVERLAP",
                            f"{vpc.cidr} overlaps existing VPC {existing['id']} "
                            f"({existing['cidr']})",
                            vpc.name,
                            stage,
                        )
                    )
        return found

    def run(self, topology: Topology, stage: str = "propagation") -> list[Diagnostic]:
        if stage not in STAGES:
            raise ValueError(f"Unknown stage '{stage}', expected one of {STAGES}")
        reached = STAGES.index(stage)
        findings = []
        for min_stage, check in CHECKS:
            if STAGES.index(min_stage) <= reached:
                findings.extend(check(topology, stage))
        findings.extend(self.check_existing(topology, stage))
        logger.debug(
            "Validation at %s: %d error(s), %d warning(s)",
            stage,
            sum(1 for f in findings if f.is_error),
            sum(1 for f in findings if not f.is_error),
        )
        return findings


def validate(
    topology: Topology,
    stage: str = "propagation",
    existing_networks: Optional[list[dict]] = None,
) -> list[Diagnostic]:
    """Convenience wrapper around TopologyValidator.run."""
    return TopologyValidator(existing_networks).run(topology, stage)


def errors_in(diagnostics: list[Diagnostic]) -> list[Diagnostic]:
    return [d for d in diagnostics if d.is_error]
