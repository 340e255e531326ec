"""Topology model: declared VPCs turned into an in-memory network graph."""

from dataclasses import dataclass, field
from ipaddress import IPv4Network
from itertools import combinations, islice
from typing import Optional

from ..config import StaticRouteConfig, VPCDeclaration
from ..core.ids import resource_id
from ..core.logging import get_logger
from ..errors import ConfigurationError, TopologyError
from ..models import (
    FirewallModel,
    FirewallPolicyModel,
    InternetGatewayModel,
    NatGatewayModel,
    SealedList,
    SubnetModel,
    TGWModel,
    VPCModel,
    parse_cidr,
)

logger = get_logger("topology")

# AWS does not allow subnets smaller than a /28
MIN_SUBNET_PREFIX = 28
HUB_TIERS = ("firewall", "public", "private")


@dataclass
class SpokeCandidate:
    """Spoke VPC built from its declaration, not yet accepted."""

    vpc: VPCModel
    static_routes: list[StaticRouteConfig] = field(default_factory=list)

    @property
    def name(self) -> str:
        return self.vpc.name


@dataclass
class Topology:
    """Network graph owned by a single resolution pass.

    ``vpcs`` holds the hub and every accepted spoke. Spokes wait in
    ``candidates`` until the attachment resolver accepts them, so a rejected
    spoke never becomes part of the resolved graph.
    """

    name_prefix: str
    region: str
    transit_gateway: TGWModel
    vpcs: list[VPCModel] = field(default_factory=list)
    candidates: list[SpokeCandidate] = field(default_factory=list)

    # Hub-side resources, filled by the inspection hub builder
    internet_gateway: Optional[InternetGatewayModel] = None
    nat_gateways: list[NatGatewayModel] = field(default_factory=list)
    firewall: Optional[FirewallModel] = None
    firewall_policy: Optional[FirewallPolicyModel] = None

    sealed: bool = False

    @property
    def hub(self) -> VPCModel:
        return next(v for v in self.vpcs if v.role == "hub")

    @property
    def spokes(self) -> list[VPCModel]:
        return [v for v in self.vpcs if v.role == "spoke"]

    def vpc(self, vpc_id: str) -> Optional[VPCModel]:
        return next((v for v in self.vpcs if v.id == vpc_id), None)

    def vpc_named(self, name: str) -> Optional[VPCModel]:
        return next((v for v in self.vpcs if v.name == name), None)

    def nat_gateway_in(self, az: str) -> Optional[NatGatewayModel]:
        return next((n for n in self.nat_gateways if n.az == az), None)

    def ensure_mutable(self):
        if self.sealed:
            raise TopologyError(
                "Topology is sealed after validation and cannot be modified"
            )

    def add_vpc(self, vpc: VPCModel):
        self.ensure_mutable()
        self.vpcs.append(vpc)

    def seal(self):
        """Freeze the graph and every model in it; later changes raise."""
        models = [
            self.transit_gateway,
            self.internet_gateway,
            self.firewall,
            self.firewall_policy,
            *self.vpcs,
            *self.nat_gateways,
        ]
        for model in models:
            if model is not None:
                model.seal()
        self.vpcs = SealedList(self.vpcs)
        self.nat_gateways = SealedList(self.nat_gateways)
        self.candidates = SealedList(self.candidates)
        self.sealed = True

    def __setattr__(self, name, value):
        if getattr(self, "sealed", False):
            self.ensure_mutable()
        super().__setattr__(name, value)


def carve_subnets(vpc_name: str, cidr: str, count: int) -> list[IPv4Network]:
    """Split a CIDR into ``count`` equal, power-of-two sized subnets."""
    network = parse_cidr(cidr)
    new_prefix = network.prefixlen + (count - 1).bit_length()
    if new_prefix > MIN_SUBNET_PREFIX:
        raise ConfigurationError(
            f"CIDR {cidr} of VPC '{vpc_name}' is too small for {count} subnets "
            f"(would need /{new_prefix}, minimum is /{MIN_SUBNET_PREFIX})",
            entity_ref=vpc_name,
        )
    return list(islice(network.subnets(new_prefix=new_prefix), count))


def _check_zones(decl: VPCDeclaration):
    if not decl.availability_zones:
        raise ConfigurationError(
            f"VPC '{decl.name}' declares no availability zones", entity_ref=decl.name
        )
    seen = set()
    for az in decl.availability_zones:
        if az in seen:
            raise ConfigurationError(
                f"VPC '{decl.name}' lists availability zone {az} twice",
                entity_ref=decl.name,
            )
        seen.add(az)


def _subnet(
    decl: VPCDeclaration,
    name_prefix: str,
    region: str,
    vpc_id: str,
    az: str,
    tier: str,
    cidr: str,
    name: Optional[str] = None,
) -> SubnetModel:
    name = name or f"{decl.name}-{tier}-{az}"
    return SubnetModel(
        id=resource_id("subnet", name_prefix, decl.name, cidr),
        name=name,
        region=region,
        vpc_id=vpc_id,
        cidr=cidr,
        az=az,
        tier=tier,
        tags={"Name": f"{name_prefix}-{name}", "Tier": tier},
    )


def _declared_subnets(
    decl: VPCDeclaration, name_prefix: str, region: str, vpc_id: str
) -> list[SubnetModel]:
    vpc_network = parse_cidr(decl.cidr)
    named = [cfg.name for cfg in decl.subnets or [] if cfg.name]
    repeated = sorted({n for n in named if named.count(n) > 1})
    if repeated:
        raise ConfigurationError(
            f"Subnet names used more than once in VPC '{decl.name}': "
            f"{', '.join(repeated)}",
            entity_ref=decl.name,
        )
    taken = set(named)

    subnets = []
    for cfg in decl.subnets or []:
        network = parse_cidr(cfg.cidr)
        if cfg.availability_zone not in decl.availability_zones:
            raise ConfigurationError(
                f"Subnet {cfg.cidr} of VPC '{decl.name}' is in "
                f"{cfg.availability_zone}, which the VPC does not declare",
                entity_ref=decl.name,
            )
        if not network.subnet_of(vpc_network):
            raise ConfigurationError(
                f"Subnet {cfg.cidr} lies outside VPC '{decl.name}' ({decl.cidr})",
                entity_ref=decl.name,
            )
        if network.prefixlen > MIN_SUBNET_PREFIX:
            raise ConfigurationError(
                f"Subnet {cfg.cidr} of VPC '{decl.name}' is smaller than "
                f"/{MIN_SUBNET_PREFIX}",
                entity_ref=decl.name,
            )
        name = cfg.name
        if not name:
            # Unnamed subnets sharing a tier and AZ get -2, -3, ... suffixes
            base = name = f"{decl.name}-{cfg.tier}-{cfg.availability_zone}"
            suffix = 1
            while name in taken:
                suffix += 1
                name = f"{base}-{suffix}"
            taken.add(name)
        subnets.append(
            _subnet(
                decl,
                name_prefix,
                region,
                vpc_id,
                cfg.availability_zone,
                cfg.tier,
                cfg.cidr,
                name,
            )
        )

    for a, b in combinations(subnets, 2):
        if parse_cidr(a.cidr).overlaps(parse_cidr(b.cidr)):
            raise ConfigurationError(
                f"Subnets {a.cidr} and {b.cidr} of VPC '{decl.name}' overlap",
                entity_ref=decl.name,
            )
    return subnets


def _carved_subnets(
    decl: VPCDeclaration, name_prefix: str, region: str, vpc_id: str
) -> list[SubnetModel]:
    tiers = HUB_TIERS if decl.role == "hub" else ("private",)
    zones = decl.availability_zones
    blocks = carve_subnets(decl.name, decl.cidr, len(tiers) * len(zones))
    subnets = []
    for t, tier in enumerate(tiers):
        for z, az in enumerate(zones):
            cidr = str(blocks[t * len(zones) + z])
            subnets.append(_subnet(decl, name_prefix, region, vpc_id, az, tier, cidr))
    return subnets


def build_vpc(decl: VPCDeclaration, name_prefix: str, region: str) -> VPCModel:
    """Build one VPC with its subnets from a declaration."""
    _check_zones(decl)
    vpc_id = resource_id("vpc", name_prefix, decl.name)
    if decl.subnets is not None:
        subnets = _declared_subnets(decl, name_prefix, region, vpc_id)
    else:
        subnets = _carved_subnets(decl, name_prefix, region, vpc_id)
    return VPCModel(
        id=vpc_id,
        name=decl.name,
        region=region,
        cidr=decl.cidr,
        role=decl.role,
        availability_zones=list(decl.availability_zones),
        subnets=subnets,
        tags={"Name": f"{name_prefix}-{decl.name}", "Role": decl.role},
    )


def build_topology(
    declarations: list[VPCDeclaration],
    name_prefix: str,
    region: str = "ap-southeast-2",
    amazon_side_asn: int = 64512,
) -> Topology:
    """Build the topology graph from declared VPCs.

    Raises:
        ConfigurationError: no VPCs, duplicate names, zero or several hubs,
            empty or repeated AZ lists, overlapping or misplaced subnets,
            or a CIDR too small to carve.
    """
    if not declarations:
        raise ConfigurationError("No VPCs declared")

    names = [d.name for d in declarations]
    duplicates = sorted({n for n in names if names.count(n) > 1})
    if duplicates:
        raise ConfigurationError(
            f"VPC names declared more than once: {', '.join(duplicates)}",
            entity_ref=duplicates[0],
        )

    hubs = [d for d in declarations if d.role == "hub"]
    if len(hubs) > 1:
        raise ConfigurationError(
            f"Only one hub VPC is allowed, got {len(hubs)}: "
            f"{', '.join(d.name for d in hubs)}"
        )
    if not hubs:
        raise ConfigurationError("No VPC declares role 'hub'")

    tgw = TGWModel(
        id=resource_id("tgw", name_prefix, "main"),
        name=f"{name_prefix}-tgw",
        region=region,
        asn=amazon_side_asn,
        tags={"Name": f"{name_prefix}-tgw"},
    )
    topology = Topology(name_prefix=name_prefix, region=region, transit_gateway=tgw)
    topology.add_vpc(build_vpc(hubs[0], name_prefix, region))

    for decl in declarations:
        if decl.role != "spoke":
            continue
        topology.candidates.append(
            SpokeCandidate(
                vpc=build_vpc(decl, name_prefix, region),
                static_routes=list(decl.static_routes),
            )
        )

    logger.info(
        "Built topology: hub %s (%s) across %d AZ(s), %d spoke candidate(s)",
        topology.hub.name,
        topology.hub.cidr,
        len(topology.hub.availability_zones),
        len(topology.candidates),
    )
    return topology
