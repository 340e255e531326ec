"""Spoke attachment resolver.

Attaches spoke VPCs to the transit gateway and computes their route tables.
Spokes are processed in declaration order. The checks that depend only on
the finished hub run concurrently; acceptance is serialized so every spoke is
compared against exactly the spokes accepted before it.
"""

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Optional

from ..core.ids import resource_id
from ..core.logging import get_logger
from ..errors import (
    AttachmentConflictError,
    NetworkResolutionError,
    RouteBypassError,
    TopologyError,
)
from ..models import (
    DEFAULT_ROUTE,
    RouteModel,
    RouteTableModel,
    TGWAttachmentModel,
    TGWRouteModel,
    TGWRouteTableModel,
    VPCModel,
    cidrs_overlap,
)
from .topology import SpokeCandidate, Topology

logger = get_logger("spokes")

ALLOWED_STATIC_TARGETS = ("hub", "blackhole")


@dataclass
class SpokeResolution:
    """Everything emitted for one accepted spoke."""

    name: str
    vpc: VPCModel
    attachment: TGWAttachmentModel
    route_table: TGWRouteTableModel
    vpc_route_table: RouteTableModel


@dataclass
class SpokeReport:
    resolved: list[SpokeResolution] = field(default_factory=list)
    failures: list[NetworkResolutionError] = field(default_factory=list)

    def resolution(self, name: str) -> Optional[SpokeResolution]:
        return next((r for r in self.resolved if r.name == name), None)


class SpokeAttachmentResolver:
    """Attach spokes to the transit gateway behind the inspection hub."""

    def __init__(self, topology: Topology, max_workers: int = 4):
        self.topology = topology
        self.max_workers = max_workers

    def _check_hub_collision(
        self, candidate: SpokeCandidate
    ) -> Optional[AttachmentConflictError]:
        hub = self.topology.hub
        if cidrs_overlap(candidate.vpc.cidr, hub.cidr):
            return AttachmentConflictError(
                f"Spoke '{candidate.name}' CIDR {candidate.vpc.cidr} overlaps "
                f"hub '{hub.name}' CIDR {hub.cidr}",
                cidrs=(candidate.vpc.cidr, hub.cidr),
                entity_ref=candidate.name,
            )
        return None

    def _check_static_routes(
        self, candidate: SpokeCandidate
    ) -> Optional[TopologyError]:
        seen = set()
        for route in candidate.static_routes:
            if route.destination in seen:
                return TopologyError(
                    f"Spoke '{candidate.name}' declares a static route to "
                    f"{route.destination} more than once",
                    entity_ref=candidate.name,
                )
            seen.add(route.destination)
            if route.destination == DEFAULT_ROUTE:
                return RouteBypassError(
                    f"Spoke '{candidate.name}' redeclares the default route; "
                    "it always targets the inspection hub",
                    entity_ref=candidate.name,
                )
            if route.target not in ALLOWED_STATIC_TARGETS:
                return RouteBypassError(
                    f"Spoke '{candidate.name}' routes {route.destination} to "
                    f"'{route.target}'; spoke routes may only target "
                    f"{' or '.join(ALLOWED_STATIC_TARGETS)}",
                    entity_ref=candidate.name,
                )
        return None

    def _check_attachment_subnets(
        self, candidate: SpokeCandidate
    ) -> Optional[TopologyError]:
        vpc = candidate.vpc
        missing = [
            az for az in vpc.availability_zones if not vpc.subnets_in(az, "private")
        ]
        if missing:
            return TopologyError(
                f"Spoke '{candidate.name}' has no private subnet for its "
                f"attachment in {', '.join(missing)}",
                entity_ref=candidate.name,
            )
        return None

    def _check_zones(self, candidate: SpokeCandidate) -> Optional[TopologyError]:
        served = self.topology.hub.availability_zones
        unserved = [az for az in candidate.vpc.availability_zones if az not in served]
        if unserved:
            return TopologyError(
                f"Spoke '{candidate.name}' uses {', '.join(unserved)}, where the "
                "hub has no firewall endpoint",
                entity_ref=candidate.name,
            )
        return None

    def _precheck(self, candidate: SpokeCandidate) -> Optional[NetworkResolutionError]:
        """Checks that read only the finalized hub; safe to run concurrently."""
        return (
            self._check_hub_collision(candidate)
            or self._check_zones(candidate)
            or self._check_static_routes(candidate)
            or self._check_attachment_subnets(candidate)
        )

    def _check_accepted(
        self, candidate: SpokeCandidate, accepted: list[SpokeResolution]
    ) -> Optional[AttachmentConflictError]:
        for other in accepted:
            if cidrs_overlap(candidate.vpc.cidr, other.vpc.cidr):
                return AttachmentConflictError(
                    f"Spoke '{candidate.name}' CIDR {candidate.vpc.cidr} collides "
                    f"with spoke '{other.name}' CIDR {other.vpc.cidr}",
                    cidrs=(candidate.vpc.cidr, other.vpc.cidr),
                    entity_ref=candidate.name,
                )
        return None

    def _accept(
        self, candidate: SpokeCandidate, hub_attachment: TGWAttachmentModel
    ) -> SpokeResolution:
        topology = self.topology
        prefix = topology.name_prefix
        region = topology.region
        tgw = topology.transit_gateway
        vpc = candidate.vpc
        name = candidate.name

        attachment = TGWAttachmentModel(
            id=resource_id("tgw-attach", prefix, name),
            name=name,
            region=region,
            resource_id=vpc.id,
            subnet_ids=[
                vpc.subnets_in(az, "private")[0].id for az in vpc.availability_zones
            ],
            tags={"Name": f"{prefix}-{name}-attachment"},
        )

        routes = [
            TGWRouteModel(
                prefix=DEFAULT_ROUTE,
                target=hub_attachment.id,
                target_type="vpc",
                type="static",
            )
        ]
        for static in candidate.static_routes:
            if static.target == "blackhole":
                routes.append(
                    TGWRouteModel(
                        prefix=static.destination, state="blackhole", type="static"
                    )
                )
            else:
                routes.append(
                    TGWRouteModel(
                        prefix=static.destination,
                        target=hub_attachment.id,
                        target_type="vpc",
                        type="static",
                    )
                )
        route_table = TGWRouteTableModel(
            id=resource_id("tgw-rtb", prefix, "spoke", name),
            name=f"spoke-{name}",
            region=region,
            kind="spoke",
            routes=routes,
            tags={"Name": f"{prefix}-{name}-rt"},
        )

        vpc_route_table = RouteTableModel(
            id=resource_id("rtb", prefix, name, "private"),
            name=f"{name}-private",
            region=region,
            vpc_id=vpc.id,
            tier="private",
            subnets=[s.id for s in vpc.subnets_in(tier="private")],
            routes=[
                RouteModel(destination=vpc.cidr, target="local", target_type="local"),
                RouteModel(
                    destination=DEFAULT_ROUTE,
                    target=tgw.id,
                    target_type="transit_gateway",
                    type="static",
                ),
            ],
            tags={"Name": f"{prefix}-{name}-private"},
        )

        topology.add_vpc(vpc)
        vpc.route_tables.append(vpc_route_table)
        tgw.attachments.append(attachment)
        tgw.route_tables.append(route_table)
        return SpokeResolution(
            name=name,
            vpc=vpc,
            attachment=attachment,
            route_table=route_table,
            vpc_route_table=vpc_route_table,
        )

    def resolve(self) -> SpokeReport:
        """Resolve every spoke candidate.

        A failing spoke is recorded in the report and skipped; the remaining
        spokes still resolve.

        Raises:
            TopologyError: the inspection hub has not been built yet.
        """
        topology = self.topology
        topology.ensure_mutable()
        hub_attachment = topology.transit_gateway.inspection_attachment
        if hub_attachment is None:
            raise TopologyError(
                "Inspection hub must be built before spokes are attached"
            )

        candidates = list(topology.candidates)
        with ThreadPoolExecutor(max_workers=self.max_workers) as pool:
            prechecks = list(pool.map(self._precheck, candidates))

        report = SpokeReport()
        for candidate, failure in zip(candidates, prechecks):
            failure = failure or self._check_accepted(candidate, report.resolved)
            if failure:
                logger.warning("Spoke %s rejected: %s", candidate.name, failure.message)
                report.failures.append(failure)
                continue
            resolution = self._accept(candidate, hub_attachment)
            report.resolved.append(resolution)
            logger.debug(
                "Spoke %s attached as %s", candidate.name, resolution.attachment.id
            )

        topology.candidates = []
        logger.info(
            "Resolved %d spoke(s), rejected %d",
            len(report.resolved),
            len(report.failures),
        )
        return report
