"""Route propagation engine.

Reconciles transit gateway route tables in two phases:

1. association: the inspection attachment joins the hub table and every
   spoke attachment joins its own spoke table. All associations are checked
   before any is committed; one bad association aborts the whole phase.
2. propagation: each spoke's CIDR is propagated into the hub table and the
   hub VPC gains the return routes toward it. This only starts once every
   association from phase 1 has committed, so no attachment ever accepts
   traffic without complete routing.
"""

from dataclasses import dataclass, field

from ..core.logging import get_logger
from ..errors import TopologyError
from ..models import (
    DEFAULT_ROUTE,
    RouteModel,
    TGWAttachmentModel,
    TGWRouteModel,
    TGWRouteTableModel,
)
from .hub import FORWARD_GROUP, SPOKE_NETS_VARIABLE
from .spokes import SpokeResolution
from .topology import Topology

logger = get_logger("propagation")


@dataclass
class Association:
    attachment_id: str
    route_table_id: str


@dataclass
class PropagationResult:
    associations: list[Association] = field(default_factory=list)
    propagated: list[TGWRouteModel] = field(default_factory=list)
    return_routes: list[RouteModel] = field(default_factory=list)


class RoutePropagationEngine:
    """Associate attachments with their tables, then propagate spoke routes."""

    def __init__(self, topology: Topology):
        self.topology = topology

    def _association_problem(
        self, attachment: TGWAttachmentModel, table: TGWRouteTableModel
    ):
        tgw = self.topology.transit_gateway
        if tgw.attachment(attachment.id) is None:
            return f"attachment {attachment.id} is not on {tgw.id}"
        if tgw.route_table(table.id) is None:
            return f"route table {table.id} is not on {tgw.id}"
        expected = "hub" if attachment.is_inspection else "spoke"
        if table.kind != expected:
            return (
                f"attachment {attachment.label} must associate with a {expected} "
                f"table, not {table.label}"
            )
        if attachment.route_table_id not in (None, table.id):
            return (
                f"attachment {attachment.label} is already associated with "
                f"{attachment.route_table_id}"
            )
        if table.kind == "spoke" and set(table.associations) - {attachment.id}:
            return f"spoke table {table.label} already serves another attachment"
        return None

    def associate(
        self, pairs: list[tuple[TGWAttachmentModel, TGWRouteTableModel]]
    ) -> list[Association]:
        """Phase 1: check every association, then commit them all."""
        problems = [
            problem
            for attachment, table in pairs
            if (problem := self._association_problem(attachment, table))
        ]
        if problems:
            raise TopologyError(
                "Association phase failed, nothing committed: " + "; ".join(problems)
            )

        committed = []
        for attachment, table in pairs:
            attachment.route_table_id = table.id
            if attachment.id not in table.associations:
                table.associations.append(attachment.id)
            committed.append(Association(attachment.id, table.id))
        logger.debug("Committed %d association(s)", len(committed))
        return committed

    def _admit_to_policy(self, cidr: str):
        policy = self.topology.firewall_policy
        if policy is None:
            return
        spoke_nets = policy.rule_variables.setdefault(SPOKE_NETS_VARIABLE, [])
        if cidr not in spoke_nets:
            spoke_nets.append(cidr)
        forward = policy.stateless_group(FORWARD_GROUP)
        if forward is None:
            return
        for rule in forward.rules:
            # Outbound rule lists spoke sources, return rule spoke destinations
            outbound = DEFAULT_ROUTE in rule.destinations
            side = rule.sources if outbound else rule.destinations
            if cidr not in side:
                side.append(cidr)

    def propagate(self, resolution: SpokeResolution, result: PropagationResult):
        """Phase 2 for one spoke; its association must already be committed."""
        topology = self.topology
        tgw = topology.transit_gateway
        hub_table = tgw.hub_route_table
        attachment = resolution.attachment
        cidr = resolution.vpc.cidr

        if attachment.route_table_id != resolution.route_table.id:
            raise TopologyError(
                f"Cannot propagate spoke '{resolution.name}' before its "
                "association commits",
                entity_ref=resolution.name,
            )

        if attachment.id not in hub_table.propagations:
            hub_table.propagations.append(attachment.id)
        route = TGWRouteModel(
            prefix=cidr,
            target=attachment.id,
            target_type="vpc",
            type="propagated",
        )
        try:
            if hub_table.add_route(route):
                result.propagated.append(route)

            for table in topology.hub.route_tables:
                if table.tier == "firewall":
                    back = RouteModel(
                        destination=cidr,
                        target=tgw.id,
                        target_type="transit_gateway",
                        type="static",
                    )
                elif table.tier == "public":
                    endpoint = topology.firewall.endpoint_in(table.az)
                    back = RouteModel(
                        destination=cidr,
                        target=endpoint.id,
                        target_type="firewall_endpoint",
                        type="static",
                    )
                else:
                    continue
                if table.add_route(back):
                    result.return_routes.append(back)
        except ValueError as e:
            raise TopologyError(str(e), entity_ref=resolution.name) from e

        self._admit_to_policy(cidr)
        logger.debug("Propagated %s from %s into %s", cidr, attachment.id, hub_table.id)

    def reconcile(self, resolutions: list[SpokeResolution]) -> PropagationResult:
        """Run both phases over the hub and every resolved spoke.

        Reconciling the same spokes again leaves the tables unchanged.

        Raises:
            TopologyError: the hub is missing, an association is invalid, or a
                propagated route conflicts with an existing one.
        """
        topology = self.topology
        topology.ensure_mutable()
        tgw = topology.transit_gateway
        hub_attachment = tgw.inspection_attachment
        hub_table = tgw.hub_route_table
        if hub_attachment is None or hub_table is None or topology.firewall is None:
            raise TopologyError("Inspection hub must be built before propagation")

        pairs = [(hub_attachment, hub_table)] + [
            (r.attachment, r.route_table) for r in resolutions
        ]
        result = PropagationResult(associations=self.associate(pairs))
        for resolution in resolutions:
            self.propagate(resolution, result)

        logger.info(
            "Propagated %d spoke route(s) into %s, %d hub return route(s)",
            len(result.propagated),
            hub_table.label,
            len(result.return_routes),
        )
        return result
