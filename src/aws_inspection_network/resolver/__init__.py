"""Topology and route-propagation resolver stages."""

from .topology import Topology, SpokeCandidate, build_topology, carve_subnets
from .hub import HubResources, InspectionHubBuilder, build_firewall_policy
from .spokes import SpokeAttachmentResolver, SpokeReport, SpokeResolution
from .propagation import Association, PropagationResult, RoutePropagationEngine
from .validation import STAGES, TopologyValidator, validate, errors_in
from .pipeline import ResolutionPipeline, ResolutionResult, resolve
from .plan import (
    Materializer,
    PlannedResource,
    RecordingMaterializer,
    ResourcePlan,
    apply,
    build_plan,
)
from .routes import iter_routes, search_routes
from .existing import ExistingNetworkReader

__all__ = [
    "Topology",
    "SpokeCandidate",
    "build_topology",
    "carve_subnets",
    "HubResources",
    "InspectionHubBuilder",
    "build_firewall_policy",
    "SpokeAttachmentResolver",
    "SpokeReport",
    "SpokeResolution",
    "Association",
    "PropagationResult",
    "RoutePropagationEngine",
    "STAGES",
    "TopologyValidator",
    "validate",
    "errors_in",
    "ResolutionPipeline",
    "ResolutionResult",
    "resolve",
    "Materializer",
    "PlannedResource",
    "RecordingMaterializer",
    "ResourcePlan",
    "apply",
    "build_plan",
    "iter_routes",
    "search_routes",
    "ExistingNetworkReader",
]
