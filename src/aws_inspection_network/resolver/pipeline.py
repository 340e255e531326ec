"""Resolution pipeline: declared configuration in, validated topology out."""

from dataclasses import dataclass, field
from typing import Optional

from ..config import NetworkConfig
from ..core.logging import get_logger
from ..errors import NetworkResolutionError, ValidationFailure
from ..models import Diagnostic, FirewallLoggingModel
from .hub import HubResources, InspectionHubBuilder
from .propagation import PropagationResult, RoutePropagationEngine
from .spokes import SpokeAttachmentResolver, SpokeResolution
from .topology import Topology, build_topology
from .validation import TopologyValidator, errors_in

logger = get_logger("pipeline")


@dataclass
class ResolutionResult:
    """Resolved topology plus everything handed to the materialization layer."""

    config: NetworkConfig
    topology: Topology
    hub: HubResources
    spokes: list[SpokeResolution] = field(default_factory=list)
    failures: list[NetworkResolutionError] = field(default_factory=list)
    propagation: PropagationResult = field(default_factory=PropagationResult)
    findings: list[Diagnostic] = field(default_factory=list)

    @property
    def diagnostics(self) -> list[Diagnostic]:
        """Rejected spokes first, then validation findings."""
        rejected = [f.to_diagnostic(stage="spokes") for f in self.failures]
        return rejected + self.findings

    @property
    def ok(self) -> bool:
        return not self.failures and not errors_in(self.findings)

    def spoke(self, name: str) -> Optional[SpokeResolution]:
        return next((s for s in self.spokes if s.name == name), None)

    @property
    def outputs(self) -> dict:
        tgw = self.topology.transit_gateway
        return {
            "transit_gateway_id": tgw.id,
            "firewall_policy_id": self.hub.firewall_policy.id,
            "firewall_id": self.hub.firewall.id,
            "inspection_attachment_id": self.hub.attachment.id,
            "hub_route_table_id": self.hub.route_table.id,
            "spokes": {
                s.name: {
                    "attachment_id": s.attachment.id,
                    "route_table_id": s.route_table.id,
                }
                for s in self.spokes
            },
            "diagnostics": [
                d.model_dump(exclude_none=True) for d in self.diagnostics
            ],
        }


class ResolutionPipeline:
    """Run the resolver stages in order, validating after each one.

    Configuration errors and hub-level topology errors abort the run. A
    spoke that fails is reported in ``ResolutionResult.failures`` while the
    other spokes resolve. Any validation error raises ValidationFailure with
    every finding of that stage, before anything could be materialized.
    """

    def __init__(
        self, config: NetworkConfig, existing_networks: Optional[list[dict]] = None
    ):
        self.config = config
        self.validator = TopologyValidator(existing_networks)

    def _checkpoint(
        self,
        topology: Topology,
        stage: str,
        rejected: Optional[list[NetworkResolutionError]] = None,
    ) -> list[Diagnostic]:
        findings = self.validator.run(topology, stage)
        errors = errors_in(findings)
        if errors:
            for error in errors:
                logger.error("%s", error)
            raise ValidationFailure(
                f"Validation failed after the {stage} stage with "
                f"{len(errors)} error(s)",
                [f.to_diagnostic(stage="spokes") for f in rejected or []] + findings,
            )
        return findings

    def run(self, seal: bool = True) -> ResolutionResult:
        """Resolve the configuration; ``seal=False`` leaves the topology editable."""
        config = self.config
        logger.info("Resolving network for %s in %s", config.name_prefix, config.region)

        topology = build_topology(
            config.declarations(),
            name_prefix=config.name_prefix,
            region=config.region,
            amazon_side_asn=config.amazon_side_asn,
        )
        self._checkpoint(topology, "topology")

        hub = InspectionHubBuilder(
            topology,
            firewall_config=config.firewall,
            logging_config=FirewallLoggingModel(
                log_bucket_name=config.log_bucket_name,
                kms_key_id=config.kms_key_id,
                sns_topic_arn=config.sns_topic_arn,
            ),
        ).build()
        self._checkpoint(topology, "hub")

        report = SpokeAttachmentResolver(topology, config.max_workers).resolve()
        self._checkpoint(topology, "spokes", report.failures)

        propagation = RoutePropagationEngine(topology).reconcile(report.resolved)
        findings = self._checkpoint(topology, "propagation", report.failures)

        if seal:
            topology.seal()
        result = ResolutionResult(
            config=config,
            topology=topology,
            hub=hub,
            spokes=report.resolved,
            failures=report.failures,
            propagation=propagation,
            findings=findings,
        )
        logger.info(
            "Resolved %d spoke(s), %d rejected, %d warning(s)",
            len(result.spokes),
            len(result.failures),
            len(findings),
        )
        return result


def resolve(
    config: NetworkConfig, existing_networks: Optional[list[dict]] = None
) -> ResolutionResult:
    """Resolve a configuration in one call."""
    return ResolutionPipeline(config, existing_networks).run()
