"""Network Firewall Pydantic models."""

from typing import Optional, Literal
from pydantic import Field
from .base import AWSResource, DEFAULT_ROUTE, SealableModel

StatelessAction = Literal["aws:pass", "aws:drop", "aws:forward_to_sfe"]
StatefulAction = Literal["pass", "drop", "alert", "reject"]

SPOKE_NETS = "$SPOKE_NETS"
ANY = "any"


class StatelessRule(SealableModel):
    """Per-packet rule. Lower priority numbers are evaluated first."""

    priority: int = Field(..., ge=1, le=65535)
    action: StatelessAction
    sources: list[str] = Field(default_factory=list)
    destinations: list[str] = Field(default_factory=list)

    @property
    def matches_everything(self) -> bool:
        return DEFAULT_ROUTE in self.sources and DEFAULT_ROUTE in self.destinations


class StatelessRuleGroup(AWSResource):
    priority: int
    capacity: int = Field(default=100)
    rules: list[StatelessRule] = Field(default_factory=list)


class StatefulRule(SealableModel):
    """Connection-tracking rule; sources/destinations accept rule variables."""

    action: StatefulAction
    protocol: str = Field(default="IP")
    source: str
    destination: str
    description: str = ""


class StatefulRuleGroup(AWSResource):
    priority: int
    capacity: int = Field(default=100)
    rules: list[StatefulRule] = Field(default_factory=list)


class FirewallPolicyModel(AWSResource):
    """Firewall policy owned by exactly one hub VPC."""

    vpc_id: str
    stateless_rule_groups: list[StatelessRuleGroup] = Field(default_factory=list)
    stateful_rule_groups: list[StatefulRuleGroup] = Field(default_factory=list)
    stateless_default_actions: list[str] = Field(
        default_factory=lambda: ["aws:forward_to_sfe"]
    )
    stateless_fragment_default_actions: list[str] = Field(
        default_factory=lambda: ["aws:forward_to_sfe"]
    )
    stateful_default_actions: list[str] = Field(
        default_factory=lambda: ["aws:drop_strict", "aws:alert_strict"]
    )
    rule_variables: dict[str, list[str]] = Field(default_factory=dict)
    default_deny_override: bool = Field(
        default=False, description="Operator explicitly waived stateless default-deny"
    )

    def has_default_deny(self) -> bool:
        """True if stateless evaluation ends in a drop for unmatched traffic."""
        if self.stateless_default_actions == ["aws:drop"]:
            return True
        return any(
            rule.action == "aws:drop" and rule.matches_everything
            for group in self.stateless_rule_groups
            for rule in group.rules
        )

    def stateless_group(self, name: str) -> Optional[StatelessRuleGroup]:
        return next((g for g in self.stateless_rule_groups if g.name == name), None)


class FirewallEndpointModel(AWSResource):
    """Firewall endpoint in a single AZ."""

    az: str
    subnet_id: str


class FirewallLoggingModel(SealableModel):
    """Opaque references handed to the logging and alerting collaborators."""

    log_bucket_name: Optional[str] = None
    kms_key_id: Optional[str] = None
    sns_topic_arn: Optional[str] = None
    log_types: list[str] = Field(default_factory=lambda: ["FLOW", "ALERT"])


class FirewallModel(AWSResource):
    vpc_id: str
    policy_id: str
    subnet_ids: list[str] = Field(default_factory=list)
    endpoints: list[FirewallEndpointModel] = Field(default_factory=list)
    logging: FirewallLoggingModel = Field(default_factory=FirewallLoggingModel)

    def endpoint_in(self, az: str) -> Optional[FirewallEndpointModel]:
        return next((e for e in self.endpoints if e.az == az), None)
