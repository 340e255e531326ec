"""Pydantic models for the inspection network resolver."""

from .base import (
    AWSResource,
    CIDRBlock,
    DEFAULT_ROUTE,
    SealableModel,
    SealedDict,
    SealedList,
    cidrs_overlap,
    parse_cidr,
)
from .vpc import (
    VPCModel,
    SubnetModel,
    RouteTableModel,
    RouteModel,
    InternetGatewayModel,
    NatGatewayModel,
)
from .tgw import TGWModel, TGWAttachmentModel, TGWRouteTableModel, TGWRouteModel
from .firewall import (
    FirewallModel,
    FirewallEndpointModel,
    FirewallLoggingModel,
    FirewallPolicyModel,
    StatefulRule,
    StatefulRuleGroup,
    StatelessRule,
    StatelessRuleGroup,
)
from .diagnostics import Diagnostic

__all__ = [
    "AWSResource",
    "CIDRBlock",
    "SealableModel",
    "SealedDict",
    "SealedList",
    "DEFAULT_ROUTE",
    "cidrs_overlap",
    "parse_cidr",
    "VPCModel",
    "SubnetModel",
    "RouteTableModel",
    "RouteModel",
    "InternetGatewayModel",
    "NatGatewayModel",
    "TGWModel",
    "TGWAttachmentModel",
    "TGWRouteTableModel",
    "TGWRouteModel",
    "FirewallModel",
    "FirewallEndpointModel",
    "FirewallLoggingModel",
    "FirewallPolicyModel",
    "StatefulRule",
    "StatefulRuleGroup",
    "StatelessRule",
    "StatelessRuleGroup",
    "Diagnostic",
]
