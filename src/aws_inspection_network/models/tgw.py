"""Transit Gateway Pydantic models."""

from typing import Optional, Literal
from pydantic import Field, field_validator
from .base import AWSResource, DEFAULT_ROUTE


class TGWRouteModel(AWSResource):
    """TGW Route entry."""

    id: str = Field(default="route", description="Route identifier")
    prefix: str = Field(..., description="Destination CIDR")
    target: Optional[str] = Field(None, description="Attachment ID, None for blackhole")
    target_type: Optional[str] = Field(None, description="vpc, vpn, peering, etc.")
    state: Literal["active", "blackhole"] = Field(default="active")
    type: Optional[str] = Field(None, description="propagated or static")

    @property
    def is_default(self) -> bool:
        return self.prefix == DEFAULT_ROUTE


class TGWRouteTableModel(AWSResource):
    """TGW Route Table."""

    kind: Literal["hub", "spoke"] = Field(..., description="Hub or spoke table")
    routes: list[TGWRouteModel] = Field(default_factory=list)
    associations: list[str] = Field(
        default_factory=list, description="Associated attachment IDs"
    )
    propagations: list[str] = Field(
        default_factory=list, description="Propagating attachment IDs"
    )

    @field_validator("id")
    @classmethod
    def validate_rtb_id(cls, v: str) -> str:
        if not v.startswith("tgw-rtb-"):
            raise ValueError(f"TGW route table ID must start with 'tgw-rtb-': {v}")
        return v

    def route_for(self, prefix: str) -> Optional[TGWRouteModel]:
        return next((r for r in self.routes if r.prefix == prefix), None)

    def default_routes(self) -> list[TGWRouteModel]:
        return [r for r in self.routes if r.is_default]

    def add_route(self, route: TGWRouteModel) -> bool:
        """Insert a route keeping prefixes unique; see RouteTableModel.add_route."""
        existing = self.route_for(route.prefix)
        if existing is None:
            self.routes.append(route)
            return True
        if existing.target == route.target and existing.state == route.state:
            return False
        raise ValueError(
            f"{self.label}: {route.prefix} already routed to {existing.target}"
        )


class TGWAttachmentModel(AWSResource):
    """TGW Attachment. References its VPC by id only."""

    type: str = Field(default="vpc", description="vpc, vpn, peering, connect, etc.")
    state: str = Field(default="pending")
    resource_id: str = Field(..., description="Attached VPC ID")
    subnet_ids: list[str] = Field(default_factory=list)
    is_inspection: bool = Field(default=False)
    appliance_mode: bool = Field(default=False)
    route_table_id: Optional[str] = Field(
        None, description="Associated TGW route table, set when associated"
    )

    @field_validator("id")
    @classmethod
    def validate_attachment_id(cls, v: str) -> str:
        if not v.startswith("tgw-attach-"):
            raise ValueError(f"Attachment ID must start with 'tgw-attach-': {v}")
        return v


class TGWModel(AWSResource):
    """Transit Gateway model."""

    state: str = Field(default="pending")
    asn: Optional[int] = Field(None, description="Amazon side ASN")
    attachments: list[TGWAttachmentModel] = Field(default_factory=list)
    route_tables: list[TGWRouteTableModel] = Field(default_factory=list)

    @field_validator("id")
    @classmethod
    def validate_tgw_id(cls, v: str) -> str:
        if not v.startswith("tgw-"):
            raise ValueError(f"TGW ID must start with 'tgw-': {v}")
        return v

    @property
    def inspection_attachment(self) -> Optional[TGWAttachmentModel]:
        return next((a for a in self.attachments if a.is_inspection), None)

    @property
    def hub_route_table(self) -> Optional[TGWRouteTableModel]:
        return next((rt for rt in self.route_tables if rt.kind == "hub"), None)

    def attachment(self, attachment_id: str) -> Optional[TGWAttachmentModel]:
        return next((a for a in self.attachments if a.id == attachment_id), None)

    def attachment_for(self, vpc_id: str) -> Optional[TGWAttachmentModel]:
        return next((a for a in self.attachments if a.resource_id == vpc_id), None)

    def route_table(self, table_id: str) -> Optional[TGWRouteTableModel]:
        return next((rt for rt in self.route_tables if rt.id == table_id), None)
