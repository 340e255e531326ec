"""VPC-related Pydantic models."""

from typing import Optional, Literal
from pydantic import Field, field_validator, ConfigDict
from .base import AWSResource, DEFAULT_ROUTE, parse_cidr

Role = Literal["hub", "spoke"]
Tier = Literal["public", "private", "firewall"]
TargetType = Literal[
    "local",
    "transit_gateway",
    "attachment",
    "nat_gateway",
    "firewall_endpoint",
    "internet_gateway",
    "blackhole",
]


class RouteModel(AWSResource):
    """Route entry in a VPC route table."""

    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(default="route", description="Route identifier")
    destination: str = Field(..., alias="prefix", description="Destination CIDR")
    target: str = Field(..., description="Target resource id, or 'local'")
    target_type: TargetType = Field(default="local")
    state: Literal["active", "blackhole"] = Field(default="active")
    type: Optional[str] = Field(None, description="static or propagated")

    @property
    def is_default(self) -> bool:
        return self.destination == DEFAULT_ROUTE


class RouteTableModel(AWSResource):
    """VPC route table, kept as an ordered set of routes."""

    vpc_id: str = Field(..., description="Parent VPC ID")
    az: Optional[str] = Field(None, description="AZ for AZ-local tables")
    tier: Optional[Tier] = Field(None, description="Tier of associated subnets")
    subnets: list[str] = Field(
        default_factory=list, description="Associated subnet IDs"
    )
    routes: list[RouteModel] = Field(default_factory=list)

    def route_for(self, destination: str) -> Optional[RouteModel]:
        return next((r for r in self.routes if r.destination == destination), None)

    def default_routes(self) -> list[RouteModel]:
        return [r for r in self.routes if r.is_default]

    def add_route(self, route: RouteModel) -> bool:
        """Insert a route keeping destinations unique.

        Returns False when an identical route already exists. Raises
        ValueError when the destination is already routed elsewhere.
        """
        existing = self.route_for(route.destination)
        if existing is None:
            self.routes.append(route)
            return True
        if existing.target == route.target:
            return False
        raise ValueError(
            f"{self.label}: {route.destination} already routed to {existing.target}"
        )


class SubnetModel(AWSResource):
    """VPC Subnet."""

    vpc_id: str = Field(..., description="Parent VPC ID")
    cidr: str = Field(..., description="Subnet CIDR block")
    az: str = Field(..., description="Availability zone")
    tier: Tier = Field(default="private")

    @property
    def public(self) -> bool:
        return self.tier == "public"


class InternetGatewayModel(AWSResource):
    """Internet gateway attached to the hub VPC."""

    vpc_id: str

    @field_validator("id")
    @classmethod
    def validate_igw_id(cls, v: str) -> str:
        if not v.startswith("igw-"):
            raise ValueError(f"IGW ID must start with 'igw-': {v}")
        return v


class NatGatewayModel(AWSResource):
    """AZ-local NAT gateway in a public hub subnet."""

    subnet_id: str
    az: str
    vpc_id: str

    @field_validator("id")
    @classmethod
    def validate_nat_id(cls, v: str) -> str:
        if not v.startswith("nat-"):
            raise ValueError(f"NAT gateway ID must start with 'nat-': {v}")
        return v


class VPCModel(AWSResource):
    """VPC resource model."""

    cidr: str = Field(..., description="Primary CIDR block")
    role: Role = Field(default="spoke")
    availability_zones: list[str] = Field(default_factory=list)
    subnets: list[SubnetModel] = Field(default_factory=list)
    route_tables: list[RouteTableModel] = Field(default_factory=list)

    @field_validator("id")
    @classmethod
    def validate_vpc_id(cls, v: str) -> str:
        if not v.startswith("vpc-"):
            raise ValueError(f"VPC ID must start with 'vpc-': {v}")
        return v

    @field_validator("cidr")
    @classmethod
    def validate_cidr(cls, v: str) -> str:
        return str(parse_cidr(v))

    def subnets_in(
        self, az: Optional[str] = None, tier: Optional[Tier] = None
    ) -> list[SubnetModel]:
        return [
            s
            for s in self.subnets
            if (az is None or s.az == az) and (tier is None or s.tier == tier)
        ]

    def route_tables_for(self, tier: Tier) -> list[RouteTableModel]:
        return [rt for rt in self.route_tables if rt.tier == tier]
