"""Declarative network configuration.

A configuration file describes the inspection hub and its spokes:

    name_prefix: lz
    region: ap-southeast-2
    inspection_vpc_cidr: 10.0.0.0/16
    availability_zones: [ap-southeast-2a, ap-southeast-2b, ap-southeast-2c]
    spokes:
      - name: nonprod
        cidr: 10.1.0.0/16
      - name: prod
        cidr: 10.2.0.0/16
    log_bucket_name: lz-logs
    kms_key_id: arn:aws:kms:ap-southeast-2:123456789012:key/example
    sns_topic_arn: arn:aws:sns:ap-southeast-2:123456789012:alerts

The resolver never reads files itself; callers build a NetworkConfig (directly
or through load_config) and pass it in.
"""

import json
from pathlib import Path
from typing import Literal, Optional, Union

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .errors import ConfigurationError
from .models.base import parse_cidr
from .models.vpc import Role, Tier

NAME_PATTERN = r"^[a-z0-9][a-z0-9-]*$"
HUB_NAME = "inspection"


def _cidr(v: str) -> str:
    try:
        return str(parse_cidr(v))
    except ValueError as e:
        raise ValueError(f"Invalid CIDR block: {v} ({e})") from e


class SubnetConfig(BaseModel):
    """Explicit subnet placement. Omit to have subnets carved automatically."""

    availability_zone: str
    tier: Tier
    cidr: str
    name: Optional[str] = None

    @field_validator("cidr")
    @classmethod
    def validate_cidr(cls, v: str) -> str:
        return _cidr(v)


class StaticRouteConfig(BaseModel):
    """Extra route on a spoke table. Only 'hub' and 'blackhole' are honoured."""

    destination: str
    target: str = "hub"

    @field_validator("destination")
    @classmethod
    def validate_destination(cls, v: str) -> str:
        return _cidr(v)


class SpokeConfig(BaseModel):
    name: str = Field(..., pattern=NAME_PATTERN)
    cidr: str
    availability_zones: Optional[list[str]] = Field(
        None, description="Defaults to the hub's availability zones"
    )
    subnets: Optional[list[SubnetConfig]] = None
    static_routes: list[StaticRouteConfig] = Field(default_factory=list)

    @field_validator("cidr")
    @classmethod
    def validate_cidr(cls, v: str) -> str:
        return _cidr(v)


class FirewallConfig(BaseModel):
    spoke_to_spoke: Literal["inspect", "deny"] = Field(
        "inspect", description="Pass inspected inter-spoke traffic, or drop it"
    )
    default_deny_override: bool = Field(
        False, description="Omit the stateless default-deny rule group"
    )
    stateful_default_actions: list[str] = Field(
        default_factory=lambda: ["aws:drop_strict", "aws:alert_strict"]
    )


class VPCDeclaration(BaseModel):
    """Role-tagged VPC as consumed by the topology model."""

    name: str = Field(..., pattern=NAME_PATTERN)
    cidr: str
    role: Role
    availability_zones: list[str] = Field(default_factory=list)
    subnets: Optional[list[SubnetConfig]] = None
    static_routes: list[StaticRouteConfig] = Field(default_factory=list)

    @field_validator("cidr")
    @classmethod
    def validate_cidr(cls, v: str) -> str:
        return _cidr(v)


class NetworkConfig(BaseModel):
    """Complete declared input for one resolution pass."""

    model_config = ConfigDict(extra="forbid")

    name_prefix: str = Field(..., pattern=NAME_PATTERN)
    region: str = Field(default="ap-southeast-2")
    inspection_vpc_cidr: str
    availability_zones: list[str] = Field(default_factory=list)
    inspection_subnets: Optional[list[SubnetConfig]] = None
    spokes: list[SpokeConfig] = Field(default_factory=list)
    firewall: FirewallConfig = Field(default_factory=FirewallConfig)

    # Passed through to the logging and alerting collaborators untouched
    log_bucket_name: Optional[str] = None
    kms_key_id: Optional[str] = None
    sns_topic_arn: Optional[str] = None

    amazon_side_asn: int = Field(default=64512, ge=1, le=4294967294)
    max_workers: int = Field(default=4, ge=1, description="Spoke check threads")

    @field_validator("inspection_vpc_cidr")
    @classmethod
    def validate_cidr(cls, v: str) -> str:
        return _cidr(v)

    def declarations(self) -> list[VPCDeclaration]:
        """Hub first, then spokes in declaration order."""
        hub = VPCDeclaration(
            name=HUB_NAME,
            cidr=self.inspection_vpc_cidr,
            role="hub",
            availability_zones=list(self.availability_zones),
            subnets=self.inspection_subnets,
        )
        spokes = [
            VPCDeclaration(
                name=spoke.name,
                cidr=spoke.cidr,
                role="spoke",
                availability_zones=list(
                    spoke.availability_zones
                    if spoke.availability_zones is not None
                    else self.availability_zones
                ),
                subnets=spoke.subnets,
                static_routes=spoke.static_routes,
            )
            for spoke in self.spokes
        ]
        return [hub, *spokes]

    def name_tag(self, name: str) -> str:
        return f"{self.name_prefix}-{name}"

    @classmethod
    def from_dict(cls, data: dict) -> "NetworkConfig":
        try:
            return cls.model_validate(data)
        except ValidationError as e:
            problems = "; ".join(
                f"{'.'.join(str(p) for p in err['loc']) or '<root>'}: {err['msg']}"
                for err in e.errors()
            )
            raise ConfigurationError(f"Invalid network configuration: {problems}")


def load_config(path: Union[str, Path]) -> NetworkConfig:
    """Load a NetworkConfig from a YAML or JSON file."""
    path = Path(path)
    if not path.exists():
        raise ConfigurationError(f"Configuration file not found: {path}")
    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise ConfigurationError(f"Cannot read {path}: {e}") from e
    try:
        if path.suffix == ".json":
            data = json.loads(text)
        else:
            data = yaml.safe_load(text)
    except (json.JSONDecodeError, yaml.YAMLError) as e:
        raise ConfigurationError(f"Cannot parse {path}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigurationError(f"{path} must contain a mapping at the top level")
    return NetworkConfig.from_dict(data)
