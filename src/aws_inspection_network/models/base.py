"""Base Pydantic models for planned AWS resources."""

from ipaddress import ip_network, IPv4Network
from typing import Optional
from pydantic import BaseModel, Field, PrivateAttr, field_validator, ConfigDict

DEFAULT_ROUTE = "0.0.0.0/0"


def _sealed_error(what: str):
    from ..errors import TopologyError  # errors imports the models package

    return TopologyError(
        f"Topology is sealed after validation; {what} cannot be modified"
    )


class SealedList(list):
    """List that refuses every change."""

    def _refuse(self, *args, **kwargs):
        raise _sealed_error("list")

    append = extend = insert = remove = pop = clear = sort = reverse = _refuse
    __setitem__ = __delitem__ = __iadd__ = __imul__ = _refuse


class SealedDict(dict):
    """Dict that refuses every change."""

    def _refuse(self, *args, **kwargs):
        raise _sealed_error("mapping")

    __setitem__ = __delitem__ = __ior__ = _refuse
    clear = pop = popitem = setdefault = update = _refuse


def _freeze(value):
    if isinstance(value, SealableModel):
        value.seal()
        return value
    if isinstance(value, list):
        return SealedList(_freeze(v) for v in value)
    if isinstance(value, dict):
        return SealedDict((k, _freeze(v)) for k, v in value.items())
    return value


class SealableModel(BaseModel):
    """Model that can be frozen in place, together with everything it holds.

    After seal(), assigning a field or changing one of its lists or dicts
    raises TopologyError.
    """

    _sealed: bool = PrivateAttr(default=False)

    @property
    def is_sealed(self) -> bool:
        return self._sealed

    def seal(self):
        if self._sealed:
            return
        for name in type(self).model_fields:
            self.__dict__[name] = _freeze(self.__dict__[name])
        self._sealed = True

    def __setattr__(self, name, value):
        if getattr(self, "_sealed", False):
            raise _sealed_error(f"{type(self).__name__}.{name}")
        super().__setattr__(name, value)


def parse_cidr(value: str) -> IPv4Network:
    """Parse an IPv4 CIDR, rejecting host bits and IPv6."""
    network = ip_network(value, strict=True)
    if network.version != 4:
        raise ValueError(f"Only IPv4 CIDR blocks are supported: {value}")
    return network


def cidrs_overlap(a: str, b: str) -> bool:
    return parse_cidr(a).overlaps(parse_cidr(b))


class CIDRBlock(BaseModel):
    """Validated CIDR block."""

    cidr: str = Field(..., description="CIDR notation (e.g., 10.0.0.0/16)")

    @field_validator("cidr")
    @classmethod
    def validate_cidr(cls, v: str) -> str:
        try:
            return str(parse_cidr(v))
        except ValueError as e:
            raise ValueError(f"Invalid CIDR format: {v}") from e

    @property
    def network(self) -> IPv4Network:
        return parse_cidr(self.cidr)

    def overlaps(self, other: "CIDRBlock") -> bool:
        return self.network.overlaps(other.network)


class AWSResource(SealableModel):
    """Base model for every resource the resolver plans."""

    model_config = ConfigDict(extra="allow")

    id: str = Field(..., description="Planned AWS resource ID")
    name: Optional[str] = Field(None, description="Resource name tag")
    region: str = Field(default="", description="AWS region")
    tags: dict[str, str] = Field(default_factory=dict)

    @field_validator("id")
    @classmethod
    def validate_id(cls, v: str) -> str:
        if not v or len(v) < 3:
            raise ValueError(f"Invalid resource ID: {v}")
        return v

    @property
    def label(self) -> str:
        """Name when tagged, otherwise the id."""
        return self.name or self.id

    def to_dict(self) -> dict:
        return self.model_dump(exclude_none=True)
