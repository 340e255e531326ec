"""Validation finding model."""

from typing import Literal, Optional
from pydantic import BaseModel, ConfigDict, Field

Severity = Literal["error", "warning", "info"]


class Diagnostic(BaseModel):
    """Single finding reported by validation or by a rejected spoke."""

    model_config = ConfigDict(frozen=True)

    severity: Severity
    code: str = Field(..., description="Stable check identifier, e.g. CIDR_OVERLAP")
    message: str
    entity_ref: Optional[str] = Field(None, description="Name or id of the entity")
    stage: Optional[str] = Field(None, description="Pipeline stage that found it")

    @property
    def is_error(self) -> bool:
        return self.severity == "error"

    def __str__(self):
        ref = f" [{self.entity_ref}]" if self.entity_ref else ""
        return f"{self.severity.upper()} {self.code}{ref}: {self.message}"
