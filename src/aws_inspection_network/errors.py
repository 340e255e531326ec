"""Exception hierarchy for topology resolution."""

from typing import Optional

from .models.diagnostics import Diagnostic


class NetworkResolutionError(Exception):
    """Base error for every failure raised while resolving a topology."""

    code = "RESOLUTION_ERROR"

    def __init__(self, message: str, entity_ref: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.entity_ref = entity_ref

    def to_diagnostic(self, stage: Optional[str] = None) -> Diagnostic:
        """Render this error as an error-severity diagnostic."""
        return Diagnostic(
            severity="error",
            code=self.code,
            message=self.message,
            entity_ref=self.entity_ref,
            stage=stage,
        )


class ConfigurationError(NetworkResolutionError):
    """Malformed or missing declared input. Aborts before resolution."""

    code = "CONFIGURATION"


class TopologyError(NetworkResolutionError):
    """Structural inconsistency in the topology graph."""

    code = "TOPOLOGY"


class RouteBypassError(TopologyError):
    """A spoke declared a route that skips the inspection hub."""

    code = "ROUTE_BYPASS"


class AttachmentConflictError(NetworkResolutionError):
    """A spoke CIDR collides with the hub or an already accepted spoke."""

    code = "ATTACHMENT_CONFLICT"

    def __init__(
        self, message: str, cidrs: tuple[str, str], entity_ref: Optional[str] = None
    ):
        super().__init__(message, entity_ref)
        self.cidrs = cidrs


class ValidationFailure(NetworkResolutionError):
    """Invariant breach found by validation. Carries every finding."""

    code = "VALIDATION"

    def __init__(self, message: str, diagnostics: list[Diagnostic]):
        super().__init__(message)
        self.diagnostics = diagnostics

    @property
    def errors(self) -> list[Diagnostic]:
        return [d for d in self.diagnostics if d.severity == "error"]
