"""Topology and route-propagation resolver for a hub-and-spoke inspection network."""

__version__ = "0.1.0"

from .config import NetworkConfig, load_config
from .errors import (
    AttachmentConflictError,
    ConfigurationError,
    NetworkResolutionError,
    RouteBypassError,
    TopologyError,
    ValidationFailure,
)
from .resolver import ResolutionPipeline, ResolutionResult, resolve

__all__ = [
    "__version__",
    "NetworkConfig",
    "load_config",
    "AttachmentConflictError",
    "ConfigurationError",
    "NetworkResolutionError",
    "RouteBypassError",
    "TopologyError",
    "ValidationFailure",
    "ResolutionPipeline",
    "ResolutionResult",
    "resolve",
]
