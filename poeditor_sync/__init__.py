"""POEditor Sync - CLI tool for syncing Xcode localizations with POEditor."""

from .api import POEditorClient
from .config import POEditorConfig, load_config
from .exceptions import (
    ArtifactMissingError,
    POEditorAPIError,
    POEditorAuthenticationError,
    POEditorConfigError,
    POEditorInvalidResponseError,
    POEditorNetworkError,
    POEditorRateLimitError,
    POEditorSyncError,
    XcodeBuildError,
)
from .rate_limit import OperationClass, RateLimiter
from .xcode import XcodeService

__all__ = [
    "POEditorClient",
    "POEditorConfig",
    "load_config",
    "RateLimiter",
    "OperationClass",
    "XcodeService",
    "ArtifactMissingError",
    "POEditorAPIError",
    "POEditorAuthenticationError",
    "POEditorConfigError",
    "POEditorInvalidResponseError",
    "POEditorNetworkError",
    "POEditorRateLimitError",
    "POEditorSyncError",
    "XcodeBuildError",
]
