"""Exceptions raised by poeditor-sync."""

from typing import Optional


class POEditorSyncError(Exception):
    """Base exception for all poeditor-sync errors."""


class POEditorConfigError(POEditorSyncError):
    """Configuration is missing or invalid, or requested languages are unknown."""


class XcodeBuildError(POEditorSyncError):
    """An xcodebuild (or other external tool) invocation failed."""

    def __init__(
        self,
        message: str,
        output: str = "",
        returncode: Optional[int] = None,
    ):
        super().__init__(message)
        self.output = output
        self.returncode = returncode


class ArtifactMissingError(POEditorSyncError):
    """An expected per-language XLIFF file does not exist."""

    def __init__(self, language: str, path: str):
        super().__init__(f"XLIFF file for '{language}' not found at: {path}")
        self.language = language
        self.path = path


class POEditorAPIError(POEditorSyncError):
    """POEditor API returned an error response."""

    def __init__(self, message: str, code: Optional[str] = None):
        super().__init__(message)
        self.code = code


class POEditorNetworkError(POEditorAPIError):
    """Transport failure while talking to POEditor."""


class POEditorAuthenticationError(POEditorAPIError):
    """API token rejected by POEditor."""


class POEditorRateLimitError(POEditorAPIError):
    """POEditor rejected the request because of its rate limit."""


class POEditorInvalidResponseError(POEditorAPIError):
    """Response body is not a valid POEditor envelope."""
