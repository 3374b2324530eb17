"""Custom exceptions for pyneocities."""

from typing import Optional


class NeocitiesError(Exception):
    """Base exception for all pyneocities errors."""


class NeocitiesAPIError(NeocitiesError):
    """The Neocities API reported an error or returned an unusable response."""

    def __init__(self, message: str, error_type: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.error_type = error_type

    def __str__(self) -> str:
        if self.error_type:
            return f"{self.message} ({self.error_type})"
        return self.message


class NeocitiesAuthenticationError(NeocitiesAPIError):
    """Invalid API key, sitename or password."""


class NeocitiesNotFoundError(NeocitiesAPIError):
    """Requested site or file does not exist."""


class NeocitiesRateLimitError(NeocitiesAPIError):
    """Too many requests."""


class NeocitiesInvalidResponseError(NeocitiesAPIError):
    """Server answered with something that is not a JSON envelope."""


class NeocitiesFileExistsError(NeocitiesAPIError):
    """Remote file already exists with identical content.

    Not a fault: callers render it as a neutral outcome.
    """


class NeocitiesUploadError(NeocitiesAPIError):
    """Upload failed."""


class NeocitiesDownloadError(NeocitiesAPIError):
    """Download of a site file failed."""


class NeocitiesNetworkError(NeocitiesError):
    """Connection, timeout or other transport failure."""


class NeocitiesConfigError(NeocitiesError):
    """Missing or invalid client configuration."""


class SyncValidationError(NeocitiesError):
    """Invalid input for a sync run; raised before any transfer starts."""


class LocalPathNotFoundError(SyncValidationError):
    """Local root does not exist."""

    def __init__(self, path: object):
        super().__init__(f"Path does not exist: {path}")
        self.path = path


class NotADirectoryValidationError(SyncValidationError):
    """Local root exists but is not a directory."""

    def __init__(self, path: object):
        super().__init__(f"Path is not a directory: {path}")
        self.path = path


class IgnoreFileError(NeocitiesError):
    """An ignore file exists but could not be read."""
