"""pyneocities - push and pull a local directory to and from a Neocities site."""

from .api import NeocitiesClient
from .exceptions import (
    IgnoreFileError,
    LocalPathNotFoundError,
    NeocitiesAPIError,
    NeocitiesAuthenticationError,
    NeocitiesConfigError,
    NeocitiesDownloadError,
    NeocitiesError,
    NeocitiesFileExistsError,
    NeocitiesInvalidResponseError,
    NeocitiesNetworkError,
    NeocitiesNotFoundError,
    NeocitiesRateLimitError,
    NeocitiesUploadError,
    NotADirectoryValidationError,
    SyncValidationError,
)
from .utils import calculate_sha1

__all__ = [
    "NeocitiesClient",
    "NeocitiesError",
    "NeocitiesAPIError",
    "NeocitiesAuthenticationError",
    "NeocitiesConfigError",
    "NeocitiesDownloadError",
    "NeocitiesFileExistsError",
    "NeocitiesInvalidResponseError",
    "NeocitiesNetworkError",
    "NeocitiesNotFoundError",
    "NeocitiesRateLimitError",
    "NeocitiesUploadError",
    "SyncValidationError",
    "LocalPathNotFoundError",
    "NotADirectoryValidationError",
    "IgnoreFileError",
    "calculate_sha1",
]
