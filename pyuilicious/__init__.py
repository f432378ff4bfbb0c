"""pyuilicious - import, export and run UI-licious test projects."""

from .api import UiliciousClient
from .exceptions import (
    UiliciousAPIError,
    UiliciousAuthenticationError,
    UiliciousConfigError,
    UiliciousDownloadError,
    UiliciousError,
    UiliciousFileExistsError,
    UiliciousInvalidResponseError,
    UiliciousLocalFileError,
    UiliciousNetworkError,
    UiliciousNotFoundError,
    UiliciousPermissionError,
    UiliciousRateLimitError,
    UiliciousUploadError,
)

__all__ = [
    "UiliciousClient",
    "UiliciousError",
    "UiliciousAPIError",
    "UiliciousAuthenticationError",
    "UiliciousConfigError",
    "UiliciousDownloadError",
    "UiliciousFileExistsError",
    "UiliciousInvalidResponseError",
    "UiliciousLocalFileError",
    "UiliciousNetworkError",
    "UiliciousNotFoundError",
    "UiliciousPermissionError",
    "UiliciousRateLimitError",
    "UiliciousUploadError",
]
