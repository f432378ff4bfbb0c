"""Exceptions raised by pyuilicious."""

from typing import Optional


class UiliciousError(Exception):
    """Base class for all pyuilicious errors."""


class UiliciousConfigError(UiliciousError):
    """Raised when credentials or configuration are missing or unreadable."""


class UiliciousLocalFileError(UiliciousError):
    """Raised when a local path is missing, unreadable or not writable."""


class UiliciousAPIError(UiliciousError):
    """Raised when the remote service reports an error.

    Args:
        message: Human-readable error message
        code: Error code from the ``ERROR.code`` field of the response
            envelope, if the service sent one
    """

    def __init__(self, message: str, code: Optional[str] = None):
        super().__init__(message)
        self.code = code


class UiliciousAuthenticationError(UiliciousAPIError):
    """Raised on invalid credentials or unauthorized access."""


class UiliciousPermissionError(UiliciousAPIError):
    """Raised when access to a resource is forbidden."""


class UiliciousNotFoundError(UiliciousAPIError):
    """Raised when a resource does not exist."""


class UiliciousRateLimitError(UiliciousAPIError):
    """Raised when the service rejects a request with HTTP 429."""


class UiliciousNetworkError(UiliciousAPIError):
    """Raised on transport-level failures (connection, DNS, timeouts)."""


class UiliciousInvalidResponseError(UiliciousAPIError):
    """Raised when the service answers with something that is not JSON."""


class UiliciousFileExistsError(UiliciousAPIError):
    """Raised when a file is uploaded without overwrite and already exists."""

    def __init__(self, message: str = "File already exists"):
        super().__init__(message, code="FILE_ALREADY_EXISTS")


class UiliciousUploadError(UiliciousAPIError):
    """Raised when an upload fails under the strict error policy."""


class UiliciousDownloadError(UiliciousAPIError):
    """Raised when a remote file cannot be fetched or saved locally."""
