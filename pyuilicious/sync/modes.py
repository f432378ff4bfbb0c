"""Upload kinds and per-kind error policies."""

from enum import Enum

from ..utils import is_media_file


class UploadKind(str, Enum):
    """How a local file is sent to the service."""

    TEXT = "text"
    """JSON body with the file content as text"""

    RAW = "raw"
    """Multipart form upload of the file bytes"""

    @classmethod
    def for_name(cls, name: str) -> "UploadKind":
        """Classify a file by name."""
        return cls.RAW if is_media_file(name) else cls.TEXT


class ErrorPolicy(str, Enum):
    """What an upload task does with a non-skip error."""

    STRICT = "strict"
    """Fail the task and the aggregate"""

    BEST_EFFORT = "best_effort"
    """Log the error and report the task as done"""


class UploadOutcome(str, Enum):
    """Result of a single upload task."""

    UPLOADED = "uploaded"
    SKIPPED = "skipped"
    FAILED_IGNORED = "failed_ignored"


DEFAULT_ERROR_POLICIES: dict[UploadKind, ErrorPolicy] = {
    UploadKind.TEXT: ErrorPolicy.STRICT,
    UploadKind.RAW: ErrorPolicy.BEST_EFFORT,
}
