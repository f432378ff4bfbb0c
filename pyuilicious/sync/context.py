"""Per-invocation options shared by the import and export engines."""

from dataclasses import dataclass, field

from ..api import UiliciousClient
from ..output import OutputFormatter
from .modes import DEFAULT_ERROR_POLICIES, ErrorPolicy, UploadKind


@dataclass
class SyncContext:
    """Everything a sync run needs besides its arguments.

    One context is built per CLI command and passed to the engine; tasks
    only read from it.
    """

    client: UiliciousClient
    """Logged in API client (owns the shared cookie jar)"""

    output: OutputFormatter = field(default_factory=OutputFormatter)
    """Formatter for user-facing messages"""

    overwrite: bool = False
    """Replace files that already exist remotely"""

    verbose: bool = False
    """Print one line per transferred file"""

    error_policies: dict[UploadKind, ErrorPolicy] = field(
        default_factory=lambda: dict(DEFAULT_ERROR_POLICIES)
    )
    """Error policy per upload kind"""

    def policy_for(self, kind: UploadKind) -> ErrorPolicy:
        """Return the error policy for an upload kind."""
        return self.error_policies.get(kind, ErrorPolicy.STRICT)
