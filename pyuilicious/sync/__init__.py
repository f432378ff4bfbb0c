"""Sync engine for pyuilicious - folder import and tree export."""

from .context import SyncContext
from .engine import SyncEngine
from .modes import DEFAULT_ERROR_POLICIES, ErrorPolicy, UploadKind, UploadOutcome
from .operations import SyncOperations, export_test_file, read_file_contents
from .scanner import DirectoryScanner, LocalFile
from .tasks import DownloadTask, UploadTask

__all__ = [
    "SyncEngine",
    "SyncContext",
    "SyncOperations",
    "DirectoryScanner",
    "LocalFile",
    "UploadTask",
    "DownloadTask",
    "UploadKind",
    "UploadOutcome",
    "ErrorPolicy",
    "DEFAULT_ERROR_POLICIES",
    "export_test_file",
    "read_file_contents",
]
