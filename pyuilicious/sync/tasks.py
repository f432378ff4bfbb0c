"""Transfer task descriptions produced by a sync walk."""

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from .modes import UploadKind
from .scanner import LocalFile


@dataclass(frozen=True)
class UploadTask:
    """One local file to upload."""

    project_id: str
    local_file: LocalFile
    remote_path: str
    overwrite: bool
    kind: UploadKind

    @classmethod
    def from_local_file(
        cls, project_id: str, local_file: LocalFile, overwrite: bool
    ) -> "UploadTask":
        """Create an upload task targeting the file's relative path."""
        return cls(
            project_id=project_id,
            local_file=local_file,
            remote_path=local_file.relative_path,
            overwrite=overwrite,
            kind=UploadKind.for_name(local_file.name),
        )


@dataclass(frozen=True)
class DownloadTask:
    """One remote file to download."""

    project_id: str
    remote_path: str
    local_directory: Path
    target_path: Optional[str] = None
    """Path below local_directory to write to (defaults to remote_path)"""

    @property
    def local_target(self) -> str:
        return self.target_path or self.remote_path
