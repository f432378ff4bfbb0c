"""Transfer operations used by the sync engine."""

import asyncio
from pathlib import Path
from typing import Any, Union

from ..api import UiliciousClient
from ..exceptions import (
    UiliciousAPIError,
    UiliciousDownloadError,
    UiliciousLocalFileError,
)
from ..utils import (
    EMPTY_FILE_PLACEHOLDER,
    is_script_file,
    split_remote_path,
    to_binary_bytes,
)
from .modes import UploadKind
from .tasks import DownloadTask, UploadTask


async def read_file_contents(path: Path) -> str:
    """Read a local file as UTF-8 text for a text upload.

    Undecodable bytes are replaced. An empty file yields a placeholder
    comment since the service does not accept empty scripts.

    Raises:
        UiliciousLocalFileError: If the file cannot be read
    """
    try:
        content = await asyncio.to_thread(
            path.read_text, encoding="utf-8", errors="replace"
        )
    except OSError as e:
        raise UiliciousLocalFileError(f"Unable to read {path}: {e}") from e
    return content or EMPTY_FILE_PLACEHOLDER


def _write_file(target: Path, content: Union[str, bytes]) -> None:
    if is_script_file(target.name) and isinstance(content, str):
        target.write_text(content, encoding="utf-8")
    else:
        target.write_bytes(to_binary_bytes(content))


async def export_test_file(
    directory: Union[str, Path], remote_path: str, content: Union[str, bytes]
) -> str:
    """Write one exported file below ``directory``.

    Folders in ``remote_path`` are recreated below ``directory``. Scripts
    (``.js``) are written as UTF-8 text, everything else as binary.

    Args:
        directory: Local export directory
        remote_path: Path of the file in the remote project
        content: File content returned by the service

    Returns:
        Confirmation message

    Raises:
        UiliciousDownloadError: If the folder or the file cannot be written
    """
    target_dir, file_name = split_remote_path(directory, remote_path)

    try:
        await asyncio.to_thread(target_dir.mkdir, parents=True, exist_ok=True)
    except OSError as e:
        raise UiliciousDownloadError(
            f"Unable to create directory {target_dir}: {e}"
        ) from e

    target = target_dir / file_name
    try:
        await asyncio.to_thread(_write_file, target, content)
    except OSError as e:
        raise UiliciousDownloadError(f"Unable to write {target}: {e}") from e

    return f"File <{file_name}> successfully saved in {target_dir}"


class SyncOperations:
    """Thin async wrappers around the API client for single transfers."""

    def __init__(self, client: UiliciousClient):
        """Initialize sync operations.

        Args:
            client: UI-licious API client
        """
        self.client = client

    async def upload(self, task: UploadTask) -> Any:
        """Send one local file through the endpoint matching its kind.

        Returns:
            Upload response from API
        """
        local_path = task.local_file.path
        if task.kind == UploadKind.RAW:
            return await self.client.upload_raw_file(
                project_id=task.project_id,
                file_path=task.remote_path,
                local_path=local_path,
                overwrite=task.overwrite,
            )

        content = await read_file_contents(local_path)
        return await self.client.put_file(
            project_id=task.project_id,
            file_path=task.remote_path,
            content=content,
            overwrite=task.overwrite,
        )

    async def download(self, task: DownloadTask) -> str:
        """Fetch one remote file and write it below the task's directory.

        Returns:
            Confirmation message from :func:`export_test_file`
        """
        try:
            content = await self.client.get_file(task.project_id, task.remote_path)
        except UiliciousDownloadError:
            raise
        except UiliciousAPIError as e:
            raise UiliciousDownloadError(
                f"Unable to download {task.remote_path}: {e}", code=e.code
            ) from e
        if content is None:
            content = ""
        return await export_test_file(task.local_directory, task.local_target, content)

    async def make_folder(self, directory: Path) -> Path:
        """Create a local folder if it does not exist yet."""
        try:
            await asyncio.to_thread(directory.mkdir, parents=True, exist_ok=True)
        except OSError as e:
            raise UiliciousDownloadError(
                f"Unable to create directory {directory}: {e}"
            ) from e
        return directory
