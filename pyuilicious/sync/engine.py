"""Core sync engine for folder import and tree export."""

import asyncio
import logging
import time
from collections.abc import Coroutine, Iterable
from pathlib import Path
from typing import Any, Optional, Union

from ..exceptions import (
    UiliciousAPIError,
    UiliciousFileExistsError,
    UiliciousLocalFileError,
    UiliciousUploadError,
)
from ..models import RemoteNode
from .context import SyncContext
from .modes import ErrorPolicy, UploadOutcome
from .operations import SyncOperations
from .scanner import DirectoryScanner
from .tasks import DownloadTask, UploadTask

logger = logging.getLogger(__name__)


class SyncEngine:
    """Imports local folders into a project and exports projects to disk.

    Every transfer of one call runs as its own asyncio task. The call
    returns once all of them succeeded and raises as soon as one fails;
    the remaining tasks are not cancelled and keep running until they
    finish on their own. :meth:`drain` waits for them.
    """

    def __init__(self, context: SyncContext):
        """Initialize sync engine.

        Args:
            context: Client, output and options of the current command
        """
        self.context = context
        self.client = context.client
        self.output = context.output
        self.operations = SyncOperations(context.client)
        self._pending: set[asyncio.Task] = set()

    # =========================
    # Task bookkeeping
    # =========================

    def _on_task_done(self, task: asyncio.Task) -> None:
        self._pending.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.debug("Task %s failed: %s", task.get_name(), task.exception())

    def _spawn(self, coro: Coroutine[Any, Any, Any], name: str) -> asyncio.Task:
        task = asyncio.create_task(coro, name=name)
        self._pending.add(task)
        task.add_done_callback(self._on_task_done)
        return task

    async def _gather_fail_fast(self, tasks: Iterable[asyncio.Task]) -> list[Any]:
        """Wait for all tasks; raise the first failure without cancelling."""
        tasks = list(tasks)
        if not tasks:
            return []
        return list(await asyncio.gather(*tasks))

    async def drain(self) -> None:
        """Wait until every task spawned by this engine has finished."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    # =========================
    # Import
    # =========================

    async def import_folder_contents(
        self, project_id: str, folder_path: Union[str, Path]
    ) -> dict:
        """Upload every non-hidden file below a local folder.

        Direct children are uploaded under their own name; files in
        subfolders under their path relative to ``folder_path``. Media
        files (.jpg/.png) use the raw upload, everything else the text
        upload. Files that already exist remotely are skipped.

        Args:
            project_id: ID of the target project
            folder_path: Local folder to import

        Returns:
            Dictionary with upload statistics

        Raises:
            UiliciousLocalFileError: If the folder is missing or unreadable
            UiliciousUploadError: If an upload fails under the strict policy
        """
        folder = Path(folder_path)
        if not folder.exists():
            raise UiliciousLocalFileError(f"This path does not exist: {folder}")
        if not folder.is_dir():
            raise UiliciousLocalFileError(f"This path is not a folder: {folder}")

        start_time = time.time()
        scanner = DirectoryScanner()
        tasks: list[asyncio.Task] = []

        async for local_file in scanner.iter_local(folder):
            upload_task = UploadTask.from_local_file(
                project_id, local_file, self.context.overwrite
            )
            tasks.append(
                self._spawn(
                    self._run_upload_task(upload_task),
                    name=f"upload:{upload_task.remote_path}",
                )
            )

        logger.debug("Issued %d upload task(s) for %s", len(tasks), folder)
        outcomes = await self._gather_fail_fast(tasks)

        stats = {
            "uploads": outcomes.count(UploadOutcome.UPLOADED),
            "skips": outcomes.count(UploadOutcome.SKIPPED),
            "errors": outcomes.count(UploadOutcome.FAILED_IGNORED),
        }
        elapsed = time.time() - start_time
        logger.debug("Import of %s finished in %.2fs: %s", folder, elapsed, stats)
        return stats

    async def _run_upload_task(self, task: UploadTask) -> UploadOutcome:
        """Upload one file and apply the error policy of its kind."""
        policy = self.context.policy_for(task.kind)
        try:
            await self.operations.upload(task)
        except UiliciousFileExistsError:
            if self.context.verbose:
                self.output.info(
                    f"existing file found ({task.remote_path}) -> Skipping"
                )
            return UploadOutcome.SKIPPED
        except UiliciousAPIError as e:
            if policy == ErrorPolicy.BEST_EFFORT:
                self.output.error(f"Unable to upload {task.remote_path}: {e}")
                return UploadOutcome.FAILED_IGNORED
            raise UiliciousUploadError(
                f"An error occurred while uploading the test script "
                f"({task.remote_path}): {e}",
                code=e.code,
            ) from e

        if self.context.verbose:
            if task.overwrite:
                self.output.info(
                    f"Uploading test script ({task.remote_path}) "
                    "with overwrite mode enabled"
                )
            else:
                self.output.info(f"uploading test script ({task.remote_path})")
        return UploadOutcome.UPLOADED

    # =========================
    # Export
    # =========================

    async def export_test_directory(
        self,
        project_id: str,
        local_directory: Union[str, Path],
        folder: Optional[str] = None,
    ) -> dict:
        """Download every file of a project into a local directory.

        Paths are written below ``local_directory`` exactly as listed, so
        ``folder`` narrows the download without re-rooting it. The CLI
        exports named folders through
        :meth:`export_directory_node_to_directory_path` instead; ``folder``
        serves library callers that want the flat listing filter.

        Args:
            project_id: ID of the source project
            local_directory: Directory that receives the project tree
            folder: Only export files at or below this remote folder

        Returns:
            Dictionary with download statistics

        Raises:
            UiliciousDownloadError: If a file cannot be fetched or written
        """
        entries = await self.client.list_files(project_id)
        prefix = (folder or "").strip("/")

        tasks = []
        for entry in entries:
            if not entry.is_file:
                continue
            if prefix and not (
                entry.path == prefix or entry.path.startswith(prefix + "/")
            ):
                continue
            download_task = DownloadTask(
                project_id=project_id,
                remote_path=entry.path,
                local_directory=Path(local_directory),
            )
            tasks.append(
                self._spawn(
                    self._run_download_task(download_task),
                    name=f"download:{entry.path}",
                )
            )

        logger.debug("Issued %d download task(s)", len(tasks))
        results = await self._gather_fail_fast(tasks)

        if self.context.verbose:
            self.output.info("saved tests scripts to your local directory")
        return {"downloads": len(results)}

    async def _run_download_task(self, task: DownloadTask) -> str:
        if self.context.verbose:
            self.output.info(f"downloading test script ({task.remote_path})")
        message = await self.operations.download(task)
        logger.debug(message)
        return message

    async def export_directory_node_to_directory_path(
        self,
        project_id: str,
        node: Optional[RemoteNode],
        local_dir_path: Union[str, Path],
    ) -> int:
        """Recursively export a node of the remote tree.

        A folder node is created as ``local_dir_path/<name>`` and its
        children are exported into it concurrently; a file node is fetched
        and written as ``local_dir_path/<name>``. A root node (empty name)
        exports its children straight into ``local_dir_path``.

        Args:
            project_id: ID of the source project
            node: Node to export (None is a no-op)
            local_dir_path: Local directory the node is placed in

        Returns:
            Number of files written below this node

        Raises:
            UiliciousDownloadError: If any file below the node fails
        """
        if node is None:
            return 0

        local_dir = Path(local_dir_path)

        if node.is_folder:
            next_path = local_dir / node.name if node.name else local_dir
            await self.operations.make_folder(next_path)
            tasks = [
                self._spawn(
                    self.export_directory_node_to_directory_path(
                        project_id, child, next_path
                    ),
                    name=f"export:{child.path}",
                )
                for child in node.children
            ]
            counts = await self._gather_fail_fast(tasks)
            return sum(counts)

        if node.is_file:
            await self._run_download_task(
                DownloadTask(
                    project_id=project_id,
                    remote_path=node.path,
                    local_directory=local_dir,
                    target_path=node.name,
                )
            )
            return 1

        return 0
