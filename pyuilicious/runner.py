"""Remote test execution for the run command."""

import asyncio
import json
import logging
from pathlib import Path
from typing import Any, Optional

from .api import UiliciousClient
from .exceptions import UiliciousLocalFileError
from .models import RunResult
from .output import OutputFormatter

logger = logging.getLogger(__name__)

DEFAULT_BROWSER = "chrome"
DEFAULT_WIDTH = 1280
DEFAULT_HEIGHT = 960
DEFAULT_POLL_INTERVAL = 2.0


def format_step(step: dict[str, Any]) -> str:
    """Format one step of a test run as a single line."""
    status = str(step.get("status") or "pending")
    description = step.get("description") or ""
    duration = step.get("time")
    if isinstance(duration, (int, float)):
        return f"[{status}] {description} ({duration:.2f}s)"
    return f"[{status}] {description}"


class ScriptRunner:
    """Starts a test run and follows it until it finishes."""

    def __init__(
        self,
        client: UiliciousClient,
        output: Optional[OutputFormatter] = None,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
    ):
        self.client = client
        self.output = output or OutputFormatter()
        self.poll_interval = poll_interval

    async def run(
        self,
        project_id: str,
        script_path: str,
        browser: str = DEFAULT_BROWSER,
        width: int = DEFAULT_WIDTH,
        height: int = DEFAULT_HEIGHT,
        save_dir: Optional[Path] = None,
    ) -> RunResult:
        """Run a script and print its steps as they complete.

        Args:
            project_id: ID of the project holding the script
            script_path: Path of the script inside the project
            browser: Browser to run in
            width: Browser width in pixels
            height: Browser height in pixels
            save_dir: Optional directory for the JSON test log

        Returns:
            Final result of the run
        """
        test_id = await self.client.start_test(
            project_id, script_path, browser=browser, width=width, height=height
        )
        self.output.info(f"Test started for {script_path} ({test_id})")

        printed = 0
        while True:
            result = await self.client.get_test_result(project_id, test_id)
            for step in result.steps[printed:]:
                self.output.print(format_step(step))
            printed = max(printed, len(result.steps))
            if result.is_finished:
                break
            await asyncio.sleep(self.poll_interval)

        logger.debug("Test %s finished with status %s", test_id, result.status)

        if save_dir is not None:
            log_path = await self.save_log(result, script_path, save_dir)
            self.output.info(f"Test log saved to {log_path}")

        return result

    async def save_log(
        self, result: RunResult, script_path: str, save_dir: Path
    ) -> Path:
        """Write the raw result of a run as JSON.

        Returns:
            Path of the written log file

        Raises:
            UiliciousLocalFileError: If the log cannot be written
        """
        script_name = Path(script_path).stem or "test"
        log_path = save_dir / f"{script_name}-{result.test_id}.json"
        text = json.dumps(result.raw, indent=2)

        def write() -> None:
            save_dir.mkdir(parents=True, exist_ok=True)
            log_path.write_text(text, encoding="utf-8")

        try:
            await asyncio.to_thread(write)
        except OSError as e:
            raise UiliciousLocalFileError(
                f"Unable to save test log to {save_dir}: {e}"
            ) from e
        return log_path
