"""API client for the UI-licious test automation service."""

from __future__ import annotations

import asyncio
import logging
import mimetypes
import random
from pathlib import Path
from typing import Any

import httpx

from .config import config
from .exceptions import (
    UiliciousAPIError,
    UiliciousAuthenticationError,
    UiliciousConfigError,
    UiliciousFileExistsError,
    UiliciousInvalidResponseError,
    UiliciousLocalFileError,
    UiliciousNetworkError,
    UiliciousNotFoundError,
    UiliciousPermissionError,
    UiliciousRateLimitError,
)
from .models import RemoteNode, RunResult, parse_file_listing
from .utils import encode_overwrite_flag

logger = logging.getLogger(__name__)

FILE_ALREADY_EXISTS = "FILE_ALREADY_EXISTS"


class UiliciousClient:
    """Asynchronous client for the UI-licious project API.

    One client owns one ``httpx.AsyncClient``; its cookie jar carries the
    login session and is shared by every request issued through it.
    """

    def __init__(
        self,
        user: str | None = None,
        password: str | None = None,
        api_url: str | None = None,
        max_retries: int = 3,
        retry_delay: float = 1.0,
        timeout: float | None = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """Initialize the API client.

        Args:
            user: Account login (uses config if not provided)
            password: Account password (uses config if not provided)
            api_url: Base URL of the API (uses config if not provided)
            max_retries: Maximum number of retry attempts (default: 3)
            retry_delay: Initial delay between retries in seconds (default: 1.0)
            timeout: Request timeout in seconds, None to wait forever
            transport: Optional httpx transport (used by tests)
        """
        self.user = user or config.user
        self.password = password or config.password
        self.api_url = (api_url or config.api_url).rstrip("/")
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self.timeout = timeout
        self._transport = transport

        if not self.user or not self.password:
            raise UiliciousConfigError(
                "Credentials not configured. Use --user/--pass or set "
                "UILICIOUS_USER and UILICIOUS_PASS."
            )

        self._client: httpx.AsyncClient | None = None

    def _get_client(self) -> httpx.AsyncClient:
        """Get or create the httpx client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self.timeout),
                follow_redirects=True,
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        """Close the client and release connections."""
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> UiliciousClient:
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    def _should_retry(self, exception: Exception, attempt: int) -> bool:
        """Determine if a request should be retried.

        Args:
            exception: The exception that occurred
            attempt: Current attempt number (0-based)

        Returns:
            True if the request should be retried, False otherwise
        """
        if attempt >= self.max_retries:
            return False

        # Transient failures
        if isinstance(exception, (UiliciousNetworkError, UiliciousRateLimitError)):
            return True

        return False

    def _calculate_retry_delay(self, attempt: int) -> float:
        """Calculate delay before next retry using exponential backoff.

        Args:
            attempt: Current attempt number (0-based)

        Returns:
            Delay in seconds
        """
        base_delay = self.retry_delay * (2**attempt)
        # +/- 25% jitter
        jitter = base_delay * 0.25 * (2 * random.random() - 1)
        return base_delay + jitter

    @staticmethod
    def _raise_for_envelope(data: Any) -> None:
        """Raise the error carried by an ``ERROR`` response envelope.

        Args:
            data: Decoded JSON body

        Raises:
            UiliciousFileExistsError: For FILE_ALREADY_EXISTS
            UiliciousAPIError: For any other error code
        """
        if not isinstance(data, dict) or not data.get("ERROR"):
            return

        error = data["ERROR"]
        if isinstance(error, dict):
            code = error.get("code")
            message = error.get("message") or code or "Unknown API error"
        else:
            code = None
            message = str(error)

        if code == FILE_ALREADY_EXISTS:
            raise UiliciousFileExistsError(message)
        raise UiliciousAPIError(f"API error: {message}", code=code)

    def _handle_http_error(
        self, e: httpx.HTTPStatusError, attempt: int
    ) -> tuple[Exception, bool]:
        """Handle HTTP errors and determine if retry should occur.

        Args:
            e: The HTTP error exception
            attempt: Current attempt number

        Returns:
            Tuple of (exception to raise, should_retry)
        """
        # Error envelopes take precedence over the status code
        try:
            body = e.response.json() if e.response.content else None
        except ValueError:
            body = None
        try:
            self._raise_for_envelope(body)
        except UiliciousAPIError as envelope_error:
            return (envelope_error, False)

        status_code = e.response.status_code

        if status_code == 401:
            return (UiliciousAuthenticationError("Invalid credentials"), False)
        elif status_code == 403:
            return (
                UiliciousPermissionError("Access forbidden - check your permissions"),
                False,
            )
        elif status_code == 404:
            return (UiliciousNotFoundError("Resource not found"), False)
        elif status_code == 429:
            error = UiliciousRateLimitError(
                "Rate limit exceeded - please try again later"
            )
            return (error, attempt < self.max_retries)
        else:
            error = UiliciousAPIError(f"API request failed with status {status_code}")
            should_retry = 500 <= status_code < 600 and attempt < self.max_retries
            return (error, should_retry)

    async def _request(self, method: str, endpoint: str, **kwargs: Any) -> Any:
        """Make an API request with retry logic.

        Args:
            method: HTTP method
            endpoint: API endpoint path
            **kwargs: Additional arguments passed to httpx

        Returns:
            The ``result`` field of the response envelope (or the whole
            body when it has none)

        Raises:
            UiliciousAPIError: If the request fails after all retries
        """
        url = f"{self.api_url}/{endpoint.lstrip('/')}"
        last_exception: Exception | None = None
        client = self._get_client()

        for attempt in range(self.max_retries + 1):
            try:
                response = await client.request(method, url, **kwargs)
                response.raise_for_status()

                content_type = response.headers.get("Content-Type", "")
                if response.content and "application/json" not in content_type:
                    # An HTML page usually means the session was rejected
                    if "text/html" in content_type:
                        raise UiliciousAuthenticationError(
                            "Not logged in - server returned HTML instead of JSON"
                        )
                    raise UiliciousInvalidResponseError(
                        f"Unexpected response type: {content_type}"
                    )

                if not response.content:
                    return None
                try:
                    data = response.json()
                except ValueError as e:
                    raise UiliciousInvalidResponseError(
                        "Invalid JSON response from server"
                    ) from e

                self._raise_for_envelope(data)
                if isinstance(data, dict) and "result" in data:
                    return data["result"]
                return data

            except httpx.HTTPStatusError as e:
                error, should_retry = self._handle_http_error(e, attempt)
                last_exception = error

                if should_retry:
                    if isinstance(error, UiliciousRateLimitError):
                        retry_after = e.response.headers.get("Retry-After")
                        if retry_after and retry_after.isdigit():
                            delay = float(retry_after)
                        else:
                            delay = self._calculate_retry_delay(attempt)
                    else:
                        delay = self._calculate_retry_delay(attempt)
                    logger.debug(
                        "%s %s failed (%s), retrying in %.1fs",
                        method,
                        endpoint,
                        error,
                        delay,
                    )
                    await asyncio.sleep(delay)
                    continue
                raise error from e
            except UiliciousAPIError:
                raise
            except httpx.RequestError as e:
                error = UiliciousNetworkError(f"Network error: {e}")
                last_exception = error
                if self._should_retry(error, attempt):
                    await asyncio.sleep(self._calculate_retry_delay(attempt))
                    continue
                raise error from e

        if last_exception:
            raise last_exception
        raise UiliciousAPIError("Request failed after all retry attempts")

    # =========================
    # Authentication Operations
    # =========================

    async def login(self) -> Any:
        """Log in and store the session cookie in the client's jar.

        Returns:
            The ``result`` of the login call

        Raises:
            UiliciousAuthenticationError: If the service rejects the credentials
        """
        data = {"loginEmail": self.user, "loginPassword": self.password}
        try:
            result = await self._request("POST", "/account/login", data=data)
        except UiliciousAuthenticationError:
            raise
        except UiliciousAPIError as e:
            if e.code is None:
                raise
            raise UiliciousAuthenticationError(
                f"Login failed for {self.user}: {e}", code=e.code
            ) from e

        if not result:
            raise UiliciousAuthenticationError(f"Login failed for {self.user}")
        logger.debug("Logged in as %s", self.user)
        return result

    # =========================
    # Project Operations
    # =========================

    async def list_projects(self) -> list[dict[str, Any]]:
        """List the projects the logged in user can access."""
        result = await self._request("GET", "/user/project/list")
        return result if isinstance(result, list) else []

    async def resolve_project_id(self, identifier: str) -> str:
        """Resolve a project name to its ID.

        Args:
            identifier: Project name or ID

        Returns:
            The ID of the project whose name matches, otherwise the
            identifier unchanged
        """
        for project in await self.list_projects():
            project_id = project.get("_oid") or project.get("id")
            if project.get("name") == identifier and project_id:
                logger.debug("Resolved project %s -> %s", identifier, project_id)
                return str(project_id)
        return identifier

    # =========================
    # File Operations
    # =========================

    async def list_files(self, project_id: str) -> list[RemoteNode]:
        """Get the flat file listing of a project.

        Args:
            project_id: ID of the project

        Returns:
            List of file and folder nodes
        """
        params = {"projectID": project_id, "type": "list"}
        result = await self._request("GET", "/project/file/query", params=params)
        return parse_file_listing(result)

    async def get_file(self, project_id: str, file_path: str) -> Any:
        """Get the content of a project file.

        Args:
            project_id: ID of the project
            file_path: Path of the file inside the project

        Returns:
            File content (text for scripts, "binary" string for media)
        """
        params = {"projectID": project_id, "filePath": file_path}
        return await self._request("GET", "/project/file", params=params)

    async def put_file(
        self,
        project_id: str,
        file_path: str,
        content: str,
        overwrite: bool = False,
    ) -> Any:
        """Store text content as a project file.

        Args:
            project_id: ID of the project
            file_path: Path of the file inside the project
            content: Text content
            overwrite: Replace the file if it already exists

        Raises:
            UiliciousFileExistsError: If the file exists and overwrite is off
        """
        payload = {
            "projectID": project_id,
            "filePath": file_path,
            "content": content,
            "overwrite": encode_overwrite_flag(overwrite),
        }
        return await self._request("PUT", "/project/file", json=payload)

    async def upload_raw_file(
        self,
        project_id: str,
        file_path: str,
        local_path: Path,
        overwrite: bool = False,
    ) -> Any:
        """Upload a local file as a multipart form.

        Args:
            project_id: ID of the project
            file_path: Path of the file inside the project
            local_path: Local file to send
            overwrite: Replace the file if it already exists

        Raises:
            UiliciousLocalFileError: If the local file cannot be read
            UiliciousFileExistsError: If the file exists and overwrite is off
        """
        try:
            content = await asyncio.to_thread(local_path.read_bytes)
        except OSError as e:
            raise UiliciousLocalFileError(f"Unable to read {local_path}: {e}") from e

        mime_type, _ = mimetypes.guess_type(local_path.name)
        data = {
            "projectID": project_id,
            "filePath": file_path,
            "overwrite": encode_overwrite_flag(overwrite),
        }
        files = {
            "content": (
                local_path.name,
                content,
                mime_type or "application/octet-stream",
            )
        }
        return await self._request("POST", "/project/file/put", data=data, files=files)

    # =========================
    # Test Run Operations
    # =========================

    async def start_test(
        self,
        project_id: str,
        script_path: str,
        browser: str = "chrome",
        width: int = 1280,
        height: int = 960,
    ) -> str:
        """Start a test run for a script.

        Returns:
            ID of the started test run
        """
        data = {
            "projectID": project_id,
            "runFile": script_path,
            "browser": browser,
            "width": str(width),
            "height": str(height),
        }
        result = await self._request("POST", "/project/workspace/test", data=data)
        if isinstance(result, dict):
            test_id = result.get("testID")
            if not test_id and result.get("testIDs"):
                test_id = result["testIDs"][0]
            if test_id:
                return str(test_id)
        raise UiliciousInvalidResponseError("Test run response missing test ID")

    async def get_test_result(self, project_id: str, test_id: str) -> RunResult:
        """Poll the current status of a test run."""
        params = {"projectID": project_id, "testID": test_id}
        result = await self._request(
            "GET", "/project/workspace/test/result", params=params
        )
        return RunResult.from_api_response(test_id, result)
