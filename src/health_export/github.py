"""GitHub contents API client used as the remote file store."""

import base64
import time
from contextlib import asynccontextmanager
from typing import Any, Protocol
from urllib.parse import quote

import httpx
import structlog
from opentelemetry import trace
from opentelemetry.trace import SpanKind
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from .config import GitHubSettings
from .errors import NotReadyError, RemoteSyncError
from .metrics import REMOTE_REQUEST_DURATION, REMOTE_REQUESTS

logger = structlog.get_logger(__name__)
tracer = trace.get_tracer(__name__)


class RemoteFileStore(Protocol):
    """Remote file storage with optimistic concurrency."""

    def is_ready(self) -> bool: ...

    async def get_repository(self) -> str | None: ...

    async def read_version(self, path: str) -> str | None: ...

    async def write(self, path: str, content: str, version: str | None, message: str) -> str: ...

    async def update_file(self, path: str, content: str, message: str) -> str: ...


class GitHubClient:
    """Reads and writes repository files through the GitHub contents API.

    A file's version is its blob ``sha``. Writing an existing file requires
    the current sha; GitHub rejects stale ones, so ``update_file`` always
    reads the sha right before writing.
    """

    def __init__(
        self,
        settings: GitHubSettings,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            settings: Repository, credential and retry settings.
            transport: Optional httpx transport, e.g. ``httpx.MockTransport``.
        """
        self._settings = settings
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def connect(self) -> httpx.AsyncClient:
        """Create the underlying HTTP client if needed and return it."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self._settings.api_url,
                timeout=self._settings.timeout_seconds,
                transport=self._transport,
            )
            logger.debug("github_client_connected", api_url=self._settings.api_url)
        return self._client

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "GitHubClient":
        await self.connect()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    # -- Credentials --

    @property
    def username(self) -> str | None:
        username = self._settings.username
        return username if username else None

    @property
    def repository(self) -> str:
        return self._settings.repository

    def is_signed_in(self) -> bool:
        """Both a token and a username are required."""
        return bool(self._settings.token and self._settings.username)

    def is_ready(self) -> bool:
        return self.is_signed_in() and bool(self._settings.repository)

    def build_headers(self) -> dict[str, str]:
        """Request headers with Basic authentication.

        Raises:
            NotReadyError: If the username or token is missing.
        """
        if not self.is_signed_in():
            raise NotReadyError("GitHub credentials are not configured")
        login = f"{self._settings.username}:{self._settings.token}".encode()
        return {
            "Authorization": f"Basic {base64.b64encode(login).decode('ascii')}",
            "Accept": "application/vnd.github+json",
            "Cache-Control": "no-cache",
            "Content-Type": "application/json; charset=utf-8",
        }

    def contents_url(self, path: str) -> str:
        return f"/repos/{self.username}/{self.repository}/contents/{quote(path, safe='/')}"

    # -- Transport --

    async def _request(
        self,
        method: str,
        url: str,
        path: str,
        payload: dict[str, Any] | None = None,
    ) -> httpx.Response:
        """Send a request, retrying transport errors.

        Raises:
            RemoteSyncError: When every attempt failed at the transport level.
        """
        client = await self.connect()
        headers = self.build_headers()

        try:
            async for attempt in AsyncRetrying(
                stop=stop_after_attempt(self._settings.max_retries),
                wait=wait_exponential(
                    multiplier=self._settings.retry_delay_seconds,
                    min=self._settings.retry_delay_seconds,
                    max=30,
                ),
                retry=retry_if_exception_type(httpx.TransportError),
                reraise=True,
            ):
                with attempt:
                    started = time.perf_counter()
                    response = await client.request(
                        method, url, json=payload, headers=headers
                    )
                    REMOTE_REQUEST_DURATION.observe(time.perf_counter() - started)
                    REMOTE_REQUESTS.labels(method=method, status=str(response.status_code)).inc()
                    return response
        except httpx.HTTPError as e:
            REMOTE_REQUESTS.labels(method=method, status="transport_error").inc()
            logger.warning(
                "github_transport_error",
                method=method,
                path=path,
                error=str(e),
                error_type=type(e).__name__,
            )
            raise RemoteSyncError(path, f"transport error: {e}") from e

    @staticmethod
    def _json(response: httpx.Response, path: str) -> dict[str, Any]:
        try:
            data = response.json()
        except ValueError as e:
            raise RemoteSyncError(path, "invalid JSON response", response.status_code) from e
        if not isinstance(data, dict):
            raise RemoteSyncError(path, "unexpected JSON response", response.status_code)
        return data

    # -- Repository --

    async def get_repository(self) -> str | None:
        """Return the repository id, creating the repository when it is missing."""
        if not self.is_ready():
            return None
        url = f"/repos/{self.username}/{self.repository}"
        response = await self._request("GET", url, self.repository)
        if response.status_code == 404:
            logger.info("github_repository_missing", repository=self.repository)
            return await self.create_repository()
        if not response.is_success:
            raise RemoteSyncError(self.repository, "repository lookup failed", response.status_code)
        repository_id = self._json(response, self.repository).get("id")
        logger.debug("github_repository_found", repository_id=repository_id)
        return str(repository_id) if repository_id is not None else None

    async def create_repository(self) -> str | None:
        """Create the private export repository with an initial commit."""
        if not self.is_ready():
            return None
        payload = {"name": self.repository, "private": True, "auto_init": True}
        response = await self._request("POST", "/user/repos", self.repository, payload)
        if not response.is_success:
            raise RemoteSyncError(
                self.repository, "repository creation failed", response.status_code
            )
        repository_id = self._json(response, self.repository).get("id")
        logger.info("github_repository_created", repository_id=repository_id)
        return str(repository_id) if repository_id is not None else None

    # -- Files --

    async def read_version(self, path: str) -> str | None:
        """Return the current sha of ``path``, or None when the file does not exist.

        Raises:
            RemoteSyncError: On transport errors or unexpected statuses.
        """
        response = await self._request("GET", self.contents_url(path), path)
        if response.status_code == 404:
            return None
        if not response.is_success:
            raise RemoteSyncError(path, "could not read file version", response.status_code)
        sha = self._json(response, path).get("sha")
        if isinstance(sha, str) and sha:
            logger.debug("github_file_sha", path=path, sha=sha)
            return sha
        return None

    async def write(self, path: str, content: str, version: str | None, message: str) -> str:
        """Create or update ``path``.

        The ``sha`` field is sent only when ``version`` is given; without it
        GitHub creates the file.

        Returns:
            The new sha of the file.

        Raises:
            RemoteSyncError: On transport errors, rejected writes (including
                stale versions) or responses without a sha.
        """
        payload: dict[str, Any] = {
            "message": message,
            "content": base64.b64encode(content.encode("utf-8")).decode("ascii"),
            "author": {
                "name": self._settings.author_name,
                "email": self._settings.author_email,
            },
        }
        if version:
            payload["sha"] = version

        response = await self._request("PUT", self.contents_url(path), path, payload)
        if response.status_code not in (200, 201):
            raise RemoteSyncError(path, "file write rejected", response.status_code)

        content_info = self._json(response, path).get("content")
        sha = content_info.get("sha") if isinstance(content_info, dict) else None
        if not isinstance(sha, str) or not sha:
            raise RemoteSyncError(path, "write response has no sha", response.status_code)

        logger.info("github_file_updated", path=path, sha=sha, created=version is None)
        return sha

    async def update_file(self, path: str, content: str, message: str) -> str:
        """Read the current version of ``path`` and write ``content`` over it."""
        with tracer.start_as_current_span("github.update_file", kind=SpanKind.CLIENT) as span:
            span.set_attribute("github.repository", self.repository)
            span.set_attribute("github.path", path)
            span.set_attribute("content.length", len(content))
            version = await self.read_version(path)
            span.set_attribute("github.file_exists", version is not None)
            return await self.write(path, content, version, message)


@asynccontextmanager
async def create_client(settings: GitHubSettings):
    """Context manager for creating and managing a GitHub client.

    Args:
        settings: GitHub settings.

    Yields:
        Connected GitHubClient instance.
    """
    client = GitHubClient(settings)
    await client.connect()
    try:
        yield client
    finally:
        await client.close()
