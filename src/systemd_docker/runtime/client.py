"""Docker Engine API client: the runtime capabilities the proxy needs.

Talks HTTP to the daemon over its unix socket (or TCP) with aiohttp.
Only five operations are used: inspect, start, remove, wait and logs.
Creating containers is left to the ``docker run`` CLI so that every run
flag keeps working (see :mod:`systemd_docker.container_runner._launch`).

Error policy: a 404 on inspect means "no such container" and returns
``None``; every other non-2xx response or transport failure raises
:class:`ContainerRuntimeError` with the daemon's message.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from types import TracebackType
from typing import Any
from urllib.parse import quote

import aiohttp

from systemd_docker.config import Settings
from systemd_docker.errors import ContainerRuntimeError
from systemd_docker.logger import logger
from systemd_docker.runtime._logs import demux_stream, raw_stream
from systemd_docker.types import ContainerInfo

# Requests that block for the container's lifetime (wait, follow logs)
_NO_TIMEOUT = aiohttp.ClientTimeout(total=None, sock_read=None)
_DEFAULT_TIMEOUT = aiohttp.ClientTimeout(total=60)


class DockerClient:
    """Async Engine API client. Use as an async context manager."""

    def __init__(
        self,
        base_url: str,
        *,
        unix_socket: str | None = None,
        api_version: str | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._unix_socket = unix_socket
        self._prefix = f"/v{api_version}" if api_version else ""
        self._session: aiohttp.ClientSession | None = None

    @classmethod
    def from_settings(cls, settings: Settings) -> DockerClient:
        base_url, unix_socket = settings.docker_endpoint
        return cls(base_url, unix_socket=unix_socket, api_version=settings.api_version)

    async def __aenter__(self) -> DockerClient:
        connector = aiohttp.UnixConnector(path=self._unix_socket) if self._unix_socket else None
        self._session = aiohttp.ClientSession(connector=connector, timeout=_DEFAULT_TIMEOUT)
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.close()

    async def close(self) -> None:
        if self._session is not None:
            await self._session.close()
            self._session = None

    # ------------------------------------------------------------------
    # HTTP helpers
    # ------------------------------------------------------------------

    def _url(self, path: str) -> str:
        return f"{self._base_url}{self._prefix}{path}"

    def _require_session(self) -> aiohttp.ClientSession:
        if self._session is None:
            raise ContainerRuntimeError("Docker client used outside of its context")
        return self._session

    @staticmethod
    async def _error_message(resp: aiohttp.ClientResponse) -> str:
        try:
            body = await resp.json(content_type=None)
        except (aiohttp.ContentTypeError, ValueError):
            return (await resp.text()).strip() or resp.reason or ""
        if isinstance(body, dict) and body.get("message"):
            return str(body["message"])
        return resp.reason or ""

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, str] | None = None,
        allowed: tuple[int, ...] = (),
        timeout: aiohttp.ClientTimeout | None = None,
    ) -> tuple[int, Any]:
        """Send a request and return ``(status, json_body_or_None)``.

        Statuses in ``allowed`` are returned to the caller instead of raising.
        """
        session = self._require_session()
        try:
            async with session.request(
                method, self._url(path), params=params, timeout=timeout or _DEFAULT_TIMEOUT
            ) as resp:
                if resp.status in allowed:
                    return resp.status, None
                if resp.status >= 300:
                    message = await self._error_message(resp)
                    raise ContainerRuntimeError(
                        f"{method} {path} failed ({resp.status}): {message}",
                        status=resp.status,
                    )
                if resp.status == 204 or resp.content_length == 0:
                    return resp.status, None
                return resp.status, await resp.json(content_type=None)
        except aiohttp.ClientError as exc:
            raise ContainerRuntimeError(f"{method} {path} failed: {exc}") from exc

    # ------------------------------------------------------------------
    # Runtime capabilities
    # ------------------------------------------------------------------

    async def inspect_container(self, name_or_id: str) -> ContainerInfo | None:
        """Inspect a container by name or id; ``None`` if it does not exist."""
        status, body = await self._request(
            "GET", f"/containers/{quote(name_or_id, safe='')}/json", allowed=(404,)
        )
        if status == 404 or not body:
            return None
        return ContainerInfo.from_api(body)

    async def start_container(self, container_id: str) -> None:
        # 304: already started
        await self._request("POST", f"/containers/{quote(container_id)}/start", allowed=(304,))
        logger.debug("Container started", container=container_id)

    async def remove_container(self, container_id: str, *, force: bool = True) -> None:
        await self._request(
            "DELETE",
            f"/containers/{quote(container_id)}",
            params={"force": "1" if force else "0"},
        )
        logger.debug("Container removed", container=container_id)

    async def wait_container(self, container_id: str) -> int:
        """Block until the container stops; returns its exit status."""
        _, body = await self._request(
            "POST", f"/containers/{quote(container_id)}/wait", timeout=_NO_TIMEOUT
        )
        if isinstance(body, dict):
            return int(body.get("StatusCode", 0))
        return 0

    async def stream_logs(
        self, container_id: str, *, tty: bool = False
    ) -> AsyncIterator[tuple[int, bytes]]:
        """Follow stdout+stderr, yielding ``(stream_type, chunk)`` pairs.

        Ends when the daemon closes the stream (container stopped).
        """
        session = self._require_session()
        path = f"/containers/{quote(container_id)}/logs"
        params = {"follow": "1", "stdout": "1", "stderr": "1"}
        try:
            async with session.get(self._url(path), params=params, timeout=_NO_TIMEOUT) as resp:
                if resp.status >= 300:
                    message = await self._error_message(resp)
                    raise ContainerRuntimeError(
                        f"GET {path} failed ({resp.status}): {message}", status=resp.status
                    )
                frames = raw_stream(resp.content) if tty else demux_stream(resp.content)
                async for frame in frames:
                    yield frame
        except aiohttp.ClientError as exc:
            raise ContainerRuntimeError(f"GET {path} failed: {exc}") from exc
