"""
Transport layer for qbitwatch.

Provides the request/response values that flow through the middleware chain,
the exception kinds raised by the client, and the aiohttp transport.
"""

from collections.abc import Mapping
from typing import Any, Protocol
from urllib.parse import urljoin

import msgspec
from aiohttp import (
    ClientError,
    ClientSession,
    ClientTimeout,
    CookieJar,
    FormData,
    ServerDisconnectedError,
)

from .. import logger


class QBittorrentException(Exception):
    """Base class for all qbitwatch errors."""


class TransportException(QBittorrentException):
    """The request could not be completed at the connection level."""


class ConnectionClosedException(TransportException):
    """The server closed the connection before sending any response data."""


class ResponseException(QBittorrentException):
    """The server answered with an unexpected status.

    Attributes:
        response: The offending response.
    """

    def __init__(self, response: "Response", message: str | None = None) -> None:
        self.response = response
        super().__init__(message or response.text or f"HTTP {response.status}")

    @property
    def status(self) -> int:
        return self.response.status


class DecodeException(QBittorrentException):
    """The response body does not match the expected shape."""


class Request(msgspec.Struct, frozen=True):
    """An immutable Web API request.

    Attributes:
        method: HTTP method.
        path: Path relative to the base URL, e.g. ``/api/v2/app/version``.
        params: Query parameters.
        data: Form fields.
        files: Torrent files to upload, mapping file name to file content.
    """

    method: str
    path: str
    params: dict[str, str] | None = None
    data: dict[str, str] | None = None
    files: dict[str, bytes] | None = None

    @property
    def is_login(self) -> bool:
        return self.path.rstrip("/").rsplit("/", 1)[-1] == "login"


class Response(msgspec.Struct, frozen=True):
    """A fully read Web API response."""

    status: int
    body: bytes = b""
    headers: dict[str, str] = msgspec.field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300

    @property
    def text(self) -> str:
        return self.body.decode("utf-8", errors="replace")


class Transport(Protocol):
    """Anything able to send a Request and return its Response."""

    async def send(self, request: Request) -> Response: ...


class HttpTransport:
    """aiohttp based transport bound to a qBittorrent base URL."""

    def __init__(
        self,
        base_url: str,
        timeout: float = 60.0,
        session: ClientSession | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/") + "/"
        self.timeout = timeout
        self._session = session
        self._owns_session = session is None

    @property
    def session(self) -> ClientSession:
        """Get the aiohttp session, creating it on first use."""
        if self._session is None:
            # The SID cookie must be kept for IP hosts as well
            cookie_jar = CookieJar(unsafe=True)
            headers = {
                "Accept-Charset": "utf-8",
                # Required by the Web UI's CSRF protection
                "Referer": self.base_url,
            }
            self._session = ClientSession(
                timeout=ClientTimeout(total=self.timeout),
                headers=headers,
                cookie_jar=cookie_jar,
            )
        return self._session

    async def close(self) -> None:
        """Close the aiohttp ClientSession if this transport created it."""
        if self._session is not None and self._owns_session:
            await self._session.close()
            self._session = None

    async def send(self, request: Request) -> Response:
        """Send a request and read the whole response body.

        Args:
            request: Request to send.

        Returns:
            Response: Status, headers and body of the answer.

        Raises:
            ConnectionClosedException: If the server dropped the connection
                before answering.
            TransportException: For any other connection level failure.
        """
        url = urljoin(self.base_url, request.path.lstrip("/"))

        try:
            async with self.session.request(
                request.method,
                url,
                params=request.params,
                data=self._build_body(request),
            ) as aio_response:
                try:
                    body = await aio_response.read()
                except (ClientError, TimeoutError) as e:
                    # The server already answered, so this is not safe to resend
                    raise TransportException(
                        f"Connection lost while reading response: "
                        f"{request.method} {request.path}"
                    ) from e
                response = Response(
                    status=aio_response.status,
                    body=body,
                    headers=dict(aio_response.headers),
                )
        except ServerDisconnectedError as e:
            raise ConnectionClosedException(
                f"Connection closed before response: {request.method} {request.path}"
            ) from e
        except (ClientError, TimeoutError) as e:
            raise TransportException(f"Request error: {e}") from e

        logger.debug("%s %s -> %s", request.method, request.path, response.status)
        return response

    @staticmethod
    def _build_body(request: Request) -> FormData | Mapping[str, Any] | None:
        """Build a fresh request body, FormData cannot be sent twice."""
        if not request.files:
            return request.data

        form = FormData()
        for name, value in (request.data or {}).items():
            form.add_field(name, value)
        for name, content in request.files.items():
            form.add_field(
                "torrents",
                content,
                filename=name,
                content_type="application/x-bittorrent",
            )
        return form
