"""Session authentication for the qBittorrent Web API."""

from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING

import anyio

from .. import logger
from ..config import ClientConfig
from .transport_common import Request, Response

if TYPE_CHECKING:
    from ..client import QBittorrentClient

LOGIN_PATH = "/api/v2/auth/login"

# qBittorrent answers "Ok." for a good login and "Fails." otherwise
LOGIN_SUCCESS_BODY = "ok."

# Bound login call used by the coordinator
LoginCall = Callable[[ClientConfig], Awaitable[Response]]
# User supplied login replacing default_login
LoginFunction = Callable[["QBittorrentClient", ClientConfig], Awaitable[Response]]


def is_valid_login(response: Response | None) -> bool:
    """Check whether a response proves an authenticated session.

    Args:
        response: Last login (or denied) response, if any.

    Returns:
        bool: True for a 2xx response whose body is "Ok." in any case.
    """
    if response is None:
        return False
    return response.ok and response.text.lower() == LOGIN_SUCCESS_BODY


async def default_login(client: "QBittorrentClient", config: ClientConfig) -> Response:
    """Log in with the configured username and password."""
    return await client.send(
        Request(
            method="POST",
            path=LOGIN_PATH,
            data={"username": config.username, "password": config.password},
        )
    )


class SessionStore:
    """Single slot holding the latest authentication outcome.

    Writes always win; readers never wait for a writer. Every write bumps
    ``version`` and wakes whoever waits in ``wait_for_change``.
    """

    def __init__(self) -> None:
        self._value: Response | None = None
        self._version = 0
        self._changed: anyio.Event | None = None

    @property
    def value(self) -> Response | None:
        return self._value

    @property
    def version(self) -> int:
        return self._version

    @property
    def is_valid(self) -> bool:
        return is_valid_login(self._value)

    def set(self, response: Response | None) -> None:
        self._value = response
        self._version += 1
        if self._changed is not None:
            self._changed.set()
            self._changed = None

    def set_if_unchanged(self, response: Response, version: int) -> bool:
        """Store a response unless something newer was stored after ``version``.

        Args:
            response: Outcome to store.
            version: ``version`` observed before the response was requested.

        Returns:
            bool: True if the response was stored.
        """
        if self._version != version:
            return False
        self.set(response)
        return True

    async def wait_for_change(self) -> Response | None:
        """Wait for the next write and return the stored outcome."""
        if self._changed is None:
            self._changed = anyio.Event()
        await self._changed.wait()
        return self._value


class AuthCoordinator:
    """Serializes logins so that only one runs at a time."""

    def __init__(self, store: SessionStore) -> None:
        self.store = store
        self._lock = anyio.Lock()

    async def ensure_authenticated(
        self, config: ClientConfig, login: LoginCall
    ) -> bool:
        """Make sure the session is authenticated, logging in if needed.

        Callers queue on the lock; whoever gets it first logs in, the others
        find a valid outcome in the store and return without a second login.

        Args:
            config: Credentials to log in with.
            login: Coroutine function performing the login request.

        Returns:
            bool: True if the session is authenticated.
        """
        async with self._lock:
            if self.store.is_valid:
                logger.debug("Session already authenticated while waiting")
                return True

            logger.debug("Logging in to %s as %s", config.base_url, config.username)
            response = await login(config)
            self.store.set(response)
            # Let waiters see the new outcome
            await anyio.sleep(0)

            valid = is_valid_login(response)
            if valid:
                logger.success("Logged in to %s", config.base_url)
            else:
                logger.error(
                    "Login to %s failed: HTTP %s %s",
                    config.base_url,
                    response.status,
                    response.text.strip(),
                )
            return valid
