"""
Request middleware for qbitwatch.

Every middleware is an async callable taking the request and the next step of
the chain. The client composes them with ``build_handler``; the first
middleware in the list is the outermost one.
"""

import logging
from collections.abc import Awaitable, Callable, Sequence

from tenacity import (
    before_sleep_log,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
)

from .. import logger
from ..config import ClientConfig
from .auth import AuthCoordinator, LoginCall
from .transport_common import ConnectionClosedException, Request, Response

Handler = Callable[[Request], Awaitable[Response]]
Middleware = Callable[[Request, Handler], Awaitable[Response]]

# Statuses qBittorrent uses when the session cookie is missing or expired
AUTH_CHALLENGE_STATUSES = (401, 403)

# qBittorrent occasionally accepts a request and closes the connection before
# sending anything back; one more attempt is enough
_connection_closed_retry = retry(
    stop=stop_after_attempt(2),
    before_sleep=before_sleep_log(logging.getLogger("qbitwatch"), logging.WARNING),
    retry=retry_if_exception_type(ConnectionClosedException),
    reraise=True,
)


def build_handler(middlewares: Sequence[Middleware], terminal: Handler) -> Handler:
    """Compose middlewares around a terminal handler.

    Args:
        middlewares: Middlewares, outermost first.
        terminal: Handler that actually sends the request.

    Returns:
        Handler: A single handler running the whole chain.
    """
    handler = terminal
    for middleware in reversed(middlewares):
        handler = _bind(middleware, handler)
    return handler


def _bind(middleware: Middleware, call_next: Handler) -> Handler:
    async def handler(request: Request) -> Response:
        return await middleware(request, call_next)

    return handler


async def retry_connection_closed(request: Request, call_next: Handler) -> Response:
    """Send the request again once if the connection closed before any data."""
    return await _connection_closed_retry(call_next)(request)


class AuthRetry:
    """Log in again and replay the request when the session is rejected."""

    def __init__(
        self,
        coordinator: AuthCoordinator,
        config: ClientConfig,
        login: LoginCall,
    ) -> None:
        self.coordinator = coordinator
        self.config = config
        self.login = login

    async def __call__(self, request: Request, call_next: Handler) -> Response:
        # The login call itself must never trigger another login
        if request.is_login:
            return await call_next(request)

        store = self.coordinator.store
        version = store.version
        response = await call_next(request)
        if response.status not in AUTH_CHALLENGE_STATUSES:
            return response

        logger.debug(
            "%s %s rejected with HTTP %s, authenticating",
            request.method,
            request.path,
            response.status,
        )
        # A login that finished while this request was in flight wins
        store.set_if_unchanged(response, version)

        if not await self.coordinator.ensure_authenticated(self.config, self.login):
            return response

        logger.debug("Replaying %s %s after login", request.method, request.path)
        return await call_next(request)
