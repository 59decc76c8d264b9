"""Request pipeline for qbitwatch: transport, authentication and middleware."""

from .auth import (
    LOGIN_PATH,
    AuthCoordinator,
    LoginCall,
    LoginFunction,
    SessionStore,
    default_login,
    is_valid_login,
)
from .middleware import (
    AUTH_CHALLENGE_STATUSES,
    AuthRetry,
    Handler,
    Middleware,
    build_handler,
    retry_connection_closed,
)
from .transport_common import (
    ConnectionClosedException,
    DecodeException,
    HttpTransport,
    QBittorrentException,
    Request,
    Response,
    ResponseException,
    Transport,
    TransportException,
)

__all__ = [
    "AUTH_CHALLENGE_STATUSES",
    "AuthCoordinator",
    "AuthRetry",
    "ConnectionClosedException",
    "DecodeException",
    "Handler",
    "HttpTransport",
    "LOGIN_PATH",
    "LoginCall",
    "LoginFunction",
    "Middleware",
    "QBittorrentException",
    "Request",
    "Response",
    "ResponseException",
    "SessionStore",
    "Transport",
    "TransportException",
    "build_handler",
    "default_login",
    "is_valid_login",
    "retry_connection_closed",
]
