"""Async qBittorrent Web API client with live sync streams."""

from .client import QBittorrentClient
from .config import ClientConfig, parse_client_url
from .models import (
    Category,
    MainData,
    Peer,
    ServerState,
    Torrent,
    TorrentFile,
    TorrentFilter,
    TorrentPeers,
    TorrentTracker,
)
from .transport import (
    ConnectionClosedException,
    DecodeException,
    QBittorrentException,
    Request,
    Response,
    ResponseException,
    TransportException,
)

__all__ = [
    "Category",
    "ClientConfig",
    "ConnectionClosedException",
    "DecodeException",
    "MainData",
    "Peer",
    "QBittorrentClient",
    "QBittorrentException",
    "Request",
    "Response",
    "ResponseException",
    "ServerState",
    "Torrent",
    "TorrentFile",
    "TorrentFilter",
    "TorrentPeers",
    "TorrentTracker",
    "TransportException",
    "parse_client_url",
]
