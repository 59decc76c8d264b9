"""Shared test fixtures and configuration for qbitwatch tests."""

import re
from collections.abc import Callable
from typing import Any
from urllib.parse import parse_qs, urlparse

import anyio
import msgspec
import pytest

import qbitwatch.logger as logger_module
from qbitwatch import QBittorrentClient
from qbitwatch.transport import ConnectionClosedException, Request, Response

TEST_HASH = "7f34612e0fac5e7b051b78bdf1060113350ebfe0"
TEST_MAGNET_URL = (
    f"magnet:?xt=urn:btih:{TEST_HASH}&dn=big_buck_bunny_1080p_h264.mov"
    "&tr=http%3A%2F%2Fblender.waag.org%3A6969%2Fannounce"
)
TEST_USERNAME = "admin"
TEST_PASSWORD = "adminadmin"

MAINDATA_PATH = "/api/v2/sync/maindata"

_BTIH_RE = re.compile(r"btih:([0-9a-fA-F]{40})")


def pytest_configure(config: pytest.Config) -> None:
    """Initialize logger once for all tests."""
    if getattr(logger_module, "_logger_instance", None) is None:
        logger_module.init_logger("DEBUG")


@pytest.fixture
def anyio_backend() -> str:
    # aiohttp only runs on asyncio
    return "asyncio"


def json_response(payload: Any, status: int = 200) -> Response:
    return Response(
        status=status,
        body=msgspec.json.encode(payload),
        headers={"Content-Type": "application/json"},
    )


class FakeQBittorrent:
    """In-memory stand-in for the qBittorrent Web API.

    Requests are rejected with 403 until a login with the right credentials
    succeeds. ``sync/maindata`` keeps what it served for every rid so that
    later requests get real field-level diffs.
    """

    def __init__(
        self, username: str = TEST_USERNAME, password: str = TEST_PASSWORD
    ) -> None:
        self.username = username
        self.password = password
        self.authenticated = False
        self.torrents: dict[str, dict[str, Any]] = {}
        self.peers: dict[str, dict[str, dict[str, Any]]] = {}
        self.requests: list[Request] = []
        self.overrides: dict[str, Response] = {}
        # Seconds to stall before answering, per endpoint
        self.delays: dict[str, float] = {}
        self.login_calls = 0
        self.login_delay = 0.0
        # Number of upcoming requests whose connection is dropped
        self.disconnects = 0
        self._next_rid = 1
        self._served: dict[int, dict[str, dict[str, Any]]] = {}
        self._routes: dict[str, Callable[[Request], Response]] = {
            "auth/logout": self._logout,
            "app/webapiVersion": lambda _: Response(200, b"2.9.3"),
            "app/version": lambda _: Response(200, b"v4.6.5"),
            "torrents/info": self._torrents_info,
            "torrents/add": self._torrents_add,
            "torrents/delete": self._torrents_delete,
            "sync/maindata": self._main_data,
            "sync/torrentPeers": self._torrent_peers,
        }

    def count(self, path: str, **params: str) -> int:
        """Count received requests for a path, optionally matching params."""
        return sum(
            1
            for request in self.requests
            if request.path == path
            and all((request.params or {}).get(k) == v for k, v in params.items())
        )

    async def send(self, request: Request) -> Response:
        await anyio.sleep(0)
        self.requests.append(request)

        if self.disconnects > 0:
            self.disconnects -= 1
            raise ConnectionClosedException("Server disconnected")

        endpoint = request.path.removeprefix("/api/v2/")
        if endpoint in self.delays:
            await anyio.sleep(self.delays[endpoint])
        if endpoint == "auth/login":
            return await self._login(request)
        if not self.authenticated:
            return Response(403, b"Forbidden")
        if endpoint in self.overrides:
            return self.overrides[endpoint]

        handler = self._routes.get(endpoint)
        if handler is None:
            return Response(404, b"Not Found")
        return handler(request)

    def add(self, torrent_hash: str, **fields: Any) -> None:
        self.torrents[torrent_hash] = {
            "name": torrent_hash,
            "state": "downloading",
            "progress": 0.0,
            "size": 725106140,
            **fields,
        }

    async def _login(self, request: Request) -> Response:
        self.login_calls += 1
        if self.login_delay:
            await anyio.sleep(self.login_delay)
        data = request.data or {}
        credentials = (data.get("username"), data.get("password"))
        if credentials == (self.username, self.password):
            self.authenticated = True
            return Response(200, b"Ok.")
        return Response(200, b"Fails.")

    def _logout(self, request: Request) -> Response:
        self.authenticated = False
        return Response(200)

    def _torrents_info(self, request: Request) -> Response:
        hashes = (request.params or {}).get("hashes")
        wanted = set(hashes.split("|")) if hashes else None
        return json_response(
            [
                {**fields, "hash": torrent_hash}
                for torrent_hash, fields in self.torrents.items()
                if wanted is None or torrent_hash in wanted
            ]
        )

    def _torrents_add(self, request: Request) -> Response:
        data = request.data or {}
        hashes = _BTIH_RE.findall(data.get("urls", ""))
        hashes += [name.removesuffix(".torrent") for name in request.files or {}]
        if not hashes:
            return Response(200, b"Fails.")

        state = "pausedDL" if data.get("paused") == "true" else "downloading"
        for torrent_hash in hashes:
            name = parse_qs(urlparse(data.get("urls", "")).query).get("dn", [None])[0]
            self.add(torrent_hash.lower(), name=name or torrent_hash, state=state)
        return Response(200, b"Ok.")

    def _torrents_delete(self, request: Request) -> Response:
        hashes = (request.data or {}).get("hashes", "")
        if hashes == "all":
            self.torrents.clear()
        for torrent_hash in hashes.split("|"):
            self.torrents.pop(torrent_hash, None)
        return Response(200)

    def _main_data(self, request: Request) -> Response:
        rid = int((request.params or {}).get("rid", "0"))
        current = {h: dict(fields) for h, fields in self.torrents.items()}
        previous = self._served.get(rid) if rid else None

        new_rid = self._next_rid
        self._next_rid += 1
        self._served[new_rid] = current

        if previous is None:
            return json_response(
                {
                    "rid": new_rid,
                    "full_update": True,
                    "torrents": current,
                    "categories": {"movies": {"name": "movies", "savePath": "/m"}},
                    "tags": ["linux"],
                    "trackers": {},
                    "server_state": {"connection_status": "connected"},
                }
            )

        changed = {}
        for torrent_hash, fields in current.items():
            old = previous.get(torrent_hash, {})
            diff = {k: v for k, v in fields.items() if old.get(k) != v}
            if diff:
                changed[torrent_hash] = diff
        payload: dict[str, Any] = {"rid": new_rid, "torrents": changed}
        removed = [h for h in previous if h not in current]
        if removed:
            payload["torrents_removed"] = removed
        return json_response(payload)

    def _torrent_peers(self, request: Request) -> Response:
        params = request.params or {}
        torrent_hash = params.get("hash", "")
        if torrent_hash not in self.torrents:
            return Response(404, b"Torrent hash not found")

        rid = int(params.get("rid", "0"))
        if rid == 0:
            return json_response(
                {
                    "rid": 1,
                    "full_update": True,
                    "show_flags": True,
                    "peers": self.peers.get(torrent_hash, {}),
                }
            )
        return json_response({"rid": rid + 1, "peers": {}})


@pytest.fixture
def fake_server() -> FakeQBittorrent:
    """Create a fake qBittorrent server accepting admin/adminadmin."""
    return FakeQBittorrent()


@pytest.fixture
def make_client(fake_server: FakeQBittorrent) -> Callable[..., QBittorrentClient]:
    """Create QBittorrentClient instances talking to the fake server."""

    def factory(**kwargs: Any) -> QBittorrentClient:
        kwargs.setdefault("sync_interval", 0.01)
        kwargs.setdefault("transport", fake_server)
        return QBittorrentClient("http://localhost:9090", **kwargs)

    return factory
