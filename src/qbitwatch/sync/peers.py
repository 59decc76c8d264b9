"""Merge state for the ``sync/torrentPeers`` endpoint."""

from typing import Any

from ..models import TorrentPeers
from .sync_common import SyncState, convert, merge_entities, section


class TorrentPeersState(SyncState[TorrentPeers]):
    """Raw peer list of one torrent, keyed by ``"ip:port"``."""

    def __init__(self) -> None:
        super().__init__()
        self._peers: dict[str, dict[str, Any]] = {}
        self._show_flags = False

    def replace(self, payload: dict[str, Any]) -> None:
        self._peers = {}
        self.merge(payload)

    def merge(self, payload: dict[str, Any]) -> None:
        merge_entities(
            self._peers,
            section(payload, "peers", dict),
            section(payload, "peers_removed", list),
        )
        if "show_flags" in payload:
            self._show_flags = bool(payload["show_flags"])

    def snapshot(self, full_update: bool) -> TorrentPeers:
        return convert(
            {
                "rid": self.rid,
                "full_update": full_update,
                "show_flags": self._show_flags,
                "peers": {key: dict(fields) for key, fields in self._peers.items()},
            },
            TorrentPeers,
        )
