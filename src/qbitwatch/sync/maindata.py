"""Merge state for the ``sync/maindata`` endpoint."""

from typing import Any

from ..models import MainData
from .sync_common import SyncState, convert, merge_entities, section


class MainDataState(SyncState[MainData]):
    """Raw main data owned by a single polling loop.

    The raw dicts are never handed out; ``snapshot`` converts them into a new
    frozen MainData every time.
    """

    def __init__(self) -> None:
        super().__init__()
        self._torrents: dict[str, dict[str, Any]] = {}
        self._categories: dict[str, dict[str, Any]] = {}
        self._tags: list[str] = []
        self._trackers: dict[str, list[str]] = {}
        self._server_state: dict[str, Any] = {}

    def replace(self, payload: dict[str, Any]) -> None:
        self._torrents = {}
        self._categories = {}
        self._tags = []
        self._trackers = {}
        self._server_state = {}
        self.merge(payload)

    def merge(self, payload: dict[str, Any]) -> None:
        merge_entities(
            self._torrents,
            section(payload, "torrents", dict),
            section(payload, "torrents_removed", list),
        )
        merge_entities(
            self._categories,
            section(payload, "categories", dict),
            section(payload, "categories_removed", list),
        )
        for url in section(payload, "trackers_removed", list) or ():
            self._trackers.pop(url, None)
        self._trackers.update(section(payload, "trackers", dict) or {})

        removed_tags = set(section(payload, "tags_removed", list) or ())
        self._tags = [tag for tag in self._tags if tag not in removed_tags]
        for tag in section(payload, "tags", list) or ():
            if tag not in self._tags:
                self._tags.append(tag)

        self._server_state.update(section(payload, "server_state", dict) or {})

    def snapshot(self, full_update: bool) -> MainData:
        raw = {
            "rid": self.rid,
            "full_update": full_update,
            "torrents": {
                torrent_hash: {**fields, "hash": torrent_hash}
                for torrent_hash, fields in self._torrents.items()
            },
            "categories": {
                name: {"name": name, **fields}
                for name, fields in self._categories.items()
            },
            "tags": list(self._tags),
            "trackers": dict(self._trackers),
            "server_state": dict(self._server_state),
        }
        return convert(raw, MainData)
