"""Live sync streams for qbitwatch."""

from .maindata import MainDataState
from .peers import TorrentPeersState
from .sync_common import (
    Subscription,
    SyncFetch,
    SyncLoop,
    SyncState,
    convert,
    merge_entities,
)

__all__ = [
    "MainDataState",
    "Subscription",
    "SyncFetch",
    "SyncLoop",
    "SyncState",
    "TorrentPeersState",
    "convert",
    "merge_entities",
]
