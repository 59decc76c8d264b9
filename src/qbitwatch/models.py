"""Data models for qBittorrent Web API payloads."""

from enum import StrEnum

import msgspec


class TorrentFilter(StrEnum):
    """Values accepted by the ``filter`` argument of ``torrents/info``."""

    ALL = "all"
    DOWNLOADING = "downloading"
    COMPLETED = "completed"
    PAUSED = "paused"
    ACTIVE = "active"
    INACTIVE = "inactive"
    RESUMED = "resumed"
    STALLED = "stalled"
    STALLED_UPLOADING = "stalled_uploading"
    STALLED_DOWNLOADING = "stalled_downloading"


class Torrent(msgspec.Struct, frozen=True):
    """A torrent as reported by ``torrents/info`` and ``sync/maindata``."""

    hash: str
    name: str = ""
    state: str = "unknown"
    size: int = 0
    total_size: int = 0
    progress: float = 0.0
    dlspeed: int = 0
    upspeed: int = 0
    downloaded: int = 0
    uploaded: int = 0
    downloaded_session: int = 0
    uploaded_session: int = 0
    amount_left: int = 0
    completed: int = 0
    eta: int = 0
    ratio: float = 0.0
    dl_limit: int = 0
    up_limit: int = 0
    num_seeds: int = 0
    num_leechs: int = 0
    num_complete: int = 0
    num_incomplete: int = 0
    priority: int = 0
    category: str = ""
    tags: str = ""
    tracker: str = ""
    save_path: str = ""
    content_path: str = ""
    magnet_uri: str = ""
    added_on: int = 0
    completion_on: int = 0
    last_activity: int = 0
    seen_complete: int = 0
    time_active: int = 0
    seeding_time: int = 0
    availability: float = 0.0
    auto_tmm: bool = False
    force_start: bool = False
    seq_dl: bool = False
    f_l_piece_prio: bool = False
    super_seeding: bool = False

    @property
    def tag_list(self) -> list[str]:
        return [tag.strip() for tag in self.tags.split(",") if tag.strip()]


class Category(msgspec.Struct, frozen=True):
    name: str
    save_path: str = msgspec.field(default="", name="savePath")


class ServerState(msgspec.Struct, frozen=True):
    """Global transfer information carried by ``sync/maindata``."""

    connection_status: str = "disconnected"
    dl_info_speed: int = 0
    dl_info_data: int = 0
    up_info_speed: int = 0
    up_info_data: int = 0
    dl_rate_limit: int = 0
    up_rate_limit: int = 0
    alltime_dl: int = 0
    alltime_ul: int = 0
    dht_nodes: int = 0
    free_space_on_disk: int = 0
    global_ratio: str = "0"
    total_peer_connections: int = 0
    queueing: bool = False
    use_alt_speed_limits: bool = False
    refresh_interval: int = 1500


class MainData(msgspec.Struct, frozen=True):
    """Merged state of ``sync/maindata`` as of ``rid``.

    Attributes:
        rid: Response id of the last merged sync response.
        full_update: Whether the last sync response was a full snapshot.
        torrents: Torrents keyed by info hash.
        categories: Categories keyed by name.
        tags: All known tags.
        trackers: Tracker URL mapped to the hashes of its torrents.
        server_state: Global transfer information.
    """

    rid: int
    full_update: bool = False
    torrents: dict[str, Torrent] = msgspec.field(default_factory=dict)
    categories: dict[str, Category] = msgspec.field(default_factory=dict)
    tags: list[str] = msgspec.field(default_factory=list)
    trackers: dict[str, list[str]] = msgspec.field(default_factory=dict)
    server_state: ServerState = msgspec.field(default_factory=ServerState)


class Peer(msgspec.Struct, frozen=True):
    """A peer connected to a torrent."""

    ip: str = ""
    port: int = 0
    client: str = ""
    connection: str = ""
    country: str = ""
    country_code: str = ""
    flags: str = ""
    flags_desc: str = ""
    files: str = ""
    progress: float = 0.0
    relevance: float = 0.0
    dl_speed: int = 0
    up_speed: int = 0
    downloaded: int = 0
    uploaded: int = 0


class TorrentPeers(msgspec.Struct, frozen=True):
    """Merged state of ``sync/torrentPeers`` for one torrent.

    Attributes:
        rid: Response id of the last merged sync response.
        full_update: Whether the last sync response was a full snapshot.
        show_flags: Whether peer flags are enabled in the Web UI.
        peers: Peers keyed by ``"ip:port"``.
    """

    rid: int
    full_update: bool = False
    show_flags: bool = False
    peers: dict[str, Peer] = msgspec.field(default_factory=dict)


class TorrentFile(msgspec.Struct, frozen=True):
    """A file inside a torrent, from ``torrents/files``."""

    name: str
    size: int = 0
    index: int = 0
    progress: float = 0.0
    priority: int = 1
    is_seed: bool = False
    piece_range: list[int] = msgspec.field(default_factory=list)
    availability: float = 0.0


class TorrentTracker(msgspec.Struct, frozen=True):
    """A tracker of a torrent, from ``torrents/trackers``."""

    url: str
    status: int = 0
    # Empty string for the DHT/PeX/LSD pseudo trackers
    tier: int | str = 0
    num_peers: int = 0
    num_seeds: int = 0
    num_leeches: int = 0
    num_downloaded: int = 0
    msg: str = ""
