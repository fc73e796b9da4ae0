"""
Data models for BangumiLink
"""

from dataclasses import dataclass, field

CURRENT_CACHE_VERSION = 2


@dataclass(frozen=True)
class LocalFileInfo:
    """A media or subtitle file found on disk"""

    rel_path: str  # POSIX separators, relative to the work item directory
    name_only: str
    ext: str  # leading dot, may be compound (".scjp.ass")
    full_path: str


@dataclass
class Episode:
    """Represents an episode in the Bangumi catalog"""

    sort: float
    name: str


@dataclass
class Season:
    """Represents a Bangumi subject resolved from a search"""

    id: int
    name: str
    platform: str = "Unknown"
    eps: int = 0
    score: float = 0.0


@dataclass
class EpisodeMatch:
    """Local files assigned to one catalog episode"""

    video: LocalFileInfo | None = None
    subs: list[LocalFileInfo] = field(default_factory=list)


@dataclass
class CachedEpisodeInfo:
    """Rename plan for a single episode"""

    bangumi_sort: float
    bangumi_name: str
    video_src: str | None = None
    video_dst: str | None = None
    subtitles: dict[str, str] = field(default_factory=dict)


@dataclass
class CachedSeasonInfo:
    """Rename plan for a whole season, keyed by episode key ("E01", "SP03")"""

    bangumi_season_id: int
    bangumi_season_name: str
    total_bangumi_episodes: int
    episodes: dict[str, CachedEpisodeInfo] = field(default_factory=dict)


@dataclass
class WorkItemCacheEntry:
    """Resolved catalog identity of a work item"""

    source_rel: str
    target_rel: str
    search_term: str
    bangumi_season_id: int
    bangumi_season_name: str


@dataclass
class CacheRoot:
    """Everything persisted in the cache file"""

    version: int = CURRENT_CACHE_VERSION
    source_root: str = ""
    target_root: str = ""
    work_items: dict[str, WorkItemCacheEntry] = field(default_factory=dict)
    seasons: dict[str, CachedSeasonInfo] = field(default_factory=dict)


@dataclass
class WorkItem:
    """One unit of local processing (a folder, or one season of a folder)"""

    key: str
    input_rel: str
    output_rel: str
    search_term: str
    season_filter: int | None = None
    treat_unmarked_as_s1: bool = False
    series_hint: str | None = None


@dataclass
class RenameResult:
    """Counters returned by the rename executor"""

    renamed: int = 0
    skipped: int = 0
    failed: int = 0
