"""
Cache file persistence

The cache is a small indentation-based text format (a YAML subset) that is
written with sorted keys so that successive runs produce stable diffs:

    version: 2
    source_root: "/media/downloads"
    target_root: "/media/anime"
    work_items:
      "Show":
        source_rel: "Show"
        ...
    seasons:
      "12345":
        bangumi_season_id: 12345
        ...
        episodes:
          "E01":
            bangumi_sort: 1
            ...
            subtitles:
              "Show - 01.ass": "E01 - Title.ass"

Only ``parse`` and ``serialize`` know about the format.
"""

import logging
import re
from enum import Enum
from pathlib import Path

from .models import (
    CURRENT_CACHE_VERSION,
    CachedEpisodeInfo,
    CachedSeasonInfo,
    CacheRoot,
    WorkItemCacheEntry,
)

logger = logging.getLogger(__name__)

INDENT = "  "

_ESCAPES = {"\\": "\\\\", '"': '\\"', "\n": "\\n", "\r": "\\r", "\t": "\\t"}
_UNESCAPES = {"n": "\n", "r": "\r", "t": "\t", "\\": "\\", '"': '"'}

# Other characters str.splitlines() and YAML readers treat as line breaks
_LINE_BREAKS = frozenset("\v\f\x1c\x1d\x1e\x85\u2028\u2029")
_HEX4_RE = re.compile(r"[0-9a-fA-F]{4}")


class CacheError(Exception):
    """Base error for unreadable cache files"""


class UnsupportedCacheVersion(CacheError):
    """The cache was written by a newer version of the program"""

    def __init__(self, found: int, supported: int = CURRENT_CACHE_VERSION):
        self.found = found
        self.supported = supported
        super().__init__(
            f"Cache version {found} is newer than supported version {supported}"
        )


class InvalidCacheVersion(CacheError):
    """The version field is not an integer"""


def _escape(char: str) -> str:
    if char in _LINE_BREAKS:
        return f"\\u{ord(char):04x}"
    return _ESCAPES.get(char, char)


def quote(value: str) -> str:
    """Render a string as a double-quoted scalar on a single line"""
    return '"' + "".join(_escape(c) for c in value) + '"'


def unquote(text: str) -> str:
    """Inverse of quote(); unquoted text is returned stripped"""
    text = text.strip()
    if len(text) < 2 or text[0] != '"' or text[-1] != '"':
        return text

    out = []
    body = text[1:-1]
    i = 0
    while i < len(body):
        char = body[i]
        if char == "\\" and i + 1 < len(body):
            nxt = body[i + 1]
            code = body[i + 2 : i + 6]
            if nxt == "u" and _HEX4_RE.fullmatch(code):
                out.append(chr(int(code, 16)))
                i += 6
                continue
            out.append(_UNESCAPES.get(nxt, nxt))
            i += 2
            continue
        out.append(char)
        i += 1
    return "".join(out)


def _split_key_value(line: str) -> tuple[str, str] | None:
    """
    Split "key: value" where key may be a quoted string containing ':'

    Returns None when the line has no key separator.
    """
    if line.startswith('"'):
        i = 1
        while i < len(line):
            if line[i] == "\\":
                i += 2
                continue
            if line[i] == '"':
                break
            i += 1
        else:
            return None
        colon = line.find(":", i + 1)
    else:
        colon = line.find(":")

    if colon == -1:
        return None
    return unquote(line[:colon]), line[colon + 1 :].strip()


def _format_number(value: float) -> str:
    if float(value).is_integer():
        return str(int(value))
    return repr(float(value))


def serialize(cache: CacheRoot) -> str:
    """Render the whole cache; the version is always the current one"""
    lines = [
        f"version: {CURRENT_CACHE_VERSION}",
        f"source_root: {quote(cache.source_root)}",
        f"target_root: {quote(cache.target_root)}",
        "work_items:",
    ]

    for key in sorted(cache.work_items):
        entry = cache.work_items[key]
        lines.append(f"{INDENT}{quote(key)}:")
        pad = INDENT * 2
        lines.append(f"{pad}source_rel: {quote(entry.source_rel)}")
        lines.append(f"{pad}target_rel: {quote(entry.target_rel)}")
        lines.append(f"{pad}search_term: {quote(entry.search_term)}")
        lines.append(f"{pad}bangumi_season_id: {entry.bangumi_season_id}")
        lines.append(f"{pad}bangumi_season_name: {quote(entry.bangumi_season_name)}")

    lines.append("seasons:")
    for key in sorted(cache.seasons):
        season = cache.seasons[key]
        lines.append(f"{INDENT}{quote(key)}:")
        pad = INDENT * 2
        lines.append(f"{pad}bangumi_season_id: {season.bangumi_season_id}")
        lines.append(f"{pad}bangumi_season_name: {quote(season.bangumi_season_name)}")
        lines.append(f"{pad}total_bangumi_episodes: {season.total_bangumi_episodes}")
        lines.append(f"{pad}episodes:")

        for ep_key in sorted(season.episodes):
            episode = season.episodes[ep_key]
            lines.append(f"{INDENT * 3}{quote(ep_key)}:")
            pad = INDENT * 4
            lines.append(f"{pad}bangumi_sort: {_format_number(episode.bangumi_sort)}")
            lines.append(f"{pad}bangumi_name: {quote(episode.bangumi_name)}")
            if episode.video_src is not None:
                lines.append(f"{pad}video_src: {quote(episode.video_src)}")
            if episode.video_dst is not None:
                lines.append(f"{pad}video_dst: {quote(episode.video_dst)}")
            lines.append(f"{pad}subtitles:")
            for src in sorted(episode.subtitles):
                lines.append(
                    f"{INDENT * 5}{quote(src)}: {quote(episode.subtitles[src])}"
                )

    return "\n".join(lines) + "\n"


class _State(Enum):
    ROOT = "root"
    WORK_ITEMS = "work_items"
    SEASONS = "seasons"
    SEASON_ENTRY = "season_entry"
    EPISODE_ENTRY = "episode_entry"
    SUBTITLES = "subtitles"


def _parse_int(value: str, default: int) -> int:
    try:
        return int(value)
    except ValueError:
        return default


def _parse_float(value: str, default: float) -> float:
    try:
        return float(value)
    except ValueError:
        return default


def _parse_version(value: str) -> int:
    try:
        version = int(value)
    except ValueError:
        raise InvalidCacheVersion(f"Invalid cache version: {value!r}") from None
    if version < 0:
        raise InvalidCacheVersion(f"Invalid cache version: {value!r}")
    if version > CURRENT_CACHE_VERSION:
        raise UnsupportedCacheVersion(version)
    return version or CURRENT_CACHE_VERSION


def parse(text: str) -> CacheRoot:
    """
    Parse cache text with a forward line scan

    The indentation column of each line decides which section it belongs
    to. Unknown keys and lines that cannot be split are skipped.

    Raises:
        UnsupportedCacheVersion: version is newer than CURRENT_CACHE_VERSION
        InvalidCacheVersion: version is not a non-negative integer
    """
    cache = CacheRoot()
    state = _State.ROOT
    work_item: WorkItemCacheEntry | None = None
    season: CachedSeasonInfo | None = None
    episode: CachedEpisodeInfo | None = None

    # Only "\n" ends a line; quote() escapes every other line break
    for raw_line in text.split("\n"):
        raw_line = raw_line.rstrip("\r")
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        indent = len(raw_line) - len(raw_line.lstrip())

        if indent == 0:
            state = _State.ROOT
            work_item = season = episode = None
            if line == "work_items:":
                state = _State.WORK_ITEMS
                continue
            if line == "seasons:":
                state = _State.SEASONS
                continue
            pair = _split_key_value(line)
            if pair is None:
                continue
            key, value = pair
            if key == "version":
                cache.version = _parse_version(value)
            elif key == "source_root":
                cache.source_root = unquote(value)
            elif key == "target_root":
                cache.target_root = unquote(value)
            continue

        if state is _State.WORK_ITEMS:
            pair = _split_key_value(line)
            if pair is None:
                continue
            key, value = pair
            if indent == 2 and not value:
                work_item = WorkItemCacheEntry("", "", "", 0, "")
                cache.work_items[key] = work_item
            elif indent == 4 and work_item is not None:
                if key == "source_rel":
                    work_item.source_rel = unquote(value)
                elif key == "target_rel":
                    work_item.target_rel = unquote(value)
                elif key == "search_term":
                    work_item.search_term = unquote(value)
                elif key == "bangumi_season_id":
                    work_item.bangumi_season_id = _parse_int(
                        value, work_item.bangumi_season_id
                    )
                elif key == "bangumi_season_name":
                    work_item.bangumi_season_name = unquote(value)
            continue

        if state is _State.ROOT:
            continue

        pair = _split_key_value(line)
        if pair is None:
            continue
        key, value = pair

        if indent == 2 and not value:
            season = CachedSeasonInfo(0, "", 0)
            cache.seasons[key] = season
            episode = None
            state = _State.SEASON_ENTRY
        elif indent == 4 and season is not None:
            episode = None
            state = _State.SEASON_ENTRY
            if key == "episodes" and not value:
                state = _State.EPISODE_ENTRY
            elif key == "bangumi_season_id":
                season.bangumi_season_id = _parse_int(value, season.bangumi_season_id)
            elif key == "bangumi_season_name":
                season.bangumi_season_name = unquote(value)
            elif key == "total_bangumi_episodes":
                season.total_bangumi_episodes = _parse_int(
                    value, season.total_bangumi_episodes
                )
        elif (
            indent == 6
            and not value
            and season is not None
            and state in (_State.EPISODE_ENTRY, _State.SUBTITLES)
        ):
            episode = CachedEpisodeInfo(bangumi_sort=0.0, bangumi_name="")
            season.episodes[key] = episode
            state = _State.EPISODE_ENTRY
        elif indent == 8 and episode is not None:
            state = _State.EPISODE_ENTRY
            if key == "subtitles" and not value:
                state = _State.SUBTITLES
            elif key == "bangumi_sort":
                episode.bangumi_sort = _parse_float(value, episode.bangumi_sort)
            elif key == "bangumi_name":
                episode.bangumi_name = unquote(value)
            elif key == "video_src":
                episode.video_src = unquote(value)
            elif key == "video_dst":
                episode.video_dst = unquote(value)
        elif indent == 10 and state is _State.SUBTITLES and episode is not None:
            episode.subtitles[key] = unquote(value)

    return cache


def load_cache(path: Path) -> CacheRoot:
    """Load the cache file, or return an empty cache when it does not exist"""
    if not path.exists():
        logger.info(f"No cache file at {path}, starting with an empty cache")
        return CacheRoot()

    with open(path, "r", encoding="utf-8") as f:
        return parse(f.read())


def save_cache(path: Path, cache: CacheRoot):
    """Overwrite the cache file with the current in-memory cache"""
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8", newline="\n") as f:
        f.write(serialize(cache))
    cache.version = CURRENT_CACHE_VERSION
    logger.debug(
        f"Saved cache to {path} ({len(cache.work_items)} work items, {len(cache.seasons)} seasons)"
    )


class CacheStore:
    """Cache file bound to a path"""

    def __init__(self, path: Path | str):
        self.path = Path(path)

    def load(self) -> CacheRoot:
        return load_cache(self.path)

    def save(self, cache: CacheRoot):
        save_cache(self.path, cache)

    def reset(self) -> CacheRoot:
        """Discard the file on disk and return a fresh cache"""
        if self.path.exists():
            self.path.unlink()
            logger.warning(f"Discarded cache file {self.path}")
        return CacheRoot()
