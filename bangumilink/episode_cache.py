"""
Turn matcher output into the persisted per-episode rename plan
"""

import logging
import posixpath

from .library_utils.paths import PathManager
from .matcher import match_episodes
from .models import (
    CachedEpisodeInfo,
    CachedSeasonInfo,
    CacheRoot,
    Episode,
    EpisodeMatch,
    LocalFileInfo,
    Season,
)
from .naming import format_episode_key, subtitle_suffix

logger = logging.getLogger(__name__)


def build_episode_cache(
    matched: dict[float, EpisodeMatch],
    episodes: list[Episode],
    total: int,
    prefix: str = "E",
) -> dict[str, CachedEpisodeInfo]:
    """
    Build the rename plan of every catalog episode

    Destinations keep the parent directory of their source and use the
    name "{episode_key} - {title}". Subtitles keep whatever follows the
    video stem (language tags such as ".scjp.ass"). Episodes with no local
    files are still recorded, with empty paths.

    Args:
        matched: Matcher output keyed by sort
        episodes: Catalog episodes in catalog order
        total: Number of episodes, drives the key width
        prefix: "E" for main episodes, "SP" for specials

    Returns:
        Dict of episode key -> CachedEpisodeInfo
    """
    result: dict[str, CachedEpisodeInfo] = {}

    for episode in episodes:
        key = format_episode_key(episode.sort, total, prefix)
        new_base = PathManager.build_episode_basename(key, episode.name)
        info = CachedEpisodeInfo(bangumi_sort=episode.sort, bangumi_name=episode.name)

        match = matched.get(episode.sort)
        if match is not None:
            reference_stem = ""
            if match.video is not None:
                reference_stem = match.video.name_only
                info.video_src = match.video.rel_path
                info.video_dst = PathManager.sibling_path(
                    match.video.rel_path, new_base + match.video.ext
                )
            elif match.subs:
                reference_stem = match.subs[0].name_only

            for sub in match.subs:
                suffix = subtitle_suffix(
                    posixpath.basename(sub.rel_path), reference_stem or sub.name_only
                )
                info.subtitles[sub.rel_path] = PathManager.sibling_path(
                    sub.rel_path, new_base + suffix
                )

        # Duplicate keys: the later catalog entry wins
        result[key] = info

    return result


def build_season_info(
    season_id: int,
    season_name: str,
    episodes: list[Episode],
    local_files: list[LocalFileInfo],
    video_exts: list[str],
    subtitle_exts: list[str],
    prefix: str = "E",
) -> CachedSeasonInfo:
    """Match local files against episodes and wrap the plan in a season record"""
    matched = match_episodes(episodes, local_files, video_exts, subtitle_exts)
    return CachedSeasonInfo(
        bangumi_season_id=season_id,
        bangumi_season_name=season_name,
        total_bangumi_episodes=len(episodes),
        episodes=build_episode_cache(matched, episodes, len(episodes), prefix),
    )


def update_season_cache(
    cache: CacheRoot,
    season: Season,
    episodes: list[Episode],
    local_files: list[LocalFileInfo],
    video_exts: list[str],
    subtitle_exts: list[str],
) -> CachedSeasonInfo:
    """Recompute a season's plan and replace its cache record wholesale"""
    info = build_season_info(
        season.id, season.name, episodes, local_files, video_exts, subtitle_exts
    )
    cache.seasons[str(season.id)] = info

    matched_videos = sum(1 for e in info.episodes.values() if e.video_src)
    logger.info(
        f"Season {season.id} ({season.name}): {matched_videos}/{len(episodes)} episodes with video"
    )
    return info


def episodes_from_cached_season(season: CachedSeasonInfo) -> list[Episode]:
    """Rebuild the catalog episode list from a cached season, sorted by sort"""
    episodes = [
        Episode(sort=info.bangumi_sort, name=info.bangumi_name)
        for info in season.episodes.values()
    ]
    episodes.sort(key=lambda e: e.sort)
    return episodes
