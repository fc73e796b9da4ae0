"""
Assign local video/subtitle files to catalog episodes

Matching runs in three stages:

1. Pass 1 gives every integral episode (sort >= 1) the files whose extracted
   episode number equals its sort.
2. Pass 2 does the same for fractional specials and sort 0, over whatever
   pass 1 left, so numbered extras cannot steal a main episode's files.
3. The fallback hands out the still-unused files in natural order.
"""

import logging

from .models import Episode, EpisodeMatch, LocalFileInfo
from .naming import (
    base_name_without_episode,
    extract_episode_number,
    has_extension,
    match_subtitle_to_video,
    natural_sort_key,
)

logger = logging.getLogger(__name__)

SORT_TOLERANCE = 0.001


def _is_main_episode(sort: float) -> bool:
    return sort >= 1.0 and abs(sort - int(sort)) < SORT_TOLERANCE


def _is_special_episode(sort: float) -> bool:
    return abs(sort - int(sort)) >= SORT_TOLERANCE or sort == 0.0


def _match_pass(
    episodes: list[Episode],
    local_files: list[LocalFileInfo],
    numbers: list[float | None],
    matched: dict[float, EpisodeMatch],
    used: set[int],
    video_exts: list[str],
    subtitle_exts: list[str],
) -> None:
    for episode in episodes:
        slot = matched[episode.sort]
        for idx, local_file in enumerate(local_files):
            if idx in used:
                continue
            number = numbers[idx]
            if number is None or abs(number - episode.sort) >= SORT_TOLERANCE:
                continue

            if has_extension(local_file.ext, video_exts):
                # First video wins, later candidates stay unused
                if slot.video is None:
                    slot.video = local_file
                    used.add(idx)
            elif has_extension(local_file.ext, subtitle_exts):
                slot.subs.append(local_file)
                used.add(idx)


def match_files_to_episodes(
    episodes: list[Episode],
    local_files: list[LocalFileInfo],
    video_exts: list[str],
    subtitle_exts: list[str],
) -> tuple[dict[float, EpisodeMatch], set[int]]:
    """
    Match files whose extracted episode number agrees with an episode's sort

    Args:
        episodes: Catalog episodes
        local_files: Scanned files of the season
        video_exts: Video extensions
        subtitle_exts: Subtitle extensions (compound forms allowed)

    Returns:
        Tuple of (matches keyed by sort, indexes of used local files)
    """
    matched: dict[float, EpisodeMatch] = {}
    for episode in episodes:
        matched.setdefault(episode.sort, EpisodeMatch())

    used: set[int] = set()
    numbers = [extract_episode_number(f.name_only) for f in local_files]

    main_episodes = [e for e in episodes if _is_main_episode(e.sort)]
    special_episodes = [e for e in episodes if _is_special_episode(e.sort)]

    _match_pass(
        main_episodes, local_files, numbers, matched, used, video_exts, subtitle_exts
    )
    _match_pass(
        special_episodes,
        local_files,
        numbers,
        matched,
        used,
        video_exts,
        subtitle_exts,
    )

    logger.debug(
        f"Matched {len(used)}/{len(local_files)} files by episode number"
    )
    return matched, used


def _fallback_order(episode: Episode) -> tuple[int, float]:
    if episode.sort >= 1.0:
        group = 0
    elif episode.sort > 0.0:
        group = 1
    else:
        group = 2
    return group, episode.sort


def _pick_subtitle(
    video: LocalFileInfo | None, candidates: list[LocalFileInfo]
) -> LocalFileInfo:
    """Pick the subtitle that most likely belongs to the given video"""
    if video is not None:
        video_base = base_name_without_episode(video.name_only)
        for sub in candidates:
            if base_name_without_episode(sub.name_only) == video_base:
                return sub
        for sub in candidates:
            if match_subtitle_to_video(video.name_only, sub.name_only):
                return sub
    return candidates[0]


def assign_remaining_files(
    matched: dict[float, EpisodeMatch],
    used: set[int],
    local_files: list[LocalFileInfo],
    episodes: list[Episode],
    video_exts: list[str],
    subtitle_exts: list[str],
) -> None:
    """
    Hand out files the number-based passes could not place

    Remaining videos and subtitles are sorted naturally. Episodes are visited
    with sort >= 1 first, then 0 < sort < 1, then sort <= 0. An episode with
    no video takes the next video; an episode with no subtitle takes one
    subtitle, preferring one whose series identity matches its video.
    """
    remaining_videos: list[LocalFileInfo] = []
    remaining_subs: list[LocalFileInfo] = []
    for idx, local_file in enumerate(local_files):
        if idx in used:
            continue
        if has_extension(local_file.ext, video_exts):
            remaining_videos.append(local_file)
        elif has_extension(local_file.ext, subtitle_exts):
            remaining_subs.append(local_file)

    remaining_videos.sort(key=natural_sort_key)
    remaining_subs.sort(key=natural_sort_key)

    video_iter = iter(remaining_videos)
    for episode in sorted(episodes, key=_fallback_order):
        slot = matched.get(episode.sort)
        if slot is None:
            continue

        if slot.video is None:
            slot.video = next(video_iter, None)

        if not slot.subs and remaining_subs:
            sub = _pick_subtitle(slot.video, remaining_subs)
            remaining_subs.remove(sub)
            slot.subs.append(sub)


def match_episodes(
    episodes: list[Episode],
    local_files: list[LocalFileInfo],
    video_exts: list[str],
    subtitle_exts: list[str],
) -> dict[float, EpisodeMatch]:
    """Run the number-based passes followed by the fallback assignment"""
    matched, used = match_files_to_episodes(
        episodes, local_files, video_exts, subtitle_exts
    )
    assign_remaining_files(
        matched, used, local_files, episodes, video_exts, subtitle_exts
    )
    return matched
