"""
Apply a cached season plan to a materialized output directory
"""

import logging
from pathlib import Path

from .models import CachedSeasonInfo, RenameResult

logger = logging.getLogger(__name__)


def _rename_one(
    directory: Path, src: str, dst: str, dry_run: bool, result: RenameResult
):
    src_path = directory / src
    dst_path = directory / dst

    # Already renamed, source gone or destination taken: nothing to do
    if not src_path.exists() or dst_path.exists():
        result.skipped += 1
        return

    if dry_run:
        logger.info(f"[DRY RUN] Would rename {src} -> {dst}")
        result.renamed += 1
        return

    try:
        src_path.rename(dst_path)
        logger.debug(f"Renamed {src} -> {dst}")
        result.renamed += 1
    except OSError as e:
        logger.error(f"Failed to rename {src} -> {dst}: {e}")
        result.failed += 1


def rename_files_from_cache(
    directory: Path, season: CachedSeasonInfo, dry_run: bool = False
) -> RenameResult:
    """
    Rename the files of one season according to its cached plan

    Each video and subtitle pair is handled independently and never
    overwrites an existing file, so running this twice is a no-op the
    second time.

    Args:
        directory: Output directory the plan's relative paths refer to
        season: Cached season plan
        dry_run: Only log what would be renamed

    Returns:
        RenameResult with per-file counters
    """
    result = RenameResult()
    episodes = sorted(season.episodes.values(), key=lambda e: e.bangumi_sort)

    for episode in episodes:
        if episode.video_src and episode.video_dst:
            _rename_one(directory, episode.video_src, episode.video_dst, dry_run, result)
        for src, dst in episode.subtitles.items():
            _rename_one(directory, src, dst, dry_run, result)

    logger.info(
        f"{season.bangumi_season_name}: {result.renamed} renamed, "
        f"{result.skipped} skipped, {result.failed} failed"
    )
    return result
