"""
Populate the output tree with hard links to the source media
"""

import logging
import os
import shutil
from pathlib import Path
from typing import Callable

from .scan import is_media_file

logger = logging.getLogger(__name__)


def link_file(source: Path, target: Path) -> bool:
    """
    Hard-link source to target, copying when linking is not possible

    Returns:
        True if a hard link was created, False if the file was copied
    """
    try:
        os.link(source, target)
        return True
    except OSError as e:
        logger.debug(f"Hard link failed for {source} ({e}), copying instead")
        shutil.copy2(source, target)
        return False


def materialize(
    source: Path,
    target: Path,
    video_exts: list[str],
    subtitle_exts: list[str],
    name_filter: Callable[[str], bool] | None = None,
    exclude_dirs: list[str] | None = None,
) -> int:
    """
    Mirror the media files of source into target

    Directories are recreated, media files are hard-linked (or copied) and
    everything else is ignored. The source tree is never modified.

    Args:
        source: Source directory
        target: Target directory, created if missing
        video_exts: Video extensions
        subtitle_exts: Subtitle extensions
        name_filter: Optional predicate on the file basename
        exclude_dirs: Top-level sub-directories of source to skip

    Returns:
        Number of files placed in target
    """
    excluded = set(exclude_dirs or [])
    target.mkdir(parents=True, exist_ok=True)
    placed = 0

    for dirpath, dirnames, filenames in os.walk(source):
        current = Path(dirpath)
        if current == source:
            dirnames[:] = [d for d in dirnames if d not in excluded]
        rel_dir = current.relative_to(source)
        (target / rel_dir).mkdir(parents=True, exist_ok=True)

        for filename in filenames:
            if not is_media_file(filename, video_exts, subtitle_exts):
                continue
            if name_filter is not None and not name_filter(filename):
                continue
            link_file(current / filename, target / rel_dir / filename)
            placed += 1

    logger.debug(f"Materialized {placed} files from {source} into {target}")
    return placed


def remove_tree(path: Path):
    """Delete a previously materialized directory if it exists"""
    if path.is_dir():
        shutil.rmtree(path)
    elif path.exists():
        path.unlink()
