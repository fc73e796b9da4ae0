"""
Directory scanning: local media inventory and work item construction
"""

import logging
import os
import re
from pathlib import Path
from typing import Callable

from ..filters import (
    apply_custom_rules,
    detect_season_number,
    extract_anime_name,
    is_likely_special_episode_name,
    parse_season_from_dir_name,
)
from ..models import LocalFileInfo, WorkItem
from ..naming import has_extension
from .paths import PathManager

logger = logging.getLogger(__name__)

# Language/version tag allowed in front of a subtitle extension (".scjp.ass")
_SUBTITLE_TAG_RE = re.compile(r"^[A-Za-z]{2,4}([-_][A-Za-z]{2,4})?$")
_FOLDER_SEASON_RE = re.compile(r"[Ss](\d+)")

MAX_SEASON_PROBE_FILES = 600
MAX_TRACKED_SEASON = 32


def read_top_folders(path: Path) -> list[str]:
    """Names of the direct sub-directories of path, sorted"""
    return sorted(entry.name for entry in path.iterdir() if entry.is_dir())


def split_media_name(
    basename: str, subtitle_exts: list[str] | None = None
) -> tuple[str, str]:
    """
    Split a filename into (name_only, ext)

    Subtitles keep a short language tag in their extension, so
    "Show - 01.scjp.ass" gives ("Show - 01", ".scjp.ass").
    """
    stem, ext = os.path.splitext(basename)
    if subtitle_exts and has_extension(ext, subtitle_exts):
        inner_stem, tag = os.path.splitext(stem)
        if inner_stem and tag and _SUBTITLE_TAG_RE.match(tag[1:]):
            return inner_stem, tag + ext
    return stem, ext


def is_media_file(basename: str, video_exts: list[str], subtitle_exts: list[str]) -> bool:
    ext = os.path.splitext(basename)[1]
    if not ext:
        return False
    return has_extension(ext, video_exts) or has_extension(ext, subtitle_exts)


def make_name_filter(
    season_filter: int | None = None,
    treat_unmarked_as_s1: bool = False,
    series_hint: str | None = None,
) -> Callable[[str], bool]:
    """
    Build the filename predicate of a work item

    series_hint must appear in the name (case-insensitive). With a
    season filter, only names marked with that season are kept; unmarked
    names are kept for season 1 when treat_unmarked_as_s1 is set.
    """
    hint = series_hint.lower() if series_hint else None

    def accept(basename: str) -> bool:
        if hint and hint not in basename.lower():
            return False
        if season_filter is not None:
            detected = detect_season_number(basename)
            if detected is None:
                return treat_unmarked_as_s1 and season_filter == 1
            return detected == season_filter
        return True

    return accept


def _walk_files(root: Path, exclude_dirs: list[str] | None = None):
    """Yield files below root in a stable order, skipping excluded top-level dirs"""
    excluded = set(exclude_dirs or [])
    for dirpath, dirnames, filenames in os.walk(root):
        current = Path(dirpath)
        if current == root:
            dirnames[:] = [d for d in dirnames if d not in excluded]
        dirnames.sort()
        for filename in sorted(filenames):
            yield current / filename


def scan_local_files(
    base_dir: Path,
    input_rel: str,
    video_exts: list[str],
    subtitle_exts: list[str],
    season_filter: int | None = None,
    treat_unmarked_as_s1: bool = False,
    series_hint: str | None = None,
    exclude_dirs: list[str] | None = None,
) -> list[LocalFileInfo]:
    """
    Scan the media files of a work item

    Args:
        base_dir: Source root
        input_rel: Work item directory relative to base_dir
        video_exts: Video extensions
        subtitle_exts: Subtitle extensions
        season_filter: Only keep files of this season
        treat_unmarked_as_s1: Keep files without season marker for season 1
        series_hint: Substring every kept filename must contain
        exclude_dirs: Top-level sub-directories to skip

    Returns:
        List of LocalFileInfo with rel_path relative to the work item directory
    """
    root = base_dir / input_rel
    if not root.is_dir():
        logger.warning(f"Directory not found: {root}")
        return []

    accept = make_name_filter(season_filter, treat_unmarked_as_s1, series_hint)
    files = []
    for path in _walk_files(root, exclude_dirs):
        basename = path.name
        if not is_media_file(basename, video_exts, subtitle_exts):
            continue
        if not accept(basename):
            continue
        name_only, ext = split_media_name(basename, subtitle_exts)
        files.append(
            LocalFileInfo(
                rel_path=PathManager.to_rel_path(path, root),
                name_only=name_only,
                ext=ext,
                full_path=str(path),
            )
        )

    logger.debug(f"Scanned {len(files)} media files in {root}")
    return files


def _probe_file_seasons(
    folder_path: Path, video_exts: list[str], subtitle_exts: list[str]
) -> set[int]:
    """Season numbers found in the first media filenames of a folder"""
    found: set[int] = set()
    for seen, path in enumerate(_walk_files(folder_path)):
        if seen >= MAX_SEASON_PROBE_FILES or len(found) >= 3:
            break
        if not is_media_file(path.name, video_exts, subtitle_exts):
            continue
        season = detect_season_number(path.name)
        if season is not None and season <= MAX_TRACKED_SEASON:
            found.add(season)
    return found


def _season_term(base_name: str, season: int) -> str:
    if season <= 1:
        return base_name
    return f"{base_name} Season {season}"


def build_work_items(
    base_dir: Path,
    top_folders: list[str],
    custom_rules: list[str],
    video_exts: list[str],
    subtitle_exts: list[str],
) -> list[WorkItem]:
    """
    Turn the top-level folders of the source root into work items

    - A folder with season sub-directories ("Season 2", "S02", "第二季")
      gives one work item per sub-directory.
    - A folder whose files (or own name) reveal two or more seasons is split
      into one work item per season, keyed "folder::S2" and written to
      "folder/Season 2".
    - Any other folder is a single work item.
    """
    items: list[WorkItem] = []

    for folder in top_folders:
        folder_path = base_dir / folder
        base_name = apply_custom_rules(extract_anime_name(folder), custom_rules)

        season_dirs = []
        for entry in sorted(folder_path.iterdir()):
            if entry.is_dir():
                season = parse_season_from_dir_name(entry.name)
                if season is not None:
                    season_dirs.append((entry.name, season))

        if season_dirs:
            for dir_name, season in season_dirs:
                rel = f"{folder}/{dir_name}"
                items.append(
                    WorkItem(
                        key=rel,
                        input_rel=rel,
                        output_rel=rel,
                        search_term=_season_term(base_name, season),
                    )
                )
            continue

        seasons = _probe_file_seasons(folder_path, video_exts, subtitle_exts)
        for match in _FOLDER_SEASON_RE.finditer(folder):
            season = int(match.group(1))
            if 0 < season <= MAX_TRACKED_SEASON:
                seasons.add(season)

        if len(seasons) >= 2:
            logger.debug(f"{folder}: splitting into seasons {sorted(seasons)}")
            for season in sorted(seasons):
                items.append(
                    WorkItem(
                        key=f"{folder}::S{season}",
                        input_rel=folder,
                        output_rel=f"{folder}/Season {season}",
                        search_term=_season_term(base_name, season),
                        season_filter=season,
                        treat_unmarked_as_s1=season == 1,
                        series_hint=base_name or None,
                    )
                )
        else:
            items.append(
                WorkItem(
                    key=folder, input_rel=folder, output_rel=folder, search_term=base_name
                )
            )

    return items


def scan_likely_special_files(
    base_dir: Path,
    input_rel: str,
    folder_name: str,
    video_exts: list[str],
    subtitle_exts: list[str],
    series_hint: str | None = None,
) -> list[LocalFileInfo]:
    """
    Scan a special-content sub-folder, keeping only real special episodes

    Bonus folders mix 特别篇/SP episodes with OP/ED/PV/menu clips whose
    numbers would otherwise be mistaken for episode numbers.
    """
    files = scan_local_files(
        base_dir,
        f"{input_rel}/{folder_name}",
        video_exts,
        subtitle_exts,
        series_hint=series_hint,
    )
    return [f for f in files if is_likely_special_episode_name(f.name_only)]


def any_named_subfolder_exists(parent: Path, folder_names: list[str]) -> bool:
    return any((parent / name).is_dir() for name in folder_names)
