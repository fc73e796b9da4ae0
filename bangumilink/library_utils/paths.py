"""
Path management utilities for the output library
"""

import posixpath
import re
from pathlib import Path

MAX_FILENAME_LENGTH = 240


class PathManager:
    """Manages paths and filenames inside the library"""

    @staticmethod
    def sanitize_filename(filename: str) -> str:
        """Clean a filename to make it compatible with filesystems"""
        # Remove invalid characters
        filename = re.sub(r'[<>:"/\\|?*]', "", filename)
        # Windows refuses trailing dots and spaces
        filename = filename.rstrip(". ")
        if len(filename) > MAX_FILENAME_LENGTH:
            filename = filename[:MAX_FILENAME_LENGTH].rstrip(". ")
        return filename

    @staticmethod
    def build_episode_basename(episode_key: str, episode_name: str) -> str:
        """
        Build the new logical name of an episode
        Format: E01 - EpisodeTitle
        """
        return f"{episode_key} - {PathManager.sanitize_filename(episode_name)}"

    @staticmethod
    def sibling_path(rel_path: str, filename: str) -> str:
        """Place filename in the same directory as rel_path (POSIX separators)"""
        parent = posixpath.dirname(rel_path)
        if parent:
            return posixpath.join(parent, filename)
        return filename

    @staticmethod
    def to_rel_path(path: Path, base: Path) -> str:
        """Relative path of a file below base, always with "/" separators"""
        return path.relative_to(base).as_posix()

    @staticmethod
    def season_output_directory(
        target_root: Path, output_dir: Path, season_name: str
    ) -> Path:
        """
        Directory an output folder is renamed to once its season is known
        Format: <target_root>/<SeasonName>
        """
        clean_name = PathManager.sanitize_filename(season_name)
        if not clean_name:
            return output_dir
        return target_root / clean_name
