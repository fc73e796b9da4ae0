"""
Miscellaneous utilities
"""

import logging
import time
from pathlib import Path

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def setup_logging(log_level: str = "INFO", log_directory: str | None = None) -> Path | None:
    """
    Configure logging system

    When log_directory is given, every record is also written to
    <log_directory>/run_<timestamp>.log at DEBUG level.

    Returns:
        Path of the run log file, if one was created
    """
    numeric_level = getattr(logging, log_level.upper(), None)
    if not isinstance(numeric_level, int):
        numeric_level = logging.INFO

    logging.basicConfig(
        level=numeric_level,
        format=LOG_FORMAT,
        datefmt=LOG_DATE_FORMAT,
    )

    if not log_directory:
        return None

    log_dir = Path(log_directory)
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / f"run_{time.strftime('%Y%m%d_%H%M%S')}.log"

    handler = logging.FileHandler(log_file, encoding="utf-8")
    handler.setLevel(logging.DEBUG)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT))
    root = logging.getLogger()
    root.addHandler(handler)
    # Let DEBUG records reach the file handler; the console keeps its level
    for existing in root.handlers:
        if existing is not handler and existing.level == logging.NOTSET:
            existing.setLevel(numeric_level)
    root.setLevel(logging.DEBUG)
    return log_file


def format_season_info(season_id: int, season_name: str) -> str:
    """Format season information for display"""
    return f"{season_name} (#{season_id})"


def validate_directory(path: str | None, create: bool = False) -> Path | None:
    """Validate that a path is a valid directory"""
    if not path:
        return None

    dir_path = Path(path)

    if not dir_path.exists():
        if create:
            dir_path.mkdir(parents=True, exist_ok=True)
            return dir_path
        else:
            raise ValueError(f"Directory does not exist: {path}")

    if not dir_path.is_dir():
        raise ValueError(f"Path is not a directory: {path}")

    return dir_path
