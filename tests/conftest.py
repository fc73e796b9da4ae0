"""
Pytest configuration and fixtures for bangumilink tests.
"""

import os
import sys
from pathlib import Path

import pytest

# Add parent directory to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from bangumilink.config import DEFAULT_SUBTITLE_EXTENSIONS, DEFAULT_VIDEO_EXTENSIONS
from bangumilink.library_utils.scan import split_media_name
from bangumilink.models import LocalFileInfo

ENV_VARS = [
    "SOURCE_DIRECTORY",
    "TARGET_DIRECTORY",
    "BANGUMILINK_CACHE_FILE",
    "OPENROUTER_API_KEY",
    "LLM_URL",
    "LLM_MODEL",
    "SPECIAL_FOLDERS",
    "USE_CN",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep configuration tests independent from the caller's environment."""
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def video_exts() -> list[str]:
    return list(DEFAULT_VIDEO_EXTENSIONS)


@pytest.fixture
def subtitle_exts() -> list[str]:
    return list(DEFAULT_SUBTITLE_EXTENSIONS)


@pytest.fixture
def make_file(subtitle_exts):
    """Build a LocalFileInfo from a relative path, without touching the disk."""

    def _make(rel_path: str) -> LocalFileInfo:
        basename = rel_path.rsplit("/", 1)[-1]
        name_only, ext = split_media_name(basename, subtitle_exts)
        return LocalFileInfo(
            rel_path=rel_path,
            name_only=name_only,
            ext=ext,
            full_path=f"/library/{rel_path}",
        )

    return _make


@pytest.fixture
def touch():
    """Create an empty file (and its parents) and return its path."""

    def _touch(path: Path, content: str = "") -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
        return path

    return _touch
