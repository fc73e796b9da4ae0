"""
Configuration management
"""

import os
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Any

import yaml

from .bangumi import DEFAULT_URL as BANGUMI_URL
from .bangumi import DEFAULT_USER_AGENT
from .llm import DEFAULT_MODEL as LLM_MODEL
from .llm import DEFAULT_URL as LLM_URL

DEFAULT_VIDEO_EXTENSIONS = [
    ".mkv",
    ".mp4",
    ".avi",
    ".mov",
    ".flv",
    ".rmvb",
    ".wmv",
    ".ts",
    ".webm",
    ".m4v",
    ".mpg",
    ".mpeg",
]

# Matched by suffix, so ".ass" also covers ".scjp.ass"
DEFAULT_SUBTITLE_EXTENSIONS = [".ssa", ".ass", ".srt", ".sub", ".idx", ".vtt"]

VALID_SCHEDULE_UNITS = ["seconds", "minutes", "hours", "days", "weeks"]


def _env_flag(value: str) -> bool:
    return value.lower() in ["true", "1", "yes"]


def _env_list(value: str) -> list[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


@dataclass
class Config:
    """Application configuration"""

    source_directory: str = "."
    target_directory: str = "./anime"
    cache_file: str = "cache/cache.yaml"
    log_directory: str = "cache/logs"
    log_level: str = "INFO"
    debug: bool = False  # also write a per-run log file
    use_cn: bool = True  # prefer Chinese titles from Bangumi
    # Bangumi API
    bangumi_url: str = BANGUMI_URL
    bangumi_user_agent: str = DEFAULT_USER_AGENT
    request_timeout: int = 30
    # Chat completion API used as a fallback name resolver
    llm_url: str = LLM_URL
    llm_api_key: str | None = None
    llm_model: str = LLM_MODEL
    llm_prompt_template: str | None = None
    # Regex (or literal) fragments removed from search terms
    filter_custom_rules: list = field(default_factory=list)
    # Sub-folders holding specials, e.g. ["SPs", "映像特典"]
    special_folders: list = field(default_factory=list)
    video_extensions: list = field(
        default_factory=lambda: list(DEFAULT_VIDEO_EXTENSIONS)
    )
    subtitle_extensions: list = field(
        default_factory=lambda: list(DEFAULT_SUBTITLE_EXTENSIONS)
    )
    rename_folders: bool = True
    schedule_interval: int = 1
    schedule_unit: str = "hours"

    @classmethod
    def from_file(cls, config_path: Path) -> "Config":
        """Load configuration from a YAML file"""
        if not config_path.exists():
            raise FileNotFoundError(f"Configuration file not found: {config_path}")

        with open(config_path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}

        cls._check_keys(data)
        return cls(**data)

    @classmethod
    def _check_keys(cls, data: dict):
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ValueError(f"Unknown configuration keys: {', '.join(unknown)}")

    @classmethod
    def from_env_and_file(cls, config_path: Path | None = None) -> "Config":
        """Load configuration from file and/or environment variables"""
        config_data: dict[str, Any] = {}

        # Load from file if specified
        if config_path and config_path.exists():
            with open(config_path, "r", encoding="utf-8") as f:
                config_data = yaml.safe_load(f) or {}

        # Environment variables take priority
        if os.getenv("SOURCE_DIRECTORY"):
            config_data["source_directory"] = os.getenv("SOURCE_DIRECTORY")
        if os.getenv("TARGET_DIRECTORY"):
            config_data["target_directory"] = os.getenv("TARGET_DIRECTORY")
        if os.getenv("BANGUMILINK_CACHE_FILE"):
            config_data["cache_file"] = os.getenv("BANGUMILINK_CACHE_FILE")
        if os.getenv("OPENROUTER_API_KEY"):
            config_data["llm_api_key"] = os.getenv("OPENROUTER_API_KEY")
        if os.getenv("LLM_URL"):
            config_data["llm_url"] = os.getenv("LLM_URL")
        if os.getenv("LLM_MODEL"):
            config_data["llm_model"] = os.getenv("LLM_MODEL")

        special_folders_env = os.getenv("SPECIAL_FOLDERS")
        if special_folders_env:
            # Parse comma-separated list of folder names
            config_data["special_folders"] = _env_list(special_folders_env)

        use_cn_env = os.getenv("USE_CN")
        if use_cn_env:
            config_data["use_cn"] = _env_flag(use_cn_env)

        cls._check_keys(config_data)
        cfg = cls(**config_data)
        cfg.validate()
        return cfg

    def validate(self):
        """Raise ValueError on inconsistent settings"""
        if self.schedule_unit not in VALID_SCHEDULE_UNITS:
            raise ValueError(
                f"Invalid schedule unit: {self.schedule_unit} "
                f"(valid: {', '.join(VALID_SCHEDULE_UNITS)})"
            )
        if not self.video_extensions:
            raise ValueError("video_extensions cannot be empty")

    def to_file(self, config_path: Path):
        """Save configuration to a YAML file"""
        data = asdict(self)
        # Never write secrets taken from the environment
        data.pop("llm_api_key", None)

        with open(config_path, "w", encoding="utf-8") as f:
            yaml.dump(data, f, default_flow_style=False, allow_unicode=True)
