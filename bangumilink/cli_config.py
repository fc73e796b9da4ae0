"""
CLI configuration handler
"""

import sys
from pathlib import Path

from rich.console import Console

from .bangumi import BangumiClient
from .cache_store import CacheStore
from .config import Config
from .llm import LLMClient
from .utils import validate_directory

console = Console()


def load_config_from_args(
    config_file: str | None,
    source_dir: str | None,
    target_dir: str | None,
    log_level: str | None,
    debug: bool = False,
) -> Config:
    """
    Load configuration from CLI arguments and files

    Args:
        config_file: Path to config file
        source_dir: Source directory from CLI
        target_dir: Target directory from CLI
        log_level: Log level from CLI
        debug: Write a per-run log file

    Returns:
        Config object

    Raises:
        SystemExit if configuration is invalid
    """
    try:
        if config_file:
            config_path = Path(config_file)
            if not config_path.exists():
                raise FileNotFoundError(f"Configuration file not found: {config_path}")
            cfg = Config.from_env_and_file(config_path)
        else:
            # Try to load from default file, then fall back to defaults
            default_config = Path("config.yaml")
            cfg = Config.from_env_and_file(
                default_config if default_config.exists() else None
            )

        # CLI options take priority over file and environment
        if source_dir:
            cfg.source_directory = source_dir
        if target_dir:
            cfg.target_directory = target_dir
        if log_level:
            cfg.log_level = log_level
        if debug:
            cfg.debug = True

        validate_directory(cfg.source_directory)
    except Exception as e:
        console.print(f"[red]Configuration error:[/red] {e}")
        sys.exit(1)

    return cfg


def setup_context(config: Config) -> dict:
    """
    Setup CLI context with config, API clients and cache store

    Args:
        config: Configuration object

    Returns:
        Dictionary with context objects
    """
    return {
        "config": config,
        "bangumi": BangumiClient(
            config.bangumi_url,
            user_agent=config.bangumi_user_agent,
            use_cn=config.use_cn,
            timeout=config.request_timeout,
        ),
        "llm": LLMClient(
            config.llm_url,
            api_key=config.llm_api_key,
            model=config.llm_model,
            prompt_template=config.llm_prompt_template,
            timeout=config.request_timeout,
        ),
        "cache_store": CacheStore(Path(config.cache_file)),
    }
