"""
Rename command - Re-apply cached rename plans to the output directory
"""

import logging
from pathlib import Path

from rich.console import Console

from ..config import Config
from ..library_utils import PathManager
from ..models import CacheRoot
from ..renamer import rename_files_from_cache

logger = logging.getLogger(__name__)
console = Console()


def find_output_directory(
    target_root: Path, target_rel: str, season_name: str, rename_folders: bool
) -> Path | None:
    """Locate the output directory of a work item, renamed or not"""
    original = target_root / target_rel
    if rename_folders:
        renamed = PathManager.season_output_directory(target_root, original, season_name)
        if renamed.is_dir():
            return renamed
    if original.is_dir():
        return original
    return None


def rename_command(
    config: Config,
    cache: CacheRoot,
    limit: str | None = None,
    dry_run: bool = False,
):
    """
    Apply the cached plan of every work item without any network access

    Args:
        config: Configuration object
        cache: Loaded cache
        limit: Only handle work items whose key contains this text
        dry_run: If True, only log what would be renamed

    Returns:
        Tuple of (total_work_items, successful_work_items, failed_work_items)
    """
    total = 0
    success = 0
    failed = 0

    target_root = Path(config.target_directory)
    entries = sorted(cache.work_items.items())
    if limit:
        entries = [(k, e) for k, e in entries if limit.lower() in k.lower()]

    if not entries:
        console.print("[yellow]No cached work items found[/yellow]")
        return total, success, failed

    for key, entry in entries:
        total += 1
        season = cache.seasons.get(str(entry.bangumi_season_id))
        if season is None:
            console.print(f"[yellow]No cached plan for {key}, run 'run' first[/yellow]")
            failed += 1
            continue

        directory = find_output_directory(
            target_root,
            entry.target_rel,
            entry.bangumi_season_name,
            config.rename_folders,
        )
        if directory is None:
            console.print(f"[yellow]Output directory missing for {key}[/yellow]")
            failed += 1
            continue

        result = rename_files_from_cache(directory, season, dry_run=dry_run)
        console.print(
            f"[bold cyan]{key}:[/bold cyan] {result.renamed} renamed, "
            f"{result.skipped} skipped, {result.failed} failed"
        )
        if result.failed:
            failed += 1
        else:
            success += 1

    return total, success, failed
