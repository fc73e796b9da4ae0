"""
Process mode handler - Resolve, link and rename every work item of the library
"""

import logging
from pathlib import Path

import requests
from rich.console import Console
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table

from ..bangumi import BangumiClient
from ..cache_store import CacheStore
from ..config import Config
from ..episode_cache import (
    build_season_info,
    episodes_from_cached_season,
    update_season_cache,
)
from ..filters import names_roughly_match, need_verify_season
from ..library_utils import PathManager, materialize
from ..library_utils.link import remove_tree
from ..library_utils.scan import (
    any_named_subfolder_exists,
    build_work_items,
    make_name_filter,
    read_top_folders,
    scan_likely_special_files,
    scan_local_files,
)
from ..llm import LLMClient
from ..models import CacheRoot, Episode, Season, WorkItem, WorkItemCacheEntry
from ..renamer import rename_files_from_cache
from ..utils import format_season_info

logger = logging.getLogger(__name__)
console = Console()

SPECIAL_PREFIX = "SP"


def process_library(
    config: Config,
    bangumi: BangumiClient,
    llm: LLMClient,
    store: CacheStore,
    limit: str | None = None,
    dry_run: bool = False,
    use_llm: bool = True,
    cache: CacheRoot | None = None,
):
    """
    Process the whole source library

    Args:
        config: Configuration object
        bangumi: Bangumi client
        llm: Chat completion client used for name extraction
        store: Cache store
        limit: Only process work items whose key contains this text
        dry_run: If True, print the rename plan without touching the disk
        use_llm: If False, never call the chat completion API
        cache: Already loaded cache (loaded from store when None)

    Returns:
        Tuple of (total_work_items, successful_work_items, failed_work_items)
    """
    total = 0
    success = 0
    failed = 0

    source_root = Path(config.source_directory)
    target_root = Path(config.target_directory)

    if cache is None:
        cache = store.load()
    cache.source_root = str(source_root)
    cache.target_root = str(target_root)
    logger.info(
        f"Cache loaded ({len(cache.work_items)} work items, {len(cache.seasons)} seasons)"
    )

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        console=console,
    ) as progress:
        task = progress.add_task("Scanning source directory...", total=None)
        top_folders = [
            f for f in read_top_folders(source_root) if f not in config.special_folders
        ]
        work_items = build_work_items(
            source_root,
            top_folders,
            config.filter_custom_rules,
            config.video_extensions,
            config.subtitle_extensions,
        )
        progress.update(task, completed=True)

    if limit:
        work_items = [wi for wi in work_items if limit.lower() in wi.key.lower()]

    if not work_items:
        console.print("[yellow]No folders found[/yellow]")
        return total, success, failed

    console.print(f"Found [bold]{len(work_items)}[/bold] work items")

    llm_names = {}
    if use_llm:
        llm_names = batch_extract_names(llm, work_items, cache)

    # Resolve every work item before touching the output tree
    resolved: list[WorkItem] = []
    for idx, wi in enumerate(work_items, 1):
        total += 1
        console.print(f"\n[bold cyan][{idx}/{len(work_items)}] Processing:[/bold cyan] {wi.key}")
        try:
            if process_work_item(config, bangumi, wi, cache, llm_names):
                resolved.append(wi)
            else:
                failed += 1
        except Exception as e:
            console.print(f"[red]Error:[/red] {wi.key}: {e}")
            logger.exception(f"Unexpected error while processing {wi.key}")
            failed += 1

    if dry_run:
        print_plan(cache, resolved)
        console.print("\n[yellow]Dry run: cache and output directory left untouched[/yellow]")
        return total, len(resolved), failed

    store.save(cache)
    logger.info(f"Cache saved to {store.path}")

    target_root.mkdir(parents=True, exist_ok=True)
    for wi in resolved:
        try:
            link_and_rename_work_item(config, bangumi, wi, cache)
            success += 1
        except OSError as e:
            console.print(f"[red]Error:[/red] Failed to build output for {wi.key}: {e}")
            logger.exception(f"Output error for {wi.key}")
            failed += 1

    return total, success, failed


def batch_extract_names(
    llm: LLMClient, work_items: list[WorkItem], cache: CacheRoot
) -> dict[str, str]:
    """Ask for the titles of all work items the cache does not resolve yet"""
    pending = [wi.key for wi in work_items if wi.key not in cache.work_items]
    if not pending or not llm.configured:
        return {}

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        console=console,
    ) as progress:
        task = progress.add_task(
            f"Extracting names for {len(pending)} folders...", total=None
        )
        names = llm.extract_names(pending)
        progress.update(task, completed=True)

    if not names:
        logger.warning("Batch name extraction returned nothing, using rules only")
    return names


def _upsert_work_item(cache: CacheRoot, wi: WorkItem, season: Season):
    cache.work_items[wi.key] = WorkItemCacheEntry(
        source_rel=wi.input_rel,
        target_rel=wi.output_rel,
        search_term=wi.search_term,
        bangumi_season_id=season.id,
        bangumi_season_name=season.name,
    )


def _search(bangumi: BangumiClient, term: str) -> Season | None:
    try:
        return bangumi.search_season(term)
    except (requests.exceptions.RequestException, ValueError) as e:
        logger.warning(f"Bangumi search failed for '{term}': {e}")
        return None


def resolve_season_for_work_item(
    bangumi: BangumiClient,
    wi: WorkItem,
    cache: CacheRoot,
    llm_names: dict[str, str],
) -> Season | None:
    """
    Find the Bangumi season of a work item

    Order: cache entry, search of the rule-based term (checked against the
    extracted name when the folder looks like season 1 but the result looks
    like a sequel), search of the extracted name.

    Returns:
        Season, or None if the work item has to be skipped
    """
    entry = cache.work_items.get(wi.key)
    if entry is not None:
        logger.info(f"Cached: {format_season_info(entry.bangumi_season_id, entry.bangumi_season_name)}")
        return Season(id=entry.bangumi_season_id, name=entry.bangumi_season_name)

    if not wi.search_term:
        logger.warning(f"Could not extract a title from {wi.key}, skipping")
        return None

    llm_name = llm_names.get(wi.key)
    season = _search(bangumi, wi.search_term)

    if season is not None:
        logger.info(f"Found: {format_season_info(season.id, season.name)}")
        if llm_name and need_verify_season(wi.key, season.name):
            if not names_roughly_match(season.name, llm_name):
                logger.info(f"Result '{season.name}' disagrees with '{llm_name}', searching again")
                llm_season = _search(bangumi, llm_name)
                if llm_season is not None:
                    season = llm_season
        _upsert_work_item(cache, wi, season)
        return season

    if not llm_name:
        logger.error(f"No Bangumi result for {wi.key}, skipping")
        return None

    logger.info(f"Retrying with extracted name: {llm_name}")
    season = _search(bangumi, llm_name)
    if season is None:
        logger.error(f"No Bangumi result for {wi.key} with extracted name, skipping")
        return None

    logger.info(f"Found: {format_season_info(season.id, season.name)}")
    _upsert_work_item(cache, wi, season)
    return season


def load_episode_list(
    bangumi: BangumiClient, cache: CacheRoot, season_id: int
) -> list[Episode] | None:
    """Fetch main episodes, falling back to the cached episode list"""
    try:
        return bangumi.get_episodes(season_id)
    except (requests.exceptions.RequestException, ValueError) as e:
        logger.warning(f"Failed to fetch episodes of {season_id}: {e}")

    cached = cache.seasons.get(str(season_id))
    if cached is not None and cached.episodes:
        logger.info(f"Using {len(cached.episodes)} cached episodes for {season_id}")
        return episodes_from_cached_season(cached)

    return None


def process_work_item(
    config: Config,
    bangumi: BangumiClient,
    wi: WorkItem,
    cache: CacheRoot,
    llm_names: dict[str, str],
) -> bool:
    """
    Resolve a work item and recompute its season plan in the cache

    Returns:
        True if the season plan is up to date
    """
    season = resolve_season_for_work_item(bangumi, wi, cache, llm_names)
    if season is None:
        return False

    episodes = load_episode_list(bangumi, cache, season.id)
    if episodes is None:
        console.print(f"[red]Error:[/red] No episodes available for {season.name}")
        return False

    local_files = scan_local_files(
        Path(config.source_directory),
        wi.input_rel,
        config.video_extensions,
        config.subtitle_extensions,
        season_filter=wi.season_filter,
        treat_unmarked_as_s1=wi.treat_unmarked_as_s1,
        series_hint=wi.series_hint,
        exclude_dirs=config.special_folders,
    )
    update_season_cache(
        cache,
        season,
        episodes,
        local_files,
        config.video_extensions,
        config.subtitle_extensions,
    )
    return True


def link_and_rename_work_item(
    config: Config, bangumi: BangumiClient, wi: WorkItem, cache: CacheRoot
) -> Path:
    """
    Rebuild the output directory of a work item from its cached plan

    Returns:
        Final output directory
    """
    source_root = Path(config.source_directory)
    target_root = Path(config.target_directory)
    source_dir = source_root / wi.input_rel
    target_dir = target_root / wi.output_rel

    remove_tree(target_dir)
    materialize(
        source_dir,
        target_dir,
        config.video_extensions,
        config.subtitle_extensions,
        name_filter=make_name_filter(
            wi.season_filter, wi.treat_unmarked_as_s1, wi.series_hint
        ),
        exclude_dirs=config.special_folders,
    )

    entry = cache.work_items.get(wi.key)
    if entry is None:
        return target_dir
    season = cache.seasons.get(str(entry.bangumi_season_id))
    if season is None:
        return target_dir

    result = rename_files_from_cache(target_dir, season)
    console.print(
        f"  [green]✓[/green] {season.bangumi_season_name}: {result.renamed} renamed, "
        f"{result.skipped} skipped, {result.failed} failed"
    )

    final_dir = target_dir
    if config.rename_folders:
        final_dir = PathManager.season_output_directory(
            target_root, target_dir, season.bangumi_season_name
        )
        if final_dir != target_dir:
            # Output left by a previous run
            remove_tree(final_dir)
            target_dir.rename(final_dir)
            logger.info(f"Moved {target_dir} -> {final_dir}")

            parent = target_dir.parent
            if parent != target_root and parent.is_dir() and not any(parent.iterdir()):
                parent.rmdir()

    if config.special_folders:
        handle_special_folders(
            config, bangumi, wi, source_dir, final_dir, entry.bangumi_season_id
        )

    return final_dir


def handle_special_folders(
    config: Config,
    bangumi: BangumiClient,
    wi: WorkItem,
    source_dir: Path,
    output_dir: Path,
    season_id: int,
) -> int:
    """
    Link the configured special sub-folders and rename their SP episodes

    The special plan is computed on the fly and never stored in the cache.

    Returns:
        Number of special folders processed
    """
    if not any_named_subfolder_exists(source_dir, config.special_folders):
        return 0

    try:
        special_episodes = bangumi.get_special_episodes(season_id)
    except (requests.exceptions.RequestException, ValueError) as e:
        logger.warning(f"Failed to fetch special episodes of {season_id}: {e}")
        return 0
    if not special_episodes:
        return 0

    processed = 0
    for folder_name in config.special_folders:
        src_special = source_dir / folder_name
        if not src_special.is_dir():
            continue

        tgt_special = output_dir / folder_name
        remove_tree(tgt_special)
        materialize(
            src_special,
            tgt_special,
            config.video_extensions,
            config.subtitle_extensions,
        )

        special_files = scan_likely_special_files(
            Path(config.source_directory),
            wi.input_rel,
            folder_name,
            config.video_extensions,
            config.subtitle_extensions,
            series_hint=wi.series_hint,
        )
        if not special_files:
            continue

        plan = build_season_info(
            season_id,
            folder_name,
            special_episodes,
            special_files,
            config.video_extensions,
            config.subtitle_extensions,
            prefix=SPECIAL_PREFIX,
        )
        rename_files_from_cache(tgt_special, plan)
        processed += 1

    return processed


def print_plan(cache: CacheRoot, work_items: list[WorkItem]):
    """Print the rename plan of the given work items"""
    for wi in work_items:
        entry = cache.work_items.get(wi.key)
        if entry is None:
            continue
        season = cache.seasons.get(str(entry.bangumi_season_id))
        if season is None:
            continue

        table = Table(
            title=f"{wi.key} → {format_season_info(season.bangumi_season_id, season.bangumi_season_name)}"
        )
        table.add_column("Episode", style="cyan")
        table.add_column("Source", style="dim")
        table.add_column("Destination", style="green")

        for key, info in season.episodes.items():
            if info.video_src and info.video_dst:
                table.add_row(key, info.video_src, info.video_dst)
            for src, dst in info.subtitles.items():
                table.add_row(key, src, dst)

        console.print(table)
