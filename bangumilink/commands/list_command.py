"""
List command - Display the work items and seasons stored in the cache
"""

from rich.console import Console
from rich.table import Table

from ..models import CacheRoot

console = Console()


def list_command(cache: CacheRoot, limit: str | None = None) -> None:
    """Execute the list command logic"""
    entries = sorted(cache.work_items.items())

    # Filter by key or season ID if specified
    if limit:
        if limit.isdigit():
            entries = [(k, e) for k, e in entries if e.bangumi_season_id == int(limit)]
        else:
            entries = [(k, e) for k, e in entries if limit.lower() in k.lower()]

    if not entries:
        console.print("[yellow]No cached work items found[/yellow]")
        return

    table = Table(title=f"Cached work items ({len(entries)})")
    table.add_column("Folder", style="cyan")
    table.add_column("Bangumi ID", justify="right", style="magenta")
    table.add_column("Season", style="green")
    table.add_column("Episodes", justify="right")
    table.add_column("Matched", justify="right")

    for key, entry in entries:
        season = cache.seasons.get(str(entry.bangumi_season_id))
        if season is None:
            episodes_str = "[dim]-[/dim]"
            matched_str = "[dim]-[/dim]"
        else:
            matched = sum(1 for e in season.episodes.values() if e.video_src)
            episodes_str = str(season.total_bangumi_episodes)
            if matched == season.total_bangumi_episodes:
                matched_str = f"[green]{matched}[/green]"
            elif matched == 0:
                matched_str = f"[red]{matched}[/red]"
            else:
                matched_str = f"[yellow]{matched}[/yellow]"

        table.add_row(
            key,
            str(entry.bangumi_season_id),
            entry.bangumi_season_name,
            episodes_str,
            matched_str,
        )

    console.print(table)
    console.print(
        f"\n[dim]Source: {cache.source_root or '-'}  Target: {cache.target_root or '-'}[/dim]"
    )
