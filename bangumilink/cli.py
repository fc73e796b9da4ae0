"""
Command Line Interface (CLI) with Click
"""

import logging
import sys
import time

import click
import schedule
from rich.console import Console

from .bangumi import BangumiClient
from .cache_store import CacheError, CacheStore
from .cli_config import load_config_from_args, setup_context
from .commands import list_command, process_library, rename_command, test_command
from .config import VALID_SCHEDULE_UNITS, Config
from .llm import LLMClient
from .models import CacheRoot
from .utils import setup_logging

logger = logging.getLogger(__name__)
console = Console()


def _load_cache(store: CacheStore, reset: bool = False) -> CacheRoot:
    """Load the cache, exiting on an unreadable file unless reset is requested"""
    if reset:
        return store.reset()
    try:
        return store.load()
    except CacheError as e:
        console.print(f"[red]Cache error:[/red] {e}")
        console.print("Use [bold]run --reset-cache[/bold] to discard the cache file")
        sys.exit(1)


def _print_summary(total: int, success: int, failed: int):
    console.print("\n[bold]Overall Summary:[/bold]")
    console.print(f"  Total: {total}")
    console.print(f"  [green]Success: {success}[/green]")
    console.print(f"  [red]Failed: {failed}[/red]")


@click.group()
@click.option(
    "--config", "-c", type=click.Path(exists=True), help="YAML configuration file"
)
@click.option("--source-dir", "-s", help="Source directory holding the anime folders")
@click.option("--target-dir", "-t", help="Output directory for the renamed library")
@click.option(
    "--log-level",
    default=None,
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"]),
)
@click.option("--debug", is_flag=True, help="Also write a log file for this run")
@click.pass_context
def cli(ctx, config, source_dir, target_dir, log_level, debug):
    """BangumiLink - Hard-link and rename an anime library using Bangumi"""

    # Load and validate configuration
    cfg = load_config_from_args(config, source_dir, target_dir, log_level, debug)

    # Setup logging
    log_file = setup_logging(cfg.log_level, cfg.log_directory if cfg.debug else None)
    if log_file:
        logger.info(f"Writing run log to {log_file}")

    # Setup context
    ctx.ensure_object(dict)
    ctx.obj.update(setup_context(cfg))


@cli.command()
@click.option("--limit", "-l", help="Only process folders whose name contains this text")
@click.option("--dry-run", "-d", is_flag=True, help="Simulation mode (print the plan only)")
@click.option("--no-llm", is_flag=True, help="Never call the chat completion API")
@click.option("--reset-cache", is_flag=True, help="Discard the cache file before running")
@click.pass_context
def run(ctx, limit, dry_run, no_llm, reset_cache):
    """Resolve, link and rename every folder of the source directory"""

    config: Config = ctx.obj["config"]
    bangumi: BangumiClient = ctx.obj["bangumi"]
    llm: LLMClient = ctx.obj["llm"]
    store: CacheStore = ctx.obj["cache_store"]

    cache = _load_cache(store, reset=reset_cache)

    try:
        total, success, failed = process_library(
            config,
            bangumi,
            llm,
            store,
            limit=limit,
            dry_run=dry_run,
            use_llm=not no_llm,
            cache=cache,
        )
    except Exception as e:
        console.print(f"[red]Error:[/red] {e}")
        logger.exception("Error during processing")
        sys.exit(1)

    _print_summary(total, success, failed)
    if dry_run:
        console.print("\n[yellow]DRY RUN mode - No files linked or renamed[/yellow]")


@cli.command()
@click.option("--limit", "-l", help="Only rename folders whose name contains this text")
@click.option("--dry-run", "-d", is_flag=True, help="Simulation mode (don't rename)")
@click.pass_context
def rename(ctx, limit, dry_run):
    """Re-apply the cached rename plans to the output directory"""

    config: Config = ctx.obj["config"]
    store: CacheStore = ctx.obj["cache_store"]

    cache = _load_cache(store)
    total, success, failed = rename_command(config, cache, limit=limit, dry_run=dry_run)
    _print_summary(total, success, failed)


@cli.command(name="list")
@click.option("--limit", "-l", help="Limit to specific folders (name or Bangumi ID)")
@click.pass_context
def list_cached(ctx, limit):
    """List the work items and seasons stored in the cache"""

    store: CacheStore = ctx.obj["cache_store"]
    list_command(_load_cache(store), limit=limit)


@cli.command()
@click.pass_context
def test(ctx):
    """Test connection to Bangumi and the chat completion API"""

    test_command(ctx.obj["config"], ctx.obj["bangumi"], ctx.obj["llm"])


@cli.command(name="schedule-mode")
@click.option("--limit", "-l", help="Only process folders whose name contains this text")
@click.option("--no-llm", is_flag=True, help="Never call the chat completion API")
@click.option("--interval", "-i", type=int, help="Interval between runs")
@click.option(
    "--unit",
    "-u",
    type=click.Choice(VALID_SCHEDULE_UNITS),
    help="Time unit of the interval",
)
@click.pass_context
def schedule_mode(ctx, limit, no_llm, interval, unit):
    """Run the library processing on a schedule"""

    config: Config = ctx.obj["config"]

    # Use command-line args if provided, otherwise use config
    schedule_interval = interval if interval is not None else config.schedule_interval
    schedule_unit = unit if unit is not None else config.schedule_unit

    if schedule_unit not in VALID_SCHEDULE_UNITS:
        console.print(f"[red]Invalid schedule unit:[/red] {schedule_unit}")
        console.print(f"Valid units: {', '.join(VALID_SCHEDULE_UNITS)}")
        sys.exit(1)

    console.print("[bold cyan]BangumiLink - Schedule Mode[/bold cyan]")
    console.print(f"Processing the library every {schedule_interval} {schedule_unit}")
    console.print("Press Ctrl+C to stop\n")

    def run_processing():
        """Run the processing command"""
        try:
            console.print(f"\n[bold blue]{'=' * 60}[/bold blue]")
            console.print(
                f"[bold blue]Running scheduled processing at {time.strftime('%Y-%m-%d %H:%M:%S')}[/bold blue]"
            )
            console.print(f"[bold blue]{'=' * 60}[/bold blue]\n")

            ctx.invoke(run, limit=limit, dry_run=False, no_llm=no_llm, reset_cache=False)

            console.print(
                f"\n[dim]Next run in {schedule_interval} {schedule_unit}[/dim]"
            )

        except SystemExit as e:
            console.print(f"[red]Scheduled processing aborted (exit code {e.code})[/red]")
        except Exception as e:
            console.print(f"[red]Error during scheduled processing:[/red] {e}")
            logger.exception("Error during scheduled processing")

    # Setup schedule based on unit
    getattr(schedule.every(schedule_interval), schedule_unit).do(run_processing)

    # Run immediately on start
    console.print("[yellow]Running initial processing...[/yellow]")
    run_processing()

    # Keep running
    try:
        while True:
            schedule.run_pending()
            time.sleep(1)
    except KeyboardInterrupt:
        console.print("\n\n[yellow]Schedule mode stopped by user[/yellow]")
        sys.exit(0)


def main():
    """Main entry point"""
    cli(obj={})


if __name__ == "__main__":
    main()
