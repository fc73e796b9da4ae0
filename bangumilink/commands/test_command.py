"""Test command to verify Bangumi and chat completion API connections"""

import sys

from rich.console import Console

from ..bangumi import BangumiClient
from ..config import Config
from ..llm import LLMClient

console = Console()


def test_command(config: Config, bangumi: BangumiClient, llm: LLMClient):
    """Test connection to Bangumi and the chat completion API (if configured)

    Args:
        config: Application configuration
        bangumi: Bangumi API client
        llm: Chat completion client
    """
    console.print("[bold]Testing Bangumi connection...[/bold]")
    console.print(f"URL: {config.bangumi_url}")

    if bangumi.test_connection():
        console.print("[green]✓ Connection successful![/green]")
    else:
        console.print("[red]✗ Bangumi connection failed[/red]")
        sys.exit(1)

    if llm.configured:
        console.print("\n[bold]Testing chat completion API...[/bold]")
        console.print(f"URL: {config.llm_url}")
        console.print(f"Model: {config.llm_model}")

        if llm.test_connection():
            console.print("[green]✓ Connection successful![/green]")
        else:
            console.print("[red]✗ Chat completion API connection failed[/red]")
    else:
        console.print("\n[dim]No API key configured (skipping name extraction test)[/dim]")
