#!/usr/bin/env python3
"""CLI for cookbook-extractor: turn a recipe web page into structured recipes.

The CLI is responsible for:
- Argument parsing
- Progress display (Rich UI)
- Error presentation
- Calling the extraction service for business logic

Usage:
    cookbook-extract https://example.com/lemon-tart
    cookbook-extract https://example.com/lemon-tart --html saved.html --output tart.json
    cookbook-extract --cache-stats
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import time
from pathlib import Path
from typing import Any

from rich.console import Console
from rich.panel import Panel
from rich.progress import Progress, SpinnerColumn, TextColumn, TimeElapsedColumn
from rich.table import Table

from .config import ExtractionConfig
from .exceptions import CookbookExtractorError
from .fetcher import fetch_html
from .models import ExtractionResponse
from .recipe import recipes_to_json
from .services import ServiceFactory

console = Console()

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_NOT_RECIPE = 2


def setup_logging(log_file: str = "cookbook_extractor.log", debug: bool = False) -> None:
    """Set up logging configuration for the application.

    Logs go to a file only; console output is handled by Rich.

    Args:
        log_file: Path to the log file
        debug: Log at DEBUG instead of INFO
    """
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        handlers=[logging.FileHandler(log_file, mode="a")],
        force=True,
    )


def create_progress() -> Progress:
    """Create a Rich spinner with standard configuration."""
    return Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        TimeElapsedColumn(),
        console=console,
        transient=True,
    )


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments.

    Args:
        argv: Arguments to parse (defaults to ``sys.argv[1:]``)

    Returns:
        Parsed command-line arguments.
    """
    parser = argparse.ArgumentParser(
        description="Extract structured recipes from a web page", prog="cookbook-extract"
    )
    parser.add_argument("url", nargs="?", help="URL of the recipe page")
    parser.add_argument("--html", type=str, help="Read page HTML from this file instead of fetching")
    parser.add_argument("--config", type=str, help="Path to a TOML configuration file")
    parser.add_argument("--output", type=str, help="Write recipes as JSON to this file")
    parser.add_argument("--model", type=str, help="OpenAI model to use")
    parser.add_argument("--threshold", type=float, help="Confidence threshold for adaptive cleaning")
    parser.add_argument("--max-retries", type=int, help="Validation feedback retries")
    parser.add_argument("--no-cache", action="store_true", help="Do not read or write the cache")
    parser.add_argument(
        "--no-adaptive", action="store_true", help="Do not retry with less restrictive cleaning"
    )
    parser.add_argument("--cache-stats", action="store_true", help="Show cache size and exit")
    parser.add_argument(
        "--log-file", type=str, default="cookbook_extractor.log", help="Log file path"
    )
    args = parser.parse_args(argv)
    if not args.url and not args.cache_stats:
        parser.error("a URL is required unless --cache-stats is given")
    return args


def build_config(args: argparse.Namespace) -> ExtractionConfig:
    """Load configuration and apply command-line overrides."""
    config = ExtractionConfig.load(args.config)

    overrides: dict[str, Any] = {}
    if args.model:
        overrides["model"] = args.model
    if args.threshold is not None:
        overrides["confidence_threshold"] = args.threshold
    if args.max_retries is not None:
        overrides["validation_max_retries"] = args.max_retries
    if args.no_cache:
        overrides["cache_enabled"] = False
    if args.no_adaptive:
        overrides["adaptive_cleaning_enabled"] = False
    if overrides:
        config.update(**overrides)
    return config


def display_summary(url: str, response: ExtractionResponse, elapsed_time: float) -> None:
    """Display the extraction result table."""
    console.print()
    if response.is_recipe:
        title = f"[bold green]✓ {len(response.recipes)} recipe(s) found[/bold green]"
    else:
        title = "[bold yellow]No recipe found[/bold yellow]"

    table = Table(title=title, show_header=True, header_style="bold cyan")
    table.add_column("Recipe", style="cyan")
    table.add_column("Ingredients", style="green", justify="right")
    table.add_column("Steps", style="green", justify="right")

    for recipe in response.recipes:
        table.add_row(recipe.title, str(len(recipe.ingredients)), str(len(recipe.instructions)))

    if response.recipes:
        console.print(table)
    else:
        console.print(title)
        console.print(f"[dim]Confidence: {response.confidence:.2f}[/dim]")

    console.print(f"[bold]Source:[/bold] [cyan]{url}[/cyan]  [dim]({elapsed_time:.1f}s)[/dim]")
    console.print()


def display_error(title: str, message: str) -> None:
    """Display an error panel."""
    console.print()
    console.print(Panel(message, title=f"[bold red]{title}[/bold red]", border_style="red"))
    console.print()


async def show_cache_stats(factory: ServiceFactory) -> int:
    size = await factory.create_cache().size()
    table = Table(title="[bold]Recipe cache[/bold]", header_style="bold cyan")
    table.add_column("Setting", style="cyan")
    table.add_column("Value", style="green", justify="right")
    table.add_row("Directory", str(factory.config.cache_dir))
    table.add_row("Enabled", str(factory.config.cache_enabled))
    table.add_row("Entries", str(size))
    console.print(table)
    return EXIT_OK


async def main_async(argv: list[str] | None = None) -> int:
    """Run one extraction from the command line.

    Returns:
        Exit code: 0 when recipes were found, 2 when the page is not a
        recipe, 1 on errors
    """
    args = parse_args(argv)
    config = build_config(args)
    setup_logging(args.log_file, debug=config.debug_mode)
    factory = ServiceFactory(config=config)

    if args.cache_stats:
        return await show_cache_stats(factory)

    url: str = args.url
    start_time = time.time()

    if args.html:
        html_path = Path(args.html)
        if not html_path.exists():
            display_error("Error", f"[bold red]File not found:[/bold red]\n{args.html}")
            return EXIT_ERROR
        html = html_path.read_text(encoding="utf-8", errors="replace")
    else:
        with create_progress() as progress:
            progress.add_task(f"Fetching {url}", total=None)
            html = await fetch_html(url, timeout=config.fetch_timeout)

    service = factory.create_service()
    logging.info(f"Extracting recipes from {url} ({len(html)} chars)")

    with create_progress() as progress:
        progress.add_task("Extracting recipes", total=None)
        response = await service.extract(html, url)

    elapsed_time = time.time() - start_time
    first = response.first_recipe
    logging.info(
        f"Finished {url} in {elapsed_time:.1f}s: is_recipe={response.is_recipe}, "
        f"recipes={len(response.recipes)}, first={first.title if first else None!r}, "
        f"confidence={response.confidence:.2f}"
    )
    display_summary(url, response, elapsed_time)

    if not response.is_recipe:
        return EXIT_NOT_RECIPE

    payload = recipes_to_json(response.recipes)
    if args.output:
        Path(args.output).write_text(payload, encoding="utf-8")
        console.print(f"[bold]Output:[/bold] [cyan]{args.output}[/cyan]")
    else:
        console.print_json(payload)
    return EXIT_OK


def main() -> None:
    """Entry point for the cookbook-extract command."""
    try:
        code = asyncio.run(main_async())
    except KeyboardInterrupt:
        console.print()
        console.print(
            Panel(
                "[yellow]Interrupted by user[/yellow]",
                title="[bold yellow]Interrupted[/bold yellow]",
                border_style="yellow",
            )
        )
        raise SystemExit(EXIT_ERROR) from None
    except CookbookExtractorError as e:
        display_error("Error", f"{e!s}\n\n[dim]Check the log file for details.[/dim]")
        logging.exception("Extraction failed")
        raise SystemExit(EXIT_ERROR) from e
    raise SystemExit(code)


if __name__ == "__main__":
    main()
