"""CLI entry point for the market-sector analysis tool."""

from __future__ import annotations

import asyncio
import io
import logging
import os
import re
import sys
from datetime import datetime
from pathlib import Path

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from tech_analyst.config import load_config
from tech_analyst.errors import ConfigurationError
from tech_analyst.models import AnalysisResult, ProgressEvent
from tech_analyst.pipeline import PipelineOrchestrator

# Fix Windows console encoding for Unicode output
if sys.platform == "win32":
    sys.stdout = io.TextIOWrapper(sys.stdout.buffer, encoding="utf-8", errors="replace")
    sys.stderr = io.TextIOWrapper(sys.stderr.buffer, encoding="utf-8", errors="replace")
    os.environ.setdefault("PYTHONIOENCODING", "utf-8")

console = Console(force_terminal=True)

QUADRANT_STYLES = {
    "Leaders": "green",
    "Challengers": "cyan",
    "Visionaries": "magenta",
    "NichePlayers": "yellow",
}


def default_output_path(market_sector: str) -> str:
    slug = re.sub(r"[^a-z0-9]+", "_", market_sector.lower()).strip("_") or "sector"
    return f"analysis_{slug}_{datetime.now().strftime('%Y-%m-%d')}.json"


def print_progress(event: ProgressEvent) -> None:
    counter = ""
    if event.progress is not None and event.total:
        counter = f" [{event.progress}/{event.total}]"
    console.print(f"  [dim]{event.stage}/{event.substage}{counter}[/dim] {event.message}")


def render_scores(result: AnalysisResult) -> Table:
    table = Table(title=f"{result.market_sector}: {len(result.scores)} companies")
    table.add_column("Company", style="bold")
    table.add_column("Vision", justify="right")
    table.add_column("Execution", justify="right")
    table.add_column("Quadrant")
    table.add_column("URL", style="dim")
    ranked = sorted(result.scores, key=lambda s: s.vision + s.execution, reverse=True)
    for score in ranked:
        style = QUADRANT_STYLES.get(score.quadrant, "white")
        table.add_row(
            score.company,
            str(score.vision),
            str(score.execution),
            f"[{style}]{score.quadrant}[/{style}]",
            score.url,
        )
    return table


@click.command()
@click.argument("market_sector")
@click.option(
    "--output", "-o",
    default=None,
    help="Output JSON file path (default: auto-dated filename)",
)
@click.option(
    "--max-leads",
    default=None,
    type=int,
    help="Max leads kept after discovery (default: 30)",
)
@click.option(
    "--concurrency", "-c",
    default=None,
    type=int,
    help="Max companies extracted concurrently (default: 20)",
)
@click.option(
    "--no-cache",
    is_flag=True,
    help="Bypass the page cache for this run",
)
@click.option(
    "--no-normalize",
    is_flag=True,
    help="Keep raw scores instead of stretching them across the cohort",
)
@click.option(
    "--verbose", "-v",
    is_flag=True,
    help="Enable verbose debug logging",
)
def main(
    market_sector: str,
    output: str | None,
    max_leads: int | None,
    concurrency: int | None,
    no_cache: bool,
    no_normalize: bool,
    verbose: bool,
) -> None:
    """Discover, research and score the vendors of a market sector.

    Searches the web for companies in MARKET_SECTOR, scrapes their pricing,
    docs and about pages, extracts structured data with an LLM, and scores
    each company on vision and execution.

    Example: tech-analyst "vector databases" -o vector_dbs.json
    """
    log_level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(
        level=log_level,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False, show_time=False)],
    )

    market_sector = market_sector.strip()
    if not market_sector:
        console.print("[red]Market sector must not be empty[/red]")
        sys.exit(1)

    console.print(f"\n[bold green]Market analysis: {market_sector}[/bold green]\n")

    config = load_config()
    if max_leads:
        config.max_leads = max_leads
    if concurrency:
        config.extraction_concurrency = concurrency
    if no_cache:
        config.cache_db_path = ""

    try:
        config.require_llm()
    except ConfigurationError as e:
        console.print(f"[red]Configuration error: {e}[/red]")
        sys.exit(1)

    orchestrator = PipelineOrchestrator(config, normalize=not no_normalize)
    result = asyncio.run(orchestrator.run(market_sector, progress_callback=print_progress))

    if not output:
        output = default_output_path(market_sector)
    output_path = Path(output)
    output_path.write_text(result.model_dump_json(indent=2), encoding="utf-8")

    if result.status != "completed":
        console.print(f"\n[red]Analysis failed: {result.error}[/red]")
        console.print(f"[dim]Partial result written to {output_path}[/dim]")
        sys.exit(1)

    console.print()
    console.print(render_scores(result))

    counts: dict[str, int] = {}
    for score in result.scores:
        counts[score.quadrant] = counts.get(score.quadrant, 0) + 1
    stats = result.enrichment_stats
    console.print(f"\n[bold]Result: {output_path}[/bold]")
    console.print(f"  Queries: {len(result.queries)}")
    console.print(f"  Leads: {len(result.leads)}")
    if stats:
        console.print(
            f"  Pages scraped: {stats.pages_scraped} "
            f"({stats.failed_pages} failed, {stats.skipped_urls} skipped)"
        )
    console.print(f"  Companies: {len(result.companies)}")
    console.print("  Quadrants: " + ", ".join(
        f"[{QUADRANT_STYLES[q]}]{counts.get(q, 0)} {q}[/{QUADRANT_STYLES[q]}]"
        for q in QUADRANT_STYLES
    ))
    console.print()


if __name__ == "__main__":
    main()
