"""URL Lens CLI - Typer-based command line interface."""

import asyncio
from collections import Counter
from pathlib import Path
from typing import Annotated, Any

import typer
from rich.console import Console
from rich.panel import Panel
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table

from urllens import __version__
from urllens.config import get_profile, load_config
from urllens.discovery.engine import DomainDiscoveryEngine, get_unique_domains
from urllens.discovery.robots import fetch_robots, get_robots_summary
from urllens.discovery.url_utils import domain_of, get_origin, normalize_url
from urllens.errors import IngestError, InvalidURLError
from urllens.ingest.parser import DEFAULT_SAMPLE_LINES, MAX_FILE_BYTES, ParseResult, parse_url_file
from urllens.logging_setup import setup_logging
from urllens.reporting.export import (
    DISCOVERY_COLUMNS,
    PARSE_COLUMNS,
    discovery_to_rows,
    parse_result_to_rows,
    write_export,
)
from urllens.safety.scope import DiscoveryBudget

app = typer.Typer(
    name="urllens",
    help="URL Lens - URL ingestion and domain discovery",
    add_completion=False,
    no_args_is_help=True,
)
console = Console()

VALID_PROFILES = ["quick", "standard", "thorough"]

# Rows printed before the table is cut short
MAX_TABLE_ROWS = 50

ConfigOption = Annotated[Path | None, typer.Option("--config", help="Custom config file")]
VerboseOption = Annotated[bool, typer.Option("--verbose", "-v", help="Show debug logging")]


def _load_config(config_file: Path | None) -> dict[str, Any]:
    try:
        return load_config(config_file)
    except Exception as e:
        console.print(f"[red]Error loading config:[/] {e}")
        raise typer.Exit(1)


def _parse_file(file: Path, as_list: bool, config: dict[str, Any]) -> ParseResult:
    ingest_config = config.get("ingest", {})
    try:
        return parse_url_file(
            file,
            mode="list" if as_list else "csv",
            max_bytes=ingest_config.get("max_file_bytes", MAX_FILE_BYTES),
            sample_size=ingest_config.get("delimiter_sample_lines", DEFAULT_SAMPLE_LINES),
        )
    except (IngestError, OSError) as e:
        console.print(f"[red]Error:[/] {e}")
        raise typer.Exit(1)


@app.command()
def parse(
    file: Annotated[Path, typer.Argument(help="CSV or TXT file containing URLs")],
    as_list: Annotated[
        bool, typer.Option("--list", "-l", help="Treat input as a free-form URL list")
    ] = False,
    output: Annotated[
        Path | None, typer.Option("--output", "-o", help="Export to a .csv or .json file")
    ] = None,
    config_file: ConfigOption = None,
    verbose: VerboseOption = False,
) -> None:
    """Parse a URL file into a canonical, deduplicated URL set."""
    setup_logging(verbose)
    config = _load_config(config_file)
    result = _parse_file(file, as_list, config)

    table = Table(title=f"URLs in {file.name}")
    table.add_column("#", style="dim", justify="right")
    table.add_column("URL", style="cyan")
    for index, url in enumerate(result.urls[:MAX_TABLE_ROWS], start=1):
        table.add_row(str(index), url)
    console.print(table)
    if len(result.urls) > MAX_TABLE_ROWS:
        console.print(f"[dim]... and {len(result.urls) - MAX_TABLE_ROWS} more[/]")

    if result.invalid_lines:
        console.print(f"\n[yellow]Invalid entries ({len(result.invalid_lines)}):[/]")
        for item in result.invalid_lines[:MAX_TABLE_ROWS]:
            console.print(f"  • line {item.line + 1}: {item.text} [dim]({item.reason})[/]")

    console.print(
        f"\n[bold]Valid:[/] {len(result.urls)}  "
        f"[bold]Invalid:[/] {len(result.invalid_lines)}  "
        f"[bold]Duplicates removed:[/] {result.duplicates_removed}"
    )

    if output:
        path = write_export(parse_result_to_rows(result), PARSE_COLUMNS, output)
        console.print(f"[green]✓ Exported to {path}[/]")


@app.command()
def discover(
    domain: Annotated[str, typer.Argument(help="Target domain, e.g. example.com")],
    sitemap: Annotated[
        list[str] | None,
        typer.Option("--sitemap", "-s", help="Extra sitemap URL (repeatable)"),
    ] = None,
    profile: Annotated[str, typer.Option("--profile", "-p", help="Budget profile")] = "standard",
    max_urls: Annotated[
        int | None, typer.Option("--max-urls", help="Override the URL cap")
    ] = None,
    ignore_robots: Annotated[
        bool, typer.Option("--ignore-robots", help="Keep URLs disallowed by robots.txt")
    ] = False,
    output: Annotated[
        Path | None, typer.Option("--output", "-o", help="Export to a .csv or .json file")
    ] = None,
    config_file: ConfigOption = None,
    verbose: VerboseOption = False,
) -> None:
    """Discover a domain's URLs from robots.txt and sitemaps."""
    setup_logging(verbose)

    if profile not in VALID_PROFILES:
        console.print(
            f"[red]Error:[/] Invalid profile '{profile}'. Must be one of: {', '.join(VALID_PROFILES)}"
        )
        raise typer.Exit(1)

    config = _load_config(config_file)
    profile_config = dict(get_profile(config, profile))
    if max_urls is not None:
        profile_config["max_urls"] = max_urls

    try:
        budget = DiscoveryBudget.from_config(config, profile_config)
    except ValueError as e:
        console.print(f"[red]Error:[/] {e}")
        raise typer.Exit(1)

    engine = DomainDiscoveryEngine(config=config, budget=budget, ignore_robots=ignore_robots)

    console.print(f"\n[bold]Target:[/] {domain}")
    console.print(f"[bold]Profile:[/] {profile}")
    console.print(
        f"[bold]Budget:[/] {budget.max_urls} URLs, {budget.max_sitemaps} sitemaps, "
        f"depth {budget.max_depth}, {budget.max_concurrency} concurrent\n"
    )

    try:
        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            console=console,
        ) as progress:
            task = progress.add_task(f"[cyan]Discovering URLs for {domain}...", total=None)
            result = asyncio.run(engine.discover(domain, sitemap or []))
            progress.update(task, description=f"[green]✓ Found {len(result.urls)} URLs")
    except ValueError as e:
        console.print(f"[red]Error:[/] {e}")
        raise typer.Exit(1)
    except KeyboardInterrupt:
        console.print("\n[yellow]Discovery interrupted by user.[/]")
        raise typer.Exit(130)

    table = Table(title=f"Discovered URLs - {result.domain}")
    table.add_column("URL", style="cyan")
    table.add_column("Source")
    for item in result.urls[:MAX_TABLE_ROWS]:
        table.add_row(item.url, item.source.value)
    console.print(table)
    if len(result.urls) > MAX_TABLE_ROWS:
        console.print(f"[dim]... and {len(result.urls) - MAX_TABLE_ROWS} more[/]")

    summary = [
        f"robots.txt: {'found' if result.robots.exists else 'not found'}",
        f"Sitemaps fetched: {result.sitemaps_fetched}",
        f"Sitemaps failed: {result.sitemaps_failed}",
    ]
    if result.budget_exhausted:
        summary.append("[yellow]Budget reached - results are partial[/]")
    console.print(Panel("\n".join(summary), title="Summary", border_style="cyan"))

    if output:
        path = write_export(discovery_to_rows(result), DISCOVERY_COLUMNS, output)
        console.print(f"[green]✓ Exported to {path}[/]")


@app.command()
def robots(
    domain: Annotated[str, typer.Argument(help="Target domain, e.g. example.com")],
    path: Annotated[str, typer.Option("--path", help="Path to check")] = "/",
    config_file: ConfigOption = None,
    verbose: VerboseOption = False,
) -> None:
    """Fetch and summarize a domain's robots.txt."""
    setup_logging(verbose)
    config = _load_config(config_file)
    discovery_config = config.get("discovery", {})

    try:
        canonical = normalize_url(domain)
    except InvalidURLError as e:
        console.print(f"[red]Error:[/] Invalid domain '{domain}' ({e.reason})")
        raise typer.Exit(1)
    if canonical is None:
        console.print("[red]Error:[/] Domain is empty")
        raise typer.Exit(1)

    record = asyncio.run(
        fetch_robots(
            get_origin(canonical),
            timeout=discovery_config.get("timeout", 10),
            user_agent=discovery_config.get("user_agent", "URLLensBot/1.0"),
            path=path,
        )
    )

    console.print(Panel(get_robots_summary(record), title="robots.txt", border_style="cyan"))

    if record.sitemaps:
        console.print("\n[bold]Sitemaps:[/]")
        for url in record.sitemaps:
            console.print(f"  • {url}")

    if record.rules:
        table = Table(title="Rules")
        table.add_column("User-agent", style="cyan")
        table.add_column("Allow")
        table.add_column("Disallow")
        for rule in record.rules:
            table.add_row(rule.user_agent, "\n".join(rule.allow), "\n".join(rule.disallow))
        console.print(table)


@app.command()
def domains(
    file: Annotated[Path, typer.Argument(help="CSV or TXT file containing URLs")],
    as_list: Annotated[
        bool, typer.Option("--list", "-l", help="Treat input as a free-form URL list")
    ] = False,
    config_file: ConfigOption = None,
) -> None:
    """List the unique domains found in a URL file."""
    config = _load_config(config_file)
    result = _parse_file(file, as_list, config)

    table = Table(title="Domains")
    table.add_column("Domain", style="cyan")
    table.add_column("URLs", justify="right")
    counts = Counter(domain_of(url) for url in result.urls)
    for host in get_unique_domains(result.urls):
        table.add_row(host, str(counts[host]))
    console.print(table)


@app.command()
def version() -> None:
    """Show the installed version."""
    console.print(f"URL Lens v{__version__}")


if __name__ == "__main__":
    app()
