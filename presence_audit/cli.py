"""Typer CLI application for local presence audits.

Provides commands for place lookup, the three audit tiers (self-audit,
standard, pro), quota usage and system status.
"""

import asyncio
import json
import logging
import os
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.panel import Panel
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table

from presence_audit.errors import InvalidInputError, PresenceAuditError
from presence_audit.models.analysis import AnalysisResult, Priority
from presence_audit.utils.helpers import progress_blocks
from presence_audit.utils.validators import RADIUS_BY_MILES

console = Console()
app = typer.Typer(
    name="presence",
    help="Local presence audit -- profile scoring, competitor benchmarks & action plans.",
    add_completion=False,
    no_args_is_help=True,
)

CONFIG_PATH = "config/settings.yaml"

PRIORITY_STYLES = {
    Priority.CRITICAL: "[red]critical[/red]",
    Priority.IMPORTANT: "[yellow]important[/yellow]",
    Priority.SUGGESTED: "[cyan]suggested[/cyan]",
    Priority.RECOMMENDED: "[cyan]recommended[/cyan]",
}


def _setup_logging(verbose: bool = False) -> None:
    """Configure logging level and format."""
    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def _run_async(coro):
    """Run an async coroutine from synchronous CLI context."""
    return asyncio.run(coro)


def _run_with_spinner(coro, description: str, quiet: bool = False):
    """Run *coro* behind a transient spinner; ``quiet`` keeps stdout clean for JSON."""
    if quiet:
        return _run_async(coro)
    with Progress(SpinnerColumn(), TextColumn("[progress.description]{task.description}"),
                  console=console, transient=True) as progress:
        progress.add_task(description=description, total=None)
        return _run_async(coro)


def _get_app():
    """Lazy-import and return an initialised PresenceAuditApp."""
    from presence_audit.app import PresenceAuditApp
    application = PresenceAuditApp(config_path=CONFIG_PATH)
    application.initialize()
    return application


def _build_auditor(with_provider: bool = True):
    return _get_app().build_auditor(with_provider=with_provider)


def _fail(exc: PresenceAuditError) -> None:
    """Print a coded error and exit (2 for quota exhaustion, else 1)."""
    console.print(f"[red]✘ {exc.code}[/red] {exc}")
    if exc.code == "RATE_LIMIT":
        console.print("Daily lookup limit reached. Try again tomorrow or raise quota.daily_limit.")
        raise typer.Exit(code=2)
    raise typer.Exit(code=1)


def _print_result(result: AnalysisResult) -> None:
    """Pretty-print an audit result using Rich."""
    title = result.place.name if result.place else "Self-Audit"
    console.print(Panel(
        f"[bold]{title}[/bold]\n"
        f"Score: [bold cyan]{result.overall_score}[/bold cyan]/100   Grade: [bold]{result.grade}[/bold]",
        title=result.tier.value.replace("_", " ").title(),
    ))

    table = Table(title="Categories", show_header=True, header_style="bold magenta")
    table.add_column("Category", style="cyan", min_width=22)
    table.add_column("Score", justify="right")
    table.add_column("", min_width=10)
    for cat in result.categories:
        table.add_row(
            cat.label,
            f"{cat.score:g}/{cat.max_score}",
            progress_blocks(cat.score, cat.max_score),
        )
    console.print(table)

    if result.benchmarks is not None and result.benchmarks.competitor_count:
        bench = result.benchmarks
        bt = Table(title=f"Benchmark vs {bench.competitor_count} competitors", header_style="bold magenta")
        bt.add_column("Metric", style="cyan")
        bt.add_column("Median", justify="right")
        bt.add_column("Rank", justify="right")
        bt.add_column("Gap", justify="right")
        for label, attr in (("Rating", "rating"), ("Reviews", "review_count"), ("Photos", "photo_count")):
            bt.add_row(
                label,
                f"{getattr(bench.medians, attr):g}",
                f"{getattr(bench.rank, attr):g}",
                f"{getattr(bench.gaps, attr):+g}",
            )
        console.print(bt)

    if result.competitor_cards:
        ct = Table(title="Competitors", header_style="bold magenta")
        ct.add_column("Name", style="cyan", max_width=30)
        ct.add_column("Score", justify="right")
        ct.add_column("Miles", justify="right")
        ct.add_column("Better at", max_width=40)
        for card in result.competitor_cards:
            ct.add_row(card.name, f"{card.score} ({card.grade})", f"{card.distance_miles:g}",
                       ", ".join(card.better_at))
        console.print(ct)

    if result.recommendations:
        rt = Table(title="Recommendations", header_style="bold magenta")
        rt.add_column("Priority", min_width=10)
        rt.add_column("Action", max_width=50)
        rt.add_column("Impact", justify="right")
        for rec in result.recommendations:
            impact = f"{rec.impact_percent}%" if rec.impact_percent is not None else ""
            rt.add_row(PRIORITY_STYLES[rec.priority], rec.title, impact)
        console.print(rt)

    for item in result.owner_checklist:
        console.print(f"  ○ {item}")
    for note in result.notes:
        console.print(f"[dim]Note: {note}[/dim]")
    if result.api_usage is not None:
        console.print(
            f"API usage: {result.api_usage.used_today}/{result.api_usage.daily_limit} today"
        )


def _emit(result: AnalysisResult, as_json: bool) -> None:
    if as_json:
        typer.echo(json.dumps(result.to_dict(), indent=2))
    else:
        _print_result(result)


# ------------------------------------------------------------------
# predict
# ------------------------------------------------------------------
@app.command()
def predict(
    name: str = typer.Argument(..., help="Business name."),
    location: str = typer.Argument("", help="City or area (e.g. 'Denver, CO')."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging."),
) -> None:
    """List matching businesses and their place ids."""
    _setup_logging(verbose)
    try:
        auditor = _build_auditor()
        predictions = _run_async(auditor.get_predictions(name, location))
    except PresenceAuditError as exc:
        _fail(exc)
        return

    if not predictions:
        console.print("[yellow]No matching businesses found.[/yellow]")
        return
    table = Table(title="Predictions", header_style="bold magenta")
    table.add_column("#", justify="right")
    table.add_column("Business", style="cyan")
    table.add_column("Place ID")
    for i, p in enumerate(predictions, start=1):
        table.add_row(str(i), p.description, p.place_id)
    console.print(table)


# ------------------------------------------------------------------
# standard
# ------------------------------------------------------------------
@app.command()
def standard(
    place_id: str = typer.Option("", "--place-id", help="Place id to audit."),
    maps_url: str = typer.Option("", "--maps-url", help="Google Maps share link."),
    business: str = typer.Option("", "--business", "-b", help="Business name."),
    location: str = typer.Option("", "--location", "-l", help="City or area."),
    industry: str = typer.Option("", "--industry", "-i", help="Core service keyword."),
    daily_limit: Optional[int] = typer.Option(None, "--daily-limit", help="Override the daily lookup limit."),
    as_json: bool = typer.Option(False, "--json", help="Print the raw result as JSON."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging."),
) -> None:
    """Audit a live business profile against nearby competitors."""
    _setup_logging(verbose)
    from presence_audit.modules.local_presence.auditor import StandardAuditRequest

    request = StandardAuditRequest(
        business_name=business,
        location=location,
        industry=industry,
        google_maps_url=maps_url,
        place_id=place_id,
    )
    try:
        auditor = _build_auditor()
        result = _run_with_spinner(
            auditor.analyze_standard(request, daily_limit),
            "Auditing profile and competitors...",
            quiet=as_json,
        )
    except PresenceAuditError as exc:
        _fail(exc)
        return
    _emit(result, as_json)


# ------------------------------------------------------------------
# self-audit
# ------------------------------------------------------------------
@app.command("self-audit")
def self_audit(
    hours: bool = typer.Option(False, "--hours/--no-hours", help="Hours are complete."),
    phone: bool = typer.Option(False, "--phone/--no-phone", help="Phone number is listed."),
    website: bool = typer.Option(False, "--website/--no-website", help="Website is linked."),
    description: bool = typer.Option(False, "--description/--no-description",
                                     help="Description is 200+ chars with service and city."),
    services: bool = typer.Option(False, "--services/--no-services", help="Services are listed."),
    primary_category: bool = typer.Option(False, "--primary-category/--no-primary-category"),
    secondary_categories: bool = typer.Option(False, "--secondary-categories/--no-secondary-categories"),
    photos: Optional[str] = typer.Option(None, "--photos", help="0-9, 10-19, 20-49 or 50+."),
    reviews: Optional[str] = typer.Option(None, "--reviews", help="0-10, 11-25, 26-50, 51-100 or 100+."),
    rating: Optional[str] = typer.Option(None, "--rating", help="<4.0, 4.0-4.3, 4.4-4.6, 4.7-4.8 or 4.9-5.0."),
    post_frequency: str = typer.Option("none", "--post-frequency", help="none, monthly or weekly."),
    posted_recently: bool = typer.Option(False, "--posted-recently/--no-posted-recently"),
    nap_consistent: bool = typer.Option(False, "--nap-consistent/--no-nap-consistent"),
    website_consistent: bool = typer.Option(False, "--website-consistent/--no-website-consistent"),
    duplicates_cleaned: bool = typer.Option(False, "--duplicates-cleaned/--no-duplicates-cleaned"),
    citations_updated: bool = typer.Option(False, "--citations-updated/--no-citations-updated"),
    radius_miles: int = typer.Option(1, "--radius-miles", help="Search radius: 1, 2, 3 or 5."),
    as_json: bool = typer.Option(False, "--json", help="Print the raw result as JSON."),
) -> None:
    """Score your own answers to the profile checklist (no API calls)."""
    _setup_logging(False)
    from presence_audit.modules.local_presence.auditor import PresenceAuditor
    from presence_audit.modules.local_presence.checklist import SelfAuditChecklist, SelfAuditInputs
    from presence_audit.modules.local_presence.quota import InMemoryQuotaStore, QuotaGovernor

    try:
        radius = RADIUS_BY_MILES.get(radius_miles)
        if radius is None:
            raise InvalidInputError("--radius-miles must be 1, 2, 3 or 5")
        checklist = SelfAuditChecklist.from_dict({
            "has_hours": hours,
            "has_phone": phone,
            "has_website": website,
            "has_description_optimized": description,
            "has_services_listed": services,
            "has_primary_category_set": primary_category,
            "has_secondary_categories": secondary_categories,
            "photo_count_range": photos,
            "review_count_range": reviews,
            "rating_range": rating,
            "post_frequency": post_frequency,
            "posted_last_30_days": posted_recently,
            "nap_consistent": nap_consistent,
            "website_consistent": website_consistent,
            "duplicates_cleaned": duplicates_cleaned,
            "citations_updated_recently": citations_updated,
        })
    except PresenceAuditError as exc:
        _fail(exc)
        return

    auditor = PresenceAuditor(provider=None, governor=QuotaGovernor(InMemoryQuotaStore()))
    result = auditor.calculate_self_audit(checklist, SelfAuditInputs(radius_meters=radius))
    _emit(result, as_json)


# ------------------------------------------------------------------
# pro
# ------------------------------------------------------------------
@app.command()
def pro(
    business: str = typer.Option(..., "--business", "-b", help="Business name."),
    location: str = typer.Option(..., "--location", "-l", help="City or area."),
    radius_miles: int = typer.Option(3, "--radius-miles", help="Search radius: 1, 2, 3 or 5."),
    lite_score: int = typer.Option(0, "--lite-score", help="Earlier self-audit score to compare."),
    industry: str = typer.Option("", "--industry", "-i", help="Core service keyword."),
    daily_limit: Optional[int] = typer.Option(None, "--daily-limit", help="Override the daily lookup limit."),
    as_json: bool = typer.Option(False, "--json", help="Print the raw result as JSON."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging."),
) -> None:
    """Deep audit against the top competitors within a fixed radius."""
    _setup_logging(verbose)
    from presence_audit.modules.local_presence.auditor import ProAuditRequest

    try:
        radius = RADIUS_BY_MILES.get(radius_miles)
        if radius is None:
            raise InvalidInputError("--radius-miles must be 1, 2, 3 or 5")
        request = ProAuditRequest(
            business_name=business,
            location=location,
            radius_meters=radius,
            lite_score=lite_score,
            industry=industry,
        )
        auditor = _build_auditor()
        result = _run_with_spinner(
            auditor.analyze_pro(request, daily_limit),
            "Scanning competitors...",
            quiet=as_json,
        )
    except PresenceAuditError as exc:
        _fail(exc)
        return
    _emit(result, as_json)
    if not as_json and lite_score:
        delta = result.overall_score - lite_score
        console.print(f"Change since self-audit: {delta:+d} points")


# ------------------------------------------------------------------
# usage
# ------------------------------------------------------------------
@app.command()
def usage(
    daily_limit: Optional[int] = typer.Option(None, "--daily-limit", help="Limit to report against."),
) -> None:
    """Show today's lookup count against the daily limit."""
    _setup_logging(False)
    auditor = _build_auditor(with_provider=False)
    snapshot = auditor.api_usage(daily_limit)
    remaining = max(0, snapshot.daily_limit - snapshot.used_today)
    console.print(Panel(
        f"Used today: [bold]{snapshot.used_today}[/bold]\n"
        f"Daily limit: {snapshot.daily_limit}\n"
        f"Remaining: {remaining}",
        title="API Usage",
    ))


# ------------------------------------------------------------------
# status
# ------------------------------------------------------------------
@app.command()
def status() -> None:
    """Show project status: database, configuration, API key and quota."""
    _setup_logging(False)
    table = Table(title="Local Presence Audit Status", show_header=True, header_style="bold magenta")
    table.add_column("Component", style="cyan", min_width=15)
    table.add_column("Status", min_width=10)
    table.add_column("Details", max_width=60)

    config_path = Path(CONFIG_PATH)
    if not config_path.exists():
        table.add_row("Settings file", "[yellow]⚠ Missing[/yellow]", f"{CONFIG_PATH} not found")

    try:
        health = _get_app().get_status()
    except Exception as exc:
        table.add_row("Application", "[red]✘ Error[/red]", str(exc)[:60])
        console.print(table)
        raise typer.Exit(code=1)

    labels = {
        "ok": "[green]✔ OK[/green]",
        "warning": "[yellow]⚠ Warning[/yellow]",
        "error": "[red]✘ Error[/red]",
    }
    for component, info in health.items():
        table.add_row(
            component.replace("_", " ").title(),
            labels.get(info["status"], info["status"]),
            info["details"],
        )
    console.print(table)
    if not os.getenv("GOOGLE_PLACES_API_KEY"):
        console.print("Add GOOGLE_PLACES_API_KEY to .env to enable live audits.")


def main() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
