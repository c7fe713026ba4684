"""
Command-line interface for the TeslaJustice case tracker.
"""

import json
import logging
import sys

import click
from rich.console import Console
from rich.table import Table

from teslajustice.core.config import MONITORING_INTERVAL_MINUTES, MONITORING_REQUEST_DELAY
from teslajustice.core.database import init_db
from teslajustice.core.errors import CaseNotFoundError, InvalidStatusError, TeslaJusticeError
from teslajustice.data.repository import CaseRepository

console = Console()
logging.basicConfig(level=logging.INFO, format="%(asctime)s [%(levelname)s] %(name)s: %(message)s")

STATUS_STYLES = {
    "reported": "yellow",
    "verified": "cyan",
    "identified": "blue",
    "apprehended": "magenta",
    "prosecuted": "bold magenta",
    "resolved": "green",
    "unresolved": "dim",
}


def _monitor(repository, delay=MONITORING_REQUEST_DELAY):
    from teslajustice.intel.analyzer import KeywordAnalyzer
    from teslajustice.intel.ingestor import TwitterIngestor
    from teslajustice.intel.monitor import MonitoringCycle

    return MonitoringCycle(repository, TwitterIngestor(), KeywordAnalyzer(), request_delay=delay)


@click.group()
def main():
    """TeslaJustice: track vandalism reports against Tesla vehicles and property."""
    pass


@main.command()
def init():
    """Initialize the database and create tables."""
    init_db()
    console.print("[green]Database initialized successfully.[/green]")


@main.command()
@click.option("--delay", default=MONITORING_REQUEST_DELAY, help="Seconds to wait between searches")
def monitor(delay):
    """Run one monitoring cycle."""
    repository = CaseRepository()
    try:
        summary = _monitor(repository, delay).run_cycle()
    except TeslaJusticeError as e:
        console.print(f"[red]Monitoring cycle failed: {e}[/red]")
        sys.exit(1)
    finally:
        repository.close()

    table = Table(title="Monitoring Cycle")
    table.add_column("Query", style="bold")
    table.add_column("Posts", justify="right")
    table.add_column("Relevant", justify="right")
    table.add_column("New cases", justify="right")
    table.add_column("Updated", justify="right")
    table.add_column("Errors", justify="right")
    for r in summary.results:
        errors = f"[red]{len(r.errors)}[/red]" if r.errors else "0"
        table.add_row(r.query, str(r.new_posts), str(r.relevant_posts),
                      str(r.new_cases), str(r.updated_cases), errors)
    console.print(table)
    console.print(f"[green]{summary.total_new_cases} new cases, "
                  f"{summary.total_updated_cases} updated in {summary.processing_time}s[/green]")


@main.command("check-updates")
def check_updates():
    """Look for replies to the posts of every open case."""
    repository = CaseRepository()
    try:
        summary = _monitor(repository).check_all_cases_for_updates()
        console.print(f"[green]Checked {summary.cases_checked} cases: "
                      f"{summary.total_new_updates} new updates on "
                      f"{summary.cases_with_updates} cases.[/green]")
    finally:
        repository.close()


@main.command()
@click.option("--status", default=None, help="Filter by case status")
@click.option("--target", "target_type", default=None, help="Filter by target type")
@click.option("--city", default=None, help="Filter by city")
@click.option("--state", default=None, help="Filter by state")
@click.option("--search", default=None, help="Search headline and summary")
@click.option("--page", default=1, help="Page number")
@click.option("--page-size", default=20, help="Cases per page")
def cases(status, target_type, city, state, search, page, page_size):
    """List cases, newest first."""
    from teslajustice.cases.manager import CaseManager

    repository = CaseRepository()
    try:
        listing = CaseManager(repository).list_cases({
            "status": status,
            "target_type": target_type,
            "location_city": city,
            "location_state": state,
            "search": search,
        }, page, page_size)
    finally:
        repository.close()

    if not listing["cases"]:
        console.print("[yellow]No cases found.[/yellow]")
        return

    table = Table(title="TeslaJustice Cases")
    table.add_column("ID", justify="right")
    table.add_column("Headline", style="bold")
    table.add_column("Location")
    table.add_column("Status")
    table.add_column("Reported")
    for c in listing["cases"]:
        location = ", ".join(p for p in (c["location_city"], c["location_state"]) if p)
        style = STATUS_STYLES.get(c["status"], "white")
        table.add_row(str(c["id"]), c["headline"], location or "-",
                      f"[{style}]{c['status']}[/{style}]", c["created_at"][:16])
    console.print(table)

    p = listing["pagination"]
    console.print(f"Page {p['page']} of {p['total_pages']} ({p['total_count']} cases)")


@main.command()
@click.argument("case_id", type=int)
@click.option("--json", "as_json", is_flag=True, help="Print the full record as JSON")
def case(case_id, as_json):
    """Show a case with its timeline."""
    from teslajustice.cases.manager import CaseManager

    repository = CaseRepository()
    try:
        detail = CaseManager(repository).get_case_with_details(case_id)
    except CaseNotFoundError:
        console.print(f"[red]Case #{case_id} not found.[/red]")
        sys.exit(1)
    finally:
        repository.close()

    if as_json:
        console.print_json(json.dumps(detail.model_dump(mode="json"), indent=2, default=str))
        return

    console.print(f"[bold]#{detail.id} {detail.headline}[/bold]")
    console.print(detail.summary)
    console.print(f"Status: {detail.status}   Damage: {', '.join(detail.damage_type)}")
    if detail.is_duplicate:
        console.print(f"[yellow]Duplicate of case #{detail.duplicate_of}[/yellow]")

    table = Table(title="Timeline")
    table.add_column("When")
    table.add_column("Type")
    table.add_column("Update")
    for u in detail.updates:
        table.add_row(u.created_at.strftime("%Y-%m-%d %H:%M"), u.update_type, u.title)
    console.print(table)

    for r in detail.related_cases:
        console.print(f"Related: #{r.related_case_id} ({r.relationship_type}, {r.relationship_strength:.2f})")


@main.command()
@click.argument("case_id", type=int)
@click.argument("new_status")
@click.option("--reason", default="", help="Reason for the change")
def status(case_id, new_status, reason):
    """Change the status of a case."""
    from teslajustice.cases.manager import CaseManager

    repository = CaseRepository()
    try:
        updated = CaseManager(repository).update_case_status(case_id, new_status, reason)
        console.print(f"[green]Case #{updated.id} is now {updated.status}.[/green]")
    except (CaseNotFoundError, InvalidStatusError) as e:
        console.print(f"[red]{e}[/red]")
        sys.exit(1)
    finally:
        repository.close()


@main.command()
@click.argument("keyword")
@click.option("--platform", default="all", help="Platform to search, or 'all'")
@click.option("--priority", default=3, help="Priority from 1 to 5")
def keyword(keyword, platform, priority):
    """Add a monitoring keyword."""
    repository = CaseRepository()
    try:
        item = repository.add_keyword(keyword, platform, priority)
        console.print(f"[green]Monitoring keyword '{item.keyword}' on {item.platform}.[/green]")
    finally:
        repository.close()


@main.command()
@click.argument("username")
@click.option("--platform", default="twitter", help="Platform of the account")
@click.option("--priority", default=3, help="Priority from 1 to 5")
def account(username, platform, priority):
    """Add a monitored account."""
    repository = CaseRepository()
    try:
        item = repository.add_account(username, platform, priority)
        console.print(f"[green]Monitoring @{item.username} on {item.platform}.[/green]")
    except TeslaJusticeError as e:
        console.print(f"[red]{e}[/red]")
        sys.exit(1)
    finally:
        repository.close()


@main.command()
@click.option("--interval", default=MONITORING_INTERVAL_MINUTES, help="Minutes between cycles")
def schedule(interval):
    """Run monitoring cycles on a schedule until interrupted."""
    from teslajustice.intel.scheduler import MonitoringScheduler

    def run_cycle():
        with CaseRepository() as repository:
            _monitor(repository).run_cycle()

    def sweep():
        with CaseRepository() as repository:
            _monitor(repository).check_all_cases_for_updates()

    scheduler = MonitoringScheduler(run_cycle, interval_minutes=interval, sweep=sweep)
    console.print(f"[green]Monitoring every {interval} minutes. Press Ctrl+C to stop.[/green]")
    scheduler.start()
    try:
        scheduler.wait()
    except KeyboardInterrupt:
        console.print("[yellow]Stopping scheduled monitoring...[/yellow]")
    finally:
        scheduler.stop(timeout=10)


@main.command()
@click.option("--port", default=8000, help="Port to run on")
def serve(port):
    """Start the TeslaJustice API server."""
    import uvicorn
    console.print(f"[green]Starting TeslaJustice server on http://0.0.0.0:{port}[/green]")
    console.print(f"[dim]API docs at http://localhost:{port}/docs[/dim]")
    uvicorn.run("teslajustice.api.app:app", host="0.0.0.0", port=port)


if __name__ == "__main__":
    main()
