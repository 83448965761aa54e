"""Staging review CLI.

Commands:
- review list: Show the pending review queue
- review show: Show one staging record
- review approve / reject / delete: Moderate a single record
- review bulk-approve: Approve several records at once
- review edit: Edit fields of a record before approval
- review ui: Launch the interactive review UI
- stats: Show pending/approved/rejected counts
- scrape sources / trigger / status / history: Drive the scraper service
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from typing import Any

import typer
from rich.console import Console
from rich.table import Table

from stagingreview.config import get_config
from stagingreview.core.logging import configure_logging
from stagingreview.errors import GatewayError
from stagingreview.integration.record_gateway import RecordGateway
from stagingreview.integration.scraper_client import ScraperClient
from stagingreview.models import EDITABLE_FIELDS, StagingRecord, parse_field_text
from stagingreview.review import (
    ActionOutcome,
    ControllerState,
    ReviewController,
    StatsAggregator,
    auto_confirm,
)

app = typer.Typer(
    name="staging-review",
    help="Staging review console for scraped products",
    no_args_is_help=True,
)
review_cli = typer.Typer(help="Review the pending staging queue", no_args_is_help=True)
app.add_typer(review_cli, name="review")

scrape_cli = typer.Typer(help="Scraper service", no_args_is_help=True)
app.add_typer(scrape_cli, name="scrape")

console = Console()


@app.callback()
def main_options(
    log_level: str | None = typer.Option(None, "--log-level", help="Override LOG_LEVEL"),
):
    """Configure logging before any command runs."""
    config = get_config()
    configure_logging(level=log_level or config.log_level, json_logs=config.json_logs)


@review_cli.callback()
def review_options(
    reviewer: str | None = typer.Option(
        None, "--by", "--user", help="Reviewer name for the audit trail"
    ),
):
    if reviewer:
        get_config().review.reviewer = reviewer


def _run(coro_factory: Callable[[], Awaitable[None]]) -> None:
    asyncio.run(coro_factory())


def _fail(message: str) -> None:
    console.print(f"[bold red]✗[/bold red] {message}")
    raise typer.Exit(1)


def _report(outcome: ActionOutcome) -> None:
    if not outcome.ok:
        _fail(outcome.message)
    console.print(f"[bold green]✓[/bold green] {outcome.message}")


def _records_table(records: list[StagingRecord], selected: frozenset[int] = frozenset()) -> Table:
    table = Table(title=f"Pending Products ({len(records)})")
    table.add_column("ID", justify="right", style="cyan")
    table.add_column("Product", style="bold")
    table.add_column("Category")
    table.add_column("AI Suggestion", style="magenta")
    table.add_column("Quality", justify="right")
    table.add_column("Source", style="dim")

    for record in records:
        suggestion = "N/A"
        if record.ai_suggested_category:
            suggestion = record.ai_suggested_category
            if record.ai_confidence is not None:
                suggestion += f" ({record.ai_confidence * 100:.0f}%)"
        quality = (
            f"{record.data_quality_score * 100:.0f}%"
            if record.data_quality_score is not None
            else "N/A"
        )
        marker = "■ " if record.id in selected else ""
        table.add_row(
            f"{marker}{record.id}",
            record.display_name,
            record.category or "N/A",
            suggestion,
            quality,
            record.source_website_id or "",
        )
    return table


def _controller(gateway: RecordGateway, confirm=auto_confirm) -> ReviewController:
    return ReviewController(gateway, confirm=confirm, review_config=get_config().review)


@review_cli.command("list")
def list_cmd():
    """Show the pending review queue."""

    async def _list():
        async with RecordGateway() as gateway:
            controller = _controller(gateway)
            await controller.refresh()
            if controller.state == ControllerState.LOAD_ERROR:
                _fail(controller.last_message or "Failed to load products")
            if not controller.records:
                console.print("[yellow]No pending products to review[/yellow]")
                return
            console.print(_records_table(controller.records))

    _run(_list)


@review_cli.command("show")
def show_cmd(record_id: int = typer.Argument(..., help="Staging record ID")):
    """Show every field of one staging record."""

    async def _show():
        async with RecordGateway() as gateway:
            try:
                record = await gateway.get_record(record_id)
            except GatewayError as exc:
                _fail(f"Failed to load product {record_id}: {exc.message}")

        table = Table(title=f"Staging Product #{record.id}", show_header=False)
        table.add_column("Field", style="cyan")
        table.add_column("Value")
        for name, value in record.model_dump(exclude={"id"}).items():
            if value is None:
                continue
            table.add_row(name, str(getattr(value, "value", value)))
        console.print(table)

    _run(_show)


@review_cli.command("approve")
def approve_cmd(record_id: int = typer.Argument(..., help="Staging record ID")):
    """Approve one record and move it to production."""

    async def _approve():
        async with RecordGateway() as gateway:
            controller = _controller(gateway)
            _report(await controller.approve_one(record_id))
            console.print(f"  Pending products remaining: {len(controller.records)}")

    _run(_approve)


@review_cli.command("reject")
def reject_cmd(record_id: int = typer.Argument(..., help="Staging record ID")):
    """Reject one record."""

    async def _reject():
        async with RecordGateway() as gateway:
            controller = _controller(gateway)
            _report(await controller.reject_one(record_id))
            console.print(f"  Pending products remaining: {len(controller.records)}")

    _run(_reject)


@review_cli.command("delete")
def delete_cmd(
    record_id: int = typer.Argument(..., help="Staging record ID"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip the confirmation prompt"),
):
    """Permanently delete one record."""
    confirm = auto_confirm
    if not yes and get_config().review.confirm_deletes:
        confirm = typer.confirm

    async def _delete():
        async with RecordGateway() as gateway:
            controller = _controller(gateway, confirm=confirm)
            outcome = await controller.delete_one(record_id)
            if outcome.error is None and not outcome.ok:
                console.print(f"[yellow]{outcome.message}[/yellow]")
                return
            _report(outcome)

    _run(_delete)


@review_cli.command("bulk-approve")
def bulk_approve_cmd(
    record_ids: list[int] | None = typer.Argument(None, help="Staging record IDs"),
    select_all: bool = typer.Option(False, "--all", help="Approve every pending product"),
):
    """Approve several records; each one succeeds or fails on its own."""
    if not record_ids and not select_all:
        raise typer.BadParameter("Pass record IDs or --all")

    async def _bulk():
        async with RecordGateway() as gateway:
            controller = _controller(gateway)
            await controller.refresh()
            if controller.state == ControllerState.LOAD_ERROR:
                _fail(controller.last_message or "Failed to load products")

            if select_all:
                controller.select_all()
            else:
                skipped = [rid for rid in record_ids if not controller.toggle(rid)]
                if skipped:
                    console.print(
                        f"[yellow]⚠[/yellow] Not in the pending queue, skipped: "
                        f"{', '.join(map(str, skipped))}"
                    )

            if not controller.selection:
                console.print("[yellow]No pending products selected[/yellow]")
                return

            console.print(f"[bold]Approving {len(controller.selection)} products...[/bold]")
            outcome = await controller.bulk_approve()
            if outcome.bulk_result is None:
                _fail(outcome.message)

            succeeded, failed = outcome.bulk_result.counts
            console.print("\n[bold]Summary:[/bold]")
            console.print(f"  Approved: {succeeded}")
            console.print(f"  Failed: {failed}")
            if failed:
                console.print(
                    "  Failed IDs: "
                    + ", ".join(map(str, sorted(outcome.bulk_result.failed))),
                    style="dim",
                )
            console.print(f"  Pending products remaining: {len(controller.records)}")
            if not outcome.ok:
                raise typer.Exit(1)

    _run(_bulk)


def _parse_assignments(assignments: list[str]) -> dict[str, Any]:
    fields: dict[str, Any] = {}
    for assignment in assignments:
        name, sep, value = assignment.partition("=")
        name = name.strip()
        if not sep or not name:
            raise typer.BadParameter(f"Expected field=value, got {assignment!r}")
        if name not in EDITABLE_FIELDS:
            raise typer.BadParameter(
                f"'{name}' is not editable. Editable fields: {', '.join(EDITABLE_FIELDS)}"
            )
        if value == "":
            fields[name] = None
            continue
        try:
            fields[name] = parse_field_text(name, value)
        except ValueError as exc:
            raise typer.BadParameter(str(exc)) from exc
    return fields


@review_cli.command("edit")
def edit_cmd(
    record_id: int = typer.Argument(..., help="Staging record ID"),
    assignments: list[str] = typer.Option(
        ...,
        "--set",
        "-s",
        help="field=value (repeatable); lists and objects as JSON, flags as true/false",
    ),
):
    """Edit fields of a staging record before approval."""
    fields = _parse_assignments(assignments)

    async def _edit():
        async with RecordGateway() as gateway:
            controller = _controller(gateway)
            opened = await controller.open_edit(record_id)
            if not opened.ok:
                _fail(opened.message)
            for name, value in fields.items():
                controller.set_edit_field(name, value)
            _report(await controller.save_edit())

    _run(_edit)


@review_cli.command("ui")
def review_ui_cmd():
    """Launch interactive review UI."""
    try:
        from stagingreview.ui.review_app import run_review_ui  # Local import to avoid heavy deps
    except ImportError as exc:  # pragma: no cover - optional dependency guard
        raise typer.BadParameter(
            "textual is required for the review UI. Install with 'pip install textual'."
        ) from exc

    run_review_ui(get_config().review.reviewer)


@app.command()
def stats():
    """Show staging statistics."""

    async def _stats():
        async with RecordGateway() as gateway:
            try:
                counts = await StatsAggregator(gateway).load()
            except GatewayError as exc:
                _fail(f"Failed to load stats: {exc.message}")

        shares = StatsAggregator.format_percentages(counts)
        table = Table(title="Staging Statistics")
        table.add_column("Status", style="cyan")
        table.add_column("Count", justify="right", style="green")
        table.add_column("Share", justify="right")

        table.add_row("Pending Review", str(counts.pending), shares["pending"])
        table.add_row("Approved", str(counts.approved), shares["approved"])
        table.add_row("Rejected", str(counts.rejected), shares["rejected"])

        console.print(table)
        console.print(f"Total Products in Staging: {counts.total}")

    _run(_stats)


@scrape_cli.command("sources")
def sources_cmd():
    """List websites configured in the scraper service."""

    async def _sources():
        async with ScraperClient() as client:
            try:
                sources = await client.list_sources()
            except GatewayError as exc:
                _fail(f"Failed to load sources: {exc.message}")

        if not sources:
            console.print("[yellow]No scrape sources configured[/yellow]")
            return

        table = Table(title="Scrape Sources")
        table.add_column("Website ID", style="cyan")
        table.add_column("Name")
        table.add_column("Base URL", style="dim")
        for source in sources:
            table.add_row(source.website_id, source.website_name or "", source.base_url or "")
        console.print(table)

    _run(_sources)


@scrape_cli.command("trigger")
def trigger_cmd(website_id: str = typer.Argument(..., help="Website ID to scrape")):
    """Start a scrape job. New products appear in the review queue once it finishes."""

    async def _trigger():
        async with ScraperClient() as client:
            try:
                job = await client.trigger(website_id)
            except GatewayError as exc:
                _fail(f"Failed to start scraping: {exc.message}")

        console.print(f"[bold green]✓[/bold green] Scraping started! Job ID: {job.job_id}")
        if job.message:
            console.print(f"  {job.message}", style="dim")

    _run(_trigger)


@scrape_cli.command("status")
def status_cmd(job_id: str = typer.Argument(..., help="Scrape job ID")):
    """Show the status of a scrape job."""

    async def _status():
        async with ScraperClient() as client:
            try:
                status = await client.get_job_status(job_id)
            except GatewayError as exc:
                _fail(f"Failed to load job {job_id}: {exc.message}")

        table = Table(title=f"Scrape Job {job_id}", show_header=False)
        table.add_column("Field", style="cyan")
        table.add_column("Value")
        for key, value in status.items():
            table.add_row(str(key), str(value))
        console.print(table)

    _run(_status)


@scrape_cli.command("history")
def history_cmd(
    website_id: str = typer.Argument(..., help="Website ID"),
    last_n: int = typer.Option(10, "--last", "-n", help="Show last N runs"),
):
    """Show recent scrape runs for a website."""

    async def _history():
        async with ScraperClient() as client:
            try:
                runs = await client.get_history(website_id)
            except GatewayError as exc:
                _fail(f"Failed to load history: {exc.message}")

        if not runs:
            console.print(f"[yellow]No scrape runs found for {website_id}[/yellow]")
            return

        columns = list(dict.fromkeys(key for run in runs[:last_n] for key in run))
        table = Table(title=f"Scrape History: {website_id}")
        for column in columns:
            table.add_column(column)
        for run in runs[:last_n]:
            table.add_row(*(str(run.get(column, "")) for column in columns))
        console.print(table)

    _run(_history)


def main():
    """Entry point for CLI."""
    app()


if __name__ == "__main__":
    main()
