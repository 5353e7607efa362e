"""
Command-line Frontend for Budget Ledger

The operator-facing surface for the ledger: add and edit records, look at
the ledger, and trigger a sync by hand.

DESIGN PRINCIPLES:
1. Every command opens the ledger, does one thing and closes it
2. Edits that arm a debounced sync are flushed before the process exits
3. Errors are printed plainly and give a non-zero exit code
4. Sync failures are shown from the sync snapshot, never as tracebacks

Run with: python -m app.main --help
"""

import asyncio
from datetime import date
from pathlib import Path
from typing import Awaitable, Callable, Optional, TypeVar

import typer

from budget_ledger.analytics import build_csv
from budget_ledger.audit import configure_log_level
from budget_ledger.config import get_settings
from budget_ledger.insights import AiQuotaExceededError
from budget_ledger.ledger import NotFoundError, ValidationError
from budget_ledger.models.record import LedgerType, PlanTier
from budget_ledger.models.sync import SyncSnapshot, SyncStatus
from budget_ledger.orchestrator import LedgerApp, create_app_components
from budget_ledger.services.storage import PersistenceError, SqlitePersistenceAdapter


T = TypeVar("T")

cli = typer.Typer(
    no_args_is_help=True,
    add_completion=False,
    help="Local-first budget ledger with optional sync to a remote server.",
)


class _Options:
    database: Optional[Path] = None


_options = _Options()


def run_with_app(action: Callable[[LedgerApp], Awaitable[T]], flush: bool = False) -> T:
    """Open the ledger, run `action`, close it; map ledger errors to exit codes."""

    async def _run() -> T:
        adapter = SqlitePersistenceAdapter(str(_options.database)) if _options.database else None
        app = create_app_components(adapter=adapter)
        await app.start()
        try:
            return await action(app)
        finally:
            await app.aclose(flush=flush)

    try:
        return asyncio.run(_run())
    except (ValidationError, NotFoundError, AiQuotaExceededError) as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)
    except PersistenceError as e:
        typer.echo(f"Storage error: {e}", err=True)
        raise typer.Exit(2)


def _print_snapshot(snapshot: SyncSnapshot) -> None:
    typer.echo(f"Sync status: {snapshot.status.value}")
    typer.echo(f"Last synced: {snapshot.last_synced_at or 'never'}")
    if snapshot.error:
        typer.echo(f"Last error: {snapshot.error}")


@cli.callback()
def main(
    database: Optional[Path] = typer.Option(
        None, "--db", help="SQLite file to use (overrides LEDGER_DATABASE_PATH)."
    ),
    log_level: Optional[str] = typer.Option(
        None, help="Log level (overrides LOG_LEVEL)."
    ),
) -> None:
    """Configure storage and logging for every subcommand."""
    _options.database = database
    configure_log_level(log_level or get_settings().app.log_level)


@cli.command("add")
def add_record(
    amount: float = typer.Argument(..., help="Amount, must be greater than zero."),
    category: str = typer.Argument(..., help="Category, e.g. food or transport."),
    record_type: LedgerType = typer.Option(LedgerType.EXPENSE, "--type", help="expense or income."),
    on: Optional[str] = typer.Option(None, "--date", help="ISO date, defaults to today."),
    note: Optional[str] = typer.Option(None, help="Free-text note."),
    tag: Optional[list[str]] = typer.Option(None, "--tag", help="Tag (repeatable)."),
    currency: Optional[str] = typer.Option(None, help="Currency code, defaults to configured one."),
) -> None:
    """Add a record."""

    async def action(app: LedgerApp):
        return await app.store.create({
            "type": record_type,
            "amount": amount,
            "category": category,
            "date": on or date.today().isoformat(),
            "note": note,
            "tags": tag or [],
            "currency": currency,
        })

    record = run_with_app(action, flush=True)
    typer.echo(f"Added {record.id}: {record.type.value} {record.amount:g} {record.currency} ({record.category})")


@cli.command("list")
def list_records(
    limit: int = typer.Option(20, min=1, help="How many records to show."),
) -> None:
    """Show the newest records."""

    async def action(app: LedgerApp):
        return app.store.list()[:limit]

    records = run_with_app(action)
    if not records:
        typer.echo("No records.")
        return
    for record in records:
        marker = "*" if record.dirty else " "
        note = f"  {record.note}" if record.note else ""
        typer.echo(
            f"{marker} {record.id}  {record.date[:10]}  {record.type.value:<7} "
            f"{record.amount:>10,.2f} {record.currency}  {record.category}{note}"
        )


@cli.command("edit")
def edit_record(
    record_id: str = typer.Argument(..., help="Record id."),
    amount: Optional[float] = typer.Option(None, help="New amount."),
    category: Optional[str] = typer.Option(None, help="New category."),
    record_type: Optional[LedgerType] = typer.Option(None, "--type", help="expense or income."),
    on: Optional[str] = typer.Option(None, "--date", help="New ISO date."),
    note: Optional[str] = typer.Option(None, help="New note."),
) -> None:
    """Change fields of a record."""
    changes = {
        key: value
        for key, value in {
            "amount": amount,
            "category": category,
            "type": record_type,
            "date": on,
            "note": note,
        }.items()
        if value is not None
    }
    if not changes:
        typer.echo("Nothing to change.", err=True)
        raise typer.Exit(1)

    async def action(app: LedgerApp):
        return await app.store.update(record_id, changes)

    record = run_with_app(action, flush=True)
    typer.echo(f"Updated {record.id}")


@cli.command("delete")
def delete_record(record_id: str = typer.Argument(..., help="Record id.")) -> None:
    """Delete a record (synced as a deletion)."""

    async def action(app: LedgerApp):
        await app.store.soft_delete(record_id)

    run_with_app(action, flush=True)
    typer.echo(f"Deleted {record_id}")


@cli.command("sync")
def sync() -> None:
    """Run one sync cycle now."""

    async def action(app: LedgerApp):
        return await app.request_sync()

    snapshot = run_with_app(action)
    _print_snapshot(snapshot)
    if snapshot.status == SyncStatus.ERROR:
        raise typer.Exit(3)


@cli.command("status")
def status() -> None:
    """Show sync status, pending changes and plan."""

    async def action(app: LedgerApp):
        return (
            app.sync_snapshot,
            len(app.store.list_dirty()),
            await app.get_plan(),
            await app.ai_remaining(),
        )

    snapshot, pending, plan, ai_remaining = run_with_app(action)
    _print_snapshot(snapshot)
    typer.echo(f"Pending changes: {pending}")
    typer.echo(f"Plan: {plan.value} ({ai_remaining} assistant questions left today)")


@cli.command("plan")
def set_plan(plan: PlanTier = typer.Argument(..., help="free, pro or enterprise.")) -> None:
    """Set the plan tier."""

    async def action(app: LedgerApp):
        await app.set_plan(plan)

    run_with_app(action)
    typer.echo(f"Plan set to {plan.value}")


@cli.command("challenges")
def challenges() -> None:
    """Show challenge progress."""

    async def action(app: LedgerApp):
        return await app.challenge_progress()

    for item in run_with_app(action):
        mark = "x" if item.achieved else " "
        typer.echo(f"[{mark}] {item.title}: {item.progress:.0%} ({item.metric_label})")


@cli.command("ask")
def ask(question: str = typer.Argument(..., help="Question about your spending.")) -> None:
    """Ask the assistant about the ledger."""

    async def action(app: LedgerApp):
        return await app.ask(question)

    reply = run_with_app(action)
    typer.echo(reply.reply)
    if reply.used_fallback:
        typer.echo("(offline summary)", err=True)


@cli.command("export")
def export(
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Write CSV here instead of stdout."),
) -> None:
    """Export the ledger as CSV."""

    async def action(app: LedgerApp):
        return build_csv(app.store.list())

    content = run_with_app(action)
    if output is None:
        typer.echo(content, nl=False)
    else:
        output.write_text(content, encoding="utf-8")
        typer.echo(f"Wrote {output}")


@cli.command("purge")
def purge(
    yes: bool = typer.Option(False, "--yes", help="Confirm removing every local record."),
) -> None:
    """Remove every local record, including unsynced changes."""
    if not yes:
        typer.echo("Refusing to purge without --yes.", err=True)
        raise typer.Exit(1)

    async def action(app: LedgerApp):
        return await app.store.purge_all()

    removed = run_with_app(action)
    typer.echo(f"Removed {removed} records")


if __name__ == "__main__":
    cli()
