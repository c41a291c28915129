"""CLI command implementations — account linking and memory views."""

from __future__ import annotations

import asyncio
import json
import logging
from datetime import date
from typing import TYPE_CHECKING

import click
from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from mail_memories.gmail.types import MemoriesResult, MemoriesStatus, MemoryItem
from mail_memories.memories.normalize import format_month_day
from mail_memories.memories.service import memories_service
from mail_memories.memories.timeline import (
    compare_years,
    filter_memories,
    highlight_years,
    recipient_label,
    relative_year,
    status_line,
    summarize_years,
    top_recipient_domains,
    top_recipients,
)

if TYPE_CHECKING:
    from mail_memories.cli.main import AppContext

logger = logging.getLogger(__name__)
console = Console(width=200)


# ── link / unlink ──────────────────────────────────────────────────────────────


@click.command()
@click.argument("user_id")
@click.option("--access-token", default=None, help="Current Google access token.")
@click.option("--refresh-token", default=None, help="Google refresh token (offline access).")
@click.option("--expires-in", default=None, type=int, help="Seconds until the access token expires.")
@click.option(
    "--scope",
    default="https://www.googleapis.com/auth/gmail.readonly",
    show_default=True,
    help="Granted OAuth scope.",
)
@click.option("--account-id", default="", help="Google account (subject) id.")
@click.pass_obj
def link(
    app: AppContext,
    user_id: str,
    access_token: str | None,
    refresh_token: str | None,
    expires_in: int | None,
    scope: str,
    account_id: str,
) -> None:
    """Store a Google credential for USER_ID."""
    if not access_token and not refresh_token:
        raise click.UsageError("Provide --access-token, --refresh-token, or both.")
    credential = app.store.link_account(
        user_id,
        access_token=access_token,
        refresh_token=refresh_token,
        expires_in=expires_in,
        scope=scope,
        account_id=account_id,
    )
    expiry = (
        credential.access_token_expires_at.isoformat()
        if credential.access_token_expires_at
        else "unknown"
    )
    console.print(f"[green]Linked Gmail for {user_id}.[/green] [dim]Token expiry: {expiry}[/dim]")


@click.command()
@click.argument("user_id")
@click.pass_obj
def unlink(app: AppContext, user_id: str) -> None:
    """Remove the Google credential stored for USER_ID."""
    if app.store.unlink_account(user_id):
        console.print(f"[green]Unlinked Gmail for {user_id}.[/green]")
    else:
        console.print(f"[yellow]No Gmail account linked for {user_id}.[/yellow]")


# ── today ─────────────────────────────────────────────────────────────────────


async def _load_memories(app: AppContext, user_id: str) -> tuple[MemoriesResult, date]:
    """Run one memories request; also return the day it searched around."""
    async with memories_service(app.settings, store=app.store) as service:
        return await service.get_memories_for_today(user_id), service.reference_date


def _exit_unless_ok(result: MemoriesResult) -> None:
    """Print the reason for a non-OK result and exit with status 1."""
    if result.status is MemoriesStatus.OK:
        return
    style = "yellow" if result.status is MemoriesStatus.NEEDS_CONNECTION else "red"
    console.print(f"[{style}]{result.message}[/{style}]")
    raise SystemExit(1)


def _memory_table(items: list[MemoryItem], current_year: int) -> Table:
    table = Table(box=box.ROUNDED, show_header=True, header_style="bold cyan")
    table.add_column("Year", width=6)
    table.add_column("When", width=12)
    table.add_column("Date", width=14)
    table.add_column("To", max_width=30)
    table.add_column("Subject", max_width=40)
    table.add_column("Snippet", max_width=50, style="dim")
    for item in items:
        table.add_row(
            item.year,
            relative_year(item.year, current_year),
            item.date,
            recipient_label(item.to),
            item.subject,
            item.snippet,
        )
    return table


@click.command()
@click.argument("user_id")
@click.option("--json", "as_json", is_flag=True, help="Print the raw result as JSON.")
@click.pass_obj
def today(app: AppContext, user_id: str, as_json: bool) -> None:
    """Show the emails USER_ID sent on this day in previous years."""
    result, today_date = asyncio.run(_load_memories(app, user_id))

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        if not result.is_ok:
            raise SystemExit(1)
        return

    _exit_unless_ok(result)
    if not result.items:
        console.print("[yellow]No memories for today. Check back tomorrow.[/yellow]")
        return

    featured, *rest = result.items
    console.print(
        Panel(
            f"[bold]{featured.subject}[/bold]\n"
            f"To {recipient_label(featured.to)} · {featured.date}\n\n"
            f"{featured.snippet}\n\n[dim]{featured.gmail_link}[/dim]",
            title=f"[bold]{featured.year}[/bold] · {relative_year(featured.year, today_date.year)}",
            border_style="blue",
        )
    )
    if rest:
        console.print(_memory_table(rest, today_date.year))


# ── timeline ──────────────────────────────────────────────────────────────────


@click.command()
@click.argument("user_id")
@click.option("--to", "to_filter", default="", help="Only recipients containing this text.")
@click.option("--subject", "subject_filter", default="", help="Only subjects/snippets containing this text.")
@click.option("--year-a", default=None, type=int, help="First year to compare.")
@click.option("--year-b", default=None, type=int, help="Second year to compare.")
@click.pass_obj
def timeline(
    app: AppContext,
    user_id: str,
    to_filter: str,
    subject_filter: str,
    year_a: int | None,
    year_b: int | None,
) -> None:
    """Year-by-year view of today's memories for USER_ID."""
    result, today_date = asyncio.run(_load_memories(app, user_id))
    _exit_unless_ok(result)

    items = filter_memories(result.items, to=to_filter, subject=subject_filter)
    summaries = summarize_years(items, today_date.year)
    most = max([1, *(s.count for s in summaries)])

    table = Table(box=box.SIMPLE, show_header=True, header_style="bold cyan")
    table.add_column("Year", width=6)
    table.add_column("Count", width=6)
    table.add_column("Activity", width=20)
    table.add_column("Subjects", max_width=80)
    for summary in summaries:
        bar = "█" * round(summary.count / most * 20)
        subjects = "; ".join(item.subject for item in summary.items)
        table.add_row(str(summary.year), str(summary.count), bar, subjects)

    heading = "Filtered results" if (to_filter or subject_filter) else "No filters applied"
    console.print(f"\n[bold]Timeline for {user_id}[/bold] [dim]({heading})[/dim]")
    console.print(status_line(items, summaries, format_month_day(today_date)) + "\n")
    console.print(table)

    comparison = compare_years(summaries, year_a, year_b)
    if comparison is not None:
        console.print(f"  {comparison.description}")

    highlights = highlight_years(summaries)
    if highlights:
        listed = ", ".join(f"{s.year} ({s.count})" for s in highlights)
        console.print(f"  [dim]Busiest years:[/dim] {listed}")

    # recipient stats cover every memory, not just the filtered ones
    recipients = top_recipients(result.items)
    if recipients:
        listed = ", ".join(f"{label} ({count})" for label, count in recipients)
        console.print(f"  [dim]Top recipients:[/dim] {listed}")

    domains = top_recipient_domains(result.items)
    if domains:
        listed = ", ".join(f"{domain} ({count})" for domain, count in domains)
        console.print(f"  [dim]Top recipient domains:[/dim] {listed}")
