"""CLI interface for mindful."""

import asyncio
import logging
from pathlib import Path
from typing import Annotated, Optional

import typer
from rich.console import Console
from rich.table import Table

from mindful.config import MindfulConfig, load_config, merge_cli_overrides
from mindful.errors import MindfulError
from mindful.journal.models import Entry
from mindful.journal.services import JournalService

app = typer.Typer(
    name="mindful",
    help="Write journal entries and get AI-assisted reflections on them.",
)

console = Console()


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        from mindful import __version__

        console.print(f"mindful {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    ctx: typer.Context,
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            "-V",
            help="Show version and exit.",
            callback=version_callback,
            is_eager=True,
        ),
    ] = False,
    config_path: Annotated[
        Optional[Path],
        typer.Option("--config", help="Path to a .mindful.toml file."),
    ] = None,
    user: Annotated[
        Optional[str],
        typer.Option("--user", "-u", help="User id to act as."),
    ] = None,
    store: Annotated[
        Optional[Path],
        typer.Option("--store", help="Path to the journal JSON store."),
    ] = None,
    model: Annotated[
        Optional[str],
        typer.Option("--model", help="Claude model name or alias."),
    ] = None,
    timezone: Annotated[
        Optional[str],
        typer.Option("--timezone", help="IANA time zone used for days and weeks."),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", help="Enable debug logging."),
    ] = False,
) -> None:
    """Mindful - an AI-assisted journal."""
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        )
    try:
        config = load_config(config_path)
        config = merge_cli_overrides(
            config,
            user_id=user,
            store_path=str(store) if store else None,
            model=model,
            timezone=timezone,
        )
    except ValueError as exc:
        console.print(f"[red]Error:[/red] Invalid configuration: {exc}")
        raise typer.Exit(1) from exc
    ctx.obj = config


def _config(ctx: typer.Context) -> MindfulConfig:
    return ctx.obj if isinstance(ctx.obj, MindfulConfig) else MindfulConfig()


def _run(ctx: typer.Context, operation):
    """Build the service, run one async operation on it, map errors to exit 1."""
    config = _config(ctx)
    try:
        service = JournalService.from_config(config)
        return asyncio.run(operation(service, config.user.id))
    except MindfulError as exc:
        console.print(f"[red]Error:[/red] {exc}")
        raise typer.Exit(1) from exc


def _entry_table(entries: list[Entry], title: str) -> Table:
    table = Table(title=title)
    table.add_column("ID", style="dim")
    table.add_column("Date")
    table.add_column("Words", justify="right")
    table.add_column("Mood")
    table.add_column("Themes")
    table.add_column("Excerpt")
    for entry in entries:
        excerpt = entry.title or entry.content
        excerpt = excerpt[:50] + "..." if len(excerpt) > 50 else excerpt
        table.add_row(
            entry.id[:8],
            entry.created_at.strftime("%Y-%m-%d %H:%M"),
            str(entry.word_count),
            entry.mood.value if entry.mood else "-",
            ", ".join(entry.themes) or "-",
            excerpt,
        )
    return table


def _print_entry(entry: Entry) -> None:
    console.print(f"[green]Saved entry[/green] {entry.id}")
    console.print(f"  Words: {entry.word_count}")
    if entry.mood:
        console.print(f"  Mood: {entry.mood.value} (sentiment {entry.sentiment_score:+.2f})")
    if entry.themes:
        console.print(f"  Themes: {', '.join(entry.themes)}")


@app.command()
def write(
    ctx: typer.Context,
    content: Annotated[str, typer.Argument(help="Entry text.")],
    title: Annotated[Optional[str], typer.Option("--title", "-t", help="Entry title.")] = None,
    prompt_id: Annotated[
        Optional[str],
        typer.Option("--prompt", help="Id of the prompt this entry answers."),
    ] = None,
    draft: Annotated[bool, typer.Option("--draft", help="Save as an incomplete draft.")] = False,
) -> None:
    """Write a new journal entry."""
    entry = _run(
        ctx,
        lambda service, user_id: service.submit_entry(
            user_id, content, title=title, prompt_id=prompt_id, is_completed=not draft
        ),
    )
    _print_entry(entry)


@app.command()
def edit(
    ctx: typer.Context,
    entry_id: Annotated[str, typer.Argument(help="Id of the entry to edit.")],
    content: Annotated[Optional[str], typer.Option("--content", "-c", help="New entry text.")] = None,
    title: Annotated[Optional[str], typer.Option("--title", "-t", help="New title.")] = None,
    completed: Annotated[
        Optional[bool],
        typer.Option("--complete/--draft", help="Mark the entry complete or as a draft."),
    ] = None,
) -> None:
    """Edit an existing entry."""
    entry = _run(
        ctx,
        lambda service, user_id: service.update_entry(
            user_id, entry_id, content=content, title=title, is_completed=completed
        ),
    )
    _print_entry(entry)


@app.command()
def delete(
    ctx: typer.Context,
    entry_id: Annotated[str, typer.Argument(help="Id of the entry to delete.")],
) -> None:
    """Delete an entry."""
    _run(ctx, lambda service, user_id: service.delete_entry(user_id, entry_id))
    console.print(f"[green]Deleted entry[/green] {entry_id}")


@app.command()
def entries(
    ctx: typer.Context,
    limit: Annotated[int, typer.Option("--limit", "-n", help="Number of entries to show.")] = 10,
    drafts: Annotated[bool, typer.Option("--drafts", help="Include drafts.")] = False,
) -> None:
    """List recent entries, newest first."""
    found = _run(
        ctx,
        lambda service, user_id: service.list_entries(user_id, limit, include_drafts=drafts),
    )
    if not found:
        console.print("[yellow]No entries yet.[/yellow]")
        return
    console.print(_entry_table(found, "Recent entries"))


@app.command()
def stats(ctx: typer.Context) -> None:
    """Show streaks and totals."""
    user = _run(ctx, lambda service, user_id: service.get_user(user_id))
    console.print("[bold]Journal stats[/bold]")
    console.print(f"  Current streak: {user.current_streak} day(s)")
    console.print(f"  Longest streak: {user.longest_streak} day(s)")
    console.print(f"  Entries: {user.total_entries}")
    console.print(f"  Words written: {user.words_written}")
    if user.last_entry_date:
        console.print(f"  Last entry: {user.last_entry_date:%Y-%m-%d %H:%M}")


@app.command()
def prompt(
    ctx: typer.Context,
    refresh: Annotated[bool, typer.Option("--refresh", help="Generate a new prompt.")] = False,
) -> None:
    """Show the current writing prompt."""

    async def _get(service: JournalService, user_id: str):
        if refresh:
            return await service.refresh_prompt(user_id)
        return await service.get_active_prompt(user_id)

    active = _run(ctx, _get)
    console.print(f"[bold]{active.prompt_text}[/bold]")
    if active.context:
        console.print(f"  [dim]{active.context}[/dim]")
    console.print(f"  id: {active.id}")


@app.command()
def insight(
    ctx: typer.Context,
    history: Annotated[bool, typer.Option("--history", help="Show past weeks too.")] = False,
) -> None:
    """Show this week's insight."""

    async def _get(service: JournalService, user_id: str):
        if history:
            return await service.list_weekly_insights(user_id)
        found = await service.get_weekly_insight(user_id)
        return [found] if found else []

    insights = _run(ctx, _get)
    if not insights:
        console.print("[yellow]No entries this week yet.[/yellow]")
        return
    for item in insights:
        console.print(f"[bold]Week of {item.week_start:%Y-%m-%d}[/bold] ({item.entry_count} entries)")
        console.print(f"  {item.summary}")
        console.print(f"  Mood trend: {item.mood_trend}  Average sentiment: {item.average_sentiment:+.2f}")
        if item.key_themes:
            console.print(f"  Themes: {', '.join(item.key_themes)}")
        for recommendation in item.recommendations:
            console.print(f"  - {recommendation}")


@app.command()
def mood(
    ctx: typer.Context,
    days: Annotated[int, typer.Option("--days", "-d", help="How many days back to look.")] = 7,
) -> None:
    """Show the mood timeline."""
    timeline = _run(ctx, lambda service, user_id: service.mood_timeline(user_id, days))
    if not timeline.points:
        console.print("[yellow]No entries in this period.[/yellow]")
        return
    table = Table(title="Mood timeline")
    table.add_column("Date")
    table.add_column("Sentiment", justify="right")
    table.add_column("Mood")
    for point in timeline.points:
        table.add_row(point.day.isoformat(), f"{point.sentiment:+.2f}", point.mood)
    console.print(table)
    if timeline.summary:
        summary = timeline.summary
        console.print(
            f"{summary.period.capitalize()}: {summary.total_entries} entries, "
            f"mostly {summary.dominant_mood}, average sentiment {summary.average_sentiment:+.2f}"
        )


@app.command()
def themes(ctx: typer.Context) -> None:
    """Show recurring themes in recent entries."""
    breakdown = _run(ctx, lambda service, user_id: service.theme_breakdown(user_id))
    if not breakdown:
        console.print("[yellow]No entries yet.[/yellow]")
        return
    for stat in breakdown:
        console.print(f"[bold]{stat.theme}[/bold] ({stat.count})")
        console.print(f"  {stat.explanation}")
        for suggestion in stat.suggestions:
            console.print(f"  - {suggestion}")


@app.command()
def search(
    ctx: typer.Context,
    query: Annotated[str, typer.Argument(help="Text to look for.")],
) -> None:
    """Search entries by content, title or theme."""
    found = _run(ctx, lambda service, user_id: service.search_entries(user_id, query))
    if not found:
        console.print(f"[yellow]No entries match '{query}'.[/yellow]")
        return
    console.print(_entry_table(found, f"Entries matching '{query}'"))


if __name__ == "__main__":
    app()
