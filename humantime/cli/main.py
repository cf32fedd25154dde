"""
Main CLI entry point for Humantime.

This module provides the primary command-line interface using typer.
"""

import json
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional, Tuple

import typer
from rich.console import Console
from rich.prompt import Confirm
from rich.table import Table

from ..core.aggregation import aggregate_by_project, percentage_of
from ..core.time_tracker import TimeTracker, local_now
from ..db.models import Block, FilterCriteria, Goal, GoalType, Project
from ..errors import PERIOD_EXAMPLES, HumantimeError, ParseError, ValidationError
from ..parser.args import parse_args
from ..parser.duration import resolve_duration
from ..parser.sid import normalize_sid, parse_project_task
from ..parser.timestamp import is_period_phrase, resolve_instant, resolve_period
from ..utils.config import get_config_manager
from ..utils.formatting import (
    format_block_span,
    format_bytes,
    format_date,
    format_datetime,
    format_duration,
    format_percentage,
    format_project_path,
    pluralize,
    progress_bar,
)
from ..utils.logging import setup_logging

# Create the main typer app
app = typer.Typer(
    name="humantime",
    help="Humantime: natural-language time tracking for the terminal",
    add_completion=False,
)

# Initialize console for rich output
console = Console()

# Global tracker instance
tracker: Optional[TimeTracker] = None

# Set by the --json global option
json_output = False


def get_tracker() -> TimeTracker:
    """Get or initialize the global time tracker instance."""
    global tracker
    if tracker is None:
        config = get_config_manager()
        tracker = TimeTracker(
            config.get_data_dir(),
            owner=config.get_owner(),
            note_separator=config.get_note_separator(),
        )
    return tracker


def _fail(error: HumantimeError) -> None:
    """Print an error and exit with status 1."""
    if isinstance(error, ParseError):
        message = error.format_with_examples()
    else:
        message = str(error)
    console.print(f"[red]Error: {message}[/red]", highlight=False)
    raise typer.Exit(1)


def _echo_json(data: Any) -> None:
    typer.echo(json.dumps(data, indent=2, default=str))


def _block_json(block: Optional[Block], now: datetime) -> Optional[Dict[str, Any]]:
    return block.to_output(now).model_dump(mode="json") if block else None


def _split_tags(tags: Optional[List[str]]) -> List[str]:
    """Accept repeated and comma-separated --tag values."""
    result: List[str] = []
    for value in tags or []:
        result.extend(t.strip() for t in value.split(","))
    return [t for t in result if t]


def _styled_path(block: Block) -> str:
    config = get_config_manager()
    text = f"[{config.get_color('project')}]{block.project_sid}[/]"
    if block.task_sid:
        text += f"/[{config.get_color('task')}]{block.task_sid}[/]"
    return text


def _project_sid(path: str) -> str:
    """Normalized project SID from a "project" or "project/task" path."""
    return normalize_sid(parse_project_task(path)[0], "project")


def _resolve_range(phrase: str, now: datetime) -> Tuple[datetime, Optional[datetime]]:
    """A period phrase gives a full range; anything else only a lower bound."""
    if is_period_phrase(phrase):
        period = resolve_period(phrase, now)
        return period.start, period.end
    return resolve_instant(phrase, now), None


def _print_started(block: Block, verb: str, stopped: Optional[Block]) -> None:
    if stopped is not None:
        console.print(f"[yellow]Stopped previous block: {stopped.project_sid}[/yellow]")
    console.print(f"[green]✓[/green] {verb} tracking: [bold]{_styled_path(block)}[/bold]")
    console.print(f"[dim]Started: {format_datetime(block.timestamp_start)}[/dim]")
    if block.timestamp_end is not None:
        console.print(f"[dim]Ended: {format_datetime(block.timestamp_end)}[/dim]")
    if block.note:
        console.print(f"[dim]Note: {block.note}[/dim]")
    if block.tags:
        console.print(f"[dim]Tags: {', '.join(block.tags)}[/dim]")
    console.print(f"[dim]Block: {block.short_id}[/dim]")


def _start_or_switch(
    verb: str,
    words: Optional[List[str]],
    project: Optional[str],
    task: Optional[str],
    note: Optional[str],
    start: Optional[str],
    end: Optional[str],
    tag: Optional[List[str]],
) -> None:
    try:
        time_tracker = get_tracker()
        now = local_now()

        parsed = parse_args(words or []).merge(project, task, note, start, end).process(now)
        if not parsed.project_sid:
            raise ValidationError("project", "", "a project is required (e.g. 'start clientwork')")

        stopped = time_tracker.get_active_block()
        block = time_tracker.start(
            parsed.project_sid,
            parsed.task_sid,
            parsed.note,
            tags=_split_tags(tag),
            now=now,
            start=parsed.timestamp_start,
            end=parsed.timestamp_end,
        )
        if stopped is not None:
            stopped = time_tracker.get_block(stopped.key)

        if json_output:
            _echo_json({"block": _block_json(block, now), "stopped": _block_json(stopped, now)})
            return
        _print_started(block, verb, stopped)

    except HumantimeError as e:
        _fail(e)


@app.command()
def start(
    words: Optional[List[str]] = typer.Argument(
        None, help="Project, task and time, e.g. 'clientwork/api 2 hours ago'"
    ),
    project: Optional[str] = typer.Option(None, "--project", "-p", help="Project (or project/task)"),
    task: Optional[str] = typer.Option(None, "--task", help="Task within the project"),
    note: Optional[str] = typer.Option(None, "--note", "-n", help="Note for the block"),
    start_at: Optional[str] = typer.Option(None, "--start", "-s", help="Start time phrase"),
    end_at: Optional[str] = typer.Option(
        None, "--end", "-e", help="End time phrase (records a completed block)"
    ),
    tag: Optional[List[str]] = typer.Option(None, "--tag", "-t", help="Add tags to the block"),
) -> None:
    """Start tracking time, stopping any active block first."""
    _start_or_switch("Started", words, project, task, note, start_at, end_at, tag)


@app.command()
def switch(
    words: Optional[List[str]] = typer.Argument(None, help="Project, task and time"),
    project: Optional[str] = typer.Option(None, "--project", "-p", help="Project (or project/task)"),
    task: Optional[str] = typer.Option(None, "--task", help="Task within the project"),
    note: Optional[str] = typer.Option(None, "--note", "-n", help="Note for the block"),
    start_at: Optional[str] = typer.Option(None, "--start", "-s", help="Start time phrase"),
    tag: Optional[List[str]] = typer.Option(None, "--tag", "-t", help="Add tags to the block"),
) -> None:
    """Stop the active block and start tracking something else."""
    _start_or_switch("Switched to", words, project, task, note, start_at, None, tag)


@app.command()
def stop(
    words: Optional[List[str]] = typer.Argument(
        None, help="Optional note and end time, e.g. 'with note \"done\" 10 minutes ago'"
    ),
    note: Optional[str] = typer.Option(None, "--note", "-n", help="Note to append"),
    end_at: Optional[str] = typer.Option(None, "--end", "-e", help="End time phrase"),
    block_ref: Optional[str] = typer.Option(None, "--block", "-b", help="Block id to stop"),
) -> None:
    """Stop the currently active block."""
    try:
        time_tracker = get_tracker()
        now = local_now()

        parsed = parse_args(words or [])
        text = note or parsed.note or (parsed.raw_project if parsed.has_project else "")
        phrase = end_at or parsed.raw_end or parsed.raw_start
        end = resolve_instant(phrase, now) if phrase else now
        block_key = time_tracker.find_block(block_ref).key if block_ref else None

        stopped = time_tracker.stop(text, now=now, end=end, block_key=block_key)

        if json_output:
            _echo_json({"block": _block_json(stopped, now)})
            return
        if stopped is None:
            console.print("[yellow]Nothing to stop[/yellow]")
            return

        console.print(f"[green]✓[/green] Stopped: [bold]{_styled_path(stopped)}[/bold]")
        console.print(f"[dim]Duration: {format_duration(stopped.duration(now))}[/dim]")
        if stopped.note:
            console.print(f"[dim]Note: {stopped.note}[/dim]")

    except HumantimeError as e:
        _fail(e)


@app.command()
def resume() -> None:
    """Resume tracking the project and task that were active before the last one."""
    try:
        time_tracker = get_tracker()
        now = local_now()
        block = time_tracker.resume(now=now)

        if json_output:
            _echo_json({"block": _block_json(block, now)})
            return
        if block is None:
            console.print("[yellow]Nothing to resume[/yellow]")
            return
        _print_started(block, "Resumed", None)

    except HumantimeError as e:
        _fail(e)


@app.command()
def status() -> None:
    """Show the active block and the block before it."""
    try:
        time_tracker = get_tracker()
        now = local_now()
        active = time_tracker.get_active_block()
        previous = time_tracker.get_previous_block()

        if json_output:
            _echo_json(
                {
                    "state": time_tracker.get_state().value,
                    "active": _block_json(active, now),
                    "previous": _block_json(previous, now),
                }
            )
            return

        if active is None:
            console.print("[dim]Not tracking[/dim]")
            if previous is not None:
                console.print(f"[dim]Previous: {format_project_path(previous.project_sid, previous.task_sid)}[/dim]")
            return

        table = Table(show_header=False, show_edge=False, pad_edge=False)
        table.add_column("Key", style="dim")
        table.add_column("Value")

        table.add_row("Project", f"[bold]{_styled_path(active)}[/bold]")
        table.add_row("Started", format_datetime(active.timestamp_start))
        table.add_row("Duration", format_duration(active.duration(now)))
        if active.note:
            table.add_row("Note", active.note)
        if active.tags:
            table.add_row("Tags", ", ".join(active.tags))
        if previous is not None:
            table.add_row("Previous", format_project_path(previous.project_sid, previous.task_sid))
        table.add_row("Block", active.short_id)

        console.print(f"[{get_config_manager().get_color('active')}]● Tracking[/]")
        console.print(table)

    except HumantimeError as e:
        _fail(e)


@app.command()
def log(
    project: str = typer.Argument(..., help="Project (or project/task)"),
    duration: str = typer.Argument(..., help="How long, e.g. '1h30m'"),
    words: Optional[List[str]] = typer.Argument(
        None, help="When it ended, e.g. 'yesterday at 5pm' (default: now)"
    ),
    note: Optional[str] = typer.Option(None, "--note", "-n", help="Note for the block"),
    tag: Optional[List[str]] = typer.Option(None, "--tag", "-t", help="Add tags to the block"),
) -> None:
    """Record a completed block of time."""
    try:
        time_tracker = get_tracker()
        now = local_now()

        parsed = parse_args(words or [])
        parsed.set_project_path(project)
        parsed.merge(note=note).process(now)
        phrase = parsed.raw_end or parsed.raw_start
        end = resolve_instant(phrase, now) if phrase else now

        block = time_tracker.log(
            parsed.project_sid,
            resolve_duration(duration),
            end=end,
            task_sid=parsed.task_sid,
            note=parsed.note,
            tags=_split_tags(tag),
            now=now,
        )

        if json_output:
            _echo_json({"block": _block_json(block, now)})
            return
        console.print(
            f"[green]✓[/green] Logged {format_duration(block.duration())} on "
            f"[bold]{_styled_path(block)}[/bold]"
        )
        console.print(f"[dim]{format_block_span(block)}[/dim]")

    except HumantimeError as e:
        _fail(e)


@app.command()
def blocks(
    words: Optional[List[str]] = typer.Argument(
        None, help="Filter words, e.g. 'on clientwork this week'"
    ),
    project: Optional[str] = typer.Option(None, "--project", "-p", help="Filter by project"),
    task: Optional[str] = typer.Option(None, "--task", help="Filter by task (needs a project)"),
    tag: Optional[str] = typer.Option(None, "--tag", "-t", help="Filter by tag"),
    from_: Optional[str] = typer.Option(None, "--from", "-f", help="Period or start time"),
    until: Optional[str] = typer.Option(None, "--until", "-u", help="Only blocks ended before"),
    limit: Optional[int] = typer.Option(None, "--limit", "-l", help="Number of blocks to show"),
    show_all: bool = typer.Option(False, "--all", "-a", help="Show every matching block"),
) -> None:
    """List blocks, most recent first."""
    try:
        time_tracker = get_tracker()
        now = local_now()

        parsed = parse_args(words or []).merge(project, task).process(now)

        start_after: Optional[datetime] = None
        end_before: Optional[datetime] = None
        period_end: Optional[datetime] = None
        phrase = from_ or (parsed.raw_start if parsed.has_start else "")
        if phrase:
            start_after, period_end = _resolve_range(phrase, now)
            end_before = period_end
        until_phrase = until or parsed.raw_end
        if until_phrase:
            end_before = resolve_instant(until_phrase, now)

        if show_all:
            limit = 0
        elif limit is None:
            limit = get_config_manager().get_default_list_limit()

        criteria = FilterCriteria(
            project_sid=parsed.project_sid,
            task_sid=parsed.task_sid,
            tag=tag or "",
            start_after=start_after,
            end_before=end_before,
        )
        found = time_tracker.list_blocks(criteria)
        if period_end is not None:
            # Blocks must also start inside the period.
            found = [b for b in found if b.timestamp_start < period_end]
        if limit:
            found = found[:limit]

        if json_output:
            _echo_json([_block_json(b, now) for b in found])
            return

        if not found:
            console.print("[dim]No blocks found[/dim]")
            return

        _print_block_table(found, now)

    except HumantimeError as e:
        _fail(e)


def _print_block_table(found: List[Block], now: datetime) -> None:
    config = get_config_manager()
    table = Table()
    table.add_column("ID", style="dim")
    table.add_column("Project", style=config.get_color("project"))
    table.add_column("Time", style="dim")
    table.add_column("Duration", justify="right", style=config.get_color("duration"))
    table.add_column("Note")
    table.add_column("Tags", style=config.get_color("tags"))

    total = timedelta(0)
    for block in found:
        duration = block.duration(now)
        total += duration
        duration_str = format_duration(duration)
        if block.is_active:
            duration_str = f"[{config.get_color('active')}]{duration_str} ●[/]"
        table.add_row(
            block.short_id,
            format_project_path(block.project_sid, block.task_sid),
            format_block_span(block),
            duration_str,
            block.note,
            ", ".join(block.tags),
        )

    console.print(table)
    console.print(
        f"\n[bold]Total: {format_duration(total)}[/bold] "
        f"[dim]({len(found)} {pluralize(len(found), 'block')})[/dim]"
    )


@app.command("blocks-show")
def blocks_show(ref: str = typer.Argument(..., help="Block id or key prefix")) -> None:
    """Show one block in detail."""
    try:
        now = local_now()
        block = get_tracker().find_block(ref)

        if json_output:
            _echo_json(_block_json(block, now))
            return

        table = Table(show_header=False, show_edge=False, pad_edge=False)
        table.add_column("Key", style="dim")
        table.add_column("Value")
        table.add_row("Key", block.key)
        table.add_row("Project", _styled_path(block))
        table.add_row("Start", format_datetime(block.timestamp_start))
        table.add_row(
            "End", format_datetime(block.timestamp_end) if block.timestamp_end else "[yellow]Active[/yellow]"
        )
        table.add_row("Duration", format_duration(block.duration(now)))
        table.add_row("Note", block.note or "[dim]-[/dim]")
        table.add_row("Tags", ", ".join(block.tags) or "[dim]-[/dim]")
        console.print(table)

    except HumantimeError as e:
        _fail(e)


@app.command("blocks-edit")
def blocks_edit(
    ref: str = typer.Argument(..., help="Block id or key prefix"),
    project: Optional[str] = typer.Option(None, "--project", "-p", help="New project (or project/task)"),
    task: Optional[str] = typer.Option(None, "--task", help="New task"),
    note: Optional[str] = typer.Option(None, "--note", "-n", help="Replace the note"),
    tag: Optional[List[str]] = typer.Option(None, "--tag", "-t", help="Replace the tags"),
    start_at: Optional[str] = typer.Option(None, "--start", "-s", help="New start time phrase"),
    end_at: Optional[str] = typer.Option(None, "--end", "-e", help="New end time phrase"),
) -> None:
    """Edit a block's project, task, note, tags or times."""
    try:
        time_tracker = get_tracker()
        now = local_now()
        block = time_tracker.find_block(ref)

        project_sid, task_sid = project, task
        if project and "/" in project:
            project_sid, path_task = parse_project_task(project)
            task_sid = task if task is not None else path_task

        edited = time_tracker.edit_block(
            block.key,
            project_sid=project_sid,
            task_sid=task_sid,
            note=note,
            tags=_split_tags(tag) if tag else None,
            start=resolve_instant(start_at, now) if start_at else None,
            end=resolve_instant(end_at, now) if end_at else None,
        )

        if json_output:
            _echo_json(_block_json(edited, now))
            return
        console.print(f"[green]✓[/green] Updated block {edited.short_id}")
        console.print(f"[dim]{format_project_path(edited.project_sid, edited.task_sid)}: {format_block_span(edited)}[/dim]")

    except HumantimeError as e:
        _fail(e)


@app.command("blocks-delete")
def blocks_delete(
    ref: str = typer.Argument(..., help="Block id or key prefix"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Delete without asking"),
) -> None:
    """Delete a block (can be undone)."""
    try:
        time_tracker = get_tracker()
        now = local_now()
        block = time_tracker.find_block(ref)

        if not yes and not json_output:
            summary = f"{format_project_path(block.project_sid, block.task_sid)} ({format_block_span(block)})"
            if not Confirm.ask(f"Delete block {block.short_id}: {summary}?"):
                console.print("[dim]Cancelled[/dim]")
                return

        deleted = time_tracker.delete_block(block.key)

        if json_output:
            _echo_json({"deleted": _block_json(deleted, now)})
            return
        console.print(f"[green]✓[/green] Deleted block {deleted.short_id}")
        console.print("[dim]Use 'humantime undo' to restore it[/dim]")

    except HumantimeError as e:
        _fail(e)


@app.command()
def stats(
    words: Optional[List[str]] = typer.Argument(None, help="Period, e.g. 'this week' (default: today)"),
    project: Optional[str] = typer.Option(None, "--project", "-p", help="Only this project"),
    tag: Optional[str] = typer.Option(None, "--tag", "-t", help="Only blocks with this tag"),
) -> None:
    """Summarize tracked time by project and by day."""
    try:
        time_tracker = get_tracker()
        now = local_now()

        name = " ".join(words or []) or "today"
        if not is_period_phrase(name):
            raise ParseError(name, "period", "unknown period", PERIOD_EXAMPLES)
        project_sid = _project_sid(project) if project else ""

        summary = time_tracker.stats(resolve_period(name, now), project_sid, tag or "", now=now)

        if json_output:
            _echo_json(
                {
                    "period": name,
                    "start": summary.period.start.isoformat(),
                    "end": summary.period.end.isoformat(),
                    "total_seconds": int(summary.total.total_seconds()),
                    "block_count": summary.block_count,
                    "projects": [
                        {
                            "project_sid": p.project_sid,
                            "duration_seconds": int(p.duration.total_seconds()),
                            "block_count": p.block_count,
                            "percentage": round(percentage_of(p.duration, summary.total), 1),
                        }
                        for p in summary.projects
                    ],
                    "days": [
                        {
                            "date": d.date,
                            "duration_seconds": int(d.duration.total_seconds()),
                            "block_count": d.block_count,
                        }
                        for d in summary.days
                    ],
                }
            )
            return

        console.print(
            f"[bold]Stats for {name}: {format_date(summary.period.start)} to "
            f"{format_date(summary.period.end - timedelta(microseconds=1))}[/bold]"
        )
        if not summary.block_count:
            console.print("[dim]No blocks found[/dim]")
            return

        config = get_config_manager()
        table = Table(show_header=True, header_style="bold")
        table.add_column("Project", style=config.get_color("project"))
        table.add_column("Duration", justify="right", style=config.get_color("duration"))
        table.add_column("Blocks", justify="center")
        table.add_column("Share", justify="right")
        for group in summary.projects:
            table.add_row(
                group.project_sid,
                format_duration(group.duration),
                str(group.block_count),
                format_percentage(percentage_of(group.duration, summary.total)),
            )
        console.print(table)

        if len(summary.days) > 1:
            days = Table(show_header=True, header_style="bold")
            days.add_column("Date", style="cyan")
            days.add_column("Duration", justify="right", style=config.get_color("duration"))
            days.add_column("Blocks", justify="center")
            for day in summary.days:
                days.add_row(day.date, format_duration(day.duration), str(day.block_count))
            console.print(days)

        console.print(f"\n[bold]Total: {format_duration(summary.total)}[/bold]")

    except HumantimeError as e:
        _fail(e)


def _goal_row(time_tracker: TimeTracker, goal: Goal, now: datetime) -> Dict[str, Any]:
    progress = time_tracker.goal_progress(goal, now)
    return {
        "project_sid": goal.project_sid,
        "type": goal.type.value,
        "target_seconds": int(goal.target.total_seconds()),
        "current_seconds": int(progress.current.total_seconds()),
        "remaining_seconds": int(progress.remaining.total_seconds()),
        "percentage": round(progress.percentage, 1),
        "is_complete": progress.is_complete,
    }


@app.command()
def goal(project: Optional[str] = typer.Argument(None, help="Project to show (default: all)")) -> None:
    """Show progress toward daily and weekly goals."""
    try:
        time_tracker = get_tracker()
        now = local_now()

        if project:
            found = time_tracker.get_goal(_project_sid(project))
            goals = [found] if found else []
        else:
            goals = time_tracker.list_goals()

        rows = [_goal_row(time_tracker, g, now) for g in goals]
        if json_output:
            _echo_json(rows)
            return
        if not rows:
            console.print("[dim]No goals set. Use 'humantime goal-set PROJECT 4h'[/dim]")
            return

        table = Table(show_header=True, header_style="bold")
        table.add_column("Project", style=get_config_manager().get_color("project"))
        table.add_column("Goal")
        table.add_column("Progress")
        table.add_column("Done", justify="right")
        table.add_column("Remaining", justify="right")
        for row in rows:
            status_style = "green" if row["is_complete"] else "yellow"
            table.add_row(
                row["project_sid"],
                f"{format_duration(timedelta(seconds=row['target_seconds']))} {row['type']}",
                f"[{status_style}]{progress_bar(row['percentage'])}[/] {format_percentage(row['percentage'])}",
                format_duration(timedelta(seconds=row["current_seconds"])),
                format_duration(timedelta(seconds=row["remaining_seconds"])),
            )
        console.print(table)

    except HumantimeError as e:
        _fail(e)


@app.command("goal-set")
def goal_set(
    project: str = typer.Argument(..., help="Project"),
    target: str = typer.Argument(..., help="Target duration, e.g. '4h'"),
    weekly: bool = typer.Option(False, "--weekly", "-w", help="Weekly instead of daily goal"),
) -> None:
    """Set a daily or weekly goal for a project."""
    try:
        time_tracker = get_tracker()
        now = local_now()
        project_sid = _project_sid(project)
        goal_type = GoalType.WEEKLY if weekly else GoalType.DAILY

        saved = time_tracker.set_goal(project_sid, goal_type, resolve_duration(target))

        if json_output:
            _echo_json(_goal_row(time_tracker, saved, now))
            return
        console.print(
            f"[green]✓[/green] Goal set: [bold]{saved.project_sid}[/bold] "
            f"{format_duration(saved.target)} {saved.type.value}"
        )

    except HumantimeError as e:
        _fail(e)


@app.command("goal-delete")
def goal_delete(project: str = typer.Argument(..., help="Project")) -> None:
    """Remove a project's goal."""
    try:
        project_sid = _project_sid(project)
        deleted = get_tracker().delete_goal(project_sid)

        if json_output:
            _echo_json({"deleted": deleted})
            return
        if deleted:
            console.print(f"[green]✓[/green] Removed goal for {project_sid}")
        else:
            console.print(f"[yellow]No goal set for {project_sid}[/yellow]")

    except HumantimeError as e:
        _fail(e)


@app.command()
def projects(
    show_all: bool = typer.Option(False, "--all", "-a", help="Include archived projects"),
) -> None:
    """List projects with their total tracked time."""
    try:
        time_tracker = get_tracker()
        now = local_now()
        totals = {g.project_sid: g for g in aggregate_by_project(time_tracker.list_blocks(), now)}
        found = time_tracker.list_projects(include_archived=show_all)

        if json_output:
            _echo_json(
                [
                    {
                        **p.model_dump(mode="json"),
                        "duration_seconds": int(totals[p.sid].duration.total_seconds()) if p.sid in totals else 0,
                        "block_count": totals[p.sid].block_count if p.sid in totals else 0,
                    }
                    for p in found
                ]
            )
            return
        if not found:
            console.print("[dim]No projects yet. Start tracking with 'humantime start PROJECT'[/dim]")
            return

        table = Table(show_header=True, header_style="bold")
        table.add_column("Project", style=get_config_manager().get_color("project"))
        table.add_column("Name")
        table.add_column("Total", justify="right", style=get_config_manager().get_color("duration"))
        table.add_column("Blocks", justify="center")
        for p in found:
            group = totals.get(p.sid)
            table.add_row(
                p.sid,
                f"{p.display_name} [dim](archived)[/dim]" if p.archived else p.display_name,
                format_duration(group.duration) if group else "-",
                str(group.block_count) if group else "0",
            )
        console.print(table)

    except HumantimeError as e:
        _fail(e)


def _print_project(project: Project) -> None:
    console.print(f"  SID: {project.sid}")
    console.print(f"  Name: {project.display_name}")
    if project.color:
        console.print(f"  Color: [{project.color}]{project.color}[/]")


@app.command("project-new")
def project_new(
    name: str = typer.Argument(..., help="Display name, e.g. 'Client Work'"),
    sid: Optional[str] = typer.Option(None, "--sid", "-s", help="Custom SID (derived from the name if omitted)"),
    color: Optional[str] = typer.Option(None, "--color", "-c", help="Hex color (#RRGGBB)"),
) -> None:
    """Create a project before tracking time on it."""
    try:
        project = get_tracker().create_project(name, sid=sid, color=color)

        if json_output:
            _echo_json(project.model_dump(mode="json"))
            return
        console.print(f"[green]✓[/green] Created project [bold]{project.sid}[/bold]")
        _print_project(project)

    except HumantimeError as e:
        _fail(e)


@app.command("project-edit")
def project_edit(
    project: str = typer.Argument(..., help="Project SID"),
    name: Optional[str] = typer.Option(None, "--name", "-n", help="New display name"),
    color: Optional[str] = typer.Option(None, "--color", "-c", help="New hex color, or '' to clear"),
) -> None:
    """Change a project's display name or color."""
    try:
        updated = get_tracker().edit_project(project, display_name=name, color=color)

        if json_output:
            _echo_json(updated.model_dump(mode="json"))
            return
        console.print(f"[green]✓[/green] Updated project [bold]{updated.sid}[/bold]")
        _print_project(updated)

    except HumantimeError as e:
        _fail(e)


@app.command("project-archive")
def project_archive(
    project: str = typer.Argument(..., help="Project SID"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Archive without asking"),
) -> None:
    """Archive a project. Its blocks are kept; it is hidden from 'projects'."""
    try:
        time_tracker = get_tracker()
        project_sid = _project_sid(project)

        if not yes and not json_output:
            if not Confirm.ask(f"Archive project {project_sid}?"):
                console.print("[dim]Cancelled[/dim]")
                return

        archived = time_tracker.archive_project(project_sid)

        if json_output:
            _echo_json(archived.model_dump(mode="json"))
            return
        console.print(f"[green]✓[/green] Archived project {archived.sid}")

    except HumantimeError as e:
        _fail(e)


@app.command()
def undo() -> None:
    """Undo the last start, stop, log or delete."""
    try:
        state = get_tracker().undo()

        if json_output:
            _echo_json(
                {"undone": state.action.value if state else None, "block_key": state.block_key if state else None}
            )
            return
        if state is None:
            console.print("[yellow]Nothing to undo[/yellow]")
            return
        console.print(f"[green]✓[/green] Undid {state.action.value} of block {state.block_key.split(':', 1)[-1][:8]}")

    except HumantimeError as e:
        _fail(e)


def _flatten(prefix: str, value: Any) -> List[Tuple[str, Any]]:
    if isinstance(value, dict):
        items: List[Tuple[str, Any]] = []
        for key in sorted(value):
            items.extend(_flatten(f"{prefix}.{key}" if prefix else key, value[key]))
        return items
    return [(prefix, value)]


@app.command()
def config(
    key: Optional[str] = typer.Argument(None, help="Configuration key to get/set"),
    value: Optional[str] = typer.Argument(None, help="Value to set (omit to get current value)"),
    list_all: bool = typer.Option(False, "--list", "-l", help="List all configuration"),
    reset: bool = typer.Option(False, "--reset", help="Reset to default configuration"),
) -> None:
    """Manage Humantime configuration."""
    config_manager = get_config_manager()

    if reset:
        if Confirm.ask("Reset all configuration to defaults?"):
            config_manager.reset_to_defaults()
            console.print("[green]✓[/green] Configuration reset to defaults")
        return

    if list_all:
        if json_output:
            _echo_json(config_manager.all())
            return
        console.print("[bold]Current Configuration:[/bold]")

        table = Table(show_header=True, header_style="bold")
        table.add_column("Setting", style="cyan")
        table.add_column("Value", style="white")
        for setting, val in _flatten("", config_manager.all()):
            table.add_row(setting, str(val))
        console.print(table)

        stats = get_tracker().get_database_stats()
        console.print(
            f"[dim]{stats['total_blocks']} blocks, database {format_bytes(stats['database_size'])}[/dim]"
        )
        return

    if key is None:
        console.print("Use --list to see all configuration or provide a key to get/set")
        return

    if value is None:
        current_value = config_manager.get(key)
        if current_value is None:
            console.print(f"[red]Configuration key '{key}' not found[/red]")
            raise typer.Exit(1)
        if json_output:
            _echo_json({key: current_value})
        else:
            console.print(f"[cyan]{key}[/cyan] = [white]{current_value}[/white]")
        return

    # Set value (try to parse as JSON first, then as string)
    try:
        parsed_value = json.loads(value)
    except json.JSONDecodeError:
        parsed_value = value

    config_manager.set(key, parsed_value)
    console.print(f"[green]✓[/green] Set [cyan]{key}[/cyan] = [white]{parsed_value}[/white]")


@app.command()
def version() -> None:
    """Show Humantime version information."""
    from .. import __version__

    console.print(f"Humantime version {__version__}")


def version_callback(value: bool) -> None:
    """Version callback that prints version and exits."""
    if value:
        version()
        raise typer.Exit()


@app.callback()
def main(
    ctx: typer.Context,
    json_flag: bool = typer.Option(False, "--json", help="Print machine-readable JSON"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
    version: Optional[bool] = typer.Option(
        None,
        "--version",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit",
    ),
) -> None:
    """
    Humantime: natural-language time tracking for the terminal.

    Track blocks of work with phrases like "start clientwork 2 hours ago".
    """
    global json_output
    json_output = json_flag
    setup_logging("DEBUG" if verbose else get_config_manager().get_log_level())


if __name__ == "__main__":
    app()
