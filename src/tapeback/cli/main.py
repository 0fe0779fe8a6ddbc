"""Main CLI interface for tapeback."""

from pathlib import Path
from typing import Optional, Tuple

import click
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from tapeback.cli.install import (
    create_hook_config,
    get_claude_config_dir,
    get_project_claude_dir,
    merge_settings,
    write_default_config,
)
from tapeback.core.classifier import classify, parse_body_timestamp
from tapeback.core.config import TapebackConfig, load_config
from tapeback.core.errors import TapebackError
from tapeback.core.history import MAX_BRANCH_COMMITS, HistoryReader
from tapeback.core.layout import layout
from tapeback.core.planner import plan as plan_squash
from tapeback.core.resolver import marked_targets, parse_target_time, resolve
from tapeback.core.rewriter import DirtyPolicy, HistoryRewriter, todo_lines
from tapeback.log import configure_logging
from tapeback.models import (
    AtCriterion,
    ClassifiedCommit,
    CommitKind,
    CountCriterion,
    IdentifierCriterion,
    NoRewrite,
    NoRewriteReason,
    PlanAction,
    ResolutionFailure,
)

console = Console()

KIND_STYLES = {
    CommitKind.FEATURE: "blue",
    CommitKind.BASE: "green",
    CommitKind.SHARED: "dim",
    CommitKind.DIVERGE: "yellow",
}


def get_reader_or_exit() -> Tuple[HistoryReader, TapebackConfig]:
    """Open the enclosing repository and its config, or exit with an error."""
    try:
        reader = HistoryReader.from_path(Path.cwd())
    except TapebackError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise click.Abort() from e

    if not reader.has_commits():
        console.print("[yellow]Repository has no commits yet[/yellow]")
        raise click.Abort()

    return reader, load_config(reader.project_root)


def _classified(reader: HistoryReader, config: TapebackConfig, limit: int):
    snapshot = reader.snapshot(config.base_ref, branch_limit=limit)
    return classify(snapshot.branch, snapshot.base, snapshot.shared, config.rec_tag)


def _recorded_at(commit: ClassifiedCommit) -> str:
    stamp = parse_body_timestamp(commit.body) or commit.authored_at
    return stamp.strftime("%Y-%m-%d %H:%M")


@click.group()
@click.version_option(package_name="tapeback")
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
def main(verbose: bool):
    """tapeback - Rewind and squash recorded Claude Code edits."""
    configure_logging(verbose)


@main.command()
@click.option("--global", "global_install", is_flag=True, help="Install into ~/.claude instead of the project")
def init(global_install: bool):
    """Install the recorder hook into Claude Code settings."""
    if global_install:
        claude_dir = get_claude_config_dir()
        project_root = None
    else:
        try:
            project_root = HistoryReader.from_path(Path.cwd()).project_root
        except TapebackError as e:
            console.print("[red]Error: tapeback requires a git repository. Run 'git init' first.[/red]")
            raise click.Abort() from e
        claude_dir = get_project_claude_dir(project_root)

    settings_file = claude_dir / "settings.json"
    if merge_settings(settings_file, create_hook_config()):
        console.print(f"[green]✓ Hook wired in:[/green] {settings_file}")
    else:
        console.print(f"[dim]· Hook already wired in {settings_file}[/dim]")

    if project_root is not None:
        if write_default_config(project_root):
            console.print("[green]✓ Config created:[/green] .tapeback.json")
        else:
            console.print("[dim]· Config exists: .tapeback.json (skipped)[/dim]")

    console.print("[bold]tapeback is ready.[/bold] Every Claude Code edit will now be recorded.")


@main.command("list")
@click.option("--limit", default=MAX_BRANCH_COMMITS, show_default=True, help="Branch commits to inspect")
def list_recordings(limit: int):
    """List this branch's recordings, newest first."""
    reader, config = get_reader_or_exit()
    targets = marked_targets(_classified(reader, config, limit))

    if not targets:
        console.print(f"[yellow]No {escape(config.rec_tag)} recordings on this branch[/yellow]")
        return

    table = Table(title=f"Recordings on {reader.current_branch()}")
    table.add_column("#", style="cyan", justify="right")
    table.add_column("Commit", style="magenta", no_wrap=True)
    table.add_column("Recorded", style="blue")
    table.add_column("Subject", style="green")

    for index, commit in enumerate(targets):
        table.add_row(str(index), commit.short_id, _recorded_at(commit), escape(commit.subject))

    console.print(table)
    console.print("[dim]Use 'tapeback rewind N' to drop the N most recent recordings[/dim]")


@main.command()
@click.argument("count", type=click.IntRange(min=0), required=False)
@click.option("--to", "identifier", help="Rewind to a specific recording hash")
@click.option("--at", "at_time", help="Rewind to the last recording at or before TIME (ISO or HH:MM, UTC)")
@click.option("--stash", "dirty", flag_value="stash", help="Stash uncommitted changes and re-apply them")
@click.option("--discard", "dirty", flag_value="discard", help="Discard uncommitted changes")
@click.option("--limit", default=MAX_BRANCH_COMMITS, show_default=True, help="Branch commits to inspect")
@click.option("--yes", "-y", is_flag=True, help="Do not ask for confirmation")
def rewind(
    count: Optional[int],
    identifier: Optional[str],
    at_time: Optional[str],
    dirty: Optional[str],
    limit: int,
    yes: bool,
):
    """Reset the branch to an earlier recording.

    \b
      tapeback rewind            # drop the most recent recording
      tapeback rewind 3          # drop the 3 most recent recordings
      tapeback rewind --to abc123
      tapeback rewind --at 10:20
    """
    given = [v for v in (count, identifier, at_time) if v is not None]
    if len(given) > 1:
        raise click.UsageError("Use only one of COUNT, --to and --at")

    if identifier is not None:
        criterion = IdentifierCriterion(identifier=identifier)
    elif at_time is not None:
        try:
            criterion = AtCriterion(at=parse_target_time(at_time))
        except ValueError as e:
            raise click.BadParameter(str(e), param_hint="--at") from e
    else:
        criterion = CountCriterion(count=1 if count is None else count)

    reader, config = get_reader_or_exit()
    target = resolve(_classified(reader, config, limit), criterion)

    if isinstance(target, ResolutionFailure):
        console.print(f"[red]{target.detail}[/red]")
        raise click.Abort()

    dropped = reader.linear_range(target.id, "HEAD")
    if not dropped:
        console.print(f"[yellow]Already at {target.short_id} - {escape(target.subject)}[/yellow]")
        return

    console.print(f"[bold]Target:[/bold] {target.short_id} - {escape(target.subject)}")
    console.print(f"[bold]Commits to drop:[/bold] {len(dropped)}")
    for commit in reversed(dropped):
        console.print(f"  • {commit.short_id} {escape(commit.subject)}")

    policy = DirtyPolicy(dirty) if dirty else DirtyPolicy.REFUSE
    if policy == DirtyPolicy.REFUSE and reader.is_dirty():
        choice = click.prompt(
            "Uncommitted changes present. Stash, discard or abort?",
            type=click.Choice(["stash", "discard", "abort"]),
            default="stash",
        )
        if choice == "abort":
            raise click.Abort()
        policy = DirtyPolicy(choice)

    if not yes and not click.confirm("Rewind?", default=False):
        raise click.Abort()

    try:
        result = HistoryRewriter(reader.repo).rewind(target.id, policy)
    except TapebackError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise click.Abort() from e

    console.print(f"[green]✓ Rewound to {target.short_id}[/green]")
    if result.stashed and not result.stash_restored:
        console.print("[yellow]Stashed changes conflicted; they are still in 'git stash list'[/yellow]")
    console.print(f"[dim]Undo with: git reset --hard {result.backup_tag}[/dim]")


@main.command()
@click.option("--message", "-m", help="Message for the squashed commit")
@click.option("--dry-run", is_flag=True, help="Show the plan without rewriting history")
@click.option("--yes", "-y", is_flag=True, help="Do not ask for confirmation")
def squash(message: Optional[str], dry_run: bool, yes: bool):
    """Squash the branch's recordings into a single commit.

    Commits between the first and last recording are folded in too;
    commits outside that zone are replayed unchanged.
    """
    reader, config = get_reader_or_exit()
    onto, commits = reader.squash_range(config.base_ref)

    result = plan_squash(commits, config.rec_tag, message or "")

    if isinstance(result, NoRewrite):
        if result.reason == NoRewriteReason.EMPTY:
            console.print(f"[yellow]No {escape(config.rec_tag)} recordings since {config.base_ref}; nothing to squash[/yellow]")
        else:
            console.print(
                f"[yellow]Only one recording ({result.marked_ids[0][:7]}); "
                "rename it with 'git commit --amend' or an interactive reword instead[/yellow]"
            )
        return

    table = Table(title=f"Squash plan onto {onto[:7] if onto else 'root'}")
    table.add_column("Action", style="cyan")
    table.add_column("Commit", style="magenta", no_wrap=True)
    table.add_column("Subject", style="green")
    for entry in result.entries:
        style = "bold" if entry.action == PlanAction.REWORD else ""
        table.add_row(entry.action.value, entry.commit_id[:7], escape(entry.subject), style=style)
    console.print(table)
    console.print(f"[bold]{len(result.zone)} commits → 1[/bold], {len(result.kept)} kept")

    if dry_run:
        for line in todo_lines(result):
            console.print(f"[dim]{line}[/dim]", highlight=False)
        return

    if not message:
        message = click.prompt("Message for the squashed commit")
        result = plan_squash(commits, config.rec_tag, message)

    if not yes and not click.confirm("Rewrite history?", default=False):
        raise click.Abort()

    try:
        outcome = HistoryRewriter(reader.repo).execute(result, onto)
    except TapebackError as e:
        console.print(f"[red]Error: {e}[/red]")
        backup_tag = getattr(e, "backup_tag", None)
        if backup_tag:
            console.print(f"[dim]Pre-squash state is tagged {backup_tag}[/dim]")
        raise click.Abort() from e

    console.print(f"[green]✓ Squashed into {outcome.new_head[:7]}[/green]")
    console.print(f"[dim]Undo with: git reset --hard {outcome.backup_tag}[/dim]")


@main.command()
@click.option("--limit", default=MAX_BRANCH_COMMITS, show_default=True, help="Branch commits to inspect")
def graph(limit: int):
    """Show the branch, its base and shared history as lanes."""
    reader, config = get_reader_or_exit()
    positioned = layout(_classified(reader, config, limit))

    if not positioned:
        console.print("[yellow]No commits to show[/yellow]")
        return

    table = Table(title=f"{reader.current_branch()} vs {config.base_ref}")
    for header in (config.base_ref, "shared", reader.current_branch()):
        table.add_column(header, justify="center", no_wrap=True)
    table.add_column("Commit", style="magenta", no_wrap=True)
    table.add_column("Subject")
    table.add_column("Author", style="dim")

    for item in positioned:
        commit = item.commit
        style = "red" if commit.is_marked else KIND_STYLES[commit.kind]
        dot = "◎" if commit.kind == CommitKind.DIVERGE else "●"
        lanes = ["", "", ""]
        lanes[item.lane_index] = f"[{style}]{dot}[/{style}]"
        table.add_row(*lanes, commit.short_id, escape(commit.subject), commit.author)

    console.print(table)


if __name__ == "__main__":
    main()
