"""Command line interface for git-cleanup."""

from dataclasses import dataclass
from pathlib import Path
from typing import Annotated, Callable, Optional

import typer
from rich.console import Console
from rich.markup import escape

from git_cleanup import __version__
from git_cleanup.git import BranchInfo, GitError, GitRepo, Probe, is_protected
from git_cleanup.log import setup_logging
from git_cleanup.style import styled

app = typer.Typer(
    help="Clean up your git repository",
    add_completion=False,
    context_settings={"help_option_names": ["-h", "--help"]},
)
console = Console()
err_console = Console(stderr=True)


@dataclass(frozen=True)
class RunOptions:
    """Options shared by all cleanup sections."""

    dry_run: bool = False
    force: bool = False
    days: int = 30
    top: int = 10
    protect: tuple[str, ...] = ()


PathOption = Annotated[Path, typer.Option("--path", help="Path to git repository")]
DaysOption = Annotated[
    int, typer.Option("--days", min=0, envvar="GIT_CLEANUP_DAYS", help="Days threshold for stale branches")
]
TopOption = Annotated[int, typer.Option("--top", min=0, envvar="GIT_CLEANUP_TOP", help="Number of large files to show")]
DryRunOption = Annotated[bool, typer.Option("--dry-run", help="Show what would be deleted without deleting")]
ForceOption = Annotated[bool, typer.Option("--force", help="Delete without confirmation")]
ProtectOption = Annotated[
    str,
    typer.Option("--protect", "-p", envvar="GIT_CLEANUP_PROTECT", help="Comma-separated list of branch patterns to keep"),
]


def banner() -> str:
    """Build the usage text shown by `help` and when no command is given."""
    commands = [
        ("merged", "List and delete branches merged into main/master"),
        ("stale", "List and delete branches with no recent commits"),
        ("gone", "Delete branches whose remote tracking branch is gone"),
        ("large", "Find large files in git history"),
        ("all", "Run all cleanup checks"),
        ("prune", "Prune remote tracking branches"),
    ]
    options = [
        ("--days <n>", "Days threshold for stale branches (default: 30)"),
        ("--dry-run", "Show what would be deleted without deleting"),
        ("--force", "Delete without confirmation"),
        ("--top <n>", "Number of large files to show (default: 10)"),
        ("--protect <p>", "Comma-separated branch patterns to keep"),
        ("--path <dir>", "Path to git repository (default: .)"),
    ]
    examples = [
        ("git-cleanup merged", "Delete merged branches"),
        ("git-cleanup stale --days 60", "Find branches inactive for 60+ days"),
        ("git-cleanup large --top 20", "Show top 20 large files"),
        ("git-cleanup all --dry-run", "Preview all cleanup actions"),
    ]
    lines = [
        "",
        f"{styled('bold', 'git-cleanup')} - Clean up your git repository",
        "",
        styled("yellow", "USAGE"),
        escape("  git-cleanup <command> [options]"),
        "",
        styled("yellow", "COMMANDS"),
        *(f"  {styled('green', f'{name:<12}')}{help_text}" for name, help_text in commands),
        "",
        styled("yellow", "OPTIONS"),
        *(f"  {escape(f'{name:<14}')}{help_text}" for name, help_text in options),
        "",
        styled("yellow", "EXAMPLES"),
        *(f"  {example:<29}# {help_text}" for example, help_text in examples),
        "",
    ]
    return "\n".join(lines)


def is_affirmative(answer: str) -> bool:
    """Check if a prompt answer means yes."""
    return answer.strip().lower().startswith("y")


def confirm(question: str) -> bool:
    """Ask a yes/no question on stdin. Anything but yes declines."""
    try:
        return is_affirmative(input(question))
    except EOFError:
        return False


def get_repo(path: Path) -> GitRepo:
    """Get git repository instance."""
    try:
        return GitRepo(path)
    except GitError as err:
        err_console.print(styled("red", "Error: Not a git repository"))
        raise typer.Exit(code=1) from err


def print_empty(message: str, probe: Probe) -> None:
    """Report a section with nothing to show, and why if git failed."""
    console.print(styled("dim", f"   {message}"))
    if probe.failed:
        console.print(styled("yellow", f"   (git reported an error: {probe.error})"))
    console.print()


def candidates(probe: Probe[BranchInfo], options: RunOptions) -> list[BranchInfo]:
    """Drop protected branches from a probe result."""
    return [branch for branch in probe if not is_protected(branch.name, options.protect)]


def delete_branches(
    repo: GitRepo,
    branches: list[BranchInfo],
    kind: str,
    options: RunOptions,
    force_delete: bool,
) -> tuple[int, int]:
    """Confirm and delete a batch of branches.

    Args:
        repo: Repository to delete from
        branches: Branches to delete
        kind: Branch category shown in the prompt, e.g. "merged"
        options: Run options; dry run skips deletion, force skips the prompt
        force_delete: Delete with ``-D`` instead of ``-d``

    Returns:
        A tuple of (deleted, attempted).
    """
    if options.dry_run:
        return 0, 0
    if not options.force and not confirm(f"   Delete {len(branches)} {kind} branch(es)? [y/N] "):
        return 0, 0

    deleted = 0
    for branch in branches:
        if repo.delete_branch(branch.name, force=force_delete):
            console.print(f"   {styled('green', '✓')} Deleted {escape(branch.name)}")
            deleted += 1
        else:
            console.print(f"   {styled('red', '✗')} Failed to delete {escape(branch.name)}")
    console.print(styled("green", f"\n   Deleted {deleted}/{len(branches)} branches\n"))
    return deleted, len(branches)


def merged_section(repo: GitRepo, options: RunOptions) -> None:
    console.print(styled("bold", "📋 Merged Branches"))
    probe = repo.merged_branches()
    branches = candidates(probe, options)
    if not branches:
        print_empty("No merged branches to clean up", probe)
        return

    console.print(styled("dim", f"   Found {len(branches)} merged branch(es):\n"))
    for branch in branches:
        console.print(f"   {styled('yellow', '•')} {escape(branch.name)}")
    console.print()
    delete_branches(repo, branches, "merged", options, force_delete=False)


def stale_section(repo: GitRepo, options: RunOptions) -> None:
    console.print(styled("bold", f"📅 Stale Branches (>{options.days} days)"))
    probe = repo.stale_branches(options.days)
    branches = candidates(probe, options)
    if not branches:
        print_empty("No stale branches found", probe)
        return

    console.print(styled("dim", f"   Found {len(branches)} stale branch(es):\n"))
    for branch in branches:
        console.print(f"   {styled('yellow', '•')} {escape(branch.name)} {styled('dim', f'({branch.days_ago} days ago)')}")
    console.print()
    delete_branches(repo, branches, "stale", options, force_delete=True)


def gone_section(repo: GitRepo, options: RunOptions) -> None:
    console.print(styled("bold", "👻 Gone Branches (remote deleted)"))
    probe = repo.gone_branches()
    branches = candidates(probe, options)
    if not branches:
        print_empty("No gone branches found", probe)
        return

    console.print(styled("dim", f"   Found {len(branches)} gone branch(es):\n"))
    for branch in branches:
        console.print(f"   {styled('yellow', '•')} {escape(branch.name)}")
    console.print()
    delete_branches(repo, branches, "gone", options, force_delete=True)


def large_section(repo: GitRepo, options: RunOptions) -> None:
    console.print(styled("bold", f"📦 Large Files in History (top {options.top})"))
    probe = repo.large_objects(options.top)
    if not probe:
        print_empty("No large files found", probe)
        return

    console.print()
    for blob in probe:
        color = "red" if blob.size_str.endswith("MB") else "yellow"
        console.print(f"   {styled(color, f'{blob.size_str:>10}')}  {escape(blob.path)}")
    console.print(styled("dim", "\n   Tip: Use 'git filter-repo' or BFG to remove large files from history\n"))


def prune_section(repo: GitRepo, options: RunOptions) -> None:
    console.print(styled("bold", "🔄 Pruning Remote Tracking Branches"))
    try:
        repo.prune_remotes()
    except GitError as err:
        console.print(styled("red", f"   ✗ Failed to prune: {err}\n"))
        return
    console.print(styled("green", "   ✓ Pruned remote tracking branches\n"))


def run_sections(path: Path, options: RunOptions, *sections: Callable[[GitRepo, RunOptions], None]) -> None:
    """Open the repository and run each section in order."""
    repo = get_repo(path)
    console.print(styled("cyan", "\n🧹 git-cleanup\n"))
    for section in sections:
        section(repo, options)
    console.print(styled("dim", "Done!\n"))


def split_patterns(protect: str) -> tuple[str, ...]:
    return tuple(p.strip() for p in protect.split(",") if p.strip())


def version_callback(value: bool) -> None:
    if value:
        console.print(f"git-cleanup {__version__}")
        raise typer.Exit()


def help_callback(value: bool) -> None:
    if value:
        console.print(banner())
        raise typer.Exit()


@app.callback(invoke_without_command=True, add_help_option=False)
def main(
    ctx: typer.Context,
    verbose: bool = typer.Option(False, "--verbose", "-v", envvar="GIT_CLEANUP_VERBOSE", help="Log git commands"),
    version: Optional[bool] = typer.Option(
        None, "--version", callback=version_callback, is_eager=True, help="Show version and exit"
    ),
    show_help: Optional[bool] = typer.Option(
        None, "--help", "-h", callback=help_callback, is_eager=True, help="Show usage and examples"
    ),
) -> None:
    """Clean up your git repository."""
    setup_logging(verbose)
    if ctx.invoked_subcommand is None:
        console.print(banner())
        raise typer.Exit()


# All commands accept the full option set.


@app.command()
def merged(
    path: PathOption = Path("."),
    days: DaysOption = 30,
    top: TopOption = 10,
    dry_run: DryRunOption = False,
    force: ForceOption = False,
    protect: ProtectOption = "",
) -> None:
    """List and delete branches merged into the default branch."""
    options = RunOptions(dry_run=dry_run, force=force, days=days, top=top, protect=split_patterns(protect))
    run_sections(path, options, merged_section)


@app.command()
def stale(
    path: PathOption = Path("."),
    days: DaysOption = 30,
    top: TopOption = 10,
    dry_run: DryRunOption = False,
    force: ForceOption = False,
    protect: ProtectOption = "",
) -> None:
    """List and delete branches with no recent commits."""
    options = RunOptions(dry_run=dry_run, force=force, days=days, top=top, protect=split_patterns(protect))
    run_sections(path, options, stale_section)


@app.command()
def gone(
    path: PathOption = Path("."),
    days: DaysOption = 30,
    top: TopOption = 10,
    dry_run: DryRunOption = False,
    force: ForceOption = False,
    protect: ProtectOption = "",
) -> None:
    """Delete branches whose remote tracking branch is gone."""
    options = RunOptions(dry_run=dry_run, force=force, days=days, top=top, protect=split_patterns(protect))
    run_sections(path, options, gone_section)


@app.command()
def large(
    path: PathOption = Path("."),
    days: DaysOption = 30,
    top: TopOption = 10,
    dry_run: DryRunOption = False,
    force: ForceOption = False,
    protect: ProtectOption = "",
) -> None:
    """Find large files in git history."""
    options = RunOptions(dry_run=dry_run, force=force, days=days, top=top, protect=split_patterns(protect))
    run_sections(path, options, large_section)


@app.command("all")
def run_all(
    path: PathOption = Path("."),
    days: DaysOption = 30,
    top: TopOption = 10,
    dry_run: DryRunOption = False,
    force: ForceOption = False,
    protect: ProtectOption = "",
) -> None:
    """Run all cleanup checks."""
    options = RunOptions(dry_run=dry_run, force=force, days=days, top=top, protect=split_patterns(protect))
    run_sections(path, options, merged_section, stale_section, gone_section, large_section)


@app.command()
def prune(
    path: PathOption = Path("."),
    days: DaysOption = 30,
    top: TopOption = 10,
    dry_run: DryRunOption = False,
    force: ForceOption = False,
    protect: ProtectOption = "",
) -> None:
    """Prune remote tracking branches."""
    options = RunOptions(dry_run=dry_run, force=force, days=days, top=top, protect=split_patterns(protect))
    run_sections(path, options, prune_section)


@app.command("help")
def show_help() -> None:
    """Show usage and examples."""
    console.print(banner())


if __name__ == "__main__":
    app()
