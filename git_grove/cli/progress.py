"""Terminal rendering of create progress and results."""

from typing import Optional

from rich.console import Console
from rich.markup import escape
from rich.status import Status

from git_grove.models.create import CreateResult


class ProgressRenderer:
    """Spinner for the current checkpoint; finished checkpoints are printed with a mark."""

    def __init__(self, console: Console):
        self.console = console
        self.current: Optional[str] = None
        self._status: Optional[Status] = None

    def __call__(self, message: str) -> None:
        if self.current is not None:
            self.console.print(f"[green]✓[/green] {escape(self.current)}")
        self.current = message

        if self._status is None:
            self._status = self.console.status(escape(message))
            self._status.start()
        else:
            self._status.update(escape(message))

    def finish(self, success: bool) -> None:
        if self._status is not None:
            self._status.stop()
            self._status = None
        if self.current is not None:
            mark = "[green]✓[/green]" if success else "[red]✗[/red]"
            self.console.print(f"{mark} {escape(self.current)}")
            self.current = None


def display_result(console: Console, result: CreateResult) -> None:
    """Print the summary of a created worktree."""
    action = "Created branch" if result.was_created else "Checked out branch"
    console.print("\n[bold green]Worktree ready[/bold green]")
    console.print(f"  {action}: [cyan]{result.branch_name}[/cyan]")
    console.print(f"  Path: {escape(result.worktree_path)}")
    if result.was_created and result.base_branch:
        console.print(f"  Base: {result.base_branch}")
    if result.tracking_branch:
        console.print(f"  Tracking: {result.tracking_branch}")
    if result.copied_files:
        console.print(f"  Files copied: {result.copied_files}")
    console.print(f"\n[dim]cd {escape(result.worktree_path)}[/dim]")
