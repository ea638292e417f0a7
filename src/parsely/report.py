from datetime import datetime
from typing import Optional, Sequence

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from .models import BatchResult, FailedItem


def _percentage(count: int, total: int) -> str:
    return f"{count / total * 100:.1f}%" if total > 0 else "0%"


class ReportGenerator:
    """Renders the final report of an import run."""

    def __init__(self, console: Optional[Console] = None):
        self.console = console or Console()

    def show_final_report(self, result: BatchResult, title: str = "Recipe Import Results") -> None:
        end_time = result.end_time or datetime.now()
        elapsed = str(end_time - result.start_time).split(".")[0]
        total = result.total
        succeeded, failed, skipped = len(result.succeeded), len(result.failed), len(result.skipped)

        self.console.print(f"\n[bold cyan]{title}[/bold cyan]")
        self.console.print("[dim]" + "═" * 50 + "[/dim]")
        self.console.print(f"[bold]Completed in:[/bold] [cyan]{elapsed}[/cyan]")
        self.console.print(f"[bold]Total processed:[/bold] [cyan]{total}[/cyan] "
                           f"[dim]({result.batches} batches)[/dim]")

        table = Table(show_header=True)
        table.add_column("Status", style="bold")
        table.add_column("Count", style="cyan")
        table.add_column("Percentage", style="magenta")
        table.add_row("✅ Success", str(succeeded), _percentage(succeeded, total))
        table.add_row("⚠️ Skipped", str(skipped), _percentage(skipped, total))
        table.add_row("❌ Failed", str(failed), _percentage(failed, total))
        table.add_row("Total", str(total), "100%" if total > 0 else "0%")
        self.console.print(table)

        for item in result.skipped:
            self.console.print(f"[yellow]Skipped[/yellow] {escape(item.url)}: {item.reason}")

        self._show_errors(result.failed)

        success_rate = succeeded / total * 100 if total > 0 else 0
        if not failed:
            self.console.print("\n[bold green]Import completed successfully! ✨[/bold green]")
        elif success_rate >= 70:
            self.console.print("\n[bold yellow]Import completed with some issues.[/bold yellow]")
        else:
            self.console.print("\n[bold red]Import completed with significant issues![/bold red]")

    def _show_errors(self, errors: Sequence[FailedItem]) -> None:
        """List every failed item with its message."""
        if not errors:
            return

        self.console.print("\n[bold red]Errors:[/bold red]")
        for i, error in enumerate(errors, 1):
            self.console.print(
                f"{i}. [bold]{escape(error.url)}[/bold] "
                f"[dim]({error.timestamp:%Y-%m-%d %H:%M:%S})[/dim]"
            )
            self.console.print(f"   [red]{escape(error.error)}[/red]\n")
