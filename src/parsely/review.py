"""Human-in-the-loop review of recipes before they are written to the store."""

import asyncio
from typing import Optional, Protocol

from rich.console import Console
from rich.prompt import Confirm
from rich.table import Table

from .models import Recipe


class Reviewer(Protocol):
    async def confirm_overwrite(self, url: str, page_id: str) -> bool:
        """Return True to replace the existing page for url."""
        ...

    async def review(self, recipe: Recipe) -> Optional[Recipe]:
        """Return the recipe to save (possibly edited), or None to cancel."""
        ...


class AutoReviewer:
    """Non-interactive reviewer: accepts every recipe, overwrites only when told to."""

    def __init__(self, overwrite: bool = False):
        self.overwrite = overwrite

    async def confirm_overwrite(self, url: str, page_id: str) -> bool:
        return self.overwrite

    async def review(self, recipe: Recipe) -> Optional[Recipe]:
        return recipe


class ConsoleReviewer:
    """Asks on the terminal with rich prompts. Prompts never interleave between tasks."""

    def __init__(self, console: Optional[Console] = None):
        self.console = console or Console()
        self._lock = asyncio.Lock()

    async def _ask(self, question: str, default: bool) -> bool:
        async with self._lock:
            return await asyncio.to_thread(
                Confirm.ask, question, console=self.console, default=default
            )

    async def confirm_overwrite(self, url: str, page_id: str) -> bool:
        return await self._ask(
            f"[yellow]Recipe already exists[/yellow] for {url} ({page_id}). Overwrite?",
            default=False,
        )

    async def review(self, recipe: Recipe) -> Optional[Recipe]:
        async with self._lock:
            self.show(recipe)
            save = await asyncio.to_thread(
                Confirm.ask, "Save this recipe?", console=self.console, default=True
            )
        return recipe if save else None

    def show(self, recipe: Recipe) -> None:
        self.console.print(f"\n[bold cyan]{recipe.name}[/bold cyan]")

        details = Table(show_header=False, box=None)
        details.add_column(style="bold blue")
        details.add_column()
        for label, value in (
            ("Cuisine", recipe.cuisineType),
            ("Category", recipe.category),
            ("Prep Time", recipe.prepTime),
            ("Cook Time", recipe.cookTime),
            ("Servings", recipe.recipeYield),
            ("Keywords", ", ".join(recipe.keywords)),
        ):
            if value:
                details.add_row(label, value)
        self.console.print(details)

        self.console.print("\n[bold blue]Ingredients:[/bold blue]")
        for i, ingredient in enumerate(recipe.ingredients, 1):
            self.console.print(f"[dim]{i}.[/dim] {ingredient}")

        self.console.print("\n[bold blue]Instructions:[/bold blue]")
        for i, step in enumerate(recipe.instructions, 1):
            self.console.print(f"[dim]{i}.[/dim] {step.text}")

        if recipe.notes:
            self.console.print(f"\n[bold blue]Notes:[/bold blue] {recipe.notes}")
