"""Mapping of the canonical recipe onto the Notion property schema and page body."""

from typing import Any, Dict, Iterable, Iterator, List, Optional, Tuple

from ..models import Recipe
from .durations import parse_time_to_minutes

MAX_TEXT_LENGTH = 2000  # per rich_text object
MAX_BLOCKS_PER_REQUEST = 100

Block = Dict[str, Any]


def rich_text(content: Optional[str]) -> List[Dict[str, Any]]:
    """Split text into rich_text objects that respect the per-object length limit."""
    if not content:
        return []
    return [
        {"type": "text", "text": {"content": content[i:i + MAX_TEXT_LENGTH]}}
        for i in range(0, len(content), MAX_TEXT_LENGTH)
    ]


def _block(block_type: str, content: str) -> Block:
    return {
        "object": "block",
        "type": block_type,
        block_type: {"rich_text": rich_text(content)},
    }


def heading(content: str) -> Block:
    return _block("heading_2", content)


def paragraph(content: str) -> Block:
    return _block("paragraph", content)


def bulleted_item(content: str) -> Block:
    return _block("bulleted_list_item", content)


def numbered_item(content: str) -> Block:
    return _block("numbered_list_item", content)


def image_block(data_url: str) -> Block:
    return {
        "object": "block",
        "type": "image",
        "image": {"type": "external", "external": {"url": data_url}},
    }


def build_content_blocks(recipe: Recipe) -> List[Block]:
    """
    Build the page body for a recipe.

    Layout: "Ingredients" heading and one bullet per ingredient, "Instructions"
    heading and one numbered item per step in order, then a "Notes" section and
    a description paragraph when those fields are set.
    """
    blocks = [heading("Ingredients")]
    blocks.extend(bulleted_item(ingredient) for ingredient in recipe.ingredients)
    blocks.append(heading("Instructions"))
    blocks.extend(numbered_item(step.text) for step in recipe.instructions)
    if recipe.notes:
        blocks.append(heading("Notes"))
        blocks.append(paragraph(recipe.notes))
    if recipe.description:
        blocks.append(paragraph(recipe.description))
    return blocks


def chunked(blocks: List[Block], size: int = MAX_BLOCKS_PER_REQUEST) -> Iterator[List[Block]]:
    for i in range(0, len(blocks), size):
        yield blocks[i:i + size]


def _option_name(value: str) -> str:
    # Notion rejects commas in select option names
    return value.replace(",", " ").strip()[:100]


def _unique_options(names: Iterable[str]) -> List[Dict[str, str]]:
    seen = set()
    options = []
    for name in names:
        cleaned = _option_name(name)
        if cleaned and cleaned not in seen:
            seen.add(cleaned)
            options.append({"name": cleaned})
    return options


def split_category(category: Optional[str]) -> Tuple[Optional[str], List[str]]:
    """Split a comma separated category into (primary, extra keywords)."""
    if not category:
        return None, []
    parts = [part.strip() for part in category.split(",") if part.strip()]
    if not parts:
        return None, []
    return parts[0], parts[1:]


def build_properties(recipe: Recipe) -> Dict[str, Any]:
    """Map a recipe onto the fixed property schema of the recipe database."""
    category, extra_keywords = split_category(recipe.category)
    cuisine = _option_name(recipe.cuisineType) if recipe.cuisineType else ""

    return {
        "Name": {"title": rich_text(recipe.name)},
        "Cuisine Type": {"select": {"name": cuisine} if cuisine else None},
        "Category": {"select": {"name": _option_name(category)} if category else None},
        "Prep Time": {"number": parse_time_to_minutes(recipe.prepTime)},
        "Cook Time": {"number": parse_time_to_minutes(recipe.cookTime)},
        "Total Time": {"rich_text": rich_text(recipe.totalTime)},
        "Servings": {"rich_text": rich_text(recipe.recipeYield)},
        "URL": {"url": recipe.source_url},
        "Notes": {"rich_text": rich_text(recipe.notes)},
        "Description": {"rich_text": rich_text(recipe.description)},
        "Keywords": {"multi_select": _unique_options(list(recipe.keywords) + extra_keywords)},
    }
