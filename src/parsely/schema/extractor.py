import json
import logging
from typing import Any, Iterator, List, Optional

from bs4 import BeautifulSoup

from ..exceptions import NoSchemaFoundError
from ..models import SchemaCandidate
from .coerce import as_list, find_typed_entity

SCHEMA_ORG_CONTEXTS = {"http://schema.org", "https://schema.org"}

REQUIRED_FIELD_POINTS = 10
DETAIL_FIELD_POINTS = 2
MINOR_FIELD_POINTS = 1
MAX_LIST_BONUS = 5

DETAIL_FIELDS = ("recipeCuisine", "prepTime", "cookTime", "recipeYield")
MINOR_FIELDS = ("description", "author")


def _is_ld_json(script_type: Optional[str]) -> bool:
    return bool(script_type) and script_type.strip().lower().startswith("application/ld+json")


def iter_json_ld(soup: BeautifulSoup) -> Iterator[str]:
    """Yield the raw text of every ``<script type="application/ld+json">`` node."""
    for script in soup.find_all("script", attrs={"type": _is_ld_json}):
        yield script.get_text()


def parse_json_ld(text: str) -> Optional[Any]:
    """Parse one JSON-LD block, returning None when it is not valid JSON."""
    try:
        # strict=False tolerates raw newlines inside strings, which CMS templates emit
        return json.loads(text, strict=False)
    except (ValueError, RecursionError):
        # RecursionError: pathologically nested arrays or objects
        return None


def has_schema_org_context(document: dict) -> bool:
    context = document.get("@context")
    for value in as_list(context):
        if isinstance(value, str) and value.strip().rstrip("/") in SCHEMA_ORG_CONTEXTS:
            return True
    return False


def score_recipe(entity: dict) -> int:
    """Rate how complete a recipe entity is; higher means more populated fields."""
    score = 0
    for field in ("name", "recipeIngredient", "recipeInstructions"):
        if entity.get(field):
            score += REQUIRED_FIELD_POINTS
    for field in DETAIL_FIELDS:
        if entity.get(field):
            score += DETAIL_FIELD_POINTS
    for field in MINOR_FIELDS:
        if entity.get(field):
            score += MINOR_FIELD_POINTS
    score += min(len(as_list(entity.get("recipeIngredient"))), MAX_LIST_BONUS)
    score += min(len(as_list(entity.get("recipeInstructions"))), MAX_LIST_BONUS)
    return score


class SchemaExtractor:
    """Finds and ranks Schema.org/Recipe blocks embedded in an HTML document."""

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger(__name__)

    def qualify(self, document: Any) -> Optional[SchemaCandidate]:
        """
        Check a parsed JSON-LD value and build a candidate from it.

        Args:
            document: The decoded JSON value of one block

        Returns:
            A scored candidate, or None if the block is not a usable recipe
        """
        if not isinstance(document, dict) or not has_schema_org_context(document):
            return None

        entity = find_typed_entity(document, "Recipe")
        if entity is None or "name" not in entity:
            return None
        if "recipeIngredient" not in entity and "recipeInstructions" not in entity:
            return None

        return SchemaCandidate(document=document, entity=entity, score=score_recipe(entity))

    def extract(self, html: str, url: Optional[str] = None) -> List[SchemaCandidate]:
        """
        Extract every qualifying recipe block from a page, best first.

        Args:
            html: The page HTML
            url: The URL the page was fetched from, used for diagnostics

        Returns:
            Candidates sorted by descending completeness score

        Raises:
            NoSchemaFoundError: If no block qualifies
        """
        soup = BeautifulSoup(html, "html.parser")

        block_count = 0
        candidates: List[SchemaCandidate] = []
        for text in iter_json_ld(soup):
            block_count += 1
            document = parse_json_ld(text)
            if document is None:
                self.logger.debug(f"Skipping malformed JSON-LD block #{block_count} on {url}")
                continue
            candidate = self.qualify(document)
            if candidate is not None:
                candidates.append(candidate)

        self.logger.debug(
            f"Found {block_count} JSON-LD blocks, {len(candidates)} recipe candidates on {url}"
        )

        if not candidates:
            raise NoSchemaFoundError(
                "No valid recipe schema found",
                details={
                    "url": url,
                    "html_length": len(html),
                    "json_ld_blocks": block_count,
                },
            )

        # sorted() is stable, so equally scored blocks keep document order
        return sorted(candidates, key=lambda c: c.score, reverse=True)
