import copy
import re
from typing import Any, Dict, List, Mapping, Optional, Union

from ..exceptions import InvalidSchemaError
from ..models import Instruction, Recipe, RecipeSource, SchemaCandidate
from .coerce import as_list, find_typed_entity, first_text

KEYWORD_SEPARATOR = re.compile(r",\s*")


def extract_instructions(value: Any) -> List[Instruction]:
    """Normalise ``recipeInstructions`` into ordered steps.

    Accepts a plain string, a list of strings, or a list of ``{"text": ...}``
    objects. Any other item is kept as its string form.
    """
    if not value:
        return []
    if not isinstance(value, list):
        return [Instruction(text=str(value))]

    steps = []
    for item in value:
        if isinstance(item, str):
            steps.append(Instruction(text=item))
        elif isinstance(item, Mapping) and "text" in item:
            steps.append(Instruction(text=str(item["text"])))
        else:
            steps.append(Instruction(text=str(item)))
    return steps


def extract_keywords(value: Any) -> List[str]:
    if not value:
        return []
    if isinstance(value, str):
        parts = KEYWORD_SEPARATOR.split(value)
    else:
        parts = as_list(value)
    return [str(part).strip() for part in parts if part and str(part).strip()]


def extract_schema_type(declared: Any) -> str:
    if isinstance(declared, list):
        # multi-typed entities (e.g. ["Recipe", "NewsArticle"]) are recorded as Recipe
        return "Recipe"
    return str(declared) if declared else "Recipe"


class SchemaTransformer:
    """Converts a Schema.org/Recipe payload into the canonical :class:`Recipe`.

    The transformation is pure: the input is never mutated and the same input
    always yields an equal record.
    """

    def transform(
        self,
        candidate: Union[SchemaCandidate, Dict[str, Any]],
        source_url: Optional[str] = None,
    ) -> Recipe:
        """
        Build a recipe from a candidate.

        Args:
            candidate: A candidate returned by the extractor, or a raw JSON-LD document
            source_url: The URL the page was fetched from; used as identity key

        Returns:
            The canonical recipe

        Raises:
            InvalidSchemaError: If a raw document holds no Recipe entity
        """
        if isinstance(candidate, SchemaCandidate):
            document, entity = candidate.document, candidate.entity
        else:
            document = candidate
            entity = find_typed_entity(candidate, "Recipe")
            if entity is None:
                raise InvalidSchemaError(
                    "Invalid Schema.org/Recipe data",
                    details={"schema": candidate},
                )

        categories = [c for c in (first_text(item) for item in as_list(entity.get("recipeCategory"))) if c]
        keywords = extract_keywords(entity.get("keywords")) + categories[1:]

        declared_url = entity.get("url") if isinstance(entity.get("url"), str) else None
        identity = source_url or declared_url

        return Recipe(
            name=first_text(entity.get("name")) or "",
            ingredients=[str(item) for item in as_list(entity.get("recipeIngredient"))],
            instructions=extract_instructions(entity.get("recipeInstructions")),
            cuisineType=first_text(entity.get("recipeCuisine")),
            prepTime=first_text(entity.get("prepTime")),
            cookTime=first_text(entity.get("cookTime")),
            totalTime=first_text(entity.get("totalTime")),
            recipeYield=first_text(entity.get("recipeYield")),
            description=first_text(entity.get("description")),
            category=categories[0] if categories else None,
            keywords=keywords,
            notes=None,
            url=identity,
            source=RecipeSource(
                url=identity or "",
                schemaType=extract_schema_type(entity.get("@type")),
                rawSchema=copy.deepcopy(document),
            ),
        )
