from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Instruction(BaseModel):
    """A single recipe step."""
    model_config = ConfigDict(coerce_numbers_to_str=True)

    text: str


class RecipeSource(BaseModel):
    """Provenance of a recipe extracted from structured data."""
    url: str
    schemaType: str = "Recipe"
    rawSchema: Dict[str, Any] = Field(default_factory=dict)  # verbatim JSON-LD document


class Recipe(BaseModel):
    """Canonical recipe record shared by every stage of the pipeline."""
    # model replies often carry "recipeYield": 8 or "prepTime": 20
    model_config = ConfigDict(coerce_numbers_to_str=True)

    name: str
    ingredients: List[str] = Field(default_factory=list)
    instructions: List[Instruction] = Field(default_factory=list)
    cuisineType: Optional[str] = None
    prepTime: Optional[str] = None
    cookTime: Optional[str] = None
    totalTime: Optional[str] = None
    recipeYield: Optional[str] = None
    description: Optional[str] = None
    category: Optional[str] = None
    keywords: List[str] = Field(default_factory=list)
    notes: Optional[str] = None  # never set by schema extraction
    url: Optional[str] = None
    source: Optional[RecipeSource] = None

    @field_validator("ingredients", "keywords", mode="before")
    @classmethod
    def wrap_scalar(cls, value: Any) -> Any:
        if value is None:
            return []
        if isinstance(value, str):
            return [value]
        return value

    @field_validator("instructions", mode="before")
    @classmethod
    def coerce_instructions(cls, value: Any) -> Any:
        """Accept plain strings as steps, as model output often does."""
        if value is None:
            return []
        if isinstance(value, str):
            value = [value]
        if isinstance(value, list):
            return [{"text": step} if isinstance(step, str) else step for step in value]
        return value

    @property
    def source_url(self) -> Optional[str]:
        """The identity key used for existence checks in the store."""
        if self.url:
            return self.url
        if self.source and self.source.url:
            return self.source.url
        return None


class SchemaCandidate(BaseModel):
    """A parsed JSON-LD block that passed the recipe checks, with its completeness score."""
    document: Dict[str, Any]  # the block as parsed, before @graph unwrapping
    entity: Dict[str, Any]  # the Recipe entity itself
    score: int = 0


# ── Batch results ──────────────────────────────────────────────────


class SucceededItem(BaseModel):
    model_config = ConfigDict(frozen=True)

    url: str
    recipeId: str


class FailedItem(BaseModel):
    model_config = ConfigDict(frozen=True)

    url: str
    error: str
    timestamp: datetime = Field(default_factory=datetime.now)


class SkippedItem(BaseModel):
    model_config = ConfigDict(frozen=True)

    url: str
    reason: str


class BatchResult(BaseModel):
    """Process-local report of a batch run; never persisted."""
    model_config = ConfigDict(frozen=True)

    succeeded: Tuple[SucceededItem, ...] = ()
    failed: Tuple[FailedItem, ...] = ()
    skipped: Tuple[SkippedItem, ...] = ()
    batches: int = 0
    start_time: datetime = Field(default_factory=datetime.now)
    end_time: Optional[datetime] = None

    @property
    def total(self) -> int:
        return len(self.succeeded) + len(self.failed) + len(self.skipped)
