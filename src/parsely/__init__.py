"""Import recipes from web pages and photos into a Notion database."""

import logging

from .exceptions import (
    ConfigError,
    FetchError,
    InvalidRecipeError,
    InvalidSchemaError,
    NoSchemaFoundError,
    ParselyError,
    ParsingError,
    PartialUpdateError,
    RateLimitedError,
    SchemaError,
    StoreError,
)
from .fetcher import PageFetcher
from .importer import BatchImporter, load_urls
from .models import BatchResult, Instruction, Recipe, RecipeSource
from .schema import SchemaExtractor, SchemaTransformer
from .store import NotionRecipeStore

logging.getLogger(__name__).addHandler(logging.NullHandler())

__version__ = "0.2.0"

__all__ = [
    "BatchImporter",
    "BatchResult",
    "ConfigError",
    "FetchError",
    "Instruction",
    "InvalidRecipeError",
    "InvalidSchemaError",
    "NoSchemaFoundError",
    "NotionRecipeStore",
    "PageFetcher",
    "ParselyError",
    "ParsingError",
    "PartialUpdateError",
    "RateLimitedError",
    "Recipe",
    "RecipeSource",
    "SchemaError",
    "SchemaExtractor",
    "SchemaTransformer",
    "StoreError",
    "load_urls",
]
