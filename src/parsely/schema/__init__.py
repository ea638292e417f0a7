"""Schema.org/Recipe extraction and transformation."""

from .extractor import SchemaExtractor, score_recipe
from .transformer import SchemaTransformer

__all__ = ["SchemaExtractor", "SchemaTransformer", "score_recipe"]
