from .durations import parse_time_to_minutes
from .notion import NotionRecipeStore
from .retry import is_conflict_error, with_retry

__all__ = ["NotionRecipeStore", "parse_time_to_minutes", "is_conflict_error", "with_retry"]
