"""Exceptions for the parsely package."""

from typing import Any, Dict, Optional


class ParselyError(Exception):
    """Base class for every error raised by parsely."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class SchemaError(ParselyError):
    """Raised when a page cannot be turned into a recipe."""
    pass


class NoSchemaFoundError(SchemaError):
    """Raised when a document holds no qualifying Schema.org/Recipe block."""
    pass


class InvalidSchemaError(SchemaError):
    """Raised when a payload handed to the transformer is not a recipe."""
    pass


class FetchError(SchemaError):
    """Raised when neither the static fetch nor the browser render exposes recipe markup."""
    pass


class RateLimitedError(SchemaError):
    """Raised when a remote service asks us to slow down."""
    pass


class ParsingError(SchemaError):
    """Raised when no valid recipe JSON object can be recovered from a model response."""
    pass


class InvalidRecipeError(ParselyError):
    """Raised when a recipe is rejected before being written to the store."""
    pass


class StoreError(ParselyError):
    """Raised when the remote store rejects an operation."""

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        status: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, details)
        self.code = code
        self.status = status


class PartialUpdateError(StoreError):
    """Raised when a content replacement stopped after old blocks were already deleted."""
    pass


class ConfigError(ParselyError):
    """Raised when required settings are missing or invalid."""
    pass
