"""Normalisation helpers for Schema.org fields that may be a scalar or an array."""

from typing import Any, List, Optional


def as_list(value: Any) -> List[Any]:
    """Return ``value`` as a list: absent -> [], scalar -> [scalar], list unchanged."""
    if value is None or value == "":
        return []
    if isinstance(value, (list, tuple)):
        return list(value)
    return [value]


def first_text(value: Any) -> Optional[str]:
    """Return the first element of a scalar-or-array field as text, or None when empty."""
    items = as_list(value)
    if not items:
        return None
    first = items[0]
    if first is None:
        return None
    text = first if isinstance(first, str) else str(first)
    return text.strip() or None


def type_includes(declared: Any, type_name: str) -> bool:
    """Check whether a JSON-LD ``@type`` value is or contains ``type_name``."""
    if isinstance(declared, str):
        return declared == type_name
    if isinstance(declared, list):
        return type_name in declared
    return False


def find_typed_entity(document: Any, type_name: str = "Recipe") -> Optional[dict]:
    """Return the entity of ``type_name`` in a JSON-LD document, unwrapping ``@graph``.

    When the document has a ``@graph`` array, the first entry of the requested
    type wins. Otherwise the document itself is returned if it has that type.
    """
    if not isinstance(document, dict):
        return None
    graph = document.get("@graph")
    if isinstance(graph, list):
        for item in graph:
            if isinstance(item, dict) and type_includes(item.get("@type"), type_name):
                return item
    if type_includes(document.get("@type"), type_name):
        return document
    return None
