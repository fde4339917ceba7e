"""
Sanitizer for Firestore writes.

Firestore cannot store "absent" values, and the two write paths disagree on
what to do with None:

- consolidated document (`keep_null_fields=True`): None survives as a map
  field value, but is dropped from arrays
- domain documents (`keep_null_fields=False`): None is dropped everywhere

Absent list elements are removed, never replaced by a placeholder.
"""

from typing import Any, Mapping

from pydantic import BaseModel

from shelfsync.config.limits import MAX_NESTING_DEPTH
from shelfsync.services.errors import ValidationFailure


class _Absent:
    """Marker for a value that must not reach the store"""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "ABSENT"

    def __bool__(self) -> bool:
        return False


ABSENT = _Absent()


def _dump_model(model: BaseModel) -> Any:
    # Optional fields left at None are the Python spelling of "absent"
    return model.model_dump(mode="json", by_alias=True, exclude_none=True)


def _drop(value: Any, keep_null: bool) -> bool:
    if value is ABSENT:
        return True
    return value is None and not keep_null


def _sanitize(value: Any, keep_null_fields: bool, max_depth: int, depth: int) -> Any:
    if isinstance(value, BaseModel):
        value = _dump_model(value)

    if isinstance(value, Mapping):
        if depth > max_depth:
            raise ValidationFailure(f"Value nested deeper than {max_depth} levels")
        return {
            key: _sanitize(item, keep_null_fields, max_depth, depth + 1)
            for key, item in value.items()
            if not _drop(item, keep_null_fields)
        }

    if isinstance(value, (list, tuple)):
        if depth > max_depth:
            raise ValidationFailure(f"Value nested deeper than {max_depth} levels")
        return [
            _sanitize(item, keep_null_fields, max_depth, depth + 1)
            for item in value
            if not _drop(item, keep_null=False)
        ]

    if value is ABSENT:
        return None
    return value


def sanitize(value: Any, keep_null_fields: bool = True, max_depth: int = MAX_NESTING_DEPTH) -> Any:
    """
    Recursively strip values the store cannot represent.

    Args:
        value: Any JSON-like tree; pydantic models are dumped by alias first
        keep_null_fields: Keep None as a map field value (arrays always drop it)
        max_depth: Deepest container level accepted

    Returns:
        A new tree with no ABSENT markers at any depth

    Raises:
        ValidationFailure: if the tree is nested deeper than `max_depth`
    """
    return _sanitize(value, keep_null_fields, max_depth, 0)


def sanitize_for_domain(value: Any) -> Any:
    """Sanitize for a per-domain document: None is dropped at every level."""
    return sanitize(value, keep_null_fields=False)


def to_tree(value: Any) -> Any:
    """Return the stored form of a state value without removing anything."""
    if isinstance(value, BaseModel):
        return _dump_model(value)
    return value
