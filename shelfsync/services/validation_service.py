"""
Invariant checks run before state reaches the store.

Only the identity invariants are enforced (unique book ids, unique saga
names); the shape of everything else is the web client's business.
"""

from collections import Counter
from typing import Any, Iterable, List, Mapping

from shelfsync.services.errors import ValidationFailure
from shelfsync.services.sanitizer import to_tree


def _duplicates(values: Iterable[Any], label: str) -> List[Any]:
    try:
        counts = Counter(v for v in values if v is not None)
    except TypeError as e:
        # dict or list ids from malformed client data
        raise ValidationFailure(f"{label} must be scalar values: {e}") from e
    return sorted((v for v, n in counts.items() if n > 1), key=str)


def check_books(books: Any) -> None:
    """Raise ValidationFailure if two books share an id."""
    books = to_tree(books) or []
    if not isinstance(books, (list, tuple)):
        raise ValidationFailure("books must be a list")
    ids = [b.get("id") for b in map(to_tree, books) if isinstance(b, Mapping)]
    dupes = _duplicates(ids, "Book ids")
    if dupes:
        raise ValidationFailure(f"Duplicate book ids: {dupes}")


def check_sagas(sagas: Any) -> None:
    """Raise ValidationFailure if two sagas share a name."""
    sagas = to_tree(sagas) or []
    if not isinstance(sagas, (list, tuple)):
        raise ValidationFailure("sagas must be a list")
    names = [s.get("name") for s in map(to_tree, sagas) if isinstance(s, Mapping)]
    dupes = _duplicates(names, "Saga names")
    if dupes:
        raise ValidationFailure(f"Duplicate saga names: {dupes}")


def check_state_invariants(state: Any) -> Mapping[str, Any]:
    """
    Check a full application state and return its stored form.

    Args:
        state: ApplicationState or an already-dumped mapping

    Returns:
        The state as a camelCase mapping

    Raises:
        ValidationFailure: if the state is not a mapping or breaks an invariant
    """
    tree = to_tree(state)
    if not isinstance(tree, Mapping):
        raise ValidationFailure(f"Application state must be a mapping, got {type(tree).__name__}")
    check_books(tree.get("books"))
    check_sagas(tree.get("sagas"))
    return tree
