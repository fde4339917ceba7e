"""
Reader for the pre-cloud local state file.

Before Firestore, the app kept its whole state in one local JSON file. It is
read once, on the first sign-in of a principal with no cloud data, and
migrated. Two layouts exist:

- current: the same keys as the cloud state (books, sagas, config, ...)
- old: separate per-status lists (tbr, currentlyReading, history, wishlist)
  and a `progress` counter; upgraded here into a single `books` list
"""

from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Union
import copy
import json
import logging
import time

from shelfsync.models import ApplicationState, BookStatus, POINTS_FIELDS

logger = logging.getLogger(__name__)

# Marker key present only in the old layout
OLD_LAYOUT_MARKER = "progress"

# (old list key, status given to its books, book field dating the status)
OLD_STATUS_LISTS = [
    ("tbr", BookStatus.TBR, "dateAdded"),
    ("currentlyReading", BookStatus.READING, "startDate"),
    ("history", BookStatus.READ, "endDate"),
    ("wishlist", BookStatus.WISHLIST, "dateAdded"),
]

LIST_FIELDS = ["books", "sagas", "sagaNotifications", "scanHistory", "searchHistory"]


def initial_state() -> Dict[str, Any]:
    """State a brand-new library starts from, in stored form."""
    state = ApplicationState.empty().to_document()
    state["sagaNotifications"] = []
    state["darkMode"] = False
    return state


def has_migratable_data(state: Optional[Mapping[str, Any]]) -> bool:
    """True if a local state holds any books or sagas worth migrating."""
    return bool(state and (state.get("books") or state.get("sagas")))


class LegacyStateStore:
    """Read-only access to the local JSON state file"""

    def __init__(self, path: Union[str, Path], clock=time.time):
        self.path = Path(path)
        self.clock = clock

    def exists(self) -> bool:
        return self.path.is_file()

    def load(self) -> Optional[Dict[str, Any]]:
        """
        Load and normalize the local state.

        Returns:
            The state in current layout, or None if there is no usable file
        """
        if not self.exists():
            return None

        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.warning(f"Error loading state from local store {self.path}: {e}")
            return None

        if not isinstance(raw, dict):
            logger.warning(f"Local store {self.path} does not hold a state object")
            return None

        if OLD_LAYOUT_MARKER in raw:
            logger.info("Local store uses the old layout, upgrading")
            return self.upgrade_old_layout(raw)
        return self.complete(raw)

    def complete(self, raw: Mapping[str, Any]) -> Dict[str, Any]:
        """Fill keys a current-layout state may be missing."""
        state = initial_state()
        state.update(copy.deepcopy(dict(raw)))
        for field in LIST_FIELDS:
            state[field] = raw.get(field) or []
        for field in POINTS_FIELDS:
            state[field] = raw.get(field) or 0
        state["darkMode"] = bool(raw.get("darkMode"))
        return state

    def upgrade_old_layout(self, old: Mapping[str, Any]) -> Dict[str, Any]:
        """Fold the old per-status lists into `books` with a status history."""
        now_ms = int(self.clock() * 1000)
        books = []
        for list_key, status, date_field in OLD_STATUS_LISTS:
            for book in old.get(list_key) or []:
                if not isinstance(book, dict):
                    logger.warning(f"Skipping non-object entry in '{list_key}' of {self.path}")
                    continue
                books.append({
                    **book,
                    "status": status.value,
                    "statusHistory": [{
                        "status": status.value,
                        "date": book.get(date_field) or now_ms,
                    }],
                })

        state = initial_state()
        state.update({
            "books": books,
            "sagas": old.get("sagas") or [],
            "darkMode": bool(old.get("darkMode")),
            "scanHistory": old.get("scanHistory") or [],
            "searchHistory": old.get("searchHistory") or [],
            "config": {**state["config"], **(old.get("config") or {})},
            "currentPoints": old.get("currentPoints") or 0,
            "pointsEarned": old.get("pointsEarned") or 0,
            "booksBoughtWithPoints": old.get("booksBoughtWithPoints") or 0,
        })
        return state
