"""Configuration package for Shelf Sync"""

from .settings import Settings, get_settings
from .limits import (
    USERS_COLLECTION,
    DATA_COLLECTION,
    BACKUPS_COLLECTION,
    APP_STATE_DOCUMENT,
    PROFILE_DOCUMENT,
    BOOKS_DOCUMENT,
    SAGAS_DOCUMENT,
    CONFIG_DOCUMENT,
    HISTORY_DOCUMENT,
    POINTS_DOCUMENT,
    MAX_NESTING_DEPTH,
    BACKUP_PAGE_SIZE,
)

__all__ = [
    "Settings",
    "get_settings",
    "USERS_COLLECTION",
    "DATA_COLLECTION",
    "BACKUPS_COLLECTION",
    "APP_STATE_DOCUMENT",
    "PROFILE_DOCUMENT",
    "BOOKS_DOCUMENT",
    "SAGAS_DOCUMENT",
    "CONFIG_DOCUMENT",
    "HISTORY_DOCUMENT",
    "POINTS_DOCUMENT",
    "MAX_NESTING_DEPTH",
    "BACKUP_PAGE_SIZE",
]
