"""Services package for Shelf Sync"""

from .errors import (
    ShelfSyncError,
    Unauthenticated,
    DocumentMissing,
    StoreUnavailable,
    ValidationFailure,
    SyncError,
)
from .sanitizer import ABSENT, sanitize, sanitize_for_domain
from .firebase import FirestoreGateway
from .identity import IdentityResolver
from .state_store import AppStateStore
from .backups import BackupStore
from .sync import SyncCoordinator, SyncRegistry
from .legacy import LegacyStateStore, has_migratable_data
from .session import SessionContext, SyncStatus
from .events import SyncEventEmitter
from .logger import ShelfSyncLogger, get_logger, init_logger

__all__ = [
    # Errors
    "ShelfSyncError",
    "Unauthenticated",
    "DocumentMissing",
    "StoreUnavailable",
    "ValidationFailure",
    "SyncError",
    # Sanitizer
    "ABSENT",
    "sanitize",
    "sanitize_for_domain",
    # Storage
    "FirestoreGateway",
    "IdentityResolver",
    "AppStateStore",
    "BackupStore",
    "SyncCoordinator",
    "SyncRegistry",
    # Session
    "LegacyStateStore",
    "has_migratable_data",
    "SessionContext",
    "SyncStatus",
    "SyncEventEmitter",
    # Logging
    "ShelfSyncLogger",
    "get_logger",
    "init_logger",
]
