"""
Error types raised by the persistence layer.

Every error the UI layer has to render is one of the four kinds below;
SyncError is the aggregate raised by multi-document fan-outs.
"""

from typing import Dict, Optional


class ShelfSyncError(Exception):
    """Base class for persistence-layer errors"""


class Unauthenticated(ShelfSyncError):
    """No principal is bound to this call"""

    def __init__(self, message: str = "No authenticated user"):
        super().__init__(message)


class DocumentMissing(ShelfSyncError):
    """A partial update targeted a document that was never written"""

    def __init__(self, path: str):
        self.path = path
        super().__init__(f"Document does not exist: {path}")


class StoreUnavailable(ShelfSyncError):
    """Transport or backend failure (includes quota and permission denials)"""

    def __init__(self, message: str, path: Optional[str] = None):
        self.path = path
        super().__init__(message)


class ValidationFailure(ShelfSyncError):
    """Caller-supplied state violates an invariant"""


class SyncError(StoreUnavailable):
    """
    One or more operations of a fan-out failed.

    Raised only after every operation has settled. `causes` maps each failed
    domain to its exception; domains not listed succeeded.
    """

    def __init__(self, operation: str, causes: Dict[str, BaseException]):
        self.operation = operation
        self.causes = causes
        failed = ", ".join(sorted(causes))
        super().__init__(f"{operation} failed for: {failed}")
