"""
Append-only backup snapshots (users/{uid}/backups).

A snapshot is a denormalized copy of the full state plus `version`,
`timestamp` (client epoch millis) and `createdAt`, the field listings are
ordered on. Snapshots are never updated or deleted by this package.
"""

from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Mapping

from shelfsync.config.limits import BACKUPS_COLLECTION, BACKUP_PAGE_SIZE, CREATED_AT_FIELD
from shelfsync.models import BackupSnapshot, POINTS_FIELDS
from shelfsync.services.sanitizer import sanitize_for_domain

# State keys copied into every snapshot
SNAPSHOT_FIELDS = ["config", "books", "sagas", "scanHistory", "searchHistory", *POINTS_FIELDS]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def build_snapshot(state: Mapping[str, Any], version: str, created_at: datetime) -> Dict[str, Any]:
    """Denormalize a state mapping into a snapshot document."""
    snapshot = {key: state.get(key) for key in SNAPSHOT_FIELDS if key in state}
    snapshot = sanitize_for_domain(snapshot)
    snapshot.update({
        "version": version,
        "timestamp": int(created_at.timestamp() * 1000),
        CREATED_AT_FIELD: created_at,
    })
    return snapshot


class BackupStore:
    """Per-principal snapshot collection, listed newest first"""

    def __init__(self, gateway, page_size: int = BACKUP_PAGE_SIZE,
                 clock: Callable[[], datetime] = _utcnow):
        self.gateway = gateway
        self.page_size = page_size
        self.clock = clock

    async def create(self, principal_id: str, state: Mapping[str, Any], version: str) -> str:
        """
        Append a snapshot of `state`.

        Returns:
            The store-assigned snapshot id
        """
        snapshot = build_snapshot(state, version, self.clock())
        return await self.gateway.append_document(principal_id, BACKUPS_COLLECTION, snapshot)

    async def list_recent(self, principal_id: str) -> List[BackupSnapshot]:
        """Return the newest `page_size` snapshots, newest first."""
        documents = await self.gateway.list_documents(
            principal_id,
            BACKUPS_COLLECTION,
            order_by=CREATED_AT_FIELD,
            limit=self.page_size,
            descending=True,
        )
        return [self._to_snapshot(doc_id, data) for doc_id, data in documents]

    @staticmethod
    def _to_snapshot(doc_id: str, data: Dict[str, Any]) -> BackupSnapshot:
        data = dict(data)
        timestamp = int(data.pop("timestamp", 0) or 0)
        created_at = data.pop(CREATED_AT_FIELD, None)
        if created_at is None:
            created_at = datetime.fromtimestamp(timestamp / 1000, tz=timezone.utc)
        return BackupSnapshot(
            id=doc_id,
            created_at=created_at,
            version=str(data.pop("version", "")),
            timestamp=timestamp,
            state=data,
        )
