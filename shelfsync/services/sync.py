"""
Sync coordinator for the per-domain documents.

The state is split over five documents under users/{uid}/data:

    books    {books, updatedAt}
    sagas    {sagas, updatedAt}
    config   {config, updatedAt}
    history  {scanHistory, searchHistory, updatedAt}
    points   {currentPoints, pointsEarned, booksBoughtWithPoints,
              currentMoney, moneyEarned, booksBoughtWithMoney, updatedAt}

Firestore has no multi-document transaction here, so a whole-state save is a
concurrent fan-out of five independent writes. Only one whole-state save per
coordinator runs at a time; a save requested meanwhile is skipped. Writes that
succeeded are kept even when a sibling fails.
"""

from typing import Optional, Dict, Any, List, Mapping, Awaitable
import asyncio
import copy
import logging
import time

from shelfsync.config.limits import (
    BOOKS_DOCUMENT,
    SAGAS_DOCUMENT,
    CONFIG_DOCUMENT,
    HISTORY_DOCUMENT,
    POINTS_DOCUMENT,
    UPDATED_AT_FIELD,
)
from shelfsync.models import BackupSnapshot, POINTS_FIELDS
from shelfsync.services.backups import BackupStore
from shelfsync.services.errors import SyncError, Unauthenticated, ValidationFailure
from shelfsync.services.events import (
    SyncEventEmitter,
    EVENT_SYNC_STARTED,
    EVENT_SYNC_COMPLETED,
    EVENT_SYNC_FAILED,
    EVENT_BACKUP_CREATED,
)
from shelfsync.services.sanitizer import ABSENT, sanitize_for_domain, to_tree
from shelfsync.services.validation_service import check_books, check_sagas, check_state_invariants

logger = logging.getLogger(__name__)


# Stored state keys held by each domain document
DOMAIN_FIELDS: Dict[str, List[str]] = {
    BOOKS_DOCUMENT: ["books"],
    SAGAS_DOCUMENT: ["sagas"],
    CONFIG_DOCUMENT: ["config"],
    HISTORY_DOCUMENT: ["scanHistory", "searchHistory"],
    POINTS_DOCUMENT: POINTS_FIELDS,
}

# Value a key takes when its document (or the key) is missing
FIELD_DEFAULTS: Dict[str, Any] = {
    "books": [],
    "sagas": [],
    "config": {},
    "scanHistory": [],
    "searchHistory": [],
    **{field: 0 for field in POINTS_FIELDS},
}


class SyncCoordinator:
    """Save/load of one principal's state across the five domain documents"""

    def __init__(
        self,
        principal_id: str,
        gateway,
        backups: Optional[BackupStore] = None,
        events: Optional[SyncEventEmitter] = None,
        logger=None,
        backup_version: str = "1.0",
        clock=time.time,
    ):
        """
        Args:
            principal_id: The only principal this coordinator ever touches
            gateway: FirestoreGateway (or anything with the same coroutine API)
            backups: Snapshot store; defaults to one over the same gateway
            events: Emitter for sync status events
            logger: Optional ShelfSyncLogger for terminal sync lines
            backup_version: Literal version tag written into snapshots
            clock: Seconds-since-epoch source for `updatedAt`
        """
        if not principal_id:
            raise Unauthenticated("Sync coordinator needs a principal id")
        self.principal_id = principal_id
        self.gateway = gateway
        self.backups = backups or BackupStore(gateway)
        self.events = events or SyncEventEmitter()
        self.logger = logger
        self.backup_version = backup_version
        self.clock = clock
        self._save_in_flight = False

    @property
    def save_in_flight(self) -> bool:
        return self._save_in_flight

    # ========================================================================
    # Domain Documents
    # ========================================================================

    async def _write_domain(self, domain: str, values: Mapping[str, Any]) -> None:
        data = sanitize_for_domain(dict(values))
        data[UPDATED_AT_FIELD] = int(self.clock() * 1000)
        await self.gateway.write_document(self.principal_id, domain, data)

    async def _read_domain(self, domain: str) -> Dict[str, Any]:
        data = await self.gateway.read_document(self.principal_id, domain) or {}
        result = {}
        for field in DOMAIN_FIELDS[domain]:
            value = data.get(field)
            result[field] = value if value is not None else copy.deepcopy(FIELD_DEFAULTS[field])
        return result

    @staticmethod
    def _domain_values(state: Mapping[str, Any], domain: str) -> Dict[str, Any]:
        # Keys missing from the state stay absent and are not written
        return {field: state.get(field, ABSENT) for field in DOMAIN_FIELDS[domain]}

    async def _gather(self, operation: str, operations: Dict[str, Awaitable]) -> Dict[str, Any]:
        """
        Run operations concurrently and wait for all of them to settle.

        Raises:
            SyncError: after every operation settled, if any of them failed
        """
        names = list(operations)
        results = await asyncio.gather(*operations.values(), return_exceptions=True)

        causes = {}
        for name, result in zip(names, results):
            if isinstance(result, Exception):
                causes[name] = result
            elif isinstance(result, BaseException):
                raise result

        if causes:
            raise SyncError(operation, causes)
        return dict(zip(names, results))

    # ========================================================================
    # Whole State
    # ========================================================================

    async def save_all_data(self, state) -> None:
        """
        Write all five domain documents from `state`.

        Returns immediately without writing if another save_all_data of this
        coordinator is still running.

        Raises:
            ValidationFailure: if the state breaks an invariant (nothing written)
            SyncError: if any domain write failed; the others stay written
        """
        if self._save_in_flight:
            logger.info(f"Sync already in progress for {self.principal_id[:8]}, skipping")
            if self.logger:
                self.logger.sync_skipped("save_all_data", self.principal_id)
            return

        tree = check_state_invariants(state)
        self._save_in_flight = True
        start_time = time.time()

        try:
            await self.events.emit(EVENT_SYNC_STARTED, self.principal_id, {"operation": "save_all_data"})
            if self.logger:
                self.logger.sync_started("save_all_data", self.principal_id)

            await self._gather("save_all_data", {
                domain: self._write_domain(domain, self._domain_values(tree, domain))
                for domain in DOMAIN_FIELDS
            })
        except SyncError as e:
            logger.error(f"Error saving data to Firestore: {e}")
            if self.logger:
                self.logger.sync_failed("save_all_data", self.principal_id, str(e))
            await self.events.emit(EVENT_SYNC_FAILED, self.principal_id, {
                "operation": "save_all_data",
                "failed_domains": sorted(e.causes),
            })
            raise
        finally:
            self._save_in_flight = False

        duration = time.time() - start_time
        logger.info(f"All data saved to Firestore for {self.principal_id[:8]}")
        if self.logger:
            self.logger.sync_completed("save_all_data", self.principal_id, duration)
        await self.events.emit(EVENT_SYNC_COMPLETED, self.principal_id, {
            "operation": "save_all_data",
            "duration": duration,
        })

    async def load_all_data(self) -> Dict[str, Any]:
        """
        Read all five domain documents.

        Missing documents load as defaults (empty lists, empty config, zero
        counters).

        Raises:
            SyncError: if any read hit a backend failure
        """
        try:
            results = await self._gather("load_all_data", {
                domain: self._read_domain(domain) for domain in DOMAIN_FIELDS
            })
        except SyncError as e:
            logger.error(f"Error loading data from Firestore: {e}")
            await self.events.emit(EVENT_SYNC_FAILED, self.principal_id, {
                "operation": "load_all_data",
                "failed_domains": sorted(e.causes),
            })
            raise

        state: Dict[str, Any] = {}
        for domain in DOMAIN_FIELDS:
            state.update(results[domain])
        return state

    async def migrate_from_local_storage(self, state) -> None:
        """
        Copy a locally kept state into the domain documents.

        One-way; running it again simply overwrites.
        """
        logger.info(f"Starting migration from local store for {self.principal_id[:8]}")
        await self.save_all_data(state)
        logger.info("Migration completed successfully")

    async def has_data(self) -> bool:
        """True iff the books document exists and holds at least one book."""
        data = await self.gateway.read_document(self.principal_id, BOOKS_DOCUMENT)
        return bool(data and data.get("books"))

    # ========================================================================
    # Single Domain Saves
    # ========================================================================
    # These ignore the in-flight flag and overwrite their document directly.

    async def save_books(self, books: List[Any]) -> None:
        check_books(books)
        await self._write_domain(BOOKS_DOCUMENT, {"books": books})

    async def save_sagas(self, sagas: List[Any]) -> None:
        check_sagas(sagas)
        await self._write_domain(SAGAS_DOCUMENT, {"sagas": sagas})

    async def save_config(self, config: Any) -> None:
        await self._write_domain(CONFIG_DOCUMENT, {"config": config})

    async def save_history(self, scan_history: List[Any], search_history: List[str]) -> None:
        await self._write_domain(HISTORY_DOCUMENT, {
            "scanHistory": scan_history,
            "searchHistory": search_history,
        })

    async def save_points(self, points) -> None:
        """Write the counters; accepts PointsCounters (or ApplicationState) or a mapping."""
        tree = to_tree(points)
        await self._write_domain(POINTS_DOCUMENT, {
            field: tree.get(field, ABSENT) for field in POINTS_FIELDS
        })

    # ========================================================================
    # Backups
    # ========================================================================

    async def create_backup(self, state) -> str:
        """
        Append a snapshot of `state` to the backup collection.

        Not gated by the in-flight flag.

        Returns:
            The snapshot id
        """
        tree = to_tree(state)
        if not isinstance(tree, Mapping):
            raise ValidationFailure(f"Application state must be a mapping, got {type(tree).__name__}")

        backup_id = await self.backups.create(self.principal_id, tree, self.backup_version)
        logger.info(f"Backup created successfully: {backup_id}")
        if self.logger:
            self.logger.backup_created(self.principal_id, backup_id)
        await self.events.emit(EVENT_BACKUP_CREATED, self.principal_id, {"backup_id": backup_id})
        return backup_id

    async def get_backups(self) -> List[BackupSnapshot]:
        """Newest snapshots first (at most the backup store's page size)."""
        return await self.backups.list_recent(self.principal_id)


class SyncRegistry:
    """
    Session-owned map of principal id -> SyncCoordinator.

    The session context disposes a principal's coordinator on sign-out, so a
    later sign-in (same or other user) starts from a fresh instance.
    """

    def __init__(self, gateway, backups: Optional[BackupStore] = None,
                 events: Optional[SyncEventEmitter] = None, logger=None,
                 backup_version: str = "1.0"):
        self.gateway = gateway
        self.backups = backups
        self.events = events
        self.logger = logger
        self.backup_version = backup_version
        self._coordinators: Dict[str, SyncCoordinator] = {}

    def get(self, principal_id: str) -> SyncCoordinator:
        """Return the coordinator bound to `principal_id`, creating it if needed."""
        coordinator = self._coordinators.get(principal_id)
        if coordinator is None:
            coordinator = SyncCoordinator(
                principal_id,
                self.gateway,
                backups=self.backups,
                events=self.events,
                logger=self.logger,
                backup_version=self.backup_version,
            )
            self._coordinators[principal_id] = coordinator
        return coordinator

    def dispose(self, principal_id: str) -> None:
        self._coordinators.pop(principal_id, None)

    def clear(self) -> None:
        self._coordinators.clear()

    def __contains__(self, principal_id: str) -> bool:
        return principal_id in self._coordinators

    def __len__(self) -> int:
        return len(self._coordinators)
