"""
Session-scoped sync context.

Owns the coordinator registry for one signed-in session and drives the
lifecycle around it:

    start(principal)   sign in, touch the profile document, initialize()
    initialize()       load cloud data, or migrate the local store once
    schedule_autosave  debounced save_all_data after state changes
    end()              cancel pending saves, sign out, drop the coordinator

`sync_status` / `last_sync` mirror what the UI shows in its status badge.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional
import asyncio
import logging

from shelfsync.config import get_settings
from shelfsync.models import Principal
from shelfsync.services.backups import BackupStore
from shelfsync.services.errors import ShelfSyncError
from shelfsync.services.events import SyncEvent, EVENT_SESSION_CHANGED
from shelfsync.services.identity import IdentityResolver
from shelfsync.services.legacy import LegacyStateStore, has_migratable_data
from shelfsync.services.state_store import AppStateStore
from shelfsync.services.sync import SyncCoordinator, SyncRegistry

logger = logging.getLogger(__name__)


class SyncStatus(str, Enum):
    IDLE = "idle"
    SYNCING = "syncing"
    ERROR = "error"


class SessionContext:
    """Per-session owner of the sync registry, autosave and sync status"""

    def __init__(
        self,
        gateway,
        identity: IdentityResolver,
        settings=None,
        legacy_store: Optional[LegacyStateStore] = None,
        backups: Optional[BackupStore] = None,
        logger=None,
    ):
        settings = settings or get_settings()
        self.identity = identity
        self.events = identity.events
        self.registry = SyncRegistry(
            gateway,
            backups=backups or BackupStore(gateway, page_size=settings.backup_page_size),
            events=self.events,
            logger=logger,
            backup_version=settings.backup_version,
        )
        self.state_store = AppStateStore(gateway, identity, version=settings.app_state_version)
        self.legacy_store = legacy_store or LegacyStateStore(settings.legacy_store_path)
        self.autosave_delay = settings.autosave_delay_seconds
        self.logger = logger

        self.sync_status = SyncStatus.IDLE
        self.last_sync: Optional[datetime] = None
        self._autosave_task: Optional[asyncio.Task] = None
        self._save_task: Optional[asyncio.Task] = None

        self.events.on(EVENT_SESSION_CHANGED, self._on_session_changed)

    @property
    def coordinator(self) -> SyncCoordinator:
        """Coordinator of the signed-in principal (Unauthenticated if none)."""
        return self.registry.get(self.identity.current_principal_id())

    async def _on_session_changed(self, event: SyncEvent):
        previous = event.data.get("previous_principal_id")
        if previous and previous != event.principal_id:
            self._cancel_autosave()
            self.registry.dispose(previous)
        self.sync_status = SyncStatus.IDLE
        self.last_sync = None
        if self.logger:
            self.logger.session_changed(event.principal_id)

    # ========================================================================
    # Lifecycle
    # ========================================================================

    async def start(self, principal: Principal, new_account: bool = False) -> Optional[Dict[str, Any]]:
        """
        Sign `principal` in and bring its data up.

        Args:
            principal: Identity supplied by the auth layer
            new_account: True right after registration (creates the profile)

        Returns:
            The state to show, or None when there is nothing stored yet
        """
        await self.identity.sign_in(principal)
        if new_account:
            await self.state_store.create_user_profile(principal.email)
        else:
            await self.state_store.update_last_login()
        return await self.initialize()

    async def initialize(self) -> Optional[Dict[str, Any]]:
        """
        Load the principal's cloud data, or migrate the local store once.

        Returns:
            Loaded (or migrated) state, or None when neither exists
        """
        coordinator = self.coordinator
        self.sync_status = SyncStatus.SYNCING
        try:
            if await coordinator.has_data():
                state = await coordinator.load_all_data()
                logger.info("Data loaded from Firestore")
            else:
                # File read stays off the event loop
                loop = asyncio.get_running_loop()
                state = await loop.run_in_executor(None, self.legacy_store.load)
                if has_migratable_data(state):
                    await coordinator.migrate_from_local_storage(state)
                    logger.info("Data migrated from local store to Firestore")
                else:
                    state = None
        except ShelfSyncError as e:
            logger.error(f"Error initializing data: {e}")
            self.sync_status = SyncStatus.ERROR
            raise

        self.last_sync = datetime.now()
        self.sync_status = SyncStatus.IDLE
        return state

    async def end(self):
        """Drop the pending autosave, finish a running one, sign out and forget the coordinator."""
        self._cancel_autosave()
        await self._wait_for_save()
        principal = self.identity.current_principal
        await self.identity.sign_out()
        if principal is not None:
            self.registry.dispose(principal.uid)

    def close(self):
        """
        Detach from the identity events (session object is done).

        A save already writing runs to completion in the background; use
        `await end()` first to wait for it.
        """
        self._cancel_autosave()
        self.registry.clear()
        self.events.off(EVENT_SESSION_CHANGED, self._on_session_changed)

    # ========================================================================
    # Autosave
    # ========================================================================
    # Two phases: the debounce sleep (`_autosave_task`, cancellable) and the
    # save itself (`_save_task`). A save that started writing is never
    # cancelled; the next save waits for it, so older writes cannot land
    # after newer ones.

    def schedule_autosave(self, state) -> asyncio.Task:
        """
        Save `state` after the debounce delay.

        A newer call replaces a pending one, so a burst of edits costs one
        save. Must be called from a running event loop.
        """
        principal_id = self.identity.current_principal_id()
        self._cancel_autosave()
        self._autosave_task = asyncio.create_task(self._autosave(principal_id, state))
        return self._autosave_task

    async def flush_autosave(self):
        """Wait for the pending autosave and any save still writing."""
        task = self._autosave_task
        if task is not None and not task.done():
            await task
        await self._wait_for_save()

    def _cancel_autosave(self):
        # Only drops a save still waiting out its delay
        if self._autosave_task is not None and not self._autosave_task.done():
            self._autosave_task.cancel()
        self._autosave_task = None

    async def _wait_for_save(self):
        save_task = self._save_task
        if save_task is not None and not save_task.done():
            await asyncio.shield(save_task)

    async def _autosave(self, principal_id: str, state):
        await asyncio.sleep(self.autosave_delay)

        self._save_task = asyncio.create_task(self._save(principal_id, state, self._save_task))
        # Cancelling this task from here on leaves the save running
        await asyncio.shield(self._save_task)

    async def _save(self, principal_id: str, state, previous: Optional[asyncio.Task]):
        if previous is not None and not previous.done():
            await previous

        current = self.identity.current_principal
        if current is None or current.uid != principal_id:
            logger.info("Autosave dropped: principal changed")
            return

        self.sync_status = SyncStatus.SYNCING
        try:
            await self.registry.get(principal_id).save_all_data(state)
        except ShelfSyncError as e:
            # Background task: the failure is surfaced through sync_status
            logger.error(f"Error auto-saving to Firestore: {e}")
            self.sync_status = SyncStatus.ERROR
            return

        self.last_sync = datetime.now()
        self.sync_status = SyncStatus.IDLE
