"""
Consolidated application state store.

Keeps the whole library in one document (users/{uid}/data/appState) next to
a server timestamp and a literal version tag, plus the small profile
document (users/{uid}). The principal is resolved on every call, so a user
switch can never write into the previous user's namespace.
"""

from google.cloud.firestore import SERVER_TIMESTAMP
from typing import Optional, Dict, Any, List
import logging

from shelfsync.config.limits import (
    APP_STATE_DOCUMENT,
    PROFILE_DOCUMENT,
    LAST_UPDATED_FIELD,
    VERSION_FIELD,
)
from shelfsync.models import UserProfile
from shelfsync.services.errors import ShelfSyncError, Unauthenticated
from shelfsync.services.identity import IdentityResolver
from shelfsync.services.sanitizer import sanitize
from shelfsync.services.validation_service import (
    check_books,
    check_sagas,
    check_state_invariants,
)

logger = logging.getLogger(__name__)


class AppStateStore:
    """Whole-state load/save plus field-scoped updates of the consolidated document"""

    def __init__(self, gateway, identity: IdentityResolver, version: str = "1.0"):
        """
        Args:
            gateway: FirestoreGateway (or anything with the same coroutine API)
            identity: Resolver consulted on every call
            version: Literal tag written next to the state
        """
        self.gateway = gateway
        self.identity = identity
        self.version = version

    # ========================================================================
    # Whole State
    # ========================================================================

    async def save_app_state(self, state) -> None:
        """
        Overwrite the consolidated document with `state` (last writer wins).

        None-valued map fields are kept as nulls; absent values are dropped.

        Raises:
            Unauthenticated, ValidationFailure, StoreUnavailable
        """
        principal_id = self.identity.current_principal_id()
        cleaned = sanitize(check_state_invariants(state), keep_null_fields=True)

        data = {
            **cleaned,
            LAST_UPDATED_FIELD: SERVER_TIMESTAMP,
            VERSION_FIELD: self.version,
        }
        await self.gateway.write_document(principal_id, APP_STATE_DOCUMENT, data)
        logger.info(f"Saved app state for {principal_id[:8]}: {len(cleaned.get('books') or [])} books")

    async def load_app_state(self) -> Optional[Dict[str, Any]]:
        """
        Load the consolidated state without its metadata.

        The remainder is returned as stored, not validated: callers that need
        typed access use ApplicationState.from_document().

        Returns:
            The state mapping, or None if this principal never saved one
        """
        principal_id = self.identity.current_principal_id()
        data = await self.gateway.read_document(principal_id, APP_STATE_DOCUMENT)
        if data is None:
            logger.info(f"No app state stored for {principal_id[:8]}")
            return None

        data.pop(LAST_UPDATED_FIELD, None)
        data.pop(VERSION_FIELD, None)
        return data

    async def migrate_from_local_storage(self, state) -> None:
        """One-way copy of a locally kept state into the consolidated document."""
        await self.save_app_state(state)
        logger.info("Local state migrated to Firestore")

    # ========================================================================
    # Field-scoped Updates
    # ========================================================================
    # These patch an existing document: save_app_state must have run once for
    # the principal, otherwise DocumentMissing is raised.

    async def _save_field(self, field: str, value: Any) -> None:
        principal_id = self.identity.current_principal_id()
        await self.gateway.update_fields(principal_id, APP_STATE_DOCUMENT, {
            field: sanitize(value, keep_null_fields=True),
            LAST_UPDATED_FIELD: SERVER_TIMESTAMP,
        })

    async def save_books(self, books: List[Any]) -> None:
        check_books(books)
        await self._save_field("books", books)

    async def save_sagas(self, sagas: List[Any]) -> None:
        check_sagas(sagas)
        await self._save_field("sagas", sagas)

    async def save_config(self, config: Any) -> None:
        await self._save_field("config", config)

    async def save_scan_history(self, scan_history: List[Any]) -> None:
        await self._save_field("scanHistory", scan_history)

    async def has_user_data(self) -> bool:
        """
        Check whether the consolidated document exists.

        Errors (including a missing principal) are reported as False.
        """
        try:
            principal_id = self.identity.current_principal_id()
            return await self.gateway.read_document(principal_id, APP_STATE_DOCUMENT) is not None
        except ShelfSyncError as e:
            logger.warning(f"Could not check for user data: {e}")
            return False

    # ========================================================================
    # Profile Document
    # ========================================================================

    async def create_user_profile(self, email: Optional[str]) -> None:
        """Create or replace the profile document of the current principal."""
        principal_id = self.identity.current_principal_id()
        await self.gateway.write_document(principal_id, PROFILE_DOCUMENT, {
            "email": email,
            "createdAt": SERVER_TIMESTAMP,
            "lastLogin": SERVER_TIMESTAMP,
        })

    async def update_last_login(self) -> None:
        """
        Stamp the login time, creating the profile if it does not exist.

        Read-then-write: two sessions racing here both succeed and the last
        write wins.
        """
        principal = self.identity.current_principal
        if principal is None:
            raise Unauthenticated()

        existing = await self.gateway.read_document(principal.uid, PROFILE_DOCUMENT)
        if existing is not None:
            await self.gateway.update_fields(principal.uid, PROFILE_DOCUMENT, {
                "lastLogin": SERVER_TIMESTAMP,
            })
        else:
            await self.create_user_profile(principal.email)

    async def get_user_profile(self) -> Optional[UserProfile]:
        principal_id = self.identity.current_principal_id()
        data = await self.gateway.read_document(principal_id, PROFILE_DOCUMENT)
        if data is None:
            return None
        return UserProfile.model_validate(data)
