"""
Identity resolution for storage paths.

The identity layer (sign-in forms, SSO) lives outside this package; it tells
the resolver who is signed in, and every storage call asks the resolver for
the principal id. No principal means no storage access.
"""

from typing import Optional
import logging

from shelfsync.models import Principal
from shelfsync.services.errors import Unauthenticated
from shelfsync.services.events import SyncEventEmitter, EVENT_SESSION_CHANGED

logger = logging.getLogger(__name__)


class IdentityResolver:
    """Holds the current principal and publishes session changes"""

    def __init__(self, events: Optional[SyncEventEmitter] = None):
        self.events = events or SyncEventEmitter()
        self._principal: Optional[Principal] = None

    @property
    def current_principal(self) -> Optional[Principal]:
        return self._principal

    def current_principal_id(self) -> str:
        """
        Return the id namespacing all storage paths.

        Raises:
            Unauthenticated: if nobody is signed in
        """
        if self._principal is None:
            raise Unauthenticated()
        return self._principal.uid

    async def sign_in(self, principal: Principal):
        """Bind a principal (called by the identity layer after authentication)."""
        previous = self._principal
        self._principal = principal
        if previous is None or previous.uid != principal.uid:
            logger.info(f"Principal signed in: {principal.uid[:8]}")
            await self.events.emit(EVENT_SESSION_CHANGED, principal.uid, {
                "previous_principal_id": previous.uid if previous else None,
            })

    async def sign_out(self):
        """Drop the current principal."""
        previous = self._principal
        self._principal = None
        if previous is not None:
            logger.info(f"Principal signed out: {previous.uid[:8]}")
            await self.events.emit(EVENT_SESSION_CHANGED, None, {
                "previous_principal_id": previous.uid,
            })
