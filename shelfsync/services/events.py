"""
Event System for Sync Status Updates

Publishes session changes and sync progress so the UI layer can show
"syncing / saved / error" without polling.
"""

from typing import Dict, Callable, Any, List, Optional
import asyncio
import logging
from datetime import datetime

logger = logging.getLogger(__name__)


# ==================== Event Type Constants ====================
EVENT_SESSION_CHANGED = "session_changed"
EVENT_SYNC_STARTED = "sync_started"
EVENT_SYNC_COMPLETED = "sync_completed"
EVENT_SYNC_FAILED = "sync_failed"
EVENT_BACKUP_CREATED = "backup_created"


class SyncEvent:
    """Represents a sync or session event"""
    def __init__(self, event_type: str, principal_id: Optional[str], data: Dict[str, Any]):
        self.event_type = event_type
        self.principal_id = principal_id
        self.data = data
        self.timestamp = datetime.now()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.event_type,
            "principal_id": self.principal_id,
            "data": self.data,
            "timestamp": self.timestamp.isoformat()
        }


class SyncEventEmitter:
    """
    Event emitter for session and sync events.

    - session_changed: a principal signed in (principal_id set) or out (None)
    - sync_started / sync_completed / sync_failed: whole-state save or load
    - backup_created: a snapshot was appended
    """

    def __init__(self):
        self._listeners: Dict[str, List[Callable]] = {}

    def on(self, event_type: str, callback: Callable):
        """Register event listener"""
        if event_type not in self._listeners:
            self._listeners[event_type] = []
        self._listeners[event_type].append(callback)

    def off(self, event_type: str, callback: Callable):
        """Remove event listener"""
        if event_type in self._listeners:
            self._listeners[event_type].remove(callback)

    async def emit(self, event_type: str, principal_id: Optional[str], data: Optional[Dict[str, Any]] = None):
        """Emit event to all registered listeners"""
        event = SyncEvent(event_type, principal_id, data or {})

        for callback in list(self._listeners.get(event_type, [])):
            try:
                if asyncio.iscoroutinefunction(callback):
                    await callback(event)
                else:
                    callback(event)
            except Exception as e:
                logger.error(f"Error in event listener for {event_type}: {e}")
