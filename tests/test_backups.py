"""
Tests for append-only backup snapshots.

Run with: python -m pytest tests/test_backups.py -v
"""

import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from shelfsync.models import ApplicationState, BackupSnapshot, Book
from shelfsync.services import BackupStore, SyncCoordinator, SyncEventEmitter, ValidationFailure
from shelfsync.services.backups import build_snapshot
from shelfsync.services.events import EVENT_BACKUP_CREATED

T0 = datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)


class StepClock:
    """Returns T0, T0+1min, T0+2min, ... on successive calls."""

    def __init__(self):
        self.calls = 0

    def __call__(self):
        moment = T0 + timedelta(minutes=self.calls)
        self.calls += 1
        return moment


class TestBuildSnapshot:

    def test_copies_state_keys_and_metadata(self):
        state = {
            "books": [{"id": 1, "title": "Dune", "rating": None}],
            "config": {"exportFormat": "json"},
            "currentPoints": 4,
            "darkMode": True,
        }
        snapshot = build_snapshot(state, "1.0", T0)

        assert snapshot["books"] == [{"id": 1, "title": "Dune"}]
        assert snapshot["config"] == {"exportFormat": "json"}
        assert snapshot["currentPoints"] == 4
        assert "darkMode" not in snapshot
        assert "sagas" not in snapshot
        assert snapshot["version"] == "1.0"
        assert snapshot["timestamp"] == int(T0.timestamp() * 1000)
        assert snapshot["createdAt"] == T0


class TestBackupStore:

    @pytest.fixture(autouse=True)
    def _store(self, gateway, firestore_client):
        self.client = firestore_client
        self.clock = StepClock()
        self.store = BackupStore(gateway, page_size=10, clock=self.clock)

    async def test_newest_first(self):
        ids = []
        for title in ["Dune", "Emma", "Ulysses"]:
            ids.append(await self.store.create("u1", {"books": [{"id": 1, "title": title}]}, "1.0"))

        backups = await self.store.list_recent("u1")

        assert [b.id for b in backups] == list(reversed(ids))
        assert [b.state["books"][0]["title"] for b in backups] == ["Ulysses", "Emma", "Dune"]
        assert backups[0].created_at == T0 + timedelta(minutes=2)

    async def test_listing_capped_at_page_size(self):
        for i in range(12):
            await self.store.create("u1", {"books": [], "currentPoints": i}, "1.0")

        backups = await self.store.list_recent("u1")

        assert len(backups) == 10
        assert backups[0].state["currentPoints"] == 11
        assert backups[-1].state["currentPoints"] == 2

    async def test_snapshot_fields_parsed(self):
        await self.store.create("u1", {"books": [], "searchHistory": ["x"]}, "2.1")

        backup = (await self.store.list_recent("u1"))[0]

        assert isinstance(backup, BackupSnapshot)
        assert backup.version == "2.1"
        assert backup.timestamp == int(T0.timestamp() * 1000)
        assert backup.state == {"books": [], "searchHistory": ["x"]}

    async def test_backups_are_per_principal(self):
        await self.store.create("u1", {"books": []}, "1.0")
        assert await self.store.list_recent("u2") == []

    async def test_backup_stored_under_principal(self):
        backup_id = await self.store.create("u1", {"books": []}, "1.0")
        assert f"users/u1/backups/{backup_id}" in self.client.paths()


class TestCoordinatorBackups:

    @pytest.fixture(autouse=True)
    def _coordinator(self, gateway):
        self.events = SyncEventEmitter()
        self.received = []
        self.events.on(EVENT_BACKUP_CREATED, self.received.append)
        self.coordinator = SyncCoordinator(
            "u1",
            gateway,
            backups=BackupStore(gateway, clock=StepClock()),
            events=self.events,
            backup_version="1.0",
        )

    async def test_create_and_list(self):
        first = await self.coordinator.create_backup(ApplicationState(books=[Book(id=1, title="Dune")]))
        second = await self.coordinator.create_backup({"books": []})

        backups = await self.coordinator.get_backups()

        assert [b.id for b in backups] == [second, first]
        assert backups[1].state["books"][0]["title"] == "Dune"
        assert backups[1].version == "1.0"

    async def test_backup_event(self):
        backup_id = await self.coordinator.create_backup({"books": []})
        assert self.received[0].data == {"backup_id": backup_id}

    async def test_backup_ignores_in_flight_flag(self):
        self.coordinator._save_in_flight = True
        assert await self.coordinator.create_backup({"books": []})

    async def test_non_mapping_rejected(self):
        with pytest.raises(ValidationFailure):
            await self.coordinator.create_backup([1, 2])
