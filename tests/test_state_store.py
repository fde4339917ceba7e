"""
Tests for the consolidated state document and the profile document.

Runs the real FirestoreGateway over the in-memory fake client.

Run with: python -m pytest tests/test_state_store.py -v
"""

import sys
from datetime import datetime
from pathlib import Path

import pytest

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from shelfsync.models import ApplicationState, Book, UserProfile
from shelfsync.services import (
    AppStateStore,
    DocumentMissing,
    StoreUnavailable,
    Unauthenticated,
    ValidationFailure,
)

APP_STATE_PATH = "users/u1/data/appState"


def dune_state():
    return {
        "books": [{"id": 1, "title": "Dune"}],
        "sagas": [],
        "config": {},
        "scanHistory": [],
        "searchHistory": [],
        "currentPoints": 0,
        "pointsEarned": 0,
        "booksBoughtWithPoints": 0,
    }


class TestSaveAndLoad:

    @pytest.fixture(autouse=True)
    def _store(self, gateway, identity, firestore_client):
        self.client = firestore_client
        self.identity = identity
        self.store = AppStateStore(gateway, identity, version="1.0")

    async def test_dune_scenario(self, alice):
        """Fresh principal saves one book and reads it back."""
        await self.identity.sign_in(alice)
        assert await self.store.has_user_data() is False

        await self.store.save_app_state(dune_state())

        assert await self.store.has_user_data() is True
        loaded = await self.store.load_app_state()
        assert loaded["books"] == [{"id": 1, "title": "Dune"}]

    async def test_round_trip_ignores_metadata(self, alice):
        await self.identity.sign_in(alice)
        state = dune_state()
        state["config"] = {"exportFormat": "json", "yearlyReadingGoal": 12}
        state["searchHistory"] = ["herbert", "austen"]

        await self.store.save_app_state(state)

        assert await self.store.load_app_state() == state

    async def test_metadata_written_next_to_state(self, alice):
        await self.identity.sign_in(alice)
        await self.store.save_app_state(dune_state())

        stored = self.client.data(APP_STATE_PATH)
        assert stored["version"] == "1.0"
        assert isinstance(stored["lastUpdated"], datetime)

    async def test_model_state_round_trips(self, alice):
        await self.identity.sign_in(alice)
        state = ApplicationState(books=[Book(id=7, title="Emma", author="Austen")], current_points=30)

        await self.store.save_app_state(state)
        loaded = ApplicationState.from_document(await self.store.load_app_state())

        assert loaded.books[0].title == "Emma"
        assert loaded.current_points == 30
        assert loaded == state

    async def test_null_fields_are_kept(self, alice):
        await self.identity.sign_in(alice)
        state = dune_state()
        state["books"] = [{"id": 1, "title": "Dune", "rating": None, "tags": ["sf", None]}]

        await self.store.save_app_state(state)

        book = (await self.store.load_app_state())["books"][0]
        assert book == {"id": 1, "title": "Dune", "rating": None, "tags": ["sf"]}

    async def test_load_without_document_is_none(self, alice):
        await self.identity.sign_in(alice)
        assert await self.store.load_app_state() is None

    async def test_duplicate_ids_write_nothing(self, alice):
        await self.identity.sign_in(alice)
        state = dune_state()
        state["books"].append({"id": 1, "title": "Dune Messiah"})

        with pytest.raises(ValidationFailure):
            await self.store.save_app_state(state)
        assert self.client.writes == []

    async def test_store_failure_propagates(self, alice):
        await self.identity.sign_in(alice)
        self.client.fail_on("appState")

        with pytest.raises(StoreUnavailable):
            await self.store.save_app_state(dune_state())
        with pytest.raises(StoreUnavailable):
            await self.store.load_app_state()
        assert await self.store.has_user_data() is False

    async def test_migrate_from_local_storage(self, alice):
        await self.identity.sign_in(alice)
        await self.store.migrate_from_local_storage(dune_state())
        assert (await self.store.load_app_state())["books"][0]["id"] == 1


class TestIsolation:

    @pytest.fixture(autouse=True)
    def _store(self, gateway, identity):
        self.identity = identity
        self.store = AppStateStore(gateway, identity)

    async def test_other_principal_never_sees_state(self, alice, bob):
        await self.identity.sign_in(alice)
        await self.store.save_app_state(dune_state())

        await self.identity.sign_in(bob)
        assert await self.store.load_app_state() is None
        assert await self.store.has_user_data() is False

        await self.store.save_app_state({"books": [{"id": 2, "title": "Emma"}]})
        loaded = await self.store.load_app_state()
        assert [b["id"] for b in loaded["books"]] == [2]

    async def test_signed_out_calls_fail(self, alice):
        await self.identity.sign_in(alice)
        await self.identity.sign_out()

        with pytest.raises(Unauthenticated):
            await self.store.save_app_state(dune_state())
        with pytest.raises(Unauthenticated):
            await self.store.load_app_state()
        with pytest.raises(Unauthenticated):
            await self.store.save_books([])
        assert await self.store.has_user_data() is False


class TestFieldUpdates:

    @pytest.fixture(autouse=True)
    def _store(self, gateway, identity, firestore_client):
        self.client = firestore_client
        self.identity = identity
        self.store = AppStateStore(gateway, identity)

    async def test_save_books_before_full_save_is_missing(self, alice):
        await self.identity.sign_in(alice)
        with pytest.raises(DocumentMissing):
            await self.store.save_books([{"id": 1, "title": "Dune"}])

    async def test_field_saves_patch_only_their_field(self, alice):
        await self.identity.sign_in(alice)
        state = dune_state()
        state["sagas"] = [{"id": 1, "name": "Dune"}]
        await self.store.save_app_state(state)

        await self.store.save_books([{"id": 1, "title": "Dune"}, {"id": 2, "title": "Dune Messiah"}])
        await self.store.save_config({"exportFormat": "csv"})
        await self.store.save_scan_history([{"id": 1, "isbn": "9780441013593", "timestamp": 1, "success": True}])

        loaded = await self.store.load_app_state()
        assert len(loaded["books"]) == 2
        assert loaded["sagas"] == [{"id": 1, "name": "Dune"}]
        assert loaded["config"] == {"exportFormat": "csv"}
        assert loaded["scanHistory"][0]["isbn"] == "9780441013593"

    async def test_save_sagas_checks_names(self, alice):
        await self.identity.sign_in(alice)
        await self.store.save_app_state(dune_state())

        with pytest.raises(ValidationFailure):
            await self.store.save_sagas([{"id": 1, "name": "Dune"}, {"id": 2, "name": "Dune"}])


class TestProfile:

    @pytest.fixture(autouse=True)
    def _store(self, gateway, identity, firestore_client):
        self.client = firestore_client
        self.identity = identity
        self.store = AppStateStore(gateway, identity)

    async def test_create_and_get_profile(self, alice):
        await self.identity.sign_in(alice)
        await self.store.create_user_profile(alice.email)

        profile = await self.store.get_user_profile()
        assert isinstance(profile, UserProfile)
        assert profile.email == "alice@example.com"
        assert profile.created_at is not None
        assert self.client.data("users/u1")["email"] == "alice@example.com"

    async def test_update_last_login_creates_missing_profile(self, alice):
        await self.identity.sign_in(alice)
        await self.store.update_last_login()

        profile = await self.store.get_user_profile()
        assert profile.email == "alice@example.com"
        assert profile.last_login is not None

    async def test_update_last_login_keeps_created_at(self, alice):
        await self.identity.sign_in(alice)
        await self.store.create_user_profile(alice.email)
        created_at = self.client.data("users/u1")["createdAt"]

        await self.store.update_last_login()

        stored = self.client.data("users/u1")
        assert stored["createdAt"] == created_at
        assert stored["lastLogin"] >= created_at
        assert self.client.writes[-1] == ("update", "users/u1")

    async def test_update_last_login_requires_principal(self):
        with pytest.raises(Unauthenticated):
            await self.store.update_last_login()

    async def test_missing_profile_is_none(self, alice):
        await self.identity.sign_in(alice)
        assert await self.store.get_user_profile() is None
