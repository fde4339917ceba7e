"""
Unit tests for the state invariant checks (unique book ids, unique saga names).

Run with: python -m pytest tests/test_validation.py -v
"""

import sys
from pathlib import Path

import pytest

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from shelfsync.models import ApplicationState, Book, Series
from shelfsync.services import ValidationFailure
from shelfsync.services.validation_service import check_books, check_sagas, check_state_invariants


class TestBookIds:

    def test_unique_ids_pass(self):
        check_books([{"id": 1, "title": "Dune"}, {"id": 2, "title": "Emma"}])

    def test_duplicate_ids_fail(self):
        with pytest.raises(ValidationFailure, match="Duplicate book ids"):
            check_books([{"id": 1, "title": "Dune"}, {"id": 1, "title": "Emma"}])

    def test_models_checked_like_mappings(self):
        with pytest.raises(ValidationFailure):
            check_books([Book(id=3, title="A"), Book(id=3, title="B")])

    def test_missing_list_is_empty(self):
        check_books(None)

    def test_non_list_rejected(self):
        with pytest.raises(ValidationFailure, match="books must be a list"):
            check_books({"id": 1})

    def test_unhashable_ids_rejected(self):
        with pytest.raises(ValidationFailure, match="Book ids must be scalar values"):
            check_books([{"id": {"isbn": "123"}, "title": "Dune"}])


class TestSagaNames:

    def test_duplicate_names_fail(self):
        with pytest.raises(ValidationFailure, match="Duplicate saga names"):
            check_sagas([{"id": 1, "name": "Dune"}, {"id": 2, "name": "Dune"}])

    def test_same_id_different_names_pass(self):
        check_sagas([Series(id=1, name="Dune"), Series(id=1, name="Foundation")])

    def test_unhashable_saga_names_rejected(self):
        with pytest.raises(ValidationFailure, match="Saga names must be scalar values"):
            check_sagas([{"id": 1, "name": ["Dune"]}])


class TestStateInvariants:

    def test_returns_stored_form_of_model(self):
        state = ApplicationState(books=[Book(id=1, title="Dune")], current_points=4)
        tree = check_state_invariants(state)
        assert tree["currentPoints"] == 4
        assert tree["books"][0]["title"] == "Dune"

    def test_mapping_passes_through(self):
        state = {"books": [], "sagas": []}
        assert check_state_invariants(state) is state

    def test_non_mapping_rejected(self):
        with pytest.raises(ValidationFailure):
            check_state_invariants(["books"])
