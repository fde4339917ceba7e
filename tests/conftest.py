"""Shared fixtures: a real FirestoreGateway over the in-memory fake client."""

import sys
from pathlib import Path

import pytest

# Add project root and tests dir to path
sys.path.insert(0, str(Path(__file__).parent.parent))
sys.path.insert(0, str(Path(__file__).parent))

from fake_firestore import FakeFirestore
from shelfsync.models import Principal
from shelfsync.services import FirestoreGateway, IdentityResolver


@pytest.fixture
def firestore_client():
    return FakeFirestore()


@pytest.fixture
def gateway(firestore_client):
    gateway = FirestoreGateway(client=firestore_client, max_workers=4)
    yield gateway
    gateway.shutdown()


@pytest.fixture
def identity():
    return IdentityResolver()


@pytest.fixture
def alice():
    return Principal(uid="u1", email="alice@example.com")


@pytest.fixture
def bob():
    return Principal(uid="u2", email="bob@example.com")
