"""
Shared fixtures: an in-memory record store, a no-wait numbering client and
one actor per role.
"""
import uuid
from datetime import datetime, timedelta, timezone

import pytest

from policyhub.auth.roles import Role
from policyhub.auth.schemas import Actor
from policyhub.numbering.client import NumberingClient
from policyhub.store.base import POLICIES
from policyhub.store.memory import InMemoryRecordStore

BASE_TIME = datetime(2024, 1, 1, 9, 0, tzinfo=timezone.utc)


def make_actor(role: Role, name: str = None) -> Actor:
    return Actor(id=uuid.uuid4(), role=role, name=name)


@pytest.fixture
def store():
    return InMemoryRecordStore()


@pytest.fixture
def numbering(store):
    return NumberingClient(store, max_retries=3, backoff_seconds=0)


@pytest.fixture
def reader():
    return make_actor(Role.READ_ONLY, "Reader")


@pytest.fixture
def author():
    return make_actor(Role.EDIT, "Author")


@pytest.fixture
def publisher():
    return make_actor(Role.PUBLISH, "Publisher")


@pytest.fixture
def admin():
    return make_actor(Role.SUPER_ADMIN, "Admin")


@pytest.fixture
def seed_policy(store):
    """Insert a policy row directly, bypassing the services."""
    counter = {"n": 0}

    async def _seed(status="draft", creator=None, policy_number="HR-001", **fields):
        counter["n"] += 1
        record = {
            "id": uuid.uuid4(),
            "name": f"Policy {counter['n']}",
            "purpose": "Purpose",
            "policy_text": "Text",
            "procedure": "Procedure",
            "policy_type": "HR",
            "policy_number": policy_number,
            "status": status,
            "creator_id": creator.id if creator else uuid.uuid4(),
            "publisher_id": None,
            "reviewer": None,
            "reviewer_comment": None,
            "parent_policy_id": None,
            "created_at": BASE_TIME + timedelta(minutes=counter["n"]),
            "updated_at": BASE_TIME + timedelta(minutes=counter["n"]),
            "published_at": None,
            "archived_at": None,
        }
        record.update(fields)
        return await store.insert(POLICIES, record)

    return _seed
