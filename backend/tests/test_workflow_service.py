"""
Tests for the workflow service: transitions persisted through the record store.
"""
import uuid

import pytest

from policyhub.core.errors import (
    Forbidden,
    InvalidTransition,
    NotFound,
    NotPermitted,
    StoreError,
    ValidationError,
)
from policyhub.store.base import AUDIT_LOGS, NOTIFICATIONS, POLICIES
from policyhub.workflow import service
from policyhub.workflow.states import PolicyStatus

from conftest import BASE_TIME


class TestTransition:

    @pytest.mark.asyncio
    async def test_creator_submits_draft(self, store, seed_policy, author):
        policy = await seed_policy("draft", creator=author)

        result = await service.transition(store, policy["id"], "under-review", author)

        assert result.from_status is PolicyStatus.DRAFT
        assert result.to_status is PolicyStatus.UNDER_REVIEW
        stored = await store.get(POLICIES, policy["id"])
        assert stored["status"] == "under-review"

    @pytest.mark.asyncio
    async def test_non_creator_edit_role_cannot_submit(self, store, seed_policy, author):
        policy = await seed_policy("draft")
        with pytest.raises(NotPermitted):
            await service.transition(store, policy["id"], "under-review", author)

    @pytest.mark.asyncio
    async def test_legacy_spelling_can_be_approved(self, store, seed_policy, publisher):
        policy = await seed_policy("under review")

        result = await service.transition(store, policy["id"], "approved", publisher)

        assert result.from_status is PolicyStatus.UNDER_REVIEW
        assert result.record["status"] == "approved"

    @pytest.mark.asyncio
    async def test_request_changes_stores_comment(self, store, seed_policy, publisher):
        policy = await seed_policy("under-review")

        result = await service.transition(
            store, policy["id"], "awaiting-changes", publisher, comment="Clarify scope",
        )

        assert result.record["status"] == "awaiting-changes"
        assert result.record["reviewer_comment"] == "Clarify scope"

    @pytest.mark.asyncio
    async def test_request_changes_without_comment(self, store, seed_policy, publisher):
        policy = await seed_policy("under-review")
        with pytest.raises(ValidationError):
            await service.transition(store, policy["id"], "awaiting-changes", publisher)
        assert (await store.get(POLICIES, policy["id"]))["status"] == "under-review"

    @pytest.mark.asyncio
    async def test_creator_cannot_publish_own_policy(self, store, seed_policy, publisher):
        policy = await seed_policy("under-review", creator=publisher)
        with pytest.raises(Forbidden):
            await service.transition(store, policy["id"], "published", publisher)

    @pytest.mark.asyncio
    async def test_unlisted_transition(self, store, seed_policy, admin):
        policy = await seed_policy("draft")
        with pytest.raises(InvalidTransition):
            await service.transition(store, policy["id"], "published", admin)

    @pytest.mark.asyncio
    async def test_missing_policy(self, store, admin):
        with pytest.raises(NotFound):
            await service.transition(store, uuid.uuid4(), "draft", admin)

    @pytest.mark.asyncio
    async def test_archive_and_restore_timestamps(self, store, seed_policy, admin):
        policy = await seed_policy("published")

        archived = await service.transition(store, policy["id"], "archived", admin)
        assert archived.record["archived_at"] is not None

        restored = await service.transition(store, policy["id"], "draft", admin)
        assert restored.record["status"] == "draft"
        assert restored.record["archived_at"] is None

    @pytest.mark.asyncio
    async def test_published_back_to_draft_keeps_published_at(self, store, seed_policy, publisher):
        policy = await seed_policy("published", published_at=BASE_TIME)

        result = await service.transition(store, policy["id"], "draft", publisher)

        assert result.record["status"] == "draft"
        assert result.record["published_at"] == BASE_TIME

    @pytest.mark.asyncio
    async def test_concurrent_change_is_detected(self, store, seed_policy, publisher):
        policy = await seed_policy("under-review")
        original_get = store.get

        async def stale_get(table, record_id):
            row = await original_get(table, record_id)
            # Another reviewer acts between our read and our write
            await store.update(POLICIES, record_id, {"status": "rejected"})
            return row

        store.get = stale_get
        with pytest.raises(InvalidTransition):
            await service.transition(store, policy["id"], "approved", publisher)

    @pytest.mark.asyncio
    async def test_transition_is_audited(self, store, seed_policy, author):
        policy = await seed_policy("draft", creator=author)
        await service.transition(store, policy["id"], "under-review", author)

        logs = await store.select(AUDIT_LOGS, {"entity_id": policy["id"]})
        assert [log["action"] for log in logs] == ["STATUS_CHANGED"]
        assert logs[0]["details"]["to_status"] == "under-review"


class TestNotifications:

    @pytest.mark.asyncio
    async def test_creator_notified_when_returned(self, store, seed_policy, author, publisher):
        policy = await seed_policy("under-review", creator=author)
        await service.transition(store, policy["id"], "awaiting-changes", publisher, comment="Fix")

        notes = await store.select(NOTIFICATIONS, {"user_id": author.id})
        assert len(notes) == 1
        assert notes[0]["type"] == "policy_returned"
        assert notes[0]["metadata"]["reviewer_comment"] == "Fix"

    @pytest.mark.asyncio
    async def test_actor_not_notified_about_own_action(self, store, seed_policy, author):
        policy = await seed_policy("draft", creator=author)
        await service.transition(store, policy["id"], "under-review", author)
        assert await store.count(NOTIFICATIONS) == 0

    @pytest.mark.asyncio
    async def test_notification_failure_does_not_fail_transition(self, store, seed_policy, author, publisher):
        policy = await seed_policy("under-review", creator=author)
        original_insert = store.insert

        async def failing_insert(table, record):
            if table == NOTIFICATIONS:
                raise StoreError("notifications table unavailable")
            return await original_insert(table, record)

        store.insert = failing_insert
        result = await service.transition(store, policy["id"], "rejected", publisher)

        assert result.record["status"] == "rejected"
        assert await store.count(NOTIFICATIONS) == 0


class TestReviewQueue:

    @pytest.mark.asyncio
    async def test_queue_excludes_own_policies(self, store, seed_policy, publisher):
        own = await seed_policy("under-review", creator=publisher)
        other = await seed_policy("under review")
        await seed_policy("draft")

        queue = await service.review_queue(store, publisher)

        ids = [p["id"] for p in queue]
        assert other["id"] in ids
        assert own["id"] not in ids
        assert all(p["status"] == "under-review" for p in queue)

    @pytest.mark.asyncio
    async def test_super_admin_sees_everything_under_review(self, store, seed_policy, admin):
        await seed_policy("under-review", creator=admin)
        await seed_policy("under review")
        assert len(await service.review_queue(store, admin)) == 2

    @pytest.mark.asyncio
    async def test_allowed_transitions(self, store, seed_policy, author):
        policy = await seed_policy("draft", creator=author)
        targets = await service.list_allowed_transitions(store, policy["id"], author)
        assert targets == [PolicyStatus.UNDER_REVIEW]
