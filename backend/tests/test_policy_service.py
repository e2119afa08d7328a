"""
Tests for policy CRUD: creation with numbering, editing with revision
capture, listing and deletion.
"""
import uuid
from unittest.mock import AsyncMock, patch

import pytest

from policyhub.core.errors import (
    InvalidTransition,
    NotFound,
    NotPermitted,
    NumberGenerationError,
    ValidationError,
)
from policyhub.policy import service
from policyhub.policy.schemas import PolicyCreate, PolicyUpdate
from policyhub.store.base import AUDIT_LOGS, POLICIES, REVISIONS
from policyhub.versioning import service as versioning


class TestCreatePolicy:

    @pytest.mark.asyncio
    async def test_author_creates_numbered_draft(self, store, numbering, author):
        policy = await service.create_policy(
            store, numbering, PolicyCreate(policy_type="HR", name="Leave"), author,
        )

        assert policy["policy_number"] == "HR-001"
        assert policy["status"] == "draft"
        assert policy["creator_id"] == author.id
        assert policy["parent_policy_id"] is None
        logs = await store.select(AUDIT_LOGS, {"entity_id": policy["id"]})
        assert [log["action"] for log in logs] == ["POLICY_CREATED"]

    @pytest.mark.asyncio
    async def test_publisher_may_submit_directly(self, store, numbering, publisher):
        policy = await service.create_policy(
            store, numbering, PolicyCreate(policy_type="Finance", status="under review"), publisher,
        )
        assert policy["status"] == "under-review"
        assert policy["policy_number"] == "FIN-001"

    @pytest.mark.asyncio
    async def test_read_only_cannot_create(self, store, numbering, reader):
        with pytest.raises(NotPermitted):
            await service.create_policy(store, numbering, PolicyCreate(policy_type="HR"), reader)
        assert await store.count(POLICIES) == 0

    @pytest.mark.asyncio
    async def test_unknown_policy_type(self, store, numbering, author):
        with pytest.raises(ValidationError):
            await service.create_policy(store, numbering, PolicyCreate(policy_type="Legal"), author)

    @pytest.mark.asyncio
    async def test_no_number_no_policy(self, store, numbering, author):
        store.rpc = AsyncMock(side_effect=RuntimeError("sequence table locked"))
        with patch("policyhub.numbering.client.asyncio.sleep", new_callable=AsyncMock):
            with pytest.raises(NumberGenerationError):
                await service.create_policy(store, numbering, PolicyCreate(policy_type="HR"), author)
        assert await store.count(POLICIES) == 0


class TestUpdatePolicy:

    @pytest.mark.asyncio
    async def test_edit_records_revisions(self, store, numbering, seed_policy, author):
        policy = await seed_policy("draft", creator=author)

        updated = await service.update_policy(
            store, numbering, policy["id"],
            PolicyUpdate(purpose="New purpose", procedure="Procedure", reviewer="Jane"),
            author,
        )

        assert updated["purpose"] == "New purpose"
        assert updated["reviewer"] == "Jane"
        revisions = await store.select(REVISIONS, {"policy_id": policy["id"]})
        assert [r["field_name"] for r in revisions] == ["purpose"]
        assert updated["revision_ids"] == [revisions[0]["id"]]

    @pytest.mark.asyncio
    async def test_no_changes(self, store, numbering, seed_policy, author):
        policy = await seed_policy("draft", creator=author)
        updated = await service.update_policy(store, numbering, policy["id"], PolicyUpdate(name=policy["name"]), author)
        assert updated["revision_ids"] == []
        assert await store.count(AUDIT_LOGS) == 0

    @pytest.mark.asyncio
    async def test_tracking_can_be_switched_off(self, store, numbering, seed_policy, author):
        policy = await seed_policy("draft", creator=author)
        with patch("policyhub.revisions.service.settings.REVISION_TRACKING_ENABLED", False):
            await service.update_policy(store, numbering, policy["id"], PolicyUpdate(name="Renamed"), author)
        assert await store.count(REVISIONS) == 0

    @pytest.mark.asyncio
    async def test_returned_policy_is_editable(self, store, numbering, seed_policy, author):
        policy = await seed_policy("awaiting-changes", creator=author)
        updated = await service.update_policy(store, numbering, policy["id"], PolicyUpdate(name="Fixed"), author)
        assert updated["name"] == "Fixed"
        assert updated["status"] == "awaiting-changes"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", ["under review", "published", "archived", "approved"])
    async def test_locked_statuses(self, store, numbering, seed_policy, admin, status):
        policy = await seed_policy(status)
        with pytest.raises(InvalidTransition):
            await service.update_policy(store, numbering, policy["id"], PolicyUpdate(name="x"), admin)

    @pytest.mark.asyncio
    async def test_other_authors_cannot_edit(self, store, numbering, seed_policy, author):
        policy = await seed_policy("draft")
        with pytest.raises(NotPermitted):
            await service.update_policy(store, numbering, policy["id"], PolicyUpdate(name="x"), author)

    @pytest.mark.asyncio
    async def test_admin_edits_anyones_draft(self, store, numbering, seed_policy, admin):
        policy = await seed_policy("draft")
        updated = await service.update_policy(store, numbering, policy["id"], PolicyUpdate(name="x"), admin)
        assert updated["name"] == "x"

    @pytest.mark.asyncio
    async def test_failed_edit_leaves_no_revisions(self, store, numbering, seed_policy, author):
        policy = await seed_policy("draft", creator=author)
        # The first field gets its revision number, every call after that fails
        store.rpc = AsyncMock(side_effect=[1] + [RuntimeError("sequence table locked")] * 4)

        with pytest.raises(NumberGenerationError):
            await service.update_policy(
                store, numbering, policy["id"], PolicyUpdate(name="N", purpose="P2"), author,
            )

        assert await store.count(REVISIONS) == 0
        assert await store.count(AUDIT_LOGS) == 0
        unchanged = await store.get(POLICIES, policy["id"])
        assert (unchanged["name"], unchanged["purpose"]) == (policy["name"], "Purpose")


class TestListAndGet:

    @pytest.mark.asyncio
    async def test_filters_and_search(self, store, seed_policy, author):
        mine = await seed_policy("draft", creator=author, name="Annual Leave")
        await seed_policy("under review", name="Travel", policy_number="HR-002")
        await seed_policy("published", name="Expenses", policy_type="Finance", policy_number="FIN-001")

        by_status = await service.list_policies(store, status="under-review")
        assert [p["status"] for p in by_status["policies"]] == ["under-review"]

        by_creator = await service.list_policies(store, creator_id=author.id)
        assert [p["id"] for p in by_creator["policies"]] == [mine["id"]]

        by_search = await service.list_policies(store, search="fin-")
        assert [p["policy_number"] for p in by_search["policies"]] == ["FIN-001"]

        by_type = await service.list_policies(store, policy_type="Finance")
        assert by_type["total"] == 1

    @pytest.mark.asyncio
    async def test_pagination(self, store, seed_policy):
        for _ in range(5):
            await seed_policy("draft")
        page = await service.list_policies(store, page=2, page_size=2)
        assert page["total"] == 5
        assert len(page["policies"]) == 2
        assert page["page"] == 2

    @pytest.mark.asyncio
    async def test_unknown_status_filter(self, store):
        with pytest.raises(ValidationError):
            await service.list_policies(store, status="pending")

    @pytest.mark.asyncio
    async def test_get_missing(self, store):
        with pytest.raises(NotFound):
            await service.get_policy(store, uuid.uuid4())


class TestDeletePolicy:

    @pytest.mark.asyncio
    async def test_admin_deletes_with_revisions(self, store, numbering, seed_policy, author, admin):
        policy = await seed_policy("draft", creator=author)
        await service.update_policy(store, numbering, policy["id"], PolicyUpdate(name="Renamed"), author)

        result = await service.delete_policy(store, policy["id"], admin)

        assert result["revisions_deleted"] == 1
        assert await store.get(POLICIES, policy["id"]) is None
        assert await store.count(REVISIONS) == 0

    @pytest.mark.asyncio
    async def test_publisher_cannot_delete(self, store, seed_policy, publisher):
        policy = await seed_policy("draft")
        with pytest.raises(NotPermitted):
            await service.delete_policy(store, policy["id"], publisher)

    @pytest.mark.asyncio
    async def test_deleting_root_promotes_oldest_version(self, store, seed_policy, admin):
        root = await seed_policy("archived")
        v1 = await seed_policy("archived", parent_policy_id=root["id"])
        v2 = await seed_policy("published", parent_policy_id=root["id"])

        result = await service.delete_policy(store, root["id"], admin)

        assert result["new_root_id"] == v1["id"]
        assert (await store.get(POLICIES, v1["id"]))["parent_policy_id"] is None
        assert (await store.get(POLICIES, v2["id"]))["parent_policy_id"] == v1["id"]
        family = await versioning.get_version_family(store, v2["id"])
        assert [(m["id"], m["version_label"]) for m in family] == [(v2["id"], "1.1"), (v1["id"], "1.0")]

    @pytest.mark.asyncio
    async def test_deleting_a_later_version_leaves_family_alone(self, store, seed_policy, admin):
        root = await seed_policy("archived")
        clone = await seed_policy("published", parent_policy_id=root["id"])

        result = await service.delete_policy(store, clone["id"], admin)

        assert result["new_root_id"] is None
        assert (await store.get(POLICIES, root["id"]))["parent_policy_id"] is None

    @pytest.mark.asyncio
    async def test_delete_is_audited(self, store, seed_policy, admin):
        policy = await seed_policy("draft")
        await service.delete_policy(store, policy["id"], admin)

        logs = await store.select(AUDIT_LOGS, {"entity_id": policy["id"]})
        assert [log["action"] for log in logs] == ["POLICY_DELETED"]
        assert logs[0]["details"]["revisions_deleted"] == 0
