"""
HTTP-level tests: routers, auth dependencies and the error body shape,
served in-process over httpx against the in-memory store.
"""
import uuid

import httpx
import pytest
import pytest_asyncio

from policyhub.auth.roles import Role
from policyhub.auth.service import create_access_token
from policyhub.main import app
from policyhub.store.dependencies import get_store


def _headers(role: Role, user_id=None):
    token = create_access_token(str(user_id or uuid.uuid4()), role.value)
    return {"Authorization": f"Bearer {token}"}


@pytest_asyncio.fixture
async def client(store):
    app.dependency_overrides[get_store] = lambda: store
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
        yield c
    app.dependency_overrides.clear()


class TestAuth:

    @pytest.mark.asyncio
    async def test_missing_token(self, client):
        resp = await client.get("/api/policies")
        assert resp.status_code in (401, 403)

    @pytest.mark.asyncio
    async def test_bad_token(self, client):
        resp = await client.get("/api/policies", headers={"Authorization": "Bearer not-a-jwt"})
        assert resp.status_code == 401

    @pytest.mark.asyncio
    async def test_me(self, client):
        user_id = uuid.uuid4()
        resp = await client.get("/api/auth/me", headers=_headers(Role.PUBLISH, user_id))
        assert resp.status_code == 200
        body = resp.json()
        assert body["id"] == str(user_id)
        assert set(body["capabilities"]) == {"view", "author", "review"}

    @pytest.mark.asyncio
    async def test_read_only_cannot_create(self, client):
        resp = await client.post("/api/policies", json={"policy_type": "HR"}, headers=_headers(Role.READ_ONLY))
        assert resp.status_code == 403


class TestPolicyRoutes:

    @pytest.mark.asyncio
    async def test_create_get_list(self, client):
        headers = _headers(Role.EDIT)
        created = await client.post("/api/policies", json={"policy_type": "HR", "name": "Leave"}, headers=headers)
        assert created.status_code == 201
        policy = created.json()
        assert policy["policy_number"] == "HR-001"
        assert policy["status"] == "draft"

        fetched = await client.get(f"/api/policies/{policy['id']}", headers=headers)
        assert fetched.json()["name"] == "Leave"

        listed = await client.get("/api/policies", params={"search": "leave"}, headers=headers)
        assert listed.json()["total"] == 1

    @pytest.mark.asyncio
    async def test_not_found_body(self, client):
        resp = await client.get(f"/api/policies/{uuid.uuid4()}", headers=_headers(Role.READ_ONLY))
        assert resp.status_code == 404
        assert resp.json()["error"] == "NOT_FOUND"
        assert "detail" in resp.json()

    @pytest.mark.asyncio
    async def test_edit_returns_revision_ids(self, client):
        author_id = uuid.uuid4()
        headers = _headers(Role.EDIT, author_id)
        policy = (await client.post("/api/policies", json={"policy_type": "HR", "purpose": "a"}, headers=headers)).json()

        resp = await client.put(f"/api/policies/{policy['id']}", json={"purpose": "b"}, headers=headers)

        assert resp.status_code == 200
        assert len(resp.json()["revision_ids"]) == 1


class TestWorkflowRoutes:

    @pytest.mark.asyncio
    async def test_maker_checker_is_403_with_code(self, client):
        publisher_id = uuid.uuid4()
        headers = _headers(Role.PUBLISH, publisher_id)
        policy = (await client.post(
            "/api/policies", json={"policy_type": "HR", "status": "under-review"}, headers=headers,
        )).json()

        resp = await client.post(
            f"/api/workflow/policies/{policy['id']}/transition",
            json={"target_status": "published"}, headers=headers,
        )

        assert resp.status_code == 403
        assert resp.json()["error"] == "MAKER_CHECKER_VIOLATION"

    @pytest.mark.asyncio
    async def test_invalid_transition_is_409(self, client):
        headers = _headers(Role.SUPER_ADMIN)
        policy = (await client.post("/api/policies", json={"policy_type": "HR"}, headers=headers)).json()

        resp = await client.post(
            f"/api/workflow/policies/{policy['id']}/transition",
            json={"target_status": "published"}, headers=headers,
        )

        assert resp.status_code == 409
        assert resp.json()["error"] == "INVALID_TRANSITION"

    @pytest.mark.asyncio
    async def test_missing_comment_is_422(self, client):
        policy = (await client.post(
            "/api/policies", json={"policy_type": "HR", "status": "under review"}, headers=_headers(Role.PUBLISH),
        )).json()

        resp = await client.post(
            f"/api/workflow/policies/{policy['id']}/transition",
            json={"target_status": "awaiting-changes"}, headers=_headers(Role.PUBLISH),
        )

        assert resp.status_code == 422
        assert resp.json()["error"] == "VALIDATION_ERROR"

    @pytest.mark.asyncio
    async def test_allowed_transitions_and_queue(self, client):
        author_id = uuid.uuid4()
        author = _headers(Role.EDIT, author_id)
        policy = (await client.post("/api/policies", json={"policy_type": "HR"}, headers=author)).json()

        allowed = await client.get(f"/api/workflow/policies/{policy['id']}/allowed-transitions", headers=author)
        assert allowed.json()["allowed"] == ["under-review"]

        await client.post(
            f"/api/workflow/policies/{policy['id']}/transition",
            json={"target_status": "under-review"}, headers=author,
        )
        queue = await client.get("/api/workflow/review-queue", headers=_headers(Role.PUBLISH))
        assert [p["id"] for p in queue.json()["policies"]] == [policy["id"]]


class TestOtherRoutes:

    @pytest.mark.asyncio
    async def test_audit_requires_review(self, client):
        assert (await client.get("/api/audit", headers=_headers(Role.EDIT))).status_code == 403
        assert (await client.get("/api/audit", headers=_headers(Role.PUBLISH))).status_code == 200

    @pytest.mark.asyncio
    async def test_health(self, client):
        resp = await client.get("/health")
        assert resp.json() == {"status": "healthy"}


class TestCommentRoutes:

    @pytest.mark.asyncio
    async def test_thread_round_trip(self, client):
        author_id = uuid.uuid4()
        author = _headers(Role.EDIT, author_id)
        policy = (await client.post("/api/policies", json={"policy_type": "HR"}, headers=author)).json()

        created = await client.post(
            f"/api/comments/policies/{policy['id']}", json={"comment": "Needs a scope section"},
            headers=_headers(Role.READ_ONLY),
        )
        assert created.status_code == 201
        comment = created.json()
        assert comment["edited"] is False

        thread = await client.get(f"/api/comments/policies/{policy['id']}", headers=author)
        assert thread.json()["total"] == 1
        assert thread.json()["comments"][0]["comment"] == "Needs a scope section"

        # Only the comment's author may edit it
        resp = await client.put(f"/api/comments/{comment['id']}", json={"comment": "x"}, headers=author)
        assert resp.status_code == 403
        assert resp.json()["error"] == "NOT_PERMITTED"

        resp = await client.delete(f"/api/comments/{comment['id']}", headers=_headers(Role.SUPER_ADMIN))
        assert resp.status_code == 200
        assert resp.json()["deleted"] is True

    @pytest.mark.asyncio
    async def test_empty_comment_is_422(self, client):
        headers = _headers(Role.EDIT)
        policy = (await client.post("/api/policies", json={"policy_type": "HR"}, headers=headers)).json()

        resp = await client.post(f"/api/comments/policies/{policy['id']}", json={"comment": ""}, headers=headers)

        assert resp.status_code == 422
