"""
Tests for number formats and the retrying numbering client.
"""
import uuid
from contextlib import asynccontextmanager
from unittest.mock import AsyncMock, call, patch

import pytest

from policyhub.core.errors import NumberGenerationError, StoreError
from policyhub.numbering.client import NumberingClient
from policyhub.numbering.sequences import (
    RPC_NEXT_POLICY_NUMBER,
    format_form_number,
    format_policy_number,
    policy_prefix,
)
from policyhub.store.base import POLICIES
from policyhub.store.memory import InMemoryRecordStore


class TestFormats:

    @pytest.mark.parametrize("policy_type,prefix", [
        ("HR", "HR"), ("Admin", "ADM"), ("Finance", "FIN"), ("OTHER", "OTH"), ("RP", "RP"), ("S", "S"),
    ])
    def test_prefixes(self, policy_type, prefix):
        assert policy_prefix(policy_type) == prefix

    def test_unknown_type(self):
        with pytest.raises(ValueError):
            policy_prefix("Legal")

    def test_zero_padded(self):
        assert format_policy_number("HR", 7) == "HR-007"
        assert format_policy_number("Finance", 1234) == "FIN-1234"
        assert format_form_number(" type ", 1) == "F-TYPE-001"


class TestMemorySequences:

    @pytest.mark.asyncio
    async def test_counters_per_type(self, numbering):
        assert await numbering.next_policy_number("HR") == "HR-001"
        assert await numbering.next_policy_number("HR") == "HR-002"
        assert await numbering.next_policy_number("Admin") == "ADM-001"

    @pytest.mark.asyncio
    async def test_form_numbers_share_case_insensitive_counter(self, numbering):
        assert await numbering.next_form_number("leave") == "F-LEAVE-001"
        assert await numbering.next_form_number("LEAVE") == "F-LEAVE-002"

    @pytest.mark.asyncio
    async def test_revision_numbers_are_ints_per_policy(self, numbering):
        policy_id = uuid.uuid4()
        assert await numbering.next_revision_number(policy_id) == 1
        assert await numbering.next_revision_number(policy_id) == 2
        assert await numbering.next_revision_number(uuid.uuid4()) == 1


class TestRetry:

    @pytest.mark.asyncio
    async def test_backoff_doubles_then_gives_up(self, store):
        store.rpc = AsyncMock(side_effect=RuntimeError("database unavailable"))
        client = NumberingClient(store, max_retries=3, backoff_seconds=1)

        with patch("policyhub.numbering.client.asyncio.sleep", new_callable=AsyncMock) as sleep:
            with pytest.raises(NumberGenerationError) as exc_info:
                await client.next_policy_number("HR")

        assert store.rpc.await_count == 4
        assert sleep.await_args_list == [call(1), call(2), call(4)]
        assert exc_info.value.details["attempts"] == 4

    @pytest.mark.asyncio
    async def test_empty_result_is_retried(self, store):
        store.rpc = AsyncMock(side_effect=["", None, "HR-003"])
        client = NumberingClient(store, max_retries=3, backoff_seconds=1)

        with patch("policyhub.numbering.client.asyncio.sleep", new_callable=AsyncMock) as sleep:
            number = await client.next_policy_number("HR")

        assert number == "HR-003"
        assert sleep.await_count == 2
        store.rpc.assert_awaited_with(RPC_NEXT_POLICY_NUMBER, policy_type="HR")

    @pytest.mark.asyncio
    async def test_no_retries_configured(self, store):
        store.rpc = AsyncMock(return_value="  ")
        client = NumberingClient(store, max_retries=0, backoff_seconds=1)

        with patch("policyhub.numbering.client.asyncio.sleep", new_callable=AsyncMock) as sleep:
            with pytest.raises(NumberGenerationError):
                await client.next_form_number("LEAVE")

        assert store.rpc.await_count == 1
        sleep.assert_not_awaited()


class SavepointTrackingStore(InMemoryRecordStore):
    """Records savepoint boundaries and fails the first sequence call inside one."""

    def __init__(self):
        super().__init__()
        self.events = []
        self.open_savepoints = 0
        self.failures_left = 1

    @asynccontextmanager
    async def savepoint(self):
        self.events.append("begin")
        self.open_savepoints += 1
        try:
            async with super().savepoint():
                yield self
        except BaseException:
            self.events.append("rollback")
            raise
        else:
            self.events.append("release")
        finally:
            self.open_savepoints -= 1

    async def rpc(self, name, **args):
        self.events.append("rpc")
        assert self.open_savepoints == 1
        if self.failures_left:
            self.failures_left -= 1
            raise StoreError("current transaction is aborted")
        return await super().rpc(name, **args)


class TestRetryIsolation:

    @pytest.mark.asyncio
    async def test_each_attempt_runs_in_its_own_savepoint(self):
        store = SavepointTrackingStore()
        client = NumberingClient(store, max_retries=3, backoff_seconds=0)

        number = await client.next_policy_number("HR")

        assert number == "HR-001"
        assert store.events == ["begin", "rpc", "rollback", "begin", "rpc", "release"]

    @pytest.mark.asyncio
    async def test_failed_attempt_leaves_earlier_writes_alone(self):
        store = SavepointTrackingStore()
        client = NumberingClient(store, max_retries=3, backoff_seconds=0)
        row = await store.insert(POLICIES, {"name": "kept"})

        await client.next_revision_number(row["id"])

        assert (await store.get(POLICIES, row["id"]))["name"] == "kept"
