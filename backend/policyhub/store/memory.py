"""
In-process record store. Used for local runs (STORE_BACKEND=memory) and tests.
Rows are plain dicts; callers always receive copies.
"""
import asyncio
import copy
import uuid
from collections import defaultdict
from contextlib import asynccontextmanager
from typing import Any, Iterable, Optional, Sequence

from policyhub.numbering.sequences import (
    RPC_NEXT_FORM_NUMBER,
    RPC_NEXT_POLICY_NUMBER,
    RPC_NEXT_REVISION_NUMBER,
    form_sequence_key,
    format_form_number,
    format_policy_number,
    policy_sequence_key,
    revision_sequence_key,
)
from policyhub.store.base import (
    WORKFLOW_TABLES,
    Record,
    RecordNotFoundError,
    RecordStore,
    StaleRecordError,
    split_lookup,
    split_order,
)
from policyhub.core.errors import StoreError
from policyhub.workflow.states import canonical_status


class InMemoryRecordStore(RecordStore):

    def __init__(self) -> None:
        self._tables: dict[str, dict[Any, Record]] = defaultdict(dict)
        self._sequences: dict[str, int] = defaultdict(int)
        self._locks: dict[str, asyncio.Lock] = defaultdict(asyncio.Lock)

    # ── Queries ──────────────────────────────────────────────────

    async def select(
        self,
        table: str,
        where: Optional[Record] = None,
        *,
        any_of: Optional[Iterable[Record]] = None,
        order_by: Sequence[str] = (),
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> list[Record]:
        alternatives = list(any_of or [])
        rows = [
            row for row in self._tables[table].values()
            if self._matches(table, row, where or {})
            and (not alternatives or any(self._matches(table, row, alt) for alt in alternatives))
        ]
        # Stable sorts applied last-key-first give multi-key ordering
        for key in reversed(list(order_by)):
            field, descending = split_order(key)
            rows.sort(key=lambda r: (r.get(field) is not None, r.get(field)), reverse=descending)
        rows = rows[offset:]
        if limit is not None:
            rows = rows[:limit]
        return [copy.deepcopy(row) for row in rows]

    async def count(self, table: str, where: Optional[Record] = None) -> int:
        return sum(1 for row in self._tables[table].values() if self._matches(table, row, where or {}))

    # ── Mutations ────────────────────────────────────────────────

    async def insert(self, table: str, record: Record) -> Record:
        row = copy.deepcopy(record)
        row.setdefault("id", uuid.uuid4())
        if row["id"] in self._tables[table]:
            raise StoreError(f"Duplicate id {row['id']} in {table}")
        self._tables[table][row["id"]] = row
        return copy.deepcopy(row)

    async def update(
        self,
        table: str,
        record_id,
        values: Record,
        *,
        expected: Optional[Record] = None,
    ) -> Record:
        row = self._tables[table].get(record_id)
        if row is None:
            raise RecordNotFoundError(f"{table} record {record_id} not found")
        if expected and not self._matches(table, row, expected):
            raise StaleRecordError(f"{table} record {record_id} changed since it was read")
        row.update(copy.deepcopy(values))
        return copy.deepcopy(row)

    async def delete(self, table: str, record_id) -> None:
        if self._tables[table].pop(record_id, None) is None:
            raise RecordNotFoundError(f"{table} record {record_id} not found")

    async def rpc(self, name: str, **args) -> Any:
        if name == RPC_NEXT_POLICY_NUMBER:
            policy_type = args["policy_type"]
            return format_policy_number(policy_type, self._next(policy_sequence_key(policy_type)))
        if name == RPC_NEXT_FORM_NUMBER:
            form_type = args["form_type"]
            return format_form_number(form_type, self._next(form_sequence_key(form_type)))
        if name == RPC_NEXT_REVISION_NUMBER:
            return self._next(revision_sequence_key(args["policy_id"]))
        raise StoreError(f"Unknown rpc '{name}'")

    # ── Units of work ────────────────────────────────────────────

    @asynccontextmanager
    async def savepoint(self):
        snapshot = copy.deepcopy(self._tables)
        try:
            yield self
        except BaseException:
            self._tables = snapshot
            raise

    @asynccontextmanager
    async def lock(self, key: str):
        async with self._locks[key]:
            yield

    # ── Internal helpers ─────────────────────────────────────────

    def _next(self, key: str) -> int:
        self._sequences[key] += 1
        return self._sequences[key]

    @staticmethod
    def _matches(table: str, row: Record, where: Record) -> bool:
        for key, expected in where.items():
            field, op = split_lookup(key)
            actual = row.get(field)
            if field == "status" and table in WORKFLOW_TABLES:
                actual = canonical_status(actual) if actual is not None else None
                if op == "in":
                    expected = [canonical_status(v) for v in expected]
                elif expected is not None and op != "isnull":
                    expected = canonical_status(expected)
            if not _compare(actual, op, expected):
                return False
        return True


def _compare(actual, op: str, expected) -> bool:
    if op == "eq":
        return actual == expected
    if op == "ne":
        return actual != expected
    if op == "in":
        return actual in expected
    if op == "isnull":
        return (actual is None) == bool(expected)
    if actual is None or expected is None:
        return False
    if op == "icontains":
        return str(expected).lower() in str(actual).lower()
    if op == "gt":
        return actual > expected
    if op == "gte":
        return actual >= expected
    if op == "lt":
        return actual < expected
    if op == "lte":
        return actual <= expected
    raise StoreError(f"Unsupported lookup '{op}'")
