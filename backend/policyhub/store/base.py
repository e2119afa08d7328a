"""
Record store interface consumed by the policy core.

Filters are plain dicts: `{"status": "published"}` means equality, and
`field__op` keys select another comparison (ne, gt, gte, lt, lte, in, isnull,
icontains).
`any_of` takes a list of such dicts OR-ed together. Order keys prefixed with
"-" sort descending.
"""
import abc
from contextlib import AbstractAsyncContextManager
from typing import Any, Iterable, Optional, Sequence, Tuple

from policyhub.core.errors import StoreError


# ── Table names ──
POLICIES = "policies"
REVISIONS = "policy_revisions"
FORMS = "forms"
AUDIT_LOGS = "audit_logs"
NOTIFICATIONS = "notifications"
COMMENTS = "policy_comments"

# Tables whose `status` column holds a workflow status
WORKFLOW_TABLES = frozenset({POLICIES, FORMS})

LOOKUP_OPS = frozenset({"eq", "ne", "gt", "gte", "lt", "lte", "in", "isnull", "icontains"})

Record = dict[str, Any]


class RecordNotFoundError(StoreError):
    code = "RECORD_NOT_FOUND"
    http_status = 404


class StaleRecordError(StoreError):
    """A conditional update matched no row: the record changed since it was read."""

    code = "STALE_RECORD"
    http_status = 409


def split_lookup(key: str) -> Tuple[str, str]:
    """'published_at__gt' -> ('published_at', 'gt'); 'status' -> ('status', 'eq')."""
    field, sep, op = key.rpartition("__")
    if sep and op in LOOKUP_OPS:
        return field, op
    return key, "eq"


def split_order(key: str) -> Tuple[str, bool]:
    """'-created_at' -> ('created_at', True)."""
    if key.startswith("-"):
        return key[1:], True
    return key, False


class RecordStore(abc.ABC):
    """Generic CRUD + query access to the policy tables."""

    @abc.abstractmethod
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
        ...

    @abc.abstractmethod
    async def count(self, table: str, where: Optional[Record] = None) -> int:
        ...

    async def get(self, table: str, record_id) -> Optional[Record]:
        rows = await self.select(table, {"id": record_id}, limit=1)
        return rows[0] if rows else None

    @abc.abstractmethod
    async def insert(self, table: str, record: Record) -> Record:
        ...

    @abc.abstractmethod
    async def update(
        self,
        table: str,
        record_id,
        values: Record,
        *,
        expected: Optional[Record] = None,
    ) -> Record:
        """Update one row. With `expected`, only when those filters still match,
        otherwise StaleRecordError."""

    @abc.abstractmethod
    async def delete(self, table: str, record_id) -> None:
        ...

    @abc.abstractmethod
    async def rpc(self, name: str, **args) -> Any:
        """Server-side functions: number generation and revision counters."""

    @abc.abstractmethod
    def savepoint(self) -> AbstractAsyncContextManager:
        """Nested unit of work; a failure inside rolls back only its own writes."""

    @abc.abstractmethod
    def lock(self, key: str) -> AbstractAsyncContextManager:
        """Exclusive section keyed by `key`, held until the unit of work ends."""
