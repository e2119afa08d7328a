"""
PostgreSQL record store over an AsyncSession.
Uses SQLAlchemy Core against the ORM tables so rows come back as plain dicts.
"""
from contextlib import asynccontextmanager
from typing import Any, Iterable, Optional, Sequence

from sqlalchemy import String, and_, delete, func, insert, or_, select, type_coerce, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from policyhub.audit.models import AuditLog
from policyhub.comments.models import PolicyComment
from policyhub.core.errors import StoreError
from policyhub.core.logging import get_logger
from policyhub.forms.models import Form
from policyhub.notifications.models import Notification
from policyhub.numbering.models import NumberSequence
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
from policyhub.policy.models import Policy
from policyhub.revisions.models import PolicyRevision
from policyhub.store.base import (
    AUDIT_LOGS,
    COMMENTS,
    FORMS,
    NOTIFICATIONS,
    POLICIES,
    REVISIONS,
    WORKFLOW_TABLES,
    Record,
    RecordNotFoundError,
    RecordStore,
    StaleRecordError,
    split_lookup,
    split_order,
)
from policyhub.workflow.states import PolicyStatus

logger = get_logger(__name__)

TABLES = {
    POLICIES: Policy.__table__,
    REVISIONS: PolicyRevision.__table__,
    FORMS: Form.__table__,
    AUDIT_LOGS: AuditLog.__table__,
    NOTIFICATIONS: Notification.__table__,
    COMMENTS: PolicyComment.__table__,
}


class SqlRecordStore(RecordStore):

    def __init__(self, session: AsyncSession):
        self.session = session

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
        t = _table(table)
        stmt = select(t).where(*self._conditions(table, where or {}))
        alternatives = [and_(*self._conditions(table, alt)) for alt in (any_of or [])]
        if alternatives:
            stmt = stmt.where(or_(*alternatives))
        for key in order_by:
            field, descending = split_order(key)
            col = t.c[field]
            stmt = stmt.order_by(col.desc().nulls_last() if descending else col.asc().nulls_first())
        if offset:
            stmt = stmt.offset(offset)
        if limit is not None:
            stmt = stmt.limit(limit)

        result = await self._execute(stmt, table)
        return [dict(row) for row in result.mappings().all()]

    async def count(self, table: str, where: Optional[Record] = None) -> int:
        t = _table(table)
        stmt = select(func.count()).select_from(t).where(*self._conditions(table, where or {}))
        result = await self._execute(stmt, table)
        return int(result.scalar_one())

    # ── Mutations ────────────────────────────────────────────────

    async def insert(self, table: str, record: Record) -> Record:
        t = _table(table)
        stmt = insert(t).values(**record).returning(t)
        result = await self._execute(stmt, table)
        return dict(result.mappings().one())

    async def update(
        self,
        table: str,
        record_id,
        values: Record,
        *,
        expected: Optional[Record] = None,
    ) -> Record:
        t = _table(table)
        stmt = (
            update(t)
            .where(t.c["id"] == record_id, *self._conditions(table, expected or {}))
            .values(**values)
            .returning(t)
        )
        result = await self._execute(stmt, table)
        row = result.mappings().one_or_none()
        if row is not None:
            return dict(row)

        if expected and await self.get(table, record_id) is not None:
            raise StaleRecordError(f"{table} record {record_id} changed since it was read")
        raise RecordNotFoundError(f"{table} record {record_id} not found")

    async def delete(self, table: str, record_id) -> None:
        t = _table(table)
        stmt = delete(t).where(t.c["id"] == record_id).returning(t.c["id"])
        result = await self._execute(stmt, table)
        if result.first() is None:
            raise RecordNotFoundError(f"{table} record {record_id} not found")

    async def rpc(self, name: str, **args) -> Any:
        if name == RPC_NEXT_POLICY_NUMBER:
            policy_type = args["policy_type"]
            value = await self._next(policy_sequence_key(policy_type))
            return format_policy_number(policy_type, value)
        if name == RPC_NEXT_FORM_NUMBER:
            form_type = args["form_type"]
            value = await self._next(form_sequence_key(form_type))
            return format_form_number(form_type, value)
        if name == RPC_NEXT_REVISION_NUMBER:
            return await self._next(revision_sequence_key(args["policy_id"]))
        raise StoreError(f"Unknown rpc '{name}'")

    # ── Units of work ────────────────────────────────────────────

    @asynccontextmanager
    async def savepoint(self):
        async with self.session.begin_nested():
            yield self

    @asynccontextmanager
    async def lock(self, key: str):
        # Transaction-scoped: released on commit or rollback of the request session
        await self._execute(select(func.pg_advisory_xact_lock(func.hashtext(key))), "lock")
        yield

    # ── Internal helpers ─────────────────────────────────────────

    async def _next(self, key: str) -> int:
        t = NumberSequence.__table__
        stmt = (
            pg_insert(t)
            .values(name=key, last_value=1)
            .on_conflict_do_update(
                index_elements=[t.c.name],
                set_={"last_value": t.c.last_value + 1},
            )
            .returning(t.c.last_value)
        )
        result = await self._execute(stmt, "number_sequences")
        return int(result.scalar_one())

    async def _execute(self, stmt, table: str):
        try:
            return await self.session.execute(stmt)
        except SQLAlchemyError as exc:
            logger.error(
                "Store operation failed",
                extra={"event": "store_error", "operation": table, "error": str(exc)},
            )
            raise StoreError(f"Store operation on '{table}' failed: {exc.__class__.__name__}") from exc

    @staticmethod
    def _conditions(table: str, where: Record) -> list:
        t = _table(table)
        clauses = []
        for key, expected in where.items():
            field, op = split_lookup(key)
            col = t.c[field]
            if field == "status" and table in WORKFLOW_TABLES and op in ("eq", "ne", "in"):
                clauses.append(_status_clause(col, op, expected))
                continue
            clauses.append(_clause(col, op, expected))
        return clauses


def _table(name: str):
    try:
        return TABLES[name]
    except KeyError:
        raise StoreError(f"Unknown table '{name}'") from None


def _status_clause(col, op: str, expected):
    # Compare the raw stored text so legacy spellings still match
    raw = type_coerce(col, String)
    values = expected if op == "in" else [expected]
    spellings = [s for v in values for s in PolicyStatus.parse(v).spellings()]
    if op == "ne":
        return raw.not_in(spellings)
    return raw.in_(spellings)


def _clause(col, op: str, expected):
    if op == "eq":
        return col.is_(None) if expected is None else col == expected
    if op == "ne":
        return col.is_not(None) if expected is None else col != expected
    if op == "in":
        return col.in_(list(expected))
    if op == "isnull":
        return col.is_(None) if expected else col.is_not(None)
    if op == "icontains":
        return col.ilike(f"%{expected}%")
    if op == "gt":
        return col > expected
    if op == "gte":
        return col >= expected
    if op == "lt":
        return col < expected
    if op == "lte":
        return col <= expected
    raise StoreError(f"Unsupported lookup '{op}'")
