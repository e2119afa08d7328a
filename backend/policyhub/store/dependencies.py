"""
FastAPI dependencies that hand each request its unit of work.
"""
from typing import AsyncIterator

from fastapi import Depends

from policyhub.config import settings
from policyhub.numbering.client import NumberingClient
from policyhub.store.base import RecordStore
from policyhub.store.memory import InMemoryRecordStore

# Shared by every request when STORE_BACKEND=memory
memory_store = InMemoryRecordStore()


async def get_store() -> AsyncIterator[RecordStore]:
    """One transaction per request: commit on success, roll back on any error."""
    if settings.STORE_BACKEND == "memory":
        async with memory_store.savepoint():
            yield memory_store
        return

    from policyhub.database.postgresql import AsyncSessionLocal
    from policyhub.store.sql import SqlRecordStore

    async with AsyncSessionLocal() as session:
        try:
            yield SqlRecordStore(session)
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


def get_numbering(store: RecordStore = Depends(get_store)) -> NumberingClient:
    return NumberingClient(store)
