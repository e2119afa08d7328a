"""
Numbering Generator client: wraps the sequence RPCs with retry and backoff.
A create operation must not proceed without a non-empty number from here.
"""
import asyncio
from typing import Any, Optional

from policyhub.config import settings
from policyhub.core.errors import NumberGenerationError
from policyhub.core.logging import get_logger
from policyhub.numbering.sequences import (
    RPC_NEXT_FORM_NUMBER,
    RPC_NEXT_POLICY_NUMBER,
    RPC_NEXT_REVISION_NUMBER,
)
from policyhub.store.base import RecordStore

logger = get_logger(__name__)


def _is_empty(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    return False


class NumberingClient:
    """Calls a store RPC until it yields a value, backing off 1s, 2s, 4s between tries."""

    def __init__(
        self,
        store: RecordStore,
        max_retries: Optional[int] = None,
        backoff_seconds: Optional[float] = None,
    ):
        self._store = store
        self._max_retries = settings.NUMBERING_MAX_RETRIES if max_retries is None else max_retries
        self._backoff = settings.NUMBERING_BACKOFF_SECONDS if backoff_seconds is None else backoff_seconds

    async def next_policy_number(self, policy_type: str) -> str:
        return await self._call(RPC_NEXT_POLICY_NUMBER, policy_type=policy_type)

    async def next_form_number(self, form_type: str) -> str:
        return await self._call(RPC_NEXT_FORM_NUMBER, form_type=form_type)

    async def next_revision_number(self, policy_id) -> int:
        value = await self._call(RPC_NEXT_REVISION_NUMBER, policy_id=policy_id)
        return int(value)

    async def _call(self, rpc_name: str, **args) -> Any:
        attempts = self._max_retries + 1
        last_error: Optional[str] = None

        for attempt in range(attempts):
            try:
                # A failed attempt rolls back only itself, never the caller's transaction
                async with self._store.savepoint():
                    value = await self._store.rpc(rpc_name, **args)
                if not _is_empty(value):
                    return value
                last_error = "empty result"
            except Exception as exc:
                last_error = str(exc)

            if attempt + 1 >= attempts:
                break

            delay = self._backoff * (2 ** attempt)
            logger.warning(
                "Numbering RPC failed, retrying",
                extra={
                    "event": "numbering_retry",
                    "operation": rpc_name,
                    "attempt": attempt + 1,
                    "delay_seconds": delay,
                    "error": last_error,
                },
            )
            await asyncio.sleep(delay)

        logger.error(
            "Numbering RPC exhausted retries",
            extra={"event": "numbering_failed", "operation": rpc_name, "attempt": attempts, "error": last_error},
        )
        raise NumberGenerationError(
            f"Could not obtain a number from '{rpc_name}' after {attempts} attempts: {last_error}",
            details={"rpc": rpc_name, "attempts": attempts},
        )
