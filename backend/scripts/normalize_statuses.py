"""
Standalone script to rewrite legacy status spellings to their canonical form
(e.g. "under review" -> "under-review") in the policies and forms tables.

Usage:
    cd backend
    python -m scripts.normalize_statuses [--dry-run]

Safe to run multiple times: rows already canonical are left alone.
"""
import asyncio
import os
import sys

# Ensure the backend package is importable
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from sqlalchemy import String, func, select, type_coerce, update

from policyhub.database.postgresql import AsyncSessionLocal, engine
from policyhub.forms.models import Form
from policyhub.policy.models import Policy
from policyhub.workflow.states import LEGACY_SPELLINGS

TABLES = (Policy.__table__, Form.__table__)


async def normalize_statuses(dry_run: bool = False) -> int:
    """Returns the number of rows that carry (or carried) a legacy spelling."""
    total = 0
    async with AsyncSessionLocal() as session:
        for table in TABLES:
            raw = type_coerce(table.c.status, String)
            for status, legacy in LEGACY_SPELLINGS.items():
                count = (await session.execute(
                    select(func.count()).select_from(table).where(raw.in_(legacy))
                )).scalar_one()
                total += count
                if count and not dry_run:
                    await session.execute(
                        update(table).where(raw.in_(legacy)).values(status=status.value)
                    )
                verb = "would rewrite" if dry_run else "rewrote"
                print(f"✔ {table.name}: {verb} {count} row(s) {list(legacy)} -> '{status.value}'")
        if not dry_run:
            await session.commit()

    await engine.dispose()
    return total


if __name__ == "__main__":
    rows = asyncio.run(normalize_statuses(dry_run="--dry-run" in sys.argv[1:]))
    print(f"\nDone. {rows} legacy row(s) found.")
