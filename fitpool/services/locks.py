from __future__ import annotations
from sqlalchemy import select, text
from sqlalchemy.ext.asyncio import AsyncSession

from fitpool.models.challenge import Challenge
from fitpool.services.errors import NotFound


async def _advisory_lock(session: AsyncSession, key: str) -> None:
    """Transaction-scoped lock; no-op outside PostgreSQL (SQLite serialises writers)."""
    if session.bind.dialect.name != "postgresql":
        return
    await session.execute(text("SELECT pg_advisory_xact_lock(hashtext(:k))"), {"k": key})


async def lock_challenge(session: AsyncSession, kind: str, challenge_id: int) -> Challenge:
    """Serialise mutations of one (kind, id) and return the locked row."""
    await _advisory_lock(session, f"challenge:{kind}:{challenge_id}")
    ch = await session.scalar(
        select(Challenge)
        .where(Challenge.kind == kind, Challenge.challenge_id == challenge_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    if ch is None:
        raise NotFound(f"no {kind} challenge with id {challenge_id}")
    return ch


async def lock_kind_counter(session: AsyncSession, kind: str) -> None:
    await _advisory_lock(session, f"challenge_counter:{kind}")
