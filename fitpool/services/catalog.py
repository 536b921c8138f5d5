from __future__ import annotations
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from fitpool.models.challenge import Challenge, ChallengeCounter
from fitpool.services import events
from fitpool.services.errors import NotFound
from fitpool.services.locks import lock_kind_counter

log = structlog.get_logger()

SEGMENT = "segment"
DISTANCE = "distance"


async def _allocate_id(session: AsyncSession, kind: str) -> int:
    """Hand out the next id for `kind`, starting at 0."""
    await lock_kind_counter(session, kind)
    counter = await session.scalar(
        select(ChallengeCounter).where(ChallengeCounter.kind == kind).with_for_update()
    )
    if counter is None:
        counter = ChallengeCounter(kind=kind, next_id=0)
        session.add(counter)
    new_id = int(counter.next_id)
    counter.next_id = new_id + 1
    await session.flush()
    return new_id


async def _issue(session: AsyncSession, *, kind: str, issuer: str, oracle_id: str | None, **fields) -> Challenge:
    new_id = await _allocate_id(session, kind)
    ch = Challenge(
        kind=kind,
        challenge_id=new_id,
        oracle_id=oracle_id or issuer,
        issued_by=issuer,
        settlement_started=False,
        settled=False,
        **fields,
    )
    session.add(ch)
    await session.flush()
    await events.emit(session, events.CHALLENGE_ISSUED, kind, new_id)
    log.info("challenge_issued", kind=kind, challenge_id=new_id, entry_fee=ch.entry_fee, expire_time=ch.expire_time)
    return ch


async def issue_segment_challenge(
    session: AsyncSession,
    *,
    entry_fee: int,
    expire_time: int,
    time_to_beat: int,
    segment_id: int,
    activity: str,
    issuer: str,
    oracle_id: str | None = None,
) -> Challenge:
    return await _issue(
        session, kind=SEGMENT, issuer=issuer, oracle_id=oracle_id,
        entry_fee=entry_fee, expire_time=expire_time, activity=activity,
        time_to_beat=time_to_beat, segment_id=segment_id,
    )


async def issue_distance_challenge(
    session: AsyncSession,
    *,
    entry_fee: int,
    expire_time: int,
    distance: int,
    activity: str,
    issuer: str,
    oracle_id: str | None = None,
) -> Challenge:
    return await _issue(
        session, kind=DISTANCE, issuer=issuer, oracle_id=oracle_id,
        entry_fee=entry_fee, expire_time=expire_time, activity=activity,
        distance=distance,
    )


# ---------- reads ----------

async def get_challenge(session: AsyncSession, kind: str, challenge_id: int) -> Challenge:
    ch = await session.get(Challenge, (kind, challenge_id))
    if ch is None:
        raise NotFound(f"no {kind} challenge with id {challenge_id}")
    return ch


async def challenge_exists(session: AsyncSession, kind: str, challenge_id: int) -> bool:
    return (await session.get(Challenge, (kind, challenge_id))) is not None


async def entry_fee(session: AsyncSession, kind: str, challenge_id: int) -> int:
    return int((await get_challenge(session, kind, challenge_id)).entry_fee)


async def expire_time(session: AsyncSession, kind: str, challenge_id: int) -> int:
    return int((await get_challenge(session, kind, challenge_id)).expire_time)


async def is_settled(session: AsyncSession, kind: str, challenge_id: int) -> bool:
    return bool((await get_challenge(session, kind, challenge_id)).settled)


async def challenge_count(session: AsyncSession, kind: str) -> int:
    total = await session.scalar(
        select(func.count()).select_from(Challenge).where(Challenge.kind == kind)
    )
    return int(total or 0)


def lifecycle_state(ch: Challenge, now: int) -> str:
    if ch.settled:
        return "settled"
    if now < ch.expire_time:
        return "open"
    return "expired"
