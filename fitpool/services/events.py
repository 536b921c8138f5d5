from __future__ import annotations
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from fitpool.models.event import ChallengeEvent

log = structlog.get_logger()

CHALLENGE_ISSUED = "ChallengeIssued"
CHALLENGE_JOINED = "ChallengeJoined"
ATHLETE_SUCCEEDED = "AthleteSucceeded"
CHALLENGE_SETTLED = "ChallengeSettled"


async def emit(
    session: AsyncSession,
    type_: str,
    kind: str,
    challenge_id: int,
    *,
    athlete_id: int | None = None,
    payout_address: str | None = None,
) -> ChallengeEvent:
    """Append a notification in the caller's transaction, so it commits with the mutation."""
    ev = ChallengeEvent(
        type=type_,
        kind=kind,
        challenge_id=challenge_id,
        athlete_id=athlete_id,
        payout_address=payout_address,
    )
    session.add(ev)
    await session.flush()
    log.info("challenge_event", event_type=type_, kind=kind, challenge_id=challenge_id, athlete_id=athlete_id, seq=ev.seq)
    return ev


async def list_events(session: AsyncSession, after: int = 0, limit: int = 100) -> list[ChallengeEvent]:
    return (await session.execute(
        select(ChallengeEvent).where(ChallengeEvent.seq > after).order_by(ChallengeEvent.seq.asc()).limit(limit)
    )).scalars().all()
