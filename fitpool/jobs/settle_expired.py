from __future__ import annotations
import asyncio
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
import structlog

from fitpool.models.challenge import Challenge
from fitpool.services.clock import system_clock
from fitpool.services.errors import ChallengeError, TransferFailed
from fitpool.services.payouts import PayoutGateway, get_payout_gateway
from fitpool.services.settlement import settle_challenge

log = structlog.get_logger()


async def _expired_unsettled(session: AsyncSession, now: int) -> list[tuple[str, int]]:
    rows = (await session.execute(
        select(Challenge.kind, Challenge.challenge_id)
        .where(Challenge.settled.is_(False), Challenge.expire_time <= now)
        .order_by(Challenge.expire_time.asc(), Challenge.kind.asc(), Challenge.challenge_id.asc())
    )).all()
    return [(k, cid) for (k, cid) in rows]


async def settle_expired(
    sessionmaker: async_sessionmaker,
    *,
    now: int,
    gateway: PayoutGateway,
) -> dict:
    """Settle every expired challenge, one transaction each. Failures are logged and skipped."""
    async with sessionmaker() as session:
        targets = await _expired_unsettled(session, now)

    settled, failed = [], []
    for kind, cid in targets:
        async with sessionmaker() as session:
            try:
                await settle_challenge(session, kind, cid, now=now, gateway=gateway)
            except TransferFailed as e:
                await session.commit()
                log.warning("settle_expired_failed", kind=kind, challenge_id=cid, error=e.code, detail=str(e))
                failed.append({"kind": kind, "challenge_id": cid, "error": e.code})
                continue
            except ChallengeError as e:
                await session.rollback()
                log.warning("settle_expired_failed", kind=kind, challenge_id=cid, error=e.code, detail=str(e))
                failed.append({"kind": kind, "challenge_id": cid, "error": e.code})
                continue
            await session.commit()
            settled.append({"kind": kind, "challenge_id": cid})

    log.info("settle_expired_done", settled=len(settled), failed=len(failed))
    return {"settled": settled, "failed": failed}


def settle_expired_challenges() -> dict:
    """RQ entrypoint."""
    from fitpool.db import SessionLocal
    return asyncio.run(settle_expired(SessionLocal, now=system_clock(), gateway=get_payout_gateway()))
