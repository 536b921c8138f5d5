from __future__ import annotations
from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from fitpool.config import settings
from fitpool.models.challenge import Challenge
from fitpool.models.registration import Registration
from fitpool.services import events
from fitpool.services.errors import NotYetExpired, AlreadySettled, NoSuccessfulAthletes, TransferFailed
from fitpool.services.ledger import record_payout, record_platform_revenue
from fitpool.services.locks import lock_challenge
from fitpool.services.payouts import PayoutGateway, TransferError, payout_key
from fitpool.services.registrations import registrations_in_order

log = structlog.get_logger()

CLOSE = "close"
ABORT = "abort"


def split_reward(total_funds: int, winners: int) -> tuple[int, int]:
    """Equal floor split; the remainder is never paid to anyone."""
    if winners <= 0:
        raise NoSuccessfulAthletes("no successful athletes to split the pool between")
    return divmod(total_funds, winners)


async def _finish(session: AsyncSession, ch: Challenge) -> None:
    ch.settled = True
    await session.flush()
    await events.emit(session, events.CHALLENGE_SETTLED, ch.kind, ch.challenge_id)


async def _close_without_winners(session: AsyncSession, ch: Challenge, total: int, policy: str) -> dict:
    if policy == ABORT:
        raise NoSuccessfulAthletes(f"{ch.kind} challenge {ch.challenge_id} has no successful athletes")
    # Whole pool is forfeited to the platform
    record_platform_revenue(session, ch.kind, ch.challenge_id, total, note="forfeited_pool")
    ch.settlement_started = True
    ch.payout_per_athlete = 0
    await _finish(session, ch)
    log.info("challenge_settled", kind=ch.kind, challenge_id=ch.challenge_id, winners=0, platform_revenue=total)
    return {"status": "settled_no_payout", "total_funds": total, "winners": 0, "reward": 0, "remainder": total, "paid": []}


async def settle_challenge(
    session: AsyncSession,
    kind: str,
    challenge_id: int,
    *,
    now: int,
    gateway: PayoutGateway,
    empty_policy: str | None = None,
) -> dict:
    """
    Settle an expired challenge and pay every successful athlete once.

    The first attempt freezes the per-athlete reward and closes attestation.
    Each payout flips that athlete's `paid_out` marker, so a retry after a
    TransferFailed only pays the athletes still outstanding. The caller must
    commit on TransferFailed to keep the payouts that already went through.
    """
    ch = await lock_challenge(session, kind, challenge_id)

    if now < ch.expire_time:
        raise NotYetExpired(f"{kind} challenge {challenge_id} expires at {ch.expire_time}")
    if ch.settled:
        raise AlreadySettled(f"{kind} challenge {challenge_id} is already settled")

    regs = await registrations_in_order(session, kind, challenge_id)
    winners: list[Registration] = [r for r in regs if r.succeeded]
    total = int(ch.entry_fee) * len(regs)

    if not ch.settlement_started:
        if not winners:
            return await _close_without_winners(session, ch, total, empty_policy or settings.empty_settlement_policy)
        reward, remainder = split_reward(total, len(winners))
        ch.settlement_started = True
        ch.payout_per_athlete = reward
        record_platform_revenue(session, kind, challenge_id, remainder, note="division_remainder")
        await session.flush()
        log.info("settlement_started", kind=kind, challenge_id=challenge_id, total_funds=total, winners=len(winners), reward=reward, remainder=remainder)

    reward = int(ch.payout_per_athlete or 0)
    paid: list[int] = []
    for r in winners:
        if r.paid_out:
            continue
        if reward > 0:
            try:
                ref = await gateway.transfer(
                    session,
                    address=r.payout_address,
                    amount=reward,
                    idempotency_key=payout_key(kind, challenge_id, r.athlete_id),
                )
            except TransferError as e:
                log.warning("payout_failed", kind=kind, challenge_id=challenge_id, athlete_id=r.athlete_id, error=str(e))
                raise TransferFailed(
                    f"payout to athlete {r.athlete_id} failed: {e}", athlete_id=r.athlete_id, paid=paid,
                ) from e
            record_payout(session, kind, challenge_id, r.athlete_id, reward)
            log.info("payout_sent", kind=kind, challenge_id=challenge_id, athlete_id=r.athlete_id, amount=reward, gateway=gateway.name, ref=ref)
        r.paid_out = True
        await session.flush()
        paid.append(r.athlete_id)

    await _finish(session, ch)
    log.info("challenge_settled", kind=kind, challenge_id=challenge_id, winners=len(winners), reward=reward)
    return {
        "status": "settled",
        "total_funds": total,
        "winners": len(winners),
        "reward": reward,
        "remainder": total - reward * len(winners),
        "paid": paid,
    }
