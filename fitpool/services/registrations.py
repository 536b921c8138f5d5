from __future__ import annotations
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from fitpool.models.registration import Registration
from fitpool.services import events
from fitpool.services.catalog import get_challenge
from fitpool.services.errors import (
    ChallengeExpired, AlreadyRegistered, InsufficientPayment, AlreadySettled, NotRegistered,
)
from fitpool.services.ledger import record_stake
from fitpool.services.locks import lock_challenge


async def _get_registration(session: AsyncSession, kind: str, challenge_id: int, athlete_id: int) -> Registration | None:
    return await session.get(Registration, (kind, challenge_id, athlete_id))


async def is_registered(session: AsyncSession, kind: str, challenge_id: int, athlete_id: int) -> bool:
    return (await _get_registration(session, kind, challenge_id, athlete_id)) is not None


async def register_athlete(
    session: AsyncSession,
    kind: str,
    challenge_id: int,
    *,
    athlete_id: int,
    payout_address: str,
    paid_amount: int,
    now: int,
) -> Registration:
    """
    Join an open challenge. Preconditions, in this order:
      expiry (now < expire_time), duplicate athlete, payment >= entry fee.
    Payment above the fee is kept, not refunded.
    """
    ch = await lock_challenge(session, kind, challenge_id)

    if now >= ch.expire_time:
        raise ChallengeExpired(f"{kind} challenge {challenge_id} expired at {ch.expire_time}")
    if await is_registered(session, kind, challenge_id, athlete_id):
        raise AlreadyRegistered(f"athlete {athlete_id} already registered")
    if paid_amount < ch.entry_fee:
        raise InsufficientPayment(f"need {ch.entry_fee}, got {paid_amount}")

    position = await registered_count(session, kind, challenge_id)
    reg = Registration(
        kind=kind,
        challenge_id=challenge_id,
        athlete_id=athlete_id,
        position=position,
        payout_address=payout_address,
        paid_amount=int(paid_amount),
        succeeded=False,
        paid_out=False,
    )
    session.add(reg)
    record_stake(session, kind, challenge_id, athlete_id, paid_amount, ch.entry_fee)
    await session.flush()
    await events.emit(session, events.CHALLENGE_JOINED, kind, challenge_id, athlete_id=athlete_id, payout_address=payout_address)
    return reg


async def mark_succeeded(session: AsyncSession, kind: str, challenge_id: int, athlete_id: int) -> Registration:
    """Attest an athlete. Allowed before and after expiry, until settlement begins."""
    ch = await lock_challenge(session, kind, challenge_id)
    if ch.settled or ch.settlement_started:
        raise AlreadySettled(f"{kind} challenge {challenge_id} is settled")
    reg = await _get_registration(session, kind, challenge_id, athlete_id)
    if reg is None:
        raise NotRegistered(f"athlete {athlete_id} is not registered")
    reg.succeeded = True
    await session.flush()
    await events.emit(session, events.ATHLETE_SUCCEEDED, kind, challenge_id, athlete_id=athlete_id)
    return reg

# ---------- reads ----------

async def registrations_in_order(session: AsyncSession, kind: str, challenge_id: int) -> list[Registration]:
    return (await session.execute(
        select(Registration)
        .where(Registration.kind == kind, Registration.challenge_id == challenge_id)
        .order_by(Registration.position.asc())
    )).scalars().all()


async def athlete_ids(session: AsyncSession, kind: str, challenge_id: int) -> list[int]:
    await get_challenge(session, kind, challenge_id)
    return [r.athlete_id for r in await registrations_in_order(session, kind, challenge_id)]


async def successful_athletes(session: AsyncSession, kind: str, challenge_id: int) -> list[int]:
    await get_challenge(session, kind, challenge_id)
    return [r.athlete_id for r in await registrations_in_order(session, kind, challenge_id) if r.succeeded]


async def registered_count(session: AsyncSession, kind: str, challenge_id: int) -> int:
    total = await session.scalar(
        select(func.count()).select_from(Registration)
        .where(Registration.kind == kind, Registration.challenge_id == challenge_id)
    )
    return int(total or 0)


async def payout_address_of(session: AsyncSession, kind: str, challenge_id: int, athlete_id: int) -> str | None:
    reg = await _get_registration(session, kind, challenge_id, athlete_id)
    return reg.payout_address if reg else None


async def total_funds(session: AsyncSession, kind: str, challenge_id: int) -> int:
    ch = await get_challenge(session, kind, challenge_id)
    return int(ch.entry_fee) * await registered_count(session, kind, challenge_id)
