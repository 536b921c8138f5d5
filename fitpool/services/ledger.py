from __future__ import annotations
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from fitpool.models.ledger import Ledger

# ---------- writers ----------

def record_stake(session: AsyncSession, kind: str, challenge_id: int, athlete_id: int, paid_amount: int, entry_fee: int) -> None:
    """Book an athlete's payment into escrow; anything above the fee is kept by the platform."""
    session.add(Ledger(
        kind=kind, challenge_id=challenge_id, athlete_id=athlete_id,
        type="STAKE", amount=-int(paid_amount), note="entry_fee",
    ))
    excess = int(paid_amount) - int(entry_fee)
    if excess > 0:
        record_platform_revenue(session, kind, challenge_id, excess, note="excess_payment", athlete_id=athlete_id)


def record_payout(session: AsyncSession, kind: str, challenge_id: int, athlete_id: int, amount: int) -> None:
    session.add(Ledger(
        kind=kind, challenge_id=challenge_id, athlete_id=athlete_id,
        type="PAYOUT", amount=int(amount), note="challenge_payout",
    ))


def record_platform_revenue(session: AsyncSession, kind: str, challenge_id: int, amount: int, *, note: str, athlete_id: int | None = None) -> None:
    if amount <= 0:
        return
    session.add(Ledger(
        kind=kind, challenge_id=challenge_id, athlete_id=athlete_id,
        type="PLATFORM_REVENUE", amount=int(amount), note=note,
    ))

# ---------- compute ----------

async def snapshot_for_challenge(session: AsyncSession, kind: str, challenge_id: int) -> dict:
    """Return pool, per-athlete balances, platform revenue and raw entries."""
    entries = (await session.execute(
        select(Ledger)
        .where(Ledger.kind == kind, Ledger.challenge_id == challenge_id)
        .order_by(Ledger.id.asc())
    )).scalars().all()

    balances: dict[int, int] = {}
    total_sum = 0
    platform_revenue = 0
    for e in entries:
        total_sum += int(e.amount)
        if e.type == "PLATFORM_REVENUE":
            platform_revenue += int(e.amount)
            continue
        balances[e.athlete_id] = balances.get(e.athlete_id, 0) + int(e.amount)

    from fitpool.schemas.ledger import LedgerEntryPublic, AthleteBalance
    return {
        "pool": max(0, -total_sum),
        "platform_revenue": platform_revenue,
        "totals": [
            AthleteBalance(athlete_id=aid, balance=int(bal))
            for aid, bal in sorted(balances.items(), key=lambda kv: (-kv[1], kv[0]))
        ],
        "entries": [
            LedgerEntryPublic(
                id=e.id,
                athlete_id=e.athlete_id,
                type=e.type,
                amount=int(e.amount),
                note=e.note,
                created_at=e.created_at,
            ) for e in entries
        ],
    }
