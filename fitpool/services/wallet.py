from __future__ import annotations
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func
from fitpool.models.wallet import WalletEntry
from fitpool.config import settings


async def wallet_balance(session: AsyncSession, address: str) -> int:
    total = await session.scalar(
        select(func.coalesce(func.sum(WalletEntry.amount), 0)).where(WalletEntry.address == address)
    )
    return int(total or 0)

async def wallet_entries(session: AsyncSession, address: str) -> list[WalletEntry]:
    return (await session.execute(
        select(WalletEntry).where(WalletEntry.address == address).order_by(WalletEntry.id.desc())
    )).scalars().all()


async def credit_tokens(
    session: AsyncSession,
    *,
    address: str,
    tokens: int,
    external_id: str,
    note: str,
) -> WalletEntry:
    """
    Credit tokens to a payout address.
    Idempotent by external_id.
    """
    if tokens <= 0:
        raise ValueError("tokens must be > 0")

    exists = await session.scalar(select(WalletEntry).where(WalletEntry.external_id == external_id))
    if exists:
        return exists

    e = WalletEntry(
        address=address,
        type="PAYOUT",
        amount=int(tokens),
        currency=settings.payout_currency,
        external_id=external_id,
        note=note,
    )
    session.add(e)
    await session.flush()
    return e
