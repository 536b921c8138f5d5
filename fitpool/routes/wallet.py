from __future__ import annotations
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from fitpool.db import get_session
from fitpool.schemas.wallet import WalletSnapshot, WalletEntryPublic
from fitpool.services.wallet import wallet_balance, wallet_entries

router = APIRouter(prefix="/wallet", tags=["wallet"])

@router.get("/{address}", response_model=WalletSnapshot)
async def get_wallet(address: str, session: AsyncSession = Depends(get_session)):
    bal = await wallet_balance(session, address)
    rows = await wallet_entries(session, address)
    return {
        "address": address,
        "balance": bal,
        "entries": [
            WalletEntryPublic(
                id=r.id, type=r.type, amount=int(r.amount), currency=r.currency,
                external_id=r.external_id, note=r.note, created_at=r.created_at
            ) for r in rows
        ]
    }
