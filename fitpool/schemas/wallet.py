from __future__ import annotations
from pydantic import BaseModel
from datetime import datetime

class WalletEntryPublic(BaseModel):
    id: int
    type: str
    amount: int
    currency: str
    external_id: str | None = None
    note: str | None = None
    created_at: datetime

class WalletSnapshot(BaseModel):
    address: str
    balance: int
    entries: list[WalletEntryPublic]
