from __future__ import annotations
from pydantic import BaseModel
from datetime import datetime
from fitpool.schemas.challenge import ChallengeKind

class LedgerEntryPublic(BaseModel):
    id: int
    athlete_id: int | None = None
    type: str
    amount: int
    note: str | None = None
    created_at: datetime

class AthleteBalance(BaseModel):
    athlete_id: int
    balance: int

class LedgerSnapshot(BaseModel):
    kind: ChallengeKind
    challenge_id: int
    pool: int
    platform_revenue: int
    totals: list[AthleteBalance]
    entries: list[LedgerEntryPublic]
