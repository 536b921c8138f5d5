from __future__ import annotations
from pydantic import BaseModel, Field
from fitpool.schemas.challenge import ChallengeKind

class JoinRequest(BaseModel):
    athlete_id: int = Field(ge=0)
    payout_address: str = Field(min_length=1, max_length=128)
    paid_amount: int = Field(ge=0)

class RegistrationPublic(BaseModel):
    kind: ChallengeKind
    challenge_id: int
    athlete_id: int
    position: int
    payout_address: str
    paid_amount: int
    succeeded: bool
    paid_out: bool

class AthleteIds(BaseModel):
    kind: ChallengeKind
    challenge_id: int
    athlete_ids: list[int]

class SettlementResult(BaseModel):
    kind: ChallengeKind
    challenge_id: int
    status: str
    total_funds: int
    winners: int
    reward: int
    remainder: int
    paid: list[int]
