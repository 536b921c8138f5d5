from __future__ import annotations
from pydantic import BaseModel, ConfigDict
from datetime import datetime
from typing import Literal

EventType = Literal["ChallengeIssued", "ChallengeJoined", "AthleteSucceeded", "ChallengeSettled"]

class EventPublic(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    seq: int
    type: EventType
    kind: str
    challenge_id: int
    athlete_id: int | None = None
    payout_address: str | None = None
    created_at: datetime
