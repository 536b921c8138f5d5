from __future__ import annotations
from pydantic import BaseModel, Field
from typing import Literal

ChallengeKind = Literal["segment", "distance"]
ActivityKind = Literal["ride", "run", "swim"]
LifecycleState = Literal["open", "expired", "settled"]

class SegmentChallengeCreate(BaseModel):
    entry_fee: int = Field(ge=0, description="smallest currency unit")
    expire_time: int = Field(ge=0, description="epoch seconds")
    time_to_beat: int = Field(ge=0, description="seconds")
    segment_id: int = Field(ge=0)
    activity: ActivityKind
    oracle_id: str | None = Field(default=None, max_length=128, description="principal allowed to attest and settle; defaults to the issuer")

class DistanceChallengeCreate(BaseModel):
    entry_fee: int = Field(ge=0)
    expire_time: int = Field(ge=0)
    distance: int = Field(ge=0, description="metres")
    activity: ActivityKind
    oracle_id: str | None = Field(default=None, max_length=128)

class SegmentCriterion(BaseModel):
    type: Literal["segment"] = "segment"
    time_to_beat: int
    segment_id: int

class DistanceCriterion(BaseModel):
    type: Literal["distance"] = "distance"
    distance: int

class ChallengePublic(BaseModel):
    kind: ChallengeKind
    challenge_id: int
    entry_fee: int
    expire_time: int
    activity: ActivityKind
    criterion: SegmentCriterion | DistanceCriterion = Field(discriminator="type")
    oracle_id: str
    settled: bool
    state: LifecycleState
    registered_count: int
    total_funds: int

class ChallengeCount(BaseModel):
    kind: ChallengeKind
    count: int

class ChallengeExists(BaseModel):
    kind: ChallengeKind
    challenge_id: int
    exists: bool
