from __future__ import annotations
from datetime import datetime
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import String, BigInteger, DateTime, func
from fitpool.db import Base, BigIntPK

class ChallengeEvent(Base):
    """Append-only notification outbox. `seq` orders the stream."""
    __tablename__ = "challenge_events"

    seq: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    type: Mapped[str] = mapped_column(String(32), nullable=False)  # ChallengeIssued | ChallengeJoined | AthleteSucceeded | ChallengeSettled
    kind: Mapped[str] = mapped_column(String(16), nullable=False)
    challenge_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    athlete_id: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    payout_address: Mapped[str | None] = mapped_column(String(128), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)
