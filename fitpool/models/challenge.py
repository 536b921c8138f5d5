from __future__ import annotations
from datetime import datetime
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import String, BigInteger, Boolean, DateTime, func, text, CheckConstraint, Index
from fitpool.db import Base

class Challenge(Base):
    """
    One row per issued challenge, keyed by (kind, challenge_id).
    The success criterion is a tagged payload:
      - segment  => time_to_beat (seconds) + segment_id
      - distance => distance (metres)
    Definition columns are never updated after insert; only the
    settlement columns move, and `settled` only from false to true.
    """
    __tablename__ = "challenges"

    kind: Mapped[str] = mapped_column(String(16), primary_key=True)  # segment | distance
    challenge_id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=False)

    entry_fee: Mapped[int] = mapped_column(BigInteger, nullable=False)
    expire_time: Mapped[int] = mapped_column(BigInteger, nullable=False)  # epoch seconds
    activity: Mapped[str] = mapped_column(String(8), nullable=False)  # ride | run | swim

    time_to_beat: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    segment_id: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    distance: Mapped[int | None] = mapped_column(BigInteger, nullable=True)

    oracle_id: Mapped[str] = mapped_column(String(128), nullable=False)
    issued_by: Mapped[str] = mapped_column(String(128), nullable=False)

    settlement_started: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    payout_per_athlete: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    settled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    __table_args__ = (
        CheckConstraint("kind IN ('segment', 'distance')", name="ck_challenges_kind"),
        CheckConstraint(
            "(kind = 'segment' AND time_to_beat IS NOT NULL AND segment_id IS NOT NULL) OR "
            "(kind = 'distance' AND distance IS NOT NULL)",
            name="ck_challenges_criterion",
        ),
        Index("ix_challenges_unsettled_expiry", "expire_time", postgresql_where=text("NOT settled")),
    )

class ChallengeCounter(Base):
    """Next unused challenge id per kind."""
    __tablename__ = "challenge_counters"

    kind: Mapped[str] = mapped_column(String(16), primary_key=True)
    next_id: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
