from __future__ import annotations
from datetime import datetime
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import String, BigInteger, Boolean, DateTime, ForeignKeyConstraint, UniqueConstraint, func
from fitpool.db import Base

class Registration(Base):
    __tablename__ = "registrations"

    kind: Mapped[str] = mapped_column(String(16), primary_key=True)
    challenge_id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=False)
    athlete_id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=False)

    position: Mapped[int] = mapped_column(BigInteger, nullable=False)  # 0-based registration order
    payout_address: Mapped[str] = mapped_column(String(128), nullable=False)
    paid_amount: Mapped[int] = mapped_column(BigInteger, nullable=False)

    succeeded: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    paid_out: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    joined_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    __table_args__ = (
        ForeignKeyConstraint(
            ["kind", "challenge_id"], ["challenges.kind", "challenges.challenge_id"], ondelete="CASCADE"
        ),
        UniqueConstraint("kind", "challenge_id", "position", name="uq_registrations_position"),
    )
