from __future__ import annotations
from datetime import datetime
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import String, BigInteger, DateTime, ForeignKeyConstraint, Index, func, text
from fitpool.db import Base, BigIntPK

class Ledger(Base):
    """
    Escrow entries per challenge.
    Sign convention:
      - STAKE            => negative (amount paid by the athlete into escrow)
      - PAYOUT           => positive (reward paid out to a successful athlete)
      - PLATFORM_REVENUE => positive (excess payment, division remainder, forfeited pool)

    Pool = sum of (-amounts) currently held for the challenge.
    After settlement, Σ(amount) per challenge = 0.
    """
    __tablename__ = "ledger"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)

    kind: Mapped[str] = mapped_column(String(16), index=True, nullable=False)
    challenge_id: Mapped[int] = mapped_column(BigInteger, index=True, nullable=False)
    athlete_id: Mapped[int | None] = mapped_column(BigInteger, nullable=True)  # null for platform entries

    type: Mapped[str] = mapped_column(String(20), nullable=False)  # STAKE | PAYOUT | PLATFORM_REVENUE
    amount: Mapped[int] = mapped_column(BigInteger, nullable=False)
    note: Mapped[str | None] = mapped_column(String(255), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    __table_args__ = (
        ForeignKeyConstraint(
            ["kind", "challenge_id"], ["challenges.kind", "challenges.challenge_id"], ondelete="CASCADE"
        ),
        # One payout per athlete per challenge
        Index(
            "uq_ledger_one_payout", "kind", "challenge_id", "athlete_id", unique=True,
            postgresql_where=text("type = 'PAYOUT'"), sqlite_where=text("type = 'PAYOUT'"),
        ),
    )
