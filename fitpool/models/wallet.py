from __future__ import annotations
from datetime import datetime
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import String, BigInteger, DateTime, UniqueConstraint, func
from fitpool.db import Base, BigIntPK

class WalletEntry(Base):
    """
    Internal wallet keyed by payout address; the default payout destination.
    Sign convention:
      - PAYOUT => +amount (challenge reward credited to the address)
    Idempotency: external_id is unique (payout key per challenge/athlete).
    """
    __tablename__ = "wallet_entries"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    address: Mapped[str] = mapped_column(String(128), index=True, nullable=False)

    type: Mapped[str] = mapped_column(String(16), nullable=False)
    amount: Mapped[int] = mapped_column(BigInteger, nullable=False)
    currency: Mapped[str] = mapped_column(String(8), nullable=False, default="usd")

    external_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    note: Mapped[str | None] = mapped_column(String(255), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    __table_args__ = (
        UniqueConstraint("external_id", name="uq_wallet_external_id"),
    )
