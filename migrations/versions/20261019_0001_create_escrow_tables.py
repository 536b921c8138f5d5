from __future__ import annotations
from alembic import op
import sqlalchemy as sa

# revision identifiers
revision = "20261019_0001"
down_revision = None
branch_labels = None
depends_on = None

def upgrade() -> None:
    op.create_table(
        "challenge_counters",
        sa.Column("kind", sa.String(length=16), primary_key=True, nullable=False),
        sa.Column("next_id", sa.BigInteger(), nullable=False, server_default="0"),
    )
    op.create_table(
        "challenges",
        sa.Column("kind", sa.String(length=16), primary_key=True, nullable=False),
        sa.Column("challenge_id", sa.BigInteger(), primary_key=True, nullable=False, autoincrement=False),
        sa.Column("entry_fee", sa.BigInteger(), nullable=False),
        sa.Column("expire_time", sa.BigInteger(), nullable=False),
        sa.Column("activity", sa.String(length=8), nullable=False),
        sa.Column("time_to_beat", sa.BigInteger(), nullable=True),
        sa.Column("segment_id", sa.BigInteger(), nullable=True),
        sa.Column("distance", sa.BigInteger(), nullable=True),
        sa.Column("oracle_id", sa.String(length=128), nullable=False),
        sa.Column("issued_by", sa.String(length=128), nullable=False),
        sa.Column("settlement_started", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("payout_per_athlete", sa.BigInteger(), nullable=True),
        sa.Column("settled", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.TIMESTAMP(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.CheckConstraint("kind IN ('segment', 'distance')", name="ck_challenges_kind"),
        sa.CheckConstraint(
            "(kind = 'segment' AND time_to_beat IS NOT NULL AND segment_id IS NOT NULL) OR "
            "(kind = 'distance' AND distance IS NOT NULL)",
            name="ck_challenges_criterion",
        ),
    )
    op.create_index("ix_challenges_unsettled_expiry", "challenges", ["expire_time"], postgresql_where=sa.text("NOT settled"))

    op.create_table(
        "registrations",
        sa.Column("kind", sa.String(length=16), primary_key=True, nullable=False),
        sa.Column("challenge_id", sa.BigInteger(), primary_key=True, nullable=False, autoincrement=False),
        sa.Column("athlete_id", sa.BigInteger(), primary_key=True, nullable=False, autoincrement=False),
        sa.Column("position", sa.BigInteger(), nullable=False),
        sa.Column("payout_address", sa.String(length=128), nullable=False),
        sa.Column("paid_amount", sa.BigInteger(), nullable=False),
        sa.Column("succeeded", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("paid_out", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("joined_at", sa.TIMESTAMP(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.ForeignKeyConstraint(["kind", "challenge_id"], ["challenges.kind", "challenges.challenge_id"], ondelete="CASCADE"),
        sa.UniqueConstraint("kind", "challenge_id", "position", name="uq_registrations_position"),
    )

    op.create_table(
        "ledger",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True, nullable=False),
        sa.Column("kind", sa.String(length=16), nullable=False),
        sa.Column("challenge_id", sa.BigInteger(), nullable=False),
        sa.Column("athlete_id", sa.BigInteger(), nullable=True),
        sa.Column("type", sa.String(length=20), nullable=False),
        sa.Column("amount", sa.BigInteger(), nullable=False),
        sa.Column("note", sa.String(length=255), nullable=True),
        sa.Column("created_at", sa.TIMESTAMP(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.ForeignKeyConstraint(["kind", "challenge_id"], ["challenges.kind", "challenges.challenge_id"], ondelete="CASCADE"),
    )
    op.create_index("ix_ledger_kind", "ledger", ["kind"])
    op.create_index("ix_ledger_challenge_id", "ledger", ["challenge_id"])
    # One payout per athlete per challenge
    op.create_index(
        "uq_ledger_one_payout", "ledger", ["kind", "challenge_id", "athlete_id"],
        unique=True, postgresql_where=sa.text("type = 'PAYOUT'"),
    )

    op.create_table(
        "wallet_entries",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True, nullable=False),
        sa.Column("address", sa.String(length=128), nullable=False),
        sa.Column("type", sa.String(length=16), nullable=False),
        sa.Column("amount", sa.BigInteger(), nullable=False),
        sa.Column("currency", sa.String(length=8), nullable=False, server_default="usd"),
        sa.Column("external_id", sa.String(length=64), nullable=True),
        sa.Column("note", sa.String(length=255), nullable=True),
        sa.Column("created_at", sa.TIMESTAMP(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.UniqueConstraint("external_id", name="uq_wallet_external_id"),
    )
    op.create_index("ix_wallet_entries_address", "wallet_entries", ["address"])

    op.create_table(
        "challenge_events",
        sa.Column("seq", sa.BigInteger(), primary_key=True, autoincrement=True, nullable=False),
        sa.Column("type", sa.String(length=32), nullable=False),
        sa.Column("kind", sa.String(length=16), nullable=False),
        sa.Column("challenge_id", sa.BigInteger(), nullable=False),
        sa.Column("athlete_id", sa.BigInteger(), nullable=True),
        sa.Column("payout_address", sa.String(length=128), nullable=True),
        sa.Column("created_at", sa.TIMESTAMP(timezone=True), server_default=sa.text("now()"), nullable=False),
    )

def downgrade() -> None:
    op.drop_table("challenge_events")
    op.drop_index("ix_wallet_entries_address", table_name="wallet_entries")
    op.drop_table("wallet_entries")
    op.drop_index("uq_ledger_one_payout", table_name="ledger")
    op.drop_index("ix_ledger_challenge_id", table_name="ledger")
    op.drop_index("ix_ledger_kind", table_name="ledger")
    op.drop_table("ledger")
    op.drop_table("registrations")
    op.drop_index("ix_challenges_unsettled_expiry", table_name="challenges")
    op.drop_table("challenges")
    op.drop_table("challenge_counters")
