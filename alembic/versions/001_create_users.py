"""001: create users ledger table

Revision ID: 001
Revises:
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE OR REPLACE FUNCTION fn_update_timestamp()
        RETURNS TRIGGER AS $$
        BEGIN
            NEW.updated_at = NOW();
            RETURN NEW;
        END;
        $$ LANGUAGE plpgsql;
    """)
    op.execute("""
        CREATE TABLE users (
            id                          VARCHAR(64)     PRIMARY KEY,
            free_credits_balance        NUMERIC(20, 6)  NOT NULL DEFAULT 0,
            purchased_credits_balance   NUMERIC(20, 6)  NOT NULL DEFAULT 0,
            available_credits           NUMERIC(20, 6)  NOT NULL DEFAULT 0,
            expended_credits            NUMERIC(20, 6)  NOT NULL DEFAULT 0,
            total_volume                NUMERIC(20, 6)  NOT NULL DEFAULT 0,
            overall_pnl                 NUMERIC(20, 6)  NOT NULL DEFAULT 0,
            last_daily_reward_at        TIMESTAMPTZ,
            consecutive_days_online     INT             NOT NULL DEFAULT 0,
            created_at                  TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            updated_at                  TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_users_free_gte_0        CHECK (free_credits_balance >= 0),
            CONSTRAINT ck_users_purchased_gte_0   CHECK (purchased_credits_balance >= 0),
            CONSTRAINT ck_users_available_sum     CHECK (
                available_credits = free_credits_balance + purchased_credits_balance
            ),
            CONSTRAINT ck_users_expended_gte_0    CHECK (expended_credits >= 0),
            CONSTRAINT ck_users_streak_gte_0      CHECK (consecutive_days_online >= 0)
        );
    """)
    op.execute("CREATE INDEX idx_users_last_daily_reward_at ON users (last_daily_reward_at);")
    op.execute("""
        CREATE TRIGGER trg_users_updated_at
            BEFORE UPDATE ON users
            FOR EACH ROW EXECUTE FUNCTION fn_update_timestamp();
    """)
    op.execute("COMMENT ON TABLE users IS 'Dual-wallet credit ledger and daily streak state';")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS users CASCADE;")
    op.execute("DROP FUNCTION IF EXISTS fn_update_timestamp();")
