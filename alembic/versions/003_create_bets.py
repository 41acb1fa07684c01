"""003: create bets table

Revision ID: 003
Revises: 002
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op

revision: str = "003"
down_revision: Union[str, None] = "002"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE bets (
            id                  VARCHAR(64)     PRIMARY KEY,
            user_id             VARCHAR(64)     NOT NULL REFERENCES users (id),
            market_id           VARCHAR(64)     NOT NULL REFERENCES markets (id),
            side                VARCHAR(10)     NOT NULL,
            amount              NUMERIC(20, 6)  NOT NULL,
            shares              NUMERIC(20, 6)  NOT NULL,
            credit_source       VARCHAR(10)     NOT NULL,
            price_at_bet        NUMERIC(20, 10) NOT NULL,
            status              VARCHAR(20)     NOT NULL DEFAULT 'pending',
            actual_payout       NUMERIC(20, 6),
            idempotency_key     VARCHAR(64),
            created_at          TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            resolved_at         TIMESTAMPTZ,
            CONSTRAINT ck_bets_amount_gt_0      CHECK (amount > 0),
            CONSTRAINT ck_bets_shares_gt_0      CHECK (shares > 0),
            CONSTRAINT ck_bets_payout_gte_0     CHECK (actual_payout IS NULL OR actual_payout >= 0),
            CONSTRAINT ck_bets_side CHECK (side IN ('this', 'that')),
            CONSTRAINT ck_bets_credit_source CHECK (credit_source IN ('free', 'purchased')),
            CONSTRAINT ck_bets_status CHECK (
                status IN ('pending', 'won', 'lost', 'sold', 'cancelled')
            ),
            CONSTRAINT uq_bets_user_idempotency_key UNIQUE (user_id, idempotency_key)
        );
    """)
    op.execute("CREATE INDEX idx_bets_market_status ON bets (market_id, status);")
    op.execute("CREATE INDEX idx_bets_user_created ON bets (user_id, created_at DESC);")
    op.execute("COMMENT ON TABLE bets IS 'AMM positions, pending until sold or settled';")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS bets CASCADE;")
