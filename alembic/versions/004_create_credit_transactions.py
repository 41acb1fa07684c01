"""004: create credit_transactions table (append-only audit log)

Revision ID: 004
Revises: 003
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op

revision: str = "004"
down_revision: Union[str, None] = "003"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE credit_transactions (
            id                  BIGSERIAL       PRIMARY KEY,
            user_id             VARCHAR(64)     NOT NULL REFERENCES users (id),
            amount              NUMERIC(20, 6)  NOT NULL,
            transaction_type    VARCHAR(30)     NOT NULL,
            reference_id        VARCHAR(64),
            balance_after       NUMERIC(20, 6)  NOT NULL,
            created_at          TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_credit_tx_type CHECK (
                transaction_type IN (
                    'bet_placed', 'position_sold', 'bet_payout',
                    'bet_refund', 'daily_reward', 'credit_purchase'
                )
            ),
            CONSTRAINT ck_credit_tx_balance_after_gte_0 CHECK (balance_after >= 0)
        );
    """)
    op.execute("CREATE INDEX idx_credit_tx_user_id ON credit_transactions (user_id, id DESC);")
    op.execute("CREATE INDEX idx_credit_tx_reference ON credit_transactions (reference_id);")
    op.execute(
        "COMMENT ON TABLE credit_transactions IS 'Append-only credit audit log; never UPDATE/DELETE';"
    )


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS credit_transactions CASCADE;")
