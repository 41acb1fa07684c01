"""005: create daily_rewards table (claim history)

Revision ID: 005
Revises: 004
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op

revision: str = "005"
down_revision: Union[str, None] = "004"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE daily_rewards (
            id                  BIGSERIAL       PRIMARY KEY,
            user_id             VARCHAR(64)     NOT NULL REFERENCES users (id),
            credits_awarded     NUMERIC(20, 6)  NOT NULL,
            streak_day          INT             NOT NULL,
            claimed_at          TIMESTAMPTZ     NOT NULL,
            CONSTRAINT ck_daily_rewards_credits_gt_0  CHECK (credits_awarded > 0),
            CONSTRAINT ck_daily_rewards_streak_gte_1  CHECK (streak_day >= 1)
        );
    """)
    op.execute("CREATE INDEX idx_daily_rewards_user ON daily_rewards (user_id, claimed_at DESC);")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS daily_rewards CASCADE;")
