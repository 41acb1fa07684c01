"""002: create markets table

Revision ID: 002
Revises: 001
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op

revision: str = "002"
down_revision: Union[str, None] = "001"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE markets (
            id              VARCHAR(64)     PRIMARY KEY,
            title           VARCHAR(500)    NOT NULL,
            status          VARCHAR(20)     NOT NULL DEFAULT 'open',
            expires_at      TIMESTAMPTZ,
            yes_reserve     NUMERIC(20, 6)  NOT NULL,
            no_reserve      NUMERIC(20, 6)  NOT NULL,
            fee_bps         SMALLINT        NOT NULL DEFAULT 0,
            volume          NUMERIC(20, 6)  NOT NULL DEFAULT 0,
            resolution      VARCHAR(10),
            resolved_at     TIMESTAMPTZ,
            created_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            updated_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_markets_yes_reserve_gt_0  CHECK (yes_reserve > 0),
            CONSTRAINT ck_markets_no_reserve_gt_0   CHECK (no_reserve > 0),
            CONSTRAINT ck_markets_volume_gte_0      CHECK (volume >= 0),
            CONSTRAINT ck_markets_fee CHECK (fee_bps >= 0 AND fee_bps < 10000),
            CONSTRAINT ck_markets_status CHECK (status IN ('open', 'closed', 'resolved')),
            CONSTRAINT ck_markets_resolution CHECK (
                resolution IS NULL OR resolution IN ('this', 'that', 'invalid')
            ),
            CONSTRAINT ck_markets_resolved_has_resolution CHECK (
                status <> 'resolved' OR resolution IS NOT NULL
            )
        );
    """)
    op.execute("CREATE INDEX idx_markets_status ON markets (status);")
    op.execute("CREATE INDEX idx_markets_created_at_id ON markets (created_at DESC, id DESC);")
    op.execute("""
        CREATE TRIGGER trg_markets_updated_at
            BEFORE UPDATE ON markets
            FOR EACH ROW EXECUTE FUNCTION fn_update_timestamp();
    """)
    op.execute("COMMENT ON TABLE markets IS 'Binary markets with their CPMM pool reserves';")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS markets CASCADE;")
