"""SQLAlchemy ORM models for pm_account.

These map to existing tables created by Alembic migrations.
DO NOT add/remove columns here without a corresponding migration.
Only the users table is mapped: conditional_write needs column objects
for its guarded UPDATEs. Everything else is plain text() SQL.
"""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import DateTime, Integer, Numeric, String, func
from sqlalchemy.orm import Mapped, mapped_column

from src.pm_common.database import Base


class UserORM(Base):
    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    free_credits_balance: Mapped[Decimal] = mapped_column(Numeric(20, 6), nullable=False, default=0)
    purchased_credits_balance: Mapped[Decimal] = mapped_column(
        Numeric(20, 6), nullable=False, default=0
    )
    available_credits: Mapped[Decimal] = mapped_column(Numeric(20, 6), nullable=False, default=0)
    expended_credits: Mapped[Decimal] = mapped_column(Numeric(20, 6), nullable=False, default=0)
    total_volume: Mapped[Decimal] = mapped_column(Numeric(20, 6), nullable=False, default=0)
    overall_pnl: Mapped[Decimal] = mapped_column(Numeric(20, 6), nullable=False, default=0)
    last_daily_reward_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    consecutive_days_online: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

