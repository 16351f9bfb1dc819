from __future__ import annotations

from datetime import datetime, timedelta, timezone
from decimal import Decimal
from enum import Enum

from sqlalchemy import (
    Boolean,
    DateTime,
    Enum as SAEnum,
    Index,
    Integer,
    Numeric,
    String,
    Text,
)
from sqlalchemy.orm import Mapped, mapped_column

from .core.database import Base


def now_utc_naive() -> datetime:
    """Return naive datetime in UTC; every stored timestamp uses this reference."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_utc_naive(value: datetime) -> datetime:
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


_TICK = timedelta(microseconds=1)


class Currency(str, Enum):
    USD = "USD"
    VES = "VES"


class RateType(str, Enum):
    """Exchange-rate regimes quoted for VES."""

    BCV = "bcv"
    EURO = "euro"
    USDT = "usdt"


class TxnType(str, Enum):
    EXPENSE = "expense"
    INCOME = "income"


class MissionStatus(str, Enum):
    ACTIVE = "active"
    COMPLETED = "completed"
    PAUSED = "paused"
    LOCKED = "locked"


class TimestampMixin:
    created_at: Mapped[datetime] = mapped_column(DateTime, default=now_utc_naive, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=now_utc_naive, nullable=False)


class SyncMixin(TimestampMixin):
    """Sync metadata shared by every record kind the client pulls incrementally."""

    is_deleted: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    def touch(self, now: datetime) -> None:
        """Bump ``updated_at`` and ``version``.

        ``updated_at`` never moves backwards and always advances by at least one
        microsecond, so a client holding the previous value as its cursor is
        guaranteed to see the mutation.
        """
        previous = self.updated_at
        if previous is not None and now <= previous:
            now = previous + _TICK
        self.updated_at = now
        self.version = (self.version or 0) + 1


class Transaction(Base, SyncMixin):
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    amount: Mapped[Decimal] = mapped_column(Numeric(18, 2), nullable=False)
    description: Mapped[str] = mapped_column(String(100), nullable=False)
    category: Mapped[str] = mapped_column(String(120), nullable=False)
    date: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=now_utc_naive)
    type: Mapped[TxnType] = mapped_column(SAEnum(TxnType, name="txn_type"), nullable=False)

    # Conversion context captured when the entry was recorded
    original_amount: Mapped[Decimal | None] = mapped_column(Numeric(18, 2))
    original_currency: Mapped[Currency | None] = mapped_column(SAEnum(Currency, name="currency"))
    rate_type: Mapped[RateType | None] = mapped_column(SAEnum(RateType, name="rate_type"))
    rate_value: Mapped[Decimal | None] = mapped_column(Numeric(18, 8))

    __table_args__ = (
        Index("ix_transaction_user_updated", "user_id", "updated_at"),
    )


class Mission(Base, SyncMixin):
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    title: Mapped[str] = mapped_column(String(120), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    # Financial goal
    target_amount: Mapped[Decimal | None] = mapped_column(Numeric(18, 2))
    current_amount: Mapped[Decimal] = mapped_column(Numeric(18, 2), nullable=False, default=0)
    # Abstract counter for habits
    target_progress: Mapped[Decimal] = mapped_column(Numeric(18, 2), nullable=False, default=100)
    current_progress: Mapped[Decimal] = mapped_column(Numeric(18, 2), nullable=False, default=0)
    deadline: Mapped[datetime | None] = mapped_column(DateTime)
    status: Mapped[MissionStatus] = mapped_column(
        SAEnum(MissionStatus, name="mission_status"),
        nullable=False,
        default=MissionStatus.ACTIVE,
    )
    icon: Mapped[str] = mapped_column(String(40), nullable=False, default="target")
    code: Mapped[str | None] = mapped_column(String(64), index=True)
    type: Mapped[str] = mapped_column(String(20), nullable=False, default="amount")  # amount, habit, days, static
    tip: Mapped[str] = mapped_column(Text, nullable=False, default="")

    __table_args__ = (
        Index("ix_mission_user_updated", "user_id", "updated_at"),
    )


class RecurringTransaction(Base, TimestampMixin):
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(120), nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(18, 2), nullable=False)
    period: Mapped[str | None] = mapped_column(String(7))  # e.g. 2026-02
    day: Mapped[int] = mapped_column(Integer, nullable=False)  # 1..31
    type: Mapped[TxnType] = mapped_column(SAEnum(TxnType, name="txn_type"), nullable=False)
    category: Mapped[str] = mapped_column(String(120), nullable=False, default="General")
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
