from __future__ import annotations

import math
import re
from datetime import datetime
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from .models import Currency, MissionStatus, RateType, TxnType, to_utc_naive

_PERIOD_RE = re.compile(r"^\d{4}-(0[1-9]|1[0-2])$")


class CamelModel(BaseModel):
    """camelCase on the wire, snake_case in Python."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


def _finite_positive(v: float | None) -> float | None:
    if v is None:
        return v
    if not math.isfinite(v):
        raise ValueError("amount must be finite")
    if v <= 0:
        raise ValueError("amount must be positive")
    return v


def _not_null(v):
    if v is None:
        raise ValueError("may not be null")
    return v


def _description(v: str | None) -> str | None:
    if v is None:
        return v
    v = v.strip()
    if not v:
        raise ValueError("description is required")
    if len(v) > 100:
        raise ValueError("description must be at most 100 characters")
    return v


def _non_blank(v: str | None) -> str | None:
    if v is None:
        return v
    v = v.strip()
    if not v:
        raise ValueError("must not be empty")
    return v


def _utc(v: datetime | None) -> datetime | None:
    if v is None:
        return v
    return to_utc_naive(v)


# --- Rates ------------------------------------------------------------------


class RateSnapshotOut(CamelModel):
    bcv: float
    euro: float
    usdt: float
    updated_at: datetime
    is_fallback: bool = False

    model_config = ConfigDict(from_attributes=True)


# --- Transactions -----------------------------------------------------------


class TransactionCreate(CamelModel):
    amount: float
    description: str
    category: str
    date: Optional[datetime] = None
    type: TxnType
    original_amount: Optional[float] = None
    original_currency: Optional[Currency] = None
    rate_type: Optional[RateType] = None
    rate_value: Optional[float] = None

    model_config = ConfigDict(extra="ignore")

    @field_validator("amount", "original_amount", "rate_value")
    def amounts_positive(cls, v: float | None) -> float | None:
        return _finite_positive(v)

    @field_validator("description")
    def description_len(cls, v: str | None) -> str | None:
        return _description(v)

    @field_validator("category")
    def category_present(cls, v: str | None) -> str | None:
        return _non_blank(v)

    @field_validator("date")
    def date_utc(cls, v: datetime | None) -> datetime | None:
        return _utc(v)


class TransactionUpdate(CamelModel):
    amount: Optional[float] = None
    description: Optional[str] = None
    category: Optional[str] = None
    date: Optional[datetime] = None
    type: Optional[TxnType] = None
    original_amount: Optional[float] = None
    original_currency: Optional[Currency] = None
    rate_type: Optional[RateType] = None
    rate_value: Optional[float] = None

    model_config = ConfigDict(extra="ignore")

    @field_validator("amount", "description", "category", "date", "type")
    def not_null(cls, v):
        return _not_null(v)

    @field_validator("amount", "original_amount", "rate_value")
    def amounts_positive(cls, v: float | None) -> float | None:
        return _finite_positive(v)

    @field_validator("description")
    def description_len(cls, v: str | None) -> str | None:
        return _description(v)

    @field_validator("category")
    def category_present(cls, v: str | None) -> str | None:
        return _non_blank(v)

    @field_validator("date")
    def date_utc(cls, v: datetime | None) -> datetime | None:
        return _utc(v)


class TransactionOut(CamelModel):
    id: int
    user_id: str
    amount: float
    description: str
    category: str
    date: datetime
    type: TxnType
    original_amount: Optional[float] = None
    original_currency: Optional[Currency] = None
    rate_type: Optional[RateType] = None
    rate_value: Optional[float] = None
    created_at: datetime
    updated_at: datetime
    is_deleted: bool
    version: int

    model_config = ConfigDict(from_attributes=True)


# --- Missions ---------------------------------------------------------------


class MissionCreate(CamelModel):
    title: str
    description: Optional[str] = None
    target_amount: Optional[float] = Field(default=None, ge=0)
    current_amount: float = Field(default=0, ge=0)
    target_progress: float = Field(default=100, gt=0)
    current_progress: float = Field(default=0, ge=0)
    deadline: Optional[datetime] = None
    status: MissionStatus = MissionStatus.ACTIVE
    icon: str = "target"
    code: Optional[str] = Field(default=None, max_length=64)
    type: str = Field(default="amount", max_length=20)
    tip: str = ""

    model_config = ConfigDict(extra="ignore")

    @field_validator("title")
    def title_present(cls, v: str | None) -> str | None:
        return _non_blank(v)

    @field_validator("deadline")
    def deadline_utc(cls, v: datetime | None) -> datetime | None:
        return _utc(v)


class MissionUpdate(CamelModel):
    title: Optional[str] = None
    description: Optional[str] = None
    target_amount: Optional[float] = Field(default=None, ge=0)
    current_amount: Optional[float] = Field(default=None, ge=0)
    target_progress: Optional[float] = Field(default=None, gt=0)
    current_progress: Optional[float] = Field(default=None, ge=0)
    deadline: Optional[datetime] = None
    status: Optional[MissionStatus] = None
    icon: Optional[str] = None
    code: Optional[str] = Field(default=None, max_length=64)
    type: Optional[str] = Field(default=None, max_length=20)
    tip: Optional[str] = None

    model_config = ConfigDict(extra="ignore")

    @field_validator("title", "current_amount", "target_progress", "current_progress", "status", "icon", "type", "tip")
    def not_null(cls, v):
        return _not_null(v)

    @field_validator("title")
    def title_present(cls, v: str | None) -> str | None:
        return _non_blank(v)

    @field_validator("deadline")
    def deadline_utc(cls, v: datetime | None) -> datetime | None:
        return _utc(v)


class MissionOut(CamelModel):
    id: int
    user_id: str
    title: str
    description: Optional[str] = None
    target_amount: Optional[float] = None
    current_amount: float
    target_progress: float
    current_progress: float
    deadline: Optional[datetime] = None
    status: MissionStatus
    icon: str
    code: Optional[str] = None
    type: str
    tip: str
    created_at: datetime
    updated_at: datetime
    is_deleted: bool
    version: int

    model_config = ConfigDict(from_attributes=True)


# --- Sync deltas ------------------------------------------------------------


class RecordDeleted(CamelModel):
    op: Literal["delete"] = "delete"
    id: int
    updated_at: datetime


class TransactionUpsert(CamelModel):
    op: Literal["upsert"] = "upsert"
    record: TransactionOut


class MissionUpsert(CamelModel):
    op: Literal["upsert"] = "upsert"
    record: MissionOut


class TransactionSyncOut(CamelModel):
    entries: list[Annotated[Union[TransactionUpsert, RecordDeleted], Field(discriminator="op")]]
    cursor: Optional[datetime] = None


class MissionSyncOut(CamelModel):
    entries: list[Annotated[Union[MissionUpsert, RecordDeleted], Field(discriminator="op")]]
    cursor: Optional[datetime] = None


# --- Recurring templates ----------------------------------------------------


class RecurringTransactionCreate(CamelModel):
    name: str
    amount: float
    period: Optional[str] = None
    day: int
    type: TxnType
    category: str = "General"
    active: bool = True

    model_config = ConfigDict(extra="ignore")

    @field_validator("name")
    def name_present(cls, v: str | None) -> str | None:
        return _non_blank(v)

    @field_validator("amount")
    def amount_positive(cls, v: float | None) -> float | None:
        return _finite_positive(v)

    @field_validator("day")
    def validate_day(cls, v: int) -> int:
        if not (1 <= v <= 31):
            raise ValueError("day must be between 1 and 31")
        return v

    @field_validator("period")
    def validate_period(cls, v: str | None) -> str | None:
        if v is not None and not _PERIOD_RE.match(v):
            raise ValueError("period must look like YYYY-MM")
        return v


class RecurringTransactionUpdate(CamelModel):
    name: Optional[str] = None
    amount: Optional[float] = None
    period: Optional[str] = None
    day: Optional[int] = None
    type: Optional[TxnType] = None
    category: Optional[str] = None
    active: Optional[bool] = None

    model_config = ConfigDict(extra="ignore")

    @field_validator("name", "amount", "day", "type", "category", "active")
    def not_null(cls, v):
        return _not_null(v)

    @field_validator("name")
    def name_present(cls, v: str | None) -> str | None:
        return _non_blank(v)

    @field_validator("amount")
    def amount_positive(cls, v: float | None) -> float | None:
        return _finite_positive(v)

    @field_validator("day")
    def validate_day(cls, v: int | None) -> int | None:
        if v is not None and not (1 <= v <= 31):
            raise ValueError("day must be between 1 and 31")
        return v

    @field_validator("period")
    def validate_period(cls, v: str | None) -> str | None:
        if v is not None and not _PERIOD_RE.match(v):
            raise ValueError("period must look like YYYY-MM")
        return v


class RecurringTransactionOut(CamelModel):
    id: int
    user_id: str
    name: str
    amount: float
    period: Optional[str] = None
    day: int
    type: TxnType
    category: str
    active: bool
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class RecurringSyncIn(BaseModel):
    items: list[RecurringTransactionCreate]


class MessageOut(BaseModel):
    message: str
