from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from dualcash.core.database import get_db
from dualcash.core.deps import get_current_user_id, get_expected_version, get_rate_cache
from dualcash.core.errors import FieldError, NotFoundError, ValidationError
from dualcash.models import Currency, RateType, Transaction
from dualcash.schemas import (
    MessageOut,
    RecordDeleted,
    TransactionCreate,
    TransactionOut,
    TransactionSyncOut,
    TransactionUpdate,
    TransactionUpsert,
)
from dualcash.services.ledger_service import TransactionService
from dualcash.services.normalizer import needs_rates, normalize_to_usd
from dualcash.services.rates import RateCache
from dualcash.services.sync import SyncCoordinator

router = APIRouter(prefix="/transactions", tags=["transactions"])


# Columns that describe how ``amount`` was derived
CONVERSION_FIELDS = ("original_amount", "original_currency", "rate_type")


def apply_rate_policy(
    data: dict[str, Any],
    rate_cache: RateCache,
    stored: Optional[Transaction] = None,
) -> dict[str, Any]:
    """Normalize a payload that declares ``original_currency``.

    A VES entry with no regime is read at the official rate. When the client
    already sent ``rate_value`` it did the conversion itself and its numbers
    are kept as the rate actually applied.

    For a patch, ``stored`` is the current row. A patch that touches any of
    the conversion columns is merged over the stored context and converted
    again, so ``amount``, ``rate_type`` and ``rate_value`` keep describing the
    same conversion.
    """
    if stored is None:
        return _convert(data, rate_cache)
    if data.get("rate_value") is not None or not any(name in data for name in CONVERSION_FIELDS):
        return data

    merged = {name: data.get(name, getattr(stored, name)) for name in CONVERSION_FIELDS}
    merged["amount"] = data.get("amount", stored.amount)
    data.update(_convert(merged, rate_cache))
    return data


def _convert(data: dict[str, Any], rate_cache: RateCache) -> dict[str, Any]:
    currency = data.get("original_currency")
    if currency is None:
        return data
    if Currency(currency) is Currency.VES and data.get("rate_type") is None:
        data["rate_type"] = RateType.BCV
    if data.get("rate_value") is not None:
        return data

    source = data.get("original_amount")
    if source is None:
        source = data.get("amount")
    if source is None:
        return data

    rate_type = data.get("rate_type")
    rates = rate_cache.get_rates() if needs_rates(currency, rate_type) else {}
    result = normalize_to_usd(source, currency, rate_type, rates)
    if result.final_amount <= 0:
        raise ValidationError([FieldError(field="amount", error="converted amount rounds to zero")])
    data["original_amount"] = source
    data["amount"] = result.final_amount
    data["rate_value"] = result.rate_value
    return data


@router.get("", response_model=list[TransactionOut])
def list_transactions(
    last_sync: Optional[datetime] = Query(None, alias="lastSync", description="Return only rows changed after this instant"),
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    batch = SyncCoordinator(TransactionService(db)).sync(user_id, last_sync)
    return batch.records


@router.get("/sync", response_model=TransactionSyncOut)
def sync_transactions(
    cursor: Optional[datetime] = Query(None, description="Cursor returned by the previous sync"),
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    batch = SyncCoordinator(TransactionService(db)).sync(user_id, cursor)
    entries = []
    for entry in batch.entries():
        if entry["op"] == "delete":
            entries.append(RecordDeleted(id=entry["id"], updated_at=entry["updated_at"]))
        else:
            entries.append(TransactionUpsert(record=TransactionOut.model_validate(entry["record"])))
    return TransactionSyncOut(entries=entries, cursor=batch.cursor)


@router.post("", response_model=TransactionOut, status_code=201)
def create_transaction(
    payload: TransactionCreate,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
    rate_cache: RateCache = Depends(get_rate_cache),
):
    data = apply_rate_policy(payload.model_dump(exclude_none=True), rate_cache)
    return TransactionService(db).create(user_id, data)


@router.put("/{txn_id}", response_model=TransactionOut)
def update_transaction(
    txn_id: int,
    payload: TransactionUpdate,
    expected_version: Optional[int] = Depends(get_expected_version),
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
    rate_cache: RateCache = Depends(get_rate_cache),
):
    svc = TransactionService(db)
    stored = svc.get_owned(txn_id, user_id)
    if stored is None:
        raise NotFoundError("Transaction")
    patch = apply_rate_policy(payload.model_dump(exclude_unset=True), rate_cache, stored=stored)
    row = svc.update(txn_id, user_id, patch, expected_version=expected_version)
    if row is None:
        raise NotFoundError("Transaction")
    return row


@router.delete("/{txn_id}", response_model=MessageOut)
def delete_transaction(
    txn_id: int,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    row = TransactionService(db).soft_delete(txn_id, user_id)
    if row is None:
        raise NotFoundError("Transaction")
    return MessageOut(message="Transaction removed")
