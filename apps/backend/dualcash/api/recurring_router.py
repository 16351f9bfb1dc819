from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from dualcash.core.database import get_db
from dualcash.core.deps import get_current_user_id
from dualcash.core.errors import NotFoundError
from dualcash.schemas import (
    RecurringSyncIn,
    RecurringTransactionCreate,
    RecurringTransactionOut,
    RecurringTransactionUpdate,
)
from dualcash.services.ledger_service import RecurringTransactionService

router = APIRouter(prefix="/recurring", tags=["recurring"])


@router.get("", response_model=list[RecurringTransactionOut])
def list_recurring(db: Session = Depends(get_db), user_id: str = Depends(get_current_user_id)):
    return RecurringTransactionService(db).get_all(user_id)


@router.post("", response_model=RecurringTransactionOut, status_code=201)
def create_recurring(
    payload: RecurringTransactionCreate,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    return RecurringTransactionService(db).create(user_id, payload.model_dump())


@router.put("/{recurring_id}", response_model=RecurringTransactionOut)
def update_recurring(
    recurring_id: int,
    payload: RecurringTransactionUpdate,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    row = RecurringTransactionService(db).update(recurring_id, user_id, payload.model_dump(exclude_unset=True))
    if row is None:
        raise NotFoundError("Recurring transaction")
    return row


@router.post("/sync", response_model=list[RecurringTransactionOut])
def replace_recurring(
    payload: RecurringSyncIn,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    """Bulk replace: the client owns the full template list and sends all of it."""
    return RecurringTransactionService(db).replace_all(user_id, [item.model_dump() for item in payload.items])
