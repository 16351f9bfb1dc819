from __future__ import annotations

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from dualcash.core.database import get_db
from dualcash.core.deps import get_current_user_id, get_expected_version
from dualcash.core.errors import NotFoundError
from dualcash.schemas import (
    MessageOut,
    MissionCreate,
    MissionOut,
    MissionSyncOut,
    MissionUpdate,
    MissionUpsert,
    RecordDeleted,
)
from dualcash.services.ledger_service import MissionService
from dualcash.services.sync import SyncCoordinator

router = APIRouter(prefix="/missions", tags=["missions"])


@router.get("", response_model=list[MissionOut])
def list_missions(
    last_sync: Optional[datetime] = Query(None, alias="lastSync"),
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    svc = MissionService(db)
    if last_sync is None:
        svc.seed_defaults(user_id)
    return SyncCoordinator(svc).sync(user_id, last_sync).records


@router.get("/sync", response_model=MissionSyncOut)
def sync_missions(
    cursor: Optional[datetime] = Query(None),
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    svc = MissionService(db)
    if cursor is None:
        svc.seed_defaults(user_id)
    batch = SyncCoordinator(svc).sync(user_id, cursor)
    entries = []
    for entry in batch.entries():
        if entry["op"] == "delete":
            entries.append(RecordDeleted(id=entry["id"], updated_at=entry["updated_at"]))
        else:
            entries.append(MissionUpsert(record=MissionOut.model_validate(entry["record"])))
    return MissionSyncOut(entries=entries, cursor=batch.cursor)


@router.post("", response_model=MissionOut, status_code=201)
def create_mission(
    payload: MissionCreate,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    return MissionService(db).create(user_id, payload.model_dump())


@router.put("/{mission_id}", response_model=MissionOut)
def update_mission(
    mission_id: int,
    payload: MissionUpdate,
    expected_version: Optional[int] = Depends(get_expected_version),
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    row = MissionService(db).update(
        mission_id,
        user_id,
        payload.model_dump(exclude_unset=True),
        expected_version=expected_version,
    )
    if row is None:
        raise NotFoundError("Mission")
    return row


@router.delete("/{mission_id}", response_model=MessageOut)
def delete_mission(
    mission_id: int,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    row = MissionService(db).soft_delete(mission_id, user_id)
    if row is None:
        raise NotFoundError("Mission")
    return MessageOut(message="Mission removed")
