from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Callable, Iterable, Optional

from sqlalchemy.orm import Session

from dualcash import models
from dualcash.core.errors import ConflictError, FieldError, ValidationError

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]

# Sync bookkeeping owned by the store; never accepted from callers
PROTECTED_FIELDS = frozenset({"id", "user_id", "created_at", "updated_at", "is_deleted", "version"})


class LedgerService:
    """Ownership-scoped persistence for records that take part in cursor sync.

    Every lookup filters on both ``id`` and ``user_id``; a row owned by another
    user is reported exactly like a missing row (``None``).
    """

    model: type[models.SyncMixin]
    kind: str

    def __init__(self, db: Session, *, clock: Clock = models.now_utc_naive) -> None:
        self.db = db
        self.clock = clock

    def get_owned(self, record_id: int, user_id: str):
        return (
            self.db.query(self.model)
            .filter(self.model.id == record_id, self.model.user_id == user_id)
            .first()
        )

    def create(self, user_id: str, payload: dict[str, Any]):
        _reject_protected(payload)
        now = self.clock()
        row = self.model(**payload, user_id=user_id, created_at=now, updated_at=now)
        self.db.add(row)
        self.db.commit()
        self.db.refresh(row)
        logger.debug("created %s id=%s user=%s", self.kind, row.id, user_id)
        return row

    def update(
        self,
        record_id: int,
        user_id: str,
        patch: dict[str, Any],
        *,
        expected_version: Optional[int] = None,
    ):
        """Shallow-merge ``patch`` onto the stored row.

        Without ``expected_version`` the last writer wins on the whole row. With
        it, the write only goes through if nobody bumped the row in between.
        """
        row = self.get_owned(record_id, user_id)
        if row is None:
            return None
        _reject_protected(patch)
        if expected_version is not None and row.version != expected_version:
            raise ConflictError(self.kind, expected_version, row.version)
        for key, value in patch.items():
            setattr(row, key, value)
        row.touch(self.clock())
        self.db.commit()
        self.db.refresh(row)
        return row

    def soft_delete(self, record_id: int, user_id: str):
        row = self.get_owned(record_id, user_id)
        if row is None:
            return None
        row.is_deleted = True
        row.touch(self.clock())
        self.db.commit()
        self.db.refresh(row)
        logger.debug("soft-deleted %s id=%s user=%s", self.kind, row.id, user_id)
        return row

    def list_changed_since(self, user_id: str, cursor: Optional[datetime] = None) -> list:
        """Rows a client must apply to catch up from ``cursor``.

        Without a cursor the client starts empty, so tombstones are left out.
        With one, every row touched after it comes back, deleted or not.
        """
        q = self.db.query(self.model).filter(self.model.user_id == user_id)
        if cursor is None:
            q = q.filter(self.model.is_deleted.is_(False))
        else:
            q = q.filter(self.model.updated_at > models.to_utc_naive(cursor))
        return q.order_by(self.model.created_at.desc(), self.model.id.desc()).all()


class TransactionService(LedgerService):
    model = models.Transaction
    kind = "Transaction"


DEFAULT_MISSIONS: tuple[dict[str, Any], ...] = (
    {
        "code": "emergency-fund",
        "title": "Fondo de Emergencia",
        "description": "Ahorra $1,000 para imprevistos",
        "target_amount": 1000,
        "target_progress": 1000,
        "status": models.MissionStatus.ACTIVE,
        "type": "amount",
        "icon": "piggybank",
        "tip": "Guarda al menos el 10% de tus ingresos mensuales.",
    },
    {
        "code": "track-expenses",
        "title": "Hábito de Registro",
        "description": "Registra 10 transacciones nuevas",
        "target_amount": 0,
        "target_progress": 10,
        "status": models.MissionStatus.ACTIVE,
        "type": "habit",
        "icon": "calendar",
        "tip": "Registrar gastos diariamente te ayuda a identificar fugas de dinero.",
    },
    {
        "code": "smart-shopper",
        "title": "Compra Inteligente",
        "description": "Evita gastos hormiga por 7 días",
        "target_amount": 0,
        "target_progress": 7,
        "status": models.MissionStatus.LOCKED,
        "type": "days",
        "icon": "trending-up",
        "tip": 'Pregúntate "¿realmente lo necesito?" antes de cada compra pequeña.',
    },
)


class MissionService(LedgerService):
    model = models.Mission
    kind = "Mission"

    def seed_defaults(self, user_id: str) -> list[models.Mission]:
        """Give a brand-new user the starter missions.

        Only fires when the user has never had a mission, tombstones included,
        so deleting the starters does not bring them back.
        """
        exists = (
            self.db.query(models.Mission.id)
            .filter(models.Mission.user_id == user_id)
            .first()
        )
        if exists:
            return []
        now = self.clock()
        rows = [
            models.Mission(**spec, user_id=user_id, created_at=now, updated_at=now)
            for spec in DEFAULT_MISSIONS
        ]
        self.db.add_all(rows)
        self.db.commit()
        for row in rows:
            self.db.refresh(row)
        logger.info("seeded %d default missions for user=%s", len(rows), user_id)
        return rows


class RecurringTransactionService:
    """Monthly templates; plain CRUD, outside the sync protocol."""

    def __init__(self, db: Session, *, clock: Clock = models.now_utc_naive) -> None:
        self.db = db
        self.clock = clock

    def get_all(self, user_id: str) -> list[models.RecurringTransaction]:
        return (
            self.db.query(models.RecurringTransaction)
            .filter(models.RecurringTransaction.user_id == user_id)
            .order_by(models.RecurringTransaction.day, models.RecurringTransaction.id)
            .all()
        )

    def get_owned(self, record_id: int, user_id: str) -> models.RecurringTransaction | None:
        return (
            self.db.query(models.RecurringTransaction)
            .filter(
                models.RecurringTransaction.id == record_id,
                models.RecurringTransaction.user_id == user_id,
            )
            .first()
        )

    def create(self, user_id: str, payload: dict[str, Any]) -> models.RecurringTransaction:
        _reject_protected(payload)
        now = self.clock()
        row = models.RecurringTransaction(**payload, user_id=user_id, created_at=now, updated_at=now)
        self.db.add(row)
        self.db.commit()
        self.db.refresh(row)
        return row

    def update(self, record_id: int, user_id: str, patch: dict[str, Any]) -> models.RecurringTransaction | None:
        row = self.get_owned(record_id, user_id)
        if row is None:
            return None
        _reject_protected(patch)
        for key, value in patch.items():
            setattr(row, key, value)
        row.updated_at = self.clock()
        self.db.commit()
        self.db.refresh(row)
        return row

    def replace_all(self, user_id: str, items: Iterable[dict[str, Any]]) -> list[models.RecurringTransaction]:
        """Swap the user's whole template set for ``items`` in one commit."""
        items = list(items)
        for item in items:
            _reject_protected(item)
        self.db.query(models.RecurringTransaction).filter(
            models.RecurringTransaction.user_id == user_id
        ).delete(synchronize_session=False)
        now = self.clock()
        rows = [
            models.RecurringTransaction(**item, user_id=user_id, created_at=now, updated_at=now)
            for item in items
        ]
        self.db.add_all(rows)
        self.db.commit()
        for row in rows:
            self.db.refresh(row)
        return rows


def _reject_protected(data: dict[str, Any]) -> None:
    blocked = sorted(PROTECTED_FIELDS.intersection(data))
    if blocked:
        raise ValidationError(
            [FieldError(field=name, error="field is managed by the server") for name in blocked]
        )
