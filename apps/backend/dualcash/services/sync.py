from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional

from dualcash import models
from dualcash.services.ledger_service import LedgerService


@dataclass(frozen=True)
class SyncBatch:
    records: list[Any]
    cursor: Optional[datetime]

    def entries(self) -> list[dict[str, Any]]:
        """Split the batch into what the client should upsert and what it should drop."""
        out: list[dict[str, Any]] = []
        for row in self.records:
            if row.is_deleted:
                out.append({"op": "delete", "id": row.id, "updated_at": row.updated_at})
            else:
                out.append({"op": "upsert", "record": row})
        return out


class SyncCoordinator:
    """Turns a client's "last synchronized at" cursor into a change set."""

    def __init__(self, store: LedgerService) -> None:
        self.store = store

    def sync(self, user_id: str, cursor: Optional[datetime] = None) -> SyncBatch:
        if cursor is not None:
            cursor = models.to_utc_naive(cursor)
        records = self.store.list_changed_since(user_id, cursor)
        # Row order is presentation only; the next cursor depends on updated_at alone
        next_cursor = max((row.updated_at for row in records), default=cursor)
        return SyncBatch(records=records, cursor=next_cursor)
