"""
Services package

Rate fetching/caching, USD normalization, ledger persistence and sync.
"""

from .ledger_service import MissionService, RecurringTransactionService, TransactionService
from .normalizer import NormalizedAmount, normalize_to_usd
from .rates import DolarApiRateProvider, RateCache, RateSnapshot
from .sync import SyncBatch, SyncCoordinator

__all__ = [
    "DolarApiRateProvider",
    "MissionService",
    "NormalizedAmount",
    "RateCache",
    "RateSnapshot",
    "RecurringTransactionService",
    "SyncBatch",
    "SyncCoordinator",
    "TransactionService",
    "normalize_to_usd",
]
