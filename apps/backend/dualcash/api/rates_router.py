from __future__ import annotations

from fastapi import APIRouter, Depends

from dualcash.core.deps import get_rate_cache
from dualcash.schemas import RateSnapshotOut
from dualcash.services.rates import RateCache

router = APIRouter(prefix="/rates", tags=["rates"])


@router.get("", response_model=RateSnapshotOut)
def get_rates(rate_cache: RateCache = Depends(get_rate_cache)):
    # Never fails on provider trouble; a fallback snapshot comes back flagged instead
    return RateSnapshotOut.model_validate(rate_cache.get_rates())
