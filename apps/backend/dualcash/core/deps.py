from __future__ import annotations

from typing import Optional

from fastapi import Header, HTTPException, Request

from dualcash.core.errors import FieldError, ValidationError
from dualcash.services.rates import RateCache


def get_current_user_id(x_user_id: str | None = Header(None, alias="x-user-id")) -> str:
    """Caller identity attached upstream by the authentication layer.

    Tests may override this dependency to act as a different user.
    """
    if not x_user_id or not x_user_id.strip():
        raise HTTPException(status_code=401, detail="Missing user identity.")
    return x_user_id.strip()


def get_expected_version(if_match: Optional[str] = Header(None, alias="if-match")) -> Optional[int]:
    """Opt-in compare-and-swap: ``If-Match: <version>`` (quoted or weak forms accepted)."""
    if if_match is None:
        return None
    token = if_match.strip().removeprefix("W/").strip('"')
    try:
        return int(token)
    except ValueError as exc:
        raise ValidationError([FieldError(field="If-Match", error="must be a record version number")]) from exc


def get_rate_cache(request: Request) -> RateCache:
    return request.app.state.rate_cache
