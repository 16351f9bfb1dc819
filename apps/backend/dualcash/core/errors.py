from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable


@dataclass(frozen=True)
class FieldError:
    field: str
    error: str


class ValidationError(Exception):
    """Malformed input; carries one entry per failing field."""

    def __init__(self, fields: Iterable[FieldError], message: str = "Validation error") -> None:
        self.fields = list(fields)
        self.message = message
        super().__init__(message)

    @classmethod
    def from_pydantic(cls, errors: Iterable[dict[str, Any]]) -> "ValidationError":
        fields = []
        for err in errors:
            loc = [str(part) for part in err.get("loc", ())]
            # Drop the request section prefix FastAPI adds ("body", "query", ...)
            if loc and loc[0] in {"body", "query", "path", "header"}:
                loc = loc[1:]
            fields.append(FieldError(field=".".join(loc), error=err.get("msg", "invalid value")))
        return cls(fields)

    def to_dict(self) -> dict[str, Any]:
        return {
            "message": self.message,
            "errors": [{"field": f.field, "error": f.error} for f in self.fields],
        }


class NotFoundError(Exception):
    """Record absent or owned by someone else; both look the same to the caller."""

    def __init__(self, kind: str) -> None:
        self.kind = kind
        super().__init__(f"{kind} not found")


class ConflictError(Exception):
    def __init__(self, kind: str, expected: int, actual: int) -> None:
        self.kind = kind
        self.expected = expected
        self.actual = actual
        super().__init__(f"{kind} version mismatch: expected {expected}, found {actual}")


class RateFetchError(RuntimeError):
    """Raised when an external rate source is unreachable or returns garbage."""
