# stockroom/errors.py
"""
Error taxonomy shared by the API client, the stores and the stock services.

ValidationError is raised before any network call and is meant to be shown
next to the offending form fields. Everything else describes something the
remote service refused or could not be reached for.
"""
from dataclasses import dataclass
from typing import List, Optional

import pydantic


class StockroomError(Exception):
    """Base class for every error raised by this package."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


@dataclass(frozen=True)
class FieldError:
    field: str
    message: str

    def __str__(self) -> str:
        return f"{self.field}: {self.message}" if self.field else self.message


class ValidationError(StockroomError):
    """Client-side validation failure. Carries every violation, not just the first."""

    def __init__(self, errors: List[FieldError], message: Optional[str] = None):
        self.errors = list(errors)
        super().__init__(message or "; ".join(str(e) for e in self.errors) or "Invalid input")

    @property
    def fields(self) -> List[str]:
        return [e.field for e in self.errors]

    @classmethod
    def from_pydantic(cls, exc: pydantic.ValidationError) -> "ValidationError":
        errors = []
        for err in exc.errors():
            errors.append(FieldError(field=_format_loc(err.get("loc", ())), message=err.get("msg", "invalid")))
        return cls(errors)


class BusinessRuleError(StockroomError):
    """The operation is well-formed but semantically invalid."""


class InvalidAdjustment(BusinessRuleError):
    """A stock adjustment that must not be applied (negative stock, untracked category...)."""

    def __init__(self, message: str, errors: Optional[List[FieldError]] = None):
        super().__init__(message)
        self.errors = list(errors or [])


class InvalidTransition(BusinessRuleError):
    """Illegal receipt status change, or an edit of a receipt that is no longer pending."""


class NetworkError(StockroomError):
    """Transport failure or an unusable (5xx) answer from the remote service."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class NotFoundError(StockroomError):
    """The referenced record does not exist."""


# Render a pydantic location tuple as a readable path.
# List positions under "items" are shifted to 1-based so messages match what users count.
def _format_loc(loc) -> str:
    parts: List[str] = []
    previous = None
    for part in loc:
        if isinstance(part, int):
            index = part + 1 if previous == "items" else part
            parts.append(f"[{index}]")
        else:
            parts.append(("." if parts else "") + str(part))
        previous = part
    return "".join(parts)


def coerce(schema, data):
    """Validate ``data`` against a pydantic ``schema``; pydantic errors become ``ValidationError``."""
    if isinstance(data, schema):
        return data
    if isinstance(data, pydantic.BaseModel):
        data = data.model_dump(exclude_unset=True)
    try:
        return schema.model_validate(data)
    except pydantic.ValidationError as exc:
        raise ValidationError.from_pydantic(exc) from exc
