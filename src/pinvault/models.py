"""Domain models for pinvault."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional, TypeVar

import pydantic
from pydantic import BaseModel, ConfigDict, Field, field_validator

from .errors import ValidationError

MIN_LENGTH = 4
MAX_LENGTH = 32
DEFAULT_LENGTH = 16

_M = TypeVar("_M", bound=BaseModel)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_id() -> str:
    return uuid.uuid4().hex


def describe_errors(exc: pydantic.ValidationError) -> str:
    """Flatten a pydantic error into a single human-readable line."""
    parts = []
    for error in exc.errors():
        loc = ".".join(str(p) for p in error["loc"])
        parts.append(f"{loc}: {error['msg']}" if loc else error["msg"])
    return "; ".join(parts)


def validate_model(model: type[_M], data: dict[str, Any]) -> _M:
    """Build *model* from *data*, raising :class:`ValidationError` on bad input."""
    try:
        return model.model_validate(data)
    except pydantic.ValidationError as exc:
        raise ValidationError(describe_errors(exc)) from exc


class Strength(str, Enum):
    """Coarse, advisory classification of a generated password."""

    WEAK = "Weak"
    MEDIUM = "Medium"
    STRONG = "Strong"


class AccessDecision(str, Enum):
    """Outcome of asking the PIN gate whether a secret may be shown."""

    NEEDS_SETUP = "NeedsSetup"
    GRANTED_IMMEDIATELY = "GrantedImmediately"
    NEEDS_CHALLENGE = "NeedsChallenge"


class CredentialRecord(BaseModel):
    """A single stored credential.

    Persisted with camelCase keys (``createdAt``); optional fields that are
    not set are left out of the serialised object entirely.
    """

    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(default_factory=new_id)
    account: str
    username: Optional[str] = None
    email: Optional[str] = None
    notes: Optional[str] = None
    password: str = Field(min_length=1)
    created_at: datetime = Field(default_factory=_utcnow, alias="createdAt")

    @field_validator("id", mode="before")
    @classmethod
    def _normalise_id(cls, value: Any) -> Any:
        # Older vaults keyed records by millisecond timestamps.
        if isinstance(value, int) and not isinstance(value, bool):
            return str(value)
        return value

    @field_validator("account")
    @classmethod
    def _account_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("account must not be empty")
        return value


class GeneratorConfig(BaseModel):
    """Length and character-class selection for the password generator."""

    length: int = Field(default=DEFAULT_LENGTH, ge=MIN_LENGTH, le=MAX_LENGTH)
    uppercase: bool = True
    lowercase: bool = True
    digits: bool = True
    symbols: bool = True
