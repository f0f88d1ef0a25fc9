"""Credential store: CRUD over the ``passwords`` slot.

Every operation reads the full collection from the backend and every
mutation writes the full collection back before returning, so the list a
caller receives is always the authoritative state.

Slot format
-----------
A JSON array of objects, one per record::

    [{"id": "...", "account": "github", "password": "...",
      "createdAt": "2024-05-01T09:30:00Z"}]

Optional fields that are not set are omitted.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Callable, Optional, Union

import pydantic
from pydantic import TypeAdapter

from .backends import StorageBackend
from .errors import NotFoundError, StorageError, ValidationError
from .models import CredentialRecord, new_id, validate_model

logger = logging.getLogger(__name__)

PASSWORDS_SLOT = "passwords"

_RECORDS = TypeAdapter(list[CredentialRecord])
_EDITABLE = frozenset({"account", "username", "email", "notes", "password"})
_IMMUTABLE = frozenset({"id", "created_at", "createdAt"})

RecordId = Union[int, str]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CredentialStore:
    """Reads and writes credential records through a :class:`StorageBackend`."""

    def __init__(
        self,
        backend: StorageBackend,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self.backend = backend
        self._clock = clock or _utcnow

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_all(self) -> list[CredentialRecord]:
        """Return every stored record; unreadable or corrupt data reads as empty."""
        try:
            return self._load()
        except StorageError as exc:
            logger.warning("Could not read credentials, treating vault as empty: %s", exc)
            return []

    def get(self, record_id: RecordId) -> CredentialRecord:
        records = self.get_all()
        return records[_index_of(records, record_id)]

    def search(self, query: str) -> list[CredentialRecord]:
        """Case-insensitive substring match over account, username, email and notes."""
        q = query.lower()
        return [
            r
            for r in self.get_all()
            if q in r.account.lower()
            or (r.username and q in r.username.lower())
            or (r.email and q in r.email.lower())
            or (r.notes and q in r.notes.lower())
        ]

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def add(
        self,
        account: str,
        password: str,
        username: Optional[str] = None,
        email: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> list[CredentialRecord]:
        """Create a record with a fresh id and timestamp; returns the new collection."""
        records = self._load()
        taken = {r.id for r in records}
        record_id = new_id()
        while record_id in taken:
            record_id = new_id()

        record = validate_model(
            CredentialRecord,
            {
                "id": record_id,
                "account": account,
                "username": username,
                "email": email,
                "notes": notes,
                "password": password,
                "created_at": self._clock(),
            },
        )
        records.append(record)
        self._save(records)
        logger.debug("Added credential %s", record.id)
        return records

    def update(self, record_id: RecordId, **fields: Any) -> list[CredentialRecord]:
        """Merge *fields* into one record; unspecified fields are left alone.

        ``id`` and ``created_at`` are never changed, even if supplied.  Passing
        ``None`` for an optional field clears it.
        """
        unknown = set(fields) - _EDITABLE - _IMMUTABLE
        if unknown:
            raise ValidationError(f"Unknown credential field(s): {', '.join(sorted(unknown))}.")
        changes = {k: v for k, v in fields.items() if k in _EDITABLE}

        records = self._load()
        index = _index_of(records, record_id)
        current = records[index]
        records[index] = validate_model(CredentialRecord, {**current.model_dump(), **changes})
        self._save(records)
        logger.debug("Updated credential %s (%s)", current.id, ", ".join(sorted(changes)) or "no fields")
        return records

    def delete(self, record_id: RecordId) -> list[CredentialRecord]:
        """Remove one record; returns the new collection."""
        records = self._load()
        removed = records.pop(_index_of(records, record_id))
        self._save(records)
        logger.debug("Deleted credential %s", removed.id)
        return records

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _load(self) -> list[CredentialRecord]:
        """Read the collection; backend failures propagate as ``StorageError``.

        Unparseable content still reads as empty.
        """
        try:
            raw = self.backend.read(PASSWORDS_SLOT)
        except OSError as exc:
            raise StorageError(f"Could not read credentials: {exc}") from exc
        if raw is None:
            return []
        try:
            return _RECORDS.validate_json(raw)
        except pydantic.ValidationError as exc:
            logger.warning(
                "Stored credentials are corrupt, treating vault as empty (%d error(s))",
                exc.error_count(),
            )
            return []

    def _save(self, records: list[CredentialRecord]) -> None:
        payload = _RECORDS.dump_json(records, by_alias=True, exclude_none=True, indent=2)
        try:
            self.backend.write(PASSWORDS_SLOT, payload.decode("utf-8"))
        except OSError as exc:
            raise StorageError(f"Could not save credentials: {exc}") from exc


def _index_of(records: list[CredentialRecord], record_id: RecordId) -> int:
    key = str(record_id)
    for i, record in enumerate(records):
        if record.id == key:
            return i
    raise NotFoundError(f"No credential with id {key!r}.")
