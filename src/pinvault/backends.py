"""Key-value persistence backends.

A backend holds named slots of text.  The store keeps its collection in the
``passwords`` slot and the PIN gate keeps the PIN in ``vault_pin``; neither
knows where the text actually lives.

File layout
-----------
``FileBackend`` writes one UTF-8 file per slot, ``<directory>/<slot>.json``.
There is no locking between processes: concurrent writers race and the last
write wins.
"""

from __future__ import annotations

import logging
import os
import re
from pathlib import Path
from typing import Optional, Protocol

from .errors import StorageError, ValidationError

logger = logging.getLogger(__name__)

_SLOT_RE = re.compile(r"[A-Za-z0-9_-]+")


def _check_slot(key: str) -> str:
    if not _SLOT_RE.fullmatch(key):
        raise ValidationError(f"Invalid storage slot name: {key!r}.")
    return key


class StorageBackend(Protocol):
    """What the store and PIN gate need from persistent storage."""

    def read(self, key: str) -> Optional[str]:
        """Return the text stored under *key*, or ``None`` if nothing is."""
        ...

    def write(self, key: str, value: str) -> None:
        """Replace the text stored under *key*."""
        ...


class MemoryBackend:
    """Dict-backed backend, scoped to the lifetime of the object."""

    def __init__(self, initial: Optional[dict[str, str]] = None) -> None:
        self.slots: dict[str, str] = dict(initial or {})

    def read(self, key: str) -> Optional[str]:
        return self.slots.get(_check_slot(key))

    def write(self, key: str, value: str) -> None:
        self.slots[_check_slot(key)] = value


class FileBackend:
    """Stores each slot as a file inside *directory*."""

    def __init__(self, directory: Path) -> None:
        self.directory = Path(directory)

    def path_for(self, key: str) -> Path:
        return self.directory / f"{_check_slot(key)}.json"

    def read(self, key: str) -> Optional[str]:
        path = self.path_for(key)
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except (OSError, UnicodeDecodeError) as exc:
            raise StorageError(f"Could not read {path}: {exc}") from exc

    def write(self, key: str, value: str) -> None:
        path = self.path_for(key)
        tmp = path.with_suffix(".tmp")
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            # Atomic write via temp file
            tmp.write_text(value, encoding="utf-8")
            tmp.replace(path)
            # Restrict permissions: owner read/write only
            os.chmod(path, 0o600)
        except OSError as exc:
            logger.error("Writing slot %r to %s failed: %s", key, path, exc)
            raise StorageError(f"Could not write {path}: {exc}") from exc
