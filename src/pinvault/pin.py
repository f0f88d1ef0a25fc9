"""PIN gate: decides whether a stored secret may be shown.

The PIN is a 4-digit string kept in clear text in the ``vault_pin`` slot and
compared with plain equality.  It keeps casual onlookers out of the detail
view; it is not a cryptographic credential.  There is no lockout after
failed attempts.

After a successful :meth:`PinGate.verify` further requests are granted for
:data:`GRACE_PERIOD`.  The verification time lives only on the gate object,
so a new process always starts locked.
"""

from __future__ import annotations

import logging
import re
from datetime import datetime, timedelta, timezone
from typing import Optional

from .backends import StorageBackend
from .errors import StorageError, ValidationError, WrongPinError
from .models import AccessDecision

logger = logging.getLogger(__name__)

PIN_SLOT = "vault_pin"
PIN_LENGTH = 4
GRACE_PERIOD = timedelta(minutes=5)

_PIN_RE = re.compile(r"[0-9]{%d}" % PIN_LENGTH)


def _as_utc(moment: datetime) -> datetime:
    # Naive datetimes are taken to be UTC already.
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


class PinGate:
    """Holds the configured PIN and the time it was last entered correctly."""

    def __init__(self, backend: StorageBackend) -> None:
        self.backend = backend
        self._last_verified_at: Optional[datetime] = None

    @property
    def last_verified_at(self) -> Optional[datetime]:
        return self._last_verified_at

    def _stored_pin(self) -> Optional[str]:
        try:
            value = self.backend.read(PIN_SLOT)
        except StorageError as exc:
            logger.warning("Could not read PIN, treating it as not set: %s", exc)
            return None
        if value is None:
            return None
        if not _PIN_RE.fullmatch(value):
            logger.warning("Stored PIN is malformed, treating it as not set")
            return None
        return value

    def is_configured(self) -> bool:
        return self._stored_pin() is not None

    def setup(self, pin: str, confirm_pin: str) -> None:
        """Store *pin*, replacing any existing one.

        Raises:
            ValidationError: If *pin* is not exactly four digits or does not
                match *confirm_pin*.
        """
        if not _PIN_RE.fullmatch(pin):
            raise ValidationError(f"PIN must be exactly {PIN_LENGTH} digits.")
        if pin != confirm_pin:
            raise ValidationError("PINs do not match.")
        try:
            self.backend.write(PIN_SLOT, pin)
        except OSError as exc:
            raise StorageError(f"Could not save PIN: {exc}") from exc
        logger.info("PIN configured")

    def request_access(self, now: datetime) -> AccessDecision:
        """Decide whether a secret may be shown at *now* (naive means UTC)."""
        now = _as_utc(now)
        if not self.is_configured():
            return AccessDecision.NEEDS_SETUP
        if self._last_verified_at is not None and now - self._last_verified_at < GRACE_PERIOD:
            return AccessDecision.GRANTED_IMMEDIATELY
        return AccessDecision.NEEDS_CHALLENGE

    def verify(self, entered_pin: str, now: datetime) -> None:
        """Check *entered_pin*; on success the grace window restarts at *now*.

        Raises:
            ValidationError: If no PIN has been set up yet.
            WrongPinError: If *entered_pin* does not match.  The grace window
                is left as it was.
        """
        now = _as_utc(now)
        stored = self._stored_pin()
        if stored is None:
            raise ValidationError("No PIN has been set up yet.")
        if entered_pin != stored:
            logger.info("PIN verification failed")
            raise WrongPinError("Incorrect PIN.")
        self._last_verified_at = now
