"""Error taxonomy for pinvault."""

from __future__ import annotations


class PinVaultError(Exception):
    """Base class for every error raised by the pinvault core."""


class ValidationError(PinVaultError):
    """Raised when caller-supplied input is malformed."""


class NotFoundError(PinVaultError):
    """Raised when no credential record has the requested id."""


class StorageError(PinVaultError):
    """Raised when the persistence backend cannot be read or written."""


class WrongPinError(PinVaultError):
    """Raised when an entered PIN does not match the stored one."""
