"""pinvault: a local password generator and PIN-gated credential store."""

from .backends import FileBackend, MemoryBackend, StorageBackend
from .errors import NotFoundError, PinVaultError, StorageError, ValidationError, WrongPinError
from .generator import classify_strength, generate, make_config
from .models import AccessDecision, CredentialRecord, GeneratorConfig, Strength
from .pin import GRACE_PERIOD, PinGate
from .store import CredentialStore

__version__ = "0.1.0"

__all__ = [
    "AccessDecision",
    "CredentialRecord",
    "CredentialStore",
    "FileBackend",
    "GRACE_PERIOD",
    "GeneratorConfig",
    "MemoryBackend",
    "NotFoundError",
    "PinGate",
    "PinVaultError",
    "StorageBackend",
    "StorageError",
    "Strength",
    "ValidationError",
    "WrongPinError",
    "classify_strength",
    "generate",
    "make_config",
]
