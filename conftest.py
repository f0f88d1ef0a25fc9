"""pytest configuration — add src/ to sys.path and share vault fixtures."""
import sys
from datetime import datetime, timezone
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent / "src"))

from pinvault.backends import MemoryBackend  # noqa: E402
from pinvault.pin import PinGate  # noqa: E402
from pinvault.store import CredentialStore  # noqa: E402

T0 = datetime(2024, 5, 1, 9, 30, tzinfo=timezone.utc)


@pytest.fixture
def t0():
    return T0


@pytest.fixture
def backend():
    return MemoryBackend()


@pytest.fixture
def store(backend):
    return CredentialStore(backend, clock=lambda: T0)


@pytest.fixture
def gate(backend):
    return PinGate(backend)
