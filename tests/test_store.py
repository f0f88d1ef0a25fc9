"""Tests for pinvault.store."""

import json

import pytest

from pinvault.backends import MemoryBackend
from pinvault.errors import NotFoundError, StorageError, ValidationError
from pinvault.store import PASSWORDS_SLOT, CredentialStore


class _ReadOnlyBackend(MemoryBackend):
    def write(self, key, value):
        raise StorageError("quota exceeded")


class _BrokenDiskBackend(MemoryBackend):
    def write(self, key, value):
        raise OSError(28, "No space left on device")


class _UnreadableBackend(MemoryBackend):
    def read(self, key):
        raise StorageError("permission denied")


def _add_github(store):
    return store.add("github", "s3cret", username="alice", email="alice@example.com", notes="work")


# ---------------------------------------------------------------------------
# get_all
# ---------------------------------------------------------------------------


def test_new_store_is_empty(store):
    assert store.get_all() == []


def test_corrupt_slot_reads_as_empty(backend, store, caplog):
    backend.write(PASSWORDS_SLOT, "{not json")
    assert store.get_all() == []
    assert "corrupt" in caplog.text


def test_wrong_shape_reads_as_empty(backend, store):
    backend.write(PASSWORDS_SLOT, json.dumps({"account": "github"}))
    assert store.get_all() == []


def test_unreadable_backend_reads_as_empty(t0):
    store = CredentialStore(_UnreadableBackend(), clock=lambda: t0)
    assert store.get_all() == []


def test_get_all_is_idempotent(store):
    _add_github(store)
    assert store.get_all() == store.get_all()


def test_legacy_records_are_readable(backend, store):
    backend.write(
        PASSWORDS_SLOT,
        json.dumps(
            [{"id": 1714555800000, "account": "mail", "password": "pw", "createdAt": "2024-05-01T09:30:00.000Z"}]
        ),
    )
    (record,) = store.get_all()
    assert record.id == "1714555800000"
    assert store.get(1714555800000) == record


# ---------------------------------------------------------------------------
# Mutations after a failed read
# ---------------------------------------------------------------------------


@pytest.fixture
def unreadable(t0):
    backend = MemoryBackend()
    CredentialStore(backend, clock=lambda: t0).add("github", "s3cret")
    seeded = _UnreadableBackend(backend.slots)
    return seeded, CredentialStore(seeded, clock=lambda: t0)


def _stored_id(backend):
    return json.loads(backend.slots[PASSWORDS_SLOT])[0]["id"]


def test_add_after_failed_read_raises_and_keeps_slot(unreadable):
    backend, store = unreadable
    before = backend.slots[PASSWORDS_SLOT]
    with pytest.raises(StorageError):
        store.add("mail", "pw")
    assert backend.slots[PASSWORDS_SLOT] == before


def test_update_after_failed_read_raises_and_keeps_slot(unreadable):
    backend, store = unreadable
    before = backend.slots[PASSWORDS_SLOT]
    with pytest.raises(StorageError):
        store.update(_stored_id(backend), notes="x")
    assert backend.slots[PASSWORDS_SLOT] == before


def test_delete_after_failed_read_raises_and_keeps_slot(unreadable):
    backend, store = unreadable
    before = backend.slots[PASSWORDS_SLOT]
    with pytest.raises(StorageError):
        store.delete(_stored_id(backend))
    assert backend.slots[PASSWORDS_SLOT] == before


def test_add_after_corrupt_json_starts_fresh(backend, store):
    backend.write(PASSWORDS_SLOT, "{not json")
    records = store.add("mail", "pw")
    assert [r.account for r in records] == ["mail"]


# ---------------------------------------------------------------------------
# add
# ---------------------------------------------------------------------------


def test_add_round_trip(store, t0):
    records = _add_github(store)
    assert len(records) == 1
    (stored,) = store.get_all()
    assert stored == records[0]
    assert stored.account == "github"
    assert stored.username == "alice"
    assert stored.email == "alice@example.com"
    assert stored.notes == "work"
    assert stored.password == "s3cret"
    assert stored.created_at == t0
    assert stored.id


def test_add_appends_in_order(store):
    store.add("a", "1")
    store.add("b", "2")
    records = store.add("c", "3")
    assert [r.account for r in records] == ["a", "b", "c"]
    assert len({r.id for r in records}) == 3


def test_add_persists_camel_case_and_omits_unset_fields(backend, store):
    store.add("github", "s3cret")
    (raw,) = json.loads(backend.read(PASSWORDS_SLOT))
    assert set(raw) == {"id", "account", "password", "createdAt"}


def test_add_blank_optionals_are_kept_as_given(store):
    (record,) = store.add("github", "pw", username=None, notes=None)
    assert record.username is None
    assert record.notes is None


@pytest.mark.parametrize("account,password", [("", "pw"), ("  ", "pw"), ("github", "")])
def test_add_rejects_missing_required_fields(store, account, password):
    with pytest.raises(ValidationError):
        store.add(account, password)
    assert store.get_all() == []


def test_add_write_failure_leaves_state_unchanged(t0):
    backend = _ReadOnlyBackend({PASSWORDS_SLOT: "[]"})
    store = CredentialStore(backend, clock=lambda: t0)
    with pytest.raises(StorageError):
        store.add("github", "pw")
    assert store.get_all() == []


def test_os_error_on_write_becomes_storage_error(t0):
    store = CredentialStore(_BrokenDiskBackend(), clock=lambda: t0)
    with pytest.raises(StorageError, match="No space left"):
        store.add("github", "pw")


# ---------------------------------------------------------------------------
# update
# ---------------------------------------------------------------------------


def test_update_only_touches_given_fields(store):
    (original,) = _add_github(store)
    (updated,) = store.update(original.id, notes="x")
    assert updated.notes == "x"
    assert updated.account == original.account
    assert updated.username == original.username
    assert updated.email == original.email
    assert updated.password == original.password
    assert updated.created_at == original.created_at
    assert store.get_all() == [updated]


def test_update_ignores_id_and_created_at(store):
    (original,) = _add_github(store)
    (updated,) = store.update(original.id, id="other", created_at="2000-01-01T00:00:00Z", createdAt="x")
    assert updated.id == original.id
    assert updated.created_at == original.created_at


def test_update_none_clears_optional_field(store):
    (original,) = _add_github(store)
    (updated,) = store.update(original.id, email=None)
    assert updated.email is None
    assert updated.username == "alice"


def test_update_cannot_blank_required_fields(store):
    (original,) = _add_github(store)
    with pytest.raises(ValidationError):
        store.update(original.id, password="")
    with pytest.raises(ValidationError):
        store.update(original.id, account=None)
    assert store.get_all() == [original]


def test_update_unknown_field_rejected(store):
    (original,) = _add_github(store)
    with pytest.raises(ValidationError, match="colour"):
        store.update(original.id, colour="red")


def test_update_missing_id_raises_not_found(store):
    _add_github(store)
    before = store.get_all()
    with pytest.raises(NotFoundError):
        store.update("missing", notes="x")
    assert store.get_all() == before


def test_update_leaves_other_records_alone(store):
    store.add("a", "1")
    records = store.add("b", "2")
    store.update(records[1].id, account="bee")
    assert [r.account for r in store.get_all()] == ["a", "bee"]


# ---------------------------------------------------------------------------
# delete
# ---------------------------------------------------------------------------


def test_delete_removes_record(store):
    store.add("a", "1")
    records = store.add("b", "2")
    remaining = store.delete(records[0].id)
    assert [r.account for r in remaining] == ["b"]
    assert records[0].id not in {r.id for r in store.get_all()}


def test_delete_missing_id_on_empty_store(store):
    with pytest.raises(NotFoundError):
        store.delete(999999)


def test_delete_write_failure_keeps_record(t0):
    backend = MemoryBackend()
    writable = CredentialStore(backend, clock=lambda: t0)
    (record,) = writable.add("github", "pw")

    locked = CredentialStore(_ReadOnlyBackend(backend.slots), clock=lambda: t0)
    with pytest.raises(StorageError):
        locked.delete(record.id)
    assert locked.get_all() == [record]


# ---------------------------------------------------------------------------
# get / search
# ---------------------------------------------------------------------------


def test_get_returns_record(store):
    (record,) = _add_github(store)
    assert store.get(record.id) == record


def test_get_missing_raises(store):
    with pytest.raises(NotFoundError):
        store.get("nope")


def test_search_matches_several_fields(store):
    _add_github(store)
    store.add("bank", "pw", notes="savings account")
    assert [r.account for r in store.search("GIT")] == ["github"]
    assert [r.account for r in store.search("example.com")] == ["github"]
    assert [r.account for r in store.search("savings")] == ["bank"]
    assert store.search("zzz") == []
