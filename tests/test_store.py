from datetime import date

import pytest

from leasedesk.main import PLATFORM_OWNER_ID, ensure_platform_owner
from leasedesk.models.models import Owner
from leasedesk.seeds.demo import seed_demo_data
from leasedesk.services.audit import audit_log
from leasedesk.services.negotiations import renewal_queue
from leasedesk.services.store import AppState, EntityStore


def test_entity_store_replaces_whole_records():
    store = EntityStore([Owner(id="owner-1", name="Ana Silva")])
    original = store.get("owner-1")

    updated = store.replace(original.model_copy(update={"name": "Ana S. Silva"}))

    assert store.get("owner-1") is updated
    assert original.name == "Ana Silva"
    assert store.replace(Owner(id="owner-404", name="Ghost")) is None
    assert "owner-404" not in store
    assert store.get("") is None


def test_entity_store_rejects_duplicate_ids_and_deletes():
    store = EntityStore([Owner(id="owner-1", name="Ana Silva")])

    with pytest.raises(KeyError):
        store.add(Owner(id="owner-1", name="Other"))

    assert store.delete("owner-1").name == "Ana Silva"
    assert len(store) == 0
    assert store.delete("owner-1") is None


def test_audit_entries_serialize_before_and_after():
    state = AppState()

    entry = audit_log(state, "user-1", "tasks.status", "Task", "task-1", before={"status": "pending"}, after={"status": "in_progress"})

    assert state.audit_logs.get(entry.id) is entry
    assert entry.before == '{"status": "pending"}'
    assert entry.after == '{"status": "in_progress"}'


def test_platform_owner_bootstrap_is_idempotent():
    state = AppState()

    first = ensure_platform_owner(state)
    second = ensure_platform_owner(state)

    assert first.id == PLATFORM_OWNER_ID
    assert second is first
    assert len(state.users) == 1


def test_demo_seed_produces_renewal_queue():
    state = AppState()
    today = date(2025, 1, 1)

    seed_demo_data(state, today)
    seed_demo_data(state, today)

    records = renewal_queue(state, today)
    assert [record.bucket for record in records] == ["critical", "upcoming", "year"]
    assert len(state.tasks) == 1
