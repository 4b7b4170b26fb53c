from __future__ import annotations

import threading

import pytest

from coach.auth.accounts import authenticate_local, register_local_account, upsert_account, verify_password
from coach.auth.errors import AccountUpsertError, DuplicateAccountError
from coach.auth.models import NormalizedProfile
from coach.storage.memory_store import MemoryStore


def _profile(**overrides) -> NormalizedProfile:
    base = dict(
        external_id="li-42",
        first_name="Jane",
        last_name="Doe",
        email="jane@example.com",
        profile_image="https://media.example.com/jane-v1.png",
        headline="Engineer",
    )
    base.update(overrides)
    return NormalizedProfile(**base)


def test_first_upsert_creates_account(store: MemoryStore) -> None:
    acct = upsert_account(store, _profile(), "at-1", "rt-1")
    assert acct.username == "li-42"
    assert acct.external_id == "li-42"
    assert acct.password == ""
    assert acct.is_connected is True
    assert acct.full_name == "Jane Doe"
    assert acct.email == "jane@example.com"
    assert (acct.access_token, acct.refresh_token) == ("at-1", "rt-1")


def test_upsert_twice_yields_one_account(store: MemoryStore) -> None:
    a = upsert_account(store, _profile(), "at-1", "rt-1")
    b = upsert_account(store, _profile(), "at-2", "rt-2")
    assert store.account_count() == 1
    assert a.id == b.id


def test_identity_fields_frozen_after_creation(store: MemoryStore) -> None:
    first = upsert_account(store, _profile(), "at-1", "rt-1")
    second = upsert_account(
        store,
        _profile(
            first_name="Janet",
            last_name="Smith",
            email="janet@new.example.com",
            profile_image="https://media.example.com/jane-v2.png",
            headline="Staff Engineer",
        ),
        "at-2",
        "",
    )
    assert second.id == first.id
    assert second.username == first.username
    assert second.created_at == first.created_at
    assert second.email == "jane@example.com"
    assert second.full_name == "Jane Doe"
    # Tokens and avatar/headline follow the provider.
    assert second.access_token == "at-2"
    assert second.refresh_token == ""
    assert second.profile_image == "https://media.example.com/jane-v2.png"
    assert second.headline == "Staff Engineer"


def test_none_refresh_token_stored_as_empty(store: MemoryStore) -> None:
    acct = upsert_account(store, _profile(), "at-1", None)
    assert acct.refresh_token == ""


def test_incomplete_profile_still_creates_account(store: MemoryStore) -> None:
    acct = upsert_account(store, NormalizedProfile(external_id="li-bare"), "at", "")
    assert acct.email == ""
    assert acct.full_name == ""


def test_metrics_record_seeded_once(store: MemoryStore) -> None:
    acct = upsert_account(store, _profile(), "at-1", "")
    seeded = store.get_profile(acct.id)
    assert seeded is not None
    assert seeded.profile_score == 0
    assert seeded.profile_data.activity.profile_views == 0

    store.update_profile(acct.id, {"profile_score": 55})
    upsert_account(store, _profile(), "at-2", "")
    assert store.get_profile(acct.id).profile_score == 55


def test_lost_creation_race_retries_as_update(store: MemoryStore, monkeypatch) -> None:
    winner = upsert_account(store, _profile(), "at-winner", "")

    real_lookup = store.get_account_by_external_id
    calls = {"n": 0}

    def stale_lookup(external_id: str):
        # First lookup misses, as if the winner's insert landed right after it.
        calls["n"] += 1
        return None if calls["n"] == 1 else real_lookup(external_id)

    monkeypatch.setattr(store, "get_account_by_external_id", stale_lookup)
    loser = upsert_account(store, _profile(), "at-loser", "rt-loser")

    assert store.account_count() == 1
    assert loser.id == winner.id
    assert loser.access_token == "at-loser"
    assert calls["n"] == 2


def test_retry_failure_surfaces_as_upsert_error(store: MemoryStore) -> None:
    # A local account already owns the username a LinkedIn account would take.
    store.create_account(username="li-42", password="")
    with pytest.raises(AccountUpsertError):
        upsert_account(store, _profile(), "at", "")
    assert store.account_count() == 1


def test_concurrent_first_upserts_create_exactly_one(store: MemoryStore) -> None:
    n = 8
    barrier = threading.Barrier(n)
    results = []
    errors = []

    def worker(i: int) -> None:
        barrier.wait()
        try:
            results.append(upsert_account(store, _profile(external_id="li-race"), f"at-{i}", ""))
        except Exception as e:  # pragma: no cover - surfaced by the assertion below
            errors.append(e)

    threads = [threading.Thread(target=worker, args=(i,)) for i in range(n)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert errors == []
    assert store.account_count() == 1
    assert len({a.id for a in results}) == 1


def test_store_rejects_duplicate_external_id(store: MemoryStore) -> None:
    store.create_account(username="a", external_id="ext-1")
    with pytest.raises(DuplicateAccountError) as exc:
        store.create_account(username="b", external_id="ext-1")
    assert exc.value.field == "external_id"


def test_store_refuses_identity_updates(store: MemoryStore) -> None:
    acct = store.create_account(username="a")
    with pytest.raises(ValueError):
        store.update_account(acct.id, username="b")


def test_local_password_is_hashed(store: MemoryStore) -> None:
    acct = register_local_account(store, "alice", "correct horse")
    assert acct.password != "correct horse"
    assert acct.password.startswith("$2")
    assert verify_password("correct horse", acct.password)


def test_local_authentication(store: MemoryStore) -> None:
    register_local_account(store, "alice", "correct horse")
    assert authenticate_local(store, "alice", "correct horse") is not None
    assert authenticate_local(store, "alice", "wrong") is None
    assert authenticate_local(store, "nobody", "correct horse") is None


def test_provider_accounts_cannot_log_in_locally(store: MemoryStore) -> None:
    upsert_account(store, _profile(), "at", "")
    assert authenticate_local(store, "li-42", "") is None
    assert authenticate_local(store, "li-42", "anything") is None


def test_duplicate_local_username(store: MemoryStore) -> None:
    register_local_account(store, "alice", "pw")
    with pytest.raises(DuplicateAccountError):
        register_local_account(store, "alice", "other")
