"""Unit tests for SessionStore and the embedded SessionList."""

import pytest
from datetime import timedelta

from common.auth.tokens import gen_refresh_id, hash_refresh_id
from hirelocal.models.user import Session, SessionList, User
from hirelocal.services.auth.session_store import SessionStore


class Clock:
    def __init__(self, now):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now = self.now + timedelta(**kwargs)


# ─────────────────────────────────────────────────────────────────
# Fixtures
# ─────────────────────────────────────────────────────────────────


@pytest.fixture
def clock(fixed_now):
    return Clock(fixed_now)


@pytest.fixture
def store(clock):
    return SessionStore(max_sessions=5, session_ttl=timedelta(days=30), clock=clock)


@pytest.fixture
def user():
    return User(mobile="9999999999")


def add(store, user, descriptor):
    rid_hash = hash_refresh_id(gen_refresh_id())
    return store.add_session(user, descriptor, rid_hash)


# ─────────────────────────────────────────────────────────────────
# SessionList
# ─────────────────────────────────────────────────────────────────


def make_session(fixed_now, n):
    return Session(
        device_info=f"device-{n}",
        refresh_token_hash=f"hash-{n}",
        created_at=fixed_now + timedelta(minutes=n),
        last_used_at=fixed_now + timedelta(minutes=n),
        expires_at=fixed_now + timedelta(days=30),
    )


def test_insert_with_cap_evicts_oldest_first(fixed_now):
    sessions = SessionList()
    for n in range(5):
        assert sessions.insert_with_cap(make_session(fixed_now, n), 5) == []

    evicted = sessions.insert_with_cap(make_session(fixed_now, 5), 5)

    assert [s.device_info for s in evicted] == ["device-0"]
    assert [s.device_info for s in sessions] == [f"device-{n}" for n in range(1, 6)]


def test_insert_with_cap_trims_oversized_list(fixed_now):
    sessions = SessionList([make_session(fixed_now, n) for n in range(7)])

    evicted = sessions.insert_with_cap(make_session(fixed_now, 7), 5)

    assert len(sessions) == 5
    assert [s.device_info for s in evicted] == ["device-0", "device-1", "device-2"]


def test_insert_with_cap_requires_positive_cap(fixed_now):
    with pytest.raises(ValueError):
        SessionList().insert_with_cap(make_session(fixed_now, 0), 0)


def test_remove_by_hash_and_id(fixed_now):
    sessions = SessionList([make_session(fixed_now, n) for n in range(3)])
    middle_id = sessions[1].id

    assert sessions.remove_by_hash("hash-0") is True
    assert sessions.remove_by_hash("hash-0") is False
    assert sessions.remove_by_id(middle_id) is True
    assert sessions.remove_by_id("missing") is False
    assert [s.device_info for s in sessions] == ["device-2"]


# ─────────────────────────────────────────────────────────────────
# SessionStore
# ─────────────────────────────────────────────────────────────────


def test_add_session_sets_thirty_day_expiry(store, user, fixed_now):
    session = add(store, user, "Pixel 8")

    assert session.device_info == "Pixel 8"
    assert session.created_at == fixed_now
    assert session.last_used_at == fixed_now
    assert session.expires_at == fixed_now + timedelta(days=30)
    assert len(user.sessions) == 1


def test_session_count_never_exceeds_cap(store, user, clock):
    created = []
    for n in range(8):
        created.append(add(store, user, f"device-{n}"))
        clock.advance(minutes=1)
        assert len(user.sessions) <= 5

    assert [s.id for s in user.sessions] == [s.id for s in created[3:]]


def test_sixth_session_evicts_exactly_the_oldest(store, user, clock):
    first = add(store, user, "first")
    for n in range(4):
        clock.advance(minutes=1)
        add(store, user, f"device-{n}")

    clock.advance(minutes=1)
    add(store, user, "sixth")

    ids = [s.id for s in user.sessions]
    assert first.id not in ids
    assert len(ids) == 5
    assert user.sessions[-1].device_info == "sixth"


def test_find_session_by_hash(store, user):
    rid_hash = hash_refresh_id(gen_refresh_id())
    session = store.add_session(user, "Pixel 8", rid_hash)

    assert store.find_session_by_hash(user, rid_hash) is session
    assert store.find_session_by_hash(user, "unknown") is None


def test_rotate_keeps_expiry_and_updates_last_used(store, user, clock, fixed_now):
    session = add(store, user, "Pixel 8")
    clock.advance(days=10)
    new_hash = hash_refresh_id(gen_refresh_id())

    store.rotate_session(session, new_hash)

    assert session.refresh_token_hash == new_hash
    assert session.last_used_at == fixed_now + timedelta(days=10)
    assert session.expires_at == fixed_now + timedelta(days=30)


def test_list_sessions_never_exposes_hash(store, user):
    add(store, user, "Pixel 8")
    add(store, user, "iPhone")

    listed = store.list_sessions(user)

    assert [s["deviceInfo"] for s in listed] == ["Pixel 8", "iPhone"]
    for entry in listed:
        assert set(entry) == {"id", "deviceInfo", "createdAt", "lastUsedAt", "expiresAt"}


def test_remove_session_by_id_leaves_others(store, user):
    keep = add(store, user, "keep")
    drop = add(store, user, "drop")

    assert store.remove_session_by_id(user, drop.id) is True
    assert [s.id for s in user.sessions] == [keep.id]


def test_cleanup_expired(store, user, clock):
    add(store, user, "old")
    clock.advance(days=20)
    add(store, user, "new")
    clock.advance(days=11)

    assert store.cleanup_expired(user) == 1
    assert [s.device_info for s in user.sessions] == ["new"]


def test_remove_all_sessions(store, user):
    add(store, user, "a")
    add(store, user, "b")

    assert store.remove_all_sessions(user) == 2
    assert len(user.sessions) == 0


def test_from_settings(settings):
    store = SessionStore.from_settings(settings)

    assert store.max_sessions == 5
    assert store.session_ttl == timedelta(days=30)
